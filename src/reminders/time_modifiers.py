# remindbot - Discord Reminder Bot
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Time Modifier Module

Pure timestamp transformations used by time expressions and reminder
intervals. Every modifier maps a timezone-aware datetime (with a pytz
tzinfo) to a new one in the same zone.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, Optional, Sequence, Union

import pytz
from dateutil.relativedelta import relativedelta

logger = logging.getLogger("remindbot.reminders.time_modifiers")

WEEKDAY_NAMES = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]


class CalendarError(Exception):
    """Raised when a modifier produces a timestamp that does not exist."""

    pass


def zone_of(dt: datetime) -> pytz.BaseTzInfo:
    """Return the pytz zone a localized datetime belongs to."""
    return pytz.timezone(dt.tzinfo.zone)


def localize(tz: pytz.BaseTzInfo, naive: datetime) -> datetime:
    """
    Attach a zone to a civil datetime.

    Wall times inside a DST gap are pushed forward by the gap length and
    ambiguous wall times resolve to the earlier offset.
    """
    try:
        return tz.localize(naive, is_dst=None)
    except pytz.AmbiguousTimeError:
        return tz.localize(naive, is_dst=True)
    except pytz.NonExistentTimeError:
        return tz.normalize(tz.localize(naive, is_dst=False))


@dataclass(frozen=True)
class Delay:
    """Fixed duration in milliseconds."""

    milliseconds: int

    def apply(self, base: datetime) -> datetime:
        try:
            shifted = base + timedelta(milliseconds=self.milliseconds)
        except OverflowError as e:
            raise CalendarError(f"Delay of {self.milliseconds}ms is out of range") from e
        return zone_of(base).normalize(shifted)


@dataclass(frozen=True)
class Weekday:
    """Next occurrence of a weekday (0=Monday), strictly after the base day."""

    ordinal: int

    def apply(self, base: datetime) -> datetime:
        if not 0 <= self.ordinal <= 6:
            raise CalendarError(f"Invalid weekday ordinal: {self.ordinal}")
        days_ahead = (self.ordinal - base.weekday()) % 7 or 7
        try:
            naive = base.replace(tzinfo=None) + timedelta(days=days_ahead)
        except OverflowError as e:
            raise CalendarError("Weekday is out of range") from e
        return localize(zone_of(base), naive)


@dataclass(frozen=True)
class TimeOfDay:
    hour: int
    minute: int

    def apply(self, base: datetime) -> datetime:
        try:
            clock = time(self.hour, self.minute)
        except (ValueError, OverflowError) as e:
            raise CalendarError(f"Invalid time of day {self.hour}:{self.minute:02d}: {e}") from e
        return localize(zone_of(base), datetime.combine(base.date(), clock))


@dataclass(frozen=True)
class Date:
    """Calendar date; a missing year or month keeps the base timestamp's."""

    day: int
    month: Optional[int] = None
    year: Optional[int] = None

    def apply(self, base: datetime) -> datetime:
        year = base.year if self.year is None else self.year
        month = base.month if self.month is None else self.month
        try:
            naive = datetime(
                year, month, self.day, base.hour, base.minute, base.second
            )
        except (ValueError, OverflowError) as e:
            raise CalendarError(f"Invalid date {year}-{month}-{self.day}: {e}") from e
        return localize(zone_of(base), naive)


@dataclass(frozen=True)
class Months:
    """
    Calendar month addition.

    The day of month is clamped to the last day of the target month, so
    January 31 plus one month is the last day of February.
    """

    count: int

    def apply(self, base: datetime) -> datetime:
        try:
            naive = base.replace(tzinfo=None) + relativedelta(months=self.count)
        except (ValueError, OverflowError) as e:
            raise CalendarError(f"Adding {self.count} month(s) is out of range") from e
        return localize(zone_of(base), naive)


TimeModifier = Union[Delay, Weekday, TimeOfDay, Date, Months]


@dataclass(frozen=True)
class Permutation:
    """A branch point: exactly one of the alternatives is applied."""

    alternatives: tuple

    def __len__(self) -> int:
        return len(self.alternatives)


Modifier = Union[Delay, Weekday, TimeOfDay, Date, Months, Permutation]


def apply_modifiers(modifiers: Iterable[TimeModifier], base: datetime) -> datetime:
    """Apply modifiers strictly left to right, each seeing the previous result."""
    result = base
    for modifier in modifiers:
        result = modifier.apply(result)
    return result


def expand_permutations(modifiers: Sequence[Modifier]) -> list[list[TimeModifier]]:
    """
    Expand branch points into every candidate modifier sequence.

    Candidates are built iteratively: a plain modifier is appended to every
    candidate, a branch with k alternatives turns n candidates into n*k, one
    per (candidate, alternative) pair in that order.
    """
    candidates: list[list[TimeModifier]] = [[]]
    for modifier in modifiers:
        if isinstance(modifier, Permutation):
            candidates = [
                candidate + [alternative]
                for candidate in candidates
                for alternative in modifier.alternatives
            ]
        else:
            for candidate in candidates:
                candidate.append(modifier)
    return candidates
