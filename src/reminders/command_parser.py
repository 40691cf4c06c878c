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
Command Parser Module

Recursive-descent parser for the reminder command language:

    $r 1w tuesday 3pm; water the plants
    $r (1d,2d) 9:30am; stand-up
    $si 0 1mo
    $tz Europe/London

Time expressions are sequences of space-separated modifiers. A parenthesized,
comma-separated group is a branch point that expands into one candidate time
per alternative.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import pytz

from .preferences import TimeFormat
from .time_modifiers import (
    WEEKDAY_NAMES,
    Date,
    Delay,
    Modifier,
    Months,
    Permutation,
    TimeModifier,
    TimeOfDay,
    Weekday,
    apply_modifiers,
    expand_permutations,
)

logger = logging.getLogger("remindbot.reminders.command_parser")

COMMAND_PREFIX = "$"

# Milliseconds per duration unit
DELAY_UNITS = {
    "w": 7 * 24 * 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "h": 60 * 60 * 1000,
    "m": 60 * 1000,
    "s": 1000,
}

# Lowercase or capitalized spellings only
WEEKDAYS = {
    spelling: ordinal
    for ordinal, name in enumerate(WEEKDAY_NAMES)
    for spelling in (name, name.capitalize())
}

# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class ScheduleReminder:
    times: tuple  # candidate datetimes, in discovery order
    message: str


@dataclass(frozen=True)
class CancelReminder:
    reminder_id: int


@dataclass(frozen=True)
class SetInterval:
    reminder_id: int
    modifiers: tuple


@dataclass(frozen=True)
class ClearInterval:
    reminder_id: int


@dataclass(frozen=True)
class SetTimezone:
    name: str


@dataclass(frozen=True)
class SetTimeFormat:
    time_format: TimeFormat


@dataclass(frozen=True)
class ListReminders:
    pass


@dataclass(frozen=True)
class Help:
    pass


Command = Union[
    ScheduleReminder,
    CancelReminder,
    SetInterval,
    ClearInterval,
    SetTimezone,
    SetTimeFormat,
    ListReminders,
    Help,
]


class CommandParseError(Exception):
    """Raised when command text does not match the grammar."""

    def __init__(self, message: str, position: int):
        super().__init__(message)
        self.position = position


# =============================================================================
# Parser
# =============================================================================


class _Parser:
    """Cursor over the command text with one method per grammar rule."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    # -- primitives -----------------------------------------------------------

    def peek(self, length: int = 1) -> str:
        return self.text[self.pos:self.pos + length]

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def accept(self, literal: str) -> bool:
        if self.text.startswith(literal, self.pos):
            self.pos += len(literal)
            return True
        return False

    def expect(self, literal: str) -> None:
        if not self.accept(literal):
            self.fail(f"Expected '{literal}'")

    def token_at(self, pos: int) -> str:
        """The space-delimited chunk of text starting at pos."""
        end = pos
        while end < len(self.text) and self.text[end] not in " ;,()":
            end += 1
        return self.text[pos:end] or self.text[pos:pos + 1]

    def fail(self, reason: str, pos: Optional[int] = None) -> None:
        pos = self.pos if pos is None else pos
        if pos >= len(self.text):
            raise CommandParseError(f"{reason} at end of input", pos)
        raise CommandParseError(
            f"{reason} at position {pos}: '{self.token_at(pos)}'", pos
        )

    def number(self) -> Optional[int]:
        start = self.pos
        while not self.at_end() and self.text[self.pos].isascii() and self.text[self.pos].isdigit():
            self.pos += 1
        if self.pos == start:
            return None
        return int(self.text[start:self.pos])

    def expect_number(self) -> int:
        value = self.number()
        if value is None:
            self.fail("Expected a number")
        return value

    def expect_end(self) -> None:
        if not self.at_end():
            self.fail("Unexpected input")

    def rest(self) -> str:
        value = self.text[self.pos:]
        self.pos = len(self.text)
        return value

    # -- modifiers --------------------------------------------------------------

    def months(self) -> Optional[TimeModifier]:
        start = self.pos
        count = self.number()
        if count is not None and self.accept("mo"):
            return Months(count)
        self.pos = start
        return None

    def delays(self) -> Optional[TimeModifier]:
        total = 0
        matched = False
        while True:
            start = self.pos
            amount = self.number()
            unit = self.peek()
            if amount is None or unit not in DELAY_UNITS or self.peek(2) == "mo":
                self.pos = start
                break
            self.pos += 1
            total += amount * DELAY_UNITS[unit]
            matched = True
        return Delay(total) if matched else None

    def date(self) -> Optional[TimeModifier]:
        start = self.pos
        year = self.number()
        if not self.accept("-"):
            self.pos = start
            return None
        month = self.number()
        if not self.accept("-"):
            self.pos = start
            return None
        day = self.number()
        if day is None:
            self.fail("Expected a day of month")
        if month is not None and not 1 <= month <= 12:
            self.fail("Invalid month", start)
        if not 1 <= day <= 31:
            self.fail("Invalid day of month", start)
        return Date(day=day, month=month, year=year)

    def time_of_day(self) -> Optional[TimeModifier]:
        start = self.pos
        hour = self.number()
        if hour is None:
            return None
        minute = 0
        if self.accept(":"):
            minute = self.expect_number()
            if minute > 59:
                self.fail("Invalid minute", start)
        if self.accept("am"):
            hour = hour % 12
        elif self.accept("pm"):
            hour = hour % 12 + 12
        else:
            if self.peek().isalpha():
                self.pos = start
                return None
            hour = hour % 24
        return TimeOfDay(hour=hour, minute=minute)

    def weekday(self) -> Optional[TimeModifier]:
        start = self.pos
        while not self.at_end() and self.text[self.pos].isalpha():
            self.pos += 1
        word = self.text[start:self.pos]
        if not word:
            return None
        if word not in WEEKDAYS:
            self.fail(f"Invalid weekday: {word}", start)
        return Weekday(WEEKDAYS[word])

    def plain_modifier(self) -> TimeModifier:
        start = self.pos
        for rule in (self.months, self.delays, self.date, self.time_of_day, self.weekday):
            modifier = rule()
            if modifier is not None:
                if not self.at_end() and self.peek() not in " ;,)":
                    self.fail("Invalid time modifier", start)
                return modifier
        self.fail("Expected a time modifier")

    def skip_spaces(self) -> None:
        while self.accept(" "):
            pass

    def branch(self) -> Permutation:
        self.expect("(")
        alternatives = []
        while True:
            self.skip_spaces()
            alternatives.append(self.plain_modifier())
            self.skip_spaces()
            if self.accept(")"):
                return Permutation(tuple(alternatives))
            if not self.accept(","):
                self.fail("Expected ',' or ')'")

    def modifier(self, allow_branches: bool) -> Modifier:
        if self.peek() == "(":
            if not allow_branches:
                self.fail("Permutations are not allowed here")
            return self.branch()
        return self.plain_modifier()

    def modifiers(self, allow_branches: bool = True) -> list[Modifier]:
        """One or more modifiers separated by single spaces."""
        result = [self.modifier(allow_branches)]
        while self.accept(" "):
            result.append(self.modifier(allow_branches))
        return result

    # -- commands ---------------------------------------------------------------

    def keyword(self) -> str:
        start = self.pos
        while not self.at_end() and self.text[self.pos] != " ":
            self.pos += 1
        word = self.text[start:self.pos]
        if word not in KEYWORDS:
            self.fail("Unknown command", start)
        return word

    def reminder_id(self) -> int:
        self.expect(" ")
        return self.expect_number()


def _schedule_reminder(parser: _Parser, tz: pytz.BaseTzInfo, now: datetime) -> Command:
    parser.expect(" ")
    modifiers = parser.modifiers()
    parser.expect(";")
    parser.accept(" ")
    message = parser.rest()
    if not message.strip():
        parser.fail("Expected a reminder message")
    base = now.astimezone(tz)
    times = tuple(
        apply_modifiers(candidate, base) for candidate in expand_permutations(modifiers)
    )
    return ScheduleReminder(times=times, message=message)


def _cancel_reminder(parser: _Parser, tz, now) -> Command:
    reminder_id = parser.reminder_id()
    parser.expect_end()
    return CancelReminder(reminder_id)


def _set_interval(parser: _Parser, tz, now) -> Command:
    reminder_id = parser.reminder_id()
    parser.expect(" ")
    modifiers = parser.modifiers(allow_branches=False)
    parser.expect_end()
    return SetInterval(reminder_id, tuple(modifiers))


def _clear_interval(parser: _Parser, tz, now) -> Command:
    reminder_id = parser.reminder_id()
    parser.expect_end()
    return ClearInterval(reminder_id)


def _list_reminders(parser: _Parser, tz, now) -> Command:
    parser.expect_end()
    return ListReminders()


def _set_timezone(parser: _Parser, tz, now) -> Command:
    parser.expect(" ")
    name = parser.rest()
    if not name:
        parser.fail("Expected a timezone name")
    return SetTimezone(name)


def _set_time_format(parser: _Parser, tz, now) -> Command:
    parser.expect(" ")
    start = parser.pos
    value = parser.rest()
    try:
        return SetTimeFormat(TimeFormat(value))
    except ValueError:
        parser.fail("Expected '12h' or '24h'", start)


def _help(parser: _Parser, tz, now) -> Command:
    parser.expect_end()
    return Help()


KEYWORDS = {
    "r": _schedule_reminder,
    "remindme": _schedule_reminder,
    "reminder": _schedule_reminder,
    "cr": _cancel_reminder,
    "cancelreminder": _cancel_reminder,
    "si": _set_interval,
    "setinterval": _set_interval,
    "ci": _clear_interval,
    "clearinterval": _clear_interval,
    "rs": _list_reminders,
    "reminders": _list_reminders,
    "tz": _set_timezone,
    "timezone": _set_timezone,
    "tf": _set_time_format,
    "timeformat": _set_time_format,
    "h": _help,
    "help": _help,
}


def parse_command(
    text: str,
    tz: pytz.BaseTzInfo,
    now: Optional[datetime] = None,
    prefix: str = COMMAND_PREFIX,
) -> Command:
    """
    Parse command text into a Command.

    Time expressions are evaluated against ``now`` (defaults to the current
    time) in the caller's timezone.

    Args:
        text: Raw message content, including the prefix
        tz: The caller's resolved pytz timezone
        now: Reference instant for relative expressions
        prefix: Command prefix character

    Returns:
        The parsed Command

    Raises:
        CommandParseError: If the text does not match the grammar
        CalendarError: If a candidate time cannot be computed
    """
    parser = _Parser(text.rstrip())
    parser.expect(prefix)
    handler = KEYWORDS[parser.keyword()]
    if now is None:
        now = datetime.now(pytz.UTC)
    command = handler(parser, tz, now)
    logger.debug(f"Parsed {text!r} as {command}")
    return command


def parse_modifiers(text: str, allow_branches: bool = True) -> list[Modifier]:
    """Parse a bare time expression such as ``1w tuesday 3pm``."""
    parser = _Parser(text.strip())
    modifiers = parser.modifiers(allow_branches)
    parser.expect_end()
    return modifiers
