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
User Preferences Module

Per-user timezone and time display settings.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable

import pytz

logger = logging.getLogger("remindbot.reminders.preferences")

DEFAULT_TIMEZONE = "America/New_York"


class TimeFormat(str, Enum):
    H12 = "12h"
    H24 = "24h"


@dataclass(frozen=True)
class Preferences:
    timezone: str = DEFAULT_TIMEZONE
    time_format: TimeFormat = TimeFormat.H12


def validate_timezone(tz_name: str) -> bool:
    """
    Validate that a timezone name is valid.

    Args:
        tz_name: IANA timezone name (e.g., "America/Los_Angeles")

    Returns:
        True if valid, False otherwise
    """
    try:
        pytz.timezone(tz_name)
        return True
    except pytz.UnknownTimeZoneError:
        return False


class ReadWriteLock:
    """Asyncio lock allowing many concurrent readers or a single writer."""

    def __init__(self):
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writing = False

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(lambda: not self._writing)
            self._readers += 1
        try:
            yield
        finally:
            async with self._condition:
                self._readers -= 1
                self._condition.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(
                lambda: not self._writing and self._readers == 0
            )
            self._writing = True
        try:
            yield
        finally:
            async with self._condition:
                self._writing = False
                self._condition.notify_all()


class PreferenceStore:
    """
    In-memory preference records keyed by Discord user ID.

    Records are created on first write; reads of unknown users return the
    defaults without creating anything.
    """

    def __init__(self, default_timezone: str = DEFAULT_TIMEZONE):
        if not validate_timezone(default_timezone):
            logger.warning(
                f"Invalid default timezone '{default_timezone}', falling back to {DEFAULT_TIMEZONE}"
            )
            default_timezone = DEFAULT_TIMEZONE
        self.default_timezone = default_timezone
        self._records: dict[int, Preferences] = {}
        self._lock = ReadWriteLock()

    def _default(self) -> Preferences:
        return Preferences(timezone=self.default_timezone)

    async def get(self, user_id: int) -> Preferences:
        async with self._lock.read():
            return self._records.get(user_id, self._default())

    async def update(
        self, user_id: int, mutator: Callable[[Preferences], Preferences]
    ) -> Preferences:
        """
        Apply a field-level change to a user's preferences.

        Args:
            user_id: Discord user ID
            mutator: Receives the current preferences, returns the new ones

        Returns:
            The stored preferences
        """
        async with self._lock.write():
            current = self._records.get(user_id, self._default())
            updated = mutator(current)
            self._records[user_id] = updated
        logger.info(f"Updated preferences for user {user_id}: {updated}")
        return updated

    async def resolve_timezone(self, user_id: int) -> pytz.BaseTzInfo:
        """Get the user's pytz zone, falling back to the default zone."""
        prefs = await self.get(user_id)
        try:
            return pytz.timezone(prefs.timezone)
        except pytz.UnknownTimeZoneError:
            logger.warning(
                f"User {user_id} has unknown timezone '{prefs.timezone}', using {self.default_timezone}"
            )
            return pytz.timezone(self.default_timezone)

    async def has_preferences(self, user_id: int) -> bool:
        async with self._lock.read():
            return user_id in self._records

    # =========================================================================
    # Persistence-facing methods
    # =========================================================================

    async def snapshot(self) -> dict[int, Preferences]:
        async with self._lock.read():
            return dict(self._records)

    async def load(self, records: dict[int, Preferences]) -> None:
        async with self._lock.write():
            self._records = dict(records)
        logger.info(f"Loaded preferences for {len(records)} user(s)")
