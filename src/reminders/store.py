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
Reminder Store Module

Per-user reminder lists kept sorted by trigger time. A reminder's ID is its
index in its owner's list, so IDs shift whenever an earlier reminder is
added or removed.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional, Sequence

from .time_modifiers import CalendarError, TimeModifier, apply_modifiers

logger = logging.getLogger("remindbot.reminders.store")


@dataclass
class Reminder:
    trigger_time: datetime
    message: str
    interval: Optional[tuple] = None  # TimeModifiers applied to compute the next run

    def next_occurrence(self) -> Optional[datetime]:
        """
        Compute the successor trigger time for a recurring reminder.

        Returns:
            The next trigger time, or None if the reminder has no interval

        Raises:
            CalendarError: If the interval cannot be applied
        """
        if not self.interval:
            return None
        return apply_modifiers(self.interval, self.trigger_time)


class InvalidReminderId(Exception):
    """Raised when a positional reminder ID is out of range."""

    def __init__(self, reminder_id: int):
        super().__init__(f"Invalid reminder ID: {reminder_id}")
        self.reminder_id = reminder_id


def _sort(reminders: list[Reminder]) -> None:
    # list.sort is stable, so equal trigger times keep insertion order
    reminders.sort(key=lambda r: r.trigger_time)


class ReminderStore:
    """
    In-memory reminder collections keyed by Discord user ID.

    Every operation runs inside one short critical section on a single
    asyncio lock and performs no I/O.
    """

    def __init__(self):
        self._reminders: dict[int, list[Reminder]] = {}
        self._lock = asyncio.Lock()

    async def add(self, user_id: int, reminder: Reminder) -> int:
        """
        Insert a reminder and return its position after re-sorting.
        """
        positions = await self.add_all(user_id, [reminder])
        return positions[0]

    async def add_all(self, user_id: int, reminders: Sequence[Reminder]) -> list[int]:
        """
        Insert several reminders in one critical section.

        Returns:
            Final position of each inserted reminder, in argument order
        """
        async with self._lock:
            entries = self._reminders.setdefault(user_id, [])
            entries.extend(reminders)
            _sort(entries)
            positions = [
                next(i for i, entry in enumerate(entries) if entry is reminder)
                for reminder in reminders
            ]
        logger.info(f"Added {len(reminders)} reminder(s) for user {user_id} at {positions}")
        return positions

    async def list_reminders(self, user_id: int) -> list[Reminder]:
        async with self._lock:
            return [replace(r) for r in self._reminders.get(user_id, [])]

    async def remove_at(self, user_id: int, index: int) -> Reminder:
        async with self._lock:
            entries = self._entries(user_id, index)
            reminder = entries.pop(index)
            if not entries:
                del self._reminders[user_id]
        logger.info(f"Removed reminder {index} for user {user_id}")
        return reminder

    async def set_interval(
        self, user_id: int, index: int, modifiers: Iterable[TimeModifier]
    ) -> Reminder:
        async with self._lock:
            reminder = self._entries(user_id, index)[index]
            reminder.interval = tuple(modifiers)
            return replace(reminder)

    async def clear_interval(self, user_id: int, index: int) -> Reminder:
        async with self._lock:
            reminder = self._entries(user_id, index)[index]
            reminder.interval = None
            return replace(reminder)

    def _entries(self, user_id: int, index: int) -> list[Reminder]:
        entries = self._reminders.get(user_id)
        if entries is None or not 0 <= index < len(entries):
            raise InvalidReminderId(index)
        return entries

    # =========================================================================
    # Scheduler-facing methods
    # =========================================================================

    async def pop_due(self, now: datetime) -> list[tuple[int, Reminder]]:
        """
        Remove every reminder due at or before ``now``.

        Recurring reminders are replaced by their successor. If the successor
        cannot be computed the recurrence ends.

        Returns:
            (user_id, reminder) pairs in firing order per user
        """
        fired = []
        async with self._lock:
            for user_id in list(self._reminders):
                entries = self._reminders[user_id]
                while entries and entries[0].trigger_time <= now:
                    reminder = entries.pop(0)
                    fired.append((user_id, reminder))
                    successor = self._successor(user_id, reminder)
                    if successor is not None:
                        entries.append(successor)
                        _sort(entries)
                if not entries:
                    del self._reminders[user_id]
        return fired

    @staticmethod
    def _successor(user_id: int, reminder: Reminder) -> Optional[Reminder]:
        try:
            next_time = reminder.next_occurrence()
        except CalendarError as e:
            logger.warning(
                f"Failed to reschedule reminder '{reminder.message}' for user {user_id}: {e}"
            )
            return None
        if next_time is None:
            return None
        if next_time <= reminder.trigger_time:
            logger.warning(
                f"Interval for reminder '{reminder.message}' (user {user_id}) "
                f"does not advance past {reminder.trigger_time}, ending recurrence"
            )
            return None
        return Reminder(
            trigger_time=next_time,
            message=reminder.message,
            interval=reminder.interval,
        )

    # =========================================================================
    # Persistence-facing methods
    # =========================================================================

    async def snapshot(self) -> list[tuple[int, Reminder]]:
        async with self._lock:
            return [
                (user_id, replace(reminder))
                for user_id, entries in self._reminders.items()
                for reminder in entries
            ]

    async def load(self, records: Iterable[tuple[int, Reminder]]) -> None:
        """Replace all reminders, re-establishing the sort order."""
        reminders: dict[int, list[Reminder]] = {}
        for user_id, reminder in records:
            reminders.setdefault(user_id, []).append(reminder)
        for entries in reminders.values():
            _sort(entries)
        async with self._lock:
            self._reminders = reminders
        logger.info(
            f"Loaded {sum(len(e) for e in reminders.values())} reminder(s) "
            f"for {len(reminders)} user(s)"
        )
