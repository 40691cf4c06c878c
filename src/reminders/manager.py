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
Reminder Manager Module

Executes parsed commands against the reminder and preference stores and
builds the response text shown to the user.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from .command_parser import (
    CancelReminder,
    ClearInterval,
    Command,
    Help,
    ListReminders,
    ScheduleReminder,
    SetInterval,
    SetTimeFormat,
    SetTimezone,
)
from .persistence import SnapshotWriter
from .preferences import PreferenceStore, TimeFormat, validate_timezone
from .store import Reminder, ReminderStore

logger = logging.getLogger("remindbot.reminders.manager")

HELP_TEXT = "\n".join([
    "Time modifier examples:",
    "1d - 1 day from now",
    "1w1h5m3s - 1 week, 1 hour, 5 minutes, 3 seconds from now",
    "3pm - 3:00 PM",
    "3:30pm - 3:30 PM",
    "15:30 - 3:30 PM (24-hour clock)",
    "2001-03-06 - March 6th, 2001",
    "-03-06 - March 6th this year",
    "1mo - 1 month",
    "tuesday - Tuesday",
    "1w tuesday - The next Tuesday in 1 week",
    "(1d,2d) 3pm - 3:00 PM tomorrow and the day after (one reminder each)",
    "",
    "Commands:",
    "`$r|remindme|reminder <modifiers>; message` - Schedule a reminder",
    "`$cr|cancelreminder <id>` - Cancel a reminder",
    "`$rs|reminders` - List reminders",
    "`$si|setinterval <id> <modifiers>` - Set a reminder to be repeated on an interval",
    "`$ci|clearinterval <id>` - Clear the interval of a reminder",
    "`$tz|timezone <timezone>` - Set your timezone",
    "`$tf|timeformat <12h|24h>` - Set how times are displayed",
    "`$h|help` - Show help",
])


def format_time(dt: datetime, time_format: TimeFormat = TimeFormat.H12) -> str:
    """
    Format a reminder time in its own timezone.

    Examples:
        Tuesday, March 06, 2001 at 3:00pm EST
        Tuesday, March 06, 2001 at 15:00 EST
    """
    day = dt.strftime("%A, %B %d, %Y")
    zone = dt.strftime("%Z")
    if time_format == TimeFormat.H24:
        return f"{day} at {dt.hour:02d}:{dt.minute:02d} {zone}"
    hour = dt.hour % 12 or 12
    suffix = "am" if dt.hour < 12 else "pm"
    return f"{day} at {hour}:{dt.minute:02d}{suffix} {zone}"


class ReminderManager:
    """
    Handles reminder commands for a user.

    All mutating commands request a snapshot save after the store lock has
    been released.
    """

    def __init__(
        self,
        reminder_store: ReminderStore,
        preference_store: PreferenceStore,
        writer: Optional[SnapshotWriter] = None,
    ):
        """
        Initialize the reminder manager.

        Args:
            reminder_store: Per-user reminder lists
            preference_store: Per-user timezone and display settings
            writer: Background snapshot writer (None disables saving)
        """
        self.reminders = reminder_store
        self.preferences = preference_store
        self.writer = writer

    def _save(self) -> None:
        if self.writer is not None:
            self.writer.request_save()

    async def handle(self, user_id: int, command: Command) -> str:
        """
        Execute a command and return the response text.

        Raises:
            InvalidReminderId: If a positional ID is out of range
            CalendarError: If a time cannot be computed
        """
        if isinstance(command, ScheduleReminder):
            return await self.schedule_reminder(user_id, command)
        if isinstance(command, CancelReminder):
            return await self.cancel_reminder(user_id, command.reminder_id)
        if isinstance(command, SetInterval):
            return await self.set_interval(user_id, command)
        if isinstance(command, ClearInterval):
            return await self.clear_interval(user_id, command.reminder_id)
        if isinstance(command, ListReminders):
            return await self.list_reminders(user_id)
        if isinstance(command, SetTimezone):
            return await self.set_timezone(user_id, command.name)
        if isinstance(command, SetTimeFormat):
            return await self.set_time_format(user_id, command.time_format)
        if isinstance(command, Help):
            return HELP_TEXT
        raise TypeError(f"Unsupported command: {command!r}")

    async def schedule_reminder(self, user_id: int, command: ScheduleReminder) -> str:
        new_reminders = [
            Reminder(trigger_time=time, message=command.message)
            for time in command.times
        ]
        positions = await self.reminders.add_all(user_id, new_reminders)
        self._save()

        prefs = await self.preferences.get(user_id)
        return "\n".join(
            f"Scheduled reminder for {format_time(reminder.trigger_time, prefs.time_format)} (#{position})"
            for reminder, position in zip(new_reminders, positions)
        )

    async def cancel_reminder(self, user_id: int, reminder_id: int) -> str:
        reminder = await self.reminders.remove_at(user_id, reminder_id)
        self._save()
        return f"Removed reminder '{reminder.message}'"

    async def set_interval(self, user_id: int, command: SetInterval) -> str:
        reminder = await self.reminders.set_interval(
            user_id, command.reminder_id, command.modifiers
        )
        self._save()
        logger.info(
            f"Set interval for user {user_id} reminder {command.reminder_id}: {command.modifiers}"
        )
        return f"Set interval for reminder '{reminder.message}' (#{command.reminder_id})"

    async def clear_interval(self, user_id: int, reminder_id: int) -> str:
        reminder = await self.reminders.clear_interval(user_id, reminder_id)
        self._save()
        return f"Cleared interval for reminder '{reminder.message}' (#{reminder_id})"

    async def list_reminders(self, user_id: int) -> str:
        reminders = await self.reminders.list_reminders(user_id)
        if not reminders:
            return "No reminders"

        prefs = await self.preferences.get(user_id)
        lines = []
        for reminder_id, reminder in enumerate(reminders):
            line = f"{reminder_id}: {format_time(reminder.trigger_time, prefs.time_format)} - {reminder.message}"
            next_time = reminder.next_occurrence()
            if next_time is not None:
                line += f" (Repeats at {format_time(next_time, prefs.time_format)})"
            lines.append(line)
        return "\n".join(lines)

    async def set_timezone(self, user_id: int, timezone: str) -> str:
        if not validate_timezone(timezone):
            return f"Invalid timezone: {timezone}"
        await self.preferences.update(
            user_id, lambda prefs: replace(prefs, timezone=timezone)
        )
        self._save()
        return f"Timezone set to {timezone}"

    async def set_time_format(self, user_id: int, time_format: TimeFormat) -> str:
        await self.preferences.update(
            user_id, lambda prefs: replace(prefs, time_format=time_format)
        )
        self._save()
        return f"Time format set to {time_format.value}"
