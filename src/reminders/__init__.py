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
Reminders Package

Text-command reminders with composable time modifiers, recurring
intervals and JSON snapshot persistence.
"""

from .command_parser import Command, CommandParseError, parse_command, parse_modifiers
from .config import ReminderConfig
from .manager import HELP_TEXT, ReminderManager, format_time
from .persistence import SnapshotError, SnapshotStore, SnapshotWriter
from .preferences import Preferences, PreferenceStore, TimeFormat, validate_timezone
from .scheduler import ReminderScheduler
from .store import InvalidReminderId, Reminder, ReminderStore
from .time_modifiers import CalendarError

__all__ = [
    "Command",
    "CommandParseError",
    "parse_command",
    "parse_modifiers",
    "ReminderConfig",
    "HELP_TEXT",
    "ReminderManager",
    "format_time",
    "SnapshotError",
    "SnapshotStore",
    "SnapshotWriter",
    "Preferences",
    "PreferenceStore",
    "TimeFormat",
    "validate_timezone",
    "ReminderScheduler",
    "InvalidReminderId",
    "Reminder",
    "ReminderStore",
    "CalendarError",
]
