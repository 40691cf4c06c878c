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
Reminder System Configuration

File locations, defaults and scheduler timing.
Values can be overridden via environment variables.
"""

import os
from dataclasses import dataclass

from .preferences import DEFAULT_TIMEZONE


@dataclass
class ReminderConfig:
    """Configuration for the reminder system."""

    # Snapshot files
    reminders_file: str = "reminders.json"
    preferences_file: str = "preferences.json"
    legacy_timezones_file: str = "timezones.json"  # imported once, then removed

    default_timezone: str = DEFAULT_TIMEZONE
    command_prefix: str = "$"

    # Scheduler tick period
    tick_seconds: float = 1.0

    @classmethod
    def from_env(cls) -> "ReminderConfig":
        """Create config from environment variables with defaults."""
        return cls(
            reminders_file=os.getenv("REMINDERS_FILE", "reminders.json"),
            preferences_file=os.getenv("PREFERENCES_FILE", "preferences.json"),
            legacy_timezones_file=os.getenv("LEGACY_TIMEZONES_FILE", "timezones.json"),
            default_timezone=os.getenv("DEFAULT_TIMEZONE", DEFAULT_TIMEZONE),
            command_prefix=os.getenv("COMMAND_PREFIX", "$"),
            tick_seconds=float(os.getenv("SCHEDULER_TICK_SECONDS", "1")),
        )
