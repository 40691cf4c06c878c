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
Snapshot Persistence Module

Saves the reminder and preference stores as two JSON snapshot files, each
fully overwritten on every save, and restores them on startup.

Snapshot layout:

    reminders.json    [{"user": "123", "reminder": {"time": "...", "message": "...",
                        "interval": [{"Delay": 86400000}] | null}}, ...]
    preferences.json  {"123": {"timezone": "Europe/London", "time_format": "24h"}}
    timezones.json    {"123": "Europe/London"}   (legacy, imported once)

Timestamps are written as ``2001-03-06T15:00:00-05:00[America/New_York]``.
"""

import asyncio
import json
import logging
import os
import re
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pytz

from .config import ReminderConfig
from .preferences import Preferences, PreferenceStore, TimeFormat
from .store import Reminder, ReminderStore
from .time_modifiers import Date, Delay, Months, TimeModifier, TimeOfDay, Weekday

logger = logging.getLogger("remindbot.reminders.persistence")

_ZONED_PATTERN = re.compile(r"^(?P<instant>[^\[]+)\[(?P<zone>[^\]]+)\]$")


class SnapshotError(Exception):
    """Raised when an existing snapshot file cannot be read."""

    pass


# =============================================================================
# Codec
# =============================================================================


def encode_timestamp(dt: datetime) -> str:
    return f"{dt.isoformat()}[{dt.tzinfo.zone}]"


def decode_timestamp(value: str) -> datetime:
    match = _ZONED_PATTERN.match(value)
    if match:
        instant = datetime.fromisoformat(match.group("instant"))
        tz = pytz.timezone(match.group("zone"))
    else:
        instant = datetime.fromisoformat(value)
        tz = pytz.UTC
    if instant.tzinfo is None:
        raise ValueError(f"Timestamp has no UTC offset: {value}")
    return instant.astimezone(tz)


def encode_modifier(modifier: TimeModifier) -> dict[str, Any]:
    if isinstance(modifier, Delay):
        return {"Delay": modifier.milliseconds}
    if isinstance(modifier, Weekday):
        return {"Weekday": modifier.ordinal}
    if isinstance(modifier, TimeOfDay):
        return {"TimeOfDay": {"hour": modifier.hour, "minute": modifier.minute}}
    if isinstance(modifier, Date):
        return {"Date": {"year": modifier.year, "month": modifier.month, "day": modifier.day}}
    if isinstance(modifier, Months):
        return {"Months": modifier.count}
    raise TypeError(f"Cannot encode modifier {modifier!r}")


def decode_modifier(data: dict[str, Any]) -> TimeModifier:
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"Malformed modifier: {data!r}")
    (kind, value), = data.items()
    if kind == "Delay":
        return Delay(int(value))
    if kind == "Weekday":
        return Weekday(int(value))
    if kind == "TimeOfDay":
        return TimeOfDay(hour=int(value["hour"]), minute=int(value["minute"]))
    if kind == "Date":
        year, month = value.get("year"), value.get("month")
        return Date(
            day=int(value["day"]),
            month=None if month is None else int(month),
            year=None if year is None else int(year),
        )
    if kind == "Months":
        return Months(int(value))
    raise ValueError(f"Unknown modifier kind: {kind}")


def encode_reminder(reminder: Reminder) -> dict[str, Any]:
    return {
        "time": encode_timestamp(reminder.trigger_time),
        "message": reminder.message,
        "interval": (
            [encode_modifier(m) for m in reminder.interval]
            if reminder.interval is not None
            else None
        ),
    }


def decode_reminder(data: dict[str, Any]) -> Reminder:
    interval = data.get("interval")
    if not isinstance(data["message"], str):
        raise ValueError("Reminder message must be a string")
    return Reminder(
        trigger_time=decode_timestamp(data["time"]),
        message=data["message"],
        interval=(
            tuple(decode_modifier(m) for m in interval) if interval is not None else None
        ),
    )


def decode_preferences(data: dict[str, Any]) -> Preferences:
    return Preferences(
        timezone=str(data["timezone"]),
        time_format=TimeFormat(data.get("time_format", TimeFormat.H12.value)),
    )


# =============================================================================
# Snapshot files
# =============================================================================


def _read_json(path: Path) -> Optional[Any]:
    """Read a JSON file, returning None if it does not exist."""
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SnapshotError(f"Failed to read {path}: {e}") from e


def _write_json(path: Path, payload: Any) -> None:
    """Replace a file's content atomically."""
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise


class SnapshotStore:
    """
    Reads and writes the reminder and preference snapshots.

    Snapshots are taken under the store locks; file I/O happens after the
    locks are released, in a worker thread.
    """

    def __init__(
        self,
        config: ReminderConfig,
        reminder_store: ReminderStore,
        preference_store: PreferenceStore,
    ):
        self.reminders_path = Path(config.reminders_file)
        self.preferences_path = Path(config.preferences_file)
        self.legacy_timezones_path = Path(config.legacy_timezones_file)
        self.reminder_store = reminder_store
        self.preference_store = preference_store

    async def load(self) -> None:
        """
        Restore both stores from disk. Missing files mean empty stores.

        Raises:
            SnapshotError: If an existing file is malformed
        """
        raw_reminders = await asyncio.to_thread(_read_json, self.reminders_path)
        if raw_reminders is not None:
            try:
                records = [
                    (int(entry["user"]), decode_reminder(entry["reminder"]))
                    for entry in raw_reminders
                ]
            except (KeyError, TypeError, ValueError, pytz.UnknownTimeZoneError) as e:
                raise SnapshotError(f"Malformed reminder snapshot {self.reminders_path}: {e}") from e
            await self.reminder_store.load(records)

        raw_preferences = await asyncio.to_thread(_read_json, self.preferences_path)
        if raw_preferences is not None:
            try:
                preferences = {
                    int(user_id): decode_preferences(data)
                    for user_id, data in raw_preferences.items()
                }
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise SnapshotError(
                    f"Malformed preference snapshot {self.preferences_path}: {e}"
                ) from e
            await self.preference_store.load(preferences)

    async def migrate_legacy_timezones(self) -> int:
        """
        Fold the legacy timezone-only file into the preference snapshot.

        Users that already have a preference record keep it. The merged
        preferences are written before the legacy file is removed.

        Returns:
            Number of users whose timezone was imported
        """
        raw = await asyncio.to_thread(_read_json, self.legacy_timezones_path)
        if raw is None:
            return 0
        try:
            legacy = {int(user_id): str(tz_name) for user_id, tz_name in raw.items()}
        except (AttributeError, TypeError, ValueError) as e:
            raise SnapshotError(
                f"Malformed legacy timezone file {self.legacy_timezones_path}: {e}"
            ) from e

        imported = 0
        for user_id, tz_name in legacy.items():
            if await self.preference_store.has_preferences(user_id):
                continue
            await self.preference_store.update(
                user_id, lambda prefs, tz_name=tz_name: replace(prefs, timezone=tz_name)
            )
            imported += 1

        await self.save_preferences()
        await asyncio.to_thread(self.legacy_timezones_path.unlink)
        logger.info(
            f"Migrated {imported} legacy timezone(s) from {self.legacy_timezones_path}"
        )
        return imported

    async def save_reminders(self) -> None:
        records = await self.reminder_store.snapshot()
        payload = [
            {"user": str(user_id), "reminder": encode_reminder(reminder)}
            for user_id, reminder in records
        ]
        await asyncio.to_thread(_write_json, self.reminders_path, payload)

    async def save_preferences(self) -> None:
        records = await self.preference_store.snapshot()
        payload = {
            str(user_id): {
                "timezone": prefs.timezone,
                "time_format": prefs.time_format.value,
            }
            for user_id, prefs in records.items()
        }
        await asyncio.to_thread(_write_json, self.preferences_path, payload)

    async def save(self) -> None:
        await self.save_reminders()
        await self.save_preferences()


class SnapshotWriter:
    """
    Fire-and-forget snapshot saving.

    At most one save runs at a time. Requests that arrive while a save is in
    progress collapse into a single follow-up save.
    """

    def __init__(self, snapshots: SnapshotStore):
        self.snapshots = snapshots
        self._pending = False
        self._task: Optional[asyncio.Task] = None

    def request_save(self) -> None:
        self._pending = True
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while self._pending:
            self._pending = False
            try:
                await self.snapshots.save()
            except Exception as e:
                logger.error(f"Failed to save snapshot: {e}", exc_info=True)

    async def flush(self) -> None:
        """Wait for any pending save to finish."""
        if self._task is not None:
            await self._task
