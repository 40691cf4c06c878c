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
Reminder Scheduler Module

Background task loop for firing due reminders.
Uses discord.ext.tasks for reliable scheduling.
"""

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import discord
import pytz
from discord.ext import tasks

if TYPE_CHECKING:
    from discord.ext import commands

from .persistence import SnapshotWriter
from .store import Reminder, ReminderStore

logger = logging.getLogger("remindbot.reminders.scheduler")


class ReminderScheduler:
    """
    Background scheduler for delivering reminders.

    Each tick pops every due reminder (re-inserting the successor of
    recurring ones), DMs the owners, then requests a snapshot save.
    Delivery failures are logged and never retried.
    """

    def __init__(
        self,
        bot: "commands.Bot",
        reminder_store: ReminderStore,
        writer: Optional[SnapshotWriter] = None,
        tick_seconds: float = 1.0,
    ):
        """
        Initialize the reminder scheduler.

        Args:
            bot: Discord bot used to reach users
            reminder_store: Store to poll for due reminders
            writer: Background snapshot writer (None disables saving)
            tick_seconds: Loop period
        """
        self.bot = bot
        self.store = reminder_store
        self.writer = writer
        self.tick_seconds = tick_seconds
        self._started = False

    def start(self) -> None:
        """Start the scheduler loop."""
        if not self._started:
            self._check_reminders.change_interval(seconds=self.tick_seconds)
            self._check_reminders.start()
            self._started = True
            logger.info(f"Reminder scheduler started (tick={self.tick_seconds}s)")

    async def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop the scheduler loop, letting an in-progress tick finish.

        Args:
            timeout: Seconds to wait for the current tick before cancelling
                (defaults to the tick period plus 10 seconds)
        """
        if not self._started:
            return
        self._started = False
        self._check_reminders.stop()

        task = self._check_reminders.get_task()
        if task is not None and not task.done():
            if timeout is None:
                timeout = self.tick_seconds + 10
            done, _ = await asyncio.wait({task}, timeout=timeout)
            if not done:
                logger.warning("Reminder scheduler did not finish its tick in time, cancelling")
                self._check_reminders.cancel()
        logger.info("Reminder scheduler stopped")

    @tasks.loop(seconds=1)
    async def _check_reminders(self) -> None:
        """Fire due reminders."""
        try:
            await self.process_due()
        except Exception as e:
            logger.error(f"Error in reminder scheduler loop: {e}", exc_info=True)

    @_check_reminders.before_loop
    async def _before_check(self) -> None:
        """Wait for the bot to be ready before starting the loop."""
        await self.bot.wait_until_ready()
        logger.info("Reminder scheduler ready, starting loop")

    async def process_due(self, now: Optional[datetime] = None) -> int:
        """
        Run one scheduler tick.

        Args:
            now: Reference instant (defaults to the current time)

        Returns:
            Number of reminders fired
        """
        if now is None:
            now = datetime.now(pytz.UTC)

        fired = await self.store.pop_due(now)
        if not fired:
            return 0

        logger.info(f"Firing {len(fired)} due reminder(s)")
        for user_id, reminder in fired:
            await self._deliver_reminder(user_id, reminder)

        if self.writer is not None:
            self.writer.request_save()
        return len(fired)

    async def _deliver_reminder(self, user_id: int, reminder: Reminder) -> None:
        """
        DM a fired reminder to its owner.

        Args:
            user_id: Discord user ID
            reminder: The fired reminder
        """
        try:
            user = self.bot.get_user(user_id)
            if user is None:
                user = await self.bot.fetch_user(user_id)
            await user.send(f"Reminder: {reminder.message}")
            logger.info(f"Delivered reminder '{reminder.message}' to user {user_id} via DM")
        except discord.HTTPException as e:
            logger.error(
                f"Failed to send reminder '{reminder.message}' to user {user_id}: {e}"
            )
