"""
remindbot Discord Bot

Maintains the Discord connection, answers reminder commands sent by DM and
runs the reminder scheduler. State is restored from JSON snapshots on startup.
"""

import asyncio
import os
from typing import Optional

import discord
from discord.ext import commands
from dotenv import load_dotenv

from commands.reminder_commands import ReminderCommands
from reminders import (
    PreferenceStore,
    ReminderConfig,
    ReminderManager,
    ReminderScheduler,
    ReminderStore,
    SnapshotStore,
    SnapshotWriter,
)

load_dotenv()

import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("remindbot")


class RemindBot(commands.Bot):
    """Discord bot that schedules and delivers text reminders."""

    def __init__(self, config: Optional[ReminderConfig] = None):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.dm_messages = True

        # Reminder commands are parsed by the cog, not discord.ext.commands
        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.config = config or ReminderConfig.from_env()
        self.reminder_store = ReminderStore()
        self.preference_store = PreferenceStore(self.config.default_timezone)
        self.snapshots = SnapshotStore(
            self.config, self.reminder_store, self.preference_store
        )
        self.snapshot_writer = SnapshotWriter(self.snapshots)
        self.reminder_manager = ReminderManager(
            self.reminder_store, self.preference_store, self.snapshot_writer
        )
        self.scheduler: Optional[ReminderScheduler] = None

    async def setup_hook(self):
        """
        Called when the bot is starting up.

        A malformed snapshot raises SnapshotError here and aborts startup.
        """
        logger.info(f"Setup: REMINDERS_FILE={self.config.reminders_file}")
        logger.info(f"Setup: PREFERENCES_FILE={self.config.preferences_file}")
        logger.info(f"Setup: DEFAULT_TIMEZONE={self.config.default_timezone}")

        await self.snapshots.load()
        await self.snapshots.migrate_legacy_timezones()

        await self.add_cog(
            ReminderCommands(
                self,
                self.reminder_manager,
                self.preference_store,
                prefix=self.config.command_prefix,
            )
        )

        self.scheduler = ReminderScheduler(
            self,
            self.reminder_store,
            self.snapshot_writer,
            tick_seconds=self.config.tick_seconds,
        )
        self.scheduler.start()

    async def on_ready(self):
        """Called when the bot has connected to Discord."""
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")

    async def close(self):
        """Stop the scheduler and write the last snapshot before shutdown."""
        if self.scheduler:
            await self.scheduler.stop()
        await self.snapshot_writer.flush()
        await super().close()


async def main():
    """Run the bot."""
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        print("Error: DISCORD_BOT_TOKEN environment variable not set")
        print("Please set it in your .env file")
        return

    bot = RemindBot()
    async with bot:
        await bot.start(token)


if __name__ == "__main__":
    asyncio.run(main())
