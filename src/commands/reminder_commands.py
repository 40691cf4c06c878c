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
Reminder Text Commands

Listens for prefixed text commands (e.g. ``$r 1h; stretch``) and replies
with the result.
"""

import logging

import discord
from discord.ext import commands

from reminders import (
    CalendarError,
    CommandParseError,
    InvalidReminderId,
    PreferenceStore,
    ReminderManager,
    parse_command,
)

logger = logging.getLogger("remindbot.commands.reminder")

# Discord message length limit
DISCORD_MAX_LENGTH = 2000


def chunk_message(content: str) -> list[str]:
    """Split a reply into chunks that fit Discord's 2000 char limit.

    Prefers line breaks so reminder listings are never split mid-line,
    falling back to word breaks, then a hard cut.
    """
    chunks = []
    remaining = content

    while remaining:
        if len(remaining) <= DISCORD_MAX_LENGTH:
            chunks.append(remaining)
            break

        break_at = DISCORD_MAX_LENGTH
        newline_idx = remaining.rfind("\n", 0, DISCORD_MAX_LENGTH)
        if newline_idx > 0:
            break_at = newline_idx + 1
        else:
            space_idx = remaining.rfind(" ", 0, DISCORD_MAX_LENGTH)
            if space_idx > DISCORD_MAX_LENGTH // 2:
                break_at = space_idx + 1

        chunks.append(remaining[:break_at].rstrip())
        remaining = remaining[break_at:].lstrip("\n")

    return chunks


class ReminderCommands(commands.Cog):
    """
    Text commands for reminder management.

    Commands (default prefix ``$``):
    - $r / $remindme / $reminder - Schedule a reminder
    - $cr / $cancelreminder - Cancel a reminder
    - $si / $setinterval - Repeat a reminder on an interval
    - $ci / $clearinterval - Stop repeating a reminder
    - $rs / $reminders - List your reminders
    - $tz / $timezone - Set your timezone
    - $tf / $timeformat - Choose 12h or 24h display
    - $h / $help - Show help
    """

    def __init__(
        self,
        bot: commands.Bot,
        reminder_manager: ReminderManager,
        preference_store: PreferenceStore,
        prefix: str = "$",
    ):
        self.bot = bot
        self.manager = reminder_manager
        self.preferences = preference_store
        self.prefix = prefix

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        """Parse and execute reminder commands."""
        if message.author.bot:
            return
        if not message.content.startswith(self.prefix):
            return

        response = await self.execute(message.author.id, message.content)

        try:
            for i, chunk in enumerate(chunk_message(response)):
                if i == 0:
                    await message.reply(chunk)
                else:
                    await message.channel.send(chunk)
        except discord.HTTPException as e:
            logger.error(f"Failed to reply to user {message.author.id}: {e}")

    async def execute(self, user_id: int, content: str) -> str:
        """
        Run a command for a user and build the reply text.

        Args:
            user_id: Discord user ID
            content: Raw message content

        Returns:
            Text to send back to the user
        """
        user_tz = await self.preferences.resolve_timezone(user_id)

        try:
            command = parse_command(content, user_tz, prefix=self.prefix)
            return await self.manager.handle(user_id, command)
        except CommandParseError as e:
            return f"Invalid command: {e}"
        except InvalidReminderId as e:
            return str(e)
        except CalendarError as e:
            logger.info(f"Time computation failed for user {user_id}: {e}")
            return f"Time computation error: {e}"
