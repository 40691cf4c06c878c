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

"""Tests for the reminder text command cog."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from commands.reminder_commands import DISCORD_MAX_LENGTH, ReminderCommands, chunk_message
from reminders import PreferenceStore, ReminderManager, ReminderStore

USER = 1001


def make_message(content: str, bot: bool = False):
    message = MagicMock()
    message.content = content
    message.author.bot = bot
    message.author.id = USER
    message.reply = AsyncMock()
    message.channel.send = AsyncMock()
    return message


@pytest.fixture
def cog():
    preferences = PreferenceStore()
    manager = ReminderManager(ReminderStore(), preferences)
    return ReminderCommands(MagicMock(), manager, preferences)


class TestChunkMessage:
    def test_short_message_is_single_chunk(self):
        assert chunk_message("No reminders") == ["No reminders"]

    def test_splits_on_line_breaks(self):
        lines = [f"{i}: reminder number {i}" for i in range(200)]
        chunks = chunk_message("\n".join(lines))
        assert len(chunks) > 1
        assert all(len(chunk) <= DISCORD_MAX_LENGTH for chunk in chunks)
        assert "\n".join(chunks).splitlines() == lines

    def test_hard_cut_without_breaks(self):
        chunks = chunk_message("x" * (DISCORD_MAX_LENGTH + 10))
        assert [len(chunk) for chunk in chunks] == [DISCORD_MAX_LENGTH, 10]


class TestExecute:
    @pytest.mark.asyncio
    async def test_parse_error(self, cog):
        reply = await cog.execute(USER, "$r 1d")
        assert reply.startswith("Invalid command: ")

    @pytest.mark.asyncio
    async def test_invalid_reminder_id(self, cog):
        assert await cog.execute(USER, "$cr 5") == "Invalid reminder ID: 5"

    @pytest.mark.asyncio
    async def test_calendar_error(self, cog):
        reply = await cog.execute(USER, "$r 2023-02-30; x")
        assert reply.startswith("Time computation error: ")

    @pytest.mark.asyncio
    async def test_list_empty(self, cog):
        assert await cog.execute(USER, "$rs") == "No reminders"


class TestOnMessage:
    @pytest.mark.asyncio
    async def test_ignores_bots(self, cog):
        message = make_message("$rs", bot=True)
        await cog.on_message(message)
        message.reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ignores_unprefixed_messages(self, cog):
        message = make_message("hello there")
        await cog.on_message(message)
        message.reply.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replies_to_command(self, cog):
        message = make_message("$rs")
        await cog.on_message(message)
        message.reply.assert_awaited_once_with("No reminders")
        message.channel.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_long_reply_is_chunked(self, cog):
        for i in range(60):
            await cog.execute(USER, f"$r {i + 1}h; reminder with a fairly long message {i}")

        message = make_message("$rs")
        await cog.on_message(message)
        message.reply.assert_awaited_once()
        assert message.channel.send.await_count >= 1


class TestOutOfRangeInput:
    @pytest.mark.asyncio
    async def test_huge_minute_gets_reply(self, cog):
        reply = await cog.execute(USER, "$r 3:2147483648pm; x")
        assert reply.startswith("Invalid command: Invalid minute")
        assert await cog.execute(USER, "$rs") == "No reminders"

    @pytest.mark.asyncio
    async def test_huge_minute_interval_rejected(self, cog):
        await cog.execute(USER, "$r 1h; stretch")
        reply = await cog.execute(USER, "$si 0 3:2147483648pm")
        assert reply.startswith("Invalid command: ")
        assert "Repeats" not in await cog.execute(USER, "$rs")

    @pytest.mark.asyncio
    async def test_bad_month_gets_reply(self, cog):
        reply = await cog.execute(USER, "$r -13-99; x")
        assert reply.startswith("Invalid command: Invalid month")
