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

"""Tests for the in-memory reminder store."""

import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders.store import InvalidReminderId, Reminder, ReminderStore
from reminders.time_modifiers import Date, Delay, TimeOfDay

NEW_YORK = pytz.timezone("America/New_York")
T0 = NEW_YORK.localize(datetime(2024, 1, 10, 9, 0))
DAY_MS = 86400000
USER = 1001


def at(hours: float) -> datetime:
    return NEW_YORK.normalize(T0 + timedelta(hours=hours))


def assert_sorted(reminders):
    times = [r.trigger_time for r in reminders]
    assert times == sorted(times)


@pytest.fixture
def store():
    return ReminderStore()


class TestAdd:
    @pytest.mark.asyncio
    async def test_returns_sorted_position(self, store):
        assert await store.add(USER, Reminder(at(5), "five")) == 0
        assert await store.add(USER, Reminder(at(1), "one")) == 0
        assert await store.add(USER, Reminder(at(3), "three")) == 1

        reminders = await store.list_reminders(USER)
        assert [r.message for r in reminders] == ["one", "three", "five"]

    @pytest.mark.asyncio
    async def test_ties_keep_insertion_order(self, store):
        assert await store.add(USER, Reminder(at(1), "first")) == 0
        assert await store.add(USER, Reminder(at(1), "second")) == 1
        reminders = await store.list_reminders(USER)
        assert [r.message for r in reminders] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_add_all_reports_final_positions(self, store):
        await store.add(USER, Reminder(at(2), "existing"))
        positions = await store.add_all(
            USER, [Reminder(at(3), "later"), Reminder(at(1), "earlier")]
        )
        # "later" lands at 2 once "earlier" has been inserted before it
        assert positions == [2, 0]

    @pytest.mark.asyncio
    async def test_users_are_independent(self, store):
        await store.add(USER, Reminder(at(1), "mine"))
        await store.add(2002, Reminder(at(0), "theirs"))
        assert [r.message for r in await store.list_reminders(USER)] == ["mine"]
        assert await store.list_reminders(3003) == []

    @pytest.mark.asyncio
    async def test_list_returns_copies(self, store):
        await store.add(USER, Reminder(at(1), "untouched"))
        (copy,) = await store.list_reminders(USER)
        copy.message = "changed"
        (stored,) = await store.list_reminders(USER)
        assert stored.message == "untouched"


class TestPositionalIds:
    @pytest.mark.asyncio
    async def test_remove_shifts_ids(self, store):
        await store.add(USER, Reminder(at(1), "A"))
        await store.add(USER, Reminder(at(2), "B"))

        removed = await store.remove_at(USER, 0)
        assert removed.message == "A"

        (remaining,) = await store.list_reminders(USER)
        assert remaining.message == "B"
        removed = await store.remove_at(USER, 0)
        assert removed.message == "B"

    @pytest.mark.asyncio
    async def test_out_of_range(self, store):
        await store.add(USER, Reminder(at(1), "A"))
        with pytest.raises(InvalidReminderId):
            await store.remove_at(USER, 1)
        with pytest.raises(InvalidReminderId):
            await store.remove_at(USER, -1)
        with pytest.raises(InvalidReminderId):
            await store.set_interval(4242, 0, [Delay(DAY_MS)])
        with pytest.raises(InvalidReminderId):
            await store.clear_interval(USER, 7)

    @pytest.mark.asyncio
    async def test_set_and_clear_interval(self, store):
        await store.add(USER, Reminder(at(1), "A"))
        updated = await store.set_interval(USER, 0, [Delay(DAY_MS)])
        assert updated.interval == (Delay(DAY_MS),)
        assert (await store.list_reminders(USER))[0].interval == (Delay(DAY_MS),)

        cleared = await store.clear_interval(USER, 0)
        assert cleared.interval is None
        assert (await store.list_reminders(USER))[0].interval is None


class TestSortInvariant:
    @pytest.mark.asyncio
    async def test_random_operations_keep_order(self, store):
        rng = random.Random(1234)
        for step in range(200):
            reminders = await store.list_reminders(USER)
            op = rng.random()
            if op < 0.6 or not reminders:
                await store.add(USER, Reminder(at(rng.randint(-50, 50)), f"r{step}"))
            elif op < 0.8:
                await store.remove_at(USER, rng.randrange(len(reminders)))
            else:
                await store.set_interval(USER, rng.randrange(len(reminders)), [Delay(DAY_MS)])
            assert_sorted(await store.list_reminders(USER))


class TestPopDue:
    @pytest.mark.asyncio
    async def test_pops_only_due(self, store):
        await store.add(USER, Reminder(at(0), "now"))
        await store.add(USER, Reminder(at(-1), "past"))
        await store.add(USER, Reminder(at(1), "future"))

        fired = await store.pop_due(at(0))
        assert [(u, r.message) for u, r in fired] == [(USER, "past"), (USER, "now")]
        assert [r.message for r in await store.list_reminders(USER)] == ["future"]

    @pytest.mark.asyncio
    async def test_recurring_reminder_is_replaced(self, store):
        await store.add(USER, Reminder(at(0), "daily", interval=(Delay(DAY_MS),)))
        await store.add(USER, Reminder(at(10), "other"))

        fired = await store.pop_due(at(0))
        assert len(fired) == 1

        reminders = await store.list_reminders(USER)
        assert [r.message for r in reminders] == ["other", "daily"]
        assert reminders[1].trigger_time == at(24)
        assert reminders[1].interval == (Delay(DAY_MS),)

    @pytest.mark.asyncio
    async def test_failed_recurrence_ends(self, store):
        await store.add(USER, Reminder(at(0), "feb 31", interval=(Date(day=31, month=2),)))
        fired = await store.pop_due(at(0))
        assert len(fired) == 1
        assert await store.list_reminders(USER) == []

    @pytest.mark.asyncio
    async def test_non_advancing_recurrence_ends(self, store):
        await store.add(USER, Reminder(T0, "stuck", interval=(TimeOfDay(9, 0),)))
        fired = await store.pop_due(at(1))
        assert len(fired) == 1
        assert await store.list_reminders(USER) == []

    @pytest.mark.asyncio
    async def test_catches_up_missed_occurrences(self, store):
        await store.add(USER, Reminder(at(0), "hourly", interval=(Delay(3600000),)))
        fired = await store.pop_due(at(2.5))
        assert len(fired) == 3
        (remaining,) = await store.list_reminders(USER)
        assert remaining.trigger_time == at(3)


class TestSnapshotLoad:
    @pytest.mark.asyncio
    async def test_load_sorts(self, store):
        await store.load([
            (USER, Reminder(at(3), "c")),
            (USER, Reminder(at(1), "a")),
            (2002, Reminder(at(2), "x")),
            (USER, Reminder(at(2), "b")),
        ])
        assert [r.message for r in await store.list_reminders(USER)] == ["a", "b", "c"]
        assert len(await store.snapshot()) == 4


class TestUnrepresentableInterval:
    @pytest.mark.asyncio
    async def test_out_of_range_clock_still_fires(self, store):
        await store.add(USER, Reminder(at(0), "bad clock", interval=(TimeOfDay(15, 2**31),)))
        await store.add(2002, Reminder(at(0), "neighbour"))

        fired = await store.pop_due(at(1))

        assert sorted(r.message for _, r in fired) == ["bad clock", "neighbour"]
        assert await store.list_reminders(USER) == []
        assert await store.list_reminders(2002) == []
