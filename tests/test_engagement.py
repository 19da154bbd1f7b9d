"""
Tests for the Engagement Scheduler
"""
import asyncio
import json
import random
from datetime import timedelta

import pytest

from nudgekit.config.settings import EngagementSettings
from nudgekit.dispatcher import NotificationCategory
from nudgekit.scheduler import (
    AM_WINDOW,
    ENGAGEMENT_MESSAGES,
    PM_WINDOW,
    EngagementScheduler,
    EngagementState,
)
from nudgekit.scheduler.engagement import DATE_KEY, ENGAGEMENT_TYPE, IDS_KEY

from conftest import BrokenStore, FakeDispatcher


def make_scheduler(dispatcher, store, clock, seed=1234, **config):
    return EngagementScheduler(
        dispatcher,
        store,
        config=EngagementSettings(**config),
        rng=random.Random(seed),
        clock=clock,
    )


class TestEnsureScheduledForToday:

    @pytest.fixture
    def scheduler(self, dispatcher, store, clock):
        return make_scheduler(dispatcher, store, clock)

    @pytest.mark.asyncio
    async def test_schedules_am_and_pm(self, scheduler, dispatcher, clock):
        result = await scheduler.ensure_scheduled_for_today()

        assert result.scheduled is True
        assert result.already_scheduled is False
        assert len(dispatcher.schedule_calls) == 2

        am, pm = dispatcher.schedule_calls
        assert am.category == NotificationCategory.ENGAGEMENT_AM
        assert pm.category == NotificationCategory.ENGAGEMENT_PM
        assert AM_WINDOW.contains(am.trigger_at)
        assert PM_WINDOW.contains(pm.trigger_at)
        assert am.trigger_at.date() == clock.now.date()
        assert scheduler.state == EngagementState.SCHEDULED

    @pytest.mark.asyncio
    async def test_payload_tags_slot_and_type(self, scheduler, dispatcher):
        await scheduler.ensure_scheduled_for_today()

        titles = {m.title for m in ENGAGEMENT_MESSAGES}
        am, pm = dispatcher.schedule_calls
        assert am.content.data == {"type": ENGAGEMENT_TYPE, "slot": "am"}
        assert pm.content.data == {"type": ENGAGEMENT_TYPE, "slot": "pm"}
        assert am.content.title in titles
        assert pm.content.title in titles

    @pytest.mark.asyncio
    async def test_persists_record(self, scheduler, store, clock):
        result = await scheduler.ensure_scheduled_for_today()

        assert json.loads(store.get(IDS_KEY)) == result.record.scheduled_ids
        assert store.get(DATE_KEY) == clock.now.date().isoformat()

    @pytest.mark.asyncio
    async def test_second_call_same_day_is_noop(self, scheduler, dispatcher, clock):
        first = await scheduler.ensure_scheduled_for_today()
        clock.advance(hours=5)
        second = await scheduler.ensure_scheduled_for_today()

        assert len(dispatcher.schedule_calls) == 2
        assert second.already_scheduled is True
        assert second.record.scheduled_ids == first.record.scheduled_ids
        assert dispatcher.cancel_calls == []

    @pytest.mark.asyncio
    async def test_rollover_cancels_and_reschedules(self, scheduler, dispatcher, store, clock):
        first = await scheduler.ensure_scheduled_for_today()
        clock.advance(days=1)
        second = await scheduler.ensure_scheduled_for_today()

        assert dispatcher.cancel_calls == first.record.scheduled_ids
        assert len(dispatcher.schedule_calls) == 4
        assert len(second.record.scheduled_ids) == 2
        assert set(second.record.scheduled_ids).isdisjoint(first.record.scheduled_ids)
        assert second.record.scheduled_for_date == clock.now.date()
        assert store.get(DATE_KEY) == clock.now.date().isoformat()

    @pytest.mark.asyncio
    async def test_rollover_survives_cancel_failures(self, scheduler, dispatcher, clock):
        await scheduler.ensure_scheduled_for_today()
        dispatcher.fail_cancel = True
        clock.advance(days=1)

        result = await scheduler.ensure_scheduled_for_today()

        assert result.scheduled is True
        assert len(dispatcher.schedule_calls) == 4

    @pytest.mark.asyncio
    async def test_concurrent_calls_schedule_once(self, scheduler, dispatcher):
        await asyncio.gather(
            scheduler.ensure_scheduled_for_today(),
            scheduler.ensure_scheduled_for_today(),
        )

        assert len(dispatcher.schedule_calls) == 2


class TestFailures:

    @pytest.mark.asyncio
    async def test_permission_denied(self, store, clock):
        dispatcher = FakeDispatcher(granted=False)
        scheduler = make_scheduler(dispatcher, store, clock)

        result = await scheduler.ensure_scheduled_for_today()

        assert result.scheduled is False
        assert result.reason == "permission_denied"
        assert dispatcher.schedule_calls == []
        assert store.get(IDS_KEY) is None

    @pytest.mark.asyncio
    async def test_failure_on_second_slot_rolls_back(self, dispatcher, store, clock):
        dispatcher.fail_schedule_after = 1
        scheduler = make_scheduler(dispatcher, store, clock)

        result = await scheduler.ensure_scheduled_for_today()

        assert result.scheduled is False
        assert result.reason == "dispatcher_failure"
        assert dispatcher.cancel_calls == ["n1"]
        assert dispatcher.pending == {}
        assert store.get(IDS_KEY) is None
        assert scheduler.record is None
        assert scheduler.state == EngagementState.IDLE

    @pytest.mark.asyncio
    async def test_failed_day_is_retried_on_next_call(self, dispatcher, store, clock):
        dispatcher.fail_schedule_after = 0
        scheduler = make_scheduler(dispatcher, store, clock)
        await scheduler.ensure_scheduled_for_today()

        dispatcher.fail_schedule_after = None
        result = await scheduler.ensure_scheduled_for_today()

        assert result.scheduled is True
        assert len(result.record.scheduled_ids) == 2

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_memory_state(self, dispatcher, clock):
        scheduler = make_scheduler(dispatcher, BrokenStore(), clock)

        first = await scheduler.ensure_scheduled_for_today()
        second = await scheduler.ensure_scheduled_for_today()

        assert first.scheduled is True
        assert second.already_scheduled is True
        assert len(dispatcher.schedule_calls) == 2

    @pytest.mark.asyncio
    async def test_malformed_record_is_replaced(self, dispatcher, store, clock):
        store.set(IDS_KEY, "not json")
        store.set(DATE_KEY, clock.now.date().isoformat())
        scheduler = make_scheduler(dispatcher, store, clock)

        result = await scheduler.ensure_scheduled_for_today()

        assert result.scheduled is True
        assert result.already_scheduled is False
        assert len(dispatcher.schedule_calls) == 2


class TestPersistedState:

    @pytest.mark.asyncio
    async def test_restart_same_day_is_noop(self, dispatcher, store, clock):
        await make_scheduler(dispatcher, store, clock).ensure_scheduled_for_today()

        restarted = make_scheduler(dispatcher, store, clock, seed=99)
        result = await restarted.ensure_scheduled_for_today()

        assert result.already_scheduled is True
        assert len(dispatcher.schedule_calls) == 2

    @pytest.mark.asyncio
    async def test_partial_record_for_today_is_valid(self, dispatcher, store, clock):
        store.set(IDS_KEY, json.dumps(["pm-only"]))
        store.set(DATE_KEY, clock.now.date().isoformat())
        scheduler = make_scheduler(dispatcher, store, clock)

        result = await scheduler.ensure_scheduled_for_today()

        assert result.already_scheduled is True
        assert result.record.scheduled_ids == ["pm-only"]
        assert dispatcher.schedule_calls == []

    @pytest.mark.asyncio
    async def test_only_pm_when_am_window_closed(self, dispatcher, store, clock):
        clock.now = clock.now.replace(hour=13, minute=30)
        scheduler = make_scheduler(dispatcher, store, clock, roll_closed_windows=False)

        result = await scheduler.ensure_scheduled_for_today()
        again = await scheduler.ensure_scheduled_for_today()

        assert len(result.record.scheduled_ids) == 1
        assert dispatcher.schedule_calls[0].category == NotificationCategory.ENGAGEMENT_PM
        assert again.already_scheduled is True
        assert len(dispatcher.schedule_calls) == 1

    @pytest.mark.asyncio
    async def test_restore_loads_ids_without_scheduling(self, dispatcher, store, clock):
        first = await make_scheduler(dispatcher, store, clock).ensure_scheduled_for_today()

        restarted = make_scheduler(dispatcher, store, clock)
        assert restarted.state == EngagementState.UNINITIALIZED
        record = await restarted.restore_from_persistence()

        assert record.scheduled_ids == first.record.scheduled_ids
        assert restarted.scheduled_ids == first.record.scheduled_ids
        assert restarted.state == EngagementState.SCHEDULED
        assert len(dispatcher.schedule_calls) == 2

    @pytest.mark.asyncio
    async def test_restore_with_nothing_persisted(self, dispatcher, store, clock):
        scheduler = make_scheduler(dispatcher, store, clock)

        assert await scheduler.restore_from_persistence() is None
        assert scheduler.state == EngagementState.IDLE

    @pytest.mark.asyncio
    async def test_restore_stale_record_then_ensure_replaces(self, dispatcher, store, clock):
        first = await make_scheduler(dispatcher, store, clock).ensure_scheduled_for_today()
        clock.advance(days=1)

        restarted = make_scheduler(dispatcher, store, clock)
        await restarted.restore_from_persistence()
        assert restarted.state == EngagementState.IDLE

        await restarted.ensure_scheduled_for_today()

        assert dispatcher.cancel_calls == first.record.scheduled_ids


class TestDisable:

    @pytest.mark.asyncio
    async def test_disable_cancels_and_clears(self, dispatcher, store, clock):
        scheduler = make_scheduler(dispatcher, store, clock)
        result = await scheduler.ensure_scheduled_for_today()

        await scheduler.disable()

        assert dispatcher.cancel_calls == result.record.scheduled_ids
        assert dispatcher.pending == {}
        assert store.get(IDS_KEY) is None
        assert store.get(DATE_KEY) is None
        assert scheduler.state == EngagementState.DISABLED
        assert scheduler.record is None

    @pytest.mark.asyncio
    async def test_disable_after_restart_uses_persisted_ids(self, dispatcher, store, clock):
        result = await make_scheduler(dispatcher, store, clock).ensure_scheduled_for_today()

        restarted = make_scheduler(dispatcher, store, clock)
        assert restarted.scheduled_ids == []
        await restarted.disable()

        assert sorted(dispatcher.cancel_calls) == sorted(result.record.scheduled_ids)
        assert dispatcher.pending == {}
        assert store.get(IDS_KEY) is None

    @pytest.mark.asyncio
    async def test_disable_ignores_cancel_failures(self, dispatcher, store, clock):
        scheduler = make_scheduler(dispatcher, store, clock)
        await scheduler.ensure_scheduled_for_today()
        dispatcher.fail_cancel = True

        await scheduler.disable()

        assert scheduler.state == EngagementState.DISABLED
        assert store.get(IDS_KEY) is None

    @pytest.mark.asyncio
    async def test_enable_after_disable_schedules_again(self, dispatcher, store, clock):
        scheduler = make_scheduler(dispatcher, store, clock)
        await scheduler.ensure_scheduled_for_today()
        await scheduler.disable()

        result = await scheduler.ensure_scheduled_for_today()

        assert result.scheduled is True
        assert result.already_scheduled is False
        assert len(dispatcher.schedule_calls) == 4

    @pytest.mark.asyncio
    async def test_disable_without_anything_scheduled(self, dispatcher, store, clock):
        scheduler = make_scheduler(dispatcher, store, clock)

        await scheduler.disable()

        assert dispatcher.cancel_calls == []
        assert scheduler.state == EngagementState.DISABLED


@pytest.mark.asyncio
async def test_slot_times_ahead_of_now(dispatcher, store, clock):
    clock.now = clock.now.replace(hour=19, minute=59)
    scheduler = make_scheduler(dispatcher, store, clock)

    await scheduler.ensure_scheduled_for_today()

    for notification in dispatcher.schedule_calls:
        assert notification.trigger_at - clock.now >= timedelta(minutes=5)
