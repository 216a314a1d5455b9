import asyncio

import pytest
from unittest.mock import AsyncMock

from govtrack.services.sync.scheduler import BatchSyncScheduler
from govtrack.services.sync.state import SyncState
from govtrack.services.sync.trigger import ReadPathSyncTrigger


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state(clock):
    return SyncState(clock=clock)


@pytest.mark.asyncio
async def test_second_trigger_within_cooldown_does_not_launch(state, clock):
    overview = AsyncMock()
    trigger = ReadPathSyncTrigger(state, overview, AsyncMock(), overview_cooldown=60, detail_cooldown=30)

    assert trigger.trigger_overview_sync() is True
    await trigger.drain()
    clock.now += 10
    assert trigger.trigger_overview_sync() is False
    await trigger.drain()

    assert overview.await_count == 1

    clock.now += 60
    assert trigger.trigger_overview_sync() is True
    await trigger.drain()
    assert overview.await_count == 2


@pytest.mark.asyncio
async def test_in_flight_scope_is_not_launched_twice(state):
    release = asyncio.Event()
    started = []

    async def slow_detail(identifier):
        started.append(identifier)
        await release.wait()

    trigger = ReadPathSyncTrigger(state, AsyncMock(), slow_detail, overview_cooldown=0, detail_cooldown=0)

    assert trigger.trigger_proposal_detail_sync("gov_action1a") is True
    await asyncio.sleep(0)
    assert trigger.trigger_proposal_detail_sync("gov_action1a") is False
    # Other proposals have their own scope
    assert trigger.trigger_proposal_detail_sync("gov_action1b") is True

    release.set()
    await trigger.drain()
    assert sorted(started) == ["gov_action1a", "gov_action1b"]
    assert not state.is_in_flight("proposal:gov_action1a")


@pytest.mark.asyncio
async def test_background_failures_are_isolated(state):
    detail = AsyncMock(side_effect=RuntimeError("index down"))
    trigger = ReadPathSyncTrigger(state, AsyncMock(), detail, overview_cooldown=0, detail_cooldown=0)

    assert trigger.trigger_proposal_detail_sync("7") is True
    await trigger.drain()

    detail.assert_awaited_once_with("7")
    assert trigger.pending == 0
    assert trigger.trigger_proposal_detail_sync("7") is True
    await trigger.drain()


@pytest.mark.asyncio
async def test_scheduler_skips_overlapping_tick(state):
    release = asyncio.Event()
    runs = []

    async def run_sync():
        runs.append(1)
        await release.wait()
        return "done"

    scheduler = BatchSyncScheduler(state, run_sync, enabled=True, job_name="proposal-sync")
    first = asyncio.create_task(scheduler.tick())
    await asyncio.sleep(0)

    assert await scheduler.tick() is None
    release.set()
    assert await first == "done"
    assert runs == [1]
    assert not state.is_job_running("proposal-sync")


@pytest.mark.asyncio
async def test_scheduler_disabled(state):
    run_sync = AsyncMock()
    scheduler = BatchSyncScheduler(state, run_sync, enabled=False)

    assert await scheduler.tick() is None
    run_sync.assert_not_awaited()


@pytest.mark.asyncio
async def test_scheduler_failure_releases_guard(state):
    run_sync = AsyncMock(side_effect=[RuntimeError("boom"), "ok"])
    scheduler = BatchSyncScheduler(state, run_sync, enabled=True, job_name="voter-power-sync")

    assert await scheduler.tick() is None
    assert await scheduler.tick() == "ok"


@pytest.mark.asyncio
async def test_detail_trigger_cooldown_launches_once(state, clock):
    detail = AsyncMock()
    trigger = ReadPathSyncTrigger(state, AsyncMock(), detail, overview_cooldown=60, detail_cooldown=30)

    launched = [trigger.trigger_proposal_detail_sync("gov_action1a")]
    await trigger.drain()
    clock.now += 5
    launched.append(trigger.trigger_proposal_detail_sync("gov_action1a"))
    await trigger.drain()

    assert launched == [True, False]
    detail.assert_awaited_once_with("gov_action1a")
