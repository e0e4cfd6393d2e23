"""
Unit tests for the recurring sync scheduler.

AsyncIOScheduler needs a running event loop, so lifecycle tests are async.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from designflow.scheduler import SyncScheduler, SYNC_JOB_ID


@pytest.fixture
def sync_fn():
    return AsyncMock(return_value=[])


def test_rejects_non_positive_interval(sync_fn):
    with pytest.raises(ValueError):
        SyncScheduler(sync_fn, 0)


def test_not_running_before_start(sync_fn):
    scheduler = SyncScheduler(sync_fn, 180000)

    assert scheduler.is_running() is False
    assert scheduler.get_job_status() == {"running": False}
    assert scheduler.trigger_now() is False


def test_stop_before_start_is_noop(sync_fn):
    scheduler = SyncScheduler(sync_fn, 180000)

    scheduler.stop()

    assert scheduler.is_running() is False


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent(sync_fn):
    scheduler = SyncScheduler(sync_fn, 180000, timezone="UTC")

    scheduler.start()
    first = scheduler.scheduler
    scheduler.start()

    assert scheduler.is_running() is True
    assert scheduler.scheduler is first
    assert len(first.get_jobs()) == 1

    scheduler.stop()
    scheduler.stop()

    assert scheduler.is_running() is False


@pytest.mark.asyncio
async def test_job_configuration(sync_fn):
    scheduler = SyncScheduler(sync_fn, 180000)
    scheduler.start()
    try:
        job = scheduler.scheduler.get_job(SYNC_JOB_ID)
        status = scheduler.get_job_status()
    finally:
        scheduler.stop()

    assert job.max_instances == 1
    assert job.coalesce is True
    assert job.trigger.interval.total_seconds() == 180
    assert status["running"] is True
    assert status["interval_ms"] == 180000
    assert status["next_run"] is not None


@pytest.mark.asyncio
async def test_callback_runs_on_interval(sync_fn):
    scheduler = SyncScheduler(sync_fn, 50)
    scheduler.start()
    try:
        for _ in range(40):
            if sync_fn.await_count >= 2:
                break
            await asyncio.sleep(0.05)
    finally:
        scheduler.stop()

    assert sync_fn.await_count >= 2


@pytest.mark.asyncio
async def test_job_swallows_errors():
    failing = AsyncMock(side_effect=RuntimeError("github down"))
    scheduler = SyncScheduler(failing, 180000)

    await scheduler._sync_job()
    await scheduler._sync_job()

    assert failing.await_count == 2


@pytest.mark.asyncio
async def test_failing_run_does_not_stop_schedule():
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first run fails")

    scheduler = SyncScheduler(flaky, 50)
    scheduler.start()
    try:
        for _ in range(40):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.05)
    finally:
        scheduler.stop()

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_trigger_now(sync_fn):
    scheduler = SyncScheduler(sync_fn, 3600000)
    scheduler.start()
    try:
        assert scheduler.trigger_now() is True
        for _ in range(40):
            if sync_fn.await_count:
                break
            await asyncio.sleep(0.05)
    finally:
        scheduler.stop()

    sync_fn.assert_awaited()
