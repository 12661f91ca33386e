"""
Tests del scheduler del poller (APScheduler sobre el event loop de pytest).
"""
from unittest.mock import MagicMock

import pytest

from app.domain.entities.sheet_sync import PollResult
from app.infrastructure.scheduler.poll_scheduler import PollScheduler
from app.shared.constants.sync_constants import POLL_JOB_ID


@pytest.fixture
def use_cases(clock):
    mock = MagicMock()
    mock.run_poll_cycle.return_value = PollResult(started_at=clock())
    return mock


@pytest.mark.asyncio
async def test_tick_runs_one_poll_cycle(use_cases):
    scheduler = PollScheduler(use_cases, interval_seconds=5)

    await scheduler.tick()

    use_cases.run_poll_cycle.assert_called_once_with()


@pytest.mark.asyncio
async def test_tick_tolerates_failed_cycles(use_cases, clock):
    use_cases.run_poll_cycle.return_value = PollResult(started_at=clock(), error="down")
    scheduler = PollScheduler(use_cases, interval_seconds=5)

    await scheduler.tick()

    use_cases.run_poll_cycle.assert_called_once_with()


@pytest.mark.asyncio
async def test_start_registers_single_job_and_shutdown_stops(use_cases):
    scheduler = PollScheduler(use_cases, interval_seconds=2)

    scheduler.start()
    try:
        assert scheduler.running is True
        job = scheduler._scheduler.get_job(POLL_JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True
        assert job.trigger.interval.total_seconds() == 2
    finally:
        scheduler.shutdown()

    assert scheduler.running is False


@pytest.mark.asyncio
async def test_reschedule_updates_running_job(use_cases):
    scheduler = PollScheduler(use_cases, interval_seconds=5)
    scheduler.start()
    try:
        scheduler.reschedule(0.5)

        job = scheduler._scheduler.get_job(POLL_JOB_ID)
        assert scheduler.interval_seconds == 0.5
        assert job.trigger.interval.total_seconds() == 0.5
    finally:
        scheduler.shutdown()


def test_reschedule_rejects_non_positive_intervals(use_cases):
    scheduler = PollScheduler(use_cases, interval_seconds=5)

    with pytest.raises(ValueError):
        scheduler.reschedule(0)

    assert scheduler.interval_seconds == 5.0


def test_reschedule_before_start_only_stores_interval(use_cases):
    scheduler = PollScheduler(use_cases, interval_seconds=5)

    scheduler.reschedule(12)

    assert scheduler.interval_seconds == 12.0
    assert scheduler.running is False
