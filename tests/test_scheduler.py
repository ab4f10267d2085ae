import asyncio

import pytest

from bulwark.scheduler.periodic_scheduler import PeriodicScheduler


async def test_run_once_reports_failures():
    async def broken():
        raise RuntimeError("nope")

    async def fine():
        return None

    assert await PeriodicScheduler("broken", broken, lambda: 1).run_once() is False
    assert await PeriodicScheduler("fine", fine, lambda: 1).run_once() is True


async def test_loop_survives_failing_runs_and_shuts_down():
    calls = []

    async def job():
        calls.append(len(calls))
        if len(calls) == 1:
            raise RuntimeError("first run fails")

    scheduler = PeriodicScheduler("test", job, lambda: 0.01, run_immediately=True)
    scheduler.start()
    assert scheduler.running

    for _ in range(100):
        if len(calls) >= 3:
            break
        await asyncio.sleep(0.01)

    await scheduler.shutdown()
    assert len(calls) >= 3
    assert not scheduler.running


async def test_start_twice_keeps_one_task():
    async def job():
        return None

    scheduler = PeriodicScheduler("twice", job, lambda: 60)
    scheduler.start()
    first_task = scheduler._task
    scheduler.start()
    assert scheduler._task is first_task
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_shutdown_without_start_is_a_noop():
    async def job():
        return None

    await PeriodicScheduler("idle", job, lambda: 60).shutdown()
