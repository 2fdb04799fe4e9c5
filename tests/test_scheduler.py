import asyncio

import pytest

from tele_rate_monitor import background
from tele_rate_monitor.background import (
    JOB_CURRENT_RATE,
    JOB_HISTORY,
    RefreshScheduler,
    build_scheduler,
    ensure_started,
)

from conftest import DummyContext, install_state, make_monitor


@pytest.mark.asyncio
async def test_job_runs_repeatedly_and_stop_cancels() -> None:
    calls = []

    async def job():
        calls.append(1)

    scheduler = RefreshScheduler()
    scheduler.add_job("tick", 0.01, job)
    scheduler.start()
    await asyncio.sleep(0.05)
    await scheduler.stop()
    count = len(calls)
    await asyncio.sleep(0.03)

    assert count >= 2
    assert len(calls) == count
    assert not scheduler.is_running("tick")


@pytest.mark.asyncio
async def test_job_failure_does_not_stop_loop(caplog) -> None:
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    scheduler = RefreshScheduler()
    scheduler.add_job("flaky", 0.01, flaky)
    scheduler.start()
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert len(calls) >= 2
    assert "flaky job failed" in caplog.text


@pytest.mark.asyncio
async def test_cancel_by_name_leaves_other_jobs() -> None:
    async def noop():
        return None

    scheduler = RefreshScheduler()
    scheduler.add_job("a", 10, noop)
    scheduler.add_job("b", 10, noop)
    scheduler.start()

    assert scheduler.cancel("a") is True
    assert scheduler.cancel("a") is False
    await asyncio.sleep(0)
    assert not scheduler.is_running("a")
    assert scheduler.is_running("b")
    await scheduler.stop()


@pytest.mark.asyncio
async def test_delayed_job_waits_for_interval() -> None:
    calls = []

    async def job():
        calls.append(1)

    scheduler = RefreshScheduler()
    scheduler.add_job("later", 10, job, run_immediately=False)
    scheduler.start()
    await asyncio.sleep(0.02)
    await scheduler.stop()

    assert calls == []


@pytest.mark.asyncio
async def test_build_scheduler_registers_both_jobs() -> None:
    monitor = make_monitor()
    scheduler = build_scheduler(monitor)

    assert set(scheduler._jobs) == {JOB_CURRENT_RATE, JOB_HISTORY}
    assert scheduler._jobs[JOB_HISTORY].run_immediately is False


@pytest.mark.asyncio
async def test_ensure_started_is_idempotent(monkeypatch) -> None:
    started = []

    class DummyScheduler:
        def start(self) -> None:
            started.append(1)

    monkeypatch.setattr(background, "build_scheduler", lambda _m: DummyScheduler())
    context = DummyContext()
    state = install_state(context, make_monitor())

    first = ensure_started(context.application)
    second = ensure_started(context.application)

    assert first is second is state.scheduler
    assert len(started) == 2
