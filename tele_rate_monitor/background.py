"""Background refresh jobs (started once per Application)."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from . import config
from .state import get_state

logger = logging.getLogger(__name__)

JOB_CURRENT_RATE = "current_rate"
JOB_HISTORY = "history"


@dataclass(frozen=True)
class Job:
    name: str
    interval_s: float
    func: Callable[[], Awaitable[object]]
    run_immediately: bool = True


class RefreshScheduler:
    """Runs each job on its own fixed interval; jobs are cancellable by name."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def add_job(
        self,
        name: str,
        interval_s: float,
        func: Callable[[], Awaitable[object]],
        run_immediately: bool = True,
    ) -> None:
        self._jobs[name] = Job(name, interval_s, func, run_immediately)

    def is_running(self, name: str) -> bool:
        task = self._tasks.get(name)
        return isinstance(task, asyncio.Task) and not task.done()

    def start(self) -> None:
        for name, job in self._jobs.items():
            if self.is_running(name):
                continue
            self._tasks[name] = asyncio.create_task(self._loop(job), name=name)

    def cancel(self, name: str) -> bool:
        task = self._tasks.pop(name, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        self._tasks.clear()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Stopped %d refresh job(s)", len(tasks))

    async def _loop(self, job: Job) -> None:
        logger.info("Starting %s loop (interval=%ss)", job.name, job.interval_s)
        if not job.run_immediately:
            await asyncio.sleep(job.interval_s)
        while True:
            start = time.monotonic()
            try:
                await job.func()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s job failed", job.name)
            elapsed = time.monotonic() - start
            await asyncio.sleep(max(0.0, job.interval_s - elapsed))


def build_scheduler(monitor) -> RefreshScheduler:
    scheduler = RefreshScheduler()
    scheduler.add_job(
        JOB_HISTORY,
        config.HISTORY_REFRESH_INTERVAL_S,
        lambda: monitor.refresh_history(config.HISTORY_DAYS),
        run_immediately=False,
    )
    scheduler.add_job(
        JOB_CURRENT_RATE,
        config.REFRESH_INTERVAL_S,
        monitor.refresh_current,
    )
    return scheduler


def ensure_started(app) -> RefreshScheduler:
    state = get_state(app)
    if state.scheduler is None:
        state.scheduler = build_scheduler(state.monitor)
    state.scheduler.start()
    return state.scheduler
