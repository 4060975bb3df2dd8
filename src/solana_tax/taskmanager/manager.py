"""Task manager — periodic asyncio jobs for the tax engine.

Every registered ``CronJob`` gets its own asyncio task that sleeps
``period`` seconds between runs (optionally running once right at start).
Failures are counted per job and logged; they never end the schedule.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from solana_tax.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CronJob:
    """A recurring background job.

    ``run_at_start`` executes the handler as soon as the manager starts
    instead of waiting out the first period.
    """

    handler: Callable[[], Awaitable[None]]
    period: float  # seconds
    name: str = ""
    run_at_start: bool = False


@dataclass
class JobState:
    """Run counters for one job."""

    runs: int = 0
    failures: int = 0
    last_error: str | None = None


class TaskManager:
    """Runs the engine's periodic jobs on the current event loop.

    Usage::

        tm = TaskManager(metrics=engine_metrics)
        tm.register("expire_payments", CronJob(handler=..., period=30))
        await tm.start()
        ...
        await tm.stop()
    """

    def __init__(self, *, metrics: EngineMetrics | None = None) -> None:
        self._metrics = metrics
        self._jobs: dict[str, CronJob] = {}
        self._states: dict[str, JobState] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def jobs(self) -> dict[str, CronJob]:
        """Registered jobs (name → CronJob)."""
        return dict(self._jobs)

    def state(self, name: str) -> JobState:
        """Run counters for the job registered as *name*.

        Raises:
            KeyError: If no job is registered under *name*.
        """
        return self._states[name]

    def register(self, name: str, job: CronJob) -> None:
        """Add (or replace) the job called *name*; schedules it at once if running."""
        named = replace(job, name=name)
        self._jobs[name] = named
        self._states.setdefault(name, JobState())
        if self._running:
            self._spawn(named)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for job in self._jobs.values():
            self._spawn(job)
        logger.info("TaskManager started: %s", ", ".join(self._jobs) or "no jobs")

    async def stop(self) -> None:
        """Cancel every job task and wait until they have unwound."""
        if not self._running:
            return
        self._running = False
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for result in await asyncio.gather(*tasks, return_exceptions=True):
            if isinstance(result, Exception):
                logger.error("Job task ended with an error during shutdown: %s", result)
        logger.info("TaskManager stopped")

    async def run_now(self, name: str) -> None:
        """Execute the job registered as *name* once, outside its schedule.

        Handler errors propagate to the caller (and are still counted).

        Raises:
            KeyError: If no job is registered under *name*.
        """
        await self._execute(self._jobs[name])

    def _spawn(self, job: CronJob) -> None:
        previous = self._tasks.get(job.name)
        if previous is not None:
            previous.cancel()
        self._tasks[job.name] = asyncio.create_task(self._schedule(job), name=f"cron:{job.name}")

    async def _execute(self, job: CronJob) -> None:
        state = self._states[job.name]
        state.runs += 1
        try:
            if self._metrics is None:
                await job.handler()
            else:
                with self._metrics.track_cron(job.name):
                    await job.handler()
        except Exception as exc:
            state.failures += 1
            state.last_error = str(exc)
            raise

    async def _schedule(self, job: CronJob) -> None:
        if job.run_at_start:
            await self._run_logged(job)
        while self._running:
            await asyncio.sleep(job.period)
            if not self._running:
                break
            await self._run_logged(job)

    async def _run_logged(self, job: CronJob) -> None:
        try:
            await self._execute(job)
        except Exception:
            logger.exception("Cron job %r failed", job.name)
