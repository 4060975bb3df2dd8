"""Tests for TaskManager and CronJob."""

from __future__ import annotations

import asyncio

import pytest

from solana_tax.metrics.collector import EngineMetrics
from solana_tax.taskmanager import CronJob, TaskManager


class TestTaskManager:
    async def test_register_names_job(self) -> None:
        tm = TaskManager()

        async def handler() -> None:
            pass

        tm.register("sweep", CronJob(handler=handler, period=60))
        assert tm.jobs["sweep"].name == "sweep"
        assert tm.jobs["sweep"].period == 60
        assert not tm.is_running

    async def test_runs_periodically(self) -> None:
        runs: list[int] = []

        async def handler() -> None:
            runs.append(1)

        tm = TaskManager()
        tm.register("tick", CronJob(handler=handler, period=0.01))
        await tm.start()
        assert tm.is_running
        await asyncio.sleep(0.1)
        await tm.stop()
        assert not tm.is_running
        assert len(runs) >= 2

        count = len(runs)
        await asyncio.sleep(0.05)
        assert len(runs) == count

    async def test_failing_job_keeps_schedule(self) -> None:
        runs: list[int] = []

        async def handler() -> None:
            runs.append(1)
            raise RuntimeError("boom")

        tm = TaskManager()
        tm.register("bad", CronJob(handler=handler, period=0.01))
        await tm.start()
        await asyncio.sleep(0.1)
        await tm.stop()
        assert len(runs) >= 2
        state = tm.state("bad")
        assert state.failures == state.runs == len(runs)
        assert state.last_error == "boom"

    async def test_register_after_start(self) -> None:
        ran = asyncio.Event()

        async def handler() -> None:
            ran.set()

        tm = TaskManager()
        await tm.start()
        tm.register("late", CronJob(handler=handler, period=0.01))
        await asyncio.wait_for(ran.wait(), 1)
        await tm.stop()

    async def test_start_stop_idempotent(self) -> None:
        tm = TaskManager()
        await tm.stop()
        await tm.start()
        await tm.start()
        await tm.stop()
        await tm.stop()
        assert not tm.is_running

    async def test_run_now(self) -> None:
        metrics = EngineMetrics()
        runs: list[int] = []

        async def handler() -> None:
            runs.append(1)

        tm = TaskManager(metrics=metrics)
        tm.register("refresh_prices", CronJob(handler=handler, period=3600))
        await tm.run_now("refresh_prices")
        assert runs == [1]
        count = metrics.registry.get_sample_value(
            "soltax_cron_histogram_count", {"job_name": "refresh_prices"}
        )
        assert count == 1

    async def test_run_now_propagates_and_counts(self) -> None:
        async def handler() -> None:
            raise ValueError("bad feed")

        tm = TaskManager()
        tm.register("refresh_prices", CronJob(handler=handler, period=3600))
        with pytest.raises(ValueError, match="bad feed"):
            await tm.run_now("refresh_prices")
        assert tm.state("refresh_prices").failures == 1

    async def test_run_at_start(self) -> None:
        ran = asyncio.Event()

        async def handler() -> None:
            ran.set()

        tm = TaskManager()
        tm.register("warm", CronJob(handler=handler, period=3600, run_at_start=True))
        await tm.start()
        await asyncio.wait_for(ran.wait(), 1)
        assert tm.state("warm").runs == 1
        await tm.stop()

    async def test_run_now_unknown(self) -> None:
        with pytest.raises(KeyError):
            await TaskManager().run_now("nope")
