"""Tests for the asyncio scheduler."""

from __future__ import annotations

import asyncio
import threading

import pytest

from site_autoenhance.domain.enums import CycleOutcome
from site_autoenhance.services.engine import CycleResult
from site_autoenhance.services.scheduler import Scheduler


class FakeEngine:
    """Counts cycles; optionally blocks until released or raises."""

    def __init__(self, fail_on: set[int] | None = None, blocking: bool = False) -> None:
        self.calls = 0
        self.fail_on = fail_on or set()
        self.release = threading.Event()
        if not blocking:
            self.release.set()
        self.started = threading.Event()

    def run_cycle(self) -> CycleResult:
        self.calls += 1
        self.started.set()
        self.release.wait(timeout=5)
        if self.calls in self.fail_on:
            raise RuntimeError(f"cycle {self.calls} exploded")
        return CycleResult(outcome=CycleOutcome.NO_CHANGE)


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class TestScheduler:
    @pytest.mark.asyncio
    async def test_runs_max_cycles(self) -> None:
        engine = FakeEngine()
        results: list[CycleResult] = []
        scheduler = Scheduler(engine, interval_seconds=0.01, max_cycles=3, on_result=results.append)

        assert await asyncio.wait_for(scheduler.run(), timeout=5) == 3
        assert engine.calls == 3
        assert len(results) == 3
        assert scheduler.last_result is results[-1]

    @pytest.mark.asyncio
    async def test_exception_does_not_stop_the_loop(self) -> None:
        engine = FakeEngine(fail_on={1})
        scheduler = Scheduler(engine, interval_seconds=0.01, max_cycles=2)

        await asyncio.wait_for(scheduler.run(), timeout=5)

        assert engine.calls == 2
        assert scheduler.failures == 1
        assert scheduler.last_result is not None

    @pytest.mark.asyncio
    async def test_manual_trigger_skips_the_wait(self) -> None:
        engine = FakeEngine()
        scheduler = Scheduler(engine, interval_seconds=3600, run_immediately=False, max_cycles=1)
        task = asyncio.create_task(scheduler.run())
        await asyncio.sleep(0.01)
        assert engine.calls == 0

        assert scheduler.request_run() is True
        await asyncio.wait_for(task, timeout=5)
        assert engine.calls == 1

    @pytest.mark.asyncio
    async def test_trigger_rejected_while_busy(self) -> None:
        engine = FakeEngine(blocking=True)
        scheduler = Scheduler(engine, interval_seconds=3600, max_cycles=1)
        task = asyncio.create_task(scheduler.run())

        await _wait_until(engine.started.is_set)
        assert scheduler.busy
        assert scheduler.request_run() is False

        engine.release.set()
        await asyncio.wait_for(task, timeout=5)
        assert engine.calls == 1
        assert not scheduler.busy

    @pytest.mark.asyncio
    async def test_stop_ends_the_loop(self) -> None:
        engine = FakeEngine()
        scheduler = Scheduler(engine, interval_seconds=3600)
        task = asyncio.create_task(scheduler.run())

        await _wait_until(lambda: scheduler.cycles_run == 1)
        scheduler.stop()

        assert await asyncio.wait_for(task, timeout=5) == 1
        assert engine.calls == 1

    @pytest.mark.asyncio
    async def test_stop_during_cycle_finishes_it(self) -> None:
        engine = FakeEngine(blocking=True)
        scheduler = Scheduler(engine, interval_seconds=0.01)
        task = asyncio.create_task(scheduler.run())

        await _wait_until(engine.started.is_set)
        scheduler.stop()
        engine.release.set()

        assert await asyncio.wait_for(task, timeout=5) == 1


class TestValidation:
    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            Scheduler(FakeEngine(), interval_seconds=0)

    def test_max_cycles_not_negative(self) -> None:
        with pytest.raises(ValueError):
            Scheduler(FakeEngine(), interval_seconds=1, max_cycles=-1)
