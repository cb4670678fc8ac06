"""Unattended scheduling of enhancement cycles.

:class:`Scheduler` runs cycles strictly one at a time on an asyncio loop.
The engine itself is synchronous (file and subprocess I/O), so each cycle is
handed to a worker thread with :func:`asyncio.to_thread`.  Between cycles
the loop waits for the interval to elapse or for a manual trigger, whichever
comes first.

``request_run``, ``stop`` and the loop share the event loop thread; call
them from coroutines or via ``loop.call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from site_autoenhance.services.engine import CycleResult, MutationEngine

logger = logging.getLogger(__name__)


class Scheduler:
    """Runs :meth:`MutationEngine.run_cycle` on an interval.

    Parameters
    ----------
    engine:
        The engine to drive.
    interval_seconds:
        Pause between the end of one cycle and the start of the next.
    run_immediately:
        Run the first cycle without waiting for the interval.
    max_cycles:
        Stop after this many cycles; ``None`` runs until :meth:`stop`.
    on_result:
        Called on the loop thread with each completed cycle's result.
    """

    def __init__(
        self,
        engine: MutationEngine,
        interval_seconds: float,
        run_immediately: bool = True,
        max_cycles: int | None = None,
        on_result: Callable[[CycleResult], None] | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
        if max_cycles is not None and max_cycles < 0:
            raise ValueError(f"max_cycles must be >= 0, got {max_cycles}")
        self._engine = engine
        self._interval = interval_seconds
        self._run_immediately = run_immediately
        self._max_cycles = max_cycles
        self._on_result = on_result
        self._wakeup = asyncio.Event()
        self._busy = False
        self._stopping = False
        self._cycles = 0
        self._failures = 0
        self._last_result: CycleResult | None = None

    @property
    def busy(self) -> bool:
        """True while a cycle is in flight."""
        return self._busy

    @property
    def cycles_run(self) -> int:
        return self._cycles

    @property
    def failures(self) -> int:
        """Cycles that raised instead of returning a result."""
        return self._failures

    @property
    def last_result(self) -> CycleResult | None:
        return self._last_result

    def request_run(self) -> bool:
        """Ask for a cycle now.  Rejected while a cycle is in flight."""
        if self._busy:
            logger.warning("Manual run rejected: a cycle is already in progress")
            return False
        logger.info("Manual run requested")
        self._wakeup.set()
        return True

    def stop(self) -> None:
        """End the loop once the current cycle (if any) completes."""
        logger.info("Scheduler stop requested")
        self._stopping = True
        self._wakeup.set()

    def _limit_reached(self) -> bool:
        return self._max_cycles is not None and self._cycles >= self._max_cycles

    async def run(self) -> int:
        """Run until stopped or ``max_cycles`` is reached; return cycles run."""
        logger.info(
            "Scheduler started (interval=%ss, run_immediately=%s, max_cycles=%s)",
            self._interval,
            self._run_immediately,
            self._max_cycles,
        )
        run_now = self._run_immediately
        while not self._stopping and not self._limit_reached():
            if not run_now:
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass
                self._wakeup.clear()
                if self._stopping:
                    break
            run_now = False
            await self._run_once()
        logger.info("Scheduler stopped after %d cycle(s)", self._cycles)
        return self._cycles

    async def _run_once(self) -> None:
        self._busy = True
        try:
            result = await asyncio.to_thread(self._engine.run_cycle)
        except Exception:
            self._failures += 1
            logger.exception("Enhancement cycle raised; continuing with the next interval")
            result = None
        finally:
            self._busy = False
            self._cycles += 1
            # Triggers that arrived mid-cycle were rejected.
            self._wakeup.clear()

        if result is not None:
            self._last_result = result
            if self._on_result is not None:
                self._on_result(result)

    def __repr__(self) -> str:
        return (
            f"<Scheduler interval={self._interval}s cycles={self._cycles} "
            f"busy={self._busy}>"
        )
