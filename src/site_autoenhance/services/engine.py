"""Mutation engine: one enhancement cycle end to end.

The cycle is::

    read history -> rate-limit check -> select artifact -> select category
    -> read content -> build edits -> apply -> write back -> record
    -> publish -> evaluate circuit breaker

Every step that can fail is mapped to a :class:`CycleOutcome`; only
:class:`ConfigurationError` escapes :meth:`MutationEngine.run_cycle`.  The
artifact is written once, after all edits applied in memory, and the history
entry is appended before publishing so the rate limit never under-counts.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import numpy as np

from site_autoenhance.domain.enums import BreakerState, CycleOutcome
from site_autoenhance.domain.exceptions import (
    ArtifactUnavailable,
    CircuitBreakerToggleFailure,
    HistoryLogError,
    PublishFailure,
)
from site_autoenhance.domain.values import MutationRecord, utc_now
from site_autoenhance.infrastructure.artifact_store import ArtifactStore, FileArtifactStore
from site_autoenhance.infrastructure.config import EnhancerConfig
from site_autoenhance.infrastructure.history_log import HistoryLog
from site_autoenhance.infrastructure.publisher import Publisher, build_publisher
from site_autoenhance.infrastructure.registry import RuleRegistry
from site_autoenhance.services.circuit_breaker import BreakerTransition, CircuitBreaker
from site_autoenhance.services.patching import apply_edits
from site_autoenhance.services.rules import build_edits, default_registry
from site_autoenhance.services.selection import select_artifact, select_category

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


# ===================================================================== #
#  Cycle Result                                                          #
# ===================================================================== #


@dataclass
class CycleResult:
    """Captures the outcome of one enhancement cycle.

    Attributes
    ----------
    outcome:
        What the cycle ended with.
    artifact:
        Logical path of the selected artifact, if one was selected.
    category:
        Name of the selected category, if one was selected.
    description:
        Summary of the applied change (empty unless mutated).
    edit_count:
        Edit operations that changed the content.
    published:
        Whether the mutation reached the publisher successfully.
    breaker_state:
        Site state after the breaker evaluation.
    transition:
        The breaker transition performed this cycle, if any.
    timestamp:
        Clock reading at the start of the cycle.
    elapsed_seconds:
        Wall-clock duration of the cycle.
    error:
        Message of the failure that shaped the outcome, if any.
    """

    outcome: CycleOutcome
    artifact: str | None = None
    category: str | None = None
    description: str = ""
    edit_count: int = 0
    published: bool = False
    breaker_state: BreakerState = BreakerState.NORMAL
    transition: BreakerTransition | None = None
    timestamp: datetime | None = None
    elapsed_seconds: float = 0.0
    error: str = ""

    @property
    def mutated(self) -> bool:
        return self.outcome is CycleOutcome.MUTATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "artifact": self.artifact,
            "category": self.category,
            "description": self.description,
            "edits": self.edit_count,
            "published": self.published,
            "breaker_state": self.breaker_state.value,
            "transition": self.transition.to_dict() if self.transition else None,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "error": self.error,
        }


# ===================================================================== #
#  Mutation Engine                                                       #
# ===================================================================== #


class MutationEngine:
    """Runs enhancement cycles against a site.

    Parameters
    ----------
    config:
        Validated configuration.
    store:
        Artifact store; defaults to files under ``config.root_dir``.
    history:
        History log; defaults to ``config.history_file``.
    publisher:
        Publisher; defaults to the one ``config.publisher`` describes.
    registry:
        Rule registry; defaults to the built-in rules.
    rng:
        Random source; defaults to ``np.random.default_rng(config.seed)``.
    clock:
        Returns the current aware datetime.
    """

    def __init__(
        self,
        config: EnhancerConfig,
        store: ArtifactStore | None = None,
        history: HistoryLog | None = None,
        publisher: Publisher | None = None,
        registry: RuleRegistry | None = None,
        rng: np.random.Generator | None = None,
        clock: Clock = utc_now,
    ) -> None:
        config.validate()
        self._config = config
        self._store = store if store is not None else FileArtifactStore(config.root)
        self._history = history if history is not None else HistoryLog(config.history_file)
        self._publisher = (
            publisher if publisher is not None else build_publisher(config.publisher, config.root)
        )
        self._registry = registry if registry is not None else default_registry()
        self._rng = rng if rng is not None else np.random.default_rng(config.seed)
        self._clock = clock
        self._breaker = CircuitBreaker(self._store, config.breaker)

    @property
    def config(self) -> EnhancerConfig:
        return self._config

    @property
    def history(self) -> HistoryLog:
        return self._history

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def store(self) -> ArtifactStore:
        return self._store

    # -- Cycle -------------------------------------------------------------

    def run_cycle(self) -> CycleResult:
        """Run one enhancement cycle and report how it ended."""
        started = time.monotonic()
        now = self._clock()
        result = self._mutate(now)
        result.timestamp = now
        result.elapsed_seconds = time.monotonic() - started
        logger.info(
            "Cycle finished: %s (artifact=%s, category=%s, edits=%d, published=%s)",
            result.outcome.value,
            result.artifact,
            result.category,
            result.edit_count,
            result.published,
        )
        return result

    def _mutate(self, now: datetime) -> CycleResult:
        try:
            history = self._history.records()
        except HistoryLogError as exc:
            logger.error("History log unavailable: %s", exc)
            return CycleResult(
                outcome=CycleOutcome.HISTORY_UNAVAILABLE,
                breaker_state=self._breaker.current_state(),
                error=str(exc),
            )

        if (
            self._breaker.current_state() is BreakerState.MAINTENANCE
            or self._breaker.desired_state(history, now) is BreakerState.MAINTENANCE
        ):
            logger.warning(
                "Rate limit reached: %d mutation(s) in the last %ss; skipping mutation",
                self._breaker.recent_count(history, now),
                self._config.breaker.window_seconds,
            )
            result = CycleResult(outcome=CycleOutcome.RATE_LIMITED)
            self._evaluate_breaker(history, now, result)
            return result

        artifact = select_artifact(
            self._config.artifacts, history, self._config.selection_policy, self._rng
        )
        category = select_category(artifact, self._config.categories, self._rng)
        result = CycleResult(
            outcome=CycleOutcome.NO_CHANGE,
            artifact=artifact.path,
            category=category.name,
            breaker_state=self._breaker.current_state(),
        )
        if category.is_noop:
            result.outcome = CycleOutcome.NO_CATEGORY
            return result

        try:
            content = self._store.read(artifact.path)
        except ArtifactUnavailable as exc:
            logger.error(
                "Cannot read %s for %s: %s", artifact.path, category.name, exc
            )
            result.outcome = CycleOutcome.ARTIFACT_UNAVAILABLE
            result.error = str(exc)
            return result

        plan = build_edits(self._registry, artifact, content, category)
        if plan.is_empty:
            logger.info("No %s edits needed for %s", category.name, artifact.path)
            return result

        applied = apply_edits(content, plan.edits)
        if not applied.changed or applied.content == content:
            logger.info(
                "%s edits for %s left the content unchanged", category.name, artifact.path
            )
            return result

        try:
            self._store.write(artifact.path, applied.content)
        except ArtifactUnavailable as exc:
            logger.error(
                "Cannot write %s after %s edits: %s", artifact.path, category.name, exc
            )
            result.outcome = CycleOutcome.ARTIFACT_UNAVAILABLE
            result.error = str(exc)
            return result

        record = MutationRecord(
            timestamp=now,
            artifact=artifact.path,
            category=category.name,
            description=plan.description,
            edit_count=applied.applied_count,
        )
        result.outcome = CycleOutcome.MUTATED
        result.description = plan.description
        result.edit_count = applied.applied_count
        try:
            stored = self._history.append(record)
        except HistoryLogError as exc:
            # The artifact is already written; the cycle still counts as a
            # mutation but the rate limit cannot see it.
            logger.error("Mutated %s but could not record it: %s", artifact.path, exc)
            result.error = str(exc)
            history_after = history
        else:
            history_after = [*history, stored]

        result.published = self._publish(
            [artifact.path], self._config.publisher.message(plan.description)
        )
        self._evaluate_breaker(history_after, now, result)
        return result

    # -- Helpers -----------------------------------------------------------

    def _publish(self, paths: list[str], message: str) -> bool:
        try:
            self._publisher.publish(paths, message)
        except PublishFailure as exc:
            logger.warning(
                "Publish of %s failed after %d attempt(s); local change kept: %s",
                paths,
                exc.attempts,
                exc,
            )
            return False
        return True

    def _evaluate_breaker(
        self,
        history: list[MutationRecord],
        now: datetime,
        result: CycleResult,
    ) -> None:
        try:
            transition = self._breaker.evaluate(history, now)
        except CircuitBreakerToggleFailure as exc:
            logger.warning(
                "Circuit breaker could not switch to %s: %s", exc.target_state, exc
            )
            transition = None
        if transition is not None:
            result.transition = transition
            self._publish(
                list(transition.changed_paths),
                self._config.publisher.message(
                    f"maintenance mode {transition.to_state.value}"
                ),
            )
        result.breaker_state = self._breaker.current_state()

    def __repr__(self) -> str:
        return (
            f"<MutationEngine artifacts={len(self._config.artifacts)} "
            f"categories={len(self._config.categories)} "
            f"policy={self._config.selection_policy.value}>"
        )
