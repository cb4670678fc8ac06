"""Maintenance-mode circuit breaker.

The breaker state is never stored as a flag.  The *desired* state is derived
from the history log (:func:`breaker_state`), and the *current* state is
derived from the site itself: the entry page is in maintenance exactly while
its backup copy exists.  Toggling is therefore idempotent and survives
restarts.

Entering maintenance::

    index.html          -> index.backup.html   (preserved)
    placeholder         -> index.html

Leaving maintenance restores the backup over the placeholder and deletes the
backup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from site_autoenhance.domain.enums import BreakerState
from site_autoenhance.domain.exceptions import (
    ArtifactUnavailable,
    CircuitBreakerToggleFailure,
)
from site_autoenhance.domain.values import MutationRecord
from site_autoenhance.infrastructure.artifact_store import ArtifactStore
from site_autoenhance.infrastructure.config import BreakerConfig
from site_autoenhance.infrastructure.history_log import count_in_window

logger = logging.getLogger(__name__)


def breaker_state(
    records: Iterable[MutationRecord],
    now: datetime,
    threshold: int,
    window: timedelta,
) -> BreakerState:
    """``MAINTENANCE`` iff at least *threshold* records fall in the trailing window."""
    if count_in_window(records, now, window) >= threshold:
        return BreakerState.MAINTENANCE
    return BreakerState.NORMAL


@dataclass(frozen=True)
class BreakerTransition:
    """A completed switch between breaker states.

    ``changed_paths`` lists the artifacts touched by the swap so the caller
    can publish them.
    """

    from_state: BreakerState
    to_state: BreakerState
    recent_count: int
    changed_paths: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "from": self.from_state.value,
            "to": self.to_state.value,
            "recent_count": self.recent_count,
            "changed_paths": list(self.changed_paths),
        }


class CircuitBreaker:
    """Swaps the public entry page for a placeholder while mutations are too frequent.

    Parameters
    ----------
    store:
        Store holding the entry page, its backup and the placeholder target.
    config:
        Threshold, window and paths.
    """

    def __init__(self, store: ArtifactStore, config: BreakerConfig) -> None:
        self._store = store
        self._config = config

    @property
    def config(self) -> BreakerConfig:
        return self._config

    def current_state(self) -> BreakerState:
        """State of the site as deployed: maintenance while the backup exists."""
        if self._store.exists(self._config.backup_path):
            return BreakerState.MAINTENANCE
        return BreakerState.NORMAL

    def recent_count(self, records: Iterable[MutationRecord], now: datetime) -> int:
        return count_in_window(records, now, self._config.window)

    def desired_state(self, records: Iterable[MutationRecord], now: datetime) -> BreakerState:
        return breaker_state(records, now, self._config.threshold, self._config.window)

    def evaluate(
        self,
        records: Iterable[MutationRecord],
        now: datetime,
    ) -> BreakerTransition | None:
        """Bring the site into the state the history calls for.

        Returns the transition performed, or ``None`` when the site is
        already in the desired state.  Raises
        :class:`CircuitBreakerToggleFailure` when the swap cannot be made.
        """
        records = list(records)
        count = self.recent_count(records, now)
        target = self.desired_state(records, now)
        logger.debug(
            "Breaker check: %d mutation(s) in the last %ss (threshold %d) -> %s",
            count,
            self._config.window_seconds,
            self._config.threshold,
            target.value,
        )
        return self._switch(target, count)

    def force(self, state: BreakerState) -> BreakerTransition | None:
        """Manually switch to *state*, regardless of the history."""
        return self._switch(state, recent_count=-1)

    # -- Internals ---------------------------------------------------------

    def _switch(self, target: BreakerState, recent_count: int) -> BreakerTransition | None:
        current = self.current_state()
        if current is target:
            return None
        if target is BreakerState.MAINTENANCE:
            paths = self._enter()
        else:
            paths = self._leave()
        logger.warning(
            "Circuit breaker %s -> %s (recent mutations: %s)",
            current.value,
            target.value,
            recent_count if recent_count >= 0 else "manual",
        )
        return BreakerTransition(
            from_state=current,
            to_state=target,
            recent_count=recent_count,
            changed_paths=paths,
        )

    def _enter(self) -> tuple[str, ...]:
        entry = self._config.entry_artifact
        backup = self._config.backup_path
        try:
            original = self._store.read(entry)
        except ArtifactUnavailable as exc:
            raise CircuitBreakerToggleFailure(
                f"Cannot enter maintenance: {exc}",
                target_state=BreakerState.MAINTENANCE.value,
            ) from exc

        try:
            self._store.write(backup, original)
        except ArtifactUnavailable as exc:
            raise CircuitBreakerToggleFailure(
                f"Cannot back up '{entry}' to '{backup}': {exc}",
                target_state=BreakerState.MAINTENANCE.value,
            ) from exc

        try:
            self._store.write(entry, self._config.placeholder)
        except ArtifactUnavailable as exc:
            # Entry page untouched; the backup must go so the derived state
            # stays NORMAL.
            try:
                self._store.delete(backup)
            except ArtifactUnavailable as cleanup_exc:
                logger.error("Stale backup '%s' left behind: %s", backup, cleanup_exc)
            raise CircuitBreakerToggleFailure(
                f"Cannot write maintenance placeholder to '{entry}': {exc}",
                target_state=BreakerState.MAINTENANCE.value,
            ) from exc
        return (entry, backup)

    def _leave(self) -> tuple[str, ...]:
        entry = self._config.entry_artifact
        backup = self._config.backup_path
        try:
            original = self._store.read(backup)
            self._store.write(entry, original)
        except ArtifactUnavailable as exc:
            raise CircuitBreakerToggleFailure(
                f"Cannot restore '{entry}' from '{backup}': {exc}",
                target_state=BreakerState.NORMAL.value,
            ) from exc

        try:
            self._store.delete(backup)
        except ArtifactUnavailable as exc:
            raise CircuitBreakerToggleFailure(
                f"Restored '{entry}' but cannot remove '{backup}': {exc}",
                target_state=BreakerState.NORMAL.value,
            ) from exc
        return (entry, backup)

    def __repr__(self) -> str:
        return (
            f"<CircuitBreaker threshold={self._config.threshold} "
            f"window={self._config.window_seconds}s entry={self._config.entry_artifact!r}>"
        )
