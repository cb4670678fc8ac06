"""Domain exceptions for the site auto-enhancer.

All domain-specific exceptions inherit from ``SiteEnhanceError`` so callers
can catch the full family with a single ``except`` clause when needed.
A category that produces no edits is *not* an error; the engine reports it
as a :class:`~site_autoenhance.domain.enums.CycleOutcome`.
"""

from __future__ import annotations

from typing import Any


class SiteEnhanceError(Exception):
    """Base exception for all auto-enhancer errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class ConfigurationError(SiteEnhanceError, ValueError):
    """Raised when the configuration cannot drive the engine.

    Empty artifact or category sets, non-positive weights and unreadable
    configuration files all end up here.  Fatal at startup.
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        field_name: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field_name = field_name


class ArtifactUnavailable(SiteEnhanceError):
    """Raised when an artifact cannot be read or written.

    The engine aborts the current cycle and lets the scheduler retry on the
    next interval.
    """

    def __init__(
        self,
        message: str = "Artifact unavailable",
        path: str = "",
        operation: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path
        self.operation = operation


class HistoryLogError(SiteEnhanceError):
    """Raised when the persisted history log is unreadable or malformed."""

    def __init__(
        self,
        message: str = "History log unavailable",
        path: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


class PublishFailure(SiteEnhanceError):
    """Raised when every publish attempt allowed by the retry policy failed.

    The local artifact write and the history entry are kept.
    """

    def __init__(
        self,
        message: str = "Publish failed",
        attempts: int = 0,
        paths: tuple[str, ...] = (),
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.attempts = attempts
        self.paths = paths


class CircuitBreakerToggleFailure(SiteEnhanceError):
    """Raised when maintenance mode cannot be switched on or off.

    Example: the backup of the entry page is missing when restoring.  The
    site stays in its last known state.
    """

    def __init__(
        self,
        message: str = "Circuit breaker toggle failed",
        target_state: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.target_state = target_state
