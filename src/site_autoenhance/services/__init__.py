"""Service layer for the site auto-enhancer.

Re-exports public service types for convenient top-level access::

    from site_autoenhance.services import (
        apply_edits, build_edits, default_registry,
        select_artifact, select_category,
        CircuitBreaker, breaker_state,
        MutationEngine, CycleResult, Scheduler,
    )
"""

from site_autoenhance.services.circuit_breaker import (
    BreakerTransition,
    CircuitBreaker,
    breaker_state,
)
from site_autoenhance.services.engine import CycleResult, MutationEngine
from site_autoenhance.services.patching import apply_edits, resolve_insertions
from site_autoenhance.services.rules import build_edits, default_registry
from site_autoenhance.services.scheduler import Scheduler
from site_autoenhance.services.selection import (
    applicable_categories,
    select_artifact,
    select_category,
    weighted_choice,
)

__all__ = [
    # Circuit breaker
    "BreakerTransition",
    "CircuitBreaker",
    "breaker_state",
    # Engine
    "CycleResult",
    "MutationEngine",
    # Patching
    "apply_edits",
    "resolve_insertions",
    # Rules
    "build_edits",
    "default_registry",
    # Scheduler
    "Scheduler",
    # Selection
    "applicable_categories",
    "select_artifact",
    "select_category",
    "weighted_choice",
]
