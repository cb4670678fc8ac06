"""Domain layer for the site auto-enhancer.

Re-exports the public value objects, edit operations, enumerations and
exceptions::

    from site_autoenhance.domain import ArtifactSpec, Insertion, end_of
"""

from site_autoenhance.domain.edits import (
    Anchor,
    ApplyResult,
    EditOperation,
    EditPlan,
    Insertion,
    LiteralMatcher,
    Matcher,
    OffsetAnchor,
    PatternAnchor,
    RegexMatcher,
    Replacement,
    after,
    before,
    end_of,
)
from site_autoenhance.domain.enums import (
    AnchorPosition,
    ArtifactType,
    BreakerState,
    CycleOutcome,
    Occurrence,
    SelectionPolicy,
)
from site_autoenhance.domain.exceptions import (
    ArtifactUnavailable,
    CircuitBreakerToggleFailure,
    ConfigurationError,
    HistoryLogError,
    PublishFailure,
    SiteEnhanceError,
)
from site_autoenhance.domain.values import (
    DEFAULT_CATEGORIES,
    NO_OP_CATEGORY,
    ArtifactSpec,
    CategorySpec,
    MutationRecord,
    utc_now,
)

__all__ = [
    # Edits
    "Anchor",
    "ApplyResult",
    "EditOperation",
    "EditPlan",
    "Insertion",
    "LiteralMatcher",
    "Matcher",
    "OffsetAnchor",
    "PatternAnchor",
    "RegexMatcher",
    "Replacement",
    "after",
    "before",
    "end_of",
    # Enums
    "AnchorPosition",
    "ArtifactType",
    "BreakerState",
    "CycleOutcome",
    "Occurrence",
    "SelectionPolicy",
    # Exceptions
    "ArtifactUnavailable",
    "CircuitBreakerToggleFailure",
    "ConfigurationError",
    "HistoryLogError",
    "PublishFailure",
    "SiteEnhanceError",
    # Values
    "DEFAULT_CATEGORIES",
    "NO_OP_CATEGORY",
    "ArtifactSpec",
    "CategorySpec",
    "MutationRecord",
    "utc_now",
]
