"""Domain enumerations for the site auto-enhancer.

These enums capture the fixed vocabularies used across the domain layer:
artifact types, circuit-breaker states, artifact selection policies, edit
anchoring positions and the outcomes a mutation cycle can end in.
"""

from __future__ import annotations

from enum import Enum


class ArtifactType(Enum):
    """Kind of text artifact the engine can mutate."""

    STYLESHEET = "stylesheet"
    SCRIPT = "script"
    MARKUP = "markup"

    @classmethod
    def from_path(cls, path: str) -> ArtifactType:
        """Infer the artifact type from a file extension.

        Raises ``ValueError`` for extensions the engine does not handle.
        """
        suffix = path.rsplit(".", 1)[-1].lower() if "." in path else ""
        try:
            return _SUFFIX_TYPES[suffix]
        except KeyError:
            raise ValueError(
                f"Cannot infer artifact type from '{path}'"
            ) from None


_SUFFIX_TYPES = {
    "css": ArtifactType.STYLESHEET,
    "js": ArtifactType.SCRIPT,
    "mjs": ArtifactType.SCRIPT,
    "html": ArtifactType.MARKUP,
    "htm": ArtifactType.MARKUP,
}


class BreakerState(Enum):
    """Circuit-breaker states derived from the mutation rate."""

    NORMAL = "normal"
    MAINTENANCE = "maintenance"


class SelectionPolicy(Enum):
    """How the engine picks the next artifact to mutate."""

    WEIGHTED = "weighted"  # weighted random over static weights
    OLDEST_FIRST = "oldest-first"  # least recently mutated wins


class AnchorPosition(Enum):
    """Where an insertion lands relative to a located pattern."""

    BEFORE = "before"
    AFTER = "after"


class Occurrence(Enum):
    """Which match of a pattern an anchor refers to."""

    FIRST = "first"
    LAST = "last"


class CycleOutcome(Enum):
    """Terminal outcome of a single mutation cycle."""

    MUTATED = "mutated"
    NO_CHANGE = "no-change"
    NO_CATEGORY = "no-category"
    ARTIFACT_UNAVAILABLE = "artifact-unavailable"
    HISTORY_UNAVAILABLE = "history-unavailable"
    RATE_LIMITED = "rate-limited"
