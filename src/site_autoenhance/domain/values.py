"""Value objects for the site auto-enhancer.

All types here are frozen dataclasses -- immutable, compared by value.
They describe what the engine may touch (artifacts, categories) and what it
has done (mutation records).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .enums import ArtifactType

# ---------------------------------------------------------------------------
# ArtifactSpec
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ArtifactSpec:
    """A configured target artifact.

    ``path`` is the logical path relative to the site root and doubles as the
    artifact's identity.  ``weight`` is the relative selection probability
    under the weighted policy.
    """

    path: str
    artifact_type: ArtifactType
    weight: float = 1.0

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("artifact path must not be empty")
        if self.weight <= 0:
            raise ValueError(
                f"artifact weight must be > 0, got {self.weight} for '{self.path}'"
            )

    @classmethod
    def for_path(cls, path: str, weight: float = 1.0) -> ArtifactSpec:
        """Build a spec whose type is inferred from the file extension."""
        return cls(path=path, artifact_type=ArtifactType.from_path(path), weight=weight)


# ---------------------------------------------------------------------------
# CategorySpec
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategorySpec:
    """An improvement category with its weight and applicability filter."""

    name: str
    weight: float = 1.0
    applies_to: frozenset[ArtifactType] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError(
                f"category weight must be >= 0, got {self.weight} for '{self.name}'"
            )
        if not isinstance(self.applies_to, frozenset):
            object.__setattr__(self, "applies_to", frozenset(self.applies_to))

    def applies(self, artifact_type: ArtifactType) -> bool:
        return self.weight > 0 and artifact_type in self.applies_to

    @property
    def is_noop(self) -> bool:
        """True for the sentinel returned when nothing is applicable."""
        return self.name == NO_OP_CATEGORY_NAME


NO_OP_CATEGORY_NAME = "no-op"

NO_OP_CATEGORY = CategorySpec(name=NO_OP_CATEGORY_NAME, weight=0.0)

_CSS = ArtifactType.STYLESHEET
_JS = ArtifactType.SCRIPT
_HTML = ArtifactType.MARKUP

DEFAULT_CATEGORIES: tuple[CategorySpec, ...] = (
    CategorySpec("animation", 2.0, frozenset({_CSS, _JS})),
    CategorySpec("responsiveness", 2.0, frozenset({_CSS})),
    CategorySpec("performance", 1.5, frozenset({_CSS, _JS})),
    CategorySpec("accessibility", 2.0, frozenset({_JS, _HTML})),
    CategorySpec("visual-appeal", 1.0, frozenset({_CSS, _HTML})),
    CategorySpec("compliance", 1.0, frozenset({_HTML})),
    CategorySpec("error-fix", 1.0, frozenset({_JS})),
    CategorySpec("seo", 1.0, frozenset({_HTML})),
)


# ---------------------------------------------------------------------------
# MutationRecord
# ---------------------------------------------------------------------------


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MutationRecord:
    """One entry of the append-only history log."""

    timestamp: datetime
    artifact: str
    category: str
    description: str
    edit_count: int = 0

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            object.__setattr__(
                self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc)
            )
        if self.edit_count < 0:
            raise ValueError(f"edit_count must be >= 0, got {self.edit_count}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "artifact": self.artifact,
            "category": self.category,
            "description": self.description,
            "edits": self.edit_count,
        }
