"""Configuration dataclasses for the site auto-enhancer.

Each config is a frozen ``dataclass`` with a ``validate()`` method that
raises :class:`~site_autoenhance.domain.exceptions.ConfigurationError` on
invalid combinations.  The engine receives one immutable
:class:`EnhancerConfig` at construction; nothing reads configuration from
module-level state.

Files are YAML (``.yml`` / ``.yaml``) or JSON::

    root_dir: .
    history_path: enhancement-log.json
    selection_policy: oldest-first
    artifacts:
      - {path: css/style.css, weight: 3}
      - {path: index.html, weight: 2}
    categories:
      - {name: responsiveness, weight: 2, applies_to: [stylesheet]}
    breaker: {threshold: 5, window_seconds: 3600}
    scheduler: {interval_seconds: 43200}
    publisher: {kind: git, branch: main}
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from site_autoenhance.domain.enums import ArtifactType, SelectionPolicy
from site_autoenhance.domain.exceptions import ConfigurationError
from site_autoenhance.domain.values import (
    DEFAULT_CATEGORIES,
    NO_OP_CATEGORY_NAME,
    ArtifactSpec,
    CategorySpec,
)


def _filtered(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    valid_keys = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in valid_keys}


# ===================================================================== #
#  Circuit breaker                                                       #
# ===================================================================== #

MAINTENANCE_PLACEHOLDER = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Back soon</title>
</head>
<body>
    <main style="text-align:center;padding:4rem 1rem;font-family:serif;">
        <h1>We are polishing things up</h1>
        <p>The site is briefly under maintenance. Please check back shortly.</p>
    </main>
</body>
</html>
"""


@dataclass(frozen=True)
class BreakerConfig:
    """Maintenance-mode circuit breaker.

    Attributes
    ----------
    threshold:
        Mutations within the trailing window that trip the breaker.
    window_seconds:
        Length of the trailing window.
    entry_artifact:
        Public entry page swapped for the placeholder.
    backup_path:
        Where the entry page is preserved while in maintenance.
    placeholder:
        Content served at the entry path during maintenance.
    """

    threshold: int = 5
    window_seconds: float = 3600.0
    entry_artifact: str = "index.html"
    backup_path: str = "index.backup.html"
    placeholder: str = MAINTENANCE_PLACEHOLDER

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)

    def validate(self) -> None:
        if self.threshold < 1:
            raise ConfigurationError(
                f"breaker.threshold must be >= 1, got {self.threshold}",
                field_name="breaker.threshold",
            )
        if self.window_seconds <= 0:
            raise ConfigurationError(
                f"breaker.window_seconds must be > 0, got {self.window_seconds}",
                field_name="breaker.window_seconds",
            )
        if not self.entry_artifact or not self.backup_path:
            raise ConfigurationError(
                "breaker.entry_artifact and breaker.backup_path must not be empty",
                field_name="breaker",
            )
        if self.entry_artifact == self.backup_path:
            raise ConfigurationError(
                "breaker.backup_path must differ from breaker.entry_artifact",
                field_name="breaker.backup_path",
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BreakerConfig:
        cfg = cls(**_filtered(cls, data))
        cfg.validate()
        return cfg


# ===================================================================== #
#  Scheduler                                                             #
# ===================================================================== #


@dataclass(frozen=True)
class SchedulerConfig:
    """Unattended scheduling.

    Attributes
    ----------
    interval_seconds:
        Pause between cycles (default: 12 hours).
    run_immediately:
        Run one cycle as soon as the scheduler starts.
    """

    interval_seconds: float = 12 * 60 * 60.0
    run_immediately: bool = True

    def validate(self) -> None:
        if self.interval_seconds <= 0:
            raise ConfigurationError(
                f"scheduler.interval_seconds must be > 0, got {self.interval_seconds}",
                field_name="scheduler.interval_seconds",
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchedulerConfig:
        cfg = cls(**_filtered(cls, data))
        cfg.validate()
        return cfg


# ===================================================================== #
#  Publisher                                                             #
# ===================================================================== #

_VALID_PUBLISHER_KINDS = frozenset({"git", "none"})


@dataclass(frozen=True)
class PublisherConfig:
    """How mutations are published.

    Attributes
    ----------
    kind:
        ``git`` to commit and push, ``none`` to only log.
    commit_prefix:
        Prepended to every commit message.
    timeout_seconds:
        Bound on each publish command.
    max_attempts:
        Attempts including the first; later attempts use the broader
        strategy.
    backoff_seconds:
        Base delay between attempts.
    remote, branch:
        Push target.
    """

    kind: str = "git"
    commit_prefix: str = "Auto-enhance:"
    timeout_seconds: float = 60.0
    max_attempts: int = 2
    backoff_seconds: float = 5.0
    remote: str = "origin"
    branch: str = "main"

    def validate(self) -> None:
        if self.kind not in _VALID_PUBLISHER_KINDS:
            raise ConfigurationError(
                f"publisher.kind must be one of {sorted(_VALID_PUBLISHER_KINDS)}, "
                f"got '{self.kind}'",
                field_name="publisher.kind",
            )
        if self.timeout_seconds <= 0:
            raise ConfigurationError(
                f"publisher.timeout_seconds must be > 0, got {self.timeout_seconds}",
                field_name="publisher.timeout_seconds",
            )
        if self.max_attempts < 1:
            raise ConfigurationError(
                f"publisher.max_attempts must be >= 1, got {self.max_attempts}",
                field_name="publisher.max_attempts",
            )
        if self.backoff_seconds < 0:
            raise ConfigurationError(
                f"publisher.backoff_seconds must be >= 0, got {self.backoff_seconds}",
                field_name="publisher.backoff_seconds",
            )

    def message(self, description: str) -> str:
        return f"{self.commit_prefix} {description}".strip()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublisherConfig:
        cfg = cls(**_filtered(cls, data))
        cfg.validate()
        return cfg


# ===================================================================== #
#  Top-level configuration                                               #
# ===================================================================== #

DEFAULT_ARTIFACTS: tuple[ArtifactSpec, ...] = (
    ArtifactSpec.for_path("css/style.css", weight=3.0),
    ArtifactSpec.for_path("js/script.js", weight=2.0),
    ArtifactSpec.for_path("index.html", weight=2.0),
    ArtifactSpec.for_path("translate.js", weight=1.0),
)


@dataclass(frozen=True)
class EnhancerConfig:
    """Everything the engine, scheduler and publisher need.

    Attributes
    ----------
    root_dir:
        Site root; artifact paths are relative to it.
    history_path:
        History log location, relative to *root_dir* unless absolute.
    artifacts:
        Target artifacts with weights and declared types.
    categories:
        Improvement categories with weights and applicability.
    selection_policy:
        ``weighted`` or ``oldest-first``.
    seed:
        Seed for the random source; ``None`` draws fresh entropy.
    """

    root_dir: str = "."
    history_path: str = "enhancement-log.json"
    artifacts: tuple[ArtifactSpec, ...] = DEFAULT_ARTIFACTS
    categories: tuple[CategorySpec, ...] = DEFAULT_CATEGORIES
    selection_policy: SelectionPolicy = SelectionPolicy.OLDEST_FIRST
    seed: int | None = None
    breaker: BreakerConfig = field(default_factory=BreakerConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    publisher: PublisherConfig = field(default_factory=PublisherConfig)

    def __post_init__(self) -> None:
        # frozen=True prevents normal assignment; coerce lists from callers
        # into tuples so the config stays hashable.
        object.__setattr__(self, "artifacts", tuple(self.artifacts))
        object.__setattr__(self, "categories", tuple(self.categories))

    @property
    def root(self) -> Path:
        return Path(self.root_dir)

    @property
    def history_file(self) -> Path:
        path = Path(self.history_path)
        return path if path.is_absolute() else self.root / path

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` if the engine cannot run."""
        if not self.artifacts:
            raise ConfigurationError("No target artifacts configured", field_name="artifacts")
        if not self.categories:
            raise ConfigurationError(
                "No improvement categories configured", field_name="categories"
            )
        paths = [a.path for a in self.artifacts]
        if len(set(paths)) != len(paths):
            raise ConfigurationError("Duplicate artifact paths", field_name="artifacts")
        names = [c.name for c in self.categories]
        if len(set(names)) != len(names):
            raise ConfigurationError("Duplicate category names", field_name="categories")
        if NO_OP_CATEGORY_NAME in names:
            raise ConfigurationError(
                f"'{NO_OP_CATEGORY_NAME}' is reserved", field_name="categories"
            )
        if not any(c.weight > 0 for c in self.categories):
            raise ConfigurationError(
                "At least one category needs a positive weight", field_name="categories"
            )
        self.breaker.validate()
        self.scheduler.validate()
        self.publisher.validate()

    def with_overrides(self, **changes: Any) -> EnhancerConfig:
        """Return a validated copy with *changes* applied."""
        cfg = replace(self, **changes)
        cfg.validate()
        return cfg

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_dir": self.root_dir,
            "history_path": self.history_path,
            "artifacts": [
                {"path": a.path, "type": a.artifact_type.value, "weight": a.weight}
                for a in self.artifacts
            ],
            "categories": [
                {
                    "name": c.name,
                    "weight": c.weight,
                    "applies_to": sorted(t.value for t in c.applies_to),
                }
                for c in self.categories
            ],
            "selection_policy": self.selection_policy.value,
            "seed": self.seed,
            "breaker": self.breaker.to_dict(),
            "scheduler": self.scheduler.to_dict(),
            "publisher": self.publisher.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EnhancerConfig:
        try:
            kwargs: dict[str, Any] = {
                k: data[k] for k in ("root_dir", "history_path", "seed") if k in data
            }
            if "artifacts" in data:
                kwargs["artifacts"] = tuple(_artifact_from_dict(a) for a in data["artifacts"] or ())
            if "categories" in data:
                kwargs["categories"] = tuple(
                    _category_from_dict(c) for c in data["categories"] or ()
                )
            if "selection_policy" in data:
                kwargs["selection_policy"] = SelectionPolicy(data["selection_policy"])
            if "breaker" in data:
                kwargs["breaker"] = BreakerConfig.from_dict(data["breaker"] or {})
            if "scheduler" in data:
                kwargs["scheduler"] = SchedulerConfig.from_dict(data["scheduler"] or {})
            if "publisher" in data:
                kwargs["publisher"] = PublisherConfig.from_dict(data["publisher"] or {})
            cfg = cls(**kwargs)
        except ConfigurationError:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc
        cfg.validate()
        return cfg


def _artifact_from_dict(data: dict[str, Any]) -> ArtifactSpec:
    path = data["path"]
    weight = float(data.get("weight", 1.0))
    if "type" in data:
        return ArtifactSpec(path=path, artifact_type=ArtifactType(data["type"]), weight=weight)
    return ArtifactSpec.for_path(path, weight=weight)


def _category_from_dict(data: dict[str, Any]) -> CategorySpec:
    return CategorySpec(
        name=str(data["name"]),
        weight=float(data.get("weight", 1.0)),
        applies_to=frozenset(ArtifactType(t) for t in data.get("applies_to", ())),
    )


# ===================================================================== #
#  Loaders                                                               #
# ===================================================================== #


def default_config(root_dir: str | Path = ".") -> EnhancerConfig:
    """The built-in configuration rooted at *root_dir*."""
    cfg = EnhancerConfig(root_dir=str(root_dir))
    cfg.validate()
    return cfg


def load_config(path: str | Path) -> EnhancerConfig:
    """Load an :class:`EnhancerConfig` from a YAML or JSON file.

    A relative ``root_dir`` is resolved against the file's directory.
    """
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration {config_path}: {exc}") from exc

    try:
        if config_path.suffix.lower() in (".yml", ".yaml"):
            raw = yaml.safe_load(text)
        else:
            raw = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot parse configuration {config_path}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError("Top-level configuration must be a mapping")

    root = Path(raw.get("root_dir", "."))
    if not root.is_absolute():
        raw = {**raw, "root_dir": str(config_path.parent / root)}
    return EnhancerConfig.from_dict(raw)
