"""Artifact and category selection.

Two artifact policies are supported:

``weighted``
    Draw ``r`` uniformly from ``[0, total_weight)`` and walk the configured
    list subtracting each weight until the remainder drops to zero or below.
``oldest-first``
    Deterministic: the artifact whose most recent mutation is oldest wins
    (never-mutated artifacts count as mutated at the epoch).  Ties keep the
    configuration order.

Categories always use the weighted draw, restricted to the categories that
apply to the chosen artifact's type.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import TypeVar

import numpy as np

from site_autoenhance.domain.enums import SelectionPolicy
from site_autoenhance.domain.exceptions import ConfigurationError
from site_autoenhance.domain.values import (
    NO_OP_CATEGORY,
    ArtifactSpec,
    CategorySpec,
    MutationRecord,
)

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

T = TypeVar("T")


def weighted_choice(
    items: Sequence[T],
    weights: Sequence[float],
    rng: np.random.Generator,
) -> T:
    """Pick one of *items* with probability proportional to *weights*.

    Raises ``ValueError`` when there is nothing to choose from.
    """
    if not items or len(items) != len(weights):
        raise ValueError("weighted_choice needs one positive weight per item")
    total = float(sum(weights))
    if total <= 0:
        raise ValueError("weighted_choice needs a positive total weight")

    remainder = rng.random() * total
    for item, weight in zip(items, weights):
        remainder -= weight
        if remainder <= 0:
            return item
    # Floating-point residue: the draw landed on the far edge.
    return items[-1]


def last_mutated(records: Iterable[MutationRecord]) -> dict[str, datetime]:
    """Map each artifact path to the timestamp of its latest mutation."""
    latest: dict[str, datetime] = {}
    for record in records:
        seen = latest.get(record.artifact)
        if seen is None or record.timestamp > seen:
            latest[record.artifact] = record.timestamp
    return latest


def select_artifact(
    artifacts: Sequence[ArtifactSpec],
    history: Sequence[MutationRecord],
    policy: SelectionPolicy,
    rng: np.random.Generator,
) -> ArtifactSpec:
    """Choose the next artifact to mutate.

    Raises :class:`ConfigurationError` when *artifacts* is empty.
    """
    if not artifacts:
        raise ConfigurationError("No target artifacts configured", field_name="artifacts")

    if policy is SelectionPolicy.OLDEST_FIRST:
        latest = last_mutated(history)
        ordered = sorted(artifacts, key=lambda a: latest.get(a.path, EPOCH))
        chosen = ordered[0]
    else:
        chosen = weighted_choice(artifacts, [a.weight for a in artifacts], rng)

    logger.debug("Selected artifact %s (policy=%s)", chosen.path, policy.value)
    return chosen


def applicable_categories(
    artifact: ArtifactSpec,
    categories: Sequence[CategorySpec],
) -> list[CategorySpec]:
    """Categories with positive weight whose filter accepts *artifact*."""
    return [c for c in categories if c.applies(artifact.artifact_type)]


def select_category(
    artifact: ArtifactSpec,
    categories: Sequence[CategorySpec],
    rng: np.random.Generator,
) -> CategorySpec:
    """Choose an improvement category for *artifact*.

    Fails closed: returns :data:`NO_OP_CATEGORY` when nothing applies.
    """
    candidates = applicable_categories(artifact, categories)
    if not candidates:
        logger.info(
            "No category applies to %s (%s)",
            artifact.path,
            artifact.artifact_type.value,
        )
        return NO_OP_CATEGORY
    chosen = weighted_choice(candidates, [c.weight for c in candidates], rng)
    logger.debug("Selected category %s for %s", chosen.name, artifact.path)
    return chosen
