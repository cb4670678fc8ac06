"""Shared fixtures for the site auto-enhancer test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from site_autoenhance.domain.enums import ArtifactType
from site_autoenhance.domain.values import ArtifactSpec, CategorySpec, MutationRecord
from site_autoenhance.infrastructure.config import (
    BreakerConfig,
    EnhancerConfig,
    PublisherConfig,
)
from site_autoenhance.infrastructure.history_log import HistoryLog
from site_autoenhance.testing import FixedClock, InMemoryArtifactStore, RecordingPublisher

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

STYLE_CSS = """body {
  margin: 0;
  font-family: 'Lato', sans-serif;
}

.section-header h2 {
  font-size: 2rem;
}

.collection-item:hover {
  transform: translateY(-4px);
}
"""

INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Aurum Jewellers</title>
</head>
<body>
    <h1>Welcome</h1>
</body>
</html>
"""


def _records_before(
    now: datetime,
    minutes_ago: list[float],
    artifact: str = "css/style.css",
) -> list[MutationRecord]:
    return [
        MutationRecord(
            timestamp=now - timedelta(minutes=m),
            artifact=artifact,
            category="responsiveness",
            description=f"change {i}",
            edit_count=1,
        )
        for i, m in enumerate(sorted(minutes_ago, reverse=True))
    ]


# ---------------------------------------------------------------------------
# Value-object fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stylesheet() -> ArtifactSpec:
    return ArtifactSpec.for_path("css/style.css", weight=3.0)


@pytest.fixture
def responsiveness() -> CategorySpec:
    return CategorySpec("responsiveness", 2.0, frozenset({ArtifactType.STYLESHEET}))


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


# ---------------------------------------------------------------------------
# Engine collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore({"css/style.css": STYLE_CSS, "index.html": INDEX_HTML})


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def history(tmp_path) -> HistoryLog:
    return HistoryLog(tmp_path / "enhancement-log.json")


@pytest.fixture
def engine_config(stylesheet: ArtifactSpec, responsiveness: CategorySpec) -> EnhancerConfig:
    """One stylesheet, one category: every cycle is deterministic."""
    return EnhancerConfig(
        artifacts=(stylesheet,),
        categories=(responsiveness,),
        seed=7,
        breaker=BreakerConfig(threshold=5, window_seconds=3600),
        publisher=PublisherConfig(kind="none"),
    )


@pytest.fixture
def make_records():
    """Factory: ``make_records(now, [5, 10, 70])`` builds records that many
    minutes before *now*, oldest first."""
    return _records_before


@pytest.fixture
def style_css() -> str:
    return STYLE_CSS


@pytest.fixture
def index_html() -> str:
    return INDEX_HTML
