"""Infrastructure layer for the site auto-enhancer.

Re-exports the public API surface for convenience::

    from site_autoenhance.infrastructure import (
        FileArtifactStore, HistoryLog, GitPublisher, RuleRegistry,
        EnhancerConfig, load_config,
    )
"""

from site_autoenhance.infrastructure.artifact_store import (
    ArtifactStore,
    FileArtifactStore,
    atomic_write_text,
)
from site_autoenhance.infrastructure.config import (
    BreakerConfig,
    EnhancerConfig,
    PublisherConfig,
    SchedulerConfig,
    default_config,
    load_config,
)
from site_autoenhance.infrastructure.history_log import (
    HistoryEntry,
    HistoryLog,
    count_in_window,
)
from site_autoenhance.infrastructure.publisher import (
    CommitAndPush,
    GitPublisher,
    NullPublisher,
    Publisher,
    PublishStrategy,
    RebaseAndPush,
    RetryPolicy,
    build_publisher,
)
from site_autoenhance.infrastructure.registry import Rule, RuleRegistry

__all__ = [
    # Artifact store
    "ArtifactStore",
    "FileArtifactStore",
    "atomic_write_text",
    # Config
    "BreakerConfig",
    "EnhancerConfig",
    "PublisherConfig",
    "SchedulerConfig",
    "default_config",
    "load_config",
    # History
    "HistoryEntry",
    "HistoryLog",
    "count_in_window",
    # Publisher
    "CommitAndPush",
    "GitPublisher",
    "NullPublisher",
    "Publisher",
    "PublishStrategy",
    "RebaseAndPush",
    "RetryPolicy",
    "build_publisher",
    # Registry
    "Rule",
    "RuleRegistry",
]
