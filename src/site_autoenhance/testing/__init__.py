"""Public testing utilities for the site auto-enhancer.

Provides in-memory doubles for the artifact store, the publisher and the
clock so cycles can run without a filesystem, git or wall-clock time.
"""

from site_autoenhance.testing.fakes import FixedClock, InMemoryArtifactStore, RecordingPublisher

__all__ = ["FixedClock", "InMemoryArtifactStore", "RecordingPublisher"]
