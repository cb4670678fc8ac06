"""In-memory doubles for the engine's ports.

Useful for tests and examples that should not touch the filesystem, spawn
git, or depend on the wall clock::

    store = InMemoryArtifactStore({"css/style.css": "body {}"})
    publisher = RecordingPublisher(fail_times=1)
    clock = FixedClock(datetime(2026, 3, 1, 12, tzinfo=timezone.utc))
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone

from site_autoenhance.domain.exceptions import ArtifactUnavailable, PublishFailure
from site_autoenhance.infrastructure.artifact_store import ArtifactStore
from site_autoenhance.infrastructure.publisher import Publisher


class InMemoryArtifactStore(ArtifactStore):
    """Artifacts kept in a dict.

    Paths listed in *fail_reads* / *fail_writes* raise
    :class:`ArtifactUnavailable` on the matching operation.
    """

    def __init__(
        self,
        files: dict[str, str] | None = None,
        fail_reads: Iterable[str] = (),
        fail_writes: Iterable[str] = (),
    ) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.fail_reads = set(fail_reads)
        self.fail_writes = set(fail_writes)
        self.writes: list[str] = []

    def read(self, path: str) -> str:
        if path in self.fail_reads:
            raise ArtifactUnavailable(
                f"Simulated read failure for '{path}'", path=path, operation="read"
            )
        try:
            return self.files[path]
        except KeyError:
            raise ArtifactUnavailable(
                f"Artifact '{path}' not found", path=path, operation="read"
            ) from None

    def write(self, path: str, content: str) -> None:
        if path in self.fail_writes:
            raise ArtifactUnavailable(
                f"Simulated write failure for '{path}'", path=path, operation="write"
            )
        self.files[path] = content
        self.writes.append(path)

    def exists(self, path: str) -> bool:
        return path in self.files

    def delete(self, path: str) -> None:
        try:
            del self.files[path]
        except KeyError:
            raise ArtifactUnavailable(
                f"Artifact '{path}' not found", path=path, operation="delete"
            ) from None


class RecordingPublisher(Publisher):
    """Publisher that records calls.

    The first *fail_times* calls raise :class:`PublishFailure`; ``-1`` fails
    every call.
    """

    def __init__(self, fail_times: int = 0) -> None:
        self.fail_times = fail_times
        self.calls: list[tuple[tuple[str, ...], str]] = []
        self.published: list[tuple[tuple[str, ...], str]] = []

    def publish(self, paths: Sequence[str], message: str) -> None:
        self.calls.append((tuple(paths), message))
        if self.fail_times == -1 or len(self.calls) <= self.fail_times:
            raise PublishFailure(
                f"Simulated publish failure #{len(self.calls)}",
                attempts=1,
                paths=tuple(paths),
            )
        self.published.append((tuple(paths), message))


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        """Move forward by ``timedelta(**kwargs)`` and return the new time."""
        self.now = self.now + timedelta(**kwargs)
        return self.now
