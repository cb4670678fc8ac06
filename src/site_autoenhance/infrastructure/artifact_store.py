"""Artifact storage.

:class:`ArtifactStore` is the read/write port the engine and the circuit
breaker depend on.  :class:`FileArtifactStore` backs it with files below a
site root directory.  Writes go to a temporary file in the target directory
and are moved into place with ``os.replace``; a failed write therefore never
leaves a half-written artifact behind.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from site_autoenhance.domain.exceptions import ArtifactUnavailable

logger = logging.getLogger(__name__)


def _target_mode(path: Path) -> int:
    """Permission bits for *path*: kept from the existing file, else from the umask."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def atomic_write_text(path: Path, content: str) -> None:
    """Write *content* to *path* via a sibling temp file and ``os.replace``.

    ``mkstemp`` creates the temp file owner-only; it takes the target's
    permission bits before it is moved into place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _target_mode(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


class ArtifactStore(ABC):
    """Read/write access to named text artifacts by logical path."""

    @abstractmethod
    def read(self, path: str) -> str:
        """Return the artifact's content.  Raises :class:`ArtifactUnavailable`."""

    @abstractmethod
    def write(self, path: str, content: str) -> None:
        """Replace the artifact's content.  Raises :class:`ArtifactUnavailable`."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """True when the artifact is present."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the artifact.  Raises :class:`ArtifactUnavailable`."""


class FileArtifactStore(ArtifactStore):
    """Artifacts stored as UTF-8 files under *root*.

    Logical paths are relative to *root* and may not escape it.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path:
        """Map a logical path to a filesystem path inside the root."""
        candidate = (self._root / path).resolve()
        if candidate != self._root and self._root not in candidate.parents:
            raise ArtifactUnavailable(
                f"Artifact path '{path}' escapes the site root",
                path=path,
                operation="resolve",
            )
        return candidate

    def read(self, path: str) -> str:
        target = self.resolve(path)
        try:
            # newline="" keeps CRLF intact through a read/write round trip.
            with target.open(encoding="utf-8", newline="") as fh:
                return fh.read()
        except FileNotFoundError:
            raise ArtifactUnavailable(
                f"Artifact '{path}' not found", path=path, operation="read"
            ) from None
        except (OSError, UnicodeDecodeError) as exc:
            raise ArtifactUnavailable(
                f"Cannot read artifact '{path}': {exc}", path=path, operation="read"
            ) from exc

    def write(self, path: str, content: str) -> None:
        target = self.resolve(path)
        try:
            atomic_write_text(target, content)
        except OSError as exc:
            raise ArtifactUnavailable(
                f"Cannot write artifact '{path}': {exc}", path=path, operation="write"
            ) from exc
        logger.debug("Wrote %d chars to %s", len(content), target)

    def exists(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def delete(self, path: str) -> None:
        target = self.resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            raise ArtifactUnavailable(
                f"Artifact '{path}' not found", path=path, operation="delete"
            ) from None
        except OSError as exc:
            raise ArtifactUnavailable(
                f"Cannot delete artifact '{path}': {exc}", path=path, operation="delete"
            ) from exc

    def __repr__(self) -> str:
        return f"<FileArtifactStore root={str(self._root)!r}>"
