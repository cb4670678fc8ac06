"""Persisted, append-only history of mutations.

The log is a JSON array of objects::

    [
      {
        "timestamp": "2026-03-01T08:00:00+00:00",
        "artifact": "css/style.css",
        "category": "responsiveness",
        "description": "Added responsive layout ...",
        "edits": 1
      }
    ]

It is read in full and rewritten in full (atomically) on every append.  A
single writer is assumed.  Entries are validated with pydantic on load so a
hand-edited or truncated file is reported instead of silently dropped.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from site_autoenhance.domain.exceptions import HistoryLogError
from site_autoenhance.domain.values import MutationRecord
from site_autoenhance.infrastructure.artifact_store import atomic_write_text

logger = logging.getLogger(__name__)


# -- Persisted schema --------------------------------------------------------


class HistoryEntry(BaseModel):
    """On-disk schema of one history entry."""

    timestamp: datetime = Field(description="ISO-8601 time of the mutation")
    artifact: str = Field(min_length=1, description="Logical path of the artifact")
    category: str = Field(description="Improvement category applied")
    description: str = Field(default="", description="Human-readable summary")
    edits: int = Field(default=0, ge=0, description="Number of edit operations applied")

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_record(self) -> MutationRecord:
        return MutationRecord(
            timestamp=self.timestamp,
            artifact=self.artifact,
            category=self.category,
            description=self.description,
            edit_count=self.edits,
        )


# -- Window helpers ----------------------------------------------------------


def count_in_window(
    records: Iterable[MutationRecord],
    now: datetime,
    window: timedelta,
) -> int:
    """Count records with ``timestamp > now - window``.

    Future-dated records (left by a clock that went backwards) are counted.
    """
    cutoff = now - window
    return sum(1 for r in records if r.timestamp > cutoff)


# -- HistoryLog --------------------------------------------------------------


class HistoryLog:
    """Append-only mutation history persisted as a JSON array.

    Parameters
    ----------
    path:
        Location of the JSON file.  A missing file is an empty log.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def records(self) -> list[MutationRecord]:
        """Load every record, oldest first.

        Raises :class:`HistoryLogError` when the file exists but cannot be
        read or does not match the schema.
        """
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "[]")
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise HistoryLogError(
                f"Cannot read history log {self._path}: {exc}", path=str(self._path)
            ) from exc
        if not isinstance(raw, list):
            raise HistoryLogError(
                f"History log {self._path} must hold a JSON array",
                path=str(self._path),
            )
        try:
            return [HistoryEntry.model_validate(item).to_record() for item in raw]
        except ValidationError as exc:
            raise HistoryLogError(
                f"Malformed entry in history log {self._path}",
                path=str(self._path),
                details={"errors": exc.errors()},
            ) from exc

    def append(self, record: MutationRecord) -> MutationRecord:
        """Durably append *record* and return what was stored.

        A record older than the current last entry is stamped with that
        entry's timestamp so the log stays ordered.
        """
        records = self.records()
        if records and record.timestamp < records[-1].timestamp:
            logger.warning(
                "Clock went backwards (%s < %s); keeping history ordered",
                record.timestamp.isoformat(),
                records[-1].timestamp.isoformat(),
            )
            record = MutationRecord(
                timestamp=records[-1].timestamp,
                artifact=record.artifact,
                category=record.category,
                description=record.description,
                edit_count=record.edit_count,
            )
        records.append(record)
        payload = [r.to_dict() for r in records]
        try:
            atomic_write_text(self._path, json.dumps(payload, indent=2) + "\n")
        except OSError as exc:
            raise HistoryLogError(
                f"Cannot write history log {self._path}: {exc}", path=str(self._path)
            ) from exc
        logger.debug("History log now holds %d entries", len(records))
        return record

    def recent(self, limit: int = 20) -> list[MutationRecord]:
        """The newest *limit* records, newest first."""
        return list(reversed(self.records()))[:limit]

    def count_since(self, cutoff: datetime) -> int:
        return sum(1 for r in self.records() if r.timestamp > cutoff)

    def __len__(self) -> int:
        return len(self.records())

    def __repr__(self) -> str:
        return f"<HistoryLog path={str(self._path)!r}>"
