"""Apply an ordered batch of edit operations to a text artifact.

The algorithm is deliberately explicit about ordering:

1. Resolve every insertion anchor against the *pre-edit* content.
2. Apply insertions from the highest offset to the lowest.  Text inserted at
   a higher offset never moves a lower offset, so every precomputed anchor
   is still valid when its turn comes.
3. Apply replacements in batch order against the already-inserted content.
   Replacements locate their own targets, so they carry no offsets that
   insertions could invalidate.

The function is pure: callers compute the full result in memory and write it
back in one call.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from site_autoenhance.domain.edits import (
    ApplyResult,
    EditOperation,
    Insertion,
    Replacement,
)

logger = logging.getLogger(__name__)


def resolve_insertions(
    content: str,
    edits: Sequence[EditOperation],
) -> list[tuple[int, int, Insertion]]:
    """Return ``(offset, batch_index, insertion)`` for every anchored insertion.

    Insertions whose pattern anchor is absent are dropped.  An offset anchor
    outside the content raises ``ValueError`` before anything is applied.
    """
    resolved: list[tuple[int, int, Insertion]] = []
    for index, edit in enumerate(edits):
        if not isinstance(edit, Insertion):
            continue
        offset = edit.anchor.resolve(content)
        if offset is None:
            logger.debug("Insertion %d skipped: anchor %r not found", index, edit.anchor)
            continue
        resolved.append((offset, index, edit))
    return resolved


def apply_edits(content: str, edits: Sequence[EditOperation]) -> ApplyResult:
    """Apply *edits* to *content* and count the ones that changed something.

    Insertions sharing an offset keep their batch order in the output text:
    the later one is applied first, so the earlier one ends up in front.
    """
    resolved = resolve_insertions(content, edits)
    replacements = [e for e in edits if isinstance(e, Replacement)]

    applied = 0
    for offset, _index, insertion in sorted(
        resolved, key=lambda item: (item[0], item[1]), reverse=True
    ):
        if not insertion.text:
            continue
        content = content[:offset] + insertion.text + content[offset:]
        applied += 1

    for replacement in replacements:
        updated, n = replacement.matcher.substitute(content, replacement.replacement)
        if n == 0 or updated == content:
            logger.debug("Replacement %r matched nothing", replacement.matcher)
            continue
        content = updated
        applied += 1

    return ApplyResult(content=content, applied_count=applied)
