"""Edit operations applied to an artifact's text.

An edit is either an :class:`Insertion` (literal text placed at an anchor) or
a :class:`Replacement` (a located target rewritten in place).  How text is
located is delegated to a :class:`Matcher`, so literal and regular-expression
matching are interchangeable without touching the apply algorithm in
:mod:`site_autoenhance.services.patching`.

Anchors are resolved against the content *before* any edit of the batch is
applied.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

from .enums import AnchorPosition, Occurrence

Span = tuple[int, int]
ReplacementValue = Union[str, Callable[[re.Match], str]]


# ===================================================================== #
#  Matchers                                                              #
# ===================================================================== #


class Matcher(ABC):
    """Strategy for locating and substituting text."""

    all_matches: bool

    @abstractmethod
    def first(self, content: str) -> Span | None:
        """Span of the first match, or ``None``."""

    @abstractmethod
    def last(self, content: str) -> Span | None:
        """Span of the last match, or ``None``."""

    @abstractmethod
    def substitute(self, content: str, replacement: ReplacementValue) -> tuple[str, int]:
        """Rewrite the first (or every, when global) match.

        Returns the new content and the number of substitutions made.
        """

    def found_in(self, content: str) -> bool:
        return self.first(content) is not None


@dataclass(frozen=True)
class LiteralMatcher(Matcher):
    """Exact substring matching."""

    text: str
    all_matches: bool = False

    def __post_init__(self) -> None:
        if not self.text:
            raise ValueError("LiteralMatcher requires non-empty text")

    def first(self, content: str) -> Span | None:
        idx = content.find(self.text)
        return None if idx < 0 else (idx, idx + len(self.text))

    def last(self, content: str) -> Span | None:
        idx = content.rfind(self.text)
        return None if idx < 0 else (idx, idx + len(self.text))

    def substitute(self, content: str, replacement: ReplacementValue) -> tuple[str, int]:
        count = 0 if self.all_matches else 1
        if callable(replacement):
            return re.subn(re.escape(self.text), replacement, content, count=count)
        occurrences = content.count(self.text)
        n = occurrences if self.all_matches else min(occurrences, 1)
        return content.replace(self.text, replacement, n), n


@dataclass(frozen=True)
class RegexMatcher(Matcher):
    """Regular-expression matching.

    ``all_matches`` plays the role of a global flag: when ``False`` only the
    first match is substituted.  String replacements may use
    back-references (``\\1``, ``\\g<name>``).
    """

    pattern: str
    flags: int = 0
    all_matches: bool = False
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", re.compile(self.pattern, self.flags))

    @property
    def regex(self) -> re.Pattern[str]:
        return self._regex

    def first(self, content: str) -> Span | None:
        m = self._regex.search(content)
        return None if m is None else m.span()

    def last(self, content: str) -> Span | None:
        span: Span | None = None
        for m in self._regex.finditer(content):
            span = m.span()
        return span

    def substitute(self, content: str, replacement: ReplacementValue) -> tuple[str, int]:
        return self._regex.subn(replacement, content, count=0 if self.all_matches else 1)


# ===================================================================== #
#  Anchors                                                               #
# ===================================================================== #


@dataclass(frozen=True)
class OffsetAnchor:
    """An absolute offset into the pre-edit content."""

    offset: int

    def resolve(self, content: str) -> int | None:
        if not 0 <= self.offset <= len(content):
            raise ValueError(
                f"offset {self.offset} outside content of length {len(content)}"
            )
        return self.offset


@dataclass(frozen=True)
class PatternAnchor:
    """A position just before or just after a located pattern.

    Resolves to ``None`` when the pattern is absent; the insertion is then
    skipped rather than treated as an error.
    """

    matcher: Matcher
    position: AnchorPosition = AnchorPosition.AFTER
    occurrence: Occurrence = Occurrence.FIRST

    def resolve(self, content: str) -> int | None:
        if self.occurrence is Occurrence.FIRST:
            span = self.matcher.first(content)
        else:
            span = self.matcher.last(content)
        if span is None:
            return None
        return span[0] if self.position is AnchorPosition.BEFORE else span[1]


Anchor = Union[OffsetAnchor, PatternAnchor]


def end_of(content: str) -> OffsetAnchor:
    """Anchor at the very end of *content*."""
    return OffsetAnchor(len(content))


def before(text: str, occurrence: Occurrence = Occurrence.FIRST) -> PatternAnchor:
    """Anchor just before a literal substring."""
    return PatternAnchor(LiteralMatcher(text), AnchorPosition.BEFORE, occurrence)


def after(text: str, occurrence: Occurrence = Occurrence.FIRST) -> PatternAnchor:
    """Anchor just after a literal substring."""
    return PatternAnchor(LiteralMatcher(text), AnchorPosition.AFTER, occurrence)


# ===================================================================== #
#  Operations                                                            #
# ===================================================================== #


@dataclass(frozen=True)
class Insertion:
    """Insert ``text`` at ``anchor``."""

    anchor: Anchor
    text: str


@dataclass(frozen=True)
class Replacement:
    """Rewrite the text located by ``matcher`` with ``replacement``."""

    matcher: Matcher
    replacement: ReplacementValue


EditOperation = Union[Insertion, Replacement]


@dataclass(frozen=True)
class EditPlan:
    """Ordered edits for one artifact plus a human-readable description."""

    edits: tuple[EditOperation, ...] = ()
    description: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.edits

    def __len__(self) -> int:
        return len(self.edits)


@dataclass(frozen=True)
class ApplyResult:
    """Final content and the number of edits that changed something."""

    content: str
    applied_count: int = 0

    @property
    def changed(self) -> bool:
        return self.applied_count > 0
