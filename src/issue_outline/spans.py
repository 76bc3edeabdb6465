"""Spans binding rendered document regions to remote entities.

Each span kind is its own small record so that activation can dispatch on the
type rather than probing an open-ended property bag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class IssueSpan:
    """Covers a whole rendered issue block."""

    number: int

    def properties(self) -> dict[str, Any]:
        return {"issue-number": self.number}


@dataclass(frozen=True)
class PatchSpan:
    """Covers the "Attached Patch" label of an issue."""

    number: int
    url: str

    def properties(self) -> dict[str, Any]:
        return {"issue-number": self.number, "url": self.url}


@dataclass(frozen=True)
class AvatarSpan:
    """Covers the placeholder that an avatar image replaces."""

    avatar_hash: str
    size: int

    def properties(self) -> dict[str, Any]:
        return {"avatar-hash": self.avatar_hash, "avatar-size": self.size}


SpanMetadata = IssueSpan | PatchSpan | AvatarSpan


def map_start(pos: int, start: int, end: int, length: int) -> int:
    """Where a region start at ``pos`` lands after ``[start, end)`` becomes ``length`` chars.

    Text inserted exactly at a region start is not taken into the region.
    """
    if pos < start:
        return pos
    if pos >= end:
        return pos + length - (end - start)
    return start + min(pos - start, length)


def map_end(pos: int, start: int, end: int, length: int) -> int:
    """Counterpart of ``map_start`` for region ends; insertion at an end does not extend it."""
    if pos <= start:
        return pos
    if pos >= end:
        return pos + length - (end - start)
    return start + min(pos - start, length)


@dataclass(frozen=True)
class Span:
    start: int
    end: int
    metadata: SpanMetadata

    def __contains__(self, point: int) -> bool:
        return self.start <= point < self.end

    @property
    def length(self) -> int:
        return self.end - self.start


class SpanRegistry:
    """Records metadata against half-open ``[start, end)`` regions of one document."""

    _spans: list[Span]

    def __init__(self) -> None:
        self._spans = []

    def __len__(self) -> int:
        return len(self._spans)

    def attach(self, start: int, end: int, metadata: SpanMetadata) -> Span:
        if start < 0 or end < start:
            msg = f"Invalid span range [{start}, {end})"
            raise ValueError(msg)
        span = Span(start, end, metadata)
        self._spans.append(span)
        return span

    def lookup_all(self, point: int) -> list[Span]:
        """All spans containing ``point``, innermost first."""
        # Ties on length go to the most recently attached span
        indexed = [(i, s) for i, s in enumerate(self._spans) if point in s]
        indexed.sort(key=lambda item: (item[1].length, -item[0]))
        return [span for _, span in indexed]

    def lookup(self, point: int) -> SpanMetadata | None:
        """Metadata of the nearest span enclosing ``point``."""
        spans = self.lookup_all(point)
        return spans[0].metadata if spans else None

    def properties_at(self, point: int) -> dict[str, Any]:
        """Merged metadata visible at ``point``; inner spans win on shared keys."""
        merged: dict[str, Any] = {}
        for span in reversed(self.lookup_all(point)):
            merged.update(span.metadata.properties())
        return merged

    def spans_of(self, kind: type[IssueSpan] | type[PatchSpan] | type[AvatarSpan]) -> list[Span]:
        return [s for s in self._spans if isinstance(s.metadata, kind)]

    def adjust(self, start: int, end: int, length: int) -> None:
        """Move spans after ``[start, end)`` was replaced by ``length`` characters."""
        self._spans = [
            Span(map_start(s.start, start, end, length), map_end(s.end, start, end, length), s.metadata)
            for s in self._spans
        ]

    def clear(self) -> None:
        self._spans.clear()
