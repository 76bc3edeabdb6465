"""Render issues as outline entries.

Each issue becomes one block::

    ** TODO [[<url>][<title>]] :label1:label2:

       [avatar] author: body text, reflowed with
       a three space prefix

       Attached Patch


The renderer writes at the document's point and attaches spans for the text
it has just written, so span offsets are always final when they are recorded.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Protocol

from .spans import AvatarSpan, IssueSpan, PatchSpan

if TYPE_CHECKING:
    from .document import Document
    from .models import Issue

logger: logging.Logger = logging.getLogger(__name__)

INDENT: Final[str] = "   "
AVATAR_PLACEHOLDER: Final[str] = "[avatar]"
AVATAR_SIZE: Final[int] = 16
PATCH_LABEL: Final[str] = "Attached Patch"

# C0 controls and DEL, keeping tab and newline
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


class AvatarLoader(Protocol):
    def request(self, document: Document, start: int, end: int, avatar_hash: str, size: int) -> object:
        """Start loading an avatar for the placeholder at ``[start, end)``."""
        ...


@dataclass(frozen=True)
class RenderedBlock:
    start: int
    end: int


def strip_control_chars(text: str) -> str:
    """Remove NUL and other control characters a raw issue body may carry."""
    return _CONTROL_CHARS.sub("", text)


def format_heading(issue: Issue) -> str:
    heading = f"** {issue.state.keyword} [[{issue.html_url}][{issue.title}]]"
    if issue.labels:
        heading += " :" + ":".join(issue.labels) + ":"
    return heading


class IssueRenderer:
    """Writes issue blocks into a document and registers their spans."""

    avatar_loader: AvatarLoader | None
    avatar_size: int
    fill_width: int

    def __init__(
        self,
        avatar_loader: AvatarLoader | None = None,
        *,
        avatar_size: int = AVATAR_SIZE,
        fill_width: int = 70,
    ) -> None:
        self.avatar_loader = avatar_loader
        self.avatar_size = avatar_size
        self.fill_width = fill_width

    def render(self, document: Document, issue: Issue) -> RenderedBlock:
        """Write ``issue`` at the document's point.

        Avatar loading, when available, is only started here; the block is
        complete without it.
        """
        block_start = document.point
        _ = document.insert(format_heading(issue) + "\n\n")

        _ = document.insert(INDENT)
        if document.supports_images:
            start, end = document.insert(AVATAR_PLACEHOLDER)
            _ = document.spans.attach(start, end, AvatarSpan(issue.avatar_hash, self.avatar_size))
            if self.avatar_loader is not None and issue.avatar_hash:
                _ = self.avatar_loader.request(document, start, end, issue.avatar_hash, self.avatar_size)
            _ = document.insert(" ")

        _ = document.insert(f"{issue.author}: ")

        body_start, body_end = document.insert(strip_control_chars(issue.body))
        document.fill_region(body_start, body_end, INDENT, width=self.fill_width)
        _ = document.insert("\n\n")

        if issue.patch_url:
            _ = document.insert(INDENT)
            start, end = document.insert(PATCH_LABEL)
            _ = document.spans.attach(start, end, PatchSpan(issue.number, issue.patch_url))
            _ = document.insert("\n\n")

        _ = document.insert("\n")
        _ = document.spans.attach(block_start, document.point, IssueSpan(issue.number))
        logger.debug(f"Rendered #{issue.number} at [{block_start}, {document.point})")
        return RenderedBlock(block_start, document.point)
