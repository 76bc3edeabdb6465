"""Fetches triggered from rendered spans: patches on activation, avatars on render.

Patches are fetched with a blocking request and cached in a per-issue scratch
document. Avatars are fire-and-forget: the request is started during
rendering and its completion later paints an image over the placeholder,
provided the document still holds the text the placeholder offsets refer to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .spans import AvatarSpan

if TYPE_CHECKING:
    from .client import TrackerClient
    from .config import Settings
    from .document import Document, Workspace
    from .transport import FetchResult, HttpTransport

logger: logging.Logger = logging.getLogger(__name__)


class PatchState(Enum):
    IDLE = "idle"
    REQUESTED = "requested"
    DISPLAYED = "displayed"


def patch_document_name(project: str, number: int) -> str:
    return f"*{project} patch #{number}*"


class PatchController:
    """Shows the patch attached to an issue, fetching it at most once."""

    _client: TrackerClient
    _workspace: Workspace
    _states: dict[str, PatchState]

    def __init__(self, client: TrackerClient, workspace: Workspace) -> None:
        self._client = client
        self._workspace = workspace
        self._states = {}

    def state(self, project: str, number: int) -> PatchState:
        return self._states.get(patch_document_name(project, number), PatchState.IDLE)

    def show(self, project: str, number: int, url: str) -> Document:
        """Display the patch for issue ``number``, fetching it if not yet loaded.

        Raises:
            TransportError: If the patch could not be retrieved.
        """
        name = patch_document_name(project, number)
        document = self._workspace.get_or_create(name, mode="diff")

        if len(document) > 0:
            logger.debug(f"Patch for #{number} already loaded, redisplaying {name}")
        else:
            self._states[name] = PatchState.REQUESTED
            try:
                patch = self._client.fetch_patch(url)
            except Exception:
                self._states[name] = PatchState.IDLE
                raise
            _ = document.insert(patch)
            document.goto(0)
            document.set_unmodified()
            document.mode = "diff"
            logger.info(f"Loaded patch for {project}#{number} ({len(patch)} characters)")

        self._states[name] = PatchState.DISPLAYED
        return self._workspace.display(document)


@dataclass(frozen=True)
class PendingAvatar:
    """An avatar request together with the document state it was issued against."""

    document: Document
    generation: int
    start: int
    end: int
    avatar_hash: str
    size: int

    def is_current(self) -> bool:
        """Whether the placeholder this request targets is still in the document."""
        document = self.document
        if not document.alive or document.generation != self.generation:
            return False
        if self.end > len(document):
            return False
        expected = AvatarSpan(self.avatar_hash, self.size)
        return any(
            (span.start, span.end) == (self.start, self.end) and span.metadata == expected
            for span in document.spans.spans_of(AvatarSpan)
        )


class AvatarFetcher:
    """Starts avatar downloads and paints them over their placeholders on arrival."""

    _transport: HttpTransport
    _avatar_url: str
    pending: list[PendingAvatar]

    def __init__(self, transport: HttpTransport, settings: Settings) -> None:
        self._transport = transport
        self._avatar_url = settings.avatar_url.rstrip("/")
        self.pending = []

    def avatar_url(self, avatar_hash: str, size: int) -> str:
        return f"{self._avatar_url}/{avatar_hash}?s={size}"

    def request(self, document: Document, start: int, end: int, avatar_hash: str, size: int) -> PendingAvatar:
        """Start fetching an avatar for the placeholder at ``[start, end)`` without waiting."""
        handle = PendingAvatar(document, document.generation, start, end, avatar_hash, size)
        self.pending.append(handle)
        _ = self._transport.get_async(
            self.avatar_url(avatar_hash, size),
            lambda result: self._complete(handle, result),
        )
        return handle

    def _complete(self, handle: PendingAvatar, result: FetchResult) -> None:
        if handle in self.pending:
            self.pending.remove(handle)

        if result.response is None:
            logger.debug(f"Avatar {handle.avatar_hash} not loaded: {result.error}")
            return
        data = result.response.content
        if not data:
            logger.debug(f"Avatar {handle.avatar_hash} came back empty")
            return
        if not handle.is_current():
            logger.debug(f"Discarding avatar {handle.avatar_hash} for stale {handle.document.name}")
            return

        mime_type = result.response.headers.get("Content-Type", "image/jpeg")
        _ = handle.document.put_image(handle.start, handle.end, data, mime_type)

    def flush(self, timeout: float | None = None) -> int:
        """Wait for outstanding avatar requests and apply them, returning how many completed."""
        self._transport.wait_all(timeout)
        return self._transport.dispatch_pending()
