"""Document sessions: one project's issues rendered into one document."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .document import Workspace
from .exceptions import OutlineError
from .models import parse_project
from .renderer import IssueRenderer
from .sidefetch import PatchController
from .spans import PatchSpan

if TYPE_CHECKING:
    from .client import TrackerClient
    from .document import Document
    from .models import Issue
    from .sidefetch import AvatarFetcher

logger: logging.Logger = logging.getLogger(__name__)


def issues_document_name(project: str) -> str:
    return f"*{project} issues*"


class DocumentSession:
    """Owns the issue document for a project and keeps it in sync with the tracker.

    A session is created explicitly per document; nothing about it is global.
    """

    client: TrackerClient
    workspace: Workspace
    renderer: IssueRenderer
    patches: PatchController
    include_closed: bool
    project: str | None
    issues: list[Issue]
    _document: Document | None

    def __init__(
        self,
        client: TrackerClient,
        *,
        workspace: Workspace | None = None,
        renderer: IssueRenderer | None = None,
        avatar_fetcher: AvatarFetcher | None = None,
        include_closed: bool = False,
    ) -> None:
        self.client = client
        self.workspace = workspace or Workspace()
        self.renderer = renderer or IssueRenderer(avatar_fetcher)
        self.patches = PatchController(client, self.workspace)
        self.include_closed = include_closed
        self.project = None
        self.issues = []
        self._document = None

    @property
    def document(self) -> Document:
        if self._document is None:
            msg = "No project open yet. Call open() first."
            raise OutlineError(msg)
        return self._document

    def open(self, project: str) -> Document:
        """Make ``project`` the session's project and populate its document."""
        if parse_project(project) is None:
            logger.debug(f"Project '{project}' is not of the form owner/name; requests will be anonymous")
        self.project = project
        self._document = self.workspace.get_or_create(issues_document_name(project))
        self._populate()
        return self.workspace.display(self._document)

    def refresh(self) -> Document:
        """Re-fetch and re-render the current project's issues."""
        if self.project is None:
            msg = "No project open to refresh"
            raise OutlineError(msg)
        self._populate()
        return self.document

    def _populate(self) -> None:
        assert self.project is not None
        project = self.project
        document = self.document

        # Fetch before erasing so a failed request leaves the old content intact
        if self.include_closed:
            issues = self.client.fetch_all_issues(project)
        else:
            issues = self.client.fetch_open_issues(project)

        document.erase()
        tracker_url = self.client.settings.tracker_url.rstrip("/")
        _ = document.insert(f"* Issues for [[{tracker_url}/{project}][{project}]]\n\n")
        for issue in issues:
            _ = self.renderer.render(document, issue)

        self.issues = issues
        document.goto(0)
        document.set_unmodified()
        logger.info(f"Rendered {len(issues)} issues for {project}")

    def activate(self, point: int | None = None) -> Document | None:
        """Act on the span at ``point`` (default: the document's point).

        Returns the document that was displayed, or None when there is
        nothing to do at that position.
        """
        document = self.document
        position = document.point if point is None else point
        metadata = document.spans.lookup(position)
        if isinstance(metadata, PatchSpan):
            assert self.project is not None
            return self.patches.show(self.project, metadata.number, metadata.url)
        logger.debug(f"Nothing to activate at {position}")
        return None

    def find_patch_span(self, number: int) -> int | None:
        """Position of the "Attached Patch" label for issue ``number``, if rendered."""
        for span in self.document.spans.spans_of(PatchSpan):
            if isinstance(span.metadata, PatchSpan) and span.metadata.number == number:
                return span.start
        return None
