"""End-to-end tests for document sessions against a fake tracker."""

from __future__ import annotations

import pytest
from conftest import FakeTransport, issue_payload, make_response

from issue_outline.client import TrackerClient
from issue_outline.config import Settings
from issue_outline.document import Workspace
from issue_outline.exceptions import OutlineError, TransportError
from issue_outline.renderer import AVATAR_PLACEHOLDER, PATCH_LABEL
from issue_outline.session import DocumentSession, issues_document_name
from issue_outline.sidefetch import AvatarFetcher
from issue_outline.spans import IssueSpan
from issue_outline.transport import FetchResult

BASE = "https://tracker.test/api/v2/json/issues"
PATCH_URL = "https://tracker.test/alice/project/pull/2.patch"


def _session(settings: Settings, transport: FakeTransport, **kwargs: object) -> DocumentSession:
    client = TrackerClient(settings, transport)  # type: ignore[arg-type]
    return DocumentSession(client, **kwargs)  # type: ignore[arg-type]


@pytest.mark.unit
class TestOpen:
    def test_single_issue_document(self, settings: Settings, transport: FakeTransport) -> None:
        transport.responses[f"{BASE}/open/bob/tool"] = make_response(
            payload={
                "issues": [
                    {
                        "number": 1,
                        "state": "open",
                        "title": "Fix bug",
                        "html_url": "http://x/1",
                        "labels": ["bug"],
                        "body": "desc",
                        "patch_url": None,
                    }
                ]
            }
        )
        session = _session(settings, transport)

        doc = session.open("bob/tool")

        lines = doc.text.split("\n")
        assert lines[0] == "* Issues for [[https://tracker.test/bob/tool][bob/tool]]"
        assert lines[1] == ""
        headings = [line for line in lines if line.startswith("** ")]
        assert len(headings) == 1
        assert headings[0].startswith("** TODO")
        assert ":bug:" in headings[0]
        assert PATCH_LABEL not in doc.text
        assert doc.name == issues_document_name("bob/tool")
        assert doc.point == 0
        assert not doc.modified
        assert session.workspace.current is doc
        assert session.project == "bob/tool"

    def test_issues_rendered_in_fetched_order(self, settings: Settings, transport: FakeTransport) -> None:
        transport.responses[f"{BASE}/open/bob/tool"] = make_response(
            payload={"issues": [issue_payload(9), issue_payload(4), issue_payload(6)]}
        )

        doc = _session(settings, transport).open("bob/tool")

        numbers = [s.metadata.number for s in doc.spans.spans_of(IssueSpan)]  # type: ignore[union-attr]
        assert numbers == [9, 4, 6]
        assert doc.text.index("Issue 9") < doc.text.index("Issue 4") < doc.text.index("Issue 6")

    def test_include_closed(self, settings: Settings, transport: FakeTransport) -> None:
        transport.responses[f"{BASE}/open/bob/tool"] = make_response(payload={"issues": [issue_payload(1)]})
        transport.responses[f"{BASE}/closed/bob/tool"] = make_response(
            payload={"issues": [issue_payload(2, state="closed")]}
        )

        doc = _session(settings, transport, include_closed=True).open("bob/tool")

        assert "** TODO [[" in doc.text
        assert "** DONE [[" in doc.text
        assert doc.text.index("** TODO") < doc.text.index("** DONE")

    def test_failure_on_first_open_propagates(self, settings: Settings, transport: FakeTransport) -> None:
        session = _session(settings, transport)

        with pytest.raises(TransportError):
            _ = session.open("bob/tool")

    def test_avatars_requested_while_rendering(self, settings: Settings, transport: FakeTransport) -> None:
        transport.responses[f"{BASE}/open/bob/tool"] = make_response(payload={"issues": [issue_payload(1)]})
        fetcher = AvatarFetcher(transport, settings)  # type: ignore[arg-type]
        session = _session(settings, transport, avatar_fetcher=fetcher)

        doc = session.open("bob/tool")
        transport.complete(0, FetchResult(response=make_response(content=b"jpeg")))
        _ = transport.dispatch_pending()

        image = doc.image_at(doc.text.index(AVATAR_PLACEHOLDER))
        assert image is not None
        assert image.data == b"jpeg"

    def test_no_placeholder_without_image_support(self, settings: Settings, transport: FakeTransport) -> None:
        transport.responses[f"{BASE}/open/bob/tool"] = make_response(payload={"issues": [issue_payload(1)]})

        doc = _session(settings, transport, workspace=Workspace(supports_images=False)).open("bob/tool")

        assert AVATAR_PLACEHOLDER not in doc.text


@pytest.mark.unit
class TestRefresh:
    def test_refresh_replaces_content(self, settings: Settings, transport: FakeTransport) -> None:
        url = f"{BASE}/open/bob/tool"
        transport.responses[url] = make_response(payload={"issues": [issue_payload(1)]})
        session = _session(settings, transport)
        doc = session.open("bob/tool")

        transport.responses[url] = make_response(payload={"issues": [issue_payload(2), issue_payload(3)]})
        refreshed = session.refresh()

        assert refreshed is doc
        assert "Issue 1" not in doc.text
        assert len(doc.spans.spans_of(IssueSpan)) == 2
        assert [i.number for i in session.issues] == [2, 3]
        assert doc.generation == 2

    def test_failed_refresh_keeps_previous_content(self, settings: Settings, transport: FakeTransport) -> None:
        url = f"{BASE}/open/bob/tool"
        transport.responses[url] = make_response(payload={"issues": [issue_payload(1)]})
        session = _session(settings, transport)
        doc = session.open("bob/tool")
        before = doc.text

        transport.responses[url] = TransportError("down", url=url)
        with pytest.raises(TransportError):
            _ = session.refresh()

        assert doc.text == before
        assert doc.spans.spans_of(IssueSpan)

    def test_refresh_without_project(self, settings: Settings, transport: FakeTransport) -> None:
        with pytest.raises(OutlineError, match="No project open"):
            _ = _session(settings, transport).refresh()

    def test_stale_avatar_after_refresh_is_ignored(self, settings: Settings, transport: FakeTransport) -> None:
        transport.responses[f"{BASE}/open/bob/tool"] = make_response(payload={"issues": [issue_payload(1)]})
        fetcher = AvatarFetcher(transport, settings)  # type: ignore[arg-type]
        session = _session(settings, transport, avatar_fetcher=fetcher)
        doc = session.open("bob/tool")
        _ = session.refresh()
        text = doc.text

        transport.complete(0, FetchResult(response=make_response(content=b"old")))
        _ = transport.dispatch_pending()

        assert doc.images == []
        assert doc.text == text


@pytest.mark.unit
class TestActivate:
    def setup_method(self) -> None:
        self.settings: Settings = Settings(username="alice", token="t", api_base=BASE)
        self.transport: FakeTransport = FakeTransport()
        self.transport.responses[f"{BASE}/open/alice/project"] = make_response(
            payload={"issues": [issue_payload(1), issue_payload(2, patch_url=PATCH_URL)]}
        )
        self.transport.responses[PATCH_URL] = make_response(text="diff --git a/x b/x\n")
        self.session: DocumentSession = _session(self.settings, self.transport)
        self.doc = self.session.open("alice/project")

    def test_activating_patch_label_shows_patch(self) -> None:
        position = self.doc.text.index(PATCH_LABEL) + 3

        patch = self.session.activate(position)

        assert patch is not None
        assert patch.text == "diff --git a/x b/x\n"
        assert patch.mode == "diff"
        assert self.session.workspace.current is patch

    def test_activating_twice_fetches_once(self) -> None:
        position = self.doc.text.index(PATCH_LABEL)

        first = self.session.activate(position)
        second = self.session.activate(position)

        assert first is second
        assert [url for url, _ in self.transport.requests].count(PATCH_URL) == 1

    def test_activation_uses_document_point(self) -> None:
        self.doc.goto(self.doc.text.index(PATCH_LABEL))

        assert self.session.activate() is not None

    def test_activation_outside_patch_label_is_noop(self) -> None:
        heading = self.doc.text.index("** TODO")

        assert self.session.activate(heading) is None
        assert self.session.activate(0) is None
        assert PATCH_URL not in [url for url, _ in self.transport.requests]

    def test_find_patch_span(self) -> None:
        position = self.session.find_patch_span(2)

        assert position == self.doc.text.index(PATCH_LABEL)
        assert self.session.find_patch_span(1) is None

    def test_activate_before_open(self) -> None:
        with pytest.raises(OutlineError):
            _ = _session(self.settings, self.transport).activate(0)
