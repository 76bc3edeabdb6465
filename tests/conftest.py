"""
Pytest configuration and fixtures.

The fake transport stands in for ``HttpTransport``: blocking requests are
answered from a URL table and non-blocking requests stay pending until a test
completes them, in whatever order it chooses.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from unittest.mock import Mock

import pytest
import requests

from issue_outline.config import Settings
from issue_outline.exceptions import TransportError
from issue_outline.transport import FetchResult

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


def make_response(
    *,
    status: int = 200,
    payload: Any = None,
    text: str | None = None,
    content: bytes | None = None,
    headers: dict[str, str] | None = None,
) -> Mock:
    """Build a ``requests.Response`` double."""
    response = Mock(spec=requests.Response)
    response.status_code = status
    response.headers = headers or {}
    if payload is not None:
        text = json.dumps(payload)
        response.json.return_value = payload
    else:
        response.json.side_effect = requests.JSONDecodeError("Expecting value", text or "", 0)
    response.text = text or ""
    response.content = content if content is not None else response.text.encode()
    return response


class FakeTransport:
    """In-memory transport with manually completed non-blocking requests."""

    def __init__(self) -> None:
        self.responses: dict[str, Mock | TransportError] = {}
        self.requests: list[tuple[str, dict[str, str]]] = []
        self.async_requests: list[tuple[str, Callable[[FetchResult], None]]] = []
        self._ready: list[tuple[Callable[[FetchResult], None], FetchResult]] = []

    def __enter__(self) -> FakeTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        return None

    def get(self, url: str, headers: Mapping[str, str] | None = None) -> Mock:
        self.requests.append((url, dict(headers or {})))
        answer = self.responses.get(url)
        if answer is None:
            msg = f"Request to {url} failed with status 404"
            raise TransportError(msg, url=url, status=404)
        if isinstance(answer, TransportError):
            raise answer
        return answer

    def get_async(self, url: str, on_complete: Callable[[FetchResult], None], headers: Any = None) -> None:
        self.async_requests.append((url, on_complete))

    def complete(self, index: int, result: FetchResult) -> None:
        """Mark async request ``index`` as finished; its callback runs on dispatch."""
        _, callback = self.async_requests[index]
        self._ready.append((callback, result))

    def dispatch_pending(self) -> int:
        ready, self._ready = self._ready, []
        for callback, result in ready:
            callback(result)
        return len(ready)

    def wait_all(self, timeout: float | None = None) -> None:
        return None

    def close(self) -> None:
        return None


@pytest.fixture
def settings() -> Settings:
    return Settings(
        username="alice",
        token="s3cret",
        api_base="https://tracker.test/api/v2/json/issues",
        tracker_url="https://tracker.test",
        avatar_url="http://avatars.test/avatar",
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


def issue_payload(number: int, **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "number": number,
        "state": "open",
        "title": f"Issue {number}",
        "html_url": f"https://tracker.test/alice/project/issues/{number}",
        "labels": [],
        "user": "bob",
        "gravatar_id": f"hash{number}",
        "body": f"Body of issue {number}",
    }
    data.update(overrides)
    return data
