"""Client for the issue tracker's JSON API."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

import requests

from .auth import auth_headers
from .exceptions import DecodeError
from .models import Issue
from .transport import HttpTransport

if TYPE_CHECKING:
    from .config import Settings

logger: logging.Logger = logging.getLogger(__name__)


class TrackerAction(Enum):
    """The queries the tracker answers, mapped to their URL path segment."""

    LIST_OPEN = "open"
    LIST_CLOSED = "closed"
    GET_RESOURCE = "get"


class TrackerClient:
    """Blocking queries against the tracker.

    Every call waits for the full response. Transport and decode failures are
    raised to the caller as they are; nothing is retried and no partial
    result is returned.
    """

    settings: Settings
    transport: HttpTransport

    def __init__(self, settings: Settings, transport: HttpTransport | None = None) -> None:
        self.settings = settings
        self.transport = transport or HttpTransport(timeout=settings.timeout, max_workers=settings.max_workers)

    def url_for(self, project: str, action: TrackerAction, *args: str | int) -> str:
        parts = [self.settings.api_base.rstrip("/"), action.value, project, *(str(a) for a in args)]
        return "/".join(parts)

    def fetch(self, project: str, action: TrackerAction, *args: str | int) -> Any:
        """Run ``action`` for ``project`` and return the decoded JSON payload.

        Credentials are only sent for projects owned by the configured user.

        Raises:
            TransportError: If the request fails.
            DecodeError: If the body is not JSON.
        """
        url = self.url_for(project, action, *args)
        response = self.transport.get(url, auth_headers(project, self.settings))
        try:
            return response.json()
        except requests.JSONDecodeError as e:
            msg = f"Response from {url} is not valid JSON: {e}"
            raise DecodeError(msg) from e

    def _fetch_issue_list(self, project: str, action: TrackerAction) -> list[Issue]:
        payload = self.fetch(project, action)
        if not isinstance(payload, dict) or not isinstance(payload.get("issues"), list):
            msg = f"Response for {action.value} issues of {project} has no issues list"
            raise DecodeError(msg)
        issues = [Issue.from_json(entry) for entry in payload["issues"]]
        logger.debug(f"Fetched {len(issues)} {action.value} issues for {project}")
        return issues

    def fetch_open_issues(self, project: str) -> list[Issue]:
        return self._fetch_issue_list(project, TrackerAction.LIST_OPEN)

    def fetch_closed_issues(self, project: str) -> list[Issue]:
        return self._fetch_issue_list(project, TrackerAction.LIST_CLOSED)

    def fetch_all_issues(self, project: str) -> list[Issue]:
        """Open issues followed by closed issues, each in tracker order."""
        return self.fetch_open_issues(project) + self.fetch_closed_issues(project)

    def fetch_issue(self, project: str, number: int) -> Issue:
        payload = self.fetch(project, TrackerAction.GET_RESOURCE, number)
        # The resource may come bare or wrapped in an "issue" key
        if isinstance(payload, dict) and isinstance(payload.get("issue"), dict):
            payload = payload["issue"]
        return Issue.from_json(payload)

    def fetch_patch(self, url: str) -> str:
        """Download the raw diff at ``url``."""
        response = self.transport.get(url)
        return response.text
