"""Data models for issues fetched from the tracker.

Records are decoded once from the tracker's JSON payload and are read-only
afterwards; a refresh replaces them wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, cast

from .exceptions import DecodeError


class IssueState(Enum):
    OPEN = "open"
    CLOSED = "closed"

    @property
    def keyword(self) -> str:
        """Outline TODO keyword for this state."""
        return "TODO" if self is IssueState.OPEN else "DONE"


def _parse_labels(raw: object) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        msg = f"Expected a list of labels, got {type(raw).__name__}"
        raise DecodeError(msg)
    labels: list[str] = []
    for entry in raw:
        if isinstance(entry, str):
            labels.append(entry)
        elif isinstance(entry, dict) and isinstance(entry.get("name"), str):
            labels.append(entry["name"])
        else:
            msg = f"Unsupported label entry: {entry!r}"
            raise DecodeError(msg)
    return tuple(labels)


def _parse_author(raw: object) -> str:
    # Older payloads carry the login directly, newer ones a user object
    if isinstance(raw, dict):
        login = raw.get("login")
        return login if isinstance(login, str) else ""
    return raw if isinstance(raw, str) else ""


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class Issue:
    """An issue as listed by the tracker."""

    number: int
    state: IssueState
    title: str
    html_url: str
    patch_url: str | None = None
    labels: tuple[str, ...] = field(default_factory=tuple)
    author: str = ""
    avatar_hash: str = ""
    body: str = ""

    @classmethod
    def from_json(cls, data: object) -> Issue:
        """Decode one issue object from a tracker response.

        Raises:
            DecodeError: If the object is not an issue record.
        """
        if not isinstance(data, dict):
            msg = f"Expected an issue object, got {type(data).__name__}"
            raise DecodeError(msg)

        data = cast("dict[str, Any]", data)
        number = data.get("number")
        if not isinstance(number, int) or isinstance(number, bool):
            msg = f"Issue record has no valid number: {number!r}"
            raise DecodeError(msg)

        try:
            state = IssueState(str(data.get("state", "open")).lower())
        except ValueError as e:
            msg = f"Issue #{number} has unknown state {data.get('state')!r}"
            raise DecodeError(msg) from e

        return cls(
            number=number,
            state=state,
            title=str(data.get("title") or ""),
            html_url=str(data.get("html_url") or ""),
            patch_url=_optional_str(data, "patch_url"),
            labels=_parse_labels(data.get("labels")),
            author=_parse_author(data.get("user")),
            avatar_hash=str(data.get("gravatar_id") or ""),
            body=str(data.get("body") or ""),
        )


def parse_project(project: str) -> tuple[str, str] | None:
    """Split an ``owner/name`` identifier, or return None when it is malformed."""
    owner, sep, name = project.partition("/")
    if not sep or not owner or not name or "/" in name:
        return None
    return owner, name
