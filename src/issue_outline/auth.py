"""Credential derivation and the owner-project rule that gates it."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import Settings


def _resolve(value: str | None, fallback: str | None) -> str:
    if value is not None:
        return value
    return fallback or ""


def derive_credential(
    username: str | None = None,
    token: str | None = None,
    *,
    settings: Settings | None = None,
) -> str:
    """Build the Basic authorization value for ``username`` and ``token``.

    The tracker expects the API token form of basic auth: the encoded pair is
    ``"{username}/token:{token}"``. Omitted arguments come from ``settings``.
    """
    user = _resolve(username, settings.username if settings else None)
    secret = _resolve(token, settings.token if settings else None)
    encoded = base64.b64encode(f"{user}/token:{secret}".encode()).decode("ascii")
    return f"Basic {encoded}"


def is_owner_project(
    project: str,
    owner: str | None = None,
    *,
    settings: Settings | None = None,
) -> bool:
    """Check whether ``project`` belongs to ``owner`` (default: the configured user).

    Identifiers without an ``owner/`` prefix are simply not owned; they are
    never rejected here.
    """
    owner = _resolve(owner, settings.username if settings else None)
    if not project or not owner:
        return False
    return project.startswith(f"{owner}/")


def auth_headers(project: str, settings: Settings) -> dict[str, str]:
    """Headers to send with a tracker request for ``project``."""
    if not is_owner_project(project, settings=settings):
        return {}
    return {"Authorization": derive_credential(settings=settings)}
