"""
Issue Outline

Renders a tracker project's issues as an editable outline document, with
patches fetched on demand and author avatars loaded in the background.
"""

from __future__ import annotations

from .cli import main
from .client import TrackerAction, TrackerClient
from .config import Settings, setup_logging
from .document import Document, Workspace
from .exceptions import DecodeError, OutlineError, TransportError
from .models import Issue, IssueState
from .session import DocumentSession

# Package version
__version__ = "0.1.0"

__all__ = [
    "DecodeError",
    "Document",
    "DocumentSession",
    "Issue",
    "IssueState",
    "OutlineError",
    "Settings",
    "TrackerAction",
    "TrackerClient",
    "TransportError",
    "Workspace",
    "main",
    "setup_logging",
]
