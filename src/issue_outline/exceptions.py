"""
Custom exception classes for the issue outline tool.
"""

from __future__ import annotations


class OutlineError(Exception):
    """Base exception for issue outline errors."""


class TransportError(OutlineError):
    """Raised when a request fails at the connection level or returns an HTTP error status."""

    url: str
    status: int | None

    def __init__(self, message: str, *, url: str, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class DecodeError(OutlineError):
    """Raised when a response body is not the structured payload we expected."""
