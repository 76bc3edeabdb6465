"""
Configuration and logging setup for the issue outline tool.
"""

from __future__ import annotations

import getpass
import logging
import os
import re
import subprocess
from dataclasses import dataclass
from subprocess import CompletedProcess
from typing import Final

from .exceptions import OutlineError

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_USER_ENV_VAR: Final[str] = "ISSUE_OUTLINE_USER"
_TOKEN_ENV_VAR: Final[str] = "ISSUE_OUTLINE_TOKEN"  # noqa: S105

DEFAULT_API_BASE: Final[str] = "https://github.com/api/v2/json/issues"
DEFAULT_TRACKER_URL: Final[str] = "https://github.com"
DEFAULT_AVATAR_URL: Final[str] = "http://www.gravatar.com/avatar"
LOG_FILE: Final[str] = "issue-outline.log"


class PassError(OutlineError):
    """Base class for pass-related errors."""


class InvalidPassPathError(PassError):
    """Raised when the pass path format is invalid or not in the store."""


def setup_logging(*, verbose: bool = False) -> None:
    """Configure logging for the command-line tool."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(), logging.FileHandler(LOG_FILE, mode="a")],
    )


def _validate_pass_path(pass_path: str) -> None:
    if not re.fullmatch(r"(?:[A-Za-z0-9_-]+)(?:/[A-Za-z0-9_-]+)*", pass_path):
        msg = f"Invalid pass path: {pass_path}"
        raise InvalidPassPathError(msg)


def get_pass_value(pass_path: str) -> str:
    """Read a secret from the pass password store."""
    _validate_pass_path(pass_path)

    try:
        result: CompletedProcess[str] = subprocess.run(  # noqa: S603
            ["pass", pass_path], capture_output=True, text=True, check=True
        )
    except FileNotFoundError as e:
        msg = "The pass utility is not installed"
        raise PassError(msg) from e
    except subprocess.CalledProcessError as e:
        if "not in the password store" in e.stderr.lower():
            msg = f"Pass path '{pass_path}' not found in the password store."
            raise InvalidPassPathError(msg) from e
        msg = f"Failed to get value from pass at '{pass_path}' (return code {e.returncode}): {e.stderr.strip()}"
        raise PassError(msg) from e

    return result.stdout.strip()


def default_username() -> str:
    """Username from ISSUE_OUTLINE_USER, falling back to the local login name."""
    user: str | None = os.environ.get(_USER_ENV_VAR)
    if user:
        return user
    return getpass.getuser()


def default_token(pass_path: str | None = None) -> str:
    """API token from a pass path, the ISSUE_OUTLINE_TOKEN env var, or empty."""
    if pass_path:
        return get_pass_value(pass_path)

    token: str | None = os.environ.get(_TOKEN_ENV_VAR)
    if token:
        return token

    logger.debug("No API token configured, requests will be anonymous")
    return ""


@dataclass(frozen=True)
class Settings:
    """Identity and endpoints used by the tracker client."""

    username: str
    token: str = ""
    api_base: str = DEFAULT_API_BASE
    tracker_url: str = DEFAULT_TRACKER_URL
    avatar_url: str = DEFAULT_AVATAR_URL
    # None blocks until the server answers
    timeout: float | None = None
    max_workers: int = 4

    @classmethod
    def from_env(
        cls,
        *,
        username: str | None = None,
        token: str | None = None,
        token_pass_path: str | None = None,
        api_base: str | None = None,
        timeout: float | None = None,
    ) -> Settings:
        """Build settings, filling unspecified values from the environment."""
        return cls(
            username=username or default_username(),
            token=token if token is not None else default_token(token_pass_path),
            api_base=api_base or DEFAULT_API_BASE,
            timeout=timeout,
        )
