"""
Command-line interface for the issue outline tool.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .client import TrackerClient
from .config import Settings, setup_logging
from .document import Workspace
from .exceptions import OutlineError
from .session import DocumentSession
from .sidefetch import AvatarFetcher

logger: logging.Logger = logging.getLogger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Render a project's tracker issues as an outline document")

    common = argparse.ArgumentParser(add_help=False)
    _ = common.add_argument("--user", "-u", help="Tracker username (default: $ISSUE_OUTLINE_USER or login name)")
    _ = common.add_argument("--token", help="API token (default: $ISSUE_OUTLINE_TOKEN)")
    _ = common.add_argument("--token-pass-path", help="Read the API token from this pass path")
    _ = common.add_argument("--api-base", help="Base URL of the tracker API")
    _ = common.add_argument("--timeout", type=float, help="Request timeout in seconds (default: wait indefinitely)")
    _ = common.add_argument("--no-avatars", action="store_true", help="Do not fetch author avatars")
    _ = common.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    open_parser = subparsers.add_parser("open", parents=[common], help="Render the open issues of a project")
    _ = open_parser.add_argument("project", help="Project identifier (owner/name)")
    _ = open_parser.add_argument("--all", action="store_true", help="Include closed issues after the open ones")
    _ = open_parser.add_argument("--output", "-o", type=Path, help="Write the outline to this file instead of stdout")

    patch_parser = subparsers.add_parser("patch", parents=[common], help="Show the patch attached to an issue")
    _ = patch_parser.add_argument("project", help="Project identifier (owner/name)")
    _ = patch_parser.add_argument("number", type=int, help="Issue number")

    return parser.parse_args(argv)


def _build_session(args: argparse.Namespace) -> tuple[DocumentSession, AvatarFetcher | None]:
    settings = Settings.from_env(
        username=args.user,
        token=args.token,
        token_pass_path=args.token_pass_path,
        api_base=args.api_base,
        timeout=args.timeout,
    )
    client = TrackerClient(settings)
    # Only the rendered outline shows avatars
    wants_avatars = args.command == "open" and not args.no_avatars
    avatars = AvatarFetcher(client.transport, settings) if wants_avatars else None
    workspace = Workspace(supports_images=avatars is not None)
    session = DocumentSession(
        client,
        workspace=workspace,
        avatar_fetcher=avatars,
        include_closed=getattr(args, "all", False),
    )
    return session, avatars


def _run_open(args: argparse.Namespace, session: DocumentSession, avatars: AvatarFetcher | None) -> None:
    document = session.open(args.project)
    if avatars is not None:
        loaded = avatars.flush()
        logger.debug(f"{loaded} avatar requests completed, {len(document.images)} images shown")

    output: Path | None = args.output
    if output is None:
        _ = sys.stdout.write(document.text)
    else:
        _ = output.write_text(document.text, encoding="utf-8")
        logger.info(f"Wrote {document.name} to {output}")


def _run_patch(args: argparse.Namespace, session: DocumentSession) -> int:
    _ = session.open(args.project)
    position = session.find_patch_span(args.number)
    if position is None:
        logger.error(f"Issue #{args.number} of {args.project} has no attached patch")
        return 1

    patch = session.activate(position)
    if patch is None:
        return 1
    _ = sys.stdout.write(patch.text)
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    verbose: bool = getattr(args, "verbose", False)
    setup_logging(verbose=verbose)

    try:
        session, avatars = _build_session(args)
        with session.client.transport:
            if args.command == "patch":
                sys.exit(_run_patch(args, session))
            _run_open(args, session, avatars)
    except OutlineError:
        logger.exception("Command failed")
        sys.exit(1)
    sys.exit(0)
