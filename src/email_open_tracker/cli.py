"""Command-line interface for Email Open Tracker.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import logging
import sys

import structlog

from email_open_tracker import __version__
from email_open_tracker.config import get_settings
from email_open_tracker.exceptions import RecordNotFoundError
from email_open_tracker.service.repository import TrackingRepository

logger = structlog.get_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="email-open-tracker", description="Email Open Tracker")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the marker service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: settings host)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: settings port)")

    records_parser = subparsers.add_parser("records", help="List tracked emails for an owner")
    records_parser.add_argument("owner_id", help="Owner identifier the records were issued for")
    records_parser.add_argument("--limit", type=int, default=25, help="Max records")
    records_parser.add_argument(
        "--db",
        default=None,
        help="SQLAlchemy database URL (default: settings database_url)",
    )

    show_parser = subparsers.add_parser("show", help="Show one tracked email and its opens")
    show_parser.add_argument("tracking_id", help="Tracking identifier")
    show_parser.add_argument(
        "--db",
        default=None,
        help="SQLAlchemy database URL (default: settings database_url)",
    )

    return parser


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "email_open_tracker.service.app:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def _cmd_records(args: argparse.Namespace) -> int:
    settings = get_settings()
    repo = TrackingRepository.from_url(args.db or settings.database_url)

    records = repo.list_records_for_owner(args.owner_id, limit=args.limit)
    if not records:
        print(f"No tracked emails for {args.owner_id}")
        return 0

    for r in records:
        last = r.last_opened.isoformat() if r.last_opened else "(never)"
        print(f"{r.tracking_id}\t{r.created_at.isoformat()}\t{r.open_count} opens\tlast {last}\t{r.recipient}\t{r.subject}")

    total_opens = sum(r.open_count for r in records)
    print(f"\n{len(records)} emails, {total_opens} opens")
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    settings = get_settings()
    repo = TrackingRepository.from_url(args.db or settings.database_url)

    try:
        record = repo.require_record(args.tracking_id)
    except RecordNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1

    print(f"Tracking id: {record.tracking_id}")
    print(f"Owner: {record.owner_id}")
    print(f"Recipient: {record.recipient}")
    print(f"Subject: {record.subject}")
    print(f"Sent: {record.created_at.isoformat()}")
    print(f"Opens: {record.open_count}")
    for o in record.opens:
        print(f"- {o.timestamp.isoformat()}\t{o.source_address}\t{o.client_agent}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point for the Email Open Tracker CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    settings = get_settings()

    # Configure logging
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
    )

    logger.info("email_open_tracker_started", version=__version__, debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    if parsed.command == "serve":
        return _cmd_serve(parsed)
    if parsed.command == "records":
        return _cmd_records(parsed)
    if parsed.command == "show":
        return _cmd_show(parsed)

    logger.error("unknown_command", command=parsed.command)
    return 2


if __name__ == "__main__":
    sys.exit(main())
