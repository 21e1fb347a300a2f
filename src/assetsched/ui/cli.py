from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from assetsched.app import run_schedule
from assetsched.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply scheduled asset additions and removals")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Validate the schedule and apply due operations")
    run.add_argument("--text-csv", type=Path, required=True, help="Text asset schedule")
    run.add_argument("--image-csv", type=Path, required=True, help="Image asset schedule")
    run.add_argument(
        "--preview-csv",
        type=Path,
        help="Preview output, rewritten each run (defaults to the data directory)",
    )
    run.add_argument(
        "--results-csv",
        type=Path,
        help="Results log, appended each run (defaults to the data directory)",
    )
    run.add_argument(
        "--horizon-days",
        type=int,
        default=None,
        help="Ignore rows scheduled further out than this many days (defaults to config)",
    )
    run.add_argument(
        "--timezone",
        type=str,
        help="IANA timezone overriding the account timezone",
    )
    run.add_argument(
        "--now",
        type=str,
        help="ISO-8601 timestamp (UTC unless an offset is given) to evaluate the run at",
    )
    run.add_argument(
        "--preview-only",
        action="store_true",
        help="Validate and write the preview without changing anything",
    )
    return parser.parse_args(list(argv))


def _parse_iso_datetime(value: str) -> datetime:
    try:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        dt = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _fixed_clock(value: str | None) -> Callable[[], datetime] | None:
    if value is None:
        return None
    instant = _parse_iso_datetime(value)
    return lambda: instant


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        clock = _fixed_clock(parsed_args.now)
        if parsed_args.horizon_days is not None and parsed_args.horizon_days < 0:
            raise ValueError("Horizon days must be non-negative")  # noqa: TRY301
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command != "run":
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
        report = run_schedule(
            text_csv=parsed_args.text_csv,
            image_csv=parsed_args.image_csv,
            preview_csv=parsed_args.preview_csv,
            results_csv=parsed_args.results_csv,
            horizon_days=parsed_args.horizon_days,
            timezone=parsed_args.timezone,
            preview_only=parsed_args.preview_only,
            clock=clock,
        )
        log.info("Schedule run finished: %s", report.summary())
    except Exception:
        log.exception("Fatal error during schedule run")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
