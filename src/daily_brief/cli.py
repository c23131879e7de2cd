"""CLI entry point for daily-brief.

Usage:
    daily-brief generate                  # Print the brief for the configured windows
    daily-brief generate --refresh        # Regenerate instead of using the cache
    daily-brief generate --json           # Print the brief as JSON
    daily-brief invalidate                # Discard the cached brief
    daily-brief status                    # Show when the last brief was generated
    daily-brief --help                    # Show all options
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import NoReturn

from pydantic import ValidationError

from daily_brief.bootstrap import build_orchestrator
from daily_brief.brief.formatting import format_brief_summary
from daily_brief.core.config import Config
from daily_brief.core.errors import SourceFetchError
from daily_brief.core.logging import configure_logging
from daily_brief.schemas.brief import BriefData, BriefSettings

EXIT_CONFIG_ERROR = 1
EXIT_SOURCE_ERROR = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="daily-brief",
        description="Aggregate email and calendar into a ranked daily brief",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in project root)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generate_parser = subparsers.add_parser("generate", help="Print the brief")
    generate_parser.add_argument(
        "--email-window",
        type=int,
        default=None,
        metavar="HOURS",
        help="Hours of email history to include (default: BRIEF_EMAIL_WINDOW_HOURS)",
    )
    generate_parser.add_argument(
        "--calendar-window",
        type=int,
        default=None,
        metavar="HOURS",
        help="Hours of upcoming events to include (default: BRIEF_CALENDAR_WINDOW_HOURS)",
    )
    generate_parser.add_argument(
        "--refresh",
        action="store_true",
        help="Discard the cached brief and regenerate",
    )
    generate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the brief as JSON",
    )

    subparsers.add_parser("invalidate", help="Discard the cached brief")
    subparsers.add_parser("status", help="Show when the last brief was generated")

    return parser.parse_args(argv)


def get_env_file(args: argparse.Namespace) -> Path | None:
    """Get the .env file path from args or default location."""
    env_file = args.env_file
    if env_file is None:
        # Try project root
        cli_module = Path(__file__).resolve()
        project_root = cli_module.parent.parent.parent
        env_file = project_root / ".env"
    return env_file if env_file.exists() else None


def _fail_config(problems: list[str]) -> NoReturn:
    print("Configuration errors:", file=sys.stderr)
    for problem in problems:
        print(f"  - {problem}", file=sys.stderr)
    sys.exit(EXIT_CONFIG_ERROR)


def resolve_settings(args: argparse.Namespace, config: Config) -> BriefSettings:
    """Combine command line windows with configured defaults.

    Raises:
        ValidationError: If a window is outside (0, 168] hours.
    """
    return BriefSettings(
        email_window_hours=(
            args.email_window if args.email_window is not None else config.email_window_hours
        ),
        calendar_window_hours=(
            args.calendar_window
            if args.calendar_window is not None
            else config.calendar_window_hours
        ),
    )


def generate(args: argparse.Namespace, config: Config) -> None:
    """Handle generate command."""
    problems = config.validate()
    if problems:
        _fail_config(problems)

    try:
        settings = resolve_settings(args, config)
    except ValidationError as e:
        _fail_config([f"{err['loc'][0]}: {err['msg']}" for err in e.errors()])

    async def _generate() -> BriefData:
        orchestrator, store = await build_orchestrator(config)
        try:
            return await orchestrator.generate_brief(settings, force_refresh=args.refresh)
        finally:
            await store.close()

    try:
        brief = asyncio.run(_generate())
    except SourceFetchError as e:
        print(
            f"Failed to fetch {e.source or 'source'} data for {e.account_id}: {e}",
            file=sys.stderr,
        )
        print("No previous brief is available. Try again later.", file=sys.stderr)
        sys.exit(EXIT_SOURCE_ERROR)

    if args.json:
        print(brief.model_dump_json(indent=2))
    else:
        print(format_brief_summary(brief), end="")


def invalidate(config: Config) -> None:
    """Handle invalidate command."""
    problems = config.validate(require_accounts=False)
    if problems:
        _fail_config(problems)

    async def _invalidate() -> None:
        orchestrator, store = await build_orchestrator(config)
        try:
            await orchestrator.invalidate_cache()
        finally:
            await store.close()

    asyncio.run(_invalidate())
    print("Cached brief discarded")


def status(config: Config) -> None:
    """Handle status command."""
    problems = config.validate(require_accounts=False)
    if problems:
        _fail_config(problems)

    async def _status() -> datetime | None:
        orchestrator, store = await build_orchestrator(config)
        try:
            # Loads a persisted entry, if any, so its timestamp is known
            await orchestrator.cache.get(orchestrator.settings.cache_key)
            return orchestrator.last_brief_timestamp()
        finally:
            await store.close()

    timestamp = asyncio.run(_status())
    if timestamp is None:
        print("No brief generated yet")
    else:
        print(f"Last brief: {timestamp.isoformat()}")


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for the daily brief."""
    args = parse_args(argv)

    env_file = get_env_file(args)
    try:
        config = Config.from_env(env_file)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    configure_logging(config.log_level, json_output=config.log_json)

    if args.command == "generate":
        generate(args, config)
    elif args.command == "invalidate":
        invalidate(config)
    elif args.command == "status":
        status(config)
    else:
        print("Usage: daily-brief {generate|invalidate|status}")
        sys.exit(EXIT_CONFIG_ERROR)


if __name__ == "__main__":
    main()
