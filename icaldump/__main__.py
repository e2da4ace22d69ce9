"""Command-line entry for icaldump.

Fetches the selected calendars concurrently, extracts the tasks of one day and
prints them through the configured template.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

from . import _init_logging
from .config_loader import Config, load_config
from .date_parser import parse_target_date
from .date_selector import resolve_date_argument
from .datetime_utils import get_timezone
from .exceptions import ConfigError, TargetDateError
from .logging_config import configure_logging
from .models import CalendarSource
from .pipeline import get_tasks_for_sources
from .task_formatter import render_tasks

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the icaldump CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="icaldump",
        description="Dump a day's to-dos and events from iCalendar feeds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  icaldump                                   # Today's tasks from every configured calendar
  icaldump --calendar Work --date tomorrow   # Tomorrow's tasks from the "Work" calendar
  icaldump --url https://example.com/cal.ics --date 25.12.2024
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="Config file (default: $ICALDUMP_CONFIG or ~/.config/icaldump/config.yaml)")
    parser.add_argument(
        "--calendar",
        action="append",
        default=[],
        metavar="NAME",
        help="Configured calendar name or 1-based position (repeatable; default: all)",
    )
    parser.add_argument("--url", action="append", default=[], metavar="URL", help="Ad hoc calendar URL (repeatable)")
    parser.add_argument(
        "--date",
        metavar="DATE",
        help="DD.MM.YYYY, YYYY-MM-DD, MM/DD/YYYY, or one of today/yesterday/tomorrow/week",
    )
    parser.add_argument("--format", metavar="TEMPLATE", help="Output template, e.g. '${summary}\\n'")
    parser.add_argument("--timezone", metavar="TZ", help="IANA timezone name (default: system local)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def _select_sources(config: Config, names: list[str], urls: list[str]) -> list[CalendarSource]:
    """Resolve the calendars to fetch from CLI arguments and configuration.

    Raises:
        ConfigError: If a named calendar is not configured or nothing is selected
    """
    sources: list[CalendarSource] = []
    for name in names:
        calendar = config.find_calendar(name)
        if calendar is None:
            raise ConfigError(f"No calendar named {name!r} in configuration")
        sources.append(calendar)
    sources.extend(CalendarSource(name=url, url=url) for url in urls)

    if not names and not urls:
        sources = list(config.calendars)
    if not sources:
        raise ConfigError("No calendars configured; add one to the config file or pass --url")
    return sources


def main(argv: list[str] | None = None) -> int:
    """Run the icaldump CLI.

    Returns:
        Process exit code
    """
    args = _create_parser().parse_args(argv)
    _init_logging("DEBUG" if args.debug else os.environ.get("ICALDUMP_LOG_LEVEL"))

    try:
        config = load_config(args.config)
        configure_logging(debug_mode=args.debug or config.log_level == "DEBUG")
        sources = _select_sources(config, args.calendar, args.url)
        tz = get_timezone(args.timezone or config.timezone)
        date_str = resolve_date_argument(args.date)
        if date_str is not None:
            parse_target_date(date_str)
    except (ConfigError, TargetDateError, ValueError) as e:
        print(f"icaldump: {e}", file=sys.stderr)
        return EXIT_USAGE

    template = args.format.replace("\\n", "\n") if args.format else config.formatting

    for i, source in enumerate(sources):
        logger.info("Getting tasks from %s", source.display_name(i))

    try:
        results = asyncio.run(get_tasks_for_sources(sources, date_str, tz=tz, settings=config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED

    exit_code = EXIT_OK
    for i, (source, result) in enumerate(zip(sources, results)):
        if isinstance(result, BaseException):
            logger.error("Failed to get tasks from %s: %s", source.display_name(i), result)
            exit_code = EXIT_FAILURE
            continue
        sys.stdout.write(render_tasks(template, result))

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
