"""Task extraction pipeline: date parsing, calendar parsing, resolution and sorting."""

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime, tzinfo
from typing import Any, Optional, Union

from .calendar_model import parse_calendar
from .date_parser import day_bounds, parse_target_date, resolve_target_day
from .datetime_utils import get_timezone
from .fetcher import ICSFetcher
from .models import CalendarSource, Task
from .occurrence_resolver import OccurrenceResolver
from .rrule_expander import RecurrenceExpander, RecurrenceExpanderConfig
from .task_sorter import sort_tasks_by_start

logger = logging.getLogger(__name__)


def extract_tasks(
    ics_content: str,
    date_str: Optional[str] = None,
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
    expander: Optional[RecurrenceExpander] = None,
) -> list[Task]:
    """Extract the tasks of one calendar for one day.

    Args:
        ics_content: Raw VCALENDAR text
        date_str: Target date in DD.MM.YYYY, YYYY-MM-DD or MM/DD/YYYY form,
            or None for today
        tz: Timezone the day and floating times are interpreted in
            (defaults to the system local timezone)
        now: Current time override used when date_str is None
        expander: Recurrence expander override

    Returns:
        Tasks for the day, ordered by start time with undated tasks last

    Raises:
        DateFormatError: If date_str has the wrong shape
        InvalidDateError: If date_str is not a real date
        CalendarParseError: If ics_content is not a well-formed calendar
    """
    target_tz = tz or get_timezone()
    day_start = resolve_target_day(date_str, target_tz, now=now)
    _, day_end = day_bounds(day_start)

    document = parse_calendar(ics_content, target_tz)
    resolver = OccurrenceResolver(day_start, day_end, expander=expander)
    tasks = sort_tasks_by_start(resolver.resolve(document))

    logger.info("Extracted %d tasks for %s", len(tasks), day_start.date().isoformat())
    return tasks


async def get_tasks(
    source: Union[CalendarSource, str],
    date_str: Optional[str] = None,
    tz: Optional[tzinfo] = None,
    settings: Any = None,
    fetcher: Optional[ICSFetcher] = None,
    now: Optional[datetime] = None,
) -> list[Task]:
    """Download a calendar and extract its tasks for one day.

    The download is the only await; resolution runs synchronously afterwards.

    Args:
        source: Calendar source or bare URL
        date_str: Target date string, or None for today
        tz: Timezone for the extraction
        settings: Settings passed to the fetcher and expander
        fetcher: Fetcher to reuse (a temporary one is created otherwise)
        now: Current time override

    Returns:
        Sorted tasks for the day

    Raises:
        CalendarFetchError: If the calendar could not be downloaded
        TargetDateError: If date_str is invalid
        CalendarParseError: If the downloaded text is not a calendar
    """
    # Reject a bad date before touching the network
    if date_str is not None:
        parse_target_date(date_str)

    if isinstance(source, str):
        source = CalendarSource(url=source)

    if fetcher is None:
        async with ICSFetcher(settings) as own_fetcher:
            ics_content = await own_fetcher.fetch_text(source)
    else:
        ics_content = await fetcher.fetch_text(source)

    expander = RecurrenceExpander(RecurrenceExpanderConfig.from_settings(settings))
    return extract_tasks(ics_content, date_str, tz=tz, now=now, expander=expander)


async def get_tasks_for_sources(
    sources: Sequence[CalendarSource],
    date_str: Optional[str] = None,
    tz: Optional[tzinfo] = None,
    settings: Any = None,
    fetcher: Optional[ICSFetcher] = None,
    now: Optional[datetime] = None,
) -> list[Union[list[Task], BaseException]]:
    """Extract tasks from several calendars concurrently.

    Each calendar is fetched and resolved independently; a failure for one
    calendar is returned in its slot instead of cancelling the others.

    Returns:
        One entry per source, in order: the task list or the raised exception
    """
    if fetcher is None:
        async with ICSFetcher(settings) as own_fetcher:
            return await get_tasks_for_sources(
                sources, date_str, tz=tz, settings=settings, fetcher=own_fetcher, now=now
            )

    return await asyncio.gather(
        *(
            get_tasks(source, date_str, tz=tz, settings=settings, fetcher=fetcher, now=now)
            for source in sources
        ),
        return_exceptions=True,
    )
