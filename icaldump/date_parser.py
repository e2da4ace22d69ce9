"""Target date parsing.

Accepts the three literal layouts users type or the date menu returns:
``YYYY-MM-DD``, ``DD.MM.YYYY`` and ``MM/DD/YYYY``.
"""

import logging
import re
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from .datetime_utils import midnight
from .exceptions import ACCEPTED_DATE_FORMATS, DateFormatError, InvalidDateError

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[.\-/]")


def parse_target_date(date_str: str) -> date:
    """Parse a user-supplied date string into a calendar date.

    The layout is detected from the position of the 4-digit year. When the
    year comes last, a dot means ``DD.MM.YYYY`` and anything else means
    ``MM/DD/YYYY``.

    Args:
        date_str: Date text such as "25.12.2024", "2024-12-25" or "12/25/2024"

    Returns:
        The calendar date

    Raises:
        DateFormatError: If the string is not three numeric parts with a 4-digit year
        InvalidDateError: If the parts do not form a real calendar date
    """
    text = date_str.strip()
    parts = _SEPARATORS.split(text)

    if len(parts) != 3 or not all(part.isdecimal() for part in parts):
        raise DateFormatError(f"Invalid date format {date_str!r}. Use {ACCEPTED_DATE_FORMATS}")

    if len(parts[0]) == 4:
        year, month, day = int(parts[0]), int(parts[1]), int(parts[2])
    elif len(parts[2]) == 4:
        year = int(parts[2])
        if "." in text:
            day, month = int(parts[0]), int(parts[1])
        else:
            month, day = int(parts[0]), int(parts[1])
    else:
        raise DateFormatError(
            f"Invalid date format {date_str!r}. Year must be 4 digits ({ACCEPTED_DATE_FORMATS})"
        )

    try:
        return date(year, month, day)
    except ValueError as e:
        raise InvalidDateError(
            f"Invalid date values in {date_str!r}: {e}. Use {ACCEPTED_DATE_FORMATS}"
        ) from e


def resolve_target_day(
    date_str: Optional[str],
    target_tz: tzinfo,
    now: Optional[datetime] = None,
) -> datetime:
    """Normalize the requested day to local midnight.

    Args:
        date_str: Date text, or None for today
        target_tz: Timezone the day is interpreted in
        now: Current time override (defaults to the wall clock)

    Returns:
        Aware datetime at midnight of the target day
    """
    if date_str is None:
        current = now.astimezone(target_tz) if now else datetime.now(target_tz)
        day = current.date()
        logger.debug("No target date given, using today: %s", day)
    else:
        day = parse_target_date(date_str)
    return midnight(day, target_tz)


def day_bounds(day_start: datetime) -> tuple[datetime, datetime]:
    """Inclusive start and exclusive end of the day beginning at day_start."""
    next_day = day_start.date() + timedelta(days=1)
    return day_start, midnight(next_day, day_start.tzinfo)
