"""Datetime normalization for iCalendar values.

Every instant handled by the resolver is a timezone-aware datetime in the
run's timezone, so calendar-day comparisons are plain local date equality.
"""

import logging
from datetime import UTC, date, datetime, time, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import tz as dateutil_tz

logger = logging.getLogger(__name__)

CANONICAL_INSTANT_FORMAT = "%Y%m%dT%H%M%SZ"


def get_timezone(name: Optional[str] = None) -> tzinfo:
    """Return the named IANA timezone, or the system local timezone.

    Args:
        name: IANA timezone name such as "Europe/Berlin", or None for local time

    Returns:
        tzinfo instance

    Raises:
        ValueError: If the name is not a known timezone
    """
    if not name:
        return dateutil_tz.tzlocal()
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def to_aware_datetime(value: Any, default_tz: tzinfo) -> Optional[datetime]:
    """Make a decoded iCalendar date or datetime timezone-aware, keeping its own zone.

    Aware datetimes (UTC or TZID) are returned unchanged; floating datetimes and
    date-only values (as midnight) are placed in default_tz.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=default_tz)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=default_tz)
    return None


def to_local_datetime(value: Any, target_tz: tzinfo) -> Optional[datetime]:
    """Convert a decoded iCalendar date or datetime to an aware datetime in target_tz.

    - Aware datetimes (UTC or TZID) are converted to target_tz.
    - Floating datetimes are read as wall-clock time in target_tz.
    - Date-only values become midnight in target_tz.

    Args:
        value: Decoded property value (datetime, date or anything else)
        target_tz: Timezone of the extraction run

    Returns:
        Aware datetime, or None for values that are not dates
    """
    aware = to_aware_datetime(value, target_tz)
    if aware is None:
        return None
    return aware.astimezone(target_tz)


def canonical_instant(dt: datetime) -> str:
    """Canonical string identity of an instant, used to match overrides to occurrences.

    Two datetimes denoting the same instant yield the same string regardless of
    the timezone they are expressed in.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).strftime(CANONICAL_INSTANT_FORMAT)


def is_same_day(dt: datetime, day_start: datetime) -> bool:
    """Check whether dt falls on the local calendar day that starts at day_start."""
    return dt.astimezone(day_start.tzinfo).date() == day_start.date()


def midnight(day: date, target_tz: tzinfo) -> datetime:
    """Local midnight of the given calendar day."""
    return datetime.combine(day, time.min, tzinfo=target_tz)
