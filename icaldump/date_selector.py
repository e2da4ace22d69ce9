"""Quick-pick dates for choosing the day to extract.

Every option is a ``DD.MM.YYYY`` string, optionally followed by `` - Label``.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

logger = logging.getLogger(__name__)

MENU_DATE_FORMAT = "%d.%m.%Y"

# keyword -> (label, offset in days from today)
QUICK_PICKS: dict[str, tuple[str, int]] = {
    "yesterday": ("Yesterday", -1),
    "tomorrow": ("Tomorrow", 1),
    "week": ("In 1 week", 7),
    "today": ("Today", 0),
}


def _format(day: date) -> str:
    return day.strftime(MENU_DATE_FORMAT)


def quick_pick_options(query: Optional[str] = None, today: Optional[date] = None) -> list[str]:
    """Build the date menu.

    The typed query comes first when it parses as DD.MM.YYYY, followed by
    yesterday, tomorrow, in one week and today.

    Args:
        query: Free text typed by the user
        today: Reference day (defaults to the current local date)

    Returns:
        Menu entries such as "24.12.2024 - Yesterday"
    """
    today = today or date.today()
    options: list[str] = []

    if query and query.strip():
        try:
            typed = datetime.strptime(query.strip(), MENU_DATE_FORMAT).date()
        except ValueError:
            logger.debug("Typed date %r does not match DD.MM.YYYY", query)
        else:
            options.append(_format(typed))

    for label, offset in QUICK_PICKS.values():
        options.append(f"{_format(today + timedelta(days=offset))} - {label}")
    return options


def selection_to_date_string(choice: Optional[str]) -> Optional[str]:
    """Strip the label from a chosen menu entry; a dismissed menu stays None."""
    if choice is None:
        return None
    return choice.split(" -")[0].strip()


def resolve_date_argument(value: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """Map quick-pick keywords to their DD.MM.YYYY string.

    Anything that is not a keyword (including menu entries with a label) is
    passed through for regular date parsing.
    """
    if value is None:
        return None
    keyword = value.strip().lower()
    if keyword in QUICK_PICKS:
        _, offset = QUICK_PICKS[keyword]
        return _format((today or date.today()) + timedelta(days=offset))
    return selection_to_date_string(value)
