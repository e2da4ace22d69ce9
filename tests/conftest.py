"""Shared fixtures for icaldump tests."""

from collections.abc import Generator
from datetime import tzinfo
from types import SimpleNamespace
from typing import Any, Callable
from zoneinfo import ZoneInfo

import pytest


@pytest.fixture
def simple_settings() -> SimpleNamespace:
    """Lightweight settings object used across tests.

    Fields:
      - request_timeout: HTTP read timeout in seconds
      - max_retries: retry attempts for HTTP fetches
      - retry_backoff_factor: multiplier for retry backoff delays
      - max_occurrences: recurrence expansion cap
    """
    return SimpleNamespace(
        request_timeout=5,
        max_retries=2,
        retry_backoff_factor=1.0,
        max_occurrences=100,
    )


@pytest.fixture
def test_timezone() -> tzinfo:
    """Fixed timezone so tests do not depend on the host's local time."""
    return ZoneInfo("Europe/Berlin")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep icaldump environment overrides from leaking between tests."""
    for name in ("ICALDUMP_DEBUG", "ICALDUMP_LOG_LEVEL", "ICALDUMP_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def make_ics() -> Callable[..., str]:
    """Factory wrapping component blocks in a VCALENDAR document."""

    def _make(*components: str) -> str:
        body = "\n".join(c.strip() for c in components)
        return (
            "BEGIN:VCALENDAR\n"
            "VERSION:2.0\n"
            "PRODID:-//icaldump test//EN\n"
            f"{body}\n"
            "END:VCALENDAR\n"
        )

    return _make


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_todo_due() -> str:
    """To-do due 2024-06-01 10:00, no rule."""
    return """BEGIN:VTODO
UID:todo-due@icaldump.test
SUMMARY:Pay rent
DUE:20240601T100000
STATUS:NEEDS-ACTION
END:VTODO"""


@pytest.fixture
def sample_todo_undated() -> str:
    """To-do without DUE, DTSTART or DTEND."""
    return """BEGIN:VTODO
UID:todo-undated@icaldump.test
SUMMARY:Someday task
END:VTODO"""


@pytest.fixture
def sample_event_daily() -> str:
    """Daily event at 09:00-09:30 starting 2024-06-01."""
    return """BEGIN:VEVENT
UID:standup@icaldump.test
SUMMARY:Daily Standup
DTSTART:20240601T090000
DTEND:20240601T093000
RRULE:FREQ=DAILY
END:VEVENT"""


@pytest.fixture
def sample_exception_rescheduled() -> str:
    """Override of the 2024-06-10 09:00 standup, moved to 11:00."""
    return """BEGIN:VEVENT
UID:standup@icaldump.test
RECURRENCE-ID:20240610T090000
SUMMARY:Rescheduled
DTSTART:20240610T110000
DTEND:20240610T113000
END:VEVENT"""
