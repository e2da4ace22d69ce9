"""
Unit tests for icaldump.occurrence_resolver.

Covers:
- classification of components into exception / recurring / plain
- RecurrenceIndex construction and lookups
- OccurrenceResolver output for a target day
"""

import logging
from datetime import datetime

import pytest

from icaldump.calendar_model import parse_calendar
from icaldump.date_parser import day_bounds
from icaldump.models import TaskKind
from icaldump.occurrence_resolver import (
    Classification,
    OccurrenceResolver,
    RecurrenceIndex,
    classify,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def resolve_day(make_ics, test_timezone):
    """Resolve the given component blocks for a day in June 2024."""

    def _resolve(day: int, *components: str):
        document = parse_calendar(make_ics(*components), test_timezone)
        start, end = day_bounds(datetime(2024, 6, day, tzinfo=test_timezone))
        return OccurrenceResolver(start, end).resolve(document)

    return _resolve


# ==================== Classification ====================


def test_classify_each_path(make_ics, test_timezone, sample_todo_due, sample_event_daily, sample_exception_rescheduled) -> None:
    document = parse_calendar(
        make_ics(sample_todo_due, sample_event_daily, sample_exception_rescheduled), test_timezone
    )
    todo, series, override = document.all_components()

    assert classify(todo) is Classification.PLAIN
    assert classify(series) is Classification.RECURRING
    assert classify(override) is Classification.EXCEPTION


def test_classify_recurrence_id_wins_over_rrule(make_ics, test_timezone) -> None:
    document = parse_calendar(
        make_ics(
            "BEGIN:VEVENT\nUID:x\nRECURRENCE-ID:20240610T090000\n"
            "DTSTART:20240610T090000\nRRULE:FREQ=DAILY\nEND:VEVENT"
        ),
        test_timezone,
    )

    assert classify(document.events[0]) is Classification.EXCEPTION


# ==================== Recurrence index ====================


def test_recurrence_index_maps_series_and_exceptions(
    make_ics, test_timezone, sample_todo_due, sample_event_daily, sample_exception_rescheduled
) -> None:
    document = parse_calendar(
        make_ics(sample_todo_due, sample_event_daily, sample_exception_rescheduled), test_timezone
    )

    index = RecurrenceIndex.build(document.all_components())

    assert list(index.series) == ["standup@icaldump.test"]
    assert list(index.exceptions) == [("standup@icaldump.test", "20240610T070000Z")]
    assert index.has_exception("standup@icaldump.test", datetime(2024, 6, 10, 9, 0, tzinfo=test_timezone))
    assert not index.has_exception("standup@icaldump.test", datetime(2024, 6, 10, 9, 1, tzinfo=test_timezone))
    assert not index.has_exception(None, datetime(2024, 6, 10, 9, 0, tzinfo=test_timezone))


def test_recurrence_index_skips_components_without_uid(make_ics, test_timezone) -> None:
    document = parse_calendar(
        make_ics("BEGIN:VEVENT\nDTSTART:20240601T090000\nRRULE:FREQ=DAILY\nEND:VEVENT"),
        test_timezone,
    )

    index = RecurrenceIndex.build(document.all_components())

    assert index.series == {}
    assert index.exceptions == {}


# ==================== Recurring path ====================


def test_daily_event_emits_occurrence_on_target_day(resolve_day, sample_event_daily, test_timezone) -> None:
    tasks = resolve_day(10, sample_event_daily)

    assert len(tasks) == 1
    task = tasks[0]
    assert task.due_date == datetime(2024, 6, 10, 9, 0, tzinfo=test_timezone)
    assert task.is_recurring is True
    assert task.is_exception is False
    assert task.recurrence_id is None
    assert task.kind is TaskKind.EVENT
    assert task.uid == "standup@icaldump.test"
    # start/end are the series' own properties
    assert task.start_date == datetime(2024, 6, 1, 9, 0, tzinfo=test_timezone)
    assert task.end_date == datetime(2024, 6, 1, 9, 30, tzinfo=test_timezone)


def test_daily_event_before_series_start_emits_nothing(make_ics, test_timezone, sample_event_daily) -> None:
    document = parse_calendar(make_ics(sample_event_daily), test_timezone)
    start, end = day_bounds(datetime(2024, 5, 31, tzinfo=test_timezone))

    assert OccurrenceResolver(start, end).resolve(document) == []


def test_weekly_event_off_day_emits_nothing(resolve_day) -> None:
    # Saturdays only
    weekly = "BEGIN:VEVENT\nUID:w\nDTSTART:20240601T080000\nRRULE:FREQ=WEEKLY\nEND:VEVENT"

    assert resolve_day(7, weekly) == []
    assert len(resolve_day(8, weekly)) == 1


def test_recurring_todo_uses_due_as_anchor(resolve_day, test_timezone) -> None:
    todo = "BEGIN:VTODO\nUID:water\nSUMMARY:Water plants\nDUE:20240601T180000\nRRULE:FREQ=DAILY;INTERVAL=3\nEND:VTODO"

    assert resolve_day(3, todo) == []
    tasks = resolve_day(4, todo)
    assert [t.due_date for t in tasks] == [datetime(2024, 6, 4, 18, 0, tzinfo=test_timezone)]
    assert tasks[0].kind is TaskKind.TODO


def test_recurring_without_anchor_emits_nothing(resolve_day) -> None:
    assert resolve_day(10, "BEGIN:VTODO\nUID:a\nRRULE:FREQ=DAILY\nEND:VTODO") == []


def test_recurring_beyond_occurrence_cap_emits_nothing(resolve_day) -> None:
    # More than 100 daily occurrences lie between the anchor and the target day
    old_series = "BEGIN:VEVENT\nUID:old\nDTSTART:20240101T090000\nRRULE:FREQ=DAILY\nEND:VEVENT"

    assert resolve_day(10, old_series) == []


def test_recurring_emits_first_match_only(resolve_day, test_timezone) -> None:
    hourly = "BEGIN:VEVENT\nUID:h\nDTSTART:20240610T080000\nRRULE:FREQ=HOURLY;COUNT=5\nEND:VEVENT"

    tasks = resolve_day(10, hourly)

    assert [t.due_date for t in tasks] == [datetime(2024, 6, 10, 8, 0, tzinfo=test_timezone)]


# ==================== Exception path ====================


def test_exception_replaces_generated_occurrence(
    resolve_day, sample_event_daily, sample_exception_rescheduled, test_timezone
) -> None:
    tasks = resolve_day(10, sample_event_daily, sample_exception_rescheduled)

    standup = [t for t in tasks if t.uid == "standup@icaldump.test"]
    assert len(standup) == 1
    task = standup[0]
    assert task.summary == "Rescheduled"
    assert task.is_exception is True
    assert task.is_recurring is True
    assert task.recurrence_id == "20240610T070000Z"
    assert task.start_date == datetime(2024, 6, 10, 11, 0, tzinfo=test_timezone)
    assert task.end_date == datetime(2024, 6, 10, 11, 30, tzinfo=test_timezone)


def test_exception_on_other_day_leaves_series_untouched(
    resolve_day, sample_event_daily, sample_exception_rescheduled, test_timezone
) -> None:
    tasks = resolve_day(11, sample_event_daily, sample_exception_rescheduled)

    assert len(tasks) == 1
    assert tasks[0].summary == "Daily Standup"
    assert tasks[0].due_date == datetime(2024, 6, 11, 9, 0, tzinfo=test_timezone)


def test_exception_for_different_instant_does_not_suppress(resolve_day, sample_event_daily) -> None:
    # Overrides 10:00, which the 09:00 series never generates
    override = (
        "BEGIN:VEVENT\nUID:standup@icaldump.test\nRECURRENCE-ID:20240610T100000\n"
        "SUMMARY:Extra\nDTSTART:20240610T100000\nEND:VEVENT"
    )

    tasks = resolve_day(10, sample_event_daily, override)

    assert sorted(t.summary for t in tasks) == ["Daily Standup", "Extra"]


def test_exception_with_utc_recurrence_id_matches_local_occurrence(resolve_day, sample_event_daily) -> None:
    override = (
        "BEGIN:VEVENT\nUID:standup@icaldump.test\nRECURRENCE-ID:20240610T070000Z\n"
        "SUMMARY:Moved\nDTSTART:20240610T150000\nEND:VEVENT"
    )

    tasks = resolve_day(10, sample_event_daily, override)

    assert [(t.summary, t.is_exception) for t in tasks] == [("Moved", True)]


def test_exception_without_series_is_still_emitted(resolve_day, sample_exception_rescheduled) -> None:
    tasks = resolve_day(10, sample_exception_rescheduled)

    assert len(tasks) == 1
    assert tasks[0].is_exception is True


def test_exception_without_uid_is_not_emitted(resolve_day) -> None:
    override = "BEGIN:VEVENT\nRECURRENCE-ID:20240610T090000\nSUMMARY:Orphan\nDTSTART:20240610T110000\nEND:VEVENT"

    assert resolve_day(10, override) == []


def test_exception_is_never_treated_as_plain(resolve_day) -> None:
    # Its DTSTART falls on the target day but its recurrence-id does not
    override = (
        "BEGIN:VEVENT\nUID:s\nRECURRENCE-ID:20240609T090000\n"
        "DTSTART:20240610T090000\nEND:VEVENT"
    )

    assert resolve_day(10, override) == []


# ==================== Plain path ====================


def test_plain_todo_due_on_target_day(resolve_day, sample_todo_due, test_timezone) -> None:
    tasks = resolve_day(1, sample_todo_due)

    assert len(tasks) == 1
    task = tasks[0]
    assert task.summary == "Pay rent"
    assert task.due_date == datetime(2024, 6, 1, 10, 0, tzinfo=test_timezone)
    assert task.is_recurring is False
    assert task.kind is TaskKind.TODO
    assert resolve_day(2, sample_todo_due) == []


def test_plain_relevant_date_prefers_due_over_start(resolve_day) -> None:
    todo = "BEGIN:VTODO\nUID:t\nDTSTART:20240601T080000\nDUE:20240602T080000\nEND:VTODO"

    assert resolve_day(1, todo) == []
    assert len(resolve_day(2, todo)) == 1


def test_plain_event_falls_back_to_end(resolve_day, test_timezone) -> None:
    event = "BEGIN:VEVENT\nUID:e\nDTEND:20240603T120000\nEND:VEVENT"

    tasks = resolve_day(3, event)

    assert [t.due_date for t in tasks] == [datetime(2024, 6, 3, 12, 0, tzinfo=test_timezone)]


def test_undated_todo_is_always_emitted(resolve_day, sample_todo_undated) -> None:
    for day in (1, 15, 30):
        tasks = resolve_day(day, sample_todo_undated)
        assert len(tasks) == 1
        assert tasks[0].due_date is None
        assert tasks[0].summary == "Someday task"


def test_undated_event_is_never_emitted(resolve_day) -> None:
    assert resolve_day(1, "BEGIN:VEVENT\nUID:nodate\nSUMMARY:Floating idea\nEND:VEVENT") == []


def test_all_day_event_matches_its_day(resolve_day) -> None:
    event = "BEGIN:VEVENT\nUID:holiday\nDTSTART;VALUE=DATE:20240605\nEND:VEVENT"

    assert len(resolve_day(5, event)) == 1
    assert resolve_day(6, event) == []


# ==================== Whole-calendar behavior ====================


@pytest.mark.parametrize("rule", ["FREQ=DAILY;X-UNKNOWN=1", "garbage", "FREQ=DAILY;INTERVAL=0"])
def test_malformed_rule_is_skipped_and_others_still_resolved(rule: str, resolve_day, sample_todo_due, caplog) -> None:
    broken = f"BEGIN:VEVENT\nUID:broken\nDTSTART:20240601T090000\nRRULE:{rule}\nEND:VEVENT"

    with caplog.at_level(logging.WARNING, logger="icaldump.occurrence_resolver"):
        tasks = resolve_day(1, broken, sample_todo_due)

    assert [t.uid for t in tasks] == ["todo-due@icaldump.test"]
    assert "broken" in caplog.text


def test_todos_are_resolved_before_events(resolve_day, sample_event_daily, sample_todo_due) -> None:
    tasks = resolve_day(1, sample_event_daily, sample_todo_due)

    assert [t.kind for t in tasks] == [TaskKind.TODO, TaskKind.EVENT]


def test_at_most_one_task_per_component(resolve_day, sample_todo_due, sample_todo_undated, sample_event_daily) -> None:
    tasks = resolve_day(1, sample_todo_due, sample_todo_undated, sample_event_daily)

    uids = [t.uid for t in tasks]
    assert len(uids) == len(set(uids)) == 3
