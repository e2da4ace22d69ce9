"""Read-only in-memory model of a parsed iCalendar document."""

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Optional

from icalendar import Calendar, Component
from icalendar.error import BrokenCalendarProperty

from .datetime_utils import to_aware_datetime
from .exceptions import CalendarParseError
from .models import DEFAULT_STATUS, UNTITLED_SUMMARY, TaskKind

logger = logging.getLogger(__name__)


def _first_property(component: Component, name: str) -> Any:
    """Return the first value of a property that may occur several times."""
    value = component.get(name)
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _decoded_time(component: Component, name: str, default_tz: tzinfo) -> Optional[datetime]:
    """Decode a DATE or DATE-TIME property into an aware datetime in its own zone.

    Floating and date-only values are placed in default_tz. A value icalendar
    could not parse is treated as absent.
    """
    prop = _first_property(component, name)
    if prop is None:
        return None
    try:
        value = getattr(prop, "dt", None)
    except BrokenCalendarProperty as e:
        logger.warning("Ignoring malformed %s in %s: %s", name, _text(component, "UID") or "<no-uid>", e)
        return None
    return to_aware_datetime(value, default_tz)


def _rrule_string(component: Component) -> Optional[str]:
    """Extract the first RRULE property as its iCalendar text form.

    A present but unparsable rule comes back as its (possibly empty) text, so
    the expander rejects it instead of the component being read as plain.
    """
    prop = _first_property(component, "RRULE")
    if prop is None:
        return None
    if hasattr(prop, "to_ical"):
        text = prop.to_ical()
        return text.decode("utf-8") if isinstance(text, bytes) else str(text)
    return str(prop)


def _text(component: Component, name: str) -> Optional[str]:
    value = _first_property(component, name)
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class CalendarComponent:
    """One VTODO or VEVENT with its decoded properties.

    A component with a recurrence_id is an exception override of one occurrence
    of the series sharing its uid; its own RRULE is never used as a generator.

    due, start, end and recurrence_id are expressed in the run's timezone.
    anchor keeps the series' own zone (UTC or TZID) so recurrence rules are
    expanded on that zone's wall clock.
    """

    kind: TaskKind
    uid: Optional[str]
    summary: str
    status: str
    description: str
    due: Optional[datetime]
    start: Optional[datetime]
    end: Optional[datetime]
    rrule: Optional[str]
    recurrence_id: Optional[datetime]
    anchor: Optional[datetime]
    raw: Component

    @property
    def is_exception(self) -> bool:
        return self.recurrence_id is not None

    @property
    def is_recurring(self) -> bool:
        return self.rrule is not None

    @classmethod
    def from_ical(cls, component: Component, kind: TaskKind, target_tz: tzinfo) -> "CalendarComponent":
        """Build a component from a raw icalendar VTODO/VEVENT.

        Args:
            component: Raw icalendar component
            kind: Whether the component is a to-do or an event
            target_tz: Timezone floating and date-only values are read in

        Returns:
            Decoded CalendarComponent
        """

        def _local(value: Optional[datetime]) -> Optional[datetime]:
            return value.astimezone(target_tz) if value is not None else None

        due = _decoded_time(component, "DUE", target_tz)
        start = _decoded_time(component, "DTSTART", target_tz)
        status = _first_property(component, "STATUS")
        return cls(
            kind=kind,
            uid=_text(component, "UID") or None,
            summary=_text(component, "SUMMARY") or UNTITLED_SUMMARY,
            status=str(status) if isinstance(status, str) and status else DEFAULT_STATUS,
            description=_text(component, "DESCRIPTION") or "",
            due=_local(due),
            start=_local(start),
            end=_local(_decoded_time(component, "DTEND", target_tz)),
            rrule=_rrule_string(component),
            recurrence_id=_local(_decoded_time(component, "RECURRENCE-ID", target_tz)),
            anchor=start or due,
            raw=component,
        )


@dataclass(frozen=True)
class CalendarDocument:
    """Components of one calendar grouped by type, in document order."""

    todos: tuple[CalendarComponent, ...]
    events: tuple[CalendarComponent, ...]
    name: Optional[str] = None

    def all_components(self) -> tuple[CalendarComponent, ...]:
        """To-dos first, then events."""
        return self.todos + self.events


def _check_component_nesting(ics_content: str) -> None:
    """Verify that every BEGIN:<name> line is closed by a matching END:<name>.

    Folded continuation lines start with whitespace and never carry a marker.
    """
    stack: list[str] = []
    for line_no, line in enumerate(ics_content.splitlines(), start=1):
        if not line or line[0] in " \t":
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().upper()
        name = value.strip().upper()
        if key == "BEGIN":
            stack.append(name)
        elif key == "END":
            if not stack:
                raise CalendarParseError(f"Line {line_no}: END:{name} without matching BEGIN")
            opened = stack.pop()
            if opened != name:
                raise CalendarParseError(f"Line {line_no}: END:{name} closes BEGIN:{opened}")
    if stack:
        raise CalendarParseError(f"Unclosed component blocks: {', '.join(stack)}")


def validate_ics_content(ics_content: str) -> None:
    """Check the structural markers every calendar document must carry.

    Raises:
        CalendarParseError: If the text is empty, lacks BEGIN/END:VCALENDAR,
            or has unbalanced component blocks
    """
    if not ics_content or not ics_content.strip():
        raise CalendarParseError("Empty calendar content")
    if "BEGIN:VCALENDAR" not in ics_content:
        raise CalendarParseError("Missing BEGIN:VCALENDAR marker")
    if "END:VCALENDAR" not in ics_content:
        raise CalendarParseError("Missing END:VCALENDAR marker")
    _check_component_nesting(ics_content)


def parse_calendar(ics_content: str, target_tz: tzinfo) -> CalendarDocument:
    """Parse raw iCalendar text into a CalendarDocument.

    Args:
        ics_content: Raw VCALENDAR text
        target_tz: Timezone floating and date-only values are read in

    Returns:
        CalendarDocument with direct VTODO and VEVENT children

    Raises:
        CalendarParseError: If the text is not a well-formed VCALENDAR document
    """
    validate_ics_content(ics_content)

    try:
        calendar = Calendar.from_ical(ics_content)
    except Exception as e:
        raise CalendarParseError(f"Failed to parse calendar: {e}") from e

    if calendar.name != "VCALENDAR":
        raise CalendarParseError(f"Expected a VCALENDAR document, got {calendar.name}")

    todos = []
    events = []
    for sub in calendar.subcomponents:
        if sub.name == "VTODO":
            todos.append(CalendarComponent.from_ical(sub, TaskKind.TODO, target_tz))
        elif sub.name == "VEVENT":
            events.append(CalendarComponent.from_ical(sub, TaskKind.EVENT, target_tz))

    cal_name = calendar.get("X-WR-CALNAME")
    logger.debug(
        "Parsed calendar %r: %d to-dos, %d events", cal_name, len(todos), len(events)
    )
    return CalendarDocument(
        todos=tuple(todos),
        events=tuple(events),
        name=str(cal_name) if cal_name else None,
    )
