"""Selection of the concrete occurrences that fall on a target day.

Every component is classified once as an exception override, a recurring
series or a plain item, and handed to the matching handler. Each handler emits
at most one Task for the component.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .calendar_model import CalendarComponent, CalendarDocument
from .datetime_utils import canonical_instant, is_same_day
from .exceptions import RecurrenceExpansionError
from .models import Task, TaskKind
from .rrule_expander import RecurrenceExpander

logger = logging.getLogger(__name__)


class Classification(Enum):
    """Resolution path of a calendar component."""

    EXCEPTION = "exception"
    RECURRING = "recurring"
    PLAIN = "plain"


def classify(component: CalendarComponent) -> Classification:
    """Pick the single resolution path for a component.

    A recurrence-id always wins over an RRULE, which always wins over plain handling.
    """
    if component.is_exception:
        return Classification.EXCEPTION
    if component.is_recurring:
        return Classification.RECURRING
    return Classification.PLAIN


@dataclass
class RecurrenceIndex:
    """Per-run lookup tables for recurring series and their overrides.

    series maps uid to the base recurring component; exceptions maps
    (uid, canonical recurrence instant) to the override component.
    """

    series: dict[str, CalendarComponent] = field(default_factory=dict)
    exceptions: dict[tuple[str, str], CalendarComponent] = field(default_factory=dict)

    @classmethod
    def build(cls, components: Iterable[CalendarComponent]) -> "RecurrenceIndex":
        index = cls()
        for component in components:
            if not component.uid:
                continue
            if component.recurrence_id is not None:
                key = (component.uid, canonical_instant(component.recurrence_id))
                index.exceptions[key] = component
            elif component.is_recurring:
                index.series[component.uid] = component

        logger.debug(
            "Recurrence index built: %d series, %d exceptions",
            len(index.series),
            len(index.exceptions),
        )
        return index

    def has_exception(self, uid: Optional[str], occurrence: datetime) -> bool:
        """Check whether an override exists for this exact occurrence instant."""
        if not uid:
            return False
        return (uid, canonical_instant(occurrence)) in self.exceptions


class OccurrenceResolver:
    """Resolves the tasks of one calendar for one target day."""

    def __init__(
        self,
        day_start: datetime,
        day_end: datetime,
        expander: Optional[RecurrenceExpander] = None,
    ):
        """Initialize the resolver for a target day.

        Args:
            day_start: Local midnight of the target day
            day_end: Exclusive end of the target day
            expander: Recurrence expander (defaults to a 100-occurrence cap)
        """
        self.day_start = day_start
        self.day_end = day_end
        self.expander = expander or RecurrenceExpander()
        self._handlers: dict[
            Classification,
            Callable[[CalendarComponent, RecurrenceIndex], Optional[Task]],
        ] = {
            Classification.EXCEPTION: self._resolve_exception,
            Classification.RECURRING: self._resolve_recurring,
            Classification.PLAIN: self._resolve_plain,
        }

    def resolve(self, document: CalendarDocument) -> list[Task]:
        """Resolve all to-dos, then all events, in document order.

        Args:
            document: Parsed calendar

        Returns:
            Unsorted list of tasks for the target day
        """
        components = document.all_components()
        index = RecurrenceIndex.build(components)

        tasks: list[Task] = []
        for component in components:
            task = self.resolve_component(component, index)
            if task is not None:
                tasks.append(task)

        logger.debug(
            "Resolved %d tasks for %s from %d components",
            len(tasks),
            self.day_start.date(),
            len(components),
        )
        return tasks

    def resolve_component(
        self, component: CalendarComponent, index: RecurrenceIndex
    ) -> Optional[Task]:
        """Resolve a single component, containing recurrence failures.

        A component whose rule cannot be expanded is skipped with a warning so
        the rest of the calendar is still processed.
        """
        classification = classify(component)
        try:
            return self._handlers[classification](component, index)
        except RecurrenceExpansionError as e:
            logger.warning(
                "Skipping %s %s (%r): %s",
                component.kind.value,
                component.uid or "<no-uid>",
                component.summary,
                e,
            )
            return None

    def _resolve_exception(
        self, component: CalendarComponent, index: RecurrenceIndex
    ) -> Optional[Task]:
        recurrence_id = component.recurrence_id
        if recurrence_id is None or not is_same_day(recurrence_id, self.day_start):
            return None
        if not component.uid:
            logger.debug("Ignoring exception %r without UID", component.summary)
            return None

        if component.uid not in index.series:
            logger.debug("Exception %s has no recurring series in this calendar", component.uid)

        return self._make_task(
            component,
            due_date=component.due,
            is_recurring=True,
            recurrence_id=canonical_instant(recurrence_id),
            is_exception=True,
        )

    def _resolve_recurring(
        self, component: CalendarComponent, index: RecurrenceIndex
    ) -> Optional[Task]:
        anchor = component.anchor
        if anchor is None or component.rrule is None:
            logger.debug("Recurring %s has no DTSTART or DUE anchor", component.uid)
            return None

        for occurrence in self.expander.expand(component.rrule, anchor, self.day_end):
            if not is_same_day(occurrence, self.day_start):
                continue
            if index.has_exception(component.uid, occurrence):
                logger.debug(
                    "Occurrence %s of %s replaced by exception", occurrence, component.uid
                )
                continue
            return self._make_task(
                component,
                due_date=occurrence.astimezone(self.day_start.tzinfo),
                is_recurring=True,
            )

        return None

    def _resolve_plain(
        self, component: CalendarComponent, _index: RecurrenceIndex
    ) -> Optional[Task]:
        relevant_date = component.due or component.start or component.end

        if relevant_date is not None:
            if is_same_day(relevant_date, self.day_start):
                return self._make_task(component, due_date=relevant_date, is_recurring=False)
            return None

        # Undated to-dos are always active
        if component.kind == TaskKind.TODO:
            return self._make_task(component, due_date=None, is_recurring=False)
        return None

    @staticmethod
    def _make_task(
        component: CalendarComponent,
        due_date: Optional[datetime],
        is_recurring: bool,
        recurrence_id: Optional[str] = None,
        is_exception: bool = False,
    ) -> Task:
        return Task(
            summary=component.summary,
            due_date=due_date,
            start_date=component.start,
            end_date=component.end,
            status=component.status,
            description=component.description,
            is_recurring=is_recurring,
            kind=component.kind,
            uid=component.uid,
            recurrence_id=recurrence_id,
            is_exception=is_exception,
        )
