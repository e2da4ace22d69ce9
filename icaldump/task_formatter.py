"""Template rendering of tasks.

Templates use literal ``${name}`` placeholders, e.g.
``"- [ ] ${startHour}:${startMinute} ${summary}\\n"``. Placeholders that are
not recognized are left untouched.
"""

import re
from collections.abc import Iterable
from datetime import datetime
from typing import Callable, Optional

from .models import Task

DEFAULT_TEMPLATE = "${summary} - ${dueDate}\n"
DUE_DATE_FORMAT = "%d.%m.%Y %H:%M"

_PLACEHOLDER_PATTERN = re.compile(r"\$\{(\w+)\}")


def _strftime(value: Optional[datetime], fmt: str) -> str:
    return value.strftime(fmt) if value is not None else ""


def _duration(task: Task) -> str:
    minutes = task.duration_minutes
    if minutes is None:
        return ""
    return f"{minutes:g}"


PLACEHOLDERS: dict[str, Callable[[Task], str]] = {
    "summary": lambda t: t.summary,
    "startMinute": lambda t: _strftime(t.start_date, "%M"),
    "startHour": lambda t: _strftime(t.start_date, "%H"),
    "startSecond": lambda t: _strftime(t.start_date, "%S"),
    "endMinute": lambda t: _strftime(t.end_date, "%M"),
    "endHour": lambda t: _strftime(t.end_date, "%H"),
    "endSecond": lambda t: _strftime(t.end_date, "%S"),
    "duration": _duration,
    "status": lambda t: t.status,
    "description": lambda t: t.description or "",
    "isRecurring": lambda t: "true" if t.is_recurring else "false",
    "type": lambda t: t.kind.value,
    "dueDate": lambda t: _strftime(t.due_date, DUE_DATE_FORMAT),
}


def format_task(template: str, task: Task) -> str:
    """Substitute every known placeholder in template with the task's values."""

    def _replace(match: re.Match) -> str:
        render = PLACEHOLDERS.get(match.group(1))
        return render(task) if render is not None else match.group(0)

    return _PLACEHOLDER_PATTERN.sub(_replace, template)


def render_tasks(template: str, tasks: Iterable[Task]) -> str:
    """Format each task and concatenate the results."""
    return "".join(format_task(template, task) for task in tasks)
