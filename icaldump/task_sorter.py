"""Ordering of resolved tasks."""

from collections.abc import Iterable

from .models import Task


def _start_key(task: Task) -> tuple[bool, float]:
    if task.start_date is None:
        return (True, 0.0)
    return (False, task.start_date.timestamp())


def sort_tasks_by_start(tasks: Iterable[Task]) -> list[Task]:
    """Sort tasks by start time, tasks without a start last.

    The sort is stable: tasks with equal start times, and all tasks without a
    start time, keep their input order.
    """
    return sorted(tasks, key=_start_key)
