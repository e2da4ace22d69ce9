"""Data models for calendar task extraction."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_STATUS = "NEEDS-ACTION"
UNTITLED_SUMMARY = "Untitled Task"


class TaskKind(str, Enum):
    """Calendar component types that produce tasks."""

    TODO = "VTODO"
    EVENT = "VEVENT"


class Task(BaseModel):
    """One concrete occurrence of a to-do or event on the target day.

    Tasks are immutable; a task never represents a rule, only the single
    occurrence that was selected for the day.
    """

    summary: str = UNTITLED_SUMMARY
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: str = DEFAULT_STATUS
    description: Optional[str] = None
    is_recurring: bool = False
    kind: TaskKind
    uid: Optional[str] = None
    recurrence_id: Optional[str] = Field(
        default=None, description="Canonical form of the overridden occurrence instant"
    )
    is_exception: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def duration_minutes(self) -> Optional[float]:
        """Minutes between start and end, or None if either is missing."""
        if self.start_date is None or self.end_date is None:
            return None
        return (self.end_date.timestamp() - self.start_date.timestamp()) / 60


class CalendarSource(BaseModel):
    """A named iCalendar feed."""

    name: str = Field(default="", description="Human-readable name for this calendar")
    url: str = Field(..., description="ICS calendar URL")
    timeout: int = Field(default=30, description="HTTP timeout in seconds")
    custom_headers: dict[str, str] = Field(default_factory=dict, description="Custom HTTP headers")

    def display_name(self, index: int) -> str:
        """Name used in messages, falling back to the calendar's position."""
        return self.name or f"#{index + 1}"


class FetchResponse(BaseModel):
    """Result of downloading one calendar feed."""

    success: bool
    content: Optional[str] = None
    status_code: Optional[int] = None
    headers: dict[str, str] = Field(default_factory=dict)
    error_message: Optional[str] = None
