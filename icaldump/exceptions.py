"""Exception hierarchy for icaldump.

Errors raised by the date parser and the pipeline propagate to the caller
unchanged. Per-component recurrence failures are contained by the occurrence
resolver and never end an extraction run.
"""

ACCEPTED_DATE_FORMATS = "DD.MM.YYYY, YYYY-MM-DD, or MM/DD/YYYY"


class ICalDumpError(Exception):
    """Base exception for all icaldump errors."""


class TargetDateError(ICalDumpError):
    """The target date string could not be turned into a calendar date.

    Both subclasses get the same user-visible treatment: the extraction is
    aborted and the message names the accepted formats.
    """


class DateFormatError(TargetDateError):
    """Target date string has the wrong shape.

    Raised when:
    - The string does not split into exactly three numeric parts
    - No part holds a 4-digit year in a recognizable position
    """


class InvalidDateError(TargetDateError):
    """Target date string is well formed but denotes no real date.

    Raised for values such as month 13 or day 32.
    """


class CalendarParseError(ICalDumpError):
    """Raw calendar text is not a structurally valid VCALENDAR document."""


class RecurrenceExpansionError(ICalDumpError):
    """A recurrence rule could not be parsed or expanded."""


class ConfigError(ICalDumpError):
    """Configuration file is unreadable or malformed."""
