"""RRULE expansion for recurring calendar components."""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Any, Optional, Union

from dateutil.rrule import rrule, rruleset, rrulestr

from .exceptions import RecurrenceExpansionError

logger = logging.getLogger(__name__)

_UTC_UNTIL = re.compile(r"UNTIL=(\d{8}T\d{6})Z", re.IGNORECASE)
_ZERO_INTERVAL = re.compile(r"(?:^|;)INTERVAL=0*(?:;|$)", re.IGNORECASE)


@dataclass
class RecurrenceExpanderConfig:
    """Configuration for recurrence expansion."""

    # Guards against unbounded or malformed rules
    max_occurrences: int = 100

    @classmethod
    def from_settings(cls, settings: Any) -> "RecurrenceExpanderConfig":
        """Extract expansion settings from a settings object, using defaults for missing values."""
        return cls(max_occurrences=getattr(settings, "max_occurrences", 100))


class RecurrenceExpander:
    """Lazy, bounded expansion of one recurrence rule from its anchor.

    Rules are evaluated in the wall-clock time of the anchor's timezone, so a
    09:00 daily rule stays at 09:00 across DST changes.
    """

    def __init__(self, config: Optional[RecurrenceExpanderConfig] = None):
        self.config = config or RecurrenceExpanderConfig()

    def build_rule(self, rule_string: str, anchor: datetime) -> Union[rrule, rruleset]:
        """Parse an RRULE string into a dateutil rule anchored at the anchor's wall-clock time.

        Args:
            rule_string: RRULE value, e.g. "FREQ=DAILY;COUNT=5"
            anchor: Aware datetime the series starts at

        Returns:
            dateutil rrule (or rruleset) producing naive wall-clock datetimes

        Raises:
            RecurrenceExpansionError: If the rule cannot be parsed
        """
        if not rule_string or not rule_string.strip():
            raise RecurrenceExpansionError("Empty recurrence rule")
        if _ZERO_INTERVAL.search(rule_string.strip()):
            raise RecurrenceExpansionError(f"Invalid recurrence rule {rule_string!r}: INTERVAL must be positive")

        normalized = _UTC_UNTIL.sub(
            lambda m: "UNTIL=" + self._until_to_wall_clock(m.group(1), anchor.tzinfo),
            rule_string.strip(),
        )
        try:
            return rrulestr(normalized, dtstart=anchor.replace(tzinfo=None))
        except Exception as e:
            raise RecurrenceExpansionError(f"Invalid recurrence rule {rule_string!r}: {e}") from e

    def expand(self, rule_string: str, anchor: datetime, day_end: datetime) -> Iterator[datetime]:
        """Expand a rule into occurrence instants, stopping at day_end.

        The rule is parsed immediately, so a malformed rule raises here rather
        than on first iteration. The returned iterator is forward-only; call
        expand again to restart from the anchor.

        Args:
            rule_string: RRULE value
            anchor: Aware datetime the series starts at (its DTSTART, else DUE)
            day_end: Exclusive end of the target day

        Returns:
            Iterator of aware occurrence datetimes in non-decreasing order

        Raises:
            RecurrenceExpansionError: If the rule is malformed
        """
        rule = self.build_rule(rule_string, anchor)
        return self._iterate(rule, rule_string, anchor.tzinfo, day_end)

    def _iterate(
        self,
        rule: Union[rrule, rruleset],
        rule_string: str,
        target_tz: Optional[tzinfo],
        day_end: datetime,
    ) -> Iterator[datetime]:
        generated = 0
        try:
            for occurrence in rule:
                if generated >= self.config.max_occurrences:
                    logger.debug(
                        "Recurrence expansion of %r stopped at %d occurrences",
                        rule_string,
                        self.config.max_occurrences,
                    )
                    return
                generated += 1

                local = occurrence.replace(tzinfo=target_tz)
                if local >= day_end:
                    return
                yield local
        except Exception as e:
            raise RecurrenceExpansionError(f"Failed to expand recurrence rule {rule_string!r}: {e}") from e

    @staticmethod
    def _until_to_wall_clock(until_utc: str, target_tz: Optional[tzinfo]) -> str:
        """Rewrite a UTC UNTIL value as wall-clock time in the anchor's timezone."""
        moment = datetime.strptime(until_utc, "%Y%m%dT%H%M%S").replace(tzinfo=UTC)
        if target_tz is not None:
            moment = moment.astimezone(target_tz)
        return moment.strftime("%Y%m%dT%H%M%S")
