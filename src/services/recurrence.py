"""
Recurrence expansion service.

Recurring events store an RRULE on the single owning row. Instances are
expanded on demand for the window a calendar view displays; nothing about
individual instances is persisted.

Uses python-dateutil for RRULE parsing and expansion.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, Optional

from dateutil.rrule import rrulestr, rrule

from src.services.classifier import ClassifiedEvent, classify_times

logger = logging.getLogger(__name__)


@dataclass
class RecurrenceInstance:
    """Represents a single occurrence of a recurring event."""

    instance_start: datetime
    instance_end: datetime
    recurrence_id: str


def parse_rrule(rrule_string: str, dtstart: datetime) -> Optional[rrule]:
    """
    Parse an RRULE string into a dateutil rrule object.

    Args:
        rrule_string: iCalendar RRULE string (e.g., 'FREQ=WEEKLY;BYDAY=MO,WE,FR')
        dtstart: Start datetime for the recurrence (naive wall clock)

    Returns:
        rrule object or None if parsing fails
    """
    if not rrule_string:
        return None

    try:
        full_rule = rrule_string.strip()
        if full_rule.upper().startswith("RRULE:"):
            full_rule = full_rule[len("RRULE:"):]
        if "DTSTART" not in full_rule.upper():
            dtstart_str = dtstart.strftime("%Y%m%dT%H%M%S")
            full_rule = f"DTSTART:{dtstart_str}\n{full_rule}"

        return rrulestr(full_rule)
    except (ValueError, TypeError):
        return None


def expand_recurrence(
    rrule_string: str,
    dtstart: datetime,
    duration: timedelta,
    window_start: datetime,
    window_end: datetime,
    max_instances: int = 100,
) -> list[RecurrenceInstance]:
    """
    Expand a recurring event into instances overlapping a time window.

    An instance overlaps when it starts before window_end and ends at or
    after window_start, so a multi-day instance that began before the
    window still appears.

    Args:
        rrule_string: iCalendar RRULE string
        dtstart: Original event start time
        duration: Event duration (end - start)
        window_start: Start of query window
        window_end: End of query window
        max_instances: Maximum instances to generate (safety limit)

    Returns:
        List of RecurrenceInstance objects within the window
    """
    if not rrule_string:
        return []

    rule = parse_rrule(rrule_string, dtstart)
    if not rule:
        return []

    try:
        occurrences = rule.between(window_start - duration, window_end, inc=True)
    except (ValueError, OverflowError, TypeError):
        return []

    instances = []
    for occurrence in occurrences:
        instance_end = occurrence + duration
        if instance_end < window_start:
            continue
        instances.append(
            RecurrenceInstance(
                instance_start=occurrence,
                instance_end=instance_end,
                recurrence_id=format_recurrence_id(occurrence),
            )
        )
        if len(instances) >= max_instances:
            logger.warning(
                f"Recurrence expansion capped at {max_instances} instances for rule {rrule_string!r}"
            )
            break

    return instances


def format_recurrence_id(dt: datetime) -> str:
    """
    Format a datetime as a recurrence ID (iCalendar RECURRENCE-ID format).

    Args:
        dt: Datetime to format

    Returns:
        String in YYYYMMDDTHHMMSS format
    """
    return dt.strftime("%Y%m%dT%H%M%S")


def validate_rrule(rrule_string: str) -> tuple[bool, Optional[str]]:
    """
    Validate an RRULE string.

    Args:
        rrule_string: iCalendar RRULE string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not rrule_string:
        return False, "RRULE string is empty"

    if not rrule_string.strip():
        return False, "RRULE string is blank"

    if "FREQ=" not in rrule_string.upper():
        return False, "RRULE must contain FREQ component"

    try:
        dummy_start = datetime(2020, 1, 1, 12, 0, 0)
        rule = parse_rrule(rrule_string, dummy_start)
        if rule is None:
            return False, "Failed to parse RRULE"

        next_occ = rule.after(dummy_start, inc=True)
        if next_occ is None:
            return False, "RRULE generates no occurrences"

        return True, None
    except Exception as e:
        return False, f"Invalid RRULE: {str(e)}"


def expand_occurrences(
    classified: Iterable[ClassifiedEvent],
    window_start: datetime,
    window_end: datetime,
    max_instances: int = 100,
) -> list[ClassifiedEvent]:
    """
    Replace recurring events by their instances inside a view window.

    Non-recurring events, events whose dates failed to parse, and events
    whose rule is invalid pass through unchanged.

    Args:
        classified: Classified events in display order
        window_start: First instant shown by the view
        window_end: Last instant shown by the view
        max_instances: Per-event expansion cap

    Returns:
        Classified events with one entry per visible instance
    """
    expanded: list[ClassifiedEvent] = []

    for item in classified:
        rule_text = item.event.recurrence_rule
        if not rule_text or item.classification.parse_failed:
            expanded.append(item)
            continue

        if parse_rrule(rule_text, item.start) is None:
            logger.warning(
                f"Ignoring invalid recurrence rule on {item.event.kind} event {item.event.id}: {rule_text!r}"
            )
            expanded.append(item)
            continue

        duration = max(item.end - item.start, timedelta(0))
        for instance in expand_recurrence(
            rule_text,
            item.start,
            duration,
            window_start,
            window_end,
            max_instances=max_instances,
        ):
            expanded.append(
                replace(
                    item,
                    classification=classify_times(instance.instance_start, instance.instance_end),
                    recurrence_id=instance.recurrence_id,
                )
            )

    return expanded
