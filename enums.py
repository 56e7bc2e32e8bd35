"""Enums for the scheduler backend.

This module defines the recurrence kinds and item colors used throughout
the application. Enum values are the strings stored in the database and
exchanged with the client.
"""

from enum import Enum


class RecurrenceKind(str, Enum):
    """How a scheduler item repeats.

    Attributes:
        ONE_TIME: Occurs once, on its anchor date.
        DAILY: Every day from the anchor date.
        WEEKLY: Every week on the rule's day of week.
        BI_WEEKLY: Every other week on the rule's day of week.
        MONTHLY: Same day of month as the anchor, every month.
        QUARTERLY: Same day of month as the anchor, every third month.
    """
    ONE_TIME = "one-time"
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class ItemColor(str, Enum):
    """Display colors accepted for items and occurrence overrides."""
    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    YELLOW = "yellow"
    PURPLE = "purple"
    PINK = "pink"
    INDIGO = "indigo"
    GRAY = "gray"


# Kinds whose occurrences are pinned to a weekday
WEEKDAY_KINDS = {RecurrenceKind.WEEKLY, RecurrenceKind.BI_WEEKLY}

# Length in days of one period for the day-based kinds
PERIOD_DAYS = {
    RecurrenceKind.DAILY: 1,
    RecurrenceKind.WEEKLY: 7,
    RecurrenceKind.BI_WEEKLY: 14,
}

# Length in months of one period for the month-based kinds
PERIOD_MONTHS = {
    RecurrenceKind.MONTHLY: 1,
    RecurrenceKind.QUARTERLY: 3,
}


def parse_recurrence_kind(value) -> RecurrenceKind:
    """Map a stored recurrence type to its enum, treating empty as one-time.

    Args:
        value: Stored value such as "weekly", "bi-weekly" or None.

    Returns:
        The matching RecurrenceKind.

    Raises:
        ValueError: if the value names no known recurrence kind.
    """
    if value is None or value == "":
        return RecurrenceKind.ONE_TIME
    if isinstance(value, RecurrenceKind):
        return value
    normalized = str(value).strip().lower().replace("_", "-")
    if normalized in ("biweekly", "bi weekly"):
        normalized = "bi-weekly"
    if normalized in ("onetime", "once", "none"):
        normalized = "one-time"
    return RecurrenceKind(normalized)
