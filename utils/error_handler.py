"""
Error types for the scheduler core and their HTTP translation.

Each error carries a human readable ``message`` and a machine ``code`` so the
API layer can return a stable payload without string matching.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("app")


class SchedulerError(Exception):
    """Base class for errors raised by the scheduling core."""

    status_code = 400

    def __init__(self, message: str, code: str = "SCHEDULER_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidDateFormat(SchedulerError):
    """A date string could not be parsed as a local calendar date."""

    def __init__(self, value, expected: str = "YYYY-MM-DD"):
        self.value = value
        super().__init__(
            f"Invalid date '{value}', expected {expected}",
            code="INVALID_DATE_FORMAT",
        )


class InvalidRule(SchedulerError):
    """A recurrence rule breaks one of its construction rules."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_RULE")


class InconsistentRule(SchedulerError):
    """A weekly rule whose anchor does not fall on its day of week.

    Not raised by the core. The expander realigns the anchor forward and
    this object describes the drift for logging and admin reports.
    """

    def __init__(self, anchor_date: date, day_of_week: int, effective_anchor: date):
        self.anchor_date = anchor_date
        self.day_of_week = day_of_week
        self.effective_anchor = effective_anchor
        super().__init__(
            f"Anchor {anchor_date.isoformat()} falls on weekday "
            f"{anchor_date.isoweekday()}, rule expects {day_of_week}; "
            f"using {effective_anchor.isoformat()}",
            code="INCONSISTENT_RULE",
        )


class UnboundedExpansionRequested(SchedulerError):
    """Expansion was requested without a finite window."""

    status_code = 500

    def __init__(self, window_start: Optional[date], window_end: Optional[date]):
        super().__init__(
            f"Expansion needs a finite window, got {window_start!r}..{window_end!r}",
            code="UNBOUNDED_EXPANSION",
        )


class WindowTooLarge(SchedulerError):
    """The requested window exceeds the configured expansion limit."""

    def __init__(self, days: int, limit: int):
        self.days = days
        self.limit = limit
        super().__init__(
            f"Requested window spans {days} days, maximum is {limit}",
            code="WINDOW_TOO_LARGE",
        )


class EmptyModification(SchedulerError):
    """An occurrence modification carried no fields."""

    def __init__(self):
        super().__init__("No modifications provided", code="EMPTY_MODIFICATION")


async def scheduler_error_handler(request: Request, exc: SchedulerError) -> JSONResponse:
    """Translate core errors into the API's JSON error payload."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message, "code": exc.code},
    )
