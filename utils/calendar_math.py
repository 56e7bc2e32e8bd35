"""Local calendar arithmetic.

Every value handled here is a plain ``datetime.date`` (or ``time``) with no
timezone attached. Timestamps coming from the database or the client are cut
down to their literal date portion and never shifted through UTC, which is
what used to move items onto the neighbouring day.

Weekdays use ISO numbering: Monday=1 .. Sunday=7.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Iterator, Tuple, Union

from dateutil.relativedelta import relativedelta

from utils.error_handler import InvalidDateFormat

DATE_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})"
    r"(?:[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$"
)

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")
MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
ISO_WEEK_PATTERN = re.compile(r"^(\d{4})-W?(\d{1,2})$")

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

DateLike = Union[str, date, datetime]


def parse_local_date(value: DateLike) -> date:
    """Parse ``YYYY-MM-DD`` or an ISO timestamp into a local date.

    Only the leading date portion of a timestamp is used; the time of day and
    offset that follow it must be well formed but are never converted.

    Raises:
        InvalidDateFormat: if the value is not a recognizable date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDateFormat(value)

    match = DATE_PATTERN.match(value.strip())
    if not match:
        raise InvalidDateFormat(value)

    year, month, day, hours, minutes, seconds, offset = match.groups()
    try:
        parsed = date(int(year), int(month), int(day))
        if hours is not None:
            time(int(hours), int(minutes), int(seconds or 0))
        if offset and offset != "Z":
            offset_digits = offset[1:].replace(":", "")
            time(int(offset_digits[:2]), int(offset_digits[2:]))
    except ValueError:
        raise InvalidDateFormat(value)
    return parsed


def to_date_only_string(value: date) -> str:
    """Format a date from its own year/month/day fields."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def weekday_number(value: date) -> int:
    """ISO weekday of ``value`` (Monday=1 .. Sunday=7)."""
    return value.isoweekday()


def weekday_name(day_of_week: int) -> str:
    return WEEKDAY_NAMES[day_of_week - 1]


def days_between(start: date, end: date) -> int:
    """Signed whole-day count ``end - start``."""
    return (_as_date(end) - _as_date(start)).days


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def add_months(value: date, months: int) -> date:
    """Shift by calendar months, clamping to the last day of the target month.

    ``add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)``
    """
    return value + relativedelta(months=months)


def months_between(start: date, end: date) -> int:
    """Calendar month difference between two dates, ignoring the day."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def parse_local_time(value: Union[str, time, None]) -> Union[time, None]:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a naive ``time``."""
    if value is None or isinstance(value, time):
        return value
    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        raise InvalidDateFormat(value, expected="HH:MM")
    hours, minutes, seconds = match.groups()
    try:
        return time(int(hours), int(minutes), int(seconds or 0))
    except ValueError:
        raise InvalidDateFormat(value, expected="HH:MM")


def to_time_string(value: Union[time, None]) -> Union[str, None]:
    if value is None:
        return None
    return f"{value.hour:02d}:{value.minute:02d}"


def week_window(value: date) -> Tuple[date, date]:
    """Monday..Sunday week containing ``value``."""
    monday = value - timedelta(days=weekday_number(value) - 1)
    return monday, monday + timedelta(days=6)


def parse_iso_week(value: str) -> Tuple[date, date]:
    """Window for an ISO week string such as ``2024-W23``."""
    match = ISO_WEEK_PATTERN.match(value.strip())
    if not match:
        raise InvalidDateFormat(value, expected="YYYY-Www")
    year, week = int(match.group(1)), int(match.group(2))
    try:
        monday = date.fromisocalendar(year, week, 1)
    except ValueError:
        raise InvalidDateFormat(value, expected="YYYY-Www")
    return monday, monday + timedelta(days=6)


def month_window(value: Union[str, date]) -> Tuple[date, date]:
    """First and last day of a month given as ``YYYY-MM`` or any date in it."""
    if isinstance(value, str):
        match = MONTH_PATTERN.match(value.strip())
        if not match:
            raise InvalidDateFormat(value, expected="YYYY-MM")
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise InvalidDateFormat(value, expected="YYYY-MM")
        first = date(year, month, 1)
    else:
        first = value.replace(day=1)
    last = first + relativedelta(months=1) - timedelta(days=1)
    return first, last


def _as_date(value: date) -> date:
    # datetime is a date subclass; drop the time part so DST never leaks in
    if isinstance(value, datetime):
        return value.date()
    return value
