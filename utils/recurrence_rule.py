"""Recurrence rules for scheduler items.

A rule is defined once by its kind, an anchor date, an optional inclusive end
date, the weekday it is pinned to and an interval. ``occurs_on`` answers
whether the rule produces an occurrence on a given date; every view and the
next-occurrence bookkeeping go through it.

Rows coming from the database or from older clients use several names for the
same dates (``target_date``, ``item_start_date``, ``start_date``);
``rule_from_row`` folds all of them into one ``RecurrenceRule`` before any
other code sees the data.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional

from enums import PERIOD_DAYS, PERIOD_MONTHS, WEEKDAY_KINDS, RecurrenceKind, parse_recurrence_kind
from utils.calendar_math import (
    add_days,
    days_between,
    months_between,
    parse_local_date,
    weekday_number,
)
from utils.error_handler import InconsistentRule, InvalidRule

logger = logging.getLogger("app")


@dataclass(frozen=True)
class RecurrenceRule:
    """How a scheduler item repeats.

    Attributes:
        kind: Recurrence kind.
        anchor_date: First possible occurrence.
        end_date: Inclusive last possible occurrence, None for unbounded.
        day_of_week: ISO weekday (Monday=1 .. Sunday=7). Only meaningful for
            weekly and bi-weekly rules; derived from the anchor otherwise.
        interval: Repeat every N periods.
    """

    kind: RecurrenceKind
    anchor_date: date
    end_date: Optional[date] = None
    day_of_week: Optional[int] = None
    interval: int = 1

    def __post_init__(self):
        try:
            kind = parse_recurrence_kind(self.kind)
        except ValueError:
            raise InvalidRule(f"Unknown recurrence type: {self.kind!r}")
        anchor = parse_local_date(self.anchor_date)
        end = parse_local_date(self.end_date) if self.end_date is not None else None

        if end is not None and end < anchor:
            raise InvalidRule(
                f"End date {end.isoformat()} is before anchor date {anchor.isoformat()}"
            )
        if kind == RecurrenceKind.ONE_TIME and end is not None and end != anchor:
            raise InvalidRule("A one-time rule cannot end on a different date than it starts")

        try:
            interval = int(self.interval) if self.interval is not None else 1
        except (TypeError, ValueError):
            raise InvalidRule(f"Invalid recurrence interval: {self.interval!r}")
        if interval < 1:
            raise InvalidRule(f"Recurrence interval must be at least 1, got {interval}")

        day_of_week = self.day_of_week
        if kind in WEEKDAY_KINDS and day_of_week is not None:
            try:
                day_of_week = int(day_of_week)
            except (TypeError, ValueError):
                raise InvalidRule(f"Invalid day of week: {self.day_of_week!r}")
            if not 1 <= day_of_week <= 7:
                raise InvalidRule(f"Day of week must be between 1 and 7, got {day_of_week}")
        else:
            day_of_week = weekday_number(anchor)

        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "anchor_date", anchor)
        object.__setattr__(self, "end_date", end)
        object.__setattr__(self, "day_of_week", day_of_week)
        object.__setattr__(self, "interval", interval)

    @property
    def effective_anchor(self) -> date:
        """Anchor moved forward onto ``day_of_week`` for weekday-pinned kinds."""
        if self.kind not in WEEKDAY_KINDS:
            return self.anchor_date
        shift = (self.day_of_week - weekday_number(self.anchor_date) + 7) % 7
        return add_days(self.anchor_date, shift)

    @property
    def last_date(self) -> Optional[date]:
        """Last date the rule could possibly occur on, None when unbounded."""
        if self.kind == RecurrenceKind.ONE_TIME:
            return self.anchor_date
        return self.end_date

    def occurs_on(self, target: date) -> bool:
        """Return True if the rule produces an occurrence on ``target``."""
        if target < self.anchor_date:
            return False
        if self.end_date is not None and target > self.end_date:
            return False

        if self.kind == RecurrenceKind.ONE_TIME:
            return target == self.anchor_date

        if self.kind in PERIOD_DAYS:
            days_diff = days_between(self.effective_anchor, target)
            period = PERIOD_DAYS[self.kind] * self.interval
            return days_diff >= 0 and days_diff % period == 0

        if self.kind in PERIOD_MONTHS:
            # Anchors on the 29th-31st skip shorter months rather than clamping
            if target.day != self.anchor_date.day:
                return False
            months_diff = months_between(self.anchor_date, target)
            period = PERIOD_MONTHS[self.kind] * self.interval
            return months_diff >= 0 and months_diff % period == 0

        return False

    def alignment_issue(self) -> Optional[InconsistentRule]:
        """Describe anchor/weekday drift on weekly rules, None when aligned."""
        if self.kind not in WEEKDAY_KINDS:
            return None
        if weekday_number(self.anchor_date) == self.day_of_week:
            return None
        return InconsistentRule(self.anchor_date, self.day_of_week, self.effective_anchor)

    def to_row(self) -> Dict[str, Any]:
        """Column values for the ``scheduler_items`` table."""
        return {
            "recurrence_type": self.kind.value,
            "recurrence_interval": self.interval,
            "item_start_date": self.anchor_date,
            "item_end_date": self.end_date,
            "day_of_week": self.day_of_week,
        }


def _field_getter(row) -> Callable[[str], Any]:
    if isinstance(row, dict):
        return row.get
    return lambda name: getattr(row, name, None)


def _first_present(get: Callable[[str], Any], names) -> Any:
    for name in names:
        value = get(name)
        if value is not None and value != "":
            return value
    return None


def rule_from_row(row, log_drift: bool = True) -> RecurrenceRule:
    """Build a rule from a stored row or an incoming item payload.

    Accepts a dict or any object with the item columns as attributes.
    Older one-time rows only carry ``start_date`` (and a ``day_of_week``);
    newer payloads send ``target_date``. Recurring rows keep the anchor in
    ``item_start_date``.

    Args:
        row: Item row or payload.
        log_drift: Log a warning when a weekly anchor is off its weekday.

    Raises:
        InvalidRule: if the row has no usable anchor date or breaks a rule
            constraint.
        InvalidDateFormat: if a date field is malformed.
    """
    get = _field_getter(row)
    try:
        kind = parse_recurrence_kind(get("recurrence_type"))
    except ValueError:
        raise InvalidRule(f"Unknown recurrence type: {get('recurrence_type')!r}")

    if kind == RecurrenceKind.ONE_TIME:
        anchor_names = ("target_date", "start_date", "item_start_date")
    else:
        anchor_names = ("target_date", "item_start_date", "start_date")
    anchor_raw = _first_present(get, anchor_names)
    if anchor_raw is None:
        raise InvalidRule("Item has no start date")
    anchor = parse_local_date(anchor_raw)

    end_raw = _first_present(get, ("item_end_date", "end_date"))
    end = parse_local_date(end_raw) if end_raw is not None else None
    if kind == RecurrenceKind.ONE_TIME and end is not None and end != anchor:
        # One-time rows never honoured an end date; the form used to send one anyway
        end = None

    rule = RecurrenceRule(
        kind=kind,
        anchor_date=anchor,
        end_date=end,
        day_of_week=get("day_of_week"),
        interval=get("recurrence_interval") or 1,
    )

    if log_drift:
        issue = rule.alignment_issue()
        if issue is not None:
            item_id = get("id")
            logger.warning(f"Scheduler item {item_id}: {issue.message}")
    return rule
