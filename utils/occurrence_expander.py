"""Occurrence expansion.

Turns schedule items into the concrete dated occurrences inside a finite
window, dropping deleted occurrences and applying per-date modifications.

Usage:
    overrides = index_overrides(rows)
    for occurrence in expand(item, overrides, date(2024, 6, 1), date(2024, 6, 30)):
        ...
    agenda = expand_many(items, overrides, week_start, week_end)

Expansion is a pure function of its inputs. The override mapping is keyed by
``(item_id, occurrence_date)`` and is expected to come from one consistent
read of the override table.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from utils.calendar_math import (
    add_days,
    iter_dates,
    parse_local_date,
    parse_local_time,
    to_date_only_string,
    to_time_string,
)
from utils.error_handler import UnboundedExpansionRequested
from utils.schedule_item import ScheduleItem

OverrideKey = Tuple[int, date]


@dataclass(frozen=True)
class OccurrenceOverride:
    """A per-date exception to an item's generated series."""

    item_id: int
    occurrence_date: date
    is_deleted: bool = False
    is_modified: bool = False
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    color: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "OccurrenceOverride":
        """Build from a ``SchedulerItemOccurrence`` row or its dict form."""
        get = row.get if isinstance(row, dict) else (lambda name: getattr(row, name, None))
        return cls(
            item_id=get("scheduler_item_id"),
            occurrence_date=parse_local_date(get("occurrence_date")),
            is_deleted=bool(get("is_deleted")),
            is_modified=bool(get("is_modified")),
            title=get("modified_title"),
            description=get("modified_description"),
            start_time=parse_local_time(get("modified_start_time")),
            end_time=parse_local_time(get("modified_end_time")),
            color=get("modified_color"),
            notes=get("notes"),
        )


@dataclass(frozen=True)
class Occurrence:
    """One concrete, dated instance of a schedule item."""

    date: date
    title: str
    description: Optional[str]
    start_time: Optional[time]
    end_time: Optional[time]
    color: str
    source_item_id: int
    scheduler_id: Optional[int] = None
    priority: int = 1
    order_index: int = 0
    recurrence_type: str = "one-time"
    is_modified: bool = False
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape returned by the view endpoints."""
        return {
            "date": to_date_only_string(self.date),
            "title": self.title,
            "description": self.description,
            "start_time": to_time_string(self.start_time),
            "end_time": to_time_string(self.end_time),
            "color": self.color,
            "source_item_id": self.source_item_id,
            "scheduler_id": self.scheduler_id,
            "priority": self.priority,
            "order_index": self.order_index,
            "recurrence_type": self.recurrence_type,
            "is_modified": self.is_modified,
            "notes": self.notes,
        }


def index_overrides(rows: Iterable) -> Dict[OverrideKey, OccurrenceOverride]:
    """Key override rows (ORM rows, dicts or OccurrenceOverride) by (item id, date)."""
    indexed = {}
    for row in rows:
        override = row if isinstance(row, OccurrenceOverride) else OccurrenceOverride.from_row(row)
        indexed[(override.item_id, override.occurrence_date)] = override
    return indexed


def _check_window(window_start: Optional[date], window_end: Optional[date]) -> Tuple[date, date]:
    if window_start is None or window_end is None:
        raise UnboundedExpansionRequested(window_start, window_end)
    return parse_local_date(window_start), parse_local_date(window_end)


def _pick(override_value, base_value):
    return base_value if override_value is None else override_value


def _build_occurrence(
    item: ScheduleItem,
    occurrence_date: date,
    override: Optional[OccurrenceOverride],
) -> Occurrence:
    if override is None:
        override = OccurrenceOverride(item_id=item.id, occurrence_date=occurrence_date)
    return Occurrence(
        date=occurrence_date,
        title=_pick(override.title, item.title),
        description=_pick(override.description, item.description),
        start_time=_pick(override.start_time, item.start_time),
        end_time=_pick(override.end_time, item.end_time),
        color=_pick(override.color, item.color),
        source_item_id=item.id,
        scheduler_id=item.scheduler_id,
        priority=item.priority,
        order_index=item.order_index,
        recurrence_type=item.rule.kind.value,
        is_modified=override.is_modified,
        notes=override.notes,
    )


class OccurrenceSequence:
    """Lazy occurrences of one item in a window; each iteration starts over."""

    def __init__(
        self,
        item: ScheduleItem,
        overrides: Mapping[OverrideKey, OccurrenceOverride],
        window_start: date,
        window_end: date,
    ):
        self.item = item
        self.overrides = overrides
        self.window_start, self.window_end = _check_window(window_start, window_end)

    def __iter__(self) -> Iterator[Occurrence]:
        rule = self.item.rule
        first = max(self.window_start, rule.anchor_date)
        last = self.window_end
        if rule.last_date is not None:
            last = min(last, rule.last_date)

        for candidate in iter_dates(first, last):
            if not rule.occurs_on(candidate):
                continue
            override = self.overrides.get((self.item.id, candidate))
            if override is not None and override.is_deleted:
                continue
            yield _build_occurrence(self.item, candidate, override)


def expand(
    item: ScheduleItem,
    overrides: Mapping[OverrideKey, OccurrenceOverride],
    window_start: date,
    window_end: date,
) -> OccurrenceSequence:
    """Occurrences of ``item`` between ``window_start`` and ``window_end`` inclusive.

    Raises:
        UnboundedExpansionRequested: if either window bound is missing.
    """
    return OccurrenceSequence(item, overrides or {}, window_start, window_end)


def occurrence_sort_key(occurrence: Occurrence):
    # Untimed occurrences sort ahead of timed ones on the same date
    return (
        occurrence.date,
        occurrence.start_time is not None,
        occurrence.start_time or time.min,
        occurrence.order_index,
        occurrence.source_item_id is None,
        occurrence.source_item_id or 0,
    )


def expand_many(
    items: Iterable[ScheduleItem],
    overrides: Mapping[OverrideKey, OccurrenceOverride],
    window_start: date,
    window_end: date,
) -> List[Occurrence]:
    """Expand several items and merge them into one display-ordered list.

    Ordering is by date, then start time, then ``order_index``, then item id.
    """
    window_start, window_end = _check_window(window_start, window_end)
    occurrences = []
    for item in items:
        occurrences.extend(expand(item, overrides, window_start, window_end))
    occurrences.sort(key=occurrence_sort_key)
    return occurrences


def next_occurrence(
    item: ScheduleItem,
    overrides: Mapping[OverrideKey, OccurrenceOverride],
    today: date,
    horizon_days: int,
) -> Optional[Occurrence]:
    """First non-deleted occurrence on or after ``today`` within the horizon."""
    for occurrence in expand(item, overrides, today, add_days(today, horizon_days)):
        return occurrence
    return None
