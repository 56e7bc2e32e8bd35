"""Schedule items: a recurrence rule plus the fields shown for each occurrence."""

import logging
from dataclasses import dataclass
from datetime import time
from typing import Iterable, List, Optional

from utils.calendar_math import parse_local_time
from utils.error_handler import SchedulerError
from utils.recurrence_rule import RecurrenceRule, rule_from_row

logger = logging.getLogger("app")

DEFAULT_COLOR = "blue"
DEFAULT_PRIORITY = 1


@dataclass(frozen=True)
class ScheduleItem:
    id: int
    scheduler_id: Optional[int]
    title: str
    rule: RecurrenceRule
    description: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    color: str = DEFAULT_COLOR
    priority: int = DEFAULT_PRIORITY
    order_index: int = 0


def schedule_item_from_row(row, log_drift: bool = True) -> ScheduleItem:
    """Normalize a ``SchedulerItem`` row (or equivalent dict) into a ScheduleItem."""
    get = row.get if isinstance(row, dict) else (lambda name: getattr(row, name, None))
    return ScheduleItem(
        id=get("id"),
        scheduler_id=get("scheduler_id"),
        title=get("title") or "",
        rule=rule_from_row(row, log_drift=log_drift),
        description=get("description"),
        start_time=parse_local_time(get("start_time")),
        end_time=parse_local_time(get("end_time")),
        color=get("color") or DEFAULT_COLOR,
        priority=get("priority") if get("priority") is not None else DEFAULT_PRIORITY,
        order_index=get("order_index") or 0,
    )


def schedule_items_from_rows(rows: Iterable, log_drift: bool = True) -> List[ScheduleItem]:
    """Normalize stored rows for a read path.

    Rows that cannot be turned into a valid rule are logged and left out so a
    single bad legacy record does not take down a whole calendar view.
    """
    items = []
    for row in rows:
        try:
            items.append(schedule_item_from_row(row, log_drift=log_drift))
        except SchedulerError as e:
            item_id = row.get("id") if isinstance(row, dict) else getattr(row, "id", None)
            logger.error(f"Skipping scheduler item {item_id}: {e.message}")
    return items
