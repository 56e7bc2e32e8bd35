"""Calendar View Routes.

Read-only endpoints that expand a scheduler's items into dated occurrences.

Endpoints:
- GET /api/schedulers/{scheduler_id}/occurrences?start=&end= - Any window
- GET /api/schedulers/{scheduler_id}/today - Today's occurrences
- GET /api/schedulers/{scheduler_id}/daily/{day} - One date
- GET /api/schedulers/{scheduler_id}/weekly/{week} - Monday..Sunday week
- GET /api/schedulers/{scheduler_id}/monthly/{month} - Calendar month
"""

import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, List

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session

import crud
from config.settings import settings
from database import get_db, get_today
from db import occurrences as override_store
from schemas import (
    DailyViewResponse,
    MonthlyViewResponse,
    OccurrenceWindowResponse,
    WeeklyViewResponse,
)
from utils.calendar_math import (
    days_between,
    iter_dates,
    month_window,
    parse_iso_week,
    parse_local_date,
    to_date_only_string,
    week_window,
    weekday_number,
)
from utils.error_handler import WindowTooLarge
from utils.occurrence_expander import Occurrence, expand_many
from utils.schedule_item import schedule_items_from_rows

logger = logging.getLogger("app")

router = APIRouter()


# ========================================================================
# Helper Functions
# ========================================================================

def _expand_scheduler(db: Session, scheduler_id: int, start: date, end: date) -> List[Occurrence]:
    """Expand every item of a scheduler over [start, end]."""
    if not crud.get_scheduler(db, scheduler_id):
        raise HTTPException(status_code=404, detail="Scheduler not found")

    days = days_between(start, end) + 1
    if days > settings.MAX_EXPANSION_DAYS:
        raise WindowTooLarge(days, settings.MAX_EXPANSION_DAYS)

    rows = crud.get_items(db, scheduler_id)
    items = schedule_items_from_rows(rows, log_drift=settings.LOG_ALIGNMENT_DRIFT)
    # One read of the override table for the whole window
    overrides = override_store.override_snapshot(db, [item.id for item in items], start, end)
    occurrences = expand_many(items, overrides, start, end)
    logger.info(
        f"Expanded scheduler {scheduler_id} over {to_date_only_string(start)}.."
        f"{to_date_only_string(end)}: {len(occurrences)} occurrences"
    )
    return occurrences


def _group_by_day(occurrences: List[Occurrence], start: date, end: date) -> Dict[str, List[dict]]:
    """Bucket occurrences per date; every date of the window gets a key."""
    days = OrderedDict((to_date_only_string(day), []) for day in iter_dates(start, end))
    for occurrence in occurrences:
        days[to_date_only_string(occurrence.date)].append(occurrence.to_dict())
    return days


def _daily_view(db: Session, scheduler_id: int, day: date) -> dict:
    occurrences = _expand_scheduler(db, scheduler_id, day, day)
    return {
        "scheduler_id": scheduler_id,
        "date": to_date_only_string(day),
        "day_of_week": weekday_number(day),
        "occurrences": [occurrence.to_dict() for occurrence in occurrences],
    }


# ========================================================================
# API Endpoints
# ========================================================================

@router.get("/schedulers/{scheduler_id}/occurrences", response_model=OccurrenceWindowResponse)
async def get_occurrences(
    scheduler_id: int,
    start: str = Query(..., description="First date of the window, YYYY-MM-DD"),
    end: str = Query(..., description="Last date of the window, YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    """All occurrences of a scheduler between two dates, inclusive."""
    start_date = parse_local_date(start)
    end_date = parse_local_date(end)
    occurrences = _expand_scheduler(db, scheduler_id, start_date, end_date)
    return {
        "scheduler_id": scheduler_id,
        "start_date": to_date_only_string(start_date),
        "end_date": to_date_only_string(end_date),
        "occurrences": [occurrence.to_dict() for occurrence in occurrences],
    }


@router.get("/schedulers/{scheduler_id}/today", response_model=DailyViewResponse)
async def get_today_view(
    scheduler_id: int,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Occurrences on the server's current local date."""
    return _daily_view(db, scheduler_id, today)


@router.get("/schedulers/{scheduler_id}/daily/{day}", response_model=DailyViewResponse)
async def get_daily_view(scheduler_id: int, day: str, db: Session = Depends(get_db)):
    """Occurrences on one date (YYYY-MM-DD)."""
    return _daily_view(db, scheduler_id, parse_local_date(day))


@router.get("/schedulers/{scheduler_id}/weekly/{week}", response_model=WeeklyViewResponse)
async def get_weekly_view(scheduler_id: int, week: str, db: Session = Depends(get_db)):
    """Occurrences of the Monday..Sunday week given as YYYY-Www or any date in it."""
    if "W" in week.upper():
        start, end = parse_iso_week(week.upper())
    else:
        start, end = week_window(parse_local_date(week))

    occurrences = _expand_scheduler(db, scheduler_id, start, end)
    return {
        "scheduler_id": scheduler_id,
        "start_date": to_date_only_string(start),
        "end_date": to_date_only_string(end),
        "days": _group_by_day(occurrences, start, end),
    }


@router.get("/schedulers/{scheduler_id}/monthly/{month}", response_model=MonthlyViewResponse)
async def get_monthly_view(scheduler_id: int, month: str, db: Session = Depends(get_db)):
    """Occurrences of a calendar month given as YYYY-MM."""
    start, end = month_window(month)
    occurrences = _expand_scheduler(db, scheduler_id, start, end)
    return {
        "scheduler_id": scheduler_id,
        "month": f"{start.year:04d}-{start.month:02d}",
        "start_date": to_date_only_string(start),
        "end_date": to_date_only_string(end),
        "days_in_month": end.day,
        "days": _group_by_day(occurrences, start, end),
    }
