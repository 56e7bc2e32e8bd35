"""Occurrence Routes.

Per-date exceptions to a scheduler item's series: deleting one occurrence,
restoring it, or overriding its display fields.

Endpoints:
- DELETE /api/scheduler-items/{item_id}/occurrence/{occurrence_date} - Delete one occurrence
- PUT /api/scheduler-items/{item_id}/occurrence/{occurrence_date} - Restore or modify one occurrence
- GET /api/scheduler-items/{item_id}/occurrences - List override rows of an item
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session

import crud
from database import get_db, get_today
from db import occurrences as override_store
from models import SchedulerItem
from schemas import (
    OccurrenceActionResponse,
    OccurrenceOverrideResponse,
    OccurrenceUpdateRequest,
)
from utils.calendar_math import parse_local_date, to_date_only_string

logger = logging.getLogger("app")

router = APIRouter()


def _get_item_or_404(db: Session, item_id: int) -> SchedulerItem:
    item = crud.get_item(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Scheduler item not found")
    return item


def _refresh_item(db: Session, item: SchedulerItem, today: date):
    """Keep the stored next_occurrence in step with the override table."""
    try:
        crud.refresh_next_occurrence(db, item, today)
        db.commit()
    except Exception as e:
        logger.error(f"Error refreshing next occurrence of item {item.id}: {e}")
        db.rollback()
        raise


@router.delete("/scheduler-items/{item_id}/occurrence/{occurrence_date}", response_model=OccurrenceActionResponse)
async def delete_occurrence(
    item_id: int,
    occurrence_date: str,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Delete a single occurrence; the rest of the series is untouched."""
    item = _get_item_or_404(db, item_id)
    target = parse_local_date(occurrence_date)

    row = override_store.mark_deleted(db, item.id, target)
    _refresh_item(db, item, today)

    return {
        "success": True,
        "message": f"Occurrence on {to_date_only_string(target)} deleted",
        "occurrence": OccurrenceOverrideResponse.model_validate(row),
    }


@router.put("/scheduler-items/{item_id}/occurrence/{occurrence_date}", response_model=OccurrenceActionResponse)
async def update_occurrence(
    item_id: int,
    occurrence_date: str,
    request: OccurrenceUpdateRequest,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Restore a deleted occurrence, override its fields, or both.

    Only the modification fields present in the body are written; a field
    sent as null clears that override.
    """
    item = _get_item_or_404(db, item_id)
    target = parse_local_date(occurrence_date)

    if not request.restore and request.modifications is None:
        raise HTTPException(status_code=400, detail="No action specified")

    row = None
    messages = []
    if request.restore:
        row = override_store.restore(db, item.id, target)
        messages.append("restored" if row is not None else "was not deleted")

    if request.modifications is not None:
        fields = request.modifications.model_dump(exclude_unset=True)
        row = override_store.modify(db, item.id, target, fields)
        messages.append("modified")

    _refresh_item(db, item, today)

    return {
        "success": True,
        "message": f"Occurrence on {to_date_only_string(target)} {' and '.join(messages)}",
        "occurrence": OccurrenceOverrideResponse.model_validate(row) if row is not None else None,
    }


@router.get("/scheduler-items/{item_id}/occurrences", response_model=List[OccurrenceOverrideResponse])
async def list_occurrence_overrides(
    item_id: int,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    include_deleted: bool = Query(default=True),
    db: Session = Depends(get_db),
):
    """Override rows of one item, optionally limited to a date range."""
    item = _get_item_or_404(db, item_id)
    start = parse_local_date(start_date) if start_date else None
    end = parse_local_date(end_date) if end_date else None
    return override_store.list_for_window(db, [item.id], start, end, include_deleted=include_deleted)
