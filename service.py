from collections import defaultdict
from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
import logging

import crud
from database import get_db, get_today
from db import occurrences as override_store
from models import Scheduler
from schemas import (
    OccurrenceOverrideResponse,
    SchedulerCreate,
    SchedulerDetailResponse,
    SchedulerItemResponse,
    SchedulerListResponse,
    SchedulerResponse,
    SchedulerUpdate,
)
from utils.calendar_math import to_date_only_string
from utils.error_handler import SchedulerError

logger = logging.getLogger("app")

router = APIRouter()


def _get_scheduler_or_404(db: Session, scheduler_id: int) -> Scheduler:
    scheduler = crud.get_scheduler(db, scheduler_id)
    if not scheduler:
        raise HTTPException(status_code=404, detail="Scheduler not found")
    return scheduler


def _scheduler_detail(db: Session, scheduler: Scheduler) -> SchedulerDetailResponse:
    """Scheduler with its items, their deleted dates and all override rows."""
    items = crud.get_items(db, scheduler.id)
    rows = override_store.list_for_window(db, [item.id for item in items], include_deleted=True)

    exclusion_dates = defaultdict(list)
    occurrences = {}
    for row in rows:
        if row.is_deleted:
            exclusion_dates[row.scheduler_item_id].append(row.occurrence_date)
        if row.is_deleted or row.is_modified:
            key = f"{row.scheduler_item_id}_{to_date_only_string(row.occurrence_date)}"
            occurrences[key] = OccurrenceOverrideResponse.model_validate(row)

    item_responses = [
        SchedulerItemResponse.model_validate(item).model_copy(
            update={"exclusion_dates": exclusion_dates.get(item.id, [])}
        )
        for item in items
    ]
    base = SchedulerResponse.model_validate(scheduler)
    return SchedulerDetailResponse(**base.model_dump(), items=item_responses, occurrences=occurrences)


# API Routes
@router.get("/schedulers/", response_model=SchedulerListResponse)
async def get_schedulers(
    category: Optional[str] = None,
    search: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db)
):
    """List public schedulers, or all schedulers of one owner when user_id is given."""
    try:
        rows, total = crud.get_schedulers(
            db, category=category, search=search, user_id=user_id, skip=offset, limit=limit
        )
        logger.info(f"Retrieved {len(rows)} of {total} schedulers")
        return {"data": rows, "limit": limit, "offset": offset, "total": total}
    except Exception as e:
        logger.error(f"Error retrieving schedulers: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving schedulers")

@router.get("/schedulers/{scheduler_id}", response_model=SchedulerDetailResponse)
async def get_scheduler(scheduler_id: int, db: Session = Depends(get_db)):
    """Get a scheduler with its items and occurrence overrides."""
    try:
        scheduler = _get_scheduler_or_404(db, scheduler_id)
        return _scheduler_detail(db, scheduler)
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Error retrieving scheduler {scheduler_id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving scheduler")

@router.post("/schedulers/", response_model=SchedulerDetailResponse, status_code=201)
async def create_scheduler(
    scheduler: SchedulerCreate,
    db: Session = Depends(get_db),
    today: date = Depends(get_today)
):
    """Create a scheduler together with its items."""
    try:
        db_scheduler = crud.create_scheduler(db, scheduler, today)
        logger.info(f"Created scheduler: {db_scheduler.id} - {db_scheduler.title}")
        return _scheduler_detail(db, db_scheduler)
    except SchedulerError:
        raise
    except Exception as e:
        logger.error(f"Error creating scheduler: {e}")
        raise HTTPException(status_code=500, detail="Error creating scheduler")

@router.put("/schedulers/{scheduler_id}", response_model=SchedulerDetailResponse)
async def update_scheduler(
    scheduler_id: int,
    scheduler_update: SchedulerUpdate,
    db: Session = Depends(get_db),
    today: date = Depends(get_today)
):
    """Update a scheduler; when items are sent they replace the current set.

    Items that carry the id of an existing item are updated in place and keep
    their deleted and modified occurrences.
    """
    try:
        db_scheduler = _get_scheduler_or_404(db, scheduler_id)
        db_scheduler = crud.update_scheduler(db, db_scheduler, scheduler_update, today)
        return _scheduler_detail(db, db_scheduler)
    except (HTTPException, SchedulerError):
        raise
    except Exception as e:
        logger.error(f"Error updating scheduler {scheduler_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating scheduler")

@router.delete("/schedulers/{scheduler_id}")
async def delete_scheduler(scheduler_id: int, db: Session = Depends(get_db)):
    """Delete a scheduler, its items and their overrides."""
    try:
        db_scheduler = _get_scheduler_or_404(db, scheduler_id)
        crud.delete_scheduler(db, db_scheduler)
        return {"success": True, "message": "Scheduler deleted successfully", "id": scheduler_id}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting scheduler {scheduler_id}: {e}")
        raise HTTPException(status_code=500, detail="Error deleting scheduler")
