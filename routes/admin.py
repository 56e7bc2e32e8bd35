"""Admin Routes.

- GET /api/admin/alignment - Weekly items whose anchor date is off their weekday
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
from database import get_db
from schemas import AlignmentIssueResponse
from utils.calendar_math import to_date_only_string

logger = logging.getLogger("app")

router = APIRouter()


@router.get("/admin/alignment", response_model=List[AlignmentIssueResponse])
async def get_alignment_report(db: Session = Depends(get_db)):
    """List weekly and bi-weekly items whose stored anchor and weekday disagree.

    Such items still expand correctly (the anchor is moved forward onto the
    weekday) but the stored data should be repaired.
    """
    misaligned = crud.find_misaligned_items(db)
    logger.info(f"Alignment report: {len(misaligned)} misaligned items")
    return [
        {
            "item_id": row.id,
            "scheduler_id": row.scheduler_id,
            "title": row.title,
            "recurrence_type": row.recurrence_type,
            "day_of_week": issue.day_of_week,
            "anchor_date": to_date_only_string(issue.anchor_date),
            "effective_anchor": to_date_only_string(issue.effective_anchor),
            "message": issue.message,
        }
        for row, issue in misaligned
    ]
