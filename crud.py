import logging
from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session
import models, schemas
from config.settings import settings
from db import occurrences as override_store
from enums import RecurrenceKind
from utils.calendar_math import add_days
from utils.error_handler import InconsistentRule, SchedulerError
from utils.occurrence_expander import next_occurrence
from utils.recurrence_rule import rule_from_row
from utils.schedule_item import schedule_item_from_row

logger = logging.getLogger("app")


def get_scheduler(db: Session, scheduler_id: int) -> Optional[models.Scheduler]:
    return db.query(models.Scheduler).filter(models.Scheduler.id == scheduler_id).first()


def get_item(db: Session, item_id: int) -> Optional[models.SchedulerItem]:
    return db.query(models.SchedulerItem).filter(models.SchedulerItem.id == item_id).first()


def get_items(db: Session, scheduler_id: int) -> List[models.SchedulerItem]:
    return db.query(models.SchedulerItem).filter(
        models.SchedulerItem.scheduler_id == scheduler_id
    ).order_by(
        models.SchedulerItem.order_index,
        models.SchedulerItem.id
    ).all()


def get_schedulers(
    db: Session,
    category: Optional[str] = None,
    search: Optional[str] = None,
    user_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
) -> Tuple[List[models.Scheduler], int]:
    """Public schedulers (or one owner's schedulers), newest first, with the total count."""
    query = db.query(models.Scheduler)
    if user_id is not None:
        query = query.filter(models.Scheduler.user_id == user_id)
    else:
        query = query.filter(models.Scheduler.is_public.is_(True))
    if category:
        query = query.filter(models.Scheduler.category == category)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            models.Scheduler.title.ilike(pattern),
            models.Scheduler.description.ilike(pattern)
        ))

    total = query.count()
    rows = query.order_by(
        models.Scheduler.created_at.desc(),
        models.Scheduler.id.desc()
    ).offset(skip).limit(limit).all()
    return rows, total


def _apply_item(db_item: models.SchedulerItem, payload: schemas.SchedulerItemCreate, index: int):
    """Copy an item payload onto a row, normalizing its dates into one rule."""
    data = payload.model_dump()
    rule = rule_from_row(data, log_drift=settings.LOG_ALIGNMENT_DRIFT)

    for column, value in rule.to_row().items():
        setattr(db_item, column, value)
    # Legacy column still read by older clients for one-time items
    db_item.start_date = rule.anchor_date if rule.kind == RecurrenceKind.ONE_TIME else None
    db_item.end_date = None

    db_item.title = payload.title
    db_item.description = payload.description
    db_item.start_time = payload.start_time
    db_item.end_time = payload.end_time
    db_item.priority = payload.priority
    db_item.order_index = payload.order_index if payload.order_index is not None else index
    db_item.color = payload.color or settings.DEFAULT_ITEM_COLOR


def refresh_next_occurrence(db: Session, db_item: models.SchedulerItem, today: date) -> Optional[date]:
    """Recompute the stored next_occurrence of an item, skipping deleted dates."""
    horizon = settings.NEXT_OCCURRENCE_HORIZON_DAYS
    item = schedule_item_from_row(db_item, log_drift=False)
    overrides = override_store.override_snapshot(db, [db_item.id], today, add_days(today, horizon))
    upcoming = next_occurrence(item, overrides, today, horizon)
    db_item.next_occurrence = upcoming.date if upcoming else None
    return db_item.next_occurrence


def _store_items(
    db: Session,
    scheduler: models.Scheduler,
    items: List[schemas.SchedulerItemCreate],
    today: date,
):
    """Make the scheduler's items match ``items``.

    Items whose id already belongs to this scheduler are updated in place so
    their occurrence overrides survive; others are inserted; existing items
    that are not listed are deleted together with their overrides.
    """
    existing = {item.id: item for item in scheduler.items}
    kept = set()
    pending = []

    for index, payload in enumerate(items):
        db_item = existing.get(payload.id) if payload.id is not None else None
        if db_item is None:
            db_item = models.SchedulerItem()
            scheduler.items.append(db_item)
        else:
            kept.add(db_item.id)
        _apply_item(db_item, payload, index)
        pending.append((db_item, payload))

    for item_id, db_item in existing.items():
        if item_id not in kept:
            scheduler.items.remove(db_item)

    db.flush()

    for db_item, payload in pending:
        if payload.exclusion_dates:
            override_store.add_exclusion_dates(db, db_item.id, payload.exclusion_dates)
        refresh_next_occurrence(db, db_item, today)


def create_scheduler(db: Session, scheduler: schemas.SchedulerCreate, today: date) -> models.Scheduler:
    try:
        db_scheduler = models.Scheduler(
            user_id=scheduler.user_id,
            title=scheduler.title,
            description=scheduler.description,
            category=scheduler.category,
            is_public=scheduler.is_public
        )
        db.add(db_scheduler)
        db.flush()
        _store_items(db, db_scheduler, scheduler.items, today)
        db.commit()
        db.refresh(db_scheduler)
        logger.info(f"Created scheduler {db_scheduler.id} with {len(scheduler.items)} items")
        return db_scheduler
    except Exception as e:
        logger.error(f"Error creating scheduler: {e}")
        db.rollback()
        raise


def update_scheduler(
    db: Session,
    db_scheduler: models.Scheduler,
    scheduler: schemas.SchedulerUpdate,
    today: date,
) -> models.Scheduler:
    try:
        update_data = scheduler.model_dump(exclude_unset=True, exclude={"items"})
        for key, value in update_data.items():
            if value is not None:
                setattr(db_scheduler, key, value)
        if scheduler.items is not None:
            _store_items(db, db_scheduler, scheduler.items, today)
        db.commit()
        db.refresh(db_scheduler)
        logger.info(f"Updated scheduler {db_scheduler.id}")
        return db_scheduler
    except Exception as e:
        logger.error(f"Error updating scheduler {db_scheduler.id}: {e}")
        db.rollback()
        raise


def delete_scheduler(db: Session, db_scheduler: models.Scheduler):
    try:
        db.delete(db_scheduler)
        db.commit()
        logger.info(f"Deleted scheduler {db_scheduler.id}")
    except Exception as e:
        logger.error(f"Error deleting scheduler: {e}")
        db.rollback()
        raise


def find_misaligned_items(db: Session) -> List[Tuple[models.SchedulerItem, InconsistentRule]]:
    """Weekly and bi-weekly items whose anchor date is off their day of week."""
    rows = db.query(models.SchedulerItem).filter(
        models.SchedulerItem.recurrence_type.in_([
            RecurrenceKind.WEEKLY.value,
            RecurrenceKind.BI_WEEKLY.value
        ])
    ).order_by(models.SchedulerItem.id).all()

    misaligned = []
    for row in rows:
        try:
            issue = rule_from_row(row, log_drift=False).alignment_issue()
        except SchedulerError as e:
            logger.error(f"Scheduler item {row.id} has an unusable rule: {e.message}")
            continue
        if issue is not None:
            misaligned.append((row, issue))
    return misaligned
