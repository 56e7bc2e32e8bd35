"""
Occurrence override store.

Per-date exceptions to a scheduler item's series live in the
``scheduler_item_occurrences`` table, one row per (item, date). Writes are
upserts against that uniqueness constraint; when two writers race on the same
key the loser retries as an update, so the last write wins.
"""

from typing import Callable, Dict, Iterable, List, Optional
from datetime import date
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from models import SchedulerItemOccurrence
from utils.calendar_math import parse_local_date, parse_local_time
from utils.error_handler import EmptyModification
from utils.occurrence_expander import OccurrenceOverride, OverrideKey, index_overrides

logger = logging.getLogger("db.occurrences")

# Request field name -> override column
MODIFIABLE_FIELDS = {
    "title": "modified_title",
    "description": "modified_description",
    "start_time": "modified_start_time",
    "end_time": "modified_end_time",
    "color": "modified_color",
    "notes": "notes",
}

TIME_FIELDS = {"start_time", "end_time"}


def get_override(db: Session, item_id: int, occurrence_date: date) -> Optional[SchedulerItemOccurrence]:
    """
    Get the override row for one occurrence, if any.
    """
    return db.query(SchedulerItemOccurrence).filter(
        SchedulerItemOccurrence.scheduler_item_id == item_id,
        SchedulerItemOccurrence.occurrence_date == occurrence_date
    ).first()


def _upsert(
    db: Session,
    item_id: int,
    occurrence_date: date,
    apply: Callable[[SchedulerItemOccurrence], None],
) -> SchedulerItemOccurrence:
    row = get_override(db, item_id, occurrence_date)
    if row is None:
        row = SchedulerItemOccurrence(
            scheduler_item_id=item_id,
            occurrence_date=occurrence_date,
            is_deleted=False,
            is_modified=False
        )
        db.add(row)
    apply(row)

    try:
        db.commit()
    except IntegrityError:
        # Another writer inserted the same (item, date) first; update theirs
        db.rollback()
        logger.info(f"Override for item {item_id} on {occurrence_date} created concurrently, updating")
        row = get_override(db, item_id, occurrence_date)
        if row is None:
            raise
        apply(row)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
    except Exception as e:
        logger.error(f"Error writing override for item {item_id} on {occurrence_date}: {e}")
        db.rollback()
        raise

    db.refresh(row)
    return row


def mark_deleted(db: Session, item_id: int, occurrence_date) -> SchedulerItemOccurrence:
    """
    Suppress one occurrence of an item. Idempotent.

    Args:
        db: Database session
        item_id: ID of the scheduler item
        occurrence_date: Date of the occurrence (date or YYYY-MM-DD)

    Returns:
        The override row
    """
    occurrence_date = parse_local_date(occurrence_date)

    def apply(row: SchedulerItemOccurrence):
        row.is_deleted = True

    row = _upsert(db, item_id, occurrence_date, apply)
    logger.info(f"Deleted occurrence of item {item_id} on {occurrence_date.isoformat()}")
    return row


def restore(db: Session, item_id: int, occurrence_date) -> Optional[SchedulerItemOccurrence]:
    """
    Bring back a deleted occurrence.

    Returns:
        The updated row, or None when the occurrence had no override row
    """
    occurrence_date = parse_local_date(occurrence_date)
    row = get_override(db, item_id, occurrence_date)
    if row is None:
        return None

    try:
        row.is_deleted = False
        db.commit()
        db.refresh(row)
    except Exception as e:
        logger.error(f"Error restoring occurrence of item {item_id} on {occurrence_date}: {e}")
        db.rollback()
        raise
    logger.info(f"Restored occurrence of item {item_id} on {occurrence_date.isoformat()}")
    return row


def modify(db: Session, item_id: int, occurrence_date, fields: Dict) -> SchedulerItemOccurrence:
    """
    Override display fields of one occurrence.

    Only the keys present in ``fields`` are written; a key given as None
    clears that override so the item's own value shows again. The row stops
    counting as modified once every override field is empty. The deletion
    flag is left untouched.

    Args:
        db: Database session
        item_id: ID of the scheduler item
        occurrence_date: Date of the occurrence
        fields: Subset of title, description, start_time, end_time, color, notes

    Raises:
        EmptyModification: if no modifiable field is supplied
    """
    occurrence_date = parse_local_date(occurrence_date)
    changes = {name: value for name, value in (fields or {}).items() if name in MODIFIABLE_FIELDS}
    if not changes:
        raise EmptyModification()

    for name in TIME_FIELDS & changes.keys():
        changes[name] = parse_local_time(changes[name])

    def apply(row: SchedulerItemOccurrence):
        for name, value in changes.items():
            setattr(row, MODIFIABLE_FIELDS[name], value)
        # Clearing every field leaves a plain occurrence again
        row.is_modified = any(
            getattr(row, column) is not None for column in MODIFIABLE_FIELDS.values()
        )

    row = _upsert(db, item_id, occurrence_date, apply)
    logger.info(
        f"Modified occurrence of item {item_id} on {occurrence_date.isoformat()}: {sorted(changes)}"
    )
    return row


def clear(db: Session, item_id: int, occurrence_date) -> bool:
    """
    Remove an override row entirely.

    Returns:
        True if a row was removed
    """
    occurrence_date = parse_local_date(occurrence_date)
    row = get_override(db, item_id, occurrence_date)
    if row is None:
        return False
    try:
        db.delete(row)
        db.commit()
    except Exception as e:
        logger.error(f"Error clearing override of item {item_id} on {occurrence_date}: {e}")
        db.rollback()
        raise
    return True


def list_for_window(
    db: Session,
    item_ids: Iterable[int],
    start: Optional[date] = None,
    end: Optional[date] = None,
    include_deleted: bool = False,
) -> List[SchedulerItemOccurrence]:
    """
    List override rows of the given items with a date in [start, end].

    Either bound may be omitted. Deleted rows are left out unless
    include_deleted is set.
    """
    item_ids = list(item_ids)
    if not item_ids:
        return []

    query = db.query(SchedulerItemOccurrence).filter(
        SchedulerItemOccurrence.scheduler_item_id.in_(item_ids)
    )
    if start is not None:
        query = query.filter(SchedulerItemOccurrence.occurrence_date >= start)
    if end is not None:
        query = query.filter(SchedulerItemOccurrence.occurrence_date <= end)
    if not include_deleted:
        query = query.filter(SchedulerItemOccurrence.is_deleted.is_(False))

    return query.order_by(
        SchedulerItemOccurrence.occurrence_date,
        SchedulerItemOccurrence.scheduler_item_id
    ).all()


def override_snapshot(
    db: Session,
    item_ids: Iterable[int],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Dict[OverrideKey, OccurrenceOverride]:
    """
    Deleted and modified overrides keyed by (item id, date) for the expander.
    """
    rows = list_for_window(db, item_ids, start, end, include_deleted=True)
    return index_overrides(
        row for row in rows if row.is_deleted or row.is_modified
    )


def add_exclusion_dates(db: Session, item_id: int, dates: Iterable) -> int:
    """
    Record legacy ``exclusion_dates`` of an item as deleted overrides.

    Rows are added to the current transaction; the caller commits.

    Returns:
        Number of dates recorded
    """
    count = 0
    for occurrence_date in sorted({parse_local_date(value) for value in dates or []}):
        row = get_override(db, item_id, occurrence_date)
        if row is None:
            row = SchedulerItemOccurrence(
                scheduler_item_id=item_id,
                occurrence_date=occurrence_date,
                is_modified=False
            )
            db.add(row)
        row.is_deleted = True
        count += 1
    if count:
        db.flush()
    return count
