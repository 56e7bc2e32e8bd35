"""backfill_occurrence_overrides

Moves legacy item data onto the current columns:
- one-time items that only carry start_date get item_start_date
- exclusion_dates become deleted rows in scheduler_item_occurrences

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

"""
import json
import logging

from alembic import op
import sqlalchemy as sa

from utils.calendar_math import parse_local_date
from utils.error_handler import InvalidDateFormat

# revision identifiers
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None

logger = logging.getLogger("alembic.runtime.migration")


def upgrade():
    op.execute(
        "UPDATE scheduler_items SET item_start_date = start_date "
        "WHERE item_start_date IS NULL AND start_date IS NOT NULL"
    )
    op.execute(
        "UPDATE scheduler_items SET recurrence_type = 'one-time' "
        "WHERE recurrence_type IS NULL OR recurrence_type = ''"
    )

    conn = op.get_bind()
    rows = conn.execute(sa.text(
        "SELECT id, exclusion_dates FROM scheduler_items WHERE exclusion_dates IS NOT NULL"
    )).fetchall()

    occurrences = sa.table('scheduler_item_occurrences',
        sa.column('scheduler_item_id', sa.Integer),
        sa.column('occurrence_date', sa.Date),
        sa.column('is_deleted', sa.Boolean),
        sa.column('is_modified', sa.Boolean),
    )

    for item_id, raw in rows:
        values = json.loads(raw) if isinstance(raw, str) else raw
        dates = set()
        for value in values or []:
            try:
                dates.add(parse_local_date(value))
            except InvalidDateFormat:
                logger.warning(f"Skipping malformed exclusion date {value!r} on item {item_id}")
        for occurrence_date in sorted(dates):
            existing = conn.execute(sa.text(
                "SELECT id FROM scheduler_item_occurrences "
                "WHERE scheduler_item_id = :item_id AND occurrence_date = :occurrence_date"
            ), {"item_id": item_id, "occurrence_date": occurrence_date}).first()
            if existing:
                conn.execute(sa.text(
                    "UPDATE scheduler_item_occurrences SET is_deleted = true WHERE id = :id"
                ), {"id": existing[0]})
            else:
                op.bulk_insert(occurrences, [{
                    "scheduler_item_id": item_id,
                    "occurrence_date": occurrence_date,
                    "is_deleted": True,
                    "is_modified": False,
                }])

    op.execute("UPDATE scheduler_items SET exclusion_dates = NULL WHERE exclusion_dates IS NOT NULL")


def downgrade():
    # Deleted overrides go back into the legacy column; modified rows stay
    conn = op.get_bind()
    rows = conn.execute(sa.text(
        "SELECT scheduler_item_id, occurrence_date FROM scheduler_item_occurrences "
        "WHERE is_deleted = true ORDER BY scheduler_item_id, occurrence_date"
    )).fetchall()

    by_item = {}
    for item_id, occurrence_date in rows:
        by_item.setdefault(item_id, []).append(str(occurrence_date)[:10])

    for item_id, dates in by_item.items():
        conn.execute(sa.text(
            "UPDATE scheduler_items SET exclusion_dates = :dates WHERE id = :id"
        ), {"dates": json.dumps(dates), "id": item_id})

    op.execute(
        "DELETE FROM scheduler_item_occurrences WHERE is_deleted = true AND is_modified = false"
    )
