"""create_scheduler_tables

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('schedulers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(255), nullable=True),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('scheduler_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('scheduler_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=True),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('recurrence_type', sa.String(20), nullable=False, server_default='one-time'),
        sa.Column('recurrence_interval', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('item_start_date', sa.Date(), nullable=True),
        sa.Column('item_end_date', sa.Date(), nullable=True),
        sa.Column('next_occurrence', sa.Date(), nullable=True),
        sa.Column('exclusion_dates', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['scheduler_id'], ['schedulers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('scheduler_item_occurrences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('scheduler_item_id', sa.Integer(), nullable=False),
        sa.Column('occurrence_date', sa.Date(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_modified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('modified_title', sa.String(100), nullable=True),
        sa.Column('modified_description', sa.Text(), nullable=True),
        sa.Column('modified_start_time', sa.Time(), nullable=True),
        sa.Column('modified_end_time', sa.Time(), nullable=True),
        sa.Column('modified_color', sa.String(20), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['scheduler_item_id'], ['scheduler_items.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('scheduler_item_id', 'occurrence_date', name='uq_occurrence_item_date'),
    )

    # Create indexes for performance
    op.create_index('ix_schedulers_user_id', 'schedulers', ['user_id'])
    op.create_index('ix_schedulers_title', 'schedulers', ['title'])
    op.create_index('ix_schedulers_category', 'schedulers', ['category'])
    op.create_index('ix_scheduler_items_scheduler_id', 'scheduler_items', ['scheduler_id'])
    op.create_index('ix_scheduler_items_recurrence_type', 'scheduler_items', ['recurrence_type'])
    op.create_index('ix_scheduler_item_occurrences_scheduler_item_id', 'scheduler_item_occurrences', ['scheduler_item_id'])
    op.create_index('ix_scheduler_item_occurrences_occurrence_date', 'scheduler_item_occurrences', ['occurrence_date'])
    op.create_index('idx_occurrences_item_date', 'scheduler_item_occurrences',
                    ['scheduler_item_id', 'occurrence_date', 'is_deleted'])


def downgrade():
    # Drop indexes
    op.drop_index('idx_occurrences_item_date', table_name='scheduler_item_occurrences')
    op.drop_index('ix_scheduler_item_occurrences_occurrence_date', table_name='scheduler_item_occurrences')
    op.drop_index('ix_scheduler_item_occurrences_scheduler_item_id', table_name='scheduler_item_occurrences')
    op.drop_index('ix_scheduler_items_recurrence_type', table_name='scheduler_items')
    op.drop_index('ix_scheduler_items_scheduler_id', table_name='scheduler_items')
    op.drop_index('ix_schedulers_category', table_name='schedulers')
    op.drop_index('ix_schedulers_title', table_name='schedulers')
    op.drop_index('ix_schedulers_user_id', table_name='schedulers')

    # Drop tables
    op.drop_table('scheduler_item_occurrences')
    op.drop_table('scheduler_items')
    op.drop_table('schedulers')
