from sqlalchemy import Boolean, Column, Integer, String, Date, DateTime, Time, Text, ForeignKey, JSON, UniqueConstraint, Index
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, timezone

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class Scheduler(Base):
    """A named, shareable collection of scheduler items."""
    __tablename__ = "schedulers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)  # owner reference from the auth layer
    title = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True, index=True)
    is_public = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    items = relationship(
        "SchedulerItem",
        back_populates="scheduler",
        cascade="all, delete-orphan",
        order_by="SchedulerItem.order_index",
    )


class SchedulerItem(Base):
    """One activity in a scheduler together with its recurrence rule columns."""
    __tablename__ = "scheduler_items"

    id = Column(Integer, primary_key=True, index=True)
    scheduler_id = Column(Integer, ForeignKey("schedulers.id", ondelete="CASCADE"),
                          nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    day_of_week = Column(Integer, nullable=True)  # 1=Monday .. 7=Sunday
    start_date = Column(Date, nullable=True)  # legacy one-time date
    end_date = Column(Date, nullable=True)  # legacy, unused
    priority = Column(Integer, default=1)
    order_index = Column(Integer, default=0)
    color = Column(String(20), default="blue")
    recurrence_type = Column(String(20), default="one-time", nullable=False, index=True)
    recurrence_interval = Column(Integer, default=1, nullable=False)
    item_start_date = Column(Date, nullable=True)
    item_end_date = Column(Date, nullable=True)
    next_occurrence = Column(Date, nullable=True)
    exclusion_dates = Column(JSON, nullable=True)  # legacy, superseded by occurrence overrides
    created_at = Column(DateTime, default=_utcnow)

    scheduler = relationship("Scheduler", back_populates="items")
    occurrences = relationship(
        "SchedulerItemOccurrence",
        back_populates="item",
        cascade="all, delete-orphan",
    )


class SchedulerItemOccurrence(Base):
    """Per-date exception to an item's series: a deletion or field override."""
    __tablename__ = "scheduler_item_occurrences"
    __table_args__ = (
        UniqueConstraint("scheduler_item_id", "occurrence_date", name="uq_occurrence_item_date"),
        Index("idx_occurrences_item_date", "scheduler_item_id", "occurrence_date", "is_deleted"),
    )

    id = Column(Integer, primary_key=True, index=True)
    scheduler_item_id = Column(Integer, ForeignKey("scheduler_items.id", ondelete="CASCADE"),
                               nullable=False, index=True)
    occurrence_date = Column(Date, nullable=False, index=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    is_modified = Column(Boolean, default=False, nullable=False)
    modified_title = Column(String(100), nullable=True)
    modified_description = Column(Text, nullable=True)
    modified_start_time = Column(Time, nullable=True)
    modified_end_time = Column(Time, nullable=True)
    modified_color = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    item = relationship("SchedulerItem", back_populates="occurrences")
