from pydantic import BaseModel, Field, field_validator, field_serializer
from typing import Dict, List, Optional
from datetime import date, datetime, time

from enums import ItemColor, RecurrenceKind, parse_recurrence_kind
from utils.calendar_math import parse_local_date, parse_local_time, to_time_string
from utils.error_handler import InvalidDateFormat

COLOR_VALUES = {color.value for color in ItemColor}


def _local_date(value):
    if value is None or value == "":
        return None
    try:
        return parse_local_date(value)
    except InvalidDateFormat as e:
        raise ValueError(e.message)


def _local_time(value):
    if value is None or value == "":
        return None
    try:
        return parse_local_time(value)
    except InvalidDateFormat as e:
        raise ValueError(e.message)


def _color(value):
    if value is None:
        return None
    normalized = str(value).strip().lower()
    if normalized not in COLOR_VALUES:
        raise ValueError(f"Color must be one of: {', '.join(sorted(COLOR_VALUES))}")
    return normalized


# ========================================================================
# Scheduler items
# ========================================================================

class SchedulerItemBase(BaseModel):
    """Item payload as sent by the client.

    Older clients send ``start_date`` (one-time) or ``item_start_date``;
    newer ones send ``target_date``. All of them are accepted and folded
    into one recurrence rule when the item is stored.
    """
    id: Optional[int] = None
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    day_of_week: Optional[int] = Field(None, ge=1, le=7)
    recurrence_type: RecurrenceKind = RecurrenceKind.ONE_TIME
    recurrence_interval: int = Field(1, ge=1)
    target_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    item_start_date: Optional[date] = None
    item_end_date: Optional[date] = None
    priority: int = 1
    order_index: Optional[int] = None
    color: Optional[str] = None
    exclusion_dates: Optional[List[date]] = None

    @field_validator("target_date", "start_date", "end_date", "item_start_date", "item_end_date", mode="before")
    @classmethod
    def validate_local_date(cls, v):
        return _local_date(v)

    @field_validator("exclusion_dates", mode="before")
    @classmethod
    def validate_exclusion_dates(cls, v):
        if v is None:
            return None
        return [_local_date(value) for value in v if value]

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def validate_local_time(cls, v):
        return _local_time(v)

    @field_validator("recurrence_type", mode="before")
    @classmethod
    def validate_recurrence_type(cls, v):
        try:
            return parse_recurrence_kind(v)
        except ValueError:
            raise ValueError(f"Unknown recurrence type: {v!r}")

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        return _color(v)


class SchedulerItemCreate(SchedulerItemBase):
    pass


class SchedulerItemResponse(BaseModel):
    id: int
    scheduler_id: int
    title: str
    description: Optional[str]
    start_time: Optional[time]
    end_time: Optional[time]
    day_of_week: Optional[int]
    start_date: Optional[date]
    recurrence_type: str
    recurrence_interval: int
    item_start_date: Optional[date]
    item_end_date: Optional[date]
    next_occurrence: Optional[date]
    priority: int
    order_index: int
    color: Optional[str]
    exclusion_dates: List[date] = Field(default_factory=list)
    created_at: Optional[datetime]

    @field_serializer("start_time", "end_time")
    def serialize_time(self, value: Optional[time]):
        return to_time_string(value)

    @field_validator("exclusion_dates", mode="before")
    @classmethod
    def default_exclusion_dates(cls, v):
        return v or []

    class Config:
        from_attributes = True


# ========================================================================
# Schedulers
# ========================================================================

class SchedulerCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=50)
    is_public: bool = True
    user_id: Optional[str] = None
    items: List[SchedulerItemCreate] = Field(default_factory=list)


class SchedulerUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=50)
    is_public: Optional[bool] = None
    items: Optional[List[SchedulerItemCreate]] = None


class SchedulerResponse(BaseModel):
    id: int
    user_id: Optional[str]
    title: str
    description: Optional[str]
    category: Optional[str]
    is_public: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class SchedulerDetailResponse(SchedulerResponse):
    items: List[SchedulerItemResponse] = Field(default_factory=list)
    occurrences: Dict[str, "OccurrenceOverrideResponse"] = Field(default_factory=dict)


class SchedulerListResponse(BaseModel):
    data: List[SchedulerResponse]
    limit: int
    offset: int
    total: int


# ========================================================================
# Occurrence overrides
# ========================================================================

class OccurrenceModifications(BaseModel):
    """Fields to override on one occurrence. Send null to clear an override."""
    title: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    color: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def validate_local_time(cls, v):
        return _local_time(v)

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        return _color(v)


class OccurrenceUpdateRequest(BaseModel):
    restore: Optional[bool] = None
    modifications: Optional[OccurrenceModifications] = None


class OccurrenceOverrideResponse(BaseModel):
    id: int
    scheduler_item_id: int
    occurrence_date: date
    is_deleted: bool
    is_modified: bool
    modified_title: Optional[str]
    modified_description: Optional[str]
    modified_start_time: Optional[time]
    modified_end_time: Optional[time]
    modified_color: Optional[str]
    notes: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @field_serializer("modified_start_time", "modified_end_time")
    def serialize_time(self, value: Optional[time]):
        return to_time_string(value)

    class Config:
        from_attributes = True


class OccurrenceActionResponse(BaseModel):
    success: bool
    message: str
    occurrence: Optional[OccurrenceOverrideResponse] = None


# ========================================================================
# Calendar views
# ========================================================================

class OccurrenceResponse(BaseModel):
    date: str
    title: str
    description: Optional[str]
    start_time: Optional[str]
    end_time: Optional[str]
    color: str
    source_item_id: int
    scheduler_id: Optional[int]
    priority: int
    order_index: int
    recurrence_type: str
    is_modified: bool
    notes: Optional[str]


class OccurrenceWindowResponse(BaseModel):
    scheduler_id: int
    start_date: str
    end_date: str
    occurrences: List[OccurrenceResponse]


class DailyViewResponse(BaseModel):
    scheduler_id: int
    date: str
    day_of_week: int
    occurrences: List[OccurrenceResponse]


class WeeklyViewResponse(BaseModel):
    scheduler_id: int
    start_date: str
    end_date: str
    days: Dict[str, List[OccurrenceResponse]]


class MonthlyViewResponse(BaseModel):
    scheduler_id: int
    month: str
    start_date: str
    end_date: str
    days_in_month: int
    days: Dict[str, List[OccurrenceResponse]]


class AlignmentIssueResponse(BaseModel):
    item_id: int
    scheduler_id: int
    title: str
    recurrence_type: str
    day_of_week: int
    anchor_date: str
    effective_anchor: str
    message: str


SchedulerDetailResponse.model_rebuild()
