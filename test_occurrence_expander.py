from datetime import date, time

import pytest

from enums import RecurrenceKind
from utils.error_handler import UnboundedExpansionRequested
from utils.occurrence_expander import (
    OccurrenceOverride,
    expand,
    expand_many,
    index_overrides,
    next_occurrence,
)
from utils.recurrence_rule import RecurrenceRule
from utils.schedule_item import ScheduleItem, schedule_items_from_rows

JUNE_START = date(2024, 6, 1)
JUNE_END = date(2024, 6, 30)


def make_item(item_id=1, kind=RecurrenceKind.WEEKLY, anchor=date(2024, 6, 3), **fields):
    rule_fields = {key: fields.pop(key) for key in ("end_date", "day_of_week", "interval") if key in fields}
    return ScheduleItem(
        id=item_id,
        scheduler_id=10,
        title=fields.pop("title", f"Item {item_id}"),
        rule=RecurrenceRule(kind, anchor, **rule_fields),
        **fields,
    )


def dates_of(occurrences):
    return [occurrence.date for occurrence in occurrences]


def test_weekly_june_agenda():
    item = make_item(day_of_week=1)
    assert dates_of(expand(item, {}, JUNE_START, JUNE_END)) == [
        date(2024, 6, 3), date(2024, 6, 10), date(2024, 6, 17), date(2024, 6, 24)
    ]


def test_expansion_is_deterministic_and_restartable():
    item = make_item(kind=RecurrenceKind.DAILY, anchor=date(2024, 6, 10))
    sequence = expand(item, {}, JUNE_START, JUNE_END)
    first = list(sequence)
    assert list(sequence) == first
    assert list(expand(item, {}, JUNE_START, JUNE_END)) == first
    assert len(first) == 21


def test_occurrences_stay_inside_window():
    item = make_item(kind=RecurrenceKind.DAILY, anchor=date(2024, 1, 1), end_date=date(2024, 12, 31))
    window = list(expand(item, {}, date(2024, 6, 15), date(2024, 6, 20)))
    assert dates_of(window) == [date(2024, 6, day) for day in range(15, 21)]


def test_reversed_window_yields_nothing():
    item = make_item(kind=RecurrenceKind.DAILY, anchor=date(2024, 1, 1))
    assert list(expand(item, {}, JUNE_END, JUNE_START)) == []
    assert expand_many([item], {}, JUNE_END, JUNE_START) == []


def test_unbounded_window_fails_at_call_time():
    item = make_item()
    with pytest.raises(UnboundedExpansionRequested):
        expand(item, {}, JUNE_START, None)
    with pytest.raises(UnboundedExpansionRequested):
        expand_many([item], {}, None, JUNE_END)


def test_deleted_override_suppresses_only_that_date():
    item = make_item(day_of_week=1)
    overrides = index_overrides([
        OccurrenceOverride(item_id=1, occurrence_date=date(2024, 6, 10), is_deleted=True),
    ])
    assert dates_of(expand(item, overrides, JUNE_START, JUNE_END)) == [
        date(2024, 6, 3), date(2024, 6, 17), date(2024, 6, 24)
    ]


def test_deletion_wins_over_modification():
    item = make_item(day_of_week=1)
    overrides = index_overrides([
        OccurrenceOverride(
            item_id=1, occurrence_date=date(2024, 6, 10), is_deleted=True, is_modified=True, title="Moved"
        ),
    ])
    assert date(2024, 6, 10) not in dates_of(expand(item, overrides, JUNE_START, JUNE_END))


def test_partial_override_keeps_other_fields():
    item = make_item(
        day_of_week=1, title="Standup", description="Daily sync",
        start_time=time(9, 0), end_time=time(9, 15), color="green",
    )
    overrides = index_overrides([{
        "scheduler_item_id": 1,
        "occurrence_date": "2024-06-17",
        "is_deleted": False,
        "is_modified": True,
        "modified_title": "Standup (remote)",
        "modified_start_time": "10:00",
        "notes": "Office closed",
    }])
    by_date = {o.date: o for o in expand(item, overrides, JUNE_START, JUNE_END)}

    changed = by_date[date(2024, 6, 17)]
    assert changed.title == "Standup (remote)"
    assert changed.start_time == time(10, 0)
    assert changed.end_time == time(9, 15)
    assert changed.description == "Daily sync"
    assert changed.color == "green"
    assert changed.is_modified is True
    assert changed.notes == "Office closed"

    untouched = by_date[date(2024, 6, 10)]
    assert untouched.title == "Standup"
    assert untouched.is_modified is False


def test_overrides_of_other_items_are_ignored():
    item = make_item(item_id=1, day_of_week=1)
    overrides = index_overrides([
        OccurrenceOverride(item_id=2, occurrence_date=date(2024, 6, 10), is_deleted=True),
    ])
    assert date(2024, 6, 10) in dates_of(expand(item, overrides, JUNE_START, JUNE_END))


def test_expand_many_ordering():
    timed_late = make_item(item_id=1, kind=RecurrenceKind.ONE_TIME, anchor=date(2024, 6, 5), start_time=time(14, 0))
    timed_early = make_item(item_id=2, kind=RecurrenceKind.ONE_TIME, anchor=date(2024, 6, 5), start_time=time(8, 0))
    untimed = make_item(item_id=3, kind=RecurrenceKind.ONE_TIME, anchor=date(2024, 6, 5))
    same_time_b = make_item(item_id=5, kind=RecurrenceKind.ONE_TIME, anchor=date(2024, 6, 5),
                            start_time=time(8, 0), order_index=1)
    earlier_day = make_item(item_id=4, kind=RecurrenceKind.ONE_TIME, anchor=date(2024, 6, 4), start_time=time(23, 0))

    agenda = expand_many([timed_late, same_time_b, timed_early, untimed, earlier_day], {}, JUNE_START, JUNE_END)
    assert [o.source_item_id for o in agenda] == [4, 3, 2, 5, 1]


def test_next_occurrence_skips_deleted_dates():
    item = make_item(day_of_week=1)
    overrides = index_overrides([
        OccurrenceOverride(item_id=1, occurrence_date=date(2024, 6, 10), is_deleted=True),
    ])
    upcoming = next_occurrence(item, overrides, date(2024, 6, 4), 60)
    assert upcoming.date == date(2024, 6, 17)


def test_next_occurrence_none_after_end():
    item = make_item(kind=RecurrenceKind.ONE_TIME, anchor=date(2024, 6, 3))
    assert next_occurrence(item, {}, date(2024, 6, 4), 365) is None


def test_schedule_items_from_rows_skips_broken_rows():
    rows = [
        {"id": 1, "title": "Ok", "recurrence_type": "daily", "item_start_date": "2024-06-01"},
        {"id": 2, "title": "No anchor", "recurrence_type": "weekly"},
    ]
    items = schedule_items_from_rows(rows, log_drift=False)
    assert [item.id for item in items] == [1]


def test_occurrence_to_dict_uses_local_strings():
    item = make_item(kind=RecurrenceKind.ONE_TIME, anchor=date(2024, 6, 5), start_time=time(8, 30))
    payload = next(iter(expand(item, {}, JUNE_START, JUNE_END))).to_dict()
    assert payload["date"] == "2024-06-05"
    assert payload["start_time"] == "08:30"
    assert payload["recurrence_type"] == "one-time"
