"""Tests for indexing occurrences by calendar day."""

from __future__ import annotations

import datetime
from zoneinfo import ZoneInfo

from taskcal.calendar.buckets import (
    MAX_DAYS_PER_OCCURRENCE,
    bucket_by_day,
    occurrence_days,
    occurrences_on,
)
from taskcal.tasks.models import Occurrence, Task

UTC = datetime.timezone.utc


def _occurrence(task_id: str, start, end=None) -> Occurrence:
    return Occurrence(id=task_id, task=Task(id=task_id, title=task_id, start_time=start, end_time=end))


def test_multi_day_occurrence_lands_in_every_day():
    trip = _occurrence(
        "trip",
        datetime.datetime(2024, 1, 1, 18, tzinfo=UTC),
        datetime.datetime(2024, 1, 3, 9, tzinfo=UTC),
    )
    buckets = bucket_by_day([trip])
    assert sorted(buckets) == [
        datetime.date(2024, 1, 1),
        datetime.date(2024, 1, 2),
        datetime.date(2024, 1, 3),
    ]
    assert occurrences_on(buckets, datetime.date(2024, 1, 2)) == [trip]


def test_missing_end_uses_start_day_only():
    single = _occurrence("single", datetime.datetime(2024, 1, 5, tzinfo=UTC))
    assert occurrence_days(single) == [datetime.date(2024, 1, 5)]


def test_days_are_local_to_display_timezone():
    late = _occurrence("late", datetime.datetime(2024, 1, 5, 23, 30, tzinfo=UTC))
    assert occurrence_days(late, ZoneInfo("Asia/Tokyo")) == [datetime.date(2024, 1, 6)]


def test_span_is_capped():
    endless = _occurrence(
        "endless",
        datetime.datetime(2024, 1, 1, tzinfo=UTC),
        datetime.datetime(2027, 1, 1, tzinfo=UTC),
    )
    days = occurrence_days(endless)
    assert len(days) == MAX_DAYS_PER_OCCURRENCE
    assert days[0] == datetime.date(2024, 1, 1)


def test_bucket_keeps_input_order_and_empty_days_return_empty_list():
    first = _occurrence("first", datetime.datetime(2024, 1, 2, 8, tzinfo=UTC))
    second = _occurrence("second", datetime.datetime(2024, 1, 2, 7, tzinfo=UTC))
    buckets = bucket_by_day([first, second])
    assert [item.id for item in occurrences_on(buckets, datetime.date(2024, 1, 2))] == [
        "first",
        "second",
    ]
    assert occurrences_on(buckets, datetime.date(2024, 1, 9)) == []
