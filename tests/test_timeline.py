"""Tests for the day-timeline layout engine."""

from __future__ import annotations

import datetime

import pytest

from taskcal.calendar.timeline import is_all_day, is_all_day_task, layout_day
from taskcal.tasks.models import Occurrence, Task

UTC = datetime.timezone.utc
DAY = datetime.date(2024, 1, 10)


def _at(minutes: int, day: datetime.date = DAY) -> datetime.datetime:
    return datetime.datetime.combine(day, datetime.time.min, tzinfo=UTC) + datetime.timedelta(
        minutes=minutes
    )


def _occurrence(task_id: str, start, end=None) -> Occurrence:
    return Occurrence(id=task_id, task=Task(id=task_id, title=task_id, start_time=start, end_time=end))


class TestAllDay:
    def test_midnight_without_end_is_all_day(self):
        assert is_all_day(_at(0), None) is True

    def test_midnight_with_two_hour_end_is_timed(self):
        assert is_all_day(_at(0), _at(120)) is False

    def test_non_midnight_without_end_is_timed(self):
        assert is_all_day(_at(30), None) is False

    def test_task_helper(self):
        task = Task(id="t", title="Holiday", start_time=_at(0))
        assert is_all_day_task(task) is True


class TestLayout:
    def test_empty_day(self):
        layout = layout_day([], DAY)
        assert layout.all_day == []
        assert layout.events == []

    def test_three_overlapping_events_use_two_columns(self):
        first = _occurrence("first", _at(0 + 480), _at(60 + 480))
        second = _occurrence("second", _at(30 + 480), _at(90 + 480))
        third = _occurrence("third", _at(60 + 480), _at(120 + 480))

        layout = layout_day([third, second, first], DAY)
        columns = {event.occurrence.id: event.column for event in layout.events}

        assert columns == {"first": 0, "second": 1, "third": 0}
        assert {event.column_count for event in layout.events} == {2}
        second_event = next(event for event in layout.events if event.occurrence.id == "second")
        assert second_event.width == pytest.approx(50)
        assert second_event.left == pytest.approx(50)
        assert second_event.z_index == 11

    def test_geometry_uses_hour_height(self):
        meeting = _occurrence("meeting", _at(90), _at(150))
        event = layout_day([meeting], DAY, hour_height=60).events[0]
        assert event.top == pytest.approx(90)
        assert event.height == pytest.approx(60)
        assert event.width == pytest.approx(100)
        assert event.left == 0

    def test_short_event_gets_minimum_height(self):
        blip = _occurrence("blip", _at(600), _at(605))
        event = layout_day([blip], DAY, min_height=20).events[0]
        assert event.height == pytest.approx(20)

    def test_missing_end_defaults_to_one_hour(self):
        reminder = _occurrence("reminder", _at(615))
        event = layout_day([reminder], DAY).events[0]
        assert (event.start_minutes, event.end_minutes) == (615, 675)

    def test_events_crossing_midnight_are_clipped(self):
        overnight = _occurrence(
            "overnight",
            _at(22 * 60, DAY - datetime.timedelta(days=1)),
            _at(2 * 60),
        )
        late = _occurrence("late", _at(23 * 60), _at(25 * 60))

        layout = layout_day([overnight, late], DAY)
        spans = {event.occurrence.id: (event.start_minutes, event.end_minutes) for event in layout.events}

        assert spans["overnight"] == (0, 120)
        assert spans["late"] == (23 * 60, 1439)

    def test_all_day_split_from_timed(self):
        holiday = _occurrence("holiday", _at(0))
        call = _occurrence("call", _at(0), _at(30))

        layout = layout_day([holiday, call], DAY)

        assert [item.id for item in layout.all_day] == ["holiday"]
        assert [event.occurrence.id for event in layout.events] == ["call"]
        body = layout.to_dict()
        assert body["allDay"][0]["id"] == "holiday"
        assert body["events"][0]["columnCount"] == 1

    def test_separate_groups_reset_columns(self):
        morning_a = _occurrence("morning-a", _at(480), _at(540))
        morning_b = _occurrence("morning-b", _at(500), _at(560))
        afternoon = _occurrence("afternoon", _at(840), _at(900))

        layout = layout_day([morning_a, morning_b, afternoon], DAY)
        afternoon_event = next(e for e in layout.events if e.occurrence.id == "afternoon")

        assert afternoon_event.column == 0
        assert afternoon_event.column_count == 1
