"""Tests for task model validation and payload discrimination."""

from __future__ import annotations

import datetime

import pytest
from pydantic import ValidationError

from taskcal.tasks.models import (
    NewTaskInput,
    RecurrenceFrequency,
    Recurring,
    Task,
    parse_task_payload,
)

UTC = datetime.timezone.utc


class TestRecurring:
    @pytest.mark.parametrize("interval", [0, -1])
    def test_interval_must_be_positive(self, interval):
        with pytest.raises(ValidationError):
            Recurring(frequency="daily", interval=interval)

    @pytest.mark.parametrize("day", [7, -1])
    def test_weekdays_outside_range_are_rejected(self, day):
        with pytest.raises(ValidationError):
            Recurring(frequency="weekly", days_of_week=[1, day])

    def test_empty_weekdays_become_none(self):
        assert Recurring(frequency="weekly", days_of_week=[]).days_of_week is None

    def test_weekdays_are_deduplicated_and_sorted(self):
        rule = Recurring(frequency="weekly", days_of_week=[5, 1, 5, 3, 1])
        assert rule.days_of_week == [1, 3, 5]

    def test_camel_case_input(self):
        rule = Recurring.model_validate(
            {"frequency": "WEEKLY", "interval": 2, "endDate": "2024-03-01", "daysOfWeek": [2]}
        )
        assert rule.frequency is RecurrenceFrequency.WEEKLY
        assert rule.end_date == datetime.date(2024, 3, 1)
        assert rule.days_of_week == [2]


class TestTaskFields:
    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError, match="endTime must be after startTime"):
            NewTaskInput(
                title="Backwards",
                start_time=datetime.datetime(2024, 1, 1, 10, tzinfo=UTC),
                end_time=datetime.datetime(2024, 1, 1, 10, tzinfo=UTC),
            )

    def test_offsets_are_normalised_to_utc(self):
        task = NewTaskInput.model_validate(
            {"title": "Call", "startTime": "2024-01-01T09:00:00-05:00"}
        )
        assert task.start_time == datetime.datetime(2024, 1, 1, 14, tzinfo=UTC)
        assert task.start_time.tzinfo == UTC

    def test_title_is_required(self):
        with pytest.raises(ValidationError):
            NewTaskInput(title="", start_time=datetime.datetime(2024, 1, 1, tzinfo=UTC))


class TestParseTaskPayload:
    def test_payload_with_id_is_a_task(self):
        payload = parse_task_payload(
            {"id": "t1", "title": "Stored", "startTime": "2024-01-01T09:00:00Z", "timeSpent": 60}
        )
        assert isinstance(payload, Task)
        assert payload.time_spent == 60

    @pytest.mark.parametrize("data", [{}, {"id": ""}, {"id": None}])
    def test_payload_without_id_is_new_input(self, data):
        payload = parse_task_payload(
            {"title": "Fresh", "startTime": "2024-01-01T09:00:00Z", **data}
        )
        assert isinstance(payload, NewTaskInput)
        assert not isinstance(payload, Task)
