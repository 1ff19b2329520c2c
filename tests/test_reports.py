from __future__ import annotations

import datetime
from zoneinfo import ZoneInfo

import pytest

from taskcal.services.reports import summarize_tasks
from taskcal.tasks.models import Task, TaskCategory, TaskPriority

START = datetime.datetime(2024, 1, 1, 9, tzinfo=datetime.timezone.utc)


def test_summary_counts_and_focus_time():
    tasks = [
        Task(id="a", title="A", start_time=START, category=TaskCategory.WORK, completed=True, time_spent=1500),
        Task(id="b", title="B", start_time=START, category=TaskCategory.WORK, priority=TaskPriority.HIGH, time_spent=300),
        Task(id="c", title="C", start_time=START, category=TaskCategory.FITNESS),
    ]

    summary = summarize_tasks(tasks)

    assert (summary.total, summary.completed, summary.pending) == (3, 1, 2)
    assert summary.completion_rate == pytest.approx(1 / 3)
    assert summary.total_focus_seconds == 1800
    assert summary.by_category["Work"] == 2
    assert summary.by_category["Study"] == 0
    assert summary.by_priority == {"Low": 0, "Medium": 2, "High": 1}
    assert summary.to_dict()["totalFocusSeconds"] == 1800


def test_empty_summary():
    summary = summarize_tasks([])
    assert summary.total == 0
    assert summary.completion_rate == 0.0
    assert summary.upcoming == []
    assert [entry.completed for entry in summary.daily_completions] == [0] * 7


def _done(task_id: str, completed_at: datetime.datetime) -> Task:
    return Task(id=task_id, title=task_id, start_time=START, completed=True, completion_date=completed_at)


def test_daily_completions_cover_last_week_oldest_first():
    utc = datetime.timezone.utc
    tasks = [
        _done("mon", datetime.datetime(2024, 1, 1, 8, tzinfo=utc)),
        _done("sun-1", datetime.datetime(2024, 1, 7, 8, tzinfo=utc)),
        _done("sun-2", datetime.datetime(2024, 1, 7, 20, tzinfo=utc)),
        _done("too-old", datetime.datetime(2023, 12, 31, 23, tzinfo=utc)),
        Task(id="undated", title="Undated", start_time=START, completed=True),
    ]

    summary = summarize_tasks(tasks, now=datetime.datetime(2024, 1, 7, 21, tzinfo=utc))
    days = summary.to_dict()["dailyCompletions"]

    assert [entry["date"] for entry in days] == [f"2024-01-0{day}" for day in range(1, 8)]
    assert [entry["day"] for entry in days] == ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    assert [entry["completed"] for entry in days] == [1, 0, 0, 0, 0, 0, 2]


def test_daily_completions_use_local_days():
    new_york = ZoneInfo("America/New_York")
    late_evening = _done("late", datetime.datetime(2024, 1, 5, 2, tzinfo=datetime.timezone.utc))

    summary = summarize_tasks(
        [late_evening],
        now=datetime.datetime(2024, 1, 5, 3, tzinfo=datetime.timezone.utc),
        tz=new_york,
    )

    assert summary.daily_completions[-1].day == datetime.date(2024, 1, 4)
    assert summary.daily_completions[-1].completed == 1


def test_upcoming_lists_first_five_incomplete_in_stored_order():
    tasks = [
        Task(id=f"t{index}", title=f"T{index}", start_time=START, completed=index % 3 == 0)
        for index in range(10)
    ]

    summary = summarize_tasks(tasks)

    assert [task.id for task in summary.upcoming] == ["t1", "t2", "t4", "t5", "t7"]
    assert summary.to_dict()["upcoming"][0]["startTime"].startswith("2024-01-01T09:00:00")
