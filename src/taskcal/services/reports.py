"""Aggregate productivity statistics over the task list."""

from __future__ import annotations

import datetime
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from ..tasks.models import Task, TaskCategory, TaskPriority
from ..utils.datetime_utils import UTC, local_date

ACTIVITY_DAYS = 7
UPCOMING_LIMIT = 5


@dataclass(slots=True)
class DailyCompletions:
    """Number of tasks completed on one local calendar day."""

    day: datetime.date
    completed: int

    @property
    def label(self) -> str:
        return self.day.strftime("%a")

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.day.isoformat(), "day": self.label, "completed": self.completed}


@dataclass(slots=True)
class TaskSummary:
    total: int
    completed: int
    pending: int
    completion_rate: float
    total_focus_seconds: int
    by_category: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    daily_completions: list[DailyCompletions] = field(default_factory=list)
    upcoming: list[Task] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "completed": self.completed,
            "pending": self.pending,
            "completionRate": self.completion_rate,
            "totalFocusSeconds": self.total_focus_seconds,
            "byCategory": dict(self.by_category),
            "byPriority": dict(self.by_priority),
            "dailyCompletions": [entry.to_dict() for entry in self.daily_completions],
            "upcoming": [task.model_dump(mode="json", by_alias=True) for task in self.upcoming],
        }


def daily_completions(
    tasks: Iterable[Task],
    today: datetime.date,
    tz: datetime.tzinfo = UTC,
    *,
    days: int = ACTIVITY_DAYS,
) -> list[DailyCompletions]:
    """Completion counts for the ``days`` local days ending on ``today``, oldest first.

    Tasks are attributed by ``completionDate``; completed tasks without one are
    not counted.
    """

    counts = Counter(
        local_date(task.completion_date, tz)
        for task in tasks
        if task.completed and task.completion_date is not None
    )
    window = [today - datetime.timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    return [DailyCompletions(day=day, completed=counts[day]) for day in window]


def summarize_tasks(
    tasks: Iterable[Task],
    *,
    now: Optional[datetime.datetime] = None,
    tz: datetime.tzinfo = UTC,
) -> TaskSummary:
    """Count tasks by state, category and priority and total the focus time.

    Also reports the last week of completions relative to ``now`` in ``tz`` and
    the first few incomplete tasks in stored order.
    """

    tasks = list(tasks)
    completed = sum(1 for task in tasks if task.completed)
    categories = Counter(task.category.value for task in tasks)
    priorities = Counter(task.priority.value for task in tasks)
    today = local_date(now or datetime.datetime.now(UTC), tz)

    return TaskSummary(
        total=len(tasks),
        completed=completed,
        pending=len(tasks) - completed,
        completion_rate=completed / len(tasks) if tasks else 0.0,
        total_focus_seconds=sum(task.time_spent for task in tasks),
        by_category={category.value: categories[category.value] for category in TaskCategory},
        by_priority={priority.value: priorities[priority.value] for priority in TaskPriority},
        daily_completions=daily_completions(tasks, today, tz),
        upcoming=[task for task in tasks if not task.completed][:UPCOMING_LIMIT],
    )


__all__ = ["DailyCompletions", "TaskSummary", "daily_completions", "summarize_tasks"]
