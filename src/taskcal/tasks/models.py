"""Domain models representing tasks, recurrence rules and projected occurrences."""

from __future__ import annotations

import datetime
import uuid
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..utils.datetime_utils import ensure_utc


class TaskCategory(str, Enum):
    """Categories a task can be filed under."""

    WORK = "Work"
    PERSONAL = "Personal"
    STUDY = "Study"
    FITNESS = "Fitness"
    OTHER = "Other"


class TaskPriority(str, Enum):
    """Task priority levels."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RecurrenceFrequency(str, Enum):
    """How often a recurring series repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class CamelModel(BaseModel):
    """Base model using camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Subtask(CamelModel):
    """A checklist item inside a task."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    text: str
    completed: bool = False


class Recurring(CamelModel):
    """Recurrence rule attached to the pending occurrence of a series."""

    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1)
    end_date: Optional[datetime.date] = None
    days_of_week: Optional[list[int]] = Field(
        default=None,
        description="Weekdays for weekly recurrence, 0 = Sunday ... 6 = Saturday.",
    )

    @field_validator("frequency", mode="before")
    @classmethod
    def _lowercase_frequency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("days_of_week")
    @classmethod
    def _normalize_days(cls, value: Optional[list[int]]) -> Optional[list[int]]:
        if not value:
            return None
        for day in value:
            if day < 0 or day > 6:
                raise ValueError(f"daysOfWeek entries must be in 0..6, got {day}")
        return sorted(set(value))


class TaskFields(CamelModel):
    """Fields shared by new-task payloads and stored tasks."""

    title: str = Field(..., min_length=1)
    description: str = ""
    start_time: datetime.datetime
    end_time: Optional[datetime.datetime] = None
    category: TaskCategory = TaskCategory.OTHER
    priority: TaskPriority = TaskPriority.MEDIUM
    subtasks: list[Subtask] = Field(default_factory=list)
    recurring: Optional[Recurring] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_utc(cls, value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_time_range(self) -> "TaskFields":
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class NewTaskInput(TaskFields):
    """A task payload that has not been assigned an identifier yet."""


class Task(TaskFields):
    """Canonical persisted task record."""

    id: str
    completed: bool = False
    completion_date: Optional[datetime.datetime] = None
    time_spent: int = Field(default=0, ge=0)
    original_id: Optional[str] = None

    @property
    def duration(self) -> datetime.timedelta:
        """Length of the task, zero when it has no end time."""

        if self.end_time is None:
            return datetime.timedelta(0)
        return self.end_time - self.start_time


class Occurrence(CamelModel):
    """Concrete dated instance of a task shown in a calendar view.

    Occurrences are view objects. ``id`` is either the task id or a synthetic
    ``"{task_id}-{start}"`` key for projected instances of a series, so they
    are kept apart from ``Task`` and never handed back to the store.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    task: Task
    original_id: Optional[str] = None
    projected: bool = False

    @property
    def start_time(self) -> datetime.datetime:
        return self.task.start_time

    @property
    def end_time(self) -> Optional[datetime.datetime]:
        return self.task.end_time

    @property
    def title(self) -> str:
        return self.task.title


TaskPayload = Union[Task, NewTaskInput]


def parse_task_payload(data: Mapping[str, Any]) -> TaskPayload:
    """Validate ``data`` as a ``Task`` when it carries an id, else as a ``NewTaskInput``."""

    if data.get("id"):
        return Task.model_validate(data)
    return NewTaskInput.model_validate(data)


__all__ = [
    "TaskCategory",
    "TaskPriority",
    "RecurrenceFrequency",
    "Subtask",
    "Recurring",
    "TaskFields",
    "NewTaskInput",
    "Task",
    "Occurrence",
    "TaskPayload",
    "parse_task_payload",
]
