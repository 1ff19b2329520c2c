"""Task domain package: models, recurrence engine, store and persistence."""

from .models import (
    NewTaskInput,
    Occurrence,
    RecurrenceFrequency,
    Recurring,
    Subtask,
    Task,
    TaskCategory,
    TaskPriority,
    parse_task_payload,
)
from .recurrence import OccurrenceWindow, expand_occurrences, next_occurrence
from .repository import TaskRepository
from .store import (
    TaskNotFoundError,
    TaskStore,
    TaskStoreError,
    TaskValidationError,
    ToggleResult,
)

__all__ = [
    "Task",
    "NewTaskInput",
    "Occurrence",
    "Subtask",
    "Recurring",
    "RecurrenceFrequency",
    "TaskCategory",
    "TaskPriority",
    "parse_task_payload",
    "OccurrenceWindow",
    "next_occurrence",
    "expand_occurrences",
    "TaskRepository",
    "TaskStore",
    "TaskStoreError",
    "TaskNotFoundError",
    "TaskValidationError",
    "ToggleResult",
]
