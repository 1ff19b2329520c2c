"""In-memory task store coordinating edits, completion and persistence."""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from pydantic import ValidationError

from ..utils.datetime_utils import UTC
from .models import NewTaskInput, Subtask, Task, TaskPayload
from .recurrence import next_occurrence, recurrence_end
from .repository import TaskRepository

logger = logging.getLogger(__name__)


class TaskStoreError(RuntimeError):
    """Raised when a task store operation cannot be applied."""


class TaskNotFoundError(TaskStoreError):
    """Raised when no task has the requested id."""


class TaskValidationError(TaskStoreError):
    """Raised when caller input is rejected before any mutation happens."""


@dataclass(slots=True)
class ToggleResult:
    """Outcome of toggling a task's completion state.

    ``task`` is the record stored under the toggled id after the change.
    ``completed_instance`` is the forked historical record when completing a
    non-final occurrence of a recurring series.
    """

    task: Task
    completed_instance: Optional[Task] = None


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


class TaskStore:
    """Own the canonical task list and apply every mutation to it."""

    def __init__(
        self,
        repository: Optional[TaskRepository] = None,
        *,
        tz: datetime.tzinfo = UTC,
        clock: Callable[[], datetime.datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._repository = repository
        self._tz = tz
        self._clock = clock
        self._id_factory = id_factory
        self._tasks: List[Task] = repository.load() if repository is not None else []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @property
    def tasks(self) -> List[Task]:
        """Snapshot of every stored task."""
        return [task.model_copy(deep=True) for task in self._tasks]

    def get_task(self, task_id: str) -> Task:
        return self._tasks[self._index_of(task_id)].model_copy(deep=True)

    def _index_of(self, task_id: str) -> int:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                return index
        raise TaskNotFoundError(f"Task {task_id} not found")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _build_task(self, payload: NewTaskInput) -> Task:
        data = payload.model_dump(exclude={"subtasks"})
        subtasks = [
            Subtask(id=self._id_factory(), text=subtask.text, completed=subtask.completed)
            for subtask in payload.subtasks
        ]
        return Task(
            **data,
            id=self._id_factory(),
            completed=False,
            time_spent=0,
            subtasks=subtasks,
        )

    def add_task(self, payload: NewTaskInput) -> Task:
        """Store a new task built from ``payload``."""
        task = self._build_task(payload)
        self._tasks.append(task)
        self._persist()
        logger.info("Added task %s (%s)", task.id, task.title)
        return task.model_copy(deep=True)

    def add_tasks(self, payloads: Iterable[NewTaskInput]) -> List[Task]:
        """Store a confirmed batch of new tasks with a single save."""
        created = [self._build_task(payload) for payload in payloads]
        if not created:
            return []
        self._tasks.extend(created)
        self._persist()
        logger.info("Added %d tasks", len(created))
        return [task.model_copy(deep=True) for task in created]

    def update_task(self, task: Task) -> Task:
        """Replace the stored record that shares ``task.id``."""
        if not isinstance(task, Task):
            raise TaskValidationError(
                f"Only stored tasks can be updated, got {type(task).__name__}"
            )
        if task.original_id is not None and task.original_id == task.id:
            raise TaskValidationError(f"Task {task.id} cannot reference itself as its series")
        index = self._index_of(task.id)
        try:
            stored = Task.model_validate(task.model_dump())
        except ValidationError as exc:
            raise TaskValidationError(str(exc)) from exc
        self._tasks[index] = stored
        self._persist()
        return stored.model_copy(deep=True)

    def save_task(self, payload: TaskPayload) -> Task:
        """Update when the payload carries an id, otherwise create."""
        if isinstance(payload, Task):
            return self.update_task(payload)
        return self.add_task(payload)

    def delete_task(self, task_id: str) -> None:
        index = self._index_of(task_id)
        del self._tasks[index]
        self._persist()
        logger.info("Deleted task %s", task_id)

    def toggle_task(self, task_id: str) -> ToggleResult:
        """Flip completion, forking recurring series when an occurrence is completed."""
        index = self._index_of(task_id)
        task = self._tasks[index]
        now = self._clock()

        if task.completed or task.recurring is None:
            completed = not task.completed
            toggled = task.model_copy(
                update={
                    "completed": completed,
                    "completion_date": now if completed else None,
                }
            )
            self._tasks[index] = toggled
            self._persist()
            return ToggleResult(task=toggled.model_copy(deep=True))

        upcoming = next_occurrence(task, self._tz)
        until = recurrence_end(task.recurring, self._tz)

        if until is not None and upcoming.start_time > until:
            finished = task.model_copy(
                update={"completed": True, "completion_date": now, "recurring": None}
            )
            self._tasks[index] = finished
            self._persist()
            logger.info("Completed final occurrence of series %s", task.id)
            return ToggleResult(task=finished.model_copy(deep=True))

        completed_instance = task.model_copy(
            update={
                "id": self._id_factory(),
                "completed": True,
                "completion_date": now,
                "recurring": None,
                "original_id": task.id,
            },
            deep=True,
        )
        advanced = task.model_copy(
            update={
                "start_time": upcoming.start_time,
                "end_time": upcoming.end_time,
                "completed": False,
                "completion_date": None,
                "time_spent": 0,
                "subtasks": [
                    Subtask(id=self._id_factory(), text=subtask.text, completed=False)
                    for subtask in task.subtasks
                ],
            }
        )
        self._tasks[index] = advanced
        self._tasks.append(completed_instance)
        self._persist()
        logger.info(
            "Completed occurrence of series %s; next occurrence at %s",
            task.id,
            upcoming.start_time.isoformat(),
        )
        return ToggleResult(
            task=advanced.model_copy(deep=True),
            completed_instance=completed_instance.model_copy(deep=True),
        )

    def log_focus_session(self, task_id: str, duration_seconds: int) -> Task:
        """Add a finished focus session to the task's accumulated time."""
        if duration_seconds < 0:
            raise TaskValidationError("Focus session duration must not be negative")
        index = self._index_of(task_id)
        task = self._tasks[index]
        updated = task.model_copy(update={"time_spent": task.time_spent + int(duration_seconds)})
        self._tasks[index] = updated
        self._persist()
        return updated.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _persist(self) -> None:
        if self._repository is None:
            return
        if not self._repository.save(self._tasks):
            logger.warning("Task changes kept in memory only; save failed")


__all__ = [
    "TaskStore",
    "TaskStoreError",
    "TaskNotFoundError",
    "TaskValidationError",
    "ToggleResult",
]
