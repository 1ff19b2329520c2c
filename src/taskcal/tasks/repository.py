"""JSON-file persistence for the task list."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Iterable, List

from pydantic import ValidationError

from ..utils.datetime_utils import parse_rfc3339_datetime
from .models import Task

logger = logging.getLogger(__name__)


def migrate_task_record(raw: dict[str, Any]) -> dict[str, Any]:
    """Bring a stored task record up to the current shape.

    Older records used ``deadline`` instead of ``startTime`` and may lack
    ``timeSpent``, ``completed``, ``subtasks`` or subtask ids. An ``endTime``
    that is not after ``startTime`` is dropped rather than rejecting the task.
    """

    record = dict(raw)
    if record.get("deadline") and not record.get("startTime"):
        record["startTime"] = record["deadline"]
    record.pop("deadline", None)

    record["timeSpent"] = record.get("timeSpent") or 0
    record["completed"] = bool(record.get("completed", False))
    record["description"] = record.get("description") or ""

    subtasks = record.get("subtasks") or []
    record["subtasks"] = [
        {**subtask, "id": subtask.get("id") or str(uuid.uuid4())}
        for subtask in subtasks
        if isinstance(subtask, dict)
    ]

    start = parse_rfc3339_datetime(record.get("startTime"))
    end = parse_rfc3339_datetime(record.get("endTime"))
    if record.get("endTime") is not None and (start is None or end is None or end <= start):
        record.pop("endTime", None)

    return record


class TaskRepository:
    """Load and save the task list as a JSON document on disk."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> List[Task]:
        """Load tasks from disk, skipping records that fail validation."""
        if not self._path.exists():
            return []

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read tasks file %s: %s", self._path, exc)
            return []

        if isinstance(raw, dict):
            items = raw.get("tasks", [])
        elif isinstance(raw, list):
            items = raw
        else:
            logger.warning("Tasks file %s has unexpected shape; starting fresh", self._path)
            items = []

        loaded: List[Task] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                loaded.append(Task.model_validate(migrate_task_record(item)))
            except ValidationError as exc:
                logger.warning(
                    "Skipping invalid task entry %s: %s", item.get("id", "unknown"), exc
                )
        return loaded

    def save(self, tasks: Iterable[Task]) -> bool:
        """Write tasks to disk atomically; return False if the write failed."""
        payload = {
            "tasks": [task.model_dump(mode="json", by_alias=True) for task in tasks]
        }
        serialized = json.dumps(payload, indent=2, sort_keys=True) + "\n"

        temp_path: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=".tasks_",
                suffix=".json.tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(serialized)
            os.replace(temp_path, self._path)
            temp_path = None
        except OSError as exc:
            logger.warning("Failed to save tasks file %s: %s", self._path, exc)
            return False
        finally:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)
        return True


__all__ = ["TaskRepository", "migrate_task_record"]
