"""Project stored tasks into the concrete occurrences visible in a date range."""

from __future__ import annotations

import datetime
from typing import Iterable, List

from ..tasks.models import Occurrence, Task
from ..tasks.recurrence import expand_occurrences
from ..utils.datetime_utils import UTC, to_iso_string


def occurrence_key(task_id: str, start: datetime.datetime) -> str:
    """Synthetic id of the projected occurrence of ``task_id`` starting at ``start``."""

    return f"{task_id}-{to_iso_string(start)}"


def project_occurrences(
    tasks: Iterable[Task],
    range_start: datetime.datetime,
    range_end: datetime.datetime,
    tz: datetime.tzinfo = UTC,
) -> List[Occurrence]:
    """Materialize the occurrences of ``tasks`` for ``[range_start, range_end]``.

    Non-recurring tasks (completed or not) appear as themselves. Recurring
    series are expanded into projected occurrences keyed by
    ``occurrence_key``. The embedded record carries the same synthetic id,
    so it never matches a stored task. A completed record that still carries
    a recurrence rule is a stale series template and is skipped, as is a
    non-recurring record whose id is referenced by a completed forked instance.
    """

    tasks = list(tasks)
    completed_originals = {
        task.original_id for task in tasks if task.completed and task.original_id
    }

    occurrences: dict[str, Occurrence] = {}
    for task in tasks:
        if task.completed:
            if task.recurring is None:
                occurrences.setdefault(task.id, Occurrence(id=task.id, task=task))
            continue

        if task.recurring is None:
            if task.id in completed_originals:
                continue
            occurrences.setdefault(task.id, Occurrence(id=task.id, task=task))
            continue

        for window in expand_occurrences(task, range_start, range_end, tz):
            key = occurrence_key(task.id, window.start_time)
            if key in occurrences:
                continue
            instance = task.model_copy(
                update={
                    "id": key,
                    "start_time": window.start_time,
                    "end_time": window.end_time,
                    "completed": False,
                    "original_id": task.id,
                }
            )
            occurrences[key] = Occurrence(
                id=key, task=instance, original_id=task.id, projected=True
            )

    return sorted(occurrences.values(), key=lambda item: (item.start_time, item.id))


__all__ = ["occurrence_key", "project_occurrences"]
