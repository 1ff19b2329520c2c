"""Recurrence stepping and expansion for recurring task series.

The stepping rule is shared by ``next_occurrence`` (used when completing the
pending occurrence of a series) and ``expand_occurrences`` (used when
projecting a series into a calendar range). Calendar arithmetic happens on
local wall time in the display timezone; instants go in and come out as UTC.
"""

from __future__ import annotations

import datetime
from typing import Iterator, NamedTuple, Optional

from dateutil.relativedelta import relativedelta

from ..utils.datetime_utils import UTC, end_of_day, ensure_utc
from .models import RecurrenceFrequency, Recurring, Task

MAX_EXPANSION_STEPS = 365


class OccurrenceWindow(NamedTuple):
    """Start and optional end of one occurrence."""

    start_time: datetime.datetime
    end_time: Optional[datetime.datetime]


def weekday_index(value: datetime.datetime) -> int:
    """Weekday with Sunday as 0 and Saturday as 6."""

    return value.isoweekday() % 7


def recurrence_end(
    recurring: Recurring, tz: datetime.tzinfo = UTC
) -> Optional[datetime.datetime]:
    """Inclusive end of a series: the last instant of ``end_date`` in ``tz``."""

    if recurring.end_date is None:
        return None
    return end_of_day(recurring.end_date, tz)


def _days_until_next(local_start: datetime.datetime, recurring: Recurring) -> int:
    days = recurring.days_of_week
    if not days:
        return 7 * recurring.interval

    sorted_days = sorted(set(days))
    current_day = weekday_index(local_start)
    for day in sorted_days:
        if day > current_day:
            return day - current_day
    return 7 - current_day + sorted_days[0] + (recurring.interval - 1) * 7


def step(
    start: datetime.datetime, recurring: Recurring, tz: datetime.tzinfo = UTC
) -> datetime.datetime:
    """Return the start of the occurrence following ``start``.

    Monthly and yearly steps clamp to the last day of the target month, so
    Jan 31 becomes Feb 28/29 and Feb 29 becomes Feb 28 on non-leap years.
    """

    local = ensure_utc(start).astimezone(tz).replace(tzinfo=None)
    interval = recurring.interval

    if recurring.frequency is RecurrenceFrequency.DAILY:
        local = local + datetime.timedelta(days=interval)
    elif recurring.frequency is RecurrenceFrequency.WEEKLY:
        local = local + datetime.timedelta(days=_days_until_next(local, recurring))
    elif recurring.frequency is RecurrenceFrequency.MONTHLY:
        local = local + relativedelta(months=interval)
    elif recurring.frequency is RecurrenceFrequency.YEARLY:
        local = local + relativedelta(years=interval)

    return local.replace(tzinfo=tz).astimezone(UTC)


def _window(start: datetime.datetime, duration: datetime.timedelta) -> OccurrenceWindow:
    end = start + duration if duration > datetime.timedelta(0) else None
    return OccurrenceWindow(start, end)


def next_occurrence(task: Task, tz: datetime.tzinfo = UTC) -> OccurrenceWindow:
    """Compute the occurrence that follows the task's current one.

    The duration of the current occurrence is carried over. A task without a
    recurrence rule has no successor and its own window is returned.
    """

    if task.recurring is None:
        return OccurrenceWindow(task.start_time, task.end_time)
    next_start = step(task.start_time, task.recurring, tz)
    return _window(next_start, task.duration)


def expand_occurrences(
    task: Task,
    range_start: datetime.datetime,
    range_end: datetime.datetime,
    tz: datetime.tzinfo = UTC,
) -> Iterator[OccurrenceWindow]:
    """Yield the occurrences of ``task`` whose start lies in ``[range_start, range_end]``.

    Stepping starts at the task's own start time and stops once the cursor
    passes ``range_end`` or the series end date, or after
    ``MAX_EXPANSION_STEPS`` steps, whichever comes first.
    """

    range_start = ensure_utc(range_start)
    range_end = ensure_utc(range_end)

    if task.recurring is None:
        if range_start <= task.start_time <= range_end:
            yield OccurrenceWindow(task.start_time, task.end_time)
        return

    until = recurrence_end(task.recurring, tz)
    duration = task.duration
    cursor = task.start_time

    for _ in range(MAX_EXPANSION_STEPS):
        if cursor > range_end:
            break
        if until is not None and cursor > until:
            break
        if cursor >= range_start:
            yield _window(cursor, duration)
        cursor = step(cursor, task.recurring, tz)


__all__ = [
    "MAX_EXPANSION_STEPS",
    "OccurrenceWindow",
    "weekday_index",
    "recurrence_end",
    "step",
    "next_occurrence",
    "expand_occurrences",
]
