"""Visible ranges and per-render snapshots for month, week and day views."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List

from ..tasks.models import Occurrence, Task
from ..utils.datetime_utils import UTC, end_of_day, start_of_day
from .buckets import bucket_by_day, occurrences_on
from .projector import project_occurrences


class CalendarView(str, Enum):
    MONTH = "month"
    WEEK = "week"
    DAY = "day"


def _week_start(day: datetime.date) -> datetime.date:
    """Sunday on or before ``day``."""
    return day - datetime.timedelta(days=day.isoweekday() % 7)


def _month_bounds(anchor: datetime.date) -> tuple[datetime.date, datetime.date]:
    first = anchor.replace(day=1)
    next_month = (first + datetime.timedelta(days=32)).replace(day=1)
    return first, next_month - datetime.timedelta(days=1)


def view_days(anchor: datetime.date, view: CalendarView) -> tuple[datetime.date, datetime.date]:
    """First and last calendar day shown by ``view`` around ``anchor``."""

    if view is CalendarView.MONTH:
        first, last = _month_bounds(anchor)
        return _week_start(first), _week_start(last) + datetime.timedelta(days=6)
    if view is CalendarView.WEEK:
        start = _week_start(anchor)
        return start, start + datetime.timedelta(days=6)
    return anchor, anchor


def view_range(
    anchor: datetime.date, view: CalendarView, tz: datetime.tzinfo = UTC
) -> tuple[datetime.datetime, datetime.datetime]:
    """Local midnight of the first shown day through the end of the last one."""

    first, last = view_days(anchor, view)
    return start_of_day(first, tz), end_of_day(last, tz)


def month_grid(anchor: datetime.date) -> List[List[datetime.date]]:
    """Week rows (Sunday first) covering the month of ``anchor``."""

    first, last = view_days(anchor, CalendarView.MONTH)
    days = [first + datetime.timedelta(days=offset) for offset in range((last - first).days + 1)]
    return [days[index:index + 7] for index in range(0, len(days), 7)]


@dataclass(slots=True)
class CalendarSnapshot:
    """Projection and day index computed for a single render."""

    view: CalendarView
    range_start: datetime.datetime
    range_end: datetime.datetime
    occurrences: List[Occurrence] = field(default_factory=list)
    buckets: dict[datetime.date, List[Occurrence]] = field(default_factory=dict)

    def days(self) -> List[datetime.date]:
        first = self.range_start.date()
        last = self.range_end.date()
        return [first + datetime.timedelta(days=offset) for offset in range((last - first).days + 1)]

    def occurrences_on(self, day: datetime.date) -> List[Occurrence]:
        return occurrences_on(self.buckets, day)


def build_snapshot(
    tasks: Iterable[Task],
    anchor: datetime.date,
    view: CalendarView,
    tz: datetime.tzinfo = UTC,
) -> CalendarSnapshot:
    """Project ``tasks`` into the range of ``view`` and bucket them by day."""

    range_start, range_end = view_range(anchor, view, tz)
    occurrences = project_occurrences(tasks, range_start, range_end, tz)
    return CalendarSnapshot(
        view=view,
        range_start=range_start,
        range_end=range_end,
        occurrences=occurrences,
        buckets=bucket_by_day(occurrences, tz),
    )


__all__ = [
    "CalendarView",
    "CalendarSnapshot",
    "view_days",
    "view_range",
    "month_grid",
    "build_snapshot",
]
