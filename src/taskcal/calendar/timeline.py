"""Day-timeline layout: all-day split and column assignment for timed events.

Timed events are clipped to the day, sorted by start (longer first on ties),
split into groups of transitively overlapping events, and placed into the
first column whose last event has already ended. This greedy interval
partitioning uses as many columns as the largest number of simultaneously
running events in the group.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..tasks.models import Occurrence, Task
from ..utils.datetime_utils import UTC, end_of_day, ensure_utc, start_of_day

MINUTES_PER_DAY = 24 * 60
DEFAULT_DURATION = datetime.timedelta(minutes=60)
DEFAULT_HOUR_HEIGHT = 64
DEFAULT_MIN_HEIGHT = 20


def is_all_day(
    start: datetime.datetime,
    end: Optional[datetime.datetime],
    tz: datetime.tzinfo = UTC,
) -> bool:
    """True for timeless events anchored at local midnight.

    An event with a real duration is timed even when it spans several days.
    """

    if end is not None and end > start:
        return False
    local = ensure_utc(start).astimezone(tz)
    return local.hour == 0 and local.minute == 0 and local.second == 0


def is_all_day_task(task: Task, tz: datetime.tzinfo = UTC) -> bool:
    return is_all_day(task.start_time, task.end_time, tz)


@dataclass(slots=True)
class TimelineEvent:
    """A timed occurrence placed on the day grid."""

    occurrence: Occurrence
    start_minutes: int
    end_minutes: int
    column: int = 0
    column_count: int = 1
    top: float = 0.0
    height: float = 0.0
    left: float = 0.0
    width: float = 100.0
    z_index: int = 10

    def to_dict(self) -> dict:
        return {
            "occurrence": self.occurrence.model_dump(mode="json", by_alias=True),
            "startMinutes": self.start_minutes,
            "endMinutes": self.end_minutes,
            "column": self.column,
            "columnCount": self.column_count,
            "top": self.top,
            "height": self.height,
            "left": self.left,
            "width": self.width,
            "zIndex": self.z_index,
        }


@dataclass(slots=True)
class DayLayout:
    """All-day occurrences plus positioned timed events for one day."""

    day: datetime.date
    all_day: List[Occurrence] = field(default_factory=list)
    events: List[TimelineEvent] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "allDay": [item.model_dump(mode="json", by_alias=True) for item in self.all_day],
            "events": [event.to_dict() for event in self.events],
        }


def _minutes_since_midnight(value: datetime.datetime, tz: datetime.tzinfo) -> int:
    local = value.astimezone(tz)
    return local.hour * 60 + local.minute


def clip_to_day(
    occurrence: Occurrence, day: datetime.date, tz: datetime.tzinfo = UTC
) -> TimelineEvent:
    """Minutes-since-midnight span of ``occurrence`` within ``day``."""

    start = occurrence.start_time
    end = occurrence.end_time
    if end is None or end <= start:
        end = start + DEFAULT_DURATION

    day_start = start_of_day(day, tz)
    day_end = end_of_day(day, tz)
    clipped_start = max(start, day_start)
    clipped_end = min(end, day_end)

    start_minutes = _minutes_since_midnight(clipped_start, tz)
    end_minutes = min(_minutes_since_midnight(clipped_end, tz), MINUTES_PER_DAY - 1)
    return TimelineEvent(
        occurrence=occurrence,
        start_minutes=start_minutes,
        end_minutes=end_minutes,
    )


def group_overlapping(events: List[TimelineEvent]) -> List[List[TimelineEvent]]:
    """Split sorted events into groups with no overlap between groups."""

    groups: List[List[TimelineEvent]] = []
    group_end: Optional[int] = None
    for event in events:
        if group_end is None or event.start_minutes >= group_end:
            groups.append([])
            group_end = event.end_minutes
        groups[-1].append(event)
        group_end = max(group_end, event.end_minutes)
    return groups


def assign_columns(group: List[TimelineEvent]) -> List[List[TimelineEvent]]:
    """Greedy interval partitioning of one overlap group into columns."""

    columns: List[List[TimelineEvent]] = []
    for event in group:
        for column in columns:
            if column[-1].end_minutes <= event.start_minutes:
                column.append(event)
                break
        else:
            columns.append([event])
    return columns


def layout_day(
    occurrences: Iterable[Occurrence],
    day: datetime.date,
    tz: datetime.tzinfo = UTC,
    *,
    hour_height: float = DEFAULT_HOUR_HEIGHT,
    min_height: float = DEFAULT_MIN_HEIGHT,
) -> DayLayout:
    """Lay out one day's occurrences for the timeline view."""

    layout = DayLayout(day=day)
    timed: List[TimelineEvent] = []
    for occurrence in occurrences:
        if is_all_day(occurrence.start_time, occurrence.end_time, tz):
            layout.all_day.append(occurrence)
        else:
            timed.append(clip_to_day(occurrence, day, tz))

    timed.sort(key=lambda event: (event.start_minutes, -event.end_minutes))

    for group in group_overlapping(timed):
        columns = assign_columns(group)
        count = len(columns)
        for index, column in enumerate(columns):
            for event in column:
                event.column = index
                event.column_count = count
                event.top = event.start_minutes / 60 * hour_height
                event.height = max(
                    (event.end_minutes - event.start_minutes) / 60 * hour_height,
                    min_height,
                )
                event.left = index * 100 / count
                event.width = 100 / count
                event.z_index = 10 + index
                layout.events.append(event)

    return layout


__all__ = [
    "MINUTES_PER_DAY",
    "TimelineEvent",
    "DayLayout",
    "is_all_day",
    "is_all_day_task",
    "clip_to_day",
    "group_overlapping",
    "assign_columns",
    "layout_day",
]
