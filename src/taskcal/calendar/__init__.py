"""Calendar projection, day indexing and timeline layout."""

from .buckets import bucket_by_day, occurrences_on
from .projector import occurrence_key, project_occurrences
from .timeline import DayLayout, TimelineEvent, is_all_day, layout_day
from .views import CalendarSnapshot, CalendarView, build_snapshot, month_grid, view_range

__all__ = [
    "bucket_by_day",
    "occurrences_on",
    "occurrence_key",
    "project_occurrences",
    "DayLayout",
    "TimelineEvent",
    "is_all_day",
    "layout_day",
    "CalendarSnapshot",
    "CalendarView",
    "build_snapshot",
    "month_grid",
    "view_range",
]
