"""Calendar projection API: month/week/day ranges and the day timeline."""

from __future__ import annotations

import datetime
import logging
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Query, Request

from ..calendar.timeline import DEFAULT_HOUR_HEIGHT, DEFAULT_MIN_HEIGHT, layout_day
from ..calendar.views import CalendarView, build_snapshot, month_grid
from ..utils.datetime_utils import UTC, local_date, to_iso_string
from .tasks import _store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/calendar", tags=["Calendar"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _display_tz(request: Request) -> datetime.tzinfo:
    return getattr(request.app.state, "display_timezone", None) or UTC


def _anchor(value: Optional[datetime.date], tz: datetime.tzinfo) -> datetime.date:
    if value is not None:
        return value
    return local_date(datetime.datetime.now(UTC), tz)


def _dump(item: Any) -> dict[str, Any]:
    return item.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("")
def calendar_range(
    request: Request,
    view: Annotated[CalendarView, Query()] = CalendarView.MONTH,
    date: Annotated[Optional[datetime.date], Query(description="Anchor day (YYYY-MM-DD)")] = None,
) -> dict[str, Any]:
    """Occurrences for every day shown by ``view`` around ``date``."""

    tz = _display_tz(request)
    anchor = _anchor(date, tz)
    snapshot = build_snapshot(_store(request).tasks, anchor, view, tz)

    body: dict[str, Any] = {
        "view": view.value,
        "anchor": anchor.isoformat(),
        "rangeStart": to_iso_string(snapshot.range_start),
        "rangeEnd": to_iso_string(snapshot.range_end),
        "days": {
            day.isoformat(): [_dump(item) for item in snapshot.occurrences_on(day)]
            for day in snapshot.days()
        },
    }
    if view is CalendarView.MONTH:
        body["weeks"] = [[day.isoformat() for day in week] for week in month_grid(anchor)]
    return body


@router.get("/day")
def calendar_day(
    request: Request,
    date: Annotated[Optional[datetime.date], Query(description="Day to lay out (YYYY-MM-DD)")] = None,
) -> dict[str, Any]:
    """All-day list and positioned timed events for a single day."""

    tz = _display_tz(request)
    day = _anchor(date, tz)
    snapshot = build_snapshot(_store(request).tasks, day, CalendarView.DAY, tz)

    settings = getattr(request.app.state, "settings", None)
    hour_height = getattr(settings, "calendar_hour_height", DEFAULT_HOUR_HEIGHT)
    min_height = getattr(settings, "calendar_min_event_height", DEFAULT_MIN_HEIGHT)
    layout = layout_day(
        snapshot.occurrences_on(day),
        day,
        tz,
        hour_height=hour_height,
        min_height=min_height,
    )
    return layout.to_dict()


__all__ = ["router"]
