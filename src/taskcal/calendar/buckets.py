"""Index occurrences by every calendar day they touch."""

from __future__ import annotations

import datetime
from collections import defaultdict
from typing import Iterable, List, Mapping

from ..tasks.models import Occurrence
from ..utils.datetime_utils import UTC, local_date

MAX_DAYS_PER_OCCURRENCE = 366

_ONE_DAY = datetime.timedelta(days=1)


def occurrence_days(
    occurrence: Occurrence, tz: datetime.tzinfo = UTC
) -> List[datetime.date]:
    """Local days spanned by ``occurrence``, at most ``MAX_DAYS_PER_OCCURRENCE``."""

    start_day = local_date(occurrence.start_time, tz)
    end = occurrence.end_time
    if end is not None and end > occurrence.start_time:
        end_day = local_date(end, tz)
    else:
        end_day = start_day

    days: List[datetime.date] = []
    day = start_day
    while day <= end_day and len(days) < MAX_DAYS_PER_OCCURRENCE:
        days.append(day)
        day += _ONE_DAY
    return days


def bucket_by_day(
    occurrences: Iterable[Occurrence], tz: datetime.tzinfo = UTC
) -> dict[datetime.date, List[Occurrence]]:
    """Map each local day to the occurrences that touch it, in input order."""

    buckets: dict[datetime.date, List[Occurrence]] = defaultdict(list)
    for occurrence in occurrences:
        for day in occurrence_days(occurrence, tz):
            buckets[day].append(occurrence)
    return dict(buckets)


def occurrences_on(
    buckets: Mapping[datetime.date, List[Occurrence]], day: datetime.date
) -> List[Occurrence]:
    return list(buckets.get(day, []))


__all__ = [
    "MAX_DAYS_PER_OCCURRENCE",
    "occurrence_days",
    "bucket_by_day",
    "occurrences_on",
]
