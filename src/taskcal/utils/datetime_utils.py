"""Unified datetime parsing and timezone normalization utilities.

Every instant stored on a task is a timezone-aware UTC datetime. Calendar
arithmetic (weekdays, midnights, day buckets) happens in a display timezone,
so the helpers here convert between the two.
"""

from __future__ import annotations

import datetime
import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as _dateutil_parser

logger = logging.getLogger(__name__)

UTC = datetime.timezone.utc


def resolve_timezone(
    timezone_name: Optional[str],
    fallback: datetime.tzinfo = UTC,
) -> datetime.tzinfo:
    """Resolve ``timezone_name`` to a tzinfo, falling back to UTC."""

    if not timezone_name or timezone_name.upper() == "UTC":
        return fallback
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; using %s", timezone_name, fallback)
        return fallback


def ensure_utc(value: datetime.datetime) -> datetime.datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_rfc3339_datetime(value: Optional[str]) -> Optional[datetime.datetime]:
    """Best-effort conversion of an RFC3339 string to an aware datetime in UTC.

    Args:
        value: RFC3339 or ISO 8601 datetime string

    Returns:
        Timezone-aware datetime in UTC, or None if parsing fails
    """
    if not value:
        return None

    try:
        parsed = _dateutil_parser.isoparse(value)
    except (ValueError, OverflowError):
        return None

    return ensure_utc(parsed)


def to_iso_string(value: datetime.datetime) -> str:
    """Render an instant as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""

    utc_value = ensure_utc(value)
    return utc_value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_value.microsecond // 1000:03d}Z"


def local_date(value: datetime.datetime, tz: datetime.tzinfo = UTC) -> datetime.date:
    """Calendar day of ``value`` as seen in ``tz``."""

    return ensure_utc(value).astimezone(tz).date()


def start_of_day(day: datetime.date, tz: datetime.tzinfo = UTC) -> datetime.datetime:
    """Local midnight of ``day`` in ``tz``."""

    return datetime.datetime.combine(day, datetime.time.min, tzinfo=tz)


def end_of_day(day: datetime.date, tz: datetime.tzinfo = UTC) -> datetime.datetime:
    """Last representable instant of ``day`` in ``tz`` (23:59:59.999999)."""

    return datetime.datetime.combine(day, datetime.time.max, tzinfo=tz)


__all__ = [
    "UTC",
    "resolve_timezone",
    "ensure_utc",
    "parse_rfc3339_datetime",
    "to_iso_string",
    "local_date",
    "start_of_day",
    "end_of_day",
]
