"""Utility helpers for taskcal services."""

from .datetime_utils import ensure_utc, parse_rfc3339_datetime, resolve_timezone, to_iso_string

__all__ = ["ensure_utc", "parse_rfc3339_datetime", "resolve_timezone", "to_iso_string"]
