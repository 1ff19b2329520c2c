"""iCalendar (RFC 5545) export and import for tasks."""

from __future__ import annotations

import datetime
import logging
import re
from typing import Iterable, List, Optional

from pydantic import ValidationError

from ..calendar.timeline import is_all_day_task
from ..tasks.models import (
    NewTaskInput,
    RecurrenceFrequency,
    Recurring,
    Task,
    TaskCategory,
    TaskPriority,
)
from ..tasks.recurrence import recurrence_end
from ..utils.datetime_utils import UTC, resolve_timezone

logger = logging.getLogger(__name__)

PRODID = "-//taskcal//EN"
_LINE_LIMIT = 75
_WEEKDAY_CODES = ("SU", "MO", "TU", "WE", "TH", "FR", "SA")
_PRIORITY_TO_ICAL = {TaskPriority.HIGH: 1, TaskPriority.MEDIUM: 5, TaskPriority.LOW: 9}
_DATE_PATTERN = re.compile(r"^(\d{4})(\d{2})(\d{2})(?:T(\d{2})(\d{2})(\d{2})(Z)?)?$")


class IcsParseError(ValueError):
    """Raised when an uploaded file is not an iCalendar document."""


# ----------------------------------------------------------------------
# Export
# ----------------------------------------------------------------------
def _format_datetime(value: datetime.datetime) -> str:
    return value.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def _format_date(value: datetime.datetime) -> str:
    return value.astimezone(UTC).strftime("%Y%m%d")


def escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def unescape_text(value: str) -> str:
    result: List[str] = []
    chars = iter(value)
    for char in chars:
        if char != "\\":
            result.append(char)
            continue
        following = next(chars, "")
        result.append("\n" if following in ("n", "N") else following)
    return "".join(result)


def fold_line(line: str) -> str:
    """Fold a content line at 75 octets with CRLF + space continuations."""

    encoded = line.encode("utf-8")
    if len(encoded) <= _LINE_LIMIT:
        return line

    parts: List[str] = []
    current = ""
    limit = _LINE_LIMIT
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            parts.append(current)
            current = ""
            limit = _LINE_LIMIT - 1
        current += char
    parts.append(current)
    return "\r\n ".join(parts)


def build_rrule(recurring: Recurring) -> str:
    rule = f"FREQ={recurring.frequency.value.upper()}"
    if recurring.interval > 1:
        rule += f";INTERVAL={recurring.interval}"
    if recurring.frequency is RecurrenceFrequency.WEEKLY and recurring.days_of_week:
        rule += ";BYDAY=" + ",".join(_WEEKDAY_CODES[day] for day in recurring.days_of_week)
    until = recurrence_end(recurring)
    if until is not None:
        rule += f";UNTIL={_format_datetime(until)}"
    return rule


def _description(task: Task) -> str:
    description = task.description
    if task.subtasks:
        checklist = "\n".join(f"- {subtask.text}" for subtask in task.subtasks)
        description += "\n\nSubtasks:\n" + checklist
    return description


def _event_lines(task: Task, stamp: str) -> List[str]:
    lines = ["BEGIN:VEVENT", f"UID:{task.id}", f"DTSTAMP:{stamp}"]
    if is_all_day_task(task):
        lines.append(f"DTSTART;VALUE=DATE:{_format_date(task.start_time)}")
    else:
        lines.append(f"DTSTART:{_format_datetime(task.start_time)}")
        if task.end_time is not None:
            lines.append(f"DTEND:{_format_datetime(task.end_time)}")
    lines.append(f"SUMMARY:{escape_text(task.title)}")
    lines.append(f"DESCRIPTION:{escape_text(_description(task))}")
    lines.append(f"CATEGORIES:{task.category.value}")
    lines.append(f"PRIORITY:{_PRIORITY_TO_ICAL[task.priority]}")
    if task.recurring is not None:
        lines.append(f"RRULE:{build_rrule(task.recurring)}")
    lines.append("END:VEVENT")
    return lines


def generate_ics(tasks: Iterable[Task], *, now: Optional[datetime.datetime] = None) -> str:
    """Serialize tasks as a VCALENDAR document with one VEVENT per task."""

    stamp = _format_datetime(now or datetime.datetime.now(UTC))
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", f"PRODID:{PRODID}"]
    for task in tasks:
        lines.extend(_event_lines(task, stamp))
    lines.append("END:VCALENDAR")
    return "".join(fold_line(line) + "\r\n" for line in lines)


# ----------------------------------------------------------------------
# Import
# ----------------------------------------------------------------------
def parse_ics_datetime(
    value: str, tz: datetime.tzinfo = UTC
) -> tuple[datetime.datetime, bool]:
    """Parse a DATE or DATE-TIME value; return the instant and whether it was date-only."""

    match = _DATE_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid date format: {value}")
    year, month, day, hour, minute, second, is_utc = match.groups()

    if hour is None:
        return datetime.datetime(int(year), int(month), int(day), tzinfo=UTC), True

    local = datetime.datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second)
    )
    if is_utc:
        return local.replace(tzinfo=UTC), False
    return local.replace(tzinfo=tz).astimezone(UTC), False


def parse_rrule(value: str, tz: datetime.tzinfo = UTC) -> Recurring:
    """Map an RRULE value to a recurrence rule (FREQ, INTERVAL, UNTIL, BYDAY)."""

    frequency = RecurrenceFrequency.DAILY
    interval = 1
    end_date: Optional[datetime.date] = None
    days_of_week: Optional[List[int]] = None

    for part in value.split(";"):
        key, _, raw = part.partition("=")
        key = key.strip().upper()
        raw = raw.strip()
        if key == "FREQ":
            frequency = RecurrenceFrequency(raw.lower())
        elif key == "INTERVAL":
            interval = max(1, int(raw))
        elif key == "UNTIL":
            until, _ = parse_ics_datetime(raw, tz)
            end_date = until.date()
        elif key == "BYDAY":
            codes = [code.strip().upper()[-2:] for code in raw.split(",") if code.strip()]
            days_of_week = [_WEEKDAY_CODES.index(code) for code in codes if code in _WEEKDAY_CODES]

    return Recurring(
        frequency=frequency,
        interval=interval,
        end_date=end_date,
        days_of_week=days_of_week,
    )


def priority_from_ical(value: Optional[str]) -> TaskPriority:
    try:
        number = int(value) if value else 5
    except ValueError:
        number = 5
    if 1 <= number <= 4:
        return TaskPriority.HIGH
    if number == 5:
        return TaskPriority.MEDIUM
    return TaskPriority.LOW


def category_from_ical(value: Optional[str]) -> TaskCategory:
    if value:
        wanted = value.split(",")[0].strip().upper()
        for category in TaskCategory:
            if category.value.upper() == wanted:
                return category
    return TaskCategory.OTHER


def _unfold(content: str) -> List[str]:
    normalized = content.replace("\r\n", "\n").replace("\r", "\n")
    return re.sub(r"\n[ \t]", "", normalized).split("\n")


def _property_parameters(name: str) -> dict[str, str]:
    """Parameters of a content line name, e.g. ``DTSTART;TZID=Europe/Paris``."""

    parameters: dict[str, str] = {}
    for item in name.split(";")[1:]:
        key, _, value = item.partition("=")
        parameters[key.strip().upper()] = value.strip().strip('"')
    return parameters


def _parameter_timezone(parameters: dict[str, str], tz: datetime.tzinfo) -> datetime.tzinfo:
    tzid = parameters.get("TZID")
    if not tzid:
        return tz
    if tzid.upper() == "UTC":
        return UTC
    return resolve_timezone(tzid, fallback=tz)


def _event_to_payload(
    properties: dict[str, str],
    tz: datetime.tzinfo,
    parameters: Optional[dict[str, dict[str, str]]] = None,
) -> NewTaskInput:
    parameters = parameters or {}
    start_tz = _parameter_timezone(parameters.get("DTSTART", {}), tz)
    start, _ = parse_ics_datetime(properties["DTSTART"], start_tz)
    end: Optional[datetime.datetime] = None
    if properties.get("DTEND"):
        end_tz = _parameter_timezone(parameters.get("DTEND", {}), start_tz)
        end, date_only = parse_ics_datetime(properties["DTEND"], end_tz)
        if date_only:
            end -= datetime.timedelta(days=1)
        if end <= start:
            end = None

    return NewTaskInput(
        title=unescape_text(properties["SUMMARY"]),
        description=unescape_text(properties.get("DESCRIPTION", "")),
        start_time=start,
        end_time=end,
        category=category_from_ical(properties.get("CATEGORIES")),
        priority=priority_from_ical(properties.get("PRIORITY")),
        recurring=parse_rrule(properties["RRULE"], start_tz) if properties.get("RRULE") else None,
    )


def parse_ics(content: str, *, tz: datetime.tzinfo = UTC) -> List[NewTaskInput]:
    """Parse every usable VEVENT into a new-task payload.

    Events without SUMMARY or DTSTART, or with unparseable values, are skipped.
    """

    if "BEGIN:VCALENDAR" not in content.upper() and "BEGIN:VEVENT" not in content.upper():
        raise IcsParseError("File does not contain any iCalendar data")

    payloads: List[NewTaskInput] = []
    properties: Optional[dict[str, str]] = None
    parameters: dict[str, dict[str, str]] = {}
    for line in _unfold(content):
        upper = line.strip().upper()
        if upper == "BEGIN:VEVENT":
            properties = {}
            parameters = {}
            continue
        if upper == "END:VEVENT":
            if properties is not None:
                if properties.get("SUMMARY") and properties.get("DTSTART"):
                    try:
                        payloads.append(_event_to_payload(properties, tz, parameters))
                    except (ValueError, ValidationError) as exc:
                        logger.warning("Skipping invalid VEVENT block: %s", exc)
            properties = None
            continue
        if properties is None or ":" not in line:
            continue
        name, value = line.split(":", 1)
        key = name.split(";", 1)[0].strip().upper()
        if key and value and key not in properties:
            properties[key] = value
            parameters[key] = _property_parameters(name)

    return payloads


__all__ = [
    "IcsParseError",
    "generate_ics",
    "parse_ics",
    "build_rrule",
    "parse_rrule",
    "parse_ics_datetime",
    "priority_from_ical",
    "category_from_ical",
    "escape_text",
    "unescape_text",
    "fold_line",
]
