"""Collaborators around the task store: iCalendar codec, text parser and reports."""

from .ical import IcsParseError, generate_ics, parse_ics
from .reports import TaskSummary, summarize_tasks
from .task_parser import TaskParser, TaskParserError

__all__ = [
    "IcsParseError",
    "generate_ics",
    "parse_ics",
    "TaskSummary",
    "summarize_tasks",
    "TaskParser",
    "TaskParserError",
]
