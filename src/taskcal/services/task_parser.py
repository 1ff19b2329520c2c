"""Natural-language task parsing through the OpenRouter chat completions API."""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..tasks.models import NewTaskInput, RecurrenceFrequency, TaskCategory, TaskPriority
from ..utils.datetime_utils import UTC

logger = logging.getLogger(__name__)

_CATEGORIES = ", ".join(category.value for category in TaskCategory)
_PRIORITIES = ", ".join(priority.value for priority in TaskPriority)
_FREQUENCIES = ", ".join(frequency.value for frequency in RecurrenceFrequency)


class TaskParserError(Exception):
    """Raised when free text cannot be turned into a task payload."""


def build_system_prompt(now: datetime.datetime) -> str:
    """Instructions describing the JSON task shape and the user's local context."""

    offset = now.strftime("%z") or "+0000"
    timezone_label = f"UTC{offset[:3]}:{offset[3:]}"
    return f"""
You are an intelligent task parsing assistant. Convert the user's text into a single JSON object describing a task.
- CONTEXT: The user is in timezone {timezone_label}. The current local time for the user is {now.isoformat()}.
- Interpret relative times ("2pm", "tomorrow morning") in the user's local timezone.
- 'startTime' and 'endTime' MUST be converted to UTC and written as full ISO 8601 strings (YYYY-MM-DDTHH:mm:ss.sssZ).
- 'category' must be one of: {_CATEGORIES}. If none fits use 'Other'.
- 'priority' must be one of: {_PRIORITIES}. If none is mentioned use 'Medium'.
- If no time is given for a day ("report due Friday"), treat it as an all-day task starting at local midnight converted to UTC, with no endTime.
- If a duration is given ("for 1 hour"), compute endTime from startTime.
- If no description is provided, use the title as the description.
- Checklists or lists of items go into 'subtasks' as objects with a 'text' field.
- Recurring tasks ("every day", "weekly") get a 'recurring' object with 'frequency' (one of: {_FREQUENCIES}) and 'interval' (default 1).
- Omit 'recurring.endDate' unless the user gives one (YYYY-MM-DD). Never invent an end date.
- For weekly recurrence on specific days ("every Monday and Wednesday"), set 'daysOfWeek' to numbers with Sunday=0 ... Saturday=6.
Respond with the JSON object only, without markdown fences or commentary.
""".strip()


def _extract_content(body: Any) -> str:
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise TaskParserError("Received an invalid response from the parsing service.") from exc
    if not isinstance(content, str) or not content.strip():
        raise TaskParserError("Received an empty response from the parsing service.")
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    return text.strip()


def _coerce_recurring(raw: Any) -> Optional[dict[str, Any]]:
    if not isinstance(raw, dict) or not raw.get("frequency"):
        return None
    recurring = dict(raw)
    try:
        interval = int(recurring.get("interval") or 1)
    except (TypeError, ValueError):
        interval = 1
    recurring["interval"] = max(1, interval)
    if not recurring.get("endDate"):
        recurring.pop("endDate", None)
    days = recurring.get("daysOfWeek")
    if isinstance(days, list):
        recurring["daysOfWeek"] = [
            day
            for day in days
            if isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6
        ]
    return recurring


def coerce_parsed_task(data: Any) -> NewTaskInput:
    """Validate a parsed JSON object, substituting defaults for invalid enums."""

    if not isinstance(data, dict):
        raise TaskParserError("Parsing service returned something other than a JSON object.")
    if not isinstance(data.get("title"), str) or not isinstance(data.get("startTime"), str):
        raise TaskParserError("Parsed task is missing required fields or has incorrect types.")

    payload = dict(data)
    if payload.get("category") not in {category.value for category in TaskCategory}:
        logger.warning("Invalid category from parser: %s. Defaulting to Other.", payload.get("category"))
        payload["category"] = TaskCategory.OTHER.value
    if payload.get("priority") not in {priority.value for priority in TaskPriority}:
        logger.warning("Invalid priority from parser: %s. Defaulting to Medium.", payload.get("priority"))
        payload["priority"] = TaskPriority.MEDIUM.value

    subtasks = payload.get("subtasks")
    if isinstance(subtasks, list):
        payload["subtasks"] = [
            {"text": item["text"].strip(), "completed": False}
            for item in subtasks
            if isinstance(item, dict) and isinstance(item.get("text"), str) and item["text"].strip()
        ]
    else:
        payload.pop("subtasks", None)

    if not payload.get("description"):
        payload["description"] = payload["title"]
    if not payload.get("endTime"):
        payload.pop("endTime", None)

    recurring = _coerce_recurring(payload.get("recurring"))
    if recurring is None:
        payload.pop("recurring", None)
    else:
        payload["recurring"] = recurring

    try:
        return NewTaskInput.model_validate(payload)
    except ValidationError as exc:
        raise TaskParserError(f"Parsed task failed validation: {exc}") from exc


class TaskParser:
    """Turn free text into a ``NewTaskInput`` using an LLM."""

    def __init__(self, settings: Settings, *, tz: datetime.tzinfo = UTC) -> None:
        self._settings = settings
        self._tz = tz

    @property
    def _base_url(self) -> str:
        return str(self._settings.openrouter_base_url).rstrip("/")

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.openrouter_api_key
        if api_key is None or not api_key.get_secret_value():
            raise TaskParserError(
                "Parsing API key not set. Configure OPENROUTER_API_KEY to enable task parsing."
            )
        return {
            "Authorization": f"Bearer {api_key.get_secret_value()}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _build_payload(self, text: str, now: datetime.datetime) -> dict[str, Any]:
        return {
            "model": self._settings.task_parser_model,
            "messages": [
                {"role": "system", "content": build_system_prompt(now)},
                {"role": "user", "content": f'Parse the following task: "{text}"'},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0,
            "stream": False,
        }

    async def parse(self, text: str, *, now: Optional[datetime.datetime] = None) -> NewTaskInput:
        """Parse ``text`` into a new task payload (not yet stored)."""

        if not text or not text.strip():
            raise TaskParserError("Nothing to parse: the text is empty.")

        headers = self._headers()
        current = (now or datetime.datetime.now(UTC)).astimezone(self._tz)
        payload = self._build_payload(text.strip(), current)

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._settings.request_timeout, connect=10.0)
            ) as client:
                response = await client.post(
                    f"{self._base_url}/chat/completions", headers=headers, json=payload
                )
        except httpx.HTTPError as exc:
            logger.warning("Task parsing request failed: %s", exc)
            raise TaskParserError(
                "Could not reach the parsing service. Please try again later."
            ) from exc

        if response.status_code in (401, 403):
            raise TaskParserError("Your parsing API key is invalid. Please check OPENROUTER_API_KEY.")
        if response.status_code >= 400:
            logger.warning("Task parsing returned HTTP %s: %s", response.status_code, response.text)
            raise TaskParserError(
                "Could not understand the task. Please try rephrasing your request."
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise TaskParserError("Received an invalid response from the parsing service.") from exc

        content = _extract_content(body)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise TaskParserError(
                "Could not understand the task. Please try rephrasing your request."
            ) from exc

        return coerce_parsed_task(data)


__all__ = ["TaskParser", "TaskParserError", "build_system_prompt", "coerce_parsed_task"]
