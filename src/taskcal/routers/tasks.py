"""REST API endpoints for task management, parsing and iCalendar exchange."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ..services.ical import IcsParseError, generate_ics, parse_ics
from ..services.reports import summarize_tasks
from ..services.task_parser import TaskParser, TaskParserError
from ..tasks.models import NewTaskInput, Task
from ..tasks.store import TaskNotFoundError, TaskStore, TaskValidationError
from ..utils.datetime_utils import UTC

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class FocusSessionRequest(BaseModel):
    """Request body for logging a finished focus session."""

    duration_seconds: int = Field(..., ge=0, alias="durationSeconds")

    model_config = {"populate_by_name": True}


class ParseRequest(BaseModel):
    """Free text to turn into a task payload."""

    text: str = Field(..., min_length=1)


def _dump(task: Task) -> dict[str, Any]:
    return task.model_dump(mode="json", by_alias=True)


def _store(request: Request) -> TaskStore:
    store = getattr(request.app.state, "task_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Task store not available")
    return store


@router.get("")
def list_tasks(request: Request) -> list[dict[str, Any]]:
    """List every stored task."""
    return [_dump(task) for task in _store(request).tasks]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(request: Request, body: NewTaskInput) -> dict[str, Any]:
    """Create a task from a new-task payload."""
    return _dump(_store(request).add_task(body))


@router.post("/batch", status_code=status.HTTP_201_CREATED)
def create_tasks(request: Request, body: list[NewTaskInput]) -> list[dict[str, Any]]:
    """Commit a confirmed batch of payloads, e.g. from a previewed import."""
    return [_dump(task) for task in _store(request).add_tasks(body)]


@router.get("/summary")
def task_summary(request: Request) -> dict[str, Any]:
    """Completion, focus time, category/priority counts, last week and upcoming."""
    tz = getattr(request.app.state, "display_timezone", None) or UTC
    return summarize_tasks(_store(request).tasks, tz=tz).to_dict()


@router.get("/export.ics")
def export_ics(request: Request) -> Response:
    """Download every task as an iCalendar file."""
    content = generate_ics(_store(request).tasks)
    return Response(
        content=content,
        media_type="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="tasks.ics"'},
    )


@router.post("/import")
async def preview_import(request: Request) -> list[dict[str, Any]]:
    """Parse an uploaded iCalendar body into payloads without storing them."""
    content = (await request.body()).decode("utf-8", errors="replace")
    tz = getattr(request.app.state, "display_timezone", None) or UTC
    try:
        payloads = parse_ics(content, tz=tz)
    except IcsParseError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [payload.model_dump(mode="json", by_alias=True) for payload in payloads]


@router.post("/parse")
async def parse_task(request: Request, body: ParseRequest) -> dict[str, Any]:
    """Parse free text into a payload the client can confirm and create."""
    parser: TaskParser | None = getattr(request.app.state, "task_parser", None)
    if parser is None:
        raise HTTPException(status_code=503, detail="Task parser not available")
    try:
        payload = await parser.parse(body.text)
    except TaskParserError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return payload.model_dump(mode="json", by_alias=True)


@router.get("/{task_id}")
def get_task(request: Request, task_id: str) -> dict[str, Any]:
    try:
        return _dump(_store(request).get_task(task_id))
    except TaskNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.put("/{task_id}")
def update_task(request: Request, task_id: str, body: Task) -> dict[str, Any]:
    """Replace a stored task."""
    if body.id != task_id:
        raise HTTPException(status_code=400, detail="Task id in path and body differ")
    try:
        return _dump(_store(request).update_task(body))
    except TaskNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TaskValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.delete("/{task_id}")
def delete_task(request: Request, task_id: str) -> dict[str, Any]:
    try:
        _store(request).delete_task(task_id)
    except TaskNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"success": True, "id": task_id, "action": "deleted"}


@router.post("/{task_id}/toggle")
def toggle_task(request: Request, task_id: str) -> dict[str, Any]:
    """Toggle completion; completing a recurring occurrence forks the series."""
    try:
        result = _store(request).toggle_task(task_id)
    except TaskNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {
        "task": _dump(result.task),
        "completedInstance": (
            _dump(result.completed_instance) if result.completed_instance else None
        ),
    }


@router.post("/{task_id}/focus")
def log_focus_session(
    request: Request, task_id: str, body: FocusSessionRequest
) -> dict[str, Any]:
    """Add a finished focus session to the task's time spent."""
    try:
        return _dump(_store(request).log_focus_session(task_id, body.duration_seconds))
    except TaskNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TaskValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


__all__ = ["router"]
