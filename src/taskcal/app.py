"""Application factory for the task calendar service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import PROJECT_ROOT, get_settings
from .routers.calendar import router as calendar_router
from .routers.tasks import router as tasks_router
from .services.task_parser import TaskParser
from .tasks.repository import TaskRepository
from .tasks.store import TaskStore
from .utils.datetime_utils import resolve_timezone

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL environment variable."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    handlers: list[logging.Handler] = []
    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT))
    handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    logging.getLogger("taskcal").setLevel(log_level)
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # Parser requests are noisy below DEBUG
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def _resolve_under(base: Path, path: Path) -> Path:
    # Allow absolute paths as-is (useful for tests and external mounts).
    if path.is_absolute():
        return path.resolve()
    resolved = (base / path).resolve()
    if not resolved.is_relative_to(base):
        raise ValueError(f"Configured path {resolved} escapes project root {base}")
    return resolved


def create_app() -> FastAPI:
    _configure_logging()

    settings = get_settings()
    display_timezone = resolve_timezone(settings.display_timezone)

    tasks_path = _resolve_under(PROJECT_ROOT, settings.tasks_path)
    store = TaskStore(TaskRepository(tasks_path), tz=display_timezone)
    parser = TaskParser(settings, tz=display_timezone)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Loaded %d tasks from %s (display timezone %s)",
            len(store.tasks),
            tasks_path,
            display_timezone,
        )
        yield

    app = FastAPI(
        title="Task Calendar",
        version="0.1.0",
        description="Task manager with recurring series and calendar projection.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.display_timezone = display_timezone
    app.state.task_store = store
    app.state.task_parser = parser

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(tasks_router)
    app.include_router(calendar_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str | int]:
        return {
            "status": "ok",
            "tasks": len(store.tasks),
            "displayTimezone": str(display_timezone),
        }

    return app


__all__ = ["create_app"]
