"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tasks_path: Path = Field(
        default_factory=lambda: Path("data/tasks.json"),
        validation_alias=AliasChoices("TASKS_PATH", "tasks_path"),
    )
    display_timezone: str = Field(
        default="UTC",
        validation_alias=AliasChoices("DISPLAY_TIMEZONE", "display_timezone"),
        description="IANA zone used for weekdays, midnights and day buckets.",
    )

    # Natural-language task parsing (optional; parsing is disabled without a key)
    openrouter_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("OPENROUTER_API_KEY", "openrouter_api_key"),
    )
    openrouter_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://openrouter.ai/api/v1"),
        validation_alias=AliasChoices("OPENROUTER_BASE_URL", "base_url"),
    )
    task_parser_model: str = Field(
        default="google/gemini-2.5-flash",
        validation_alias=AliasChoices("TASK_PARSER_MODEL", "task_parser_model"),
    )
    request_timeout: float = Field(
        default=30.0,
        validation_alias=AliasChoices("OPENROUTER_TIMEOUT", "timeout"),
        ge=1,
    )

    # Day timeline geometry
    calendar_hour_height: int = Field(
        default=64,
        ge=1,
        validation_alias=AliasChoices("CALENDAR_HOUR_HEIGHT", "calendar_hour_height"),
    )
    calendar_min_event_height: int = Field(
        default=20,
        ge=0,
        validation_alias=AliasChoices(
            "CALENDAR_MIN_EVENT_HEIGHT",
            "calendar_min_event_height",
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["Settings", "get_settings"]
