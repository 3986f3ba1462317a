from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .recurrence.calculator import resolve_timezone


DEFAULT_TIMEZONE = "America/Los_Angeles"
DEFAULT_DB_PATH = os.path.join("apps", "api", "data", "reminders.db")


@dataclass(frozen=True)
class Settings:
    timezone: str
    poll_seconds: int
    scheduler_enabled: bool
    db_path: str


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def load_settings(db_path: Optional[str] = None) -> Settings:
    timezone = os.getenv("REMINDERS_TIMEZONE", DEFAULT_TIMEZONE)
    resolve_timezone(timezone)

    poll_seconds = int(os.getenv("REMINDERS_POLL_SECONDS", "60"))
    if poll_seconds <= 0:
        raise ValueError("REMINDERS_POLL_SECONDS must be positive")

    return Settings(
        timezone=timezone,
        poll_seconds=poll_seconds,
        scheduler_enabled=_env_flag("REMINDERS_SCHEDULER_ENABLED", "true"),
        db_path=db_path or os.getenv("REMINDERS_DB_PATH", DEFAULT_DB_PATH),
    )
