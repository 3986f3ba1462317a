"""Logging for the reminder API and its background poller.

Everything is configured through ``logging.config.dictConfig`` from
environment variables:

``LOG_LEVEL``
    Level for the root logger and the ``household.*`` loggers (default INFO).
``LOG_DESTINATION``
    ``stdout`` (default), ``stderr`` or ``file``.
``LOG_FILE``
    Target path, required when ``LOG_DESTINATION=file``. The file rotates at
    ``LOG_FILE_MAX_BYTES`` and keeps ``LOG_FILE_BACKUPS`` old copies.
``POLLER_LOG_LEVEL``
    Overrides the level of ``household.poller`` only, so per-tick debug
    output can be turned on without flooding the API logs.
``APSCHEDULER_LOG_LEVEL``
    Level for APScheduler itself (default WARNING; it logs every run at INFO).
"""

from __future__ import annotations

import logging
import logging.config
import os
import sys
from typing import Any, Dict, Mapping, Optional


SERVICE_LOGGERS = (
    "household.reminders",
    "household.announcements",
    "household.poller",
    "household.api",
)

# The poller runs on an APScheduler worker thread.
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s"


def _level(env: Mapping[str, str], name: str, default: str) -> str:
    level = env.get(name, default).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"{name} must be a logging level name, got {level!r}")
    return level


def _handler(env: Mapping[str, str], level: str) -> Dict[str, Any]:
    destination = env.get("LOG_DESTINATION", "stdout").strip().lower()
    if destination == "file":
        log_file: Optional[str] = env.get("LOG_FILE")
        if not log_file:
            raise RuntimeError("LOG_FILE is required when LOG_DESTINATION=file")
        return {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "filename": log_file,
            "maxBytes": int(env.get("LOG_FILE_MAX_BYTES", str(5 * 1024 * 1024))),
            "backupCount": int(env.get("LOG_FILE_BACKUPS", "3")),
            "formatter": "reminders",
        }
    if destination not in ("stdout", "stderr"):
        raise ValueError(f"Unknown LOG_DESTINATION: {destination!r}")
    return {
        "class": "logging.StreamHandler",
        "level": level,
        "stream": sys.stdout if destination == "stdout" else sys.stderr,
        "formatter": "reminders",
    }


def build_logging_config(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if env is None else env
    level = _level(env, "LOG_LEVEL", "INFO")
    loggers: Dict[str, Any] = {name: {"level": level} for name in SERVICE_LOGGERS}
    loggers["household.poller"] = {"level": _level(env, "POLLER_LOG_LEVEL", level)}
    loggers["apscheduler"] = {"level": _level(env, "APSCHEDULER_LOG_LEVEL", "WARNING")}

    # The handler itself lets everything through; loggers do the filtering.
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"reminders": {"format": LOG_FORMAT}},
        "handlers": {"default": _handler(env, "DEBUG")},
        "loggers": loggers,
        "root": {"handlers": ["default"], "level": level},
    }


def configure_logging(env: Optional[Mapping[str, str]] = None) -> None:
    logging.config.dictConfig(build_logging_config(env))
