"""Structured logging configuration for logscope."""

import asyncio
import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import DEFAULT_LOG_PATH

# Rotation for the file handler
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _current_task_name() -> str | None:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        return None
    return task.get_name() if task else None


class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    ``extra={"context": {...}}`` lands under ``"context"``; records emitted
    inside an asyncio task carry the task name, which identifies the timer or
    listener (``histogram:emit-range``, ``fanout:poll``...) that logged them.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        task_name = _current_task_name()
        if task_name:
            entry["task"] = task_name

        context = getattr(record, "context", None)
        if context is not None:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)

        # Contexts may hold ranges, paths or rows
        return json.dumps(entry, default=str)


def build_logging_config(log_level: str, log_file: str | None) -> dict[str, Any]:
    """dictConfig mapping: stdout always, a rotating file when ``log_file`` is set."""
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
            "formatter": "json",
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": "logscope.logging_config.JSONFormatter"}},
        "handlers": handlers,
        "loggers": {
            # aiosqlite logs every statement at DEBUG
            "aiosqlite": {"level": "WARNING"},
        },
        "root": {"level": log_level.upper(), "handlers": sorted(handlers)},
    }


def setup_logging(log_level: str | None = None, log_file: str | None = None) -> None:
    """
    Install JSON logging on the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
                   Falls back to the LOG_LEVEL env var, then INFO.
        log_file: Rotating log file. Falls back to the LOG_FILE env var, then
                  logs/logscope.log; an empty string logs to stdout only.
    """
    level = log_level or os.getenv("LOG_LEVEL", "INFO")
    path = log_file if log_file is not None else os.getenv("LOG_FILE", str(DEFAULT_LOG_PATH))

    if path:
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(level, path))


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with ``__name__``."""
    return logging.getLogger(name)
