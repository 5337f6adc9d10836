# src/gleaner/core/logging.py
"""Logging setup for Gleaner."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from rich.logging import RichHandler

from gleaner.config import config

_LOGGING_INITIALIZED = False

_RESERVED_RECORD_KEYS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data = {
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Attach extras if present
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_KEYS or key in data:
                continue
            try:
                json.dumps(value)
                data[key] = value
            except (TypeError, ValueError):
                data[key] = str(value)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def _plain_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def init_logging(
    level: str | None = None,
    format: str | None = None,
    include_trace: bool | None = None,
    log_file: str | None = None,
) -> None:
    """
    Initialize global logging configuration for Gleaner.

    Defaults come from ``config.system`` (``GLEANER_LOG_LEVEL``,
    ``GLEANER_LOG_FORMAT`` = plain|rich|json, ``GLEANER_LOG_INCLUDE_TRACE``,
    ``GLEANER_LOG_FILE``). Explicit arguments win over configuration. Calling
    this more than once is a no-op.
    """
    global _LOGGING_INITIALIZED
    if _LOGGING_INITIALIZED:
        return

    system = config.system
    resolved_level = (level or system.log_level or "INFO").upper()
    resolved_format = (format or system.log_format or "rich").lower()
    resolved_include_trace = (
        include_trace if include_trace is not None else system.log_include_trace
    )
    resolved_log_file = log_file if log_file is not None else system.log_file

    log_level = logging.getLevelNamesMapping().get(resolved_level, logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler: logging.Handler
    if resolved_format == "json":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
    elif resolved_format == "rich":
        handler = RichHandler(
            level=log_level,
            rich_tracebacks=resolved_include_trace,
            show_time=True,
            show_level=True,
            show_path=False,
            markup=False,
        )
        # RichHandler renders time and level itself
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        resolved_format = "plain"
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_plain_formatter())
    handler.setLevel(log_level)
    root.addHandler(handler)

    if resolved_log_file:
        file_handler = logging.FileHandler(Path(resolved_log_file), encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(file_handler)

    # Provider SDKs are chatty at INFO
    for noisy in ("LiteLLM", "litellm", "httpx", "asyncio"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    from gleaner import __version__

    logging.getLogger("gleaner.start").info(
        "Initializing logging | version=%s level=%s format=%s include_trace=%s",
        __version__,
        resolved_level,
        resolved_format,
        str(resolved_include_trace),
    )

    _LOGGING_INITIALIZED = True


__all__ = ["JsonFormatter", "init_logging"]
