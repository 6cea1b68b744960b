"""Structured logging configuration with JSON output and run context.

Uses python-json-logger for structured JSON logging when the tool runs
inside CI; plain text is the default for interactive use.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

from pythonjsonlogger import jsonlogger

from trusted_releaser.config import get_settings

# Context variables for the current reconciliation run
run_id_ctx: ContextVar[str | None] = ContextVar("run_id", default=None)
repo_ctx: ContextVar[str | None] = ContextVar("repo", default=None)


class RunContextFilter(logging.Filter):
    """Log filter that adds run_id and repo to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_ctx.get()
        record.repo = repo_ctx.get()
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        if getattr(record, "run_id", None):
            log_record["run_id"] = record.run_id
        if getattr(record, "repo", None):
            log_record["repo"] = record.repo

        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno


def setup_logging(level: str | None = None) -> None:
    """Configure logging for the CLI.

    Logs go to stderr so that the rendered plan on stdout stays readable.
    """
    settings = get_settings()

    handler = logging.StreamHandler(sys.stderr)

    if settings.log_format == "json":
        formatter: logging.Formatter = CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    handler.addFilter(RunContextFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level or settings.log_level)

    # Reduce verbosity of third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.debug(
        "Logging configured",
        extra={
            "log_level": level or settings.log_level,
            "log_format": settings.log_format,
        },
    )
