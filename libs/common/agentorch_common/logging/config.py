"""Logging configuration with team context support."""

import json
import logging
import logging.config
from typing import Any

from ..auth.context import UserContext
from .filters import TeamContextFilter

_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "user_id",
        "team_id",
        "audit_event",
    }
)


class TeamContextFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record, team context included."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "user_id"):
            log_entry["user_id"] = record.user_id
        if hasattr(record, "team_id"):
            log_entry["team_id"] = record.team_id
        if hasattr(record, "audit_event"):
            log_entry["audit_event"] = record.audit_event
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logging(
    level: str = "INFO",
    enable_structured_logging: bool = True,
    enable_audit_logging: bool = True,
    user_context: UserContext | None = None,
) -> None:
    """Set up logging for the orchestration engine.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_structured_logging: Whether to use structured JSON logging
        enable_audit_logging: Whether audit records are emitted at INFO
        user_context: User context stamped onto every record
    """
    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "structured": {"()": TeamContextFormatter},
        },
        "filters": {
            "team_context": {
                "()": TeamContextFilter,
                "user_context": user_context,
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "structured" if enable_structured_logging else "standard",
                "filters": ["team_context"] if user_context else [],
                "stream": "ext://sys.stdout",
            }
        },
        "loggers": {
            "agentorch": {"level": level, "handlers": ["console"], "propagate": False},
            "agentorch.audit": {
                "level": "INFO" if enable_audit_logging else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {"level": level, "handlers": ["console"]},
    }

    logging.config.dictConfig(config)
