"""Correlation-aware logging for orchestration operations.

A correlation id follows one unit of work (a trigger dispatch, a chain job)
across services and async boundaries, so every log line it produces can be
grouped together.
"""

import logging
import uuid
from contextvars import ContextVar

correlation_id_context: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_CONTEXT_KEYS = (
    "team_id",
    "chain_id",
    "execution_id",
    "step_index",
    "trigger_id",
    "agent_id",
    "tool",
)


class OrchestrationLogger:
    """Logger that prefixes messages with correlation id and entity ids."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _get_correlation_id(self) -> str:
        correlation_id = correlation_id_context.get()
        if not correlation_id:
            correlation_id = generate_correlation_id()
            correlation_id_context.set(correlation_id)
        return correlation_id

    def _format_message(self, message: str, **kwargs) -> str:
        context_parts = [f"correlation_id={self._get_correlation_id()}"]
        for key in _CONTEXT_KEYS:
            if kwargs.get(key) is not None:
                context_parts.append(f"{key}={kwargs[key]}")
        return f"[{' | '.join(context_parts)}] {message}"

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs):
        self.logger.error(self._format_message(message, **kwargs), exc_info=exc_info)

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for current operation context."""
    correlation_id_context.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get current correlation ID."""
    return correlation_id_context.get()


def generate_correlation_id() -> str:
    """Generate a new short correlation ID."""
    return str(uuid.uuid4())[:8]
