"""Orchestration error hierarchy.

Per-tool and per-step failures are recorded as results and never raised; these
exceptions cover malformed definitions, missing records and unavailable
infrastructure.
"""

from typing import Any

from ..logging.correlation import get_correlation_id


class OrchestrationError(Exception):
    """Base exception for orchestration errors."""

    def __init__(self, message: str, correlation_id: str | None = None, **context):
        self.correlation_id = correlation_id or get_correlation_id()
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": str(self),
            "correlation_id": self.correlation_id,
            "context": self.context,
        }


class OrchestrationValidationError(OrchestrationError):
    """Raised when input to an orchestration operation is invalid."""


class ResourceNotFoundError(OrchestrationError):
    """Raised when a referenced record does not exist in the team."""


class ChainDefinitionError(OrchestrationValidationError):
    """Raised when a chain definition fails schema validation."""


class ToolDefinitionError(OrchestrationValidationError):
    """Raised when a declarative tool definition cannot be loaded."""


class DependencyUnavailableError(OrchestrationError):
    """Raised when required infrastructure (broker, job queue) is not available."""


class TerminalStateError(OrchestrationError):
    """Raised when a caller insists on mutating a completed or failed record."""
