"""Exception types shared across orchestration libraries."""

from .orchestration import (
    ChainDefinitionError,
    DependencyUnavailableError,
    OrchestrationError,
    OrchestrationValidationError,
    ResourceNotFoundError,
    TerminalStateError,
    ToolDefinitionError,
)
from .team import MissingTeamContext, TeamAccessDenied, TeamError, TeamResourceNotFound

__all__ = [
    "ChainDefinitionError",
    "DependencyUnavailableError",
    "MissingTeamContext",
    "OrchestrationError",
    "OrchestrationValidationError",
    "ResourceNotFoundError",
    "TeamAccessDenied",
    "TeamError",
    "TeamResourceNotFound",
    "TerminalStateError",
    "ToolDefinitionError",
]
