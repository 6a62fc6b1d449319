"""Tool domain models."""

from dataclasses import dataclass
from typing import Any

from agentorch_common.exceptions import ResourceNotFoundError
from pydantic import BaseModel, Field, field_validator

from .enums import ToolCategory, ToolResultStatus


class ToolNotFoundError(ResourceNotFoundError):
    """Raised by the registry when no tool is registered under a name."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' not found", tool_name=tool_name)
        self.tool_name = tool_name


class ToolDefinition(BaseModel):
    """Declarative tool metadata loaded from a JSON file.

    A definition describes a tool without binding an executable implementation.
    """

    name: str = Field(..., min_length=1)
    category: str = Field(default=ToolCategory.GENERAL.value)
    description: str = Field(default="")
    parameters: dict[str, Any] = Field(default_factory=dict)
    required_permissions: list[str] | None = Field(
        default=None, description="Explicit permission flags; derived from category when absent"
    )

    model_config = {"extra": "ignore"}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Tool name cannot be empty")
        return v.strip()


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one gateway execution."""

    success: bool
    status: ToolResultStatus
    data: dict[str, Any] | None = None
    error: str | None = None
    execution_time_ms: int = 0

    @classmethod
    def succeeded(cls, data: dict[str, Any] | None, execution_time_ms: int = 0) -> "ToolResult":
        return cls(
            success=True,
            status=ToolResultStatus.SUCCESS,
            data=data,
            execution_time_ms=execution_time_ms,
        )

    @classmethod
    def failure(cls, error: str, execution_time_ms: int = 0) -> "ToolResult":
        return cls(
            success=False,
            status=ToolResultStatus.FAILED,
            error=error,
            execution_time_ms=execution_time_ms,
        )

    @classmethod
    def denied(cls, error: str) -> "ToolResult":
        return cls(success=False, status=ToolResultStatus.DENIED, error=error)

    def is_denied(self) -> bool:
        return self.status is ToolResultStatus.DENIED

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status.value,
            "data": self.data,
            "error": self.error,
            "execution_time_ms": self.execution_time_ms,
        }
