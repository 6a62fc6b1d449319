"""Request and result models exchanged between job workflows and activities."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ProcessChainTriggerRequest(BaseModel):
    trigger_id: UUID
    team_id: str
    entity: dict[str, Any]
    actor: dict[str, Any] | None = None


class ExecuteChainStepRequest(BaseModel):
    chain_execution_id: UUID
    team_id: str
    step_index: int


class FailChainStepRequest(BaseModel):
    chain_execution_id: UUID
    team_id: str
    step_index: int
    error_message: str


class ProcessPMCopilotTriggerRequest(BaseModel):
    team_id: str
    work_order: dict[str, Any]
    actor: dict[str, Any] | None = None


class JobResult(BaseModel):
    """Outcome of one orchestration job."""

    status: str
    chain_execution_id: str | None = None
    execution_status: str | None = None
    workflow_state_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def skipped(cls, reason: str) -> "JobResult":
        return cls(status="skipped", details={"reason": reason})
