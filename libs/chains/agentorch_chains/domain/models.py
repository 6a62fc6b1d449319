"""Chain domain models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from agentorch_common.base.references import EntityRef
from agentorch_context.domain.models import ChainContext
from pydantic import BaseModel, Field

from .definition import ChainDefinition
from .enums import ChainExecutionStatus, ChainStepStatus


class AgentChain(BaseModel):
    """An ordered, optionally branching sequence of agent steps owned by a team."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    chain_definition: ChainDefinition = Field(default_factory=ChainDefinition)
    enabled: bool = True
    agent_chain_template_id: UUID | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True

    @property
    def steps(self):
        return self.chain_definition.steps


class AgentChainTemplate(BaseModel):
    """Reusable chain definition. System templates have no team."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str | None = None
    is_system: bool = False
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    chain_definition: ChainDefinition = Field(default_factory=ChainDefinition)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True


class AgentChainExecution(BaseModel):
    """One run of a chain; the row is the sole source of truth while paused."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    agent_chain_id: UUID
    current_step_index: int = 0
    execution_status: ChainExecutionStatus = ChainExecutionStatus.PENDING
    chain_context: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime | None = None
    paused_at: datetime | None = None
    resumed_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    error_message: str | None = None
    triggerable_type: str | None = None
    triggerable_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True

    @property
    def context(self) -> ChainContext:
        return ChainContext.from_dict(self.chain_context)

    @property
    def triggerable(self) -> EntityRef | None:
        return EntityRef.from_columns(self.triggerable_type, self.triggerable_id)

    def is_pending(self) -> bool:
        return self.execution_status is ChainExecutionStatus.PENDING

    def is_running(self) -> bool:
        return self.execution_status is ChainExecutionStatus.RUNNING

    def is_paused(self) -> bool:
        return self.execution_status is ChainExecutionStatus.PAUSED

    def is_completed(self) -> bool:
        return self.execution_status is ChainExecutionStatus.COMPLETED

    def is_failed(self) -> bool:
        return self.execution_status is ChainExecutionStatus.FAILED

    def is_terminal(self) -> bool:
        return self.execution_status.is_terminal


class AgentChainExecutionStep(BaseModel):
    """Record of one step attempt within an execution."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    agent_chain_execution_id: UUID
    step_index: int = Field(..., ge=0)
    status: ChainStepStatus = ChainStepStatus.PENDING
    agent_workflow_state_id: UUID | None = None
    output_data: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True
