"""Agent domain models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from .enums import PermissionFlag, WorkflowStateStatus


class Agent(BaseModel):
    """A reusable agent capability definition."""

    id: UUID = Field(default_factory=uuid4)
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    agent_type: str = Field(default="assistant", max_length=100)
    description: str = Field(default="")
    tools: list[str] = Field(default_factory=list, description="Declared tool capabilities")
    template_id: UUID | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Agent code cannot be empty")
        return v.strip()

    def declares_tool(self, tool_name: str) -> bool:
        return tool_name in self.tools


class AgentConfiguration(BaseModel):
    """Per-team binding of an agent: enablement, budget and permission grants."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    agent_id: UUID
    enabled: bool = True
    daily_run_limit: int = Field(default=100, ge=0)
    daily_spend: float = Field(default=0.0, ge=0)
    monthly_budget_cap: float = Field(default=0.0, ge=0)
    current_month_spend: float = Field(default=0.0, ge=0)

    can_create_work_orders: bool = False
    can_modify_tasks: bool = False
    can_access_client_data: bool = False
    can_send_emails: bool = False
    can_modify_deliverables: bool = False
    can_access_financial_data: bool = False
    can_modify_playbooks: bool = False

    tool_permissions: dict[str, bool] = Field(
        default_factory=dict, description="Per-tool overrides keyed by tool name"
    )
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True

    def has_permission(self, flag: PermissionFlag | str) -> bool:
        return bool(getattr(self, PermissionFlag(flag).value))

    def tool_override(self, tool_name: str) -> bool | None:
        """Explicit per-tool grant or denial, None when the tool is not overridden."""
        if tool_name in self.tool_permissions:
            return bool(self.tool_permissions[tool_name])
        return None


class GlobalAISettings(BaseModel):
    """Team-wide AI policy. One per team."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    total_monthly_budget: float = Field(default=0.0, ge=0)
    current_month_spend: float = Field(default=0.0, ge=0)
    per_project_budget_cap: float | None = None

    require_approval_external_sends: bool = True
    require_approval_financial: bool = True
    require_approval_contracts: bool = True
    require_approval_scope_changes: bool = True

    pm_copilot_auto_suggest: bool = False
    pm_copilot_auto_approval_threshold: float = Field(default=0.8, ge=0, le=1)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True

    @property
    def remaining_budget(self) -> float:
        return self.total_monthly_budget - self.current_month_spend

    def has_budget_remaining(self) -> bool:
        return self.remaining_budget > 0

    def meets_auto_approval_threshold(self, confidence: float) -> bool:
        return confidence >= self.pm_copilot_auto_approval_threshold


class AgentWorkflowState(BaseModel):
    """Durable state of one agent's single-workflow execution."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    agent_id: UUID | None = None
    workflow_class: str = Field(..., min_length=1)
    current_node: str = "start"
    state_data: dict[str, Any] = Field(default_factory=dict)
    paused_at: datetime | None = None
    resumed_at: datetime | None = None
    completed_at: datetime | None = None
    pause_reason: str | None = None
    approval_required: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True

    @property
    def status(self) -> WorkflowStateStatus:
        if self.completed_at is not None:
            return WorkflowStateStatus.COMPLETED
        if self.paused_at is not None:
            return WorkflowStateStatus.PAUSED
        return WorkflowStateStatus.RUNNING

    def is_paused(self) -> bool:
        return self.status is WorkflowStateStatus.PAUSED

    def is_completed(self) -> bool:
        return self.status is WorkflowStateStatus.COMPLETED

    def is_running(self) -> bool:
        return self.status is WorkflowStateStatus.RUNNING


class AgentActivityLog(BaseModel):
    """Append-only audit record of one tool execution or agent run."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    agent_id: UUID
    run_type: str
    input: dict[str, Any] | None = None
    output: dict[str, Any] | None = None
    error: str | None = None
    tokens_used: int = 0
    cost: float = 0.0
    approval_status: str | None = None
    tool_calls: list[dict[str, Any]] = Field(default_factory=list)
    context_accessed: dict[str, Any] | None = None
    duration_ms: int = 0
    agent_workflow_state_id: UUID | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True
