"""Agent ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from agentorch_common.base.models import BaseModel, TeamScopedMixin
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column


class AgentORM(BaseModel):
    """Agent catalog entry, shared by all teams."""

    __tablename__ = "agents"

    code: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    agent_type: Mapped[str] = mapped_column(String(100), nullable=False, default="assistant")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tools: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    template_id: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AgentConfigurationORM(BaseModel, TeamScopedMixin):
    """Per-team agent configuration."""

    __tablename__ = "agent_configurations"
    __table_args__ = (UniqueConstraint("team_id", "agent_id", name="uq_agent_config_team_agent"),)

    agent_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("agents.id", ondelete="CASCADE"), nullable=False
    )
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    daily_run_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    daily_spend: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    monthly_budget_cap: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    current_month_spend: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    can_create_work_orders: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_modify_tasks: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_access_client_data: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_send_emails: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_modify_deliverables: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_access_financial_data: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_modify_playbooks: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    tool_permissions: Mapped[dict[str, bool]] = mapped_column(JSON, nullable=False, default=dict)


class GlobalAISettingsORM(BaseModel, TeamScopedMixin):
    """Team-wide AI policy; one row per team."""

    __tablename__ = "global_ai_settings"
    __table_args__ = (UniqueConstraint("team_id", name="uq_global_ai_settings_team"),)

    total_monthly_budget: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    current_month_spend: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    per_project_budget_cap: Mapped[float | None] = mapped_column(Float, nullable=True)

    require_approval_external_sends: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    require_approval_financial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    require_approval_contracts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    require_approval_scope_changes: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    pm_copilot_auto_suggest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pm_copilot_auto_approval_threshold: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.8
    )


class AgentWorkflowStateORM(BaseModel, TeamScopedMixin):
    """Durable, pausable state of a single agent workflow."""

    __tablename__ = "agent_workflow_states"

    agent_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("agents.id", ondelete="SET NULL"), nullable=True
    )
    workflow_class: Mapped[str] = mapped_column(String(255), nullable=False)
    current_node: Mapped[str] = mapped_column(String(255), nullable=False, default="start")
    state_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    paused_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    resumed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    pause_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approval_required: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )


class AgentActivityLogORM(BaseModel, TeamScopedMixin):
    """Append-only activity record."""

    __tablename__ = "agent_activity_logs"

    agent_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False, index=True)
    run_type: Mapped[str] = mapped_column(String(100), nullable=False)
    input: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    output: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    tokens_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    approval_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    tool_calls: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    context_accessed: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    agent_workflow_state_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("agent_workflow_states.id", ondelete="SET NULL"),
        nullable=True,
    )
