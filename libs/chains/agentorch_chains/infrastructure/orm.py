"""Chain ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from agentorch_common.base.models import BaseModel, TeamScopedMixin
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column


class AgentChainTemplateORM(BaseModel):
    """Chain template; ``team_id`` is NULL for system templates."""

    __tablename__ = "agent_chain_templates"

    team_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    chain_definition: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)


class AgentChainORM(BaseModel, TeamScopedMixin):
    """Team-owned chain definition."""

    __tablename__ = "agent_chains"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    chain_definition: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    agent_chain_template_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("agent_chain_templates.id", ondelete="SET NULL"),
        nullable=True,
    )


class AgentChainExecutionORM(BaseModel, TeamScopedMixin):
    """One execution of a chain."""

    __tablename__ = "agent_chain_executions"
    __table_args__ = (
        Index("ix_chain_executions_status", "team_id", "execution_status"),
        Index("ix_chain_executions_triggerable", "triggerable_type", "triggerable_id"),
    )

    agent_chain_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("agent_chains.id", ondelete="CASCADE"), nullable=False
    )
    current_step_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    execution_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    chain_context: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    paused_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    resumed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    triggerable_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    triggerable_id: Mapped[str | None] = mapped_column(String(255), nullable=True)


class AgentChainExecutionStepORM(BaseModel, TeamScopedMixin):
    """Record of one step attempt within an execution."""

    __tablename__ = "agent_chain_execution_steps"
    __table_args__ = (
        Index("ix_chain_steps_execution_index", "agent_chain_execution_id", "step_index"),
    )

    agent_chain_execution_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("agent_chain_executions.id", ondelete="CASCADE"),
        nullable=False,
    )
    step_index: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    agent_workflow_state_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("agent_workflow_states.id", ondelete="SET NULL"),
        nullable=True,
    )
    output_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
