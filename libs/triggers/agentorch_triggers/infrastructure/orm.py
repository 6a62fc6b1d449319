"""Trigger ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from agentorch_common.base.models import BaseModel, TeamScopedMixin
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column


class AgentTriggerORM(BaseModel, TeamScopedMixin):
    """Status-change trigger bound to a chain."""

    __tablename__ = "agent_triggers"
    __table_args__ = (
        Index("ix_agent_triggers_lookup", "team_id", "entity_type", "enabled", "status_to"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    status_from: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status_to: Mapped[str | None] = mapped_column(String(50), nullable=True)
    agent_chain_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("agent_chains.id", ondelete="CASCADE"), nullable=False
    )
    trigger_conditions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_triggered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class AgentTriggerDispatchORM(BaseModel, TeamScopedMixin):
    """Dispatch history per (trigger, entity)."""

    __tablename__ = "agent_trigger_dispatches"
    __table_args__ = (
        Index(
            "ix_trigger_dispatches_entity",
            "agent_trigger_id",
            "entity_type",
            "entity_id",
            "dispatched_at",
        ),
    )

    agent_trigger_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("agent_triggers.id", ondelete="CASCADE"), nullable=False
    )
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    dispatched_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    workflow_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
