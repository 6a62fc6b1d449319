"""Agent memory ORM model."""

from datetime import datetime
from typing import Any
from uuid import UUID

from agentorch_common.base.models import BaseModel, TeamScopedMixin
from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column


class AgentMemoryORM(BaseModel, TeamScopedMixin):
    """A memory value, unique per team, scope, scope id and key."""

    __tablename__ = "agent_memories"
    __table_args__ = (
        UniqueConstraint("team_id", "scope", "scope_id", "key", name="uq_agent_memory_key"),
        Index("ix_agent_memories_scope", "team_id", "scope", "scope_id"),
    )

    agent_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("agents.id", ondelete="SET NULL"), nullable=True
    )
    scope: Mapped[str] = mapped_column(String(32), nullable=False)
    scope_type: Mapped[str] = mapped_column(String(100), nullable=False)
    scope_id: Mapped[str] = mapped_column(String(255), nullable=False)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
