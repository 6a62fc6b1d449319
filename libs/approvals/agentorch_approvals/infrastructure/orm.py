"""Inbox item ORM model."""

from datetime import datetime

from agentorch_common.base.models import BaseModel, TeamScopedMixin
from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column


class InboxItemORM(BaseModel, TeamScopedMixin):
    """Approval or notification item shown to a team's humans."""

    __tablename__ = "inbox_items"
    __table_args__ = (
        Index("ix_inbox_items_approvable", "approvable_type", "approvable_id"),
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False, default="approval")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content_preview: Mapped[str] = mapped_column(Text, nullable=False, default="")
    full_content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source_type: Mapped[str] = mapped_column(String(50), nullable=False, default="ai_agent")
    source_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approvable_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approvable_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    urgency: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
