"""Inbox item domain models."""

from datetime import datetime
from uuid import UUID, uuid4

from agentorch_common.base.references import EntityRef
from pydantic import BaseModel, Field

from .enums import ApprovalStatus, InboxItemType, SourceType, Urgency

# Type tag used in approvable references that point at agent workflow states.
WORKFLOW_STATE_REF = "agent_workflow_state"


class Approver(BaseModel):
    """The human resolving an approval request."""

    id: str
    name: str = ""


class InboxItem(BaseModel):
    """A human-facing approval or notification item."""

    id: UUID = Field(default_factory=uuid4)
    team_id: str
    type: InboxItemType = InboxItemType.APPROVAL
    title: str = Field(..., min_length=1, max_length=255)
    content_preview: str = ""
    full_content: str = ""
    source_type: SourceType = SourceType.AI_AGENT
    source_id: str | None = None
    source_name: str | None = None
    approvable_type: str | None = None
    approvable_id: str | None = None
    urgency: Urgency = Urgency.NORMAL
    approved_at: datetime | None = None
    approved_by: str | None = None
    rejected_at: datetime | None = None
    rejected_by: str | None = None
    rejection_reason: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    class Config:
        from_attributes = True

    @property
    def approvable(self) -> EntityRef | None:
        return EntityRef.from_columns(self.approvable_type, self.approvable_id)

    @property
    def status(self) -> ApprovalStatus:
        if self.approved_at is not None:
            return ApprovalStatus.APPROVED
        if self.rejected_at is not None:
            return ApprovalStatus.REJECTED
        return ApprovalStatus.PENDING

    def is_pending(self) -> bool:
        return self.status is ApprovalStatus.PENDING

    def references_workflow_state(self) -> bool:
        return self.approvable_type == WORKFLOW_STATE_REF and self.approvable_id is not None
