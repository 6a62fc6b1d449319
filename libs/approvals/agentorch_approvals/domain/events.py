from uuid import UUID

from agentorch_common.events.base_events import DomainEvent


class ApprovalRequested(DomainEvent):
    """Event emitted when an agent action is routed to the inbox for approval."""

    def __init__(self, inbox_item_id: UUID, team_id: str, state_id: UUID, urgency: str) -> None:
        super().__init__(
            inbox_item_id=inbox_item_id, team_id=team_id, state_id=state_id, urgency=urgency
        )


class ApprovalGranted(DomainEvent):
    """Event emitted when a human approves an inbox item."""

    def __init__(
        self, inbox_item_id: UUID, team_id: str, approver_id: str, state_id: UUID | None = None
    ) -> None:
        super().__init__(
            inbox_item_id=inbox_item_id,
            team_id=team_id,
            approver_id=approver_id,
            state_id=state_id,
        )


class ApprovalRejected(DomainEvent):
    """Event emitted when a human rejects an inbox item."""

    def __init__(
        self,
        inbox_item_id: UUID,
        team_id: str,
        rejector_id: str,
        reason: str,
        state_id: UUID | None = None,
    ) -> None:
        super().__init__(
            inbox_item_id=inbox_item_id,
            team_id=team_id,
            rejector_id=rejector_id,
            reason=reason,
            state_id=state_id,
        )
