from uuid import UUID

from agentorch_common.events.base_events import DomainEvent


class ChainTriggerDispatched(DomainEvent):
    """Event emitted when a matching trigger enqueues a chain job."""

    def __init__(
        self,
        trigger_id: UUID,
        team_id: str,
        chain_id: UUID,
        entity_type: str,
        entity_id: str,
        workflow_id: str,
    ) -> None:
        super().__init__(
            trigger_id=trigger_id,
            team_id=team_id,
            chain_id=chain_id,
            entity_type=entity_type,
            entity_id=entity_id,
            workflow_id=workflow_id,
        )


class PMCopilotTriggerDispatched(DomainEvent):
    """Event emitted when a new work order enqueues a PM copilot job."""

    def __init__(self, team_id: str, work_order_id: str, workflow_id: str) -> None:
        super().__init__(team_id=team_id, work_order_id=work_order_id, workflow_id=workflow_id)
