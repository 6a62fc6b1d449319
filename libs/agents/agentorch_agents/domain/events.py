from typing import Any
from uuid import UUID

from agentorch_common.events.base_events import DomainEvent


class AgentWorkflowStarted(DomainEvent):
    """Event emitted when an agent workflow state is created."""

    def __init__(
        self, state_id: UUID, team_id: str, workflow_class: str, agent_id: UUID | None = None
    ) -> None:
        super().__init__(
            state_id=state_id, team_id=team_id, workflow_class=workflow_class, agent_id=agent_id
        )


class AgentWorkflowPaused(DomainEvent):
    """Event emitted when an agent workflow is paused."""

    def __init__(self, state_id: UUID, team_id: str, reason: str) -> None:
        super().__init__(state_id=state_id, team_id=team_id, reason=reason)


class AgentWorkflowResumed(DomainEvent):
    """Event emitted when a paused agent workflow resumes."""

    def __init__(self, state_id: UUID, team_id: str, resume_data: dict[str, Any]) -> None:
        super().__init__(state_id=state_id, team_id=team_id, resume_data=resume_data)


class AgentWorkflowCompleted(DomainEvent):
    """Event emitted when an agent workflow completes."""

    def __init__(self, state_id: UUID, team_id: str) -> None:
        super().__init__(state_id=state_id, team_id=team_id)


class AgentSpendRecorded(DomainEvent):
    """Event emitted after a cost is deducted from an agent configuration."""

    def __init__(self, configuration_id: UUID, team_id: str, agent_id: UUID, amount: float):
        super().__init__(
            configuration_id=configuration_id, team_id=team_id, agent_id=agent_id, amount=amount
        )
