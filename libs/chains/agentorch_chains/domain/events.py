from uuid import UUID

from agentorch_common.events.base_events import DomainEvent


class ChainExecutionStarted(DomainEvent):
    """Event emitted when a chain execution is created."""

    def __init__(self, execution_id: UUID, team_id: str, chain_id: UUID) -> None:
        super().__init__(execution_id=execution_id, team_id=team_id, chain_id=chain_id)


class ChainStepCompleted(DomainEvent):
    """Event emitted after a step output is recorded and the next step chosen."""

    def __init__(
        self, execution_id: UUID, team_id: str, step_index: int, next_step_index: int
    ) -> None:
        super().__init__(
            execution_id=execution_id,
            team_id=team_id,
            step_index=step_index,
            next_step_index=next_step_index,
        )


class ChainParallelGroupDispatched(DomainEvent):
    """Event emitted when the steps of a parallel group are enqueued."""

    def __init__(
        self, execution_id: UUID, team_id: str, step_group: str, step_indices: list[int]
    ) -> None:
        super().__init__(
            execution_id=execution_id,
            team_id=team_id,
            step_group=step_group,
            step_indices=step_indices,
        )


class ChainExecutionPaused(DomainEvent):
    """Event emitted when a chain execution is paused."""

    def __init__(self, execution_id: UUID, team_id: str, reason: str) -> None:
        super().__init__(execution_id=execution_id, team_id=team_id, reason=reason)


class ChainExecutionResumed(DomainEvent):
    """Event emitted when a paused chain execution resumes."""

    def __init__(self, execution_id: UUID, team_id: str) -> None:
        super().__init__(execution_id=execution_id, team_id=team_id)


class ChainExecutionCompleted(DomainEvent):
    """Event emitted when a chain execution completes."""

    def __init__(self, execution_id: UUID, team_id: str) -> None:
        super().__init__(execution_id=execution_id, team_id=team_id)


class ChainExecutionFailed(DomainEvent):
    """Event emitted when a chain execution fails."""

    def __init__(self, execution_id: UUID, team_id: str, error_message: str) -> None:
        super().__init__(execution_id=execution_id, team_id=team_id, error_message=error_message)
