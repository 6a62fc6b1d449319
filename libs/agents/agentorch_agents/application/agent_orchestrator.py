"""Lifecycle of single-agent workflow states."""

from datetime import datetime
from typing import Any
from uuid import UUID

from agentorch_common.events.broker import EventBroker
from agentorch_common.exceptions import OrchestrationValidationError, ResourceNotFoundError
from agentorch_common.logging.correlation import OrchestrationLogger

from ..domain.events import (
    AgentWorkflowCompleted,
    AgentWorkflowPaused,
    AgentWorkflowResumed,
    AgentWorkflowStarted,
)
from ..domain.models import Agent, AgentWorkflowState
from ..infrastructure.repository import AgentWorkflowStateRepository

logger = OrchestrationLogger(__name__)

PM_COPILOT_WORKFLOW = "pm_copilot"


class AgentOrchestrator:
    """Creates, pauses, resumes and completes durable agent workflow states.

    The team is the one carried by the repository's user context.
    """

    def __init__(
        self,
        state_repository: AgentWorkflowStateRepository,
        event_broker: EventBroker | None = None,
        pm_copilot_workflow_class: str = PM_COPILOT_WORKFLOW,
    ):
        self.state_repository = state_repository
        self.event_broker = event_broker
        self.pm_copilot_workflow_class = pm_copilot_workflow_class

    @property
    def team_id(self) -> str:
        return self.state_repository.team_id

    async def execute(
        self,
        workflow_class: str,
        input: dict[str, Any],
        agent: Agent | None = None,
        customization_id: UUID | str | None = None,
    ) -> AgentWorkflowState:
        """Create a new running workflow state for ``workflow_class``."""
        state = await self.state_repository.create_state(
            workflow_class=workflow_class,
            agent_id=agent.id if agent else None,
            state_data={
                "input": input,
                "customization_id": str(customization_id) if customization_id else None,
                "started_at": datetime.now().isoformat(),
            },
        )

        logger.info(
            f"Workflow started: {workflow_class} (state {state.id})",
            team_id=self.team_id,
            agent_id=agent.id if agent else None,
        )
        await self._publish(
            AgentWorkflowStarted(
                state_id=state.id,
                team_id=self.team_id,
                workflow_class=workflow_class,
                agent_id=agent.id if agent else None,
            )
        )
        return state

    async def pause(self, state: AgentWorkflowState, reason: str) -> AgentWorkflowState:
        """Pause ``state`` pending human approval."""
        state.paused_at = datetime.now()
        state.pause_reason = reason
        state.approval_required = True
        saved = await self._save(state)

        logger.info(f"Workflow paused (state {state.id}): {reason}", team_id=self.team_id)
        await self._publish(
            AgentWorkflowPaused(state_id=state.id, team_id=self.team_id, reason=reason)
        )
        return saved

    async def resume(
        self, state: AgentWorkflowState, resume_data: dict[str, Any] | None = None
    ) -> AgentWorkflowState:
        """Resume a paused state, recording ``resume_data`` as ``approval_data``."""
        resume_data = resume_data or {}
        now = datetime.now()
        state.state_data = {
            **state.state_data,
            "approval_data": resume_data,
            "resumed_at": now.isoformat(),
        }
        state.paused_at = None
        state.resumed_at = now
        state.approval_required = False
        saved = await self._save(state)

        logger.info(f"Workflow resumed (state {state.id})", team_id=self.team_id)
        await self._publish(
            AgentWorkflowResumed(state_id=state.id, team_id=self.team_id, resume_data=resume_data)
        )
        return saved

    async def complete(
        self, state: AgentWorkflowState, result: dict[str, Any] | None = None
    ) -> AgentWorkflowState:
        now = datetime.now()
        state.state_data = {
            **state.state_data,
            "result": result or {},
            "completed_at": now.isoformat(),
        }
        state.current_node = "completed"
        state.completed_at = now
        saved = await self._save(state)

        logger.info(f"Workflow completed (state {state.id})", team_id=self.team_id)
        await self._publish(AgentWorkflowCompleted(state_id=state.id, team_id=self.team_id))
        return saved

    async def update_node(
        self,
        state: AgentWorkflowState,
        node_name: str,
        additional_data: dict[str, Any] | None = None,
    ) -> AgentWorkflowState:
        """Move ``state`` to ``node_name``, merging ``additional_data`` into state_data."""
        state.current_node = node_name
        state.state_data = {**state.state_data, **(additional_data or {})}
        return await self._save(state)

    async def invoke_pm_copilot(
        self, work_order: dict[str, Any], agent: Agent
    ) -> AgentWorkflowState:
        """Start the PM copilot workflow for a work order snapshot."""
        work_order_id = work_order.get("id")
        if work_order_id is None:
            raise OrchestrationValidationError("Work order snapshot must include an 'id'")
        return await self.execute(
            self.pm_copilot_workflow_class,
            {"work_order_id": str(work_order_id), "work_order": work_order},
            agent=agent,
        )

    async def get_state(self, state_id: UUID) -> AgentWorkflowState:
        state = await self.state_repository.get_state(state_id)
        if state is None:
            raise ResourceNotFoundError(
                f"Workflow state {state_id} not found", state_id=str(state_id)
            )
        return state

    async def get_pending_approvals(self) -> list[AgentWorkflowState]:
        """Paused states in the team that are waiting on a human."""
        return await self.state_repository.list_pending_approvals()

    async def _save(self, state: AgentWorkflowState) -> AgentWorkflowState:
        saved = await self.state_repository.save_state(state)
        state.updated_at = saved.updated_at
        return saved

    async def _publish(self, event) -> None:
        if self.event_broker is not None:
            await self.event_broker.publish(event)
