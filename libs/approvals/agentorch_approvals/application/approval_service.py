"""Routes agent actions that need a human decision through the inbox."""

import json
from datetime import datetime
from uuid import UUID

from agentorch_agents.application.agent_orchestrator import AgentOrchestrator
from agentorch_agents.domain.models import Agent, AgentWorkflowState
from agentorch_agents.infrastructure.repository import AgentRepository
from agentorch_common.base.references import EntityLoaderRegistry, EntityRef
from agentorch_common.events.broker import EventBroker
from agentorch_common.exceptions import TerminalStateError
from agentorch_common.logging.correlation import OrchestrationLogger

from ..domain.enums import InboxItemType, SourceType, Urgency
from ..domain.events import ApprovalGranted, ApprovalRejected, ApprovalRequested
from ..domain.models import WORKFLOW_STATE_REF, Approver, InboxItem
from ..infrastructure.repository import InboxItemRepository

logger = OrchestrationLogger(__name__)

TITLE_PREFIX = "Agent action requires approval: "
TITLE_DESCRIPTION_LENGTH = 50
UNKNOWN_AGENT = "Unknown Agent"


class ApprovalService:
    """Creates approval inbox items for paused workflow states and resolves them.

    Approving resumes the referenced state. Rejecting records the decision in
    the state's ``state_data`` and leaves the state paused; the caller decides
    whether to resume or abandon it.
    """

    def __init__(
        self,
        orchestrator: AgentOrchestrator,
        inbox_repository: InboxItemRepository,
        agent_repository: AgentRepository | None = None,
        event_broker: EventBroker | None = None,
        entity_loaders: EntityLoaderRegistry | None = None,
    ):
        self.orchestrator = orchestrator
        self.inbox_repository = inbox_repository
        self.agent_repository = agent_repository
        self.event_broker = event_broker
        self.entity_loaders = entity_loaders or EntityLoaderRegistry()
        if not self.entity_loaders.has(WORKFLOW_STATE_REF):
            self.entity_loaders.register(WORKFLOW_STATE_REF, self._load_workflow_state)

    @property
    def team_id(self) -> str:
        return self.inbox_repository.team_id

    async def request_approval(
        self,
        state: AgentWorkflowState,
        action_description: str,
        urgency: Urgency = Urgency.NORMAL,
    ) -> InboxItem:
        """Pause ``state`` and create an approval inbox item pointing at it.

        Args:
            state: The workflow state requiring approval
            action_description: What the agent wants to do
            urgency: Urgency shown in the inbox

        Returns:
            The created inbox item
        """
        await self.orchestrator.pause(state, "Awaiting human approval")

        agent = await self._load_agent(state)
        agent_name = agent.name if agent else UNKNOWN_AGENT

        item = await self.inbox_repository.create_item(
            approvable=EntityRef.of(WORKFLOW_STATE_REF, state.id),
            type=InboxItemType.APPROVAL,
            title=TITLE_PREFIX + truncate(action_description, TITLE_DESCRIPTION_LENGTH),
            content_preview=f"{agent_name} requests approval: {action_description}",
            full_content=self._build_full_content(state, agent_name, action_description),
            source_id=f"agent-{agent.id if agent else 'unknown'}",
            source_name=agent_name,
            source_type=SourceType.AI_AGENT,
            urgency=urgency,
        )

        await self.orchestrator.update_node(
            state,
            state.current_node,
            {
                "inbox_item_id": str(item.id),
                "approval_requested_at": datetime.now().isoformat(),
            },
        )

        logger.info(
            f"Agent approval requested (state {state.id}, inbox item {item.id}): "
            f"{action_description}",
            team_id=self.team_id,
            agent_id=state.agent_id,
        )
        await self._publish(
            ApprovalRequested(
                inbox_item_id=item.id,
                team_id=self.team_id,
                state_id=state.id,
                urgency=Urgency(urgency).value,
            )
        )
        return item

    async def handle_approval(self, item: InboxItem, approver: Approver) -> InboxItem:
        """Resume the referenced workflow state and mark ``item`` approved."""
        self._ensure_pending(item)

        state = await self._get_workflow_state(item)
        if state is not None:
            await self.orchestrator.resume(
                state,
                {
                    "approved": True,
                    "approver_id": approver.id,
                    "approver_name": approver.name,
                    "approved_at": datetime.now().isoformat(),
                },
            )

        approved = await self.inbox_repository.mark_approved(item.id, approver.id)
        item.approved_at = approved.approved_at
        item.approved_by = approved.approved_by

        logger.info(
            f"Agent action approved (inbox item {item.id}, "
            f"state {state.id if state else None}) by {approver.id}",
            team_id=self.team_id,
        )
        await self._publish(
            ApprovalGranted(
                inbox_item_id=item.id,
                team_id=self.team_id,
                approver_id=approver.id,
                state_id=state.id if state else None,
            )
        )
        return approved

    async def handle_rejection(
        self, item: InboxItem, rejector: Approver, reason: str
    ) -> InboxItem:
        """Record the rejection on the referenced state and mark ``item`` rejected.

        The state stays paused.
        """
        self._ensure_pending(item)

        state = await self._get_workflow_state(item)
        if state is not None:
            await self.orchestrator.update_node(
                state,
                state.current_node,
                {
                    "rejected": True,
                    "rejection_reason": reason,
                    "rejected_by": rejector.id,
                    "rejected_at": datetime.now().isoformat(),
                },
            )

        rejected = await self.inbox_repository.mark_rejected(item.id, rejector.id, reason)
        item.rejected_at = rejected.rejected_at
        item.rejected_by = rejected.rejected_by
        item.rejection_reason = rejected.rejection_reason

        logger.info(
            f"Agent action rejected (inbox item {item.id}, "
            f"state {state.id if state else None}) by {rejector.id}: {reason}",
            team_id=self.team_id,
        )
        await self._publish(
            ApprovalRejected(
                inbox_item_id=item.id,
                team_id=self.team_id,
                rejector_id=rejector.id,
                reason=reason,
                state_id=state.id if state else None,
            )
        )
        return rejected

    async def find_pending_approval(self, state: AgentWorkflowState) -> InboxItem | None:
        return await self.inbox_repository.find_pending_for(
            EntityRef.of(WORKFLOW_STATE_REF, state.id)
        )

    async def has_pending_approval(self, state: AgentWorkflowState) -> bool:
        return await self.find_pending_approval(state) is not None

    async def list_pending(self) -> list[InboxItem]:
        return await self.inbox_repository.list_pending()

    def _ensure_pending(self, item: InboxItem) -> None:
        if not item.is_pending():
            raise TerminalStateError(
                f"Inbox item {item.id} is already {item.status.value}",
                inbox_item_id=str(item.id),
            )

    async def get_approvable(self, item: InboxItem):
        """The entity ``item`` asks about, or None when its type has no loader."""
        return await self.entity_loaders.resolve(item.approvable)

    async def _get_workflow_state(self, item: InboxItem) -> AgentWorkflowState | None:
        if not item.references_workflow_state():
            return None
        return await self.get_approvable(item)

    async def _load_workflow_state(self, id: str) -> AgentWorkflowState | None:
        return await self.orchestrator.state_repository.get_state(UUID(id))

    async def _load_agent(self, state: AgentWorkflowState) -> Agent | None:
        if self.agent_repository is None or state.agent_id is None:
            return None
        return await self.agent_repository.get_agent(state.agent_id)

    def _build_full_content(
        self, state: AgentWorkflowState, agent_name: str, action_description: str
    ) -> str:
        workflow = state.workflow_class.rsplit(".", 1)[-1]
        content = (
            f"Agent: {agent_name}\n"
            f"Workflow: {workflow}\n"
            f"Current Step: {state.current_node}\n\n"
            f"Action Requiring Approval:\n{action_description}\n\n"
        )
        if "input" in state.state_data:
            content += "Input Data:\n"
            content += json.dumps(state.state_data["input"], indent=4, default=str) + "\n"
        return content

    async def _publish(self, event) -> None:
        if self.event_broker is not None:
            await self.event_broker.publish(event)


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
