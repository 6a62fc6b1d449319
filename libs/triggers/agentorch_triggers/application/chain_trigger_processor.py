"""Worker-side processing of dispatched trigger jobs."""

from typing import Any
from uuid import UUID

from agentorch_agents.application.agent_orchestrator import AgentOrchestrator
from agentorch_agents.domain.models import AgentWorkflowState
from agentorch_agents.infrastructure.repository import AgentRepository
from agentorch_chains.application.chain_orchestrator import ChainOrchestrator
from agentorch_chains.domain.models import AgentChainExecution
from agentorch_chains.infrastructure.repository import AgentChainRepository
from agentorch_common.logging.correlation import OrchestrationLogger

from ..domain.models import AgentTrigger, TriggerActor, TriggerEntity
from ..infrastructure.repository import AgentTriggerRepository

logger = OrchestrationLogger(__name__)

_TIMESTAMP_ATTRIBUTES = ("created_at", "updated_at", "deleted_at")


class ChainTriggerProcessor:
    """Starts the chain of a dispatched trigger and runs it until it blocks."""

    def __init__(
        self,
        trigger_repository: AgentTriggerRepository,
        chain_repository: AgentChainRepository,
        chain_orchestrator: ChainOrchestrator,
        max_iterations: int | None = None,
    ):
        self.trigger_repository = trigger_repository
        self.chain_repository = chain_repository
        self.chain_orchestrator = chain_orchestrator
        self.max_iterations = max_iterations

    async def process(
        self,
        trigger_id: UUID,
        entity: TriggerEntity,
        actor: TriggerActor | None = None,
    ) -> AgentChainExecution | None:
        trigger = await self.trigger_repository.get_trigger(trigger_id)
        if trigger is None:
            logger.warning("Trigger no longer exists; skipping job", trigger_id=trigger_id)
            return None

        chain = await self.chain_repository.get_chain(trigger.agent_chain_id)
        if chain is None or not chain.enabled:
            logger.warning(
                "Trigger chain missing or disabled; skipping job",
                team_id=trigger.team_id,
                trigger_id=trigger.id,
                chain_id=trigger.agent_chain_id,
            )
            return None

        execution = await self.chain_orchestrator.execute_chain(
            chain,
            trigger_entity=entity.ref,
            initial_context=build_initial_context(trigger, entity, actor),
        )
        return await self.chain_orchestrator.run_until_blocked(
            execution, max_iterations=self.max_iterations
        )


def build_initial_context(
    trigger: AgentTrigger, entity: TriggerEntity, actor: TriggerActor | None
) -> dict[str, Any]:
    """Seed accumulated context for a triggered chain."""
    return {
        "trigger": {
            "id": str(trigger.id),
            "name": trigger.name,
            "entity_type": trigger.entity_type.value,
            "status_from": trigger.status_from,
            "status_to": trigger.status_to,
        },
        "entity": {
            "type": entity.type.value,
            "id": entity.id,
            "attributes": {
                key: value
                for key, value in entity.attributes.items()
                if key not in _TIMESTAMP_ATTRIBUTES
            },
        },
        "triggered_by": {
            "user_id": actor.id if actor else None,
            "user_name": actor.name if actor else None,
            "user_email": actor.email if actor else None,
        },
    }


class PMCopilotTriggerProcessor:
    """Runs the PM copilot agent for a newly created work order."""

    def __init__(
        self,
        agent_repository: AgentRepository,
        agent_orchestrator: AgentOrchestrator,
        agent_code: str,
    ):
        self.agent_repository = agent_repository
        self.agent_orchestrator = agent_orchestrator
        self.agent_code = agent_code

    async def process(self, work_order: dict[str, Any]) -> AgentWorkflowState | None:
        agent = await self.agent_repository.get_by_code(self.agent_code)
        if agent is None or not agent.is_active:
            logger.warning(
                f"PM copilot agent '{self.agent_code}' is unavailable; skipping",
                team_id=self.agent_orchestrator.team_id,
            )
            return None
        state = await self.agent_orchestrator.invoke_pm_copilot(work_order, agent)
        logger.info(
            f"Started PM copilot for work order {work_order.get('id')}",
            team_id=self.agent_orchestrator.team_id,
            agent_id=agent.id,
        )
        return state
