"""Status-change listener that fans matching triggers out to chain jobs."""

from datetime import datetime, timedelta
from uuid import uuid4

from agentorch_agents.infrastructure.repository import GlobalAISettingsRepository
from agentorch_chains.infrastructure.repository import AgentChainRepository
from agentorch_common.base.repository_factory import RepositoryFactory
from agentorch_common.config.settings import get_orchestration_settings
from agentorch_common.events.broker import EventBroker
from agentorch_common.logging.correlation import (
    OrchestrationLogger,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from agentorch_common.workflow import (
    OrchestrationWorkflows,
    WorkflowExecutor,
    job_workflow_config,
)
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.conditions import evaluate_conditions
from ..domain.enums import TriggerEntityType
from ..domain.events import ChainTriggerDispatched, PMCopilotTriggerDispatched
from ..domain.models import AgentTrigger, TriggerActor, TriggerEntity
from ..infrastructure.repository import AgentTriggerDispatchRepository, AgentTriggerRepository

logger = OrchestrationLogger(__name__)

_PLANNED_WORK_KEYS = ("tasks", "deliverables", "tasks_count", "deliverables_count")


class TriggerListener:
    """Matches entity status changes against team triggers and enqueues chain jobs.

    Events arrive from outside any request, so repositories are opened with a
    system context for the entity's team.
    """

    def __init__(
        self,
        session: AsyncSession,
        workflow_executor: WorkflowExecutor,
        event_broker: EventBroker | None = None,
        deduplication_window_minutes: int | None = None,
    ):
        self.session = session
        self.workflow_executor = workflow_executor
        self.event_broker = event_broker
        if deduplication_window_minutes is None:
            deduplication_window_minutes = (
                get_orchestration_settings().TRIGGER_DEDUP_WINDOW_MINUTES
            )
        self.deduplication_window_minutes = deduplication_window_minutes

    def _factory(self, team_id: str) -> RepositoryFactory:
        return RepositoryFactory.for_team(self.session, team_id)

    async def handle_status_change(
        self,
        entity: TriggerEntity,
        from_status: str | None,
        to_status: str,
        actor: TriggerActor | None = None,
    ) -> list[AgentTrigger]:
        """Dispatch every enabled trigger matching the transition.

        Returns the triggers that were dispatched, in priority order.
        """
        if not entity.team_id:
            logger.warning(
                f"Status change for {entity.type.value} {entity.id} has no team; skipping"
            )
            return []

        if get_correlation_id() is None:
            set_correlation_id(generate_correlation_id())

        factory = self._factory(entity.team_id)
        triggers = factory.create_repository(AgentTriggerRepository)
        dispatches = factory.create_repository(AgentTriggerDispatchRepository)
        chains = factory.create_repository(AgentChainRepository)

        candidates = await triggers.find_candidates(entity.type, from_status, to_status)
        dispatched: list[AgentTrigger] = []
        for trigger in candidates:
            if not trigger.matches_transition(from_status, to_status):
                continue
            if not evaluate_conditions(trigger.trigger_conditions, entity):
                logger.debug(
                    "Trigger conditions not met", team_id=entity.team_id, trigger_id=trigger.id
                )
                continue
            chain = await chains.get_chain(trigger.agent_chain_id)
            if chain is None or not chain.enabled:
                logger.info(
                    "Trigger chain missing or disabled; skipping",
                    team_id=entity.team_id,
                    trigger_id=trigger.id,
                    chain_id=trigger.agent_chain_id,
                )
                continue
            if await self._recently_dispatched(dispatches, trigger, entity):
                logger.info(
                    f"Trigger already dispatched for {entity.type.value} {entity.id}",
                    team_id=entity.team_id,
                    trigger_id=trigger.id,
                )
                continue

            await self._dispatch(triggers, dispatches, trigger, entity, actor)
            dispatched.append(trigger)
        return dispatched

    async def handle_entity_created(
        self, entity: TriggerEntity, actor: TriggerActor | None = None
    ) -> str | None:
        """Enqueue a PM copilot job for a new work order when the team enables it.

        Returns the workflow id, or None when nothing was enqueued.
        """
        if entity.type is not TriggerEntityType.WORK_ORDER or not entity.team_id:
            return None

        settings_repository = self._factory(entity.team_id).create_repository(
            GlobalAISettingsRepository
        )
        settings = await settings_repository.get_for_team()
        if settings is None or not settings.pm_copilot_auto_suggest:
            return None
        if self._has_planned_work(entity):
            logger.debug(
                f"Work order {entity.id} already has planned work; not suggesting",
                team_id=entity.team_id,
            )
            return None

        workflow_id = f"pm-copilot-{entity.id}-{uuid4().hex[:8]}"
        await self.workflow_executor.start_workflow(
            OrchestrationWorkflows.PROCESS_PM_COPILOT_TRIGGER,
            workflow_id,
            {
                "team_id": entity.team_id,
                "work_order": {**entity.attributes, "id": entity.id},
                "actor": actor.model_dump(mode="json") if actor else None,
            },
            job_workflow_config(),
        )
        logger.info(f"Enqueued PM copilot for work order {entity.id}", team_id=entity.team_id)
        await self._publish(PMCopilotTriggerDispatched(entity.team_id, entity.id, workflow_id))
        return workflow_id

    async def _recently_dispatched(
        self,
        dispatches: AgentTriggerDispatchRepository,
        trigger: AgentTrigger,
        entity: TriggerEntity,
    ) -> bool:
        window = trigger.deduplication_window_minutes
        if window is None:
            window = self.deduplication_window_minutes
        if not window:
            return False
        last = await dispatches.last_dispatch_at(trigger.id, entity.type, entity.id)
        return last is not None and datetime.now() - last < timedelta(minutes=window)

    async def _dispatch(
        self,
        triggers: AgentTriggerRepository,
        dispatches: AgentTriggerDispatchRepository,
        trigger: AgentTrigger,
        entity: TriggerEntity,
        actor: TriggerActor | None,
    ) -> str:
        workflow_id = f"chain-trigger-{trigger.id}-{entity.id}-{uuid4().hex[:8]}"
        now = datetime.now()
        await dispatches.record_dispatch(
            trigger.id, entity.type, entity.id, workflow_id=workflow_id, dispatched_at=now
        )
        await triggers.mark_triggered(trigger.id, at=now)
        trigger.last_triggered_at = now

        await self.workflow_executor.start_workflow(
            OrchestrationWorkflows.PROCESS_CHAIN_TRIGGER,
            workflow_id,
            {
                "trigger_id": str(trigger.id),
                "team_id": trigger.team_id,
                "entity": entity.model_dump(mode="json"),
                "actor": actor.model_dump(mode="json") if actor else None,
            },
            job_workflow_config(),
        )
        logger.info(
            f"Dispatched trigger '{trigger.name}' for {entity.type.value} {entity.id}",
            team_id=trigger.team_id,
            trigger_id=trigger.id,
            chain_id=trigger.agent_chain_id,
        )
        await self._publish(
            ChainTriggerDispatched(
                trigger_id=trigger.id,
                team_id=trigger.team_id,
                chain_id=trigger.agent_chain_id,
                entity_type=entity.type.value,
                entity_id=entity.id,
                workflow_id=workflow_id,
            )
        )
        return workflow_id

    @staticmethod
    def _has_planned_work(entity: TriggerEntity) -> bool:
        return any(entity.attributes.get(key) for key in _PLANNED_WORK_KEYS)

    async def _publish(self, event) -> None:
        if self.event_broker is not None:
            await self.event_broker.publish(event)
