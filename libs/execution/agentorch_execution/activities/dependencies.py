"""Per-activity service construction.

Every activity attempt opens a fresh session and builds team-scoped services
under a system user context for the job's team.
"""

from types import TracebackType

from agentorch_agents.application.agent_orchestrator import AgentOrchestrator
from agentorch_agents.infrastructure.repository import (
    AgentRepository,
    AgentWorkflowStateRepository,
)
from agentorch_approvals.application.approval_service import ApprovalService
from agentorch_approvals.infrastructure.repository import InboxItemRepository
from agentorch_chains.application.chain_orchestrator import ChainOrchestrator
from agentorch_chains.infrastructure.repository import (
    AgentChainExecutionRepository,
    AgentChainExecutionStepRepository,
    AgentChainRepository,
)
from agentorch_common.auth.context import UserContext
from agentorch_common.base.repository_factory import RepositoryFactory
from agentorch_common.logging.correlation import generate_correlation_id, set_correlation_id
from agentorch_context.application.context_builder import ContextBuilder
from agentorch_memory.application.memory_service import MemoryService
from agentorch_memory.infrastructure.repository import AgentMemoryRepository
from agentorch_triggers.application.chain_trigger_processor import (
    ChainTriggerProcessor,
    PMCopilotTriggerProcessor,
)
from agentorch_triggers.infrastructure.repository import AgentTriggerRepository
from sqlalchemy.ext.asyncio import AsyncSession

from ..interfaces import ActivityDependencies


class ActivityContext:
    """Async context manager yielding services bound to one session and team."""

    def __init__(
        self,
        dependencies: ActivityDependencies,
        team_id: str,
        correlation_id: str | None = None,
    ):
        self.dependencies = dependencies
        self.correlation_id = correlation_id or generate_correlation_id()
        self.user_context = UserContext.system(team_id)
        self._session_cm = None
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> "ActivityContext":
        set_correlation_id(self.correlation_id)
        self._session_cm = self.dependencies.session_factory()
        self.session = await self._session_cm.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self._session_cm.__aexit__(exc_type, exc, tb)
        self.session = None

    @property
    def factory(self) -> RepositoryFactory:
        if self.session is None:
            raise RuntimeError("ActivityContext used outside 'async with'")
        return RepositoryFactory(self.session, self.user_context)

    @property
    def settings(self):
        return self.dependencies.settings

    def agent_orchestrator(self) -> AgentOrchestrator:
        return AgentOrchestrator(
            self.factory.create_repository(AgentWorkflowStateRepository),
            self.dependencies.event_broker,
            pm_copilot_workflow_class=self.settings.orchestration.PM_COPILOT_WORKFLOW_CLASS,
        )

    def chain_orchestrator(self) -> ChainOrchestrator:
        factory = self.factory
        memory_service = MemoryService(factory.create_repository(AgentMemoryRepository))
        agent_orchestrator = self.agent_orchestrator()
        agent_repository = factory.create_repository(AgentRepository)
        return ChainOrchestrator(
            chain_repository=factory.create_repository(AgentChainRepository),
            execution_repository=factory.create_repository(AgentChainExecutionRepository),
            step_repository=factory.create_repository(AgentChainExecutionStepRepository),
            agent_orchestrator=agent_orchestrator,
            context_builder=ContextBuilder(memory_service),
            memory_service=memory_service,
            approval_service=ApprovalService(
                agent_orchestrator,
                factory.create_repository(InboxItemRepository),
                agent_repository,
                self.dependencies.event_broker,
            ),
            agent_repository=agent_repository,
            workflow_executor=self.dependencies.workflow_executor,
            event_broker=self.dependencies.event_broker,
        )

    def chain_trigger_processor(self) -> ChainTriggerProcessor:
        factory = self.factory
        return ChainTriggerProcessor(
            factory.create_repository(AgentTriggerRepository),
            factory.create_repository(AgentChainRepository),
            self.chain_orchestrator(),
            max_iterations=self.settings.orchestration.CHAIN_MAX_AUTO_STEPS,
        )

    def pm_copilot_processor(self) -> PMCopilotTriggerProcessor:
        return PMCopilotTriggerProcessor(
            self.factory.create_repository(AgentRepository),
            self.agent_orchestrator(),
            self.settings.orchestration.PM_COPILOT_AGENT_CODE,
        )
