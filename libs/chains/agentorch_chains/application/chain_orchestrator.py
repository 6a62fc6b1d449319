"""The chain execution state machine.

Executions move ``pending -> running -> (paused <-> running) -> completed | failed``.
Completed and failed executions are terminal: every mutating operation on them
is a logged no-op. Step outputs recorded in ``chain_context.steps`` are never
removed by later steps, pauses or failures.
"""

from datetime import datetime
from typing import Any

from agentorch_agents.application.agent_orchestrator import AgentOrchestrator
from agentorch_agents.domain.models import Agent, AgentWorkflowState
from agentorch_agents.infrastructure.repository import AgentRepository
from agentorch_approvals.application.approval_service import ApprovalService
from agentorch_approvals.domain.models import InboxItem
from agentorch_common.base.references import EntityRef
from agentorch_common.base.unit_of_work import transaction
from agentorch_common.config import get_orchestration_settings
from agentorch_common.events.broker import EventBroker
from agentorch_common.exceptions import (
    DependencyUnavailableError,
    OrchestrationValidationError,
    ResourceNotFoundError,
    TeamAccessDenied,
)
from agentorch_common.logging.correlation import OrchestrationLogger
from agentorch_common.workflow import (
    OrchestrationWorkflows,
    WorkflowExecutor,
    job_workflow_config,
)
from agentorch_context.application.context_builder import ContextBuilder
from agentorch_context.domain.facts import ProjectFacts
from agentorch_context.domain.models import AgentContext, ChainContext
from agentorch_memory.application.memory_service import MemoryService

from ..domain.definition import ChainStepDefinition
from ..domain.enums import BranchAction, ChainExecutionStatus, ChainStepStatus
from ..domain.events import (
    ChainExecutionCompleted,
    ChainExecutionFailed,
    ChainExecutionPaused,
    ChainExecutionResumed,
    ChainExecutionStarted,
    ChainParallelGroupDispatched,
    ChainStepCompleted,
)
from ..domain.models import AgentChain, AgentChainExecution, AgentChainExecutionStep
from ..domain.output_transformer import OutputTransformer
from ..infrastructure.repository import (
    AgentChainExecutionRepository,
    AgentChainExecutionStepRepository,
    AgentChainRepository,
)

logger = OrchestrationLogger(__name__)

TERMINATE = -1
ACTIVE_GROUP_KEY = "active_parallel_group"


class ChainOrchestrator:
    """Runs chain executions step by step for the team of its repositories.

    Step outputs are supplied by the caller (the agent executor). The
    orchestrator records them, applies the step's output transformer, picks
    the next step from the step's branching rules and persists the execution
    after every transition.
    """

    def __init__(
        self,
        chain_repository: AgentChainRepository,
        execution_repository: AgentChainExecutionRepository,
        step_repository: AgentChainExecutionStepRepository,
        agent_orchestrator: AgentOrchestrator,
        context_builder: ContextBuilder,
        memory_service: MemoryService,
        approval_service: ApprovalService | None = None,
        agent_repository: AgentRepository | None = None,
        workflow_executor: WorkflowExecutor | None = None,
        event_broker: EventBroker | None = None,
        output_transformer: OutputTransformer | None = None,
    ):
        self.chain_repository = chain_repository
        self.execution_repository = execution_repository
        self.step_repository = step_repository
        self.agent_orchestrator = agent_orchestrator
        self.context_builder = context_builder
        self.memory_service = memory_service
        self.approval_service = approval_service
        self.agent_repository = agent_repository
        self.workflow_executor = workflow_executor
        self.event_broker = event_broker
        self.output_transformer = output_transformer or OutputTransformer()

    @property
    def team_id(self) -> str:
        return self.execution_repository.team_id

    async def execute_chain(
        self,
        chain: AgentChain,
        trigger_entity: EntityRef | None = None,
        initial_context: dict[str, Any] | None = None,
    ) -> AgentChainExecution:
        """Create a running execution of ``chain`` positioned at step 0.

        Args:
            chain: The chain to execute
            trigger_entity: Entity whose event started the chain, if any
            initial_context: Seed for ``chain_context.accumulated_context``
        """
        if chain.team_id != self.team_id:
            raise TeamAccessDenied(
                resource_type="agent_chain",
                resource_id=str(chain.id),
                current_team_id=self.team_id,
                resource_team_id=chain.team_id,
            )

        now = datetime.now()
        execution = await self.execution_repository.create_execution(
            agent_chain_id=chain.id,
            current_step_index=0,
            execution_status=ChainExecutionStatus.RUNNING,
            chain_context={
                "steps": {},
                "accumulated_context": dict(initial_context or {}),
                "metadata": {"chain_name": chain.name, "started_at": now.isoformat()},
            },
            started_at=now,
            triggerable_type=trigger_entity.type if trigger_entity else None,
            triggerable_id=trigger_entity.id if trigger_entity else None,
        )

        logger.info(
            f"Chain execution started: {chain.name}"
            + (f" (triggered by {trigger_entity})" if trigger_entity else ""),
            team_id=self.team_id,
            chain_id=chain.id,
            execution_id=execution.id,
        )
        await self._publish(
            ChainExecutionStarted(
                execution_id=execution.id, team_id=self.team_id, chain_id=chain.id
            )
        )
        return execution

    async def execute_step(
        self, execution: AgentChainExecution, step_output: dict[str, Any] | None = None
    ) -> AgentChainExecutionStep | None:
        """Run the step at ``current_step_index`` and record ``step_output``.

        Returns the step record, or None when nothing was executed: the
        execution is terminal or paused, another worker already moved it
        past this step, or it just completed because the index is past the
        last step.
        """
        if not self._can_advance(execution, "execute step"):
            return None

        chain = await self._get_chain(execution)
        steps = chain.steps
        index = execution.current_step_index
        async with self._transition():
            if not await self._lock_unchanged(execution, "execute step"):
                return None
            if index >= len(steps):
                await self.complete(execution)
                return None

            step_def = steps[index]
            step = await self.step_repository.create_step(
                execution.id, index, ChainStepStatus.RUNNING, started_at=datetime.now()
            )
            logger.info(
                "Chain step execution started",
                team_id=self.team_id,
                execution_id=execution.id,
                step_index=index,
                agent_id=step_def.agent_id,
            )

            state = await self._start_step_workflow(execution, step_def, index)
            if state is not None:
                step.agent_workflow_state_id = state.id
                step = await self.step_repository.save_step(step)

            return await self._complete_step(
                execution, step, step_output or {}, step_def, len(steps)
            )

    async def execute_parallel_step_group(
        self, execution: AgentChainExecution
    ) -> list[AgentChainExecutionStep]:
        """Start every step in the current step's parallel group.

        Each member gets a ``running`` step record and its own
        ``ExecuteChainStepWorkflow`` job. A current step that is not parallel
        is executed sequentially instead.
        """
        if not self._can_advance(execution, "start parallel group"):
            return []

        chain = await self._get_chain(execution)
        index = execution.current_step_index
        if index >= len(chain.steps):
            await self.complete(execution)
            return []

        step_def = chain.steps[index]
        if not step_def.is_parallel:
            step = await self.execute_step(execution)
            return [step] if step else []

        if self.workflow_executor is None:
            raise DependencyUnavailableError(
                "Parallel chain steps need a workflow executor",
                dependency="workflow_executor",
                execution_id=str(execution.id),
            )

        group = step_def.step_group
        indices = chain.chain_definition.group_indices(group)
        async with self._transition():
            if not await self._lock_unchanged(execution, "start parallel group"):
                return []
            active = execution.context.metadata.get(ACTIVE_GROUP_KEY) or {}
            if active.get("name") == group:
                logger.info(
                    f"Parallel step group '{group}' already dispatched",
                    team_id=self.team_id,
                    execution_id=execution.id,
                )
                return []
            started = [
                await self.step_repository.create_step(
                    execution.id, step_index, ChainStepStatus.RUNNING, started_at=datetime.now()
                )
                for step_index in indices
            ]
            execution.chain_context = execution.context.with_metadata(
                {ACTIVE_GROUP_KEY: {"name": group, "step_ids": [str(s.id) for s in started]}}
            ).to_dict()
            await self._save(execution)

        for step in started:
            await self.workflow_executor.start_workflow(
                OrchestrationWorkflows.EXECUTE_CHAIN_STEP,
                f"chain-execution-{execution.id}-step-{step.step_index}-{step.id}",
                {
                    "chain_execution_id": str(execution.id),
                    "team_id": self.team_id,
                    "step_index": step.step_index,
                },
                job_workflow_config(),
            )

        logger.info(
            f"Parallel step group '{group}' dispatched ({len(indices)} steps)",
            team_id=self.team_id,
            execution_id=execution.id,
        )
        await self._publish(
            ChainParallelGroupDispatched(
                execution_id=execution.id,
                team_id=self.team_id,
                step_group=group,
                step_indices=indices,
            )
        )
        return started

    async def execute_parallel_step(
        self,
        execution: AgentChainExecution,
        step_index: int,
        step_output: dict[str, Any] | None = None,
        continue_chain: bool = False,
    ) -> AgentChainExecutionStep | None:
        """Run one member of a parallel group and record its output.

        Called by the ``ExecuteChainStepWorkflow`` job. Returns None when the
        execution is already terminal. With ``continue_chain`` the job that
        closes the group keeps advancing the chain; every other job stops.
        """
        if execution.is_terminal():
            logger.info(
                f"Chain execution already {execution.execution_status.value}, skipping step",
                team_id=self.team_id,
                execution_id=execution.id,
                step_index=step_index,
            )
            return None

        chain = await self._get_chain(execution)
        step_def = chain.chain_definition.step(step_index)
        if step_def is None:
            raise OrchestrationValidationError(
                f"Step index {step_index} out of bounds ({len(chain.steps)} steps)",
                execution_id=str(execution.id),
            )

        step = await self.step_repository.find_step(execution.id, step_index)
        if self._already_settled(execution, step):
            return step
        if step is None:
            step = await self.step_repository.create_step(
                execution.id, step_index, ChainStepStatus.RUNNING, started_at=datetime.now()
            )

        state = await self._start_step_workflow(execution, step_def, step_index)
        if state is not None:
            step.agent_workflow_state_id = state.id
            step = await self.step_repository.save_step(step)

        return await self.complete_parallel_step(
            execution, step_index, step_output or {}, continue_chain=continue_chain
        )

    async def complete_parallel_step(
        self,
        execution: AgentChainExecution,
        step_index: int,
        output: dict[str, Any],
        continue_chain: bool = False,
    ) -> AgentChainExecutionStep:
        """Record a parallel member's output; the last member to settle closes the group."""
        chain = await self._get_chain(execution)
        step_def = chain.chain_definition.step(step_index)
        if step_def is None or not step_def.is_parallel:
            raise OrchestrationValidationError(
                f"Step {step_index} is not part of a parallel group",
                execution_id=str(execution.id),
            )

        step = await self.step_repository.find_step(execution.id, step_index)
        if step is None:
            raise ResourceNotFoundError(
                f"No step record for step {step_index} of execution {execution.id}",
                execution_id=str(execution.id),
            )
        if self._already_settled(execution, step):
            return step

        async with self._transition():
            step.status = ChainStepStatus.COMPLETED
            step.completed_at = datetime.now()
            step.output_data = self._transform(output, step_def)
            step = await self.step_repository.save_step(step)
            logger.info(
                "Parallel chain step completed",
                team_id=self.team_id,
                execution_id=execution.id,
                step_index=step_index,
            )
            closed = await self.complete_parallel_group(execution, step_def.step_group)

        if closed and continue_chain:
            await self.run_until_blocked(execution)
        return step

    async def fail_parallel_step(
        self,
        execution: AgentChainExecution,
        step_index: int,
        error_message: str,
        continue_chain: bool = False,
    ) -> AgentChainExecutionStep | None:
        """Mark a parallel member failed; the group barrier treats it as settled."""
        chain = await self._get_chain(execution)
        step_def = chain.chain_definition.step(step_index)
        closed = False
        async with self._transition():
            step = await self.step_repository.find_step(execution.id, step_index)
            if step is None:
                return None
            if self._already_settled(execution, step):
                return step
            step.status = ChainStepStatus.FAILED
            step.completed_at = datetime.now()
            step.output_data = {**step.output_data, "error": error_message}
            step = await self.step_repository.save_step(step)
            logger.error(
                f"Parallel chain step failed: {error_message}",
                team_id=self.team_id,
                execution_id=execution.id,
                step_index=step_index,
            )
            if step_def is not None and step_def.is_parallel:
                closed = await self.complete_parallel_group(execution, step_def.step_group)

        if closed and continue_chain:
            await self.run_until_blocked(execution)
        return step

    async def complete_parallel_group(
        self, execution: AgentChainExecution, step_group: str
    ) -> bool:
        """Advance past ``step_group`` once none of its steps is still running.

        The execution row is reloaded under a row lock first and ``execution``
        is refreshed from it, so of several workers holding copies of the same
        execution exactly one closes the group. Member outputs are merged into
        ``chain_context.steps`` and summarized under
        ``metadata.parallel_group_<name>``. Returns True when the group was
        closed by this call.
        """
        async with self._transition():
            await self._lock(execution)
            if not self._can_advance(execution, "complete parallel group"):
                return False

            chain = await self._get_chain(execution)
            indices = chain.chain_definition.group_indices(step_group)
            active = execution.context.metadata.get(ACTIVE_GROUP_KEY) or {}
            if active.get("name") != step_group or execution.current_step_index not in indices:
                logger.debug(
                    f"Parallel group '{step_group}' is not the active group",
                    team_id=self.team_id,
                    execution_id=execution.id,
                )
                return False

            step_ids = set(active.get("step_ids") or [])
            members = {
                step.step_index: step
                for step in await self.step_repository.list_for_execution(execution.id, indices)
                if str(step.id) in step_ids
            }
            settled = all(s.status.is_settled for s in members.values())
            if len(members) < len(step_ids) or not settled:
                logger.debug(
                    f"Parallel group '{step_group}' still running",
                    team_id=self.team_id,
                    execution_id=execution.id,
                )
                return False

            context = execution.context
            for step_index, step in sorted(members.items()):
                if step.status is ChainStepStatus.COMPLETED:
                    agent_id = chain.steps[step_index].agent_id
                    context = context.with_step_output(step_index, step.output_data, agent_id)
            metadata = {k: v for k, v in context.metadata.items() if k != ACTIVE_GROUP_KEY}
            metadata[f"parallel_group_{step_group}"] = {
                "outputs": {str(i): s.output_data for i, s in sorted(members.items())},
                "completed_at": datetime.now().isoformat(),
            }
            context = context.model_copy(update={"metadata": metadata})

            next_index = max(indices) + 1
            execution.chain_context = context.to_dict()
            execution.current_step_index = min(next_index, len(chain.steps))
            await self._save(execution)
            logger.info(
                f"Parallel group '{step_group}' completed, next step {next_index}",
                team_id=self.team_id,
                execution_id=execution.id,
            )

            if next_index >= len(chain.steps):
                await self.complete(execution)
        return True

    async def pause(self, execution: AgentChainExecution, reason: str) -> AgentChainExecution:
        """Pause a non-terminal execution, recording ``reason`` in its context."""
        if execution.is_terminal():
            self._warn_terminal(execution, "pause")
            return execution

        execution.execution_status = ChainExecutionStatus.PAUSED
        execution.paused_at = datetime.now()
        execution.chain_context = execution.context.with_pause_reason(reason).to_dict()
        await self._save(execution)

        logger.info(
            f"Chain execution paused: {reason}", team_id=self.team_id, execution_id=execution.id
        )
        await self._publish(
            ChainExecutionPaused(execution_id=execution.id, team_id=self.team_id, reason=reason)
        )
        return execution

    async def resume(
        self, execution: AgentChainExecution, resume_data: dict[str, Any] | None = None
    ) -> AgentChainExecution:
        """Resume a paused execution; anything else is left untouched."""
        if not execution.is_paused():
            logger.warning(
                f"Cannot resume chain execution in status {execution.execution_status.value}",
                team_id=self.team_id,
                execution_id=execution.id,
            )
            return execution

        execution.execution_status = ChainExecutionStatus.RUNNING
        execution.resumed_at = datetime.now()
        execution.chain_context = execution.context.with_resume_data(resume_data or {}).to_dict()
        await self._save(execution)

        logger.info("Chain execution resumed", team_id=self.team_id, execution_id=execution.id)
        await self._publish(ChainExecutionResumed(execution_id=execution.id, team_id=self.team_id))
        return execution

    async def complete(
        self, execution: AgentChainExecution, result: dict[str, Any] | None = None
    ) -> AgentChainExecution:
        """Mark the execution completed and clear its chain-scoped memory."""
        if execution.is_terminal():
            self._warn_terminal(execution, "complete")
            return execution

        now = datetime.now()
        async with self._transition():
            execution.execution_status = ChainExecutionStatus.COMPLETED
            execution.completed_at = now
            execution.chain_context = execution.context.with_metadata(
                {"completed_at": now.isoformat(), "result": result or {}}
            ).to_dict()
            await self._save(execution)
            await self._cleanup_chain_memory(execution)

        steps = await self.step_repository.list_for_execution(execution.id)
        logger.info(
            f"Chain execution completed ({len(steps)} step records)",
            team_id=self.team_id,
            execution_id=execution.id,
        )
        await self._publish(
            ChainExecutionCompleted(execution_id=execution.id, team_id=self.team_id)
        )
        return execution

    async def fail(self, execution: AgentChainExecution, error_message: str) -> AgentChainExecution:
        """Mark the execution failed along with its in-flight step.

        Outputs already recorded for earlier steps are kept.
        """
        if execution.is_terminal():
            self._warn_terminal(execution, "fail")
            return execution

        now = datetime.now()
        index = execution.current_step_index
        async with self._transition():
            step = await self.step_repository.find_step(
                execution.id, index, ChainStepStatus.RUNNING
            )
            if step is not None:
                step.status = ChainStepStatus.FAILED
                step.completed_at = now
                step.output_data = {**step.output_data, "error": error_message}
                await self.step_repository.save_step(step)
            else:
                await self.step_repository.create_step(
                    execution.id,
                    index,
                    ChainStepStatus.FAILED,
                    started_at=now,
                    completed_at=now,
                    output_data={"error": error_message},
                )

            execution.execution_status = ChainExecutionStatus.FAILED
            execution.failed_at = now
            execution.error_message = error_message
            execution.chain_context = execution.context.with_metadata(
                {"failed_at": now.isoformat(), "error": error_message}
            ).to_dict()
            await self._save(execution)
            await self._cleanup_chain_memory(execution)

        logger.error(
            f"Chain execution failed: {error_message}",
            team_id=self.team_id,
            execution_id=execution.id,
            step_index=index,
        )
        await self._publish(
            ChainExecutionFailed(
                execution_id=execution.id, team_id=self.team_id, error_message=error_message
            )
        )
        return execution

    async def request_approval(
        self, execution: AgentChainExecution, reason: str
    ) -> InboxItem | None:
        """Pause the execution and route an approval request through the inbox.

        The inbox item is attached to the workflow state of the current step,
        or of the latest step that ran an agent workflow. Without one the chain
        is only paused.
        """
        if execution.is_terminal():
            self._warn_terminal(execution, "request approval")
            return None

        await self.pause(execution, reason)

        item = None
        state = await self._current_step_state(execution)
        if state is not None and self.approval_service is not None:
            item = await self.approval_service.request_approval(
                state, f"Chain approval required: {reason}"
            )

        logger.info(
            f"Chain approval requested: {reason}", team_id=self.team_id, execution_id=execution.id
        )
        return item

    async def get_pending_approvals(self) -> list[AgentChainExecution]:
        """Paused executions of the team."""
        return await self.execution_repository.list_by_status(ChainExecutionStatus.PAUSED)

    async def build_step_context(
        self,
        execution: AgentChainExecution,
        agent: Agent,
        max_tokens: int = 4000,
        project: ProjectFacts | None = None,
    ) -> AgentContext:
        """Agent context for the current step, filtered by that step's rules."""
        chain = await self._get_chain(execution)
        step_def = chain.chain_definition.step(execution.current_step_index)
        return await self.context_builder.build_from_chain_context(
            execution.context,
            execution,
            agent,
            max_tokens,
            project=project,
            filter_rules=step_def.filter_rules() if step_def else None,
        )

    async def run_until_blocked(
        self, execution: AgentChainExecution, max_iterations: int | None = None
    ) -> AgentChainExecution:
        """Advance the execution until it is terminal, paused or waiting on a parallel group."""
        max_iterations = max_iterations or get_orchestration_settings().CHAIN_MAX_AUTO_STEPS
        iterations = 0
        while iterations < max_iterations and execution.is_running():
            chain = await self._get_chain(execution)
            step_def = chain.chain_definition.step(execution.current_step_index)
            if step_def is not None and step_def.is_parallel:
                active = execution.context.metadata.get(ACTIVE_GROUP_KEY) or {}
                if active.get("name") != step_def.step_group:
                    await self.execute_parallel_step_group(execution)
                    break
                if not await self.complete_parallel_group(execution, step_def.step_group):
                    break
                iterations += 1
                continue
            if await self.execute_step(execution) is None:
                break
            iterations += 1

        if iterations >= max_iterations:
            logger.warning(
                f"Stopped advancing chain after {iterations} steps",
                team_id=self.team_id,
                execution_id=execution.id,
            )
        return execution

    async def get_execution(self, execution_id) -> AgentChainExecution:
        execution = await self.execution_repository.get_execution(execution_id)
        if execution is None:
            raise ResourceNotFoundError(
                f"Chain execution {execution_id} not found", execution_id=str(execution_id)
            )
        return execution

    async def _complete_step(
        self,
        execution: AgentChainExecution,
        step: AgentChainExecutionStep,
        output: dict[str, Any],
        step_def: ChainStepDefinition,
        total_steps: int,
    ) -> AgentChainExecutionStep:
        index = step.step_index
        output = self._transform(output, step_def)

        step.status = ChainStepStatus.COMPLETED
        step.completed_at = datetime.now()
        step.output_data = output
        step = await self.step_repository.save_step(step)

        context = execution.context.with_step_output(index, output, step_def.agent_id)
        next_index = self._evaluate_next_step(execution, context, step_def, index, total_steps)

        execution.chain_context = context.to_dict()
        if next_index == TERMINATE or next_index >= total_steps:
            if next_index != TERMINATE:
                execution.current_step_index = total_steps
            await self._save(execution)
            await self.complete(execution)
            return step

        execution.current_step_index = next_index
        await self._save(execution)

        logger.info(
            f"Chain step completed, next step {next_index}",
            team_id=self.team_id,
            execution_id=execution.id,
            step_index=index,
        )
        await self._publish(
            ChainStepCompleted(
                execution_id=execution.id,
                team_id=self.team_id,
                step_index=index,
                next_step_index=next_index,
            )
        )
        return step

    def _evaluate_next_step(
        self,
        execution: AgentChainExecution,
        context: ChainContext,
        step_def: ChainStepDefinition,
        index: int,
        total_steps: int,
    ) -> int:
        """Next step index, or ``TERMINATE``. The first matching rule wins."""
        default_next = index + 1
        if default_next >= total_steps:
            return default_next

        for rule in step_def.next_step_conditions:
            if rule.condition is not None and not context.evaluate_condition(rule.condition):
                continue

            logger.info(
                f"Chain branching: {rule.condition or '<always>'} -> {rule.action.value}"
                + (f" {rule.target_step}" if rule.target_step is not None else ""),
                team_id=self.team_id,
                execution_id=execution.id,
                step_index=index,
            )
            match rule.action:
                case BranchAction.SKIP:
                    return default_next + 1
                case BranchAction.GOTO:
                    return rule.target_step if rule.target_step is not None else default_next
                case BranchAction.TERMINATE:
                    return TERMINATE

        return default_next

    async def _start_step_workflow(
        self, execution: AgentChainExecution, step_def: ChainStepDefinition, index: int
    ) -> AgentWorkflowState | None:
        """Start the step's agent workflow, when it declares one and the agent exists."""
        if not step_def.workflow_class or self.agent_repository is None:
            return None
        agent = await self.agent_repository.get_agent(step_def.agent_id)
        if agent is None:
            logger.warning(
                f"Agent {step_def.agent_id} not found, step runs without a workflow",
                team_id=self.team_id,
                execution_id=execution.id,
                step_index=index,
            )
            return None

        agent_context = await self.build_step_context(execution, agent)
        context = execution.context
        workflow_input = {
            "chain_execution_id": str(execution.id),
            "step_index": index,
            "previous_outputs": {str(i): out for i, out in context.get_all_outputs().items()},
            "triggerable_type": execution.triggerable_type,
            "triggerable_id": execution.triggerable_id,
            "context": agent_context.to_dict(),
        }
        return await self.agent_orchestrator.execute(
            step_def.workflow_class, workflow_input, agent=agent
        )

    async def _current_step_state(
        self, execution: AgentChainExecution
    ) -> AgentWorkflowState | None:
        """Workflow state of the current step, else of the most recent step that ran one."""
        records = [
            record
            for record in await self.step_repository.list_for_execution(execution.id)
            if record.agent_workflow_state_id is not None
        ]
        if not records:
            return None
        current = [r for r in records if r.step_index == execution.current_step_index]
        record = max(current or records, key=lambda r: r.created_at)
        return await self.agent_orchestrator.state_repository.get_state(
            record.agent_workflow_state_id
        )

    def _transform(self, output: dict[str, Any], step_def: ChainStepDefinition) -> dict[str, Any]:
        if step_def.output_transformer is None:
            return dict(output)
        return self.output_transformer.transform(dict(output), step_def.output_transformer)

    async def _get_chain(self, execution: AgentChainExecution) -> AgentChain:
        chain = await self.chain_repository.get_chain(execution.agent_chain_id)
        if chain is None:
            raise ResourceNotFoundError(
                f"Chain {execution.agent_chain_id} not found",
                chain_id=str(execution.agent_chain_id),
            )
        return chain

    def _can_advance(self, execution: AgentChainExecution, operation: str) -> bool:
        if execution.is_terminal():
            self._warn_terminal(execution, operation)
            return False
        if execution.is_paused():
            logger.warning(
                f"Cannot {operation} on paused chain execution",
                team_id=self.team_id,
                execution_id=execution.id,
            )
            return False
        return True

    def _warn_terminal(self, execution: AgentChainExecution, operation: str) -> None:
        logger.warning(
            f"Cannot {operation} on {execution.execution_status.value} chain execution",
            team_id=self.team_id,
            execution_id=execution.id,
        )

    async def _cleanup_chain_memory(self, execution: AgentChainExecution) -> None:
        deleted = await self.memory_service.clear_chain_memory(execution.id)
        if deleted > 0:
            logger.info(
                f"Chain memory cleaned up ({deleted} entries)",
                team_id=self.team_id,
                execution_id=execution.id,
            )

    def _already_settled(
        self, execution: AgentChainExecution, step: AgentChainExecutionStep | None
    ) -> bool:
        if step is None or not step.status.is_settled:
            return False
        logger.info(
            f"Parallel chain step already {step.status.value}, skipping",
            team_id=self.team_id,
            execution_id=execution.id,
            step_index=step.step_index,
        )
        return True

    def _transition(self):
        """One commit for every write of a state transition."""
        return transaction(self.execution_repository.session)

    async def _lock(self, execution: AgentChainExecution) -> None:
        """Refresh ``execution`` in place from its row, locked until the transition ends."""
        stored = await self.execution_repository.lock_execution(execution.id)
        if stored is None:
            raise ResourceNotFoundError(
                f"Chain execution {execution.id} not found", execution_id=str(execution.id)
            )
        for field in AgentChainExecution.model_fields:
            setattr(execution, field, getattr(stored, field))

    async def _lock_unchanged(self, execution: AgentChainExecution, operation: str) -> bool:
        """Lock and refresh; False when the stored status or step index moved on."""
        expected = (execution.execution_status, execution.current_step_index)
        await self._lock(execution)
        if (execution.execution_status, execution.current_step_index) == expected:
            return True
        logger.warning(
            f"Cannot {operation}: chain execution already moved to step "
            f"{execution.current_step_index} ({execution.execution_status.value})",
            team_id=self.team_id,
            execution_id=execution.id,
        )
        return False

    async def _save(self, execution: AgentChainExecution) -> AgentChainExecution:
        saved = await self.execution_repository.save_execution(execution)
        execution.updated_at = saved.updated_at
        return saved

    async def _publish(self, event) -> None:
        if self.event_broker is not None:
            await self.event_broker.publish(event)
