"""Activities behind the orchestration job workflows.

Each activity opens its own session through ``ActivityContext`` and calls back
into the orchestrators; commit happens when the context exits cleanly.
"""

import logging

from agentorch_triggers.domain.models import TriggerActor, TriggerEntity
from temporalio import activity

from ..interfaces import ActivityDependencies
from ..models import (
    ExecuteChainStepRequest,
    FailChainStepRequest,
    JobResult,
    ProcessChainTriggerRequest,
    ProcessPMCopilotTriggerRequest,
)
from .dependencies import ActivityContext

logger = logging.getLogger(__name__)


class OrchestrationActivities:
    """Activity function references to avoid hardcoded strings."""

    process_chain_trigger = "process_chain_trigger_activity"
    execute_chain_step = "execute_chain_step_activity"
    fail_chain_step = "fail_chain_step_activity"
    process_pm_copilot_trigger = "process_pm_copilot_trigger_activity"


def make_orchestration_activities(dependencies: ActivityDependencies):
    """Factory function to create orchestration activities with injected dependencies.

    Args:
        dependencies: Basic dependencies needed to create services

    Returns:
        List of activity functions ready for worker registration
    """

    @activity.defn(name=OrchestrationActivities.process_chain_trigger)
    async def process_chain_trigger_activity(request: ProcessChainTriggerRequest) -> JobResult:
        """Start the trigger's chain and run it until it blocks."""
        entity = TriggerEntity.model_validate(request.entity)
        actor = TriggerActor.model_validate(request.actor) if request.actor else None

        async with ActivityContext(dependencies, request.team_id) as ctx:
            execution = await ctx.chain_trigger_processor().process(
                request.trigger_id, entity, actor
            )
            if execution is None:
                return JobResult.skipped("trigger or chain unavailable")
            return JobResult(
                status="completed",
                chain_execution_id=str(execution.id),
                execution_status=execution.execution_status.value,
            )

    @activity.defn(name=OrchestrationActivities.execute_chain_step)
    async def execute_chain_step_activity(request: ExecuteChainStepRequest) -> JobResult:
        """Run one parallel member, then advance the chain if the group closed."""
        async with ActivityContext(dependencies, request.team_id) as ctx:
            orchestrator = ctx.chain_orchestrator()
            execution = await orchestrator.execution_repository.get_execution(
                request.chain_execution_id
            )
            if execution is None:
                logger.warning(
                    f"Chain execution {request.chain_execution_id} not found "
                    f"for step {request.step_index}"
                )
                return JobResult.skipped("execution not found")

            step = await orchestrator.execute_parallel_step(
                execution, request.step_index, continue_chain=True
            )
            if step is None:
                return JobResult.skipped("execution already terminal")

            return JobResult(
                status="completed",
                chain_execution_id=str(execution.id),
                execution_status=execution.execution_status.value,
                workflow_state_id=(
                    str(step.agent_workflow_state_id) if step.agent_workflow_state_id else None
                ),
                details={"step_index": request.step_index},
            )

    @activity.defn(name=OrchestrationActivities.fail_chain_step)
    async def fail_chain_step_activity(request: FailChainStepRequest) -> JobResult:
        """Record a parallel member whose job exhausted its retries."""
        async with ActivityContext(dependencies, request.team_id) as ctx:
            orchestrator = ctx.chain_orchestrator()
            execution = await orchestrator.execution_repository.get_execution(
                request.chain_execution_id
            )
            if execution is None:
                return JobResult.skipped("execution not found")

            await orchestrator.fail_parallel_step(
                execution, request.step_index, request.error_message, continue_chain=True
            )
            return JobResult(
                status="failed",
                chain_execution_id=str(execution.id),
                execution_status=execution.execution_status.value,
                details={"step_index": request.step_index, "error": request.error_message},
            )

    @activity.defn(name=OrchestrationActivities.process_pm_copilot_trigger)
    async def process_pm_copilot_trigger_activity(
        request: ProcessPMCopilotTriggerRequest,
    ) -> JobResult:
        """Run the PM copilot agent for a new work order."""
        async with ActivityContext(dependencies, request.team_id) as ctx:
            state = await ctx.pm_copilot_processor().process(request.work_order)
            if state is None:
                return JobResult.skipped("pm copilot agent unavailable")
            return JobResult(status="completed", workflow_state_id=str(state.id))

    return [
        process_chain_trigger_activity,
        execute_chain_step_activity,
        fail_chain_step_activity,
        process_pm_copilot_trigger_activity,
    ]
