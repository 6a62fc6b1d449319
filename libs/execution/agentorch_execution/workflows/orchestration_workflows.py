"""Job workflows started by the trigger listener and the chain orchestrator.

Each workflow runs one activity that does the work against the database.
Workflow arguments are plain dicts so the enqueuing side needs no import of
these classes.
"""

from datetime import timedelta
from typing import Any

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from ..activities.orchestration_activities import OrchestrationActivities
    from ..models import (
        ExecuteChainStepRequest,
        FailChainStepRequest,
        JobResult,
        ProcessChainTriggerRequest,
        ProcessPMCopilotTriggerRequest,
    )

ACTIVITY_TIMEOUT = timedelta(minutes=30)

# Domain errors that a retry cannot fix.
NON_RETRYABLE_ERRORS = [
    "ChainDefinitionError",
    "OrchestrationValidationError",
    "ResourceNotFoundError",
    "TeamAccessDenied",
    "TerminalStateError",
    "ValidationError",
]

JOB_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=60),
    backoff_coefficient=2.0,
    maximum_interval=timedelta(minutes=10),
    maximum_attempts=3,
    non_retryable_error_types=NON_RETRYABLE_ERRORS,
)

FAILURE_RECORD_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=1),
    maximum_interval=timedelta(seconds=30),
    maximum_attempts=5,
)


@workflow.defn(name="ProcessChainTriggerWorkflow")
class ProcessChainTriggerWorkflow:
    """Start the chain bound to a dispatched trigger."""

    @workflow.run
    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        request = ProcessChainTriggerRequest.model_validate(args)
        workflow.logger.info(f"Processing chain trigger {request.trigger_id}")
        result: JobResult = await workflow.execute_activity(
            OrchestrationActivities.process_chain_trigger,
            request,
            start_to_close_timeout=ACTIVITY_TIMEOUT,
            retry_policy=JOB_RETRY_POLICY,
            result_type=JobResult,
        )
        return result.model_dump()


@workflow.defn(name="ExecuteChainStepWorkflow")
class ExecuteChainStepWorkflow:
    """Run one member of a parallel step group.

    When the activity exhausts its retries the member is recorded as failed so
    the group barrier can still settle.
    """

    @workflow.run
    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        request = ExecuteChainStepRequest.model_validate(args)
        try:
            result: JobResult = await workflow.execute_activity(
                OrchestrationActivities.execute_chain_step,
                request,
                start_to_close_timeout=ACTIVITY_TIMEOUT,
                retry_policy=JOB_RETRY_POLICY,
                result_type=JobResult,
            )
        except ActivityError as e:
            cause = e.cause or e
            workflow.logger.error(
                f"Chain step {request.step_index} of execution "
                f"{request.chain_execution_id} failed: {cause}"
            )
            await workflow.execute_activity(
                OrchestrationActivities.fail_chain_step,
                FailChainStepRequest(
                    chain_execution_id=request.chain_execution_id,
                    team_id=request.team_id,
                    step_index=request.step_index,
                    error_message=str(cause),
                ),
                start_to_close_timeout=timedelta(minutes=2),
                retry_policy=FAILURE_RECORD_RETRY_POLICY,
                result_type=JobResult,
            )
            raise
        return result.model_dump()


@workflow.defn(name="ProcessPMCopilotTriggerWorkflow")
class ProcessPMCopilotTriggerWorkflow:
    """Run the PM copilot agent for a newly created work order."""

    @workflow.run
    async def run(self, args: dict[str, Any]) -> dict[str, Any]:
        request = ProcessPMCopilotTriggerRequest.model_validate(args)
        result: JobResult = await workflow.execute_activity(
            OrchestrationActivities.process_pm_copilot_trigger,
            request,
            start_to_close_timeout=ACTIVITY_TIMEOUT,
            retry_policy=JOB_RETRY_POLICY,
            result_type=JobResult,
        )
        return result.model_dump()
