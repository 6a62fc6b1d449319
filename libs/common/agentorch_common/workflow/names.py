"""Workflow type names shared by the enqueuing services and the worker."""

from datetime import timedelta

from ..config.settings import get_orchestration_settings
from .executor import WorkflowConfig


class OrchestrationWorkflows:
    """Workflow references to avoid hardcoded strings."""

    PROCESS_CHAIN_TRIGGER = "ProcessChainTriggerWorkflow"
    EXECUTE_CHAIN_STEP = "ExecuteChainStepWorkflow"
    PROCESS_PM_COPILOT_TRIGGER = "ProcessPMCopilotTriggerWorkflow"


def job_workflow_config() -> WorkflowConfig:
    """Retry policy applied to every orchestration job."""
    settings = get_orchestration_settings()
    return WorkflowConfig(
        retry_attempts=settings.JOB_RETRY_ATTEMPTS,
        retry_initial_interval=timedelta(seconds=settings.JOB_RETRY_BACKOFF_SECONDS),
    )
