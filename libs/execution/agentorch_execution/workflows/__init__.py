from collections.abc import Callable
from typing import Any

from agentorch_common.workflow import OrchestrationWorkflows

from .orchestration_workflows import (
    ExecuteChainStepWorkflow,
    ProcessChainTriggerWorkflow,
    ProcessPMCopilotTriggerWorkflow,
)

WORKFLOWS = [
    ProcessChainTriggerWorkflow,
    ExecuteChainStepWorkflow,
    ProcessPMCopilotTriggerWorkflow,
]


def workflow_registry() -> dict[str, Callable[..., Any]]:
    """Workflow name to ``run`` method, as expected by ``TemporalWorkflowExecutor``."""
    return {
        OrchestrationWorkflows.PROCESS_CHAIN_TRIGGER: ProcessChainTriggerWorkflow.run,
        OrchestrationWorkflows.EXECUTE_CHAIN_STEP: ExecuteChainStepWorkflow.run,
        OrchestrationWorkflows.PROCESS_PM_COPILOT_TRIGGER: ProcessPMCopilotTriggerWorkflow.run,
    }


__all__ = [
    "WORKFLOWS",
    "ExecuteChainStepWorkflow",
    "ProcessChainTriggerWorkflow",
    "ProcessPMCopilotTriggerWorkflow",
    "workflow_registry",
]
