from .executor import WorkflowConfig, WorkflowExecutor, WorkflowResult, WorkflowStatus
from .names import OrchestrationWorkflows, job_workflow_config

__all__ = [
    "OrchestrationWorkflows",
    "WorkflowConfig",
    "WorkflowExecutor",
    "WorkflowResult",
    "WorkflowStatus",
    "job_workflow_config",
]
