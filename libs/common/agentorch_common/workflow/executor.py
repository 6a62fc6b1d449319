"""Abstract workflow executor interface.

Orchestration jobs (chain trigger processing, parallel chain steps, PM copilot
runs) are enqueued through this interface; the Temporal implementation is the
production job queue.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any


class WorkflowStatus(Enum):
    """Workflow execution status."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TERMINATED = "terminated"
    UNKNOWN = "unknown"


@dataclass
class WorkflowResult:
    """Result of workflow execution."""

    workflow_id: str
    status: WorkflowStatus
    result: dict[str, Any] | None = None
    error: str | None = None


@dataclass
class WorkflowConfig:
    """Configuration for workflow execution."""

    timeout: timedelta | None = None
    retry_attempts: int = 3
    retry_initial_interval: timedelta = timedelta(seconds=60)
    retry_max_interval: timedelta = timedelta(minutes=10)
    task_queue: str | None = None


class WorkflowExecutor(ABC):
    """Job queue used by the trigger listener and the chain orchestrator."""

    @abstractmethod
    async def start_workflow(
        self,
        workflow_name: str,
        workflow_id: str,
        args: dict[str, Any],
        config: WorkflowConfig | None = None,
    ) -> str:
        """Enqueue one job and return without waiting for it.

        ``workflow_name`` is one of ``OrchestrationWorkflows``; ``args`` must be
        JSON-serializable. Returns the id of the running job, which is
        ``workflow_id`` unless the backend assigns its own.
        """

    @abstractmethod
    async def get_workflow_status(self, workflow_id: str) -> WorkflowResult: ...

    @abstractmethod
    async def cancel_workflow(self, workflow_id: str) -> bool:
        """Returns False when the job is unknown or already finished."""
