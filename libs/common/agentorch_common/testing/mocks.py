"""Shared test doubles for the event broker and the job queue."""

import logging
from typing import Any

from agentorch_common.events.base_events import DomainEvent, EventEnvelope
from agentorch_common.events.broker import EventBroker
from agentorch_common.workflow.executor import (
    WorkflowConfig,
    WorkflowExecutor,
    WorkflowResult,
    WorkflowStatus,
)

logger = logging.getLogger(__name__)


class TestEventBroker(EventBroker):
    """Event broker that records published events for assertions."""

    __test__ = False

    def __init__(self):
        self.published_events: list[DomainEvent | EventEnvelope] = []

    async def publish(self, event: DomainEvent | EventEnvelope) -> None:
        self.published_events.append(event)
        logger.debug("Test Event Published: %s", event)

    def get_published_events(self) -> list[DomainEvent | EventEnvelope]:
        return self.published_events.copy()

    def event_types(self) -> list[str]:
        return [event.event_type for event in self.published_events]

    def clear_events(self) -> None:
        self.published_events.clear()


class TestWorkflowExecutor(WorkflowExecutor):
    """Workflow executor that records started workflows instead of running them."""

    __test__ = False

    def __init__(self):
        self.started: list[dict[str, Any]] = []

    async def start_workflow(
        self,
        workflow_name: str,
        workflow_id: str,
        args: dict[str, Any],
        config: WorkflowConfig | None = None,
    ) -> str:
        self.started.append(
            {
                "workflow_name": workflow_name,
                "workflow_id": workflow_id,
                "args": args,
                "config": config,
            }
        )
        logger.debug("Test Workflow Started: %s (%s)", workflow_name, workflow_id)
        return workflow_id

    async def get_workflow_status(self, workflow_id: str) -> WorkflowResult:
        known = any(job["workflow_id"] == workflow_id for job in self.started)
        return WorkflowResult(
            workflow_id=workflow_id,
            status=WorkflowStatus.RUNNING if known else WorkflowStatus.UNKNOWN,
        )

    async def cancel_workflow(self, workflow_id: str) -> bool:
        return any(job["workflow_id"] == workflow_id for job in self.started)

    def started_for(self, workflow_name: str) -> list[dict[str, Any]]:
        return [job for job in self.started if job["workflow_name"] == workflow_name]
