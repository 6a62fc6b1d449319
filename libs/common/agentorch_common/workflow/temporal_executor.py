"""Temporal implementation of the workflow executor interface."""

import logging
from collections.abc import Callable
from typing import Any

from temporalio.client import Client
from temporalio.common import RetryPolicy, WorkflowIDReusePolicy
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.service import RPCError

from ..exceptions import DependencyUnavailableError
from .executor import WorkflowConfig, WorkflowExecutor, WorkflowResult, WorkflowStatus

logger = logging.getLogger(__name__)


class TemporalWorkflowExecutor(WorkflowExecutor):
    """Temporal implementation of WorkflowExecutor.

    Workflows are addressed by name; ``workflows`` maps each name to the
    ``run`` method of a ``@workflow.defn`` class. Every workflow takes a single
    dict argument.
    """

    def __init__(
        self,
        workflows: dict[str, Callable[..., Any]],
        client: Client | None = None,
        namespace: str = "default",
        server_url: str = "localhost:7233",
        task_queue: str = "agent-orchestration",
    ):
        self.workflows = workflows
        self.client = client
        self.namespace = namespace
        self.server_url = server_url
        self.task_queue = task_queue

    async def _ensure_connected(self) -> Client:
        if self.client is None:
            try:
                logger.info(
                    f"Connecting to Temporal server at {self.server_url} "
                    f"with namespace {self.namespace}"
                )
                self.client = await Client.connect(
                    self.server_url,
                    namespace=self.namespace,
                    data_converter=pydantic_data_converter,
                )
            except Exception as e:
                logger.error(f"Failed to connect to Temporal server at {self.server_url}: {e}")
                raise DependencyUnavailableError(
                    f"Cannot connect to Temporal server: {e}", server_url=self.server_url
                ) from e
        return self.client

    def _convert_config_to_temporal(self, config: WorkflowConfig | None) -> dict[str, Any]:
        config = config or WorkflowConfig()
        temporal_params: dict[str, Any] = {
            "task_queue": config.task_queue or self.task_queue,
            "retry_policy": RetryPolicy(
                maximum_attempts=config.retry_attempts,
                initial_interval=config.retry_initial_interval,
                maximum_interval=config.retry_max_interval,
            ),
            "id_reuse_policy": WorkflowIDReusePolicy.ALLOW_DUPLICATE,
        }
        if config.timeout:
            temporal_params["execution_timeout"] = config.timeout
        return temporal_params

    async def start_workflow(
        self,
        workflow_name: str,
        workflow_id: str,
        args: dict[str, Any],
        config: WorkflowConfig | None = None,
    ) -> str:
        """Start a Temporal workflow; returns immediately."""
        workflow_run = self.workflows.get(workflow_name)
        if workflow_run is None:
            raise ValueError(f"Unknown workflow: {workflow_name}")

        client = await self._ensure_connected()
        try:
            handle = await client.start_workflow(
                workflow_run,
                args,
                id=workflow_id,
                **self._convert_config_to_temporal(config),
            )
        except WorkflowAlreadyStartedError:
            logger.info(f"Workflow {workflow_id} already running - returning existing workflow ID")
            return workflow_id

        logger.info(f"Started Temporal workflow {workflow_id} ({workflow_name})")
        return handle.id

    async def get_workflow_status(self, workflow_id: str) -> WorkflowResult:
        client = await self._ensure_connected()
        try:
            description = await client.get_workflow_handle(workflow_id).describe()
        except RPCError as e:
            return WorkflowResult(
                workflow_id=workflow_id, status=WorkflowStatus.UNKNOWN, error=str(e)
            )

        status_mapping = {
            "RUNNING": WorkflowStatus.RUNNING,
            "COMPLETED": WorkflowStatus.COMPLETED,
            "FAILED": WorkflowStatus.FAILED,
            "CANCELED": WorkflowStatus.CANCELLED,
            "TERMINATED": WorkflowStatus.TERMINATED,
        }
        status_name = description.status.name if description.status else "UNKNOWN"
        return WorkflowResult(
            workflow_id=workflow_id,
            status=status_mapping.get(status_name, WorkflowStatus.UNKNOWN),
        )

    async def cancel_workflow(self, workflow_id: str) -> bool:
        client = await self._ensure_connected()
        try:
            await client.get_workflow_handle(workflow_id).cancel()
        except RPCError as e:
            logger.warning(f"Cannot cancel workflow {workflow_id}: {e}")
            return False
        logger.info(f"Cancelled workflow {workflow_id}")
        return True
