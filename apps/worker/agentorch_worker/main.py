"""Orchestration Temporal worker.

Registers the job workflows and their activities on the configured task
queue, and publishes domain events through the Redis event broker.
"""

import asyncio
import logging
import signal
import sys

import dotenv
from agentorch_common.config import Settings, get_database, get_settings
from agentorch_common.di import get_container
from agentorch_common.events.broker import EventBroker
from agentorch_common.events.redis_event_broker import RedisEventBroker
from agentorch_common.logging.config import setup_logging
from agentorch_common.workflow import WorkflowExecutor
from agentorch_common.workflow.temporal_executor import TemporalWorkflowExecutor
from agentorch_execution import (
    WORKFLOWS,
    ActivityDependencies,
    create_activities_for_worker,
    workflow_registry,
)
from faststream.redis import RedisBroker
from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.worker import Worker

logger = logging.getLogger(__name__)


def create_event_broker(settings: Settings) -> RedisEventBroker:
    return RedisEventBroker(
        RedisBroker(settings.broker.REDIS_URL),
        channel_prefix=settings.broker.EVENT_CHANNEL_PREFIX,
    )


def create_activity_dependencies(settings: Settings, client: Client) -> ActivityDependencies:
    """Build the shared dependencies activities use to create their services.

    The event broker and the job queue are registered in the DI container so
    that every activity in the process shares one instance of each.
    """
    container = get_container()
    if not container.has(EventBroker):
        container.register_factory(EventBroker, lambda: create_event_broker(settings))
    if not container.has(WorkflowExecutor):
        container.register_singleton(
            WorkflowExecutor,
            TemporalWorkflowExecutor(
                workflow_registry(),
                client=client,
                namespace=settings.workflow.TEMPORAL_NAMESPACE,
                server_url=settings.workflow.TEMPORAL_SERVER_URL,
                task_queue=settings.workflow.TEMPORAL_TASK_QUEUE,
            ),
        )
    return ActivityDependencies(
        settings=settings,
        event_broker=container.get(EventBroker),
        workflow_executor=container.get(WorkflowExecutor),
    )


class OrchestrationWorker:
    """Temporal worker for orchestration workflows and activities."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.client: Client | None = None
        self.worker: Worker | None = None
        self.worker_shutdown_event = asyncio.Event()

    def request_shutdown(self, signum: int) -> None:
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        self.worker_shutdown_event.set()

    async def connect(self) -> None:
        """Connect to Temporal server."""
        self.client = await Client.connect(
            self.settings.workflow.TEMPORAL_SERVER_URL,
            namespace=self.settings.workflow.TEMPORAL_NAMESPACE,
            data_converter=pydantic_data_converter,
        )
        logger.info("Connected to Temporal server")

    def create_worker(self) -> None:
        """Create and configure the Temporal worker."""
        if not self.client:
            raise RuntimeError("Client not connected. Call connect() first.")

        workflow_settings = self.settings.workflow
        dependencies = create_activity_dependencies(self.settings, self.client)
        self.worker = Worker(
            self.client,
            task_queue=workflow_settings.TEMPORAL_TASK_QUEUE,
            workflows=WORKFLOWS,
            activities=create_activities_for_worker(dependencies),
            max_concurrent_workflow_tasks=workflow_settings.TEMPORAL_MAX_CONCURRENT_WORKFLOWS,
            max_concurrent_activities=workflow_settings.TEMPORAL_MAX_CONCURRENT_ACTIVITIES,
        )
        logger.info(f"Worker created for task queue {workflow_settings.TEMPORAL_TASK_QUEUE}")

    async def run(self) -> None:
        """Run the worker until a shutdown signal, then drain in-flight activities."""
        if not self.worker:
            raise RuntimeError("Worker not created. Call create_worker() first.")

        logger.info("Worker starting...")
        worker_task = asyncio.create_task(self.worker.run())
        shutdown_task = asyncio.create_task(self.worker_shutdown_event.wait())

        done, _ = await asyncio.wait(
            {worker_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if worker_task in done:
            shutdown_task.cancel()
            worker_task.result()
            return

        logger.info("Shutdown signal received, stopping worker...")
        await self.worker.shutdown()
        await worker_task

    async def start(self) -> None:
        """Start the worker with proper initialization."""
        try:
            await self.connect()
            self.create_worker()
            await self.run()
        except Exception as e:
            logger.error(f"Worker failed: {e}")
            raise
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Release the worker, client, event broker and database engine."""
        logger.info("Shutting down worker...")
        self.worker = None
        self.client = None

        container = get_container()
        if container.has(EventBroker):
            broker = container.get(EventBroker)
            if isinstance(broker, RedisEventBroker):
                await broker.close()
        container.clear()

        if get_database.cache_info().currsize:
            await get_database().dispose()
        logger.info("Worker shutdown complete")


def install_signal_handlers(worker: OrchestrationWorker) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, worker.request_shutdown, sig)


async def main() -> None:
    """Main entry point for the worker application."""
    dotenv.load_dotenv()
    setup_logging(level="INFO")

    worker = OrchestrationWorker()
    install_signal_handlers(worker)
    try:
        await worker.start()
    except Exception as e:
        logger.error(f"Worker error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
