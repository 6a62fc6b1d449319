"""Worker CLI commands."""

import asyncio
import logging
import sys

import click
import dotenv
from agentorch_agents.application.budget_service import BudgetService
from agentorch_agents.infrastructure.repository import AgentConfigurationRepository
from agentorch_common.auth.context import UserContext
from agentorch_common.config import get_db, get_settings
from agentorch_common.logging.config import setup_logging

from agentorch_worker.main import OrchestrationWorker, install_signal_handlers

logger = logging.getLogger(__name__)

SYSTEM_TEAM = "system"


async def reset_spend(monthly: bool = False) -> int:
    """Zero agent spend across every team."""
    async with get_db() as session:
        repository = AgentConfigurationRepository(session, UserContext.system(SYSTEM_TEAM))
        budget_service = BudgetService(repository)
        if monthly:
            return await budget_service.reset_monthly_spend()
        return await budget_service.reset_daily_spend()


async def _run_worker(worker: OrchestrationWorker) -> None:
    install_signal_handlers(worker)
    await worker.start()


@click.group()
def cli():
    """Orchestration worker CLI."""
    dotenv.load_dotenv()


@cli.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--max-activities", type=int, help="Max concurrent activities")
@click.option("--max-workflows", type=int, help="Max concurrent workflows")
def start(debug: bool, max_activities: int | None, max_workflows: int | None):
    """Start the Temporal worker."""
    setup_logging(level="DEBUG" if debug else "INFO")
    settings = get_settings()
    settings = settings.with_overrides(
        workflow=settings.workflow.with_overrides(
            TEMPORAL_MAX_CONCURRENT_ACTIVITIES=max_activities,
            TEMPORAL_MAX_CONCURRENT_WORKFLOWS=max_workflows,
        )
    )

    click.echo("Starting orchestration worker...")
    click.echo(f"   Temporal Server: {settings.workflow.TEMPORAL_SERVER_URL}")
    click.echo(f"   Task Queue: {settings.workflow.TEMPORAL_TASK_QUEUE}")
    click.echo(f"   Max Activities: {settings.workflow.TEMPORAL_MAX_CONCURRENT_ACTIVITIES}")
    click.echo(f"   Max Workflows: {settings.workflow.TEMPORAL_MAX_CONCURRENT_WORKFLOWS}")

    try:
        asyncio.run(_run_worker(OrchestrationWorker(settings)))
    except KeyboardInterrupt:
        click.echo("\nWorker stopped by user")
    except Exception as e:
        click.echo(f"\nWorker failed: {e}", err=True)
        sys.exit(1)


@cli.command("reset-daily-budgets")
def reset_daily_budgets():
    """Zero daily agent spend for every team. Safe to run more than once."""
    count = asyncio.run(reset_spend())
    click.echo(f"Reset daily spend for {count} agent configurations")


@cli.command("reset-monthly-budgets")
def reset_monthly_budgets():
    """Zero month-to-date agent spend for every team."""
    count = asyncio.run(reset_spend(monthly=True))
    click.echo(f"Reset monthly spend for {count} agent configurations")


@cli.command()
def status():
    """Show worker configuration."""
    settings = get_settings()

    click.echo("Worker Configuration:")
    click.echo(f"   Temporal Server: {settings.workflow.TEMPORAL_SERVER_URL}")
    click.echo(f"   Namespace: {settings.workflow.TEMPORAL_NAMESPACE}")
    click.echo(f"   Task Queue: {settings.workflow.TEMPORAL_TASK_QUEUE}")
    click.echo(f"   Database: {settings.database.POSTGRES_HOST}:{settings.database.POSTGRES_PORT}")
    click.echo(f"   Chain step cap: {settings.orchestration.CHAIN_MAX_AUTO_STEPS}")


if __name__ == "__main__":
    cli()
