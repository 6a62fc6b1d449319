"""Per-agent spend ceilings and cost deduction."""

import logging

from agentorch_common.events.broker import EventBroker
from agentorch_common.exceptions import ResourceNotFoundError

from ..domain.events import AgentSpendRecorded
from ..domain.models import AgentConfiguration
from ..infrastructure.repository import AgentConfigurationRepository

logger = logging.getLogger(__name__)


class BudgetService:
    """Enforces spend ceilings on agent configurations.

    The configuration's ``monthly_budget_cap`` is applied as both the daily and
    the monthly ceiling. Spend values are always read from and written to the
    database; nothing is cached in process.
    """

    def __init__(
        self,
        configuration_repository: AgentConfigurationRepository,
        event_broker: EventBroker | None = None,
    ):
        self.configuration_repository = configuration_repository
        self.event_broker = event_broker

    def can_run(self, config: AgentConfiguration, projected_cost: float = 0.0) -> bool:
        cap = config.monthly_budget_cap
        within_daily = config.daily_spend + projected_cost <= cap
        within_monthly = config.current_month_spend + projected_cost <= cap
        return within_daily and within_monthly

    def get_daily_remaining(self, config: AgentConfiguration) -> float:
        """Cap minus daily spend; negative when already over."""
        return config.monthly_budget_cap - config.daily_spend

    def get_monthly_remaining(self, config: AgentConfiguration) -> float:
        """Cap minus month-to-date spend; negative when already over."""
        return config.monthly_budget_cap - config.current_month_spend

    async def deduct_cost(
        self, config: AgentConfiguration, actual_cost: float
    ) -> AgentConfiguration:
        """Atomically add ``actual_cost`` to daily and monthly spend.

        The passed configuration is refreshed in place with the stored values,
        and the refreshed configuration is returned.
        """
        if actual_cost < 0:
            raise ValueError("Cost to deduct cannot be negative")
        if actual_cost == 0:
            return config

        refreshed = await self.configuration_repository.increment_spend(config.id, actual_cost)
        if refreshed is None:
            raise ResourceNotFoundError(
                f"Agent configuration {config.id} not found", configuration_id=str(config.id)
            )

        config.daily_spend = refreshed.daily_spend
        config.current_month_spend = refreshed.current_month_spend
        config.updated_at = refreshed.updated_at

        logger.info(
            f"Deducted {actual_cost:.4f} from agent configuration {config.id} "
            f"(daily={refreshed.daily_spend:.4f}, month={refreshed.current_month_spend:.4f})"
        )
        if self.event_broker is not None:
            await self.event_broker.publish(
                AgentSpendRecorded(
                    configuration_id=config.id,
                    team_id=config.team_id,
                    agent_id=config.agent_id,
                    amount=actual_cost,
                )
            )
        return refreshed

    async def reset_daily_spend(self) -> int:
        """Scheduled sweep: zero daily spend for every configuration. Idempotent."""
        count = await self.configuration_repository.reset_daily_spend(all_teams=True)
        logger.info(f"Reset daily spend for {count} agent configurations")
        return count

    async def reset_monthly_spend(self) -> int:
        """Month boundary sweep: zero month-to-date spend for every configuration."""
        count = await self.configuration_repository.reset_monthly_spend(all_teams=True)
        logger.info(f"Reset monthly spend for {count} agent configurations")
        return count
