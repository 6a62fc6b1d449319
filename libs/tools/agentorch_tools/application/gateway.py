"""The single entry point for executing agent tools."""

import time
from enum import Enum
from typing import Any

from agentorch_agents.application.budget_service import BudgetService
from agentorch_agents.application.permission_service import PermissionService
from agentorch_agents.domain.models import Agent, AgentConfiguration
from agentorch_agents.infrastructure.repository import (
    AgentActivityLogRepository,
    GlobalAISettingsRepository,
)
from agentorch_common.config import get_orchestration_settings
from agentorch_common.logging.correlation import OrchestrationLogger

from ..domain.base_tool import BaseTool
from ..domain.models import ToolResult
from .registry import ToolRegistry

logger = OrchestrationLogger(__name__)

TOOL_EXECUTION_RUN_TYPE = "tool_execution"


class ToolGateway:
    """Executes tools on behalf of agents.

    Checks run in a fixed order: lookup, permission, budget, approval policy.
    Every outcome is returned as a ``ToolResult`` and recorded as exactly one
    activity log entry. Tool exceptions never escape the gateway.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        activity_log_repository: AgentActivityLogRepository,
        permission_service: PermissionService | None = None,
        budget_service: BudgetService | None = None,
        settings_repository: GlobalAISettingsRepository | None = None,
        category_approval_actions: dict[str, str] | None = None,
    ):
        self.registry = registry
        self.activity_log_repository = activity_log_repository
        self.permission_service = permission_service or PermissionService()
        self.budget_service = budget_service
        self.settings_repository = settings_repository
        if category_approval_actions is None:
            category_approval_actions = (
                get_orchestration_settings().TOOL_CATEGORY_APPROVAL_ACTIONS
            )
        self.category_approval_actions = category_approval_actions

    async def execute(
        self,
        agent: Agent,
        config: AgentConfiguration,
        tool_name: str,
        params: dict[str, Any],
        estimated_cost: float = 0.0,
    ) -> ToolResult:
        """Execute ``tool_name`` for ``agent`` under ``config``."""
        started = time.perf_counter()

        tool = self.registry.find(tool_name)
        if tool is None:
            result = ToolResult.failure(f"Tool '{tool_name}' not found")
            logger.warning(result.error, agent_id=agent.id, tool=tool_name)
            await self._log_execution(agent, tool_name, params, result)
            return result

        if not self.permission_service.can_execute_tool(config, tool):
            result = ToolResult.denied(
                "Permission denied: Agent does not have required permissions "
                f"for tool '{tool_name}' (category {tool.category})"
            )
            logger.info(result.error, agent_id=agent.id, tool=tool_name)
            await self._log_execution(agent, tool_name, params, result)
            return result

        if not self._check_budget(config, estimated_cost):
            result = ToolResult.denied(
                "Budget exceeded: Agent does not have sufficient budget "
                f"to execute tool '{tool_name}'"
            )
            logger.info(result.error, agent_id=agent.id, tool=tool_name)
            await self._log_execution(agent, tool_name, params, result)
            return result

        approval_reason = await self._check_approval_required(tool)
        if approval_reason is not None:
            result = ToolResult.denied(f"Approval required: {approval_reason}")
            logger.info(result.error, agent_id=agent.id, tool=tool_name)
            await self._log_execution(agent, tool_name, params, result)
            return result

        try:
            data = await tool.execute(params)
        except Exception as e:
            result = ToolResult.failure(str(e), self._elapsed_ms(started))
            logger.error(
                f"Tool execution failed: {e}", exc_info=True, agent_id=agent.id, tool=tool_name
            )
        else:
            result = ToolResult.succeeded(data, self._elapsed_ms(started))
            if self.budget_service is not None and estimated_cost > 0:
                await self.budget_service.deduct_cost(config, estimated_cost)

        await self._log_execution(agent, tool_name, params, result)
        return result

    def has_permission(self, config: AgentConfiguration, tool: BaseTool | str) -> bool:
        if isinstance(tool, str):
            tool = self.registry.find(tool)
            if tool is None:
                return False
        return self.permission_service.can_execute_tool(config, tool)

    def get_available_tools(self, config: AgentConfiguration) -> dict[str, BaseTool]:
        """Registered tools the configuration is allowed to execute."""
        return {
            name: tool
            for name, tool in self.registry.all().items()
            if self.has_permission(config, tool)
        }

    def _check_budget(self, config: AgentConfiguration, estimated_cost: float) -> bool:
        if self.budget_service is None or estimated_cost <= 0:
            return True
        return self.budget_service.can_run(config, estimated_cost)

    async def _check_approval_required(self, tool: BaseTool) -> str | None:
        """Reason approval is required for the tool's category, None when it is not."""
        category = tool.category.value if isinstance(tool.category, Enum) else tool.category
        action_class = self.category_approval_actions.get(category)
        if action_class is None or self.settings_repository is None:
            return None

        settings = await self.settings_repository.get_for_team()
        if settings is None:
            return None

        if self.permission_service.requires_human_approval(action_class, settings):
            return f"Human approval required for {action_class} actions"
        return None

    async def _log_execution(
        self,
        agent: Agent,
        tool_name: str,
        params: dict[str, Any],
        result: ToolResult,
    ) -> None:
        tool_call: dict[str, Any] = {
            "tool": tool_name,
            "params": params,
            "status": result.status.value,
            "duration_ms": result.execution_time_ms,
        }
        if result.success:
            tool_call["result"] = result.data
        else:
            tool_call["error"] = result.error

        try:
            await self.activity_log_repository.record(
                agent_id=agent.id,
                run_type=TOOL_EXECUTION_RUN_TYPE,
                input={"tool": tool_name, "params": params},
                output=result.data if result.success else None,
                error=result.error,
                approval_status=result.status.value if result.is_denied() else None,
                tool_calls=[tool_call],
                duration_ms=result.execution_time_ms,
            )
        except Exception as e:
            logger.error(
                f"Failed to log tool execution: {e}", agent_id=agent.id, tool=tool_name
            )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
