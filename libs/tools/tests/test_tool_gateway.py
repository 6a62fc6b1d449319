"""Tests for ToolGateway."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from agentorch_agents.application.budget_service import BudgetService
from agentorch_agents.domain.models import Agent
from agentorch_agents.infrastructure.repository import (
    AgentActivityLogRepository,
    AgentConfigurationRepository,
    AgentRepository,
    GlobalAISettingsRepository,
)
from agentorch_tools.application.gateway import ToolGateway
from agentorch_tools.application.registry import ToolRegistry
from agentorch_tools.domain.base_tool import BaseTool
from agentorch_tools.domain.enums import ToolResultStatus


class RecordingTool(BaseTool):
    def __init__(self, name: str = "list-tasks", category: str = "tasks"):
        self._name = name
        self._category = category
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Records every call"

    @property
    def category(self) -> str:
        return self._category

    async def execute(self, params):
        self.calls.append(params)
        return {"received_params": params, "result": "success"}


class FailingTool(RecordingTool):
    def __init__(self):
        super().__init__("failing-tool", "general")

    async def execute(self, params):
        raise RuntimeError("Tool execution failed intentionally")


class TestToolGateway:
    @pytest_asyncio.fixture
    async def agent(self, db_session):
        return await AgentRepository(db_session).create_agent(
            Agent(code="pm-copilot", name="PM Copilot")
        )

    @pytest_asyncio.fixture
    async def config_repository(self, repository_factory):
        return repository_factory.create_repository(AgentConfigurationRepository)

    @pytest_asyncio.fixture
    async def config(self, agent, config_repository):
        return await config_repository.create_configuration(
            agent.id,
            monthly_budget_cap=100.0,
            can_modify_tasks=True,
            can_send_emails=True,
        )

    @pytest.fixture
    def log_repository(self, repository_factory):
        return repository_factory.create_repository(AgentActivityLogRepository)

    @pytest.fixture
    def settings_repository(self, repository_factory):
        return repository_factory.create_repository(GlobalAISettingsRepository)

    @pytest.fixture
    def registry(self):
        return ToolRegistry()

    @pytest.fixture
    def gateway(self, registry, log_repository, config_repository, settings_repository):
        return ToolGateway(
            registry,
            log_repository,
            budget_service=BudgetService(config_repository),
            settings_repository=settings_repository,
        )

    @pytest.mark.asyncio
    async def test_unknown_tool_fails_with_one_log(self, gateway, agent, config, log_repository):
        result = await gateway.execute(agent, config, "nope", {"x": 1})

        assert result.success is False
        assert result.status is ToolResultStatus.FAILED
        assert "not found" in result.error

        logs = await log_repository.list_for_agent(agent.id)
        assert len(logs) == 1
        assert logs[0].run_type == "tool_execution"
        assert logs[0].tool_calls[0]["status"] == "failed"
        assert logs[0].tool_calls[0]["tool"] == "nope"

    @pytest.mark.asyncio
    async def test_success_returns_data_and_logs(
        self, gateway, registry, agent, config, log_repository
    ):
        tool = RecordingTool()
        registry.register(tool)

        result = await gateway.execute(agent, config, "list-tasks", {"input": "test data"})

        assert result.success is True
        assert result.status is ToolResultStatus.SUCCESS
        assert result.data["result"] == "success"
        assert result.execution_time_ms >= 0
        assert tool.calls == [{"input": "test data"}]

        logs = await log_repository.list_for_agent(agent.id)
        assert len(logs) == 1
        call = logs[0].tool_calls[0]
        assert call["status"] == "success"
        assert call["params"] == {"input": "test data"}
        assert call["result"]["result"] == "success"
        assert "duration_ms" in call

    @pytest.mark.asyncio
    async def test_denied_when_category_flag_false(
        self, gateway, registry, agent, config, log_repository
    ):
        tool = RecordingTool("create-work-order", "work_orders")
        registry.register(tool)

        result = await gateway.execute(agent, config, "create-work-order", {})

        assert result.status is ToolResultStatus.DENIED
        assert result.error.startswith("Permission denied")
        assert tool.calls == []

        logs = await log_repository.list_for_agent(agent.id)
        assert logs[0].tool_calls[0]["status"] == "denied"

    @pytest.mark.asyncio
    async def test_tool_override_grants_access(
        self, gateway, registry, agent, config, config_repository
    ):
        registry.register(RecordingTool("create-work-order", "work_orders"))
        config = await config_repository.update_configuration(
            config.id, tool_permissions={"create-work-order": True}
        )

        result = await gateway.execute(agent, config, "create-work-order", {})

        assert result.success is True

    @pytest.mark.asyncio
    async def test_tool_exception_becomes_failed_result(
        self, gateway, registry, agent, config, config_repository, log_repository
    ):
        registry.register(FailingTool())

        result = await gateway.execute(agent, config, "failing-tool", {}, estimated_cost=5.0)

        assert result.status is ToolResultStatus.FAILED
        assert result.error == "Tool execution failed intentionally"
        stored = await config_repository.get_configuration(config.id)
        assert stored.daily_spend == 0.0

        logs = await log_repository.list_for_agent(agent.id)
        assert logs[0].tool_calls[0]["error"] == "Tool execution failed intentionally"

    @pytest.mark.asyncio
    async def test_success_deducts_estimated_cost(
        self, gateway, registry, agent, config, config_repository
    ):
        registry.register(RecordingTool())

        await gateway.execute(agent, config, "list-tasks", {}, estimated_cost=2.5)

        stored = await config_repository.get_configuration(config.id)
        assert stored.daily_spend == 2.5
        assert stored.current_month_spend == 2.5

    @pytest.mark.asyncio
    async def test_budget_exceeded_denied(
        self, gateway, registry, agent, config, config_repository
    ):
        tool = RecordingTool()
        registry.register(tool)
        config = await config_repository.update_configuration(config.id, daily_spend=95.0)

        result = await gateway.execute(agent, config, "list-tasks", {}, estimated_cost=10.0)

        assert result.status is ToolResultStatus.DENIED
        assert result.error.startswith("Budget exceeded")
        assert tool.calls == []

    @pytest.mark.asyncio
    async def test_approval_policy_denies_email_tools(
        self, gateway, registry, agent, config, settings_repository
    ):
        tool = RecordingTool("send-email", "email")
        registry.register(tool)
        await settings_repository.get_or_create_for_team(require_approval_external_sends=True)

        result = await gateway.execute(agent, config, "send-email", {"to": "a@example.com"})

        assert result.status is ToolResultStatus.DENIED
        assert result.error == (
            "Approval required: Human approval required for external_sends actions"
        )
        assert tool.calls == []

    @pytest.mark.asyncio
    async def test_no_team_settings_means_no_approval_gate(
        self, gateway, registry, agent, config
    ):
        registry.register(RecordingTool("send-email", "email"))

        result = await gateway.execute(agent, config, "send-email", {})

        assert result.success is True

    @pytest.mark.asyncio
    async def test_log_failure_never_fails_the_call(self, registry, agent, config):
        registry.register(RecordingTool())
        failing_repository = MagicMock()
        failing_repository.record = AsyncMock(side_effect=RuntimeError("db down"))
        gateway = ToolGateway(registry, failing_repository)

        result = await gateway.execute(agent, config, "list-tasks", {})

        assert result.success is True
        failing_repository.record.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_available_tools_filters_by_permission(self, gateway, registry, config):
        registry.register(RecordingTool("list-tasks", "tasks"))
        registry.register(RecordingTool("create-work-order", "work_orders"))
        registry.register(RecordingTool("lookup", "general"))

        available = gateway.get_available_tools(config)

        assert set(available) == {"list-tasks", "lookup"}
        assert gateway.has_permission(config, "list-tasks")
        assert not gateway.has_permission(config, "create-work-order")
        assert not gateway.has_permission(config, "missing")
