"""Tests for AgentOrchestrator."""

from uuid import uuid4

import pytest
import pytest_asyncio
from agentorch_agents.application.agent_orchestrator import AgentOrchestrator
from agentorch_agents.domain.enums import WorkflowStateStatus
from agentorch_agents.domain.models import Agent
from agentorch_agents.infrastructure.repository import AgentWorkflowStateRepository
from agentorch_common.exceptions import OrchestrationValidationError, ResourceNotFoundError


class TestAgentOrchestrator:
    @pytest_asyncio.fixture
    async def orchestrator(self, repository_factory, event_broker):
        repository = repository_factory.create_repository(AgentWorkflowStateRepository)
        return AgentOrchestrator(repository, event_broker)

    @pytest.fixture
    def agent(self):
        return Agent(code="pm-copilot", name="PM Copilot", tools=["create-work-order"])

    @pytest.mark.asyncio
    async def test_execute_creates_running_state(self, orchestrator, agent, event_broker):
        state = await orchestrator.execute("task_breakdown", {"work_order_id": "wo-1"}, agent)

        assert state.team_id == "team-1"
        assert state.agent_id == agent.id
        assert state.current_node == "start"
        assert state.state_data["input"] == {"work_order_id": "wo-1"}
        assert "started_at" in state.state_data
        assert state.approval_required is False
        assert state.status is WorkflowStateStatus.RUNNING
        assert event_broker.event_types() == ["AgentWorkflowStarted"]

    @pytest.mark.asyncio
    async def test_pause_sets_reason_and_approval_flag(self, orchestrator):
        state = await orchestrator.execute("task_breakdown", {})

        paused = await orchestrator.pause(state, "Needs sign-off")

        assert paused.paused_at is not None
        assert paused.pause_reason == "Needs sign-off"
        assert paused.approval_required is True
        assert paused.is_paused()
        stored = await orchestrator.get_state(state.id)
        assert stored.is_paused()

    @pytest.mark.asyncio
    async def test_resume_clears_pause_and_records_approval_data(self, orchestrator):
        state = await orchestrator.execute("task_breakdown", {"a": 1})
        await orchestrator.pause(state, "Needs sign-off")

        resumed = await orchestrator.resume(state, {"approved": True, "approver_id": "u-9"})

        assert resumed.paused_at is None
        assert resumed.resumed_at is not None
        assert resumed.approval_required is False
        assert resumed.state_data["approval_data"] == {"approved": True, "approver_id": "u-9"}
        assert resumed.state_data["input"] == {"a": 1}
        assert resumed.is_running()

    @pytest.mark.asyncio
    async def test_complete_moves_to_completed_node(self, orchestrator):
        state = await orchestrator.execute("task_breakdown", {})

        completed = await orchestrator.complete(state, {"tasks": 3})

        assert completed.current_node == "completed"
        assert completed.completed_at is not None
        assert completed.state_data["result"] == {"tasks": 3}
        assert completed.is_completed()

    @pytest.mark.asyncio
    async def test_update_node_merges_data(self, orchestrator):
        state = await orchestrator.execute("task_breakdown", {"a": 1})

        updated = await orchestrator.update_node(state, "analyze", {"draft": "x"})

        assert updated.current_node == "analyze"
        assert updated.state_data["draft"] == "x"
        assert updated.state_data["input"] == {"a": 1}

    @pytest.mark.asyncio
    async def test_pending_approvals_lists_only_paused(self, orchestrator):
        running = await orchestrator.execute("a", {})
        paused = await orchestrator.execute("b", {})
        await orchestrator.pause(paused, "wait")

        pending = await orchestrator.get_pending_approvals()

        assert [s.id for s in pending] == [paused.id]
        assert running.id not in [s.id for s in pending]

    @pytest.mark.asyncio
    async def test_invoke_pm_copilot(self, orchestrator, agent):
        state = await orchestrator.invoke_pm_copilot({"id": "wo-42", "title": "Launch"}, agent)

        assert state.workflow_class == "pm_copilot"
        assert state.state_data["input"]["work_order_id"] == "wo-42"
        assert state.state_data["input"]["work_order"]["title"] == "Launch"

    @pytest.mark.asyncio
    async def test_invoke_pm_copilot_requires_work_order_id(self, orchestrator, agent):
        with pytest.raises(OrchestrationValidationError):
            await orchestrator.invoke_pm_copilot({"title": "no id"}, agent)

    @pytest.mark.asyncio
    async def test_get_state_missing(self, orchestrator):
        with pytest.raises(ResourceNotFoundError):
            await orchestrator.get_state(uuid4())

    @pytest.mark.asyncio
    async def test_states_are_team_isolated(self, db_session, other_team_context, orchestrator):
        state = await orchestrator.execute("a", {})
        other_repository = AgentWorkflowStateRepository(db_session, other_team_context)

        assert await other_repository.get_state(state.id) is None
