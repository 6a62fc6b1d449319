"""Tests for ApprovalService."""

import pytest
import pytest_asyncio
from agentorch_agents.application.agent_orchestrator import AgentOrchestrator
from agentorch_agents.domain.models import Agent
from agentorch_agents.infrastructure.repository import (
    AgentRepository,
    AgentWorkflowStateRepository,
)
from agentorch_approvals.application.approval_service import ApprovalService, truncate
from agentorch_approvals.domain.enums import ApprovalStatus, InboxItemType, Urgency
from agentorch_approvals.domain.models import WORKFLOW_STATE_REF, Approver
from agentorch_approvals.infrastructure.repository import InboxItemRepository
from agentorch_common.base.references import EntityLoaderRegistry, EntityRef
from agentorch_common.base.repository_factory import RepositoryFactory
from agentorch_common.exceptions import TerminalStateError


@pytest_asyncio.fixture
async def agent(repository_factory):
    agents = repository_factory.create_repository(AgentRepository)
    return await agents.create_agent(Agent(code="comms-drafter", name="Comms Drafter"))


@pytest.fixture
def orchestrator(repository_factory, event_broker):
    repository = repository_factory.create_repository(AgentWorkflowStateRepository)
    return AgentOrchestrator(repository, event_broker)


@pytest.fixture
def approval_service(repository_factory, orchestrator, event_broker):
    return ApprovalService(
        orchestrator,
        repository_factory.create_repository(InboxItemRepository),
        repository_factory.create_repository(AgentRepository),
        event_broker,
    )


@pytest.fixture
def approver():
    return Approver(id="user-42", name="Dana Reviewer")


class TestRequestApproval:
    @pytest.mark.asyncio
    async def test_pauses_state_and_creates_inbox_item(
        self, approval_service, orchestrator, agent, event_broker
    ):
        state = await orchestrator.execute("client_comms", {"draft_id": "d-1"}, agent)

        item = await approval_service.request_approval(state, "Send status email to client")

        assert item.type is InboxItemType.APPROVAL
        assert item.title == "Agent action requires approval: Send status email to client"
        assert item.content_preview == (
            "Comms Drafter requests approval: Send status email to client"
        )
        assert "Current Step: start" in item.full_content
        assert '"draft_id": "d-1"' in item.full_content
        assert item.source_id == f"agent-{agent.id}"
        assert item.source_name == "Comms Drafter"
        assert item.urgency is Urgency.NORMAL
        assert item.approvable == EntityRef.of(WORKFLOW_STATE_REF, state.id)
        assert item.status is ApprovalStatus.PENDING

        stored = await orchestrator.get_state(state.id)
        assert stored.is_paused()
        assert stored.approval_required is True
        assert stored.pause_reason == "Awaiting human approval"
        assert stored.state_data["inbox_item_id"] == str(item.id)
        assert "approval_requested_at" in stored.state_data
        assert stored.state_data["input"] == {"draft_id": "d-1"}
        assert event_broker.event_types()[-2:] == ["AgentWorkflowPaused", "ApprovalRequested"]

    @pytest.mark.asyncio
    async def test_long_description_is_truncated_in_title(self, approval_service, orchestrator):
        state = await orchestrator.execute("client_comms", {})
        description = "Send the quarterly financial summary to every client contact on file"

        item = await approval_service.request_approval(state, description, Urgency.HIGH)

        suffix = item.title.removeprefix("Agent action requires approval: ")
        assert len(suffix) == 50
        assert suffix.endswith("...")
        assert item.urgency is Urgency.HIGH
        assert description in item.content_preview

    @pytest.mark.asyncio
    async def test_state_without_agent_uses_unknown_source(self, approval_service, orchestrator):
        state = await orchestrator.execute("client_comms", {})

        item = await approval_service.request_approval(state, "Change scope")

        assert item.source_id == "agent-unknown"
        assert item.source_name == "Unknown Agent"

    @pytest.mark.asyncio
    async def test_pending_approval_lookup(self, approval_service, orchestrator):
        state = await orchestrator.execute("client_comms", {})
        other = await orchestrator.execute("client_comms", {})

        item = await approval_service.request_approval(state, "Send invoice")

        assert await approval_service.has_pending_approval(state)
        assert (await approval_service.find_pending_approval(state)).id == item.id
        assert not await approval_service.has_pending_approval(other)


class TestResolveApproval:
    @pytest.mark.asyncio
    async def test_approval_resumes_state_and_stamps_item(
        self, approval_service, orchestrator, approver, event_broker
    ):
        state = await orchestrator.execute("client_comms", {})
        item = await approval_service.request_approval(state, "Send status email")

        await approval_service.handle_approval(item, approver)

        stored = await orchestrator.get_state(state.id)
        assert stored.paused_at is None
        assert stored.resumed_at is not None
        assert stored.approval_required is False
        approval_data = stored.state_data["approval_data"]
        assert approval_data["approved"] is True
        assert approval_data["approver_id"] == "user-42"
        assert approval_data["approver_name"] == "Dana Reviewer"
        assert "approved_at" in approval_data
        assert item.approved_at is not None
        assert item.approved_by == "user-42"
        assert not await approval_service.has_pending_approval(stored)
        assert event_broker.event_types()[-1] == "ApprovalGranted"

    @pytest.mark.asyncio
    async def test_rejection_records_reason_and_keeps_state_paused(
        self, approval_service, orchestrator, approver
    ):
        state = await orchestrator.execute("client_comms", {})
        item = await approval_service.request_approval(state, "Send status email")

        await approval_service.handle_rejection(item, approver, "Tone is off")

        stored = await orchestrator.get_state(state.id)
        assert stored.is_paused()
        assert stored.state_data["rejected"] is True
        assert stored.state_data["rejection_reason"] == "Tone is off"
        assert stored.state_data["rejected_by"] == "user-42"
        assert "rejected_at" in stored.state_data
        assert item.rejected_at is not None
        assert item.rejection_reason == "Tone is off"
        assert item.status is ApprovalStatus.REJECTED

    @pytest.mark.asyncio
    async def test_resolved_item_cannot_be_resolved_again(
        self, approval_service, orchestrator, approver
    ):
        state = await orchestrator.execute("client_comms", {})
        item = await approval_service.request_approval(state, "Send status email")
        await approval_service.handle_approval(item, approver)

        with pytest.raises(TerminalStateError):
            await approval_service.handle_rejection(item, approver, "Too late")
        with pytest.raises(TerminalStateError):
            await approval_service.handle_approval(item, approver)

    @pytest.mark.asyncio
    async def test_item_without_workflow_state_is_still_stamped(
        self, approval_service, repository_factory, approver
    ):
        inbox = repository_factory.create_repository(InboxItemRepository)
        item = await inbox.create_item(
            approvable=EntityRef.of("message_draft", "draft-7"), title="Approve draft"
        )

        approved = await approval_service.handle_approval(item, approver)

        assert approved.approved_at is not None

    @pytest.mark.asyncio
    async def test_other_team_cannot_see_pending_items(
        self, approval_service, orchestrator, db_session, other_team_context
    ):
        state = await orchestrator.execute("client_comms", {})
        await approval_service.request_approval(state, "Send status email")

        other_factory = RepositoryFactory(db_session, other_team_context)
        other_inbox = other_factory.create_repository(InboxItemRepository)

        assert await other_inbox.list_pending() == []
        assert len(await approval_service.list_pending()) == 1


class TestApprovableResolution:
    @pytest.mark.asyncio
    async def test_resolves_workflow_state(self, approval_service, orchestrator):
        state = await orchestrator.execute("client_comms", {})
        item = await approval_service.request_approval(state, "Send status email")

        resolved = await approval_service.get_approvable(item)

        assert resolved.id == state.id

    @pytest.mark.asyncio
    async def test_registered_loader_resolves_other_types(
        self, orchestrator, repository_factory
    ):
        drafts = {"draft-7": {"subject": "Kickoff recap"}}
        loaders = EntityLoaderRegistry()

        async def load_draft(id):
            return drafts.get(id)

        loaders.register("message_draft", load_draft)
        inbox = repository_factory.create_repository(InboxItemRepository)
        service = ApprovalService(orchestrator, inbox, entity_loaders=loaders)
        item = await inbox.create_item(
            approvable=EntityRef.of("message_draft", "draft-7"), title="Approve draft"
        )

        assert await service.get_approvable(item) == {"subject": "Kickoff recap"}
        assert loaders.has(WORKFLOW_STATE_REF)

    @pytest.mark.asyncio
    async def test_unknown_type_resolves_to_none(self, approval_service, repository_factory):
        inbox = repository_factory.create_repository(InboxItemRepository)
        item = await inbox.create_item(
            approvable=EntityRef.of("invoice", "inv-1"), title="Approve invoice"
        )

        assert await approval_service.get_approvable(item) is None


class TestEndToEndApproval:
    @pytest.mark.asyncio
    async def test_paused_state_is_running_again_after_approval(
        self, approval_service, orchestrator, agent, approver
    ):
        state = await orchestrator.execute("pm_copilot", {"work_order_id": "wo-1"}, agent)
        item = await approval_service.request_approval(state, "Create 4 tasks", Urgency.URGENT)
        assert (await orchestrator.get_state(state.id)).paused_at is not None

        await approval_service.handle_approval(item, approver)

        stored = await orchestrator.get_state(state.id)
        assert stored.paused_at is None
        assert stored.resumed_at is not None
        assert item.approved_at is not None
        assert await orchestrator.get_pending_approvals() == []


def test_truncate_keeps_short_text():
    assert truncate("short", 50) == "short"
    assert truncate("x" * 60, 50) == "x" * 47 + "..."
