"""Tests for ContextBuilder."""

from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import pytest
from agentorch_agents.domain.models import Agent
from agentorch_context.application.context_builder import ContextBuilder
from agentorch_context.domain.facts import (
    ClientFacts,
    ContactFacts,
    OrganizationFacts,
    ProjectFacts,
    TaskFacts,
    WorkOrderFacts,
)
from agentorch_context.domain.models import ChainContext
from agentorch_memory.application.memory_service import MemoryService
from agentorch_memory.infrastructure.repository import AgentMemoryRepository


@pytest.fixture
def agent():
    return Agent(code="pm-copilot", name="PM Copilot")


@pytest.fixture
def organization():
    return OrganizationFacts(id="team-1", name="Acme Studio", active_projects=4, total_parties=9)


@pytest.fixture
def client():
    return ClientFacts(
        id="client-1",
        name="Globex",
        type="company",
        contact_email="ops@globex.test",
        notes="Prefers weekly updates",
        tags=["retainer"],
        contacts=[ContactFacts(name="Hank", email="hank@globex.test", role="CTO")],
    )


@pytest.fixture
def project(client, organization):
    return ProjectFacts(
        id="project-1",
        name="Website relaunch",
        description="Rebuild the marketing site",
        status="active",
        start_date=date(2026, 1, 5),
        progress=40,
        tags=["web"],
        recent_work_orders=[
            WorkOrderFacts(id="wo-1", title="Design", status="done", task_count=4),
        ],
        pending_tasks=[TaskFacts(id="t-1", title="Write copy", due_date=date(2026, 2, 1))],
        client=client,
        organization=organization,
    )


@pytest.fixture
def builder():
    return ContextBuilder()


class TestSectionBuilders:
    def test_project_context(self, builder, project):
        context = builder.build_project_context(project)

        assert context["name"] == "Website relaunch"
        assert context["status"] == "active"
        assert context["start_date"] == "2026-01-05"
        assert context["recent_work_orders"][0]["title"] == "Design"
        assert context["pending_tasks"][0]["due_date"] == "2026-02-01"

    def test_client_context_has_name_and_truncated_notes(self, builder, client):
        long_client = client.model_copy(update={"notes": "x" * 600})

        context = builder.build_client_context(long_client)

        assert context["name"] == "Globex"
        assert len(context["notes"]) == 500
        assert context["notes"].endswith("...")
        assert context["contacts"][0]["role"] == "CTO"

    def test_org_context(self, builder, organization):
        context = builder.build_org_context(organization)

        assert context == {
            "name": "Acme Studio",
            "statistics": {"active_projects": 4, "total_parties": 9},
        }


class TestBuild:
    @pytest.mark.asyncio
    async def test_build_assembles_all_sections(self, builder, project, agent):
        context = await builder.build(project, agent)

        assert context.project_context["name"] == "Website relaunch"
        assert context.client_context["name"] == "Globex"
        assert context.org_context["name"] == "Acme Studio"
        assert context.metadata["entity_id"] == "project-1"
        assert context.metadata["agent_id"] == str(agent.id)
        assert "truncated" not in context.metadata

    @pytest.mark.asyncio
    async def test_prompt_string_section_order(self, builder, project, agent):
        prompt = (await builder.build(project, agent)).to_prompt_string()

        org = prompt.index("## Organization Context")
        client = prompt.index("## Client Context")
        proj = prompt.index("## Project Context")
        meta = prompt.index("## Context Metadata")
        assert org < client < proj < meta
        assert "- **Name**: Website relaunch" in prompt
        assert "- **Tags**: web" in prompt
        assert "- **Budget Hours**: Not specified" in prompt

    @pytest.mark.asyncio
    async def test_build_without_project_uses_organization(self, builder, agent, organization):
        context = await builder.build(None, agent, organization=organization)

        assert context.project_context == {}
        assert context.org_context["name"] == "Acme Studio"

    @pytest.mark.asyncio
    async def test_stored_memories_are_appended(self, repository_factory, project, agent):
        memory_service = MemoryService(repository_factory.create_repository(AgentMemoryRepository))
        await memory_service.store("project", "project-1", "risk", "scope creep")
        await memory_service.store("client", "client-1", "tone", "formal")
        await memory_service.store("org", "team-1", "style", "concise")
        builder = ContextBuilder(memory_service)

        context = await builder.build(project, agent)

        assert context.project_context["stored_memories"] == {"risk": "scope creep"}
        assert context.client_context["stored_memories"] == {"tone": "formal"}
        assert context.org_context["stored_memories"] == {"style": "concise"}


class TestTruncation:
    @pytest.fixture
    def large_project(self, project):
        work_orders = [
            WorkOrderFacts(id=f"wo-{i}", title=f"Work order {i} " + "detail " * 20)
            for i in range(20)
        ]
        return project.model_copy(
            update={"recent_work_orders": work_orders, "description": "long " * 200}
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_tokens", [2000, 500, 150, 40, 5, 1, 0])
    async def test_estimate_never_exceeds_budget(self, builder, large_project, agent, max_tokens):
        context = await builder.build(large_project, agent, max_tokens=max_tokens)

        assert context.token_estimate() <= max_tokens

    @pytest.mark.asyncio
    async def test_truncation_is_flagged(self, builder, large_project, agent):
        context = await builder.build(large_project, agent, max_tokens=800)

        assert context.metadata["truncated"] is True
        assert context.project_context["name"] == "Website relaunch"

    @pytest.mark.asyncio
    async def test_truncation_is_deterministic(self, builder, large_project, agent):
        first = await builder.build(large_project, agent, max_tokens=300)
        second = await builder.build(large_project, agent, max_tokens=300)

        assert first.project_context == second.project_context
        assert first.client_context == second.client_context
        assert first.org_context == second.org_context


class TestBuildFromChainContext:
    @pytest.fixture
    def chain_context(self):
        return (
            ChainContext()
            .with_step_output(0, {"a": 1, "b": 2, "c": 3})
            .with_step_output(1, {"a": 10, "d": 4})
        )

    @pytest.fixture
    def execution(self):
        return SimpleNamespace(id=uuid4())

    @pytest.mark.asyncio
    async def test_include_rules_keep_only_listed_keys(
        self, builder, chain_context, execution, agent
    ):
        context = await builder.build_from_chain_context(
            chain_context, execution, agent, filter_rules={"context_include": ["a", "b"]}
        )

        outputs = context.project_context["previous_step_outputs"]
        assert outputs[0] == {"a": 1, "b": 2}
        assert outputs[1] == {"a": 10}
        assert context.metadata["chain_execution_id"] == str(execution.id)

    @pytest.mark.asyncio
    async def test_exclude_rules_drop_listed_keys(self, builder, chain_context, execution, agent):
        context = await builder.build_from_chain_context(
            chain_context, execution, agent, filter_rules={"context_exclude": ["a"]}
        )

        assert context.project_context["previous_step_outputs"] == [{"b": 2, "c": 3}, {"d": 4}]

    @pytest.mark.asyncio
    async def test_include_wins_over_exclude(self, builder, chain_context, execution, agent):
        context = await builder.build_from_chain_context(
            chain_context,
            execution,
            agent,
            filter_rules={"context_include": ["a"], "context_exclude": ["a"]},
        )

        assert context.project_context["previous_step_outputs"][0] == {"a": 1}

    @pytest.mark.asyncio
    async def test_no_rules_passes_outputs_through(
        self, builder, chain_context, execution, agent, project
    ):
        context = await builder.build_from_chain_context(
            chain_context, execution, agent, project=project
        )

        assert context.project_context["name"] == "Website relaunch"
        assert context.project_context["previous_step_outputs"][1] == {"a": 10, "d": 4}

    @pytest.mark.asyncio
    async def test_zero_budget_is_not_the_default(self, chain_context, execution, agent):
        builder = ContextBuilder(default_max_tokens=4000)

        context = await builder.build_from_chain_context(
            chain_context, execution, agent, max_tokens=0
        )

        assert context.token_estimate() == 0
        assert context.is_empty()
