"""Tests for ChainService."""

from uuid import uuid4

import pytest
import pytest_asyncio
from agentorch_chains.application.chain_service import ChainService
from agentorch_chains.infrastructure.repository import AgentChainTemplateRepository
from agentorch_common.base.repository_factory import RepositoryFactory
from agentorch_common.exceptions import ResourceNotFoundError

REVIEW_DEFINITION = {
    "steps": [
        {"agent_id": str(uuid4()), "workflow_class": "scope_review"},
        {"agent_id": str(uuid4()), "workflow_class": "estimate"},
    ]
}


@pytest.fixture
def chain_service(repository_factory):
    return ChainService(repository_factory)


@pytest.fixture
def templates(repository_factory):
    return repository_factory.create_repository(AgentChainTemplateRepository)


@pytest_asyncio.fixture
async def system_template(templates):
    return await templates.create_template(
        "Scope review", REVIEW_DEFINITION, "Review then estimate", is_system=True
    )


class TestCreateFromTemplate:
    @pytest.mark.asyncio
    async def test_copies_definition_and_links_template(self, chain_service, system_template):
        chain = await chain_service.create_from_template(system_template.id)

        assert chain.team_id == "team-1"
        assert chain.name == "Scope review"
        assert chain.description == "Review then estimate"
        assert chain.agent_chain_template_id == system_template.id
        assert chain.chain_definition == system_template.chain_definition
        assert [s.workflow_class for s in chain.steps] == ["scope_review", "estimate"]

    @pytest.mark.asyncio
    async def test_overrides_name_and_description(self, chain_service, system_template):
        chain = await chain_service.create_from_template(
            system_template.id, name="Acme scope review", description=""
        )

        assert chain.name == "Acme scope review"
        assert chain.description == ""

    @pytest.mark.asyncio
    async def test_unknown_template_raises(self, chain_service):
        with pytest.raises(ResourceNotFoundError):
            await chain_service.create_from_template(uuid4())

    @pytest.mark.asyncio
    async def test_other_team_template_is_not_visible(
        self, chain_service, db_session, other_team_context
    ):
        other_templates = RepositoryFactory(db_session, other_team_context).create_repository(
            AgentChainTemplateRepository
        )
        private = await other_templates.create_template("Private", REVIEW_DEFINITION)

        with pytest.raises(ResourceNotFoundError):
            await chain_service.create_from_template(private.id)


class TestChainManagement:
    @pytest.mark.asyncio
    async def test_templates_list_system_first(self, chain_service, templates, system_template):
        team_template = await templates.create_template("Audit", REVIEW_DEFINITION)

        listed = await chain_service.list_templates()

        assert [t.id for t in listed] == [system_template.id, team_template.id]
        assert listed[1].team_id == "team-1"
        assert listed[0].team_id is None

    @pytest.mark.asyncio
    async def test_disabled_chains_are_not_listed(self, chain_service):
        chain = await chain_service.create_chain("Intake", REVIEW_DEFINITION)

        await chain_service.set_enabled(chain.id, False)

        assert await chain_service.list_enabled_chains() == []
        assert (await chain_service.get_chain(chain.id)).enabled is False

    @pytest.mark.asyncio
    async def test_missing_chain_raises(self, chain_service):
        with pytest.raises(ResourceNotFoundError):
            await chain_service.get_chain(uuid4())
        with pytest.raises(ResourceNotFoundError):
            await chain_service.update_chain(uuid4(), name="x")
