import logging
from typing import Any
from uuid import UUID

from agentorch_common.base import RepositoryFactory
from agentorch_common.exceptions import ResourceNotFoundError

from ..domain.definition import ChainDefinition
from ..domain.models import AgentChain, AgentChainTemplate
from ..infrastructure.repository import AgentChainRepository, AgentChainTemplateRepository

logger = logging.getLogger(__name__)


class ChainService:
    """Chain and chain template management for one team."""

    def __init__(self, repository_factory: RepositoryFactory):
        self.chain_repository = repository_factory.create_repository(AgentChainRepository)
        self.template_repository = repository_factory.create_repository(
            AgentChainTemplateRepository
        )

    async def create_chain(
        self,
        name: str,
        chain_definition: ChainDefinition | dict[str, Any],
        description: str = "",
        enabled: bool = True,
    ) -> AgentChain:
        chain = await self.chain_repository.create_chain(
            name=name,
            chain_definition=chain_definition,
            description=description,
            enabled=enabled,
        )
        logger.info(f"Created chain {chain.id} ({len(chain.steps)} steps)")
        return chain

    async def create_from_template(
        self,
        template_id: UUID,
        name: str | None = None,
        description: str | None = None,
        enabled: bool = True,
    ) -> AgentChain:
        """Instantiate a team chain from a system or team template.

        The template's definition is copied; later template edits do not
        affect the chain.
        """
        template = await self.template_repository.get_template(template_id)
        if template is None:
            raise ResourceNotFoundError(
                f"Chain template {template_id} not found", template_id=str(template_id)
            )

        chain = await self.chain_repository.create_chain(
            name=name or template.name,
            chain_definition=template.chain_definition.model_copy(deep=True),
            description=template.description if description is None else description,
            enabled=enabled,
            agent_chain_template_id=template.id,
        )
        logger.info(f"Created chain {chain.id} from template {template.id}")
        return chain

    async def get_chain(self, chain_id: UUID) -> AgentChain:
        chain = await self.chain_repository.get_chain(chain_id)
        if chain is None:
            raise ResourceNotFoundError(f"Chain {chain_id} not found", chain_id=str(chain_id))
        return chain

    async def update_chain(self, chain_id: UUID, **fields: Any) -> AgentChain:
        chain = await self.chain_repository.update_chain(chain_id, **fields)
        if chain is None:
            raise ResourceNotFoundError(f"Chain {chain_id} not found", chain_id=str(chain_id))
        return chain

    async def set_enabled(self, chain_id: UUID, enabled: bool) -> AgentChain:
        return await self.update_chain(chain_id, enabled=enabled)

    async def list_enabled_chains(self) -> list[AgentChain]:
        return await self.chain_repository.list_enabled()

    async def list_templates(self) -> list[AgentChainTemplate]:
        """System templates first, then the team's own."""
        return await self.template_repository.list_available()
