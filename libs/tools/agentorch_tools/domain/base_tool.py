"""Contract every executable tool implements."""

from abc import ABC, abstractmethod
from typing import Any


class BaseTool(ABC):
    """A discrete, permission-gated capability an agent can invoke.

    Tools never check permissions themselves; they are only ever executed
    through the ``ToolGateway``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human readable description handed to the agent."""

    @property
    @abstractmethod
    def category(self) -> str:
        """Permission category, see ``ToolCategory``."""

    def get_parameters(self) -> dict[str, Any]:
        """JSON schema style description of the accepted parameters."""
        return {}

    @abstractmethod
    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        """Run the tool and return its result payload.

        Raising is allowed; the gateway converts exceptions into failed results.
        """
