"""Permission gate consulted before any tool invocation."""

import logging
from typing import Protocol

from ..domain.enums import APPROVAL_FLAGS, ApprovalActionClass, permission_for_category
from ..domain.models import AgentConfiguration, GlobalAISettings

logger = logging.getLogger(__name__)


class CategorizedTool(Protocol):
    """Anything with a tool name and a permission category."""

    @property
    def name(self) -> str: ...

    @property
    def category(self) -> str: ...


class PermissionService:
    """Evaluates agent grants and team approval policy. Pure, no side effects."""

    def can_execute_tool(self, config: AgentConfiguration, tool: CategorizedTool) -> bool:
        """Check the tool's category against the configuration's grants.

        A per-tool override in ``tool_permissions`` wins over the category flag.
        Categories without a corresponding flag are allowed.
        """
        override = config.tool_override(tool.name)
        if override is not None:
            return override
        return self.has_category_permission(config, tool.category)

    def has_category_permission(self, config: AgentConfiguration, category: str) -> bool:
        flag = permission_for_category(category)
        if flag is None:
            return True
        return config.has_permission(flag)

    def requires_human_approval(
        self, action_class: ApprovalActionClass | str, settings: GlobalAISettings
    ) -> bool:
        """Whether team policy forces human approval for ``action_class``.

        Unknown action classes never require approval.
        """
        try:
            flag = APPROVAL_FLAGS[ApprovalActionClass(action_class)]
        except ValueError:
            logger.debug(f"No approval policy for action class '{action_class}'")
            return False
        return bool(getattr(settings, flag))
