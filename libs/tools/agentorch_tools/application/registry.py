"""In-process registry of executable tools and declarative tool definitions."""

import json
import logging
from pathlib import Path

from agentorch_agents.domain.enums import permission_for_category
from agentorch_common.exceptions import ToolDefinitionError
from pydantic import ValidationError

from ..domain.base_tool import BaseTool
from ..domain.models import ToolDefinition, ToolNotFoundError

logger = logging.getLogger(__name__)

SCHEMA_FILE_NAME = "schema.json"


class ToolRegistry:
    """Registry of tools keyed by name.

    Executable tools are registered programmatically. Definitions loaded from
    JSON only carry metadata and never make a tool executable.
    """

    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}
        self._definitions: dict[str, ToolDefinition] = {}

    def register(self, tool: BaseTool) -> None:
        """Register ``tool``, replacing any tool already registered under its name."""
        if tool.name in self._tools:
            logger.warning(f"Tool '{tool.name}' already registered, overwriting")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool '{tool.name}' (category={tool.category})")

    def get(self, name: str) -> BaseTool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def find(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def all(self) -> dict[str, BaseTool]:
        return dict(self._tools)

    def get_by_category(self, category: str) -> dict[str, BaseTool]:
        return {name: tool for name, tool in self._tools.items() if tool.category == category}

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def clear(self) -> None:
        self._tools.clear()
        self._definitions.clear()

    def count(self) -> int:
        return len(self._tools)

    def load_definitions_from_directory(self, directory: str | Path) -> list[ToolDefinition]:
        """Load every ``*.json`` tool definition in ``directory``.

        The ``schema.json`` file is skipped. A missing directory loads nothing.

        Raises:
            ToolDefinitionError: If a file is not valid JSON or lacks a name
        """
        path = Path(directory)
        if not path.is_dir():
            logger.warning(f"Tool definition directory {path} does not exist")
            return []

        loaded = []
        for file_path in sorted(path.glob("*.json")):
            if file_path.name == SCHEMA_FILE_NAME:
                continue
            loaded.append(self.load_definition_from_file(file_path))

        logger.info(f"Loaded {len(loaded)} tool definitions from {path}")
        return loaded

    def load_definition_from_file(self, file_path: str | Path) -> ToolDefinition:
        path = Path(file_path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ToolDefinitionError(
                f"Failed to parse tool definition from {path}: {e}", file=str(path)
            ) from e

        if not isinstance(raw, dict) or "name" not in raw:
            raise ToolDefinitionError(
                f"Tool definition in {path} is missing required 'name' field", file=str(path)
            )

        try:
            definition = ToolDefinition.model_validate(raw)
        except ValidationError as e:
            raise ToolDefinitionError(
                f"Invalid tool definition in {path}: {e}", file=str(path)
            ) from e

        self._definitions[definition.name] = definition
        return definition

    def get_definition(self, name: str) -> ToolDefinition | None:
        return self._definitions.get(name)

    def all_definitions(self) -> dict[str, ToolDefinition]:
        return dict(self._definitions)

    def get_required_permissions(self, name: str) -> list[str]:
        """Permission flags a tool needs.

        An explicit list on the tool's definition wins; otherwise the flag is
        derived from the category of the registered tool or definition.
        """
        definition = self._definitions.get(name)
        if definition is not None and definition.required_permissions is not None:
            return list(definition.required_permissions)

        tool = self._tools.get(name)
        if tool is not None:
            category = tool.category
        elif definition is not None:
            category = definition.category
        else:
            return []

        flag = permission_for_category(category)
        return [flag.value] if flag else []
