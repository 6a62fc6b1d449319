"""Pure transforms applied to a step's output before it is recorded.

Supported ``type`` values:

- ``flatten``: nested mappings become ``parent<separator>child`` keys
  (``separator`` defaults to ``.``).
- ``select_keys``: keep only the top-level ``keys``.
- ``rename_keys``: rename top-level keys per ``mappings`` (old -> new).
- ``summarize``: compute ``fields`` from ``count:<path>`` and
  ``sum:<path with * wildcards>`` expressions.

Unknown types return the data unchanged.
"""

import logging
from typing import Any

from .definition import OutputTransformerConfig

logger = logging.getLogger(__name__)


class OutputTransformer:
    def transform(
        self, data: dict[str, Any], config: OutputTransformerConfig | dict[str, Any] | None
    ) -> dict[str, Any]:
        if config is None:
            return data
        if isinstance(config, OutputTransformerConfig):
            config = config.model_dump()

        kind = config.get("type")
        if kind == "flatten":
            return flatten(data, config.get("separator") or ".")
        if kind == "select_keys":
            keys = config.get("keys") or []
            return {key: value for key, value in data.items() if key in keys}
        if kind == "rename_keys":
            return rename_keys(data, config.get("mappings") or {})
        if kind == "summarize":
            return summarize(data, config.get("fields") or {})

        logger.debug(f"Unknown output transformer type {kind!r}, passing output through")
        return data


def flatten(data: dict[str, Any], separator: str = ".", prefix: str = "") -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        path = f"{prefix}{separator}{key}" if prefix else str(key)
        if isinstance(value, dict) and value:
            result.update(flatten(value, separator, path))
        else:
            result[path] = value
    return result


def rename_keys(data: dict[str, Any], mappings: dict[str, str]) -> dict[str, Any]:
    return {mappings.get(key, key): value for key, value in data.items()}


def summarize(data: dict[str, Any], fields: dict[str, str]) -> dict[str, Any]:
    """Evaluate each ``name -> "<fn>:<path>"`` expression against ``data``.

    Expressions with an unknown function evaluate to None.
    """
    summary: dict[str, Any] = {}
    for name, expression in fields.items():
        function, _, path = str(expression).partition(":")
        values = resolve_path(data, path.strip())
        if function == "count":
            summary[name] = count_values(values, wildcard="*" in path)
        elif function == "sum":
            summary[name] = sum(value for value in values if _is_number(value))
        else:
            summary[name] = None
    return summary


def resolve_path(data: Any, path: str) -> list[Any]:
    """All values reachable through a dot path; ``*`` fans out over list items."""
    current = [data]
    for segment in path.split(".") if path else []:
        resolved = []
        for item in current:
            if segment == "*":
                if isinstance(item, list):
                    resolved.extend(item)
                elif isinstance(item, dict):
                    resolved.extend(item.values())
            elif isinstance(item, dict) and segment in item:
                resolved.append(item[segment])
            elif isinstance(item, list) and segment.isdigit() and int(segment) < len(item):
                resolved.append(item[int(segment)])
        current = resolved
    return current


def count_values(values: list[Any], wildcard: bool = False) -> int:
    """Number of matched items; a single non-wildcard match counts its own items."""
    if wildcard or len(values) != 1:
        return len(values)
    value = values[0]
    return len(value) if isinstance(value, list | dict) else 1


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)
