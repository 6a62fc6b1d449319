"""Prompt rendering helpers shared by the context value objects."""

import json
import math
from typing import Any

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str, chars_per_token: int = CHARS_PER_TOKEN) -> int:
    return math.ceil(len(text) / chars_per_token)


def format_key(key: Any) -> str:
    """``recent_work_orders`` -> ``Recent Work Orders``."""
    words = str(key).replace("_", " ").split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words)


def format_value(value: Any, expand_lists: bool = True) -> str:
    """Render one context value.

    Lists are joined with ", " (non-scalar items as JSON), mappings are pretty
    printed JSON, booleans become Yes/No and None becomes "Not specified".
    With ``expand_lists`` off, lists are rendered as JSON too.
    """
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if value is None:
        return "Not specified"
    if isinstance(value, dict):
        return json.dumps(value, indent=4, default=str) if value else ""
    if isinstance(value, list | tuple):
        if not expand_lists:
            return json.dumps(list(value), indent=4, default=str)
        return ", ".join(
            str(item) if _is_scalar(item) else json.dumps(item, default=str) for item in value
        )
    return str(value)


def format_section(title: str, data: dict[str, Any], expand_lists: bool = True) -> str:
    lines = [f"## {title}"]
    for key, value in data.items():
        lines.append(f"- **{format_key(key)}**: {format_value(value, expand_lists)}")
    return "\n".join(lines)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, str | int | float | bool)
