"""Trigger condition predicates.

``trigger_conditions`` is a mapping of predicate name to argument. Each known
name maps to one function below; every present predicate must hold. Unknown
names are ignored, and ``deduplication_window_minutes`` is configuration
rather than a predicate.
"""

import logging
from collections.abc import Callable
from typing import Any

from .enums import TriggerEntityType
from .models import TriggerEntity

logger = logging.getLogger(__name__)

DEDUPLICATION_WINDOW_KEY = "deduplication_window_minutes"


def entity_budget(entity: TriggerEntity) -> float:
    """Budget of the entity; work orders carry it as ``budget_cost``."""
    attributes = entity.attributes
    if entity.type is TriggerEntityType.WORK_ORDER:
        value = attributes.get("budget_cost")
    else:
        value = attributes.get("budget", attributes.get("budget_cost"))
    return _to_float(value) or 0.0


def budget_greater_than(entity: TriggerEntity, threshold: Any) -> bool:
    limit = _to_float(threshold)
    return limit is not None and entity_budget(entity) > limit


def budget_less_than(entity: TriggerEntity, threshold: Any) -> bool:
    limit = _to_float(threshold)
    return limit is not None and entity_budget(entity) < limit


def has_tags(entity: TriggerEntity, tags: Any) -> bool:
    """All of ``tags`` are on the entity."""
    required = tags if isinstance(tags, list) else [tags]
    return set(map(str, required)) <= set(entity.tags)


def entity_field_equals(entity: TriggerEntity, expected: Any) -> bool:
    """Every ``field: value`` pair equals the entity attribute."""
    if not isinstance(expected, dict):
        return False
    return all(entity.attributes.get(field) == value for field, value in expected.items())


PREDICATES: dict[str, Callable[[TriggerEntity, Any], bool]] = {
    "budget_greater_than": budget_greater_than,
    "budget_less_than": budget_less_than,
    "has_tags": has_tags,
    "entity_field_equals": entity_field_equals,
}


def evaluate_conditions(conditions: dict[str, Any] | None, entity: TriggerEntity) -> bool:
    for name, argument in (conditions or {}).items():
        if name == DEDUPLICATION_WINDOW_KEY:
            continue
        predicate = PREDICATES.get(name)
        if predicate is None:
            logger.debug(f"Ignoring unknown trigger condition {name!r}")
            continue
        if not predicate(entity, argument):
            return False
    return True


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        return float(value)
    try:
        return float(str(value))
    except ValueError:
        return None
