"""Trigger enums."""

from enum import Enum


class TriggerEntityType(str, Enum):
    """Entity types whose status changes can start a chain."""

    WORK_ORDER = "work_order"
    DELIVERABLE = "deliverable"
    TASK = "task"
