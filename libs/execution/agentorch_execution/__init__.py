"""Temporal job workflows and activities for the orchestration engine."""

from .activities import make_orchestration_activities
from .interfaces import ActivityDependencies
from .workflows import WORKFLOWS, workflow_registry


def create_activities_for_worker(dependencies: ActivityDependencies) -> list:
    """All activities a worker must register."""
    return make_orchestration_activities(dependencies)


__all__ = [
    "WORKFLOWS",
    "ActivityDependencies",
    "create_activities_for_worker",
    "make_orchestration_activities",
    "workflow_registry",
]
