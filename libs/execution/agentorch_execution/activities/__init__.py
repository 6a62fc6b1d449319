"""Temporal activities for orchestration jobs."""

from .orchestration_activities import OrchestrationActivities, make_orchestration_activities

__all__ = ["OrchestrationActivities", "make_orchestration_activities"]
