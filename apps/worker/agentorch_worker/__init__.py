"""Temporal worker for orchestration jobs."""
