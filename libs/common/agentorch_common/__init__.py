"""Shared infrastructure for the agent orchestration engine."""
