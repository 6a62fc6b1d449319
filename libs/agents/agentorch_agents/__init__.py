"""Agents, per-team agent configuration, budgets, permissions and workflow state."""
