"""Agent context assembly under a token budget."""
