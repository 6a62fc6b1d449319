"""Logging filters for team context."""

import logging

from ..auth.context import UserContext


class TeamContextFilter(logging.Filter):
    """Logging filter that adds team context to log records."""

    def __init__(self, user_context: UserContext | None = None):
        super().__init__()
        self.user_context = user_context

    def filter(self, record: logging.LogRecord) -> bool:
        """Stamp user and team ids onto the record; never drops records."""
        if self.user_context:
            record.user_id = self.user_context.user_id
            record.team_id = self.user_context.team_id
        return True

    def set_context(self, user_context: UserContext) -> None:
        self.user_context = user_context
