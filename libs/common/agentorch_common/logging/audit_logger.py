"""Audit trail for team-scoped orchestration records.

Every repository operation on a team-owned record (chain executions, workflow
states, spend updates, inbox items, memories) emits one structured record on
the ``agentorch.audit`` logger. Records carry the acting user, the owning team
and the correlation id of the job that caused them.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from ..auth.context import UserContext
from .correlation import get_correlation_id

AUDIT_LOGGER_NAME = "agentorch.audit"


class AuditAction(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    READ = "read"
    LIST = "list"
    ERROR = "error"


@dataclass
class AuditEvent:
    """One audited operation on a resource type."""

    action: AuditAction
    resource_type: str
    user_context: UserContext
    resource_id: str | UUID | None = None
    resource_data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    correlation_id: str | None = field(default_factory=get_correlation_id)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def user_id(self) -> str:
        return self.user_context.user_id

    @property
    def team_id(self) -> str:
        return self.user_context.team_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "action": self.action.value,
            "resource_type": self.resource_type,
            "resource_id": str(self.resource_id) if self.resource_id is not None else None,
            "user_id": self.user_id,
            "team_id": self.team_id,
            "correlation_id": self.correlation_id,
            "resource_data": self.resource_data,
            "error": self.error,
            "details": self.details,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class AuditLogger:
    """Writes ``AuditEvent`` records through standard logging."""

    def __init__(self, logger_name: str = AUDIT_LOGGER_NAME):
        self.logger = logging.getLogger(logger_name)

    def record(self, event: AuditEvent) -> None:
        level = logging.WARNING if event.action is AuditAction.ERROR else logging.INFO
        self.logger.log(
            level,
            "AUDIT %s %s",
            event.action.value.upper(),
            event.resource_type,
            extra={
                "audit_event": event.to_dict(),
                "user_id": event.user_id,
                "team_id": event.team_id,
            },
        )

    def _emit(
        self,
        action: AuditAction,
        resource_type: str,
        user_context: UserContext,
        resource_id: str | UUID | None = None,
        resource_data: dict[str, Any] | None = None,
        error: str | None = None,
        **details: Any,
    ) -> None:
        self.record(
            AuditEvent(
                action=action,
                resource_type=resource_type,
                user_context=user_context,
                resource_id=resource_id,
                resource_data=resource_data or {},
                error=error,
                details=details,
            )
        )

    def log_create(self, resource_type, user_context, resource_id, resource_data=None, **details):
        self._emit(
            AuditAction.CREATE, resource_type, user_context, resource_id, resource_data, **details
        )

    def log_update(self, resource_type, user_context, resource_id, resource_data=None, **details):
        self._emit(
            AuditAction.UPDATE, resource_type, user_context, resource_id, resource_data, **details
        )

    def log_delete(self, resource_type, user_context, resource_id=None, **details):
        """Single record, or a bulk delete when ``resource_id`` is None."""
        self._emit(AuditAction.DELETE, resource_type, user_context, resource_id, **details)

    def log_read(self, resource_type, user_context, resource_id=None, **details):
        self._emit(AuditAction.READ, resource_type, user_context, resource_id, **details)

    def log_list(self, resource_type, user_context, count=None, filters=None, **details):
        if count is not None:
            details["count"] = count
        if filters:
            details["filters"] = filters
        self._emit(AuditAction.LIST, resource_type, user_context, **details)

    def log_error(self, resource_type, user_context, error, resource_id=None, **details):
        resource_data = details.pop("resource_data", None)
        self._emit(
            AuditAction.ERROR,
            resource_type,
            user_context,
            resource_id,
            resource_data,
            error=error,
            **details,
        )


_audit_logger: AuditLogger | None = None


def get_audit_logger() -> AuditLogger:
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger
