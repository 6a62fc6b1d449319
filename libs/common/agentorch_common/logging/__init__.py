"""Logging with team context, audit trail and correlation ids."""

from .audit_logger import AuditAction, AuditEvent, AuditLogger, get_audit_logger
from .config import TeamContextFormatter, setup_logging
from .correlation import (
    OrchestrationLogger,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from .filters import TeamContextFilter

__all__ = [
    "AuditAction",
    "AuditEvent",
    "AuditLogger",
    "OrchestrationLogger",
    "TeamContextFilter",
    "TeamContextFormatter",
    "generate_correlation_id",
    "get_audit_logger",
    "get_correlation_id",
    "set_correlation_id",
    "setup_logging",
]
