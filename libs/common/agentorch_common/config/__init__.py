"""Configuration management for the agent orchestration engine.

Settings are split per concern and aggregated by ``Settings``.
"""

from .base import BaseAppSettings
from .broker import RedisSettings
from .database import Database, DatabaseSettings, get_database, get_db, get_db_settings
from .orchestration import OrchestrationSettings
from .settings import Settings, get_orchestration_settings, get_settings
from .workflow import WorkflowSettings

__all__ = [
    "BaseAppSettings",
    "Database",
    "DatabaseSettings",
    "OrchestrationSettings",
    "RedisSettings",
    "Settings",
    "WorkflowSettings",
    "get_database",
    "get_db",
    "get_db_settings",
    "get_orchestration_settings",
    "get_settings",
]
