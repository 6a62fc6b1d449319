from enum import Enum


class ToolCategory(str, Enum):
    """Known tool categories. Tools may declare other categories as plain strings."""

    WORK_ORDERS = "work_orders"
    TASKS = "tasks"
    CLIENT = "client"
    CLIENT_DATA = "client_data"
    EMAIL = "email"
    DELIVERABLES = "deliverables"
    FINANCIAL = "financial"
    PLAYBOOKS = "playbooks"
    CONTRACTS = "contracts"
    SCOPE_CHANGES = "scope_changes"
    DOCUMENTS = "documents"
    GENERAL = "general"


class ToolResultStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    DENIED = "denied"
