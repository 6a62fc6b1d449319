"""Agent domain enums."""

from enum import Enum


class PermissionFlag(str, Enum):
    """Boolean grants carried by an agent configuration, one per tool category."""

    CREATE_WORK_ORDERS = "can_create_work_orders"
    MODIFY_TASKS = "can_modify_tasks"
    ACCESS_CLIENT_DATA = "can_access_client_data"
    SEND_EMAILS = "can_send_emails"
    MODIFY_DELIVERABLES = "can_modify_deliverables"
    ACCESS_FINANCIAL_DATA = "can_access_financial_data"
    MODIFY_PLAYBOOKS = "can_modify_playbooks"


class ApprovalActionClass(str, Enum):
    """Action classes that team policy may gate behind human approval."""

    EXTERNAL_SENDS = "external_sends"
    FINANCIAL = "financial"
    CONTRACTS = "contracts"
    SCOPE_CHANGES = "scope_changes"


class WorkflowStateStatus(str, Enum):
    """Lifecycle of a single agent workflow, derived from its timestamps."""

    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class ActivityStatus(str, Enum):
    """Outcome recorded on an activity log tool call."""

    SUCCESS = "success"
    FAILED = "failed"
    DENIED = "denied"


# Tool category -> permission flag. Categories not listed here need no grant.
CATEGORY_PERMISSIONS: dict[str, PermissionFlag] = {
    "work_orders": PermissionFlag.CREATE_WORK_ORDERS,
    "tasks": PermissionFlag.MODIFY_TASKS,
    "client": PermissionFlag.ACCESS_CLIENT_DATA,
    "client_data": PermissionFlag.ACCESS_CLIENT_DATA,
    "email": PermissionFlag.SEND_EMAILS,
    "deliverables": PermissionFlag.MODIFY_DELIVERABLES,
    "financial": PermissionFlag.ACCESS_FINANCIAL_DATA,
    "playbooks": PermissionFlag.MODIFY_PLAYBOOKS,
}

# Approval action class -> GlobalAISettings flag.
APPROVAL_FLAGS: dict[ApprovalActionClass, str] = {
    ApprovalActionClass.EXTERNAL_SENDS: "require_approval_external_sends",
    ApprovalActionClass.FINANCIAL: "require_approval_financial",
    ApprovalActionClass.CONTRACTS: "require_approval_contracts",
    ApprovalActionClass.SCOPE_CHANGES: "require_approval_scope_changes",
}


def permission_for_category(category: str | Enum) -> PermissionFlag | None:
    """Permission flag guarding ``category``, None when the category needs no grant."""
    key = category.value if isinstance(category, Enum) else category
    return CATEGORY_PERMISSIONS.get(key)
