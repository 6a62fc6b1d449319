from enum import Enum


class InboxItemType(str, Enum):
    APPROVAL = "approval"
    NOTIFICATION = "notification"
    FLAG = "flag"
    MENTION = "mention"


class SourceType(str, Enum):
    AI_AGENT = "ai_agent"
    HUMAN = "human"
    SYSTEM = "system"


class Urgency(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
