"""Shared enums for models."""

from enum import Enum


class TenantStatus(str, Enum):
    """Restaurant tenant account status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class StaffRole(str, Enum):
    """Role of an internal employee in the admin console."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    SUPPORT = "SUPPORT"
    OPS = "OPS"
    VIEWER = "VIEWER"


class SessionStatus(str, Enum):
    """Impersonation session lifecycle state."""

    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"
    TERMINATED = "terminated"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.ACTIVE


class EndCause(str, Enum):
    """Why a session ended."""

    MANUAL = "manual"
    EXPIRED = "expired"
    ERROR = "error"

    @property
    def final_status(self) -> SessionStatus:
        return _FINAL_STATUS[self]


_FINAL_STATUS = {
    EndCause.MANUAL: SessionStatus.COMPLETED,
    EndCause.EXPIRED: SessionStatus.EXPIRED,
    EndCause.ERROR: SessionStatus.TERMINATED,
}


class ActionType(str, Enum):
    """Kind of action recorded in the impersonation audit trail."""

    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    SYSTEM = "system"


class RestrictionType(str, Enum):
    TIME_LIMIT = "time_limit"
    ACTION_LIMIT = "action_limit"
    RESOURCE_LIMIT = "resource_limit"
    APPROVAL_REQUIRED = "approval_required"


class UrgencyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
