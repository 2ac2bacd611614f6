"""Model exports.

Import from here: `from src.console.models import ImpersonationSession, Tenant`
"""

from src.console.models.enums import (
    ActionType,
    EndCause,
    RestrictionType,
    SessionStatus,
    StaffRole,
    TenantStatus,
    UrgencyLevel,
)
from src.console.models.public import (
    Employee,
    ImpersonationAuditLog,
    ImpersonationSession,
    Tenant,
)

__all__ = [
    # Enums
    "ActionType",
    "EndCause",
    "RestrictionType",
    "SessionStatus",
    "StaffRole",
    "TenantStatus",
    "UrgencyLevel",
    # Public schema models
    "Employee",
    "ImpersonationAuditLog",
    "ImpersonationSession",
    "Tenant",
]
