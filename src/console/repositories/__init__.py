"""Repository layer - data access abstraction."""

from src.console.repositories.base import BaseRepository
from src.console.repositories.public import (
    EmployeeRepository,
    ImpersonationAuditLogRepository,
    ImpersonationSessionRepository,
    TenantRepository,
)

__all__ = [
    "BaseRepository",
    "EmployeeRepository",
    "ImpersonationAuditLogRepository",
    "ImpersonationSessionRepository",
    "TenantRepository",
]
