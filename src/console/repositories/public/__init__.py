"""Public schema repositories."""

from src.console.repositories.public.audit import ImpersonationAuditLogRepository
from src.console.repositories.public.employee import EmployeeRepository
from src.console.repositories.public.impersonation import ImpersonationSessionRepository
from src.console.repositories.public.tenant import TenantRepository

__all__ = [
    "EmployeeRepository",
    "ImpersonationAuditLogRepository",
    "ImpersonationSessionRepository",
    "TenantRepository",
]
