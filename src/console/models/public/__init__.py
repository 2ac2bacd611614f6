"""Public schema models."""

from src.console.models.public.audit import ImpersonationAuditLog
from src.console.models.public.employee import Employee
from src.console.models.public.impersonation import ImpersonationSession
from src.console.models.public.tenant import Tenant

__all__ = [
    "Employee",
    "ImpersonationAuditLog",
    "ImpersonationSession",
    "Tenant",
]
