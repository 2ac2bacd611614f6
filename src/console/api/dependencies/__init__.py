"""FastAPI dependency injection definitions."""

from src.console.api.dependencies.auth import (
    AuditViewer,
    CurrentEmployee,
    get_current_employee,
    require_audit_viewer,
)
from src.console.api.dependencies.db import DBSession, get_db_session
from src.console.api.dependencies.rate_limit import rate_limited
from src.console.api.dependencies.repositories import (
    EmployeeRepo,
    SessionRepo,
    TenantRepo,
    get_employee_repository,
    get_impersonation_session_repository,
    get_tenant_repository,
)
from src.console.api.dependencies.request import RequestMeta, get_request_metadata
from src.console.api.dependencies.services import (
    AnalyticsServiceDep,
    AuditServiceDep,
    GuardServiceDep,
    ImpersonationServiceDep,
    NotifierDep,
    get_analytics_service,
    get_audit_service,
    get_guard_service,
    get_impersonation_service,
    get_notifier,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Auth
    "AuditViewer",
    "CurrentEmployee",
    "get_current_employee",
    "require_audit_viewer",
    "rate_limited",
    # Request
    "RequestMeta",
    "get_request_metadata",
    # Repositories
    "EmployeeRepo",
    "SessionRepo",
    "TenantRepo",
    "get_employee_repository",
    "get_impersonation_session_repository",
    "get_tenant_repository",
    # Services
    "AnalyticsServiceDep",
    "AuditServiceDep",
    "GuardServiceDep",
    "ImpersonationServiceDep",
    "NotifierDep",
    "get_analytics_service",
    "get_audit_service",
    "get_guard_service",
    "get_impersonation_service",
    "get_notifier",
]
