"""Service factory dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from src.console.api.dependencies.db import DBSession
from src.console.api.dependencies.repositories import EmployeeRepo, SessionRepo, TenantRepo
from src.console.core.alerts import get_alert_channel
from src.console.core.config import get_settings
from src.console.core.db import get_session
from src.console.repositories import ImpersonationAuditLogRepository
from src.console.services import (
    AnalyticsService,
    AuditService,
    GuardService,
    ImpersonationNotifier,
    ImpersonationService,
)


async def get_audit_service() -> AsyncGenerator[AuditService]:
    """Get audit service with its own isolated session.

    Audit entries commit independently of the business transaction, so a
    denial is preserved even when the request's own work rolls back.
    """
    settings = get_settings()
    async with get_session() as session:
        yield AuditService(
            ImpersonationAuditLogRepository(session),
            session,
            get_alert_channel(),
            max_attempts=settings.audit_write_max_attempts,
            retry_backoff_seconds=settings.audit_write_retry_backoff_seconds,
        )


AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]


def get_notifier(employee_repo: EmployeeRepo, tenant_repo: TenantRepo) -> ImpersonationNotifier:
    return ImpersonationNotifier(employee_repo, tenant_repo)


NotifierDep = Annotated[ImpersonationNotifier, Depends(get_notifier)]


def get_impersonation_service(
    session_repo: SessionRepo,
    tenant_repo: TenantRepo,
    audit_service: AuditServiceDep,
    notifier: NotifierDep,
    session: DBSession,
) -> ImpersonationService:
    return ImpersonationService(session_repo, tenant_repo, audit_service, notifier, session)


ImpersonationServiceDep = Annotated[ImpersonationService, Depends(get_impersonation_service)]


def get_guard_service(
    session_repo: SessionRepo,
    audit_service: AuditServiceDep,
    impersonation_service: ImpersonationServiceDep,
    notifier: NotifierDep,
    session: DBSession,
) -> GuardService:
    return GuardService(session_repo, audit_service, impersonation_service, notifier, session)


GuardServiceDep = Annotated[GuardService, Depends(get_guard_service)]


def get_analytics_service(
    session_repo: SessionRepo, employee_repo: EmployeeRepo, tenant_repo: TenantRepo
) -> AnalyticsService:
    return AnalyticsService(session_repo, employee_repo, tenant_repo)


AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
