"""Impersonation maintenance activities: expiry sweep and audit retention."""

from temporalio import activity

from src.console.core.alerts import get_alert_channel
from src.console.core.config import get_settings
from src.console.core.db import get_session
from src.console.repositories import (
    EmployeeRepository,
    ImpersonationAuditLogRepository,
    ImpersonationSessionRepository,
    TenantRepository,
)
from src.console.services import AuditService, ImpersonationNotifier, ImpersonationService


@activity.defn
async def expire_lapsed_sessions() -> int:
    """
    End every active session whose expiry has passed.

    Idempotent: a session that already ended is skipped, so a retried
    activity never writes a second end entry.

    Returns:
        Number of sessions moved to expired
    """
    settings = get_settings()

    async with get_session() as session, get_session() as audit_session:
        audit_service = AuditService(
            ImpersonationAuditLogRepository(audit_session),
            audit_session,
            get_alert_channel(),
            max_attempts=settings.audit_write_max_attempts,
            retry_backoff_seconds=settings.audit_write_retry_backoff_seconds,
        )
        tenant_repo = TenantRepository(session)
        service = ImpersonationService(
            ImpersonationSessionRepository(session),
            tenant_repo,
            audit_service,
            ImpersonationNotifier(EmployeeRepository(session), tenant_repo),
            session,
        )
        count = await service.expire_lapsed_sessions()

    activity.logger.info(f"Expired {count} lapsed impersonation sessions")
    return count


@activity.defn
async def purge_expired_audit_logs(retention_days: int) -> int:
    """
    Delete impersonation audit entries older than retention_days.

    This is the only path that removes audit entries.

    Args:
        retention_days: Number of days of audit history to keep

    Returns:
        Number of entries deleted
    """
    activity.logger.info(f"Purging impersonation audit entries older than {retention_days} days")

    async with get_session() as session:
        audit_service = AuditService(
            ImpersonationAuditLogRepository(session), session, get_alert_channel()
        )
        count = await audit_service.purge_expired(retention_days)

    activity.logger.info(f"Deleted {count} impersonation audit entries")
    return count
