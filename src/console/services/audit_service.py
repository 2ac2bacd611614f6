"""Impersonation audit recorder - appends entries for every session event."""

import asyncio
import contextlib
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.console.core.alerts import AlertChannel, OperationalAlert
from src.console.core.logging import get_logger
from src.console.core.request_metadata import RequestMetadata
from src.console.models.enums import ActionType
from src.console.models.public import ImpersonationAuditLog, ImpersonationSession
from src.console.repositories.public import ImpersonationAuditLogRepository
from src.console.schemas.audit import AuditDetails

logger = get_logger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 1000


@dataclass(frozen=True)
class AuditRecorded:
    entry: ImpersonationAuditLog


@dataclass(frozen=True)
class AuditWriteFailed:
    error: str
    attempts: int


AuditWriteResult = AuditRecorded | AuditWriteFailed


class AuditService:
    """Records impersonation audit entries.

    Writes go through a dedicated session so they commit independently of
    the business transaction. A failed write is retried, then escalated to
    the operational alert channel. ``record`` never raises into the caller;
    it returns an explicit result instead.
    """

    def __init__(
        self,
        audit_repo: ImpersonationAuditLogRepository,
        session: AsyncSession,
        alerts: AlertChannel,
        max_attempts: int = 3,
        retry_backoff_seconds: float = 0.2,
    ):
        self.audit_repo = audit_repo
        self.session = session
        self.alerts = alerts
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds

    async def record(
        self,
        impersonation: ImpersonationSession,
        action: str,
        action_type: ActionType,
        resource: str,
        success: bool,
        details: AuditDetails,
        *,
        description: str | None = None,
        resource_id: str | None = None,
        error_message: str | None = None,
        request: RequestMetadata | None = None,
    ) -> AuditWriteResult:
        """Append one entry to the session's audit trail.

        Args:
            impersonation: Session the entry belongs to
            action: Operation name (e.g. "view_bookings", "session_started")
            action_type: Category of the action
            resource: Resource acted on
            success: Whether the action was allowed and completed
            details: Tagged details variant stored as JSON
            description: Human-readable summary (defaults to action on resource)
            resource_id: Optional ID of the specific record touched
            error_message: Denial reason or failure message, truncated to 1000 chars
            request: Client metadata of the request that caused the entry

        Returns:
            AuditRecorded with the stored entry, or AuditWriteFailed once
            every attempt has failed and the failure has been escalated
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            entry = ImpersonationAuditLog(
                session_id=impersonation.id,
                impersonator_id=impersonation.impersonator_id,
                target_tenant_id=impersonation.target_tenant_id,
                action=action,
                action_type=action_type.value,
                resource=resource,
                resource_id=resource_id,
                description=(description or f"{action_type.value} {resource}")[:1000],
                success=success,
                error_message=error_message[:MAX_ERROR_MESSAGE_LENGTH] if error_message else None,
                details=details.model_dump(mode="json"),
                ip_address=request.ip_address if request else None,
                user_agent=request.user_agent if request else None,
                request_id=request.request_id if request else None,
            )
            try:
                self.audit_repo.add(entry)
                await self.session.commit()
            except Exception as e:
                last_error = e
                logger.warning(
                    "Audit write failed",
                    session_id=str(impersonation.id),
                    action=action,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(e),
                )
                # Isolated session: rolling back never touches the business transaction
                with contextlib.suppress(Exception):
                    await self.session.rollback()
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_backoff_seconds * attempt)
                continue

            logger.debug(
                "Audit entry recorded",
                session_id=str(impersonation.id),
                action=action,
                action_type=action_type.value,
                success=success,
            )
            return AuditRecorded(entry=entry)

        error = str(last_error) if last_error else "unknown error"
        await self.alerts.escalate(
            OperationalAlert(
                name="impersonation_audit_write_failed",
                message="An impersonation audit entry could not be persisted",
                context={
                    "session_id": str(impersonation.id),
                    "impersonator_id": str(impersonation.impersonator_id),
                    "target_tenant_id": str(impersonation.target_tenant_id),
                    "action": action,
                    "success": success,
                    "attempts": self.max_attempts,
                    "error": error,
                },
            )
        )
        return AuditWriteFailed(error=error, attempts=self.max_attempts)

    async def count_actions(self, session_id: UUID) -> int:
        """Successful non-system actions recorded for a session."""
        return await self.audit_repo.count_actions(session_id)

    async def list_session_logs(
        self,
        session_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
        action_type: ActionType | None = None,
        success: bool | None = None,
    ) -> tuple[list[ImpersonationAuditLog], str | None, bool]:
        """List one session's audit entries."""
        return await self.audit_repo.list_by_session(
            session_id=session_id,
            cursor=cursor,
            limit=limit,
            action_type=action_type,
            success=success,
        )

    async def list_logs(
        self,
        cursor: str | None = None,
        limit: int = 50,
        tenant_id: UUID | None = None,
        impersonator_id: UUID | None = None,
        action_type: ActionType | None = None,
        success: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[ImpersonationAuditLog], str | None, bool]:
        """List audit entries across sessions."""
        return await self.audit_repo.list_all(
            cursor=cursor,
            limit=limit,
            tenant_id=tenant_id,
            impersonator_id=impersonator_id,
            action_type=action_type,
            success=success,
            search=search,
        )

    async def export_session_logs(self, session_id: UUID) -> list[ImpersonationAuditLog]:
        """Every entry of a session in creation order."""
        return await self.audit_repo.list_for_export(session_id)

    async def purge_expired(self, retention_days: int) -> int:
        """Delete entries past the retention window."""
        count = await self.audit_repo.purge_older_than(retention_days)
        await self.session.commit()
        logger.info("Purged impersonation audit entries", count=count, retention_days=retention_days)
        return count
