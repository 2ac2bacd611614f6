"""Impersonation session lifecycle - issuing, ending and expiring sessions."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.console.core.config import (
    MAX_SESSION_DURATION_MINUTES,
    MIN_SESSION_DURATION_MINUTES,
    Settings,
    get_settings,
)
from src.console.core.exceptions import (
    ConcurrentSessionNotAllowed,
    DurationOutOfRange,
    InvalidReason,
    RoleNotAllowed,
    SessionAccessDenied,
    SessionNotFound,
    TenantNotFound,
    TenantUnavailable,
)
from src.console.core.logging import bind_impersonation_context, get_logger
from src.console.core.request_metadata import RequestMetadata
from src.console.models.base import utc_now
from src.console.models.enums import ActionType, EndCause, SessionStatus, UrgencyLevel
from src.console.models.public import Employee, ImpersonationSession
from src.console.repositories.public import ImpersonationSessionRepository, TenantRepository
from src.console.schemas.audit import SessionEndedDetails, SessionStartedDetails
from src.console.schemas.policy import (
    DEFAULT_PERMISSIONS,
    build_restrictions,
    validate_permissions,
)
from src.console.services.audit_service import AuditService
from src.console.services.notification_service import ImpersonationNotifier

logger = get_logger(__name__)

SESSION_RESOURCE = "impersonation_session"


class ImpersonationService:
    """Issues and terminates impersonation sessions.

    A session's status only moves from ``active`` to one terminal state.
    Ending is idempotent: a session that has already ended is returned
    unchanged and produces no second end entry.
    """

    def __init__(
        self,
        session_repo: ImpersonationSessionRepository,
        tenant_repo: TenantRepository,
        audit_service: AuditService,
        notifier: ImpersonationNotifier,
        session: AsyncSession,
        settings: Settings | None = None,
    ):
        self.session_repo = session_repo
        self.tenant_repo = tenant_repo
        self.audit_service = audit_service
        self.notifier = notifier
        self.session = session
        self.settings = settings or get_settings()

    async def start_session(
        self,
        impersonator: Employee,
        target_tenant_id: UUID,
        reason: str,
        duration_minutes: int,
        *,
        ticket_number: str | None = None,
        requested_by: str | None = None,
        target_user_id: UUID | None = None,
        urgency_level: UrgencyLevel = UrgencyLevel.MEDIUM,
        request: RequestMetadata | None = None,
    ) -> ImpersonationSession:
        """Open a time-boxed session for an employee inside a tenant.

        Validation runs before anything is written, so a rejected request
        leaves no session and no audit entry behind.

        Raises:
            RoleNotAllowed: Employee role may not impersonate
            InvalidReason: Reason too short or too long after trimming
            DurationOutOfRange: Duration outside 5-480 minutes
            TenantNotFound: Target tenant does not exist
            TenantUnavailable: Target tenant is inactive, suspended or deleted
            ConcurrentSessionNotAllowed: Employee already has an active session
        """
        settings = self.settings

        if impersonator.role not in settings.impersonation_allowed_roles:
            logger.warning(
                "Impersonation refused for role",
                employee_id=str(impersonator.id),
                role=impersonator.role,
            )
            raise RoleNotAllowed(
                f"Role {impersonator.role} may not impersonate tenants",
                details={"role": impersonator.role},
            )

        reason = (reason or "").strip()
        min_length = settings.impersonation_min_reason_length
        max_length = settings.impersonation_max_reason_length
        if len(reason) < min_length:
            raise InvalidReason(
                f"Reason must be at least {min_length} characters",
                details={"min_length": min_length, "length": len(reason)},
            )
        if len(reason) > max_length:
            raise InvalidReason(
                f"Reason must be at most {max_length} characters",
                details={"max_length": max_length, "length": len(reason)},
            )

        if not MIN_SESSION_DURATION_MINUTES <= duration_minutes <= MAX_SESSION_DURATION_MINUTES:
            raise DurationOutOfRange(
                f"Duration must be between {MIN_SESSION_DURATION_MINUTES} and "
                f"{MAX_SESSION_DURATION_MINUTES} minutes",
                details={
                    "requested": duration_minutes,
                    "min": MIN_SESSION_DURATION_MINUTES,
                    "max": MAX_SESSION_DURATION_MINUTES,
                },
            )

        tenant = await self.tenant_repo.get_by_id(target_tenant_id)
        if tenant is None:
            raise TenantNotFound(
                "Tenant not found", details={"tenant_id": str(target_tenant_id)}
            )
        if not tenant.is_available:
            raise TenantUnavailable(
                f"Tenant is {'deleted' if tenant.is_deleted else tenant.status}",
                details={"tenant_id": str(tenant.id), "status": tenant.status},
            )

        if not settings.impersonation_allow_concurrent_sessions:
            await self._ensure_no_active_session(impersonator.id, request)

        effective_minutes = min(duration_minutes, settings.impersonation_max_session_minutes)
        now = utc_now()
        permissions = validate_permissions(DEFAULT_PERMISSIONS)
        restrictions = build_restrictions(settings, effective_minutes)

        impersonation = ImpersonationSession(
            impersonator_id=impersonator.id,
            impersonator_role=impersonator.role,
            target_tenant_id=tenant.id,
            target_user_id=target_user_id,
            reason=reason,
            ticket_number=ticket_number,
            requested_by=requested_by,
            urgency_level=urgency_level.value,
            started_at=now,
            expires_at=now + timedelta(minutes=effective_minutes),
            permissions=[p.model_dump(mode="json") for p in permissions],
            restrictions=[r.model_dump(mode="json") for r in restrictions],
            ip_address=request.ip_address if request else None,
            user_agent=request.user_agent if request else None,
            location=request.location if request else None,
        )
        self.session_repo.add(impersonation)
        await self.session.commit()

        bind_impersonation_context(impersonation.id, tenant.id)
        logger.info(
            "Impersonation session started",
            session_id=str(impersonation.id),
            impersonator_id=str(impersonator.id),
            tenant_id=str(tenant.id),
            requested_minutes=duration_minutes,
            effective_minutes=effective_minutes,
        )

        await self.audit_service.record(
            impersonation,
            "session_started",
            ActionType.SYSTEM,
            SESSION_RESOURCE,
            True,
            SessionStartedDetails(
                requested_minutes=duration_minutes,
                effective_minutes=effective_minutes,
                urgency_level=urgency_level,
                ticket_number=ticket_number,
            ),
            description=f"Impersonation started: {reason}",
            resource_id=str(impersonation.id),
            request=request,
        )
        await self.notifier.session_started(impersonation)
        return impersonation

    async def _ensure_no_active_session(
        self, impersonator_id: UUID, request: RequestMetadata | None
    ) -> None:
        """Expire the employee's lapsed sessions, then refuse if one is still active.

        The advisory lock taken here is held until the new session commits.
        """
        now = utc_now()
        for stale in await self.session_repo.list_active_for_impersonator(impersonator_id):
            if stale.has_lapsed(now):
                await self._end(stale.id, EndCause.EXPIRED, request=request)

        await self.session_repo.lock_impersonator(impersonator_id)
        active = await self.session_repo.list_active_for_impersonator(impersonator_id)
        if active:
            raise ConcurrentSessionNotAllowed(
                "An impersonation session is already active",
                details={"active_session_id": str(active[0].id)},
            )

    async def end_session(
        self,
        session_id: UUID,
        cause: EndCause,
        *,
        ended_by: Employee | None = None,
        request: RequestMetadata | None = None,
    ) -> ImpersonationSession:
        """End a session. Safe to call any number of times.

        Args:
            session_id: Session to end
            cause: manual -> completed, expired -> expired, error -> terminated
            ended_by: Employee requesting the end; must be the impersonator
                or hold a session admin role. None for system callers.
            request: Client metadata for the end entry

        Raises:
            SessionNotFound: No such session
            SessionAccessDenied: ``ended_by`` may not end this session
        """
        impersonation, _ = await self._end(
            session_id, cause, ended_by=ended_by, request=request
        )
        return impersonation

    async def _end(
        self,
        session_id: UUID,
        cause: EndCause,
        *,
        ended_by: Employee | None = None,
        request: RequestMetadata | None = None,
    ) -> tuple[ImpersonationSession, bool]:
        """End a session, returning it and whether this call changed its state."""
        impersonation = await self.session_repo.get_for_update(session_id)
        if impersonation is None:
            raise SessionNotFound("Session not found", details={"session_id": str(session_id)})

        if ended_by is not None:
            ensure_session_access(
                ended_by, impersonation, admin_roles=self.settings.impersonation_session_admin_roles
            )

        if not impersonation.is_active:
            # Release the row lock; nothing to change
            await self.session.commit()
            logger.debug(
                "Session already ended",
                session_id=str(session_id),
                status=impersonation.status,
            )
            return impersonation, False

        final_status = cause.final_status
        impersonation.status = final_status.value
        impersonation.end_cause = cause.value
        impersonation.ended_at = utc_now()
        await self.session.commit()

        action_count = await self.audit_service.count_actions(impersonation.id)
        duration_seconds = impersonation.duration_seconds()
        logger.info(
            "Impersonation session ended",
            session_id=str(impersonation.id),
            cause=cause.value,
            status=final_status.value,
            duration_seconds=duration_seconds,
            action_count=action_count,
        )

        extra = {}
        if ended_by is not None and ended_by.id != impersonation.impersonator_id:
            extra["ended_by"] = str(ended_by.id)
        await self.audit_service.record(
            impersonation,
            "session_ended",
            ActionType.SYSTEM,
            SESSION_RESOURCE,
            True,
            SessionEndedDetails(
                cause=cause,
                status=final_status,
                duration_seconds=duration_seconds,
                action_count=action_count,
                extra=extra,
            ),
            description=f"Impersonation ended ({final_status.value})",
            resource_id=str(impersonation.id),
            request=request,
        )
        await self.notifier.session_ended(impersonation, action_count)
        return impersonation, True

    async def expire_lapsed_sessions(self) -> int:
        """End every active session whose expiry has passed.

        Returns:
            Number of sessions this call moved to ``expired``
        """
        expired = 0
        for session_id in await self.session_repo.list_lapsed_ids(utc_now()):
            _, changed = await self._end(session_id, EndCause.EXPIRED)
            if changed:
                expired += 1
        if expired:
            logger.info("Expired lapsed impersonation sessions", count=expired)
        return expired

    async def get_session(self, session_id: UUID) -> ImpersonationSession:
        """Get a session by ID.

        Raises:
            SessionNotFound: No such session
        """
        impersonation = await self.session_repo.get_by_id(session_id)
        if impersonation is None:
            raise SessionNotFound("Session not found", details={"session_id": str(session_id)})
        return impersonation

    async def list_sessions(
        self,
        cursor: str | None = None,
        limit: int = 50,
        status: SessionStatus | None = None,
        impersonator_id: UUID | None = None,
        tenant_id: UUID | None = None,
        search: str | None = None,
    ) -> tuple[list[ImpersonationSession], str | None, bool]:
        """List sessions, newest first."""
        return await self.session_repo.list_paginated(
            cursor=cursor,
            limit=limit,
            status=status,
            impersonator_id=impersonator_id,
            tenant_id=tenant_id,
            search=search,
        )


def ensure_session_access(
    employee: Employee, impersonation: ImpersonationSession, admin_roles: list[str]
) -> None:
    """Allow the session's impersonator and holders of ``admin_roles``.

    Raises:
        SessionAccessDenied: Anyone else
    """
    if employee.id == impersonation.impersonator_id or employee.role in admin_roles:
        return
    raise SessionAccessDenied(
        "Only the impersonator may act on this session",
        details={"session_id": str(impersonation.id)},
    )
