"""Guarded execution of actions inside an impersonation session."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.console.core.exceptions import (
    ImpersonationError,
    PermissionDenied,
    RestrictionViolated,
    SessionExpired,
    SessionNotActive,
    SessionNotFound,
)
from src.console.core.logging import bind_impersonation_context, get_logger
from src.console.core.request_metadata import RequestMetadata
from src.console.models.base import utc_now
from src.console.models.enums import ActionType, EndCause
from src.console.models.public import Employee, ImpersonationSession
from src.console.repositories.public import ImpersonationSessionRepository
from src.console.schemas.audit import ActionDeniedDetails, ActionDetails, ActionFailedDetails
from src.console.schemas.policy import Restriction
from src.console.services.access_policy import (
    PermissionDecision,
    ProposedAction,
    check_permission,
    enforce_restrictions,
)
from src.console.services.audit_service import AuditRecorded, AuditService, AuditWriteResult
from src.console.services.impersonation_service import (
    ImpersonationService,
    ensure_session_access,
)
from src.console.services.notification_service import ImpersonationNotifier

logger = get_logger(__name__)

_DENIAL_ERRORS: dict[str, type[ImpersonationError]] = {
    error.code: error
    for error in (SessionNotActive, SessionExpired, RestrictionViolated, PermissionDenied)
}


@dataclass(frozen=True)
class GuardedAction:
    """An action an impersonator asks to perform, plus what to audit about it."""

    action_type: ActionType
    resource: str
    action: str | None = None
    resource_id: str | None = None
    description: str | None = None
    approval_token: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.action or f"{self.action_type.value}_{self.resource}"

    @property
    def proposal(self) -> ProposedAction:
        return ProposedAction(
            action_type=self.action_type,
            resource=self.resource,
            approval_token=self.approval_token,
        )


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    code: str | None = None
    reason: str | None = None
    violated_restriction: Restriction | None = None
    audit: AuditWriteResult | None = None

    @property
    def audit_recorded(self) -> bool:
        return isinstance(self.audit, AuditRecorded)

    @property
    def audit_entry_id(self) -> UUID | None:
        if isinstance(self.audit, AuditRecorded):
            return self.audit.entry.id
        return None

    def to_error(self, session_id: UUID, guarded: GuardedAction) -> ImpersonationError:
        """Structured caller-facing error for a denial."""
        error_cls = _DENIAL_ERRORS.get(self.code or "", PermissionDenied)
        details: dict[str, Any] = {
            "session_id": str(session_id),
            "action": guarded.action_type.value,
            "resource": guarded.resource,
            "audit_recorded": self.audit_recorded,
        }
        if self.violated_restriction is not None:
            details["restriction_type"] = self.violated_restriction.type.value
        return error_cls(self.reason or "Action not allowed", details=details)


@dataclass(frozen=True)
class GuardOutcome[T]:
    session: ImpersonationSession
    value: T | None
    audit: AuditWriteResult

    @property
    def audit_recorded(self) -> bool:
        return isinstance(self.audit, AuditRecorded)

    @property
    def audit_entry_id(self) -> UUID | None:
        if isinstance(self.audit, AuditRecorded):
            return self.audit.entry.id
        return None


class GuardService:
    """Runs actions inside a session behind restriction and permission checks.

    Restrictions are evaluated first, then permissions. Every denial is
    audited and triggers the failure notification. The session row stays
    locked from the action-limit check until the action's own entry is
    written, so concurrent actions of one session cannot overrun the limit.
    """

    def __init__(
        self,
        session_repo: ImpersonationSessionRepository,
        audit_service: AuditService,
        impersonation_service: ImpersonationService,
        notifier: ImpersonationNotifier,
        session: AsyncSession,
    ):
        self.session_repo = session_repo
        self.audit_service = audit_service
        self.impersonation_service = impersonation_service
        self.notifier = notifier
        self.session = session

    async def authorize(
        self,
        session_id: UUID,
        guarded: GuardedAction,
        *,
        actor: Employee | None = None,
        request: RequestMetadata | None = None,
    ) -> tuple[ImpersonationSession, GuardDecision]:
        """Decide whether an action may run.

        Denials are audited and their lock released before returning. On
        allow the row lock is still held; the caller must commit or roll
        back. ``run`` does this for you.

        Raises:
            SessionNotFound: No such session
            SessionAccessDenied: ``actor`` is not the session's impersonator
        """
        impersonation = await self.session_repo.get_for_update(session_id)
        if impersonation is None:
            raise SessionNotFound("Session not found", details={"session_id": str(session_id)})
        if actor is not None:
            ensure_session_access(actor, impersonation, admin_roles=[])
        bind_impersonation_context(impersonation.id, impersonation.target_tenant_id)

        if not impersonation.is_active:
            decision = GuardDecision(
                allowed=False,
                code=SessionNotActive.code,
                reason=f"Session is {impersonation.status}",
            )
            return impersonation, await self._deny(impersonation, guarded, decision, request)

        action_count = await self.audit_service.count_actions(impersonation.id)
        restriction = enforce_restrictions(
            impersonation, guarded.proposal, action_count=action_count, now=utc_now()
        )
        if not restriction.allowed:
            decision = GuardDecision(
                allowed=False,
                code=SessionExpired.code if restriction.is_expiry else RestrictionViolated.code,
                reason=restriction.reason,
                violated_restriction=restriction.violated_restriction,
            )
            return impersonation, await self._deny(impersonation, guarded, decision, request)

        permission = check_permission(impersonation, guarded.action_type, guarded.resource)
        if not permission.allowed:
            decision = GuardDecision(
                allowed=False, code=PermissionDenied.code, reason=permission.reason
            )
            return impersonation, await self._deny(impersonation, guarded, decision, request)

        return impersonation, GuardDecision(allowed=True)

    async def _deny(
        self,
        impersonation: ImpersonationSession,
        guarded: GuardedAction,
        decision: GuardDecision,
        request: RequestMetadata | None,
    ) -> GuardDecision:
        logger.warning(
            "Impersonation action denied",
            session_id=str(impersonation.id),
            action=guarded.name,
            resource=guarded.resource,
            code=decision.code,
            reason=decision.reason,
        )
        audit = await self.audit_service.record(
            impersonation,
            guarded.name,
            guarded.action_type,
            guarded.resource,
            False,
            ActionDeniedDetails(
                code=decision.code or PermissionDenied.code,
                reason=decision.reason or "",
                restriction_type=(
                    decision.violated_restriction.type if decision.violated_restriction else None
                ),
                extra=guarded.metadata,
            ),
            description=guarded.description,
            resource_id=guarded.resource_id,
            error_message=decision.reason,
            request=request,
        )

        if decision.code == SessionExpired.code:
            # Lazy expiry; ending the session also releases the row lock
            await self.impersonation_service.end_session(
                impersonation.id, EndCause.EXPIRED, request=request
            )
        else:
            await self.session.commit()

        await self.notifier.action_failed(
            impersonation, guarded.name, guarded.resource, decision.reason or ""
        )
        return GuardDecision(
            allowed=False,
            code=decision.code,
            reason=decision.reason,
            violated_restriction=decision.violated_restriction,
            audit=audit,
        )

    async def run[T](
        self,
        session_id: UUID,
        guarded: GuardedAction,
        operation: Callable[[ImpersonationSession], Awaitable[T]] | None = None,
        *,
        actor: Employee | None = None,
        request: RequestMetadata | None = None,
    ) -> GuardOutcome[T]:
        """Authorize an action, run it, and audit the result.

        Args:
            session_id: Session the action runs in
            guarded: The action to perform
            operation: Coroutine performing the action; None to only record it
            actor: Employee calling; must be the session's impersonator
            request: Client metadata for the audit entry

        Raises:
            SessionNotActive, SessionExpired, RestrictionViolated,
            PermissionDenied: The action was denied (and audited)
            Exception: Whatever ``operation`` raised, after a failure entry
        """
        impersonation, decision = await self.authorize(
            session_id, guarded, actor=actor, request=request
        )
        if not decision.allowed:
            raise decision.to_error(impersonation.id, guarded)

        try:
            value = await operation(impersonation) if operation is not None else None
        except Exception as e:
            # Rollback expires every loaded instance; reload before reading it again
            await self.session.rollback()
            await self.session.refresh(impersonation)
            logger.warning(
                "Impersonation action failed",
                session_id=str(impersonation.id),
                action=guarded.name,
                error=str(e),
            )
            await self.audit_service.record(
                impersonation,
                guarded.name,
                guarded.action_type,
                guarded.resource,
                False,
                ActionFailedDetails(error_type=type(e).__name__, extra=guarded.metadata),
                description=guarded.description,
                resource_id=guarded.resource_id,
                error_message=str(e),
                request=request,
            )
            await self.notifier.action_failed(
                impersonation, guarded.name, guarded.resource, str(e)
            )
            raise

        try:
            audit = await self.audit_service.record(
                impersonation,
                guarded.name,
                guarded.action_type,
                guarded.resource,
                True,
                ActionDetails(
                    approval_token_supplied=bool(guarded.approval_token),
                    extra=guarded.metadata,
                ),
                description=guarded.description,
                resource_id=guarded.resource_id,
                request=request,
            )
        finally:
            await self.session.commit()

        logger.info(
            "Impersonation action performed",
            session_id=str(impersonation.id),
            action=guarded.name,
            resource=guarded.resource,
        )
        return GuardOutcome(session=impersonation, value=value, audit=audit)

    async def preview(
        self,
        session_id: UUID,
        action_type: ActionType,
        resource: str,
        *,
        actor: Employee | None = None,
    ) -> PermissionDecision:
        """Evaluate a pair against the session's permission snapshot without auditing."""
        impersonation = await self.impersonation_service.get_session(session_id)
        if actor is not None:
            ensure_session_access(actor, impersonation, admin_roles=[])
        return check_permission(impersonation, action_type, resource)
