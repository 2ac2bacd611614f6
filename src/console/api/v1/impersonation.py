"""Impersonation session endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from src.console.api.dependencies import (
    AnalyticsServiceDep,
    AuditViewer,
    CurrentEmployee,
    GuardServiceDep,
    ImpersonationServiceDep,
    RequestMeta,
    rate_limited,
)
from src.console.core.config import get_settings
from src.console.core.rate_limit import limiter
from src.console.models.enums import ActionType, EndCause, SessionStatus
from src.console.schemas.analytics import ImpersonationAnalytics
from src.console.schemas.impersonation import (
    EndSessionRequest,
    GuardedActionRequest,
    GuardedActionResponse,
    ImpersonationSessionRead,
    PermissionCheckResponse,
    SessionCreatedResponse,
    StartSessionRequest,
)
from src.console.schemas.pagination import PaginatedResponse
from src.console.services.guard_service import GuardedAction
from src.console.services.impersonation_service import ensure_session_access

router = APIRouter(prefix="/impersonation", tags=["impersonation"])

CursorQuery = Annotated[str | None, Query(description="Pagination cursor")]
LimitQuery = Annotated[int, Query(ge=1, le=100, description="Items per page")]

_SESSION_EXAMPLE = {
    "session_id": "01928f4e-7b3a-7c21-9a5e-3f1d2c4b5a69",
    "status": "active",
    "started_at": "2025-01-01T10:00:00",
    "expires_at": "2025-01-01T12:00:00",
    "permissions": [
        {"action": "view", "resource": "bookings", "allowed": True, "reason": None},
        {
            "action": "delete",
            "resource": "bookings",
            "allowed": False,
            "reason": "Requires manager approval",
        },
    ],
    "restrictions": [
        {
            "type": "time_limit",
            "description": "Session expires after 120 minutes",
            "value": 120,
            "active": True,
        }
    ],
}


@router.post(
    "/sessions",
    response_model=SessionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited("impersonation"))],
    responses={
        201: {
            "description": "Impersonation session started",
            "content": {"application/json": {"example": _SESSION_EXAMPLE}},
        },
        403: {"description": "Role may not impersonate"},
        404: {"description": "Tenant not found"},
        409: {"description": "Tenant unavailable or a session is already active"},
        422: {"description": "Reason or duration out of bounds"},
        429: {"description": "Too many session starts"},
    },
)
async def start_session(
    data: StartSessionRequest,
    employee: CurrentEmployee,
    service: ImpersonationServiceDep,
    meta: RequestMeta,
) -> SessionCreatedResponse:
    """Start a time-boxed impersonation session inside a tenant.

    The session's permissions and restrictions are fixed at creation.
    """
    session = await service.start_session(
        employee,
        data.target_tenant_id,
        data.reason,
        data.duration_minutes,
        ticket_number=data.ticket_number,
        requested_by=data.requested_by,
        target_user_id=data.target_user_id,
        urgency_level=data.urgency_level,
        request=meta,
    )
    return SessionCreatedResponse(
        session_id=session.id,
        status=session.status,
        started_at=session.started_at,
        expires_at=session.expires_at,
        permissions=list(session.permission_snapshot),
        restrictions=list(session.restriction_snapshot),
    )


@router.get(
    "/sessions",
    response_model=PaginatedResponse[ImpersonationSessionRead],
    responses={403: {"description": "Audit viewer role required"}},
)
@limiter.limit("60/minute")
async def list_sessions(
    request: Request,
    _: AuditViewer,
    service: ImpersonationServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
    status_filter: Annotated[SessionStatus | None, Query(alias="status")] = None,
    impersonator_id: UUID | None = None,
    tenant_id: UUID | None = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
) -> PaginatedResponse[ImpersonationSessionRead]:
    """List impersonation sessions, newest first."""
    sessions, next_cursor, has_more = await service.list_sessions(
        cursor=cursor,
        limit=limit,
        status=status_filter,
        impersonator_id=impersonator_id,
        tenant_id=tenant_id,
        search=search,
    )
    return PaginatedResponse(
        items=[ImpersonationSessionRead.model_validate(s) for s in sessions],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/sessions/{session_id}",
    response_model=ImpersonationSessionRead,
    responses={
        403: {"description": "Not the impersonator or an audit viewer"},
        404: {"description": "Session not found"},
    },
)
async def get_session(
    session_id: UUID,
    employee: CurrentEmployee,
    service: ImpersonationServiceDep,
) -> ImpersonationSessionRead:
    """Get one session. Visible to its impersonator and to audit viewers."""
    session = await service.get_session(session_id)
    ensure_session_access(
        employee, session, admin_roles=get_settings().impersonation_audit_viewer_roles
    )
    return ImpersonationSessionRead.model_validate(session)


@router.post(
    "/sessions/{session_id}/end",
    response_model=ImpersonationSessionRead,
    responses={
        200: {"description": "Session ended (or already ended)"},
        403: {"description": "Not the impersonator or a session admin"},
        404: {"description": "Session not found"},
    },
)
async def end_session(
    session_id: UUID,
    employee: CurrentEmployee,
    service: ImpersonationServiceDep,
    meta: RequestMeta,
    data: EndSessionRequest | None = None,
) -> ImpersonationSessionRead:
    """End a session. Ending an already ended session returns it unchanged."""
    cause = EndCause((data or EndSessionRequest()).cause)
    session = await service.end_session(session_id, cause, ended_by=employee, request=meta)
    return ImpersonationSessionRead.model_validate(session)


@router.post(
    "/sessions/{session_id}/actions",
    response_model=GuardedActionResponse,
    responses={
        200: {
            "description": "Action allowed and recorded",
            "content": {
                "application/json": {
                    "example": {
                        "allowed": True,
                        "audit_recorded": True,
                        "audit_entry_id": "01928f4e-8c11-7d02-b1aa-0e6f5d7c9b13",
                    }
                }
            },
        },
        403: {"description": "Permission denied or restriction violated"},
        404: {"description": "Session not found"},
        409: {"description": "Session is not active"},
        410: {"description": "Session has expired"},
    },
)
async def perform_action(
    session_id: UUID,
    data: GuardedActionRequest,
    employee: CurrentEmployee,
    guard: GuardServiceDep,
    meta: RequestMeta,
) -> GuardedActionResponse:
    """Authorize and record an action taken inside the tenant.

    Denials are recorded too and come back as structured errors.
    """
    outcome = await guard.run(
        session_id,
        GuardedAction(
            action_type=data.action_type,
            resource=data.resource,
            action=data.action,
            resource_id=data.resource_id,
            description=data.description,
            approval_token=data.approval_token,
            metadata=data.metadata,
        ),
        actor=employee,
        request=meta,
    )
    return GuardedActionResponse(
        allowed=True,
        audit_recorded=outcome.audit_recorded,
        audit_entry_id=outcome.audit_entry_id,
    )


@router.get(
    "/sessions/{session_id}/permissions/check",
    response_model=PermissionCheckResponse,
    responses={
        403: {"description": "Not the impersonator"},
        404: {"description": "Session not found"},
    },
)
async def check_permission(
    session_id: UUID,
    employee: CurrentEmployee,
    guard: GuardServiceDep,
    action: Annotated[ActionType, Query()],
    resource: Annotated[str, Query(min_length=1, max_length=100)],
) -> PermissionCheckResponse:
    """Preview whether the session's snapshot allows an action. Nothing is recorded."""
    decision = await guard.preview(session_id, action, resource, actor=employee)
    return PermissionCheckResponse(
        action=action.value,
        resource=resource,
        allowed=decision.allowed,
        reason=decision.reason,
    )


@router.get(
    "/analytics",
    response_model=ImpersonationAnalytics,
    responses={403: {"description": "Audit viewer role required"}},
)
@limiter.limit("30/minute")
async def get_analytics(
    request: Request,
    _: AuditViewer,
    service: AnalyticsServiceDep,
) -> ImpersonationAnalytics:
    """Session volume, durations and top impersonators, tenants and reasons."""
    return await service.get_analytics()
