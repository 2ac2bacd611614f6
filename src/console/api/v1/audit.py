"""Impersonation audit trail endpoints - audit viewers only."""

import csv
import io
import json
from collections.abc import Iterator
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from src.console.api.dependencies import (
    AuditServiceDep,
    AuditViewer,
    ImpersonationServiceDep,
    rate_limited,
)
from src.console.core.rate_limit import limiter
from src.console.models.enums import ActionType
from src.console.models.public import ImpersonationAuditLog
from src.console.schemas.audit import AuditLogListResponse, AuditLogRead

router = APIRouter(prefix="/impersonation/audit", tags=["audit"])

CursorQuery = Annotated[str | None, Query(description="Pagination cursor")]
LimitQuery = Annotated[int, Query(ge=1, le=100, description="Items per page")]
ActionTypeQuery = Annotated[ActionType | None, Query(description="Filter by action type")]
SuccessQuery = Annotated[bool | None, Query(description="Filter by outcome")]

EXPORT_COLUMNS = (
    "created_at",
    "id",
    "action",
    "action_type",
    "resource",
    "resource_id",
    "description",
    "success",
    "error_message",
    "ip_address",
    "user_agent",
    "request_id",
    "details",
)


@router.get(
    "/logs",
    response_model=AuditLogListResponse,
    responses={
        200: {
            "description": "Impersonation audit entries across sessions",
            "content": {
                "application/json": {
                    "example": {
                        "items": [
                            {
                                "id": "01928f4e-8c11-7d02-b1aa-0e6f5d7c9b13",
                                "session_id": "01928f4e-7b3a-7c21-9a5e-3f1d2c4b5a69",
                                "impersonator_id": "550e8400-e29b-41d4-a716-446655440002",
                                "target_tenant_id": "550e8400-e29b-41d4-a716-446655440001",
                                "action": "delete_bookings",
                                "action_type": "delete",
                                "resource": "bookings",
                                "resource_id": "booking_123",
                                "description": "delete bookings",
                                "success": False,
                                "error_message": "Requires manager approval",
                                "details": {
                                    "kind": "action_denied",
                                    "code": "permission_denied",
                                    "reason": "Requires manager approval",
                                    "restriction_type": None,
                                    "extra": {},
                                },
                                "ip_address": "192.168.1.1",
                                "user_agent": "Mozilla/5.0...",
                                "request_id": "abc-123",
                                "created_at": "2025-01-01T10:05:00",
                            }
                        ],
                        "next_cursor": "abc123",
                        "has_more": True,
                    }
                }
            },
        },
        403: {"description": "Audit viewer role required"},
    },
)
@limiter.limit("60/minute")
async def list_audit_logs(
    request: Request,
    _: AuditViewer,
    audit_service: AuditServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
    tenant_id: UUID | None = None,
    impersonator_id: UUID | None = None,
    action_type: ActionTypeQuery = None,
    success: SuccessQuery = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
) -> AuditLogListResponse:
    """List audit entries across all sessions, newest first."""
    logs, next_cursor, has_more = await audit_service.list_logs(
        cursor=cursor,
        limit=limit,
        tenant_id=tenant_id,
        impersonator_id=impersonator_id,
        action_type=action_type,
        success=success,
        search=search,
    )
    return AuditLogListResponse(
        items=[AuditLogRead.model_validate(log) for log in logs],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/sessions/{session_id}/logs",
    response_model=AuditLogListResponse,
    responses={
        200: {"description": "Audit trail of one session"},
        403: {"description": "Audit viewer role required"},
        404: {"description": "Session not found"},
    },
)
@limiter.limit("60/minute")
async def list_session_audit_logs(
    request: Request,
    session_id: UUID,
    _: AuditViewer,
    audit_service: AuditServiceDep,
    impersonation_service: ImpersonationServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
    action_type: ActionTypeQuery = None,
    success: SuccessQuery = None,
) -> AuditLogListResponse:
    """List one session's audit entries, newest first."""
    await impersonation_service.get_session(session_id)
    logs, next_cursor, has_more = await audit_service.list_session_logs(
        session_id,
        cursor=cursor,
        limit=limit,
        action_type=action_type,
        success=success,
    )
    return AuditLogListResponse(
        items=[AuditLogRead.model_validate(log) for log in logs],
        next_cursor=next_cursor,
        has_more=has_more,
    )


def _csv_rows(logs: list[ImpersonationAuditLog]) -> Iterator[str]:
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    def flush() -> str:
        value = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return value

    writer.writerow(EXPORT_COLUMNS)
    yield flush()
    for log in logs:
        writer.writerow(
            [
                log.created_at.isoformat(),
                str(log.id),
                log.action,
                log.action_type,
                log.resource,
                log.resource_id or "",
                log.description,
                "true" if log.success else "false",
                log.error_message or "",
                log.ip_address or "",
                log.user_agent or "",
                log.request_id or "",
                json.dumps(log.details, sort_keys=True),
            ]
        )
        yield flush()


@router.get(
    "/sessions/{session_id}/logs/export",
    response_class=StreamingResponse,
    dependencies=[Depends(rate_limited("export"))],
    responses={
        200: {"description": "CSV of the session's audit trail in creation order"},
        403: {"description": "Audit viewer role required"},
        404: {"description": "Session not found"},
        429: {"description": "Too many exports"},
    },
)
async def export_session_audit_logs(
    session_id: UUID,
    _: AuditViewer,
    audit_service: AuditServiceDep,
    impersonation_service: ImpersonationServiceDep,
) -> StreamingResponse:
    """Download a session's full audit trail as CSV."""
    await impersonation_service.get_session(session_id)
    logs = await audit_service.export_session_logs(session_id)
    return StreamingResponse(
        _csv_rows(logs),
        media_type="text/csv",
        headers={
            "Content-Disposition": (
                f'attachment; filename="impersonation-{session_id}-audit.csv"'
            )
        },
    )
