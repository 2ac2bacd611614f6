"""Audit details variants and audit log schemas for API responses."""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from src.console.models.enums import EndCause, RestrictionType, SessionStatus, UrgencyLevel


class _Details(BaseModel):
    model_config = ConfigDict(frozen=True)

    extra: dict[str, Any] = Field(default_factory=dict)


class SessionStartedDetails(_Details):
    kind: Literal["session_started"] = "session_started"
    requested_minutes: int
    effective_minutes: int
    urgency_level: UrgencyLevel = UrgencyLevel.MEDIUM
    ticket_number: str | None = None


class SessionEndedDetails(_Details):
    kind: Literal["session_ended"] = "session_ended"
    cause: EndCause
    status: SessionStatus
    duration_seconds: int
    action_count: int


class ActionDetails(_Details):
    kind: Literal["action"] = "action"
    approval_token_supplied: bool = False


class ActionDeniedDetails(_Details):
    kind: Literal["action_denied"] = "action_denied"
    code: str
    reason: str
    restriction_type: RestrictionType | None = None


class ActionFailedDetails(_Details):
    kind: Literal["action_failed"] = "action_failed"
    error_type: str


AuditDetails = Annotated[
    SessionStartedDetails
    | SessionEndedDetails
    | ActionDetails
    | ActionDeniedDetails
    | ActionFailedDetails,
    Field(discriminator="kind"),
]

audit_details_adapter: TypeAdapter[AuditDetails] = TypeAdapter(AuditDetails)


class AuditLogRead(BaseModel):
    """Audit log entry for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: UUID
    impersonator_id: UUID
    target_tenant_id: UUID
    action: str
    action_type: str
    resource: str
    resource_id: str | None
    description: str
    success: bool
    error_message: str | None
    details: dict[str, Any]
    ip_address: str | None
    user_agent: str | None
    request_id: str | None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated audit log response."""

    items: list[AuditLogRead]
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for fetching the next page. None if no more pages.",
    )
    has_more: bool = Field(
        default=False,
        description="Whether there are more items after this page.",
    )
