"""Impersonation session request/response schemas."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.console.models.enums import ActionType, UrgencyLevel
from src.console.schemas.policy import Permission, Restriction


class StartSessionRequest(BaseModel):
    """Request to open an impersonation session.

    Reason and duration bounds are enforced by the service so that callers
    get the dedicated ``invalid_reason`` and ``duration_out_of_range`` codes.
    """

    target_tenant_id: UUID
    reason: str = Field(description="Why access is needed (shown in the audit trail)")
    duration_minutes: int = Field(description="Requested session length in minutes (5-480)")
    ticket_number: str | None = Field(default=None, max_length=100)
    requested_by: str | None = Field(default=None, max_length=255)
    target_user_id: UUID | None = None
    urgency_level: UrgencyLevel = UrgencyLevel.MEDIUM


class SessionCreatedResponse(BaseModel):
    session_id: UUID
    status: str
    started_at: datetime
    expires_at: datetime
    permissions: list[Permission]
    restrictions: list[Restriction]


class ImpersonationSessionRead(BaseModel):
    """Impersonation session for API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    impersonator_id: UUID
    impersonator_role: str
    target_tenant_id: UUID
    target_user_id: UUID | None
    reason: str
    ticket_number: str | None
    requested_by: str | None
    urgency_level: str
    status: str
    end_cause: str | None
    started_at: datetime
    expires_at: datetime
    ended_at: datetime | None
    permissions: list[Permission]
    restrictions: list[Restriction]
    ip_address: str | None
    user_agent: str | None
    location: str | None


class EndSessionRequest(BaseModel):
    """Expiry is passive (sweep or lazy check), so callers may only end manually or on error."""

    cause: Literal["manual", "error"] = "manual"


class GuardedActionRequest(BaseModel):
    action: str | None = Field(
        default=None,
        max_length=100,
        description="Specific operation name; defaults to '<action_type>_<resource>'",
    )
    action_type: ActionType
    resource: str = Field(min_length=1, max_length=100)
    resource_id: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    approval_token: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("action_type")
    @classmethod
    def reject_system(cls, v: ActionType) -> ActionType:
        if v == ActionType.SYSTEM:
            raise ValueError("system actions are recorded by the service itself")
        return v


class GuardedActionResponse(BaseModel):
    allowed: bool
    audit_recorded: bool
    audit_entry_id: UUID | None = None


class PermissionCheckResponse(BaseModel):
    action: str
    resource: str
    allowed: bool
    reason: str | None = None
