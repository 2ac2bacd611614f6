"""Impersonation audit trail model."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid7

from sqlalchemy import Column, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.console.models.base import utc_now
from src.console.models.enums import ActionType


class ImpersonationAuditLog(SQLModel, table=True):
    """One action taken (or refused) inside an impersonation session.

    Append-only: rows are never updated. They reference the session rather
    than belonging to it, and outlive it until the retention purge.
    """

    __tablename__ = "impersonation_audit_logs"
    __table_args__ = (
        Index("ix_impersonation_audit_logs_session_created", "session_id", "created_at"),
        Index("ix_impersonation_audit_logs_tenant_created", "target_tenant_id", "created_at"),
        Index("ix_impersonation_audit_logs_type_created", "action_type", "created_at"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)

    # Context
    session_id: UUID = Field(foreign_key="public.impersonation_sessions.id")
    impersonator_id: UUID = Field(index=True)
    target_tenant_id: UUID

    # Action details
    action: str = Field(max_length=100)
    action_type: str = Field(default=ActionType.VIEW.value, max_length=20)
    resource: str = Field(max_length=100)
    resource_id: str | None = Field(default=None, max_length=255)
    description: str = Field(max_length=1000)

    # Result
    success: bool = Field(default=True)
    error_message: str | None = Field(default=None, max_length=1000)

    # Tagged details (see schemas.audit.AuditDetails)
    details: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSONB, nullable=False),
    )

    # Request metadata
    ip_address: str | None = Field(default=None, max_length=45)  # IPv4/IPv6
    user_agent: str | None = Field(default=None, max_length=500)
    request_id: str | None = Field(default=None, max_length=36)  # Correlation ID

    created_at: datetime = Field(default_factory=utc_now)

    @property
    def action_type_enum(self) -> ActionType:
        return ActionType(self.action_type)
