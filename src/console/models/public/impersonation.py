"""Impersonation session model."""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid7

from sqlalchemy import Column, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.console.core.config import REASON_COLUMN_LENGTH
from src.console.models.base import utc_now
from src.console.models.enums import RestrictionType, SessionStatus, UrgencyLevel

if TYPE_CHECKING:
    from src.console.schemas.policy import Permission, Restriction


class ImpersonationSession(SQLModel, table=True):
    """A time-boxed grant for one employee to act inside one tenant.

    ``expires_at`` is written once at creation. ``ended_at`` and
    ``end_cause`` are written once, when the session leaves ``active``.
    Rows are never deleted.
    """

    __tablename__ = "impersonation_sessions"
    __table_args__ = (
        Index("ix_impersonation_sessions_impersonator_status", "impersonator_id", "status"),
        Index("ix_impersonation_sessions_status_expires", "status", "expires_at"),
        Index("ix_impersonation_sessions_tenant_started", "target_tenant_id", "started_at"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid7, primary_key=True)

    # Identity
    impersonator_id: UUID = Field(foreign_key="public.employees.id", index=True)
    impersonator_role: str = Field(max_length=20)
    target_tenant_id: UUID = Field(foreign_key="public.tenants.id", index=True)
    target_user_id: UUID | None = Field(default=None)

    # Context
    reason: str = Field(max_length=REASON_COLUMN_LENGTH)
    ticket_number: str | None = Field(default=None, max_length=100)
    requested_by: str | None = Field(default=None, max_length=255)
    urgency_level: str = Field(default=UrgencyLevel.MEDIUM.value, max_length=20)

    # Lifecycle
    started_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime
    ended_at: datetime | None = Field(default=None)
    status: str = Field(default=SessionStatus.ACTIVE.value, max_length=20)
    end_cause: str | None = Field(default=None, max_length=20)

    # Snapshot, fixed at creation
    permissions: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSONB, nullable=False),
    )
    restrictions: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSONB, nullable=False),
    )

    # Request metadata, captured once at creation
    ip_address: str | None = Field(default=None, max_length=45)  # IPv4/IPv6
    user_agent: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=100)

    @property
    def status_enum(self) -> SessionStatus:
        return SessionStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE.value

    def has_lapsed(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def permission_snapshot(self) -> tuple[Permission, ...]:
        from src.console.schemas.policy import Permission

        return tuple(Permission.model_validate(p) for p in self.permissions)

    @property
    def restriction_snapshot(self) -> tuple[Restriction, ...]:
        from src.console.schemas.policy import Restriction

        return tuple(Restriction.model_validate(r) for r in self.restrictions)

    def restriction(self, restriction_type: RestrictionType) -> Restriction | None:
        """First active restriction of the given type, if any."""
        for restriction in self.restriction_snapshot:
            if restriction.type == restriction_type and restriction.active:
                return restriction
        return None

    def duration_seconds(self, now: datetime | None = None) -> int:
        """Elapsed session time, up to ``ended_at`` once the session has ended."""
        end = self.ended_at or now or utc_now()
        return max(0, int((end - self.started_at).total_seconds()))
