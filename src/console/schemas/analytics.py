"""Impersonation analytics schemas."""

from uuid import UUID

from pydantic import BaseModel


class ImpersonatorStat(BaseModel):
    employee_id: UUID
    name: str
    session_count: int


class TargetTenantStat(BaseModel):
    tenant_id: UUID
    name: str
    session_count: int


class ReasonStat(BaseModel):
    reason: str
    count: int


class ImpersonationAnalytics(BaseModel):
    total_sessions: int
    active_sessions: int
    sessions_today: int
    sessions_this_week: int
    average_session_duration_minutes: float
    top_impersonators: list[ImpersonatorStat]
    top_target_tenants: list[TargetTenantStat]
    most_common_reasons: list[ReasonStat]
