"""Impersonation usage analytics for the admin console dashboard."""

from datetime import timedelta

from src.console.models.base import utc_now
from src.console.models.enums import SessionStatus
from src.console.repositories.public import (
    EmployeeRepository,
    ImpersonationSessionRepository,
    TenantRepository,
)
from src.console.schemas.analytics import (
    ImpersonationAnalytics,
    ImpersonatorStat,
    ReasonStat,
    TargetTenantStat,
)

TOP_N = 5


class AnalyticsService:
    def __init__(
        self,
        session_repo: ImpersonationSessionRepository,
        employee_repo: EmployeeRepository,
        tenant_repo: TenantRepository,
    ):
        self.session_repo = session_repo
        self.employee_repo = employee_repo
        self.tenant_repo = tenant_repo

    async def get_analytics(self) -> ImpersonationAnalytics:
        """Totals, recent volume, average duration and top-5 breakdowns."""
        now = utc_now()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_week = start_of_day - timedelta(days=start_of_day.weekday())

        impersonators = await self.session_repo.top_impersonators(TOP_N)
        tenants = await self.session_repo.top_target_tenants(TOP_N)
        reasons = await self.session_repo.top_reasons(TOP_N)
        employee_names = await self.employee_repo.get_names(i for i, _ in impersonators)
        tenant_names = await self.tenant_repo.get_names(t for t, _ in tenants)

        average_seconds = await self.session_repo.average_duration_seconds()

        return ImpersonationAnalytics(
            total_sessions=await self.session_repo.count(),
            active_sessions=await self.session_repo.count(status=SessionStatus.ACTIVE),
            sessions_today=await self.session_repo.count(started_since=start_of_day),
            sessions_this_week=await self.session_repo.count(started_since=start_of_week),
            average_session_duration_minutes=round(average_seconds / 60, 1),
            top_impersonators=[
                ImpersonatorStat(
                    employee_id=employee_id,
                    name=employee_names.get(employee_id, "Unknown"),
                    session_count=count,
                )
                for employee_id, count in impersonators
            ],
            top_target_tenants=[
                TargetTenantStat(
                    tenant_id=tenant_id,
                    name=tenant_names.get(tenant_id, "Unknown"),
                    session_count=count,
                )
                for tenant_id, count in tenants
            ],
            most_common_reasons=[ReasonStat(reason=reason, count=count) for reason, count in reasons],
        )
