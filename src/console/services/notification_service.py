"""Staff notifications for impersonation lifecycle events."""

import asyncio

from src.console.core.config import Settings, get_settings
from src.console.core.logging import get_logger
from src.console.core.notifications import (
    send_action_failed_email,
    send_session_ended_email,
    send_session_started_email,
)
from src.console.models.public import ImpersonationSession
from src.console.repositories.public import EmployeeRepository, TenantRepository

logger = get_logger(__name__)


class ImpersonationNotifier:
    """Sends start/end/failure notifications when enabled in settings.

    Delivery never blocks or fails the primary action: each method returns
    whether a notification went out.
    """

    def __init__(
        self,
        employee_repo: EmployeeRepository,
        tenant_repo: TenantRepository,
        settings: Settings | None = None,
    ):
        self.employee_repo = employee_repo
        self.tenant_repo = tenant_repo
        self.settings = settings or get_settings()

    @property
    def _recipients(self) -> list[str]:
        return self.settings.impersonation_notification_recipients

    async def _names(self, session: ImpersonationSession) -> tuple[str, str]:
        employees = await self.employee_repo.get_names([session.impersonator_id])
        tenants = await self.tenant_repo.get_names([session.target_tenant_id])
        return (
            employees.get(session.impersonator_id, str(session.impersonator_id)),
            tenants.get(session.target_tenant_id, str(session.target_tenant_id)),
        )

    async def session_started(self, session: ImpersonationSession) -> bool:
        if not self.settings.impersonation_notify_on_start or not self._recipients:
            return False
        try:
            impersonator, tenant = await self._names(session)
            return await asyncio.to_thread(
                send_session_started_email,
                self._recipients,
                str(session.id),
                impersonator,
                tenant,
                session.reason,
                session.expires_at,
                session.ticket_number,
            )
        except Exception as e:
            logger.error("Session start notification failed", session_id=str(session.id), error=str(e))
            return False

    async def session_ended(self, session: ImpersonationSession, action_count: int) -> bool:
        if not self.settings.impersonation_notify_on_end or not self._recipients:
            return False
        try:
            impersonator, tenant = await self._names(session)
            return await asyncio.to_thread(
                send_session_ended_email,
                self._recipients,
                str(session.id),
                impersonator,
                tenant,
                session.status,
                session.duration_seconds() // 60,
                action_count,
            )
        except Exception as e:
            logger.error("Session end notification failed", session_id=str(session.id), error=str(e))
            return False

    async def action_failed(
        self, session: ImpersonationSession, action: str, resource: str, reason: str
    ) -> bool:
        if not self.settings.impersonation_notify_on_failure or not self._recipients:
            return False
        try:
            impersonator, _ = await self._names(session)
            return await asyncio.to_thread(
                send_action_failed_email,
                self._recipients,
                str(session.id),
                impersonator,
                action,
                resource,
                reason,
            )
        except Exception as e:
            logger.error(
                "Action failure notification failed", session_id=str(session.id), error=str(e)
            )
            return False
