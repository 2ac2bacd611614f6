"""Repository for ImpersonationAuditLog entity."""

from datetime import timedelta
from typing import Any, cast
from uuid import UUID

from sqlalchemy import delete, func, or_
from sqlalchemy.engine import CursorResult
from sqlmodel import col, select

from src.console.models.base import utc_now
from src.console.models.enums import ActionType
from src.console.models.public import ImpersonationAuditLog
from src.console.repositories.base import BaseRepository


class ImpersonationAuditLogRepository(BaseRepository[ImpersonationAuditLog]):
    """Append-only access to the impersonation audit trail."""

    model = ImpersonationAuditLog

    async def count_actions(self, session_id: UUID) -> int:
        """Count successful, non-system entries for a session.

        This is the figure the action_limit restriction is checked against.
        """
        result = await self.session.execute(
            select(func.count())
            .select_from(ImpersonationAuditLog)
            .where(
                ImpersonationAuditLog.session_id == session_id,
                ImpersonationAuditLog.action_type != ActionType.SYSTEM.value,
                ImpersonationAuditLog.success == True,  # noqa: E712
            )
        )
        return int(result.scalar_one())

    async def list_by_session(
        self,
        session_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
        action_type: ActionType | None = None,
        success: bool | None = None,
    ) -> tuple[list[ImpersonationAuditLog], str | None, bool]:
        """List one session's entries, newest first.

        Args:
            session_id: Session to filter by
            cursor: Pagination cursor
            limit: Maximum items to return
            action_type: Optional action type filter
            success: Optional success/failure filter

        Returns:
            Tuple of (logs, next_cursor, has_more)
        """
        query = select(ImpersonationAuditLog).where(
            ImpersonationAuditLog.session_id == session_id
        )
        query = self._filter(query, action_type, success)
        return await self.paginate(query, cursor, limit, ImpersonationAuditLog.id)

    async def list_all(
        self,
        cursor: str | None = None,
        limit: int = 50,
        tenant_id: UUID | None = None,
        impersonator_id: UUID | None = None,
        action_type: ActionType | None = None,
        success: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[ImpersonationAuditLog], str | None, bool]:
        """List entries across sessions, newest first.

        ``search`` matches description or resource, case-insensitively.
        """
        query = select(ImpersonationAuditLog)
        if tenant_id:
            query = query.where(ImpersonationAuditLog.target_tenant_id == tenant_id)
        if impersonator_id:
            query = query.where(ImpersonationAuditLog.impersonator_id == impersonator_id)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    col(ImpersonationAuditLog.description).ilike(pattern),
                    col(ImpersonationAuditLog.resource).ilike(pattern),
                )
            )
        query = self._filter(query, action_type, success)
        return await self.paginate(query, cursor, limit, ImpersonationAuditLog.id)

    async def list_for_export(self, session_id: UUID) -> list[ImpersonationAuditLog]:
        """All entries of a session in creation order."""
        result = await self.session.execute(
            select(ImpersonationAuditLog)
            .where(ImpersonationAuditLog.session_id == session_id)
            .order_by(col(ImpersonationAuditLog.created_at), col(ImpersonationAuditLog.id))
        )
        return list(result.scalars().all())

    async def purge_older_than(self, retention_days: int) -> int:
        """Delete entries older than retention_days.

        The retention purge is the only path that removes audit entries.

        Returns:
            Number of entries deleted
        """
        cutoff = utc_now() - timedelta(days=retention_days)
        stmt = delete(ImpersonationAuditLog).where(
            col(ImpersonationAuditLog.created_at) < cutoff
        )
        result = await self.session.execute(stmt)
        return cast(CursorResult[Any], result).rowcount or 0

    @staticmethod
    def _filter(query: Any, action_type: ActionType | None, success: bool | None) -> Any:
        if action_type:
            query = query.where(ImpersonationAuditLog.action_type == action_type.value)
        if success is not None:
            query = query.where(ImpersonationAuditLog.success == success)
        return query
