"""Repository for ImpersonationSession entity."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, text
from sqlmodel import col, select

from src.console.models.enums import SessionStatus
from src.console.models.public import ImpersonationSession
from src.console.repositories.base import BaseRepository

ADVISORY_KEY_MASK = 0x7FFF_FFFF_FFFF_FFFF


class ImpersonationSessionRepository(BaseRepository[ImpersonationSession]):
    """Repository for impersonation sessions in public schema."""

    model = ImpersonationSession

    async def get_for_update(self, session_id: UUID) -> ImpersonationSession | None:
        """Get a session and lock its row until the transaction ends.

        Uses FOR NO KEY UPDATE so audit inserts referencing the row (which
        take FOR KEY SHARE) are not blocked by the lock.
        """
        result = await self.session.execute(
            select(ImpersonationSession)
            .where(ImpersonationSession.id == session_id)
            .with_for_update(key_share=True)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def lock_impersonator(self, impersonator_id: UUID) -> None:
        """Serialize session starts for one employee until the transaction ends."""
        await self.session.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": impersonator_id.int & ADVISORY_KEY_MASK},
        )

    async def list_active_for_impersonator(
        self, impersonator_id: UUID
    ) -> list[ImpersonationSession]:
        """List sessions still marked active for one employee."""
        result = await self.session.execute(
            select(ImpersonationSession).where(
                ImpersonationSession.impersonator_id == impersonator_id,
                ImpersonationSession.status == SessionStatus.ACTIVE.value,
            )
        )
        return list(result.scalars().all())

    async def list_lapsed_ids(self, now: datetime, limit: int = 500) -> list[UUID]:
        """IDs of active sessions whose expiry has passed, oldest first."""
        result = await self.session.execute(
            select(ImpersonationSession.id)
            .where(
                ImpersonationSession.status == SessionStatus.ACTIVE.value,
                ImpersonationSession.expires_at < now,
            )
            .order_by(col(ImpersonationSession.expires_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_paginated(
        self,
        cursor: str | None = None,
        limit: int = 50,
        status: SessionStatus | None = None,
        impersonator_id: UUID | None = None,
        tenant_id: UUID | None = None,
        search: str | None = None,
    ) -> tuple[list[ImpersonationSession], str | None, bool]:
        """List sessions, newest first.

        Args:
            cursor: Pagination cursor
            limit: Maximum items to return
            status: Optional status filter
            impersonator_id: Optional employee filter
            tenant_id: Optional target tenant filter
            search: Case-insensitive match on reason or ticket number

        Returns:
            Tuple of (sessions, next_cursor, has_more)
        """
        query = select(ImpersonationSession)
        if status:
            query = query.where(ImpersonationSession.status == status.value)
        if impersonator_id:
            query = query.where(ImpersonationSession.impersonator_id == impersonator_id)
        if tenant_id:
            query = query.where(ImpersonationSession.target_tenant_id == tenant_id)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    col(ImpersonationSession.reason).ilike(pattern),
                    col(ImpersonationSession.ticket_number).ilike(pattern),
                )
            )
        return await self.paginate(query, cursor, limit, ImpersonationSession.id)

    # --- Analytics ---

    async def count(
        self, status: SessionStatus | None = None, started_since: datetime | None = None
    ) -> int:
        query = select(func.count()).select_from(ImpersonationSession)
        if status:
            query = query.where(ImpersonationSession.status == status.value)
        if started_since:
            query = query.where(ImpersonationSession.started_at >= started_since)
        result = await self.session.execute(query)
        return int(result.scalar_one())

    async def average_duration_seconds(self) -> float:
        """Average length of sessions that have ended."""
        duration = func.extract(
            "epoch", col(ImpersonationSession.ended_at) - col(ImpersonationSession.started_at)
        )
        result = await self.session.execute(
            select(func.avg(duration)).where(col(ImpersonationSession.ended_at).is_not(None))
        )
        value = result.scalar_one_or_none()
        return float(value) if value is not None else 0.0

    async def top_impersonators(self, limit: int = 5) -> list[tuple[UUID, int]]:
        return await self._top(ImpersonationSession.impersonator_id, limit)

    async def top_target_tenants(self, limit: int = 5) -> list[tuple[UUID, int]]:
        return await self._top(ImpersonationSession.target_tenant_id, limit)

    async def top_reasons(self, limit: int = 5) -> list[tuple[str, int]]:
        return await self._top(ImpersonationSession.reason, limit)

    async def _top(self, column: object, limit: int) -> list:  # type: ignore[type-arg]
        counted = func.count().label("total")
        result = await self.session.execute(
            select(column, counted).group_by(column).order_by(counted.desc()).limit(limit)
        )
        return [(row[0], int(row[1])) for row in result.all()]
