"""Repository for Tenant entity."""

from collections.abc import Iterable
from uuid import UUID

from sqlmodel import select

from src.console.models.public import Tenant
from src.console.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Read access to restaurant tenants in public schema."""

    model = Tenant

    async def get_names(self, ids: Iterable[UUID]) -> dict[UUID, str]:
        """Map tenant IDs to display names."""
        ids = list(ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(Tenant.id, Tenant.name).where(Tenant.id.in_(ids))  # type: ignore[attr-defined]
        )
        return {row.id: row.name for row in result.all()}
