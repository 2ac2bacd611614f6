"""Restaurant tenant model - owned by the tenant management service, read here."""

from datetime import datetime
from uuid import UUID, uuid7

from sqlmodel import Field, SQLModel

from src.console.models.base import utc_now
from src.console.models.enums import TenantStatus


class Tenant(SQLModel, table=True):
    """Restaurant account in the public schema."""

    __tablename__ = "tenants"
    __table_args__ = {"schema": "public"}

    id: UUID = Field(default_factory=uuid7, primary_key=True)
    name: str = Field(max_length=100, index=True)
    slug: str = Field(max_length=56, unique=True, index=True)
    status: str = Field(default=TenantStatus.ACTIVE.value, max_length=20)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)
    deleted_at: datetime | None = Field(default=None)

    @property
    def status_enum(self) -> TenantStatus:
        return TenantStatus(self.status)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_available(self) -> bool:
        """Whether staff may open a session against this tenant."""
        return self.is_active and not self.is_deleted and self.status == TenantStatus.ACTIVE.value
