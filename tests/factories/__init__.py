"""Test factories for generating test data.

    from tests.factories import ImpersonationSessionFactory, TenantFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid7, utc_now
from tests.factories.impersonation import (
    ImpersonationAuditLogFactory,
    ImpersonationSessionFactory,
    default_permissions,
    default_restrictions,
)
from tests.factories.tenant import EmployeeFactory, TenantFactory

__all__ = [
    "BaseFactory",
    "generate_uuid7",
    "utc_now",
    "EmployeeFactory",
    "TenantFactory",
    "ImpersonationAuditLogFactory",
    "ImpersonationSessionFactory",
    "default_permissions",
    "default_restrictions",
]
