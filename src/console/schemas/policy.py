"""Permission and restriction value objects plus the default session template.

A session copies these into its own snapshot at creation. Later changes to
the template or to settings never affect sessions that already exist.
"""

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, model_validator

from src.console.core.config import Settings
from src.console.models.enums import RestrictionType


class Permission(BaseModel):
    """An explicit allow or deny for one (action, resource) pair."""

    model_config = ConfigDict(frozen=True)

    action: str
    resource: str
    allowed: bool
    reason: str | None = None

    @model_validator(mode="after")
    def _denials_need_reason(self) -> "Permission":
        if not self.allowed and not self.reason:
            raise ValueError(f"Denied permission {self.action}/{self.resource} requires a reason")
        return self


class Restriction(BaseModel):
    """A session-wide limit evaluated before permissions.

    ``value`` depends on the type: minutes for time_limit, a count for
    action_limit, comma-separated names for resource_limit (resources) and
    approval_required (actions).
    """

    model_config = ConfigDict(frozen=True)

    type: RestrictionType
    description: str
    value: int | str | None = None
    active: bool = True

    @property
    def names(self) -> frozenset[str]:
        """The resources or actions named by a list-valued restriction."""
        if self.value is None:
            return frozenset()
        return frozenset(part.strip() for part in str(self.value).split(",") if part.strip())


DEFAULT_PERMISSIONS: tuple[Permission, ...] = (
    Permission(action="view", resource="bookings", allowed=True),
    Permission(action="view", resource="customers", allowed=True),
    Permission(action="view", resource="analytics", allowed=True),
    Permission(action="create", resource="bookings", allowed=True),
    Permission(action="update", resource="bookings", allowed=True),
    Permission(
        action="delete", resource="bookings", allowed=False, reason="Requires manager approval"
    ),
    Permission(
        action="view", resource="financial_data", allowed=False, reason="Restricted by role"
    ),
    Permission(
        action="export", resource="customer_data", allowed=False, reason="Privacy restricted"
    ),
    Permission(action="update", resource="tenant_settings", allowed=False, reason="Admin only"),
)


def _describe(names: Iterable[str]) -> str:
    return ", ".join(sorted(names))


def validate_permissions(permissions: Sequence[Permission]) -> list[Permission]:
    """Reject snapshots that list the same (action, resource) pair twice."""
    seen: set[tuple[str, str]] = set()
    for permission in permissions:
        pair = (permission.action, permission.resource)
        if pair in seen:
            raise ValueError(f"Duplicate permission entry for {pair[0]}/{pair[1]}")
        seen.add(pair)
    return list(permissions)


def build_restrictions(settings: Settings, effective_minutes: int) -> list[Restriction]:
    """Restriction template for a new session."""
    restrictions = [
        Restriction(
            type=RestrictionType.TIME_LIMIT,
            description=f"Session expires after {effective_minutes} minutes",
            value=effective_minutes,
        ),
        Restriction(
            type=RestrictionType.ACTION_LIMIT,
            description=f"Maximum {settings.impersonation_action_limit} actions per session",
            value=settings.impersonation_action_limit,
        ),
    ]
    if settings.impersonation_restricted_resources:
        resources = _describe(settings.impersonation_restricted_resources)
        restrictions.append(
            Restriction(
                type=RestrictionType.RESOURCE_LIMIT,
                description=f"Cannot access {resources}",
                value=",".join(settings.impersonation_restricted_resources),
            )
        )
    if settings.impersonation_approval_required_actions:
        actions = _describe(settings.impersonation_approval_required_actions)
        restrictions.append(
            Restriction(
                type=RestrictionType.APPROVAL_REQUIRED,
                description=f"{actions.capitalize()} actions require approval",
                value=",".join(settings.impersonation_approval_required_actions),
            )
        )
    return restrictions
