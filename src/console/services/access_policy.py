"""Permission evaluation and restriction enforcement for impersonation sessions.

Both checks are pure functions of the session's snapshot plus the inputs
passed in. They never read live role definitions and never touch storage,
so the same snapshot and inputs always produce the same decision.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from src.console.models.enums import ActionType, RestrictionType
from src.console.models.public import ImpersonationSession
from src.console.schemas.policy import Permission, Restriction

NO_EXPLICIT_GRANT = "no explicit grant"


@dataclass(frozen=True)
class PermissionDecision:
    allowed: bool
    reason: str | None = None


@dataclass(frozen=True)
class ProposedAction:
    """An action an impersonator wants to take inside a session."""

    action_type: ActionType | str
    resource: str
    approval_token: str | None = None

    @property
    def verb(self) -> str:
        if isinstance(self.action_type, ActionType):
            return self.action_type.value
        return self.action_type


@dataclass(frozen=True)
class RestrictionDecision:
    allowed: bool
    violated_restriction: Restriction | None = None
    reason: str | None = None

    @property
    def is_expiry(self) -> bool:
        return (
            self.violated_restriction is not None
            and self.violated_restriction.type == RestrictionType.TIME_LIMIT
        )


def evaluate_permission(
    permissions: Iterable[Permission], action: str, resource: str
) -> PermissionDecision:
    """Look up an exact (action, resource) match. Anything unlisted is denied."""
    for permission in permissions:
        if permission.action == action and permission.resource == resource:
            return PermissionDecision(allowed=permission.allowed, reason=permission.reason)
    return PermissionDecision(allowed=False, reason=NO_EXPLICIT_GRANT)


def check_permission(
    session: ImpersonationSession, action: ActionType | str, resource: str
) -> PermissionDecision:
    """Evaluate an action against the session's permission snapshot."""
    verb = action.value if isinstance(action, ActionType) else action
    return evaluate_permission(session.permission_snapshot, verb, resource)


def evaluate_restrictions(
    restrictions: Iterable[Restriction],
    expires_at: datetime,
    proposed: ProposedAction,
    *,
    action_count: int,
    now: datetime,
) -> RestrictionDecision:
    """Check a proposed action against session-wide restrictions.

    Order: time limit, action limit, resource limit, approval required.
    The time limit is checked against ``expires_at`` even when the snapshot
    carries no time_limit entry.

    Args:
        restrictions: The session's restriction snapshot
        expires_at: The session's fixed expiry
        proposed: The action being attempted
        action_count: Successful non-system actions already recorded
        now: Evaluation time (naive UTC)
    """
    active = [r for r in restrictions if r.active]
    by_type: dict[RestrictionType, list[Restriction]] = {}
    for restriction in active:
        by_type.setdefault(restriction.type, []).append(restriction)

    if now > expires_at:
        time_limit = next(
            iter(by_type.get(RestrictionType.TIME_LIMIT, [])),
            Restriction(type=RestrictionType.TIME_LIMIT, description="Session has expired"),
        )
        return RestrictionDecision(
            allowed=False,
            violated_restriction=time_limit,
            reason="Session has expired",
        )

    for restriction in by_type.get(RestrictionType.ACTION_LIMIT, []):
        if restriction.value is not None and action_count >= int(restriction.value):
            return RestrictionDecision(
                allowed=False,
                violated_restriction=restriction,
                reason=restriction.description,
            )

    for restriction in by_type.get(RestrictionType.RESOURCE_LIMIT, []):
        if proposed.resource in restriction.names:
            return RestrictionDecision(
                allowed=False,
                violated_restriction=restriction,
                reason=restriction.description,
            )

    for restriction in by_type.get(RestrictionType.APPROVAL_REQUIRED, []):
        if proposed.verb in restriction.names and not proposed.approval_token:
            return RestrictionDecision(
                allowed=False,
                violated_restriction=restriction,
                reason=restriction.description,
            )

    return RestrictionDecision(allowed=True)


def enforce_restrictions(
    session: ImpersonationSession,
    proposed: ProposedAction,
    *,
    action_count: int,
    now: datetime,
) -> RestrictionDecision:
    """Evaluate a proposed action against the session's restriction snapshot."""
    return evaluate_restrictions(
        session.restriction_snapshot,
        session.expires_at,
        proposed,
        action_count=action_count,
        now=now,
    )
