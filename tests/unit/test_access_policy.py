"""Tests for permission evaluation and restriction enforcement."""

from datetime import datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from src.console.core.config import get_settings
from src.console.models.enums import ActionType, RestrictionType
from src.console.schemas.policy import (
    DEFAULT_PERMISSIONS,
    Permission,
    Restriction,
    build_restrictions,
    validate_permissions,
)
from src.console.services.access_policy import (
    NO_EXPLICIT_GRANT,
    ProposedAction,
    check_permission,
    enforce_restrictions,
    evaluate_permission,
    evaluate_restrictions,
)
from tests.factories import ImpersonationSessionFactory

pytestmark = pytest.mark.unit

NOW = datetime(2025, 1, 1, 12, 0, 0)
LATER = NOW + timedelta(minutes=60)

DEFAULT_PAIRS = {(p.action, p.resource) for p in DEFAULT_PERMISSIONS}


def _proposed(action: ActionType = ActionType.VIEW, resource: str = "bookings", token=None):
    return ProposedAction(action_type=action, resource=resource, approval_token=token)


class TestPermissionEvaluator:
    def test_explicit_allow(self):
        decision = evaluate_permission(DEFAULT_PERMISSIONS, "view", "bookings")
        assert decision.allowed is True
        assert decision.reason is None

    def test_explicit_deny_carries_reason(self):
        decision = evaluate_permission(DEFAULT_PERMISSIONS, "delete", "bookings")
        assert decision.allowed is False
        assert decision.reason == "Requires manager approval"

    def test_unlisted_pair_is_denied(self):
        decision = evaluate_permission(DEFAULT_PERMISSIONS, "delete", "customers")
        assert decision.allowed is False
        assert decision.reason == NO_EXPLICIT_GRANT

    def test_match_is_exact(self):
        decision = evaluate_permission(DEFAULT_PERMISSIONS, "VIEW", "Bookings")
        assert decision.allowed is False

    def test_empty_snapshot_denies_everything(self):
        assert evaluate_permission([], "view", "bookings").allowed is False

    def test_check_permission_reads_session_snapshot(self):
        session = ImpersonationSessionFactory.build(
            permissions=[{"action": "view", "resource": "menus", "allowed": True, "reason": None}]
        )

        assert check_permission(session, ActionType.VIEW, "menus").allowed is True
        # Not in this session's snapshot even though the default template allows it
        assert check_permission(session, ActionType.VIEW, "bookings").allowed is False

    @given(
        action=st.sampled_from([a.value for a in ActionType]),
        resource=st.text(min_size=1, max_size=30),
    )
    def test_pairs_outside_snapshot_fail_closed(self, action, resource):
        decision = evaluate_permission(DEFAULT_PERMISSIONS, action, resource)
        if (action, resource) not in DEFAULT_PAIRS:
            assert decision.allowed is False
            assert decision.reason == NO_EXPLICIT_GRANT

    @given(
        action=st.sampled_from(["view", "create", "update", "delete", "export"]),
        resource=st.sampled_from(["bookings", "customers", "financial_data", "menus"]),
    )
    def test_evaluation_is_deterministic(self, action, resource):
        assert evaluate_permission(DEFAULT_PERMISSIONS, action, resource) == evaluate_permission(
            DEFAULT_PERMISSIONS, action, resource
        )


class TestPermissionSchema:
    def test_denial_requires_reason(self):
        with pytest.raises(ValidationError):
            Permission(action="delete", resource="bookings", allowed=False)

    def test_duplicate_pairs_rejected(self):
        permissions = [
            Permission(action="view", resource="bookings", allowed=True),
            Permission(action="view", resource="bookings", allowed=False, reason="no"),
        ]
        with pytest.raises(ValueError, match="Duplicate"):
            validate_permissions(permissions)

    def test_default_template_has_no_duplicates(self):
        assert len(validate_permissions(DEFAULT_PERMISSIONS)) == 9


class TestRestrictionTemplate:
    def test_built_from_settings(self):
        restrictions = {r.type: r for r in build_restrictions(get_settings(), 90)}

        assert restrictions[RestrictionType.TIME_LIMIT].value == 90
        assert restrictions[RestrictionType.ACTION_LIMIT].value == 50
        assert restrictions[RestrictionType.RESOURCE_LIMIT].names == {"financial_data"}
        assert restrictions[RestrictionType.APPROVAL_REQUIRED].names == {"delete"}

    def test_empty_lists_omit_restrictions(self):
        settings = get_settings().model_copy(
            update={
                "impersonation_restricted_resources": [],
                "impersonation_approval_required_actions": [],
            }
        )
        types = {r.type for r in build_restrictions(settings, 30)}
        assert types == {RestrictionType.TIME_LIMIT, RestrictionType.ACTION_LIMIT}


class TestRestrictionEnforcer:
    def test_allows_within_limits(self):
        decision = evaluate_restrictions(
            build_restrictions(get_settings(), 60), LATER, _proposed(), action_count=0, now=NOW
        )
        assert decision.allowed is True

    def test_time_limit_denies_after_expiry(self):
        restrictions = build_restrictions(get_settings(), 60)

        decision = evaluate_restrictions(
            restrictions, NOW, _proposed(), action_count=0, now=NOW + timedelta(seconds=1)
        )

        assert decision.allowed is False
        assert decision.is_expiry
        assert decision.violated_restriction.type == RestrictionType.TIME_LIMIT

    def test_time_limit_checked_without_snapshot_entry(self):
        decision = evaluate_restrictions(
            [], NOW, _proposed(), action_count=0, now=NOW + timedelta(minutes=1)
        )
        assert decision.allowed is False
        assert decision.is_expiry

    def test_expiry_boundary_is_exclusive(self):
        decision = evaluate_restrictions([], NOW, _proposed(), action_count=0, now=NOW)
        assert decision.allowed is True

    def test_action_limit(self):
        restrictions = [
            Restriction(type=RestrictionType.ACTION_LIMIT, description="Max 3", value=3)
        ]

        assert evaluate_restrictions(
            restrictions, LATER, _proposed(), action_count=2, now=NOW
        ).allowed
        denied = evaluate_restrictions(restrictions, LATER, _proposed(), action_count=3, now=NOW)
        assert denied.allowed is False
        assert denied.reason == "Max 3"

    def test_resource_limit(self):
        restrictions = [
            Restriction(
                type=RestrictionType.RESOURCE_LIMIT,
                description="Cannot access financial_data",
                value="financial_data,payouts",
            )
        ]

        denied = evaluate_restrictions(
            restrictions, LATER, _proposed(resource="payouts"), action_count=0, now=NOW
        )
        assert denied.allowed is False
        assert denied.violated_restriction.type == RestrictionType.RESOURCE_LIMIT
        assert evaluate_restrictions(
            restrictions, LATER, _proposed(resource="bookings"), action_count=0, now=NOW
        ).allowed

    def test_approval_required_unless_token(self):
        restrictions = [
            Restriction(
                type=RestrictionType.APPROVAL_REQUIRED,
                description="Delete actions require approval",
                value="delete",
            )
        ]

        denied = evaluate_restrictions(
            restrictions, LATER, _proposed(ActionType.DELETE), action_count=0, now=NOW
        )
        assert denied.allowed is False
        assert evaluate_restrictions(
            restrictions, LATER, _proposed(ActionType.DELETE, token="appr_1"), action_count=0, now=NOW
        ).allowed

    def test_inactive_restrictions_ignored(self):
        restrictions = [
            Restriction(
                type=RestrictionType.RESOURCE_LIMIT,
                description="off",
                value="bookings",
                active=False,
            )
        ]
        assert evaluate_restrictions(restrictions, LATER, _proposed(), action_count=0, now=NOW).allowed

    def test_time_limit_wins_over_other_violations(self):
        restrictions = build_restrictions(get_settings(), 60)

        decision = evaluate_restrictions(
            restrictions,
            NOW,
            _proposed(resource="financial_data"),
            action_count=1000,
            now=NOW + timedelta(hours=1),
        )

        assert decision.violated_restriction.type == RestrictionType.TIME_LIMIT

    def test_enforce_reads_session_snapshot(self):
        session = ImpersonationSessionFactory.lapsed()
        decision = enforce_restrictions(
            session, _proposed(), action_count=0, now=session.expires_at + timedelta(seconds=1)
        )
        assert decision.is_expiry

    @given(limit=st.integers(min_value=1, max_value=100), count=st.integers(min_value=0, max_value=200))
    def test_action_limit_property(self, limit, count):
        restrictions = [
            Restriction(type=RestrictionType.ACTION_LIMIT, description="limit", value=limit)
        ]
        decision = evaluate_restrictions(
            restrictions, LATER, _proposed(), action_count=count, now=NOW
        )
        assert decision.allowed is (count < limit)
