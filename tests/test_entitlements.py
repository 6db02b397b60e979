import pytest
from datetime import date, datetime, timezone

from shipflow.domain.entitlements import NO_ENTITLEMENTS, SubscriptionActivityPolicy, resolve
from shipflow.domain.records import EntitySnapshot
from shipflow.domain.statuses import EntityKind


def subscription(status="active", plan_type="premium_tracking", end_date=None, is_active=True):
    return EntitySnapshot(
        kind=EntityKind.SUBSCRIPTION,
        id="sub-1",
        version=1,
        fields={
            "status": status,
            "plan_type": plan_type,
            "is_active": is_active,
            "client_id": "client-1",
            "start_date": date(2020, 1, 1),
            "end_date": end_date,
        },
    )


# ============================================================================
# RESOLVE
# ============================================================================


@pytest.mark.parametrize(
    "now",
    [
        datetime(2020, 1, 1, tzinfo=timezone.utc),
        datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc),
        datetime(2099, 12, 31, 23, 59, tzinfo=timezone.utc),
    ],
)
def test_open_ended_premium_tracking_grants_portal_and_full_tracking(now):
    """premium_tracking, active, no end date: both access flags hold at any time."""
    flags = resolve(subscription(), now)

    assert flags.has_active_subscription
    assert flags.has_premium_tracking
    assert flags.has_digital_portal_access
    assert flags.has_full_tracking_access


@pytest.mark.parametrize("status", ["active", "pending", "cancelled", "expired"])
def test_elapsed_end_date_grants_nothing(status):
    """Once the end date is behind us nothing is granted, whatever the stored status says."""
    flags = resolve(
        subscription(status=status, end_date=date(2024, 6, 14), is_active=True),
        datetime(2024, 6, 15, tzinfo=timezone.utc),
    )

    assert flags == NO_ENTITLEMENTS
    assert not flags.has_digital_portal_access
    assert not flags.has_full_tracking_access


def test_end_date_is_inclusive():
    """A subscription ending today is still active today."""
    flags = resolve(subscription(end_date=date(2024, 6, 15)), datetime(2024, 6, 15, 23, 0))

    assert flags.has_full_tracking_access


def test_stored_is_active_flag_is_ignored():
    """A stale is_active=False on an active, running subscription does not revoke access."""
    flags = resolve(subscription(is_active=False), date(2024, 6, 15))

    assert flags.has_active_subscription


@pytest.mark.parametrize("status", ["pending", "cancelled", "expired"])
def test_non_active_status_grants_nothing(status):
    assert resolve(subscription(status=status), date(2024, 6, 15)) == NO_ENTITLEMENTS


def test_no_subscription_grants_nothing():
    assert resolve(None, date(2024, 6, 15)) == NO_ENTITLEMENTS


@pytest.mark.parametrize(
    "plan_type,portal,full_tracking",
    [
        ("premium_tracking", True, True),
        ("enterprise_logistics", True, True),
        ("digital_portal", True, False),
        ("agent_listing", False, False),
        ("basic", False, False),
    ],
)
def test_plan_type_decides_access(plan_type, portal, full_tracking):
    flags = resolve(subscription(plan_type=plan_type), date(2024, 6, 15))

    assert flags.has_active_subscription
    assert flags.has_digital_portal_access is portal
    assert flags.has_full_tracking_access is full_tracking
    assert flags.has_agent_listing is (plan_type == "agent_listing")
    assert flags.has_enterprise_logistics is (plan_type == "enterprise_logistics")


def test_unknown_plan_only_marks_subscription_active():
    flags = resolve(subscription(plan_type="gold"), date(2024, 6, 15))

    assert flags.has_active_subscription
    assert not flags.has_digital_portal_access


# ============================================================================
# ACTIVITY POLICY
# ============================================================================


def test_policy_effective_status():
    """Stored active with an elapsed end date reads as expired."""
    policy = SubscriptionActivityPolicy(as_of=date(2024, 6, 15))

    assert policy.effective_status(status="active", end_date=date(2024, 6, 1)) == "expired"
    assert policy.effective_status(status="active", end_date=None) == "active"
    assert policy.effective_status(status="cancelled", end_date=date(2024, 6, 1)) == "cancelled"


def test_policy_is_stale_only_for_active_rows():
    policy = SubscriptionActivityPolicy(as_of=date(2024, 6, 15))

    assert policy.is_stale(status="active", end_date=date(2024, 6, 14))
    assert not policy.is_stale(status="active", end_date=date(2024, 6, 15))
    assert not policy.is_stale(status="cancelled", end_date=date(2024, 6, 14))
    assert not policy.is_stale(status="active", end_date=None)
