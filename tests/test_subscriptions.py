import pytest
from datetime import date, datetime, timezone

from shipflow.domain.dates import add_months, extended_end_date
from shipflow.domain.statuses import EntityKind
from shipflow.errors import DomainValidationError
from shipflow.services.subscription import (
    expire_stale_subscriptions,
    resolve_for_client,
    resolve_for_subscription,
)

SUBSCRIPTION = EntityKind.SUBSCRIPTION


# ============================================================================
# END DATE ARITHMETIC
# ============================================================================


def test_add_months_simple():
    assert add_months(date(2024, 1, 1), 3) == date(2024, 4, 1)


def test_add_months_clamps_to_month_end():
    """2024-01-31 + 1 month is the last day of February, not March 2nd."""
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)


def test_add_months_crosses_year():
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
    assert add_months(date(2024, 12, 15), 12) == date(2025, 12, 15)


def test_extend_from_future_end_date():
    """A running subscription is extended from its end date."""
    assert extended_end_date(date(2024, 1, 1), date(2023, 12, 1), 3) == date(2024, 4, 1)


def test_extend_without_end_date_counts_from_today():
    assert extended_end_date(None, datetime(2024, 6, 15, 9, 30, tzinfo=timezone.utc), 1) == date(2024, 7, 15)


def test_extend_from_elapsed_end_date_counts_from_today():
    """Time already lost after expiry is not given back."""
    assert extended_end_date(date(2024, 1, 1), date(2024, 6, 15), 1) == date(2024, 7, 15)


# ============================================================================
# EXTEND THROUGH THE ENGINE
# ============================================================================


def test_extend_subscription(store, seed, admin, engine_at):
    """2024-01-01 + 3 months = 2024-04-01; status untouched; client notified."""
    engine = engine_at(store, datetime(2023, 12, 1, tzinfo=timezone.utc))
    subscription_id = seed(SUBSCRIPTION, "active", end_date=date(2024, 1, 1))

    result = engine.extend(subscription_id, 3, admin)

    assert result.entity.get("end_date") == date(2024, 4, 1)
    assert result.entity.status == "active"
    assert result.event.event_type == "subscription_extended"
    assert "3 months until 2024-04-01" in result.event.details
    assert result.notifications[0].subject == "Your Premium Tracking subscription has been extended"
    assert "New end date: 2024-04-01" in result.notifications[0].body


def test_extend_expired_subscription_keeps_status(engine, store, seed, admin):
    """Extending never reactivates; that is a separate transition."""
    subscription_id = seed(SUBSCRIPTION, "expired", end_date=date(2024, 1, 1), is_active=False)

    result = engine.extend(subscription_id, 1, admin)

    assert result.entity.get("end_date") == date(2024, 7, 15)
    assert store.get(SUBSCRIPTION, subscription_id).status == "expired"


@pytest.mark.parametrize("months", [0, -1, 37])
def test_extend_rejects_out_of_range_months(engine, store, seed, admin, months):
    subscription_id = seed(SUBSCRIPTION, "active")

    with pytest.raises(DomainValidationError):
        engine.extend(subscription_id, months, admin)

    assert store.get(SUBSCRIPTION, subscription_id).get("end_date") == date(2024, 12, 31)


def test_extend_requires_months(engine, seed, admin):
    subscription_id = seed(SUBSCRIPTION, "active")

    with pytest.raises(DomainValidationError):
        engine.apply(SUBSCRIPTION, subscription_id, "extend", admin)


# ============================================================================
# EXPIRY WRITE-BACK
# ============================================================================


def test_expire_if_stale(engine, store, seed):
    subscription_id = seed(SUBSCRIPTION, "active", end_date=date(2024, 6, 1))

    result = engine.expire_if_stale(subscription_id)

    assert result.entity.status == "expired"
    assert result.entity.get("is_active") is False
    assert result.event.actor_id == "system"
    assert result.notifications[0].template_type == "subscription_expired"


def test_expire_if_stale_leaves_running_subscription(engine, store, seed):
    subscription_id = seed(SUBSCRIPTION, "active")

    assert engine.expire_if_stale(subscription_id) is None
    assert store.get(SUBSCRIPTION, subscription_id).status == "active"
    assert store.events == []


def test_expire_stale_subscriptions_sweep(engine, store, seed, now):
    """Only active rows past their end date are written back."""
    stale = seed(SUBSCRIPTION, "active", end_date=date(2024, 5, 31))
    running = seed(SUBSCRIPTION, "active", end_date=None)
    cancelled = seed(SUBSCRIPTION, "cancelled", end_date=date(2024, 1, 1), is_active=False)

    expired = expire_stale_subscriptions(engine, store, now)

    assert expired == [stale]
    assert store.get(SUBSCRIPTION, stale).status == "expired"
    assert store.get(SUBSCRIPTION, running).status == "active"
    assert store.get(SUBSCRIPTION, cancelled).status == "cancelled"

    # A second sweep finds nothing left to do
    assert expire_stale_subscriptions(engine, store, now) == []


def test_stale_subscription_reads_inactive_before_write_back(store, seed, now):
    """Entitlements flip at the end date even if the sweep never ran."""
    subscription_id = seed(SUBSCRIPTION, "active", end_date=date(2024, 6, 14))

    snapshot, flags = resolve_for_subscription(store, subscription_id, now)

    assert snapshot.status == "active"
    assert not flags.has_active_subscription


# ============================================================================
# CLIENT ENTITLEMENTS
# ============================================================================


def test_resolve_for_client_uses_newest_active_subscription(store, seed, now):
    seed(SUBSCRIPTION, "active", plan_type="digital_portal", end_date=None)
    newest = seed(SUBSCRIPTION, "active", plan_type="enterprise_logistics", end_date=None)
    seed(SUBSCRIPTION, "cancelled", plan_type="premium_tracking", end_date=None)

    subscription, flags = resolve_for_client(store, "client-1", now)

    assert subscription.id == newest
    assert flags.has_enterprise_logistics
    assert flags.has_full_tracking_access


def test_resolve_for_client_without_subscription(store, now):
    subscription, flags = resolve_for_client(store, "nobody", now)

    assert subscription is None
    assert not flags.has_active_subscription
    assert not flags.has_digital_portal_access
