from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from shipflow.domain.dates import as_date
from shipflow.domain.records import EntitySnapshot
from shipflow.domain.statuses import PlanType, SubscriptionStatus

DIGITAL_PORTAL_PLANS = frozenset(
    {PlanType.PREMIUM_TRACKING, PlanType.ENTERPRISE_LOGISTICS, PlanType.DIGITAL_PORTAL}
)
FULL_TRACKING_PLANS = frozenset({PlanType.PREMIUM_TRACKING, PlanType.ENTERPRISE_LOGISTICS})


@dataclass(frozen=True, slots=True)
class SubscriptionActivityPolicy:
    """Defines what it means for a subscription to be active "as of" a given date.

    Semantics:
    - A subscription is active if status == active
    - AND (end_date is None OR end_date >= as_of)

    The stored `is_active` flag is not consulted: a subscription whose end
    date has passed is inactive even if nothing has written that back yet.
    Note: end_date is inclusive. A subscription ending "today" is still active today.
    """

    as_of: date

    def is_active(self, *, status: str, end_date: date | None) -> bool:
        return status == SubscriptionStatus.ACTIVE.value and (
            end_date is None or as_date(end_date) >= self.as_of
        )

    def is_stale(self, *, status: str, end_date: date | None) -> bool:
        # Stored as active, but the window has closed.
        return (
            status == SubscriptionStatus.ACTIVE.value
            and end_date is not None
            and as_date(end_date) < self.as_of
        )

    def effective_status(self, *, status: str, end_date: date | None) -> str:
        if self.is_stale(status=status, end_date=end_date):
            return SubscriptionStatus.EXPIRED.value
        return status

    def sqlalchemy_active_predicate(self, *, status_col, end_col):
        """Build a SQLAlchemy predicate implementing the active rule.

        Repositories filter with this rather than restating the end-date
        boundary in SQL.
        """
        from sqlalchemy import and_, or_

        return and_(
            status_col == SubscriptionStatus.ACTIVE.value,
            or_(
                end_col.is_(None),
                end_col >= self.as_of,
            ),
        )

    def sqlalchemy_stale_predicate(self, *, status_col, end_col):
        """Build a SQLAlchemy predicate selecting active-but-elapsed rows."""
        from sqlalchemy import and_

        return and_(
            status_col == SubscriptionStatus.ACTIVE.value,
            end_col.isnot(None),
            end_col < self.as_of,
        )


@dataclass(frozen=True, slots=True)
class EntitlementFlags:
    has_active_subscription: bool = False
    has_premium_tracking: bool = False
    has_enterprise_logistics: bool = False
    has_agent_listing: bool = False
    has_digital_portal_access: bool = False
    has_full_tracking_access: bool = False


NO_ENTITLEMENTS = EntitlementFlags()


def resolve(subscription: EntitySnapshot | None, now: date | datetime) -> EntitlementFlags:
    """Derive feature access from a subscription as of `now`.

    Pure: never writes, never caches. Call it on every access check so that
    an end date crossing takes effect without any write.
    """
    if subscription is None:
        return NO_ENTITLEMENTS

    policy = SubscriptionActivityPolicy(as_of=as_date(now))
    active = policy.is_active(
        status=subscription.status, end_date=subscription.get("end_date")
    )
    if not active:
        return NO_ENTITLEMENTS

    try:
        plan = PlanType(subscription.get("plan_type"))
    except ValueError:
        # Unknown plan grants nothing beyond being subscribed.
        return EntitlementFlags(has_active_subscription=True)

    return EntitlementFlags(
        has_active_subscription=True,
        has_premium_tracking=plan == PlanType.PREMIUM_TRACKING,
        has_enterprise_logistics=plan == PlanType.ENTERPRISE_LOGISTICS,
        has_agent_listing=plan == PlanType.AGENT_LISTING,
        has_digital_portal_access=plan in DIGITAL_PORTAL_PLANS,
        has_full_tracking_access=plan in FULL_TRACKING_PLANS,
    )
