import logging
from datetime import date, datetime

from shipflow.domain.dates import as_date
from shipflow.domain.entitlements import EntitlementFlags, resolve
from shipflow.domain.records import EntitySnapshot
from shipflow.domain.statuses import EntityKind
from shipflow.errors import ConflictError, InvalidTransitionError
from shipflow.repositories.base import EntityStore
from shipflow.services.workflow import WorkflowEngine

logger = logging.getLogger(__name__)


def current_subscription(store: EntityStore, client_id: str, now: date | datetime) -> EntitySnapshot | None:
    """The client's newest effectively active subscription, if any."""
    active = store.active_subscriptions(client_id, as_date(now))
    return active[0] if active else None


def resolve_for_client(
    store: EntityStore, client_id: str, now: date | datetime
) -> tuple[EntitySnapshot | None, EntitlementFlags]:
    """Entitlements for a client as of `now`.

    A client who never subscribed (or whose subscriptions have all lapsed)
    gets the Basic tier: every flag False.
    """
    subscription = current_subscription(store, client_id, now)
    return subscription, resolve(subscription, now)


def resolve_for_subscription(
    store: EntityStore, subscription_id: str, now: date | datetime
) -> tuple[EntitySnapshot, EntitlementFlags]:
    """
    Raises:
        NotFoundError: if the subscription does not exist.
    """
    subscription = store.get(EntityKind.SUBSCRIPTION, subscription_id)
    return subscription, resolve(subscription, now)


def expire_stale_subscriptions(engine: WorkflowEngine, store: EntityStore, now: date | datetime) -> list[str]:
    """Write back `expired` for every active subscription whose end date has passed.

    Readers already treat such rows as inactive; this only makes the stored
    status catch up. A row that changed under us (reactivated, extended,
    expired by a concurrent sweep) is skipped, not retried.

    Returns the ids that were expired.
    """
    expired: list[str] = []
    for subscription_id in store.stale_subscription_ids(as_date(now)):
        try:
            result = engine.expire_if_stale(subscription_id)
        except (ConflictError, InvalidTransitionError) as e:
            logger.info(f"Skipping subscription {subscription_id}: {e}")
            continue
        if result is not None:
            expired.append(subscription_id)
            if result.warnings:
                logger.warning(f"Subscription {subscription_id} expired with warnings: {list(result.warnings)}")
    logger.info(f"Expired {len(expired)} stale subscription(s)")
    return expired
