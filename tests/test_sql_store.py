import pytest
from datetime import date

from shipflow.domain.actors import Actor, ActorRole
from shipflow.domain.statuses import EntityKind
from shipflow.errors import (
    AlreadyExistsError,
    ConflictError,
    DomainValidationError,
    NotFoundError,
)
from shipflow.services.factory import build_engine

QUOTE = EntityKind.QUOTE
SHIPMENT = EntityKind.SHIPMENT
SUBSCRIPTION = EntityKind.SUBSCRIPTION

ADMIN = Actor(id="admin-1", role=ActorRole.ADMIN)


# ============================================================================
# INSERT / GET
# ============================================================================


def test_insert_applies_defaults(sql_store, sql_seed):
    """A new quote starts at version 1 with pending decision and payment."""
    quote_id = sql_seed(QUOTE, "received")

    quote = sql_store.get(QUOTE, quote_id)

    assert quote.version == 1
    assert quote.status == "received"
    assert quote.get("client_decision") == "pending"
    assert quote.get("payment_status") == "pending"
    assert quote.get("shipment_ref") is None


def test_insert_rejects_unknown_fields(sql_store):
    with pytest.raises(DomainValidationError):
        sql_store.insert(QUOTE, {"status": "received", "colour": "blue"})


def test_get_missing_raises_not_found(sql_store):
    with pytest.raises(NotFoundError):
        sql_store.get(SHIPMENT, "missing")


# ============================================================================
# CONDITIONAL UPDATE
# ============================================================================


def test_conditional_update_bumps_version(sql_store, sql_seed):
    quote_id = sql_seed(QUOTE, "received")

    new_version = sql_store.conditional_update(QUOTE, quote_id, 1, {"status": "in_progress"})

    assert new_version == 2
    quote = sql_store.get(QUOTE, quote_id)
    assert quote.version == 2
    assert quote.status == "in_progress"


def test_conditional_update_with_stale_version_conflicts(sql_store, sql_seed):
    """The second writer holding version 1 loses and nothing of theirs is stored."""
    quote_id = sql_seed(QUOTE, "received")
    sql_store.conditional_update(QUOTE, quote_id, 1, {"status": "in_progress"})

    with pytest.raises(ConflictError):
        sql_store.conditional_update(QUOTE, quote_id, 1, {"status": "sent_to_client"})

    quote = sql_store.get(QUOTE, quote_id)
    assert quote.status == "in_progress"
    assert quote.version == 2


def test_conditional_update_guard_mismatch_conflicts(sql_store, sql_seed):
    quote_id = sql_seed(QUOTE, "accepted", shipment_ref="existing-shipment")

    with pytest.raises(ConflictError):
        sql_store.conditional_update(
            QUOTE, quote_id, 1, {"shipment_ref": "other"}, guards={"shipment_ref": None}
        )

    assert sql_store.get(QUOTE, quote_id).get("shipment_ref") == "existing-shipment"


def test_conditional_update_missing_entity(sql_store):
    with pytest.raises(NotFoundError):
        sql_store.conditional_update(QUOTE, "missing", 1, {"status": "in_progress"})


# ============================================================================
# ENGINE OVER THE DATABASE
# ============================================================================


def test_create_shipment_persists_link_both_ways(sql_store, sql_seed):
    engine = build_engine(sql_store)
    quote_id = sql_seed(QUOTE, "accepted")

    result = engine.apply(QUOTE, quote_id, "createShipment", ADMIN)

    shipment = sql_store.get(SHIPMENT, result.derived_entity_id)
    assert shipment.get("quote_ref") == quote_id
    assert shipment.status == "confirmed"
    assert sql_store.get(QUOTE, quote_id).get("shipment_ref") == shipment.id

    with pytest.raises(AlreadyExistsError):
        engine.apply(QUOTE, quote_id, "createShipment", ADMIN)
    assert len(sql_store.list_entities(SHIPMENT)) == 1


def test_events_and_notifications_are_persisted(sql_store, sql_seed):
    engine = build_engine(sql_store)
    quote_id = sql_seed(QUOTE, "in_progress")

    engine.apply(QUOTE, quote_id, "sendToClient", ADMIN)

    events, total = sql_store.list_events(quote_id)
    assert total == 1
    assert events[0].event_type == "quote_sent"
    assert events[0].actor_id == "admin-1"

    notifications, total = sql_store.list_notifications("pending", subject_entity_id=quote_id)
    assert total == 1
    assert notifications[0].recipient == "client@example.com"
    assert notifications[0].metadata["language"] == "en"
    assert notifications[0].metadata["sender"] == "noreply@uss.example.com"


def test_list_events_paginates(sql_store, sql_seed):
    engine = build_engine(sql_store)
    shipment_id = sql_seed(SHIPMENT, "confirmed")
    for _ in range(3):
        engine.apply(SHIPMENT, shipment_id, "notifyClient", ADMIN)

    page, total = sql_store.list_events(shipment_id, offset=2, limit=2)

    assert total == 3
    assert len(page) == 1


# ============================================================================
# SUBSCRIPTION QUERIES
# ============================================================================


def test_active_and_stale_subscription_queries(sql_store, sql_seed):
    as_of = date(2024, 6, 15)
    running = sql_seed(SUBSCRIPTION, "active", end_date=None)
    ends_today = sql_seed(SUBSCRIPTION, "active", end_date=as_of)
    stale = sql_seed(SUBSCRIPTION, "active", end_date=date(2024, 6, 14))
    sql_seed(SUBSCRIPTION, "cancelled", end_date=None)
    sql_seed(SUBSCRIPTION, "active", client_id="client-2", end_date=None)

    active_ids = {s.id for s in sql_store.active_subscriptions("client-1", as_of)}

    assert active_ids == {running, ends_today}
    assert sql_store.stale_subscription_ids(as_of) == [stale]
