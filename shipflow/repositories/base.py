"""The storage port the workflow engine is written against.

Implementations must make `conditional_update` atomic: the write lands only
if the stored version (and any guard fields) still match what the caller
read. That compare-and-set is the only thing serializing concurrent
transitions on one entity; the engine holds no locks of its own.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Mapping

from shipflow.domain.records import EntitySnapshot, EventRecord, NotificationRecord
from shipflow.domain.statuses import (
    ClientDecision,
    EntityKind,
    PaymentStatus,
)

# Writable columns per kind, besides id/version/created_at/updated_at.
ENTITY_FIELDS: dict[EntityKind, frozenset[str]] = {
    EntityKind.QUOTE: frozenset({
        "status", "client_id", "client_email", "origin_port", "destination_port",
        "cargo_type", "cargo_description", "client_decision", "payment_status",
        "quote_amount", "currency", "shipment_ref",
    }),
    EntityKind.SHIPMENT: frozenset({
        "status", "tracking_number", "client_id", "client_email", "quote_ref",
        "origin_port", "destination_port", "cargo_type", "cargo_description",
        "last_update", "internal_notes", "client_visible_notes",
    }),
    EntityKind.AGENT: frozenset({
        "status", "company_name", "email", "country", "port", "is_premium_listing",
    }),
    EntityKind.SUBSCRIPTION: frozenset({
        "status", "client_id", "client_email", "plan_type", "is_active",
        "start_date", "end_date",
    }),
}

# Values a freshly inserted entity gets when intake leaves them out.
ENTITY_DEFAULTS: dict[EntityKind, dict[str, Any]] = {
    EntityKind.QUOTE: {
        "client_decision": ClientDecision.PENDING.value,
        "payment_status": PaymentStatus.PENDING.value,
    },
    EntityKind.SHIPMENT: {},
    EntityKind.AGENT: {"is_premium_listing": False},
    EntityKind.SUBSCRIPTION: {"is_active": False},
}


def unknown_fields(kind: EntityKind, fields: Mapping[str, Any]) -> set[str]:
    return set(fields) - ENTITY_FIELDS[kind]


class EntityStore(ABC):
    @abstractmethod
    def get(self, kind: EntityKind, entity_id: str) -> EntitySnapshot:
        """Return the current snapshot.

        Raises:
            NotFoundError: if no such entity exists.
        """

    @abstractmethod
    def conditional_update(
        self,
        kind: EntityKind,
        entity_id: str,
        expected_version: int,
        changes: Mapping[str, Any],
        *,
        guards: Mapping[str, Any] | None = None,
    ) -> int:
        """Apply `changes` only if the stored version equals `expected_version`.

        `guards` are extra field values that must also still hold (e.g.
        `{"shipment_ref": None}`). Returns the new version.

        Raises:
            NotFoundError: if the entity does not exist.
            ConflictError: if the version or a guard no longer matches.
        """

    @abstractmethod
    def insert(self, kind: EntityKind, fields: Mapping[str, Any]) -> str:
        """Insert a new entity and return its id. `fields` may carry a pre-assigned `id`."""

    @abstractmethod
    def append_event(self, event: EventRecord) -> EventRecord:
        """Append one audit event and return it with id and timestamp filled in."""

    @abstractmethod
    def enqueue_notification(self, notification: NotificationRecord) -> NotificationRecord:
        """Queue one outbound message. Failures are reported by raising."""

    @abstractmethod
    def list_entities(self, kind: EntityKind, **filters: Any) -> list[EntitySnapshot]:
        """Entities of `kind` whose fields equal `filters`, oldest first."""

    @abstractmethod
    def list_events(
        self,
        subject_entity_id: str | None = None,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[EventRecord], int]:
        """Audit events, oldest first, with the total count before paging."""

    @abstractmethod
    def list_notifications(
        self,
        status: str | None = None,
        *,
        subject_entity_id: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[NotificationRecord], int]:
        """Queued notifications, oldest first, with the total count before paging."""

    @abstractmethod
    def active_subscriptions(self, client_id: str, as_of: date) -> list[EntitySnapshot]:
        """The client's effectively active subscriptions, newest first."""

    @abstractmethod
    def stale_subscription_ids(self, as_of: date) -> list[str]:
        """Ids of subscriptions stored as active whose end date is before `as_of`."""
