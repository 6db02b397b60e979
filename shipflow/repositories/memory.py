import copy
import threading
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Mapping

from shipflow.domain.dates import utcnow
from shipflow.domain.entitlements import SubscriptionActivityPolicy
from shipflow.domain.records import EntitySnapshot, EventRecord, NotificationRecord
from shipflow.domain.statuses import EntityKind
from shipflow.errors import ConflictError, DomainValidationError, NotFoundError
from shipflow.repositories.base import ENTITY_DEFAULTS, EntityStore, unknown_fields


class InMemoryEntityStore(EntityStore):
    """Process-local store (useful for tests and embedding).

    A single lock makes each conditional update an atomic compare-and-set.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entities: dict[EntityKind, dict[str, dict[str, Any]]] = {kind: {} for kind in EntityKind}
        self.events: list[EventRecord] = []
        self.notifications: list[NotificationRecord] = []

    def _snapshot(self, kind: EntityKind, record: dict[str, Any]) -> EntitySnapshot:
        fields = copy.deepcopy(record)
        entity_id = fields.pop("id")
        version = fields.pop("version")
        return EntitySnapshot(kind=kind, id=entity_id, version=version, fields=fields)

    def get(self, kind: EntityKind, entity_id: str) -> EntitySnapshot:
        with self._lock:
            record = self._entities[kind].get(entity_id)
            if record is None:
                raise NotFoundError(f"{kind.value.capitalize()} with id {entity_id} not found")
            return self._snapshot(kind, record)

    def conditional_update(
        self,
        kind: EntityKind,
        entity_id: str,
        expected_version: int,
        changes: Mapping[str, Any],
        *,
        guards: Mapping[str, Any] | None = None,
    ) -> int:
        unknown = unknown_fields(kind, changes)
        if unknown:
            raise DomainValidationError(f"Unknown {kind.value} fields: {sorted(unknown)}")

        with self._lock:
            record = self._entities[kind].get(entity_id)
            if record is None:
                raise NotFoundError(f"{kind.value.capitalize()} with id {entity_id} not found")
            if record["version"] != expected_version:
                raise ConflictError(
                    f"{kind.value.capitalize()} {entity_id} was modified concurrently "
                    f"(expected version {expected_version}, found {record['version']})"
                )
            for name, expected in (guards or {}).items():
                if record.get(name) != expected:
                    raise ConflictError(f"{kind.value.capitalize()} {entity_id} no longer has {name}={expected!r}")

            record.update(copy.deepcopy(dict(changes)))
            record["version"] += 1
            record["updated_at"] = self._clock()
            return record["version"]

    def insert(self, kind: EntityKind, fields: Mapping[str, Any]) -> str:
        fields = dict(fields)
        entity_id = fields.pop("id", None) or str(uuid.uuid4())
        unknown = unknown_fields(kind, fields)
        if unknown:
            raise DomainValidationError(f"Unknown {kind.value} fields: {sorted(unknown)}")
        if "status" not in fields:
            raise DomainValidationError(f"A new {kind.value} needs a status")

        now = self._clock()
        record = {
            **ENTITY_DEFAULTS[kind],
            **copy.deepcopy(fields),
            "id": entity_id,
            "version": 1,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            if entity_id in self._entities[kind]:
                raise ConflictError(f"{kind.value.capitalize()} {entity_id} already exists")
            self._entities[kind][entity_id] = record
        return entity_id

    def append_event(self, event: EventRecord) -> EventRecord:
        with self._lock:
            stored = replace(event, id=len(self.events) + 1, created_at=event.created_at or self._clock())
            self.events.append(stored)
        return stored

    def enqueue_notification(self, notification: NotificationRecord) -> NotificationRecord:
        with self._lock:
            stored = replace(
                notification,
                id=len(self.notifications) + 1,
                created_at=notification.created_at or self._clock(),
            )
            self.notifications.append(stored)
        return stored

    def list_entities(self, kind: EntityKind, **filters: Any) -> list[EntitySnapshot]:
        with self._lock:
            records = [
                record
                for record in self._entities[kind].values()
                if all(record.get(name) == value for name, value in filters.items())
            ]
            records.sort(key=lambda r: r["created_at"])
            return [self._snapshot(kind, record) for record in records]

    def list_events(self, subject_entity_id=None, *, offset=0, limit=None):
        with self._lock:
            events = [
                e for e in self.events
                if subject_entity_id is None or e.subject_entity_id == subject_entity_id
            ]
        end = None if limit is None else offset + limit
        return events[offset:end], len(events)

    def list_notifications(self, status=None, *, subject_entity_id=None, offset=0, limit=None):
        with self._lock:
            notifications = [
                n for n in self.notifications
                if (status is None or n.status == status)
                and (subject_entity_id is None or n.subject_entity_id == subject_entity_id)
            ]
        end = None if limit is None else offset + limit
        return notifications[offset:end], len(notifications)

    def active_subscriptions(self, client_id: str, as_of: date) -> list[EntitySnapshot]:
        policy = SubscriptionActivityPolicy(as_of=as_of)
        subscriptions = [
            s for s in self.list_entities(EntityKind.SUBSCRIPTION, client_id=client_id)
            if policy.is_active(status=s.status, end_date=s.get("end_date"))
        ]
        return list(reversed(subscriptions))

    def stale_subscription_ids(self, as_of: date) -> list[str]:
        policy = SubscriptionActivityPolicy(as_of=as_of)
        return [
            s.id for s in self.list_entities(EntityKind.SUBSCRIPTION)
            if policy.is_stale(status=s.status, end_date=s.get("end_date"))
        ]
