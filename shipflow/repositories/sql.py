import uuid
from dataclasses import replace
from datetime import date
from typing import Any, Mapping

from sqlalchemy import inspect, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shipflow.db.models import Agent, Event, Notification, Quote, Shipment, Subscription
from shipflow.domain.dates import utcnow
from shipflow.domain.entitlements import SubscriptionActivityPolicy
from shipflow.domain.records import EntitySnapshot, EventRecord, NotificationRecord
from shipflow.domain.statuses import EntityKind
from shipflow.errors import ConflictError, DomainValidationError, NotFoundError
from shipflow.repositories.base import ENTITY_DEFAULTS, EntityStore, unknown_fields

MODELS = {
    EntityKind.QUOTE: Quote,
    EntityKind.SHIPMENT: Shipment,
    EntityKind.AGENT: Agent,
    EntityKind.SUBSCRIPTION: Subscription,
}


def _to_snapshot(kind: EntityKind, row) -> EntitySnapshot:
    fields = {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}
    entity_id = fields.pop("id")
    version = fields.pop("version")
    return EntitySnapshot(kind=kind, id=entity_id, version=version, fields=fields)


def _to_event(row: Event) -> EventRecord:
    return EventRecord(
        id=row.id,
        event_type=row.event_type,
        actor_id=row.actor_id,
        subject_kind=EntityKind(row.subject_kind),
        subject_entity_id=row.subject_entity_id,
        details=row.details,
        forced=row.forced,
        created_at=row.created_at,
    )


def _to_notification(row: Notification) -> NotificationRecord:
    return NotificationRecord(
        id=row.id,
        recipient=row.recipient,
        template_type=row.template_type,
        subject=row.subject,
        body=row.body,
        status=row.status,
        subject_kind=EntityKind(row.subject_kind),
        subject_entity_id=row.subject_entity_id,
        metadata=row.extra or {},
        created_at=row.created_at,
    )


class SqlAlchemyEntityStore(EntityStore):
    """EntityStore over a SQLAlchemy session. Each call commits its own unit of work.

    The conditional write is a single `UPDATE ... WHERE id = :id AND version = :v`
    statement; the database applies it atomically and a row count of zero
    means somebody else got there first.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def get(self, kind: EntityKind, entity_id: str) -> EntitySnapshot:
        model = MODELS[kind]
        row = self.db.query(model).populate_existing().filter(model.id == entity_id).first()
        if row is None:
            raise NotFoundError(f"{kind.value.capitalize()} with id {entity_id} not found")
        return _to_snapshot(kind, row)

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

        model = MODELS[kind]
        stmt = update(model).where(model.id == entity_id, model.version == expected_version)
        for name, expected in (guards or {}).items():
            column = getattr(model, name)
            stmt = stmt.where(column.is_(None) if expected is None else column == expected)

        new_version = expected_version + 1
        values = {**changes, "version": new_version, "updated_at": utcnow()}
        try:
            result = self.db.execute(
                stmt.values(**values).execution_options(synchronize_session=False)
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise

        if result.rowcount == 0:
            self.db.rollback()
            exists = self.db.query(model.id).filter(model.id == entity_id).first()
            if exists is None:
                raise NotFoundError(f"{kind.value.capitalize()} with id {entity_id} not found")
            raise ConflictError(
                f"{kind.value.capitalize()} {entity_id} was modified concurrently "
                f"(expected version {expected_version})"
            )

        self._commit()
        return new_version

    def insert(self, kind: EntityKind, fields: Mapping[str, Any]) -> str:
        fields = dict(fields)
        entity_id = fields.pop("id", None) or str(uuid.uuid4())
        unknown = unknown_fields(kind, fields)
        if unknown:
            raise DomainValidationError(f"Unknown {kind.value} fields: {sorted(unknown)}")
        if "status" not in fields:
            raise DomainValidationError(f"A new {kind.value} needs a status")

        now = utcnow()
        row = MODELS[kind](
            **{**ENTITY_DEFAULTS[kind], **fields},
            id=entity_id,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        self._commit()
        return entity_id

    def append_event(self, event: EventRecord) -> EventRecord:
        row = Event(
            event_type=event.event_type,
            actor_id=event.actor_id,
            subject_kind=event.subject_kind.value,
            subject_entity_id=event.subject_entity_id,
            details=event.details,
            forced=event.forced,
            created_at=event.created_at or utcnow(),
        )
        self.db.add(row)
        self._commit()
        return replace(event, id=row.id, created_at=row.created_at)

    def enqueue_notification(self, notification: NotificationRecord) -> NotificationRecord:
        row = Notification(
            recipient=notification.recipient,
            template_type=notification.template_type,
            subject=notification.subject,
            body=notification.body,
            status=notification.status,
            subject_kind=notification.subject_kind.value,
            subject_entity_id=notification.subject_entity_id,
            extra=dict(notification.metadata),
            created_at=notification.created_at or utcnow(),
        )
        self.db.add(row)
        self._commit()
        return replace(notification, id=row.id, created_at=row.created_at)

    def list_entities(self, kind: EntityKind, **filters: Any) -> list[EntitySnapshot]:
        model = MODELS[kind]
        rows = (
            self.db.query(model)
            .populate_existing()
            .filter_by(**filters)
            .order_by(model.created_at, model.id)
            .all()
        )
        return [_to_snapshot(kind, row) for row in rows]

    def list_events(self, subject_entity_id=None, *, offset=0, limit=None):
        query = self.db.query(Event)
        if subject_entity_id is not None:
            query = query.filter(Event.subject_entity_id == subject_entity_id)

        total = query.count()
        query = query.order_by(Event.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [_to_event(row) for row in query.all()], total

    def list_notifications(self, status=None, *, subject_entity_id=None, offset=0, limit=None):
        query = self.db.query(Notification)
        if status is not None:
            query = query.filter(Notification.status == status)
        if subject_entity_id is not None:
            query = query.filter(Notification.subject_entity_id == subject_entity_id)

        total = query.count()
        query = query.order_by(Notification.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [_to_notification(row) for row in query.all()], total

    def active_subscriptions(self, client_id: str, as_of: date) -> list[EntitySnapshot]:
        policy = SubscriptionActivityPolicy(as_of=as_of)
        rows = (
            self.db.query(Subscription)
            .populate_existing()
            .filter(Subscription.client_id == client_id)
            .filter(
                policy.sqlalchemy_active_predicate(
                    status_col=Subscription.status,
                    end_col=Subscription.end_date,
                )
            )
            .order_by(Subscription.created_at.desc())
            .all()
        )
        return [_to_snapshot(EntityKind.SUBSCRIPTION, row) for row in rows]

    def stale_subscription_ids(self, as_of: date) -> list[str]:
        policy = SubscriptionActivityPolicy(as_of=as_of)
        rows = (
            self.db.query(Subscription.id)
            .filter(
                policy.sqlalchemy_stale_predicate(
                    status_col=Subscription.status,
                    end_col=Subscription.end_date,
                )
            )
            .order_by(Subscription.created_at, Subscription.id)
            .all()
        )
        return [row.id for row in rows]
