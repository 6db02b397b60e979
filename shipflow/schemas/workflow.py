from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shipflow.domain.records import EntitySnapshot
from shipflow.domain.statuses import EntityKind
from shipflow.domain.transitions import available_transitions

# Admin-only fields stripped from what non-admins see.
ADMIN_ONLY_FIELDS = frozenset({"internal_notes"})


class EntityCollection(str, Enum):
    QUOTES = "quotes"
    SHIPMENTS = "shipments"
    AGENTS = "agents"
    SUBSCRIPTIONS = "subscriptions"

    @property
    def kind(self) -> EntityKind:
        return {
            EntityCollection.QUOTES: EntityKind.QUOTE,
            EntityCollection.SHIPMENTS: EntityKind.SHIPMENT,
            EntityCollection.AGENTS: EntityKind.AGENT,
            EntityCollection.SUBSCRIPTIONS: EntityKind.SUBSCRIPTION,
        }[self]


class Entity(BaseModel):
    id: str
    kind: EntityKind
    version: int
    status: str
    fields: dict[str, Any]
    available_transitions: list[str]

    @classmethod
    def from_snapshot(cls, snapshot: EntitySnapshot, *, include_admin_fields: bool = True) -> "Entity":
        fields = dict(snapshot.fields)
        if not include_admin_fields:
            for name in ADMIN_ONLY_FIELDS:
                fields.pop(name, None)
        return cls(
            id=snapshot.id,
            kind=snapshot.kind,
            version=snapshot.version,
            status=snapshot.status,
            fields=fields,
            available_transitions=available_transitions(snapshot.kind, snapshot.status),
        )


class TransitionRequest(BaseModel):
    payload: dict[str, Any] = Field(default_factory=dict)


class ExtendRequest(BaseModel):
    months: int = Field(..., ge=1, description="Months to add to the later of today and the current end date")


class Event(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    event_type: str
    actor_id: str
    subject_kind: EntityKind
    subject_entity_id: str
    details: str
    forced: bool
    created_at: datetime | None = None


class Notification(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    recipient: str
    template_type: str
    subject: str
    body: str
    status: str
    subject_kind: EntityKind
    subject_entity_id: str
    created_at: datetime | None = None


class WorkflowResult(BaseModel):
    outcome: str = Field(..., description="'committed' or 'committed_with_warnings'")
    transition: str
    from_status: str
    to_status: str
    forced: bool
    noop: bool
    entity: Entity
    event: Event | None = None
    notifications: list[Notification] = Field(default_factory=list)
    derived_entity_id: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result, *, include_admin_fields: bool = False) -> "WorkflowResult":
        return cls(
            outcome=result.outcome,
            transition=result.transition,
            from_status=result.from_status,
            to_status=result.to_status,
            forced=result.forced,
            noop=result.noop,
            entity=Entity.from_snapshot(result.entity, include_admin_fields=include_admin_fields),
            event=Event.model_validate(result.event) if result.event else None,
            notifications=[Notification.model_validate(n) for n in result.notifications],
            derived_entity_id=result.derived_entity_id,
            warnings=list(result.warnings),
        )


class Entitlements(BaseModel):
    subscription_id: str | None = None
    plan_type: str | None = None
    effective_status: str | None = None
    has_active_subscription: bool
    has_premium_tracking: bool
    has_enterprise_logistics: bool
    has_agent_listing: bool
    has_digital_portal_access: bool
    has_full_tracking_access: bool


class ExpireStaleResponse(BaseModel):
    expired: list[str]
