"""Plain data shapes exchanged between the engine and an EntityStore."""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from shipflow.domain.statuses import EntityKind, NotificationStatus


@dataclass(frozen=True, slots=True)
class EntitySnapshot:
    """Read-only view of one workflow entity as last read from the store.

    `version` is what a conditional update must be submitted against.
    """

    kind: EntityKind
    id: str
    version: int
    fields: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @property
    def status(self) -> str:
        return self.fields["status"]

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "kind": self.kind.value, "version": self.version, **self.fields}


@dataclass(frozen=True, slots=True)
class EventRecord:
    """One audit event. Append-only."""

    event_type: str
    actor_id: str
    subject_kind: EntityKind
    subject_entity_id: str
    details: str
    forced: bool = False
    created_at: datetime | None = None
    id: int | None = None


@dataclass(frozen=True, slots=True)
class NotificationRecord:
    """One queued outbound message, consumed by an external mailer."""

    recipient: str
    template_type: str
    subject: str
    body: str
    subject_kind: EntityKind
    subject_entity_id: str
    status: str = NotificationStatus.PENDING.value
    metadata: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    id: int | None = None
