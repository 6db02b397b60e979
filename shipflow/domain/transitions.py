"""The transition catalog: every legal status change per entity kind.

Each entry maps `(current_status, transition_name)` to the target status and
the side effects the engine must run once the write has committed. Side
effects are declarative commands; nothing in this module performs I/O, so
"what happens on this transition" can be inspected and tested directly.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from shipflow.domain.actors import ActorRole
from shipflow.domain.dates import as_date, extended_end_date
from shipflow.domain.entitlements import SubscriptionActivityPolicy
from shipflow.domain.records import EntitySnapshot
from shipflow.domain.statuses import (
    AgentStatus,
    ClientDecision,
    EntityKind,
    QuoteStatus,
    ShipmentStatus,
    SubscriptionStatus,
    non_terminal,
)
from shipflow.errors import DomainValidationError, InvalidTransitionError

ADMIN_ONLY = frozenset({ActorRole.ADMIN})
ADMIN_OR_CLIENT = frozenset({ActorRole.ADMIN, ActorRole.CLIENT})
SYSTEM_ONLY = frozenset({ActorRole.SYSTEM})


# ---------------------------------------------------------------------------
# Side-effect commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EmitEvent:
    event_type: str
    details_template: str


@dataclass(frozen=True, slots=True)
class EmitNotification:
    template_type: str
    # Field on the entity holding the recipient address.
    recipient_field: str


@dataclass(frozen=True, slots=True)
class CreateDerivedEntity:
    kind: EntityKind
    # Field on the source entity that references the derived one; set at most once.
    link_field: str
    # (target_field, source_field) pairs copied from the source entity.
    field_mapping: tuple[tuple[str, str], ...]
    initial_fields: tuple[tuple[str, Any], ...] = ()
    # Fields computed from the source entity and the current time.
    generate: Callable[[EntitySnapshot, datetime], dict[str, Any]] | None = None
    # Target field receiving the source entity's id.
    backref_field: str | None = None


SideEffect = EmitEvent | EmitNotification | CreateDerivedEntity

Compute = Callable[[EntitySnapshot, Mapping[str, Any], datetime], dict[str, Any]]
Guard = Callable[[EntitySnapshot, datetime], bool]


@dataclass(frozen=True, slots=True)
class Transition:
    kind: EntityKind
    name: str
    from_status: Enum
    to_status: Enum
    effects: tuple[SideEffect, ...]
    set_fields: tuple[tuple[str, Any], ...] = ()
    # Payload fields written as-is onto the entity.
    editable_fields: frozenset[str] = frozenset()
    # Payload fields consumed by `compute` only, never written.
    parameters: frozenset[str] = frozenset()
    roles: frozenset[ActorRole] = ADMIN_ONLY
    forced: bool = False
    # Re-invoking from the target status changes nothing.
    idempotent: bool = False
    compute: Compute | None = None
    guard: Guard | None = None
    guard_reason: str = ""

    @property
    def accepted_payload(self) -> frozenset[str]:
        return self.editable_fields | self.parameters

    @property
    def derivation(self) -> CreateDerivedEntity | None:
        for effect in self.effects:
            if isinstance(effect, CreateDerivedEntity):
                return effect
        return None


def _edges(
    kind: EntityKind,
    name: str,
    sources: Iterable[Enum],
    target: Enum,
    *effects: SideEffect,
    set_fields: Mapping[str, Any] | None = None,
    editable_fields: Iterable[str] = (),
    parameters: Iterable[str] = (),
    **options,
) -> list[Transition]:
    """One catalog entry per source status, all sharing target and effects."""
    return [
        Transition(
            kind=kind,
            name=name,
            from_status=source,
            to_status=target,
            effects=tuple(effects),
            set_fields=tuple((set_fields or {}).items()),
            editable_fields=frozenset(editable_fields),
            parameters=frozenset(parameters),
            **options,
        )
        for source in sources
    ]


def _self_loops(kind: EntityKind, name: str, sources: Iterable[Enum], *effects: SideEffect, **options) -> list[Transition]:
    """Entries that keep the current status (field edits, e-mails)."""
    return [
        transition
        for source in sources
        for transition in _edges(kind, name, [source], source, *effects, **options)
    ]


# ---------------------------------------------------------------------------
# Computed changes and guards
# ---------------------------------------------------------------------------

TRACKING_ALPHABET = string.ascii_uppercase + string.digits


def new_tracking_number() -> str:
    """Public tracking numbers look like USS-7K2Q9XA."""
    return "USS-" + "".join(secrets.choice(TRACKING_ALPHABET) for _ in range(7))


def _shipment_from_quote(quote: EntitySnapshot, now: datetime) -> dict[str, Any]:
    return {
        "tracking_number": new_tracking_number(),
        "last_update": now,
        "internal_notes": f"Created from quote {quote.id}",
    }


def _touch_last_update(snapshot: EntitySnapshot, payload: Mapping[str, Any], now: datetime) -> dict[str, Any]:
    return {"last_update": now}


def _extend_end_date(snapshot: EntitySnapshot, payload: Mapping[str, Any], now: datetime) -> dict[str, Any]:
    months = payload.get("months")
    if months is None:
        raise DomainValidationError("months is required to extend a subscription")
    return {"end_date": extended_end_date(snapshot.get("end_date"), now, months)}


def _end_date_elapsed(snapshot: EntitySnapshot, now: datetime) -> bool:
    policy = SubscriptionActivityPolicy(as_of=as_date(now))
    return policy.is_stale(status=snapshot.status, end_date=snapshot.get("end_date"))


# ---------------------------------------------------------------------------
# Quote
# ---------------------------------------------------------------------------

Q = QuoteStatus
_QUOTE = [
    *_edges(
        EntityKind.QUOTE, "startReview", [Q.RECEIVED], Q.IN_PROGRESS,
        EmitEvent("quote_in_progress", "Quote {entity_id} taken in charge"),
    ),
    *_edges(
        EntityKind.QUOTE, "sendToClient", [Q.RECEIVED, Q.IN_PROGRESS], Q.SENT_TO_CLIENT,
        EmitEvent("quote_sent", "Quote {entity_id} sent to client ({quote_amount} {currency})"),
        EmitNotification("quote_sent", "client_email"),
        editable_fields={"quote_amount", "currency"},
    ),
    *_edges(
        EntityKind.QUOTE, "sendToClient", [Q.SENT_TO_CLIENT], Q.SENT_TO_CLIENT,
        EmitEvent("quote_send_repeated", "Quote {entity_id} was already sent to client"),
        idempotent=True,
    ),
    *_edges(
        EntityKind.QUOTE, "accept", [Q.SENT_TO_CLIENT], Q.ACCEPTED,
        EmitEvent("quote_accepted", "Quote {entity_id} accepted"),
        EmitNotification("quote_accepted", "client_email"),
        set_fields={"client_decision": ClientDecision.ACCEPTED.value},
        roles=ADMIN_OR_CLIENT,
    ),
    *_edges(
        EntityKind.QUOTE, "refuse", [Q.SENT_TO_CLIENT], Q.REFUSED,
        EmitEvent("quote_refused", "Quote {entity_id} refused"),
        EmitNotification("quote_refused", "client_email"),
        set_fields={"client_decision": ClientDecision.REFUSED.value},
        roles=ADMIN_OR_CLIENT,
    ),
    *_edges(
        EntityKind.QUOTE, "forceAccept", non_terminal(EntityKind.QUOTE), Q.ACCEPTED,
        EmitEvent("quote_force_accepted", "Quote {entity_id} accepted by admin from {from_status} (forced)"),
        EmitNotification("quote_accepted", "client_email"),
        set_fields={"client_decision": ClientDecision.ACCEPTED.value},
        forced=True,
    ),
    *_edges(
        EntityKind.QUOTE, "createShipment", [Q.ACCEPTED], Q.ACCEPTED,
        EmitEvent("shipment_created", "Shipment {derived_id} ({derived[tracking_number]}) created from quote {entity_id}"),
        EmitNotification("shipment_created", "client_email"),
        CreateDerivedEntity(
            kind=EntityKind.SHIPMENT,
            link_field="shipment_ref",
            field_mapping=(
                ("client_id", "client_id"),
                ("client_email", "client_email"),
                ("origin_port", "origin_port"),
                ("destination_port", "destination_port"),
                ("cargo_type", "cargo_type"),
                ("cargo_description", "cargo_description"),
            ),
            initial_fields=(("status", ShipmentStatus.CONFIRMED.value),),
            generate=_shipment_from_quote,
            backref_field="quote_ref",
        ),
    ),
]

# ---------------------------------------------------------------------------
# Shipment
# ---------------------------------------------------------------------------

S = ShipmentStatus
_SHIPMENT_OPEN = non_terminal(EntityKind.SHIPMENT)
_SHIPMENT = [
    *_edges(
        EntityKind.SHIPMENT, "requestQuote", [S.DRAFT], S.QUOTE_PENDING,
        EmitEvent("shipment_status_changed", "Status changed from {from_status} to {to_status}"),
        compute=_touch_last_update,
    ),
    *_edges(
        EntityKind.SHIPMENT, "confirm", [S.QUOTE_PENDING, S.ON_HOLD], S.CONFIRMED,
        EmitEvent("shipment_status_changed", "Status changed from {from_status} to {to_status}"),
        compute=_touch_last_update,
    ),
    *_edges(
        EntityKind.SHIPMENT, "depart", [S.CONFIRMED, S.ON_HOLD], S.IN_TRANSIT,
        EmitEvent("shipment_status_changed", "Status changed from {from_status} to {to_status}"),
        compute=_touch_last_update,
    ),
    *_edges(
        EntityKind.SHIPMENT, "arriveAtPort", [S.IN_TRANSIT, S.ON_HOLD], S.AT_PORT,
        EmitEvent("shipment_status_changed", "Status changed from {from_status} to {to_status}"),
        compute=_touch_last_update,
    ),
    *_edges(
        EntityKind.SHIPMENT, "deliver", [S.AT_PORT], S.DELIVERED,
        EmitEvent("shipment_delivered", "Shipment {tracking_number} delivered"),
        EmitNotification("shipment_delivered", "client_email"),
        compute=_touch_last_update,
    ),
    *_edges(
        EntityKind.SHIPMENT, "hold", [s for s in _SHIPMENT_OPEN if s != S.ON_HOLD], S.ON_HOLD,
        EmitEvent("shipment_status_changed", "Status changed from {from_status} to {to_status}"),
        compute=_touch_last_update,
    ),
    *_edges(
        EntityKind.SHIPMENT, "cancel", _SHIPMENT_OPEN, S.CANCELLED,
        EmitEvent("shipment_cancelled", "Shipment {tracking_number} cancelled from {from_status}"),
        compute=_touch_last_update,
    ),
    *_edges(
        EntityKind.SHIPMENT, "forceDeliver", _SHIPMENT_OPEN, S.DELIVERED,
        EmitEvent("shipment_delivered", "Delivery forced by admin from {from_status}"),
        EmitNotification("shipment_delivered", "client_email"),
        compute=_touch_last_update,
        forced=True,
    ),
    *_self_loops(
        EntityKind.SHIPMENT, "notifyClient", list(S),
        EmitEvent("shipment_update_sent", "Update e-mail queued for shipment {tracking_number}"),
        EmitNotification("shipment_update", "client_email"),
        compute=_touch_last_update,
    ),
    *_self_loops(
        EntityKind.SHIPMENT, "updateNotes", list(S),
        EmitEvent("shipment_notes_updated", "Notes updated on shipment {tracking_number}"),
        editable_fields={"internal_notes", "client_visible_notes"},
    ),
]

# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------

A = AgentStatus
_AGENT = [
    *_edges(
        EntityKind.AGENT, "validate", [A.PENDING, A.SUSPENDED, A.REJECTED], A.VALIDATED,
        EmitEvent("agent_validated", "Agent {company_name} validated (was {from_status})"),
        EmitNotification("agent_validated", "email"),
    ),
    *_edges(
        EntityKind.AGENT, "reject", [A.PENDING, A.VALIDATED, A.SUSPENDED], A.REJECTED,
        EmitEvent("agent_rejected", "Agent {company_name} rejected"),
        EmitNotification("agent_rejected", "email"),
    ),
    *_edges(
        EntityKind.AGENT, "suspend", [A.VALIDATED], A.SUSPENDED,
        EmitEvent("agent_suspended", "Agent {company_name} suspended"),
        EmitNotification("agent_suspended", "email"),
    ),
    *_self_loops(
        EntityKind.AGENT, "grantPremium", [A.VALIDATED],
        EmitEvent("agent_premium_updated", "Agent {company_name} premium status: True"),
        set_fields={"is_premium_listing": True},
    ),
    *_self_loops(
        EntityKind.AGENT, "revokePremium", [A.VALIDATED, A.SUSPENDED, A.REJECTED],
        EmitEvent("agent_premium_updated", "Agent {company_name} premium status: False"),
        set_fields={"is_premium_listing": False},
    ),
]

# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------

Sub = SubscriptionStatus
_SUBSCRIPTION = [
    *_edges(
        EntityKind.SUBSCRIPTION, "activate", [Sub.PENDING], Sub.ACTIVE,
        EmitEvent("subscription_activated", "Subscription {entity_id} ({plan_type}) activated"),
        EmitNotification("subscription_activated", "client_email"),
        set_fields={"is_active": True},
    ),
    *_edges(
        EntityKind.SUBSCRIPTION, "deactivate", [Sub.ACTIVE], Sub.CANCELLED,
        EmitEvent("subscription_deactivated", "Subscription {entity_id} ({plan_type}) deactivated"),
        EmitNotification("subscription_deactivated", "client_email"),
        set_fields={"is_active": False},
    ),
    *_edges(
        EntityKind.SUBSCRIPTION, "reactivate", [Sub.CANCELLED, Sub.EXPIRED], Sub.ACTIVE,
        EmitEvent("subscription_activated", "Subscription {entity_id} ({plan_type}) reactivated from {from_status}"),
        EmitNotification("subscription_activated", "client_email"),
        set_fields={"is_active": True},
    ),
    *_edges(
        EntityKind.SUBSCRIPTION, "expire", [Sub.ACTIVE], Sub.EXPIRED,
        EmitEvent("subscription_expired", "Subscription {entity_id} expired (end date {end_date})"),
        EmitNotification("subscription_expired", "client_email"),
        set_fields={"is_active": False},
        roles=SYSTEM_ONLY,
        guard=_end_date_elapsed,
        guard_reason="end date has not elapsed",
    ),
    *_self_loops(
        EntityKind.SUBSCRIPTION, "extend", list(Sub),
        EmitEvent("subscription_extended", "Subscription {entity_id} extended by {months} months until {end_date}"),
        EmitNotification("subscription_extended", "client_email"),
        parameters={"months"},
        compute=_extend_end_date,
    ),
    *_self_loops(
        EntityKind.SUBSCRIPTION, "sendReminder", list(Sub),
        EmitEvent("subscription_email_sent", "Reminder e-mail queued for subscription {entity_id}"),
        EmitNotification("subscription_reminder", "client_email"),
    ),
]


def _build_catalog(*groups: list[Transition]) -> dict[EntityKind, dict[tuple[str, str], Transition]]:
    catalog: dict[EntityKind, dict[tuple[str, str], Transition]] = {kind: {} for kind in EntityKind}
    for group in groups:
        for transition in group:
            key = (transition.from_status.value, transition.name)
            entries = catalog[transition.kind]
            if key in entries:
                raise ValueError(f"Duplicate transition {transition.kind.value}:{key}")
            entries[key] = transition
    return catalog


CATALOG = _build_catalog(_QUOTE, _SHIPMENT, _AGENT, _SUBSCRIPTION)


def lookup(kind: EntityKind, current_status: str, transition_name: str) -> Transition:
    """Return the catalog entry for `transition_name` from `current_status`.

    Raises:
        InvalidTransitionError: if the pair is not in the catalog.
    """
    entry = CATALOG[kind].get((current_status, transition_name))
    if entry is None:
        raise InvalidTransitionError(
            f"Transition '{transition_name}' is not allowed for {kind.value} in status '{current_status}'",
            current_status=current_status,
            transition=transition_name,
        )
    return entry


def transitions_for(kind: EntityKind) -> list[Transition]:
    return list(CATALOG[kind].values())


def available_transitions(kind: EntityKind, current_status: str) -> list[str]:
    """Names of the transitions that may be requested from `current_status`."""
    return sorted(
        name for (status, name) in CATALOG[kind] if status == current_status
    )
