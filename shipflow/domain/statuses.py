"""Closed status enums for every workflow entity kind.

Values match the strings persisted in the store. Use `.value` when writing.
"""

from enum import Enum


class EntityKind(str, Enum):
    QUOTE = "quote"
    SHIPMENT = "shipment"
    AGENT = "agent"
    SUBSCRIPTION = "subscription"


class QuoteStatus(str, Enum):
    RECEIVED = "received"
    IN_PROGRESS = "in_progress"
    SENT_TO_CLIENT = "sent_to_client"
    ACCEPTED = "accepted"
    REFUSED = "refused"


class ClientDecision(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REFUSED = "refused"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class ShipmentStatus(str, Enum):
    DRAFT = "draft"
    QUOTE_PENDING = "quote_pending"
    CONFIRMED = "confirmed"
    IN_TRANSIT = "in_transit"
    AT_PORT = "at_port"
    DELIVERED = "delivered"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class AgentStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class SubscriptionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class PlanType(str, Enum):
    BASIC = "basic"
    PREMIUM_TRACKING = "premium_tracking"
    ENTERPRISE_LOGISTICS = "enterprise_logistics"
    AGENT_LISTING = "agent_listing"
    DIGITAL_PORTAL = "digital_portal"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


STATUS_ENUMS: dict[EntityKind, type[Enum]] = {
    EntityKind.QUOTE: QuoteStatus,
    EntityKind.SHIPMENT: ShipmentStatus,
    EntityKind.AGENT: AgentStatus,
    EntityKind.SUBSCRIPTION: SubscriptionStatus,
}

# Statuses from which no forward business transition exists.
TERMINAL_STATUSES: dict[EntityKind, frozenset] = {
    EntityKind.QUOTE: frozenset({QuoteStatus.ACCEPTED, QuoteStatus.REFUSED}),
    EntityKind.SHIPMENT: frozenset({ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED}),
    EntityKind.AGENT: frozenset(),
    EntityKind.SUBSCRIPTION: frozenset(),
}


def non_terminal(kind: EntityKind) -> tuple:
    return tuple(s for s in STATUS_ENUMS[kind] if s not in TERMINAL_STATUSES[kind])
