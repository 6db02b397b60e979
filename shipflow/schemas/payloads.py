"""Validation for payload-carried field changes on transitions.

Which of these fields a given transition accepts is decided by the
transition catalog; these schemas only check shape and ranges.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shipflow.domain.statuses import EntityKind


class QuotePayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    quote_amount: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    currency: str | None = Field(None, min_length=3, max_length=3, description="ISO 4217 code")

    @field_validator("currency")
    @classmethod
    def uppercase_currency(cls, v: str | None) -> str | None:
        return v.upper() if v is not None else v


class ShipmentPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Admin-only and client-visible notes are separate fields, never merged.
    internal_notes: str | None = Field(None, max_length=5000)
    client_visible_notes: str | None = Field(None, max_length=5000)


class AgentPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SubscriptionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    months: int | None = Field(None, ge=1, description="Months to extend by")


PAYLOAD_SCHEMAS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.QUOTE: QuotePayload,
    EntityKind.SHIPMENT: ShipmentPayload,
    EntityKind.AGENT: AgentPayload,
    EntityKind.SUBSCRIPTION: SubscriptionPayload,
}
