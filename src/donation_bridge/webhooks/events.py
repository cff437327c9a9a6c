"""Inbound Sympla webhook event models.

This module defines the structure of the order notifications Sympla posts
to the bridge. Field names follow the Sympla payload.
"""

import json
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from donation_bridge.errors import MalformedPayloadError


class OrderEventKind(str, Enum):
    """Supported Sympla order event types."""

    ORDER_APPROVED = "order.approved"
    ORDER_CREATED = "order.created"
    ORDER_CANCELLED = "order.cancelled"
    ORDER_REFUNDED = "order.refunded"


class OrderStatus(str, Enum):
    """Order status as reported by Sympla."""

    APPROVED = "approved"
    PENDING = "pending"
    DECLINED = "declined"


class OrderData(BaseModel):
    """Order details carried in the ``data`` field of a Sympla webhook.

    Sympla sends ``null`` for blank optional fields; those read as empty.
    """

    model_config = ConfigDict(frozen=True)

    order_identifier: str = Field(..., min_length=1, description="Sympla order identifier")
    event_id: str = Field(..., min_length=1, description="Sympla event identifier")
    event_name: str = Field(default="", description="Event display name")
    total_order_amount: float = Field(default=0.0, description="Order total")
    buyer_first_name: str = Field(default="", description="Buyer first name")
    buyer_last_name: str = Field(default="", description="Buyer last name")
    buyer_email: str = Field(default="", description="Buyer email")
    order_status: OrderStatus | str | None = Field(
        default=None, union_mode="left_to_right", description="Sympla order status"
    )
    participants_full_name_comma_separated: str | None = Field(default=None)
    participants_email_comma_separated: str | None = Field(default=None)

    @field_validator(
        "event_name", "buyer_first_name", "buyer_last_name", "buyer_email", mode="before"
    )
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("total_order_amount", mode="before")
    @classmethod
    def _null_as_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @property
    def donor_name(self) -> str:
        """Buyer full name as sent to the donation API."""
        return f"{self.buyer_first_name} {self.buyer_last_name}"


# Kinds that act on an order and so need readable order data
ORDER_KINDS = frozenset(
    {
        OrderEventKind.ORDER_APPROVED.value,
        OrderEventKind.ORDER_CANCELLED.value,
        OrderEventKind.ORDER_REFUNDED.value,
    }
)


class InboundEvent(BaseModel):
    """A parsed Sympla webhook.

    Unknown event kinds are kept as plain strings so the dispatcher can log
    and ignore them instead of rejecting the whole webhook. Order data is
    required only for the kinds in ``ORDER_KINDS``; for log-only kinds an
    unreadable ``data`` object is dropped.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: OrderEventKind | str = Field(
        ..., alias="event", union_mode="left_to_right", description="Event type"
    )
    order: OrderData | None = Field(default=None, alias="data", description="Order details")
    timestamp: str | None = Field(default=None, description="ISO-8601 event time")

    @model_validator(mode="before")
    @classmethod
    def _drop_unreadable_order(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values

        kind = values.get("event", values.get("kind"))
        if not isinstance(kind, str) or str(getattr(kind, "value", kind)) in ORDER_KINDS:
            return values

        key = "data" if "data" in values else "order"
        data = values.get(key)
        if data is None or isinstance(data, OrderData):
            return values

        try:
            OrderData.model_validate(data)
        except ValidationError:
            return {**values, key: None}
        return values

    @model_validator(mode="after")
    def _require_order(self) -> "InboundEvent":
        if self.kind_value in ORDER_KINDS and self.order is None:
            raise ValueError(f"{self.kind_value} events require order data")
        return self

    @property
    def is_known_kind(self) -> bool:
        return isinstance(self.kind, OrderEventKind)

    @property
    def kind_value(self) -> str:
        return self.kind.value if isinstance(self.kind, OrderEventKind) else str(self.kind)

    @property
    def order_id(self) -> str | None:
        return self.order.order_identifier if self.order is not None else None


def parse_inbound_event(raw_body: bytes) -> InboundEvent:
    """Parse a raw webhook body into an InboundEvent.

    Args:
        raw_body: Exact request body bytes.

    Returns:
        The parsed event.

    Raises:
        MalformedPayloadError: If the body is not JSON or lacks the
            expected event shape.
    """
    try:
        payload: Any = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedPayloadError(
            "Webhook body is not valid JSON", details={"error": str(e)}
        ) from e

    if not isinstance(payload, dict):
        raise MalformedPayloadError("Webhook body must be a JSON object")

    try:
        return InboundEvent.model_validate(payload)
    except ValidationError as e:
        raise MalformedPayloadError(
            "Webhook body does not match the order event shape",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e


def build_order_event(
    kind: OrderEventKind,
    order: dict[str, Any],
    *,
    timestamp: str | None = None,
) -> dict[str, Any]:
    """Build a Sympla-shaped webhook body.

    Used by the webhook simulator and in tests.

    Args:
        kind: Event type.
        order: Order fields for the ``data`` object.
        timestamp: Optional ISO-8601 event time.

    Returns:
        JSON-serializable webhook body.
    """
    body: dict[str, Any] = {"event": kind.value, "data": order}
    if timestamp is not None:
        body["timestamp"] = timestamp
    return body
