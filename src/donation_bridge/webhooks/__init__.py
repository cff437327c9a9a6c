"""Inbound Sympla webhook handling.

This module provides:
- SignatureVerifier: HMAC-SHA256 signature and replay-window checks
- AttemptTokenCodec: Signed, expiring donation attempt tokens
- InboundEvent: Parsed Sympla order events
- WebhookDispatcher: Verification, routing and attempt lifecycle
"""

from donation_bridge.webhooks.dispatcher import (
    WebhookAck,
    WebhookDispatcher,
    build_webhook_dispatcher,
    get_webhook_dispatcher,
    set_webhook_dispatcher,
)
from donation_bridge.webhooks.events import (
    InboundEvent,
    OrderData,
    OrderEventKind,
    OrderStatus,
    parse_inbound_event,
)
from donation_bridge.webhooks.security import SignatureVerifier, generate_signature
from donation_bridge.webhooks.tokens import AttemptToken, AttemptTokenCodec

__all__ = [
    # Events
    "InboundEvent",
    "OrderData",
    "OrderEventKind",
    "OrderStatus",
    "parse_inbound_event",
    # Security
    "SignatureVerifier",
    "generate_signature",
    # Tokens
    "AttemptToken",
    "AttemptTokenCodec",
    # Dispatcher
    "WebhookAck",
    "WebhookDispatcher",
    "build_webhook_dispatcher",
    "get_webhook_dispatcher",
    "set_webhook_dispatcher",
]
