"""Shared fixtures for the donation bridge tests."""

import json
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from donation_bridge.attempts.store import InMemoryDonationAttemptStore, set_attempt_store
from donation_bridge.webhooks.dispatcher import set_webhook_dispatcher
from donation_bridge.webhooks.events import OrderEventKind, build_order_event


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def frozen_clock():
    """Clock frozen at 2025-03-01 12:00 UTC."""
    return FrozenClock(datetime(2025, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def sample_order() -> dict[str, Any]:
    """Order fields as Sympla sends them."""
    return {
        "order_identifier": "SPL-1",
        "event_id": "EVT-1",
        "event_name": "Festival Sustentável 2025",
        "total_order_amount": 100.0,
        "buyer_first_name": "João",
        "buyer_last_name": "Silva",
        "buyer_email": "joao@example.com",
        "order_status": "approved",
    }


@pytest.fixture
def make_body(sample_order):
    """Build a raw webhook body for an event kind, with order overrides."""

    def _make(kind: OrderEventKind | str, **overrides: Any) -> bytes:
        order = {**sample_order, **overrides}
        if isinstance(kind, OrderEventKind):
            body = build_order_event(kind, order)
        else:
            body = {"event": kind, "data": order}
        return json.dumps(body).encode("utf-8")

    return _make


@pytest.fixture(autouse=True)
def reset_globals():
    """Give every test a fresh global store and dispatcher."""
    set_attempt_store(InMemoryDonationAttemptStore())
    set_webhook_dispatcher(None)
    yield
    set_attempt_store(InMemoryDonationAttemptStore())
    set_webhook_dispatcher(None)
