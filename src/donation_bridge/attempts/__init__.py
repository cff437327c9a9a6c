"""Donation attempt lifecycle records and their store."""

from donation_bridge.attempts.models import AttemptStatus, DonationAttempt
from donation_bridge.attempts.store import (
    DonationAttemptStore,
    InMemoryDonationAttemptStore,
    get_attempt_store,
    set_attempt_store,
)

__all__ = [
    "AttemptStatus",
    "DonationAttempt",
    "DonationAttemptStore",
    "InMemoryDonationAttemptStore",
    "get_attempt_store",
    "set_attempt_store",
]
