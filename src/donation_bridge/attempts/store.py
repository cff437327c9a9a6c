"""Storage for donation attempts.

Attempts are addressed by order identifier. Writes replace the whole
record (last write wins). Reads hand out copies, so no caller ever holds a
live reference into the store.
"""

import asyncio

import structlog

from donation_bridge.attempts.models import DonationAttempt

logger = structlog.get_logger(__name__)


# Global singleton for the attempt store
_attempt_store: "DonationAttemptStore | None" = None


def get_attempt_store() -> "DonationAttemptStore":
    """Get the global attempt store instance.

    Returns:
        The singleton DonationAttemptStore instance.
    """
    global _attempt_store
    if _attempt_store is None:
        _attempt_store = InMemoryDonationAttemptStore()
    return _attempt_store


def set_attempt_store(store: "DonationAttemptStore") -> None:
    """Set the global attempt store instance.

    Args:
        store: The DonationAttemptStore instance to use.
    """
    global _attempt_store
    _attempt_store = store


class DonationAttemptStore:
    """Abstract base class for attempt storage."""

    async def put(self, order_id: str, attempt: DonationAttempt) -> None:
        """Store an attempt, replacing any record for the order."""
        raise NotImplementedError

    async def get(self, order_id: str) -> DonationAttempt | None:
        """Get a copy of the attempt for an order."""
        raise NotImplementedError

    async def list(self) -> list[DonationAttempt]:
        """Get a snapshot of all attempts."""
        raise NotImplementedError

    def lock(self, order_id: str) -> asyncio.Lock:
        """Get the lock that serializes work on one order."""
        raise NotImplementedError


class InMemoryDonationAttemptStore(DonationAttemptStore):
    """In-memory attempt storage with per-order locks.

    Nothing is evicted; records live as long as the process.
    """

    def __init__(self) -> None:
        """Initialize in-memory storage."""
        self._attempts: dict[str, DonationAttempt] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def put(self, order_id: str, attempt: DonationAttempt) -> None:
        """Store an attempt, replacing any record for the order."""
        replaced = order_id in self._attempts
        self._attempts[order_id] = attempt.model_copy(deep=True)
        logger.debug(
            "attempt_stored",
            order_id=order_id,
            attempt_id=attempt.id,
            status=attempt.status.value,
            replaced=replaced,
        )

    async def get(self, order_id: str) -> DonationAttempt | None:
        """Get a copy of the attempt for an order."""
        attempt = self._attempts.get(order_id)
        return attempt.model_copy(deep=True) if attempt else None

    async def list(self) -> list[DonationAttempt]:
        """Get a snapshot of all attempts."""
        return [attempt.model_copy(deep=True) for attempt in self._attempts.values()]

    def lock(self, order_id: str) -> asyncio.Lock:
        """Get the lock that serializes work on one order.

        The same order always maps to the same lock; different orders never
        share one.
        """
        lock = self._locks.get(order_id)
        if lock is None:
            lock = self._locks.setdefault(order_id, asyncio.Lock())
        return lock

    def __len__(self) -> int:
        return len(self._attempts)
