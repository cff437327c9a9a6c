"""Webhook security utilities.

Provides HMAC signature generation and verification for inbound Sympla
webhooks, plus the replay-window check for event timestamps.
"""

import binascii
import hashlib
import hmac
import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog

logger = structlog.get_logger(__name__)

# Header carrying the webhook signature
SIGNATURE_HEADER = "X-Sympla-Signature"

# Optional scheme prefix on the header value
SIGNATURE_PREFIX = "sha256="

# Received digest: hex digits only, no inner whitespace
_HEX_DIGEST = re.compile(r"[0-9a-fA-F]+")

# Replay window (5 minutes)
DEFAULT_TOLERANCE_MINUTES = 5

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Compute the hex HMAC-SHA256 of a raw request body.

    Args:
        raw_body: Exact request body bytes.
        secret: Shared webhook secret.

    Returns:
        Lowercase hex digest.
    """
    return hmac.new(
        secret.encode("utf-8"),
        raw_body,
        hashlib.sha256,
    ).hexdigest()


def generate_signature(raw_body: bytes, secret: str) -> str:
    """Build the signature header value Sympla sends for a body.

    Args:
        raw_body: Exact request body bytes.
        secret: Shared webhook secret.

    Returns:
        Header value in the form ``sha256=<hex>``.
    """
    return f"{SIGNATURE_PREFIX}{compute_signature(raw_body, secret)}"


def parse_timestamp(timestamp: str) -> datetime | None:
    """Parse an ISO-8601 timestamp, treating naive values as UTC.

    Returns:
        Aware datetime, or None if the value cannot be parsed.
    """
    value = timestamp.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class SignatureVerifier:
    """Verifies Sympla webhook signatures and event timestamps.

    Comparison of the digest bytes is constant-time. The length check that
    precedes it is not, since the digest length is public.
    """

    def __init__(self, secret: str, *, clock: Clock | None = None) -> None:
        """Initialize the verifier.

        Args:
            secret: Shared webhook secret.
            clock: Source of the current time (defaults to UTC now).
        """
        self._secret = secret
        self._clock = clock or _utc_now
        self._logger = logger.bind(component="signature_verifier")

    def verify(self, raw_body: bytes, signature_header: str | None) -> bool:
        """Verify the HMAC-SHA256 signature of a raw webhook body.

        Args:
            raw_body: Exact request body bytes.
            signature_header: Value of the signature header, optionally
                prefixed with ``sha256=``.

        Returns:
            True if the signature matches, False otherwise. Never raises.
        """
        if not signature_header:
            self._logger.warning("webhook_signature_missing")
            return False

        received = signature_header.strip()
        if received[: len(SIGNATURE_PREFIX)].lower() == SIGNATURE_PREFIX:
            received = received[len(SIGNATURE_PREFIX) :].strip()

        if not _HEX_DIGEST.fullmatch(received) or len(received) % 2:
            self._logger.warning("webhook_signature_malformed")
            return False

        received_bytes = bytes.fromhex(received)

        expected_bytes = binascii.unhexlify(compute_signature(raw_body, self._secret))

        if len(received_bytes) != len(expected_bytes):
            self._logger.warning(
                "webhook_signature_length_mismatch",
                received_length=len(received_bytes),
                expected_length=len(expected_bytes),
            )
            return False

        is_valid = hmac.compare_digest(received_bytes, expected_bytes)

        if not is_valid:
            self._logger.warning("webhook_signature_invalid")
        else:
            self._logger.debug("webhook_signature_verified")

        return is_valid

    def verify_timestamp(
        self,
        timestamp: str | None,
        tolerance_minutes: float = DEFAULT_TOLERANCE_MINUTES,
    ) -> bool:
        """Check that an event timestamp lies inside the replay window.

        The window is symmetric: timestamps too far in the past and too far
        in the future are both rejected.

        Args:
            timestamp: ISO-8601 timestamp from the event.
            tolerance_minutes: Half-width of the window in minutes.

        Returns:
            True if the timestamp is fresh, False if stale or unparsable.
        """
        if not timestamp:
            return False

        parsed = parse_timestamp(timestamp)
        if parsed is None:
            self._logger.warning("webhook_timestamp_unparsable", timestamp=timestamp)
            return False

        age = abs(self._clock() - parsed)
        if age > timedelta(minutes=tolerance_minutes):
            self._logger.warning(
                "webhook_timestamp_outside_window",
                timestamp=timestamp,
                age_seconds=age.total_seconds(),
                tolerance_minutes=tolerance_minutes,
            )
            return False

        return True
