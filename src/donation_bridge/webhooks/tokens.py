"""Signed, expiring donation attempt tokens.

A token binds an order identifier and an event identifier so the buyer can
later confirm consent out-of-band. Wire form::

    <base64url(payload json)>.<base64url(hmac-sha256(payload segment))>

The payload carries ``orderId``, ``eventId``, ``timestamp`` (issuance) and
``exp`` (expiration), both in epoch milliseconds. Padding is stripped from
both segments.
"""

import base64
import binascii
import hashlib
import hmac
import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog

logger = structlog.get_logger(__name__)

TOKEN_TTL = timedelta(hours=24)
TOKEN_SEPARATOR = "."

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class AttemptToken:
    """Decoded contents of a valid attempt token."""

    order_id: str
    event_id: str
    issued_at: int
    expires_at: int

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at / 1000, tz=UTC)

    def to_wire(self) -> dict[str, object]:
        return {
            "orderId": self.order_id,
            "eventId": self.event_id,
            "timestamp": self.issued_at,
            "exp": self.expires_at,
        }


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class AttemptTokenCodec:
    """Issues and validates attempt tokens.

    Signing is a pure function of the encoded payload and the secret, so two
    tokens issued for the same order and event at the same instant are
    identical.
    """

    def __init__(self, secret: str, *, clock: Clock | None = None) -> None:
        """Initialize the codec.

        Args:
            secret: HMAC key for token signatures.
            clock: Source of the current time (defaults to UTC now).
        """
        self._secret = secret.encode("utf-8")
        self._clock = clock or (lambda: datetime.now(UTC))
        self._logger = logger.bind(component="attempt_token_codec")

    def _sign(self, encoded_payload: str) -> str:
        digest = hmac.new(
            self._secret,
            encoded_payload.encode("ascii"),
            hashlib.sha256,
        ).digest()
        return _b64encode(digest)

    def issue(self, order_id: str, event_id: str) -> str:
        """Issue a token for an order, valid for 24 hours.

        Args:
            order_id: Sympla order identifier.
            event_id: Sympla event identifier.

        Returns:
            Token string in ``<payload>.<signature>`` form.
        """
        now_ms = _epoch_ms(self._clock())
        token = AttemptToken(
            order_id=order_id,
            event_id=event_id,
            issued_at=now_ms,
            expires_at=now_ms + int(TOKEN_TTL.total_seconds() * 1000),
        )
        payload = json.dumps(token.to_wire(), separators=(",", ":"))
        encoded_payload = _b64encode(payload.encode("utf-8"))

        self._logger.debug(
            "attempt_token_issued",
            order_id=order_id,
            event_id=event_id,
            expires_at=token.expires_at,
        )

        return f"{encoded_payload}{TOKEN_SEPARATOR}{self._sign(encoded_payload)}"

    def validate(self, token: str | None) -> AttemptToken | None:
        """Validate a token and return its contents.

        Args:
            token: Token string to validate.

        Returns:
            The decoded AttemptToken, or None if the token is malformed,
            tampered with, signed with another secret, or expired.
        """
        if not token or not token.isascii() or token.count(TOKEN_SEPARATOR) != 1:
            self._logger.debug("attempt_token_malformed")
            return None

        encoded_payload, signature = token.split(TOKEN_SEPARATOR)
        expected = self._sign(encoded_payload)
        if not hmac.compare_digest(signature, expected):
            self._logger.warning("attempt_token_signature_invalid")
            return None

        try:
            data = json.loads(_b64decode(encoded_payload))
            decoded = AttemptToken(
                order_id=str(data["orderId"]),
                event_id=str(data["eventId"]),
                issued_at=int(data["timestamp"]),
                expires_at=int(data["exp"]),
            )
        except (binascii.Error, ValueError, TypeError, KeyError):
            self._logger.warning("attempt_token_payload_invalid")
            return None

        if _epoch_ms(self._clock()) > decoded.expires_at:
            self._logger.info(
                "attempt_token_expired",
                order_id=decoded.order_id,
                expires_at=decoded.expires_at,
            )
            return None

        return decoded
