"""Sympla webhook dispatcher.

Authenticates inbound webhooks, parses them, and drives the donation attempt
lifecycle for each order:

- ``order.approved``: create the attempt, issue a token, call the donation
  gateway, then mark it COMPLETED or DECLINED.
- ``order.cancelled`` / ``order.refunded``: create or overwrite the attempt
  as CANCELLED / REFUNDED.
- ``order.created`` and unknown kinds: log only.

Work on one order is serialized by the store's per-order lock. Gateway
failures never escape; they are recorded on the attempt.
"""

import asyncio
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, Field

from donation_bridge.attempts.models import AttemptStatus, DonationAttempt
from donation_bridge.attempts.store import DonationAttemptStore, get_attempt_store
from donation_bridge.config import Settings, settings
from donation_bridge.errors import GatewayError, MalformedPayloadError, UnauthorizedError
from donation_bridge.gateway.client import (
    DEFAULT_TIMEOUT_SECONDS,
    AgroforestreeClient,
    DonationGateway,
)
from donation_bridge.gateway.models import DonationRequest
from donation_bridge.webhooks.events import (
    InboundEvent,
    OrderData,
    OrderEventKind,
    parse_inbound_event,
)
from donation_bridge.webhooks.security import DEFAULT_TOLERANCE_MINUTES, SignatureVerifier
from donation_bridge.webhooks.tokens import AttemptTokenCodec

logger = structlog.get_logger(__name__)

ACK_MESSAGE = "Webhook processado com sucesso"
DEFAULT_DONATION_VALUE = 5.0
DEFAULT_CAMPAIGN_ID = "sympla-geral-2024"


class WebhookAck(BaseModel):
    """Acknowledgment returned to Sympla once dispatch was attempted."""

    status: str = Field(default="success")
    message: str = Field(default=ACK_MESSAGE)
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


class WebhookDispatcher:
    """Routes authenticated Sympla webhooks to attempt lifecycle changes.

    Features:
    - HMAC signature check before anything else
    - Optional replay-window check on the event timestamp
    - Per-order serialization through the store's locks
    - Bounded, non-retried gateway call on approval
    """

    def __init__(
        self,
        *,
        verifier: SignatureVerifier,
        token_codec: AttemptTokenCodec,
        gateway: DonationGateway,
        store: DonationAttemptStore | None = None,
        gateway_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        donation_value: float = DEFAULT_DONATION_VALUE,
        campaign_id: str = DEFAULT_CAMPAIGN_ID,
        enforce_timestamp: bool = False,
        timestamp_tolerance_minutes: float = DEFAULT_TOLERANCE_MINUTES,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            verifier: Webhook signature verifier.
            token_codec: Codec used to issue attempt tokens.
            gateway: Donation API client.
            store: Attempt store (uses global if not provided).
            gateway_timeout: Hard bound on the gateway call in seconds.
            donation_value: Fixed donation value per approved order.
            campaign_id: Campaign the donations are attributed to.
            enforce_timestamp: Reject events whose timestamp is outside
                the replay window.
            timestamp_tolerance_minutes: Replay window size.
        """
        self._verifier = verifier
        self._token_codec = token_codec
        self._gateway = gateway
        self._store = store if store is not None else get_attempt_store()
        self._gateway_timeout = gateway_timeout
        self._donation_value = donation_value
        self._campaign_id = campaign_id
        self._enforce_timestamp = enforce_timestamp
        self._timestamp_tolerance = timestamp_tolerance_minutes
        self._logger = logger.bind(component="webhook_dispatcher")

    @property
    def store(self) -> DonationAttemptStore:
        return self._store

    @property
    def donation_value(self) -> float:
        return self._donation_value

    async def process_webhook(
        self,
        raw_body: bytes,
        signature_header: str | None,
    ) -> WebhookAck:
        """Authenticate, parse and dispatch one webhook.

        Args:
            raw_body: Exact request body bytes.
            signature_header: Value of the X-Sympla-Signature header.

        Returns:
            Success acknowledgment, also when the gateway call failed.

        Raises:
            UnauthorizedError: If the signature (or enforced timestamp) is
                invalid. Nothing is stored.
            MalformedPayloadError: If the body is not an order event.
                Nothing is stored.
        """
        self._logger.info("webhook_received", body_length=len(raw_body))

        if not self._verifier.verify(raw_body, signature_header):
            self._logger.warning("webhook_rejected", reason="invalid_signature")
            raise UnauthorizedError("Invalid signature")

        event = parse_inbound_event(raw_body)

        if self._enforce_timestamp and event.timestamp is not None:
            if not self._verifier.verify_timestamp(event.timestamp, self._timestamp_tolerance):
                self._logger.warning(
                    "webhook_rejected",
                    reason="stale_timestamp",
                    order_id=event.order_id,
                )
                raise UnauthorizedError("Webhook timestamp outside replay window")

        await self.dispatch(event)

        return WebhookAck()

    async def dispatch(self, event: InboundEvent) -> DonationAttempt | None:
        """Apply an authenticated event to the attempt for its order.

        Args:
            event: Parsed webhook event.

        Returns:
            The stored attempt after the event, or None when the event does
            not touch the store.
        """
        order_id = event.order_id
        self._logger.info("webhook_event_dispatching", kind=event.kind_value, order_id=order_id)

        if event.kind is OrderEventKind.ORDER_CREATED:
            self._logger.info("order_created_noted", order_id=order_id)
            return None

        if not event.is_known_kind:
            self._logger.info("webhook_event_ignored", kind=event.kind_value, order_id=order_id)
            return None

        order = event.order
        if order is None:
            raise MalformedPayloadError(f"{event.kind_value} event has no order data")

        async with self._store.lock(order.order_identifier):
            if event.kind is OrderEventKind.ORDER_APPROVED:
                return await self._handle_order_approved(order)
            if event.kind is OrderEventKind.ORDER_CANCELLED:
                return await self._handle_terminal_event(order, AttemptStatus.CANCELLED)
            return await self._handle_terminal_event(order, AttemptStatus.REFUNDED)

    async def _handle_order_approved(self, order: OrderData) -> DonationAttempt:
        order_id = order.order_identifier

        previous = await self._store.get(order_id)
        if previous is not None:
            self._logger.info(
                "attempt_replaced",
                order_id=order_id,
                previous_attempt_id=previous.id,
                previous_status=previous.status.value,
            )

        attempt = DonationAttempt(
            order_id=order_id,
            event_id=order.event_id,
            donation_token=self._token_codec.issue(order_id, order.event_id),
            donor_name=order.donor_name,
            donor_email=order.buyer_email,
            event_name=order.event_name,
            order_amount=order.total_order_amount,
        )
        await self._store.put(order_id, attempt)

        self._logger.info("attempt_created", order_id=order_id, attempt_id=attempt.id)

        await self._create_donation(order, attempt)
        await self._store.put(order_id, attempt)

        return attempt

    async def _create_donation(self, order: OrderData, attempt: DonationAttempt) -> None:
        request = DonationRequest(
            source_order_id=order.order_identifier,
            source_event_id=order.event_id,
            donor_name=order.donor_name,
            donor_email=order.buyer_email,
            donation_value=self._donation_value,
            campaign_id=self._campaign_id,
        )

        try:
            result = await asyncio.wait_for(
                self._gateway.create_donation(request),
                timeout=self._gateway_timeout,
            )
        except TimeoutError:
            attempt.decline(f"Donation API timed out after {self._gateway_timeout}s")
            self._logger.warning(
                "donation_failed",
                order_id=attempt.order_id,
                reason="timeout",
            )
            return
        except GatewayError as e:
            attempt.decline(e.message)
            self._logger.warning(
                "donation_failed",
                order_id=attempt.order_id,
                reason="gateway_error",
                error=e.message,
                status_code=e.status_code,
            )
            return
        except Exception as e:
            attempt.decline(str(e) or e.__class__.__name__)
            self._logger.error(
                "donation_failed",
                order_id=attempt.order_id,
                reason="unexpected_error",
                error=str(e),
                exc_info=True,
            )
            return

        attempt.complete(
            result.donation_id,
            gateway_status=result.status_value,
            certificate_url=result.certificate_url,
        )
        self._logger.info(
            "donation_created",
            order_id=attempt.order_id,
            donation_id=result.donation_id,
        )

    async def _handle_terminal_event(
        self,
        order: OrderData,
        status: AttemptStatus,
    ) -> DonationAttempt:
        order_id = order.order_identifier
        attempt = await self._store.get(order_id)

        if attempt is None:
            attempt = DonationAttempt(
                order_id=order_id,
                event_id=order.event_id,
                status=status,
                donor_name=order.donor_name.strip() or None,
                donor_email=order.buyer_email or None,
                event_name=order.event_name or None,
                order_amount=order.total_order_amount,
            )
            self._logger.info(
                "attempt_created",
                order_id=order_id,
                attempt_id=attempt.id,
                status=status.value,
            )
        else:
            previous_status = attempt.status
            attempt.transition_to(status)
            self._logger.info(
                "attempt_status_changed",
                order_id=order_id,
                attempt_id=attempt.id,
                previous_status=previous_status.value,
                status=status.value,
            )

        await self._store.put(order_id, attempt)
        return attempt

    async def list_attempts(self) -> list[DonationAttempt]:
        """Snapshot of all attempts, for the dashboard."""
        return await self._store.list()

    async def find_attempt_by_token(self, token: str) -> DonationAttempt | None:
        """Resolve an attempt token to the attempt it was issued for.

        Returns:
            The attempt, or None if the token is invalid or expired, or was
            superseded by a later approval for the same order.
        """
        decoded = self._token_codec.validate(token)
        if decoded is None:
            return None

        attempt = await self._store.get(decoded.order_id)
        if attempt is None or attempt.donation_token != token:
            return None
        return attempt


def build_webhook_dispatcher(
    config: Settings | None = None,
    *,
    gateway: DonationGateway | None = None,
    store: DonationAttemptStore | None = None,
) -> WebhookDispatcher:
    """Build a dispatcher wired from application settings.

    Args:
        config: Settings to use (uses global settings if not provided).
        gateway: Donation gateway (builds an AgroforestreeClient if not
            provided).
        store: Attempt store (uses global if not provided).

    Returns:
        Configured WebhookDispatcher.
    """
    config = config or settings
    if gateway is None:
        gateway = AgroforestreeClient(
            config.AGROFORESTREE_API_URL,
            config.AGROFORESTREE_API_KEY,
            timeout=config.GATEWAY_TIMEOUT_SECONDS,
        )
    return WebhookDispatcher(
        verifier=SignatureVerifier(config.SYMPLA_WEBHOOK_SECRET),
        token_codec=AttemptTokenCodec(config.ATTEMPT_TOKEN_SECRET),
        gateway=gateway,
        store=store,
        gateway_timeout=config.GATEWAY_TIMEOUT_SECONDS,
        donation_value=config.DONATION_VALUE,
        campaign_id=config.CAMPAIGN_ID,
        enforce_timestamp=config.ENFORCE_WEBHOOK_TIMESTAMP,
        timestamp_tolerance_minutes=config.WEBHOOK_TIMESTAMP_TOLERANCE_MINUTES,
    )


# Global dispatcher instance
_dispatcher: WebhookDispatcher | None = None


def get_webhook_dispatcher() -> WebhookDispatcher:
    """Get the global webhook dispatcher.

    Returns:
        Singleton WebhookDispatcher.
    """
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_webhook_dispatcher()
    return _dispatcher


def set_webhook_dispatcher(dispatcher: WebhookDispatcher | None) -> None:
    """Set the global webhook dispatcher.

    Useful for testing.

    Args:
        dispatcher: WebhookDispatcher instance, or None to rebuild lazily.
    """
    global _dispatcher
    _dispatcher = dispatcher
