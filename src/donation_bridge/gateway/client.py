"""Agroforestree donation API client.

Creates donations for approved Sympla orders and looks up their status.
Calls are bounded by a short timeout and never retried; every failure is
raised as GatewayError for the caller to record.
"""

import asyncio
import time
from datetime import UTC, datetime
from typing import Protocol

import httpx
import structlog
from pydantic import ValidationError

from donation_bridge.errors import GatewayError
from donation_bridge.gateway.models import (
    DonationGatewayResult,
    DonationRequest,
    GatewayDonationStatus,
)

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# Base URL host of the production API; the PoC answers locally for it
SIMULATED_API_HOST = "api.agroforestree.com"
SIMULATED_DELAY_SECONDS = 0.5
CERTIFICATE_BASE_URL = "https://certificados.agroforestree.com"


class DonationGateway(Protocol):
    """Interface the webhook dispatcher needs from the donation API."""

    async def create_donation(self, request: DonationRequest) -> DonationGatewayResult: ...


class AgroforestreeClient:
    """HTTP client for the Agroforestree donation API.

    Features:
    - Bearer authentication
    - Hard per-request timeout, no retries
    - Simulated responses while pointed at the placeholder production host
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        simulate: bool | None = None,
        simulated_delay: float = SIMULATED_DELAY_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Base URL of the donation API.
            api_key: Bearer token.
            timeout: Request timeout in seconds.
            simulate: Force simulation on or off (defaults to on for the
                placeholder production host).
            simulated_delay: Artificial latency of simulated calls.
            transport: Optional httpx transport (used in tests).
        """
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._simulate = SIMULATED_API_HOST in api_url if simulate is None else simulate
        self._simulated_delay = simulated_delay
        self._transport = transport
        self._logger = logger.bind(component="agroforestree_client")

    @property
    def simulated(self) -> bool:
        return self._simulate

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._api_url,
            timeout=self._timeout,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            transport=self._transport,
        )

    async def create_donation(self, request: DonationRequest) -> DonationGatewayResult:
        """Create a donation.

        Args:
            request: Donation to create.

        Returns:
            The created donation.

        Raises:
            GatewayError: On timeout, transport failure, non-2xx response or
                an unreadable response body.
        """
        self._logger.info(
            "donation_create_requested",
            order_id=request.source_order_id,
            event_id=request.source_event_id,
            simulated=self._simulate,
        )

        if self._simulate:
            return await self._simulate_create()

        return await self._request(
            "POST", "/donations", operation="create_donation", json=request.to_wire()
        )

    async def get_donation_status(self, donation_id: str) -> DonationGatewayResult:
        """Look up a donation by gateway id.

        Raises:
            GatewayError: On any failure.
        """
        return await self._request(
            "GET", f"/donations/{donation_id}", operation="get_donation_status"
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, object] | None = None,
    ) -> DonationGatewayResult:
        try:
            async with self._client() as client:
                response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            self._logger.warning("gateway_timeout", operation=operation, timeout=self._timeout)
            raise GatewayError(
                f"Donation API timed out after {self._timeout}s", operation=operation
            ) from e
        except httpx.HTTPError as e:
            self._logger.warning("gateway_connection_error", operation=operation, error=str(e))
            raise GatewayError(f"Donation API request failed: {e}", operation=operation) from e

        if not response.is_success:
            self._logger.warning(
                "gateway_non_success_response",
                operation=operation,
                status_code=response.status_code,
            )
            raise GatewayError(
                f"Donation API returned HTTP {response.status_code}",
                operation=operation,
                status_code=response.status_code,
                details={"body": response.text[:1000]},
            )

        try:
            result = DonationGatewayResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise GatewayError(
                "Donation API returned an unreadable body",
                operation=operation,
                status_code=response.status_code,
            ) from e

        self._logger.info(
            "gateway_request_succeeded",
            operation=operation,
            donation_id=result.donation_id,
            status=result.status_value,
        )
        return result

    async def _simulate_create(self) -> DonationGatewayResult:
        if self._simulated_delay:
            await asyncio.sleep(self._simulated_delay)
        stamp = int(time.time() * 1000)
        result = DonationGatewayResult(
            donation_id=f"AGF-{stamp}",
            status=GatewayDonationStatus.PENDING_PLANTING,
            created_at=datetime.now(UTC).isoformat(),
            certificate_url=f"{CERTIFICATE_BASE_URL}/{stamp}.pdf",
        )
        self._logger.info("donation_simulated", donation_id=result.donation_id)
        return result
