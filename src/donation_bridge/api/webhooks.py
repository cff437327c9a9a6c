"""Sympla webhook endpoints.

Provides the signed webhook receiver and a simulator that signs a sample
``order.approved`` event and runs it through the same path.
"""

import json
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from donation_bridge.config import Settings, settings
from donation_bridge.errors import DonationBridgeError, UnauthorizedError
from donation_bridge.webhooks.dispatcher import WebhookAck, get_webhook_dispatcher
from donation_bridge.webhooks.events import OrderEventKind, OrderStatus, build_order_event
from donation_bridge.webhooks.security import SIGNATURE_HEADER, generate_signature

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Webhooks"])


# ============================================================================
# Request/Response Models
# ============================================================================


class SimulateWebhookRequest(BaseModel):
    """Overrides for the simulated Sympla order."""

    order_identifier: str = Field(default="XYZ123", min_length=1)
    event_id: str = Field(default="EVT456", min_length=1)
    event_name: str = Field(default="Festival Sustentável 2025")
    buyer_first_name: str = Field(default="João")
    buyer_last_name: str = Field(default="Silva")
    buyer_email: str = Field(default="joao@email.com")
    total_order_amount: float = Field(default=50.0, ge=0)


class SimulateWebhookResponse(BaseModel):
    """Result of a simulated webhook."""

    status: str
    webhookResponse: WebhookAck  # noqa: N815


def _settings_for(request: Request) -> Settings:
    return getattr(request.app.state, "settings", settings)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/webhooks/sympla",
    response_model=WebhookAck,
    responses={
        200: {"description": "Webhook accepted"},
        401: {"description": "Invalid signature"},
        500: {"description": "Malformed payload or internal error"},
    },
)
async def receive_sympla_webhook(request: Request) -> Any:
    """Receive a Sympla order webhook.

    The body is read raw because the signature covers the exact bytes.
    Downstream donation failures are recorded on the attempt and still
    acknowledged with 200.
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    try:
        ack = await get_webhook_dispatcher().process_webhook(body, signature)
    except UnauthorizedError as e:
        return JSONResponse(status_code=401, content={"error": e.message})

    return ack


@router.post(
    "/simulate/sympla-webhook",
    response_model=SimulateWebhookResponse,
    responses={
        500: {"description": "Simulated webhook was rejected"},
    },
)
async def simulate_sympla_webhook(
    request: Request,
    simulation: SimulateWebhookRequest | None = None,
) -> Any:
    """Sign a sample ``order.approved`` event and process it.

    Useful to exercise the whole flow without a Sympla account.
    """
    simulation = simulation or SimulateWebhookRequest()
    config = _settings_for(request)

    full_name = f"{simulation.buyer_first_name} {simulation.buyer_last_name}"
    body = build_order_event(
        OrderEventKind.ORDER_APPROVED,
        {
            "order_identifier": simulation.order_identifier,
            "event_id": simulation.event_id,
            "event_name": simulation.event_name,
            "order_status": OrderStatus.APPROVED.value,
            "buyer_first_name": simulation.buyer_first_name,
            "buyer_last_name": simulation.buyer_last_name,
            "buyer_email": simulation.buyer_email,
            "total_order_amount": simulation.total_order_amount,
            "participants_full_name_comma_separated": full_name,
            "participants_email_comma_separated": simulation.buyer_email,
        },
    )
    raw_body = json.dumps(body).encode("utf-8")
    signature = generate_signature(raw_body, config.SYMPLA_WEBHOOK_SECRET)

    logger.info("webhook_simulation_started", order_id=simulation.order_identifier)

    try:
        ack = await get_webhook_dispatcher().process_webhook(raw_body, signature)
    except DonationBridgeError as e:
        logger.warning("webhook_simulation_failed", error=e.message)
        return JSONResponse(
            status_code=500,
            content={"status": "Erro ao enviar webhook simulado", "error": e.message},
        )

    return SimulateWebhookResponse(status="Simulação enviada", webhookResponse=ack)
