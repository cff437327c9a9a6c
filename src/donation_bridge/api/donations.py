"""Donation attempt listing endpoints.

Feeds the dashboard with the current attempts and resolves attempt tokens.
"""

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from donation_bridge.attempts.models import DonationAttempt
from donation_bridge.webhooks.dispatcher import get_webhook_dispatcher

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/donations", tags=["Donations"])


# ============================================================================
# Response Models
# ============================================================================


class DonationSummary(BaseModel):
    """Dashboard view of one donation attempt."""

    id: str
    donorName: str  # noqa: N815
    status: str
    value: float
    createdAt: str  # noqa: N815
    eventName: str  # noqa: N815
    orderId: str  # noqa: N815

    @classmethod
    def from_attempt(cls, attempt: DonationAttempt, value: float) -> "DonationSummary":
        """Create summary from a DonationAttempt."""
        return cls(
            id=attempt.id,
            donorName=attempt.donor_name or f"Doador {attempt.order_id}",
            status=attempt.status.value,
            value=value,
            createdAt=attempt.created_at.isoformat(),
            eventName=attempt.event_name or f"Evento {attempt.event_id}",
            orderId=attempt.order_id,
        )


class DonationListResponse(BaseModel):
    """All donation attempts."""

    donations: list[DonationSummary]
    total: int
    timestamp: str


# ============================================================================
# Endpoints
# ============================================================================


@router.get("", response_model=DonationListResponse)
async def list_donations() -> DonationListResponse:
    """List every donation attempt the bridge has seen."""
    dispatcher = get_webhook_dispatcher()
    attempts = await dispatcher.list_attempts()
    donations = [
        DonationSummary.from_attempt(attempt, dispatcher.donation_value) for attempt in attempts
    ]
    return DonationListResponse(
        donations=donations,
        total=len(donations),
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get(
    "/token/{token}",
    response_model=DonationSummary,
    responses={
        404: {"description": "Token invalid, expired or superseded"},
    },
)
async def get_donation_by_token(token: str) -> DonationSummary:
    """Resolve an attempt token to its donation attempt."""
    dispatcher = get_webhook_dispatcher()
    attempt = await dispatcher.find_attempt_by_token(token)

    if attempt is None:
        logger.info("donation_token_not_resolved")
        raise HTTPException(status_code=404, detail="Donation token not found or expired")

    return DonationSummary.from_attempt(attempt, dispatcher.donation_value)
