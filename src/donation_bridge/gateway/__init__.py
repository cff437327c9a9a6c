"""Client for the Agroforestree donation API."""

from donation_bridge.gateway.client import AgroforestreeClient, DonationGateway
from donation_bridge.gateway.models import (
    DonationGatewayResult,
    DonationRequest,
    GatewayDonationStatus,
)

__all__ = [
    "AgroforestreeClient",
    "DonationGateway",
    "DonationGatewayResult",
    "DonationRequest",
    "GatewayDonationStatus",
]
