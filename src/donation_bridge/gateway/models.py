"""Request and response models for the Agroforestree donation API."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class GatewayDonationStatus(str, Enum):
    """Donation status reported by the gateway."""

    PENDING_PLANTING = "PENDING_PLANTING"
    PLANTED = "PLANTED"
    FAILED = "FAILED"


class DonationRequest(BaseModel):
    """Donation creation request sent to the gateway."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source_platform: str = Field(default="Sympla", alias="sourcePlatform")
    source_order_id: str = Field(..., alias="sourceOrderId")
    source_event_id: str = Field(..., alias="sourceEventId")
    donor_name: str = Field(..., alias="donorName")
    donor_email: str = Field(..., alias="donorEmail")
    donation_value: float = Field(..., alias="donationValue", ge=0)
    campaign_id: str = Field(..., alias="campaignId")

    def to_wire(self) -> dict[str, object]:
        """Serialize with the gateway's camelCase field names."""
        return self.model_dump(by_alias=True)


class DonationGatewayResult(BaseModel):
    """Donation as returned by the gateway."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    donation_id: str = Field(..., alias="donationId")
    status: GatewayDonationStatus | str = Field(..., union_mode="left_to_right")
    created_at: str = Field(..., alias="createdAt")
    certificate_url: str | None = Field(default=None, alias="certificateUrl")

    @property
    def status_value(self) -> str:
        return self.status.value if isinstance(self.status, GatewayDonationStatus) else self.status
