"""Donation attempt models and lifecycle rules.

This module defines the per-order record the bridge keeps while an order
moves from receipt to a terminal outcome.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from donation_bridge.errors import InvalidTransitionError


class AttemptStatus(str, Enum):
    """Lifecycle status of a donation attempt."""

    PENDING_USER_ACTION = "PENDING_USER_ACTION"
    COMPLETED = "COMPLETED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self is not AttemptStatus.PENDING_USER_ACTION

    def can_transition_to(self, target: "AttemptStatus") -> bool:
        """Check whether a move to ``target`` is allowed.

        Pending attempts may reach any terminal status. Cancellation and
        refund overwrite whatever status the attempt had.
        """
        if target in (AttemptStatus.CANCELLED, AttemptStatus.REFUNDED):
            return True
        return self is AttemptStatus.PENDING_USER_ACTION and target.is_terminal


class DonationAttempt(BaseModel):
    """Tracks one order's progress toward a created donation.

    Records are keyed by order identifier in the store. ``created_at`` is
    set once; ``updated_at`` moves on every transition.
    """

    # Identifiers
    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier for this attempt",
    )
    order_id: str = Field(..., description="Sympla order identifier")
    event_id: str = Field(..., description="Sympla event identifier")

    # Status tracking
    status: AttemptStatus = Field(
        default=AttemptStatus.PENDING_USER_ACTION,
        description="Current lifecycle status",
    )
    donation_token: str | None = Field(
        default=None,
        description="Signed attempt token (absent for cancel/refund-only records)",
    )

    # Order data
    donor_name: str | None = Field(default=None, description="Buyer full name")
    donor_email: str | None = Field(default=None, description="Buyer email")
    event_name: str | None = Field(default=None, description="Event display name")
    order_amount: float | None = Field(default=None, description="Order total")

    # Gateway outcome
    donation_id: str | None = Field(default=None, description="Gateway donation id")
    gateway_status: str | None = Field(default=None, description="Gateway-side status")
    certificate_url: str | None = Field(default=None, description="Planting certificate")
    failure_reason: str | None = Field(default=None, description="Why the donation failed")

    # Timestamps
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the attempt was created",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the attempt last changed",
    )

    def model_post_init(self, __context: object) -> None:
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    def transition_to(self, target: AttemptStatus, *, at: datetime | None = None) -> None:
        """Move the attempt to a new status.

        Raises:
            InvalidTransitionError: If the lifecycle does not allow the move.
        """
        if not self.status.can_transition_to(target):
            raise InvalidTransitionError(
                order_id=self.order_id,
                current=self.status.value,
                target=target.value,
            )
        self.status = target
        self.updated_at = max(at or datetime.now(UTC), self.created_at)

    def complete(
        self,
        donation_id: str,
        *,
        gateway_status: str | None = None,
        certificate_url: str | None = None,
    ) -> None:
        """Record a successful donation."""
        self.transition_to(AttemptStatus.COMPLETED)
        self.donation_id = donation_id
        self.gateway_status = gateway_status
        self.certificate_url = certificate_url

    def decline(self, reason: str) -> None:
        """Record a failed donation."""
        self.transition_to(AttemptStatus.DECLINED)
        self.failure_reason = reason
