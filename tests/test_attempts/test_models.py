"""Tests for donation attempt models."""

from datetime import UTC, datetime, timedelta

import pytest

from donation_bridge.attempts.models import AttemptStatus, DonationAttempt
from donation_bridge.errors import InvalidTransitionError

# ============================================================================
# AttemptStatus Tests
# ============================================================================


class TestAttemptStatus:
    """Tests for the lifecycle rules."""

    def test_only_pending_is_open(self):
        """Test that every status but pending is terminal."""
        assert AttemptStatus.PENDING_USER_ACTION.is_terminal is False
        assert all(
            status.is_terminal
            for status in AttemptStatus
            if status is not AttemptStatus.PENDING_USER_ACTION
        )

    @pytest.mark.parametrize("target", list(AttemptStatus)[1:])
    def test_pending_reaches_any_terminal(self, target):
        """Test that pending attempts may reach every terminal status."""
        assert AttemptStatus.PENDING_USER_ACTION.can_transition_to(target) is True

    @pytest.mark.parametrize("current", list(AttemptStatus))
    def test_cancel_and_refund_from_anywhere(self, current):
        """Test that cancel and refund override any status."""
        assert current.can_transition_to(AttemptStatus.CANCELLED) is True
        assert current.can_transition_to(AttemptStatus.REFUNDED) is True

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (AttemptStatus.COMPLETED, AttemptStatus.DECLINED),
            (AttemptStatus.DECLINED, AttemptStatus.COMPLETED),
            (AttemptStatus.CANCELLED, AttemptStatus.COMPLETED),
            (AttemptStatus.COMPLETED, AttemptStatus.PENDING_USER_ACTION),
            (AttemptStatus.PENDING_USER_ACTION, AttemptStatus.PENDING_USER_ACTION),
        ],
    )
    def test_forbidden_moves(self, current, target):
        """Test moves the lifecycle does not allow."""
        assert current.can_transition_to(target) is False


# ============================================================================
# DonationAttempt Tests
# ============================================================================


class TestDonationAttempt:
    """Tests for the DonationAttempt model."""

    def test_defaults(self):
        """Test a freshly created attempt."""
        attempt = DonationAttempt(order_id="SPL-1", event_id="EVT-1")

        assert attempt.status == AttemptStatus.PENDING_USER_ACTION
        assert attempt.id
        assert attempt.donation_token is None
        assert attempt.updated_at >= attempt.created_at

    def test_unique_ids(self):
        """Test that every attempt gets its own id."""
        first = DonationAttempt(order_id="SPL-1", event_id="EVT-1")
        second = DonationAttempt(order_id="SPL-1", event_id="EVT-1")

        assert first.id != second.id

    def test_updated_at_clamped_on_creation(self):
        """Test that updated_at never precedes created_at."""
        created = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)
        attempt = DonationAttempt(
            order_id="SPL-1",
            event_id="EVT-1",
            created_at=created,
            updated_at=created - timedelta(hours=1),
        )

        assert attempt.updated_at == created

    def test_complete(self):
        """Test recording a successful donation."""
        attempt = DonationAttempt(order_id="SPL-1", event_id="EVT-1")

        attempt.complete("AGF-1", gateway_status="PENDING_PLANTING", certificate_url="u")

        assert attempt.status == AttemptStatus.COMPLETED
        assert attempt.donation_id == "AGF-1"
        assert attempt.gateway_status == "PENDING_PLANTING"
        assert attempt.certificate_url == "u"

    def test_decline(self):
        """Test recording a failed donation."""
        attempt = DonationAttempt(order_id="SPL-1", event_id="EVT-1")

        attempt.decline("Donation API returned HTTP 500")

        assert attempt.status == AttemptStatus.DECLINED
        assert attempt.failure_reason == "Donation API returned HTTP 500"

    def test_invalid_transition_raises(self):
        """Test that a forbidden move raises and leaves the attempt unchanged."""
        attempt = DonationAttempt(order_id="SPL-1", event_id="EVT-1")
        attempt.complete("AGF-1")

        with pytest.raises(InvalidTransitionError) as exc_info:
            attempt.decline("late failure")

        assert exc_info.value.order_id == "SPL-1"
        assert exc_info.value.current == "COMPLETED"
        assert exc_info.value.target == "DECLINED"
        assert attempt.status == AttemptStatus.COMPLETED
        assert attempt.failure_reason is None

    def test_transition_time_not_before_creation(self):
        """Test that a backdated transition is clamped to created_at."""
        attempt = DonationAttempt(order_id="SPL-1", event_id="EVT-1")

        attempt.transition_to(
            AttemptStatus.CANCELLED, at=attempt.created_at - timedelta(minutes=1)
        )

        assert attempt.updated_at == attempt.created_at

    def test_transition_sets_updated_at(self):
        """Test that transitions record their time."""
        attempt = DonationAttempt(order_id="SPL-1", event_id="EVT-1")
        later = attempt.created_at + timedelta(minutes=3)

        attempt.transition_to(AttemptStatus.REFUNDED, at=later)

        assert attempt.updated_at == later
