"""Tests for webhook security module."""

import hashlib
import hmac
from datetime import timedelta

import pytest

from donation_bridge.webhooks.security import (
    SignatureVerifier,
    compute_signature,
    generate_signature,
    parse_timestamp,
)

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def sample_secret():
    """Sample webhook secret."""
    return "test-webhook-secret"


@pytest.fixture
def sample_body():
    """Sample raw webhook body."""
    return b'{"event":"order.approved","data":{"order_identifier":"SPL-1","event_id":"EVT-1"}}'


@pytest.fixture
def verifier(sample_secret, frozen_clock):
    """Verifier with a frozen clock."""
    return SignatureVerifier(sample_secret, clock=frozen_clock)


# ============================================================================
# generate_signature Tests
# ============================================================================


class TestGenerateSignature:
    """Tests for signature generation helpers."""

    def test_compute_signature_matches_hmac(self, sample_body, sample_secret):
        """Test that the digest is a plain hex HMAC-SHA256."""
        expected = hmac.new(sample_secret.encode(), sample_body, hashlib.sha256).hexdigest()

        assert compute_signature(sample_body, sample_secret) == expected

    def test_generate_signature_has_prefix(self, sample_body, sample_secret):
        """Test that the header value carries the sha256= prefix."""
        signature = generate_signature(sample_body, sample_secret)

        assert signature.startswith("sha256=")
        assert len(signature) == len("sha256=") + 64

    def test_different_secrets_differ(self, sample_body):
        """Test that different secrets produce different signatures."""
        assert generate_signature(sample_body, "secret1") != generate_signature(
            sample_body, "secret2"
        )


# ============================================================================
# verify Tests
# ============================================================================


class TestVerify:
    """Tests for SignatureVerifier.verify."""

    def test_valid_prefixed_signature(self, verifier, sample_body, sample_secret):
        """Test accepting a correct sha256= signature."""
        assert verifier.verify(sample_body, generate_signature(sample_body, sample_secret)) is True

    def test_valid_bare_signature(self, verifier, sample_body, sample_secret):
        """Test accepting a correct signature without prefix."""
        assert verifier.verify(sample_body, compute_signature(sample_body, sample_secret)) is True

    def test_prefix_is_case_insensitive(self, verifier, sample_body, sample_secret):
        """Test accepting an upper-case prefix and surrounding whitespace."""
        digest = compute_signature(sample_body, sample_secret)

        assert verifier.verify(sample_body, f"  SHA256= {digest}  ") is True

    def test_uppercase_hex_accepted(self, verifier, sample_body, sample_secret):
        """Test that hex case does not matter."""
        digest = compute_signature(sample_body, sample_secret).upper()

        assert verifier.verify(sample_body, f"sha256={digest}") is True

    @pytest.mark.parametrize("header", [None, "", "sha256=", "   "])
    def test_missing_signature(self, verifier, sample_body, header):
        """Test rejecting absent or empty signatures."""
        assert verifier.verify(sample_body, header) is False

    @pytest.mark.parametrize(
        "header",
        ["invalid-signature", "sha256=zz", "sha256=abc", "sha256=" + "g" * 64],
    )
    def test_malformed_signature(self, verifier, sample_body, header):
        """Test rejecting non-hex and odd-length signatures without raising."""
        assert verifier.verify(sample_body, header) is False

    def test_short_signature(self, verifier, sample_body, sample_secret):
        """Test rejecting a truncated digest."""
        digest = compute_signature(sample_body, sample_secret)

        assert verifier.verify(sample_body, f"sha256={digest[:32]}") is False

    def test_wrong_secret(self, verifier, sample_body):
        """Test rejecting a signature made with another secret."""
        assert verifier.verify(sample_body, generate_signature(sample_body, "other")) is False

    def test_every_single_byte_mutation_rejected(self, verifier, sample_body, sample_secret):
        """Test that changing any byte of the body breaks the signature."""
        signature = generate_signature(sample_body, sample_secret)

        for index in range(len(sample_body)):
            mutated = bytearray(sample_body)
            mutated[index] ^= 0x01
            assert verifier.verify(bytes(mutated), signature) is False

    def test_inner_whitespace_rejected(self, verifier, sample_body, sample_secret):
        """Test that whitespace between hex pairs is not tolerated."""
        digest = compute_signature(sample_body, sample_secret)
        spaced = " ".join(digest[i : i + 2] for i in range(0, len(digest), 2))

        assert verifier.verify(sample_body, f"sha256={spaced}") is False
        assert verifier.verify(sample_body, f"sha256={digest[:32]}\t{digest[32:]}") is False

    def test_empty_body(self, verifier, sample_secret):
        """Test that an empty body can still be signed and verified."""
        assert verifier.verify(b"", generate_signature(b"", sample_secret)) is True


# ============================================================================
# verify_timestamp Tests
# ============================================================================


class TestVerifyTimestamp:
    """Tests for SignatureVerifier.verify_timestamp."""

    def test_current_timestamp(self, verifier, frozen_clock):
        """Test accepting the current time."""
        assert verifier.verify_timestamp(frozen_clock().isoformat()) is True

    def test_zulu_suffix(self, verifier):
        """Test accepting a Z-suffixed timestamp."""
        assert verifier.verify_timestamp("2025-03-01T12:03:00Z") is True

    def test_naive_timestamp_treated_as_utc(self, verifier):
        """Test that naive timestamps are read as UTC."""
        assert verifier.verify_timestamp("2025-03-01T11:56:00") is True

    def test_inside_window_both_directions(self, verifier, frozen_clock):
        """Test accepting timestamps just inside the window."""
        inside = timedelta(minutes=5) - timedelta(seconds=1)

        assert verifier.verify_timestamp((frozen_clock() - inside).isoformat()) is True
        assert verifier.verify_timestamp((frozen_clock() + inside).isoformat()) is True

    def test_outside_window_both_directions(self, verifier, frozen_clock):
        """Test rejecting stale and future timestamps alike."""
        outside = timedelta(minutes=5, seconds=1)

        assert verifier.verify_timestamp((frozen_clock() - outside).isoformat()) is False
        assert verifier.verify_timestamp((frozen_clock() + outside).isoformat()) is False

    def test_custom_tolerance(self, verifier, frozen_clock):
        """Test widening the window."""
        stamp = (frozen_clock() - timedelta(minutes=8)).isoformat()

        assert verifier.verify_timestamp(stamp) is False
        assert verifier.verify_timestamp(stamp, tolerance_minutes=10) is True

    @pytest.mark.parametrize("value", [None, "", "yesterday", "2025-13-45T99:99:99", "31/02/2025"])
    def test_unparsable_timestamp(self, verifier, value):
        """Test that garbage returns False instead of raising."""
        assert verifier.verify_timestamp(value) is False


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_offset_preserved(self):
        """Test that explicit offsets are honoured."""
        parsed = parse_timestamp("2025-03-01T09:00:00-03:00")

        assert parsed is not None
        assert parsed.utcoffset() == timedelta(hours=-3)

    def test_invalid(self):
        """Test returning None for invalid input."""
        assert parse_timestamp("not-a-date") is None
