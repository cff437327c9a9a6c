"""Error types for the donation bridge.

Exception Hierarchy:
    DonationBridgeError (base)
    ├── UnauthorizedError - Webhook signature or replay check failed
    ├── MalformedPayloadError - Authenticated body is not a valid event
    ├── GatewayError - Donation API call failed or timed out
    └── InvalidTransitionError - Attempt status move not allowed
"""

from typing import Any


class DonationBridgeError(Exception):
    """Base exception for all donation bridge errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error details.
        recoverable: Whether the error can be recovered from.
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class UnauthorizedError(DonationBridgeError):
    """Webhook could not be authenticated.

    Raised when the signature header is missing, malformed or does not
    match, and when an enforced replay window rejects the event timestamp.
    """

    def __init__(
        self,
        message: str = "Invalid signature",
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)


class MalformedPayloadError(DonationBridgeError):
    """Authenticated webhook body does not decode as an order event."""

    def __init__(
        self,
        message: str = "Malformed webhook payload",
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)


class GatewayError(DonationBridgeError):
    """Donation gateway call failed.

    Attributes:
        status_code: HTTP status returned by the gateway, if any.
        operation: Gateway operation that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = "create_donation",
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)
        self.operation = operation
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        base = super().to_dict()
        base.update({"operation": self.operation, "status_code": self.status_code})
        return base


class InvalidTransitionError(DonationBridgeError):
    """A donation attempt was asked to move to a status it cannot reach.

    Attributes:
        order_id: Order whose attempt rejected the move.
        current: Status the attempt was in.
        target: Status that was requested.
    """

    def __init__(
        self,
        *,
        order_id: str,
        current: str,
        target: str,
    ) -> None:
        super().__init__(
            f"Attempt for order {order_id} cannot move from {current} to {target}",
            details={"order_id": order_id, "current": current, "target": target},
            recoverable=False,
        )
        self.order_id = order_id
        self.current = current
        self.target = target
