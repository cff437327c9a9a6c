"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults.
"""

import os
from dataclasses import dataclass


def _get_bool_env(name: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set.

    Returns:
        Boolean value from environment.
    """
    value = os.getenv(name, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_float_env(name: str, default: float) -> float:
    """Get a float value from environment variable, ignoring bad values."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        PORT: HTTP port the service listens on.
        SYMPLA_WEBHOOK_SECRET: Shared secret used to sign Sympla webhooks.
        ATTEMPT_TOKEN_SECRET: Secret for donation attempt tokens.
        AGROFORESTREE_API_URL: Base URL of the donation API.
        AGROFORESTREE_API_KEY: Bearer key for the donation API.
        GATEWAY_TIMEOUT_SECONDS: Hard bound on each donation API call.
        DONATION_VALUE: Fixed donation value sent per approved order.
        CAMPAIGN_ID: Campaign the donations are attributed to.
        ENFORCE_WEBHOOK_TIMESTAMP: Reject webhooks outside the replay window.
        WEBHOOK_TIMESTAMP_TOLERANCE_MINUTES: Replay window size.
        ENVIRONMENT: Deployment environment name.
        LOG_LEVEL: Logging level.
        LOG_JSON: Render logs as JSON instead of console output.
    """

    PORT: int = 3001

    # Webhook authentication
    SYMPLA_WEBHOOK_SECRET: str = "test-webhook-secret-123"
    ATTEMPT_TOKEN_SECRET: str = "test-webhook-secret-123"
    ENFORCE_WEBHOOK_TIMESTAMP: bool = False
    WEBHOOK_TIMESTAMP_TOLERANCE_MINUTES: float = 5.0

    # Donation gateway
    AGROFORESTREE_API_URL: str = "https://api.agroforestree.com"
    AGROFORESTREE_API_KEY: str = "sua-api-key"
    GATEWAY_TIMEOUT_SECONDS: float = 10.0
    DONATION_VALUE: float = 5.0
    CAMPAIGN_ID: str = "sympla-geral-2024"

    ENVIRONMENT: str = "development"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Returns:
            Settings instance populated from environment.
        """
        webhook_secret = os.getenv("SYMPLA_WEBHOOK_SECRET", "test-webhook-secret-123")
        return cls(
            PORT=int(_get_float_env("PORT", 3001)),
            SYMPLA_WEBHOOK_SECRET=webhook_secret,
            # Same value as the webhook secret unless configured separately
            ATTEMPT_TOKEN_SECRET=os.getenv("ATTEMPT_TOKEN_SECRET", webhook_secret),
            ENFORCE_WEBHOOK_TIMESTAMP=_get_bool_env("ENFORCE_WEBHOOK_TIMESTAMP", default=False),
            WEBHOOK_TIMESTAMP_TOLERANCE_MINUTES=_get_float_env(
                "WEBHOOK_TIMESTAMP_TOLERANCE_MINUTES", 5.0
            ),
            AGROFORESTREE_API_URL=os.getenv(
                "AGROFORESTREE_API_URL", "https://api.agroforestree.com"
            ),
            AGROFORESTREE_API_KEY=os.getenv("AGROFORESTREE_API_KEY", "sua-api-key"),
            GATEWAY_TIMEOUT_SECONDS=_get_float_env("GATEWAY_TIMEOUT_SECONDS", 10.0),
            DONATION_VALUE=_get_float_env("DONATION_VALUE", 5.0),
            CAMPAIGN_ID=os.getenv("CAMPAIGN_ID", "sympla-geral-2024"),
            ENVIRONMENT=os.getenv("ENVIRONMENT", "development"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            LOG_JSON=_get_bool_env("LOG_JSON", default=False),
        )


# Global settings instance
settings = Settings.from_env()
