"""FastAPI application for the Sympla → Agroforestree donation bridge.

This module provides:
- Application factory with CORS and error handling
- Health check endpoint
- Registration of the webhook and donation routers
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from donation_bridge.config import Settings, settings
from donation_bridge.errors import DonationBridgeError, UnauthorizedError
from donation_bridge.logging_config import configure_logging
from donation_bridge.webhooks.dispatcher import (
    WebhookDispatcher,
    build_webhook_dispatcher,
    set_webhook_dispatcher,
)

logger = structlog.get_logger(__name__)


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
    detail: str | None = Field(default=None, description="Detailed error information")


# ============================================================================
# Application Setup
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(
        "application_starting",
        environment=app.state.settings.ENVIRONMENT,
        port=app.state.settings.PORT,
    )

    yield

    logger.info("application_shutting_down")


OPENAPI_TAGS = [
    {
        "name": "Webhooks",
        "description": "Signed Sympla order webhooks and a local simulator.",
    },
    {
        "name": "Donations",
        "description": "Donation attempts tracked per Sympla order.",
    },
    {
        "name": "Health",
        "description": "Liveness check.",
    },
]

API_DESCRIPTION = """
## Overview

Receives Sympla order webhooks, authenticates them with HMAC-SHA256 and
creates tree-planting donations on the Agroforestree API for approved orders.

## Webhook signature

Sympla signs the raw request body with the shared secret:

```
X-Sympla-Signature: sha256=<hex hmac-sha256 of body>
```

Requests with a missing or wrong signature receive `401`.
"""


def _error_content(error: str, detail: str | None = None) -> dict[str, Any]:
    return ErrorResponse(error=error, detail=detail).model_dump(exclude_none=True)


def create_app(
    config: Settings | None = None,
    *,
    dispatcher: WebhookDispatcher | None = None,
    title: str = "Agroforestree-Sympla Integration API",
    version: str = "1.0.0",
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Settings (uses global settings if not provided).
        dispatcher: Webhook dispatcher (built from settings if not provided).
        title: API title.
        version: API version.
        cors_origins: Allowed CORS origins.

    Returns:
        Configured FastAPI application.
    """
    config = config or settings
    configure_logging(config.LOG_LEVEL, json_output=config.LOG_JSON)

    set_webhook_dispatcher(dispatcher or build_webhook_dispatcher(config))

    app = FastAPI(
        title=title,
        version=version,
        description=API_DESCRIPTION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=OPENAPI_TAGS,
    )
    app.state.settings = config

    # Configure CORS
    origins = cors_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add exception handlers
    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException  # noqa: ARG001
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_content(
                exc.detail if isinstance(exc.detail, str) else str(exc.detail)
            ),
        )

    @app.exception_handler(DonationBridgeError)
    async def bridge_exception_handler(
        request: Request, exc: DonationBridgeError  # noqa: ARG001
    ) -> JSONResponse:
        if isinstance(exc, UnauthorizedError):
            return JSONResponse(status_code=401, content=_error_content(exc.message))

        # Authenticated sender, so a bad payload is an internal anomaly
        logger.error("webhook_processing_failed", **exc.to_dict())
        return JSONResponse(status_code=500, content=_error_content("Internal server error"))

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception  # noqa: ARG001
    ) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_content(
                "Internal server error",
                str(exc) if app.debug else None,
            ),
        )

    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """Register all routes on the application.

    Args:
        app: FastAPI application.
    """
    from donation_bridge.api.donations import router as donations_router
    from donation_bridge.api.webhooks import router as webhooks_router

    app.include_router(webhooks_router)
    app.include_router(donations_router)

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, Any]:
        """Basic liveness check."""
        return {
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(),
            "environment": app.state.settings.ENVIRONMENT,
        }
