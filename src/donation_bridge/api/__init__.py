"""FastAPI routes for the donation bridge.

Serve with ``uvicorn donation_bridge.api:create_app --factory``.
"""

from donation_bridge.api.routes import ErrorResponse, create_app

__all__ = [
    "ErrorResponse",
    "create_app",
]
