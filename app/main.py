"""
FastAPI application entrypoint for the HubSpot OAuth proxy.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.logging import configure_logging

PROXY_HEADERS = [
    "Content-Type",
    "X-HubSpot-Region",
    "X-Requested-Path",
    "X-HubSpot-Portal-Id",
]


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="HubSpot OAuth Proxy",
        version="0.1.0",
        description="OAuth install flow and authenticated HubSpot API proxy for the card front-end.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=PROXY_HEADERS,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
