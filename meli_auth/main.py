"""
FastAPI application entrypoint for the MercadoLibre credential service.
"""

from __future__ import annotations

from fastapi import FastAPI

from meli_auth.api.routes import router as api_router
from meli_auth.core.config import get_settings
from meli_auth.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="MercadoLibre Auth",
        version="0.1.0",
        description="Authorize the MercadoLibre application and inspect its stored token.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
