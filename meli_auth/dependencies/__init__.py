"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    build_auth_service,
    build_credential_backend,
    get_auth_service,
    get_mercadolibre_client,
    get_oauth_state_encoder,
    get_user_reader,
)
from .config import get_app_settings

__all__ = [
    "build_auth_service",
    "build_credential_backend",
    "get_app_settings",
    "get_auth_service",
    "get_mercadolibre_client",
    "get_oauth_state_encoder",
    "get_user_reader",
]
