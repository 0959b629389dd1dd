"""Expose constructed client wrappers and credential backends."""

from .backends import BackendUnavailableError, CredentialBackend, FallbackTokenBackend
from .dynamodb import DynamoDBTokenBackend
from .file_store import JSONFileTokenBackend
from .mercadolibre_api import InvalidHttpMethodError, MercadoLibreClient
from .mercadolibre_auth import (
    MercadoLibreAuthClient,
    OAuthGatewayError,
    OAuthStateEncoder,
    OAuthStateError,
    TokenExchangeError,
    TokenRefreshError,
)
from .sqlite_store import SQLiteTokenBackend

__all__ = [
    "BackendUnavailableError",
    "CredentialBackend",
    "DynamoDBTokenBackend",
    "FallbackTokenBackend",
    "InvalidHttpMethodError",
    "JSONFileTokenBackend",
    "MercadoLibreAuthClient",
    "MercadoLibreClient",
    "OAuthGatewayError",
    "OAuthStateEncoder",
    "OAuthStateError",
    "SQLiteTokenBackend",
    "TokenExchangeError",
    "TokenRefreshError",
]
