"""
Factory functions wiring the credential layer from settings.

Each getter is cached so the API process shares one auth service, and with
it one refresh lock, per configured service.
"""

import logging
from functools import lru_cache

from meli_auth.clients import (
    CredentialBackend,
    DynamoDBTokenBackend,
    FallbackTokenBackend,
    JSONFileTokenBackend,
    MercadoLibreAuthClient,
    MercadoLibreClient,
    OAuthStateEncoder,
    SQLiteTokenBackend,
)
from meli_auth.core.config import AppSettings
from meli_auth.dependencies.config import get_app_settings
from meli_auth.services import (
    MercadoLibreAuthService,
    NoTokenModelConfiguredError,
    TokenCipherService,
    TokenStore,
    UserReader,
)

logger = logging.getLogger(__name__)


def build_credential_backend(settings: AppSettings) -> CredentialBackend:
    """Select the token backend named by the storage settings.

    With ``USE_DATABASE`` the database backend is primary and the JSON file
    backend serves as its fallback; otherwise tokens live in the file only.
    """
    storage = settings.storage
    file_backend = JSONFileTokenBackend(storage.token_dir)
    if not storage.use_database:
        return file_backend

    if storage.database_engine == "dynamodb":
        if not storage.dynamodb_table_name:
            raise NoTokenModelConfiguredError(
                "USE_DATABASE is enabled but DYNAMODB_TABLE_NAME is not set."
            )
        database: CredentialBackend = DynamoDBTokenBackend(storage)
    else:
        if not storage.sqlite_path:
            raise NoTokenModelConfiguredError(
                "USE_DATABASE is enabled but TOKEN_DB_PATH is not set."
            )
        database = SQLiteTokenBackend(storage.sqlite_path)

    logger.debug(
        "Using %s token backend with file fallback in %s",
        storage.database_engine,
        storage.token_dir,
    )
    return FallbackTokenBackend(database, file_backend)


def build_auth_service(settings: AppSettings) -> MercadoLibreAuthService:
    """Assemble gateway, store and orchestrator for the configured service."""
    secret = settings.security.token_encryption_secret
    cipher = TokenCipherService(secret=secret) if secret else None
    token_store = TokenStore(
        build_credential_backend(settings),
        settings.token_service,
        cipher=cipher,
    )
    return MercadoLibreAuthService(
        MercadoLibreAuthClient(settings.mercadolibre),
        token_store,
        authorization_code=settings.mercadolibre.authorization_code,
        code_verifier=settings.mercadolibre.code_verifier,
    )


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder keyed by the application secret."""
    return OAuthStateEncoder(secret_key=get_app_settings().mercadolibre.secret_key)


@lru_cache()
def get_auth_service() -> MercadoLibreAuthService:
    """Provide the process-wide MercadoLibre auth service."""
    return build_auth_service(get_app_settings())


@lru_cache()
def get_mercadolibre_client() -> MercadoLibreClient:
    """Provide the bearer-token injecting API client."""
    return MercadoLibreClient(
        get_auth_service(),
        api_base_url=get_app_settings().mercadolibre.api_base_url,
    )


def get_user_reader() -> UserReader:
    """Build a reader for the authorized account profile."""
    return UserReader(get_mercadolibre_client())


__all__ = [
    "build_auth_service",
    "build_credential_backend",
    "get_auth_service",
    "get_mercadolibre_client",
    "get_oauth_state_encoder",
    "get_user_reader",
]
