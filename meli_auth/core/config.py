"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the operator script and
library consumers build the credential layer from one configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AnyHttpUrl, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    populate_by_name=True,
    extra="ignore",
)


class MercadoLibreSettings(BaseSettings):
    """Credentials and endpoints for the MercadoLibre OAuth application."""

    app_id: str = Field(..., alias="APP_ID")
    secret_key: str = Field(..., alias="SECRET_KEY")
    redirect_uri: AnyHttpUrl = Field(..., alias="REDIRECT_URI")
    authorization_code: Optional[str] = Field(
        None,
        alias="AUTHORIZATION_CODE",
        description="One-time code used to bootstrap the first token.",
    )
    code_verifier: Optional[str] = Field(
        None,
        alias="CODE_VERIFIER",
        description="PKCE verifier paired with the bootstrap authorization code.",
    )
    authorization_url: str = Field(
        "https://auth.mercadolibre.com.mx/authorization",
        alias="MERCADOLIBRE_AUTHORIZATION_URL",
    )
    token_url: str = Field(
        "https://api.mercadolibre.com/oauth/token", alias="MERCADOLIBRE_TOKEN_URL"
    )
    api_base_url: str = Field(
        "https://api.mercadolibre.com/", alias="MERCADOLIBRE_API_BASE_URL"
    )

    model_config = _ENV_CONFIG


class StorageSettings(BaseSettings):
    """Where token records are persisted."""

    use_database: bool = Field(False, alias="USE_DATABASE")
    database_engine: Literal["sqlite", "dynamodb"] = Field(
        "sqlite", alias="DATABASE_ENGINE"
    )
    sqlite_path: Optional[str] = Field("data/tokens.db", alias="TOKEN_DB_PATH")
    dynamodb_table_name: Optional[str] = Field(None, alias="DYNAMODB_TABLE_NAME")
    aws_region: str = Field("us-east-1", alias="AWS_REGION")
    token_dir: Path = Field(
        Path("data"),
        alias="TOKEN_DIR",
        description="Directory holding the per-service JSON token files.",
    )

    model_config = _ENV_CONFIG


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens. "
            "Tokens are stored in plaintext when omitted."
        ),
    )

    model_config = _ENV_CONFIG


class OAuthSettings(BaseSettings):
    """Browser OAuth flow configuration."""

    state_ttl_seconds: int = Field(900, alias="OAUTH_STATE_TTL")

    model_config = _ENV_CONFIG


class AppSettings(BaseSettings):
    """Root settings object for the credential layer."""

    environment: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="APP_LOG_LEVEL")
    service_name: Optional[str] = Field(
        None,
        alias="SERVICE_NAME",
        description="Key identifying the stored token. Defaults to the app id.",
    )
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users after authorization.",
    )
    mercadolibre: MercadoLibreSettings = Field(default_factory=MercadoLibreSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)

    model_config = _ENV_CONFIG

    @property
    def token_service(self) -> str:
        """Service key under which the token record is stored."""
        return self.service_name or self.mercadolibre.app_id


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "MercadoLibreSettings",
    "OAuthSettings",
    "SecuritySettings",
    "StorageSettings",
    "get_settings",
]
