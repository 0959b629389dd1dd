"""
Domain models for OAuth token persistence.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class TokenState(str, enum.Enum):
    """Lifecycle state of the credential held for a service."""

    NO_CREDENTIAL = "no_credential"
    VALID = "valid"
    EXPIRED = "expired"


class TokenRecord(BaseModel):
    """Canonical token record, one per service key.

    Serialized with camelCase keys. Validation also accepts the older
    snake_case documents (``access_token``, ``expires_at`` ...) so records
    written by previous deployments load into the same shape.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    service: str
    access_token: str = Field(
        ...,
        validation_alias=AliasChoices("accessToken", "access_token"),
        serialization_alias="accessToken",
    )
    refresh_token: str = Field(
        ...,
        validation_alias=AliasChoices("refreshToken", "refresh_token"),
        serialization_alias="refreshToken",
    )
    expires_at: datetime = Field(
        ...,
        validation_alias=AliasChoices("expiresIn", "expiresAt", "expires_at"),
        serialization_alias="expiresIn",
        description="Absolute expiry instant.",
    )
    user_id: str = Field(
        ...,
        validation_alias=AliasChoices("userId", "user_id"),
        serialization_alias="userId",
    )
    scope: Optional[str] = None
    encrypted: bool = Field(
        False, description="Whether the token fields hold ciphertext."
    )
    created_at: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )
    updated_at: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
    )

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value: Any) -> Any:
        # MercadoLibre returns numeric user ids.
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("expires_at", "created_at", "updated_at")
    @classmethod
    def _ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "TokenRecord":
        """Build a record from a persisted document in either naming convention."""
        return cls.model_validate(document)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the canonical persisted JSON shape."""
        exclude = None if self.encrypted else {"encrypted"}
        return self.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude=exclude
        )


__all__ = ["TokenRecord", "TokenState"]
