"""Schemas related to OAuth flows."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from meli_auth.models.token import TokenState


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by MercadoLibre.")
    state: str = Field(..., description="Opaque state token issued when starting OAuth.")
    code_verifier: Optional[str] = Field(
        None, description="PKCE verifier bound to the authorization code, if any."
    )


class TokenStatusResponse(BaseModel):
    """Public view of the stored credential; never exposes token values."""

    service: str
    state: TokenState
    user_id: Optional[str] = None
    scope: Optional[str] = None
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = ["OAuthCallbackPayload", "TokenStatusResponse"]
