"""
MercadoLibre OAuth utilities.

These helpers talk to the remote authorization server: they build the consent
URL, exchange authorization codes and refresh access tokens. They never touch
local state.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urljoin

import httpx

from meli_auth.core.config import MercadoLibreSettings

logger = logging.getLogger(__name__)

_REQUIRED_GRANT_FIELDS = ("access_token", "refresh_token", "expires_in", "user_id")


class OAuthStateError(ValueError):
    """Raised when an OAuth state value is forged or malformed."""


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
        signature = hmac.new(self._secret_key, serialized, sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise OAuthStateError("OAuth state is not valid base64.") from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise OAuthStateError("Invalid OAuth state signature.")
        return json.loads(serialized)


class OAuthGatewayError(Exception):
    """Base class for rejections returned by the authorization server."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class TokenExchangeError(OAuthGatewayError):
    """Raised when an authorization code cannot be exchanged for a token.

    The code is invalid, expired or already consumed; retrying with the same
    code will not succeed.
    """


class TokenRefreshError(OAuthGatewayError):
    """Raised when the refresh token is rejected.

    The stored credential is dead and an operator has to authorize the
    application again.
    """


def _error_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class MercadoLibreAuthClient:
    """Build MercadoLibre authorization URLs and talk to the token endpoint."""

    def __init__(
        self,
        settings: MercadoLibreSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def build_authorization_url(self, state: Optional[str] = None) -> str:
        """Construct the MercadoLibre consent URL."""
        params = {
            "response_type": "code",
            "client_id": self._settings.app_id,
            "redirect_uri": str(self._settings.redirect_uri),
        }
        if state is not None:
            params["state"] = state
        return f"{self._settings.authorization_url}?{urlencode(params)}"

    async def _post_token(
        self, form: Dict[str, str], error_cls: type[OAuthGatewayError], action: str
    ) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(
                    self._settings.token_url,
                    data=form,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.error("Error while %s: %s", action, exc)
            raise error_cls(f"Failed {action}: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            payload = _error_payload(response)
            logger.error("Error while %s: %s %s", action, response.status_code, payload)
            raise error_cls(
                f"Failed {action} from MercadoLibre API.",
                status_code=response.status_code,
                payload=payload,
            )

        try:
            grant = response.json()
        except ValueError:
            grant = None
        if not isinstance(grant, dict):
            logger.error(
                "Unreadable token response while %s: %s", action, response.text
            )
            raise error_cls(
                f"Token endpoint returned a non-JSON-object body while {action}.",
                status_code=response.status_code,
                payload=response.text,
            )

        missing = [field for field in _REQUIRED_GRANT_FIELDS if not grant.get(field)]
        if missing:
            logger.error("Incomplete grant while %s; missing %s", action, ", ".join(missing))
            raise error_cls(
                f"Incomplete token payload returned while {action}.",
                status_code=response.status_code,
                payload=grant,
            )
        return grant

    async def exchange_code(
        self, code: str, code_verifier: Optional[str] = None
    ) -> Dict[str, Any]:
        """Exchange an authorization code for the raw grant response."""
        form = {
            "grant_type": "authorization_code",
            "client_id": self._settings.app_id,
            "client_secret": self._settings.secret_key,
            "code": code,
            "redirect_uri": str(self._settings.redirect_uri),
        }
        if code_verifier:
            form["code_verifier"] = code_verifier
        return await self._post_token(form, TokenExchangeError, "getting access token")

    async def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """Mint a new grant from a stored refresh token."""
        form = {
            "grant_type": "refresh_token",
            "client_id": self._settings.app_id,
            "client_secret": self._settings.secret_key,
            "refresh_token": refresh_token,
        }
        return await self._post_token(form, TokenRefreshError, "refreshing access token")

    async def get_user_data(self, access_token: str) -> Dict[str, Any]:
        """Fetch the account that authorized the application."""
        url = urljoin(self._settings.api_base_url, "users/me")
        async with self._client() as client:
            response = await client.get(
                url, headers={"Authorization": f"Bearer {access_token}"}
            )
        if response.status_code != httpx.codes.OK:
            logger.error(
                "Error while fetching user data: %s %s",
                response.status_code,
                _error_payload(response),
            )
            response.raise_for_status()
        return response.json()


__all__ = [
    "MercadoLibreAuthClient",
    "OAuthGatewayError",
    "OAuthStateEncoder",
    "OAuthStateError",
    "TokenExchangeError",
    "TokenRefreshError",
]
