"""MercadoLibre REST client that injects bearer tokens into every call."""

from __future__ import annotations

import logging
from typing import Any, Optional, TYPE_CHECKING
from urllib.parse import urljoin

import httpx

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from meli_auth.services.auth_service import MercadoLibreAuthService

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.mercadolibre.com/"


class InvalidHttpMethodError(ValueError):
    """Raised when ``call_api`` is asked for an unsupported HTTP method."""


class MercadoLibreClient:
    """Call MercadoLibre resource endpoints with a valid access token."""

    SUPPORTED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})
    _BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

    def __init__(
        self,
        auth_service: "MercadoLibreAuthService",
        *,
        api_base_url: str = DEFAULT_API_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self._auth_service = auth_service
        self._api_base_url = api_base_url if api_base_url.endswith("/") else f"{api_base_url}/"
        self._transport = transport
        self._timeout = timeout

    async def get_access_token(self) -> str:
        """Return a bearer token, refreshing or bootstrapping it first if needed."""
        record = await self._auth_service.authorize()
        return record.access_token

    async def call_api(
        self, endpoint: str, method: str = "GET", data: Optional[Any] = None
    ) -> Any:
        """Send ``method`` to ``endpoint`` and return the decoded JSON body."""
        verb = method.upper()
        if verb not in self.SUPPORTED_METHODS:
            raise InvalidHttpMethodError(f"Invalid HTTP method: {method}")

        access_token = await self.get_access_token()
        url = urljoin(self._api_base_url, endpoint.lstrip("/"))
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        request_kwargs: dict[str, Any] = {"headers": headers}
        if verb in self._BODY_METHODS:
            request_kwargs["json"] = data if data is not None else {}

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(verb, url, **request_kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            try:
                detail: Any = exc.response.json()
            except ValueError:
                detail = exc.response.text
            logger.error("Error calling MercadoLibre API %s %s: %s", verb, url, detail)
            raise
        except httpx.HTTPError as exc:
            logger.error("Error calling MercadoLibre API %s %s: %s", verb, url, exc)
            raise

        if not response.content:
            return None
        return response.json()


__all__ = ["DEFAULT_API_BASE_URL", "InvalidHttpMethodError", "MercadoLibreClient"]
