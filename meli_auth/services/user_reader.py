"""Read the MercadoLibre account behind the stored credential."""

from __future__ import annotations

import logging
from typing import Any, Dict

from meli_auth.clients.mercadolibre_api import MercadoLibreClient

logger = logging.getLogger(__name__)


class UserReader:
    def __init__(self, client: MercadoLibreClient) -> None:
        self._client = client

    async def get_user_info(self) -> Dict[str, Any]:
        """Return the ``users/me`` profile of the authorized account."""
        try:
            return await self._client.call_api("users/me", "GET")
        except Exception:
            logger.exception("Error fetching MercadoLibre user information")
            raise


__all__ = ["UserReader"]
