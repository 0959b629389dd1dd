"""
Authorization flow deciding when to exchange, refresh or reuse a token.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from meli_auth.clients.mercadolibre_auth import MercadoLibreAuthClient, TokenExchangeError
from meli_auth.models.token import TokenRecord, TokenState
from meli_auth.services.token_store import TokenStore

logger = logging.getLogger(__name__)


class MercadoLibreAuthService:
    """Produce a valid token for one service.

    ``authorize`` moves the credential through three states: with no record
    the configured bootstrap code is exchanged, an expired record is
    refreshed, and a valid record is returned as is. Exchanges and refreshes
    run under a lock and re-read the store once it is held, so concurrent
    callers racing on an expired token share a single refresh.
    """

    def __init__(
        self,
        auth_client: MercadoLibreAuthClient,
        token_store: TokenStore,
        *,
        authorization_code: Optional[str] = None,
        code_verifier: Optional[str] = None,
    ) -> None:
        self._auth_client = auth_client
        self._store = token_store
        self._authorization_code = authorization_code
        self._code_verifier = code_verifier
        self._lock = asyncio.Lock()

    @property
    def token_store(self) -> TokenStore:
        return self._store

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        return self._auth_client.build_authorization_url(state=state)

    def state_of(self, record: Optional[TokenRecord]) -> TokenState:
        if record is None:
            return TokenState.NO_CREDENTIAL
        if self._store.is_token_expired(record):
            return TokenState.EXPIRED
        return TokenState.VALID

    def state(self) -> TokenState:
        """Return the current lifecycle state of the stored credential."""
        return self.state_of(self._store.get_token_data())

    async def authorize(self) -> TokenRecord:
        """Return a usable token, exchanging or refreshing it when needed."""
        record = self._store.get_token_data()
        if self.state_of(record) is TokenState.VALID:
            return record  # type: ignore[return-value]

        async with self._lock:
            record = self._store.get_token_data()
            state = self.state_of(record)
            if state is TokenState.VALID:
                return record  # type: ignore[return-value]
            if state is TokenState.NO_CREDENTIAL:
                return await self._bootstrap()

            logger.info("Access token for %s expired; refreshing.", self._store.service)
            grant = await self._auth_client.refresh_token(record.refresh_token)  # type: ignore[union-attr]
            return self._store.store_token(grant)

    async def _bootstrap(self) -> TokenRecord:
        if not self._authorization_code:
            raise TokenExchangeError(
                f"No token stored for {self._store.service} and no authorization "
                "code configured; authorize the application first."
            )
        logger.info(
            "No token stored for %s; exchanging configured authorization code.",
            self._store.service,
        )
        grant = await self._auth_client.exchange_code(
            self._authorization_code, self._code_verifier
        )
        return self._store.store_token(grant)

    async def complete_authorization(
        self, code: str, code_verifier: Optional[str] = None
    ) -> TokenRecord:
        """Exchange a freshly issued code and replace whatever is stored."""
        async with self._lock:
            grant = await self._auth_client.exchange_code(code, code_verifier)
            record = self._store.store_token(grant)
        logger.info(
            "Stored new MercadoLibre token for %s (user %s).",
            record.service,
            record.user_id,
        )
        return record


__all__ = ["MercadoLibreAuthService"]
