"""
Read, write and expiry checks for the persisted MercadoLibre token.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

from meli_auth.clients.backends import CredentialBackend
from meli_auth.models.token import TokenRecord
from meli_auth.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NoTokenModelConfiguredError(Exception):
    """Raised when a token store is built without a storage backend."""


class TokenStore:
    """Persist the token of one service through a credential backend.

    Grant responses carry a relative ``expires_in``; it is converted to an
    absolute ``expires_at`` once, when the token is stored, and only the
    absolute instant is persisted.
    """

    def __init__(
        self,
        backend: Optional[CredentialBackend],
        service: str,
        *,
        clock: Clock = utcnow,
        cipher: Optional[TokenCipherService] = None,
    ) -> None:
        if backend is None:
            raise NoTokenModelConfiguredError(
                "A credential backend is required to build a TokenStore."
            )
        if not service:
            raise NoTokenModelConfiguredError("A service name is required to key tokens.")
        self._backend = backend
        self._service = service
        self._clock = clock
        self._cipher = cipher

    @property
    def service(self) -> str:
        return self._service

    def now(self) -> datetime:
        return self._clock()

    def get_token_data(self) -> Optional[TokenRecord]:
        """Return the stored record for this service, or ``None``."""
        record = self._backend.read(self._service)
        if record is None:
            return None
        if self._cipher is None:
            if record.encrypted:
                raise NoTokenModelConfiguredError(
                    f"Token stored for {self._service} is encrypted but no "
                    "TOKEN_ENCRYPTION_SECRET is configured."
                )
            return record

        if not record.encrypted:
            # Legacy plaintext record: rewrite it sealed.
            logger.info("Encrypting plaintext token stored for %s.", self._service)
            self._backend.write(self._cipher.seal(record))
            return record
        return self._cipher.open(record)

    def store_token(self, grant: Mapping[str, Any]) -> TokenRecord:
        """Map a raw OAuth grant response to a record and persist it."""
        record = TokenRecord(
            service=self._service,
            access_token=grant["access_token"],
            refresh_token=grant["refresh_token"],
            expires_at=self._clock() + timedelta(seconds=int(grant["expires_in"])),
            user_id=grant["user_id"],
            scope=grant.get("scope"),
        )
        if self._cipher is None:
            return self._backend.write(record)
        stored = self._backend.write(self._cipher.seal(record))
        return self._cipher.open(stored)

    def is_token_expired(self, record: TokenRecord) -> bool:
        """True once the current time reaches the record's expiry."""
        return self._clock() >= record.expires_at


__all__ = ["NoTokenModelConfiguredError", "TokenStore", "utcnow"]
