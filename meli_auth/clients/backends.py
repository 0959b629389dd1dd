"""
Credential backend contract and the fallback decorator used for resilience.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, runtime_checkable

from meli_auth.models.token import TokenRecord

logger = logging.getLogger(__name__)


class BackendUnavailableError(Exception):
    """Raised when a storage backend cannot be reached."""


@runtime_checkable
class CredentialBackend(Protocol):
    """Durable key-value persistence for one token record per service."""

    def write(self, record: TokenRecord) -> TokenRecord:
        """Upsert ``record`` keyed by its service and return the stored copy."""

    def read(self, service: str) -> Optional[TokenRecord]:
        """Return the stored record for ``service`` or ``None`` when absent."""


class FallbackTokenBackend:
    """Keep ``secondary`` as a standby copy of ``primary``.

    Successful primary writes are mirrored to the secondary. When the primary
    raises :class:`BackendUnavailableError`, reads and writes are served by the
    secondary alone. On reads with both backends reachable, differing copies
    are reconciled in favour of the most recently updated one, and a newer
    secondary copy is written back to the primary.
    """

    def __init__(self, primary: CredentialBackend, secondary: CredentialBackend) -> None:
        self._primary = primary
        self._secondary = secondary

    @property
    def primary(self) -> CredentialBackend:
        return self._primary

    @property
    def secondary(self) -> CredentialBackend:
        return self._secondary

    def _degraded(self, action: str, service: str, exc: Exception) -> None:
        logger.warning(
            "Primary token backend %s failed to %s token for %s (%s); "
            "falling back to %s.",
            type(self._primary).__name__,
            action,
            service,
            exc,
            type(self._secondary).__name__,
        )

    def write(self, record: TokenRecord) -> TokenRecord:
        try:
            stored = self._primary.write(record)
        except BackendUnavailableError as exc:
            self._degraded("store", record.service, exc)
            return self._secondary.write(record)

        try:
            self._secondary.write(stored)
        except BackendUnavailableError as exc:
            logger.warning(
                "Could not mirror token for %s to %s: %s",
                record.service,
                type(self._secondary).__name__,
                exc,
            )
        return stored

    def read(self, service: str) -> Optional[TokenRecord]:
        try:
            current = self._primary.read(service)
        except BackendUnavailableError as exc:
            self._degraded("read", service, exc)
            return self._secondary.read(service)

        try:
            standby = self._secondary.read(service)
        except BackendUnavailableError as exc:
            logger.warning(
                "Could not read standby token for %s from %s: %s",
                service,
                type(self._secondary).__name__,
                exc,
            )
            return current

        if standby is None or _same_credential(current, standby):
            return current
        if current is not None and _updated(current) >= _updated(standby):
            return current

        logger.warning(
            "Standby token for %s is newer than the %s copy; restoring it.",
            service,
            type(self._primary).__name__,
        )
        try:
            return self._primary.write(standby)
        except BackendUnavailableError as exc:
            logger.warning("Could not restore token for %s: %s", service, exc)
            return standby


def _same_credential(left: Optional[TokenRecord], right: TokenRecord) -> bool:
    return left is not None and (
        left.access_token,
        left.refresh_token,
        left.expires_at,
    ) == (right.access_token, right.refresh_token, right.expires_at)


def _updated(record: TokenRecord) -> datetime:
    return record.updated_at or datetime.min.replace(tzinfo=timezone.utc)


__all__ = ["BackendUnavailableError", "CredentialBackend", "FallbackTokenBackend"]
