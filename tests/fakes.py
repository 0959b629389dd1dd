"""Reusable fakes for the credential layer tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from meli_auth.clients.backends import BackendUnavailableError
from meli_auth.clients.mercadolibre_auth import TokenExchangeError, TokenRefreshError
from meli_auth.models.token import TokenRecord


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class InMemoryBackend:
    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.records: dict[str, TokenRecord] = {}
        self.reads = 0
        self.writes = 0
        self._clock = clock

    def write(self, record: TokenRecord) -> TokenRecord:
        self.writes += 1
        if self._clock is not None:
            record = record.model_copy(update={"updated_at": self._clock()})
        self.records[record.service] = record
        return record

    def read(self, service: str) -> Optional[TokenRecord]:
        self.reads += 1
        return self.records.get(service)


class SwitchableBackend(InMemoryBackend):
    """Database stand-in whose connection can be taken down and restored."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        super().__init__(clock)
        self.down = False

    def write(self, record: TokenRecord) -> TokenRecord:
        if self.down:
            raise BackendUnavailableError("connection refused")
        return super().write(record)

    def read(self, service: str) -> Optional[TokenRecord]:
        if self.down:
            raise BackendUnavailableError("connection refused")
        return super().read(service)


class BrokenBackend:
    """Database stand-in whose connection is down."""

    def __init__(self) -> None:
        self.attempts = 0

    def write(self, record: TokenRecord) -> TokenRecord:
        self.attempts += 1
        raise BackendUnavailableError("connection refused")

    def read(self, service: str) -> Optional[TokenRecord]:
        self.attempts += 1
        raise BackendUnavailableError("connection refused")


def make_grant(
    access_token: str = "A1",
    refresh_token: str = "R1",
    expires_in: int = 21600,
    user_id: Any = "U1",
    scope: Optional[str] = "read",
) -> dict[str, Any]:
    return {
        "access_token": access_token,
        "token_type": "Bearer",
        "refresh_token": refresh_token,
        "expires_in": expires_in,
        "user_id": user_id,
        "scope": scope,
    }


class FakeAuthClient:
    """Records gateway calls and hands out numbered grants."""

    def __init__(
        self,
        *,
        reject_exchange: bool = False,
        reject_refresh: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.exchange_calls: list[tuple[str, Optional[str]]] = []
        self.refresh_calls: list[str] = []
        self._reject_exchange = reject_exchange
        self._reject_refresh = reject_refresh
        self._delay = delay
        self._issued = 0

    def _next_grant(self) -> dict[str, Any]:
        self._issued += 1
        return make_grant(
            access_token=f"access-{self._issued}",
            refresh_token=f"refresh-{self._issued}",
        )

    def build_authorization_url(self, state: Optional[str] = None) -> str:
        suffix = f"&state={state}" if state else ""
        return f"https://auth.example.com/authorization?response_type=code{suffix}"

    async def exchange_code(
        self, code: str, code_verifier: Optional[str] = None
    ) -> dict[str, Any]:
        self.exchange_calls.append((code, code_verifier))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._reject_exchange:
            raise TokenExchangeError("invalid_grant", status_code=400, payload={"error": "invalid_grant"})
        return self._next_grant()

    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        self.refresh_calls.append(refresh_token)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._reject_refresh:
            raise TokenRefreshError("invalid_grant", status_code=400, payload={"error": "invalid_grant"})
        return self._next_grant()
