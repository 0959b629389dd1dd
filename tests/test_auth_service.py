from __future__ import annotations

import asyncio
from datetime import timedelta
from pathlib import Path

import pytest

from fakes import BrokenBackend, FakeAuthClient, InMemoryBackend, SwitchableBackend, make_grant
from meli_auth.clients.backends import FallbackTokenBackend
from meli_auth.clients.file_store import JSONFileTokenBackend
from meli_auth.clients.mercadolibre_auth import TokenExchangeError, TokenRefreshError
from meli_auth.models.token import TokenState
from meli_auth.services.auth_service import MercadoLibreAuthService
from meli_auth.services.token_store import TokenStore


def _service(
    clock,
    backend=None,
    auth_client: FakeAuthClient | None = None,
    authorization_code: str | None = "TG-bootstrap",
) -> tuple[MercadoLibreAuthService, FakeAuthClient, object]:
    backend = backend if backend is not None else InMemoryBackend()
    auth_client = auth_client or FakeAuthClient()
    store = TokenStore(backend, "1234", clock=clock)
    service = MercadoLibreAuthService(
        auth_client,
        store,
        authorization_code=authorization_code,
        code_verifier="verifier",
    )
    return service, auth_client, backend


@pytest.mark.asyncio
async def test_authorize_without_record_exchanges_bootstrap_code_once(clock) -> None:
    service, auth_client, backend = _service(clock)
    assert service.state() is TokenState.NO_CREDENTIAL

    record = await service.authorize()

    assert auth_client.exchange_calls == [("TG-bootstrap", "verifier")]
    assert auth_client.refresh_calls == []
    assert backend.writes == 1
    assert record.user_id == "U1"
    assert record.scope == "read"
    assert service.state() is TokenState.VALID


@pytest.mark.asyncio
async def test_authorize_with_valid_token_makes_no_remote_calls(clock) -> None:
    service, auth_client, backend = _service(clock)
    first = await service.authorize()

    second = await service.authorize()

    assert second == first
    assert len(auth_client.exchange_calls) == 1
    assert auth_client.refresh_calls == []
    assert backend.writes == 1


@pytest.mark.asyncio
async def test_authorize_with_expired_token_refreshes(clock) -> None:
    service, auth_client, backend = _service(clock)
    service.token_store.store_token(make_grant())
    clock.advance(21700)
    assert service.state() is TokenState.EXPIRED

    record = await service.authorize()

    assert auth_client.refresh_calls == ["R1"]
    assert auth_client.exchange_calls == []
    assert record.access_token != "A1"
    assert record.expires_at == clock.now + timedelta(seconds=21600)
    assert backend.writes == 2


@pytest.mark.asyncio
async def test_refresh_rejection_keeps_expired_record(clock) -> None:
    auth_client = FakeAuthClient(reject_refresh=True)
    service, _, backend = _service(clock, auth_client=auth_client)
    original = service.token_store.store_token(make_grant())
    clock.advance(21600)

    with pytest.raises(TokenRefreshError):
        await service.authorize()

    assert backend.writes == 1
    assert backend.records["1234"] == original
    assert service.state() is TokenState.EXPIRED


@pytest.mark.asyncio
async def test_exchange_rejection_persists_nothing(clock) -> None:
    service, _, backend = _service(clock, auth_client=FakeAuthClient(reject_exchange=True))

    with pytest.raises(TokenExchangeError):
        await service.authorize()

    assert backend.writes == 0
    assert service.state() is TokenState.NO_CREDENTIAL


@pytest.mark.asyncio
async def test_authorize_without_bootstrap_code_raises(clock) -> None:
    service, auth_client, _ = _service(clock, authorization_code=None)

    with pytest.raises(TokenExchangeError):
        await service.authorize()

    assert auth_client.exchange_calls == []


@pytest.mark.asyncio
async def test_concurrent_authorize_shares_one_refresh(clock) -> None:
    auth_client = FakeAuthClient(delay=0.01)
    service, _, backend = _service(clock, auth_client=auth_client)
    service.token_store.store_token(make_grant())
    clock.advance(21700)

    records = await asyncio.gather(*(service.authorize() for _ in range(5)))

    assert auth_client.refresh_calls == ["R1"]
    assert {record.access_token for record in records} == {"access-1"}
    assert backend.writes == 2


@pytest.mark.asyncio
async def test_database_outage_falls_back_to_file(tmp_path: Path, clock) -> None:
    database = BrokenBackend()
    backend = FallbackTokenBackend(database, JSONFileTokenBackend(tmp_path, clock=clock))
    service, auth_client, _ = _service(clock, backend=backend)

    record = await service.authorize()
    again = await service.authorize()

    assert record.access_token == "access-1"
    assert again.access_token == "access-1"
    assert len(auth_client.exchange_calls) == 1
    assert database.attempts >= 3
    assert (tmp_path / "1234-token.json").exists()


@pytest.mark.asyncio
async def test_token_stored_before_outage_is_served_from_file(tmp_path: Path, clock) -> None:
    database = SwitchableBackend(clock)
    backend = FallbackTokenBackend(database, JSONFileTokenBackend(tmp_path, clock=clock))
    service, auth_client, _ = _service(clock, backend=backend)
    await service.authorize()

    database.down = True
    record = await service.authorize()

    assert record.access_token == "access-1"
    assert len(auth_client.exchange_calls) == 1
    assert auth_client.refresh_calls == []


@pytest.mark.asyncio
async def test_refresh_during_outage_survives_database_recovery(tmp_path: Path, clock) -> None:
    database = SwitchableBackend(clock)
    backend = FallbackTokenBackend(database, JSONFileTokenBackend(tmp_path, clock=clock))
    service, auth_client, _ = _service(clock, backend=backend)
    await service.authorize()

    database.down = True
    clock.advance(21700)
    during = await service.authorize()
    assert during.refresh_token == "refresh-2"
    assert database.records["1234"].refresh_token == "refresh-1"

    database.down = False
    clock.advance(21700)
    after = await service.authorize()

    assert auth_client.refresh_calls == ["refresh-1", "refresh-2"]
    assert after.access_token == "access-3"
    assert database.records["1234"].refresh_token == "refresh-3"


@pytest.mark.asyncio
async def test_complete_authorization_replaces_stored_token(clock) -> None:
    service, auth_client, _ = _service(clock)
    service.token_store.store_token(make_grant(access_token="old"))

    record = await service.complete_authorization("TG-new")

    assert auth_client.exchange_calls == [("TG-new", None)]
    assert record.access_token == "access-1"
    assert service.token_store.get_token_data().access_token == "access-1"


def test_authorization_url_is_delegated(clock) -> None:
    service, _, _ = _service(clock)

    assert "state=abc" in service.get_authorization_url(state="abc")
