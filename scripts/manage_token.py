"""Operator tool for authorizing the MercadoLibre application by hand.

A rejected refresh token is terminal for the stored credential; the way back
is to open the consent URL, approve the application and exchange the code
MercadoLibre appends to the redirect URI::

    python -m scripts.manage_token url
    python -m scripts.manage_token exchange --code TG-XXXXXXXX
    python -m scripts.manage_token status
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Callable

from pydantic import ValidationError

from meli_auth.clients.backends import BackendUnavailableError
from meli_auth.clients.mercadolibre_auth import OAuthGatewayError
from meli_auth.core.config import AppSettings
from meli_auth.core.logging import configure_logging
from meli_auth.dependencies.clients import build_auth_service
from meli_auth.services import MercadoLibreAuthService, NoTokenModelConfiguredError

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_AUTH_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _print_url(service: MercadoLibreAuthService) -> int:
    print(service.get_authorization_url())
    return EXIT_OK


def _exchange(
    service: MercadoLibreAuthService, code: str, code_verifier: str | None
) -> int:
    record = asyncio.run(service.complete_authorization(code, code_verifier))
    print(
        f"Stored token for {record.service} (user {record.user_id}), "
        f"expires at {record.expires_at.isoformat()}."
    )
    return EXIT_OK


def _status(service: MercadoLibreAuthService) -> int:
    record = service.token_store.get_token_data()
    summary = {
        "service": service.token_store.service,
        "state": service.state_of(record).value,
    }
    if record is not None:
        summary.update(
            {
                "user_id": record.user_id,
                "scope": record.scope,
                "expires_at": record.expires_at.isoformat(),
            }
        )
    print(json.dumps(summary, indent=2))
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Authorize the MercadoLibre application and inspect its token."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("url", help="Print the consent URL to open in a browser.")

    exchange_parser = subparsers.add_parser(
        "exchange",
        help="Exchange an authorization code and replace the stored token.",
    )
    exchange_parser.add_argument(
        "--code", required=True, help="Authorization code from the redirect URI."
    )
    exchange_parser.add_argument(
        "--code-verifier",
        default=None,
        help="PKCE verifier bound to the code, when the app requires PKCE.",
    )

    subparsers.add_parser("status", help="Show the state of the stored token.")
    return parser


def main(
    argv: list[str] | None = None,
    *,
    service_factory: Callable[[AppSettings], MercadoLibreAuthService] = build_auth_service,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = AppSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    configure_logging(settings.log_level)

    try:
        service = service_factory(settings)
        handlers: dict[str, Callable[[], int]] = {
            "url": lambda: _print_url(service),
            "exchange": lambda: _exchange(service, args.code, args.code_verifier),
            "status": lambda: _status(service),
        }
        return handlers[args.command]()
    except NoTokenModelConfiguredError as exc:
        print(f"Storage is misconfigured: {exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except OAuthGatewayError as exc:
        print(f"MercadoLibre rejected the request: {exc} {exc.payload or ''}", file=sys.stderr)
        return EXIT_AUTH_ERROR
    except BackendUnavailableError as exc:
        print(f"Token storage unavailable: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
