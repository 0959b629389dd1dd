"""
FastAPI routes for authorizing the application and inspecting its token.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from meli_auth.clients.mercadolibre_auth import (
    OAuthStateError,
    TokenExchangeError,
    TokenRefreshError,
)
from meli_auth.dependencies import (
    get_app_settings,
    get_auth_service,
    get_oauth_state_encoder,
    get_user_reader,
)
from meli_auth.schemas import OAuthCallbackPayload, TokenStatusResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/mercadolibre/authorize", status_code=HTTPStatus.OK)
async def start_mercadolibre_oauth_flow(
    request: Request,
    auth_service: Annotated[Any, Depends(get_auth_service)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    redirect_to: str | None = Query(
        default=None,
        description="Optional URL to redirect back to on successful authorization.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the MercadoLibre consent screen.",
    ),
) -> Any:
    """Generate a signed state token and the MercadoLibre authorization URL."""
    state = state_encoder.encode(
        {
            "nonce": uuid.uuid4().hex,
            "redirect_to": redirect_to,
            "issued_at": datetime.now(timezone.utc).isoformat(),
        }
    )
    authorization_url = auth_service.get_authorization_url(state=state)

    if redirect or _wants_html(request):
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return {"authorization_url": authorization_url, "state": state}


@router.post("/auth/mercadolibre/callback", status_code=HTTPStatus.OK)
async def handle_mercadolibre_oauth_callback(
    payload: OAuthCallbackPayload,
    auth_service: Annotated[Any, Depends(get_auth_service)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Verify the state, exchange the code and store the resulting token."""
    try:
        state_data = state_encoder.decode(payload.state)
    except OAuthStateError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc

    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )
    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc
    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    if datetime.now(timezone.utc) - issued_at > timedelta(
        seconds=settings.oauth.state_ttl_seconds
    ):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )

    try:
        record = await auth_service.complete_authorization(
            payload.code, payload.code_verifier
        )
    except TokenExchangeError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc

    return {
        "status": "connected",
        "user_id": record.user_id,
        "redirect_to": state_data.get("redirect_to"),
    }


@router.get("/auth/mercadolibre/callback", status_code=HTTPStatus.OK)
async def handle_mercadolibre_oauth_callback_get(
    request: Request,
    auth_service: Annotated[Any, Depends(get_auth_service)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    settings: Annotated[Any, Depends(get_app_settings)],
    state: str = Query(..., description="OAuth state token."),
    code: str = Query(..., description="Authorization code returned by MercadoLibre."),
    code_verifier: str | None = Query(
        default=None, description="PKCE verifier bound to the authorization code."
    ),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    result = await handle_mercadolibre_oauth_callback(
        payload=OAuthCallbackPayload(
            state=state, code=code, code_verifier=code_verifier
        ),
        auth_service=auth_service,
        state_encoder=state_encoder,
        settings=settings,
    )

    redirect_target = result.get("redirect_to") or settings.frontend_base_url
    if redirect_target and (redirect or _wants_html(request)):
        return RedirectResponse(url=str(redirect_target), status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return JSONResponse(content=result)


@router.get(
    "/auth/mercadolibre/status",
    response_model=TokenStatusResponse,
    status_code=HTTPStatus.OK,
)
async def mercadolibre_token_status(
    auth_service: Annotated[Any, Depends(get_auth_service)],
) -> TokenStatusResponse:
    """Report whether a token is stored and whether it is still valid."""
    store = auth_service.token_store
    record = store.get_token_data()
    if record is None:
        return TokenStatusResponse(service=store.service, state=auth_service.state_of(None))
    return TokenStatusResponse(
        service=record.service,
        state=auth_service.state_of(record),
        user_id=record.user_id,
        scope=record.scope,
        expires_at=record.expires_at,
        updated_at=record.updated_at,
    )


@router.get("/users/me", status_code=HTTPStatus.OK)
async def read_authorized_user(
    user_reader: Annotated[Any, Depends(get_user_reader)],
) -> dict:
    """Proxy the MercadoLibre profile of the authorized account."""
    try:
        return await user_reader.get_user_info()
    except TokenExchangeError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="MercadoLibre account not connected.",
        ) from exc
    except TokenRefreshError as exc:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="MercadoLibre authorization was revoked; authorize the application again.",
        ) from exc
    except httpx.HTTPError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail="MercadoLibre API request failed.",
        ) from exc
