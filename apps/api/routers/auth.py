"""
Authentication router for connecting social accounts via OAuth.
"""

import logging
from typing import AsyncGenerator, Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from routers.auth_scope import get_current_user_id
from services.connections import save_connection
from services.connectors import (
    ConnectionData,
    MissingCredentialsError,
    OAuthFlowError,
    ProviderRegistry,
    UnknownPlatformError,
    complete_authorization,
    get_provider_registry,
    start_authorization,
)
from services.connectors.facebook import exchange_long_lived_token, fetch_facebook_user
from services.connectors.handshake import clear_handshake, load_handshake, store_handshake

logger = logging.getLogger(__name__)

router = APIRouter()


class FacebookTokenRequest(BaseModel):
    accessToken: Optional[str] = None
    userID: Optional[str] = None


class FacebookTokenResponse(BaseModel):
    success: bool
    message: str


async def get_oauth_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client for provider calls, bounded by the configured timeout."""
    async with httpx.AsyncClient(timeout=httpx.Timeout(settings.OAUTH_HTTP_TIMEOUT_SECONDS)) as client:
        yield client


def _app_redirect(path: str, **params: str) -> RedirectResponse:
    url = f"{settings.APP_URL.rstrip('/')}{path}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url=url, status_code=302)


def _connections_redirect(**params: str) -> RedirectResponse:
    return _app_redirect(settings.CONNECTIONS_PAGE_PATH, **params)


@router.get("/{platform}")
async def start_oauth(
    platform: str,
    user_id: Optional[str] = Depends(get_current_user_id),
    registry: ProviderRegistry = Depends(get_provider_registry),
):
    """Redirect the browser to the provider's consent screen."""
    logger.info("OAuth authentication for platform: %s", platform)
    try:
        registry.config_for(platform)
        registry.credentials_for(platform)
    except UnknownPlatformError:
        raise HTTPException(status_code=400, detail="Invalid platform")
    except MissingCredentialsError as exc:
        logger.error("Missing environment variables for %s: %s", platform, ", ".join(exc.missing))
        return _connections_redirect(error=exc.error_tag(platform))

    if not user_id:
        logger.warning("No authenticated user found for %s connect", platform)
        return _app_redirect(settings.LOGIN_PAGE_PATH)

    started = start_authorization(registry, platform, user_id)
    response = RedirectResponse(url=started.authorization_url, status_code=302)
    store_handshake(response, started.handshake, secure=settings.is_production)
    return response


@router.get("/{platform}/callback")
async def oauth_callback(
    platform: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    user_id: Optional[str] = Depends(get_current_user_id),
    registry: ProviderRegistry = Depends(get_provider_registry),
    http_client: httpx.AsyncClient = Depends(get_oauth_http_client),
    db: AsyncSession = Depends(get_db),
):
    """Complete the provider redirect and persist the connection."""
    logger.info("OAuth callback for platform: %s", platform)

    async def _save(owner_id: str, connected_platform: str, data: ConnectionData) -> None:
        await save_connection(db, owner_id, connected_platform, data)

    outcome = await complete_authorization(
        registry=registry,
        http_client=http_client,
        save_connection=_save,
        platform=platform,
        code=code,
        state=state,
        provider_error=error,
        handshake=load_handshake(request.cookies),
        current_user_id=user_id,
    )

    if outcome.ok:
        response = _connections_redirect(success=outcome.success_tag)
    else:
        response = _connections_redirect(error=outcome.error_tag)
    # One callback consumes the handshake whatever the outcome.
    clear_handshake(response, secure=settings.is_production)
    return response


@router.post("/facebook/token", response_model=FacebookTokenResponse)
async def facebook_token(
    payload: FacebookTokenRequest,
    user_id: Optional[str] = Depends(get_current_user_id),
    registry: ProviderRegistry = Depends(get_provider_registry),
    http_client: httpx.AsyncClient = Depends(get_oauth_http_client),
    db: AsyncSession = Depends(get_db),
):
    """Store a Facebook connection from a token obtained by the JS SDK login button."""
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    if not payload.accessToken or not payload.userID:
        raise HTTPException(status_code=400, detail="Missing access token or user ID")

    try:
        credentials = registry.credentials_for("facebook")
    except MissingCredentialsError:
        raise HTTPException(status_code=500, detail="Missing Facebook app credentials")

    try:
        tokens = await exchange_long_lived_token(http_client, credentials, payload.accessToken)
        profile = await fetch_facebook_user(http_client, tokens.access_token)
        await save_connection(
            db,
            user_id,
            "facebook",
            ConnectionData(
                access_token=tokens.access_token,
                refresh_token=None,
                expires_at=tokens.expires_at,
                profile_id=profile.id,
                profile_name=profile.name,
            ),
        )
    except OAuthFlowError as exc:
        logger.warning("Facebook token handling failed for user %s: %s", user_id, exc)
        raise HTTPException(status_code=500, detail="Failed to process Facebook authentication")

    return FacebookTokenResponse(success=True, message="Facebook account connected successfully")
