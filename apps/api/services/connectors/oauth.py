"""OAuth2 authorization-code flow: authorize URL, code exchange and profile fetch."""

from __future__ import annotations

import base64
import logging
import secrets
import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from services.connectors.providers import ProviderRegistry
from services.connectors.types import (
    ConnectorStartResult,
    OAuthHandshake,
    ProfileFetchError,
    ProfileIdentity,
    ProviderConfig,
    ProviderCredentials,
    TokenExchangeError,
    TokenSet,
)

logger = logging.getLogger(__name__)

STATE_TOKEN_BYTES = 32


def generate_state() -> str:
    return secrets.token_urlsafe(STATE_TOKEN_BYTES)


def build_authorization_url(config: ProviderConfig, credentials: ProviderCredentials, state: str) -> str:
    query = urlencode(
        {
            "client_id": credentials.client_id,
            "redirect_uri": config.redirect_uri,
            "response_type": "code",
            "scope": config.scope,
            "state": state,
        }
    )
    return f"{config.authorize_url}?{query}"


def start_authorization(registry: ProviderRegistry, platform: str, user_id: str) -> ConnectorStartResult:
    """
    Prepare a provider redirect for ``user_id``.

    Raises UnknownPlatformError or MissingCredentialsError before any state is minted.
    """
    config = registry.config_for(platform)
    credentials = registry.credentials_for(platform)
    state = generate_state()
    logger.info("oauth_start platform=%s user=%s", config.platform, user_id)
    return ConnectorStartResult(
        platform=config.platform,
        authorization_url=build_authorization_url(config, credentials, state),
        handshake=OAuthHandshake(state=state, platform=config.platform, user_id=user_id),
    )


def _error_detail(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"error": response.text}


def _basic_auth_header(credentials: ProviderCredentials) -> str:
    raw = f"{credentials.client_id}:{credentials.client_secret}".encode()
    return f"Basic {base64.b64encode(raw).decode()}"


def _expires_at(expires_in: Any, captured_at_ms: int) -> Optional[int]:
    if expires_in in (None, ""):
        return None
    try:
        seconds = int(expires_in)
    except (TypeError, ValueError) as exc:
        raise TokenExchangeError(f"Invalid expires_in value: {expires_in!r}") from exc
    return captured_at_ms + seconds * 1000


def parse_token_response(payload: Any, captured_at_ms: int) -> TokenSet:
    if not isinstance(payload, dict):
        raise TokenExchangeError("Token response is not a JSON object", detail=payload)
    access_token = payload.get("access_token")
    if not access_token:
        raise TokenExchangeError("Token response did not include access_token", detail=payload)
    return TokenSet(
        access_token=str(access_token),
        refresh_token=str(payload["refresh_token"]) if payload.get("refresh_token") else None,
        expires_at=_expires_at(payload.get("expires_in"), captured_at_ms),
    )


async def exchange_code(
    client: httpx.AsyncClient,
    config: ProviderConfig,
    credentials: ProviderCredentials,
    code: str,
    now_ms: Optional[int] = None,
) -> TokenSet:
    """Exchange an authorization code at the provider's token endpoint."""
    form: Dict[str, str] = {
        "code": code,
        "redirect_uri": config.redirect_uri,
        "grant_type": "authorization_code",
    }
    headers = {"Content-Type": "application/x-www-form-urlencoded"}
    if config.token_auth == "basic":
        headers["Authorization"] = _basic_auth_header(credentials)
    else:
        form["client_id"] = credentials.client_id
        form["client_secret"] = credentials.client_secret

    logger.info("oauth_token_exchange platform=%s url=%s", config.platform, config.token_url)
    try:
        response = await client.post(config.token_url, data=form, headers=headers)
    except httpx.HTTPError as exc:
        raise TokenExchangeError(f"Token request failed: {exc.__class__.__name__}") from exc

    if not response.is_success:
        detail = _error_detail(response)
        raise TokenExchangeError(f"Failed to exchange code: HTTP {response.status_code}", detail=detail)

    try:
        payload = response.json()
    except ValueError as exc:
        raise TokenExchangeError("Token response was not valid JSON") from exc

    captured_at_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return parse_token_response(payload, captured_at_ms)


async def fetch_profile(client: httpx.AsyncClient, config: ProviderConfig, access_token: str) -> ProfileIdentity:
    """Load the provider profile and project it onto ``ProfileIdentity``."""
    headers: Dict[str, str] = {}
    params: Dict[str, str] = {}
    if config.profile_auth == "query":
        params["access_token"] = access_token
    else:
        headers["Authorization"] = f"Bearer {access_token}"

    logger.info("oauth_profile_fetch platform=%s", config.platform)
    try:
        response = await client.get(config.profile_url, headers=headers, params=params or None)
    except httpx.HTTPError as exc:
        raise ProfileFetchError(f"Profile request failed: {exc.__class__.__name__}") from exc

    if not response.is_success:
        raise ProfileFetchError(
            f"Failed to get profile: HTTP {response.status_code}",
            detail=_error_detail(response),
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise ProfileFetchError("Profile response was not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ProfileFetchError("Profile response is not a JSON object", detail=payload)

    identity = config.parse_profile(payload)
    if identity is None:
        raise ProfileFetchError("Profile response did not include an id", detail=payload)
    return identity
