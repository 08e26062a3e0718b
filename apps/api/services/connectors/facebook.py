"""Facebook Login (JS SDK) short-lived to long-lived user token exchange."""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from services.connectors.oauth import parse_token_response
from services.connectors.providers import parse_facebook_profile
from services.connectors.types import (
    ProfileFetchError,
    ProfileIdentity,
    ProviderCredentials,
    TokenExchangeError,
    TokenSet,
)

logger = logging.getLogger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com/v17.0"


async def exchange_long_lived_token(
    client: httpx.AsyncClient,
    credentials: ProviderCredentials,
    short_lived_token: str,
    now_ms: Optional[int] = None,
) -> TokenSet:
    """Trade a browser-issued token for a long-lived one. Facebook issues no refresh token."""
    try:
        response = await client.get(
            f"{GRAPH_API_BASE}/oauth/access_token",
            params={
                "grant_type": "fb_exchange_token",
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "fb_exchange_token": short_lived_token,
            },
        )
    except httpx.HTTPError as exc:
        raise TokenExchangeError(f"Token request failed: {exc.__class__.__name__}") from exc

    if not response.is_success:
        raise TokenExchangeError(f"Failed to exchange token: HTTP {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise TokenExchangeError("Token response was not valid JSON") from exc

    captured_at_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    tokens = parse_token_response(payload, captured_at_ms)
    return TokenSet(access_token=tokens.access_token, refresh_token=None, expires_at=tokens.expires_at)


async def fetch_facebook_user(client: httpx.AsyncClient, access_token: str) -> ProfileIdentity:
    try:
        response = await client.get(
            f"{GRAPH_API_BASE}/me",
            params={"fields": "id,name", "access_token": access_token},
        )
    except httpx.HTTPError as exc:
        raise ProfileFetchError(f"Profile request failed: {exc.__class__.__name__}") from exc

    if not response.is_success:
        raise ProfileFetchError(f"Failed to get profile: HTTP {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProfileFetchError("Profile response was not valid JSON") from exc

    identity = parse_facebook_profile(payload) if isinstance(payload, dict) else None
    if identity is None:
        raise ProfileFetchError("Profile response did not include an id")
    return identity
