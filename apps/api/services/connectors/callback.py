"""Callback handling for the OAuth connect flow."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from services.connectors.oauth import exchange_code, fetch_profile
from services.connectors.providers import ProviderRegistry
from services.connectors.types import (
    ERROR_MESSAGE_LIMIT,
    ConnectionData,
    InvalidCallbackParamsError,
    InvalidStateError,
    OAuthFlowError,
    OAuthHandshake,
    ProviderDeniedAuthorizationError,
    UnknownPlatformError,
)

logger = logging.getLogger(__name__)

ConnectionSaver = Callable[[str, str, ConnectionData], Awaitable[None]]


@dataclass(frozen=True)
class CallbackOutcome:
    platform: str
    success_tag: Optional[str] = None
    error_tag: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.success_tag is not None


def truncated_error_tag(platform: str, exc: BaseException) -> str:
    message = str(exc)[:ERROR_MESSAGE_LIMIT] or "failed"
    return f"oauth_{platform}_{message}"


def validate_handshake(
    handshake: Optional[OAuthHandshake],
    *,
    platform: str,
    state: str,
    current_user_id: Optional[str],
) -> OAuthHandshake:
    """All of state, platform and user must match the stored handshake."""
    if handshake is None:
        raise InvalidStateError("No OAuth handshake in progress")
    if not hmac.compare_digest(handshake.state.encode(), state.encode()):
        raise InvalidStateError("OAuth state mismatch")
    if handshake.platform != platform:
        raise InvalidStateError("OAuth platform mismatch")
    if not current_user_id or handshake.user_id != current_user_id:
        raise InvalidStateError("OAuth user mismatch")
    return handshake


def _failure(platform: str, exc: OAuthFlowError) -> CallbackOutcome:
    tag = exc.error_tag(platform)
    logger.warning("oauth_callback_failed platform=%s error=%s reason=%s", platform, tag, exc)
    return CallbackOutcome(platform=platform, error_tag=tag)


async def complete_authorization(
    *,
    registry: ProviderRegistry,
    http_client: httpx.AsyncClient,
    save_connection: ConnectionSaver,
    platform: str,
    code: Optional[str],
    state: Optional[str],
    provider_error: Optional[str],
    handshake: Optional[OAuthHandshake],
    current_user_id: Optional[str],
) -> CallbackOutcome:
    """
    Run one provider callback to completion.

    Never raises: every failure becomes a ``CallbackOutcome`` with an error tag
    that is safe to place in a redirect URL.
    """
    try:
        config = registry.config_for(platform)
    except UnknownPlatformError as exc:
        return _failure(platform, exc)

    if provider_error:
        return _failure(platform, ProviderDeniedAuthorizationError(provider_error))

    if not code or not state:
        return _failure(platform, InvalidCallbackParamsError("Missing code or state"))

    try:
        validated = validate_handshake(
            handshake,
            platform=platform,
            state=state,
            current_user_id=current_user_id,
        )
        credentials = registry.credentials_for(platform)
    except OAuthFlowError as exc:
        return _failure(platform, exc)

    try:
        tokens = await exchange_code(http_client, config, credentials, code)
        profile = await fetch_profile(http_client, config, tokens.access_token)
        await save_connection(
            validated.user_id,
            config.platform,
            ConnectionData(
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                expires_at=tokens.expires_at,
                profile_id=profile.id,
                profile_name=profile.name,
            ),
        )
    except OAuthFlowError as exc:
        return _failure(platform, exc)
    except Exception as exc:
        logger.exception("Unexpected error processing %s OAuth callback", platform)
        return CallbackOutcome(platform=platform, error_tag=truncated_error_tag(platform, exc))

    logger.info("oauth_connected platform=%s user=%s profile=%s", platform, validated.user_id, profile.id)
    return CallbackOutcome(platform=platform, success_tag=f"{platform}_connected")
