"""Cookie storage for the in-flight OAuth handshake (state, platform, user)."""

from typing import Mapping, Optional

from fastapi import Response

from services.connectors.types import OAuthHandshake


HANDSHAKE_MAX_AGE_SECONDS = 600
STATE_COOKIE = "oauth_state"
PLATFORM_COOKIE = "platform"
USER_COOKIE = "user_id"
HANDSHAKE_COOKIES = (STATE_COOKIE, PLATFORM_COOKIE, USER_COOKIE)


def store_handshake(response: Response, handshake: OAuthHandshake, *, secure: bool) -> None:
    """Write the three handshake cookies; a new attempt replaces any previous one."""
    values = {
        STATE_COOKIE: handshake.state,
        PLATFORM_COOKIE: handshake.platform,
        USER_COOKIE: handshake.user_id,
    }
    for name, value in values.items():
        response.set_cookie(
            name,
            value,
            max_age=HANDSHAKE_MAX_AGE_SECONDS,
            path="/",
            httponly=True,
            secure=secure,
            samesite="lax",
        )


def load_handshake(cookies: Mapping[str, str]) -> Optional[OAuthHandshake]:
    """Return the stored handshake, or None unless all three cookies are present."""
    state = cookies.get(STATE_COOKIE)
    platform = cookies.get(PLATFORM_COOKIE)
    user_id = cookies.get(USER_COOKIE)
    if not state or not platform or not user_id:
        return None
    return OAuthHandshake(state=state, platform=platform, user_id=user_id)


def clear_handshake(response: Response, *, secure: bool) -> None:
    for name in HANDSHAKE_COOKIES:
        response.delete_cookie(name, path="/", httponly=True, secure=secure, samesite="lax")
