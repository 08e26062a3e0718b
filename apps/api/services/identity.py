"""Current-user resolution: an ordered chain of identity resolvers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from fastapi.security.utils import get_authorization_scheme_param
from starlette.requests import HTTPConnection

from services.session_token import SESSION_COOKIE, session_subject

logger = logging.getLogger(__name__)

FALLBACK_USER_COOKIE = "socialsync_user_id"
CLIENT_CACHED_USER_HEADER = "X-Client-User-Id"


@dataclass(frozen=True)
class UserResolver:
    name: str
    resolve: Callable[[HTTPConnection], Optional[str]]
    authoritative: bool = True


def _clean(value: Optional[str]) -> Optional[str]:
    text = (value or "").strip()
    return text or None


def session_user(request: HTTPConnection) -> Optional[str]:
    """User id from a verified session cookie or Bearer header."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        scheme, credentials = get_authorization_scheme_param(request.headers.get("Authorization"))
        if scheme.lower() == "bearer":
            token = credentials
    if not token:
        return None
    try:
        return _clean(session_subject(token))
    except ValueError as exc:
        logger.debug("Session token rejected: %s", exc)
        return None


def fallback_cookie_user(request: HTTPConnection) -> Optional[str]:
    return _clean(request.cookies.get(FALLBACK_USER_COOKIE))


def client_cached_user(request: HTTPConnection) -> Optional[str]:
    return _clean(request.headers.get(CLIENT_CACHED_USER_HEADER))


SESSION_RESOLVER = UserResolver("session", session_user)
FALLBACK_COOKIE_RESOLVER = UserResolver("fallback_cookie", fallback_cookie_user)
CLIENT_CACHE_RESOLVER = UserResolver("client_cache", client_cached_user, authoritative=False)


def default_user_resolvers(allow_client_cache: bool) -> Tuple[UserResolver, ...]:
    resolvers = [SESSION_RESOLVER, FALLBACK_COOKIE_RESOLVER]
    if allow_client_cache:
        resolvers.append(CLIENT_CACHE_RESOLVER)
    return tuple(resolvers)


def resolve_current_user(request: HTTPConnection, resolvers: Sequence[UserResolver]) -> Optional[str]:
    """Return the first user id any resolver yields, in order."""
    for resolver in resolvers:
        user_id = resolver.resolve(request)
        if not user_id:
            continue
        if not resolver.authoritative:
            logger.warning("Using non-authoritative %s identity for user %s", resolver.name, user_id)
        return user_id
    return None
