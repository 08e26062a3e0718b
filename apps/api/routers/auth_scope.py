"""Authentication dependencies for API user scoping."""

from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Depends, HTTPException, Request

from config import settings
from services.identity import UserResolver, default_user_resolvers, resolve_current_user


@dataclass
class AuthContext:
    user_id: str


def get_user_resolvers() -> Tuple[UserResolver, ...]:
    """Identity resolvers in the order they are tried."""
    return default_user_resolvers(settings.ALLOW_CLIENT_CACHED_IDENTITY)


async def get_current_user_id(
    request: Request,
    resolvers: Tuple[UserResolver, ...] = Depends(get_user_resolvers),
) -> Optional[str]:
    """Resolve the current user without failing; None when nobody is signed in."""
    return resolve_current_user(request, resolvers)


async def get_auth_context(
    user_id: Optional[str] = Depends(get_current_user_id),
) -> AuthContext:
    """Require a resolved user for JSON endpoints."""
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return AuthContext(user_id=user_id)
