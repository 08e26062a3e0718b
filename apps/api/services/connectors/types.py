"""Connector provider contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Literal, Optional, Tuple


PlatformKey = Literal["facebook", "instagram", "twitter", "tiktok", "youtube"]

SUPPORTED_PLATFORMS: Tuple[PlatformKey, ...] = ("facebook", "instagram", "twitter", "tiktok", "youtube")

ERROR_MESSAGE_LIMIT = 50

TokenAuthStyle = Literal["body", "basic"]
ProfileAuthStyle = Literal["bearer", "query"]


class OAuthFlowError(RuntimeError):
    """Base class for failures that end one connect attempt."""

    def error_tag(self, platform: str) -> str:
        message = str(self)[:ERROR_MESSAGE_LIMIT] or "failed"
        return f"oauth_{platform}_{message}"


class UnknownPlatformError(OAuthFlowError):
    """Raised for a platform outside the supported set."""

    def __init__(self, platform: str) -> None:
        super().__init__(f"Unknown platform: {platform}")
        self.platform = platform

    def error_tag(self, platform: str) -> str:
        return "unknown_platform"


class MissingCredentialsError(OAuthFlowError):
    """Raised when the client id/secret pair for a platform is not configured."""

    def __init__(self, platform: str, missing: Tuple[str, ...]) -> None:
        super().__init__(f"Missing credentials for {platform}: {', '.join(missing)}")
        self.platform = platform
        self.missing = missing

    def error_tag(self, platform: str) -> str:
        return f"missing_config_for_{platform}"


class UnauthenticatedError(OAuthFlowError):
    """Raised when no identity resolver produced a user."""


class ProviderDeniedAuthorizationError(OAuthFlowError):
    """Provider redirected back with an ``error`` parameter."""

    def __init__(self, provider_error: str) -> None:
        provider_error = provider_error[:ERROR_MESSAGE_LIMIT]
        super().__init__(provider_error)
        self.provider_error = provider_error

    def error_tag(self, platform: str) -> str:
        return f"oauth_{platform}_{self.provider_error}"


class InvalidCallbackParamsError(OAuthFlowError):
    def error_tag(self, platform: str) -> str:
        return "invalid_oauth_response"


class InvalidStateError(OAuthFlowError):
    def error_tag(self, platform: str) -> str:
        return "invalid_oauth_state"


class TokenExchangeError(OAuthFlowError):
    """Authorization code could not be exchanged for an access token."""

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.detail = detail

    def error_tag(self, platform: str) -> str:
        return f"token_exchange_failed_for_{platform}"


class ProfileFetchError(OAuthFlowError):
    """Provider profile could not be loaded or carried no id."""

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.detail = detail

    def error_tag(self, platform: str) -> str:
        return f"profile_fetch_failed_for_{platform}"


class PersistenceError(OAuthFlowError):
    """Connection record could not be written."""


@dataclass(frozen=True)
class ProfileIdentity:
    id: str
    name: Optional[str] = None


ProfileParser = Callable[[Dict[str, Any]], Optional[ProfileIdentity]]


@dataclass(frozen=True)
class ProviderCredentials:
    client_id: str
    client_secret: str


@dataclass(frozen=True)
class ProviderConfig:
    platform: PlatformKey
    authorize_url: str
    token_url: str
    profile_url: str
    scope: str
    redirect_uri: str
    client_id_env_var: str
    client_secret_env_var: str
    token_auth: TokenAuthStyle
    profile_auth: ProfileAuthStyle
    parse_profile: ProfileParser


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None  # epoch millis


@dataclass(frozen=True)
class OAuthHandshake:
    state: str
    platform: str
    user_id: str


@dataclass(frozen=True)
class ConnectorStartResult:
    platform: PlatformKey
    authorization_url: str
    handshake: OAuthHandshake


@dataclass(frozen=True)
class ConnectionData:
    access_token: str
    profile_id: str
    profile_name: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
