"""Public connector provider utilities."""

from services.connectors.callback import CallbackOutcome, complete_authorization
from services.connectors.oauth import exchange_code, fetch_profile, start_authorization
from services.connectors.providers import (
    ProviderRegistry,
    build_provider_registry,
    connector_capabilities,
    get_provider_registry,
)
from services.connectors.types import (
    SUPPORTED_PLATFORMS,
    ConnectionData,
    ConnectorStartResult,
    MissingCredentialsError,
    OAuthFlowError,
    OAuthHandshake,
    PersistenceError,
    PlatformKey,
    ProfileFetchError,
    ProfileIdentity,
    ProviderConfig,
    TokenExchangeError,
    TokenSet,
    UnauthenticatedError,
    UnknownPlatformError,
)

__all__ = [
    "SUPPORTED_PLATFORMS",
    "CallbackOutcome",
    "ConnectionData",
    "ConnectorStartResult",
    "MissingCredentialsError",
    "OAuthFlowError",
    "OAuthHandshake",
    "PersistenceError",
    "PlatformKey",
    "ProfileFetchError",
    "ProfileIdentity",
    "ProviderConfig",
    "ProviderRegistry",
    "TokenExchangeError",
    "TokenSet",
    "UnauthenticatedError",
    "UnknownPlatformError",
    "build_provider_registry",
    "complete_authorization",
    "connector_capabilities",
    "exchange_code",
    "fetch_profile",
    "get_provider_registry",
    "start_authorization",
]
