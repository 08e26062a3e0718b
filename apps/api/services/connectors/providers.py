"""Static OAuth provider registry for the supported social platforms."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Tuple

from config import provider_credential, settings
from services.connectors.types import (
    SUPPORTED_PLATFORMS,
    MissingCredentialsError,
    PlatformKey,
    ProfileIdentity,
    ProviderConfig,
    ProviderCredentials,
    UnknownPlatformError,
)


def _first_text(source: Any, *keys: str) -> Optional[str]:
    """Return the first non-empty value among ``keys`` as a string."""
    if not isinstance(source, dict):
        return None
    for key in keys:
        value = source.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def _first_item(payload: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    items = payload.get(key)
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return None


def _identity(source: Any, id_keys: Tuple[str, ...], name_keys: Tuple[str, ...]) -> Optional[ProfileIdentity]:
    profile_id = _first_text(source, *id_keys)
    if not profile_id:
        return None
    return ProfileIdentity(id=profile_id, name=_first_text(source, *name_keys))


def parse_facebook_profile(payload: Dict[str, Any]) -> Optional[ProfileIdentity]:
    # Graph /me answers flat; tolerate a data envelope as well.
    nested = payload.get("data")
    source = nested if isinstance(nested, dict) and "id" not in payload else payload
    return _identity(source, ("id",), ("name",))


def parse_instagram_profile(payload: Dict[str, Any]) -> Optional[ProfileIdentity]:
    # /me/accounts lists the Facebook Pages; the first page backs the Instagram account.
    return _identity(_first_item(payload, "data"), ("id",), ("name",))


def parse_twitter_profile(payload: Dict[str, Any]) -> Optional[ProfileIdentity]:
    return _identity(payload.get("data"), ("id",), ("username", "name"))


def parse_tiktok_profile(payload: Dict[str, Any]) -> Optional[ProfileIdentity]:
    return _identity(payload.get("data"), ("open_id", "user_id"), ("display_name", "nickname"))


def parse_youtube_profile(payload: Dict[str, Any]) -> Optional[ProfileIdentity]:
    channel = _first_item(payload, "items")
    if channel is None:
        return None
    return _identity(
        {"id": channel.get("id"), "title": (channel.get("snippet") or {}).get("title")},
        ("id",),
        ("title",),
    )


@dataclass(frozen=True)
class _ProviderSpec:
    authorize_url: str
    token_url: str
    profile_url: str
    scope: str
    client_id_env_var: str
    client_secret_env_var: str
    token_auth: str = "body"
    profile_auth: str = "bearer"
    parse_profile: Any = None


PROVIDER_SPECS: Mapping[PlatformKey, _ProviderSpec] = {
    "facebook": _ProviderSpec(
        authorize_url="https://www.facebook.com/v16.0/dialog/oauth",
        token_url="https://graph.facebook.com/v16.0/oauth/access_token",
        profile_url="https://graph.facebook.com/v16.0/me?fields=id,name",
        scope=(
            "pages_show_list,pages_read_engagement,pages_manage_posts,pages_manage_metadata,"
            "instagram_basic,instagram_content_publish"
        ),
        client_id_env_var="FACEBOOK_APP_ID",
        client_secret_env_var="FACEBOOK_APP_SECRET",
        parse_profile=parse_facebook_profile,
    ),
    "instagram": _ProviderSpec(
        authorize_url="https://www.facebook.com/v16.0/dialog/oauth",
        token_url="https://graph.facebook.com/v16.0/oauth/access_token",
        profile_url="https://graph.facebook.com/v16.0/me/accounts",
        scope="instagram_basic,instagram_content_publish,pages_show_list",
        client_id_env_var="INSTAGRAM_APP_ID",
        client_secret_env_var="INSTAGRAM_APP_SECRET",
        parse_profile=parse_instagram_profile,
    ),
    "twitter": _ProviderSpec(
        authorize_url="https://twitter.com/i/oauth2/authorize",
        token_url="https://api.twitter.com/2/oauth2/token",
        profile_url="https://api.twitter.com/2/users/me",
        scope="tweet.read tweet.write users.read offline.access",
        client_id_env_var="TWITTER_API_KEY",
        client_secret_env_var="TWITTER_API_SECRET_KEY",
        token_auth="basic",
        parse_profile=parse_twitter_profile,
    ),
    "tiktok": _ProviderSpec(
        authorize_url="https://www.tiktok.com/auth/authorize/",
        token_url="https://open-api.tiktok.com/oauth/access_token/",
        profile_url="https://open-api.tiktok.com/oauth/userinfo/",
        scope="user.info.basic,video.publish",
        client_id_env_var="TIKTOK_API_KEY",
        client_secret_env_var="TIKTOK_APP_SECRET",
        profile_auth="query",
        parse_profile=parse_tiktok_profile,
    ),
    "youtube": _ProviderSpec(
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        profile_url="https://www.googleapis.com/youtube/v3/channels?part=snippet&mine=true",
        scope="https://www.googleapis.com/auth/youtube.upload",
        client_id_env_var="YOUTUBE_CLIENT_ID",
        client_secret_env_var="YOUTUBE_CLIENT_SECRET",
        parse_profile=parse_youtube_profile,
    ),
}


def callback_redirect_uri(app_url: str, platform: str) -> str:
    return f"{app_url.rstrip('/')}/auth/{platform}/callback"


class ProviderRegistry:
    """Immutable lookup of provider configs and their client credentials."""

    def __init__(
        self,
        configs: Mapping[PlatformKey, ProviderConfig],
        credentials: Mapping[PlatformKey, ProviderCredentials],
    ) -> None:
        missing = [platform for platform in SUPPORTED_PLATFORMS if platform not in configs]
        if missing:
            raise ValueError(f"Provider registry is missing platforms: {', '.join(missing)}")
        self._configs: Dict[PlatformKey, ProviderConfig] = dict(configs)
        self._credentials: Dict[PlatformKey, ProviderCredentials] = dict(credentials)

    @property
    def platforms(self) -> Tuple[PlatformKey, ...]:
        return SUPPORTED_PLATFORMS

    def config_for(self, platform: str) -> ProviderConfig:
        config = self._configs.get(platform)  # type: ignore[arg-type]
        if config is None:
            raise UnknownPlatformError(platform)
        return config

    def has_credentials(self, platform: str) -> bool:
        credentials = self._credentials.get(platform)  # type: ignore[arg-type]
        return bool(credentials and credentials.client_id and credentials.client_secret)

    def credential_presence(self, platform: str) -> Dict[str, bool]:
        """Which of the platform's env vars are set, keyed by env var name."""
        config = self.config_for(platform)
        credentials = self._credentials.get(config.platform)
        return {
            config.client_id_env_var: bool(credentials and credentials.client_id),
            config.client_secret_env_var: bool(credentials and credentials.client_secret),
        }

    def credentials_for(self, platform: str) -> ProviderCredentials:
        config = self.config_for(platform)
        credentials = self._credentials.get(config.platform)
        missing: List[str] = []
        if not credentials or not credentials.client_id:
            missing.append(config.client_id_env_var)
        if not credentials or not credentials.client_secret:
            missing.append(config.client_secret_env_var)
        if missing:
            raise MissingCredentialsError(config.platform, tuple(missing))
        return credentials  # type: ignore[return-value]


def build_provider_registry(
    app_url: str,
    credentials: Optional[Mapping[PlatformKey, ProviderCredentials]] = None,
) -> ProviderRegistry:
    """Build the registry; credentials default to the configured env vars."""
    configs: Dict[PlatformKey, ProviderConfig] = {}
    resolved: Dict[PlatformKey, ProviderCredentials] = {}
    for platform, spec in PROVIDER_SPECS.items():
        configs[platform] = ProviderConfig(
            platform=platform,
            authorize_url=spec.authorize_url,
            token_url=spec.token_url,
            profile_url=spec.profile_url,
            scope=spec.scope,
            redirect_uri=callback_redirect_uri(app_url, platform),
            client_id_env_var=spec.client_id_env_var,
            client_secret_env_var=spec.client_secret_env_var,
            token_auth=spec.token_auth,  # type: ignore[arg-type]
            profile_auth=spec.profile_auth,  # type: ignore[arg-type]
            parse_profile=spec.parse_profile,
        )
        if credentials is None:
            resolved[platform] = ProviderCredentials(
                client_id=provider_credential(spec.client_id_env_var),
                client_secret=provider_credential(spec.client_secret_env_var),
            )
        elif platform in credentials:
            resolved[platform] = credentials[platform]
    return ProviderRegistry(configs, resolved)


@lru_cache(maxsize=1)
def get_provider_registry() -> ProviderRegistry:
    """Process-wide registry, built once from settings."""
    return build_provider_registry(settings.APP_URL)


def connector_capabilities(registry: ProviderRegistry) -> Dict[str, bool]:
    return {f"{platform}_oauth_available": registry.has_credentials(platform) for platform in registry.platforms}
