import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Tuple

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import settings
from database import Base, get_db
from main import app
from routers.auth import get_oauth_http_client
from services.connectors import build_provider_registry, get_provider_registry
from services.connectors.types import ProviderCredentials
from services.session_token import SESSION_TOKEN_TYPE


TEST_APP_URL = "http://localhost:3000"

TEST_CREDENTIALS = {
    "facebook": ProviderCredentials("fb-client", "fb-secret"),
    "instagram": ProviderCredentials("ig-client", "ig-secret"),
    "twitter": ProviderCredentials("tw-client", "tw-secret"),
    "tiktok": ProviderCredentials("tt-client", "tt-secret"),
    "youtube": ProviderCredentials("yt-client", "yt-secret"),
}

TOKEN_URLS = {
    "facebook": "https://graph.facebook.com/v16.0/oauth/access_token",
    "twitter": "https://api.twitter.com/2/oauth2/token",
    "tiktok": "https://open-api.tiktok.com/oauth/access_token/",
    "youtube": "https://oauth2.googleapis.com/token",
}

PROFILE_PAYLOADS = {
    "https://graph.facebook.com/v16.0/me": {"id": "fb-1", "name": "FB User"},
    "https://graph.facebook.com/v16.0/me/accounts": {"data": [{"id": "page-1", "name": "My Page"}]},
    "https://api.twitter.com/2/users/me": {"data": {"id": "tw-1", "username": "tweeter", "name": "Tweeter"}},
    "https://open-api.tiktok.com/oauth/userinfo/": {"data": {"open_id": "tt-1", "display_name": "Tok"}},
    "https://www.googleapis.com/youtube/v3/channels": {"items": [{"id": "c1", "snippet": {"title": "Chan"}}]},
}

DEFAULT_TOKEN_PAYLOAD = {"access_token": "access-123", "refresh_token": "refresh-456", "expires_in": 3600}


def session_token_for(
    user_id: str,
    token_type: str = SESSION_TOKEN_TYPE,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Sign a session token the way the web app issues them."""
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def endpoint_of(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


class FakeProviders:
    """Canned provider endpoints with a log of every request received."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        for url in set(TOKEN_URLS.values()):
            self.respond("POST", url, json=DEFAULT_TOKEN_PAYLOAD)
        for url, payload in PROFILE_PAYLOADS.items():
            self.respond("GET", url, json=payload)

    def respond(self, method: str, url: str, status_code: int = 200, **kwargs: Any) -> None:
        self.routes[(method, url)] = lambda request: httpx.Response(status_code, **kwargs)

    def fail_with(self, method: str, url: str, exc: Exception) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise exc

        self.routes[(method, url)] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, endpoint_of(request)))
        if route is None:
            return httpx.Response(404, json={"error": "not_found"})
        return route(request)

    def calls_to(self, method: str, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and endpoint_of(r) == url]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def provider_registry():
    return build_provider_registry(TEST_APP_URL, credentials=TEST_CREDENTIALS)


@pytest.fixture
def fake_providers():
    return FakeProviders()


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "socialsync.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def api_client(session_maker, provider_registry, fake_providers):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    async def override_http_client():
        async with fake_providers.client() as client:
            yield client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_provider_registry] = lambda: provider_registry
    app.dependency_overrides[get_oauth_http_client] = override_http_client
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
