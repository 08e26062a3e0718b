import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.future import select

from models.connection import Connection
from services.connections import (
    delete_connection,
    get_connection,
    get_connections,
    is_platform_connected,
    save_connection,
)
from services.connectors.types import ConnectionData, ProviderCredentials
from conftest import session_token_for


USER_ID = "conn-user"
AUTH_HEADER = {"Authorization": f"Bearer {session_token_for(USER_ID)}"}


async def _seed(session_maker, user_id=USER_ID, platform="youtube", **overrides):
    data = {
        "access_token": "tok",
        "profile_id": f"{platform}-id",
        "profile_name": f"{platform} name",
        "refresh_token": "ref",
        "expires_at": 1_700_000_000_000,
    }
    data.update(overrides)
    async with session_maker() as session:
        await save_connection(session, user_id, platform, ConnectionData(**data))


@pytest.mark.asyncio
async def test_store_round_trip(session_maker):
    await _seed(session_maker, platform="youtube")
    await _seed(session_maker, platform="facebook", refresh_token=None, expires_at=None)

    async with session_maker() as session:
        records = await get_connections(session, USER_ID)
        assert [record.platform for record in records] == ["facebook", "youtube"]
        youtube = await get_connection(session, USER_ID, "youtube")
        assert youtube.access_token == "tok"
        assert youtube.refresh_token == "ref"
        assert youtube.expires_at == 1_700_000_000_000
        assert await is_platform_connected(session, USER_ID, "facebook")
        assert not await is_platform_connected(session, USER_ID, "tiktok")
        assert not await is_platform_connected(session, "", "facebook")
        assert await get_connection(session, "", "facebook") is None

        assert await delete_connection(session, USER_ID, "facebook") is True
        assert await delete_connection(session, USER_ID, "facebook") is False
        assert [record.platform for record in await get_connections(session, USER_ID)] == ["youtube"]


@pytest.mark.asyncio
async def test_save_upserts_on_user_and_platform(session_maker):
    await _seed(session_maker, platform="tiktok", access_token="old")
    await _seed(session_maker, platform="tiktok", access_token="new", profile_name="Renamed")

    async with session_maker() as session:
        rows = (await session.execute(select(Connection))).scalars().all()
        assert len(rows) == 1
        record = await get_connection(session, USER_ID, "tiktok")
    assert record.access_token == "new"
    assert record.profile_name == "Renamed"


@pytest.mark.asyncio
async def test_list_connections_hides_tokens(api_client, session_maker):
    await _seed(session_maker, platform="twitter")
    await _seed(session_maker, user_id="someone-else", platform="facebook")

    response = await api_client.get("/connections", headers=AUTH_HEADER)

    assert response.status_code == 200
    payload = response.json()
    assert payload["user_id"] == USER_ID
    assert payload["connections"] == [
        {
            "platform": "twitter",
            "connected": True,
            "profile_id": "twitter-id",
            "profile_name": "twitter name",
            "expires_at": 1_700_000_000_000,
        }
    ]
    assert "tok" not in response.text


@pytest.mark.asyncio
async def test_connections_require_authentication(api_client):
    response = await api_client.get("/connections")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_connection_status(api_client, session_maker):
    await _seed(session_maker, platform="youtube")

    connected = await api_client.get("/connections/youtube", headers=AUTH_HEADER)
    assert connected.json()["connected"] is True
    missing = await api_client.get("/connections/tiktok", headers=AUTH_HEADER)
    assert missing.json() == {
        "platform": "tiktok",
        "connected": False,
        "profile_id": None,
        "profile_name": None,
        "expires_at": None,
    }
    unknown = await api_client.get("/connections/myspace", headers=AUTH_HEADER)
    assert unknown.status_code == 400


@pytest.mark.asyncio
async def test_disconnect_platform(api_client, session_maker):
    await _seed(session_maker, platform="instagram")

    response = await api_client.delete("/connections/instagram", headers=AUTH_HEADER)
    assert response.status_code == 200
    assert response.json() == {"platform": "instagram", "disconnected": True}

    again = await api_client.delete("/connections/instagram", headers=AUTH_HEADER)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_facebook_token_exchange_route(api_client, session_maker, fake_providers):
    fake_providers.respond(
        "GET",
        "https://graph.facebook.com/v17.0/oauth/access_token",
        json={"access_token": "long-lived", "expires_in": 5184000},
    )
    fake_providers.respond("GET", "https://graph.facebook.com/v17.0/me", json={"id": "fb-77", "name": "Long Lived"})

    response = await api_client.post(
        "/auth/facebook/token",
        json={"accessToken": "short-lived", "userID": "fb-77"},
        headers=AUTH_HEADER,
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Facebook account connected successfully"}
    exchange, profile = fake_providers.requests
    assert exchange.url.params["grant_type"] == "fb_exchange_token"
    assert exchange.url.params["fb_exchange_token"] == "short-lived"
    assert exchange.url.params["client_secret"] == "fb-secret"
    assert profile.url.params["access_token"] == "long-lived"

    async with session_maker() as session:
        record = await get_connection(session, USER_ID, "facebook")
    assert record.access_token == "long-lived"
    assert record.refresh_token is None
    assert record.profile_id == "fb-77"


@pytest.mark.asyncio
async def test_facebook_token_route_validation(api_client, fake_providers):
    unauthenticated = await api_client.post("/auth/facebook/token", json={"accessToken": "a", "userID": "b"})
    assert unauthenticated.status_code == 401

    missing = await api_client.post("/auth/facebook/token", json={"accessToken": "a"}, headers=AUTH_HEADER)
    assert missing.status_code == 400

    failed = await api_client.post(
        "/auth/facebook/token", json={"accessToken": "a", "userID": "b"}, headers=AUTH_HEADER
    )
    assert failed.status_code == 500
    assert failed.json()["detail"] == "Failed to process Facebook authentication"


@pytest.mark.asyncio
async def test_info_reports_presence_only(api_client):
    response = await api_client.get("/info")
    assert response.status_code == 200
    payload = response.json()
    assert set(payload["env"]["platforms"]) == {"facebook", "instagram", "twitter", "tiktok", "youtube"}
    assert set(payload["env"]["platforms"]["twitter"]) == {"TWITTER_API_KEY", "TWITTER_API_SECRET_KEY"}
    assert payload["env"]["platforms"]["youtube"] == {"YOUTUBE_CLIENT_ID": True, "YOUTUBE_CLIENT_SECRET": True}
    assert payload["capabilities"]["youtube_oauth_available"] is True
    assert "yt-secret" not in response.text


@pytest.mark.asyncio
async def test_liveness_and_readiness(api_client):
    assert (await api_client.get("/health/live")).json() == {"alive": True}
    ready = await api_client.get("/health/ready")
    assert ready.status_code == 200
    assert ready.json() == {"ready": True, "database": "up", "missing": []}


@pytest.mark.asyncio
async def test_info_presence_follows_registry(api_client):
    from main import app
    from services.connectors import build_provider_registry, get_provider_registry

    partial = {"tiktok": ProviderCredentials("tt-client", "")}
    app.dependency_overrides[get_provider_registry] = lambda: build_provider_registry(
        "http://localhost:3000", credentials=partial
    )
    payload = (await api_client.get("/info")).json()

    assert payload["env"]["platforms"]["tiktok"] == {"TIKTOK_API_KEY": True, "TIKTOK_APP_SECRET": False}
    assert payload["env"]["platforms"]["facebook"] == {"FACEBOOK_APP_ID": False, "FACEBOOK_APP_SECRET": False}
    assert payload["capabilities"]["tiktok_oauth_available"] is False


@pytest.mark.asyncio
async def test_readiness_fails_when_database_is_down(api_client):
    from database import get_db
    from main import app

    class BrokenSession:
        async def execute(self, statement):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def broken_db():
        yield BrokenSession()

    app.dependency_overrides[get_db] = broken_db
    response = await api_client.get("/health/ready")

    assert response.status_code == 503
    assert response.json() == {"ready": False, "database": "down: OperationalError", "missing": []}


@pytest.mark.asyncio
async def test_readiness_fails_without_any_credentials(api_client):
    from main import app
    from services.connectors import build_provider_registry, get_provider_registry

    app.dependency_overrides[get_provider_registry] = lambda: build_provider_registry(
        "http://localhost:3000", credentials={}
    )
    response = await api_client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["database"] == "up"
    assert len(response.json()["missing"]) == 5
