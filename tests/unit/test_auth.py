"""Unit tests for token acquisition and the authenticated transport."""

from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest
import respx
from httpx import Response

from ftcli.auth import BearerAuth, fetch_token, open_api
from ftcli.config import Settings
from ftcli.errors import OperationFailedError, TransportError

TOKEN_URL = "https://api.intra.test/oauth/token"
API_URL = "https://api.intra.test/v2"


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a fake intranet host."""
    return Settings(
        client_id="uid",
        client_secret="secret",
        api_endpoint=API_URL,
        token_endpoint=TOKEN_URL,
        scopes=["public", "projects"],
    )


async def _fetch(settings: Settings):
    async with httpx.AsyncClient() as client:
        return await fetch_token(client, settings)


@respx.mock
def test_bearer_auth_sets_header() -> None:
    route = respx.get(f"{API_URL}/me").mock(return_value=Response(200))

    async def scenario() -> None:
        async with httpx.AsyncClient(auth=BearerAuth("tok")) as client:
            await client.get(f"{API_URL}/me")

    asyncio.run(scenario())
    assert route.calls.last.request.headers["Authorization"] == "Bearer tok"


@respx.mock
def test_fetch_token_posts_client_credentials(settings: Settings) -> None:
    """Given application credentials, when fetching a token, then the form carries
    the grant type, credentials and space-joined scopes."""
    route = respx.post(TOKEN_URL).mock(
        return_value=Response(
            200, json={"access_token": "tok", "token_type": "bearer", "expires_in": 7200}
        )
    )

    token = asyncio.run(_fetch(settings))

    assert token.access_token == "tok"
    assert token.expires_in == 7200
    assert parse_qs(route.calls.last.request.content.decode()) == {
        "grant_type": ["client_credentials"],
        "client_id": ["uid"],
        "client_secret": ["secret"],
        "scope": ["public projects"],
    }


@pytest.mark.parametrize("status", [400, 401, 500])
def test_fetch_token_rejected(settings: Settings, status: int) -> None:
    with respx.mock:
        respx.post(TOKEN_URL).mock(return_value=Response(status))

        with pytest.raises(OperationFailedError, match="failed obtaining access token") as excinfo:
            asyncio.run(_fetch(settings))

    assert excinfo.value.status_code == status


@respx.mock
def test_fetch_token_malformed(settings: Settings) -> None:
    respx.post(TOKEN_URL).mock(return_value=Response(200, json={"nope": 1}))

    with pytest.raises(OperationFailedError, match="malformed"):
        asyncio.run(_fetch(settings))


@respx.mock
def test_fetch_token_transport_error(settings: Settings) -> None:
    respx.post(TOKEN_URL).mock(side_effect=httpx.ConnectTimeout)

    with pytest.raises(TransportError, match="token request failed"):
        asyncio.run(_fetch(settings))


@respx.mock
def test_open_api_authenticates_requests(settings: Settings) -> None:
    """Given a token endpoint, when the API is opened, then later requests carry the token."""
    token_route = respx.post(TOKEN_URL).mock(
        return_value=Response(200, json={"access_token": "tok"})
    )
    user_route = respx.get(f"{API_URL}/users/spoody").mock(
        return_value=Response(200, json={"id": 1, "login": "spoody"})
    )

    async def scenario():
        async with open_api(settings) as api:
            assert api.endpoint == API_URL
            return await api.get_user_by_login("spoody")

    user = asyncio.run(scenario())

    assert user.login == "spoody"
    assert "Authorization" not in token_route.calls.last.request.headers
    assert user_route.calls.last.request.headers["Authorization"] == "Bearer tok"
