"""Authenticated transport for the 42 API.

The API client expects an ``httpx.AsyncClient`` that already carries
authorization. This module builds one: it exchanges the application
credentials for an access token (OAuth2 client-credentials grant) and
attaches the token to every request as a bearer header.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator, Generator

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from .client import FtAPI
from .config import Settings
from .errors import OperationFailedError, TransportError


class Token(BaseModel):
    """OAuth2 access token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
    scope: str | None = None
    created_at: int | None = None


class BearerAuth(httpx.Auth):
    """Attach ``Authorization: Bearer <token>`` to outgoing requests."""

    def __init__(self, access_token: str) -> None:
        self._access_token = access_token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._access_token}"
        yield request


async def fetch_token(client: httpx.AsyncClient, settings: Settings) -> Token:
    """Request an application token with the client-credentials grant."""
    form = {
        "grant_type": "client_credentials",
        "client_id": settings.client_id,
        "client_secret": settings.client_secret,
    }
    if settings.scopes:
        form["scope"] = " ".join(settings.scopes)

    logger.debug(f"Requesting access token from {settings.token_endpoint}")
    try:
        response = await client.post(settings.token_endpoint, data=form)
    except httpx.TransportError as exc:
        raise TransportError(f"token request failed: {exc}") from exc

    if not response.is_success:
        raise OperationFailedError(
            "failed obtaining access token", status_code=response.status_code
        )

    try:
        token = Token.model_validate_json(response.content)
    except ValidationError as exc:
        raise OperationFailedError("failed obtaining access token: malformed response") from exc
    logger.debug(f"Obtained {token.token_type} token (expires_in={token.expires_in})")
    return token


@contextlib.asynccontextmanager
async def open_api(settings: Settings) -> AsyncIterator[FtAPI]:
    """Yield an :class:`FtAPI` bound to a freshly authenticated transport.

    The transport is owned here and closed on exit.
    """
    timeout = httpx.Timeout(settings.timeout)
    async with httpx.AsyncClient(timeout=timeout) as http_client:
        token = await fetch_token(http_client, settings)
        http_client.auth = BearerAuth(token.access_token)
        yield FtAPI(
            settings.api_endpoint,
            http_client,
            rate_limit_headers=settings.rate_limit_headers,
        )
