"""Typed client for the 42 intranet REST API.

:class:`FtAPI` turns an already-authenticated ``httpx.AsyncClient`` into
resource operations. Each operation builds a request, sends it through the
transport, classifies the response and decodes the payload. The client never
retries; rate limits and failures are raised to the caller.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, BinaryIO, TypeVar
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import BaseModel, TypeAdapter, ValidationError

from .body import Body, JsonBody, MultipartBody
from .errors import (
    EncodingError,
    NotFoundError,
    OperationFailedError,
    RateLimitedError,
    TransportError,
)
from .models import Close, Project, User, UserPatch, UserProject
from .pagination import Pages

DEFAULT_ENDPOINT = "https://api.intra.42.fr/v2"
HOURLY_LIMIT_HEADER = "X-Hourly-Ratelimit-Remaining"
SECONDLY_LIMIT_HEADER = "X-Secondly-Ratelimit-Remaining"
DEFAULT_RATE_LIMIT_HEADERS: tuple[str, ...] = (HOURLY_LIMIT_HEADER,)

USER_IMAGE_FIELD = "user[image]"

ModelT = TypeVar("ModelT", bound=BaseModel)

_USER_PROJECTS = TypeAdapter(list[UserProject])


def _segment(value: str) -> str:
    """Percent-encode ``value`` as a single path segment."""
    if value in ("", ".", ".."):
        raise EncodingError(f"invalid path segment: {value!r}")
    return quote(value, safe="")


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def classify_response(
    response: httpx.Response,
    *,
    not_found: str,
    failure: str,
    rate_limit_headers: Iterable[str] = DEFAULT_RATE_LIMIT_HEADERS,
) -> httpx.Response:
    """Return ``response`` if it succeeded, otherwise raise the matching error.

    The quota check runs before status inspection: the API can report an
    exhausted quota on responses that are not 429.

    Args:
        response: Completed response from the transport
        not_found: Message for a 404, naming the missing subject
        failure: Message for any other non-2xx status, naming the action
        rate_limit_headers: Remaining-quota headers checked for ``"0"``

    Raises:
        RateLimitedError: A quota header is exhausted
        NotFoundError: Status 404
        OperationFailedError: Any other non-2xx status
    """
    for header in rate_limit_headers:
        remaining = response.headers.get(header)
        if remaining is not None and remaining.strip() == "0":
            logger.warning(f"Rate limit exhausted ({header}=0) on {response.request.url}")
            raise RateLimitedError(header=header, retry_after=_retry_after(response))

    if response.is_success:
        return response

    logger.debug(f"{response.request.method} {response.request.url} -> {response.status_code}")
    if response.status_code == httpx.codes.NOT_FOUND:
        raise NotFoundError(not_found)
    raise OperationFailedError(failure, status_code=response.status_code)


class FtAPI:
    """Send authenticated requests to the 42 API.

    Args:
        endpoint: Base API URL, e.g. ``https://api.intra.42.fr/v2``
        client: Transport that already attaches authorization to requests
        rate_limit_headers: Remaining-quota headers that trigger
            :class:`RateLimitedError` when equal to ``"0"``
    """

    def __init__(
        self,
        endpoint: str,
        client: httpx.AsyncClient,
        *,
        rate_limit_headers: Sequence[str] = DEFAULT_RATE_LIMIT_HEADERS,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._client = client
        self._rate_limit_headers = tuple(rate_limit_headers)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def rate_limit_headers(self) -> tuple[str, ...]:
        return self._rate_limit_headers

    # ------------------------------------------------------------------
    # Request building and sending
    # ------------------------------------------------------------------

    async def build_request(
        self,
        method: str,
        path: str,
        body: Body | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Request:
        """Build a fully materialized request for ``path`` relative to the endpoint.

        Raises:
            EncodingError: The body could not be encoded or the URL is invalid.
                No request is sent.
        """
        kwargs: dict[str, Any] = body.encode() if body is not None else {}
        if params:
            kwargs["params"] = {key: value for key, value in params.items() if value is not None}
        try:
            request = self._client.build_request(method, f"{self._endpoint}{path}", **kwargs)
            await request.aread()
        except (TypeError, ValueError, httpx.InvalidURL) as exc:
            raise EncodingError(f"failed building {method} {path} request: {exc}") from exc
        return request

    async def _send(self, request: httpx.Request) -> httpx.Response:
        logger.debug(f"Sending {request.method} {request.url}")
        try:
            response = await self._client.send(request)
        except httpx.TransportError as exc:
            raise TransportError(f"{request.method} {request.url} failed: {exc}") from exc
        logger.debug(f"{request.method} {request.url} -> {response.status_code}")
        return response

    async def _call(
        self,
        method: str,
        path: str,
        *,
        body: Body | None = None,
        params: Mapping[str, Any] | None = None,
        not_found: str,
        failure: str,
    ) -> httpx.Response:
        request = await self.build_request(method, path, body, params)
        response = await self._send(request)
        return classify_response(
            response,
            not_found=not_found,
            failure=failure,
            rate_limit_headers=self._rate_limit_headers,
        )

    @staticmethod
    def _decode(response: httpx.Response, model: type[ModelT], failure: str) -> ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            logger.error(f"{model.__name__} validation failed: {exc}")
            raise OperationFailedError(
                f"{failure}: malformed response", status_code=response.status_code
            ) from exc

    # ------------------------------------------------------------------
    # Verb helpers
    # ------------------------------------------------------------------

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> httpx.Response:
        """Send a GET request and return the classified response."""
        return await self._call(
            "GET", path, params=params, not_found="resource not found", failure=f"GET {path} failed"
        )

    async def post(self, path: str, body: Body | None = None) -> httpx.Response:
        """Send a POST request and return the classified response."""
        return await self._call(
            "POST", path, body=body, not_found="resource not found", failure=f"POST {path} failed"
        )

    async def patch(self, path: str, body: Body | None = None) -> httpx.Response:
        """Send a PATCH request and return the classified response."""
        return await self._call(
            "PATCH", path, body=body, not_found="resource not found", failure=f"PATCH {path} failed"
        )

    async def delete(self, path: str, body: Body | None = None) -> httpx.Response:
        """Send a DELETE request and return the classified response."""
        return await self._call(
            "DELETE",
            path,
            body=body,
            not_found="resource not found",
            failure=f"DELETE {path} failed",
        )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(self, user: User, campus_id: int) -> User:
        """Create ``user`` in ``campus_id``.

        On success the server-assigned ``id`` and ``url`` are written onto
        ``user`` in place; no other field is touched. The same instance is
        returned.
        """
        fields = user.model_dump(
            include={"login", "email", "first_name", "last_name", "kind"}, exclude_none=True
        )
        payload = {"user": {**fields, "campus_id": campus_id}}
        failure = "failed creating user"
        response = await self._call(
            "POST",
            "/users",
            body=JsonBody(payload),
            not_found="campus not found",
            failure=failure,
        )
        created = self._decode(response, User, failure)
        user.id = created.id
        user.url = created.url
        logger.info(f"Created user {user.login} (id={user.id})")
        return user

    async def update_user(self, login: str, patch: UserPatch) -> None:
        """Apply the fields explicitly set on ``patch`` to ``login``."""
        await self._call(
            "PATCH",
            f"/users/{_segment(login)}",
            body=JsonBody({"user": patch}),
            not_found="user not found",
            failure="failed updating user",
        )
        logger.info(f"Updated user {login}: {sorted(patch.model_fields_set)}")

    async def set_user_image(
        self, login: str, image: BinaryIO, filename: str | None = None
    ) -> None:
        """Upload ``image`` as the profile picture of ``login``.

        The stream is consumed and closed before the request is sent.
        """
        try:
            path = f"/users/{_segment(login)}"
        except EncodingError:
            image.close()
            raise
        await self._call(
            "PATCH",
            path,
            body=MultipartBody(USER_IMAGE_FIELD, image, filename=filename),
            not_found="user not found",
            failure="failed setting profile image",
        )
        logger.info(f"Updated profile image of {login}")

    async def get_user_by_login(self, login: str) -> User:
        failure = "failed fetching user"
        response = await self._call(
            "GET", f"/users/{_segment(login)}", not_found="user not found", failure=failure
        )
        return self._decode(response, User, failure)

    # ------------------------------------------------------------------
    # Closes and correction points
    # ------------------------------------------------------------------

    async def create_close(self, close: Close) -> Close:
        """Close the account of ``close.user`` on behalf of ``close.closer``.

        The record returned by the server is merged into ``close`` in place
        and the same instance is returned.
        """
        if close.user is None or not close.user.login:
            raise EncodingError("close requires the login of the user being closed")
        if close.closer is None or close.closer.id is None:
            raise EncodingError("close requires the id of the closer")

        fields = {"closer_id": close.closer.id, "kind": close.kind, "reason": close.reason}
        payload = {"close": {key: value for key, value in fields.items() if value is not None}}
        failure = "failed creating close"
        response = await self._call(
            "POST",
            f"/users/{_segment(close.user.login)}/closes",
            body=JsonBody(payload),
            not_found="user not found",
            failure=failure,
        )
        created = self._decode(response, Close, failure)
        for name in created.model_fields_set:
            setattr(close, name, getattr(created, name))
        logger.info(f"Created close {close.id} ({close.kind})")
        return close

    async def add_correction_points(self, login: str, amount: int, reason: str) -> None:
        await self._call(
            "POST",
            f"/users/{_segment(login)}/correction_points/add",
            body=JsonBody({"amount": amount, "reason": reason}),
            not_found="user not found",
            failure="failed adding correction points",
        )
        logger.info(f"Added {amount} correction points to {login}")

    async def remove_correction_points(self, login: str, amount: int, reason: str) -> None:
        await self._call(
            "DELETE",
            f"/users/{_segment(login)}/correction_points/remove",
            body=JsonBody({"amount": amount, "reason": reason}),
            not_found="user not found",
            failure="failed removing correction points",
        )
        logger.info(f"Removed {amount} correction points from {login}")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def get_project_by_name(self, slug: str) -> Project:
        failure = "failed fetching project"
        response = await self._call(
            "GET", f"/projects/{_segment(slug)}", not_found="project not found", failure=failure
        )
        return self._decode(response, Project, failure)

    async def get_user_projects(
        self,
        login: str,
        filters: Mapping[str, Any] | None = None,
        sort: Sequence[str] | None = None,
        page: int = 1,
    ) -> list[UserProject]:
        """Return one page of the projects of ``login``.

        An empty list means ``page`` is past the end of the collection.

        Args:
            login: User login
            filters: ``filter[<key>]`` query parameters; sequences are comma-joined
            sort: Sort keys, ``-`` prefix for descending order
            page: Page number, starting at 1
        """
        params: dict[str, Any] = {"page[number]": page}
        for key, value in (filters or {}).items():
            if isinstance(value, (list, tuple, set)):
                value = ",".join(str(item) for item in value)
            params[f"filter[{key}]"] = value
        if sort:
            params["sort"] = ",".join(sort)

        failure = "failed fetching user projects"
        response = await self._call(
            "GET",
            f"/users/{_segment(login)}/projects_users",
            params=params,
            not_found="user not found",
            failure=failure,
        )
        try:
            return _USER_PROJECTS.validate_json(response.content)
        except ValidationError as exc:
            logger.error(f"UserProject validation failed: {exc}")
            raise OperationFailedError(
                f"{failure}: malformed response", status_code=response.status_code
            ) from exc

    def iter_user_projects(
        self,
        login: str,
        filters: Mapping[str, Any] | None = None,
        sort: Sequence[str] | None = None,
    ) -> Pages[UserProject]:
        """Return a restartable lazy sequence over every project of ``login``."""

        async def fetch(page: int) -> list[UserProject]:
            return await self.get_user_projects(login, filters, sort, page)

        return Pages(fetch)

    async def find_user_project(self, login: str, slug: str) -> UserProject | None:
        """Walk the projects of ``login`` and return the one for ``slug``."""
        return await self.iter_user_projects(login).first(
            lambda entry: entry.project.slug == slug
        )
