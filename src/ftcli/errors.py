"""Error taxonomy for the 42 API client.

Every failure raised by :class:`ftcli.client.FtAPI` is an :class:`FtAPIError`.
Calling code decides between retry and abort from the concrete subclass:

- :class:`TransportError` - the request never produced a response
- :class:`RateLimitedError` - the remaining-quota header reached zero
- :class:`NotFoundError` - the subject of the operation does not exist
- :class:`OperationFailedError` - any other non-2xx outcome
- :class:`EncodingError` - the request body could not be built locally
"""

from __future__ import annotations


class FtAPIError(Exception):
    """Base exception for all 42 API client errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TransportError(FtAPIError):
    """Network or connection failure raised by the transport."""


class RateLimitedError(FtAPIError):
    """The server reported an exhausted request quota."""

    def __init__(
        self,
        message: str = "exceeded rate limit",
        *,
        header: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.header = header
        self.retry_after = retry_after


class NotFoundError(FtAPIError):
    """HTTP 404 on a resource lookup or mutation."""


class OperationFailedError(FtAPIError):
    """Non-2xx outcome other than 404, described by the failed action."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EncodingError(FtAPIError):
    """Local failure to serialize a body or read an upload stream."""


class ConfigurationError(Exception):
    """Raised when ftcli settings are missing or invalid."""
