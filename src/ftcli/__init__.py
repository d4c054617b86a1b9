"""Command-line client and typed API layer for the 42 intranet API."""

from importlib import metadata

from .client import FtAPI, classify_response
from .errors import (
    EncodingError,
    FtAPIError,
    NotFoundError,
    OperationFailedError,
    RateLimitedError,
    TransportError,
)
from .pagination import Pages


def _resolve_version() -> str:
    """Return the installed distribution version or fall back to the project default."""

    try:
        return metadata.version("ftcli")
    except metadata.PackageNotFoundError:
        return "0.1.0"


__version__ = _resolve_version()

__all__ = [
    "EncodingError",
    "FtAPI",
    "FtAPIError",
    "NotFoundError",
    "OperationFailedError",
    "Pages",
    "RateLimitedError",
    "TransportError",
    "__version__",
    "classify_response",
]
