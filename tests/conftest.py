"""Pytest configuration for test discovery and shared fixtures.

This file ensures that:
- `src/` is importable without installing the package
- tests can build an `FtAPI` over an in-memory `httpx.MockTransport`
"""

from __future__ import annotations

import contextlib
import sys
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from ftcli.client import FtAPI  # noqa: E402

ENDPOINT = "https://api.intra.test/v2"
FIXTURES = Path(__file__).parent / "fixtures"

Handler = Callable[[httpx.Request], httpx.Response]


@contextlib.asynccontextmanager
async def _mock_api(handler: Handler, **kwargs: Any) -> AsyncIterator[FtAPI]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        yield FtAPI(ENDPOINT, http_client, **kwargs)


@pytest.fixture
def mock_api() -> Callable[..., contextlib.AbstractAsyncContextManager[FtAPI]]:
    """Return a factory yielding an `FtAPI` whose requests are answered by `handler`."""
    return _mock_api


@pytest.fixture
def load_fixture() -> Callable[[str], bytes]:
    """Return a loader for JSON payloads stored under `tests/fixtures/`."""

    def _load(name: str) -> bytes:
        return (FIXTURES / name).read_bytes()

    return _load
