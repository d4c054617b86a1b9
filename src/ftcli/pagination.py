"""Page-number pagination over unbounded collections.

42 collection endpoints never report a total count. A collection is walked by
requesting page 1, 2, ... until a page comes back empty. :class:`Pages` wraps
that loop in a lazy, restartable async sequence so callers can filter and
search without reimplementing it.

The sequence has no page cap. Callers that need one should stop iterating
themselves.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")

PageFetcher = Callable[[int], Awaitable[list[T]]]

FIRST_PAGE = 1


class Pages(Generic[T]):
    """Lazy sequence of items fetched page by page.

    Every ``async for`` starts again from ``start``; nothing is cached between
    iterations.

    Example:
        >>> pages = api.iter_user_projects("spoody")
        >>> async for entry in pages:
        ...     print(entry.project.slug)
    """

    def __init__(self, fetch: PageFetcher[T], *, start: int = FIRST_PAGE) -> None:
        if start < FIRST_PAGE:
            raise ValueError(f"page numbers start at {FIRST_PAGE}, got {start}")
        self._fetch = fetch
        self._start = start

    async def pages(self) -> AsyncIterator[list[T]]:
        """Yield each non-empty page, stopping at the first empty one."""
        number = self._start
        while True:
            page = await self._fetch(number)
            if not page:
                logger.debug(f"Page {number} is empty, collection exhausted")
                return
            logger.debug(f"Page {number} returned {len(page)} items")
            yield page
            number += 1

    async def _items(self) -> AsyncIterator[T]:
        async for page in self.pages():
            for item in page:
                yield item

    def __aiter__(self) -> AsyncIterator[T]:
        return self._items()

    async def first(self, predicate: Callable[[T], bool]) -> T | None:
        """Return the first item matching ``predicate``, fetching no further pages."""
        async for item in self:
            if predicate(item):
                return item
        return None

    async def collect(self) -> list[T]:
        """Fetch every page and return all items."""
        return [item async for item in self]
