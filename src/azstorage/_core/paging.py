"""Explicit cursors over marker-based listings."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from typing import Any, Generic, Protocol, TypeVar

T_co = TypeVar("T_co", covariant=True)
P = TypeVar("P", bound="Page[Any]")


class Page(Protocol[T_co]):
    @property
    def items(self) -> list[T_co]: ...  # pragma: no cover

    @property
    def next_marker(self) -> Any: ...  # pragma: no cover


class _CursorState(Generic[P]):
    def __init__(self, marker: Any = None) -> None:
        self.current_page: P | None = None
        self.next_marker: Any = marker
        self._started = False

    @property
    def done(self) -> bool:
        return self._started and self.next_marker is None

    def _advance(self, page: P) -> P:
        self._started = True
        self.current_page = page
        self.next_marker = page.next_marker
        return page


class ListCursor(_CursorState[P]):
    """Walks a listing page by page.

    ``fetch_next()`` returns the next page, or ``None`` once the service has
    returned a page without a continuation marker. Iterating the cursor yields
    the items of every remaining page.
    """

    def __init__(self, fetch: Callable[[Any], P], marker: Any = None) -> None:
        super().__init__(marker)
        self._fetch = fetch

    def fetch_next(self) -> P | None:
        if self.done:
            return None
        return self._advance(self._fetch(self.next_marker))

    def pages(self) -> Iterator[P]:
        while (page := self.fetch_next()) is not None:
            yield page

    def __iter__(self) -> Iterator[Any]:
        for page in self.pages():
            yield from page.items


class AsyncListCursor(_CursorState[P]):
    """Asynchronous counterpart of :class:`ListCursor`."""

    def __init__(self, fetch: Callable[[Any], Awaitable[P]], marker: Any = None) -> None:
        super().__init__(marker)
        self._fetch = fetch

    async def fetch_next(self) -> P | None:
        if self.done:
            return None
        return self._advance(await self._fetch(self.next_marker))

    async def pages(self) -> AsyncIterator[P]:
        while (page := await self.fetch_next()) is not None:
            yield page

    async def __aiter__(self) -> AsyncIterator[Any]:
        async for page in self.pages():
            for item in page.items:
                yield item


__all__ = ["Page", "ListCursor", "AsyncListCursor"]
