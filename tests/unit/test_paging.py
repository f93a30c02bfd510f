"""Tests for the explicit listing cursors."""

from __future__ import annotations

import pytest

from azstorage._core.models import ListPage
from azstorage._core.paging import AsyncListCursor, ListCursor

PAGES = {
    None: ListPage(prefix="", marker=None, max_results=2, items=["a", "b"], next_marker="m1"),
    "m1": ListPage(prefix="", marker="m1", max_results=2, items=["c", "d"], next_marker="m2"),
    "m2": ListPage(prefix="", marker="m2", max_results=2, items=["e"], next_marker=None),
}
EMPTY_PAGE: ListPage[str] = ListPage(prefix="", marker=None, max_results=5, items=[], next_marker=None)


class TestListCursor:
    def test_iterates_every_page(self) -> None:
        requested: list[str | None] = []

        def fetch(marker: str | None) -> ListPage[str]:
            requested.append(marker)
            return PAGES[marker]

        cursor = ListCursor(fetch)

        assert list(cursor) == ["a", "b", "c", "d", "e"]
        assert requested == [None, "m1", "m2"]
        assert cursor.done

    def test_fetch_next_exposes_state(self) -> None:
        cursor = ListCursor(PAGES.__getitem__)

        first = cursor.fetch_next()

        assert first is PAGES[None]
        assert cursor.current_page is first
        assert cursor.next_marker == "m1"
        assert not cursor.done

    def test_fetch_next_after_last_page_returns_none(self) -> None:
        calls = 0

        def fetch(marker: str | None) -> ListPage[str]:
            nonlocal calls
            calls += 1
            return PAGES["m2"]

        cursor = ListCursor(fetch)

        assert cursor.fetch_next() is PAGES["m2"]
        assert cursor.fetch_next() is None
        assert calls == 1

    def test_starts_at_given_marker(self) -> None:
        cursor = ListCursor(PAGES.__getitem__, "m1")

        assert [len(page) for page in cursor.pages()] == [2, 1]

    def test_empty_single_page_terminates(self) -> None:
        calls = 0

        def fetch(marker: str | None) -> ListPage[str]:
            nonlocal calls
            calls += 1
            return EMPTY_PAGE

        cursor = ListCursor(fetch)

        assert list(cursor) == []
        assert cursor.current_page is EMPTY_PAGE
        assert cursor.done
        assert cursor.fetch_next() is None
        assert calls == 1


class TestAsyncListCursor:
    @pytest.mark.asyncio
    async def test_iterates_every_page(self) -> None:
        async def fetch(marker: str | None) -> ListPage[str]:
            return PAGES[marker]

        cursor = AsyncListCursor(fetch)

        assert [item async for item in cursor] == ["a", "b", "c", "d", "e"]
        assert await cursor.fetch_next() is None

    @pytest.mark.asyncio
    async def test_pages(self) -> None:
        async def fetch(marker: str | None) -> ListPage[str]:
            return PAGES[marker]

        pages = [page async for page in AsyncListCursor(fetch).pages()]

        assert [page.marker for page in pages] == [None, "m1", "m2"]

    @pytest.mark.asyncio
    async def test_empty_single_page_terminates(self) -> None:
        async def fetch(marker: str | None) -> ListPage[str]:
            return EMPTY_PAGE

        cursor = AsyncListCursor(fetch)

        assert [item async for item in cursor] == []
        assert cursor.done
