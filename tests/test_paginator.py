"""Tests for the cursor-following paginator."""
import asyncio

import pytest

from conftest import page, raw_book
from mybook_sync.errors import CrawlAborted, CrawlAbortReason, MalformedRecord
from mybook_sync.paginator import Paginator, unpack_envelope

GENRES = "https://mybook.ru/api/v1/catalog/genres/?limit=100"
BOOKS = "https://mybook.ru/api/v1/books/?limit=100"


def collect(paginator, resource, start_url, **kwargs):
    async def scenario():
        try:
            return [p async for p in paginator.pages(resource, start_url, **kwargs)]
        finally:
            await paginator.client.close()

    return asyncio.run(scenario())


def genre(genre_id):
    return {"id": genre_id, "name": f"Genre {genre_id}", "slug": f"genre-{genre_id}"}


def test_stops_when_next_is_null(catalog_api, sleep_recorder):
    """Test three pages are fetched when the third has no next cursor."""
    catalog_api.add(GENRES, page([genre(1)], "/api/v1/catalog/genres/?limit=100&offset=100"))
    catalog_api.add(GENRES + "&offset=100", page([genre(2)], "/api/v1/catalog/genres/?limit=100&offset=200"))
    catalog_api.add(GENRES + "&offset=200", page([genre(3)], None))

    pages = collect(Paginator(catalog_api.client(), sleep=sleep_recorder), "genres", GENRES)

    assert len(catalog_api.requests) == 3
    assert [p.number for p in pages] == [1, 2, 3]
    assert [p.records[0]["id"] for p in pages] == [1, 2, 3]
    assert pages[0].next_url == GENRES + "&offset=100"
    assert pages[2].next_url is None


def test_absolute_cursor_followed(catalog_api, sleep_recorder):
    """Test an absolute next URL is used as is."""
    catalog_api.add(GENRES, page([genre(1)], "https://mybook.ru/api/v1/catalog/genres/?limit=100&offset=100"))
    catalog_api.add(GENRES + "&offset=100", page([genre(2)]))

    pages = collect(Paginator(catalog_api.client(), sleep=sleep_recorder), "genres", GENRES)

    assert len(pages) == 2


def test_books_stop_on_empty_page_despite_cursor(catalog_api, sleep_recorder):
    """Test an empty page ends the crawl even though meta.next is set."""
    catalog_api.add(BOOKS, page([raw_book(1, 7)], "/api/v1/books/?limit=100&offset=100"))
    catalog_api.add(BOOKS + "&offset=100", page([], "/api/v1/books/?limit=100&offset=200"))
    catalog_api.add(BOOKS + "&offset=200", page([raw_book(2, 7)]))

    pages = collect(Paginator(catalog_api.client(), sleep=sleep_recorder), "books", BOOKS, stop_on_empty=True)

    assert len(catalog_api.requests) == 2
    assert len(pages) == 1


def test_empty_page_without_stop_on_empty_follows_cursor(catalog_api, sleep_recorder):
    """Test other resources only stop on the cursor."""
    catalog_api.add(GENRES, page([], "/api/v1/catalog/genres/?limit=100&offset=100"))
    catalog_api.add(GENRES + "&offset=100", page([genre(2)]))

    pages = collect(Paginator(catalog_api.client(), sleep=sleep_recorder), "genres", GENRES)

    assert [len(p.records) for p in pages] == [0, 1]


def test_terminal_fetch_failure_ends_crawl_quietly(catalog_api, sleep_recorder):
    """Test a page that keeps failing ends the crawl without raising."""
    catalog_api.add(GENRES, page([genre(1)], "/api/v1/catalog/genres/?limit=100&offset=100"))
    catalog_api.add(GENRES + "&offset=100", 500)

    paginator = Paginator(catalog_api.client(), max_attempts=3, initial_delay_ms=200, sleep=sleep_recorder)
    pages = collect(paginator, "genres", GENRES)

    assert len(pages) == 1
    assert len(catalog_api.requests) == 4
    assert sleep_recorder.delays == [0.2, 0.4]
    assert "500" in paginator.last_failure


def test_transient_failure_recovers(catalog_api, sleep_recorder):
    """Test a page that fails once is retried and the crawl continues."""
    catalog_api.add(GENRES, 502, page([genre(1)]))

    paginator = Paginator(catalog_api.client(), sleep=sleep_recorder)
    pages = collect(paginator, "genres", GENRES)

    assert len(pages) == 1
    assert sleep_recorder.delays == [0.2]
    assert paginator.last_failure is None


def test_page_limit_aborts_crawl(catalog_api, sleep_recorder):
    """Test a cursor that never ends is cut off at max_pages."""
    catalog_api.add(GENRES, page([genre(1)], "/api/v1/catalog/genres/?limit=100"))

    paginator = Paginator(catalog_api.client(), max_pages=3, sleep=sleep_recorder)

    with pytest.raises(CrawlAborted) as exc_info:
        collect(paginator, "genres", GENRES)

    assert exc_info.value.reason is CrawlAbortReason.PAGE_LIMIT_EXCEEDED
    assert exc_info.value.resource == "genres"
    assert len(catalog_api.requests) == 3


def test_unpack_envelope():
    """Test records and cursor extraction from a page body."""
    assert unpack_envelope("tags", page([{"id": 1}], "/next")) == ([{"id": 1}], "/next")
    assert unpack_envelope("tags", {"objects": [{"id": 1}]}) == ([{"id": 1}], None)
    assert unpack_envelope("tags", {"meta": {"next": None}}) == ([], None)

    with pytest.raises(MalformedRecord):
        unpack_envelope("tags", {"objects": "nope", "meta": {}})
    with pytest.raises(MalformedRecord):
        unpack_envelope("tags", ["not", "an", "envelope"])
