"""Shared fixtures: in-memory document store, fake catalog API, recorded sleeps."""
import copy
from typing import Any, Dict, List, Optional

import httpx
import pytest

from mybook_sync.client import MyBookClient
from mybook_sync.config import Config
from mybook_sync.database import COLLECTIONS
from mybook_sync.errors import UnknownCollection


class FakeDatabase:
    """Dict-backed stand-in for Database with the same write semantics."""

    def __init__(self):
        self.collections: Dict[str, Dict[int, Dict[str, Any]]] = {name: {} for name in COLLECTIONS}
        self.schema_initialized = False
        self.closed = False
        self.upsert_calls = 0
        self.fail_on: Dict[str, Exception] = {}

    def _collection(self, name: str) -> Dict[int, Dict[str, Any]]:
        if name not in self.collections:
            raise UnknownCollection(f"Unknown collection: {name}")
        if name in self.fail_on:
            raise self.fail_on[name]
        return self.collections[name]

    def init_schema(self):
        self.schema_initialized = True

    def insert_many(self, collection: str, documents: List[Dict[str, Any]]) -> int:
        store = self._collection(collection)
        inserted = 0
        for doc in documents:
            if doc["id"] in store:
                continue
            store[doc["id"]] = copy.deepcopy(doc)
            inserted += 1
        return inserted

    def upsert(self, collection: str, document: Dict[str, Any]):
        store = self._collection(collection)
        self.upsert_calls += 1
        store[document["id"]] = copy.deepcopy(document)

    def get_document(self, collection: str, doc_id: int) -> Optional[Dict[str, Any]]:
        return self._collection(collection).get(doc_id)

    def count(self, collection: str) -> int:
        return len(self._collection(collection))

    def close(self):
        self.closed = True


class FakeCatalogAPI:
    """
    Routes GET requests by full URL to queued responses.

    A dict is served as a 200 JSON body, an int as a bare status code. The
    last queued response for a URL keeps being served; unknown URLs get 404.
    """

    def __init__(self, base_url: str = "https://mybook.ru"):
        self.base_url = base_url
        self.routes: Dict[str, List[Any]] = {}
        self.requests: List[str] = []

    def add(self, url: str, *responses: Any):
        self.routes.setdefault(url, []).extend(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        queue = self.routes.get(url)
        if not queue:
            return httpx.Response(404, json={"detail": "Not found"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, int):
            return httpx.Response(item)
        return httpx.Response(200, json=item)

    def client(self, config: Optional[Config] = None) -> MyBookClient:
        return MyBookClient(base_url=self.base_url, transport=httpx.MockTransport(self.handler))


class SleepRecorder:
    """Async replacement for asyncio.sleep that only records delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


def page(objects: List[Dict[str, Any]], next_url: Optional[str] = None) -> Dict[str, Any]:
    """Build a catalog API page envelope."""
    return {"objects": objects, "meta": {"next": next_url}}


def raw_book(book_id: int, author_id: int, **overrides) -> Dict[str, Any]:
    """Raw book record with an embedded author."""
    record = {
        "id": book_id,
        "name": f"Book {book_id}",
        "annotation": f"About book {book_id}",
        "available": True,
        "genres": [{"id": 1, "name": "Fiction"}],
        "tags": [{"id": 10, "name": "Classic"}],
        "author": {
            "id": author_id,
            "cover_name": f"Author {author_id}",
            "slug": f"author-{author_id}"
        }
    }
    record.update(overrides)
    return record


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def catalog_api():
    return FakeCatalogAPI()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def config():
    cfg = Config()
    cfg.API_BASE_URL = "https://mybook.ru"
    cfg.PAGE_LIMIT = 100
    cfg.MAX_RETRIES = 5
    cfg.INITIAL_BACKOFF_MS = 200
    cfg.MAX_PAGES = 50
    cfg.DB_MAX_CONNECTIONS = 4
    return cfg
