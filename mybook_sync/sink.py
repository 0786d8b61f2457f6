"""Async persistence of parsed catalog entities."""
import asyncio
from typing import Iterable, List
import logging

from mybook_sync.database import Database
from mybook_sync.models import Author, Genre, Tag

logger = logging.getLogger(__name__)


class CatalogSink:
    """Writes genres, tags and author aggregates to the document store."""

    def __init__(self, database: Database, max_concurrency: int = 10):
        """
        Args:
            database: Connected document store
            max_concurrency: Upper bound of author upserts in flight; keep it
                at or below the store's pool size
        """
        self.database = database
        self.semaphore = asyncio.Semaphore(max_concurrency)

    async def insert_genres(self, genres: List[Genre]) -> int:
        """Insert genres, ignoring ids already stored. Returns the number inserted."""
        return await asyncio.to_thread(
            self.database.insert_many, "genres", [genre.to_document() for genre in genres]
        )

    async def insert_tags(self, tags: List[Tag]) -> int:
        """Insert tags, ignoring ids already stored. Returns the number inserted."""
        return await asyncio.to_thread(
            self.database.insert_many, "tags", [tag.to_document() for tag in tags]
        )

    async def _upsert_author(self, author: Author):
        async with self.semaphore:
            await asyncio.to_thread(self.database.upsert, "authors", author.to_document())

    async def upsert_authors(self, authors: Iterable[Author]) -> int:
        """
        Upsert every author of one page concurrently.

        Returns only once all writes have finished. Each stored document is
        replaced whole, including its book list.

        Args:
            authors: Aggregates produced by reconcile() for a single page

        Returns:
            Number of authors written

        Raises:
            The first write error, after the remaining writes have settled
        """
        authors = list(authors)
        results = await asyncio.gather(
            *(self._upsert_author(author) for author in authors),
            return_exceptions=True
        )

        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            logger.error(f"{len(errors)} of {len(authors)} author upserts failed")
            raise errors[0]

        return len(authors)
