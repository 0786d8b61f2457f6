"""Sequential genre -> tag -> book/author sync of the mybook catalog."""
import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional, Union
import logging

from mybook_sync.client import MyBookClient
from mybook_sync.config import Config
from mybook_sync.database import Database
from mybook_sync.models import StageResult, SyncSummary
from mybook_sync.paginator import Paginator
from mybook_sync.parse import parse_genres_page, parse_tags_page
from mybook_sync.reconcile import reconcile
from mybook_sync.sink import CatalogSink

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    GENRES_DONE = "genres_done"
    TAGS_DONE = "tags_done"
    BOOKS_DONE = "books_done"


def connect_database(config: Config) -> Database:
    """Open the document store described by the config."""
    return Database(config.DATABASE_URL, max_conn=config.DB_MAX_CONNECTIONS)


class CatalogPipeline:
    """
    Crawls genres, then tags, then books, and stores them.

    Each stage runs until its paginator is exhausted or it hits an error.
    Stage errors are logged and end only that stage, so a run always reaches
    the next stage and always closes the store.
    """

    def __init__(
        self,
        config: Config,
        connect: Optional[Callable[[Config], Database]] = None,
        client_factory: Optional[Callable[[Config], MyBookClient]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Args:
            config: Application configuration
            connect: Opens the store; defaults to a PostgreSQL pool
            client_factory: Builds the API client; defaults to MyBookClient
            sleep: Coroutine used for retry delays
        """
        self.config = config
        self.connect = connect or connect_database
        self.client_factory = client_factory or self._default_client
        self.sleep = sleep
        self.state = PipelineState.DISCONNECTED

    @staticmethod
    def _default_client(config: Config) -> MyBookClient:
        return MyBookClient(
            base_url=config.API_BASE_URL,
            page_limit=config.PAGE_LIMIT,
            timeout=config.DEFAULT_TIMEOUT
        )

    async def run(self) -> SyncSummary:
        """
        Run the three stages in order.

        Returns:
            Per-stage results and the total number of books processed

        Raises:
            Errors from opening or preparing the store; stage errors never escape
        """
        summary = SyncSummary()
        database = self.connect(self.config)
        self.state = PipelineState.CONNECTED

        try:
            await asyncio.to_thread(database.init_schema)
            sink = CatalogSink(database, max_concurrency=self.config.DB_MAX_CONNECTIONS)

            async with self.client_factory(self.config) as client:
                paginator = Paginator(
                    client,
                    max_attempts=self.config.MAX_RETRIES,
                    initial_delay_ms=self.config.INITIAL_BACKOFF_MS,
                    max_pages=self.config.MAX_PAGES,
                    sleep=self.sleep
                )

                summary.stages.append(await self.sync_genres(paginator, sink))
                self.state = PipelineState.GENRES_DONE

                summary.stages.append(await self.sync_tags(paginator, sink))
                self.state = PipelineState.TAGS_DONE

                books = await self.sync_books_and_authors(paginator, sink)
                summary.stages.append(books)
                summary.books_processed = books.records
                self.state = PipelineState.BOOKS_DONE

        finally:
            database.close()
            self.state = PipelineState.DISCONNECTED
            logger.info("Data fetching and saving complete!")

        return summary

    async def sync_genres(self, paginator: Paginator, sink: CatalogSink) -> StageResult:
        """Crawl genres and insert them, ignoring ones already stored."""
        result = StageResult("genres")
        start_url = paginator.client.start_url("genres")

        try:
            async for page in paginator.pages("genres", start_url):
                genres = parse_genres_page(page.records)
                result.saved += await sink.insert_genres(genres)
                result.pages += 1
                result.records += len(genres)
                logger.info(f"Saved {len(genres)} genres.")
            if paginator.last_failure:
                self._stop_stage(result, paginator.last_failure)
        except Exception as e:
            self._stop_stage(result, e)

        return result

    async def sync_tags(self, paginator: Paginator, sink: CatalogSink) -> StageResult:
        """Crawl tags and insert them, ignoring ones already stored."""
        result = StageResult("tags")
        start_url = paginator.client.start_url("tags")

        try:
            async for page in paginator.pages("tags", start_url):
                tags = parse_tags_page(page.records)
                result.saved += await sink.insert_tags(tags)
                result.pages += 1
                result.records += len(tags)
                logger.info(f"Saved {len(tags)} tags.")
            if paginator.last_failure:
                self._stop_stage(result, paginator.last_failure)
        except Exception as e:
            self._stop_stage(result, e)

        return result

    async def sync_books_and_authors(self, paginator: Paginator, sink: CatalogSink) -> StageResult:
        """
        Crawl books page by page and upsert each page's authors.

        An author appearing on several pages keeps only the books of the last
        page it appeared on.
        """
        result = StageResult("books")
        start_url = paginator.client.start_url("books")

        try:
            async for page in paginator.pages("books", start_url, stop_on_empty=True):
                authors = reconcile(page.records)
                result.saved += await sink.upsert_authors(authors.values())
                result.pages += 1
                result.records += len(page.records)
                logger.info(f"Saved {len(page.records)} books and their authors.")
            if paginator.last_failure:
                self._stop_stage(result, paginator.last_failure)
        except Exception as e:
            self._stop_stage(result, e)

        logger.info(f"Total books processed: {result.records}")
        return result

    @staticmethod
    def _stop_stage(result: StageResult, error: Union[Exception, str]):
        result.completed = False
        result.error = str(error)
        logger.error(f"Error fetching {result.resource}: {error}")
