"""Cursor-following crawl over one catalog resource."""
import asyncio
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple
import logging

from mybook_sync import backoff
from mybook_sync.client import MyBookClient
from mybook_sync.errors import CrawlAborted, CrawlAbortReason, MalformedRecord
from mybook_sync.models import Page

logger = logging.getLogger(__name__)


def unpack_envelope(resource: str, payload: Any) -> Tuple[List[Dict[str, Any]], Optional[str]]:
    """
    Split a page body into its records and its `meta.next` cursor.

    Args:
        resource: Resource name, used in error messages
        payload: Decoded JSON body of the page

    Returns:
        (records, next cursor or None)
    """
    if not isinstance(payload, dict):
        raise MalformedRecord(resource, "objects")

    records = payload.get("objects")
    if records is None:
        records = []
    elif not isinstance(records, list):
        raise MalformedRecord(resource, "objects", payload)

    meta = payload.get("meta")
    if meta is None:
        meta = {}
    elif not isinstance(meta, dict):
        raise MalformedRecord(resource, "meta", payload)

    return records, meta.get("next")


class Paginator:
    """Fetches pages through the backoff executor until the cursor runs out."""

    def __init__(
        self,
        client: MyBookClient,
        max_attempts: int = 5,
        initial_delay_ms: int = 200,
        max_pages: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Args:
            client: Catalog API client
            max_attempts: Fetch attempts per page
            initial_delay_ms: First retry delay
            max_pages: Safety valve against cursors that never end (None disables it)
            sleep: Coroutine used between retries
        """
        self.client = client
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self.max_pages = max_pages
        self.sleep = sleep
        # Error message of the fetch that ended the latest crawl, if any
        self.last_failure: Optional[str] = None

    async def fetch(self, url: str) -> Dict[str, Any]:
        """Fetch one page, retrying with backoff."""
        return await backoff.execute(
            lambda: self.client.get_json(url),
            max_attempts=self.max_attempts,
            initial_delay_ms=self.initial_delay_ms,
            sleep=self.sleep
        )

    async def pages(
        self,
        resource: str,
        start_url: str,
        stop_on_empty: bool = False
    ) -> AsyncIterator[Page]:
        """
        Yield the pages of a resource in server order.

        The crawl ends when `meta.next` is null, when a fetch still fails after
        all retries (logged, not raised), or, with `stop_on_empty`, on the first
        page with no records even if the server sent a cursor.

        Args:
            resource: Resource name for diagnostics
            start_url: URL of the first page
            stop_on_empty: End on an empty record list regardless of the cursor

        Raises:
            CrawlAborted: More than `max_pages` pages would be requested
            MalformedRecord: A page body lacks the expected envelope
        """
        url: Optional[str] = start_url
        fetched = 0
        self.last_failure = None

        while url:
            if self.max_pages is not None and fetched >= self.max_pages:
                raise CrawlAborted(
                    CrawlAbortReason.PAGE_LIMIT_EXCEEDED,
                    resource,
                    f"next cursor still set after {fetched} pages: {url}"
                )

            try:
                payload = await self.fetch(url)
            except Exception as e:
                logger.error(f"Giving up on {resource} at {url} after {self.max_attempts} attempts: {e}")
                self.last_failure = str(e)
                return

            fetched += 1
            records, cursor = unpack_envelope(resource, payload)

            if stop_on_empty and not records:
                logger.info(f"No more {resource} to fetch.")
                return

            next_url = self.client.resolve(cursor)
            yield Page(number=fetched, url=url, records=records, next_url=next_url)
            url = next_url
