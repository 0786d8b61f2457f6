"""Async HTTP client for the mybook.ru catalog API."""
import httpx
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class MyBookClient:
    """Async client that fetches catalog pages as JSON."""

    BASE_URL = "https://mybook.ru"

    RESOURCE_PATHS = {
        "genres": "/api/v1/catalog/genres/",
        "tags": "/api/v1/tags/",
        "books": "/api/v1/books/"
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        page_limit: int = 100,
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            base_url: API origin; relative pagination cursors are resolved against it
            page_limit: Records per page requested on the first call
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.page_limit = page_limit
        self.timeout = timeout

        # Create async HTTP client
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def start_url(self, resource: str) -> str:
        """First page URL of a resource collection."""
        try:
            path = self.RESOURCE_PATHS[resource]
        except KeyError:
            raise ValueError(f"Unknown catalog resource: {resource}")
        return f"{self.base_url}{path}?limit={self.page_limit}"

    def resolve(self, cursor: Optional[str]) -> Optional[str]:
        """
        Turn a `meta.next` cursor into a fetchable URL.

        Args:
            cursor: Absolute URL, path relative to the API origin, or None

        Returns:
            Absolute URL, or None when there is no next page
        """
        if not cursor:
            return None
        return str(httpx.URL(self.base_url).join(cursor))

    async def get_json(self, url: str) -> Dict[str, Any]:
        """
        GET a page and decode its JSON body.

        Raises:
            httpx.HTTPError: On transport failures and non-2xx responses
            ValueError: If the body is not valid JSON
        """
        logger.debug(f"GET {url}")
        response = await self.client.get(url)
        response.raise_for_status()
        return response.json()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
