"""Async HTTP client for parallel Open Library searches."""
import asyncio
import httpx
from typing import List, Optional, Sequence, Tuple
import logging

from findthatbook.client import build_search_params
from findthatbook.exceptions import OpenLibraryApiError
from findthatbook.models import Book
from findthatbook.parse import parse_search_response, deduplicate_books

logger = logging.getLogger(__name__)


class AsyncOpenLibraryClient:
    """Async client for parallel book searches."""

    DEFAULT_BASE_URL = "https://openlibrary.org"
    SEARCH_PATH = "/search.json"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 10,
        max_concurrent: int = 5
    ):
        """
        Initialize async client.

        Args:
            base_url: Open Library root URL
            timeout: Request timeout
            max_concurrent: Maximum concurrent requests
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_concurrent)

        # Create async HTTP client
        self.client = httpx.AsyncClient(timeout=timeout)

    async def search_books(
        self,
        title: Optional[str] = None,
        author: Optional[str] = None,
        limit: int = 20
    ) -> List[Book]:
        """
        Search Open Library asynchronously.

        Raises:
            OpenLibraryApiError: On a non-200 status or transport failure
        """
        params = build_search_params(title, author, limit)
        if params is None:
            logger.warning("No search parameters provided")
            return []

        url = self.base_url + self.SEARCH_PATH

        # Use semaphore to limit concurrency
        async with self.semaphore:
            try:
                logger.info(f"Async request: title={title}, author={author}")
                response = await self.client.get(url, params=params)
            except httpx.HTTPError as e:
                logger.error(f"Async request failed: {e}")
                raise OpenLibraryApiError("Failed to search Open Library", url) from e

        if response.status_code != 200:
            logger.warning(f"Status {response.status_code} for title={title}, author={author}")
            raise OpenLibraryApiError("Failed to search Open Library", url, response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise OpenLibraryApiError(
                "Failed to parse Open Library response", url, response.status_code
            ) from e

        return parse_search_response(payload)

    async def search_many(
        self,
        queries: Sequence[Tuple[Optional[str], Optional[str]]],
        limit: int = 20
    ) -> List[Book]:
        """
        Run several (title, author) searches in parallel.

        Failed searches are logged and skipped; results are merged and
        de-duplicated by work id in query order.

        Args:
            queries: (title, author) pairs
            limit: Max results per query

        Returns:
            Merged list of books
        """
        tasks = [
            self.search_books(title, author, limit)
            for title, author in queries
        ]

        results = await asyncio.gather(*tasks, return_exceptions=True)

        books = []
        for (title, author), result in zip(queries, results):
            if isinstance(result, OpenLibraryApiError):
                logger.warning(f"Search failed for title={title}, author={author}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            books.extend(result)

        return deduplicate_books(books)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
