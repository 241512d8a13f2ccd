"""HTTP client for the Open Library search API with resilience patterns."""
import time
import random
import requests
from typing import Optional, Dict, Any, List
import logging

from findthatbook.exceptions import OpenLibraryApiError
from findthatbook.models import Book
from findthatbook.parse import parse_search_response

logger = logging.getLogger(__name__)


class OpenLibraryClient:
    """Client for Open Library search with timeouts, retries, and backoff."""

    DEFAULT_BASE_URL = "https://openlibrary.org"
    SEARCH_PATH = "/search.json"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 10,
        max_retries: int = 3,
        base_backoff: float = 1.0
    ):
        """
        Initialize Open Library API client.

        Args:
            base_url: Open Library root URL
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            base_backoff: Base delay for exponential backoff
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_backoff = base_backoff

        # Create session for connection pooling
        self.session = requests.Session()

    def search_books(
        self,
        title: Optional[str] = None,
        author: Optional[str] = None,
        limit: int = 20,
        cache=None,
        cache_ttl: int = 3600
    ) -> List[Book]:
        """
        Search Open Library by title and/or author.

        Args:
            title: Title to search for
            author: Author to search for
            limit: Maximum number of docs requested
            cache: CandidateCache holding parsed results (optional)
            cache_ttl: Cache TTL in seconds

        Returns:
            Parsed books (empty if nothing was searched or found)

        Raises:
            OpenLibraryApiError: If the request ultimately fails
        """
        params = build_search_params(title, author, limit)
        if params is None:
            logger.warning("No search parameters provided")
            return []

        logger.info(f"Searching Open Library - title: {title}, author: {author}, limit: {limit}")

        # Try cache first
        if cache is not None:
            cached = cache.get_candidates(title, author, limit)
            if cached is not None:
                return cached

        response = self._make_request_with_retry(self.base_url + self.SEARCH_PATH, params)
        books = parse_search_response(response)

        if cache is not None:
            cache.store_candidates(title, author, limit, books, cache_ttl)

        if not books:
            logger.info("No results found from Open Library")
        return books

    def get_author_works(self, author: str, limit: int = 10) -> List[Book]:
        """Search for works by a single author."""
        logger.info(f"Getting works by author: {author}")
        return self.search_books(title=None, author=author, limit=limit)

    def _make_request_with_retry(
        self,
        url: str,
        params: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Make HTTP request with retry logic.

        Args:
            url: Request URL
            params: Query parameters

        Returns:
            Response JSON

        Raises:
            OpenLibraryApiError: On client errors, bad JSON, or when all
                retries are exhausted
        """
        last_status = None

        for attempt in range(self.max_retries):
            try:
                logger.info(f"Request attempt {attempt + 1}/{self.max_retries}: {url}")

                response = self.session.get(
                    url,
                    params=params,
                    timeout=self.timeout
                )
                last_status = response.status_code

                if response.status_code == 200:
                    logger.info(f"Success: {response.status_code}")
                    try:
                        return response.json()
                    except ValueError as e:
                        logger.error("JSON parsing error for Open Library response")
                        raise OpenLibraryApiError(
                            "Failed to parse Open Library response", url, response.status_code
                        ) from e

                elif response.status_code == 429:
                    # Rate limited - must retry with backoff
                    logger.warning(f"Rate limited (429) on attempt {attempt + 1}")

                elif response.status_code >= 500:
                    # Server error - retryable
                    logger.warning(f"Server error ({response.status_code}) on attempt {attempt + 1}")

                elif response.status_code >= 400:
                    # Client error - don't retry
                    logger.error(f"Client error ({response.status_code}): {response.text}")
                    raise OpenLibraryApiError(
                        "Failed to search Open Library", url, response.status_code
                    )

            except requests.exceptions.Timeout:
                logger.warning(f"Timeout on attempt {attempt + 1}")

            except requests.exceptions.ConnectionError as e:
                logger.warning(f"Connection error on attempt {attempt + 1}: {e}")

            except requests.exceptions.RequestException as e:
                logger.error(f"Unexpected request error: {e}")
                raise OpenLibraryApiError("Failed to search Open Library", url) from e

            if attempt < self.max_retries - 1:
                self._backoff(attempt)

        logger.error(f"All {self.max_retries} attempts failed")
        raise OpenLibraryApiError(
            f"Open Library request failed after {self.max_retries} attempts", url, last_status
        )

    def _backoff(self, attempt: int):
        """
        Sleep with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-indexed)
        """
        # Exponential backoff: base * 2^attempt
        delay = self.base_backoff * (2 ** attempt)

        # Add jitter: random value between 0 and delay
        jitter = random.uniform(0, delay)
        total_delay = delay + jitter

        logger.info(f"Backing off for {total_delay:.2f} seconds")
        time.sleep(total_delay)

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def build_search_params(
    title: Optional[str],
    author: Optional[str],
    limit: int
) -> Optional[Dict[str, Any]]:
    """Build search.json query parameters, or None if there is nothing to search."""
    params = {}

    if title and title.strip():
        params["title"] = title.strip()

    if author and author.strip():
        params["author"] = author.strip()

    if not params:
        return None

    params["limit"] = limit
    return params
