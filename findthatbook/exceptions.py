"""Errors raised by the book search collaborators."""
from typing import Optional


class BookSearchError(Exception):
    """Base class for failures while searching for books."""


class ExtractionError(BookSearchError):
    """The field extractor could not turn a query into structured fields."""

    def __init__(self, query: str, message: str, ai_response: Optional[str] = None):
        super().__init__(message)
        self.query = query
        self.ai_response = ai_response


class OpenLibraryApiError(BookSearchError):
    """The Open Library API call failed or returned an unusable response."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
