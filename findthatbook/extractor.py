"""Extract book fields from a free-text query with the Gemini API."""
import logging
import re
from typing import Optional

import requests

from findthatbook.exceptions import ExtractionError
from findthatbook.models import Extraction
from findthatbook.parse import parse_gemini_response

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """You are a book metadata extractor. Analyze this query and extract book information.

Query: "{query}"

Extract the following fields (all optional):
- title: The book title (if present)
- author: The author name (if present)
- year: Publication year (if present, as integer)
- keywords: Any other relevant keywords (as array)

Return ONLY valid JSON in this exact format:
{{
  "title": "extracted title or null",
  "author": "extracted author or null",
  "year": 1234,
  "keywords": ["keyword1", "keyword2"]
}}

Rules:
- If a field is not present, use null (not empty string)
- Keywords should NOT include title or author
- Be conservative - only extract what you're confident about
- Return ONLY the JSON object, no explanations"""


def normalize_query(query: str) -> str:
    """
    Lowercase, trim and collapse whitespace in a search query.

    Raises:
        ValueError: If the query is empty
    """
    if query is None or not query.strip():
        raise ValueError("Search query cannot be empty")
    return re.sub(r"\s+", " ", query.strip().lower())


def build_prompt(query: str) -> str:
    return PROMPT_TEMPLATE.format(query=query)


class GeminiExtractor:
    """Field extractor backed by Gemini generateContent."""

    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-1.5-flash",
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 10
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def extract(self, query: str) -> Extraction:
        """
        Extract title, author, year and keywords from a query.

        Args:
            query: Free-text query from the user

        Returns:
            Extraction (possibly with no fields set)

        Raises:
            ValueError: If the query is empty
            ExtractionError: If the API call fails or its output can't be parsed
        """
        normalized = normalize_query(query)

        if not self.api_key:
            raise ExtractionError(query, "GEMINI_API_KEY is not configured")

        logger.info(f"Extracting fields from query using Gemini: {normalized}")

        url = f"{self.base_url}/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": build_prompt(normalized)}]}],
            "generationConfig": {
                "temperature": 0.1,
                "responseMimeType": "application/json",
            },
        }

        try:
            response = self.session.post(
                url,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"HTTP error calling Gemini API for query '{query}': {e}")
            raise ExtractionError(query, "Failed to call Gemini API") from e

        logger.debug(f"Gemini API response: {response.text}")

        extraction = parse_gemini_response(response.text, query)
        logger.info(
            f"AI extracted - title: {extraction.title or 'none'}, "
            f"author: {extraction.author or 'none'}, "
            f"keywords: {', '.join(extraction.keywords)}"
        )
        return extraction

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
