"""Parse and normalize Open Library and Gemini API responses."""
import json
import logging
from typing import Dict, Any, List, Optional

from findthatbook.exceptions import ExtractionError
from findthatbook.models import Author, Book, Extraction

logger = logging.getLogger(__name__)

COVER_URL_TEMPLATE = "https://covers.openlibrary.org/b/id/{cover_id}-L.jpg"
UNKNOWN_WORK_ID = "/works/UNKNOWN"


def parse_search_doc(doc: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single document from an Open Library search response.

    Args:
        doc: Single entry of the "docs" array

    Returns:
        Book object or None if the document is unusable
    """
    title = doc.get("title")
    author_names = [
        name for name in (doc.get("author_name") or [])
        if isinstance(name, str) and name.strip()
    ]

    if not isinstance(title, str) or not title.strip() or not author_names:
        return None

    try:
        cover_id = doc.get("cover_i")
        cover_url = COVER_URL_TEMPLATE.format(cover_id=cover_id) if cover_id is not None else None

        year = doc.get("first_publish_year")
        if isinstance(year, bool) or not isinstance(year, int):
            year = None

        return Book(
            title=title,
            primary_author=Author(author_names[0]),
            catalog_work_id=doc.get("key") or UNKNOWN_WORK_ID,
            contributors=tuple(Author(name) for name in author_names[1:]),
            first_publish_year=year,
            cover_url=cover_url,
        )
    except (ValueError, TypeError) as e:
        # Skip the record
        logger.warning(f"Failed to parse search doc '{title}': {e}")
        return None


def parse_search_response(response_json: Dict[str, Any]) -> List[Book]:
    """
    Parse a full Open Library search response.

    Args:
        response_json: Complete API response JSON

    Returns:
        List of Book objects (empty if no docs found)
    """
    docs = response_json.get("docs") or []
    books = []

    for doc in docs:
        book = parse_search_doc(doc)
        if book:
            books.append(book)

    logger.info(f"Mapped {len(books)} of {len(docs)} docs from Open Library response")
    return books


def deduplicate_books(books: List[Book]) -> List[Book]:
    """
    Remove duplicate books by catalog work id.

    Args:
        books: List of Book objects

    Returns:
        Deduplicated list of books, first occurrence kept
    """
    seen_ids = set()
    unique_books = []

    for book in books:
        if book.catalog_work_id not in seen_ids:
            seen_ids.add(book.catalog_work_id)
            unique_books.append(book)

    return unique_books


def parse_gemini_response(response_body: str, query: str = "") -> Extraction:
    """
    Parse a Gemini generateContent response into an Extraction.

    Gemini wraps the model output in candidates[0].content.parts[0].text;
    that text is itself the JSON object with the extracted fields.

    Raises:
        ExtractionError: If the envelope or the inner JSON is malformed
    """
    try:
        envelope = json.loads(response_body)
        text = envelope["candidates"][0]["content"]["parts"][0].get("text")
    except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
        logger.error(f"Malformed Gemini response: {e}")
        raise ExtractionError(query, "Failed to parse AI response", response_body) from e

    if not text or not text.strip():
        logger.warning("Gemini returned empty text")
        return Extraction()

    try:
        fields = json.loads(text)
    except ValueError as e:
        logger.error(f"Gemini returned invalid JSON: {text}")
        raise ExtractionError(query, "Failed to parse AI response", response_body) from e

    if not isinstance(fields, dict):
        raise ExtractionError(query, "AI response is not a JSON object", response_body)

    return Extraction.from_dict(fields)


def book_to_dict(book: Book) -> Dict[str, Any]:
    """Serialize a Book for the candidate cache."""
    return {
        "title": book.title,
        "primary_author": {
            "name": book.primary_author.name,
            "catalog_id": book.primary_author.catalog_id,
        },
        "contributors": [
            {"name": author.name, "catalog_id": author.catalog_id}
            for author in book.contributors
        ],
        "catalog_work_id": book.catalog_work_id,
        "first_publish_year": book.first_publish_year,
        "cover_url": book.cover_url,
        "description": book.description,
    }


def book_from_dict(data: Dict[str, Any]) -> Book:
    """
    Rebuild a Book serialized by book_to_dict.

    Raises:
        ValueError: If the stored record no longer forms a valid Book
    """
    try:
        return Book(
            title=data["title"],
            primary_author=Author(**data["primary_author"]),
            catalog_work_id=data["catalog_work_id"],
            contributors=tuple(Author(**author) for author in data.get("contributors") or []),
            first_publish_year=data.get("first_publish_year"),
            cover_url=data.get("cover_url"),
            description=data.get("description"),
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid cached book record: {e}") from e
