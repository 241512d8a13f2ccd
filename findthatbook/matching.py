"""
Match candidate books against fields extracted from a query.

Each candidate is run through an ordered list of strategies. The first
strategy that returns a match wins; a candidate no strategy accepts is
dropped.
"""
import logging
from typing import Callable, List, Optional, Sequence

from findthatbook.models import Book, BookMatch, Extraction

logger = logging.getLogger(__name__)

TITLE_SIMILARITY_THRESHOLD = 0.7
CONTRIBUTOR_ROLE = "contributor"

Strategy = Callable[[Extraction, Book], Optional[BookMatch]]


def word_similarity(first: str, second: str) -> float:
    """
    Jaccard index of the whitespace-separated word sets of two strings.

    Returns 0.0 if either string has no words.
    """
    words1 = set(first.split())
    words2 = set(second.split())

    if not words1 or not words2:
        return 0.0

    return len(words1 & words2) / len(words1 | words2)


def is_title_match(extracted_title: str, candidate_title: str) -> bool:
    """
    Check whether an extracted title refers to a candidate title.

    Exact and containment matches (either direction, so "Hobbit" finds
    "The Hobbit") are accepted first; otherwise the word similarity must
    be strictly above the threshold.
    """
    extracted = extracted_title.lower().strip()
    candidate = candidate_title.lower().strip()

    if extracted == candidate:
        return True

    if extracted in candidate or candidate in extracted:
        return True

    return word_similarity(extracted, candidate) > TITLE_SIMILARITY_THRESHOLD


def is_primary_author(book: Book, author_name: str) -> bool:
    return author_name.lower().strip() in book.primary_author.normalized_name


def has_author(book: Book, author_name: str) -> bool:
    """Case-insensitive substring test against primary and contributing authors."""
    needle = author_name.lower().strip()
    return any(needle in author.normalized_name for author in book.authors)


def match_title_and_author(extraction: Extraction, book: Book) -> Optional[BookMatch]:
    if not (extraction.has_title and extraction.has_author):
        return None

    author = extraction.author.strip()
    title_match = is_title_match(extraction.title, book.normalized_title)

    if title_match and has_author(book, author):
        if is_primary_author(book, author):
            return BookMatch.strongest(book, author)
        return BookMatch.strong(book, author, CONTRIBUTOR_ROLE)

    if title_match:
        return BookMatch.medium(book, book.title, similarity=0.7)

    return None


def match_title_only(extraction: Extraction, book: Book) -> Optional[BookMatch]:
    if not extraction.has_title or extraction.has_author:
        return None

    if is_title_match(extraction.title, book.normalized_title):
        return BookMatch.medium(book, book.title, similarity=0.6)

    return None


def match_author_only(extraction: Extraction, book: Book) -> Optional[BookMatch]:
    if not extraction.has_author or extraction.has_title:
        return None

    author = extraction.author.strip()
    if has_author(book, author):
        return BookMatch.weak(book, author)

    return None


def match_keywords(extraction: Extraction, book: Book) -> Optional[BookMatch]:
    if not extraction.has_keywords:
        return None

    title = book.normalized_title
    matched = [keyword for keyword in extraction.keywords if keyword.lower() in title]

    if matched:
        return BookMatch.very_weak(book, matched)

    return None


DEFAULT_STRATEGIES = (
    match_title_and_author,
    match_title_only,
    match_author_only,
    match_keywords,
)


def first_match(
    strategies: Sequence[Strategy],
    extraction: Extraction,
    book: Book
) -> Optional[BookMatch]:
    """Return the result of the first strategy that matches, or None."""
    for strategy in strategies:
        match = strategy(extraction, book)
        if match is not None:
            return match
    return None


class BookMatcher:
    """Applies the strategy cascade to every candidate independently."""

    def __init__(self, strategies: Optional[Sequence[Strategy]] = None):
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES

    def match(self, extraction: Extraction, candidates: Sequence[Book]) -> List[BookMatch]:
        """
        Match every candidate against the extraction.

        Args:
            extraction: Fields extracted from the user's query
            candidates: Books returned by the catalog

        Returns:
            Matches in candidate order (empty if nothing matched)
        """
        if not candidates:
            logger.info("No candidates to match")
            return []

        logger.info(f"Matching {len(candidates)} candidates against extraction")

        matches = []
        for candidate in candidates:
            match = first_match(self.strategies, extraction, candidate)
            if match is not None:
                matches.append(match)

        logger.info(f"Found {len(matches)} matches")
        return matches
