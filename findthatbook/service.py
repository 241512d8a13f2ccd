"""
Book search use case.

Turns a free-text query into a ranked, explained list of books:
extract fields, fetch candidates from the catalog, match, rank, and map
the result for presentation.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from findthatbook.matching import BookMatcher
from findthatbook.models import Book, BookMatch, Extraction
from findthatbook.ranking import BookRanker, DEFAULT_TOP_N

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookResult:
    """Presentation view of a single ranked match."""
    title: str
    author: str
    authors: str
    first_publish_year: Optional[int]
    catalog_id: str
    catalog_url: str
    cover_url: Optional[str]
    explanation: str
    strength: str
    strength_label: str
    score: float

    @classmethod
    def from_match(cls, match: BookMatch) -> "BookResult":
        book = match.book
        return cls(
            title=book.title,
            author=book.primary_author.name,
            authors=book.authors_str,
            first_publish_year=book.first_publish_year,
            catalog_id=book.catalog_work_id,
            catalog_url=book.catalog_url,
            cover_url=book.cover_url,
            explanation=match.explanation,
            strength=match.strength.name,
            strength_label=match.strength.label,
            score=match.score,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "authors": self.authors,
            "first_publish_year": self.first_publish_year,
            "catalog_id": self.catalog_id,
            "catalog_url": self.catalog_url,
            "cover_url": self.cover_url,
            "explanation": self.explanation,
            "strength": self.strength,
            "strength_label": self.strength_label,
            "score": self.score,
        }


@dataclass(frozen=True)
class SearchResponse:
    query: str
    extraction: Extraction
    results: List[BookResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "extraction": self.extraction.to_dict(),
            "results": [result.to_dict() for result in self.results],
        }


class SearchBooksService:
    """
    Orchestrates extractor, catalog, matcher and ranker.

    The extractor needs an ``extract(query) -> Extraction`` method and the
    catalog a ``search_books(title, author, limit) -> list[Book]`` method.
    """

    def __init__(
        self,
        extractor,
        catalog,
        matcher: Optional[BookMatcher] = None,
        ranker: Optional[BookRanker] = None,
        top_n: int = DEFAULT_TOP_N,
        candidate_limit: int = 20
    ):
        self.extractor = extractor
        self.catalog = catalog
        self.matcher = matcher or BookMatcher()
        self.ranker = ranker or BookRanker(top_n)
        self.top_n = top_n
        self.candidate_limit = candidate_limit

    def search(self, query: str) -> SearchResponse:
        """Run the full pipeline for a free-text query."""
        logger.info(f"Starting book search for query: {query}")
        extraction = self.extractor.extract(query)
        return self.match_extraction(extraction, query)

    async def search_async(self, query: str) -> SearchResponse:
        """
        Like ``search`` but with an async catalog exposing ``search_many``.

        When both title and author are known, a title-only search runs
        alongside the combined one to widen the candidate pool.
        """
        logger.info(f"Starting async book search for query: {query}")
        extraction = self.extractor.extract(query)

        queries = candidate_queries(extraction)
        if extraction.has_title and extraction.has_author:
            queries.append((extraction.title.strip(), None))

        candidates = []
        if queries:
            candidates = await self.catalog.search_many(queries, limit=self.candidate_limit)
        else:
            logger.warning("No fields extracted from query, returning empty results")

        return self._rank(extraction, candidates, query)

    def match_extraction(self, extraction: Extraction, query: str = "") -> SearchResponse:
        """Fetch candidates for an already extracted query, then match and rank them."""
        return self._rank(extraction, self.find_candidates(extraction), query)

    def find_candidates(self, extraction: Extraction) -> List[Book]:
        queries = candidate_queries(extraction)
        if not queries:
            logger.warning("No fields extracted from query, returning empty results")
            return []

        title, author = queries[0]
        return self.catalog.search_books(title=title, author=author, limit=self.candidate_limit)

    def _rank(self, extraction: Extraction, candidates: List[Book], query: str) -> SearchResponse:
        logger.info(f"Found {len(candidates)} candidates from Open Library")

        matches = self.matcher.match(extraction, candidates)
        top_matches = self.ranker.rank_and_limit(matches, self.top_n)

        logger.info(f"Returning {len(top_matches)} top matches")
        return SearchResponse(
            query=query,
            extraction=extraction,
            results=[BookResult.from_match(m) for m in top_matches],
        )


def candidate_queries(extraction: Extraction) -> List[Tuple[Optional[str], Optional[str]]]:
    """
    Catalog (title, author) queries for an extraction.

    Title and/or author are searched directly; with only keywords, they
    are joined into a title query. Nothing extracted means no query.
    """
    if extraction.has_title or extraction.has_author:
        return [(
            extraction.title.strip() if extraction.has_title else None,
            extraction.author.strip() if extraction.has_author else None,
        )]

    if extraction.has_keywords:
        return [(" ".join(extraction.keywords), None)]

    return []
