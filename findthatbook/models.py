"""Data models for books, authors and match results."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Iterable, Any, Dict


OPEN_LIBRARY_URL = "https://openlibrary.org"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


@dataclass(frozen=True)
class Author:
    """Book author. Name is trimmed and must not be empty."""
    name: str
    catalog_id: Optional[str] = None

    def __post_init__(self):
        if _is_blank(self.name):
            raise ValueError("Author name cannot be empty")
        object.__setattr__(self, "name", self.name.strip())

    @property
    def normalized_name(self) -> str:
        """Lowercased, trimmed name used for comparisons."""
        return self.name.lower().strip()

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Book:
    """Catalog record for a single work."""
    title: str
    primary_author: Author
    catalog_work_id: str
    contributors: Tuple[Author, ...] = ()
    first_publish_year: Optional[int] = None
    cover_url: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        if _is_blank(self.title):
            raise ValueError("Book title cannot be empty")
        if _is_blank(self.catalog_work_id):
            raise ValueError("Book catalog work id is required")
        if not isinstance(self.primary_author, Author):
            raise ValueError("Book primary author is required")

        object.__setattr__(self, "title", self.title.strip())
        # Accept any iterable (or None) but always store an immutable tuple
        object.__setattr__(self, "contributors", tuple(self.contributors or ()))

    @property
    def normalized_title(self) -> str:
        """Lowercased, trimmed title used for comparisons."""
        return self.title.lower().strip()

    @property
    def catalog_url(self) -> str:
        """Public Open Library URL for this work."""
        work_id = self.catalog_work_id
        if not work_id.startswith("/"):
            work_id = f"/works/{work_id}"
        return f"{OPEN_LIBRARY_URL}{work_id}"

    @property
    def authors(self) -> Tuple[Author, ...]:
        return (self.primary_author,) + self.contributors

    @property
    def authors_str(self) -> str:
        """Format authors as comma-separated string."""
        return ", ".join(author.name for author in self.authors)


class MatchStrength(Enum):
    """
    Confidence tier of a match.

    Each member carries an explicit rank; a lower rank is a more
    confident match and sorts first.
    """
    STRONGEST = (1, "Exact title with primary author")
    STRONG = (2, "Exact title with contributing author")
    MEDIUM = (3, "Similar title")
    WEAK = (4, "Author only")
    VERY_WEAK = (5, "Keyword in title")

    def __init__(self, rank: int, label: str):
        self.rank = rank
        self.label = label

    def __lt__(self, other):
        if not isinstance(other, MatchStrength):
            return NotImplemented
        return self.rank < other.rank


@dataclass(frozen=True)
class BookMatch:
    """A candidate book that matched the query, with its tier and reason."""
    book: Book
    strength: MatchStrength
    explanation: str
    score: float = 0.0

    def __post_init__(self):
        if self.book is None:
            raise ValueError("BookMatch requires a book")
        if _is_blank(self.explanation):
            raise ValueError("BookMatch explanation cannot be empty")
        object.__setattr__(self, "explanation", self.explanation.strip())

    @classmethod
    def strongest(cls, book: Book, matched_author: str) -> "BookMatch":
        return cls(
            book,
            MatchStrength.STRONGEST,
            f"Exact title match; {matched_author} is the primary author.",
            score=1.0,
        )

    @classmethod
    def strong(cls, book: Book, matched_author: str, role: str) -> "BookMatch":
        return cls(
            book,
            MatchStrength.STRONG,
            f"Exact title match; {matched_author} is listed as {role}.",
            score=0.8,
        )

    @classmethod
    def medium(cls, book: Book, matched_title: str, similarity: float) -> "BookMatch":
        return cls(
            book,
            MatchStrength.MEDIUM,
            f"Similar title '{matched_title}' (similarity: {similarity:.0%})",
            score=similarity,
        )

    @classmethod
    def weak(cls, book: Book, author_name: str) -> "BookMatch":
        return cls(
            book,
            MatchStrength.WEAK,
            f"No title provided; showing one of {author_name}'s works.",
            score=0.5,
        )

    @classmethod
    def very_weak(cls, book: Book, matched_keywords: Iterable[str]) -> "BookMatch":
        keywords = ", ".join(matched_keywords)
        return cls(
            book,
            MatchStrength.VERY_WEAK,
            f"Keyword match: {keywords} found in the title.",
            score=0.3,
        )


def _clean_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.lower() == "null":
        return None
    return value


@dataclass(frozen=True)
class Extraction:
    """Structured fields believed present in a free-text query."""
    title: Optional[str] = None
    author: Optional[str] = None
    year: Optional[int] = None
    keywords: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "keywords", tuple(self.keywords or ()))

    @property
    def has_title(self) -> bool:
        return not _is_blank(self.title)

    @property
    def has_author(self) -> bool:
        return not _is_blank(self.author)

    @property
    def has_keywords(self) -> bool:
        return len(self.keywords) > 0

    @property
    def has_any_field(self) -> bool:
        return self.has_title or self.has_author or self.has_keywords

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Extraction":
        """
        Build an extraction from a loosely typed mapping.

        Blank strings and the literal "null" become None, a year is kept
        only when it is an integer, and blank keywords are dropped.
        """
        year = payload.get("year")
        if isinstance(year, bool) or not isinstance(year, int):
            year = None

        raw_keywords = payload.get("keywords") or []
        if not isinstance(raw_keywords, (list, tuple)):
            raw_keywords = []
        keywords = tuple(
            k.strip() for k in raw_keywords
            if isinstance(k, str) and k.strip()
        )

        return cls(
            title=_clean_text(payload.get("title")),
            author=_clean_text(payload.get("author")),
            year=year,
            keywords=keywords,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "year": self.year,
            "keywords": list(self.keywords),
        }
