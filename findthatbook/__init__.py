"""Find a book from a free-text description."""
from findthatbook.matching import BookMatcher
from findthatbook.models import Author, Book, BookMatch, Extraction, MatchStrength
from findthatbook.ranking import BookRanker, rank_and_limit

__all__ = [
    "Author",
    "Book",
    "BookMatch",
    "BookMatcher",
    "BookRanker",
    "Extraction",
    "MatchStrength",
    "rank_and_limit",
]
