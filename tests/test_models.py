"""Tests for the book, author and match models."""
import dataclasses

import pytest

from findthatbook.models import Author, Book, BookMatch, Extraction, MatchStrength
from tests.helpers import make_book


def test_author_trims_name():
    """Author names are trimmed on construction."""
    author = Author("  Ursula K. Le Guin  ", catalog_id="OL123A")

    assert author.name == "Ursula K. Le Guin"
    assert author.normalized_name == "ursula k. le guin"
    assert author.catalog_id == "OL123A"
    assert str(author) == "Ursula K. Le Guin"


@pytest.mark.parametrize("name", ["", "   ", None])
def test_author_rejects_blank_name(name):
    with pytest.raises(ValueError):
        Author(name)


def test_author_equality_is_by_value():
    """Equal names and ids give equal, hash-compatible authors."""
    assert Author("Tolkien") == Author(" Tolkien ")
    assert len({Author("Tolkien"), Author("Tolkien")}) == 1
    assert Author("Tolkien") != Author("Tolkien", catalog_id="OL1A")


def test_author_is_immutable():
    author = Author("Tolkien")
    with pytest.raises(dataclasses.FrozenInstanceError):
        author.name = "Lewis"


def test_book_complete():
    """Test building a book with all fields present."""
    book = Book(
        title="  The Hobbit ",
        primary_author=Author("J.R.R. Tolkien"),
        catalog_work_id="/works/OL27482W",
        contributors=[Author("Christopher Tolkien")],
        first_publish_year=1937,
        cover_url="https://covers.openlibrary.org/b/id/1-L.jpg",
        description="There and back again",
    )

    assert book.title == "The Hobbit"
    assert book.normalized_title == "the hobbit"
    assert book.contributors == (Author("Christopher Tolkien"),)
    assert book.authors_str == "J.R.R. Tolkien, Christopher Tolkien"
    assert book.first_publish_year == 1937


def test_book_contributors_default_to_empty():
    book = Book("Dune", Author("Frank Herbert"), "OL1W", contributors=None)
    assert book.contributors == ()


@pytest.mark.parametrize("title, work_id", [
    ("", "/works/OL1W"),
    ("   ", "/works/OL1W"),
    ("Dune", ""),
    ("Dune", "  "),
])
def test_book_rejects_blank_title_or_work_id(title, work_id):
    with pytest.raises(ValueError):
        Book(title, Author("Frank Herbert"), work_id)


def test_book_requires_primary_author():
    with pytest.raises(ValueError):
        Book("Dune", None, "/works/OL1W")


@pytest.mark.parametrize("year", [-750, 0, 3021])
def test_book_accepts_any_year(year):
    """Historical and forthcoming years are valid."""
    assert make_book(first_publish_year=year).first_publish_year == year


def test_catalog_url_with_path():
    book = make_book(work_id="/works/OL27482W")
    assert book.catalog_url == "https://openlibrary.org/works/OL27482W"


def test_catalog_url_with_bare_id():
    book = make_book(work_id="OL27482W")
    assert book.catalog_url == "https://openlibrary.org/works/OL27482W"


def test_match_strength_ranks():
    """Lower rank means more confident."""
    ranks = [s.rank for s in MatchStrength]

    assert ranks == [1, 2, 3, 4, 5]
    assert MatchStrength.STRONGEST < MatchStrength.STRONG < MatchStrength.VERY_WEAK
    assert sorted([MatchStrength.WEAK, MatchStrength.STRONGEST, MatchStrength.MEDIUM]) == [
        MatchStrength.STRONGEST, MatchStrength.MEDIUM, MatchStrength.WEAK
    ]


def test_book_match_trims_explanation(hobbit):
    match = BookMatch(hobbit, MatchStrength.MEDIUM, "  similar title  ")

    assert match.explanation == "similar title"
    assert match.score == 0.0


def test_book_match_score_is_not_clamped(hobbit):
    assert BookMatch(hobbit, MatchStrength.WEAK, "x", score=1.5).score == 1.5
    assert BookMatch(hobbit, MatchStrength.WEAK, "x", score=-2).score == -2


def test_book_match_rejects_missing_book():
    with pytest.raises(ValueError):
        BookMatch(None, MatchStrength.STRONG, "reason")


@pytest.mark.parametrize("explanation", ["", "   ", None])
def test_book_match_rejects_blank_explanation(hobbit, explanation):
    with pytest.raises(ValueError):
        BookMatch(hobbit, MatchStrength.STRONG, explanation)


def test_book_match_factories(hobbit):
    """Each factory sets its tier, score and a readable explanation."""
    strongest = BookMatch.strongest(hobbit, "Tolkien")
    strong = BookMatch.strong(hobbit, "Tolkien", "contributor")
    medium = BookMatch.medium(hobbit, "The Hobbit", similarity=0.7)
    weak = BookMatch.weak(hobbit, "Tolkien")
    very_weak = BookMatch.very_weak(hobbit, ["hobbit", "the"])

    assert (strongest.strength, strongest.score) == (MatchStrength.STRONGEST, 1.0)
    assert "primary author" in strongest.explanation
    assert (strong.strength, strong.score) == (MatchStrength.STRONG, 0.8)
    assert "contributor" in strong.explanation
    assert (medium.strength, medium.score) == (MatchStrength.MEDIUM, 0.7)
    assert "'The Hobbit'" in medium.explanation
    assert "70%" in medium.explanation
    assert (weak.strength, weak.score) == (MatchStrength.WEAK, 0.5)
    assert "Tolkien" in weak.explanation
    assert (very_weak.strength, very_weak.score) == (MatchStrength.VERY_WEAK, 0.3)
    assert "hobbit, the" in very_weak.explanation


def test_extraction_presence_predicates():
    empty = Extraction()
    blank = Extraction(title="  ", author="", keywords=[])
    full = Extraction(title="Dune", author="Herbert", keywords=["sand"])

    assert not empty.has_any_field
    assert not blank.has_title and not blank.has_author and not blank.has_keywords
    assert full.has_title and full.has_author and full.has_keywords
    assert full.keywords == ("sand",)


def test_extraction_from_dict_cleans_values():
    """Literal "null", blanks and wrongly typed values are dropped."""
    extraction = Extraction.from_dict({
        "title": "null",
        "author": "  Tolkien ",
        "year": "1937",
        "keywords": ["dragon", "", "  ", None, 7, " gold "],
    })

    assert extraction.title is None
    assert extraction.author == "Tolkien"
    assert extraction.year is None
    assert extraction.keywords == ("dragon", "gold")


def test_extraction_from_dict_year():
    assert Extraction.from_dict({"year": 1937}).year == 1937
    assert Extraction.from_dict({"year": True}).year is None


def test_extraction_to_dict():
    extraction = Extraction(title="Dune", year=1965, keywords=("sand",))
    assert extraction.to_dict() == {
        "title": "Dune",
        "author": None,
        "year": 1965,
        "keywords": ["sand"],
    }
