"""Builders shared across tests."""
from findthatbook.models import Author, Book


def make_book(title="The Hobbit", author="J.R.R. Tolkien", work_id=None, contributors=(), **kwargs):
    """Build a Book with sensible defaults for tests."""
    return Book(
        title=title,
        primary_author=Author(author),
        catalog_work_id=work_id or f"/works/{title.replace(' ', '_')}",
        contributors=tuple(Author(name) for name in contributors),
        **kwargs
    )
