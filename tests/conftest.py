"""Pytest configuration and shared fixtures."""
import pytest

from tests.helpers import make_book


@pytest.fixture
def hobbit():
    return make_book("The Hobbit", "J.R.R. Tolkien", work_id="/works/OL27482W", first_publish_year=1937)


@pytest.fixture
def illustrated_hobbit():
    """Edition where the illustrator is listed first and Tolkien contributes."""
    return make_book(
        "The Hobbit",
        "Alan Lee",
        work_id="/works/OL999W",
        contributors=("J.R.R. Tolkien",)
    )
