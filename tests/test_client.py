"""Tests for the Open Library clients, with HTTP faked out."""
import asyncio
from unittest.mock import MagicMock, patch

import httpx
import pytest
import requests

from findthatbook.async_client import AsyncOpenLibraryClient
from findthatbook.client import OpenLibraryClient, build_search_params
from findthatbook.exceptions import OpenLibraryApiError
from tests.helpers import make_book

SEARCH_PAYLOAD = {
    "numFound": 2,
    "docs": [
        {"key": "/works/OL27482W", "title": "The Hobbit", "author_name": ["J.R.R. Tolkien"]},
        {"key": "/works/OL1W", "title": "The Silmarillion", "author_name": ["J.R.R. Tolkien"]},
    ]
}


def _response(status_code, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload
    return response


@pytest.fixture
def client():
    with patch("findthatbook.client.time.sleep"):
        with OpenLibraryClient(base_url="https://ol.test/", max_retries=3, base_backoff=0) as ol:
            ol.session = MagicMock()
            yield ol


def test_build_search_params():
    assert build_search_params(" The Hobbit ", None, 20) == {"title": "The Hobbit", "limit": 20}
    assert build_search_params(None, "Tolkien", 5) == {"author": "Tolkien", "limit": 5}
    assert build_search_params("  ", "", 5) is None


def test_search_books_success(client):
    client.session.get.return_value = _response(200, SEARCH_PAYLOAD)

    books = client.search_books(title="The Hobbit", author="Tolkien", limit=10)

    assert [b.title for b in books] == ["The Hobbit", "The Silmarillion"]
    client.session.get.assert_called_once_with(
        "https://ol.test/search.json",
        params={"title": "The Hobbit", "author": "Tolkien", "limit": 10},
        timeout=10
    )


def test_search_books_without_params_makes_no_request(client):
    assert client.search_books(title=" ", author=None) == []
    client.session.get.assert_not_called()


def test_search_books_retries_server_errors(client):
    client.session.get.side_effect = [
        _response(503),
        _response(429),
        _response(200, SEARCH_PAYLOAD),
    ]

    books = client.search_books(author="Tolkien")

    assert len(books) == 2
    assert client.session.get.call_count == 3


def test_search_books_retries_timeouts(client):
    client.session.get.side_effect = [
        requests.exceptions.Timeout(),
        requests.exceptions.ConnectionError("reset"),
        _response(200, SEARCH_PAYLOAD),
    ]

    assert len(client.search_books(title="Hobbit")) == 2


def test_search_books_gives_up_after_max_retries(client):
    client.session.get.return_value = _response(500)

    with pytest.raises(OpenLibraryApiError) as excinfo:
        client.search_books(title="Hobbit")

    assert excinfo.value.status_code == 500
    assert excinfo.value.endpoint == "https://ol.test/search.json"
    assert client.session.get.call_count == 3


def test_search_books_client_error_not_retried(client):
    client.session.get.return_value = _response(400, text="bad request")

    with pytest.raises(OpenLibraryApiError) as excinfo:
        client.search_books(title="Hobbit")

    assert excinfo.value.status_code == 400
    assert client.session.get.call_count == 1


def test_search_books_bad_json(client):
    response = _response(200)
    response.json.side_effect = ValueError("no json")
    client.session.get.return_value = response

    with pytest.raises(OpenLibraryApiError):
        client.search_books(title="Hobbit")


def test_search_books_uses_cache(client):
    cached = [make_book("The Hobbit", "J.R.R. Tolkien")]
    cache = MagicMock()
    cache.get_candidates.return_value = cached

    books = client.search_books(title="Hobbit", limit=5, cache=cache)

    assert books == cached
    cache.get_candidates.assert_called_once_with("Hobbit", None, 5)
    cache.store_candidates.assert_not_called()
    client.session.get.assert_not_called()


def test_search_books_fills_cache_on_miss(client):
    cache = MagicMock()
    cache.get_candidates.return_value = None
    client.session.get.return_value = _response(200, SEARCH_PAYLOAD)

    books = client.search_books(author="Tolkien", limit=5, cache=cache, cache_ttl=60)

    cache.store_candidates.assert_called_once_with(None, "Tolkien", 5, books, 60)


def test_get_author_works(client):
    client.session.get.return_value = _response(200, SEARCH_PAYLOAD)

    client.get_author_works("Tolkien", limit=3)

    _, kwargs = client.session.get.call_args
    assert kwargs["params"] == {"author": "Tolkien", "limit": 3}


def _async_client(handler):
    ol = AsyncOpenLibraryClient(base_url="https://ol.test", max_concurrent=2)
    ol.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ol


def test_async_search_books():
    def handler(request):
        assert request.url.params["title"] == "The Hobbit"
        return httpx.Response(200, json=SEARCH_PAYLOAD)

    async def run():
        async with _async_client(handler) as ol:
            return await ol.search_books(title="The Hobbit")

    books = asyncio.run(run())

    assert [b.catalog_work_id for b in books] == ["/works/OL27482W", "/works/OL1W"]


def test_async_search_books_error_status():
    async def run():
        async with _async_client(lambda request: httpx.Response(502)) as ol:
            return await ol.search_books(title="The Hobbit")

    with pytest.raises(OpenLibraryApiError) as excinfo:
        asyncio.run(run())

    assert excinfo.value.status_code == 502


def test_async_search_many_merges_and_skips_failures():
    def handler(request):
        if request.url.params.get("author") == "Broken":
            return httpx.Response(500)
        return httpx.Response(200, json=SEARCH_PAYLOAD)

    async def run():
        async with _async_client(handler) as ol:
            return await ol.search_many([
                ("The Hobbit", "Tolkien"),
                ("The Hobbit", None),
                (None, "Broken"),
            ])

    books = asyncio.run(run())

    # Both successful queries return the same works
    assert [b.catalog_work_id for b in books] == ["/works/OL27482W", "/works/OL1W"]
