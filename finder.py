#!/usr/bin/env python3
"""Find That Book CLI - free-text book search with explained matches."""
import argparse
import asyncio
import sys
import json
import logging
from typing import Optional

from tabulate import tabulate

from findthatbook.async_client import AsyncOpenLibraryClient
from findthatbook.client import OpenLibraryClient
from findthatbook.config import Config
from findthatbook.cache import CandidateCache
from findthatbook.exceptions import BookSearchError
from findthatbook.extractor import GeminiExtractor
from findthatbook.models import Extraction
from findthatbook.service import SearchBooksService, SearchResponse

logger = logging.getLogger(__name__)


def setup_cache(config: Config) -> CandidateCache:
    """Initialize the candidate cache."""
    cache = CandidateCache(config.DATABASE_URL)
    cache.init_schema()
    return cache


class CachedCatalog:
    """Sync Open Library client bound to an optional candidate cache."""

    def __init__(self, client: OpenLibraryClient, cache: Optional[CandidateCache], cache_ttl: int):
        self.client = client
        self.cache = cache
        self.cache_ttl = cache_ttl

    def search_books(self, title=None, author=None, limit=20):
        return self.client.search_books(
            title,
            author,
            limit,
            cache=self.cache,
            cache_ttl=self.cache_ttl
        )


def search_books_sync(args, config: Config):
    """Search using the sync client (with optional caching)."""
    cache = setup_cache(config) if config.CACHE_ENABLED and not args.no_cache else None

    try:
        with GeminiExtractor(
            api_key=config.GEMINI_API_KEY,
            model=config.GEMINI_MODEL,
            base_url=config.GEMINI_BASE_URL,
            timeout=config.DEFAULT_TIMEOUT
        ) as extractor, OpenLibraryClient(
            base_url=config.OPENLIBRARY_BASE_URL,
            timeout=config.DEFAULT_TIMEOUT,
            max_retries=config.DEFAULT_MAX_RETRIES
        ) as client:

            service = SearchBooksService(
                extractor,
                CachedCatalog(client, cache, config.DEFAULT_CACHE_TTL),
                top_n=args.top,
                candidate_limit=config.CANDIDATE_LIMIT
            )
            display_results(service.search(args.query), args.format)

    finally:
        if cache:
            cache.close()


async def search_books_async(args, config: Config):
    """Search using the async client."""
    with GeminiExtractor(
        api_key=config.GEMINI_API_KEY,
        model=config.GEMINI_MODEL,
        base_url=config.GEMINI_BASE_URL,
        timeout=config.DEFAULT_TIMEOUT
    ) as extractor:
        async with AsyncOpenLibraryClient(
            base_url=config.OPENLIBRARY_BASE_URL,
            timeout=config.DEFAULT_TIMEOUT
        ) as client:

            service = SearchBooksService(
                extractor,
                client,
                top_n=args.top,
                candidate_limit=config.CANDIDATE_LIMIT
            )
            response = await service.search_async(args.query)
            display_results(response, args.format)


def match_fields(args, config: Config):
    """Match explicitly supplied fields, skipping AI extraction."""
    extraction = Extraction.from_dict({
        "title": args.title,
        "author": args.author,
        "year": args.year,
        "keywords": args.keyword or [],
    })

    if not extraction.has_any_field:
        logger.error("Provide at least one of --title, --author or --keyword")
        sys.exit(1)

    with OpenLibraryClient(
        base_url=config.OPENLIBRARY_BASE_URL,
        timeout=config.DEFAULT_TIMEOUT,
        max_retries=config.DEFAULT_MAX_RETRIES
    ) as client:
        service = SearchBooksService(
            extractor=None,
            catalog=client,
            top_n=args.top,
            candidate_limit=config.CANDIDATE_LIMIT
        )
        display_results(service.match_extraction(extraction), args.format)


def display_results(response: SearchResponse, format_type: str):
    """Display ranked results in specified format."""
    if format_type == "json":
        print(json.dumps(response.to_dict(), indent=2))
        return

    if not response.results:
        print("No confident matches found.")
        return

    if format_type == "table":
        headers = ["#", "Title", "Author", "Year", "Strength", "Score", "Why"]
        rows = [
            [
                i,
                result.title[:40] + "..." if len(result.title) > 40 else result.title,
                result.authors[:25] + "..." if len(result.authors) > 25 else result.authors,
                result.first_publish_year or "Unknown",
                result.strength_label,
                f"{result.score:.2f}",
                result.explanation
            ]
            for i, result in enumerate(response.results, 1)
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "compact":
        for i, result in enumerate(response.results, 1):
            print(f"{i}. {result.title} - {result.author} ({result.catalog_url})")


def show_stats(args, config: Config):
    """Show cache statistics."""
    cache = setup_cache(config)

    try:
        stats = cache.get_stats()

        print("\n" + "=" * 50)
        print("CACHE STATISTICS")
        print("=" * 50)
        print(f"Cached searches: {stats['cached_queries']}")
        print(f"Cached candidate books: {stats['cached_books']}")
        print(f"Expired searches: {stats['expired_queries']}")
        print("=" * 50 + "\n")

        # Cleanup if requested
        if args.cleanup:
            deleted = cache.cleanup_expired()
            print(f"Cleaned up {deleted} expired searches\n")

    finally:
        cache.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Find That Book - describe a book, get ranked candidates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Free-text search (needs GEMINI_API_KEY)
  %(prog)s search "tolkien hobbit illustrated deluxe"

  # Match known fields directly
  %(prog)s match --title "The Hobbit" --author Tolkien --format json

  # Show cache statistics
  %(prog)s stats --cleanup
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search from a free-text query")
    search_parser.add_argument("query", help="Free-text description of the book")
    search_parser.add_argument("--top", type=int, default=Config.TOP_N, help="Max results (default: %(default)s)")
    search_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")
    search_parser.add_argument("--no-cache", action="store_true", help="Disable caching")
    search_parser.add_argument("--async", dest="use_async", action="store_true", help="Use async client")

    # Match command
    match_parser = subparsers.add_parser("match", help="Match explicit fields without AI extraction")
    match_parser.add_argument("--title", help="Book title")
    match_parser.add_argument("--author", help="Author name")
    match_parser.add_argument("--year", type=int, help="Publication year")
    match_parser.add_argument("--keyword", action="append", help="Keyword (repeatable)")
    match_parser.add_argument("--top", type=int, default=Config.TOP_N, help="Max results (default: %(default)s)")
    match_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Show cache statistics")
    stats_parser.add_argument("--cleanup", action="store_true", help="Clean up expired cache")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        if args.command == "search":
            if args.use_async:
                asyncio.run(search_books_async(args, config))
            else:
                search_books_sync(args, config)

        elif args.command == "match":
            match_fields(args, config)

        elif args.command == "stats":
            show_stats(args, config)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except BookSearchError as e:
        logger.error(f"Search failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
