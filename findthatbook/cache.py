"""PostgreSQL cache of parsed catalog candidates, keyed by search query."""
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import psycopg2
from psycopg2 import pool

from findthatbook.models import Book
from findthatbook.parse import book_from_dict, book_to_dict

logger = logging.getLogger(__name__)


def normalize_query_part(value: Optional[str]) -> str:
    """Lowercase, trim and collapse whitespace; None becomes ''."""
    if not value:
        return ""
    return re.sub(r"\s+", " ", value.strip().lower())


def cache_key(title: Optional[str], author: Optional[str], limit: int) -> Tuple[str, str, int]:
    return normalize_query_part(title), normalize_query_part(author), limit


class CandidateCache:
    """
    Candidate lists for (title, author, limit) searches with a TTL.

    Expiry is computed and compared on the database clock only, so the
    application host's timezone never shifts a TTL.
    """

    def __init__(self, connection_string: str, min_conn: int = 1, max_conn: int = 10):
        """
        Initialize database connection pool.

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
        """
        self.connection_pool = psycopg2.pool.SimpleConnectionPool(
            min_conn,
            max_conn,
            connection_string
        )
        logger.info("Candidate cache connection pool created")

    def init_schema(self):
        """Create the candidate table if it doesn't exist."""
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS search_candidates (
                        query_title TEXT NOT NULL,
                        query_author TEXT NOT NULL,
                        result_limit INTEGER NOT NULL,
                        books JSONB NOT NULL,
                        book_count INTEGER NOT NULL,
                        cached_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                        expires_at TIMESTAMPTZ NOT NULL,
                        PRIMARY KEY (query_title, query_author, result_limit)
                    )
                """)
                cur.execute("""
                    CREATE INDEX IF NOT EXISTS idx_search_candidates_expires
                    ON search_candidates (expires_at)
                """)
                conn.commit()
                logger.info("Candidate cache schema initialized")
        finally:
            self.connection_pool.putconn(conn)

    def get_candidates(
        self,
        title: Optional[str],
        author: Optional[str],
        limit: int
    ) -> Optional[List[Book]]:
        """
        Return cached candidates for a search, or None on a miss.

        A stored record that no longer forms a valid Book counts as a miss.
        """
        key = cache_key(title, author, limit)
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    SELECT books
                    FROM search_candidates
                    WHERE query_title = %s AND query_author = %s AND result_limit = %s
                      AND expires_at > CURRENT_TIMESTAMP
                """, key)
                row = cur.fetchone()
        finally:
            self.connection_pool.putconn(conn)

        if row is None:
            logger.info(f"Cache miss: {key}")
            return None

        try:
            books = [book_from_dict(record) for record in row[0]]
        except ValueError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

        logger.info(f"Cache hit: {key} ({len(books)} candidates)")
        return books

    def store_candidates(
        self,
        title: Optional[str],
        author: Optional[str],
        limit: int,
        books: List[Book],
        ttl_seconds: int = 3600
    ) -> bool:
        """
        Store the candidates of a search for ttl_seconds.

        Returns:
            True if successful
        """
        key = cache_key(title, author, limit)
        payload = json.dumps([book_to_dict(book) for book in books])

        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO search_candidates (
                        query_title, query_author, result_limit, books, book_count, expires_at
                    ) VALUES (
                        %s, %s, %s, %s, %s, CURRENT_TIMESTAMP + %s * INTERVAL '1 second'
                    )
                    ON CONFLICT (query_title, query_author, result_limit) DO UPDATE SET
                        books = EXCLUDED.books,
                        book_count = EXCLUDED.book_count,
                        cached_at = CURRENT_TIMESTAMP,
                        expires_at = EXCLUDED.expires_at
                """, key + (payload, len(books), ttl_seconds))
                conn.commit()
                logger.info(f"Cached {len(books)} candidates for {key} (TTL: {ttl_seconds}s)")
                return True
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to cache candidates for {key}: {e}")
            return False
        finally:
            self.connection_pool.putconn(conn)

    def get_stats(self) -> Dict[str, Any]:
        """Live and expired query counts, plus the live candidate total."""
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    SELECT
                        COUNT(*) FILTER (WHERE expires_at > CURRENT_TIMESTAMP),
                        COALESCE(SUM(book_count) FILTER (WHERE expires_at > CURRENT_TIMESTAMP), 0),
                        COUNT(*) FILTER (WHERE expires_at <= CURRENT_TIMESTAMP)
                    FROM search_candidates
                """)
                cached_queries, cached_books, expired_queries = cur.fetchone()
                return {
                    "cached_queries": cached_queries,
                    "cached_books": cached_books,
                    "expired_queries": expired_queries,
                }
        finally:
            self.connection_pool.putconn(conn)

    def cleanup_expired(self) -> int:
        """Remove expired searches."""
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM search_candidates WHERE expires_at <= CURRENT_TIMESTAMP")
                deleted = cur.rowcount
                conn.commit()
                logger.info(f"Cleaned up {deleted} expired cached searches")
                return deleted
        finally:
            self.connection_pool.putconn(conn)

    def close(self):
        """Close all connections in the pool."""
        self.connection_pool.closeall()
        logger.info("Candidate cache connection pool closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
