"""PostgreSQL storage for discovered videos."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2
from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from ..models import Video
from .errors import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_MIN_CONNECTIONS = 1
DEFAULT_MAX_CONNECTIONS = 5

CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS videos (
        id SERIAL PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        publish_time TIMESTAMPTZ NOT NULL,
        thumbnail TEXT NOT NULL
    )
"""

CREATE_INDEX_SQL = "CREATE INDEX IF NOT EXISTS publish_time_idx ON videos (publish_time)"

INSERT_SQL = """
    INSERT INTO videos (title, description, publish_time, thumbnail)
    VALUES (%(title)s, %(description)s, %(publish_time)s, %(thumbnail)s)
"""


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches as a literal substring."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class VideoStore:
    """
    The ``videos`` table.

    Every insert and query is a single statement on a pooled connection,
    committed on success and rolled back on failure. The pool is shared by
    the ingestion thread and the request threadpool; callers beyond
    ``max_connections`` wait for a free connection instead of failing.
    """

    def __init__(
        self,
        dsn: str,
        *,
        min_connections: int = DEFAULT_MIN_CONNECTIONS,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        pool: ThreadedConnectionPool | None = None,
    ):
        """
        Open the connection pool.

        Args:
            dsn: PostgreSQL connection string
            min_connections: Connections opened eagerly
            max_connections: Upper bound on pooled connections
            pool: Pre-built pool (tests)

        Raises:
            ConfigurationError: If the database cannot be reached
        """
        # getconn() raises PoolError past maxconn, so callers queue here first
        self._slots = threading.BoundedSemaphore(max_connections)

        if pool is not None:
            self._pool = pool
            return

        try:
            self._pool = ThreadedConnectionPool(min_connections, max_connections, dsn)
        except psycopg2.Error as e:
            raise ConfigurationError(f"Cannot connect to database: {e}") from e

    @contextmanager
    def connection(self) -> Iterator[PsycopgConnection]:
        """Yield a transactional connection, waiting while all are in use."""
        with self._slots:
            conn = self._pool.getconn()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                self._pool.putconn(conn)

    def create_schema(self) -> None:
        """
        Create the videos table and its publish_time index if missing.

        Raises:
            ConfigurationError: If the schema cannot be created
        """
        try:
            with self.connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute(CREATE_TABLE_SQL)
                    cursor.execute(CREATE_INDEX_SQL)
        except psycopg2.Error as e:
            raise ConfigurationError(f"Failed to create videos table: {e}") from e

        logger.info("Videos table ready")

    def insert(self, video: Video) -> None:
        """
        Insert one video.

        Raises:
            PersistenceError: If the insert fails
        """
        params = {
            "title": video.title,
            "description": video.description,
            "publish_time": video.publish_time,
            "thumbnail": video.thumbnail,
        }
        try:
            with self.connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute(INSERT_SQL, params)
        except psycopg2.Error as e:
            raise PersistenceError(f"Failed to insert video '{video.title}': {e}") from e

    def query(
        self,
        title: str | None = None,
        description: str | None = None,
    ) -> list[Video]:
        """
        Find videos by case-insensitive substring match, newest first.

        Args:
            title: Substring the title must contain
            description: Substring the description must contain

        Returns:
            Matching videos ordered by publish_time descending

        Raises:
            ValueError: If neither pattern is given
            PersistenceError: If the query fails
        """
        clauses = []
        params: dict[str, Any] = {}

        if title:
            clauses.append("title ILIKE %(title)s")
            params["title"] = f"%{escape_like(title)}%"
        if description:
            clauses.append("description ILIKE %(description)s")
            params["description"] = f"%{escape_like(description)}%"

        if not clauses:
            raise ValueError("At least one of title or description is required")

        sql = (
            "SELECT title, description, publish_time, thumbnail FROM videos "
            f"WHERE {' AND '.join(clauses)} ORDER BY publish_time DESC"
        )

        try:
            with self.connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute(sql, params)
                    rows = cursor.fetchall()
        except psycopg2.Error as e:
            raise PersistenceError(f"Video query failed: {e}") from e

        return [Video.model_validate(dict(row)) for row in rows]

    def close(self) -> None:
        """Close all pooled connections."""
        self._pool.closeall()
