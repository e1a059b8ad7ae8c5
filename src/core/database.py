"""
Generic PostgreSQL connection management.
Every store (jobs, rules, anomalies) subclasses PostgresConnection.
"""

from contextlib import contextmanager
from typing import Any

import psycopg2
import psycopg2.extras
import structlog

from .config import DatabaseConfig
from .exceptions import PersistenceError

logger = structlog.get_logger(__name__)


class PostgresConnection:
    """Base class for PostgreSQL connection management"""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.connection = None
        self._connect()

    def _connect(self):
        """Establish connection to PostgreSQL"""
        try:
            self.connection = psycopg2.connect(
                host=self.config.postgres_host,
                port=self.config.postgres_port,
                database=self.config.postgres_database,
                user=self.config.postgres_user,
                password=self.config.postgres_password,
                connect_timeout=self.config.connect_timeout,
            )
            logger.info(
                "PostgreSQL connection established",
                host=self.config.postgres_host,
                database=self.config.postgres_database,
                store=type(self).__name__,
            )
        except Exception as e:
            logger.error("Failed to connect to PostgreSQL", error=str(e))
            raise PersistenceError(f"Failed to connect to PostgreSQL: {e}") from e

    @contextmanager
    def get_cursor(self, cursor_factory=None):
        """Context manager for database cursor with automatic commit/rollback"""
        cursor = self.connection.cursor(cursor_factory=cursor_factory)
        try:
            yield cursor
            self.connection.commit()
        except Exception as e:
            self.connection.rollback()
            logger.error("Database operation failed", error=str(e))
            raise
        finally:
            cursor.close()

    def fetch_all(self, query: str, params: Any = None) -> list[dict[str, Any]]:
        """Run a query and return every row as a dict keyed by column name"""
        with self.get_cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def fetch_one(self, query: str, params: Any = None) -> dict[str, Any] | None:
        """Run a query and return the first row as a dict, or None"""
        with self.get_cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
            return dict(row) if row is not None else None

    def execute(self, query: str, params: Any = None) -> int:
        """Run a statement and return the number of affected rows"""
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            return cursor.rowcount

    def check_health(self) -> bool:
        """Check if database connection is healthy"""
        try:
            with self.get_cursor() as cursor:
                cursor.execute("SELECT 1")
                return cursor.fetchone()[0] == 1
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return False

    def close(self):
        """Close database connection"""
        if self.connection:
            self.connection.close()
            logger.info("PostgreSQL connection closed", store=type(self).__name__)
