"""
Tests for core PostgreSQL connection management.
"""

from unittest.mock import MagicMock, patch

import psycopg2.extras
import pytest

from src.core.database import PostgresConnection
from src.core.exceptions import PersistenceError


class TestPostgresConnection:
    """Tests for PostgresConnection base class."""

    @patch("src.core.database.psycopg2.connect")
    def test_initialization_success(self, mock_connect, db_config):
        """Test successful database connection initialization."""
        mock_connection = MagicMock()
        mock_connect.return_value = mock_connection

        conn = PostgresConnection(db_config)

        mock_connect.assert_called_once_with(
            host="localhost",
            port=5432,
            database="test_db",
            user="test_user",
            password="test_password",
            connect_timeout=10,
        )
        assert conn.connection == mock_connection
        assert conn.config is db_config

    @patch("src.core.database.psycopg2.connect")
    def test_initialization_failure(self, mock_connect, db_config):
        """Test connection failure is raised as a PersistenceError."""
        mock_connect.side_effect = Exception("Connection failed")

        with pytest.raises(PersistenceError, match="Connection failed"):
            PostgresConnection(db_config)

    @patch("src.core.database.psycopg2.connect")
    def test_get_cursor_commits_on_success(self, mock_connect, db_config, mock_connection):
        """Test cursor context manager commits and closes the cursor."""
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        with conn.get_cursor() as cursor:
            assert cursor is mock_connection.cursor.return_value

        mock_connection.commit.assert_called_once()
        mock_connection.rollback.assert_not_called()
        cursor.close.assert_called_once()

    @patch("src.core.database.psycopg2.connect")
    def test_get_cursor_rolls_back_on_error(self, mock_connect, db_config, mock_connection):
        """Test cursor context manager rolls back and re-raises on error."""
        mock_cursor = mock_connection.cursor.return_value
        mock_cursor.execute.side_effect = Exception("Query failed")
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        with pytest.raises(Exception, match="Query failed"):  # noqa: SIM117
            with conn.get_cursor() as cursor:
                cursor.execute("BAD SQL")

        mock_connection.rollback.assert_called_once()
        mock_connection.commit.assert_not_called()
        mock_cursor.close.assert_called_once()

    @patch("src.core.database.psycopg2.connect")
    def test_fetch_all_returns_dicts(self, mock_connect, db_config, mock_connection):
        """Test fetch_all uses a RealDictCursor and returns plain dicts."""
        mock_cursor = mock_connection.cursor.return_value
        mock_cursor.fetchall.return_value = [{"id": 1}, {"id": 2}]
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        rows = conn.fetch_all("SELECT id FROM t WHERE x = %s", (5,))

        assert rows == [{"id": 1}, {"id": 2}]
        mock_connection.cursor.assert_called_once_with(
            cursor_factory=psycopg2.extras.RealDictCursor
        )
        mock_cursor.execute.assert_called_once_with("SELECT id FROM t WHERE x = %s", (5,))

    @patch("src.core.database.psycopg2.connect")
    def test_fetch_one_returns_none_without_rows(self, mock_connect, db_config, mock_connection):
        """Test fetch_one returns None when the query matches nothing."""
        mock_connection.cursor.return_value.fetchone.return_value = None
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        assert conn.fetch_one("SELECT 1 WHERE false") is None

    @patch("src.core.database.psycopg2.connect")
    def test_execute_returns_rowcount(self, mock_connect, db_config, mock_connection):
        """Test execute returns the number of affected rows."""
        mock_cursor = mock_connection.cursor.return_value
        mock_cursor.rowcount = 3
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        result = conn.execute("DELETE FROM t WHERE x = %(x)s", {"x": 1})

        assert result == 3
        mock_cursor.execute.assert_called_once_with("DELETE FROM t WHERE x = %(x)s", {"x": 1})
        mock_connection.commit.assert_called_once()

    @patch("src.core.database.psycopg2.connect")
    def test_execute_propagates_errors(self, mock_connect, db_config, mock_connection):
        """Test execute does not swallow driver errors."""
        mock_connection.cursor.return_value.execute.side_effect = Exception("Query error")
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        with pytest.raises(Exception, match="Query error"):
            conn.execute("BAD QUERY")

    @patch("src.core.database.psycopg2.connect")
    def test_check_health_success(self, mock_connect, db_config, mock_connection):
        """Test successful health check."""
        mock_cursor = mock_connection.cursor.return_value
        mock_cursor.fetchone.return_value = (1,)
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        assert conn.check_health() is True
        mock_cursor.execute.assert_called_once_with("SELECT 1")

    @patch("src.core.database.psycopg2.connect")
    def test_check_health_failure(self, mock_connect, db_config):
        """Test failed health check."""
        mock_connection = MagicMock()
        mock_connection.cursor.side_effect = Exception("Connection lost")
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        assert conn.check_health() is False

    @patch("src.core.database.psycopg2.connect")
    def test_check_health_returns_false_on_wrong_result(
        self, mock_connect, db_config, mock_connection
    ):
        """Test health check returns False when SELECT 1 returns unexpected value."""
        mock_connection.cursor.return_value.fetchone.return_value = (0,)
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        assert conn.check_health() is False

    @patch("src.core.database.psycopg2.connect")
    def test_close_connection(self, mock_connect, db_config, mock_connection):
        """Test closing database connection."""
        mock_connect.return_value = mock_connection
        conn = PostgresConnection(db_config)

        conn.close()

        mock_connection.close.assert_called_once()

    @patch("src.core.database.psycopg2.connect")
    def test_close_when_no_connection(self, mock_connect, db_config):
        """Test closing when connection is None."""
        mock_connect.return_value = MagicMock()
        conn = PostgresConnection(db_config)
        conn.connection = None

        # Should not raise an error
        conn.close()
