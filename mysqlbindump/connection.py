"""
Database connection management for MySQL Binary Dumper.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, NamedTuple, Optional, Protocol

import mysql.connector
from mysql.connector import Error as MySQLError

from .errors import DumpConnectionError


class ResultSet(NamedTuple):
    """Column names and a (possibly streaming) iterable of row tuples."""
    columns: list[str]
    rows: Iterable[tuple]


class ConnectionProvider(Protocol):
    """What the dump engine needs from a database connection."""

    def execute(self, statement: str, params: Optional[tuple] = None) -> None: ...

    def execute_query(self, query: str, params: Optional[tuple] = None) -> list[tuple]: ...

    def query_row(self, query: str, params: Optional[tuple] = None) -> Optional[tuple]: ...

    def query_scalar(self, query: str, params: Optional[tuple] = None) -> Any: ...

    def stream_query(self, query: str, params: Optional[tuple] = None): ...

    def get_tables(self) -> list[str]: ...


class DatabaseConnection:
    """Manages MySQL database connections with context manager support."""

    DEFAULT_PORT = 3306
    DEFAULT_CHARSET = 'utf8mb4'

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: Optional[str] = None
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connection = None

    def __enter__(self) -> "DatabaseConnection":
        """Context manager entry - establish connection."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close connection."""
        self.disconnect()

    def connect(self) -> None:
        """Establish database connection."""
        try:
            self.connection = mysql.connector.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self.database,
                charset=self.DEFAULT_CHARSET,
                use_unicode=True
            )
            logging.info(f"Connected to {self.host}:{self.port}/{self.database or 'N/A'}")
        except MySQLError as e:
            logging.error(f"Failed to connect to database: {e}")
            raise DumpConnectionError(f"connect to {self.host}:{self.port}: {e}") from e

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection and self.connection.is_connected():
            self.connection.close()
            logging.debug("Database connection closed")

    def execute(self, statement: str, params: Optional[tuple] = None) -> None:
        """Execute a statement that returns no result set."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(statement, params)
        except MySQLError as e:
            raise DumpConnectionError(str(e)) from e
        finally:
            cursor.close()

    def execute_query(self, query: str, params: Optional[tuple] = None) -> list[tuple]:
        """Execute a query and return results."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(query, params)
            return cursor.fetchall()
        except MySQLError as e:
            raise DumpConnectionError(str(e)) from e
        finally:
            cursor.close()

    def query_row(self, query: str, params: Optional[tuple] = None) -> Optional[tuple]:
        """Execute a query and return its first row, or None."""
        results = self.execute_query(query, params)
        return results[0] if results else None

    def query_scalar(self, query: str, params: Optional[tuple] = None) -> Any:
        """Execute a query and return the first column of its first row."""
        row = self.query_row(query, params)
        return row[0] if row else None

    @contextmanager
    def stream_query(self, query: str, params: Optional[tuple] = None) -> Iterator[ResultSet]:
        """Execute a query on an unbuffered cursor and stream its rows.

        Rows are read from the server one at a time while the caller iterates.
        Values are the server's raw column bytes (None for NULL), never converted
        to Python types. If the caller fails before reading every row, the unread
        rows are discarded so the cursor can be closed.
        """
        cursor = self.connection.cursor(buffered=False, raw=True)
        failed = False
        try:
            try:
                cursor.execute(query, params)
                columns = [desc[0] for desc in cursor.description or []]
            except MySQLError as e:
                raise DumpConnectionError(str(e)) from e
            yield ResultSet(columns, self._iter_rows(cursor))
        except BaseException:
            failed = True
            raise
        finally:
            self._close_cursor(cursor, discard=failed)

    @staticmethod
    def _close_cursor(cursor, discard: bool) -> None:
        """Close a streaming cursor.

        With discard set an exception is already propagating: unread rows are
        drained first and close errors are logged rather than raised over it.
        """
        if discard:
            try:
                cursor.fetchall()
            except MySQLError as e:
                logging.debug(f"Could not drain unread rows: {e}")
        try:
            cursor.close()
        except MySQLError as e:
            if discard:
                logging.warning(f"Failed to close cursor after error: {e}")
            else:
                raise DumpConnectionError(str(e)) from e

    @staticmethod
    def _iter_rows(cursor) -> Iterator[tuple]:
        try:
            for row in cursor:
                yield row
        except MySQLError as e:
            raise DumpConnectionError(str(e)) from e

    def get_tables(self) -> list[str]:
        """Get list of all tables in the current database."""
        results = self.execute_query("SHOW TABLES")
        return [row[0] for row in results]
