"""
Database adapter for the embedded SQLite backend.

Resolves connection strings (plain paths or ``file://`` URIs) and hands out
configured connections. Repositories open one connection per operation.
"""
import logging
import os
import sqlite3
from typing import Any, Optional, Tuple

from tasksync.exceptions import ValidationError

logger = logging.getLogger(__name__)

FILE_URI_PREFIX = "file://"


def resolve_sqlite_path(connection_string: str, *, require_scheme: bool = False) -> str:
    """
    Turn a connection string into a filesystem path.

    Args:
        connection_string: ``file:///abs/path.db`` or a plain path
        require_scheme: Reject strings without the ``file://`` prefix

    Returns:
        Path usable by sqlite3.connect

    Raises:
        ValidationError: If the scheme is required but missing
    """
    if connection_string.startswith(FILE_URI_PREFIX):
        return connection_string[len(FILE_URI_PREFIX):]
    if require_scheme:
        raise ValidationError(
            f"Expected path to start with {FILE_URI_PREFIX} but found {connection_string}",
            field="uri",
            value=connection_string,
        )
    return connection_string


class SQLiteAdapter:
    """SQLite database adapter."""

    def __init__(self, connection_string: str, timeout: float = 30.0):
        """
        Initialize database adapter.

        Args:
            connection_string: Path or ``file://`` URI of the database file
            timeout: Seconds to wait on a locked database
        """
        self.connection_string = connection_string
        self.path = resolve_sqlite_path(connection_string)
        self.timeout = timeout

    def ensure_directory(self) -> None:
        db_dir = os.path.dirname(os.path.abspath(self.path))
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def close(self, conn: sqlite3.Connection) -> None:
        conn.close()

    def execute(self, cursor: sqlite3.Cursor, query: str, params: Optional[Tuple[Any, ...]] = None):
        logger.debug(f"SQL: {' '.join(query.split())} params={params}")
        if params:
            return cursor.execute(query, params)
        return cursor.execute(query)
