"""
Schema management for database initialization.

Creates the tasks table, the tag side-table, the tombstone table and the
read-only view all reads go through. Every statement is idempotent so the
schema can be ensured on each start.
"""
import logging
import sqlite3
from typing import Callable, Set

logger = logging.getLogger(__name__)

TASK_COLUMNS = (
    "ulid",
    "body",
    "modified_utc",
    "ready_utc",
    "due_utc",
    "closed_utc",
    "recurrence_duration",
    "priority_adjustment",
    "user",
    "metadata",
)

# Columns older databases may lack, with the declaration used to add them.
OPTIONAL_TASK_COLUMNS = {
    "ready_utc": "TEXT",
    "recurrence_duration": "TEXT",
    "priority_adjustment": "FLOAT",
    "user": "TEXT",
    "metadata": "TEXT",
}


class SchemaManager:
    """Manages database schema initialization and creation."""

    def __init__(self, get_connection: Callable[[], sqlite3.Connection]):
        """
        Initialize SchemaManager.

        Args:
            get_connection: Function returning a new database connection
        """
        self._get_connection = get_connection

    def initialize_schema(self) -> None:
        """Create all tables, indexes and the tasks view."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            self._create_tasks_schema(cursor)
            self._migrate_tasks_columns(cursor)
            self._create_tags_schema(cursor)
            self._create_tombstones_schema(cursor)
            self._create_indexes(cursor)
            self._create_tasks_view(cursor)
            conn.commit()
            logger.info("Database schema initialized")
        except Exception as e:
            logger.error(f"Failed to initialize schema: {e}")
            raise
        finally:
            conn.close()

    def _create_tasks_schema(self, cursor: sqlite3.Cursor) -> None:
        """Create tasks table."""
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                ulid TEXT NOT NULL PRIMARY KEY,
                body TEXT NOT NULL,
                modified_utc TEXT,
                ready_utc TEXT,
                due_utc TEXT,
                closed_utc TEXT,
                recurrence_duration TEXT,
                priority_adjustment FLOAT,
                user TEXT,
                metadata TEXT
            )
        """)

    def _migrate_tasks_columns(self, cursor: sqlite3.Cursor) -> None:
        cursor.execute("PRAGMA table_info(tasks)")
        existing: Set[str] = {row[1] for row in cursor.fetchall()}
        for name, decl in OPTIONAL_TASK_COLUMNS.items():
            if name in existing:
                continue
            cursor.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
            logger.info(f"Schema migration: added column tasks.{name}")

    def _create_tags_schema(self, cursor: sqlite3.Cursor) -> None:
        """Create task_to_tag table."""
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS task_to_tag (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                task_ulid TEXT NOT NULL,
                tag TEXT NOT NULL,
                FOREIGN KEY (task_ulid) REFERENCES tasks(ulid),
                CONSTRAINT no_duplicate_tags UNIQUE (task_ulid, tag)
            )
        """)

    def _create_tombstones_schema(self, cursor: sqlite3.Cursor) -> None:
        """Create deleted_tasks table."""
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS deleted_tasks (
                task_ulid TEXT NOT NULL PRIMARY KEY,
                modified_utc TEXT
            )
        """)

    def _create_indexes(self, cursor: sqlite3.Cursor) -> None:
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due_closed ON tasks(due_utc, closed_utc)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_modified ON tasks(modified_utc)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_task_to_tag_task ON task_to_tag(task_ulid)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_deleted_tasks_modified ON deleted_tasks(modified_utc)")

    def _create_tasks_view(self, cursor: sqlite3.Cursor) -> None:
        """Create the read view joining tasks to their comma-joined tags."""
        cursor.execute("""
            CREATE VIEW IF NOT EXISTS tasks_view AS
            SELECT
                tasks.*,
                tasks.priority_adjustment AS priority,
                group_concat(DISTINCT task_to_tag.tag) AS tags
            FROM tasks LEFT JOIN task_to_tag ON tasks.ulid = task_to_tag.task_ulid
            GROUP BY tasks.ulid
        """)
