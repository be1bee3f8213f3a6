"""
SQLite implementation of the TaskStorage contract.

Every operation opens its own connection and commits once at the end, so the
multi-statement sequences (tag replacement, tombstone + delete) are atomic per
call. Reads always go through ``tasks_view``.
"""
import logging
import sqlite3
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Iterator, List, Optional, Set, Tuple

from tasksync.db_adapter import SQLiteAdapter
from tasksync.exceptions import DatabaseError, DuplicateError, ServiceError, TaskNotFoundError
from tasksync.storage.interface import TaskStorage
from tasksync.storage.schema import SchemaManager
from tasksync.storage.tag_repository import TagRepository
from tasksync.tasks.models import DaySummaryResult, SummaryConfig, Task, to_db_timestamp, utc_now

logger = logging.getLogger(__name__)

SELECT_TASKS_QUERY = (
    "SELECT ulid, body, modified_utc, ready_utc, due_utc, closed_utc, recurrence_duration, "
    "priority_adjustment, user, metadata, tags FROM tasks_view"
)

NEXT_TASKS_CLAUSE = """WHERE
    DATE(due_utc) <= DATE('now') AND
    closed_utc IS NULL AND
    (ready_utc IS NULL OR DATETIME('now') >= DATETIME(ready_utc))
ORDER BY due_utc ASC, priority DESC LIMIT ?"""

TOTAL_TODAY_CLAUSE = (
    "(DATE(due_utc) <= DATE('now') AND closed_utc IS NULL) OR DATE(closed_utc) = DATE('now')"
)
DONE_TODAY_CLAUSE = "DATE(closed_utc) = DATE('now')"
OPEN_TAG_TODAY_CLAUSE = (
    "DATE(due_utc) = DATE('now') AND closed_utc IS NULL AND "
    "ulid IN (SELECT task_ulid FROM task_to_tag WHERE tag = ?)"
)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteStorage(TaskStorage):
    """Task list stored in a local SQLite file."""

    def __init__(self, db_path: str):
        """
        Open (and if needed create) a task database.

        Args:
            db_path: Path or ``file://`` URI of the database file
        """
        self.adapter = SQLiteAdapter(db_path)
        self.adapter.ensure_directory()
        self.tags = TagRepository(self._execute_with_logging)
        SchemaManager(self._get_connection).initialize_schema()
        logger.info(f"SQLiteStorage ready db={self.adapter.path}")

    # ---- low-level helpers ----

    def _get_connection(self) -> sqlite3.Connection:
        return self.adapter.connect()

    def _execute_with_logging(self, cursor: sqlite3.Cursor, query: str, params: Optional[Tuple[Any, ...]] = None):
        return self.adapter.execute(cursor, query, params)

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Cursor]:
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Database connection for {operation} failed: {e}",
                original_error=e,
                operation=operation,
            ) from e
        try:
            yield conn.cursor()
            conn.commit()
        except ServiceError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(
                f"Database {operation} failed: {e}",
                original_error=e,
                operation=operation,
            ) from e
        finally:
            self.adapter.close(conn)

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        tags = row["tags"]
        return Task(
            ulid=row["ulid"],
            body=row["body"],
            modified_utc=row["modified_utc"],
            ready_utc=row["ready_utc"],
            due_utc=row["due_utc"],
            closed_utc=row["closed_utc"],
            recurrence_duration=row["recurrence_duration"],
            priority_adjustment=row["priority_adjustment"],
            user=row["user"],
            metadata=row["metadata"],
            tags=tags.split(",") if tags else None,
        )

    @staticmethod
    def _task_values(task: Task) -> Tuple[Any, ...]:
        return (
            task.body,
            to_db_timestamp(utc_now()),
            to_db_timestamp(task.ready_utc),
            to_db_timestamp(task.due_utc),
            to_db_timestamp(task.closed_utc),
            task.recurrence_duration,
            task.priority_adjustment,
            task.user,
            task.metadata,
        )

    def get_tasks(self, extra_sql_clause: Optional[str] = None, params: Tuple[Any, ...] = ()) -> List[Task]:
        """
        Read tasks from tasks_view.

        Args:
            extra_sql_clause: Clause appended verbatim after ``FROM tasks_view``
            params: Parameters bound to ``?`` placeholders in the clause

        Returns:
            Matching tasks
        """
        query = SELECT_TASKS_QUERY
        if extra_sql_clause:
            query = f"{query} {extra_sql_clause}"
        with self._transaction("SELECT") as cursor:
            self._execute_with_logging(cursor, query, params)
            return [self._row_to_task(row) for row in cursor.fetchall()]

    def count_tasks(self, where_clause: str, params: Tuple[Any, ...] = ()) -> int:
        with self._transaction("SELECT") as cursor:
            self._execute_with_logging(cursor, f"SELECT count(*) FROM tasks_view WHERE {where_clause}", params)
            return cursor.fetchone()[0]

    # ---- TaskStorage ----

    def save(self, task: Task) -> None:
        query = """
            INSERT INTO tasks (
                body, modified_utc, ready_utc, due_utc, closed_utc,
                recurrence_duration, priority_adjustment, user, metadata, ulid
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        with self._transaction("INSERT") as cursor:
            try:
                self._execute_with_logging(cursor, query, self._task_values(task) + (task.ulid,))
            except sqlite3.IntegrityError as e:
                raise DuplicateError("Task", "ulid", task.ulid, original_error=e) from e
            self.tags.assign_to_task(cursor, task.ulid, task.tags)
        logger.info(f"Saved task {task.ulid}")

    def update(self, task: Task) -> None:
        query = """
            UPDATE tasks SET
                body = ?, modified_utc = ?, ready_utc = ?, due_utc = ?, closed_utc = ?,
                recurrence_duration = ?, priority_adjustment = ?, user = ?, metadata = ?
            WHERE ulid = ?
        """
        with self._transaction("UPDATE") as cursor:
            self._execute_with_logging(cursor, query, self._task_values(task) + (task.ulid,))
            if cursor.rowcount == 0:
                raise TaskNotFoundError(task.ulid)
            self.tags.replace_for_task(cursor, task.ulid, task.tags)
        logger.info(f"Updated task {task.ulid}")

    def delete(self, task: Task) -> None:
        with self._transaction("DELETE") as cursor:
            self.tags.remove_all_from_task(cursor, task.ulid)
            self._execute_with_logging(cursor, "DELETE FROM tasks WHERE ulid = ?", (task.ulid,))
            if cursor.rowcount == 0:
                raise TaskNotFoundError(task.ulid)
            self._execute_with_logging(
                cursor,
                "INSERT OR REPLACE INTO deleted_tasks (task_ulid, modified_utc) VALUES (?, ?)",
                (task.ulid, to_db_timestamp(utc_now())),
            )
        logger.info(f"Deleted task {task.ulid}")

    def search_using_ulid(self, ulid_suffix: str) -> List[Task]:
        return self.get_tasks("WHERE ulid LIKE ? ESCAPE '\\'", (f"%{_escape_like(ulid_suffix)}",))

    def next_tasks(self, count: int) -> List[Task]:
        return self.get_tasks(NEXT_TASKS_CLAUSE, (max(int(count), 0),))

    def unsafe_query(self, clause: str) -> List[Task]:
        return self.get_tasks(clause)

    def summarize_day(self, config: Optional[SummaryConfig] = None) -> DaySummaryResult:
        config = config or SummaryConfig()
        open_tags_count = {
            tag: self.count_tasks(OPEN_TAG_TODAY_CLAUSE, (tag,))
            for tag in config.relevant_tags()
        }
        return DaySummaryResult(
            total_tasks=self.count_tasks(TOTAL_TODAY_CLAUSE),
            done_tasks=self.count_tasks(DONE_TODAY_CLAUSE),
            open_tags_count=open_tags_count,
        )

    def deleted_ulids(self, n_days: int) -> Set[str]:
        cutoff = to_db_timestamp(utc_now() - timedelta(days=n_days))
        query = """
            SELECT task_ulid FROM deleted_tasks
            WHERE modified_utc IS NULL OR DATE(modified_utc) >= DATE(?)
        """
        with self._transaction("SELECT") as cursor:
            self._execute_with_logging(cursor, query, (cutoff,))
            return {row[0] for row in cursor.fetchall()}
