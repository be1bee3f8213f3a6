"""
Repository for tag operations.

Tags live in the task_to_tag side-table. The methods take the caller's cursor
so tag writes commit together with the task row they belong to.
"""
import logging
import sqlite3
from typing import Any, Callable, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)


class TagRepository:
    """Repository for tag operations."""

    def __init__(self, execute_with_logging: Callable[[Any, str, Optional[Tuple[Any, ...]]], Any]):
        """
        Initialize TagRepository.

        Args:
            execute_with_logging: Function to execute queries with logging
        """
        self._execute_with_logging = execute_with_logging

    def assign_to_task(self, cursor: sqlite3.Cursor, task_ulid: str, tags: Optional[Iterable[str]]) -> None:
        """
        Assign tags to a task (idempotent - won't create duplicates).

        Args:
            cursor: Cursor of the current operation
            task_ulid: Task identifier
            tags: Tags to add, may be None
        """
        tags = list(tags or [])
        if not tags:
            return
        query = """
            INSERT OR IGNORE INTO task_to_tag (task_ulid, tag)
            VALUES (?, ?)
        """
        for tag in tags:
            self._execute_with_logging(cursor, query, (task_ulid, tag))
        logger.debug(f"Assigned tags {tags} to task {task_ulid}")

    def remove_all_from_task(self, cursor: sqlite3.Cursor, task_ulid: str) -> None:
        """
        Remove every tag from a task.

        Args:
            cursor: Cursor of the current operation
            task_ulid: Task identifier
        """
        self._execute_with_logging(cursor, "DELETE FROM task_to_tag WHERE task_ulid = ?", (task_ulid,))

    def replace_for_task(self, cursor: sqlite3.Cursor, task_ulid: str, tags: Optional[Iterable[str]]) -> None:
        """Replace the whole tag set of a task."""
        self.remove_all_from_task(cursor, task_ulid)
        self.assign_to_task(cursor, task_ulid, tags)
