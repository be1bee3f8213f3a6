"""
Storage interface - defines the contract for all storage backends.

Every backend (local SQLite file, remote HTTP server) implements the same
operations, so callers and the sync engine never need to know which one they
were given.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional, Set

from tasksync.tasks.models import DaySummaryResult, SummaryConfig, Task

if TYPE_CHECKING:
    from tasksync.sync.engine import SyncReport


class TaskStorage(ABC):
    """Abstract interface for task list storage.

    None of the operations compose a transaction with another one.
    """

    @abstractmethod
    def save(self, task: Task) -> None:
        """Insert a new task. Raises DuplicateError if the ulid already exists."""
        pass

    @abstractmethod
    def update(self, task: Task) -> None:
        """Replace all mutable fields and the tag set. Raises TaskNotFoundError if missing."""
        pass

    @abstractmethod
    def delete(self, task: Task) -> None:
        """Remove a task and record a tombstone. Raises TaskNotFoundError if missing."""
        pass

    @abstractmethod
    def search_using_ulid(self, ulid_suffix: str) -> List[Task]:
        """Return every task whose ulid ends with the given suffix."""
        pass

    @abstractmethod
    def next_tasks(self, count: int) -> List[Task]:
        """Return up to ``count`` open tasks that are due and ready."""
        pass

    @abstractmethod
    def unsafe_query(self, clause: str) -> List[Task]:
        """
        Return tasks matching a raw backend-native clause.

        The clause is forwarded verbatim with no sanitization. Never pass
        untrusted input here.
        """
        pass

    @abstractmethod
    def summarize_day(self, config: Optional[SummaryConfig] = None) -> DaySummaryResult:
        """Return today's aggregate counts for the tracked tags in ``config``."""
        pass

    @abstractmethod
    def deleted_ulids(self, n_days: int) -> Set[str]:
        """Return ulids tombstoned within the last ``n_days`` or with no tombstone time."""
        pass

    def sync(self, peer: "TaskStorage", n_days: int) -> "SyncReport":
        """
        Reconcile this storage with ``peer``.

        Args:
            peer: The other replica (usually remote)
            n_days: Size of the sync window in days

        Returns:
            Counts of the writes performed on each side
        """
        from tasksync.sync.engine import SyncEngine

        return SyncEngine(self, peer, n_days).run()

    def close(self) -> None:
        """Release backend resources. Backends without any keep this no-op."""
        return None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
