"""Two-way synchronization between two TaskStorage replicas.

A run has two steps and keeps no state between runs:

1. Tombstones: a deletion recorded on one side is applied to the other side
   if that side still holds the task.
2. Content: tasks changed inside the sync window are mirrored. Records missing
   on one side are saved there (falling back to update when the identifier
   already exists outside the window). Records present on both sides are
   resolved last-write-wins on ``modified_utc``.

Running the engine twice without intervening changes performs no writes.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

from tasksync.exceptions import DuplicateError
from tasksync.storage.interface import TaskStorage
from tasksync.tasks.models import Task, to_db_timestamp, utc_now

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def change_window_clause(cutoff: datetime) -> str:
    """Raw clause selecting tasks modified after ``cutoff`` or never stamped."""
    return (
        "WHERE modified_utc IS NULL OR "
        f"DATETIME(modified_utc) > DATETIME('{to_db_timestamp(cutoff)}')"
    )


@dataclass
class SideReport:
    """Writes performed on one replica."""

    added: int = 0
    updated: int = 0
    deleted: int = 0

    @property
    def writes(self) -> int:
        return self.added + self.updated + self.deleted


@dataclass
class SyncReport:
    """Outcome of one sync pass."""

    local: SideReport = field(default_factory=SideReport)
    remote: SideReport = field(default_factory=SideReport)
    # ulids modified on both sides with identical timestamps but different content
    conflicts: List[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return self.local.writes + self.remote.writes

    def summary_lines(self) -> List[str]:
        lines = [
            f"Local: {self.local.added} added, {self.local.updated} updated, {self.local.deleted} deleted",
            f"Remote: {self.remote.added} added, {self.remote.updated} updated, {self.remote.deleted} deleted",
        ]
        if self.conflicts:
            lines.append(
                f"Conflicts resolved in favour of remote: {', '.join(self.conflicts)}"
            )
        return lines


class SyncEngine:
    """Main engine for bidirectional task synchronization."""

    def __init__(self, local: TaskStorage, remote: TaskStorage, n_days: int):
        """
        Args:
            local: Replica the sync was started from
            remote: Peer replica
            n_days: Size of the sync window in days
        """
        if n_days < 0:
            raise ValueError(f"n_days must not be negative, got {n_days}")
        self.local = local
        self.remote = remote
        self.n_days = n_days

    def run(self) -> SyncReport:
        """Run one full pass. Any backend error other than a duplicate save aborts it."""
        report = SyncReport()
        logger.info(f"Starting sync over the last {self.n_days} day(s)")

        tombstoned = self.sync_tombstones(report)
        self.sync_content(report, skip=tombstoned)

        for line in report.summary_lines():
            logger.info(line)
        return report

    # ---- step 1 ----

    def sync_tombstones(self, report: SyncReport) -> Set[str]:
        """
        Propagate deletions in both directions.

        Returns:
            Every ulid tombstoned on either side inside the window
        """
        local_deleted = self.local.deleted_ulids(self.n_days)
        remote_deleted = self.remote.deleted_ulids(self.n_days)

        for ulid in sorted(local_deleted - remote_deleted):
            if self._delete_if_live(self.remote, ulid):
                report.remote.deleted += 1
        for ulid in sorted(remote_deleted - local_deleted):
            if self._delete_if_live(self.local, ulid):
                report.local.deleted += 1

        return local_deleted | remote_deleted

    @staticmethod
    def _delete_if_live(storage: TaskStorage, ulid: str) -> bool:
        live = [task for task in storage.search_using_ulid(ulid) if task.ulid == ulid]
        if not live:
            return False
        logger.info(f"Propagating deletion of {ulid}")
        storage.delete(live[0])
        return True

    # ---- step 2 ----

    def fetch_changed(self, storage: TaskStorage, cutoff: datetime) -> Dict[str, Task]:
        return {task.ulid: task for task in storage.unsafe_query(change_window_clause(cutoff))}

    def sync_content(self, report: SyncReport, skip: Optional[Set[str]] = None) -> None:
        """Mirror tasks changed inside the window and resolve diverging copies."""
        skip = skip or set()
        cutoff = utc_now() - timedelta(days=self.n_days)
        local_tasks = self.fetch_changed(self.local, cutoff)
        remote_tasks = self.fetch_changed(self.remote, cutoff)

        for ulid in sorted(local_tasks.keys() - remote_tasks.keys() - skip):
            self._mirror(local_tasks[ulid], self.remote, report.remote)

        for ulid in sorted(remote_tasks.keys() - local_tasks.keys() - skip):
            self._mirror(remote_tasks[ulid], self.local, report.local)

        for ulid in sorted((local_tasks.keys() & remote_tasks.keys()) - skip):
            self._resolve(local_tasks[ulid], remote_tasks[ulid], report)

    @staticmethod
    def _mirror(task: Task, target: TaskStorage, side: SideReport) -> None:
        try:
            target.save(task)
            side.added += 1
            logger.debug(f"Copied {task.ulid}")
        except DuplicateError:
            # exists on the target outside the window
            target.update(task)
            side.updated += 1
            logger.debug(f"Copied {task.ulid} over an older record")

    def _resolve(self, local_task: Task, remote_task: Task, report: SyncReport) -> None:
        if local_task.content_equals(remote_task):
            return

        local_time = local_task.modified_utc or _OLDEST
        remote_time = remote_task.modified_utc or _OLDEST

        if local_time > remote_time:
            logger.info(f"{local_task.ulid}: local copy is newer, updating remote")
            self.remote.update(local_task)
            report.remote.updated += 1
            return

        if local_time == remote_time:
            logger.warning(
                f"{local_task.ulid}: both copies changed at {local_time} with different content, "
                "keeping the remote copy"
            )
            report.conflicts.append(local_task.ulid)
        else:
            logger.info(f"{local_task.ulid}: remote copy is newer, updating local")
        self.local.update(remote_task)
        report.local.updated += 1
