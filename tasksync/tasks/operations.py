"""
Single-task operations shared by the CLI and the HTTP server.

All of them work against any TaskStorage and surface errors to the caller
without retrying.
"""
import logging
from datetime import datetime
from typing import List, Optional

from tasksync.exceptions import AmbiguousMatchError, TaskNotFoundError, ValidationError
from tasksync.storage.interface import TaskStorage
from tasksync.tasks.models import Task, utc_now
from tasksync.tasks.recurrence import next_task

logger = logging.getLogger(__name__)


def find_single_task(storage: TaskStorage, ulid_suffix: str) -> Task:
    """
    Resolve an abbreviated identifier to exactly one task.

    Raises:
        TaskNotFoundError: If nothing matches
        AmbiguousMatchError: If more than one task matches
    """
    tasks = storage.search_using_ulid(ulid_suffix)
    if not tasks:
        raise TaskNotFoundError(ulid_suffix, message=f"No tasks found with ulid: {ulid_suffix}")
    if len(tasks) > 1:
        listing = "\n".join(f"{task.ulid}: {task.body}" for task in tasks)
        raise AmbiguousMatchError(
            ulid_suffix,
            [task.ulid for task in tasks],
            message=f"Expected 1 task but found {len(tasks)}\n{listing}",
        )
    return tasks[0]


def do_task(storage: TaskStorage, task: Task) -> Optional[Task]:
    """
    Close a task, creating its next occurrence first when it recurs.

    The next occurrence is saved before the task is closed so a failure while
    closing never drops the series.

    Returns:
        The next occurrence, or None
    """
    if task.is_closed:
        logger.info(f"Task {task.ulid} already closed")
        return None

    occurrence = next_task(task)
    if occurrence is not None:
        storage.save(occurrence)
        logger.info(f"Created next occurrence {occurrence.ulid} of {task.ulid}")

    closed = task.model_copy(update={"closed_utc": utc_now()})
    storage.update(closed)
    task.closed_utc = closed.closed_utc
    return occurrence


def undo_task(storage: TaskStorage, task: Task) -> bool:
    """Reopen a closed task. Returns False when it was already open."""
    if not task.is_closed:
        return False
    storage.update(task.model_copy(update={"closed_utc": None}))
    task.closed_utc = None
    return True


def delete_task(storage: TaskStorage, ulid_suffix: str) -> Task:
    task = find_single_task(storage, ulid_suffix)
    storage.delete(task)
    return task


def quick_clean(storage: TaskStorage, date: str, today: Optional[datetime] = None) -> List[Task]:
    """
    Move the open tasks due on ``date`` forward.

    Non-recurring tasks move to today keeping their time of day; recurring
    tasks move to their next occurrence.

    Args:
        storage: Storage to clean
        date: Day to clean, ``YYYY-MM-DD``
        today: Override for the current UTC day (tests)

    Returns:
        The tasks that were moved
    """
    try:
        datetime.strptime(date, "%Y-%m-%d")
    except ValueError as e:
        raise ValidationError(
            f"Expected date like `2024-10-23` but found {date}",
            field="date",
            value=date,
        ) from e

    today = today or utc_now()
    # date has been validated above, so it is safe to inline
    clause = f"WHERE DATE(due_utc) = '{date}' AND closed_utc IS NULL ORDER BY due_utc ASC"
    tasks = storage.unsafe_query(clause)

    for task in tasks:
        occurrence = next_task(task)
        if occurrence is None:
            task.due_utc = _move_to_day(task.due_utc, today)
            task.ready_utc = _move_to_day(task.ready_utc, today)
        else:
            task.due_utc = occurrence.due_utc
            task.ready_utc = occurrence.ready_utc
        storage.update(task)
    logger.info(f"Moved {len(tasks)} task(s) due on {date}")
    return tasks


def _move_to_day(value: Optional[datetime], day: datetime) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(year=day.year, month=day.month, day=day.day)
