"""
Console rendering of task lists.
"""
import math
from datetime import datetime, timezone
from typing import List, Optional

import click

from tasksync.tasks.models import Task

BASE32_CHARACTERS = 32
MIN_ULID_LENGTH = 4
COLLISION_PROBABILITY = 0.00001

# Tasks due within this many minutes are shown in the default colour,
# later ones are dimmed.
DUE_SOON_MINUTES = 120


def ulid_output_length(total_tasks: int) -> int:
    """Shortest ulid suffix that keeps the collision probability below 1e-5."""
    if total_tasks < 1:
        return MIN_ULID_LENGTH
    length = math.ceil(math.log(total_tasks / COLLISION_PROBABILITY, BASE32_CHARACTERS))
    return max(length, MIN_ULID_LENGTH)


def _body_color(task: Task, now: datetime) -> Optional[str]:
    if task.is_closed:
        return "green"
    if task.due_utc is None:
        return None
    minutes = (task.due_utc - now).total_seconds() / 60
    if minutes < 0:
        return "red"
    if minutes < DUE_SOON_MINUTES:
        return None
    return "bright_black"


def format_task_row(task: Task, ulid_length: Optional[int] = None, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    ulid = task.ulid[-ulid_length:] if ulid_length else task.ulid
    due = task.due_utc.strftime("%Y-%m-%d %H:%M:%S") if task.due_utc else ""
    tags = ",".join(task.tags or [])
    return (
        click.style(f"{ulid:7}", fg="green")
        + click.style(f"{due:23}", fg="yellow")
        + click.style(task.body, fg=_body_color(task, now))
        + click.style(f" {tags}", fg="blue")
    )


def format_tasks_table(tasks: List[Task], now: Optional[datetime] = None) -> List[str]:
    ulid_length = ulid_output_length(len(tasks))
    lines = [click.style(f"{'id':7}{'due_utc':23}body", underline=True)]
    lines.extend(format_task_row(task, ulid_length, now) for task in tasks)
    return lines


def show_tasks_table(tasks: List[Task]) -> None:
    for line in format_tasks_table(tasks):
        click.echo(line)
