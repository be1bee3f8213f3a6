"""
Recurrence calculator.

Recurrence rules are ISO-8601 durations (``P1D``, ``P1W``, ``P1M``,
``PT12H``...). One extra token, ``P1JD`` ("next job day"), skips weekend days.
"""
import logging
import re
from datetime import datetime
from typing import Dict, Optional

from dateutil.relativedelta import relativedelta

from tasksync.exceptions import ValidationError
from tasksync.tasks.models import Task, new_ulid

logger = logging.getLogger(__name__)

BUSINESS_DAY_TOKEN = "P1JD"

# datetime.weekday(): Monday == 0 ... Sunday == 6
BUSINESS_DAY_OVERRIDES: Dict[int, str] = {
    4: "P3D",  # Friday -> Monday
    5: "P2D",  # Saturday -> Monday
}
BUSINESS_DAY_DEFAULT = "P1D"

_DURATION_RE = re.compile(
    r"^P(?!$)"
    r"(?:(?P<years>\d+)Y)?"
    r"(?:(?P<months>\d+)M)?"
    r"(?:(?P<weeks>\d+)W)?"
    r"(?:(?P<days>\d+)D)?"
    r"(?:T(?=\d)"
    r"(?:(?P<hours>\d+)H)?"
    r"(?:(?P<minutes>\d+)M)?"
    r"(?:(?P<seconds>\d+)S)?"
    r")?$"
)


def parse_duration(text: str) -> relativedelta:
    """
    Parse an ISO-8601 duration into a calendar-aware relativedelta.

    Args:
        text: Duration such as ``P1M`` or ``P1DT2H``

    Returns:
        relativedelta that can be added to a datetime

    Raises:
        ValidationError: If the text is not a valid duration
    """
    match = _DURATION_RE.match(text.strip().upper()) if text else None
    if not match:
        raise ValidationError(
            f"Recurrence '{text}' is not a valid ISO-8601 duration",
            field="recurrence_duration",
            value=text,
        )
    parts = {name: int(value) for name, value in match.groupdict().items() if value}
    return relativedelta(**parts)


def resolve_recurrence(rule: str, due: datetime) -> str:
    """Turn the business-day token into a plain duration for the given due date."""
    if rule.upper().endswith("1JD"):
        return BUSINESS_DAY_OVERRIDES.get(due.weekday(), BUSINESS_DAY_DEFAULT)
    return rule


def next_task(task: Task) -> Optional[Task]:
    """
    Derive the next occurrence of a recurring task.

    The resolved duration is added to due_utc and, when present, ready_utc.
    The new occurrence gets a fresh identifier and is open.

    Args:
        task: Task to derive from

    Returns:
        The next occurrence, or None if the task does not recur

    Raises:
        ValidationError: If the rule is malformed or the task has no due date
    """
    if not task.recurrence_duration:
        return None
    if task.due_utc is None:
        raise ValidationError(
            f"Task {task.ulid} recurs but has no due date",
            field="due_utc",
        )

    duration = parse_duration(resolve_recurrence(task.recurrence_duration, task.due_utc))
    ready_utc = task.ready_utc + duration if task.ready_utc is not None else None

    occurrence = task.model_copy(
        deep=True,
        update={
            "ulid": new_ulid(),
            "due_utc": task.due_utc + duration,
            "ready_utc": ready_utc,
            "closed_utc": None,
            "modified_utc": None,
        }
    )
    logger.debug(f"Next occurrence of {task.ulid} is {occurrence.ulid} due {occurrence.due_utc}")
    return occurrence
