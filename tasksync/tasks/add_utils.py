"""
Parsing for the ``add`` command.

Special tokens are read from the end of the input backwards until the first
plain word; everything before that is the task body::

    write report due:2024-02-09T10:00 recur:P1W +work p:2
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from tasksync.exceptions import ValidationError
from tasksync.tasks.models import Task
from tasksync.tasks.recurrence import BUSINESS_DAY_TOKEN, parse_duration

logger = logging.getLogger(__name__)

DUE_FORMAT = "%Y-%m-%dT%H:%M"


@dataclass
class AddContext:
    body: str
    due: Optional[datetime] = None
    tags: Optional[List[str]] = None
    recur: Optional[str] = None
    priority: Optional[float] = None

    def to_task(self) -> Task:
        return Task(
            body=self.body,
            due_utc=self.due,
            tags=self.tags,
            recurrence_duration=self.recur,
            priority_adjustment=self.priority,
        )


def _parse_due(value: str) -> datetime:
    try:
        return datetime.strptime(value, DUE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise ValidationError(
            f"Due should have the format {DUE_FORMAT} e.g. 2023-10-09T10:05, got '{value}'",
            field="due",
            value=value,
        ) from e


def _parse_recur(value: str) -> str:
    if value.upper() != BUSINESS_DAY_TOKEN:
        parse_duration(value)
    return value


def _parse_tag(value: str) -> str:
    if not value or "," in value:
        raise ValidationError(f"Invalid tag '{value}'", field="tag", value=value)
    return value


def _parse_priority(value: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise ValidationError(f"Priority must be a number, got '{value}'", field="p", value=value) from e


def get_context(words: List[str]) -> AddContext:
    """
    Split the words of an ``add`` command into body and attributes.

    Raises:
        ValidationError: On repeated due/recur tokens, unparsable values or a
            recurrence without a due date
    """
    body: List[str] = []
    due = None
    recur = None
    priority = None
    tags: List[str] = []
    special = True

    for word in reversed(words):
        if not special:
            body.insert(0, word)
            continue

        if word.startswith("due:"):
            if due is not None:
                raise ValidationError("Input has multiple due dates", field="due", value=word)
            due = _parse_due(word[len("due:"):])
        elif word.startswith("recur:"):
            if recur is not None:
                raise ValidationError("Input has multiple recurrences", field="recur", value=word)
            recur = _parse_recur(word[len("recur:"):])
        elif word.startswith("tag:"):
            tags.append(_parse_tag(word[len("tag:"):]))
        elif word.startswith("+"):
            tags.append(_parse_tag(word[1:]))
        elif word.startswith("p:"):
            priority = _parse_priority(word[len("p:"):])
        else:
            special = False
            body.insert(0, word)

    if recur is not None and due is None:
        raise ValidationError(
            "A recurring task needs a due date, add due:YYYY-MM-DDTHH:MM",
            field="recur",
            value=recur,
        )

    return AddContext(
        body=" ".join(body).strip(),
        due=due,
        tags=sorted(set(tags)) or None,
        recur=recur,
        priority=priority,
    )
