"""
Task entity and the small value objects that travel with it.

Tasks are pydantic models so the same definition validates rows read from
SQLite, request bodies received by the HTTP server and responses decoded by
the remote backend.
"""
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from ulid import ULID

from tasksync.exceptions import ValidationError

# Timestamps are stored as text in this format so SQLite's DATE()/DATETIME()
# functions keep working inside raw query clauses.
DB_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_USER = "rookie"

TIMESTAMP_FIELDS = ("modified_utc", "ready_utc", "due_utc", "closed_utc")


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def new_ulid() -> str:
    """Generate a lowercase, lexicographically time-sortable identifier."""
    return str(ULID()).lower()


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a UTC datetime for storage (None stays None)."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime(DB_TIME_FORMAT)


class Task(BaseModel):
    """A single unit of work."""

    model_config = ConfigDict(validate_assignment=True)

    ulid: str = Field(default_factory=new_ulid, min_length=1)
    body: str = ""
    modified_utc: Optional[datetime] = None
    ready_utc: Optional[datetime] = None
    due_utc: Optional[datetime] = None
    closed_utc: Optional[datetime] = None
    recurrence_duration: Optional[str] = None
    priority_adjustment: Optional[float] = None
    user: Optional[str] = DEFAULT_USER
    metadata: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator(*TIMESTAMP_FIELDS, mode="before")
    @classmethod
    def _parse_db_timestamp(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return datetime.strptime(value, DB_TIME_FORMAT)
            except ValueError:
                return value
        return value

    @field_validator(*TIMESTAMP_FIELDS)
    @classmethod
    def _normalize_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(microsecond=0)

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if not value:
            return None
        tags = set()
        for tag in value:
            tag = tag.strip()
            if not tag:
                continue
            if "," in tag:
                raise ValueError(f"Tag '{tag}' must not contain a comma")
            tags.add(tag)
        return sorted(tags) or None

    @model_validator(mode="after")
    def _check_recurrence(self) -> "Task":
        if not self.recurrence_duration:
            return self
        if self.due_utc is None:
            raise ValueError(f"Recurrence '{self.recurrence_duration}' requires a due date")
        # recurrence imports this module
        from tasksync.tasks.recurrence import parse_duration, resolve_recurrence

        try:
            parse_duration(resolve_recurrence(self.recurrence_duration, self.due_utc))
        except ValidationError as e:
            raise ValueError(e.message) from e
        return self

    @property
    def is_closed(self) -> bool:
        return self.closed_utc is not None

    def content_equals(self, other: "Task") -> bool:
        """Compare two records ignoring modified_utc, which always differs between replicas."""
        exclude = {"modified_utc"}
        return self.model_dump(exclude=exclude) == other.model_dump(exclude=exclude)


class SummaryConfig(BaseModel):
    """Tuning for the day summary report.

    Durations are ISO-8601 strings (``PT30M``) both in the TOML config file and
    on the wire.
    """

    start: time = time(5, 0)
    end: time = time(14, 0)
    tags: Dict[str, timedelta] = Field(
        default_factory=lambda: {
            "meeting": timedelta(minutes=30),
            "work": timedelta(minutes=30),
        }
    )
    goal: timedelta = timedelta(minutes=30)

    def relevant_tags(self) -> List[str]:
        return sorted(self.tags)


class DaySummaryResult(BaseModel):
    """Aggregate counts for today, as produced by TaskStorage.summarize_day."""

    total_tasks: int = 0
    done_tasks: int = 0
    open_tags_count: Optional[Dict[str, int]] = None
