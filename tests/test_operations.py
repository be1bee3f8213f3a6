"""
Tests for single-task operations and editor editing.
"""
from datetime import datetime, timezone

import pytest

from tasksync.exceptions import AmbiguousMatchError, DatabaseError, TaskNotFoundError, ValidationError
from tasksync.tasks.editor import edit_task, task_from_yaml, task_to_yaml
from tasksync.tasks.models import Task
from tasksync.tasks.operations import delete_task, do_task, find_single_task, quick_clean, undo_task


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_find_single_task(storage):
    storage.save(Task(ulid="aaaa1111", body="a"))
    storage.save(Task(ulid="bbbb1111", body="b"))

    assert find_single_task(storage, "a1111").body == "a"

    with pytest.raises(AmbiguousMatchError) as exc_info:
        find_single_task(storage, "1111")
    assert sorted(exc_info.value.candidates) == ["aaaa1111", "bbbb1111"]
    assert "aaaa1111: a" in exc_info.value.message

    with pytest.raises(TaskNotFoundError):
        find_single_task(storage, "zzzz")


def test_do_task_closes_once(storage):
    task = Task(body="x")
    storage.save(task)

    assert do_task(storage, task) is None
    closed = find_single_task(storage, task.ulid)
    assert closed.is_closed

    first_close = closed.closed_utc
    do_task(storage, closed)
    assert find_single_task(storage, task.ulid).closed_utc == first_close


def test_do_recurring_task_creates_next_occurrence(storage):
    task = Task(body="standup", due_utc=utc(2024, 2, 9, 10), recurrence_duration="P1JD", tags=["work"])
    storage.save(task)

    occurrence = do_task(storage, task)

    stored = find_single_task(storage, occurrence.ulid)
    assert stored.due_utc == utc(2024, 2, 12, 10)
    assert stored.tags == ["work"]
    assert not stored.is_closed
    assert find_single_task(storage, task.ulid).is_closed


def test_do_recurring_task_without_due_saves_nothing(storage):
    task = Task.model_construct(body="broken", recurrence_duration="P1D")

    with pytest.raises(ValidationError):
        do_task(storage, task)
    assert not task.is_closed
    assert storage.unsafe_query("") == []


def test_do_task_failed_update_leaves_task_open(storage, monkeypatch):
    task = Task(body="x")
    storage.save(task)

    def fail(_task):
        raise DatabaseError("disk I/O error", operation="UPDATE")

    monkeypatch.setattr(storage, "update", fail)
    with pytest.raises(DatabaseError):
        do_task(storage, task)

    assert not task.is_closed
    assert not find_single_task(storage, task.ulid).is_closed


def test_undo_task(storage):
    task = Task(body="x", closed_utc=utc(2024, 1, 1))
    storage.save(task)

    assert undo_task(storage, task)
    assert not find_single_task(storage, task.ulid).is_closed
    assert not undo_task(storage, task)


def test_delete_task(storage):
    task = Task(body="x")
    storage.save(task)

    assert delete_task(storage, task.ulid[-6:]).ulid == task.ulid
    assert storage.deleted_ulids(1) == {task.ulid}


def test_quick_clean(storage):
    plain = Task(body="plain", due_utc=utc(2024, 1, 15, 10), ready_utc=utc(2024, 1, 15, 8))
    weekly = Task(body="weekly", due_utc=utc(2024, 1, 15, 9), recurrence_duration="P1W")
    done = Task(body="done", due_utc=utc(2024, 1, 15, 11), closed_utc=utc(2024, 1, 15, 12))
    other_day = Task(body="other", due_utc=utc(2024, 1, 16, 10))
    for task in (plain, weekly, done, other_day):
        storage.save(task)

    moved = quick_clean(storage, "2024-01-15", today=utc(2024, 3, 1, 7))

    assert {t.body for t in moved} == {"plain", "weekly"}
    assert find_single_task(storage, plain.ulid).due_utc == utc(2024, 3, 1, 10)
    assert find_single_task(storage, plain.ulid).ready_utc == utc(2024, 3, 1, 8)
    assert find_single_task(storage, weekly.ulid).due_utc == utc(2024, 1, 22, 9)
    assert find_single_task(storage, done.ulid).due_utc == utc(2024, 1, 15, 11)
    assert find_single_task(storage, other_day.ulid).due_utc == utc(2024, 1, 16, 10)


@pytest.mark.parametrize("date", ["2024-13-01", "yesterday", "2024-01-15' OR 1=1 --"])
def test_quick_clean_rejects_bad_dates(storage, date):
    with pytest.raises(ValidationError):
        quick_clean(storage, date)


def test_yaml_round_trip_keeps_task():
    task = Task(body="x", due_utc=utc(2024, 1, 1, 9), tags=["a"])
    assert task_from_yaml(task_to_yaml(task), task).content_equals(task)


def test_yaml_rejects_ulid_change():
    task = Task(body="x")
    text = task_to_yaml(task).replace(task.ulid, "01hzzzzzzzzzzzzzzzzzzzzzzz")
    with pytest.raises(ValidationError):
        task_from_yaml(text, task)


def test_yaml_rejects_garbage():
    task = Task(body="x")
    with pytest.raises(ValidationError):
        task_from_yaml("- just\n- a list\n", task)
    with pytest.raises(ValidationError):
        task_from_yaml("body: [unclosed", task)
    with pytest.raises(ValidationError):
        task_from_yaml("due_utc: not a date\n", task)


def test_edit_task_updates_storage(storage):
    task = Task(body="buy milk")
    storage.save(task)

    updated = edit_task(storage, task.ulid, edit=lambda text: text.replace("buy milk", "buy bread"))

    assert updated.body == "buy bread"
    assert find_single_task(storage, task.ulid).body == "buy bread"


def test_edit_task_without_changes(storage):
    task = Task(body="x")
    storage.save(task)

    assert edit_task(storage, task.ulid, edit=lambda text: None) is None
    assert edit_task(storage, task.ulid, edit=lambda text: text) is None


@pytest.mark.parametrize("text", [
    "body: z\nrecurrence_duration: nonsense\n",
    "body: z\nrecurrence_duration: P1D\ndue_utc: null\n",
])
def test_yaml_rejects_bad_recurrence(text):
    task = Task(body="x")
    with pytest.raises(ValidationError):
        task_from_yaml(text, task)


def test_edit_task_rejects_recurrence_without_due(storage):
    task = Task(body="water plants")
    storage.save(task)

    with pytest.raises(ValidationError):
        edit_task(storage, task.ulid, edit=lambda text: text.replace("recurrence_duration: null", "recurrence_duration: P1W"))
    assert find_single_task(storage, task.ulid).recurrence_duration is None
