"""
Tests for two-way synchronization between replicas.
"""
import logging
from datetime import timedelta

import pytest

from tasksync.exceptions import DatabaseError
from tasksync.sync.engine import SyncEngine, change_window_clause
from tasksync.tasks.models import Task, utc_now


def ulids(storage):
    return {task.ulid for task in storage.unsafe_query("")}


def get(storage, ulid):
    return [task for task in storage.search_using_ulid(ulid) if task.ulid == ulid][0]


def test_negative_window_rejected(local_storage, remote_storage):
    with pytest.raises(ValueError):
        SyncEngine(local_storage, remote_storage, -1)


def test_change_window_clause_includes_unstamped_records():
    clause = change_window_clause(utc_now())
    assert clause.startswith("WHERE modified_utc IS NULL OR")


def test_one_sided_tasks_are_copied_both_ways(local_storage, remote_storage):
    mine, theirs = Task(body="mine", tags=["a"]), Task(body="theirs")
    local_storage.save(mine)
    remote_storage.save(theirs)

    report = local_storage.sync(remote_storage, 3)

    assert ulids(local_storage) == ulids(remote_storage) == {mine.ulid, theirs.ulid}
    assert get(remote_storage, mine.ulid).content_equals(mine)
    assert report.remote.added == 1
    assert report.local.added == 1
    assert report.conflicts == []


def test_second_run_performs_no_writes(local_storage, remote_storage):
    local_storage.save(Task(body="a"))
    remote_storage.save(Task(body="b"))
    doomed = Task(body="c")
    local_storage.save(doomed)
    local_storage.sync(remote_storage, 3)
    local_storage.delete(doomed)

    first = local_storage.sync(remote_storage, 3)
    assert first.writes == 1

    second = local_storage.sync(remote_storage, 3)
    assert second.writes == 0


def test_newer_local_copy_wins(local_storage, remote_storage, set_modified):
    task = Task(body="original")
    local_storage.save(task)
    local_storage.sync(remote_storage, 3)

    task.body = "edited locally"
    local_storage.update(task)
    set_modified(local_storage, task.ulid, utc_now() - timedelta(hours=1))
    set_modified(remote_storage, task.ulid, utc_now() - timedelta(hours=2))

    report = local_storage.sync(remote_storage, 3)

    assert get(remote_storage, task.ulid).body == "edited locally"
    assert report.remote.updated == 1
    assert report.local.updated == 0


def test_newer_remote_copy_wins(local_storage, remote_storage, set_modified):
    task = Task(body="original")
    local_storage.save(task)
    local_storage.sync(remote_storage, 3)

    remote_copy = get(remote_storage, task.ulid)
    remote_copy.body = "edited remotely"
    remote_storage.update(remote_copy)
    set_modified(local_storage, task.ulid, utc_now() - timedelta(hours=2))

    report = local_storage.sync(remote_storage, 3)

    assert get(local_storage, task.ulid).body == "edited remotely"
    assert report.local.updated == 1


def test_equal_timestamps_keep_remote_and_report_conflict(local_storage, remote_storage, set_modified, caplog):
    task = Task(body="original")
    local_storage.save(task)
    local_storage.sync(remote_storage, 3)

    local_storage.update(task.model_copy(update={"body": "local edit"}))
    remote_storage.update(task.model_copy(update={"body": "remote edit"}))
    stamp = utc_now() - timedelta(minutes=5)
    set_modified(local_storage, task.ulid, stamp)
    set_modified(remote_storage, task.ulid, stamp)

    with caplog.at_level(logging.WARNING, logger="tasksync.sync.engine"):
        report = local_storage.sync(remote_storage, 3)

    assert report.conflicts == [task.ulid]
    assert get(local_storage, task.ulid).body == "remote edit"
    assert task.ulid in caplog.text


def test_identical_content_is_left_alone(local_storage, remote_storage, set_modified):
    task = Task(body="same")
    local_storage.save(task)
    remote_storage.save(task)
    set_modified(remote_storage, task.ulid, utc_now() - timedelta(hours=1))

    report = local_storage.sync(remote_storage, 3)
    assert report.writes == 0


def test_deletion_propagates(local_storage, remote_storage):
    task = Task(body="to delete")
    local_storage.save(task)
    local_storage.sync(remote_storage, 3)

    remote_storage.delete(get(remote_storage, task.ulid))
    report = local_storage.sync(remote_storage, 3)

    assert report.local.deleted == 1
    assert ulids(local_storage) == ulids(remote_storage) == set()
    assert task.ulid in local_storage.deleted_ulids(3)


def test_deleted_task_is_not_resurrected(local_storage, remote_storage):
    task = Task(body="deleted here, edited there")
    local_storage.save(task)
    local_storage.sync(remote_storage, 3)

    local_storage.delete(task)
    remote_storage.update(task.model_copy(update={"body": "edited there"}))

    local_storage.sync(remote_storage, 3)
    assert ulids(local_storage) == ulids(remote_storage) == set()


def test_tombstone_for_unknown_task_is_ignored(local_storage, remote_storage):
    task = Task(body="never synced")
    local_storage.save(task)
    local_storage.delete(task)

    report = local_storage.sync(remote_storage, 3)
    assert report.writes == 0


def test_save_falls_back_to_update_for_records_outside_window(local_storage, remote_storage, set_modified):
    task = Task(body="old")
    local_storage.save(task)
    remote_storage.save(task)
    set_modified(remote_storage, task.ulid, utc_now() - timedelta(days=30))

    task.body = "new"
    local_storage.update(task)

    report = local_storage.sync(remote_storage, 3)

    assert report.remote.updated == 1
    assert report.remote.added == 0
    assert get(remote_storage, task.ulid).body == "new"


def test_changes_outside_window_are_ignored(local_storage, remote_storage, set_modified):
    task = Task(body="ancient")
    local_storage.save(task)
    set_modified(local_storage, task.ulid, utc_now() - timedelta(days=30))

    local_storage.sync(remote_storage, 3)
    assert ulids(remote_storage) == set()


def test_backend_error_aborts_run(local_storage, remote_storage, monkeypatch):
    local_storage.save(Task(body="x"))

    def fail(task):
        raise DatabaseError("disk full")

    monkeypatch.setattr(remote_storage, "save", fail)
    with pytest.raises(DatabaseError):
        local_storage.sync(remote_storage, 3)


def test_sync_against_api_backend(local_storage, api_storage, server_storage):
    mine, theirs = Task(body="mine"), Task(body="theirs")
    local_storage.save(mine)
    server_storage.save(theirs)

    report = local_storage.sync(api_storage, 3)
    assert report.local.added == 1
    assert report.remote.added == 1
    assert ulids(server_storage) == ulids(local_storage) == {mine.ulid, theirs.ulid}

    server_storage.delete(mine)
    report = local_storage.sync(api_storage, 3)
    assert report.local.deleted == 1
    assert ulids(local_storage) == {theirs.ulid}

    assert local_storage.sync(api_storage, 3).writes == 0


def test_summary_lines_mention_conflicts():
    from tasksync.sync.engine import SyncReport

    report = SyncReport(conflicts=["01abc"])
    report.local.added = 2
    lines = report.summary_lines()
    assert lines[0] == "Local: 2 added, 0 updated, 0 deleted"
    assert "01abc" in lines[-1]
