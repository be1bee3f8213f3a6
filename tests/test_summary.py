"""
Tests for the day summary report and table rendering.
"""
from datetime import datetime, timedelta, timezone

import click

from tasksync.tasks.display import format_tasks_table, ulid_output_length
from tasksync.tasks.models import DaySummaryResult, SummaryConfig, Task
from tasksync.tasks.summary import compute_summary, render_summary

NOW = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_minutes_per_task_reserves_time_for_tags():
    config = SummaryConfig()
    result = DaySummaryResult(total_tasks=10, done_tasks=2, open_tags_count={"meeting": 2, "work": 0})

    stats = compute_summary(config, result, now=NOW)

    # 240 minutes until 14:00, 60 reserved for two meetings, 6 untagged tasks
    assert stats.minutes_per_task == 30
    assert stats.excess_tasks == 0
    assert stats.not_done == 8
    assert stats.ratio_done == 0.2


def test_excess_tasks_are_reported_in_red():
    config = SummaryConfig()
    stats = compute_summary(config, DaySummaryResult(total_tasks=12, done_tasks=0), now=NOW)

    assert stats.minutes_per_task == 20
    assert stats.excess_tasks == 4

    lines = render_summary(config, stats)
    assert lines[:3] == ["Total: 12", "NotDone: 12", "Done: 0"]
    assert click.unstyle(lines[-1]) == "Excess tasks count: 4"
    assert lines[-1] != click.unstyle(lines[-1])


def test_nothing_left():
    config = SummaryConfig()
    stats = compute_summary(config, DaySummaryResult(total_tasks=0, done_tasks=0), now=NOW)
    assert stats.minutes_per_task is None
    assert stats.ratio_done == 0.0
    assert "Ratio done: 0.00" in render_summary(config, stats)


def test_open_tags_listed():
    config = SummaryConfig(tags={"meeting": timedelta(minutes=45)})
    stats = compute_summary(
        config,
        DaySummaryResult(total_tasks=3, done_tasks=0, open_tags_count={"meeting": 1}),
        now=NOW,
    )
    assert "Tag.meeting left (~45 mins): 1" in render_summary(config, stats)


def test_ulid_output_length():
    assert ulid_output_length(0) == 4
    assert ulid_output_length(10) == 4
    assert ulid_output_length(20) == 5
    assert ulid_output_length(100) == 5


def test_tasks_table():
    tasks = [
        Task(body="overdue", due_utc=NOW - timedelta(hours=1), tags=["a", "b"]),
        Task(body="no due date"),
    ]
    lines = [click.unstyle(line) for line in format_tasks_table(tasks, now=NOW)]

    assert lines[0].startswith("id")
    assert lines[1].startswith(tasks[0].ulid[-4:])
    assert "2024-01-01 09:00:00" in lines[1]
    assert lines[1].endswith("overdue a,b")
    assert lines[2].endswith("no due date ")
