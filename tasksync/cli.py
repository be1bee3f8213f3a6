#!/usr/bin/env python3
"""
Command-line interface for tasksync.
"""
import logging
import sys
from typing import Optional

import click

from tasksync.config import TasksConfig, build_storage, build_sync_peer, load_config, setup_logging
from tasksync.exceptions import ServiceError
from tasksync.storage.interface import TaskStorage
from tasksync.tasks import operations
from tasksync.tasks.add_utils import get_context
from tasksync.tasks.display import show_tasks_table
from tasksync.tasks.editor import edit_task
from tasksync.tasks.summary import compute_summary, render_summary

logger = logging.getLogger(__name__)

DEFAULT_LEO_COUNT = 7
DEFAULT_SYNC_DAYS = 3


class TasksGroup(click.Group):
    """Click group that reports ServiceError as a one-line message and exit status 1."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except ServiceError as e:
            logger.debug(f"Command failed: {e.to_dict()}")
            click.echo(f"Error: {e.message}", err=True)
            ctx.exit(1)


def get_config(ctx: click.Context) -> TasksConfig:
    if ctx.obj.get("config") is None:
        ctx.obj["config"] = load_config(ctx.obj.get("config_path"))
    return ctx.obj["config"]


def get_storage(ctx: click.Context) -> TaskStorage:
    """Storage for this invocation, built from the config file on first use."""
    if ctx.obj.get("storage") is None:
        storage = build_storage(get_config(ctx).backend)
        ctx.obj["storage"] = storage
        ctx.call_on_close(storage.close)
    return ctx.obj["storage"]


@click.group(cls=TasksGroup)
@click.option('--config', 'config_path', envvar='TASKSYNC_CONFIG_PATH', default=None,
              type=click.Path(dir_okay=False),
              help='Config file (default: $XDG_CONFIG_HOME/tasksync/config.toml)')
@click.option('--log-level', default=None, help='Log level (default: WARNING or TASKSYNC_LOG_LEVEL)')
@click.pass_context
def cli(ctx, config_path, log_level):
    """Manage your task list."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault('config_path', config_path)
    setup_logging(log_level)


@cli.command()
@click.argument('count', type=int, default=DEFAULT_LEO_COUNT)
@click.pass_context
def leo(ctx, count):
    """Show the next COUNT due tasks."""
    show_tasks_table(get_storage(ctx).next_tasks(count))


@cli.command('do')
@click.argument('ulids', nargs=-1, required=True)
@click.pass_context
def do_(ctx, ulids):
    """Mark tasks as done, creating the next occurrence of recurring ones."""
    storage = get_storage(ctx)
    for ulid in ulids:
        task = operations.find_single_task(storage, ulid)
        if task.is_closed:
            click.echo(f"Already done: {task.ulid} {task.body}")
            continue
        occurrence = operations.do_task(storage, task)
        click.echo(f"Done: {task.ulid} " + click.style(task.body, fg='yellow'))
        if occurrence is not None:
            click.echo(f"Next: {occurrence.ulid} due {occurrence.due_utc:%Y-%m-%d %H:%M:%S}")


@cli.command()
@click.argument('ulid')
@click.pass_context
def undo(ctx, ulid):
    """Reopen a done task."""
    storage = get_storage(ctx)
    task = operations.find_single_task(storage, ulid)
    if operations.undo_task(storage, task):
        click.echo(f"Undone: {task.ulid} " + click.style(task.body, fg='yellow'))
    else:
        click.echo(f"Not done: {task.ulid} {task.body}")


@cli.command()
@click.argument('ulid')
@click.pass_context
def edit(ctx, ulid):
    """Edit a task as YAML in $EDITOR."""
    task = edit_task(get_storage(ctx), ulid)
    if task is None:
        click.echo("No changes")
    else:
        click.echo(f"Done: {task.ulid} " + click.style(task.body, fg='yellow'))


@cli.command()
@click.argument('ulids', nargs=-1, required=True)
@click.pass_context
def delete(ctx, ulids):
    """Delete tasks."""
    storage = get_storage(ctx)
    for ulid in ulids:
        task = operations.delete_task(storage, ulid)
        click.echo(f"Deleted: '{task.body}' {task.ulid}")


@cli.command()
@click.argument('words', nargs=-1, required=True)
@click.pass_context
def add(ctx, words):
    """Add a task.

    Trailing tokens set attributes: due:YYYY-MM-DDTHH:MM, recur:P1W,
    tag:work or +work, p:1.5
    """
    context = get_context(" ".join(words).split())
    task = context.to_task()
    get_storage(ctx).save(task)
    click.echo(f"Saved task: {task.ulid}")


@cli.command('quick-clean')
@click.argument('date')
@click.pass_context
def quick_clean(ctx, date):
    """Move open tasks due on DATE (YYYY-MM-DD) to today or their next occurrence."""
    tasks = operations.quick_clean(get_storage(ctx), date)
    click.echo(f"Moved {len(tasks)} task(s)")


@cli.command()
@click.argument('clause')
@click.pass_context
def query(ctx, clause):
    """Show tasks matching a raw SQL clause, e.g. "WHERE body LIKE '%milk%'"."""
    show_tasks_table(get_storage(ctx).unsafe_query(clause))


@cli.command()
@click.pass_context
def summary(ctx):
    """Show today's progress and pacing."""
    config = get_config(ctx).summary
    result = get_storage(ctx).summarize_day(config)
    for line in render_summary(config, compute_summary(config, result)):
        click.echo(line)


@cli.command()
@click.argument('n_days', type=click.IntRange(min=0), default=DEFAULT_SYNC_DAYS)
@click.pass_context
def sync(ctx, n_days):
    """Sync with the first configured peer over the last N_DAYS days."""
    storage = get_storage(ctx)
    peer: Optional[TaskStorage] = ctx.obj.get("peer")
    if peer is None:
        peer = build_sync_peer(get_config(ctx))
        ctx.call_on_close(peer.close)
    report = storage.sync(peer, n_days)
    for line in report.summary_lines():
        click.echo(line)


if __name__ == '__main__':
    sys.exit(cli())
