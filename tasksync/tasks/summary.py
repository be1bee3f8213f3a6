"""
Day summary report.

Turns the counts from ``TaskStorage.summarize_day`` into a pacing estimate:
how many minutes remain per open task before the end of the working window,
and how many tasks do not fit at the configured goal pace.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

import click

from tasksync.tasks.models import DaySummaryResult, SummaryConfig


@dataclass
class SummaryStats:
    total: int
    done: int
    not_done: int
    ratio_done: float
    minutes_per_task: Optional[int]
    excess_tasks: int
    open_tags: Dict[str, int] = field(default_factory=dict)


def compute_summary(
    config: SummaryConfig,
    result: DaySummaryResult,
    now: Optional[datetime] = None,
) -> SummaryStats:
    """
    Compute pacing for the rest of the day.

    Time reserved for tracked tags (count x configured duration) is taken off
    the end of the window before the remaining time is shared among the other
    open tasks.
    """
    now = now or datetime.now(timezone.utc)
    open_tags = dict(result.open_tags_count or {})

    end = datetime.combine(now.date(), config.end, tzinfo=now.tzinfo)
    untagged = result.total_tasks - result.done_tasks
    for tag, cnt in open_tags.items():
        end -= config.tags.get(tag, config.goal) * cnt
        untagged -= cnt

    remaining_minutes = int((end - now).total_seconds() // 60)
    goal_minutes = max(int(config.goal.total_seconds() // 60), 1)

    minutes_per_task = remaining_minutes // untagged if untagged > 0 else None
    excess = untagged - remaining_minutes // goal_minutes

    return SummaryStats(
        total=result.total_tasks,
        done=result.done_tasks,
        not_done=result.total_tasks - result.done_tasks,
        ratio_done=result.done_tasks / result.total_tasks if result.total_tasks else 0.0,
        minutes_per_task=minutes_per_task,
        excess_tasks=max(excess, 0),
        open_tags=open_tags,
    )


def render_summary(config: SummaryConfig, stats: SummaryStats) -> List[str]:
    lines = [
        f"Total: {stats.total}",
        f"NotDone: {stats.not_done}",
        f"Done: {stats.done}",
    ]
    for tag, cnt in sorted(stats.open_tags.items()):
        if cnt < 1:
            continue
        minutes = int(config.tags.get(tag, config.goal).total_seconds() // 60)
        lines.append(f"Tag.{tag} left (~{minutes} mins): {cnt}")
    lines.append(f"Ratio done: {stats.ratio_done:.2f}")

    behind = (
        stats.minutes_per_task is not None
        and stats.minutes_per_task < config.goal.total_seconds() // 60
    )
    color = "red" if behind else None
    if stats.minutes_per_task is not None:
        lines.append(click.style(f"Minutes per task: {stats.minutes_per_task}", fg=color))
    if stats.excess_tasks > 0:
        lines.append(click.style(f"Excess tasks count: {stats.excess_tasks}", fg=color))
    return lines
