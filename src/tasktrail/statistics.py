from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from .models import Task, TaskStatistics

PRIORITIES = ("high", "medium", "low", "none")
TOP_N = 5
STALE_AFTER = timedelta(days=30)
RECENT_WINDOW = timedelta(days=7)


def get_task_statistics(
    tasks: Sequence[Task],
    drafts: Iterable[Task],
    statuses: Sequence[str],
    *,
    done_status: str = "Done",
    now: Optional[datetime] = None,
) -> TaskStatistics:
    """Summarize a reconciled task set.

    Tasks with an empty status are ignored. Age is creation-to-completion for
    done tasks (when ``updated_date`` is known) and creation-to-now otherwise.
    A task is stale when not done and untouched for 30 days, and blocked when
    any dependency present in ``tasks`` is not done.
    """
    now = now or datetime.now(timezone.utc)
    week_ago = now - RECENT_WINDOW
    month_ago = now - STALE_AFTER

    status_counts: Dict[str, int] = {s: 0 for s in statuses}
    priority_counts: Dict[str, int] = {p: 0 for p in PRIORITIES}
    by_id = {t.id: t for t in tasks}

    completed = 0
    total_age = 0
    aged = 0
    created: List[Task] = []
    updated: List[Task] = []
    stale: List[Task] = []
    blocked: List[Task] = []

    for task in tasks:
        if not task.status:
            continue
        status_counts[task.status] = status_counts.get(task.status, 0) + 1
        is_done = task.status == done_status
        if is_done:
            completed += 1

        priority = task.priority or "none"
        priority_counts[priority] = priority_counts.get(priority, 0) + 1

        if task.created_date:
            if task.created_date >= week_ago:
                created.append(task)
            end = task.updated_date if (is_done and task.updated_date) else now
            total_age += (end - task.created_date).days
            aged += 1

        if task.updated_date and task.updated_date >= week_ago:
            updated.append(task)

        if not is_done:
            last = task.updated_date or task.created_date
            if last and last < month_ago:
                stale.append(task)
            if any(
                dep in by_id and by_id[dep].status != done_status
                for dep in task.dependencies
            ):
                blocked.append(task)

    created.sort(key=lambda t: t.created_date, reverse=True)
    updated.sort(key=lambda t: t.updated_date, reverse=True)

    total = sum(status_counts.values())
    return TaskStatistics(
        status_counts=status_counts,
        priority_counts=priority_counts,
        total_tasks=total,
        completed_tasks=completed,
        completion_percentage=round(completed * 100 / total) if total else 0,
        draft_count=len(list(drafts)),
        recently_created=created[:TOP_N],
        recently_updated=updated[:TOP_N],
        average_task_age=round(total_age / aged) if aged else 0,
        stale_tasks=stale[:TOP_N],
        blocked_tasks=blocked[:TOP_N],
    )
