"""Remote task loading and merging with local records."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from tasktrail.config_schema import TasktrailConfig
from tasktrail.models import ResolutionStrategy, Task

from .conflict import resolve_task_conflict
from .git_ops import GitPort
from .observability import log_error, timeit
from .task_loader import build_remote_task_index, choose_winners, hydrate_tasks, newest_of_each

ProgressCallback = Callable[[str], None]


def get_task_loading_message(config: Optional[TasktrailConfig]) -> str:
    if config is not None and not config.git.remote_operations:
        return "Loading tasks from local branches..."
    return "Loading tasks from local and remote branches..."


def _notify(on_progress: Optional[ProgressCallback], message: str) -> None:
    if on_progress is not None:
        on_progress(message)


def load_remote_tasks(
    git: GitPort,
    config: Optional[TasktrailConfig] = None,
    local_tasks: Optional[Sequence[Task]] = None,
    on_progress: Optional[ProgressCallback] = None,
    logger: Optional[logging.Logger] = None,
) -> List[Task]:
    """Load the remote copies of tasks that could change the merged view.

    Only recently active remote branches are indexed. With local tasks the
    winner selector decides what to hydrate; without them the newest copy of
    every remote task is hydrated. Any failure yields an empty list so
    callers can carry on with local data.
    """
    config = config or TasktrailConfig.default()
    remote = config.git.remote
    try:
        if not config.git.remote_operations:
            _notify(on_progress, "Remote operations disabled - skipping remote tasks")
            return []

        with timeit("load_remote_tasks", logger=logger, remote=remote) as info:
            _notify(on_progress, "Fetching remote branches...")
            git.fetch()

            days = config.git.active_branch_days
            branches = git.list_recent_remote_branches(days)
            if not branches:
                _notify(on_progress, "No recent remote branches found")
                info["loaded"] = 0
                return []

            _notify(on_progress, f"Indexing {len(branches)} recent remote branches (last {days} days)...")
            index = build_remote_task_index(
                git,
                branches,
                config.tasks.backlog_dir,
                days,
                remote=remote,
                workers=config.concurrency.index_workers,
                logger=logger,
            )
            if not index:
                _notify(on_progress, "No remote tasks found")
                info["loaded"] = 0
                return []

            _notify(on_progress, f"Found {len(index)} unique tasks across remote branches")

            if local_tasks:
                local_by_id = {t.id: t for t in local_tasks}
                winners = choose_winners(
                    local_by_id, index, config.tasks.resolution_strategy, remote=remote
                )
                _notify(on_progress, f"Hydrating {len(winners)} remote candidates...")
            else:
                winners = newest_of_each(index, remote=remote)
                _notify(on_progress, f"Hydrating {len(winners)} remote tasks...")

            tasks = hydrate_tasks(
                git,
                winners,
                remote=remote,
                workers=config.concurrency.hydrate_workers,
                logger=logger,
            )
            info.update(branches=len(branches), indexed=len(index), loaded=len(tasks))

        _notify(on_progress, f"Loaded {len(tasks)} remote tasks")
        return tasks
    except Exception as e:
        log_error("Failed to fetch remote tasks", logger=logger, error=str(e))
        return []


def merge_tasks(
    local: Iterable[Task],
    completed: Iterable[Task],
    remote: Iterable[Task],
    statuses: Sequence[str],
    strategy: ResolutionStrategy = "most_progressed",
) -> Dict[str, Task]:
    """Merge task sets into one record per ID.

    Local tasks go in first. Completed tasks only fill IDs not yet present.
    Remote tasks pass through the conflict policy against whatever is there.
    """
    merged: Dict[str, Task] = {}
    for task in local:
        merged[task.id] = task
    for task in completed:
        merged.setdefault(task.id, task)
    for task in remote:
        existing = merged.get(task.id)
        merged[task.id] = (
            task if existing is None else resolve_task_conflict(existing, task, statuses, strategy)
        )
    return merged
