"""Collision-free task ID allocation.

A new ID must not clash with any task that exists on any recent branch, not
just the checked-out one, so the allocator surveys branch snapshots the same
way the loaders do, reading file names only.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from tasktrail.config_schema import TasktrailConfig
from tasktrail.ids import TaskId

from .git_ops import GitPort
from .observability import log_debug
from .pool import drain_queue

SUBTASK_PAD_WIDTH = 2


def normalize_branches(branches: Iterable[str], remote: str = "origin") -> List[str]:
    """Expand ``<remote>/x`` to both ``<remote>/x`` and ``x``; drop duplicates and HEAD."""
    prefix = f"{remote}/"
    result: List[str] = []
    for branch in branches:
        names = [branch, branch[len(prefix):]] if branch.startswith(prefix) else [branch]
        for name in names:
            if name and "HEAD" not in name and name not in result:
                result.append(name)
    return result


def _collect_remote_ids(
    git: GitPort,
    config: TasktrailConfig,
    logger: Optional[logging.Logger],
) -> List[TaskId]:
    tasks_path = f"{config.tasks.backlog_dir}/tasks"
    git.fetch()
    branches = normalize_branches(
        git.list_recent_branches(config.git.active_branch_days), config.git.remote
    )

    def scan(branch: str) -> Optional[List[TaskId]]:
        try:
            files = git.list_files_in_tree(branch, tasks_path)
        except Exception as e:
            log_debug("Could not access branch", logger=logger, branch=branch, error=str(e))
            return None
        ids = [TaskId.from_filename(f) for f in files]
        return [i for i in ids if i is not None]

    per_branch = drain_queue(
        branches, scan, workers=config.concurrency.index_workers, name="tasktrail-ids"
    )
    return [task_id for ids in per_branch for task_id in ids]


def generate_next_id(
    local_ids: Iterable[str],
    git: Optional[GitPort],
    config: Optional[TasktrailConfig] = None,
    parent: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> str:
    """Next free root ID, or next free sub-task ID under ``parent``.

    Args:
        local_ids: IDs of local tasks and drafts
        git: Branch survey port; None restricts allocation to ``local_ids``
        config: Supplies remote settings and zero padding
        parent: Parent ID as ``"5"`` or ``"task-5"``

    Raises:
        TaskIdError: If ``parent`` is not a task identifier
    """
    config = config or TasktrailConfig.default()
    parent_id = TaskId.parse(parent) if parent is not None else None

    candidates: List[TaskId] = []
    for raw in local_ids:
        task_id = TaskId.match(raw)
        if task_id is not None:
            candidates.append(task_id)

    if git is not None and config.git.remote_operations:
        try:
            candidates.extend(_collect_remote_ids(git, config, logger))
        except Exception as e:
            log_debug("Could not fetch remote task IDs", logger=logger, error=str(e))
    else:
        log_debug("Remote operations disabled - generating ID from local tasks only", logger=logger)

    padding = config.tasks.zero_padded_ids

    if parent_id is not None:
        highest = max(
            (c.sub for c in candidates if c.sub is not None and c.number == parent_id.number),
            default=0,
        )
        sub_width = SUBTASK_PAD_WIDTH if padding > 0 else 0
        root = TaskId(parent_id.number, width=parent_id.width)
        return str(root.with_sub(highest + 1, sub_width=sub_width))

    highest = max((c.number for c in candidates), default=0)
    return str(TaskId(highest + 1, width=padding))
