"""Latest directory state of tasks across branches.

A task record moves between directories over its life (``drafts`` ->
``tasks`` -> ``completed`` or ``archive/tasks``) and may do so on any branch.
The location with the newest commit wins and decides whether the task is
still shown.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from tasktrail.ids import TaskId
from tasktrail.models import DIRECTORY_LAYOUT, DirectoryType, Task, TaskDirectoryInfo

from .git_ops import GitPort
from .observability import log_debug, log_error
from .pool import drain_queue

DEFAULT_BATCH_SIZE = 5
PRIORITY_BRANCHES = ("main", "master")

VISIBLE_TYPES = (DirectoryType.TASK, DirectoryType.COMPLETED)


def _has_backlog(git: GitPort, branch: str, backlog_dir: str) -> bool:
    try:
        return bool(git.list_files_in_tree(branch, backlog_dir))
    except Exception:
        return False


class _LatestStates:
    """Thread-safe ``task ID -> TaskDirectoryInfo`` map keeping the newest."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.found: Dict[str, TaskDirectoryInfo] = {}

    def offer(self, info: TaskDirectoryInfo) -> None:
        with self._lock:
            current = self.found.get(info.task_id)
            if current is None or info.last_modified > current.last_modified:
                self.found[info.task_id] = info

    def __len__(self) -> int:
        return len(self.found)


def _scan_branch(
    git: GitPort,
    branch: str,
    wanted: Sequence[str],
    backlog_dir: str,
    states: _LatestStates,
    logger: Optional[logging.Logger],
) -> None:
    for sub_path, dir_type in DIRECTORY_LAYOUT:
        path = f"{backlog_dir}/{sub_path}"
        try:
            files = git.list_files_in_tree(branch, path)
            if not files:
                continue
            modified = git.branch_last_modified_map(branch, path)

            by_id: Dict[str, str] = {}
            for f in files:
                task_id = TaskId.from_filename(f)
                if task_id is not None:
                    by_id[str(task_id)] = f

            for task_id in wanted:
                task_file = by_id.get(task_id)
                if task_file is None:
                    continue
                when = modified.get(task_file)
                if when is None:
                    continue
                states.offer(
                    TaskDirectoryInfo(
                        task_id=task_id,
                        type=dir_type,
                        last_modified=when,
                        branch=branch,
                        path=task_file,
                    )
                )
        except Exception as e:
            log_debug("Skipping directory", logger=logger, branch=branch, path=path, error=str(e))


def get_latest_task_states_for_ids(
    git: GitPort,
    task_ids: Sequence[str],
    on_progress: Optional[Callable[[str], None]] = None,
    *,
    recent_branches_only: bool = True,
    days_ago: int = 9999,
    backlog_dir: str = "backlog",
    batch_size: int = DEFAULT_BATCH_SIZE,
    remote: str = "origin",
    logger: Optional[logging.Logger] = None,
) -> Dict[str, TaskDirectoryInfo]:
    """Find the most recently modified location of each requested task.

    The current branch, ``main`` and ``master`` are scanned first; if every
    ID is resolved there, no other branch is touched. The rest are scanned
    ``batch_size`` branches at a time, each batch looking only for IDs still
    unresolved when it started.

    Returns:
        task ID -> latest known location; IDs never seen are absent
    """
    states = _LatestStates()
    if not task_ids:
        return states.found

    def progress(message: str) -> None:
        if on_progress is not None:
            on_progress(message)

    wanted = list(dict.fromkeys(task_ids))

    try:
        branches = git.list_recent_branches(days_ago) if recent_branches_only else git.list_all_branches()
        if not branches:
            return states.found

        branches = [b for b in branches if _has_backlog(git, b, backlog_dir)]

        remote_count = sum(1 for b in branches if b.startswith(f"{remote}/"))
        local_count = len(branches) - remote_count
        window = f"from {days_ago} days, " if recent_branches_only else ""
        progress(
            f"Checking {len(wanted)} tasks across {len(branches)} branches with backlog "
            f"({window}{local_count} local, {remote_count} remote)..."
        )

        priority: List[str] = list(PRIORITY_BRANCHES)
        current = git.current_branch()
        if current and current not in priority:
            priority.insert(0, current)

        for branch in priority:
            if branch not in branches:
                continue
            branches = [b for b in branches if b != branch]
            _scan_branch(git, branch, wanted, backlog_dir, states, logger)

        if len(states) == len(wanted):
            progress(f"Found all {len(wanted)} tasks in priority branches")
            return states.found

        remaining = [t for t in wanted if t not in states.found]
        if branches:
            progress(f"Checking {len(remaining)} remaining tasks across {len(branches)} branches...")

        size = max(1, batch_size)
        for start in range(0, len(branches), size):
            batch = branches[start:start + size]
            unresolved = [t for t in wanted if t not in states.found]

            def scan(branch: str, unresolved: List[str] = unresolved) -> None:
                _scan_branch(git, branch, unresolved, backlog_dir, states, logger)

            drain_queue(batch, scan, workers=size, name="tasktrail-latest")

            if len(states) == len(wanted):
                break

        progress(f"Checked {len(wanted)} tasks")
    except Exception as e:
        log_error("Failed to get task directory locations", logger=logger, error=str(e))

    return states.found


def filter_tasks_by_latest_state(
    tasks: Iterable[Task],
    latest: Mapping[str, TaskDirectoryInfo],
) -> List[Task]:
    """Keep tasks whose latest location is ``task`` or ``completed``.

    Tasks with no known location are kept.
    """
    kept: List[Task] = []
    for task in tasks:
        info = latest.get(task.id)
        if info is None or info.type in VISIBLE_TYPES:
            kept.append(task)
    return kept
