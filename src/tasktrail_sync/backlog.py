"""High-level entry point tying configuration, storage and git together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from tasktrail.config_loader import get_config
from tasktrail.config_schema import TasktrailConfig
from tasktrail.fs import LocalBacklog
from tasktrail.ids import TaskId
from tasktrail.models import Task, TaskStatistics
from tasktrail.statistics import get_task_statistics

from .cross_branch import filter_tasks_by_latest_state, get_latest_task_states_for_ids
from .git_ops import GitAccessError, GitOperations, GitPort
from .id_allocator import generate_next_id
from .observability import configure_logging, log_warning, timeit
from .remote_tasks import load_remote_tasks, merge_tasks


def _sort_key(task: Task) -> Tuple[int, int, int, str]:
    task_id = TaskId.match(task.id)
    if task_id is None:
        return (1, 0, 0, task.id)
    return (0, task_id.number, task_id.sub or 0, task.id)


class Backlog:
    """Reconciled view of the task records in one repository.

    Example:
        >>> backlog = Backlog(Path("."))
        >>> tasks = backlog.load_tasks()
        >>> backlog.next_id()
        'task-13'
    """

    def __init__(
        self,
        root: Path,
        config: Optional[TasktrailConfig] = None,
        git: Optional[GitPort] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.root = Path(root)
        self.config = config or get_config(self.root)
        self.logger = logger or configure_logging(self.config.logging)
        self.local = LocalBacklog(self.root, self.config.tasks.backlog_dir)

        if git is None:
            try:
                git = GitOperations.from_config(self.root, self.config, logger=self.logger)
            except GitAccessError as e:
                log_warning("Git unavailable; using local records only", logger=self.logger, error=str(e))
        self.git = git

    def load_tasks(self, on_progress: Optional[Callable[[str], None]] = None) -> List[Task]:
        """Local, completed and remote tasks merged into one record per ID.

        When ``git.check_active_branches`` is set, tasks whose newest copy on
        any branch sits in drafts or the archive are left out.
        """
        config = self.config
        with timeit("load_tasks", logger=self.logger) as info:
            local = self.local.list_tasks()
            completed = self.local.list_completed()

            remote: List[Task] = []
            if self.git is not None:
                remote = load_remote_tasks(
                    self.git, config, local_tasks=local, on_progress=on_progress, logger=self.logger
                )

            merged = merge_tasks(
                local,
                completed,
                remote,
                config.tasks.statuses,
                config.tasks.resolution_strategy,
            )
            tasks = list(merged.values())

            if self.git is not None and config.git.check_active_branches and tasks:
                latest = get_latest_task_states_for_ids(
                    self.git,
                    [t.id for t in tasks],
                    on_progress,
                    days_ago=config.git.active_branch_days,
                    backlog_dir=config.tasks.backlog_dir,
                    batch_size=config.concurrency.branch_batch_size,
                    remote=config.git.remote,
                    logger=self.logger,
                )
                tasks = filter_tasks_by_latest_state(tasks, latest)

            info.update(local=len(local), completed=len(completed), remote=len(remote), total=len(tasks))

        return sorted(tasks, key=_sort_key)

    def next_id(self, parent: Optional[str] = None) -> str:
        return generate_next_id(
            self.local.list_task_ids(),
            self.git,
            self.config,
            parent=parent,
            logger=self.logger,
        )

    def statistics(self, tasks: Optional[List[Task]] = None) -> TaskStatistics:
        if tasks is None:
            tasks = self.load_tasks()
        return get_task_statistics(
            tasks,
            self.local.list_drafts(),
            self.config.tasks.statuses,
            done_status=self.config.tasks.statuses[-1],
        )
