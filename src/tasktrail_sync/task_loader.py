"""Index-first, hydrate-later loading of task records from branches.

Surveying many branches by reading every record would cost one ``git show``
per file per branch. Instead:

1. ``build_remote_task_index`` lists record files and their last commit time
   per branch (two git calls per branch, no content).
2. ``choose_winners`` compares that index with the local records and picks
   at most one location per task that could change the merged result.
3. ``hydrate_tasks`` fetches and parses only those winners.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from tasktrail.ids import TaskId
from tasktrail.models import EPOCH, RemoteIndexEntry, ResolutionStrategy, Task, WinnerCandidate
from tasktrail.parser import parse_task

from .git_ops import GitPort
from .observability import log_debug, log_warning
from .pool import drain_queue

DEFAULT_INDEX_WORKERS = 4
DEFAULT_HYDRATE_WORKERS = 8


def remote_ref(branch: str, remote: Optional[str]) -> str:
    return f"{remote}/{branch}" if remote else branch


def branch_from_ref(ref: str, remote: Optional[str]) -> str:
    prefix = f"{remote}/" if remote else ""
    return ref[len(prefix):] if prefix and ref.startswith(prefix) else ref


def _candidate(entry: RemoteIndexEntry, remote: Optional[str]) -> WinnerCandidate:
    return WinnerCandidate(entry.task_id, remote_ref(entry.branch, remote), entry.path, entry.last_modified)


def _newest(entries: Iterable[RemoteIndexEntry]) -> RemoteIndexEntry:
    """Entry with the latest timestamp; the first one wins ties."""
    best: Optional[RemoteIndexEntry] = None
    for entry in entries:
        if best is None or entry.last_modified > best.last_modified:
            best = entry
    if best is None:
        raise ValueError("no entries")
    return best


def build_remote_task_index(
    git: GitPort,
    branches: Sequence[str],
    backlog_dir: str = "backlog",
    since_days: Optional[int] = None,
    *,
    remote: Optional[str] = "origin",
    workers: int = DEFAULT_INDEX_WORKERS,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, List[RemoteIndexEntry]]:
    """Catalogue task record locations across ``branches`` without reading them.

    Each branch is read at ``<remote>/<branch>``. Files absent from the
    (possibly windowed) last-modified map get the epoch as timestamp. A branch
    that lacks the tasks directory or fails for any reason is skipped.

    Returns:
        task ID -> entries, one per branch holding that task, in the order
        the branches were given
    """
    tasks_path = f"{backlog_dir}/tasks"

    def index_branch(branch: str) -> Optional[List[RemoteIndexEntry]]:
        ref = remote_ref(branch, remote)
        try:
            files = git.list_files_in_tree(ref, tasks_path)
            if not files:
                return None
            modified = git.branch_last_modified_map(ref, tasks_path, since_days)
            entries: List[RemoteIndexEntry] = []
            for path in files:
                task_id = TaskId.from_filename(path)
                if task_id is None:
                    continue
                entries.append(
                    RemoteIndexEntry(
                        task_id=str(task_id),
                        branch=branch,
                        path=path,
                        last_modified=modified.get(path, EPOCH),
                    )
                )
            return entries
        except Exception as e:
            log_debug("Skipping branch", logger=logger, branch=branch, error=str(e))
            return None

    per_branch = drain_queue(branches, index_branch, workers=workers, name="tasktrail-index")

    order = {branch: pos for pos, branch in enumerate(branches)}
    collected = sorted(
        (entry for entries in per_branch for entry in entries),
        key=lambda e: (order.get(e.branch, len(order)), e.path),
    )

    index: Dict[str, List[RemoteIndexEntry]] = {}
    for entry in collected:
        index.setdefault(entry.task_id, []).append(entry)
    return index


def choose_winners(
    local_by_id: Mapping[str, Task],
    remote_index: Mapping[str, Sequence[RemoteIndexEntry]],
    strategy: ResolutionStrategy = "most_progressed",
    *,
    remote: Optional[str] = "origin",
) -> List[WinnerCandidate]:
    """Pick at most one remote location per task worth hydrating.

    - Not present locally: the newest remote copy.
    - most_recent: the newest remote copy, only if it is strictly newer than
      the local record.
    - most_progressed: skip unless some remote copy is newer than the local
      record; otherwise hydrate only the newest. Status comparison happens
      after hydration, in the conflict policy.
    """
    winners: List[WinnerCandidate] = []

    for task_id, entries in remote_index.items():
        if not entries:
            continue
        newest = _newest(entries)
        local = local_by_id.get(task_id)

        if local is None:
            winners.append(_candidate(newest, remote))
            continue

        local_ts = local.effective_timestamp or EPOCH

        if strategy == "most_recent":
            if newest.last_modified > local_ts:
                winners.append(_candidate(newest, remote))
            continue

        # most_progressed: cheap timestamp pre-filter before any fetch
        maybe_newer = any(e.last_modified > local_ts for e in entries)
        if maybe_newer:
            winners.append(_candidate(newest, remote))

    return winners


def newest_of_each(
    remote_index: Mapping[str, Sequence[RemoteIndexEntry]],
    *,
    remote: Optional[str] = "origin",
) -> List[WinnerCandidate]:
    """One candidate per task: its newest remote copy."""
    return choose_winners({}, remote_index, remote=remote)


def hydrate_tasks(
    git: GitPort,
    winners: Sequence[WinnerCandidate],
    *,
    remote: Optional[str] = "origin",
    workers: int = DEFAULT_HYDRATE_WORKERS,
    logger: Optional[logging.Logger] = None,
) -> List[Task]:
    """Fetch and parse the winning records.

    Tasks come back with ``source="remote"``, ``origin_branch`` set to the
    branch name without the remote prefix and ``last_modified`` taken from
    the candidate. A candidate that cannot be read or parsed is logged and
    dropped.
    """

    def hydrate(winner: WinnerCandidate) -> Optional[Task]:
        try:
            content = git.show_file(winner.ref, winner.path)
        except Exception as e:
            log_warning(
                "Failed to hydrate task",
                logger=logger,
                task=winner.task_id,
                ref=winner.ref,
                path=winner.path,
                error=str(e),
            )
            return None
        task = parse_task(
            content,
            source="remote",
            origin_branch=branch_from_ref(winner.ref, remote),
            last_modified=winner.last_modified,
        )
        if task is None:
            log_warning("Unparseable task record", logger=logger, ref=winner.ref, path=winner.path)
        return task

    return drain_queue(winners, hydrate, workers=workers, name="tasktrail-hydrate")
