from __future__ import annotations

from typing import Sequence

from tasktrail.models import ResolutionStrategy, Task


def status_rank(status: str, statuses: Sequence[str]) -> int:
    """Position of ``status`` in the vocabulary; unknown statuses rank 0."""
    try:
        return list(statuses).index(status)
    except ValueError:
        return 0


def resolve_task_conflict(
    existing: Task,
    incoming: Task,
    statuses: Sequence[str],
    strategy: ResolutionStrategy = "most_progressed",
) -> Task:
    """Choose between two copies of the same task.

    most_recent: the later effective timestamp wins, ties keep ``existing``.
    When either copy has no timestamp the decision falls through to
    most_progressed.

    most_progressed: the higher status rank wins. Equal ranks are settled by
    timestamp (ties keep ``existing``); without timestamps ``existing`` wins.
    """
    existing_ts = existing.effective_timestamp
    incoming_ts = incoming.effective_timestamp

    if strategy == "most_recent" and existing_ts and incoming_ts:
        return existing if existing_ts >= incoming_ts else incoming

    current_rank = status_rank(existing.status, statuses)
    new_rank = status_rank(incoming.status, statuses)

    if new_rank > current_rank:
        return incoming

    if new_rank == current_rank and existing_ts and incoming_ts:
        return existing if existing_ts >= incoming_ts else incoming

    return existing
