"""tasktrail_sync - cross-branch reconciliation of task records

Surveys local and remote branches cheaply (file listings and commit times),
hydrates only the records that could change the merged view, and allocates
IDs that do not collide with any recently active branch.
"""

from .backlog import Backlog
from .conflict import resolve_task_conflict
from .cross_branch import filter_tasks_by_latest_state, get_latest_task_states_for_ids
from .git_ops import GitAccessError, GitOperations
from .id_allocator import generate_next_id
from .remote_tasks import get_task_loading_message, load_remote_tasks, merge_tasks
from .task_loader import build_remote_task_index, choose_winners, hydrate_tasks

__all__ = [
    "Backlog",
    "GitAccessError",
    "GitOperations",
    "build_remote_task_index",
    "choose_winners",
    "filter_tasks_by_latest_state",
    "generate_next_id",
    "get_latest_task_states_for_ids",
    "get_task_loading_message",
    "hydrate_tasks",
    "load_remote_tasks",
    "merge_tasks",
    "resolve_task_conflict",
]
