from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Tuple

TaskSource = Literal["local", "remote", "completed"]
ResolutionStrategy = Literal["most_recent", "most_progressed"]

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


class DirectoryType(str, Enum):
    """Directory category a task record lives in."""

    TASK = "task"  # <backlog>/tasks
    DRAFT = "draft"  # <backlog>/drafts
    ARCHIVED = "archived"  # <backlog>/archive/tasks
    COMPLETED = "completed"  # <backlog>/completed


# (sub-path under the backlog dir, category), in scan order
DIRECTORY_LAYOUT: Tuple[Tuple[str, DirectoryType], ...] = (
    ("tasks", DirectoryType.TASK),
    ("drafts", DirectoryType.DRAFT),
    ("archive/tasks", DirectoryType.ARCHIVED),
    ("completed", DirectoryType.COMPLETED),
)


@dataclass(frozen=True)
class Task:
    """A single task record.

    ``source`` and ``origin_branch`` describe where this copy came from and are
    fixed at construction; use ``dataclasses.replace`` to derive a retagged copy.
    ``last_modified`` is the storage-level marker (file mtime locally, commit
    time remotely) used when the record carries no ``updated_date``.
    """

    id: str
    title: str = ""
    status: str = ""
    created_date: Optional[datetime] = None
    updated_date: Optional[datetime] = None
    source: TaskSource = "local"
    origin_branch: Optional[str] = None
    last_modified: Optional[datetime] = None
    assignee: Tuple[str, ...] = ()
    labels: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    priority: Optional[str] = None
    parent_task_id: Optional[str] = None
    body: str = ""

    @property
    def effective_timestamp(self) -> Optional[datetime]:
        return self.updated_date or self.last_modified


@dataclass(frozen=True)
class RemoteIndexEntry:
    """One task file seen on one branch, known only by location."""

    task_id: str
    branch: str
    path: str
    last_modified: datetime


@dataclass(frozen=True)
class WinnerCandidate:
    """The single location chosen for hydration of a task.

    ``last_modified`` is the commit time the index recorded for ``path``.
    """

    task_id: str
    ref: str
    path: str
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class TaskDirectoryInfo:
    """Most recent known location of a task across surveyed branches."""

    task_id: str
    type: DirectoryType
    last_modified: datetime
    branch: str
    path: str


@dataclass
class TaskStatistics:
    """Aggregate view over a reconciled task set."""

    status_counts: dict = field(default_factory=dict)
    priority_counts: dict = field(default_factory=dict)
    total_tasks: int = 0
    completed_tasks: int = 0
    completion_percentage: int = 0
    draft_count: int = 0
    recently_created: List[Task] = field(default_factory=list)
    recently_updated: List[Task] = field(default_factory=list)
    average_task_age: int = 0
    stale_tasks: List[Task] = field(default_factory=list)
    blocked_tasks: List[Task] = field(default_factory=list)
