"""Reading task records from the working tree.

Only the read side lives here; creating, moving and committing records is
owned by whatever tool writes the backlog.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import List

from .ids import TaskId
from .models import Task, TaskSource
from .parser import parse_task


def read(p: Path) -> str:
    return p.read_text(encoding="utf-8")


def _mtime(p: Path) -> datetime:
    return datetime.fromtimestamp(p.stat().st_mtime, tz=timezone.utc)


def _record_files(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix == ".md" and TaskId.from_filename(p.name) is not None
    )


def _load_dir(directory: Path, source: TaskSource) -> List[Task]:
    tasks: List[Task] = []
    for p in _record_files(directory):
        try:
            text = read(p)
        except (OSError, UnicodeDecodeError):
            continue
        task = parse_task(text, source=source, last_modified=_mtime(p))
        if task is not None:
            tasks.append(task)
    return tasks


class LocalBacklog:
    """Task records checked out under ``<root>/<backlog_dir>``."""

    def __init__(self, root: Path, backlog_dir: str = "backlog"):
        self.root = Path(root)
        self.base = self.root / backlog_dir

    @property
    def tasks_dir(self) -> Path:
        return self.base / "tasks"

    @property
    def drafts_dir(self) -> Path:
        return self.base / "drafts"

    @property
    def completed_dir(self) -> Path:
        return self.base / "completed"

    def list_tasks(self) -> List[Task]:
        return _load_dir(self.tasks_dir, "local")

    def list_drafts(self) -> List[Task]:
        return _load_dir(self.drafts_dir, "local")

    def list_completed(self) -> List[Task]:
        return _load_dir(self.completed_dir, "completed")

    def list_task_ids(self) -> List[str]:
        """IDs of active tasks and drafts, read from file names and records.

        File names are authoritative for allocation: a record whose
        frontmatter fails to parse still occupies its ID.
        """
        ids: List[str] = []
        for directory in (self.tasks_dir, self.drafts_dir):
            for p in _record_files(directory):
                task_id = TaskId.from_filename(p.name)
                if task_id is not None:
                    ids.append(str(task_id))
        for task in self.list_tasks() + self.list_drafts():
            if task.id not in ids:
                ids.append(task.id)
        return ids
