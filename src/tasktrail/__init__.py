"""tasktrail: git-backed task records reconciled across branches."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("tasktrail")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"  # Fallback for editable installs without metadata

from .ids import TaskId, TaskIdError  # noqa: F401
from .models import Task  # noqa: F401
from .parser import parse_task  # noqa: F401

__all__ = [
    "Task",
    "TaskId",
    "TaskIdError",
    "parse_task",
    "__version__",
]
