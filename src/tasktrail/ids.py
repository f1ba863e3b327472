"""Typed task identifiers.

Task IDs appear in three places: frontmatter (``id: task-12``), file names
(``task-12 - Fix login.md``) and as allocation results. They are parsed once
into a :class:`TaskId` and rendered back with ``str()``, keeping whatever zero
padding they were written with so ``task-06`` never silently becomes
``task-6``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

PREFIX = "task-"

# Anchored at the start: "task-12", "task-12.03", "task-12 - Title.md"
_ID_RE = re.compile(r"^task-(?P<num>\d+)(?:\.(?P<sub>\d+))?", re.IGNORECASE)


class TaskIdError(ValueError):
    """Raised when text cannot be interpreted as a task identifier."""


@dataclass(frozen=True)
class TaskId:
    """A root (``task-5``) or sub-task (``task-5.2``) identifier.

    Attributes:
        number: Root numeric value
        sub: Sub-task numeric value, None for root tasks
        width: Digits used to render ``number`` (zero padded)
        sub_width: Digits used to render ``sub`` (zero padded)
    """

    number: int
    sub: Optional[int] = None
    width: int = 0
    sub_width: int = 0

    @property
    def is_subtask(self) -> bool:
        return self.sub is not None

    @property
    def parent(self) -> Optional["TaskId"]:
        if self.sub is None:
            return None
        return TaskId(self.number, width=self.width)

    @classmethod
    def match(cls, text: str) -> Optional["TaskId"]:
        """Parse the leading identifier of ``text``; None when there is none."""
        m = _ID_RE.match(text.strip())
        if not m:
            return None
        num = m.group("num")
        sub = m.group("sub")
        return cls(
            number=int(num),
            sub=int(sub) if sub is not None else None,
            width=len(num),
            sub_width=len(sub) if sub is not None else 0,
        )

    @classmethod
    def parse(cls, text: str) -> "TaskId":
        """Parse ``task-<n>[.<m>]``; a bare number (``"5"``) is accepted too."""
        raw = text.strip()
        if raw and not raw.lower().startswith(PREFIX):
            raw = PREFIX + raw
        task_id = cls.match(raw)
        if task_id is None:
            raise TaskIdError(f"Not a task identifier: {text!r}")
        return task_id

    @classmethod
    def from_filename(cls, path: str) -> Optional["TaskId"]:
        """Extract the ID from the final path component of a record file."""
        name = path.rsplit("/", 1)[-1]
        return cls.match(name)

    def with_sub(self, sub: int, *, sub_width: int = 0) -> "TaskId":
        return TaskId(self.number, sub=sub, width=self.width, sub_width=sub_width)

    def __str__(self) -> str:
        text = f"{PREFIX}{str(self.number).zfill(self.width)}"
        if self.sub is not None:
            text += f".{str(self.sub).zfill(self.sub_width)}"
        return text
