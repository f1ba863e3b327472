"""Parsing of task record files.

A record is Markdown with a YAML frontmatter block::

    ---
    id: task-12
    title: Fix login redirect
    status: In Progress
    created_date: '2025-06-01 09:30'
    updated_date: '2025-06-03 14:05'
    labels: [auth]
    ---

    ## Description
    ...

Parsing is per-file and never raises for bad input: malformed records come
back as ``None`` so callers can drop them and carry on.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional, Tuple

import yaml

from .models import Task, TaskSource

_FENCE = "---"


def parse_date(value: Any) -> Optional[datetime]:
    """Coerce a frontmatter date value to an aware UTC datetime.

    Accepts ``datetime``/``date`` objects (YAML may already have converted
    them) and ISO-like strings such as ``2025-06-01``, ``2025-06-01 09:30`` or
    ``2025-06-01T09:30:00Z``. Naive values are taken as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value if v is not None)
    return (str(value),)


def split_frontmatter(text: str) -> Optional[Tuple[str, str]]:
    """Return (frontmatter, body) or None when there is no fenced block."""
    lines = text.lstrip("\ufeff").splitlines()
    if not lines or lines[0].strip() != _FENCE:
        return None
    for idx in range(1, len(lines)):
        if lines[idx].strip() == _FENCE:
            front = "\n".join(lines[1:idx])
            body = "\n".join(lines[idx + 1:]).strip()
            return front, body
    return None


def parse_task(
    text: str,
    *,
    source: TaskSource = "local",
    origin_branch: Optional[str] = None,
    last_modified: Optional[datetime] = None,
) -> Optional[Task]:
    """Parse record text into a :class:`Task`, or None if it is malformed."""
    parts = split_frontmatter(text)
    if parts is None:
        return None
    front, body = parts
    try:
        data = yaml.safe_load(front) or {}
    except yaml.YAMLError:
        return None
    if not isinstance(data, dict):
        return None

    raw_id = data.get("id")
    if raw_id is None or str(raw_id).strip() == "":
        return None

    parent = data.get("parent_task_id") or data.get("parent")
    priority = data.get("priority")
    return Task(
        id=str(raw_id).strip(),
        title=str(data.get("title") or ""),
        status=str(data.get("status") or ""),
        created_date=parse_date(data.get("created_date")),
        updated_date=parse_date(data.get("updated_date")),
        source=source,
        origin_branch=origin_branch,
        last_modified=last_modified,
        assignee=_as_tuple(data.get("assignee")),
        labels=_as_tuple(data.get("labels")),
        dependencies=_as_tuple(data.get("dependencies")),
        priority=str(priority).lower() if priority else None,
        parent_task_id=str(parent) if parent else None,
        body=body,
    )
