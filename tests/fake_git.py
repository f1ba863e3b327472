"""In-memory stand-in for GitOperations."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set, Tuple


BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def ts(day: int) -> datetime:
    """A fixed UTC timestamp ``day`` days after 2024-01-01."""
    return BASE + timedelta(days=day)


class FakeGit:
    """Branch snapshots held in dicts; every call is recorded.

    ``trees`` maps ref -> {path: (content, last_modified)}.
    Refs in ``broken`` raise RuntimeError from every snapshot query.
    """

    def __init__(
        self,
        trees: Optional[Dict[str, Dict[str, Tuple[str, datetime]]]] = None,
        *,
        current: Optional[str] = "main",
        recent: Optional[List[str]] = None,
        recent_remote: Optional[List[str]] = None,
        all_branches: Optional[List[str]] = None,
        broken: Optional[Set[str]] = None,
        fail_everything: bool = False,
    ):
        self.trees = trees or {}
        self.current = current
        self.recent = recent if recent is not None else list(self.trees)
        self.recent_remote = recent_remote or []
        self.all_branches = all_branches if all_branches is not None else list(self.trees)
        self.broken = broken or set()
        self.fail_everything = fail_everything
        self.calls: List[Tuple[str, tuple]] = []
        self._lock = threading.Lock()

    def _record(self, name: str, *args) -> None:
        with self._lock:
            self.calls.append((name, args))
        if self.fail_everything:
            raise RuntimeError(f"{name} failed")

    def calls_for(self, name: str) -> List[tuple]:
        return [args for n, args in self.calls if n == name]

    def _check(self, ref: str) -> Dict[str, Tuple[str, datetime]]:
        if ref in self.broken:
            raise RuntimeError(f"cannot read {ref}")
        return self.trees.get(ref, {})

    def fetch(self) -> None:
        self._record("fetch")

    def current_branch(self) -> Optional[str]:
        self._record("current_branch")
        return self.current

    def list_local_branches(self) -> List[str]:
        self._record("list_local_branches")
        return [b for b in self.trees if "/" not in b]

    def list_recent_branches(self, days: int) -> List[str]:
        self._record("list_recent_branches", days)
        return list(self.recent)

    def list_recent_remote_branches(self, days: int) -> List[str]:
        self._record("list_recent_remote_branches", days)
        return list(self.recent_remote)

    def list_all_branches(self) -> List[str]:
        self._record("list_all_branches")
        return list(self.all_branches)

    def list_files_in_tree(self, ref: str, path: str) -> List[str]:
        self._record("list_files_in_tree", ref, path)
        prefix = path.rstrip("/") + "/"
        return sorted(p for p in self._check(ref) if p.startswith(prefix))

    def show_file(self, ref: str, path: str) -> str:
        self._record("show_file", ref, path)
        tree = self._check(ref)
        if path not in tree:
            raise RuntimeError(f"no such file {ref}:{path}")
        return tree[path][0]

    def branch_last_modified_map(
        self, ref: str, path: str, since_days: Optional[int] = None
    ) -> Dict[str, datetime]:
        self._record("branch_last_modified_map", ref, path, since_days)
        prefix = path.rstrip("/") + "/"
        return {p: when for p, (_, when) in self._check(ref).items() if p.startswith(prefix)}
