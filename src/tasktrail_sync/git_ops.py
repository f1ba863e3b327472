"""Read-only git access for branch surveys.

GitOperations wraps a GitPython ``Repo`` and exposes exactly the queries the
reconciliation stages need: branch listings, snapshot file listings, one-pass
last-modified maps and content retrieval. Absent branches, refs and
directories are reported as empty results rather than errors.

All commands go through ``Git.execute`` with an explicit argument list so a
single instance can be shared by concurrent workers.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from tasktrail.config_schema import TasktrailConfig

from .observability import log_debug

NETWORK_ERROR_PATTERNS = (
    "could not resolve host",
    "connection refused",
    "network is unreachable",
    "timeout",
    "timed out",
    "no route to host",
    "temporary failure in name resolution",
    "could not read from remote repository",
)

# Separates commits in `git log` output
_RECORD_SEP = "\x1e"


class GitAccessError(Exception):
    """Unexpected git failure while reading repository state."""


class GitPort(Protocol):
    """What the reconciliation stages need from version control."""

    def fetch(self) -> None: ...

    def current_branch(self) -> Optional[str]: ...

    def list_local_branches(self) -> List[str]: ...

    def list_recent_branches(self, days: int) -> List[str]: ...

    def list_recent_remote_branches(self, days: int) -> List[str]: ...

    def list_all_branches(self) -> List[str]: ...

    def list_files_in_tree(self, ref: str, path: str) -> List[str]: ...

    def show_file(self, ref: str, path: str) -> str: ...

    def branch_last_modified_map(
        self, ref: str, path: str, since_days: Optional[int] = None
    ) -> Dict[str, datetime]: ...


def is_network_error(message: str) -> bool:
    lowered = message.lower()
    return any(pattern in lowered for pattern in NETWORK_ERROR_PATTERNS)


def _lines(output: str) -> List[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


class GitOperations:
    """Version-control access port backed by GitPython."""

    def __init__(
        self,
        repo_path: Path,
        *,
        remote: str = "origin",
        remote_operations: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self.repo_path = Path(repo_path)
        self.remote = remote
        self.remote_operations = remote_operations
        self._logger = logger
        try:
            self._repo = Repo(self.repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise GitAccessError(f"Not a git repository: {self.repo_path}") from e

    @classmethod
    def from_config(
        cls,
        repo_path: Path,
        config: TasktrailConfig,
        logger: Optional[logging.Logger] = None,
    ) -> "GitOperations":
        return cls(
            repo_path,
            remote=config.git.remote,
            remote_operations=config.git.remote_operations,
            logger=logger,
        )

    def _run(self, *args: str) -> str:
        return self._repo.git.execute(["git", "-c", "core.quotepath=off", *args])

    def _is_head(self, name: str) -> bool:
        # refs/remotes/<remote>/HEAD shortens to "<remote>" on recent git
        return name == "HEAD" or name.endswith("/HEAD") or name == self.remote

    def _has_remote(self) -> bool:
        return any(r.name == self.remote for r in self._repo.remotes)

    # Remote refs

    def fetch(self) -> None:
        """Fetch the configured remote.

        No-op when remote operations are disabled or the remote does not
        exist. Network failures are logged at debug level and swallowed;
        anything else raises GitAccessError.
        """
        if not self.remote_operations:
            log_debug("Remote operations disabled; skipping fetch", logger=self._logger)
            return
        if not self._has_remote():
            log_debug("No such remote; skipping fetch", logger=self._logger, remote=self.remote)
            return
        try:
            self._run("fetch", self.remote)
        except GitCommandError as e:
            if is_network_error(str(e)):
                log_debug("Fetch failed (network)", logger=self._logger, remote=self.remote, error=str(e))
                return
            raise GitAccessError(f"git fetch {self.remote} failed: {e}") from e

    # Branches

    def current_branch(self) -> Optional[str]:
        try:
            name = self._run("branch", "--show-current").strip()
        except GitCommandError:
            return None
        return name or None

    def list_local_branches(self) -> List[str]:
        try:
            out = self._run("branch", "--format=%(refname:short)")
            return [b for b in _lines(out) if not self._is_head(b) and not b.startswith("(")]
        except GitCommandError:
            return []

    def _branches_since(self, refs: List[str], days: int) -> List[str]:
        since = time.time() - days * 86400
        out = self._run("for-each-ref", "--format=%(refname:short)|%(committerdate:unix)", *refs)
        branches: List[str] = []
        for line in _lines(out):
            name, _, stamp = line.partition("|")
            if not name or not stamp or self._is_head(name):
                continue
            try:
                committed = int(stamp)
            except ValueError:
                continue
            if committed >= since and name not in branches:
                branches.append(name)
        return branches

    def list_recent_branches(self, days: int) -> List[str]:
        """Local branches, plus ``<remote>/<name>`` refs when remote
        operations are enabled, with a commit in the last ``days`` days.

        Remote refs keep their prefix so local and remote copies stay
        distinguishable.
        """
        refs = ["refs/heads"]
        if self.remote_operations:
            refs.append(f"refs/remotes/{self.remote}")
        try:
            return self._branches_since(refs, days)
        except GitCommandError as e:
            log_debug("for-each-ref failed; falling back to all branches", logger=self._logger, error=str(e))
            return self.list_all_branches()

    def list_recent_remote_branches(self, days: int) -> List[str]:
        """Remote branch names (prefix stripped) with a commit in the last ``days`` days."""
        if not self.remote_operations:
            return []
        prefix = f"{self.remote}/"
        try:
            names = self._branches_since([f"refs/remotes/{self.remote}"], days)
        except GitCommandError:
            return []
        return [n[len(prefix):] for n in names if n.startswith(prefix)]

    def list_all_branches(self) -> List[str]:
        args = ["branch", "--format=%(refname:short)"]
        if self.remote_operations:
            args.insert(1, "-a")
        try:
            return [b for b in _lines(self._run(*args)) if not self._is_head(b) and not b.startswith("(")]
        except GitCommandError:
            return []

    # Snapshots

    def list_files_in_tree(self, ref: str, path: str) -> List[str]:
        """Files under ``path`` at ``ref``; empty if either does not exist."""
        try:
            return _lines(self._run("ls-tree", "-r", "--name-only", ref, "--", path))
        except GitCommandError as e:
            log_debug("ls-tree found nothing", logger=self._logger, ref=ref, path=path, error=str(e))
            return []

    def show_file(self, ref: str, path: str) -> str:
        try:
            return self._run("show", f"{ref}:{path}")
        except GitCommandError as e:
            raise GitAccessError(f"Cannot read {ref}:{path}: {e}") from e

    def branch_last_modified_map(
        self,
        ref: str,
        path: str,
        since_days: Optional[int] = None,
    ) -> Dict[str, datetime]:
        """Map every file under ``path`` at ``ref`` to its latest commit time.

        One ``git log --name-only`` traversal covers the whole directory.
        With ``since_days`` only commits inside that window are considered,
        so files untouched in the window are absent from the map.
        """
        args = ["log", f"--format={_RECORD_SEP}%ct", "--name-only"]
        if since_days:
            args.append(f"--since={since_days}.days.ago")
        args += [ref, "--", path]
        try:
            out = self._run(*args)
        except GitCommandError as e:
            log_debug("git log found nothing", logger=self._logger, ref=ref, path=path, error=str(e))
            return {}

        result: Dict[str, datetime] = {}
        for record in out.split(_RECORD_SEP):
            lines = _lines(record)
            if not lines:
                continue
            try:
                when = datetime.fromtimestamp(int(lines[0]), tz=timezone.utc)
            except ValueError:
                continue
            for name in lines[1:]:
                if name not in result or when > result[name]:
                    result[name] = when
        return result
