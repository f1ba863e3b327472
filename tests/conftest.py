from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from git import Repo

_SRC = Path(__file__).resolve().parents[1] / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

# Keep test runs from writing session logs under ~/.tasktrail
os.environ.setdefault("TASKTRAIL_LOG_DISABLE_FILE", "1")

from repo_helpers import commit, days_ago, init_repo  # noqa: E402


def pytest_sessionstart(session):  # type: ignore[override]
    os.environ.setdefault("PYTHONPATH", str(_SRC))


@pytest.fixture
def repo(tmp_path: Path) -> Repo:
    """Local-only repository with one commit on ``main``."""
    r = init_repo(tmp_path / "repo")
    commit(r, "Initial commit", write={"README.md": "# Repo\n"}, when=days_ago(3))
    return r


@pytest.fixture
def remote_setup(tmp_path: Path):
    """A bare ``origin`` plus an author clone used to push branches.

    Returns (origin_path, author_repo). Clone ``origin_path`` to get a
    repository with ``origin/*`` refs.
    """
    origin_path = tmp_path / "origin.git"
    origin = Repo.init(origin_path, bare=True)
    origin.git.symbolic_ref("HEAD", "refs/heads/main")

    author = init_repo(tmp_path / "author")
    author.create_remote("origin", str(origin_path))
    commit(author, "Initial commit", write={"README.md": "# Repo\n"}, when=days_ago(5))
    author.git.push("origin", "main")
    return origin_path, author
