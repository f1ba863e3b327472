"""Tests for cross-branch ID allocation."""

from __future__ import annotations

import pytest

from fake_git import FakeGit, ts

from tasktrail.config_schema import TasktrailConfig
from tasktrail.ids import TaskIdError
from tasktrail_sync.id_allocator import generate_next_id, normalize_branches

T = "backlog/tasks"


def _config(padding=0, remote_operations=True):
    return TasktrailConfig.model_validate(
        {"tasks": {"zero_padded_ids": padding}, "git": {"remote_operations": remote_operations}}
    )


def _files(*names):
    return {f"{T}/{name}.md": ("", ts(1)) for name in names}


class TestNormalizeBranches:
    def test_remote_refs_expanded(self):
        assert normalize_branches(["main", "origin/main", "origin/feature"]) == [
            "main",
            "origin/main",
            "origin/feature",
            "feature",
        ]

    def test_head_dropped(self):
        assert normalize_branches(["HEAD", "origin/HEAD", "main"]) == ["main"]

    def test_custom_remote(self):
        assert normalize_branches(["upstream/x"], remote="upstream") == ["upstream/x", "x"]


class TestLocalOnly:
    LOCAL = ["task-1", "task-2", "task-5", "task-5.1", "task-5.2"]

    def test_root(self):
        assert generate_next_id(self.LOCAL, None, _config()) == "task-6"

    def test_subtask(self):
        assert generate_next_id(self.LOCAL, None, _config(), parent="task-5") == "task-5.3"

    def test_subtask_bare_parent(self):
        assert generate_next_id(self.LOCAL, None, _config(), parent="5") == "task-5.3"

    def test_root_padded(self):
        assert generate_next_id(self.LOCAL, None, _config(padding=2)) == "task-06"

    def test_subtask_padded(self):
        assert generate_next_id(self.LOCAL, None, _config(padding=2), parent="task-5") == "task-5.03"

    def test_first_subtask(self):
        assert generate_next_id(["task-1"], None, _config(), parent="task-1") == "task-1.1"

    def test_empty(self):
        assert generate_next_id([], None, _config()) == "task-1"

    def test_subtasks_count_toward_root(self):
        assert generate_next_id(["task-9.4"], None, _config()) == "task-10"

    def test_padded_parent_compared_numerically(self):
        ids = ["task-05", "task-05.01", "task-5.02"]
        assert generate_next_id(ids, None, _config(padding=2), parent="task-05") == "task-05.03"

    def test_invalid_parent(self):
        with pytest.raises(TaskIdError):
            generate_next_id([], None, _config(), parent="nope")


class TestCrossBranch:
    def test_remote_ids_considered(self):
        git = FakeGit(
            {"origin/feature": _files("task-12 - Remote"), "main": _files("task-3")},
            recent=["main", "origin/feature"],
        )
        assert generate_next_id(["task-3"], git, _config()) == "task-13"
        assert git.calls_for("fetch") == [()]
        assert git.calls_for("list_recent_branches") == [(30,)]

    def test_remote_subtasks_considered(self):
        git = FakeGit({"feature": _files("task-5.7 - Sub")}, recent=["origin/feature"])
        assert generate_next_id(["task-5"], git, _config(), parent="task-5") == "task-5.8"

    def test_bare_and_remote_names_both_listed(self):
        git = FakeGit({}, recent=["origin/feature"])
        generate_next_id([], git, _config())
        refs = sorted(args[0] for args in git.calls_for("list_files_in_tree"))
        assert refs == ["feature", "origin/feature"]

    def test_remote_operations_disabled(self):
        git = FakeGit({"main": _files("task-40")})
        assert generate_next_id(["task-1"], git, _config(remote_operations=False)) == "task-2"
        assert git.calls == []

    def test_remote_failure_degrades_to_local(self):
        git = FakeGit({}, fail_everything=True)
        assert generate_next_id(["task-1", "task-2", "task-5"], git, _config()) == "task-6"

    def test_failing_branch_skipped(self):
        git = FakeGit(
            {"main": _files("task-8"), "broken": _files("task-99")},
            recent=["main", "broken"],
            broken={"broken"},
        )
        assert generate_next_id([], git, _config()) == "task-9"
