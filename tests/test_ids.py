"""Tests for typed task identifiers."""

from __future__ import annotations

import pytest

from tasktrail.ids import TaskId, TaskIdError


class TestMatch:
    def test_root(self):
        task_id = TaskId.match("task-12")
        assert task_id == TaskId(12, width=2)
        assert not task_id.is_subtask
        assert task_id.parent is None

    def test_subtask(self):
        task_id = TaskId.match("task-5.03")
        assert task_id.number == 5
        assert task_id.sub == 3
        assert task_id.sub_width == 2
        assert task_id.parent == TaskId(5, width=1)

    def test_case_insensitive(self):
        assert TaskId.match("TASK-7").number == 7

    def test_anchored(self):
        assert TaskId.match("notes about task-3") is None
        assert TaskId.match("README.md") is None


class TestParse:
    def test_bare_number(self):
        assert str(TaskId.parse("5")) == "task-5"

    def test_prefixed(self):
        assert str(TaskId.parse(" task-5 ")) == "task-5"

    @pytest.mark.parametrize("text", ["", "abc", "task-", "task-x"])
    def test_invalid(self, text):
        with pytest.raises(TaskIdError):
            TaskId.parse(text)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            TaskId.parse("nope")


def test_from_filename_uses_basename():
    assert str(TaskId.from_filename("backlog/tasks/task-12 - Fix login.md")) == "task-12"
    assert TaskId.from_filename("backlog/task-1/notes.md") is None


def test_padding_preserved():
    assert str(TaskId.match("task-06")) == "task-06"
    assert str(TaskId(6, width=3)) == "task-006"


def test_with_sub():
    root = TaskId.parse("task-05")
    assert str(root.with_sub(3)) == "task-05.3"
    assert str(root.with_sub(3, sub_width=2)) == "task-05.03"
