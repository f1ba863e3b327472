"""Tests for config_schema module."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tasktrail.config_schema import (
    DEFAULT_STATUSES,
    ConcurrencyConfig,
    GitConfig,
    LoggingConfig,
    TasksConfig,
    TasktrailConfig,
)


class TestTasksConfig:
    """Tests for TasksConfig model."""

    def test_defaults(self):
        config = TasksConfig()
        assert config.backlog_dir == "backlog"
        assert config.statuses == DEFAULT_STATUSES
        assert config.resolution_strategy == "most_progressed"
        assert config.zero_padded_ids == 0

    def test_statuses_stripped(self):
        config = TasksConfig(statuses=[" Open ", "Closed"])
        assert config.statuses == ["Open", "Closed"]

    def test_statuses_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            TasksConfig(statuses=[])

    def test_duplicate_statuses_rejected(self):
        with pytest.raises(ValidationError):
            TasksConfig(statuses=["To Do", "Done", "To Do"])

    def test_invalid_strategy(self):
        with pytest.raises(ValidationError):
            TasksConfig(resolution_strategy="newest")

    def test_negative_padding_rejected(self):
        with pytest.raises(ValidationError):
            TasksConfig(zero_padded_ids=-1)

    def test_backlog_dir_slashes_trimmed(self):
        assert TasksConfig(backlog_dir="/work/backlog/").backlog_dir == "work/backlog"

    def test_empty_backlog_dir_rejected(self):
        with pytest.raises(ValidationError):
            TasksConfig(backlog_dir=" / ")


class TestGitConfig:
    """Tests for GitConfig model."""

    def test_defaults(self):
        config = GitConfig()
        assert config.remote_operations is True
        assert config.remote == "origin"
        assert config.active_branch_days == 30
        assert config.check_active_branches is True

    def test_active_branch_days_minimum(self):
        with pytest.raises(ValidationError):
            GitConfig(active_branch_days=0)


class TestConcurrencyConfig:
    def test_defaults(self):
        config = ConcurrencyConfig()
        assert (config.index_workers, config.hydrate_workers, config.branch_batch_size) == (4, 8, 5)

    def test_zero_workers_rejected(self):
        with pytest.raises(ValidationError):
            ConcurrencyConfig(hydrate_workers=0)


class TestLoggingConfig:
    """Tests for LoggingConfig model."""

    def test_defaults(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.dir == ""
        assert config.max_bytes == 10485760
        assert config.backup_count == 5
        assert config.disable_file is False

    def test_level_normalized(self):
        assert LoggingConfig(level="warning").level == "WARNING"

    def test_invalid_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="TRACE")

    def test_dir_pointing_at_file_warns(self, tmp_path):
        target = tmp_path / "not-a-dir"
        target.write_text("x")
        with pytest.warns(UserWarning):
            LoggingConfig(dir=str(target))


class TestTasktrailConfig:
    """Tests for the root config model."""

    def test_default(self):
        config = TasktrailConfig.default()
        assert config.version == 1
        assert config.project_name == ""
        assert isinstance(config.tasks, TasksConfig)
        assert isinstance(config.git, GitConfig)

    def test_nested_validation(self):
        config = TasktrailConfig.model_validate(
            {"tasks": {"zero_padded_ids": "3"}, "git": {"remote_operations": "false"}}
        )
        assert config.tasks.zero_padded_ids == 3
        assert config.git.remote_operations is False
