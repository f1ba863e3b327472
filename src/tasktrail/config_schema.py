"""Configuration schema for tasktrail.

Defines all configuration options with types, defaults, and validation.
Uses Pydantic for schema enforcement and clear error messages.
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import List, Literal

from pydantic import BaseModel, Field, field_validator


DEFAULT_STATUSES = ["To Do", "In Progress", "Done"]


class TasksConfig(BaseModel):
    """Task record layout and merge policy."""

    backlog_dir: str = Field(
        default="backlog",
        description="Directory (relative to the repo root) holding task records",
    )
    statuses: List[str] = Field(
        default_factory=lambda: list(DEFAULT_STATUSES),
        description="Ordered status vocabulary, least to most progressed",
    )
    resolution_strategy: Literal["most_recent", "most_progressed"] = Field(
        default="most_progressed",
        description="How divergent copies of one task are merged",
    )
    zero_padded_ids: int = Field(
        default=0,
        ge=0,
        description="Zero-pad new root task IDs to this many digits (0 = off)",
    )

    @field_validator("statuses")
    @classmethod
    def validate_statuses(cls, v: List[str]) -> List[str]:
        """Statuses must be non-empty and unique (rank is the list position)."""
        cleaned = [s.strip() for s in v if s and s.strip()]
        if not cleaned:
            raise ValueError("statuses must contain at least one status")
        seen = set()
        for status in cleaned:
            if status in seen:
                raise ValueError(f"duplicate status: {status}")
            seen.add(status)
        return cleaned

    @field_validator("backlog_dir")
    @classmethod
    def validate_backlog_dir(cls, v: str) -> str:
        v = v.strip().strip("/")
        if not v:
            raise ValueError("backlog_dir must not be empty")
        return v


class GitConfig(BaseModel):
    """Branch survey settings."""

    remote_operations: bool = Field(
        default=True,
        description="Fetch and read remote branches (False = local branches only)",
    )
    remote: str = Field(
        default="origin",
        description="Remote whose branches are surveyed",
    )
    active_branch_days: int = Field(
        default=30,
        ge=1,
        description="Branches with commits in this many days count as active",
    )
    check_active_branches: bool = Field(
        default=True,
        description="Hide tasks last seen as draft/archived on any active branch",
    )


class ConcurrencyConfig(BaseModel):
    """Worker pool sizes for the git-bound stages."""

    index_workers: int = Field(default=4, ge=1, description="Branches indexed concurrently")
    hydrate_workers: int = Field(default=8, ge=1, description="Records fetched concurrently")
    branch_batch_size: int = Field(
        default=5,
        ge=1,
        description="Branches scanned per batch when resolving latest task state",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    dir: str = Field(
        default="",
        description="Log directory (empty = ~/.tasktrail/logs)",
    )
    max_bytes: int = Field(
        default=10485760,  # 10MB
        ge=0,
        description="Maximum log file size in bytes",
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        description="Number of backup log files to keep",
    )
    disable_file: bool = Field(
        default=False,
        description="Disable file logging (stderr only)",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("dir")
    @classmethod
    def validate_log_dir(cls, v: str) -> str:
        """Warn if log directory doesn't exist (will be created on use)."""
        if v:
            path = Path(v).expanduser()
            if path.exists() and not path.is_dir():
                warnings.warn(
                    f"Log path exists but is not a directory: {v}",
                    UserWarning,
                )
        return v


class TasktrailConfig(BaseModel):
    """Root configuration model."""

    version: int = Field(
        default=1,
        ge=1,
        description="Config schema version",
    )
    project_name: str = Field(default="", description="Display name of the project")

    tasks: TasksConfig = Field(default_factory=TasksConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def default(cls) -> "TasktrailConfig":
        """Create config with all defaults."""
        return cls()
