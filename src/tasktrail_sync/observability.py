from __future__ import annotations

import json
import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from tasktrail.config_schema import LoggingConfig


LOGGER_NAME = "tasktrail"

# Environment variables for configuration
ENV_LOG_DIR = "TASKTRAIL_LOG_DIR"
ENV_LOG_LEVEL = "TASKTRAIL_LOG_LEVEL"
ENV_LOG_MAX_BYTES = "TASKTRAIL_LOG_MAX_BYTES"
ENV_LOG_BACKUP_COUNT = "TASKTRAIL_LOG_BACKUP_COUNT"
ENV_LOG_DISABLE_FILE = "TASKTRAIL_LOG_DISABLE_FILE"

# Defaults
DEFAULT_LOG_DIR = Path.home() / ".tasktrail" / "logs"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

_logger_initialized = False
_session_start: Optional[str] = None


def _session_stamp() -> str:
    global _session_start
    if _session_start is None:
        _session_start = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H%M%S")
    return _session_start


def _get_log_level() -> int:
    """Get log level from environment, defaulting to INFO."""
    level_name = os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.INFO)


def _get_log_file_path(log_dir: Optional[str] = None, disable: Optional[bool] = None) -> Optional[Path]:
    """Get the log file path, creating directories if needed.

    Returns None if file logging is disabled via TASKTRAIL_LOG_DISABLE_FILE=1.
    """
    if disable is None:
        disable = os.getenv(ENV_LOG_DISABLE_FILE, "").lower() in ("1", "true", "yes")
    if disable:
        return None

    directory = Path(log_dir or os.getenv(ENV_LOG_DIR) or DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)

    # Session-based filename: tasktrail_2024-01-15_143022.log
    return directory / f"tasktrail_{_session_stamp()}.log"


def _install_handlers(
    logger: logging.Logger,
    level: int,
    log_file: Optional[Path],
    max_bytes: int,
    backup_count: int,
) -> None:
    logger.handlers.clear()
    logger.setLevel(level)

    formatter = logging.Formatter(
        "[%(levelname)s %(asctime)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S"
    )

    if log_file:
        file_handler = RotatingFileHandler(
            str(log_file),
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    # Also log to stderr for visibility (only warnings and above by default)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(max(level, logging.WARNING))
    logger.addHandler(stream_handler)


def get_logger() -> logging.Logger:
    """Get or initialize the tasktrail logger.

    By default, logs to ~/.tasktrail/logs/tasktrail_<session>.log

    Configuration via environment variables:
    - TASKTRAIL_LOG_DIR: Directory for log files (default: ~/.tasktrail/logs/)
    - TASKTRAIL_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    - TASKTRAIL_LOG_MAX_BYTES: Max log file size before rotation (default: 10MB)
    - TASKTRAIL_LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
    - TASKTRAIL_LOG_DISABLE_FILE: Set to 1 to disable file logging (stderr only)
    """
    global _logger_initialized
    logger = logging.getLogger(LOGGER_NAME)

    if not _logger_initialized:
        _logger_initialized = True
        _install_handlers(
            logger,
            _get_log_level(),
            _get_log_file_path(),
            int(os.getenv(ENV_LOG_MAX_BYTES, DEFAULT_MAX_BYTES)),
            int(os.getenv(ENV_LOG_BACKUP_COUNT, DEFAULT_BACKUP_COUNT)),
        )

    return logger


def configure_logging(config: "LoggingConfig") -> logging.Logger:
    """(Re)configure the tasktrail logger from a loaded LoggingConfig."""
    global _logger_initialized
    logger = logging.getLogger(LOGGER_NAME)
    _install_handlers(
        logger,
        getattr(logging, config.level, logging.INFO),
        _get_log_file_path(config.dir or None, config.disable_file or None),
        config.max_bytes,
        config.backup_count,
    )
    _logger_initialized = True
    return logger


def _format(message: str, fields: Dict[str, Any]) -> str:
    if not fields:
        return message
    return f"{message} " + json.dumps(fields, separators=(",", ":"), sort_keys=True, default=str)


def log_debug(message: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> None:
    """Log a debug message with optional structured fields.

    Only emitted when the target logger is enabled for DEBUG.
    """
    target = logger or get_logger()
    if target.isEnabledFor(logging.DEBUG):
        target.debug(_format(message, fields))


def log_warning(message: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> None:
    """Log a warning message with optional structured fields."""
    (logger or get_logger()).warning(_format(message, fields))


def log_error(message: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> None:
    """Log an error message with optional structured fields."""
    (logger or get_logger()).error(_format(message, fields))


def log_action(
    action: str,
    *,
    outcome: str = "ok",
    duration_ms: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
    **fields: Any,
) -> None:
    """Emit a structured JSON log line for an action.

    Args:
        action: Name of the action being logged
        outcome: Result status ("ok", "error", etc.)
        duration_ms: How long the action took in milliseconds
        logger: Logger to write to (defaults to the tasktrail logger)
        **fields: Additional fields to include
    """
    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "action": action,
        "outcome": outcome,
    }
    if duration_ms is not None:
        payload["duration_ms"] = round(duration_ms, 2)
    if fields:
        payload.update(fields)

    (logger or get_logger()).info(json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str))


@contextmanager
def timeit(action: str, *, logger: Optional[logging.Logger] = None, **fields: Any):
    """Time a block and emit a structured log on exit.

    On exception, logs outcome="error" and re-raises.

    Yields:
        A dict the block may update with extra fields (e.g. result counts)
    """
    start = time.perf_counter()
    result_info: Dict[str, Any] = {}
    try:
        yield result_info
    except Exception:
        duration_ms = (time.perf_counter() - start) * 1000.0
        log_action(action, outcome="error", duration_ms=duration_ms, logger=logger, **fields)
        raise
    duration_ms = (time.perf_counter() - start) * 1000.0
    log_action(action, outcome="ok", duration_ms=duration_ms, logger=logger, **{**fields, **result_info})
