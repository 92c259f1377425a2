from __future__ import annotations

import json
import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from gitboard.config_schema import LoggingConfig


# Parent of every gitboard.* module logger
LOGGER_NAME = "gitboard"

# Environment variables for configuration
ENV_LOG_DIR = "GITBOARD_LOG_DIR"
ENV_LOG_LEVEL = "GITBOARD_LOG_LEVEL"
ENV_LOG_MAX_BYTES = "GITBOARD_LOG_MAX_BYTES"
ENV_LOG_BACKUP_COUNT = "GITBOARD_LOG_BACKUP_COUNT"
ENV_LOG_DISABLE_FILE = "GITBOARD_LOG_DISABLE_FILE"

# Defaults
DEFAULT_LOG_DIR = Path.home() / ".gitboard" / "logs"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

_logger_initialized = False
_session_start: Optional[str] = None
# Values from a loaded LoggingConfig; environment variables still win
_config_settings: Dict[str, str] = {}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _session_stamp() -> str:
    global _session_start
    if _session_start is None:
        _session_start = _utcnow().strftime("%Y-%m-%d_%H%M%S")
    return _session_start


def _setting(name: str, default: Any = None) -> Any:
    """Environment value, else loaded config value, else ``default``."""
    value = os.getenv(name)
    if value:
        return value
    return _config_settings.get(name) or default


def _get_log_level() -> int:
    """Get log level from environment, defaulting to INFO."""
    level_name = _setting(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.INFO)


def _get_log_file_path() -> Optional[Path]:
    """Get the log file path, creating directories if needed.

    Returns None if file logging is disabled via GITBOARD_LOG_DISABLE_FILE=1.
    """
    if _setting(ENV_LOG_DISABLE_FILE, "").lower() in ("1", "true", "yes"):
        return None

    log_dir = Path(_setting(ENV_LOG_DIR) or DEFAULT_LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Session-based filename: gitboard_2024-01-15_143022.log
    return log_dir / f"gitboard_{_session_stamp()}.log"


def _get_logger() -> logging.Logger:
    """Get or initialize the gitboard logger.

    By default, logs to ~/.gitboard/logs/gitboard_<session>.log

    Configuration via environment variables:
    - GITBOARD_LOG_DIR: Directory for log files (default: ~/.gitboard/logs/)
    - GITBOARD_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    - GITBOARD_LOG_MAX_BYTES: Max log file size before rotation (default: 10MB)
    - GITBOARD_LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
    - GITBOARD_LOG_DISABLE_FILE: Set to 1 to disable file logging (stderr only)
    """
    global _logger_initialized
    logger = logging.getLogger(LOGGER_NAME)

    if not _logger_initialized:
        _logger_initialized = True
        logger.handlers.clear()  # Remove any existing handlers

        log_level = _get_log_level()
        logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(levelname)s %(asctime)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S"
        )

        # File handler (enabled by default)
        log_file = _get_log_file_path()
        if log_file:
            max_bytes = int(_setting(ENV_LOG_MAX_BYTES, DEFAULT_MAX_BYTES))
            backup_count = int(_setting(ENV_LOG_BACKUP_COUNT, DEFAULT_BACKUP_COUNT))

            file_handler = RotatingFileHandler(
                str(log_file),
                maxBytes=max_bytes,
                backupCount=backup_count,
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(log_level)
            logger.addHandler(file_handler)

        # Warnings and above also go to stderr
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        stream_handler.setLevel(max(log_level, logging.WARNING))
        logger.addHandler(stream_handler)

    return logger


def configure_logging(config: "LoggingConfig") -> logging.Logger:
    """(Re)initialize the logger from a loaded LoggingConfig.

    Values already present in the environment win, matching the config
    loader's environment overlay.
    """
    global _logger_initialized
    _config_settings.clear()
    _config_settings.update({
        ENV_LOG_LEVEL: config.level,
        ENV_LOG_DIR: config.dir,
        ENV_LOG_MAX_BYTES: str(config.max_bytes),
        ENV_LOG_BACKUP_COUNT: str(config.backup_count),
        ENV_LOG_DISABLE_FILE: "1" if config.disable_file else "",
    })
    for handler in logging.getLogger(LOGGER_NAME).handlers:
        handler.close()
    _logger_initialized = False
    return _get_logger()


def log_action(
    action: str,
    *,
    outcome: str = "ok",
    duration_ms: Optional[float] = None,
    tool_name: Optional[str] = None,
    input_chars: Optional[int] = None,
    output_chars: Optional[int] = None,
    **fields: Any,
) -> None:
    """Emit a structured log line for an action.

    Fields are serialized to JSON. Keep schema lightweight.

    Args:
        action: Name of the action being logged
        outcome: Result status ("ok", "error", etc.)
        duration_ms: How long the action took in milliseconds
        tool_name: MCP tool name (for per-tool metrics)
        input_chars: Size of input in characters
        output_chars: Size of output in characters
        **fields: Additional fields to include
    """
    payload: Dict[str, Any] = {
        "ts": _utcnow().strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        "action": action,
        "outcome": outcome,
    }
    if duration_ms is not None:
        payload["duration_ms"] = round(duration_ms, 2)
    if tool_name is not None:
        payload["tool"] = tool_name
    if input_chars is not None:
        payload["in_chars"] = input_chars
    if output_chars is not None:
        payload["out_chars"] = output_chars
    if fields:
        payload.update(fields)

    _get_logger().info(json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str))


def _with_fields(message: str, fields: Dict[str, Any]) -> str:
    if not fields:
        return message
    return f"{message} {json.dumps(fields, separators=(',', ':'), sort_keys=True, default=str)}"


def log_debug(message: str, **fields: Any) -> None:
    """Log a debug message with optional structured fields.

    Only emitted when log level is DEBUG.
    """
    logger = _get_logger()
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(_with_fields(message, fields))


def log_warning(message: str, **fields: Any) -> None:
    """Log a warning message with optional structured fields."""
    _get_logger().warning(_with_fields(message, fields))


def log_error(message: str, **fields: Any) -> None:
    """Log an error message with optional structured fields."""
    _get_logger().error(_with_fields(message, fields))


@contextmanager
def timeit(
    action: str,
    *,
    tool_name: Optional[str] = None,
    input_chars: Optional[int] = None,
    **fields: Any,
):
    """Time a block and emit a structured log on exit.

    On exception, logs outcome="error" and re-raises.

    Yields:
        A dict that can be updated with output_chars after the operation
    """
    start = time.perf_counter()
    result_info: Dict[str, Any] = {}
    try:
        yield result_info
        duration_ms = (time.perf_counter() - start) * 1000.0
        log_action(
            action,
            outcome="ok",
            duration_ms=duration_ms,
            tool_name=tool_name,
            input_chars=input_chars,
            output_chars=result_info.get("output_chars"),
            **fields,
        )
    except Exception as e:
        duration_ms = (time.perf_counter() - start) * 1000.0
        log_action(
            action,
            outcome="error",
            duration_ms=duration_ms,
            tool_name=tool_name,
            input_chars=input_chars,
            error=type(e).__name__,
            **fields,
        )
        raise
