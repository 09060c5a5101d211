"""
BlueprintFlow Logging Module

This module provides a centralized logging system for BlueprintFlow.
It implements a singleton logger that writes errors to stderr and, when a run
sets an execution context, everything at the configured level to a timestamped
log file.

Key Features:
- Singleton pattern for consistent logging across the application
- Optional per-run file logging with automatic log file creation
- Custom formatter for precise timestamps with microseconds
- Redaction of secret-looking values (env vars, tokens) before they hit a handler

Usage:
    from blueprintflow.logger import logger

    logger.info("This is an info message")
    logger.set_execution_context("nextjs-base", "blueprint", "/path/to/logs", "INFO")
    logger.debug("This will go to the log file")
"""

import copy
import logging
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar

from blueprintflow.constants import BLUEPRINTFLOW_DEFAULT_LOG_DIR, PROTECTED_KEYWORDS

REDACTED = "***REDACTED***"


def _get_sanitize_pattern() -> re.Pattern:
    """Get or build the compiled regex pattern for sensitive data detection."""
    if not hasattr(_get_sanitize_pattern, "_pattern"):
        keywords = "|".join(re.escape(kw) for kw in PROTECTED_KEYWORDS)
        _get_sanitize_pattern._pattern = re.compile(  # noqa: SLF001
            rf"({keywords})(\s*[:=]\s*)(['\"]?)(\S+?)(\3)(?=\s|,|}}|\]|$)", re.IGNORECASE
        )
    return _get_sanitize_pattern._pattern  # noqa: SLF001


def sanitize_log_message(message: str) -> str:
    """Sanitize sensitive data from a log message.

    Args:
        message: The log message to sanitize.

    Returns:
        Message with sensitive values replaced by REDACTED.
    """
    if not isinstance(message, str):
        return message
    return _get_sanitize_pattern().sub(rf"\1\2\3{REDACTED}\5", message)


class SanitizingFormatter(logging.Formatter):
    """Formatter that redacts secrets and prints timestamps with microseconds."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        ct = datetime.fromtimestamp(record.created)  # noqa: DTZ006
        return ct.strftime(datefmt) if datefmt else ct.isoformat()

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers still see the original record.
        record_copy = copy.copy(record)
        record_copy.msg = sanitize_log_message(str(record_copy.msg))
        if record_copy.args:
            record_copy.args = tuple(
                sanitize_log_message(arg) if isinstance(arg, str) else arg for arg in record_copy.args
            )
        return super().format(record_copy)


class BlueprintFlowLogger:
    """
    Singleton logger class for BlueprintFlow.

    Wraps the 'blueprintflow' logger, which is the parent of every module logger in
    the package, so handlers attached here also receive module-level records.
    """

    _instance = None

    FILE_FORMAT: ClassVar[str] = "%(asctime)s [%(levelname)s] [%(name)s] [%(funcName)s] - %(message)s"

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, "_initialized"):
            return
        self._initialized = True

        self._logger = logging.getLogger("blueprintflow")
        self._logger.setLevel(logging.DEBUG)

        # Console handler for ERROR level and above (always active for visibility)
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.ERROR)
        console_handler.setFormatter(
            SanitizingFormatter(
                "%(asctime)s [%(levelname)s] [%(name)s] - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        self._logger.addHandler(console_handler)

        self._execution_context: dict[str, Any] | None = None
        self._file_handler: logging.FileHandler | None = None

    def set_execution_context(
        self,
        execution_name: str,
        execution_type: str,
        log_dir: str | Path | None = None,
        log_level: str = "INFO",
    ) -> None:
        """
        Set the execution context for logging.

        This creates a timestamped log file and configures the logger to write to it.

        Args:
            execution_name: Name of the execution (usually the blueprint id).
            execution_type: Type of execution ("blueprint", "analysis", ...).
            log_dir: Directory to store log files. If None, uses the default.
            log_level: Logging level (e.g., "DEBUG", "INFO").
        """
        self._close_file_handler()

        if not log_dir:
            log_dir = BLUEPRINTFLOW_DEFAULT_LOG_DIR

        level = getattr(logging, log_level.upper(), logging.INFO)

        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        safe_name = re.sub(r"[^A-Za-z0-9_.-]+", "_", execution_name) or "run"
        filepath = log_path / f"{safe_name}_{timestamp}.log"

        self._file_handler = logging.FileHandler(filepath, encoding="utf-8")
        self._file_handler.setLevel(level)
        self._file_handler.setFormatter(SanitizingFormatter(self.FILE_FORMAT))
        self._logger.addHandler(self._file_handler)

        self._execution_context = {
            "execution_name": execution_name,
            "execution_type": execution_type,
            "log_dir": str(log_dir),
            "log_file": str(filepath),
            "start_time": datetime.now(),
        }

        self.info(f"Started {execution_type} execution: {execution_name}")

    def clear_execution_context(self) -> None:
        """
        Clear the current execution context and stop file logging.
        """
        if self._execution_context:
            execution_time = datetime.now() - self._execution_context["start_time"]
            self.info(f"Completed execution in {execution_time.total_seconds():.2f} seconds")

        self._close_file_handler()
        self._execution_context = None

    def get_execution_context(self) -> dict[str, Any] | None:
        """
        Get the current execution context.

        Returns:
            Current execution context dict or None if not set
        """
        return self._execution_context

    def _close_file_handler(self) -> None:
        if self._file_handler:
            self._logger.removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None

    def debug(self, message: str, *args: object, **kwargs) -> None:
        """Log a debug message."""
        self._logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: object, **kwargs) -> None:
        """Log an info message."""
        self._logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: object, **kwargs) -> None:
        """Log a warning message."""
        self._logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args: object, **kwargs) -> None:
        """Log an error message."""
        self._logger.error(message, *args, **kwargs)

    def exception(self, message: str, *args: object, **kwargs) -> None:
        """Log an exception with traceback."""
        self._logger.exception(message, *args, **kwargs)


# Create the singleton instance
logger = BlueprintFlowLogger()
