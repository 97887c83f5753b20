"""
Logging Utilities

Centralized logging configuration for training runs and the serving process.
Console output always; an optional rotating file handler per run.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Noisy third-party loggers
_QUIET_LOGGERS = ("py4j", "pyspark", "google", "urllib3", "matplotlib", "joblib")


def setup_logging(
    config: Optional[Dict[str, Any]] = None,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None
) -> None:
    """
    Configure the root logger for a run.

    Args:
        config: Optional dict with 'level', 'format' and 'file' keys
            ('file' holds 'path', 'max_bytes', 'backup_count')
        log_level: Default log level
        log_file: Path to a log file; overrides config['file']['path']
        log_format: Log message format
    """
    config = config or {}
    log_level = str(config.get("level", log_level)).upper()
    log_format = log_format or config.get("format", DEFAULT_FORMAT)
    file_config = config.get("file", {})

    formatter = logging.Formatter(log_format, datefmt=DEFAULT_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_path = log_file or file_config.get("path")
    if file_path:
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=file_config.get("max_bytes", 10 * 1024 * 1024),
            backupCount=file_config.get("backup_count", 5),
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module or component name."""
    return logging.getLogger(name)


class PipelineLogger:
    """
    Structured logger for training runs.

    Prefixes every message with the current context (e.g. run_id) so a
    single log file can hold several runs.
    """

    def __init__(self, name: str):
        self.logger = get_logger(name)
        self._context: Dict[str, Any] = {}

    def set_context(self, **kwargs) -> None:
        """Set logging context (e.g., run_id, step)."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        self._context = {}

    def _format_message(self, message: str) -> str:
        if self._context:
            context_str = " ".join(f"{k}={v}" for k, v in self._context.items())
            return f"[{context_str}] {message}"
        return message

    def info(self, message: str) -> None:
        self.logger.info(self._format_message(message))

    def debug(self, message: str) -> None:
        self.logger.debug(self._format_message(message))

    def warning(self, message: str) -> None:
        self.logger.warning(self._format_message(message))

    def exception(self, message: str) -> None:
        self.logger.exception(self._format_message(message))

    def step_start(self, step_name: str) -> None:
        """Log the start of a pipeline step."""
        self.info(f"{'=' * 20} Starting: {step_name} {'=' * 20}")

    def step_complete(self, step_name: str, duration: Optional[float] = None) -> None:
        """Log the completion of a pipeline step."""
        if duration is not None:
            self.info(f"{'=' * 20} Completed: {step_name} ({duration:.2f}s) {'=' * 20}")
        else:
            self.info(f"{'=' * 20} Completed: {step_name} {'=' * 20}")

    def metric(self, name: str, value: Any) -> None:
        """Log a metric."""
        self.info(f"METRIC | {name}: {value}")

    def data_stats(self, name: str, count: int, columns: Optional[int] = None) -> None:
        """Log data statistics."""
        if columns:
            self.info(f"DATA | {name}: {count:,} rows, {columns} columns")
        else:
            self.info(f"DATA | {name}: {count:,} rows")
