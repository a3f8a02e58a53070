#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Logging configuration and utilities
"""

# Standard library imports
import io
import queue
import sys
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

# Third-party imports
import logging

# Local imports
from config import (
    LOG_MAX_AGE_S,
    LOG_MAX_FILE_SIZE_MB_DEFAULT,
    LOG_FILE_PATTERN,
    LOG_TIMESTAMP_FORMAT,
    LOG_SEPARATOR_WIDTH,
)

# Add custom TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

def trace(self, message, *args, **kwargs):
    """Log a trace message (ultra-detailed, below DEBUG)"""
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)

# Add trace() method to Logger class
logging.Logger.trace = trace

# Global log mode (set by setup_logging)
_CURRENT_LOG_MODE = 'customer'

_CONSOLE_FORMATS = {
    'customer': "%(_when)s | %(message)s",
    'verbose': "%(_when)s | %(levelname)-7s | %(message)s",
    'debug': "%(_when)s | %(levelname)-7s | %(name)-15s | %(funcName)-20s | %(message)s",
}

_MODE_LEVELS = {
    'customer': logging.INFO,
    'verbose': logging.DEBUG,
    'debug': TRACE,
}


def get_log_mode() -> str:
    """Get the current logging mode"""
    return _CURRENT_LOG_MODE


class SizeRotatingCompositeHandler(logging.Handler):
    """
    A handler that delegates to an inner file handler and rolls over
    to a new file when the current file size reaches a threshold.

    - Creates files as: base.ext, base.ext.1, base.ext.2, ...
    - Does not delete on rotation (retention handled separately on startup)
    """
    def __init__(self, base_path: Path, create_handler_fn: Callable[[Path], logging.Handler], max_bytes: int):
        super().__init__()
        self.base_path = Path(base_path)
        self.create_handler_fn = create_handler_fn
        self.max_bytes = max_bytes
        self._index = 0
        self.current_path = self._compute_current_path()
        self.current_handler = self.create_handler_fn(self.current_path)
        self._stored_formatter = None

    def _compute_current_path(self) -> Path:
        if self._index == 0:
            return self.base_path
        return self.base_path.with_name(f"{self.base_path.name}.{self._index}")

    def _maybe_rotate(self):
        current_size = self.current_path.stat().st_size if self.current_path.exists() else 0
        if current_size < self.max_bytes:
            return
        self.current_handler.close()
        self._index += 1
        self.current_path = self._compute_current_path()
        self.current_handler = self.create_handler_fn(self.current_path)
        self.current_handler.setLevel(self.level)
        if self._stored_formatter is not None:
            self.current_handler.setFormatter(self._stored_formatter)

    def emit(self, record):
        try:
            self._maybe_rotate()
            self.current_handler.emit(record)
        except Exception:
            # Never break the OCR pipeline because of logging
            self.handleError(record)

    def setFormatter(self, fmt):
        self._stored_formatter = fmt
        self.current_handler.setFormatter(fmt)
        super().setFormatter(fmt)

    def setLevel(self, level):
        super().setLevel(level)
        self.current_handler.setLevel(level)

    def close(self):
        self.current_handler.close()
        super().close()


class QueueHandler(logging.Handler):
    """A queue-based handler that never blocks the calling thread"""

    def __init__(self, target_handler: logging.Handler):
        super().__init__()
        self.target_handler = target_handler
        self.queue = queue.Queue(maxsize=1000)  # Limit queue size to prevent memory issues
        self._stop_event = threading.Event()
        self.worker_thread = threading.Thread(target=self._work, daemon=True, name="LogQueueWorker")
        self.worker_thread.start()

    def _work(self):
        while not self._stop_event.is_set():
            try:
                record = self.queue.get(timeout=0.1)
            except queue.Empty:
                continue
            if record is None:  # Sentinel value to stop
                break
            try:
                self.target_handler.emit(record)
            finally:
                self.queue.task_done()

    def emit(self, record):
        """Queue the log record without blocking"""
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            # Dropping beats stalling a recognition batch under log floods
            pass

    def close(self):
        """Drain pending records and stop the worker thread"""
        try:
            self.queue.put_nowait(None)
        except queue.Full:
            self._stop_event.set()
        if self.worker_thread.is_alive():
            self.worker_thread.join(timeout=1.0)
        self.target_handler.close()
        super().close()


class SafeStreamHandler(logging.StreamHandler):
    """A stream handler that tolerates missing or broken console streams"""

    def __init__(self, stream=None):
        if stream is None:
            stream = io.StringIO()
        super().__init__(stream)

    def emit(self, record):
        try:
            msg = self.format(record)
            self.stream.write(msg + self.terminator)
            self.stream.flush()
        except (AttributeError, BrokenPipeError, OSError, ValueError):
            pass


class _Fmt(logging.Formatter):
    """Formatter stamping records with a short wall-clock time"""

    def __init__(self, fmt: str, when_format: str = "%H:%M:%S"):
        super().__init__(fmt)
        self.when_format = when_format

    def format(self, record):
        record._when = time.strftime(self.when_format, time.localtime())
        return super().format(record)


def _create_file_handler(log_mode: str) -> Optional[SizeRotatingCompositeHandler]:
    from .paths import get_logs_dir, ensure_write_permissions

    logs_dir = get_logs_dir()
    if not ensure_write_permissions(logs_dir):
        print(f"Warning: log directory is not writable: {logs_dir}", file=sys.stderr)
        return None

    # Format: dd-mm-yyyy_hh-mm-ss (no colons for Windows compatibility)
    timestamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
    log_file = logs_dir / LOG_FILE_PATTERN.replace("*", timestamp)
    max_bytes = int(LOG_MAX_FILE_SIZE_MB_DEFAULT * 1024 * 1024)

    def _factory_plain(p: Path):
        return logging.FileHandler(p, encoding='utf-8')

    file_handler = SizeRotatingCompositeHandler(log_file, _factory_plain, max_bytes)
    file_handler.setFormatter(_Fmt(_CONSOLE_FORMATS[log_mode], "%Y-%m-%d %H:%M:%S"))
    file_handler.setLevel(_MODE_LEVELS[log_mode])
    return file_handler


def setup_logging(log_mode: str = 'customer', *, write_logs: bool = True):
    """
    Setup logging configuration with three modes.

    Args:
        log_mode: 'customer' (clean logs), 'verbose' (developer), or 'debug' (ultra-detailed)
        write_logs: If False, skip creating log files (useful for one-off runs).
    """
    global _CURRENT_LOG_MODE
    if log_mode not in _MODE_LEVELS:
        raise ValueError(f"Unknown log mode: {log_mode!r}")
    _CURRENT_LOG_MODE = log_mode

    # Recognized text goes to stdout, so logs go to stderr
    console = SafeStreamHandler(sys.stderr)
    console.setFormatter(_Fmt(_CONSOLE_FORMATS[log_mode]))
    h = QueueHandler(console)
    h.setLevel(_MODE_LEVELS[log_mode])

    file_handler = None
    if write_logs:
        try:
            file_handler = _create_file_handler(log_mode)
        except OSError as e:
            # If file logging fails, continue without it
            print(f"Warning: Could not setup file logging: {e}", file=sys.stderr)

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.addHandler(h)
    if file_handler:
        root.addHandler(file_handler)

    # Root logger must be at TRACE to allow all handlers to receive all messages
    root.setLevel(TRACE)

    logger = logging.getLogger("startup")
    if log_mode != 'customer':
        logger.info("=" * LOG_SEPARATOR_WIDTH)
        if file_handler:
            logger.info(f"Subtitle OCR - Starting... (Log file: {file_handler.base_path.name})")
        else:
            logger.info("Subtitle OCR - Starting... (logs disabled)")
        logger.info("=" * LOG_SEPARATOR_WIDTH)
        if log_mode == 'debug':
            logger.info("Debug mode: ON (ultra-detailed logs with function traces)")
        else:
            logger.info("Verbose mode: ON (developer logs with technical details)")


def get_logger(name: str = "tracer") -> logging.Logger:
    """Get a logger instance"""
    return logging.getLogger(name)


def cleanup_logs():
    """
    Clean up old log files based on age.

    Deletes session logs (and their rotated parts) older than LOG_MAX_AGE_S.
    """
    from .paths import get_user_data_dir

    logs_dir = get_user_data_dir() / "logs"
    if not logs_dir.exists():
        return

    now = time.time()
    for log_file in logs_dir.glob(LOG_FILE_PATTERN + "*"):
        try:
            if now - log_file.stat().st_mtime > LOG_MAX_AGE_S:
                log_file.unlink()
        except OSError as e:
            # Don't log this error to avoid recursion
            print(f"Warning: Failed to cleanup log {log_file.name}: {e}", file=sys.stderr)


# ==================== Pretty Logging Helpers ====================

def log_section(logger: logging.Logger, title: str, icon: str = "📌", details: dict = None, mode: str = None):
    """
    Log a section with title and optional details

    Args:
        logger: Logger instance
        title: Main title text (will be uppercased in verbose/debug mode)
        icon: Emoji icon to use
        details: Optional dict of key-value pairs to display
        mode: 'customer' (simple), 'verbose' (detailed), or 'debug' (ultra-detailed).
              If None, uses current global log mode.

    Example:
        log_section(log, "Batch finished", "🏁", {"Images": 42, "Learnt": 3})
    """
    if mode is None:
        mode = get_log_mode()

    if mode == 'customer':
        if details:
            detail_str = ", ".join(f"{k}: {v}" for k, v in details.items())
            logger.info(f"{icon} {title} ({detail_str})")
        else:
            logger.info(f"{icon} {title}")
    else:
        logger.info("=" * LOG_SEPARATOR_WIDTH)
        logger.info(f"{icon} {title.upper()}")
        if details:
            for key, value in details.items():
                logger.info(f"   📋 {key}: {value}")
        logger.info("=" * LOG_SEPARATOR_WIDTH)


def log_event(logger: logging.Logger, event: str, icon: str = "✓", details: dict = None):
    """
    Log a single event with optional details

    Example:
        log_event(log, "Template learnt", "🧠", {"Text": "rn", "Span": 2})
    """
    logger.info(f"{icon} {event}")
    if details:
        for key, value in details.items():
            logger.info(f"   • {key}: {value}")


def log_action(logger: logging.Logger, action: str, icon: str = "⚡"):
    """Log an action being performed"""
    logger.info(f"{icon} {action}")


def log_success(logger: logging.Logger, message: str, icon: str = "✅"):
    """Log a success message"""
    logger.info(f"{icon} {message}")


def log_status(logger: logging.Logger, status: str, value, icon: str = "ℹ️"):
    """
    Log a status update

    Example:
        log_status(log, "Database", "Latin", "🗂️")
    """
    logger.info(f"{icon} {status}: {value}")
