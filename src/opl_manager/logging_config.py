#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
Logging System for OPL Manager

Features:
- Compact console/file formatter with optional colors
- Structured JSON output (OPL_MANAGER_LOG_JSON=1)
- Rotating file handlers for the main and error logs
- Log emitter handler that forwards INF/ERR/VRB entries to a UI listener
"""

import logging
import logging.handlers
import os
import sys
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

LOGGER_ROOT = "opl_manager"

DEFAULT_MAX_LOG_SIZE = "10MB"
DEFAULT_BACKUP_COUNT = 3

LogEntry = Dict[str, str]
LogEmitter = Callable[[LogEntry], None]

# =====================================================================================================
# Formatters
# =====================================================================================================

class FastFormatter(logging.Formatter):
    """Level-dependent formatter with minimal overhead."""

    def __init__(self, enable_colors: bool = False):
        super().__init__()
        self.enable_colors = enable_colors

        self._formats = {
            logging.ERROR: "[{asctime}] ERROR   [{name}] {message}",
            logging.WARNING: "[{asctime}] WARNING [{name}] {message}",
            logging.INFO: "[{asctime}] INFO    {message}",
            logging.DEBUG: "[{asctime}] DEBUG   {name}:{lineno} - {message}"
        }
        self._formatters = {
            level: logging.Formatter(fmt, style='{', datefmt='%H:%M:%S')
            for level, fmt in self._formats.items()
        }

        self.colors = {
            'ERROR': '\033[91m',
            'WARNING': '\033[93m',
            'INFO': '\033[92m',
            'DEBUG': '\033[94m',
            'RESET': '\033[0m'
        } if enable_colors else {}

    def format(self, record):
        formatter = self._formatters.get(record.levelno, self._formatters[logging.INFO])
        text = formatter.format(record)
        if self.enable_colors and record.levelname in self.colors:
            return f"{self.colors[record.levelname]}{text}{self.colors['RESET']}"
        return text


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "thread": record.threadName,
            "process": record.process,
        }
        location = getattr(record, "location", None)
        if location:
            payload["location"] = location
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

# =====================================================================================================
# Log emitter handler
# =====================================================================================================

def _entry_type(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "ERR"
    if levelno <= logging.DEBUG:
        return "VRB"
    return "INF"


class LogEmitterHandler(logging.Handler):
    """Forwards records to a single registered listener as log entries.

    Entries have the shape ``{"type": "INF"|"ERR"|"VRB", "location": ...,
    "message": ...}``. ``location`` comes from ``extra={"location": ...}``
    or falls back to the last segment of the logger name.
    """

    def __init__(self, emitter: Optional[LogEmitter] = None):
        super().__init__(level=logging.DEBUG)
        self._emitter = emitter
        self._lock_emitter = threading.Lock()
        self.stats = {'sent': 0, 'errors': 0}

    def set_emitter(self, emitter: Optional[LogEmitter]) -> None:
        with self._lock_emitter:
            self._emitter = emitter

    def emit(self, record):
        with self._lock_emitter:
            emitter = self._emitter
        if emitter is None:
            return
        try:
            entry = {
                "type": _entry_type(record.levelno),
                "location": getattr(record, "location", None) or record.name.rsplit(".", 1)[-1],
                "message": record.getMessage(),
            }
            emitter(entry)
            self.stats['sent'] += 1
        except Exception:
            self.stats['errors'] += 1
            self.handleError(record)


_emitter_handler = LogEmitterHandler()
logging.getLogger(LOGGER_ROOT).addHandler(_emitter_handler)


def set_log_emitter(emitter: Optional[LogEmitter] = None) -> None:
    """Register (or clear, with ``None``) the listener for forwarded log entries."""
    _emitter_handler.set_emitter(emitter)


def get_log_emitter_handler() -> LogEmitterHandler:
    return _emitter_handler

# =====================================================================================================
# Main Setup Function
# =====================================================================================================

def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_size_string(size_str: str) -> int:
    """Parse size string into bytes."""
    size_str = size_str.upper().strip()

    multipliers = {
        'KB': 1024,
        'MB': 1024 ** 2,
        'GB': 1024 ** 3,
        'B': 1,
    }

    for suffix, multiplier in multipliers.items():
        if size_str.endswith(suffix):
            try:
                return int(float(size_str[:-len(suffix)].strip()) * multiplier)
            except ValueError:
                continue

    try:
        return int(float(size_str))
    except ValueError:
        return 10 * 1024 * 1024


def setup_logging(
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
    enable_file_logging: bool = True,
    enable_console_logging: bool = True,
    max_log_size: str = DEFAULT_MAX_LOG_SIZE,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    structured_json: Optional[bool] = None
) -> Dict[str, Any]:
    """
    Configure the root logger for OPL Manager.

    Args:
        log_level: Level name; defaults to OPL_MANAGER_LOG_LEVEL or INFO
        log_dir: Directory for log files (default: ./logs)
        enable_file_logging: Write opl_manager.log and errors.log
        enable_console_logging: Log to stdout
        max_log_size: Rotation size, e.g. "10MB"
        backup_count: Rotated files to keep
        structured_json: Force JSON output; defaults to OPL_MANAGER_LOG_JSON

    Returns:
        Dictionary with the installed handlers and the log directory
    """
    level_name = log_level or os.environ.get("OPL_MANAGER_LOG_LEVEL", "INFO")
    numeric_level = getattr(logging, level_name.upper(), logging.INFO)
    use_json = structured_json if structured_json is not None else _env_bool("OPL_MANAGER_LOG_JSON")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers: Dict[str, logging.Handler] = {}
    log_dir_path = Path(log_dir) if log_dir else Path("logs")

    if enable_console_logging:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        enable_colors = (hasattr(sys.stdout, 'isatty') and
                         sys.stdout.isatty() and
                         os.environ.get('TERM') != 'dumb')
        console_handler.setFormatter(JsonFormatter() if use_json else FastFormatter(enable_colors=enable_colors))
        root_logger.addHandler(console_handler)
        handlers['console'] = console_handler

    if enable_file_logging:
        log_dir_path.mkdir(parents=True, exist_ok=True)
        size_bytes = _parse_size_string(max_log_size)

        main_handler = logging.handlers.RotatingFileHandler(
            str(log_dir_path / "opl_manager.log"),
            maxBytes=size_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        main_handler.setLevel(numeric_level)
        main_handler.setFormatter(JsonFormatter() if use_json else FastFormatter())
        root_logger.addHandler(main_handler)
        handlers['main_file'] = main_handler

        error_handler = logging.handlers.RotatingFileHandler(
            str(log_dir_path / "errors.log"),
            maxBytes=size_bytes // 2,
            backupCount=backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.WARNING)
        error_handler.setFormatter(JsonFormatter() if use_json else FastFormatter())
        root_logger.addHandler(error_handler)
        handlers['error_file'] = error_handler

    # The emitter forwards verbose entries even when the console is at INFO.
    logging.getLogger(LOGGER_ROOT).setLevel(logging.DEBUG)
    handlers['emitter'] = _emitter_handler

    logging.getLogger(LOGGER_ROOT).debug(
        "Logging initialized (level=%s, file=%s, json=%s)", level_name, enable_file_logging, use_json
    )

    return {
        'handlers': handlers,
        'log_dir': log_dir_path,
    }


def cleanup_logging() -> None:
    """Close and detach all root handlers."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        try:
            handler.close()
        finally:
            root_logger.removeHandler(handler)
