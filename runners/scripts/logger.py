#!/usr/bin/env python3
"""
Structured logging for the race recommender.

Supports two modes:
- Human-readable: Pretty output for the CLI
- JSON: Machine-parseable structured logs for the API server

Set RF_LOG_FORMAT=json for structured output and RF_LOG_LEVEL to
change verbosity (DEBUG, INFO, WARNING, ERROR).
"""

import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Optional

LOGGER_NAME = 'racefeed'

LEVEL_MAP = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for machine-parseable logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
        }

        if hasattr(record, 'extra_fields'):
            log_obj['fields'] = record.extra_fields

        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class HumanFormatter(logging.Formatter):
    """Human-readable formatter for interactive use."""

    LEVEL_PREFIXES = {
        'DEBUG': '[DEBUG]',
        'INFO': '',
        'WARNING': '[WARN]',
        'ERROR': '[ERROR]',
        'CRITICAL': '[CRITICAL]',
    }

    def format(self, record: logging.LogRecord) -> str:
        prefix = self.LEVEL_PREFIXES.get(record.levelname, '')
        msg = record.getMessage()

        fields = getattr(record, 'extra_fields', None)
        if fields:
            pairs = ' | '.join(f"{k}={v}" for k, v in fields.items())
            msg = f"{msg} [{pairs}]"

        if prefix:
            return f"{prefix} {msg}"
        return msg


class RecommenderLogger:
    """Process-wide structured logger."""

    _instance = None
    _logger = None
    _lock = threading.Lock()
    _json_mode = False

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._logger is None:
            self._setup_logger()

    def _setup_logger(self):
        """Configure the logger."""
        self._logger = logging.getLogger(LOGGER_NAME)
        self._logger.setLevel(logging.DEBUG)

        if self._logger.handlers:
            return

        self._json_mode = os.environ.get('RF_LOG_FORMAT', '').lower() == 'json'

        console = logging.StreamHandler(sys.stderr)
        console.setLevel(LEVEL_MAP.get(os.environ.get('RF_LOG_LEVEL', 'INFO').upper(), logging.INFO))
        console.setFormatter(StructuredFormatter() if self._json_mode else HumanFormatter())

        self._logger.addHandler(console)

    @property
    def json_mode(self) -> bool:
        return self._json_mode

    def set_level(self, level: str):
        """Set console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""
        for handler in self._logger.handlers:
            handler.setLevel(LEVEL_MAP.get(level.upper(), logging.INFO))

    def set_json_mode(self, enabled: bool):
        """Enable or disable JSON output mode."""
        self._json_mode = enabled
        for handler in self._logger.handlers:
            if isinstance(handler, logging.StreamHandler):
                handler.setFormatter(StructuredFormatter() if enabled else HumanFormatter())

    # === Core logging methods ===

    def _log(self, level: int, msg: str, **kwargs):
        """Internal log method with extra fields support."""
        if not self._logger.isEnabledFor(level):
            return
        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "(unknown file)",
            0,
            msg,
            (),
            None,
        )
        if kwargs:
            record.extra_fields = kwargs
        self._logger.handle(record)

    def debug(self, msg: str, **kwargs):
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs):
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, **kwargs)

    # === Convenience methods for CLI output ===
    # These produce structured output in JSON mode

    def success(self, msg: str, **kwargs):
        """Success message (INFO level)."""
        if self._json_mode:
            kwargs['status'] = 'success'
            self._log(logging.INFO, msg, **kwargs)
        else:
            self._log(logging.INFO, f"[OK] {msg}", **kwargs)

    def step(self, step_num: int, msg: str, **kwargs):
        """Step message for multi-step processes."""
        if self._json_mode:
            kwargs['step'] = step_num
            self._log(logging.INFO, msg, **kwargs)
        else:
            self._log(logging.INFO, f"\n{step_num}. {msg}")

    def header(self, title: str):
        """Section header."""
        if self._json_mode:
            self._log(logging.INFO, title, section='header')
        else:
            line = "=" * 60
            self._log(logging.INFO, f"\n{line}\n{title}\n{line}")

    def detail(self, msg: str, indent: int = 1, **kwargs):
        """Indented detail message."""
        if self._json_mode:
            kwargs['indent'] = indent
            self._log(logging.INFO, msg, **kwargs)
        else:
            self._log(logging.INFO, f"{'   ' * indent}{msg}")


_logger = None
_logger_lock = threading.Lock()


def get_logger() -> RecommenderLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        with _logger_lock:
            if _logger is None:
                _logger = RecommenderLogger()
    return _logger



def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> RecommenderLogger:
    """Apply the logging.level / logging.format settings to the global logger."""
    log = get_logger()
    if level:
        log.set_level(str(level))
    if fmt:
        log.set_json_mode(str(fmt).lower() == 'json')
    return log
