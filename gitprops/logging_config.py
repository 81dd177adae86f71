"""Logging configuration for git-commit-props.

This module provides logging configuration with support for:
- Environment variable-based log level control
- JSON formatting for CI log collectors
- A verbose gate for messages emitted by extractors
"""

import logging
import logging.handlers
import json
import os
import sys
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Union
from pathlib import Path

_RESERVED_RECORD_FIELDS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName', 'relativeCreated',
    'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info', 'taskName',
])


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def __init__(self, include_context: bool = True):
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if self.include_context:
            log_data['module'] = record.module
            log_data['function'] = record.funcName
            log_data['line'] = record.lineno

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Fields passed through ``extra=``
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_FIELDS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Format log records in human-readable format with colors (optional)."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m'
    }

    def __init__(self, use_colors: bool = False, include_context: bool = False):
        if include_context:
            fmt = '[%(levelname)s] %(asctime)s - %(name)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s'
        else:
            fmt = '[%(levelname)s] %(asctime)s - %(name)s - %(message)s'

        super().__init__(fmt=fmt, datefmt='%Y-%m-%d %H:%M:%S')
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors:
            color = self.COLORS.get(record.levelname, '')
            reset = self.COLORS['RESET']
            return f"{color}{formatted}{reset}"

        return formatted


class VerboseLoggerAdapter(logging.LoggerAdapter):
    """Logger handed to extractors; drops every message unless verbose.

    Extractors are chatty about each git query they run. Those messages are
    only interesting when the user switched on the ``verbose`` option, so
    the adapter silences them otherwise regardless of the logger level.
    """

    def __init__(self, logger: logging.Logger, verbose: bool):
        super().__init__(logger, {})
        self.verbose = verbose

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if self.verbose:
            super().log(level, msg, *args, **kwargs)

    def isEnabledFor(self, level: int) -> bool:
        return self.verbose and super().isEnabledFor(level)


def get_log_level_from_env() -> int:
    """
    Get log level from environment variable.

    Environment variables checked (in order):
    1. GITPROPS_LOG_LEVEL
    2. LOG_LEVEL

    Returns:
        Logging level (default: INFO)
    """
    level_name = os.environ.get('GITPROPS_LOG_LEVEL') or os.environ.get('LOG_LEVEL', 'INFO')
    level_name = level_name.upper()

    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'WARN': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL,
    }

    return level_map.get(level_name, logging.INFO)


def get_log_format_from_env() -> str:
    """Get log format ('json', 'human', 'simple') from GITPROPS_LOG_FORMAT."""
    return os.environ.get('GITPROPS_LOG_FORMAT', 'human').lower()


def setup_logging(
    level: Optional[int] = None,
    format_type: Optional[str] = None,
    log_file: Optional[Path] = None,
    use_colors: bool = False,
    include_context: bool = False
) -> None:
    """
    Configure logging for git-commit-props.

    Console output goes to stderr so that property dumps on stdout stay
    machine-readable.

    Args:
        level: Logging level (defaults to GITPROPS_LOG_LEVEL or INFO)
        format_type: Format type ('json', 'human', 'simple')
        log_file: Optional path to log file
        use_colors: Use ANSI colors in console output
        include_context: Include module/function context in logs

    Environment Variables:
        GITPROPS_LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        GITPROPS_LOG_FORMAT: Set format (json, human, simple)
        GITPROPS_LOG_FILE: Path to log file
        LOG_LEVEL: Fallback for log level
    """
    if level is None:
        level = get_log_level_from_env()

    if format_type is None:
        format_type = get_log_format_from_env()

    if log_file is None:
        log_file_env = os.environ.get('GITPROPS_LOG_FILE')
        if log_file_env:
            log_file = Path(log_file_env)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if format_type == 'json':
        formatter: logging.Formatter = JSONFormatter(include_context=include_context)
    elif format_type == 'simple':
        formatter = logging.Formatter('%(levelname)s: %(message)s')
    else:  # human
        formatter = HumanReadableFormatter(use_colors=use_colors, include_context=include_context)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=3
        )
        file_handler.setLevel(level)
        # File logs are always JSON
        file_handler.setFormatter(JSONFormatter(include_context=True))
        root_logger.addHandler(file_handler)


def log_exception(logger: Union[logging.Logger, logging.LoggerAdapter], message: str, exc: Exception) -> None:
    """Log an exception together with its type and error code."""
    logger.error(
        f"{message}: {exc}",
        exc_info=True,
        extra={
            'exception_type': type(exc).__name__,
            'error_code': getattr(exc, 'error_code', None),
        }
    )
