"""
Structured logging configuration.

Provides JSON or human-readable logging with context management.
All log output goes to stderr so it never mixes with report output.
"""

import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from contextvars import ContextVar

from pr_analyzer.config import Settings


# Context variable for storing per-run context (e.g. pr_number)
log_context: ContextVar[Dict[str, Any]] = ContextVar('log_context', default={})

# Attributes every LogRecord has; anything else was passed through extra=
_RESERVED_ATTRS = frozenset(
    logging.LogRecord('', 0, '', 0, '', (), None).__dict__
) | {'message', 'asctime', 'taskName'}


def record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields attached to a record via ``extra=``."""
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith('_')
    }


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Formats log records as JSON with context and extra fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        context = log_context.get()
        if context:
            log_data['context'] = context

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info),
            }

        log_data.update(record_extras(record))

        # Add source location for errors and above
        if record.levelno >= logging.ERROR:
            log_data['source'] = {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName,
            }

        return json.dumps(log_data, default=str)


class ContextFormatter(logging.Formatter):
    """
    Human-readable formatter with context.

    Appends context and extra fields as key=value pairs.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with context."""
        base_msg = super().format(record)

        fields = dict(log_context.get())
        fields.update(record_extras(record))
        if fields:
            fields_str = ' '.join(f'{k}={v}' for k, v in fields.items())
            base_msg = f"{base_msg} [{fields_str}]"

        return base_msg


def setup_logging(settings: Settings, level: Optional[str] = None) -> None:
    """
    Configure application logging.

    Args:
        settings: Application settings (LOG_LEVEL, LOG_FORMAT)
        level: Override for settings.LOG_LEVEL (e.g. from --verbose)
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)

    if settings.LOG_FORMAT == "json":
        formatter = JSONFormatter()
    else:
        formatter = ContextFormatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Set levels for noisy libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    root_logger.debug(
        f"Logging configured: level={level_name}, "
        f"format={settings.LOG_FORMAT}, environment={settings.ENVIRONMENT}"
    )


class LogContext:
    """
    Context manager for adding structured context to logs.

    Usage:
        with LogContext(pr_number=123):
            logger.info("Analyzing PR")  # Includes context in log
    """

    def __init__(self, **kwargs):
        """
        Initialize log context.

        Args:
            **kwargs: Key-value pairs to add to log context
        """
        self.context = kwargs
        self.token = None

    def __enter__(self):
        """Enter context - set context variables."""
        current = log_context.get().copy()
        current.update(self.context)
        self.token = log_context.set(current)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context - restore previous context."""
        if self.token:
            log_context.reset(self.token)

