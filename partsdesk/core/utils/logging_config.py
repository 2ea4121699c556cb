"""
Structured logging configuration for partsdesk.

JSON lines in production (Gunicorn or PRODUCTION=true), coloured
human-readable lines during development.
"""

import os
import sys
import json
import logging
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if hasattr(record, 'extra') and record.extra:
            log_entry.update(record.extra)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '')
        reset = self.RESET if color else ''

        timestamp = datetime.now().strftime('%H:%M:%S')
        location = f'{record.module}:{record.lineno}'

        base = f'{color}[{timestamp}] {record.levelname:8}{reset} {location:30} {record.getMessage()}'

        if hasattr(record, 'extra') and record.extra:
            extras = ' | '.join(f'{k}={v}' for k, v in record.extra.items())
            base = f'{base} | {extras}'

        if record.exc_info:
            base = f'{base}\n{self.formatException(record.exc_info)}'

        return base


def setup_logging(
    level: str = 'INFO',
    json_format: bool = None,
    logger_name: str = 'partsdesk'
) -> logging.Logger:
    """Configure and return the application logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting. If None, auto-detects based on environment.
        logger_name: Name for the logger instance.

    Returns:
        Configured logger instance.
    """
    if json_format is None:
        json_format = os.environ.get('PRODUCTION', '').lower() == 'true' or \
                      'gunicorn' in os.environ.get('SERVER_SOFTWARE', '')

    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logger.level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str = 'partsdesk') -> logging.Logger:
    """Get a logger instance, e.g. 'partsdesk.orders.workflow'."""
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, message: str, **context):
    """Log a message with additional context fields.

    The fields end up as top-level keys in JSON output and as
    `key=value` pairs in development output.
    """
    if not logger.isEnabledFor(level):
        return
    record = logger.makeRecord(
        logger.name, level, '', 0, message, (), None
    )
    record.extra = context
    logger.handle(record)
