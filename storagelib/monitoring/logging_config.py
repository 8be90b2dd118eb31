"""
Centralized logging configuration for storagelib.
Provides structured logging with correlation IDs.
"""

import logging
import logging.config
import json
import uuid
from datetime import datetime, timezone
from typing import Optional
from contextvars import ContextVar

ROOT_LOGGER_NAME = "storagelib"

# Context variable for operation correlation ID
correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName', 'message',
    'exc_info', 'exc_text', 'stack_info', 'correlation_id',
])


class CorrelationFilter(logging.Filter):
    """Add correlation ID to log records."""

    def filter(self, record):
        record.correlation_id = correlation_id.get() or 'no-correlation-id'
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line; structured ``extra`` fields become top-level keys."""

    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec='milliseconds')

    def format(self, record):
        log_entry = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'correlation_id': getattr(record, 'correlation_id', 'no-correlation-id'),
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info),
            }

        # Add extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logging(log_level: str = "INFO", enable_json: bool = True) -> None:
    """
    Configure logging for storagelib and the Azure SDK.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_json: Whether to use JSON formatting
    """

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {
                '()': JSONFormatter,
            },
            'standard': {
                'format': '%(asctime)s %(levelname)-8s %(name)s: %(message)s',
            },
        },
        'filters': {
            'correlation': {
                '()': CorrelationFilter,
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': log_level,
                'formatter': 'json' if enable_json else 'standard',
                'filters': ['correlation'],
                'stream': 'ext://sys.stderr',
            },
        },
        'loggers': {
            ROOT_LOGGER_NAME: {
                'level': log_level,
                'handlers': ['console'],
                'propagate': False,
            },
            # The SDK logs every HTTP request at INFO
            'azure': {
                'level': 'WARNING',
                'handlers': ['console'],
                'propagate': False,
            },
        },
    }

    logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_correlation_id(request_id: Optional[str] = None) -> str:
    """Set correlation ID for the current context."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    correlation_id.set(request_id)
    return request_id


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID."""
    return correlation_id.get()
