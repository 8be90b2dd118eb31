"""Logging setup"""

from .logging_config import get_logger, setup_logging, set_correlation_id, get_correlation_id

__all__ = [
    "get_logger",
    "setup_logging",
    "set_correlation_id",
    "get_correlation_id",
]
