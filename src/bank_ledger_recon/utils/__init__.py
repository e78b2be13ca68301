"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    NotFoundError,
    InvalidStateTransitionError,
    ExclusivityViolationError,
    MalformedInputError,
    ConfigurationError,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "ReconciliationError",
    "NotFoundError",
    "InvalidStateTransitionError",
    "ExclusivityViolationError",
    "MalformedInputError",
    "ConfigurationError",
    "setup_logging",
    "get_logger",
]
