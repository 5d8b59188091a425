"""Structured audit trail and stdlib logging setup."""
from .logger import AUDIT_LOGGER_NAME, audit_event
from .stdlib_logging import configure_stdlib_logging, reset_stdlib_logging_for_tests

__all__ = [
    "AUDIT_LOGGER_NAME",
    "audit_event",
    "configure_stdlib_logging",
    "reset_stdlib_logging_for_tests",
]
