"""Logging, timing and audit helpers."""
from .audit_log import (
    ChangeRecord,
    audit_logger,
    get_recent_changes,
    log_change,
    setup_audit_logging,
)
from .logging_config import perf_logger, setup_logging, timed, timed_section

__all__ = [
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
    "ChangeRecord",
    "audit_logger",
    "log_change",
    "get_recent_changes",
    "setup_audit_logging",
]
