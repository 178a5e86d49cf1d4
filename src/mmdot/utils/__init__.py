"""Utility modules for logging and auditing."""
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    perf_logger,
)
from .audit_log import (
    SyncRecord,
    setup_audit_logging,
    record_sync,
    get_recent_syncs,
)

__all__ = [
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
    "SyncRecord",
    "setup_audit_logging",
    "record_sync",
    "get_recent_syncs",
]
