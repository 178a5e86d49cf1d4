"""Audit logging for SSH config synchronization.

Every sync (applied or dry-run) is recorded as one JSON line:
- Timestamp, target file and whether it was a dry run
- Host-level changes (added/modified/removed)
- Backup path and error, if any
"""
import json
import logging
import os
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from ..ssh.schema import SyncResult

logger = logging.getLogger(__name__)

# Dedicated audit logger
audit_logger = logging.getLogger("mmdot.audit")


def get_audit_dir() -> Path:
    """Get audit log directory from environment."""
    return Path(os.environ.get("MMDOT_AUDIT_DIR", "~/.mmdot")).expanduser()


def setup_audit_logging(log_dir: Optional[Path] = None) -> Optional[Path]:
    """Configure audit logging to file.

    An unwritable audit directory disables auditing with a warning instead
    of failing the command.

    Args:
        log_dir: Directory for audit logs. Defaults to MMDOT_AUDIT_DIR or ~/.mmdot

    Returns:
        Path of the audit log file, or None if auditing is disabled
    """
    log_dir = Path(log_dir) if log_dir else get_audit_dir()
    audit_file = log_dir / "audit.log"

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()
    # Don't propagate to the console
    audit_logger.propagate = False

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            audit_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=10,
            encoding="utf-8",
        )
    except OSError as e:
        logger.warning(f"Audit logging disabled ({audit_file}): {e}")
        return None

    # JSON lines only
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    return audit_file


@dataclass
class SyncRecord:
    """Record of one sync run."""
    timestamp: str
    config_file: str
    dry_run: bool
    success: bool
    hosts_loaded: int = 0
    entries_written: int = 0
    changes: dict = field(default_factory=dict)
    backup_path: Optional[str] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "SyncRecord":
        """Parse from JSON string."""
        data = json.loads(json_str)
        return cls(**data)


def record_sync(
    result: Optional[SyncResult],
    config_file: Path,
    dry_run: bool,
    error: Optional[str] = None,
) -> SyncRecord:
    """Log a sync outcome to the audit log.

    Args:
        result: The sync result, or None if the sync failed early
        config_file: Target SSH config path
        dry_run: Whether this was a dry run
        error: Error message if failed

    Returns:
        The SyncRecord that was logged
    """
    record = SyncRecord(
        timestamp=datetime.now(timezone.utc).isoformat(),
        config_file=str(config_file),
        dry_run=dry_run,
        success=error is None,
        error=error,
    )

    if result is not None:
        record.hosts_loaded = result.hosts_loaded
        record.entries_written = result.entries_written
        record.changes = result.diff.to_dict()
        record.backup_path = str(result.backup_path) if result.backup_path else None

    audit_logger.info(record.to_json())
    return record


def get_recent_syncs(
    log_file: Optional[Path] = None,
    config_file: Optional[str] = None,
    limit: int = 100,
) -> list[SyncRecord]:
    """Read recent sync records from the audit log.

    Args:
        log_file: Path to audit log. Defaults to <audit dir>/audit.log
        config_file: Only return records for this SSH config path
        limit: Maximum number of records to return

    Returns:
        List of SyncRecords, most recent first
    """
    log_file = Path(log_file) if log_file else get_audit_dir() / "audit.log"

    if not log_file.exists():
        return []

    records = []
    with open(log_file, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = SyncRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if config_file and record.config_file != config_file:
                continue

            records.append(record)

    return list(reversed(records[-limit:]))
