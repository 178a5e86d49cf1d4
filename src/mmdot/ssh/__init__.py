"""SSH config synchronization.

Merges prioritized host sources into a hand-edited OpenSSH config:
- Local (hand-written) host blocks are preserved verbatim
- Each source owns one managed section, replaced wholesale on every sync
- Higher-priority sources win when two define the same host
- Writes are atomic and repeated syncs are byte-identical

Usage:
    from mmdot.ssh import SyncEngine, SyncTarget, HostSource, Host

    target = SyncTarget(
        config_file=Path("~/.ssh/config").expanduser(),
        sources=[
            HostSource(name="personal", priority=10, hosts=[
                Host(name="nas", hostname="nas.lan", user="admin"),
            ]),
        ],
    )
    result = SyncEngine(target).sync(dry_run=True)
"""

from .engine import SyncEngine, backup_path_for
from .schema import (
    Host,
    HostSource,
    EntrySource,
    LOCAL,
    ParsedHost,
    SyncTarget,
    SyncResult,
    ValidationResult,
    DiffResult,
    HostChange,
    ChangeType,
    BEGIN_MARKER,
    END_MARKER,
)
from .parser import SSHConfigParser, read_config
from .merger import HostMerger
from .writer import ConfigWriter
from .diff import DiffEngine, summarize_diff
from .loader import (
    SourceLoader,
    HostEntry,
    HostListFile,
    parse_host_list,
    load_host_file,
    host_list_format,
)
from .validator import (
    validate_host,
    validate_hosts,
    validate_entries,
    deduplicate_hosts,
    sort_by_priority,
)

__all__ = [
    # Main engine
    "SyncEngine",
    "backup_path_for",
    # Schema classes
    "Host",
    "HostSource",
    "EntrySource",
    "LOCAL",
    "ParsedHost",
    "SyncTarget",
    "SyncResult",
    "ValidationResult",
    "DiffResult",
    "HostChange",
    "ChangeType",
    "BEGIN_MARKER",
    "END_MARKER",
    # Components (for advanced use)
    "SSHConfigParser",
    "read_config",
    "HostMerger",
    "ConfigWriter",
    "DiffEngine",
    "summarize_diff",
    "SourceLoader",
    "HostEntry",
    "HostListFile",
    "parse_host_list",
    "load_host_file",
    "host_list_format",
    # Validation
    "validate_host",
    "validate_hosts",
    "validate_entries",
    "deduplicate_hosts",
    "sort_by_priority",
]
