"""Schema definitions for SSH host synchronization.

Defines desired hosts, host sources, entries recovered from a physical
config file, and the diff/result types produced by a sync.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from ..errors import ValidationError

MANAGED_PREFIX = "managed:"
LOCAL_TAG = "local"

# Marker lines delimiting a managed section in the physical file
BEGIN_MARKER = "# === BEGIN MMDOT MANAGED:"
END_MARKER = "# === END MMDOT MANAGED:"

INDENT = "    "


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


def _split_forward(forward: str) -> Optional[tuple[str, str]]:
    """Split "8080:localhost:80" into ("8080", "localhost:80")."""
    local, sep, remote = forward.partition(":")
    if not sep:
        return None
    return local, remote


@dataclass(frozen=True)
class Host:
    """A desired SSH host definition."""
    name: str
    hostname: str
    user: str = ""
    port: int = 0  # 0 = ssh default
    identity_file: str = ""
    proxy_jump: str = ""
    forward_agent: Optional[bool] = None
    forward_x11: Optional[bool] = None
    local_forward: list[str] = field(default_factory=list)
    remote_forward: list[str] = field(default_factory=list)
    custom: list[str] = field(default_factory=list)
    # Stamped from the owning HostSource at load time
    priority: int = 0
    source: str = ""

    def validate(self) -> None:
        """Raise ValidationError if the host cannot be written."""
        if not self.name:
            raise ValidationError("host name cannot be empty")
        if not self.hostname:
            raise ValidationError(
                f"hostname cannot be empty for host {self.name}"
            )
        if self.port < 0 or self.port > 65535:
            raise ValidationError(
                f"invalid port {self.port} for host {self.name}"
            )

    def serialize(self) -> list[str]:
        """
        Render the host as OpenSSH config lines.

        The "Host" line comes first, followed by one indented line per set
        field in a fixed order. Forwards without a ":" separator are skipped.
        """
        lines = [f"Host {self.name}"]

        if self.hostname:
            lines.append(f"{INDENT}Hostname {self.hostname}")
        if self.user:
            lines.append(f"{INDENT}User {self.user}")
        if self.port > 0:
            lines.append(f"{INDENT}Port {self.port}")
        if self.identity_file:
            lines.append(f"{INDENT}IdentityFile {self.identity_file}")
        if self.proxy_jump:
            lines.append(f"{INDENT}ProxyJump {self.proxy_jump}")
        if self.forward_agent is not None:
            lines.append(f"{INDENT}ForwardAgent {_yes_no(self.forward_agent)}")
        if self.forward_x11 is not None:
            lines.append(f"{INDENT}ForwardX11 {_yes_no(self.forward_x11)}")

        for keyword, forwards in (
            ("LocalForward", self.local_forward),
            ("RemoteForward", self.remote_forward),
        ):
            for forward in forwards:
                parts = _split_forward(forward)
                if parts:
                    lines.append(f"{INDENT}{keyword} {parts[0]} {parts[1]}")

        for custom in self.custom:
            lines.append(f"{INDENT}{custom}")

        return lines

    def to_text(self) -> str:
        """Serialized lines joined without a trailing newline."""
        return "\n".join(self.serialize())


@dataclass
class HostSource:
    """A named, prioritized provider of desired hosts."""
    name: str
    priority: int = 0
    hosts: list[Host] = field(default_factory=list)
    file: Optional[Path] = None            # plain host-list file
    encrypted_file: Optional[Path] = None  # age-encrypted host-list file
    recipients: list[str] = field(default_factory=list)
    identity_file: Optional[Path] = None
    tags: list[str] = field(default_factory=list)

    @property
    def needs_decryption(self) -> bool:
        return self.encrypted_file is not None

    @property
    def has_encryption(self) -> bool:
        """True if the source can be (re-)encrypted."""
        return self.encrypted_file is not None and len(self.recipients) > 0

    @property
    def is_inline(self) -> bool:
        return self.file is None and self.encrypted_file is None


@dataclass(frozen=True)
class EntrySource:
    """
    Ownership tag of an entry in the physical config.

    Either local (hand-authored, outside any managed section) or managed by
    a named source. ``str()`` gives the textual tag: "local" or
    "managed:<name>".
    """
    managed_by: Optional[str] = None

    @classmethod
    def local(cls) -> "EntrySource":
        return cls()

    @classmethod
    def managed(cls, name: str) -> "EntrySource":
        return cls(managed_by=name)

    @classmethod
    def parse(cls, tag: str) -> "EntrySource":
        if tag == LOCAL_TAG:
            return cls()
        if tag.startswith(MANAGED_PREFIX):
            return cls(managed_by=tag[len(MANAGED_PREFIX):])
        raise ValueError(f"Unknown entry source tag: {tag}")

    @property
    def is_local(self) -> bool:
        return self.managed_by is None

    def __str__(self) -> str:
        if self.managed_by is None:
            return LOCAL_TAG
        return f"{MANAGED_PREFIX}{self.managed_by}"


LOCAL = EntrySource.local()


@dataclass
class ParsedHost:
    """A host block recovered from (or destined for) the physical file."""
    name: str
    lines: list[str] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    source: EntrySource = LOCAL

    @classmethod
    def from_host(cls, host: Host, source_name: str) -> "ParsedHost":
        """Build a managed entry from a desired host."""
        return cls(
            name=host.name,
            lines=host.serialize(),
            source=EntrySource.managed(source_name),
        )


@dataclass
class SyncTarget:
    """Where and how desired hosts are synchronized."""
    config_file: Path
    backup: bool = True
    preserve_local: bool = True
    sources: list[HostSource] = field(default_factory=list)


# --- Validation Results ---

@dataclass
class ValidationResult:
    """Result of validating all host sources."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    checked: list[str] = field(default_factory=list)


# --- Diff Results ---

class ChangeType(str, Enum):
    """Type of change in a diff."""
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass
class HostChange:
    """A single host-level change."""
    name: str
    change_type: ChangeType
    source: str


@dataclass
class DiffResult:
    """Result of comparing the current file to the merged entries."""
    added: list[HostChange] = field(default_factory=list)
    modified: list[HostChange] = field(default_factory=list)
    removed: list[HostChange] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        return not (self.added or self.modified or self.removed)

    @property
    def total_changes(self) -> int:
        return len(self.added) + len(self.modified) + len(self.removed)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            change_type: [
                {"name": c.name, "source": c.source}
                for c in changes
            ]
            for change_type, changes in (
                ("added", self.added),
                ("modified", self.modified),
                ("removed", self.removed),
            )
        }


# --- Sync Results ---

@dataclass
class SyncResult:
    """Outcome of a sync run."""
    config_file: Path
    dry_run: bool = False
    hosts_loaded: int = 0
    entries_written: int = 0
    backup_path: Optional[Path] = None
    diff: DiffResult = field(default_factory=DiffResult)
