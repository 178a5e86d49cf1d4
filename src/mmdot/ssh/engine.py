"""Sync engine - orchestrates the full SSH config synchronization.

Provides a single entry point for:
1. Loading and prioritizing hosts from all sources
2. Parsing the existing SSH config
3. Merging managed sections source by source
4. Backing up and atomically rewriting the config (or previewing a diff)

Concurrent syncs against the same file are not coordinated: the last
rename wins and no lost update is detected.
"""
import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..crypto.age import Decryptor
from ..errors import BackupError, MmdotError, WriteError
from ..utils.logging_config import timed, timed_section
from .diff import DiffEngine, summarize_diff
from .loader import SourceLoader
from .merger import HostMerger
from .parser import SSHConfigParser, read_config
from .schema import (
    DiffResult,
    Host,
    ParsedHost,
    SyncResult,
    SyncTarget,
    ValidationResult,
)
from .validator import validate_entries, validate_hosts
from .writer import ConfigWriter

logger = logging.getLogger(__name__)

CONFIG_MODE = 0o600
CONFIG_DIR_MODE = 0o700
BACKUP_TIMESTAMP = "%Y%m%d%H%M%S"


def backup_path_for(config_file: Path, now: Optional[datetime] = None) -> Path:
    """Return ``<path>.backup-<YYYYMMDDhhmmss>``."""
    stamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP)
    return config_file.with_name(f"{config_file.name}.backup-{stamp}")


class SyncEngine:
    """
    Main engine for synchronizing host sources into an SSH config.

    Usage:
        engine = SyncEngine(target)
        result = engine.sync(dry_run=True)
        print(summarize_diff(result.diff))
    """

    def __init__(
        self,
        target: SyncTarget,
        decryptor: Optional[Decryptor] = None,
    ):
        """
        Initialize the Sync Engine.

        Args:
            target: SSH config path, flags and ordered host sources
            decryptor: Collaborator for encrypted sources (default: age CLI)
        """
        self.target = target
        self.loader = SourceLoader(decryptor)
        self.parser = SSHConfigParser(preserve_local=target.preserve_local)
        self.merger = HostMerger()
        self.writer = ConfigWriter()
        self.diff_engine = DiffEngine()

    @property
    def config_file(self) -> Path:
        return self.target.config_file

    def load_hosts(self) -> list[Host]:
        """Load, prioritize, de-duplicate and validate all desired hosts."""
        with timed_section("load_sources", sources=len(self.target.sources)):
            return self.loader.load_all(self.target.sources)

    def plan(self, hosts: list[Host]) -> tuple[list[ParsedHost], list[ParsedHost]]:
        """
        Compute the entries a sync would write.

        Returns:
            (current entries with managed sections visible, merged entries)
        """
        text = read_config(self.config_file)
        if text is None:
            logger.info(f"{self.config_file} does not exist yet, creating it")
            text = ""

        with timed_section("parse", path=str(self.config_file)):
            existing = self.parser.parse(text)
            current = SSHConfigParser(preserve_local=False).parse(text)

        with timed_section("merge", hosts=len(hosts)):
            merged = self.merger.merge_all(existing, hosts)

        validate_entries(merged)
        return current, merged

    def diff(self) -> DiffResult:
        """Calculate what a sync would change, without writing."""
        hosts = self.load_hosts()
        current, merged = self.plan(hosts)
        return self.diff_engine.calculate(current, merged)

    def sync(self, dry_run: bool = False) -> SyncResult:
        """
        Synchronize all sources into the SSH config.

        This is the main entry point. It:
        1. Loads hosts from every source (decrypting where needed)
        2. Parses the existing config
        3. Merges each source's managed section
        4. Backs up the current file (if enabled)
        5. Writes the new config atomically

        With ``dry_run`` the backup and write are skipped; the returned
        result carries the diff either way.

        Raises:
            MmdotError: Any validation, load, decryption, backup or write
                failure. Nothing is written in that case.
        """
        result = SyncResult(config_file=self.config_file, dry_run=dry_run)

        hosts = self.load_hosts()
        result.hosts_loaded = len(hosts)
        logger.info(f"Loaded {len(hosts)} hosts from {len(self.target.sources)} sources")

        current, merged = self.plan(hosts)
        result.diff = self.diff_engine.calculate(current, merged)
        result.entries_written = len(merged)

        if dry_run:
            logger.info(f"DRY RUN: {result.diff.total_changes} host changes")
            return result

        if self.target.backup:
            result.backup_path = self.create_backup()

        with timed_section("write", path=str(self.config_file)):
            self.write_atomic(merged)

        logger.info(
            f"Synchronized {len(hosts)} hosts to {self.config_file} "
            f"({result.diff.total_changes} changes)"
        )
        return result

    def preview(self) -> str:
        """Human-readable diff summary of a sync."""
        return summarize_diff(self.diff())

    @timed("backup")
    def create_backup(self) -> Optional[Path]:
        """
        Copy the current config to a timestamped backup.

        Returns:
            The backup path, or None if there is no file to back up

        Raises:
            BackupError: If the copy fails
        """
        if not self.config_file.exists():
            return None

        backup_path = backup_path_for(self.config_file)
        try:
            shutil.copyfile(self.config_file, backup_path)
            os.chmod(backup_path, CONFIG_MODE)
        except OSError as e:
            raise BackupError(f"failed to create backup {backup_path}: {e}") from e

        logger.info(f"Backed up {self.config_file} to {backup_path}")
        return backup_path

    def write_atomic(self, entries: list[ParsedHost]) -> None:
        """
        Write entries through a temp file renamed over the target.

        Readers never observe a half-written file. On any failure the temp
        file is removed and the original is left untouched.

        Raises:
            WriteError: If any step fails
        """
        directory = self.config_file.parent
        try:
            directory.mkdir(mode=CONFIG_DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise WriteError(f"failed to create SSH config directory: {e}") from e

        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=directory, prefix=".ssh-config-", suffix=".tmp"
            )
        except OSError as e:
            raise WriteError(f"failed to create temp file: {e}") from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                self.writer.write(f, entries, grouped=True)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, CONFIG_MODE)
            os.replace(tmp_path, self.config_file)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise WriteError(f"failed to write SSH config {self.config_file}: {e}") from e
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def validate_sources(self) -> ValidationResult:
        """
        Check each source on its own, then the combined host list.

        Unlike ``load_hosts`` this collects every problem instead of
        stopping at the first.
        """
        errors: list[str] = []
        warnings: list[str] = []
        checked: list[str] = []

        for index, source in enumerate(self.target.sources):
            if not source.name:
                errors.append(f"Host source {index}: name cannot be empty")
                continue

            if source.encrypted_file is not None:
                if source.identity_file is None:
                    errors.append(
                        f"Source {source.name}: identity_file required for "
                        f"encrypted sources"
                    )
                    continue
                if not source.encrypted_file.exists():
                    errors.append(
                        f"Source {source.name}: encrypted file not found: "
                        f"{source.encrypted_file}"
                    )
                    continue
                if not source.identity_file.exists():
                    errors.append(
                        f"Source {source.name}: identity file not found: "
                        f"{source.identity_file}"
                    )
                    continue
                kind = "encrypted"
            elif source.file is not None:
                if not source.file.exists():
                    errors.append(
                        f"Source {source.name}: hosts file not found: {source.file}"
                    )
                    continue
                kind = "file"
            elif source.hosts:
                kind = "inline"
            else:
                errors.append(
                    f"Source {source.name}: must specify either encrypted_file, "
                    f"file or inline hosts"
                )
                continue

            try:
                hosts = self.loader.load_source(source)
                validate_hosts(hosts)
            except MmdotError as e:
                errors.append(f"Source {source.name}: {e}")
                continue

            if not hosts:
                warnings.append(f"Source {source.name}: no hosts defined")
            checked.append(f"Source {source.name}: valid {kind} source ({len(hosts)} hosts)")

        if not errors:
            try:
                hosts = self.load_hosts()
            except MmdotError as e:
                errors.append(f"Failed to load hosts: {e}")
            else:
                checked.append(f"Successfully loaded {len(hosts)} total hosts")

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            checked=checked,
        )
