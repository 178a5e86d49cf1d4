#!/usr/bin/env python3
"""mmdot command-line interface.

Usage:
    mmdot [-c CONFIG] [-v] ssh sync [--dry-run]
    mmdot ssh diff
    mmdot ssh validate
    mmdot ssh list [--tags TAG,...]
    mmdot ssh encrypt
    mmdot ssh decrypt

Environment variables:
    MMDOT_CONFIG        Path to mmdot.toml (default: ./mmdot.toml)
    MMDOT_LOG_LEVEL     Console log level (default: INFO)
    MMDOT_AGE_BIN       age binary (default: age)
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import load_sync_target
from .crypto import AgeEncryptor, VaultReport, decrypt_sources, encrypt_sources
from .errors import MmdotError
from .ssh import Host, SyncEngine, SyncTarget, summarize_diff
from .utils.audit_log import record_sync, setup_audit_logging
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _parse_tags(value: Optional[list[str]]) -> list[str]:
    tags = []
    for chunk in value or []:
        tags.extend(t.strip() for t in chunk.split(",") if t.strip())
    return tags


def format_host(host: Host) -> str:
    """One-line description: ``name -> user@hostname:port (source, priority)``."""
    info = f"{host.name} -> {host.hostname}"
    if host.user:
        info = f"{host.name} -> {host.user}@{host.hostname}"
    if host.port > 0 and host.port != 22:
        info = f"{info}:{host.port}"
    return f"{info} (source: {host.source}, priority: {host.priority})"


def filter_by_tags(target: SyncTarget, hosts: list[Host], tags: list[str]) -> list[Host]:
    """Keep hosts whose source carries any of ``tags``."""
    if not tags:
        return hosts
    wanted = set(tags)
    sources = {
        source.name for source in target.sources
        if wanted.intersection(source.tags)
    }
    return [host for host in hosts if host.source in sources]


def _print_report(title: str, report: VaultReport, verb: str) -> None:
    if report.warnings:
        print("Warnings:")
        for warning in report.warnings:
            print(f"  - {warning}")
        print()

    if report.items:
        print(title)
        for item in report.items:
            print(f"  {'✓' if item.ok else '✗'} {item.status}")
        print()

    if report.succeeded == 0:
        print(f"No files were {verb}")
    else:
        print(f"Successfully {verb} {report.succeeded} files")


def cmd_sync(target: SyncTarget, args: argparse.Namespace) -> int:
    engine = SyncEngine(target)
    try:
        result = engine.sync(dry_run=args.dry_run)
    except MmdotError as e:
        record_sync(None, target.config_file, args.dry_run, error=str(e))
        raise

    record_sync(result, target.config_file, args.dry_run)

    if args.dry_run:
        print("Dry run mode - showing what would change:")
        print(summarize_diff(result.diff))
        return 0

    if result.backup_path:
        print(f"Backup written to {result.backup_path}")
    print(f"Successfully synchronized {result.hosts_loaded} hosts to {target.config_file}")
    return 0


def cmd_diff(target: SyncTarget, args: argparse.Namespace) -> int:
    print(SyncEngine(target).preview())
    return 0


def cmd_validate(target: SyncTarget, args: argparse.Namespace) -> int:
    result = SyncEngine(target).validate_sources()

    if result.warnings:
        print("Warnings:")
        for warning in result.warnings:
            print(f"  - {warning}")
        print()

    print("Validation Results:")
    for line in result.checked:
        print(f"  ✓ {line}")
    for error in result.errors:
        print(f"  ✗ {error}")
    print()

    if result.valid:
        print("All validations passed")
        return 0

    print(f"{len(result.errors)} validation(s) failed, {len(result.checked)} passed")
    return 1


def cmd_list(target: SyncTarget, args: argparse.Namespace) -> int:
    hosts = SyncEngine(target).load_hosts()
    hosts = filter_by_tags(target, hosts, _parse_tags(args.tags))

    if not hosts:
        print("No hosts found in configured sources")
        return 0

    print(f"SSH Hosts ({len(hosts)} total):")
    for host in hosts:
        print(f"  - {format_host(host)}")
    return 0


def cmd_encrypt(target: SyncTarget, args: argparse.Namespace) -> int:
    report = encrypt_sources(target.sources, AgeEncryptor())
    _print_report("Encryption Results:", report, "encrypted")
    return 0 if report.failed == 0 else 1


def cmd_decrypt(target: SyncTarget, args: argparse.Namespace) -> int:
    report = decrypt_sources(target.sources, AgeEncryptor())
    _print_report("Decryption Results:", report, "decrypted")
    return 0 if report.failed == 0 else 1


COMMANDS = {
    "sync": cmd_sync,
    "diff": cmd_diff,
    "validate": cmd_validate,
    "list": cmd_list,
    "encrypt": cmd_encrypt,
    "decrypt": cmd_decrypt,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mmdot",
        description="Personal machine configuration tooling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Preview what a sync would change
    mmdot ssh sync --dry-run

    # Only hosts from sources tagged "work"
    mmdot ssh list --tags work
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help="mmdot config file (default: $MMDOT_CONFIG or ./mmdot.toml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    groups = parser.add_subparsers(dest="group", required=True)
    ssh = groups.add_parser("ssh", help="Manage SSH configurations with encryption support")
    commands = ssh.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Synchronize SSH configurations from all sources")
    sync.add_argument("--dry-run", action="store_true", help="show what would change without applying")

    commands.add_parser("diff", help="Show what would change during sync")
    commands.add_parser("validate", help="Validate SSH configuration")

    list_cmd = commands.add_parser("list", help="List all configured SSH hosts")
    list_cmd.add_argument(
        "--tags",
        action="append",
        help="filter hosts by source tags (comma separated, repeatable)",
    )

    commands.add_parser("encrypt", help="Encrypt all SSH host files referenced in configuration")
    commands.add_parser("decrypt", help="Decrypt all SSH host files we have keys for")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the mmdot CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)

    try:
        target = load_sync_target(args.config)
        if not target.sources:
            print("No SSH host sources configured in mmdot config")
            return 0

        if args.command == "sync":
            setup_audit_logging()

        return COMMANDS[args.command](target, args)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except MmdotError as e:
        logger.error(str(e))
        return 1
    except OSError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
