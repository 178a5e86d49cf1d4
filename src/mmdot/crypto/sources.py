"""Bulk encryption and decryption of file-backed host sources.

``encrypt_sources`` turns plaintext host files into ``.age`` files for every
source that has recipients; ``decrypt_sources`` reverses it for every
source whose identity file is available.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from ..errors import MmdotError
from ..ssh.loader import load_host_file
from ..ssh.schema import HostSource
from ..ssh.validator import validate_hosts
from .age import AgeEncryptor

logger = logging.getLogger(__name__)

AGE_SUFFIX = ".age"


@dataclass
class StatusItem:
    """Outcome for one source."""
    ok: bool
    status: str


@dataclass
class VaultReport:
    """Outcome of an encrypt/decrypt pass over all sources."""
    items: list[StatusItem] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.ok)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if not item.ok)


def plaintext_path(encrypted_file: Path) -> Optional[Path]:
    """``hosts.toml.age`` -> ``hosts.toml``; None without an .age suffix."""
    if encrypted_file.suffix != AGE_SUFFIX:
        return None
    return encrypted_file.with_suffix("")


def encrypt_sources(
    sources: Iterable[HostSource],
    encryptor: AgeEncryptor,
) -> VaultReport:
    """Encrypt the plaintext host file of every source with recipients."""
    report = VaultReport()

    for source in sources:
        if source.is_inline:
            report.warnings.append(
                f"Source {source.name} uses inline hosts (no file to encrypt)"
            )
            continue

        if not source.recipients:
            report.warnings.append(
                f"Source {source.name} has no recipients configured for encryption"
            )
            continue

        if source.encrypted_file is None:
            report.warnings.append(
                f"Source {source.name} has no encrypted_file to encrypt into"
            )
            continue

        plain = plaintext_path(source.encrypted_file)
        if plain is None:
            report.warnings.append(
                f"Source {source.name}: encrypted_file must end in {AGE_SUFFIX}"
            )
            continue

        if not plain.exists():
            if source.encrypted_file.exists():
                report.warnings.append(
                    f"Source {source.name} already encrypted (no source file found)"
                )
            else:
                logger.debug(f"No file found for source {source.name}: {plain}")
            continue

        try:
            hosts = load_host_file(plain)
            validate_hosts(hosts)
        except MmdotError as e:
            logger.warning(f"Skipping {plain}: {e}")
            report.warnings.append(f"Source {source.name}: {e}")
            continue

        if not hosts:
            logger.debug(f"Skipping {plain}: no hosts")
            continue

        logger.info(
            f"Encrypting {plain} -> {source.encrypted_file} "
            f"({len(hosts)} hosts)"
        )
        try:
            encryptor.encrypt_file(plain, source.encrypted_file, source.recipients)
        except MmdotError as e:
            report.items.append(StatusItem(False, f"{source.name} - failed to encrypt: {e}"))
            continue

        try:
            plain.unlink()
        except OSError as e:
            logger.error(f"Failed to remove {plain} after encryption: {e}")
            report.items.append(StatusItem(
                False,
                f"{source.name} ({len(hosts)} hosts) - failed to remove source file",
            ))
            continue

        report.items.append(StatusItem(
            True, f"{source.name} ({len(hosts)} hosts) - {source.encrypted_file}"
        ))

    return report


def decrypt_sources(
    sources: Iterable[HostSource],
    encryptor: AgeEncryptor,
) -> VaultReport:
    """Decrypt every encrypted source back to its plaintext host file."""
    report = VaultReport()

    for source in sources:
        if not source.needs_decryption:
            logger.debug(f"Source {source.name} is not encrypted")
            continue

        encrypted = source.encrypted_file
        if not encrypted.exists():
            report.warnings.append(
                f"Source {source.name} encrypted file not found: {encrypted}"
            )
            continue

        if source.identity_file is None:
            report.warnings.append(
                f"Source {source.name} has no identity file specified for decryption"
            )
            continue

        output = plaintext_path(encrypted) or encrypted.with_name(
            encrypted.name + ".decrypted"
        )
        logger.info(f"Decrypting {encrypted} -> {output}")

        try:
            encryptor.decrypt_file(encrypted, output, source.identity_file)
            hosts = load_host_file(output)
        except MmdotError as e:
            report.items.append(StatusItem(False, f"{source.name} - failed to decrypt: {e}"))
            continue

        try:
            encrypted.unlink()
        except OSError as e:
            logger.error(f"Failed to remove {encrypted} after decryption: {e}")
            report.items.append(StatusItem(
                False,
                f"{source.name} ({len(hosts)} hosts) - failed to remove encrypted file",
            ))
            continue

        report.items.append(StatusItem(True, f"{source.name} ({len(hosts)} hosts) - {output}"))

    return report
