"""age encryption via the ``age`` command-line tool.

Provides:
- Decryption of host-list files to bytes (the sync decryption boundary)
- File encryption/decryption for the ``ssh encrypt`` / ``ssh decrypt`` commands
"""
import logging
import os
import subprocess
from pathlib import Path
from typing import Optional, Protocol, Sequence

from ..errors import DecryptionError

logger = logging.getLogger(__name__)


class Decryptor(Protocol):
    """Anything able to turn an encrypted host-list file into bytes."""

    def decrypt(
        self,
        path: Path,
        recipients: Sequence[str],
        identity_file: Optional[Path],
    ) -> bytes:
        ...


def get_age_binary() -> str:
    """Get the age binary from environment."""
    return os.environ.get("MMDOT_AGE_BIN", "age")


class AgeEncryptor:
    """
    Wraps the age CLI.

    Recipients are public keys (``age1...`` or ssh public keys) used for
    encryption; the identity file holds the private key used to decrypt.
    """

    def __init__(self, binary: Optional[str] = None):
        self.binary = binary or get_age_binary()

    def _run_age(self, *args: str) -> subprocess.CompletedProcess:
        """Run an age command, returning raw stdout bytes."""
        cmd = [self.binary] + list(args)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, check=False)
        except OSError as e:
            raise DecryptionError(f"failed to run {self.binary}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            logger.error(f"age command failed: {stderr}")
            raise DecryptionError(f"age command failed: {stderr}")

        return result

    def decrypt(
        self,
        path: Path,
        recipients: Sequence[str] = (),
        identity_file: Optional[Path] = None,
    ) -> bytes:
        """
        Decrypt an age file to bytes.

        Raises:
            DecryptionError: If no identity is configured or age fails
        """
        if identity_file is None:
            raise DecryptionError("no identity configured for decryption")

        result = self._run_age("--decrypt", "-i", str(identity_file), str(path))
        return result.stdout

    def decrypt_file(
        self,
        input_path: Path,
        output_path: Path,
        identity_file: Optional[Path],
    ) -> None:
        """Decrypt ``input_path`` into ``output_path``."""
        if identity_file is None:
            raise DecryptionError("no identity configured for decryption")

        self._run_age(
            "--decrypt", "-i", str(identity_file),
            "-o", str(output_path), str(input_path),
        )

    def encrypt_file(
        self,
        input_path: Path,
        output_path: Path,
        recipients: Sequence[str],
    ) -> None:
        """Encrypt ``input_path`` to every recipient, writing ``output_path``."""
        args = ["--encrypt"]
        for recipient in recipients:
            recipient = recipient.strip()
            if recipient:
                args += ["-r", recipient]

        if len(args) == 1:
            raise DecryptionError("no recipients configured for encryption")

        self._run_age(*args, "-o", str(output_path), str(input_path))
