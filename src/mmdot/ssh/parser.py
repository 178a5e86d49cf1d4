"""Parser for existing OpenSSH client config files.

Reads the physical file into ownership-tagged ParsedHost entries. Text of
untouched entries is kept verbatim so local edits survive a rewrite.
"""
import logging
from pathlib import Path
from typing import Iterable, Optional

from ..errors import ConfigReadError
from .schema import (
    BEGIN_MARKER,
    END_MARKER,
    LOCAL,
    EntrySource,
    ParsedHost,
)

logger = logging.getLogger(__name__)


def read_config(path: Path) -> Optional[str]:
    """
    Read an SSH config file.

    Returns None when the file does not exist yet (first run).

    Raises:
        ConfigReadError: If an existing file cannot be read
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigReadError(f"failed to read SSH config {path}: {e}") from e


def _marker_name(trimmed: str, prefix: str) -> str:
    """Extract <name> from "# === BEGIN MMDOT MANAGED: <name> ===""."""
    name = trimmed[len(prefix):].strip()
    if name.endswith("==="):
        name = name[:-3]
    return name.strip()


def _is_host_line(trimmed: str) -> bool:
    return trimmed[:5].lower() == "host " or trimmed[:5].lower() == "host\t"


class SSHConfigParser:
    """
    Line-oriented parser for SSH config files with managed sections.

    With ``preserve_local`` enabled, content inside managed sections is
    dropped entirely: those sections are regenerated from their sources on
    every sync. Otherwise managed content is parsed like the rest of the
    file and tagged ``managed:<name>``.
    """

    def __init__(self, preserve_local: bool = True):
        self.preserve_local = preserve_local

    def parse_file(self, path: Path) -> list[ParsedHost]:
        """
        Parse an SSH config file.

        A missing file is the first-run case and yields no entries.

        Raises:
            ConfigReadError: If an existing file cannot be read
        """
        text = read_config(path)
        if text is None:
            logger.debug(f"SSH config {path} does not exist yet")
            return []
        return self.parse(text)

    def parse(self, text: str) -> list[ParsedHost]:
        """Parse SSH config text."""
        return self.parse_lines(text.splitlines())

    def parse_lines(self, lines: Iterable[str]) -> list[ParsedHost]:
        """Parse SSH config lines (trailing newlines are ignored)."""
        hosts: list[ParsedHost] = []
        current: Optional[ParsedHost] = None
        section: Optional[str] = None  # name of the open managed section
        comments: list[str] = []

        def close_current() -> None:
            nonlocal current
            if current is not None:
                while len(current.lines) > 1 and not current.lines[-1].strip():
                    current.lines.pop()
                hosts.append(current)
                current = None

        for raw in lines:
            line = raw.rstrip("\r\n")
            trimmed = line.strip()

            # Section markers are never retained as content
            if trimmed.startswith(BEGIN_MARKER):
                if current is not None:
                    current.lines.extend(comments)
                close_current()
                comments = []
                section = _marker_name(trimmed, BEGIN_MARKER)
                continue

            if trimmed.startswith(END_MARKER):
                if current is not None:
                    current.lines.extend(comments)
                close_current()
                comments = []
                section = None
                continue

            if section is not None and self.preserve_local:
                continue

            if trimmed.startswith("#"):
                comments.append(line)
                continue

            if _is_host_line(trimmed):
                close_current()
                source = EntrySource.managed(section) if section is not None else LOCAL
                current = ParsedHost(
                    name=trimmed[5:].strip(),
                    lines=[line],
                    comments=comments,
                    source=source,
                )
                comments = []
                continue

            if current is not None:
                # Comments followed by more body belong to the body
                current.lines.extend(comments)
                current.lines.append(line)
            elif trimmed:
                logger.debug(f"Dropping line outside any Host block: {trimmed}")
            comments = []

        if current is not None:
            current.lines.extend(comments)
        close_current()

        return hosts
