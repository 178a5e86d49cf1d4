"""Render ParsedHost entries back to OpenSSH config text."""
import io
from typing import Iterable, TextIO

from .schema import BEGIN_MARKER, END_MARKER, LOCAL, EntrySource, ParsedHost


class ConfigWriter:
    """
    Write entries in linear or grouped-by-source layout.

    Grouped layout puts local entries first and wraps each managed source
    in BEGIN/END marker lines. Write errors propagate to the caller.
    """

    def write(
        self,
        out: TextIO,
        entries: Iterable[ParsedHost],
        grouped: bool = True,
    ) -> None:
        if grouped:
            self._write_grouped(out, list(entries))
        else:
            self._write_linear(out, list(entries))

    def render(self, entries: Iterable[ParsedHost], grouped: bool = True) -> str:
        """Return the text ``write`` would produce."""
        buf = io.StringIO()
        self.write(buf, entries, grouped)
        return buf.getvalue()

    def _write_entry(self, out: TextIO, entry: ParsedHost) -> None:
        for comment in entry.comments:
            out.write(comment + "\n")
        for line in entry.lines:
            out.write(line + "\n")

    def _write_block(self, out: TextIO, entries: list[ParsedHost]) -> None:
        """Write entries separated by single blank lines."""
        for i, entry in enumerate(entries):
            if i > 0:
                out.write("\n")
            self._write_entry(out, entry)

    def _write_linear(self, out: TextIO, entries: list[ParsedHost]) -> None:
        self._write_block(out, entries)

    def _write_grouped(self, out: TextIO, entries: list[ParsedHost]) -> None:
        groups: dict[EntrySource, list[ParsedHost]] = {}
        for entry in entries:
            groups.setdefault(entry.source, []).append(entry)

        local_entries = groups.pop(LOCAL, [])
        if local_entries:
            self._write_block(out, local_entries)
            out.write("\n")

        for source, section in groups.items():
            name = source.managed_by
            out.write(f"{BEGIN_MARKER} {name} ===\n")
            self._write_block(out, section)
            out.write(f"{END_MARKER} {name} ===\n")
            out.write("\n")
