"""Diff engine for previewing what a sync would change.

Compares the entries currently in the SSH config with the merged entries
that a sync would write.
"""
from typing import Iterable

from .schema import ChangeType, DiffResult, HostChange, ParsedHost


class DiffEngine:
    """Classify host-level changes between two entry lists."""

    def calculate(
        self,
        existing: Iterable[ParsedHost],
        merged: Iterable[ParsedHost],
    ) -> DiffResult:
        """
        Calculate changes by host name.

        - added: present only in ``merged``
        - modified: present in both with different lines
        - removed: present only in ``existing`` and owned by a managed source

        Local entries are never reported as removed.
        """
        existing_map = {entry.name: entry for entry in existing}
        merged_map = {entry.name: entry for entry in merged}

        result = DiffResult()

        for name, entry in merged_map.items():
            current = existing_map.get(name)
            if current is None:
                result.added.append(
                    HostChange(name, ChangeType.ADDED, str(entry.source))
                )
            elif current.lines != entry.lines:
                result.modified.append(
                    HostChange(name, ChangeType.MODIFIED, str(entry.source))
                )

        for name, entry in existing_map.items():
            if name not in merged_map and not entry.source.is_local:
                result.removed.append(
                    HostChange(name, ChangeType.REMOVED, str(entry.source))
                )

        return result


def summarize_diff(diff: DiffResult) -> str:
    """
    Create a human-readable summary of a diff.

    Useful for dry-run output and logging.
    """
    if diff.no_change:
        return "No changes would be made"

    lines = []

    for title, changes, label in (
        ("Hosts to be added:", diff.added, "source"),
        ("Hosts to be modified:", diff.modified, "source"),
        ("Hosts to be removed:", diff.removed, "was source"),
    ):
        if not changes:
            continue
        lines.append(title)
        for change in changes:
            lines.append(f"  - {change.name} ({label}: {change.source})")
        lines.append("")

    lines.append(
        f"Summary: {len(diff.added)} added, {len(diff.modified)} modified, "
        f"{len(diff.removed)} removed"
    )
    return "\n".join(lines)
