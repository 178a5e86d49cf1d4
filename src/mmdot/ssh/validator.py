"""Validation, precedence and de-duplication of desired hosts.

Catches bad host data before the physical config is touched.
"""
from typing import Iterable

from ..errors import ValidationError
from .schema import Host, ParsedHost


def validate_host(host: Host) -> None:
    """Validate a single host (see Host.validate)."""
    host.validate()


def validate_hosts(hosts: Iterable[Host]) -> None:
    """
    Validate every host and reject repeated names.

    Scans in order and fails on the first repeated name, naming the
    sources of both conflicting entries.

    Raises:
        ValidationError: If a host is invalid or a name repeats
    """
    seen: dict[str, str] = {}  # host name -> source

    for host in hosts:
        host.validate()

        if host.name in seen:
            raise ValidationError(
                f"duplicate host name '{host.name}' found in "
                f"{seen[host.name]} and {host.source}"
            )
        seen[host.name] = host.source


def validate_entries(entries: Iterable[ParsedHost]) -> None:
    """
    Ensure the entries about to be written have unique, non-empty names.

    A hand-written local host sharing its name with a managed host ends up
    here.
    """
    seen: dict[str, str] = {}

    for entry in entries:
        if not entry.name:
            raise ValidationError("host name cannot be empty")
        if entry.name in seen:
            raise ValidationError(
                f"duplicate host name '{entry.name}' found in "
                f"{seen[entry.name]} and {entry.source}"
            )
        seen[entry.name] = str(entry.source)


def sort_by_priority(hosts: Iterable[Host]) -> list[Host]:
    """Sort hosts by priority (higher first), then by source name."""
    return sorted(hosts, key=lambda h: (-h.priority, h.source))


def deduplicate_hosts(hosts: Iterable[Host]) -> list[Host]:
    """
    Keep one host per name, preferring the higher priority.

    On equal priority the host whose source name sorts first wins, so the
    outcome never depends on input order. Names keep the position of their
    first appearance.
    """
    winners: dict[str, Host] = {}

    for host in hosts:
        current = winners.get(host.name)
        if current is None:
            winners[host.name] = host
        elif host.priority > current.priority:
            winners[host.name] = host
        elif host.priority == current.priority and host.source < current.source:
            winners[host.name] = host

    return list(winners.values())
