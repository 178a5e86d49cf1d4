"""Merge desired hosts into the entries of an existing SSH config."""
import logging
from typing import Iterable

from .schema import EntrySource, Host, ParsedHost

logger = logging.getLogger(__name__)


class HostMerger:
    """
    Combine parsed entries with prioritized batches of desired hosts.

    Each call replaces the managed section of one source. Entries owned by
    other sources and local entries are kept, so merges can be folded
    source by source without losing previously written sections.
    """

    def merge(
        self,
        existing: Iterable[ParsedHost],
        desired: list[Host],
        source_name: str,
    ) -> list[ParsedHost]:
        """
        Replace the section of ``source_name`` with ``desired``.

        For each existing entry, in order:
        1. drop it if it belongs to ``managed:<source_name>``
        2. drop it if a desired host has the same name and it is not local
        3. keep it otherwise

        Fresh entries for the desired hosts are appended in the given order.

        Args:
            existing: Entries parsed from (or previously merged into) the file
            desired: Hosts of a single source
            source_name: Name of that source

        Returns:
            Retained entries in original order followed by the new batch
        """
        replaced = EntrySource.managed(source_name)
        desired_names = {host.name for host in desired}
        result: list[ParsedHost] = []
        dropped = 0

        for entry in existing:
            if entry.source == replaced:
                dropped += 1
                continue

            if entry.name in desired_names and not entry.source.is_local:
                logger.debug(
                    f"Host {entry.name} from {entry.source} superseded by {replaced}"
                )
                dropped += 1
                continue

            result.append(entry)

        for host in desired:
            result.append(ParsedHost.from_host(host, source_name))

        logger.debug(
            f"Merged source {source_name}: kept {len(result) - len(desired)}, "
            f"dropped {dropped}, added {len(desired)}"
        )
        return result

    def merge_all(
        self,
        existing: Iterable[ParsedHost],
        hosts: Iterable[Host],
    ) -> list[ParsedHost]:
        """
        Fold ``merge`` over every distinct source present in ``hosts``.

        Sources are merged in order of first appearance, which for a
        priority-sorted host list means highest priority first.
        """
        by_source: dict[str, list[Host]] = {}
        for host in hosts:
            by_source.setdefault(host.source, []).append(host)

        result = list(existing)
        for source_name, source_hosts in by_source.items():
            result = self.merge(result, source_hosts, source_name)

        return result
