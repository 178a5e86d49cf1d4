"""Tests for merging desired hosts into parsed entries."""
from mmdot.ssh import (
    ConfigWriter,
    EntrySource,
    Host,
    HostMerger,
    LOCAL,
    ParsedHost,
    SSHConfigParser,
)

EXISTING_X = """\
Host mine
    Hostname mine.local

# === BEGIN MMDOT MANAGED: x ===
Host old
    Hostname old.com
# === END MMDOT MANAGED: x ===
"""


def names(entries):
    return [e.name for e in entries]


def host(name, source="", priority=0):
    return Host(name=name, hostname=f"{name}.com", source=source, priority=priority)


class TestHostMerger:
    """Tests for HostMerger.merge."""

    def test_replaces_section_of_same_source(self):
        """Merging source x drops the old x section and appends the new one."""
        existing = SSHConfigParser(preserve_local=False).parse(EXISTING_X)

        result = HostMerger().merge(existing, [Host(name="new", hostname="new.com")], "x")

        assert "old" not in names(result)
        new = [e for e in result if e.name == "new"][0]
        assert new.source == EntrySource.managed("x")
        assert new.lines == ["Host new", "    Hostname new.com"]

    def test_keeps_local_entries_in_order(self):
        existing = [
            ParsedHost(name="a", lines=["Host a"]),
            ParsedHost(name="b", lines=["Host b"]),
        ]

        result = HostMerger().merge(existing, [host("c")], "p")

        assert names(result) == ["a", "b", "c"]
        assert result[0] is existing[0]

    def test_keeps_other_sources(self):
        """Sections owned by another source survive."""
        existing = [
            ParsedHost(name="local", lines=["Host local"]),
            ParsedHost(name="w1", lines=["Host w1"], source=EntrySource.managed("work")),
            ParsedHost(name="p1", lines=["Host p1"], source=EntrySource.managed("personal")),
        ]

        result = HostMerger().merge(existing, [host("p2")], "personal")

        assert names(result) == ["local", "w1", "p2"]
        assert result[1].source == EntrySource.managed("work")

    def test_desired_beats_stale_managed_entry(self):
        """A same-named entry from another managed source is dropped."""
        existing = [
            ParsedHost(name="shared", lines=["Host shared", "    Hostname stale"],
                       source=EntrySource.managed("old")),
        ]

        result = HostMerger().merge(existing, [host("shared")], "new")

        assert len(result) == 1
        assert result[0].source == EntrySource.managed("new")

    def test_local_entry_with_same_name_is_kept(self):
        """Local content is never dropped by a merge."""
        existing = [ParsedHost(name="shared", lines=["Host shared"], source=LOCAL)]

        result = HostMerger().merge(existing, [host("shared")], "p")

        assert [str(e.source) for e in result] == ["local", "managed:p"]

    def test_empty_desired_removes_section(self):
        existing = [ParsedHost(name="a", lines=["Host a"], source=EntrySource.managed("p"))]

        assert HostMerger().merge(existing, [], "p") == []

    def test_desired_order_preserved(self):
        result = HostMerger().merge([], [host("z"), host("a"), host("m")], "p")

        assert names(result) == ["z", "a", "m"]


class TestMergeAll:
    """Tests for folding merges across sources."""

    def test_multi_source_fold_keeps_all_sections(self):
        """Folding work then personal keeps both sections."""
        hosts = [
            host("w1", "work", 20),
            host("w2", "work", 20),
            host("p1", "personal", 10),
        ]
        existing = [ParsedHost(name="mine", lines=["Host mine"])]

        result = HostMerger().merge_all(existing, hosts)

        assert names(result) == ["mine", "w1", "w2", "p1"]
        assert [str(e.source) for e in result] == [
            "local", "managed:work", "managed:work", "managed:personal",
        ]

    def test_fold_over_previous_output(self):
        """Re-merging the written file keeps every source exactly once."""
        hosts = [host("w1", "work", 20), host("p1", "personal", 10)]
        merger = HostMerger()
        writer = ConfigWriter()

        first = merger.merge_all([], hosts)
        reparsed = SSHConfigParser(preserve_local=False).parse(writer.render(first))
        second = merger.merge_all(reparsed, hosts)

        assert writer.render(second) == writer.render(first)

    def test_merge_is_idempotent(self):
        """merge(parse(write(merge(...)))) equals the previous merge."""
        parser = SSHConfigParser(preserve_local=True)
        writer = ConfigWriter()
        merger = HostMerger()
        desired = [host("new", "x")]

        first = merger.merge(parser.parse(EXISTING_X), desired, "x")
        second = merger.merge(parser.parse(writer.render(first)), desired, "x")

        assert second == first
