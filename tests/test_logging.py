"""Tests for logging setup, timing helpers and the sync audit log."""
import logging
from pathlib import Path

import pytest

from mmdot.ssh import DiffResult, HostChange, ChangeType, SyncResult
from mmdot.utils import (
    SyncRecord,
    get_recent_syncs,
    record_sync,
    setup_audit_logging,
    setup_logging,
    timed,
    timed_section,
)


@pytest.fixture(autouse=True)
def reset_handlers():
    yield
    for name in ("mmdot", "mmdot.audit"):
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()


@pytest.fixture
def audit_file(tmp_path):
    return setup_audit_logging(tmp_path / "audit")


def make_result(config_file: Path) -> SyncResult:
    diff = DiffResult(added=[HostChange("web", ChangeType.ADDED, "managed:work")])
    return SyncResult(
        config_file=config_file,
        dry_run=False,
        hosts_loaded=3,
        entries_written=4,
        backup_path=config_file.with_name("config.backup-20240101000000"),
        diff=diff,
    )


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "mmdot.log"

        setup_logging(log_file=log_file)
        logging.getLogger("mmdot.test").debug("hello file")

        for handler in logging.getLogger("mmdot").handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()

    def test_repeat_setup_does_not_duplicate(self, tmp_path):
        setup_logging(log_file=tmp_path / "a.log")
        setup_logging(log_file=tmp_path / "a.log")

        assert len(logging.getLogger("mmdot").handlers) == 2

    def test_unwritable_log_dir(self, tmp_path):
        """File logging is skipped when the directory cannot be created."""
        blocker = tmp_path / "file"
        blocker.write_text("")

        setup_logging(log_file=blocker / "mmdot.log")

        handlers = logging.getLogger("mmdot").handlers
        assert len(handlers) == 1

    def test_level_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MMDOT_LOG_LEVEL", "warning")

        setup_logging(log_file=tmp_path / "a.log")

        console = logging.getLogger("mmdot").handlers[0]
        assert console.level == logging.WARNING


class TestTiming:
    """Tests for timed and timed_section."""

    def test_section_logs_ok(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="mmdot.perf"):
            with timed_section("parse", path="/tmp/config"):
                pass

        assert "parse" in caplog.text
        assert "OK" in caplog.text
        assert "path=/tmp/config" in caplog.text

    def test_section_logs_failure(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="mmdot.perf"):
            with pytest.raises(ValueError):
                with timed_section("merge"):
                    raise ValueError("boom")

        assert "FAIL: boom" in caplog.text

    def test_decorator(self, caplog):
        @timed("double")
        def double(x):
            return x * 2

        with caplog.at_level(logging.DEBUG, logger="mmdot.perf"):
            assert double(4) == 8

        assert "double" in caplog.text


class TestAuditLog:
    """Tests for sync audit records."""

    def test_record_round_trip(self, audit_file, tmp_path):
        config_file = tmp_path / "config"

        record_sync(make_result(config_file), config_file, dry_run=False)

        records = get_recent_syncs(audit_file)
        assert len(records) == 1
        record = records[0]
        assert record.success
        assert record.hosts_loaded == 3
        assert record.entries_written == 4
        assert record.changes["added"] == [{"name": "web", "source": "managed:work"}]
        assert record.backup_path.endswith("config.backup-20240101000000")

    def test_failed_sync(self, audit_file, tmp_path):
        record = record_sync(None, tmp_path / "config", dry_run=True, error="bad host")

        assert not record.success
        assert get_recent_syncs(audit_file)[0].error == "bad host"

    def test_most_recent_first_and_limit(self, audit_file, tmp_path):
        for i in range(5):
            record_sync(None, tmp_path / f"config{i}", dry_run=True)

        records = get_recent_syncs(audit_file, limit=2)

        assert [r.config_file for r in records] == [
            str(tmp_path / "config4"),
            str(tmp_path / "config3"),
        ]

    def test_filter_by_config_file(self, audit_file, tmp_path):
        record_sync(None, tmp_path / "a", dry_run=True)
        record_sync(None, tmp_path / "b", dry_run=True)

        records = get_recent_syncs(audit_file, config_file=str(tmp_path / "a"))

        assert len(records) == 1

    def test_skips_malformed_lines(self, audit_file, tmp_path):
        record_sync(None, tmp_path / "config", dry_run=True)
        with open(audit_file, "a", encoding="utf-8") as f:
            f.write("not json\n")

        assert len(get_recent_syncs(audit_file)) == 1

    def test_unwritable_dir_disables_audit(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")

        assert setup_audit_logging(blocker / "audit") is None
        assert logging.getLogger("mmdot.audit").handlers == []

        record_sync(None, tmp_path / "config", dry_run=True)

    def test_missing_log(self, tmp_path):
        assert get_recent_syncs(tmp_path / "none.log") == []

    def test_json_round_trip(self):
        record = SyncRecord(
            timestamp="2024-01-01T00:00:00+00:00",
            config_file="/home/me/.ssh/config",
            dry_run=False,
            success=True,
        )

        assert SyncRecord.from_json(record.to_json()) == record
