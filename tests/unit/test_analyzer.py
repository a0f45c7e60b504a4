"""
Tests for the Audit Anomaly Analyzer
====================================

Hourly login-failure buckets and threshold warnings.
"""

from datetime import datetime, timedelta

import pytest

from rbac_guard.access.analyzer import AuditAnomalyAnalyzer, LoginAnomaly
from rbac_guard.access.audit import AuditSink
from rbac_guard.config import Settings


def write_fails(path, actor, start, count, step=timedelta(minutes=1)):
    """Append ``count`` failed logins for ``actor`` starting at ``start``."""
    times = iter([start + step * i for i in range(count)])
    sink = AuditSink(path, clock=lambda: next(times))
    for _ in range(count):
        sink.login_fail(actor, "wrong password")


HOUR = datetime(2025, 11, 18, 10, 0, 0)


class TestThresholds:
    """Tests for the anomaly threshold."""

    def test_five_failures_in_one_hour_warns_once(self, audit_path):
        """Five failures within an hour produce exactly one warning."""
        write_fails(audit_path, "eve", HOUR + timedelta(minutes=5), 5)

        warnings = AuditAnomalyAnalyzer(audit_path).analyze()

        assert len(warnings) == 1
        assert "[eve]" in warnings[0]
        assert "[2025-11-18 10:00]" in warnings[0]
        assert "5 times" in warnings[0]

    def test_four_failures_do_not_warn(self, audit_path):
        """Four failures stay under the default threshold."""
        write_fails(audit_path, "eve", HOUR, 4)
        assert AuditAnomalyAnalyzer(audit_path).analyze() == []

    def test_failures_split_across_hours_do_not_warn(self, audit_path):
        """Three failures in each of two hours never reach five in one bucket."""
        write_fails(audit_path, "eve", HOUR + timedelta(minutes=57), 3)
        write_fails(audit_path, "eve", HOUR + timedelta(hours=1, minutes=1), 3)

        analyzer = AuditAnomalyAnalyzer(audit_path)

        assert analyzer.analyze() == []
        assert sorted(analyzer.bucket_counts().values()) == [3, 3]

    def test_custom_threshold(self, audit_path):
        """A lower threshold flags smaller buckets."""
        write_fails(audit_path, "eve", HOUR, 2)
        assert len(AuditAnomalyAnalyzer(audit_path, threshold=2).analyze()) == 1

    def test_threshold_must_be_positive(self, audit_path):
        """Thresholds below one are rejected."""
        with pytest.raises(ValueError):
            AuditAnomalyAnalyzer(audit_path, threshold=0)

    def test_from_settings(self, audit_path):
        """Path and threshold come from Settings."""
        settings = Settings(_env_file=None, AUDIT_LOG_PATH=str(audit_path), AUDIT_LOGIN_FAIL_THRESHOLD=3)
        analyzer = AuditAnomalyAnalyzer.from_settings(settings)

        assert analyzer.threshold == 3
        assert analyzer.path == audit_path


class TestBucketing:
    """Tests for which events are counted."""

    def test_only_failed_logins_count(self, audit_path):
        """Successful logins and other failures are ignored."""
        times = iter([HOUR + timedelta(seconds=i) for i in range(20)])
        sink = AuditSink(audit_path, clock=lambda: next(times))
        for _ in range(5):
            sink.login_success("eve")
            sink.fail("eve", "PERMISSION_CHECK", "USER:CREATE", "permission denied")

        assert AuditAnomalyAnalyzer(audit_path).bucket_counts() == {}

    def test_actors_are_counted_separately(self, audit_path):
        """Buckets are per actor."""
        write_fails(audit_path, "eve", HOUR, 3)
        write_fails(audit_path, "mallory", HOUR, 3)

        counts = AuditAnomalyAnalyzer(audit_path).bucket_counts()

        assert counts == {("eve", HOUR): 3, ("mallory", HOUR): 3}

    def test_malformed_lines_are_skipped(self, audit_path):
        """Garbage between valid lines does not stop the pass."""
        write_fails(audit_path, "eve", HOUR, 3)
        with open(audit_path, "a", encoding="utf-8") as handle:
            handle.write("not an audit line\n\n2025-11-18T10:30:00 AUDIT_FAIL no brackets\n")
        write_fails(audit_path, "eve", HOUR + timedelta(minutes=40), 2)

        assert len(AuditAnomalyAnalyzer(audit_path).analyze()) == 1

    def test_warnings_sorted_by_actor_then_hour(self, audit_path):
        """Warnings are ordered by actor, then hour."""
        write_fails(audit_path, "zed", HOUR, 5)
        write_fails(audit_path, "amy", HOUR + timedelta(hours=2), 5)
        write_fails(audit_path, "amy", HOUR, 5)

        anomalies = AuditAnomalyAnalyzer(audit_path).find_anomalies()

        assert [(a.actor, a.hour.hour) for a in anomalies] == [("amy", 10), ("amy", 12), ("zed", 10)]


class TestMissingFile:
    """Tests for an absent or unreadable audit log."""

    def test_missing_file_single_warning(self, tmp_path):
        """A missing file yields one explanatory warning."""
        path = tmp_path / "nope.log"
        assert AuditAnomalyAnalyzer(path).analyze() == [f"Audit log file not found: {path}"]

    def test_unreadable_file_single_warning(self, tmp_path):
        """A read error yields one warning carrying the error."""
        warnings = AuditAnomalyAnalyzer(tmp_path).analyze()  # a directory

        assert len(warnings) == 1
        assert warnings[0].startswith("Failed to read audit log:")


class TestLoginAnomaly:
    """Tests for warning text."""

    def test_describe(self):
        """The warning names actor, hour window and count."""
        anomaly = LoginAnomaly(actor="eve", hour=HOUR, count=7)
        assert anomaly.describe() == (
            "High risk: user [eve] failed to log in 7 times during hour "
            "[2025-11-18 10:00], possible brute-force or abnormal login activity"
        )
