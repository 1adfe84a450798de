"""Tests for BuildMonitor over an in-memory store."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import buildmon.health as health
import buildmon.monitor as monitor_mod
import buildmon.records as records
import buildmon.settings as settings_mod
import buildmon.stores as stores
from buildmon.types import Phase, Severity

from conftest import START


def ok(duration: int = 1000) -> monitor_mod.BuildResult:
    return monitor_mod.BuildResult(success=True, duration=duration, phase=Phase.SIMPLE)


def fail(*errors: str) -> monitor_mod.BuildResult:
    return monitor_mod.BuildResult(success=False, duration=500, errors=list(errors))


class TestRecordBuildAttempt:
    def test_record_is_stored(self, monitor, environ) -> None:
        record = monitor.record_build_attempt(ok(42_000))

        history = monitor.load_build_history()
        assert history.builds == [record]
        assert record.timestamp == START
        assert record.duration == 42_000
        assert record.phase == Phase.SIMPLE
        assert record.configuration.package_json_hash is not None

    def test_statistics_saved_with_history(self, monitor) -> None:
        monitor.record_build_attempt(ok())
        monitor.record_build_attempt(fail())

        stats = monitor.load_build_history().statistics
        assert stats.total_builds == 2
        assert stats.success_rate == 0.5

    def test_environment_flags(self, settings, clock) -> None:
        monitor = monitor_mod.BuildMonitor(
            settings=settings,
            store=stores.MemoryStore(),
            environ={"CI": "true"},
            clock=clock,
            on_alert=lambda alert: None,
        )

        record = monitor.record_build_attempt(ok())

        assert record.environment.ci
        assert not record.environment.vercel

    def test_history_limit(self, project: Path, clock, environ) -> None:
        (project / "buildmon.yaml").write_text("thresholds:\n  history_limit: 3\n")
        settings = settings_mod.load_settings(project / "buildmon.yaml")
        monitor = monitor_mod.BuildMonitor(
            settings=settings, store=stores.MemoryStore(), environ=environ, clock=clock,
            on_alert=lambda alert: None,
        )

        for duration in range(1, 6):
            monitor.record_build_attempt(ok(duration))

        assert [b.duration for b in monitor.load_build_history().builds] == [3, 4, 5]


class TestAlerts:
    def test_third_failure_raises_alert(self, monitor, clock, raised) -> None:
        for _ in range(2):
            monitor.record_build_attempt(fail())
            clock.advance(seconds=1)
        assert raised == []

        monitor.record_build_attempt(fail())

        assert [a.type for a in raised] == ["consecutive_failures"]
        assert [a.type for a in monitor.get_active_alerts()] == ["consecutive_failures"]

    def test_fourth_failure_raises_another(self, monitor, clock) -> None:
        for _ in range(4):
            monitor.record_build_attempt(fail())
            clock.advance(seconds=1)

        active = monitor.get_active_alerts()
        assert len(active) == 2
        assert active[0].id != active[1].id

    def test_new_error_pattern(self, monitor, raised) -> None:
        monitor.record_build_attempt(fail("Module not found: 'lodash'"))

        assert [a.type for a in raised] == ["new_error_pattern"]

    def test_alerts_expire(self, monitor, clock) -> None:
        for _ in range(3):
            monitor.record_build_attempt(fail())
        assert monitor.get_active_alerts()

        clock.advance(days=8)
        record = records.BuildRecord(
            success=True, timestamp=clock.now, configuration=monitor.capture_configuration()
        )
        new_alerts = monitor.check_for_alerts(record, records.BuildHistory(builds=[record]))

        assert new_alerts == []
        assert monitor.get_active_alerts() == []
        assert monitor.get_recent_alerts(days=30) == []

    def test_build_config_drift_alert(self, monitor, project, raised) -> None:
        monitor.record_build_attempt(ok())
        (project / "tsconfig.build.json").write_text('{"extends": "./tsconfig.json"}')

        monitor.record_build_attempt(fail())

        (alert,) = raised
        assert alert.type == "configuration_drift"
        assert alert.severity == Severity.MEDIUM


class TestDrift:
    def test_no_successful_build(self, monitor) -> None:
        report = monitor.detect_configuration_drift()

        assert not report.has_drift
        assert report.reason == "No previous successful build found"

    def test_detects_change_since_success(self, monitor, project) -> None:
        monitor.record_build_attempt(ok())
        (project / "next.config.ts").write_text("export default { output: 'standalone' };\n")

        report = monitor.detect_configuration_drift()

        assert report.has_drift
        assert [c.file for c in report.changes] == ["next.config.ts"]
        assert report.severity == Severity.MEDIUM

    def test_env_var_change(self, monitor, environ) -> None:
        monitor.record_build_attempt(ok())
        environ["NEXT_PUBLIC_SITE_NAME"] = "Renamed"

        report = monitor.detect_configuration_drift()

        assert [c.file for c in report.changes] == ["environment variables"]

    def test_baseline(self, monitor, project) -> None:
        assert monitor.detect_baseline_drift().reason == "No saved baseline found"

        saved = monitor.save_baseline()
        manifest = json.loads((project / "package.json").read_text())
        manifest["dependencies"]["zod"] = "3.0.0"
        (project / "package.json").write_text(json.dumps(manifest))

        report = monitor.detect_baseline_drift()

        assert monitor.get_baseline() == saved
        assert [c.file for c in report.changes] == ["package.json", "dependencies"]
        assert report.severity == Severity.HIGH


class TestHealth:
    def test_healthy_after_successes(self, monitor, clock) -> None:
        for _ in range(3):
            monitor.record_build_attempt(ok())
            clock.advance(minutes=1)

        status = monitor.get_build_health_status()

        assert status.score == 100
        assert status.status == health.HEALTHY
        assert status.total_builds == 3
        assert status.last_build == START + timedelta(minutes=2)

    def test_empty_history_status(self, monitor) -> None:
        status = monitor.get_build_health_status()

        assert status.total_builds == 0
        assert status.last_build is None
        assert status.status == health.CRITICAL

    def test_report_after_failures(self, monitor, clock) -> None:
        for _ in range(3):
            monitor.record_build_attempt(fail())
            clock.advance(seconds=1)

        report = monitor.generate_health_report()
        data = report.to_dict()

        assert data["overall"]["status"] == health.CRITICAL
        assert data["metrics"]["totalBuilds"] == 3
        assert [r["type"] for r in data["recommendations"]] == ["success_rate", "reliability"]
