"""Build monitor.

BuildMonitor ties the pieces together over an injected store: it records
build attempts, keeps statistics current, raises alerts and answers drift
and health queries. The store, settings, environment and clock are all
injectable so tests can run entirely in memory.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import buildmon.alerts as alerts
import buildmon.drift as drift
import buildmon.health as health
import buildmon.history as history_mod
import buildmon.output as output
import buildmon.records as records
import buildmon.settings as settings_mod
import buildmon.snapshot as snapshot
import buildmon.stores as stores
from buildmon.types import Phase

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
AlertHandler = Callable[[records.Alert], None]


@dataclass
class BuildResult:
    """Outcome of a build attempt, before it becomes a BuildRecord."""

    success: bool
    duration: int = 0  # milliseconds
    phase: Phase = Phase.UNKNOWN
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)


class BuildMonitor:
    """Records builds and reports on build health.

    Example:
        monitor = BuildMonitor(store=stores.MemoryStore())
        monitor.record_build_attempt(BuildResult(success=True, duration=42_000))
        monitor.get_build_health_status().status  # "healthy"
    """

    def __init__(
        self,
        settings: settings_mod.BuildmonSettings | None = None,
        store: stores.BaseStore | None = None,
        environ: Mapping[str, str] | None = None,
        clock: Clock | None = None,
        on_alert: AlertHandler | None = None,
    ) -> None:
        if settings is None:
            settings = settings_mod.load_settings()
        self.settings = settings
        self.store = store if store is not None else settings.resolve_store()
        self.environ = os.environ if environ is None else environ
        self.clock = clock or records.utc_now
        self.on_alert = output.render_alert if on_alert is None else on_alert
        self.policy = alerts.AlertPolicy.from_thresholds(settings.thresholds)

    @property
    def _pattern_window(self) -> timedelta:
        return self.policy.new_pattern_window

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load_build_history(self) -> records.BuildHistory:
        return self.store.load_history()

    def save_build_history(self, history: records.BuildHistory) -> None:
        self.store.save_history(history)

    def load_alerts(self) -> records.AlertLog:
        return self.store.load_alerts()

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def capture_configuration(self) -> records.ConfigSnapshot:
        return snapshot.capture_configuration(
            self.settings.root,
            self.settings.files,
            self.settings.env_vars,
            self.environ,
            now=self.clock(),
        )

    def _environment(self) -> records.BuildEnvironment:
        return records.BuildEnvironment(
            platform=sys.platform,
            ci=bool(self.environ.get("CI")),
            vercel=bool(self.environ.get("VERCEL")),
        )

    def record_build_attempt(self, result: BuildResult) -> records.BuildRecord:
        """Append a build to the history and run the alert engine.

        The history is truncated to ``history_limit``, its statistics are
        recomputed and it is saved before alerts are evaluated.

        Returns:
            The appended BuildRecord.
        """
        now = self.clock()
        record = records.BuildRecord(
            timestamp=now,
            success=result.success,
            duration=result.duration,
            phase=result.phase,
            errors=list(result.errors),
            warnings=list(result.warnings),
            environment=self._environment(),
            configuration=self.capture_configuration(),
            metrics=dict(result.metrics),
        )

        history = history_mod.append_record(
            self.load_build_history(),
            record,
            limit=self.settings.thresholds.history_limit,
            now=now,
        )
        history = history_mod.with_statistics(history, now, self._pattern_window)
        self.save_build_history(history)
        logger.info(
            "Recorded %s build (%d ms, phase %s)",
            "successful" if record.success else "failed",
            record.duration,
            record.phase.value,
        )

        self.check_for_alerts(record, history)
        return record

    def check_for_alerts(
        self,
        record: records.BuildRecord,
        history: records.BuildHistory,
    ) -> list[records.Alert]:
        """Evaluate alert heuristics, persist the alert log and echo new alerts."""
        now = self.clock()
        log, new_alerts = alerts.check_for_alerts(
            record,
            history,
            self.detect_configuration_drift(history),
            self.load_alerts(),
            now=now,
            policy=self.policy,
        )
        self.store.save_alerts(log)
        for alert in new_alerts:
            logger.info("Alert raised: %s", alert.id)
            self.on_alert(alert)
        return new_alerts

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def detect_configuration_drift(
        self, history: records.BuildHistory | None = None
    ) -> drift.DriftReport:
        """Drift of the current configuration since the last successful build."""
        if history is None:
            history = self.load_build_history()
        return drift.detect_configuration_drift(
            history, self.capture_configuration(), self.settings.files
        )

    def detect_baseline_drift(self) -> drift.DriftReport:
        """Drift of the current configuration since the saved baseline."""
        return drift.detect_baseline_drift(
            self.store.load_baseline(), self.capture_configuration(), self.settings.files
        )

    def save_baseline(self) -> records.ConfigSnapshot:
        current = self.capture_configuration()
        self.store.save_baseline(current)
        return current

    def get_baseline(self) -> records.ConfigSnapshot | None:
        return self.store.load_baseline()

    def calculate_statistics(
        self, history: records.BuildHistory | None = None
    ) -> records.BuildStatistics:
        if history is None:
            history = self.load_build_history()
        return history_mod.calculate_statistics(history, self.clock(), self._pattern_window)

    def get_active_alerts(self) -> list[records.Alert]:
        return list(self.load_alerts().active)

    def get_recent_alerts(self, days: float = 7) -> list[records.Alert]:
        return alerts.get_recent_alerts(self.load_alerts(), days, self.clock())

    def generate_health_report(self) -> health.HealthReport:
        history = self.load_build_history()
        return health.compose_health_report(
            self.detect_configuration_drift(history),
            self.load_alerts(),
            self.clock(),
            self.calculate_statistics(history),
        )

    def get_build_health_status(self) -> health.HealthStatus:
        history = self.load_build_history()
        return health.compose_health_status(
            history,
            self.detect_configuration_drift(history),
            self.load_alerts(),
            self.clock(),
            self.calculate_statistics(history),
        )
