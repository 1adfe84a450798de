"""Alert engine.

Evaluates fixed heuristics against the build history every time a build is
recorded. Each heuristic yields at most one alert per evaluation; repeated
evaluations over the same failing window yield repeated alerts (there is no
duplicate suppression). Active alerts expire after the retention window.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import buildmon.patterns as patterns
import buildmon.records as records
from buildmon.types import Severity

if TYPE_CHECKING:
    import buildmon.drift as drift_mod
    import buildmon.settings as settings


@dataclass(frozen=True)
class AlertPolicy:
    """Heuristic thresholds."""

    consecutive_window: int = 5
    consecutive_failures: int = 3
    min_timed_builds: int = 5
    recent_timed_builds: int = 3
    historical_window: int = 10
    slow_build_ratio: float = 1.5
    retention: timedelta = timedelta(days=7)
    new_pattern_window: timedelta = timedelta(hours=24)

    @classmethod
    def from_thresholds(cls, thresholds: settings.Thresholds) -> AlertPolicy:
        return cls(
            consecutive_window=thresholds.consecutive_window,
            consecutive_failures=thresholds.consecutive_failures,
            slow_build_ratio=thresholds.slow_build_ratio,
            retention=timedelta(days=thresholds.alert_retention_days),
            new_pattern_window=timedelta(hours=thresholds.new_pattern_window_hours),
        )


def _alert_id(prefix: str, now: datetime) -> str:
    return f"{prefix}-{int(now.timestamp() * 1000)}"


def _consecutive_failures(
    history: records.BuildHistory, now: datetime, policy: AlertPolicy
) -> records.ConsecutiveFailuresAlert | None:
    failures = [b for b in history.builds[-policy.consecutive_window :] if not b.success]
    if len(failures) < policy.consecutive_failures:
        return None
    return records.ConsecutiveFailuresAlert(
        id=_alert_id("consecutive-failures", now),
        severity=Severity.HIGH,
        message=f"{len(failures)} consecutive build failures detected",
        timestamp=now,
        data=records.ConsecutiveFailuresData(
            failure_count=len(failures),
            errors=[error for build in failures for error in build.errors],
        ),
    )


def _performance_degradation(
    history: records.BuildHistory, now: datetime, policy: AlertPolicy
) -> records.PerformanceDegradationAlert | None:
    timed = [b.duration for b in history.builds if b.success and b.duration]
    if len(timed) < policy.min_timed_builds:
        return None

    recent = timed[-policy.recent_timed_builds :]
    historical = timed[-policy.historical_window : -policy.recent_timed_builds]
    if not historical:
        return None

    recent_avg = sum(recent) / len(recent)
    historical_avg = sum(historical) / len(historical)
    if recent_avg <= historical_avg * policy.slow_build_ratio:
        return None

    increase_pct = math.floor((recent_avg - historical_avg) / historical_avg * 100 + 0.5)
    return records.PerformanceDegradationAlert(
        id=_alert_id("slow-build", now),
        severity=Severity.MEDIUM,
        message=f"Build duration increased by {increase_pct}%",
        timestamp=now,
        data=records.PerformanceDegradationData(
            recent_average=recent_avg,
            historical_average=historical_avg,
            increase=recent_avg - historical_avg,
        ),
    )


def _configuration_drift(
    drift: drift_mod.DriftReport, now: datetime
) -> records.ConfigurationDriftAlert | None:
    # High-severity drift is raised as a medium alert.
    if not (drift.has_drift and drift.severity == Severity.HIGH):
        return None
    return records.ConfigurationDriftAlert(
        id=_alert_id("config-drift", now),
        severity=Severity.MEDIUM,
        message="High-impact configuration changes detected",
        timestamp=now,
        data=records.ConfigurationDriftData(changes=drift.changes, severity=drift.severity),
    )


def _new_error_pattern(
    record: records.BuildRecord,
    history: records.BuildHistory,
    now: datetime,
    policy: AlertPolicy,
) -> records.NewErrorPatternAlert | None:
    if record.success or not record.errors:
        return None
    new_patterns = [
        p
        for p in patterns.analyze_error_patterns(history, now, policy.new_pattern_window)
        if p.is_new
    ]
    if not new_patterns:
        return None
    return records.NewErrorPatternAlert(
        id=_alert_id("new-error-pattern", now),
        severity=Severity.MEDIUM,
        message=f"New error patterns detected: {', '.join(p.pattern for p in new_patterns)}",
        timestamp=now,
        data=records.NewErrorPatternData(patterns=new_patterns),
    )


def evaluate_alerts(
    record: records.BuildRecord,
    history: records.BuildHistory,
    drift: drift_mod.DriftReport,
    now: datetime | None = None,
    policy: AlertPolicy = AlertPolicy(),
) -> list[records.Alert]:
    """Run every heuristic once and return the alerts they produce.

    Args:
        record: The build that was just recorded.
        history: History including ``record``.
        drift: Drift of the current configuration.
        now: Evaluation time. Defaults to UTC now.
        policy: Heuristic thresholds.

    Returns:
        New alerts in heuristic order (failures, performance, drift, patterns).
    """
    now = now or records.utc_now()
    candidates = [
        _consecutive_failures(history, now, policy),
        _performance_degradation(history, now, policy),
        _configuration_drift(drift, now),
        _new_error_pattern(record, history, now, policy),
    ]
    return [alert for alert in candidates if alert is not None]


def expire_alerts(
    log: records.AlertLog,
    now: datetime | None = None,
    retention: timedelta = timedelta(days=7),
) -> records.AlertLog:
    """Drop active alerts whose own timestamp is older than ``retention``."""
    cutoff = (now or records.utc_now()) - retention
    return log.model_copy(update={"active": [a for a in log.active if a.timestamp > cutoff]})


def check_for_alerts(
    record: records.BuildRecord,
    history: records.BuildHistory,
    drift: drift_mod.DriftReport,
    log: records.AlertLog,
    now: datetime | None = None,
    policy: AlertPolicy = AlertPolicy(),
) -> tuple[records.AlertLog, list[records.Alert]]:
    """Evaluate heuristics, append new alerts to ``active`` and expire old ones.

    Returns:
        The updated alert log and the alerts raised by this call.
    """
    now = now or records.utc_now()
    new_alerts = evaluate_alerts(record, history, drift, now, policy)
    log = log.model_copy(update={"active": [*log.active, *new_alerts]})
    return expire_alerts(log, now, policy.retention), new_alerts


def get_recent_alerts(
    log: records.AlertLog,
    days: float,
    now: datetime | None = None,
) -> list[records.Alert]:
    """Active and resolved alerts raised within the last ``days`` days."""
    cutoff = (now or records.utc_now()) - timedelta(days=days)
    return [a for a in [*log.active, *log.resolved] if a.timestamp > cutoff]
