"""Health report composition.

Scoring is deterministic: start at 100, subtract for a low success rate,
configuration drift and active alerts, then clamp to [0, 100] and map to a
status tier.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

import buildmon.records as records
from buildmon.types import Severity

if TYPE_CHECKING:
    import buildmon.drift as drift_mod

HEALTHY = "healthy"
WARNING = "warning"
CRITICAL = "critical"

SUCCESS_RATE_TARGET = 0.9
SUCCESS_RATE_FLOOR = 0.8
SLOW_BUILD_MS = 5 * 60 * 1000

DRIFT_PENALTY = {Severity.HIGH: 20, Severity.MEDIUM: 10, Severity.LOW: 5}
ALERT_PENALTY = {Severity.HIGH: 15, Severity.MEDIUM: 5}


def _js_round(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass
class OverallHealth:
    score: int
    status: str
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Recommendation:
    """Fixed advisory block appended by a threshold check."""

    type: str
    priority: str
    message: str
    actions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def status_for_score(score: float) -> str:
    if score >= 90:
        return HEALTHY
    if score >= 70:
        return WARNING
    return CRITICAL


def calculate_overall_health(
    stats: records.BuildStatistics,
    drift: drift_mod.DriftReport,
    active_alerts: Sequence[records.Alert],
) -> OverallHealth:
    """Score the build's health.

    Args:
        stats: Statistics of the build history.
        drift: Current configuration drift.
        active_alerts: Alerts still in the active list.

    Returns:
        OverallHealth with a score in [0, 100], its tier and the issues that
        lowered it.
    """
    score = 100.0
    issues: list[str] = []

    if stats.success_rate < SUCCESS_RATE_TARGET:
        score -= (SUCCESS_RATE_TARGET - stats.success_rate) * 100
        issues.append(f"Low success rate: {_js_round(stats.success_rate * 100)}%")

    if drift.has_drift:
        score -= DRIFT_PENALTY[drift.severity]
        issues.append(f"Configuration drift detected ({drift.severity.value} severity)")

    for severity, penalty in ALERT_PENALTY.items():
        count = sum(1 for a in active_alerts if a.severity == severity)
        score -= count * penalty
        if count:
            issues.append(f"{count} {severity.value}-severity alerts")

    score = min(100, max(0, _js_round(score)))
    return OverallHealth(score=score, status=status_for_score(score), issues=issues)


def generate_recommendations(
    stats: records.BuildStatistics,
    drift: drift_mod.DriftReport,
    active_alerts: Sequence[records.Alert],
) -> list[Recommendation]:
    """Independent threshold checks, each adding one block in a fixed order."""
    recommendations: list[Recommendation] = []

    if stats.success_rate < SUCCESS_RATE_FLOOR:
        recommendations.append(
            Recommendation(
                type="success_rate",
                priority="high",
                message="Build success rate is below 80%. Review recent failures and fix recurring issues.",
                actions=[
                    "Run automated fix: buildmon validate --auto-fix",
                    "Review error patterns in build history",
                    "Check for configuration drift",
                ],
            )
        )

    high_impact = drift.high_impact_changes if drift.has_drift else []
    if high_impact:
        recommendations.append(
            Recommendation(
                type="configuration",
                priority="high",
                message="High-impact configuration changes detected. Validate build configuration.",
                actions=[
                    "Run configuration validation: buildmon validate",
                    "Test build with current configuration",
                    "Review changes: " + ", ".join(c.file for c in high_impact),
                ],
            )
        )

    if stats.average_duration > SLOW_BUILD_MS:
        recommendations.append(
            Recommendation(
                type="performance",
                priority="medium",
                message="Build duration is longer than expected. Consider optimization.",
                actions=[
                    "Analyze bundle size",
                    "Check for unnecessary dependencies",
                    "Review TypeScript configuration for performance",
                ],
            )
        )

    if any(a.type == records.AlertKind.CONSECUTIVE_FAILURES.value for a in active_alerts):
        recommendations.append(
            Recommendation(
                type="reliability",
                priority="high",
                message="Multiple consecutive build failures detected. Immediate attention required.",
                actions=[
                    "Run build diagnostics: buildmon report",
                    "Check environment configuration",
                    "Review recent code changes",
                ],
            )
        )

    return recommendations


@dataclass
class HealthReport:
    """Full report combining statistics, drift, alerts and recommendations."""

    timestamp: datetime
    overall: OverallHealth
    statistics: records.BuildStatistics
    drift: drift_mod.DriftReport
    active_alerts: list[records.Alert]
    recommendations: list[Recommendation]

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "overall": self.overall.to_dict(),
            "buildSuccess": {
                "rate": self.statistics.success_rate,
                "trend": self.statistics.trend,
                "recentFailures": self.statistics.recent_failures,
            },
            "configurationDrift": self.drift.to_dict(),
            "activeAlerts": [a.to_json_dict() for a in self.active_alerts],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "metrics": {
                "totalBuilds": self.statistics.total_builds,
                "averageDuration": self.statistics.average_duration,
                "failurePatterns": [
                    p.to_json_dict() for p in self.statistics.failure_patterns
                ],
            },
        }


@dataclass
class HealthStatus:
    """Short status summary."""

    overall: OverallHealth
    total_builds: int
    success_rate: float
    last_build: datetime | None
    drift: drift_mod.DriftReport
    active_alerts: int
    last_update: datetime

    @property
    def status(self) -> str:
        return self.overall.status

    @property
    def score(self) -> int:
        return self.overall.score

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.overall.status,
            "score": self.overall.score,
            "issues": list(self.overall.issues),
            "metrics": {
                "totalBuilds": self.total_builds,
                "successRate": self.success_rate,
                "lastBuild": self.last_build.isoformat() if self.last_build else None,
            },
            "configurationDrift": self.drift.to_dict(),
            "activeAlerts": self.active_alerts,
            "lastUpdate": self.last_update.isoformat(),
        }


def compose_health_report(
    drift: drift_mod.DriftReport,
    alert_log: records.AlertLog,
    now: datetime,
    stats: records.BuildStatistics,
) -> HealthReport:
    active = list(alert_log.active)
    return HealthReport(
        timestamp=now,
        overall=calculate_overall_health(stats, drift, active),
        statistics=stats,
        drift=drift,
        active_alerts=active,
        recommendations=generate_recommendations(stats, drift, active),
    )


def compose_health_status(
    history: records.BuildHistory,
    drift: drift_mod.DriftReport,
    alert_log: records.AlertLog,
    now: datetime,
    stats: records.BuildStatistics,
) -> HealthStatus:
    active = list(alert_log.active)
    return HealthStatus(
        overall=calculate_overall_health(stats, drift, active),
        total_builds=stats.total_builds,
        success_rate=stats.success_rate,
        last_build=history.builds[-1].timestamp if history.builds else None,
        drift=drift,
        active_alerts=len(active),
        last_update=now,
    )
