"""Monitored build.

Wraps the framework build with monitoring:

1. pre-build checks: drift since the last successful build, current health
   and active alerts
2. the validation pipeline
3. the framework build (``npm run build``)
4. post-build checks on the build output
5. the outcome recorded as a build attempt

Pre- and post-build check failures are advisory unless strict checks are
enabled (STRICT_BUILD_CHECKS=true), in which case they fail the build.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import buildmon.drift as drift_mod
import buildmon.environment as environment
import buildmon.errors as errors
import buildmon.health as health
import buildmon.monitor as monitor_mod
import buildmon.pipeline as pipeline
import buildmon.process as process
import buildmon.records as records
import buildmon.settings as settings_mod
import buildmon.typescript as typescript
from buildmon.types import Phase, detect_phase

logger = logging.getLogger(__name__)

BUILD_COMMAND = ["npm", "run", "build"]

PRE_BUILD = "pre-build"
VALIDATION = "validation"
BUILD = "build"
POST_BUILD = "post-build"

Runner = Callable[..., process.CommandResult]


@dataclass(frozen=True)
class BuildIssue:
    stage: str
    message: str

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


@dataclass
class PreBuildSummary:
    drift: drift_mod.DriftReport
    status: health.HealthStatus
    active_alerts: list[records.Alert] = field(default_factory=list)

    @property
    def critical(self) -> bool:
        return self.status.status == health.CRITICAL


@dataclass
class MonitoredBuildReport:
    """Outcome of a monitored build."""

    phase: Phase
    success: bool = False
    duration_ms: int = 0
    build_duration_ms: int | None = None
    errors: list[BuildIssue] = field(default_factory=list)
    warnings: list[BuildIssue] = field(default_factory=list)
    pre_build: PreBuildSummary | None = None
    validation: pipeline.ValidationReport | None = None
    record: records.BuildRecord | None = None
    health: health.HealthStatus | None = None

    def summary(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "duration": round(self.duration_ms / 1000),
            "phase": self.phase.value,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "timestamp": self.record.timestamp.isoformat() if self.record else None,
        }


class MonitoredBuild:
    """Runs one monitored build.

    Example:
        settings = load_settings()
        report = MonitoredBuild(settings).run()
        report.success
    """

    def __init__(
        self,
        settings: settings_mod.BuildmonSettings,
        monitor: monitor_mod.BuildMonitor | None = None,
        environ: Mapping[str, str] | None = None,
        flags: settings_mod.RuntimeFlags | None = None,
        runner: Runner | None = None,
        type_checker: pipeline.TypeChecker = typescript.run_production_type_check,
    ) -> None:
        self.settings = settings
        self.environ = os.environ if environ is None else environ
        self.monitor = monitor or monitor_mod.BuildMonitor(settings=settings, environ=self.environ)
        self.flags = flags if flags is not None else settings_mod.RuntimeFlags()
        self.runner = runner or process.run
        self.type_checker = type_checker

    @property
    def strict(self) -> bool:
        return self.flags.strict_build_checks

    def pre_build_checks(self, report: MonitoredBuildReport) -> bool:
        """Check drift, health and alerts. Fails only when health is critical."""
        summary = PreBuildSummary(
            drift=self.monitor.detect_configuration_drift(),
            status=self.monitor.get_build_health_status(),
            active_alerts=self.monitor.get_active_alerts(),
        )
        report.pre_build = summary

        if summary.drift.has_drift:
            report.warnings.append(
                BuildIssue(
                    PRE_BUILD,
                    f"Configuration drift detected ({summary.drift.severity.value} severity)",
                )
            )
        if summary.critical:
            report.warnings.append(
                BuildIssue(PRE_BUILD, "Build system is in critical state. Recent builds may be unstable.")
            )
            return False
        return True

    def run_validation(self, report: MonitoredBuildReport) -> bool:
        options = pipeline.PipelineOptions(auto_fix=self.flags.auto_fix_deployment, monitor=False)
        try:
            result = pipeline.run_validation(
                self.settings,
                options,
                environ=self.environ,
                type_checker=self.type_checker,
            )
        except errors.BuildmonError as e:
            report.errors.append(BuildIssue(VALIDATION, f"Build validation failed: {e.context}"))
            report.errors.extend(BuildIssue(VALIDATION, line) for line in e.cause.splitlines())
            return False

        report.validation = result
        report.warnings.extend(BuildIssue(VALIDATION, w) for w in result.warnings)
        if not result.success:
            report.errors.append(BuildIssue(VALIDATION, "Build validation failed"))
            report.errors.extend(BuildIssue(VALIDATION, e) for e in result.errors)
            return False
        return True

    def run_build(self, report: MonitoredBuildReport) -> bool:
        try:
            result = self.runner(
                BUILD_COMMAND,
                cwd=self.settings.root,
                timeout=self.settings.thresholds.build_timeout,
            )
        except errors.CommandError as e:
            report.errors.append(BuildIssue(BUILD, f"Framework build could not start: {e.cause}"))
            return False
        report.build_duration_ms = result.duration_ms
        if result.ok:
            logger.info("Framework build completed in %d ms", result.duration_ms)
            return True

        if result.timed_out:
            message = f"Framework build timed out after {self.settings.thresholds.build_timeout:g}s"
        else:
            message = f"Framework build failed (exit code {result.returncode})"
        report.errors.append(BuildIssue(BUILD, message))
        return False

    def post_build_checks(self, report: MonitoredBuildReport) -> bool:
        result = environment.check_build_output(self.settings.root)
        report.errors.extend(BuildIssue(POST_BUILD, e) for e in result.errors)
        report.warnings.extend(BuildIssue(POST_BUILD, w) for w in result.warnings)
        return result.is_valid

    def run(self) -> MonitoredBuildReport:
        """Run every stage and record the outcome.

        Stages stop at the first hard failure; the attempt is recorded either way.
        """
        started = time.monotonic()
        report = MonitoredBuildReport(phase=detect_phase(self.environ))
        report.success = self._run_stages(report)
        report.duration_ms = int((time.monotonic() - started) * 1000)

        metrics: dict[str, Any] = {}
        if report.build_duration_ms is not None:
            metrics["buildDuration"] = report.build_duration_ms
        report.record = self.monitor.record_build_attempt(
            monitor_mod.BuildResult(
                success=report.success,
                duration=report.duration_ms,
                phase=report.phase,
                errors=[i.message for i in report.errors],
                warnings=[i.message for i in report.warnings],
                metrics=metrics,
            )
        )
        report.health = self.monitor.get_build_health_status()
        return report

    def _run_stages(self, report: MonitoredBuildReport) -> bool:
        if not self.pre_build_checks(report) and self.strict:
            report.errors.append(
                BuildIssue(PRE_BUILD, "Pre-build checks failed and strict mode is enabled")
            )
            return False
        if not self.run_validation(report):
            return False
        if not self.run_build(report):
            return False
        if not self.post_build_checks(report) and self.strict:
            report.errors.append(
                BuildIssue(POST_BUILD, "Post-build checks failed and strict mode is enabled")
            )
            return False
        return True
