"""Configuration drift detection.

Compares the current configuration fingerprint against a baseline (the
snapshot stored with the last successful build, or a manually saved one)
and classifies each changed artifact by severity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import buildmon.history as history_mod
import buildmon.records as records
from buildmon.types import Severity

if TYPE_CHECKING:
    import buildmon.settings as settings

NO_SUCCESSFUL_BUILD = "No previous successful build found"
NO_BASELINE = "No saved baseline found"

# (snapshot field, default file name, severity)
_FILE_CHECKS: list[tuple[str, str, Severity]] = [
    ("package_json_hash", "package.json", Severity.HIGH),
    ("ts_config_hash", "tsconfig.json", Severity.MEDIUM),
    ("ts_config_build_hash", "tsconfig.build.json", Severity.HIGH),
    ("framework_config_hash", "next.config.ts", Severity.MEDIUM),
]


@dataclass
class DriftReport:
    """Result of a drift check. Computed on demand, never persisted on its own."""

    has_drift: bool = False
    changes: list[records.DriftChange] = field(default_factory=list)
    severity: Severity = Severity.LOW
    reason: str | None = None

    @property
    def high_impact_changes(self) -> list[records.DriftChange]:
        return [c for c in self.changes if c.severity == Severity.HIGH]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"hasDrift": self.has_drift}
        if self.reason is not None:
            data["reason"] = self.reason
        data["changes"] = [c.to_json_dict() for c in self.changes]
        data["severity"] = self.severity.value
        return data


def _file_names(files: settings.TrackedFiles | None) -> dict[str, str]:
    if files is None:
        return {fld: name for fld, name, _ in _FILE_CHECKS}
    return {
        "package_json_hash": files.package_json,
        "ts_config_hash": files.ts_config,
        "ts_config_build_hash": files.ts_config_build,
        "framework_config_hash": files.framework_config,
    }


def compare_snapshots(
    baseline: records.ConfigSnapshot,
    current: records.ConfigSnapshot,
    files: settings.TrackedFiles | None = None,
    since: str = "last successful build",
) -> DriftReport:
    """Compare two fingerprints field by field.

    Tracked files report any difference, including appearing or
    disappearing. Dependencies and environment variables are each reported
    as one generic change, and only when both sides have a hash.

    Args:
        baseline: Fingerprint to compare against.
        current: Fingerprint of the configuration now.
        files: Tracked file names, used in change messages.
        since: What the baseline represents, used in change messages.

    Returns:
        DriftReport whose severity is the highest among its changes.
    """
    names = _file_names(files)
    changes: list[records.DriftChange] = []

    for fld, _, severity in _FILE_CHECKS:
        if getattr(current, fld) != getattr(baseline, fld):
            name = names[fld]
            changes.append(
                records.DriftChange(
                    file=name,
                    severity=severity,
                    message=f"{name} has been modified since {since}",
                )
            )

    if (
        current.dependencies_hash
        and baseline.dependencies_hash
        and current.dependencies_hash != baseline.dependencies_hash
    ):
        changes.append(
            records.DriftChange(
                file="dependencies",
                severity=Severity.MEDIUM,
                message="Package dependencies have been modified",
            )
        )

    if (
        current.env_vars_hash
        and baseline.env_vars_hash
        and current.env_vars_hash != baseline.env_vars_hash
    ):
        changes.append(
            records.DriftChange(
                file="environment variables",
                severity=Severity.LOW,
                message="Environment variables have been modified",
            )
        )

    return DriftReport(
        has_drift=bool(changes),
        changes=changes,
        severity=max((c.severity for c in changes), default=Severity.LOW),
    )


def detect_configuration_drift(
    history: records.BuildHistory,
    current: records.ConfigSnapshot,
    files: settings.TrackedFiles | None = None,
) -> DriftReport:
    """Compare ``current`` against the snapshot of the last successful build."""
    last_success = history_mod.last_successful_build(history)
    if last_success is None:
        return DriftReport(has_drift=False, reason=NO_SUCCESSFUL_BUILD)
    return compare_snapshots(last_success.configuration, current, files)


def detect_baseline_drift(
    baseline: records.ConfigSnapshot | None,
    current: records.ConfigSnapshot,
    files: settings.TrackedFiles | None = None,
) -> DriftReport:
    """Compare ``current`` against a manually saved baseline."""
    if baseline is None:
        return DriftReport(has_drift=False, reason=NO_BASELINE)
    return compare_snapshots(baseline, current, files, since="baseline was saved")
