"""Persisted data types for build history, alerts and baselines.

These models are written to and read back from the monitoring directory.
Field names are serialized in camelCase (``packageJsonHash``, ``lastUpdated``)
so the JSON files stay readable by the project's existing Node tooling.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

import pydantic as pdt
import pydantic.alias_generators as alg

from buildmon.types import Phase, Severity


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Record(
    pdt.BaseModel,
    frozen=True,
    extra="ignore",
    populate_by_name=True,
    alias_generator=alg.to_camel,
):
    """Base class for persisted records (immutable, camelCase on disk)."""

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ConfigSnapshot(Record):
    """Fingerprint of the project's build configuration.

    Each hash is a 32-bit rolling hash string, or None when the file is absent.
    """

    timestamp: datetime = pdt.Field(default_factory=utc_now)
    package_json_hash: str | None = None
    ts_config_hash: str | None = None
    ts_config_build_hash: str | None = None
    framework_config_hash: str | None = None
    env_vars_hash: str | None = None
    dependencies_hash: str | None = None


class BuildEnvironment(Record):
    """Where a build ran."""

    platform: str = ""
    ci: bool = False
    vercel: bool = False


class BuildRecord(Record):
    """One build attempt. Never mutated once appended to the history."""

    timestamp: datetime = pdt.Field(default_factory=utc_now)
    success: bool
    duration: int = 0  # milliseconds
    phase: Phase = Phase.UNKNOWN
    errors: list[str] = pdt.Field(default_factory=list)
    warnings: list[str] = pdt.Field(default_factory=list)
    environment: BuildEnvironment = pdt.Field(default_factory=BuildEnvironment)
    configuration: ConfigSnapshot = pdt.Field(default_factory=ConfigSnapshot)
    metrics: dict[str, Any] = pdt.Field(default_factory=dict)

    @pdt.field_validator("errors", "warnings", mode="before")
    @classmethod
    def _coerce_messages(cls, value: Any) -> Any:
        # Older histories stored error objects ({"type", "message", ...}).
        if not isinstance(value, list):
            return value
        return [
            str(item.get("message", item)) if isinstance(item, Mapping) else item
            for item in value
        ]


class ErrorPattern(Record):
    """A group of errors sharing the same normalized form."""

    pattern: str
    count: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    examples: list[str] = pdt.Field(default_factory=list)
    is_new: bool = False


class BuildStatistics(Record):
    """Aggregates recomputed from the history after every recorded build."""

    total_builds: int = 0
    success_rate: float = 0.0
    average_duration: float = 0.0
    trend: Literal["improving", "declining", "stable", "unknown"] = "unknown"
    recent_failures: int = 0
    failure_patterns: list[ErrorPattern] = pdt.Field(default_factory=list)


class BuildHistory(Record):
    """Contents of build-history.json."""

    builds: list[BuildRecord] = pdt.Field(default_factory=list)
    statistics: BuildStatistics = pdt.Field(default_factory=BuildStatistics)
    last_updated: datetime = pdt.Field(default_factory=utc_now)


class DriftChange(Record):
    """A single configuration artifact that changed."""

    file: str
    severity: Severity
    message: str


# =============================================================================
# Alerts
# =============================================================================


class AlertKind(str, Enum):
    """Heuristic that produced an alert."""

    CONSECUTIVE_FAILURES = "consecutive_failures"
    PERFORMANCE_DEGRADATION = "performance_degradation"
    CONFIGURATION_DRIFT = "configuration_drift"
    NEW_ERROR_PATTERN = "new_error_pattern"


class ConsecutiveFailuresData(Record):
    failure_count: int
    errors: list[str] = pdt.Field(default_factory=list)


class PerformanceDegradationData(Record):
    recent_average: float
    historical_average: float
    increase: float


class ConfigurationDriftData(Record):
    changes: list[DriftChange] = pdt.Field(default_factory=list)
    severity: Severity


class NewErrorPatternData(Record):
    patterns: list[ErrorPattern] = pdt.Field(default_factory=list)


class AlertBase(Record):
    id: str
    severity: Severity
    message: str
    timestamp: datetime = pdt.Field(default_factory=utc_now)


class ConsecutiveFailuresAlert(AlertBase):
    type: Literal["consecutive_failures"] = "consecutive_failures"
    data: ConsecutiveFailuresData


class PerformanceDegradationAlert(AlertBase):
    type: Literal["performance_degradation"] = "performance_degradation"
    data: PerformanceDegradationData


class ConfigurationDriftAlert(AlertBase):
    type: Literal["configuration_drift"] = "configuration_drift"
    data: ConfigurationDriftData


class NewErrorPatternAlert(AlertBase):
    type: Literal["new_error_pattern"] = "new_error_pattern"
    data: NewErrorPatternData


Alert = Annotated[
    Union[
        ConsecutiveFailuresAlert,
        PerformanceDegradationAlert,
        ConfigurationDriftAlert,
        NewErrorPatternAlert,
    ],
    pdt.Field(discriminator="type"),
]


class AlertLog(Record):
    """Contents of alerts.json.

    Alerts only ever leave ``active`` by expiring; ``resolved`` is kept for
    files written by other tools.
    """

    active: list[Alert] = pdt.Field(default_factory=list)
    resolved: list[Alert] = pdt.Field(default_factory=list)
