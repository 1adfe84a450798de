"""Core enums shared across buildmon.

Severity is ordered (low < medium < high) so drift and alert aggregation
can use plain ``max()`` instead of comparing strings.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum


class Severity(str, Enum):
    """Ordered severity level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {"low": 0, "medium": 1, "high": 2}


class Phase(str, Enum):
    """Deployment mode of the monitored project."""

    SIMPLE = "simple"  # no database/auth features
    FULL = "full"  # all features enabled
    UNKNOWN = "unknown"


FEATURE_FLAGS: dict[str, str] = {
    "cms": "NEXT_PUBLIC_ENABLE_CMS",
    "auth": "NEXT_PUBLIC_ENABLE_AUTH",
    "search": "NEXT_PUBLIC_ENABLE_SEARCH",
    "ai": "NEXT_PUBLIC_ENABLE_AI",
    "media": "NEXT_PUBLIC_ENABLE_MEDIA",
}


def enabled_features(environ: Mapping[str, str]) -> dict[str, bool]:
    """Return feature name -> enabled, read from the NEXT_PUBLIC_ENABLE_* flags."""
    return {name: environ.get(var) == "true" for name, var in FEATURE_FLAGS.items()}


def detect_phase(environ: Mapping[str, str]) -> Phase:
    """Any enabled feature flag means a full deployment."""
    return Phase.FULL if any(enabled_features(environ).values()) else Phase.SIMPLE
