"""Build history bookkeeping.

The history is append-only in memory and capped: once it holds ``limit``
records the oldest are evicted first, in append order.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import buildmon.patterns as patterns
import buildmon.records as records

TREND_WINDOW = 10
TREND_MIN_BUILDS = 5
TREND_MARGIN = 0.1
RECENT_WINDOW = 5


def append_record(
    history: records.BuildHistory,
    record: records.BuildRecord,
    limit: int = 100,
    now: datetime | None = None,
) -> records.BuildHistory:
    """Return a new history with ``record`` appended and truncated to ``limit``."""
    builds = [*history.builds, record][-limit:]
    return history.model_copy(
        update={"builds": builds, "last_updated": now or records.utc_now()}
    )


def calculate_statistics(
    history: records.BuildHistory,
    now: datetime | None = None,
    pattern_window: timedelta = timedelta(hours=24),
) -> records.BuildStatistics:
    """Compute success rate, duration and trend figures for the history."""
    builds = history.builds
    total = len(builds)
    if total == 0:
        return records.BuildStatistics()

    success_rate = sum(1 for b in builds if b.success) / total

    timed = [b.duration for b in builds if b.duration]
    average_duration = sum(timed) / len(timed) if timed else 0.0

    recent = builds[-TREND_WINDOW:]
    previous = builds[-2 * TREND_WINDOW : -TREND_WINDOW]
    trend = "stable"
    if len(recent) >= TREND_MIN_BUILDS and len(previous) >= TREND_MIN_BUILDS:
        recent_rate = sum(1 for b in recent if b.success) / len(recent)
        previous_rate = sum(1 for b in previous if b.success) / len(previous)
        if recent_rate > previous_rate + TREND_MARGIN:
            trend = "improving"
        elif recent_rate < previous_rate - TREND_MARGIN:
            trend = "declining"

    return records.BuildStatistics(
        total_builds=total,
        success_rate=success_rate,
        average_duration=average_duration,
        trend=trend,
        recent_failures=sum(1 for b in builds[-RECENT_WINDOW:] if not b.success),
        failure_patterns=patterns.analyze_error_patterns(history, now, pattern_window),
    )


def with_statistics(
    history: records.BuildHistory,
    now: datetime | None = None,
    pattern_window: timedelta = timedelta(hours=24),
) -> records.BuildHistory:
    """Return the history with freshly computed statistics attached."""
    return history.model_copy(
        update={"statistics": calculate_statistics(history, now, pattern_window)}
    )


def last_successful_build(history: records.BuildHistory) -> records.BuildRecord | None:
    """Newest successful record, scanning from the end."""
    for build in reversed(history.builds):
        if build.success:
            return build
    return None
