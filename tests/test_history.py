"""Tests for history bookkeeping and statistics."""

from __future__ import annotations

from datetime import timedelta

import buildmon.history as history_mod
import buildmon.records as records

from conftest import START


def build(success: bool, duration: int = 0, *errors: str) -> records.BuildRecord:
    return records.BuildRecord(
        success=success, duration=duration, errors=list(errors), timestamp=START
    )


def history_of(*flags: bool) -> records.BuildHistory:
    return records.BuildHistory(builds=[build(f) for f in flags])


class TestAppendRecord:
    def test_appends_and_stamps(self) -> None:
        later = START + timedelta(minutes=5)

        result = history_mod.append_record(records.BuildHistory(), build(True), now=later)

        assert len(result.builds) == 1
        assert result.last_updated == later

    def test_caps_oldest_first(self) -> None:
        history = records.BuildHistory()
        for i in range(101):
            history = history_mod.append_record(history, build(True, duration=i + 1))

        assert len(history.builds) == 100
        assert history.builds[0].duration == 2
        assert history.builds[-1].duration == 101

    def test_custom_limit(self) -> None:
        history = records.BuildHistory()
        for i in range(5):
            history = history_mod.append_record(history, build(True, duration=i + 1), limit=3)

        assert [b.duration for b in history.builds] == [3, 4, 5]

    def test_original_untouched(self) -> None:
        original = history_of(True)

        history_mod.append_record(original, build(False))

        assert len(original.builds) == 1


class TestCalculateStatistics:
    def test_empty_history(self) -> None:
        stats = history_mod.calculate_statistics(records.BuildHistory(), now=START)

        assert stats.total_builds == 0
        assert stats.success_rate == 0.0
        assert stats.trend == "unknown"

    def test_success_rate_and_recent_failures(self) -> None:
        stats = history_mod.calculate_statistics(
            history_of(True, True, False, True, False, True), now=START
        )

        assert stats.total_builds == 6
        assert stats.success_rate == 4 / 6
        # last five: True, False, True, False, True
        assert stats.recent_failures == 2

    def test_average_duration_ignores_untimed(self) -> None:
        history = records.BuildHistory(
            builds=[build(True, 1000), build(False, 0), build(True, 3000)]
        )

        stats = history_mod.calculate_statistics(history, now=START)

        assert stats.average_duration == 2000

    def test_trend_stable_with_few_builds(self) -> None:
        stats = history_mod.calculate_statistics(history_of(True, False, True), now=START)

        assert stats.trend == "stable"

    def test_trend_improving(self) -> None:
        flags = [False] * 10 + [True] * 10

        stats = history_mod.calculate_statistics(history_of(*flags), now=START)

        assert stats.trend == "improving"

    def test_trend_declining(self) -> None:
        flags = [True] * 10 + [False] * 10

        stats = history_mod.calculate_statistics(history_of(*flags), now=START)

        assert stats.trend == "declining"

    def test_failure_patterns_included(self) -> None:
        history = records.BuildHistory(builds=[build(False, 0, "boom 1")])

        stats = history_mod.calculate_statistics(history, now=START)

        assert [p.pattern for p in stats.failure_patterns] == ["boom N"]

    def test_with_statistics_attaches(self) -> None:
        history = history_mod.with_statistics(history_of(True, False), now=START)

        assert history.statistics.total_builds == 2
        assert history.statistics.success_rate == 0.5


class TestLastSuccessfulBuild:
    def test_newest_success(self) -> None:
        history = records.BuildHistory(
            builds=[build(True, 1), build(True, 2), build(False, 3)]
        )

        assert history_mod.last_successful_build(history).duration == 2

    def test_none_without_success(self) -> None:
        assert history_mod.last_successful_build(history_of(False, False)) is None
