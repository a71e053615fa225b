"""Tests for learning velocity."""

from datetime import UTC, datetime, timedelta

import pytest

from lexitrend.core.models import TestSessionRecord, TrendDirection
from lexitrend.core.velocity import TrendVelocityAnalyzer

START = datetime(2024, 1, 1, 18, 0, tzinfo=UTC)


def timeline(*scores: float) -> list[TestSessionRecord]:
    return [
        TestSessionRecord(
            id=f"s{i}",
            timestamp=START + timedelta(days=i),
            total_words=10,
            correct_words=0,
            incorrect_words=0,
            accuracy=score,
        )
        for i, score in enumerate(scores)
    ]


@pytest.fixture
def analyzer():
    return TrendVelocityAnalyzer()


class TestWindows:
    def test_short_series_overlaps(self, analyzer):
        early, previous, recent = analyzer.windows([1, 2, 3])
        assert early == [1, 2, 3]
        assert previous == [1, 2]
        assert recent == [1, 2, 3]

    def test_long_series(self, analyzer):
        values = list(range(12))
        early, previous, recent = analyzer.windows(values)
        assert early == [0, 1, 2, 3, 4]
        assert previous == [2, 3, 4, 5, 6]
        assert recent == [7, 8, 9, 10, 11]

    def test_partial_previous(self, analyzer):
        _, previous, recent = analyzer.windows([50, 55, 60, 70, 80, 90])
        assert previous == [50]
        assert recent == [55, 60, 70, 80, 90]


class TestAnalyze:
    def test_accelerating(self, analyzer):
        snapshot = analyzer.analyze(timeline(50, 55, 60, 70, 80, 90))
        assert snapshot.direction == TrendDirection.ACCELERATING
        assert snapshot.current_velocity > 0
        assert snapshot.current_velocity == pytest.approx(21.0)
        assert snapshot.session_count == 6

    def test_decelerating(self, analyzer):
        snapshot = analyzer.analyze(timeline(90, 85, 80, 70, 55, 40))
        assert snapshot.current_velocity < 0
        assert snapshot.direction == TrendDirection.DECELERATING

    def test_flat(self, analyzer):
        snapshot = analyzer.analyze(timeline(70, 70, 70, 70))
        assert snapshot.current_velocity == 0
        assert snapshot.acceleration == 0
        assert snapshot.direction == TrendDirection.STEADY
        assert snapshot.stability_factor == 1.0

    def test_fewer_than_two_sessions(self, analyzer):
        for sessions in ([], timeline(80)):
            snapshot = analyzer.analyze(sessions)
            assert snapshot.current_velocity == 0
            assert snapshot.confidence == 0
            assert snapshot.direction == TrendDirection.STEADY
        assert analyzer.analyze(timeline(80)).session_count == 1

    def test_overall_improvement(self, analyzer):
        snapshot = analyzer.analyze(timeline(*([40] * 5 + [80] * 5)))
        assert snapshot.overall_improvement == pytest.approx(40.0)
        assert snapshot.current_velocity == pytest.approx(40.0)

    def test_stability_drops_with_variance(self, analyzer):
        steady = analyzer.analyze(timeline(60, 62, 61, 60, 62))
        erratic = analyzer.analyze(timeline(10, 90, 20, 95, 15))
        assert steady.stability_factor > erratic.stability_factor
        assert 0 <= erratic.stability_factor <= 1

    def test_confidence_bounds(self, analyzer):
        for scores in ((50, 60), (10, 90, 20, 95, 15), tuple(range(40, 100, 3))):
            snapshot = analyzer.analyze(timeline(*scores))
            assert 0 <= snapshot.confidence <= 100

    def test_metric_velocities(self, analyzer):
        sessions = [
            TestSessionRecord(
                timestamp=START + timedelta(days=i),
                correct_words=correct,
                incorrect_words=10 - correct,
                hints_used=hints,
                total_time_ms=60_000 * minutes,
            )
            for i, (correct, hints, minutes) in enumerate([(5, 5, 10), (6, 4, 5), (9, 0, 2)])
        ]
        snapshot = analyzer.analyze(sessions)
        assert snapshot.velocity_by_metric.accuracy == snapshot.current_velocity
        assert snapshot.velocity_by_metric.efficiency > snapshot.current_velocity
        assert snapshot.velocity_by_metric.speed > 0
