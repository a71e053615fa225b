"""Tests for pattern detection and insight ranking."""

from datetime import UTC, datetime

import pytest

from lexitrend.core.classifier import WordPerformanceClassifier
from lexitrend.core.models import (
    AggregateMetrics,
    Correlation,
    CorrelationDirection,
    InsightType,
    LearnerProfile,
    PatternImpact,
    PerformancePattern,
    Priority,
    Significance,
    TemporalBucket,
    TemporalKind,
    TemporalPattern,
    TestSessionRecord,
    TrendSnapshot,
    VelocityByMetric,
    WordPerformanceRecord,
)
from lexitrend.core.patterns import PatternDetector, importance_priority
from lexitrend.core.sessions import prepare_sessions
from lexitrend.core.velocity import TrendVelocityAnalyzer


def make_session(when: datetime, correct: int, hints: int = 0, breakdown=None) -> TestSessionRecord:
    data = {
        "timestamp": when.isoformat(),
        "correctWords": correct,
        "incorrectWords": 10 - correct,
        "hintsUsed": hints,
    }
    if breakdown:
        data["perChapterBreakdown"] = breakdown
    return TestSessionRecord.model_validate(data)


def at(day: int, hour: int = 9) -> datetime:
    return datetime(2024, 1, day, hour, 0, tzinfo=UTC)


def timeline(*sessions):
    return prepare_sessions(sessions).timeline


@pytest.fixture
def detector():
    return PatternDetector()


class TestImportancePriority:
    def test_mapping(self):
        assert importance_priority(5) == Priority.HIGH
        assert importance_priority(4) == Priority.HIGH
        assert importance_priority(3) == Priority.MEDIUM
        assert importance_priority(2) == Priority.LOW


class TestTemporalPatterns:
    def test_hourly_buckets_need_two_sessions(self, detector):
        sessions = timeline(
            make_session(at(1, 9), 9),
            make_session(at(2, 9), 9),
            make_session(at(3, 20), 4),
            make_session(at(4, 20), 4),
            make_session(at(5, 12), 6),
        )
        patterns = detector.temporal_patterns(sessions)
        # every weekday appears once, so only the hourly pattern survives
        assert [p.kind for p in patterns] == [TemporalKind.HOURLY]
        hourly = patterns[0]
        assert [b.key for b in hourly.buckets] == [9, 20]
        assert hourly.best_bucket.label == "09:00"
        assert hourly.best_bucket.average_accuracy == 90
        assert hourly.strength == 1.0
        assert hourly.description == "Best performance around 09:00"

    def test_weekly_ties_pick_earliest_day(self, detector):
        sessions = timeline(
            make_session(at(1, 9), 7),
            make_session(at(2, 10), 7),
            make_session(at(8, 11), 7),
            make_session(at(9, 12), 7),
        )
        weekly = next(p for p in detector.temporal_patterns(sessions) if p.kind == TemporalKind.WEEKLY)
        assert weekly.best_bucket.label == "Monday"
        assert weekly.strength == 0

    def test_empty(self, detector):
        assert detector.temporal_patterns([]) == []


class TestPerformancePatterns:
    def test_streak_and_consistency(self, detector):
        sessions = timeline(*(make_session(at(day), c) for day, c in enumerate([4, 5, 6, 7], 1)))
        patterns = detector.performance_patterns(sessions, TrendSnapshot())
        assert [p.key for p in patterns] == ["improvement_streak", "consistent_performance"]
        assert patterns[0].impact == PatternImpact.POSITIVE
        assert "Longest streak: 3 tests" in patterns[0].evidence

    def test_needs_three_sessions(self, detector):
        sessions = timeline(make_session(at(1), 5), make_session(at(2), 9))
        assert detector.performance_patterns(sessions, TrendSnapshot()) == []

    def test_speed_trend(self, detector):
        sessions = timeline(make_session(at(1), 1), make_session(at(2), 9), make_session(at(3), 2))
        snapshot = TrendSnapshot(velocity_by_metric=VelocityByMetric(speed=-0.5))
        patterns = detector.performance_patterns(sessions, snapshot)
        assert [p.key for p in patterns] == ["speed_trend"]
        assert patterns[0].name == "Answer speed decreasing"
        assert patterns[0].impact == PatternImpact.NEGATIVE


class TestCorrelations:
    def test_hints_against_accuracy(self, detector):
        sessions = timeline(
            *(make_session(at(day), c, hints=10 - c) for day, c in enumerate([5, 6, 7, 8], 1))
        )
        correlations = detector.correlations(sessions)
        assert len(correlations) == 6
        first = correlations[0]
        assert first.metrics == ("accuracy", "hints")
        assert first.coefficient == pytest.approx(-1.0)
        assert first.direction == CorrelationDirection.NEGATIVE
        assert first.significance == Significance.HIGH
        assert first.sample_size == 4

    def test_constant_series_is_neutral(self, detector):
        sessions = timeline(*(make_session(at(day), c) for day, c in enumerate([5, 6, 7], 1)))
        speed = next(c for c in detector.correlations(sessions) if c.metrics == ("accuracy", "speed"))
        assert speed.coefficient == 0
        assert speed.direction == CorrelationDirection.NEUTRAL
        assert speed.significance == Significance.LOW

    def test_too_few_points(self, detector):
        sessions = timeline(make_session(at(1), 5, hints=5), make_session(at(2), 8, hints=1))
        for correlation in detector.correlations(sessions):
            assert correlation.coefficient == 0
            assert correlation.significance == Significance.LOW
            assert correlation.sample_size == 2

    def test_chapter_coverage_is_cumulative(self, detector):
        sessions = timeline(
            make_session(at(1), 5, breakdown={"1": {"correct": 5}}),
            make_session(at(2), 5, breakdown={"2": {"correct": 5}}),
            make_session(at(3), 5, breakdown={"1": {"correct": 5}}),
        )
        assert detector.session_metrics(sessions)["chapter_completion"] == [50, 100, 100]
        assert detector.session_metrics(sessions, chapter_count=4)["chapter_completion"] == [25, 50, 50]


class TestInsights:
    def test_ranked_by_importance_then_rule_order(self, detector):
        metrics = AggregateMetrics(
            accuracy=50,
            hints_percentage=40,
            difficulty_rate=60,
            velocity=-5,
            stability=0.3,
            session_count=5,
            word_count=10,
            critical_words=["a"],
        )
        insights = detector.insights(metrics, [], [], [])
        assert [i.key for i in insights] == [
            "low_accuracy",
            "hint_dependency",
            "difficult_vocabulary",
            "declining_velocity",
            "unstable_performance",
            "critical_words",
        ]

    def test_hint_dependency(self, detector):
        metrics = AggregateMetrics(accuracy=75, hints_percentage=40, stability=0.8, session_count=3)
        insights = detector.insights(metrics, [], [], [])
        assert [i.key for i in insights] == ["hint_dependency"]
        insight = insights[0]
        assert insight.type == InsightType.WEAKNESS
        assert insight.importance == 4
        assert insight.priority == Priority.HIGH
        assert insight.suggested_actions[0] == "Reduce hint reliance"
        assert insight.estimated_impact == 10

    def test_affected_words_are_capped(self, detector):
        metrics = AggregateMetrics(critical_words=[f"w{i}" for i in range(7)])
        insight = detector.insights(metrics, [], [], [])[0]
        assert insight.key == "critical_words"
        assert insight.affected_words == ["w0", "w1", "w2", "w3", "w4"]

    def test_strengths_and_opportunities(self, detector):
        metrics = AggregateMetrics(accuracy=92, stability=0.9, session_count=5)
        temporal = TemporalPattern(
            kind=TemporalKind.HOURLY,
            description="Best performance around 09:00",
            strength=0.5,
            best_bucket=TemporalBucket(key=9, label="09:00", average_accuracy=90, observations=2),
        )
        consistency = PerformancePattern(
            key="consistent_performance",
            name="Consistent performance",
            description="Low variability in recent results",
            impact=PatternImpact.POSITIVE,
            confidence=50,
        )
        insights = detector.insights(metrics, [temporal], [consistency], [])
        assert [i.key for i in insights] == [
            "optimal_study_time",
            "consistent_performance",
            "high_accuracy",
        ]
        assert insights[0].type == InsightType.OPPORTUNITY

    def test_correlation_insights(self, detector):
        def correlation(strength, significance):
            return Correlation(
                metrics=("accuracy", "hints"),
                coefficient=-strength,
                strength=strength,
                direction=CorrelationDirection.NEGATIVE,
                significance=significance,
                sample_size=5,
                description="Accuracy and hint usage move in opposite directions",
            )

        insights = detector.insights(
            AggregateMetrics(),
            [],
            [],
            [
                correlation(0.55, Significance.HIGH),
                correlation(0.9, Significance.HIGH),
                correlation(0.4, Significance.MEDIUM),
            ],
        )
        assert [i.importance for i in insights] == [5, 3]
        assert {i.key for i in insights} == {"correlation:accuracy:hints"}


class TestDetect:
    def test_aggregate_metrics_feed_insights(self, detector):
        words = [
            WordPerformanceRecord(word_id="a", difficult=True),
            WordPerformanceRecord(word_id="b", difficult=True),
            WordPerformanceRecord(word_id="c"),
        ]
        analyses = list(WordPerformanceClassifier().classify_all(words).values())
        sessions = prepare_sessions([make_session(at(1), 5, hints=4), make_session(at(2), 6, hints=4)])
        snapshot = TrendVelocityAnalyzer().analyze(sessions.timeline)

        result = detector.detect(sessions, analyses, snapshot)
        assert result.metrics.session_count == 2
        assert result.metrics.hints_percentage == 40
        assert result.metrics.difficulty_rate == pytest.approx(66.67)
        keys = [i.key for i in result.insights]
        assert "hint_dependency" in keys
        assert "difficult_vocabulary" in keys
        assert len(result.correlations) == 6

    def test_empty_history(self, detector):
        result = detector.detect(prepare_sessions([]), [], TrendSnapshot())
        assert result.temporal_patterns == []
        assert result.performance_patterns == []
        assert result.insights == []
        assert result.learner_profile == LearnerProfile()


class TestLearnerProfile:
    def test_peak_hours(self, detector):
        sessions = timeline(
            make_session(at(1, 9), 9),
            make_session(at(2, 20), 8),
            make_session(at(3, 7), 6),
            make_session(at(4, 9), 9),
            make_session(at(5, 20), 8),
            make_session(at(6, 7), 6),
        )
        profile = detector.learner_profile(sessions, AggregateMetrics(accuracy=77), TrendSnapshot())
        assert profile.peak_hours == [9, 20]
        assert profile.challenges == []
        assert "Consistent performance" in profile.strengths

    def test_low_accuracy_is_a_challenge(self, detector):
        sessions = timeline(make_session(at(1), 3), make_session(at(2), 4))
        profile = detector.learner_profile(sessions, AggregateMetrics(accuracy=35), TrendSnapshot())
        assert "Accuracy needs work" in profile.challenges
        assert profile.peak_hours == []
