"""Temporal patterns, cross-metric correlations and ranked insights."""

import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from itertools import combinations

from lexitrend.core.models import (
    AggregateMetrics,
    Correlation,
    CorrelationDirection,
    Insight,
    InsightType,
    LearnerProfile,
    PatternAnalysis,
    PatternImpact,
    PerformancePattern,
    Priority,
    Significance,
    TemporalBucket,
    TemporalKind,
    TemporalPattern,
    TestSessionRecord,
    TrendSnapshot,
    WordAnalysis,
    WordStatus,
)
from lexitrend.core.sessions import SessionSet, hint_rate, words_per_minute
from lexitrend.core.stats import clamp, linear_regression, mean, pearson, percentage, pstdev, pvariance
from lexitrend.core.thresholds import DEFAULT_THRESHOLDS, InsightThresholds, PatternThresholds

logger = logging.getLogger(__name__)

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

METRIC_LABELS = {
    "accuracy": "Accuracy",
    "hints": "Hint usage",
    "speed": "Answer speed",
    "chapter_completion": "Chapter coverage",
}


def importance_priority(importance: int) -> Priority:
    if importance >= 4:
        return Priority.HIGH
    if importance == 3:
        return Priority.MEDIUM
    return Priority.LOW


@dataclass(frozen=True)
class InsightRule:
    """One row of the insight rule table."""

    key: str
    type: InsightType
    importance: int
    title: str
    suggested_actions: tuple[str, ...]
    applies: Callable[["_RuleContext"], bool]
    describe: Callable[["_RuleContext"], tuple[str, list[str]]]
    impact: Callable[["_RuleContext"], float] = lambda ctx: 0.0
    affected: Callable[["_RuleContext"], list[str]] = lambda ctx: []


@dataclass(frozen=True)
class _RuleContext:
    metrics: AggregateMetrics
    thresholds: InsightThresholds
    best_temporal: TemporalPattern | None
    consistency: PerformancePattern | None


def _best_temporal(patterns: Sequence[TemporalPattern]) -> TemporalPattern | None:
    """Strongest temporal pattern; hourly wins ties because it is listed first."""
    best = None
    for pattern in patterns:
        if best is None or pattern.strength > best.strength:
            best = pattern
    return best


INSIGHT_RULES: tuple[InsightRule, ...] = (
    InsightRule(
        key="hint_dependency",
        type=InsightType.WEAKNESS,
        importance=4,
        title="High hint dependency",
        suggested_actions=(
            "Reduce hint reliance",
            "Wait a few seconds before asking for a hint",
        ),
        applies=lambda c: c.metrics.hints_percentage > c.thresholds.hint_dependency_percentage,
        describe=lambda c: (
            f"Hints are used on {c.metrics.hints_percentage:.0f}% of answers.",
            [f"Hint rate {c.metrics.hints_percentage:.1f}% across {c.metrics.session_count} sessions"],
        ),
        impact=lambda c: min(20.0, c.metrics.hints_percentage - c.thresholds.hint_dependency_percentage),
    ),
    InsightRule(
        key="difficult_vocabulary",
        type=InsightType.WEAKNESS,
        importance=4,
        title="Large share of difficult words",
        suggested_actions=(
            "Split difficult words into smaller review batches",
            "Add example sentences to difficult words",
        ),
        applies=lambda c: c.metrics.difficulty_rate > c.thresholds.difficulty_rate,
        describe=lambda c: (
            f"{c.metrics.difficulty_rate:.0f}% of the vocabulary is marked difficult.",
            [f"Difficulty rate {c.metrics.difficulty_rate:.1f}% of {c.metrics.word_count} words"],
        ),
        impact=lambda c: 10.0,
    ),
    InsightRule(
        key="low_accuracy",
        type=InsightType.RISK,
        importance=5,
        title="Accuracy below target",
        suggested_actions=(
            "Focus on words below 60% accuracy",
            "Shorten the gap between reviews",
        ),
        applies=lambda c: (
            c.metrics.session_count > 0 and c.metrics.accuracy < c.thresholds.low_accuracy
        ),
        describe=lambda c: (
            f"Average test accuracy is {c.metrics.accuracy:.0f}%.",
            [f"Mean accuracy {c.metrics.accuracy:.1f}% over {c.metrics.session_count} sessions"],
        ),
        impact=lambda c: c.thresholds.low_accuracy - c.metrics.accuracy,
    ),
    InsightRule(
        key="declining_velocity",
        type=InsightType.RISK,
        importance=4,
        title="Performance is declining",
        suggested_actions=(
            "Revisit material from recent chapters",
            "Take a short break and review consolidated words",
        ),
        applies=lambda c: c.metrics.velocity < c.thresholds.declining_velocity,
        describe=lambda c: (
            f"Recent sessions average {abs(c.metrics.velocity):.1f} points below the previous ones.",
            [f"Velocity {c.metrics.velocity:+.1f} points"],
        ),
        impact=lambda c: min(20.0, abs(c.metrics.velocity)),
    ),
    InsightRule(
        key="unstable_performance",
        type=InsightType.WEAKNESS,
        importance=3,
        title="Inconsistent results",
        suggested_actions=(
            "Keep a fixed study routine",
            "Test smaller word sets more often",
        ),
        applies=lambda c: (
            c.metrics.session_count >= 2 and c.metrics.stability < c.thresholds.unstable_factor
        ),
        describe=lambda c: (
            "Recent test scores vary widely from session to session.",
            [f"Stability factor {c.metrics.stability:.2f}"],
        ),
        impact=lambda c: 8.0,
    ),
    InsightRule(
        key="critical_words",
        type=InsightType.WEAKNESS,
        importance=3,
        title="Words in critical state",
        suggested_actions=(
            "Drill critical words daily",
            "Use mnemonics for the hardest words",
        ),
        applies=lambda c: bool(c.metrics.critical_words),
        describe=lambda c: (
            f"{len(c.metrics.critical_words)} word(s) are at or below 30% accuracy.",
            [f"{len(c.metrics.critical_words)} critical word(s)"],
        ),
        impact=lambda c: min(15.0, 2.0 * len(c.metrics.critical_words)),
        affected=lambda c: c.metrics.critical_words[:5],
    ),
    InsightRule(
        key="optimal_study_time",
        type=InsightType.OPPORTUNITY,
        importance=4,
        title="Optimal study time identified",
        suggested_actions=(
            "Schedule sessions at your peak time",
            "Avoid times with low performance",
        ),
        applies=lambda c: (
            c.best_temporal is not None and c.best_temporal.strength > c.thresholds.temporal_strength
        ),
        describe=lambda c: (
            c.best_temporal.description,
            [f"Temporal pattern strength {c.best_temporal.strength:.0%}"],
        ),
        impact=lambda c: min(15.0, c.best_temporal.strength * 100),
    ),
    InsightRule(
        key="consistent_performance",
        type=InsightType.STRENGTH,
        importance=3,
        title="Stable performance",
        suggested_actions=("Keep the current routine", "Build on your strengths"),
        applies=lambda c: c.consistency is not None,
        describe=lambda c: (c.consistency.description, list(c.consistency.evidence)),
        impact=lambda c: 10.0,
    ),
    InsightRule(
        key="high_accuracy",
        type=InsightType.STRENGTH,
        importance=2,
        title="High accuracy",
        suggested_actions=("Introduce new chapters", "Reduce review of easy words"),
        applies=lambda c: (
            c.metrics.session_count > 0 and c.metrics.accuracy >= c.thresholds.high_accuracy
        ),
        describe=lambda c: (
            f"Average test accuracy is {c.metrics.accuracy:.0f}%.",
            [f"Mean accuracy {c.metrics.accuracy:.1f}%"],
        ),
        impact=lambda c: 5.0,
    ),
)


class PatternDetector:
    """Mines temporal patterns and correlations and ranks insights."""

    def __init__(
        self,
        thresholds: PatternThresholds = DEFAULT_THRESHOLDS.pattern,
        insight_thresholds: InsightThresholds = DEFAULT_THRESHOLDS.insight,
        rules: Sequence[InsightRule] = INSIGHT_RULES,
    ):
        self.thresholds = thresholds
        self.insight_thresholds = insight_thresholds
        self.rules = tuple(rules)

    def detect(
        self,
        sessions: SessionSet,
        words: Sequence[WordAnalysis],
        snapshot: TrendSnapshot,
        chapter_count: int | None = None,
    ) -> PatternAnalysis:
        """Run every detector and rank the resulting insights."""
        timeline = sessions.timeline
        temporal = self.temporal_patterns(timeline)
        performance = self.performance_patterns(timeline, snapshot)
        correlations = self.correlations(timeline, chapter_count)
        metrics = self.aggregate_metrics(sessions, words, snapshot)
        insights = self.insights(metrics, temporal, performance, correlations)
        profile = self.learner_profile(timeline, metrics, snapshot)
        logger.debug(
            "Detected %d temporal, %d performance patterns, %d insights",
            len(temporal),
            len(performance),
            len(insights),
        )
        return PatternAnalysis(
            temporal_patterns=temporal,
            performance_patterns=performance,
            correlations=correlations,
            insights=insights,
            metrics=metrics,
            learner_profile=profile,
        )

    # ------------------------------------------------------------------
    # Temporal
    # ------------------------------------------------------------------

    def temporal_patterns(self, timeline: Sequence[TestSessionRecord]) -> list[TemporalPattern]:
        patterns = []
        hourly = self._temporal(
            timeline,
            TemporalKind.HOURLY,
            key=lambda s: s.timestamp.hour,
            label=lambda h: f"{h:02d}:00",
        )
        if hourly:
            patterns.append(hourly)
        weekly = self._temporal(
            timeline,
            TemporalKind.WEEKLY,
            key=lambda s: s.timestamp.weekday(),
            label=lambda d: WEEKDAYS[d],
        )
        if weekly:
            patterns.append(weekly)
        return patterns

    def _temporal(
        self,
        timeline: Sequence[TestSessionRecord],
        kind: TemporalKind,
        key: Callable[[TestSessionRecord], int],
        label: Callable[[int], str],
    ) -> TemporalPattern | None:
        grouped: dict[int, list[float]] = defaultdict(list)
        for session in timeline:
            grouped[key(session)].append(session.score)

        buckets = [
            TemporalBucket(
                key=k,
                label=label(k),
                average_accuracy=round(mean(scores), 2),
                observations=len(scores),
            )
            for k, scores in sorted(grouped.items())
            if len(scores) >= self.thresholds.min_bucket_sessions
        ]
        if not buckets:
            return None

        strength = clamp(
            pvariance([mean(grouped[b.key]) for b in buckets]) / self.thresholds.temporal_variance_scale,
            0.0,
            1.0,
        )
        best = min(buckets, key=lambda b: (-b.average_accuracy, b.key))
        if kind == TemporalKind.HOURLY:
            description = f"Best performance around {best.label}"
        else:
            description = f"Best performance on {best.label}"
        return TemporalPattern(
            kind=kind,
            description=description,
            strength=round(strength, 4),
            best_bucket=best,
            buckets=buckets,
        )

    # ------------------------------------------------------------------
    # Performance
    # ------------------------------------------------------------------

    def performance_patterns(
        self,
        timeline: Sequence[TestSessionRecord],
        snapshot: TrendSnapshot,
    ) -> list[PerformancePattern]:
        t = self.thresholds
        scores = [s.score for s in timeline]
        if len(scores) < 3:
            return []

        patterns: list[PerformancePattern] = []

        run = longest = streaks = 0
        for previous, current in zip(scores, scores[1:]):
            if current > previous:
                run += 1
                longest = max(longest, run)
            else:
                if run >= t.improvement_streak:
                    streaks += 1
                run = 0
        if run >= t.improvement_streak:
            streaks += 1
        if longest >= t.improvement_streak:
            patterns.append(
                PerformancePattern(
                    key="improvement_streak",
                    name="Improvement streak",
                    description=f"Scores improved {longest} tests in a row",
                    impact=PatternImpact.POSITIVE,
                    confidence=min(100.0, longest * 15.0),
                    evidence=[f"{streaks} improvement streak(s)", f"Longest streak: {longest} tests"],
                )
            )

        recent = scores[-t.consistency_window :]
        deviation = pstdev(recent)
        if deviation < t.consistency_stddev:
            patterns.append(
                PerformancePattern(
                    key="consistent_performance",
                    name="Consistent performance",
                    description=f"Low variability in recent results (sd {deviation:.0f} points)",
                    impact=PatternImpact.POSITIVE,
                    confidence=round(min(100.0, (t.consistency_stddev - deviation) * 6), 2),
                    evidence=[
                        f"Standard deviation: {deviation:.0f} points",
                        f"Mean of last {len(recent)} tests: {mean(recent):.0f}%",
                    ],
                )
            )

        speed = snapshot.velocity_by_metric.speed
        if abs(speed) > t.speed_trend:
            faster = speed > 0
            patterns.append(
                PerformancePattern(
                    key="speed_trend",
                    name="Answer speed increasing" if faster else "Answer speed decreasing",
                    description=f"Words per minute {'rising' if faster else 'falling'} in recent tests",
                    impact=PatternImpact.POSITIVE if faster else PatternImpact.NEGATIVE,
                    confidence=round(min(100.0, abs(speed) * 200), 2),
                    evidence=[f"Speed velocity {speed:+.2f} words/min"],
                )
            )
        return patterns

    # ------------------------------------------------------------------
    # Correlations
    # ------------------------------------------------------------------

    def session_metrics(
        self,
        timeline: Sequence[TestSessionRecord],
        chapter_count: int | None = None,
    ) -> dict[str, list[float]]:
        """Per-session values for every tracked metric, in timeline order."""
        seen: set[str] = set()
        for session in timeline:
            seen.update(session.per_chapter_breakdown)
        total_chapters = chapter_count or len(seen)

        covered: set[str] = set()
        coverage: list[float] = []
        for session in timeline:
            covered.update(ch for ch, c in session.per_chapter_breakdown.items() if c.answered > 0)
            coverage.append(min(100.0, percentage(len(covered), total_chapters)))

        return {
            "accuracy": [s.score for s in timeline],
            "hints": [hint_rate(s) for s in timeline],
            "speed": [words_per_minute(s) for s in timeline],
            "chapter_completion": coverage,
        }

    def correlations(
        self,
        timeline: Sequence[TestSessionRecord],
        chapter_count: int | None = None,
    ) -> list[Correlation]:
        t = self.thresholds
        series = self.session_metrics(timeline, chapter_count)
        results = []
        for left, right in combinations(series, 2):
            xs, ys = series[left], series[right]
            n = len(xs)
            r = pearson(xs, ys) if n >= t.min_correlation_points else 0.0
            strength = abs(r)
            if strength >= t.high_significance:
                significance = Significance.HIGH
            elif strength >= t.medium_significance:
                significance = Significance.MEDIUM
            else:
                significance = Significance.LOW
            if r > 0:
                direction = CorrelationDirection.POSITIVE
            elif r < 0:
                direction = CorrelationDirection.NEGATIVE
            else:
                direction = CorrelationDirection.NEUTRAL
            results.append(
                Correlation(
                    metrics=(left, right),
                    coefficient=round(r, 4),
                    strength=round(strength, 4),
                    direction=direction,
                    significance=significance,
                    sample_size=n,
                    description=self._describe_correlation(left, right, direction, significance),
                )
            )
        return results

    @staticmethod
    def _describe_correlation(
        left: str,
        right: str,
        direction: CorrelationDirection,
        significance: Significance,
    ) -> str:
        pair = f"{METRIC_LABELS[left]} and {METRIC_LABELS[right].lower()}"
        if direction == CorrelationDirection.NEUTRAL:
            return f"No measurable relationship between {pair.lower()}"
        if direction == CorrelationDirection.POSITIVE:
            moves = "rise together"
        else:
            moves = "move in opposite directions"
        return f"{pair} {moves} ({significance.value} significance)"

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def aggregate_metrics(
        self,
        sessions: SessionSet,
        words: Sequence[WordAnalysis],
        snapshot: TrendSnapshot,
    ) -> AggregateMetrics:
        usable = sessions.usable
        answered = sum(s.answered or s.total_words for s in usable)
        hints = sum(s.hints_used for s in usable)
        difficult = sum(1 for w in words if w.difficult)
        return AggregateMetrics(
            accuracy=round(mean([s.score for s in usable]), 2),
            hints_percentage=round(percentage(hints, answered), 2),
            difficulty_rate=round(percentage(difficult, len(words)), 2),
            velocity=snapshot.current_velocity,
            stability=snapshot.stability_factor,
            session_count=len(usable),
            word_count=len(words),
            critical_words=[w.word_id for w in words if w.status == WordStatus.CRITICAL],
            words_per_minute=round(mean([words_per_minute(s) for s in sessions.timeline]), 2),
        )

    def insights(
        self,
        metrics: AggregateMetrics,
        temporal: Sequence[TemporalPattern],
        performance: Sequence[PerformancePattern],
        correlations: Sequence[Correlation],
    ) -> list[Insight]:
        """Evaluate every rule independently and rank matches by importance."""
        context = _RuleContext(
            metrics=metrics,
            thresholds=self.insight_thresholds,
            best_temporal=_best_temporal(temporal),
            consistency=next((p for p in performance if p.key == "consistent_performance"), None),
        )

        insights: list[Insight] = []
        for rule in self.rules:
            if not rule.applies(context):
                continue
            description, evidence = rule.describe(context)
            insights.append(
                Insight(
                    key=rule.key,
                    type=rule.type,
                    title=rule.title,
                    description=description,
                    importance=rule.importance,
                    priority=importance_priority(rule.importance),
                    evidence=evidence,
                    suggested_actions=list(rule.suggested_actions),
                    estimated_impact=round(max(0.0, rule.impact(context)), 2),
                    affected_words=rule.affected(context),
                )
            )

        for correlation in correlations:
            if correlation.significance != Significance.HIGH:
                continue
            strong = correlation.strength >= self.insight_thresholds.strong_correlation
            importance = 5 if strong else 3
            left, right = correlation.metrics
            insights.append(
                Insight(
                    key=f"correlation:{left}:{right}",
                    type=InsightType.OPPORTUNITY,
                    title=f"Significant correlation: {METRIC_LABELS[left]} / {METRIC_LABELS[right]}",
                    description=correlation.description,
                    importance=importance,
                    priority=importance_priority(importance),
                    evidence=[
                        f"r = {correlation.coefficient:+.2f} over {correlation.sample_size} sessions"
                    ],
                    suggested_actions=["Monitor this relationship in upcoming sessions"],
                    estimated_impact=round(correlation.strength * 20, 2),
                )
            )

        # sorted() is stable: rule order breaks importance ties
        return sorted(insights, key=lambda i: -i.importance)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def learner_profile(
        self,
        timeline: Sequence[TestSessionRecord],
        metrics: AggregateMetrics,
        snapshot: TrendSnapshot,
    ) -> LearnerProfile:
        t = self.thresholds
        scores = [s.score for s in timeline]
        if not scores:
            return LearnerProfile()

        strengths: list[str] = []
        challenges: list[str] = []
        deviation = pstdev(scores[-t.consistency_window :])
        slope, _, _ = linear_regression(scores)

        if len(scores) > 5 and deviation < t.consistency_stddev:
            strengths.append("Consistent performance")
        if slope > 1:
            strengths.append("Fast learner")
        if metrics.words_per_minute > t.fast_words_per_minute:
            strengths.append("High answer speed")

        if metrics.accuracy < self.insight_thresholds.low_accuracy:
            challenges.append("Accuracy needs work")
        if 0 < metrics.words_per_minute < t.slow_words_per_minute:
            challenges.append("Answer speed")
        if len(scores) > 5 and deviation > t.variable_stddev:
            challenges.append("Variable performance")

        grouped: dict[int, list[float]] = defaultdict(list)
        for session in timeline:
            grouped[session.timestamp.hour].append(session.score)
        peaks = sorted(
            (
                (mean(values), hour)
                for hour, values in grouped.items()
                if len(values) >= t.min_bucket_sessions and mean(values) > t.peak_hour_accuracy
            ),
            key=lambda item: (-item[0], item[1]),
        )
        return LearnerProfile(
            strengths=strengths,
            challenges=challenges,
            peak_hours=[hour for _, hour in peaks[:3]],
        )
