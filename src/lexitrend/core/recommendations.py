"""Goal, weakness, timing and strategic recommendations."""

import logging
from collections.abc import Sequence

from lexitrend.core.models import (
    Goal,
    GoalBasedRecommendation,
    GoalMilestone,
    Insight,
    InsightType,
    Priority,
    RecommendationSystem,
    Solution,
    StrategicRecommendation,
    StudyFrequency,
    StudyWindow,
    TemporalKind,
    TemporalPattern,
    TestSessionRecord,
    TimingRecommendation,
    TrendSnapshot,
    WeaknessBasedRecommendation,
    WordAnalysis,
)
from lexitrend.core.stats import clamp, linear_regression, mean, ratio
from lexitrend.core.thresholds import DEFAULT_THRESHOLDS, RecommendationThresholds

logger = logging.getLogger(__name__)

GOAL_MILESTONE_FRACTIONS = (0.3, 0.7, 1.0)

SOLUTION_CATALOGUE: dict[str, list[Solution]] = {
    "hint_dependency": [
        Solution(
            name="Progressive hint reduction",
            description="Cut hint usage gradually over a few weeks",
            effectiveness=70,
            effort=2,
            instructions=[
                "Allow at most one hint per word",
                "Think for ten seconds before revealing a hint",
                "Track hint usage after every test",
            ],
        ),
        Solution(
            name="Active recall",
            description="Practise free recall without any aid",
            effectiveness=80,
            effort=3,
            instructions=[
                "Write the translation before checking it",
                "Repeat misses at the end of the session",
            ],
        ),
    ],
    "difficult_vocabulary": [
        Solution(
            name="Small review batches",
            description="Split difficult words into batches of five to eight",
            effectiveness=75,
            effort=2,
            instructions=["Review one batch per session", "Move on once a batch reaches 80%"],
        ),
        Solution(
            name="Context sentences",
            description="Learn difficult words inside example sentences",
            effectiveness=70,
            effort=3,
            instructions=["Write one sentence per difficult word", "Read the sentences aloud"],
        ),
    ],
    "low_accuracy": [
        Solution(
            name="Intensive spaced repetition",
            description="Scheduled review of low-accuracy words",
            effectiveness=85,
            effort=3,
            instructions=[
                "Review difficult words three times a day",
                "Increase intervals gradually",
                "Check retention at the end of the week",
            ],
        ),
        Solution(
            name="Shorter tests",
            description="Test fewer words at a time to reduce errors from fatigue",
            effectiveness=60,
            effort=1,
            instructions=["Limit tests to ten words", "Take a short break between tests"],
        ),
    ],
    "declining_velocity": [
        Solution(
            name="Consolidation week",
            description="Pause new chapters and revise known material",
            effectiveness=70,
            effort=2,
            instructions=["Test only chapters already studied", "Resume new material once scores recover"],
        ),
    ],
    "unstable_performance": [
        Solution(
            name="Fixed routine",
            description="Study at the same time with the same session length",
            effectiveness=65,
            effort=2,
            instructions=["Pick a fixed time of day", "Keep every session the same length"],
        ),
    ],
    "critical_words": [
        Solution(
            name="Daily critical drill",
            description="A short daily drill on critical words only",
            effectiveness=80,
            effort=2,
            instructions=[
                "Drill critical words for five minutes a day",
                "Remove words after three correct answers",
            ],
        ),
        Solution(
            name="Mnemonics",
            description="Build a memorable association for each critical word",
            effectiveness=75,
            effort=3,
            instructions=[
                "Link each word to an image or a sound",
                "Review the associations before testing",
            ],
        ),
    ],
}

DEFAULT_SOLUTIONS = [
    Solution(
        name="Targeted review",
        description="Review the words affected by this issue",
        effectiveness=50,
        effort=2,
        instructions=["Review affected words in the next session"],
    ),
]


def frequency_distribution(sessions_per_week: int) -> str:
    if sessions_per_week >= 6:
        return "daily"
    if sessions_per_week >= 4:
        return "every_other_day"
    if sessions_per_week <= 2:
        return "weekends"
    return "custom"


class RecommendationGenerator:
    """Turns insights, velocity and temporal patterns into recommendations.

    Output depends only on the arguments: no randomness, clock or I/O.
    """

    def __init__(self, thresholds: RecommendationThresholds = DEFAULT_THRESHOLDS.recommendation):
        self.thresholds = thresholds

    def default_goals(self) -> list[Goal]:
        return [
            Goal(name=f"{target:g}% accuracy", target_accuracy=target)
            for target in self.thresholds.default_goals
        ]

    def generate(
        self,
        insights: Sequence[Insight],
        snapshot: TrendSnapshot,
        timeline: Sequence[TestSessionRecord],
        words: Sequence[WordAnalysis],
        temporal_patterns: Sequence[TemporalPattern],
        current: float,
        cadence: float,
        hints_percentage: float = 0.0,
        goals: Sequence[Goal] | None = None,
    ) -> RecommendationSystem:
        goals = list(goals) if goals else self.default_goals()
        goal_based = []
        if timeline:
            goal_based = self.goal_based(goals, current, snapshot.current_velocity, cadence)
        return RecommendationSystem(
            goal_based=goal_based,
            weakness_based=self.weakness_based(insights),
            timing=self.timing(temporal_patterns, timeline),
            strategic=self.strategic(timeline, words, hints_percentage),
        )

    def weakness_based(self, insights: Sequence[Insight]) -> list[WeaknessBasedRecommendation]:
        """One recommendation per weakness or risk insight, best value first."""
        recommendations = []
        for insight in insights:
            if insight.type not in (InsightType.WEAKNESS, InsightType.RISK):
                continue
            catalogue = SOLUTION_CATALOGUE.get(insight.key, DEFAULT_SOLUTIONS)
            recommendations.append(
                WeaknessBasedRecommendation(
                    weakness=insight.key,
                    title=insight.title,
                    severity=insight.importance,
                    solutions=sorted(catalogue, key=lambda s: -s.value_ratio),
                    affected_words=list(insight.affected_words),
                )
            )
        return recommendations

    def goal_based(
        self,
        goals: Sequence[Goal],
        current: float,
        velocity: float,
        cadence: float,
    ) -> list[GoalBasedRecommendation]:
        recommendations = []
        for goal in goals:
            target = goal.target_accuracy
            gap = target - current
            achieved = gap <= 0
            if achieved:
                recommendations.append(
                    GoalBasedRecommendation(
                        goal=goal,
                        current_value=round(current, 2),
                        achieved=True,
                        reachable=True,
                        estimated_time_to_goal=0.0,
                        on_track=True if goal.deadline_days else None,
                        priority=1,
                        suggested_actions=["Goal reached: keep reviewing to maintain it"],
                    )
                )
                continue

            reachable = velocity > 0
            days = gap / velocity * cadence if reachable else None
            on_track = None
            if goal.deadline_days:
                on_track = days is not None and days <= goal.deadline_days

            recommendations.append(
                GoalBasedRecommendation(
                    goal=goal,
                    current_value=round(current, 2),
                    achieved=False,
                    reachable=reachable,
                    estimated_time_to_goal=round(days, 1) if days is not None else None,
                    on_track=on_track,
                    priority=4 if target >= 80 else 3,
                    milestones=[
                        GoalMilestone(
                            value=round(current + gap * fraction, 1),
                            description=(
                                f"Reach {goal.name}"
                                if fraction == 1.0
                                else f"{fraction:.0%} of the way to {goal.name}"
                            ),
                        )
                        for fraction in GOAL_MILESTONE_FRACTIONS
                    ],
                    suggested_actions=self._goal_actions(target, reachable),
                )
            )
        return recommendations

    @staticmethod
    def _goal_actions(target: float, reachable: bool) -> list[str]:
        actions = []
        if not reachable:
            actions.append("Stabilise recent results before pushing towards this goal")
        if target >= 80:
            actions += [
                "Study harder words from advanced chapters",
                "Reduce hint usage to build long-term memory",
                "Answer faster while keeping accuracy",
            ]
        else:
            actions += [
                "Focus on words below 60% accuracy",
                "Review difficult words more often",
            ]
        return actions

    def timing(
        self,
        temporal_patterns: Sequence[TemporalPattern],
        timeline: Sequence[TestSessionRecord],
    ) -> list[TimingRecommendation]:
        if not temporal_patterns:
            return []
        strongest = temporal_patterns[0]
        for pattern in temporal_patterns[1:]:
            if pattern.strength > strongest.strength:
                strongest = pattern
        best = strongest.best_bucket

        if strongest.kind == TemporalKind.HOURLY:
            window = StudyWindow(
                kind=strongest.kind,
                label=best.label,
                start_hour=best.key,
                end_hour=(best.key + 2) % 24,
                average_performance=best.average_accuracy,
                strength=strongest.strength,
            )
        else:
            window = StudyWindow(
                kind=strongest.kind,
                label=best.label,
                weekday=best.key,
                average_performance=best.average_accuracy,
                strength=strongest.strength,
            )

        worst = min(b.average_accuracy for b in strongest.buckets)
        evidence = [
            f"Best performance at {best.label} ({best.average_accuracy:.0f}% accuracy)",
            f"Peak-to-trough difference: {best.average_accuracy - worst:.0f} points",
            f"Based on {best.observations} sessions in the best slot",
        ]
        return [
            TimingRecommendation(
                optimal_study_time=window,
                recommended_session_minutes=self.session_minutes(timeline),
                optimal_frequency=self.frequency(timeline),
                supporting_evidence=evidence,
            )
        ]

    def session_minutes(self, timeline: Sequence[TestSessionRecord]) -> int:
        """Mean duration of the good sessions, within sensible bounds."""
        t = self.thresholds
        good = [
            s.total_time_ms / 60000
            for s in timeline
            if s.score > t.good_session_accuracy and s.total_time_ms > 0
        ]
        if not good:
            return t.default_session_minutes
        return int(clamp(round(mean(good)), t.min_session_minutes, t.max_session_minutes))

    def frequency(self, timeline: Sequence[TestSessionRecord]) -> StudyFrequency:
        if not timeline:
            return StudyFrequency(sessions_per_week=3, distribution="every_other_day")
        span_days = (timeline[-1].timestamp - timeline[0].timestamp).total_seconds() / 86400
        current = len(timeline) / max(1.0, span_days) * 7

        average = mean([s.score for s in timeline])
        if average > 80:
            current = min(7.0, current * 1.2)
        elif average < 50:
            current = max(2.0, current * 0.8)

        sessions_per_week = int(clamp(round(current), 2, 7))
        return StudyFrequency(
            sessions_per_week=sessions_per_week,
            distribution=frequency_distribution(sessions_per_week),
        )

    def strategic(
        self,
        timeline: Sequence[TestSessionRecord],
        words: Sequence[WordAnalysis],
        hints_percentage: float,
    ) -> list[StrategicRecommendation]:
        t = self.thresholds
        recommendations = []
        slope, _, r_squared = linear_regression([s.score for s in timeline])

        if slope > t.accelerated_velocity:
            recommendations.append(
                StrategicRecommendation(
                    strategy="accelerated_learning",
                    title="Accelerate learning",
                    rationale=f"Scores are improving by {slope:.2f} points per test",
                    priority=Priority.HIGH,
                    implementation_steps=[
                        "Raise the share of difficult words in tests to 40%",
                        "Cut hint usage by 20%",
                        "Add accelerated review sessions",
                    ],
                    trial_days=21,
                )
            )
        elif slope < t.consolidation_velocity:
            recommendations.append(
                StrategicRecommendation(
                    strategy="consolidation_focus",
                    title="Consolidate performance",
                    rationale=f"Scores are falling by {abs(slope):.2f} points per test",
                    priority=Priority.HIGH,
                    implementation_steps=[
                        "Make 60% of each test easy words",
                        "Review words already studied more often",
                        "Leave longer breaks between sessions",
                    ],
                    trial_days=14,
                )
            )

        tested = [w for w in words if w.has_performance]
        hints_per_attempt = mean([ratio(w.hints_used, w.total_attempts) for w in tested])
        if (
            hints_per_attempt > t.hint_optimisation_per_attempt
            or hints_percentage > t.hint_optimisation_percentage
        ):
            recommendations.append(
                StrategicRecommendation(
                    strategy="hint_optimization",
                    title="Optimise hint usage",
                    rationale=(
                        f"{hints_per_attempt:.1f} hints per attempt and hints on "
                        f"{hints_percentage:.0f}% of answers limit independent recall"
                    ),
                    priority=Priority.MEDIUM,
                    implementation_steps=[
                        "Allow at most one hint per word",
                        "Practise free recall without hints",
                        "Only use a hint after ten seconds of thinking",
                    ],
                    trial_days=18,
                )
            )

        logger.debug(
            "Strategic recommendations: %s (r2=%.2f)", [r.strategy for r in recommendations], r_squared
        )
        return recommendations
