"""Named thresholds for word classification, velocity, patterns and insights.

Every cut-off the engine uses lives here so status and insight semantics can
be audited and tuned in one place. Pass a modified ``Thresholds`` to
``AnalyticsEngine`` to experiment without touching aggregation code.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class WordThresholds:
    """Word status state machine and per-word advice."""

    min_attempts: int = 3  # below this a word is promising/struggling
    consolidated_streak: int = 3
    critical_accuracy: int = 30  # at or below
    improving_accuracy: int = 70  # at or above
    recent_window: int = 5
    trend_band: int = 5  # +/- points around full-history accuracy
    needs_work_accuracy: int = 70
    mastered_accuracy: int = 90
    mastered_streak: int = 3
    easy_accuracy: int = 80
    medium_accuracy: int = 60
    # Advice rules
    review_accuracy: int = 60
    excessive_hints_percentage: int = 50
    slow_answer_ms: int = 20_000
    impressive_streak: int = 5
    well_consolidated_accuracy: int = 80


@dataclass(frozen=True)
class ChapterThresholds:
    history_length: int = 15
    top_chapters: int = 5
    struggling_chapters: int = 3
    struggling_min_tested_words: int = 3
    intensive_session_words: int = 15
    medium_session_words: int = 8


@dataclass(frozen=True)
class VelocityThresholds:
    window: int = 5
    direction_band: float = 1.0  # acceleration beyond +/- this is not steady
    stability_scale: float = 50.0  # half of the 0-100 accuracy range
    base_confidence: float = 40.0
    confidence_per_session: float = 10.0
    confidence_session_cap: int = 6


@dataclass(frozen=True)
class PatternThresholds:
    min_bucket_sessions: int = 2
    temporal_variance_scale: float = 625.0  # variance at which strength saturates
    min_correlation_points: int = 3
    high_significance: float = 0.5
    medium_significance: float = 0.3
    improvement_streak: int = 3
    consistency_window: int = 10
    consistency_stddev: float = 15.0
    speed_trend: float = 0.1
    peak_hour_accuracy: float = 70.0
    fast_words_per_minute: float = 2.5
    slow_words_per_minute: float = 1.5
    variable_stddev: float = 25.0


@dataclass(frozen=True)
class InsightThresholds:
    hint_dependency_percentage: float = 30.0
    difficulty_rate: float = 50.0
    low_accuracy: float = 60.0
    declining_velocity: float = -2.0
    unstable_factor: float = 0.5
    temporal_strength: float = 0.2
    strong_correlation: float = 0.6
    high_accuracy: float = 85.0


@dataclass(frozen=True)
class ProjectionThresholds:
    confidence_decay: float = 0.15  # per doubling of the horizon beyond 7 days
    reference_horizon_days: int = 7
    confidence_floor: float = 10.0
    bound_scale: float = 0.2
    default_cadence_days: float = 1.0
    milestone_targets: tuple[tuple[str, float], ...] = (
        ("Intermediate proficiency", 70.0),
        ("Advanced proficiency", 85.0),
        ("Near mastery", 90.0),
    )


@dataclass(frozen=True)
class RecommendationThresholds:
    default_goals: tuple[float, ...] = (70.0, 85.0)
    accelerated_velocity: float = 1.0
    consolidation_velocity: float = -0.5
    hint_optimisation_percentage: float = 30.0
    hint_optimisation_per_attempt: float = 1.5
    good_session_accuracy: float = 70.0
    default_session_minutes: int = 20
    min_session_minutes: int = 10
    max_session_minutes: int = 45


@dataclass(frozen=True)
class Thresholds:
    """The complete threshold table."""

    word: WordThresholds = field(default_factory=WordThresholds)
    chapter: ChapterThresholds = field(default_factory=ChapterThresholds)
    velocity: VelocityThresholds = field(default_factory=VelocityThresholds)
    pattern: PatternThresholds = field(default_factory=PatternThresholds)
    insight: InsightThresholds = field(default_factory=InsightThresholds)
    projection: ProjectionThresholds = field(default_factory=ProjectionThresholds)
    recommendation: RecommendationThresholds = field(default_factory=RecommendationThresholds)


DEFAULT_THRESHOLDS = Thresholds()
