"""Pydantic models for vocabulary records, test sessions and derived analytics."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

NO_CHAPTER = "no-chapter"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string, datetime or epoch-milliseconds value.

    Naive values are taken as UTC. Returns None when the value cannot be
    interpreted as a point in time.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, int | float):
        try:
            parsed = datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _whole_number(value: Any) -> Any:
    """Round float counters so fractional milliseconds don't fail validation."""
    if isinstance(value, float):
        return round(value)
    return value


_TRUE = {"true", "yes", "y", "on", "1"}


def _lenient_bool(value: Any) -> bool:
    """Read flags exported as bools, 0/1 or yes/no strings; anything else is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUE
    return False


def _lenient_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return None


class _InputModel(BaseModel):
    """Base for records handed to the engine by external collaborators.

    Accepts camelCase or snake_case keys and drops explicit nulls so that
    field defaults apply instead.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class _OutputModel(BaseModel):
    """Base for derived entities."""


# ============================================================================
# Inputs
# ============================================================================


class Attempt(_InputModel):
    """One recorded answer to a word. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime | None = None
    correct: bool = False
    used_hint: bool = False
    hints_count: int = Field(default=0, ge=0)
    time_spent_ms: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _legacy_time_spent(cls, data: Any) -> Any:
        if isinstance(data, dict) and "timeSpent" in data and "timeSpentMs" not in data:
            data = dict(data)
            data["timeSpentMs"] = data.pop("timeSpent")
        return data

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("hints_count", "time_spent_ms", mode="before")
    @classmethod
    def _round_counters(cls, value: Any) -> Any:
        return _whole_number(value)

    @property
    def hinted(self) -> bool:
        """Whether any hint was used for this answer."""
        return self.used_hint or self.hints_count > 0

    @classmethod
    def lenient(cls, data: Any) -> "Attempt":
        """Validate an attempt, falling back to an incorrect no-hint attempt."""
        if isinstance(data, Attempt):
            return data
        try:
            return cls.model_validate(data)
        except ValidationError:
            return cls()


class WordPerformanceRecord(_InputModel):
    """A vocabulary entry together with its append-only attempt history."""

    word_id: str = Field(validation_alias="wordId")
    english: str = ""
    italian: str = ""
    chapter: str | None = None
    attempts: list[Attempt] = Field(default_factory=list)
    learned: bool = False
    difficult: bool = False

    @model_validator(mode="before")
    @classmethod
    def _accept_id_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and "wordId" not in data and "word_id" not in data:
            if "id" in data:
                data = dict(data)
                data["wordId"] = data["id"]
        return data

    @field_validator("word_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value

    # Only a missing id rejects a word; other bad fields fall back to defaults
    @field_validator("english", "italian", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _lenient_text(value) or ""

    @field_validator("chapter", mode="before")
    @classmethod
    def _coerce_chapter(cls, value: Any) -> str | None:
        return _lenient_text(value)

    @field_validator("learned", "difficult", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return _lenient_bool(value)

    @field_validator("chapter")
    @classmethod
    def _blank_chapter(cls, value: str | None) -> str | None:
        if value is None or not value.strip() or value == NO_CHAPTER:
            return None
        return value.strip()

    @field_validator("attempts", mode="before")
    @classmethod
    def _lenient_attempts(cls, value: Any) -> list[Attempt]:
        if not isinstance(value, list):
            return []
        return [Attempt.lenient(item) for item in value]


class ChapterBreakdown(_InputModel):
    """Per-chapter correct/incorrect counts within one test session."""

    correct: int = Field(default=0, ge=0)
    incorrect: int = Field(default=0, ge=0)

    @field_validator("correct", "incorrect", mode="before")
    @classmethod
    def _round_counters(cls, value: Any) -> Any:
        return _whole_number(value)

    @property
    def answered(self) -> int:
        return self.correct + self.incorrect


def _normalize_breakdown(value: Any) -> tuple[dict[str, ChapterBreakdown], int]:
    """Validate breakdown entries one by one, returning (entries, dropped_count).

    Blank chapter keys map to the no-chapter sentinel. A malformed entry is
    dropped on its own so the rest of the session stays usable.
    """
    if not isinstance(value, dict):
        return {}, 0
    result: dict[str, ChapterBreakdown] = {}
    dropped = 0
    for key, counts in value.items():
        chapter = str(key).strip() if key is not None else ""
        try:
            result[chapter or NO_CHAPTER] = ChapterBreakdown.model_validate(counts)
        except ValidationError:
            dropped += 1
    return result, dropped


class TestSessionRecord(_InputModel):
    """A completed test session."""

    __test__ = False  # not a pytest test class

    id: str | None = None
    timestamp: datetime | None = None
    timestamp_invalid: bool = Field(default=False, exclude=True)
    breakdown_dropped: int = Field(default=0, ge=0, exclude=True)
    total_words: int = Field(default=0, ge=0)
    correct_words: int = Field(default=0, ge=0)
    incorrect_words: int = Field(default=0, ge=0)
    hints_used: int = Field(default=0, ge=0)
    total_time_ms: int = Field(default=0, ge=0)
    accuracy: float | None = Field(default=None, validation_alias="percentage")
    per_chapter_breakdown: dict[str, ChapterBreakdown] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _prepare(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "accuracy" in data and "percentage" not in data:
            data["percentage"] = data.pop("accuracy")
        if "totalTime" in data and "totalTimeMs" not in data:
            data["totalTimeMs"] = data.pop("totalTime")
        raw = data.get("timestamp")
        if raw is not None:
            parsed = parse_timestamp(raw)
            data["timestamp"] = parsed
            if parsed is None:
                data["timestampInvalid"] = True
        for key in ("perChapterBreakdown", "per_chapter_breakdown"):
            if key in data:
                data[key], data["breakdownDropped"] = _normalize_breakdown(data[key])
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator(
        "total_words", "correct_words", "incorrect_words", "hints_used", "total_time_ms",
        mode="before",
    )
    @classmethod
    def _round_counters(cls, value: Any) -> Any:
        return _whole_number(value)

    @model_validator(mode="after")
    def _derive_total(self) -> "TestSessionRecord":
        if self.total_words == 0 and self.answered > 0:
            self.total_words = self.answered
        return self

    @property
    def answered(self) -> int:
        return self.correct_words + self.incorrect_words

    @property
    def has_counts(self) -> bool:
        return self.answered > 0

    @property
    def score(self) -> float | None:
        """Total accuracy percentage, or None when the session carries none."""
        if self.accuracy is not None:
            return max(0.0, min(100.0, float(self.accuracy)))
        if self.answered > 0:
            return self.correct_words / self.answered * 100
        return None

    @property
    def is_dated(self) -> bool:
        return self.timestamp is not None


# ============================================================================
# Word analysis
# ============================================================================


class WordStatus(StrEnum):
    """Discrete learning state of a word."""

    NEW = "new"
    PROMISING = "promising"
    STRUGGLING = "struggling"
    CONSOLIDATED = "consolidated"
    CRITICAL = "critical"
    IMPROVING = "improving"
    INCONSISTENT = "inconsistent"


class WordTrend(StrEnum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class WordDifficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    UNKNOWN = "unknown"


class WordAnalysis(_OutputModel):
    """Performance classification of a single word."""

    word_id: str
    english: str
    italian: str
    chapter: str | None = None
    learned: bool = False
    difficult: bool = False
    total_attempts: int = 0
    correct_attempts: int = 0
    incorrect_attempts: int = 0
    accuracy: int = 0
    recent_accuracy: int = 0
    hints_used: int = 0
    hints_percentage: int = 0
    avg_time_ms: int = 0
    current_streak: int = 0
    status: WordStatus = WordStatus.NEW
    trend: WordTrend = WordTrend.STABLE
    difficulty: WordDifficulty = WordDifficulty.UNKNOWN
    needs_work: bool = False
    mastered: bool = False
    last_attempt: Attempt | None = None
    recommendations: list[str] = Field(default_factory=list)

    @property
    def has_performance(self) -> bool:
        return self.total_attempts > 0


class WordSummary(_OutputModel):
    """Aggregate counts over a set of word analyses."""

    total: int = 0
    learned: int = 0
    not_learned: int = 0
    difficult: int = 0
    with_chapter: int = 0
    with_performance: int = 0
    without_performance: int = 0
    avg_accuracy: int = 0
    status_counts: dict[str, int] = Field(default_factory=dict)


# ============================================================================
# Chapters
# ============================================================================


class TrendPoint(_OutputModel):
    """One session's result for a chapter."""

    timestamp: datetime
    accuracy: int
    correct: int
    incorrect: int
    session_id: str | None = None


class ChapterMetrics(_OutputModel):
    """Derived rollup for one chapter."""

    chapter: str
    display_name: str
    total_words: int = 0
    learned_words: int = 0
    difficult_words: int = 0
    tested_words: int = 0
    untested_words: int = 0
    total_attempts: int = 0
    total_answers: int = 0
    estimated_hints: float = 0.0
    accuracy: int = 0
    hints_percentage: int = 0
    efficiency: int = 0
    completion_rate: int = 0
    difficulty_rate: int = 0
    untested_percentage: int = 0
    tests_performed: int = 0
    has_tests: bool = False
    first_test_date: datetime | None = None
    history: list[TrendPoint] = Field(default_factory=list)


class ChapterAnalysis(_OutputModel):
    processed_data: list[ChapterMetrics] = Field(default_factory=list)


class ChapterOverviewStats(_OutputModel):
    total_chapters: int = 0
    tested_chapters: int = 0
    best_efficiency: int = 0
    average_completion: int = 0
    average_accuracy: int = 0


class SessionIntensity(_OutputModel):
    intensive: int = 0
    medium: int = 0
    light: int = 0


class SessionStats(_OutputModel):
    total_sessions: int = 0
    avg_words_per_session: int = 0
    preferred_time_slot: str | None = None
    session_intensity: SessionIntensity = Field(default_factory=SessionIntensity)


class DataQualityReport(_OutputModel):
    """What the engine had to drop or distrust in the session history."""

    total_sessions: int = 0
    usable_sessions: int = 0
    timed_sessions: int = 0
    excluded_sessions: int = 0
    invalid_timestamps: int = 0
    inconsistent_totals: int = 0
    breakdown_overflows: int = 0
    malformed_breakdowns: int = 0
    flags: list[str] = Field(default_factory=list)


class ChapterAnalysisResult(_OutputModel):
    analysis: ChapterAnalysis = Field(default_factory=ChapterAnalysis)
    overview_stats: ChapterOverviewStats = Field(default_factory=ChapterOverviewStats)
    top_chapters: list[ChapterMetrics] = Field(default_factory=list)
    struggling_chapters: list[ChapterMetrics] = Field(default_factory=list)
    session_stats: SessionStats = Field(default_factory=SessionStats)
    data_quality: DataQualityReport = Field(default_factory=DataQualityReport)


# ============================================================================
# Velocity
# ============================================================================


class TrendDirection(StrEnum):
    ACCELERATING = "accelerating"
    DECELERATING = "decelerating"
    STEADY = "steady"


class VelocityByMetric(_OutputModel):
    accuracy: float = 0.0
    efficiency: float = 0.0
    speed: float = 0.0


class TrendSnapshot(_OutputModel):
    """Learning velocity computed over sliding session windows."""

    current_velocity: float = 0.0
    acceleration: float = 0.0
    direction: TrendDirection = TrendDirection.STEADY
    confidence: float = 0.0
    stability_factor: float = 0.0
    overall_improvement: float = 0.0
    velocity_by_metric: VelocityByMetric = Field(default_factory=VelocityByMetric)
    session_count: int = 0


# ============================================================================
# Patterns
# ============================================================================


class TemporalKind(StrEnum):
    HOURLY = "hourly"
    WEEKLY = "weekly"


class TemporalBucket(_OutputModel):
    key: int
    label: str
    average_accuracy: float
    observations: int


class TemporalPattern(_OutputModel):
    kind: TemporalKind
    description: str
    strength: float
    best_bucket: TemporalBucket
    buckets: list[TemporalBucket] = Field(default_factory=list)


class PatternImpact(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class PerformancePattern(_OutputModel):
    key: str
    name: str
    description: str
    impact: PatternImpact
    confidence: float
    evidence: list[str] = Field(default_factory=list)


class Significance(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CorrelationDirection(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Correlation(_OutputModel):
    metrics: tuple[str, str]
    coefficient: float
    strength: float
    direction: CorrelationDirection
    significance: Significance
    sample_size: int
    description: str


class InsightType(StrEnum):
    WEAKNESS = "weakness"
    RISK = "risk"
    OPPORTUNITY = "opportunity"
    STRENGTH = "strength"


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Insight(_OutputModel):
    key: str
    type: InsightType
    title: str
    description: str
    importance: int = Field(ge=1, le=5)
    priority: Priority
    evidence: list[str] = Field(default_factory=list)
    suggested_actions: list[str] = Field(default_factory=list)
    estimated_impact: float = 0.0
    affected_words: list[str] = Field(default_factory=list)


class AggregateMetrics(_OutputModel):
    """Global figures the insight rules are evaluated against."""

    accuracy: float = 0.0
    hints_percentage: float = 0.0
    difficulty_rate: float = 0.0
    velocity: float = 0.0
    stability: float = 0.0
    session_count: int = 0
    word_count: int = 0
    critical_words: list[str] = Field(default_factory=list)
    words_per_minute: float = 0.0


class LearnerProfile(_OutputModel):
    strengths: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    peak_hours: list[int] = Field(default_factory=list)


class PatternAnalysis(_OutputModel):
    temporal_patterns: list[TemporalPattern] = Field(default_factory=list)
    performance_patterns: list[PerformancePattern] = Field(default_factory=list)
    correlations: list[Correlation] = Field(default_factory=list)
    insights: list[Insight] = Field(default_factory=list)
    metrics: AggregateMetrics = Field(default_factory=AggregateMetrics)
    learner_profile: LearnerProfile = Field(default_factory=LearnerProfile)


# ============================================================================
# Projections
# ============================================================================


class ProjectionTimeframe(StrEnum):
    DAYS_7 = "7_days"
    DAYS_30 = "30_days"
    DAYS_60 = "60_days"
    DAYS_90 = "90_days"

    @property
    def days(self) -> int:
        return int(self.value.split("_")[0])


class ProjectedMetrics(_OutputModel):
    accuracy: float = 0.0
    efficiency: float = 0.0
    tests_completed: int = 0


class Milestone(_OutputModel):
    name: str
    target_accuracy: float
    reachable: bool
    tests_needed: float | None = None
    days_needed: float | None = None
    estimated_date: datetime | None = None
    probability: float = 0.0
    within_horizon: bool = False


class ProjectionFactor(_OutputModel):
    name: str
    weight: float
    trend: str
    impact: str


class Projection(_OutputModel):
    timeframe: ProjectionTimeframe
    days: int
    expected_metrics: ProjectedMetrics
    optimistic_metrics: ProjectedMetrics
    pessimistic_metrics: ProjectedMetrics
    confidence: float
    uncertainty: float
    milestones: list[Milestone] = Field(default_factory=list)
    factors: list[ProjectionFactor] = Field(default_factory=list)


# ============================================================================
# Recommendations
# ============================================================================


class Goal(BaseModel):
    """A user-declared accuracy goal."""

    name: str
    target_accuracy: float = Field(ge=0, le=100)
    deadline_days: int | None = Field(default=None, gt=0)


class Solution(_OutputModel):
    name: str
    description: str
    effectiveness: int = Field(ge=0, le=100)
    effort: int = Field(ge=1, le=5)
    instructions: list[str] = Field(default_factory=list)

    @property
    def value_ratio(self) -> float:
        return self.effectiveness / self.effort


class GoalMilestone(_OutputModel):
    value: float
    description: str


class GoalBasedRecommendation(_OutputModel):
    goal: Goal
    current_value: float
    achieved: bool
    reachable: bool
    estimated_time_to_goal: float | None = None
    on_track: bool | None = None
    priority: int
    milestones: list[GoalMilestone] = Field(default_factory=list)
    suggested_actions: list[str] = Field(default_factory=list)


class WeaknessBasedRecommendation(_OutputModel):
    weakness: str
    title: str
    severity: int
    solutions: list[Solution] = Field(default_factory=list)
    affected_words: list[str] = Field(default_factory=list)


class StudyWindow(_OutputModel):
    kind: TemporalKind
    label: str
    start_hour: int | None = None
    end_hour: int | None = None
    weekday: int | None = None
    average_performance: float
    strength: float


class StudyFrequency(_OutputModel):
    sessions_per_week: int
    distribution: str


class TimingRecommendation(_OutputModel):
    optimal_study_time: StudyWindow
    recommended_session_minutes: int
    optimal_frequency: StudyFrequency
    supporting_evidence: list[str] = Field(default_factory=list)


class StrategicRecommendation(_OutputModel):
    strategy: str
    title: str
    rationale: str
    priority: Priority
    implementation_steps: list[str] = Field(default_factory=list)
    trial_days: int


class RecommendationSystem(_OutputModel):
    goal_based: list[GoalBasedRecommendation] = Field(default_factory=list)
    weakness_based: list[WeaknessBasedRecommendation] = Field(default_factory=list)
    timing: list[TimingRecommendation] = Field(default_factory=list)
    strategic: list[StrategicRecommendation] = Field(default_factory=list)


# ============================================================================
# Trends result
# ============================================================================


class AnalysisMetadata(_OutputModel):
    generated_for: datetime | None = None
    fingerprint: str = ""
    first_session: datetime | None = None
    last_session: datetime | None = None
    sessions_analyzed: int = 0
    words_analyzed: int = 0
    overall_confidence: float = 0.0
    limitations: list[str] = Field(default_factory=list)
    data_quality: DataQualityReport = Field(default_factory=DataQualityReport)


class TrendsAnalysisResult(_OutputModel):
    learning_velocity: TrendSnapshot = Field(default_factory=TrendSnapshot)
    future_projections: list[Projection] = Field(default_factory=list)
    pattern_analysis: PatternAnalysis = Field(default_factory=PatternAnalysis)
    recommendation_system: RecommendationSystem = Field(default_factory=RecommendationSystem)
    analysis_metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)
