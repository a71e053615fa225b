"""AnalyticsEngine: the single entry point over the analysis pipeline."""

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import ValidationError

from lexitrend.core.cache import AnalysisCache, fingerprint
from lexitrend.core.chapters import ChapterAggregator, chapter_key
from lexitrend.core.classifier import WordPerformanceClassifier
from lexitrend.core.models import (
    AnalysisMetadata,
    ChapterAnalysisResult,
    Goal,
    ProjectionTimeframe,
    TrendsAnalysisResult,
    WordAnalysis,
    WordPerformanceRecord,
)
from lexitrend.core.patterns import PatternDetector
from lexitrend.core.projections import ALL_HORIZONS, ProjectionEngine
from lexitrend.core.recommendations import RecommendationGenerator
from lexitrend.core.sessions import (
    SessionSet,
    coerce_sessions,
    hint_rate,
    mean_gap_days,
    prepare_sessions,
)
from lexitrend.core.stats import mean
from lexitrend.core.thresholds import DEFAULT_THRESHOLDS, Thresholds
from lexitrend.core.velocity import TrendVelocityAnalyzer

logger = logging.getLogger(__name__)


def coerce_words(raw: Iterable[Any]) -> list[WordPerformanceRecord]:
    """Validate raw word dicts; records without an id are skipped."""
    records = []
    for item in raw:
        if isinstance(item, WordPerformanceRecord):
            records.append(item)
            continue
        try:
            records.append(WordPerformanceRecord.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed word record: %s", exc.errors()[0]["msg"])
    return records


class AnalyticsEngine:
    """Stateless analytics over a word catalogue and a test history.

    Every call recomputes from the data it is handed. Pass ``cached=True``
    to memoise chapter and trend results by content fingerprint.
    """

    def __init__(self, thresholds: Thresholds = DEFAULT_THRESHOLDS, cached: bool = False):
        self.thresholds = thresholds
        self.classifier = WordPerformanceClassifier(thresholds.word)
        self.aggregator = ChapterAggregator(thresholds.chapter)
        self.velocity = TrendVelocityAnalyzer(thresholds.velocity)
        self.detector = PatternDetector(thresholds.pattern, thresholds.insight)
        self.projector = ProjectionEngine(thresholds.projection)
        self.recommender = RecommendationGenerator(thresholds.recommendation)
        self._caches: dict[str, AnalysisCache] | None = None
        if cached:
            self._caches = {"chapters": AnalysisCache(), "trends": AnalysisCache()}

    def invalidate(self) -> None:
        """Force the next cached call to recompute."""
        if self._caches:
            for cache in self._caches.values():
                cache.invalidate()

    # ------------------------------------------------------------------
    # Words
    # ------------------------------------------------------------------

    def analyze_words(self, words: Sequence[Any]) -> dict[str, WordAnalysis]:
        """Classify every word, keyed by word_id."""
        return self.classifier.classify_all(coerce_words(words))

    def analyze_word(self, words: Sequence[Any], word_id: str) -> WordAnalysis | None:
        """Classify the word with ``word_id``; None when it isn't in the catalogue."""
        match = None
        for record in coerce_words(words):
            if record.word_id == word_id:
                match = record
        return self.classifier.classify(match) if match is not None else None

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------

    def analyze_chapters(
        self, words: Sequence[Any], sessions: Sequence[Any]
    ) -> ChapterAnalysisResult:
        key = fingerprint(words, sessions, {"kind": "chapters"})
        return self._run("chapters", key, lambda: self._chapters(words, sessions))

    def _chapters(self, words: Sequence[Any], sessions: Sequence[Any]) -> ChapterAnalysisResult:
        analyses = self.analyze_words(words)
        session_set = self._session_set(sessions)
        result = self.aggregator.aggregate(analyses.values(), session_set)
        logger.info(
            "Analysed %d chapter(s) from %d word(s) and %d session(s)",
            len(result.analysis.processed_data),
            len(analyses),
            len(session_set.usable),
        )
        return result

    # ------------------------------------------------------------------
    # Trends
    # ------------------------------------------------------------------

    def analyze_trends(
        self,
        words: Sequence[Any],
        sessions: Sequence[Any],
        goals: Sequence[Goal] | None = None,
        horizons: Sequence[ProjectionTimeframe] = ALL_HORIZONS,
    ) -> TrendsAnalysisResult:
        """Velocity, projections, patterns and recommendations in one result."""
        options = {
            "kind": "trends",
            "goals": [g.model_dump() for g in goals] if goals else None,
            "horizons": [h.value for h in horizons],
        }
        key = fingerprint(words, sessions, options)
        return self._run("trends", key, lambda: self._trends(words, sessions, goals, horizons, key))

    def _trends(
        self,
        words: Sequence[Any],
        sessions: Sequence[Any],
        goals: Sequence[Goal] | None,
        horizons: Sequence[ProjectionTimeframe],
        key: str,
    ) -> TrendsAnalysisResult:
        analyses = list(self.analyze_words(words).values())
        session_set = self._session_set(sessions)
        timeline = session_set.timeline
        scores = session_set.scores

        snapshot = self.velocity.analyze(timeline)
        chapter_count = len({chapter_key(a.chapter) for a in analyses}) or None
        patterns = self.detector.detect(session_set, analyses, snapshot, chapter_count)

        _, _, recent = self.velocity.windows(scores)
        current = mean(recent) if recent else mean([s.score for s in session_set.usable])
        recent_efficiency = mean(
            [max(0.0, s.score - hint_rate(s)) for s in timeline[-self.thresholds.velocity.window :]]
        )
        cadence = mean_gap_days(timeline) or self.thresholds.projection.default_cadence_days
        reference = timeline[-1].timestamp if timeline else None

        projections = []
        if timeline:
            projections = self.projector.project(
                snapshot,
                current,
                cadence=cadence,
                reference=reference,
                horizons=horizons,
                efficiency=recent_efficiency,
                recent_scores=scores,
            )

        recommendations = self.recommender.generate(
            patterns.insights,
            snapshot,
            timeline,
            analyses,
            patterns.temporal_patterns,
            current,
            cadence,
            hints_percentage=patterns.metrics.hints_percentage,
            goals=goals,
        )

        metadata = AnalysisMetadata(
            generated_for=reference,
            fingerprint=key,
            first_session=timeline[0].timestamp if timeline else None,
            last_session=reference,
            sessions_analyzed=len(session_set.usable),
            words_analyzed=len(analyses),
            overall_confidence=self._overall_confidence(session_set, snapshot.confidence),
            limitations=self._limitations(session_set, analyses),
            data_quality=session_set.quality,
        )
        logger.info(
            "Trend analysis over %d session(s): velocity %+.2f, %d insight(s)",
            len(timeline),
            snapshot.current_velocity,
            len(patterns.insights),
        )
        return TrendsAnalysisResult(
            learning_velocity=snapshot,
            future_projections=projections,
            pattern_analysis=patterns,
            recommendation_system=recommendations,
            analysis_metadata=metadata,
        )

    @staticmethod
    def _overall_confidence(session_set: SessionSet, confidence: float) -> float:
        """Velocity confidence scaled by the share of sessions that were usable."""
        total = session_set.quality.total_sessions
        if not total:
            return 0.0
        return round(confidence * len(session_set.timeline) / total, 2)

    def _limitations(self, session_set: SessionSet, analyses: list[WordAnalysis]) -> list[str]:
        timed = len(session_set.timeline)
        window = self.thresholds.velocity.window
        limitations = []
        if not session_set.usable:
            limitations.append("No usable test sessions: trends and projections are unavailable")
        elif timed < 2:
            limitations.append("Fewer than 2 dated sessions: velocity cannot be measured")
        elif timed <= window:
            limitations.append(
                f"Only {timed} dated sessions: comparison windows overlap and confidence is low"
            )
        if not analyses:
            limitations.append("No words in the catalogue: word-level insights are unavailable")
        limitations.extend(session_set.quality.flags)
        return limitations

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _session_set(sessions: Sequence[Any]) -> SessionSet:
        records, rejected = coerce_sessions(sessions)
        return prepare_sessions(records, rejected)

    def _run(self, kind: str, key: str, compute):
        if self._caches is None:
            return compute()
        return self._caches[kind].get_or_compute(key, compute)
