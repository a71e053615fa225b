"""Chapter-level rollups of word performance and test sessions."""

import logging
import re
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from lexitrend.core.models import (
    NO_CHAPTER,
    ChapterAnalysis,
    ChapterAnalysisResult,
    ChapterMetrics,
    ChapterOverviewStats,
    SessionIntensity,
    SessionStats,
    TestSessionRecord,
    TrendPoint,
    WordAnalysis,
)
from lexitrend.core.sessions import SessionSet
from lexitrend.core.stats import mean, percentage, round_half_up
from lexitrend.core.thresholds import DEFAULT_THRESHOLDS, ChapterThresholds

logger = logging.getLogger(__name__)

_NUMERIC_CHAPTER = re.compile(r"\d+(\.\d+)?")


def chapter_key(chapter: str | None) -> str:
    return chapter if chapter else NO_CHAPTER


def display_name(chapter: str) -> str:
    return "No chapter" if chapter == NO_CHAPTER else f"Chapter {chapter}"


def natural_order(chapter: str) -> tuple:
    """Sort key: numeric chapters numerically, then text, the sentinel last."""
    if chapter == NO_CHAPTER:
        return (2, 0, "")
    if _NUMERIC_CHAPTER.fullmatch(chapter):
        return (0, float(chapter), chapter)
    return (1, 0, chapter.casefold())


def distribute_hints(session: TestSessionRecord) -> dict[str, float]:
    """Split a session's hints over its chapters by share of answered words.

    A session answering 7 words from chapter "1" and 3 from chapter "2"
    with 4 hints yields {"1": 2.8, "2": 1.2}.
    """
    answered = {ch: c.answered for ch, c in session.per_chapter_breakdown.items() if c.answered > 0}
    total = sum(answered.values())
    if total == 0 or session.hints_used == 0:
        return {ch: 0.0 for ch in answered}
    return {ch: session.hints_used * count / total for ch, count in answered.items()}


def time_slot(hour: int) -> str:
    if hour < 9:
        return "morning"
    if hour < 14:
        return "midday"
    if hour < 18:
        return "afternoon"
    return "evening"


@dataclass
class _ChapterAccumulator:
    words: list[WordAnalysis] = field(default_factory=list)
    total_answers: int = 0
    estimated_hints: float = 0.0
    history: list[TrendPoint] = field(default_factory=list)


class ChapterAggregator:
    """Groups classified words by chapter and derives chapter metrics."""

    def __init__(self, thresholds: ChapterThresholds = DEFAULT_THRESHOLDS.chapter):
        self.thresholds = thresholds

    def aggregate(
        self,
        analyses: Iterable[WordAnalysis],
        sessions: SessionSet,
    ) -> ChapterAnalysisResult:
        """Build the full chapter analysis."""
        buckets: dict[str, _ChapterAccumulator] = defaultdict(_ChapterAccumulator)
        for analysis in analyses:
            buckets[chapter_key(analysis.chapter)].words.append(analysis)

        for session in sessions.usable:
            hints = distribute_hints(session)
            for chapter, counts in session.per_chapter_breakdown.items():
                if chapter not in buckets:
                    # Chapters with no words in the catalogue are not reported
                    continue
                bucket = buckets[chapter]
                bucket.total_answers += counts.answered
                bucket.estimated_hints += hints.get(chapter, 0.0)
                if session.is_dated and counts.answered > 0:
                    bucket.history.append(
                        TrendPoint(
                            timestamp=session.timestamp,
                            accuracy=round_half_up(percentage(counts.correct, counts.answered)),
                            correct=counts.correct,
                            incorrect=counts.incorrect,
                            session_id=session.id,
                        )
                    )

        chapters = [self._metrics(name, bucket) for name, bucket in buckets.items()]
        processed = self.order(chapters)

        tested = [c for c in processed if c.has_tests]
        top = self.thresholds.top_chapters
        min_tested = self.thresholds.struggling_min_tested_words
        return ChapterAnalysisResult(
            analysis=ChapterAnalysis(processed_data=processed),
            overview_stats=self._overview(processed),
            top_chapters=sorted(tested, key=lambda c: -c.efficiency)[:top],
            struggling_chapters=sorted(
                (c for c in tested if c.tested_words >= min_tested),
                key=lambda c: c.efficiency,
            )[: self.thresholds.struggling_chapters],
            session_stats=self.session_stats(sessions),
            data_quality=sessions.quality,
        )

    def _metrics(self, chapter: str, bucket: _ChapterAccumulator) -> ChapterMetrics:
        words = bucket.words
        tested = [w for w in words if w.has_performance]
        total_words = len(words)
        learned = sum(1 for w in words if w.learned)
        difficult = sum(1 for w in words if w.difficult)

        # Mean of per-word accuracy, so heavily retried words don't dominate
        accuracy = round_half_up(mean([w.accuracy for w in tested]))
        hints_percentage = round_half_up(percentage(bucket.estimated_hints, bucket.total_answers))

        history = sorted(bucket.history, key=lambda p: p.timestamp)
        first_test: datetime | None = history[0].timestamp if history else None

        return ChapterMetrics(
            chapter=chapter,
            display_name=display_name(chapter),
            total_words=total_words,
            learned_words=learned,
            difficult_words=difficult,
            tested_words=len(tested),
            untested_words=total_words - len(tested),
            total_attempts=sum(w.total_attempts for w in words),
            total_answers=bucket.total_answers,
            estimated_hints=round(bucket.estimated_hints, 4),
            accuracy=accuracy,
            hints_percentage=hints_percentage,
            efficiency=max(0, accuracy - hints_percentage),
            completion_rate=round_half_up(percentage(learned, total_words)),
            difficulty_rate=round_half_up(percentage(difficult, total_words)),
            untested_percentage=round_half_up(percentage(total_words - len(tested), total_words)),
            tests_performed=len(history),
            has_tests=bool(history),
            first_test_date=first_test,
            history=history[-self.thresholds.history_length :],
        )

    @staticmethod
    def order(chapters: list[ChapterMetrics]) -> list[ChapterMetrics]:
        """Tested chapters by first test date, then untested in natural order.

        The no-chapter bucket is always last.
        """
        sentinel = [c for c in chapters if c.chapter == NO_CHAPTER]
        rest = [c for c in chapters if c.chapter != NO_CHAPTER]
        tested = sorted(
            (c for c in rest if c.first_test_date is not None),
            key=lambda c: (c.first_test_date, natural_order(c.chapter)),
        )
        untested = sorted(
            (c for c in rest if c.first_test_date is None),
            key=lambda c: natural_order(c.chapter),
        )
        return tested + untested + sentinel

    @staticmethod
    def _overview(chapters: list[ChapterMetrics]) -> ChapterOverviewStats:
        tested = [c for c in chapters if c.has_tests]
        return ChapterOverviewStats(
            total_chapters=len(chapters),
            tested_chapters=len(tested),
            best_efficiency=max((c.efficiency for c in tested), default=0),
            average_completion=round_half_up(mean([c.completion_rate for c in chapters])),
            average_accuracy=round_half_up(mean([c.accuracy for c in tested])),
        )

    def session_stats(self, sessions: SessionSet) -> SessionStats:
        """Session volume, preferred time slot and intensity."""
        usable = sessions.usable
        slots: dict[str, int] = {}
        for session in sessions.timeline:
            slot = time_slot(session.timestamp.hour)
            slots[slot] = slots.get(slot, 0) + 1
        # Highest count wins; earlier slot of the day breaks ties
        slot_order = ["morning", "midday", "afternoon", "evening"]
        preferred = min(slots, key=lambda s: (-slots[s], slot_order.index(s))) if slots else None

        intensity = SessionIntensity()
        for session in usable:
            if session.total_words >= self.thresholds.intensive_session_words:
                intensity.intensive += 1
            elif session.total_words >= self.thresholds.medium_session_words:
                intensity.medium += 1
            else:
                intensity.light += 1

        return SessionStats(
            total_sessions=len(usable),
            avg_words_per_session=round_half_up(mean([s.total_words for s in usable])),
            preferred_time_slot=preferred,
            session_intensity=intensity,
        )
