"""Per-word performance classification."""

import logging
from collections import Counter
from collections.abc import Iterable

from lexitrend.core.models import (
    NO_CHAPTER,
    Attempt,
    WordAnalysis,
    WordDifficulty,
    WordPerformanceRecord,
    WordStatus,
    WordSummary,
    WordTrend,
)
from lexitrend.core.stats import mean, percentage, round_half_up
from lexitrend.core.thresholds import DEFAULT_THRESHOLDS, WordThresholds

logger = logging.getLogger(__name__)


def current_streak(attempts: list[Attempt]) -> int:
    """Consecutive correct attempts counted backward from the most recent."""
    streak = 0
    for attempt in reversed(attempts):
        if not attempt.correct:
            break
        streak += 1
    return streak


class WordPerformanceClassifier:
    """Turns one word's attempt history into accuracy, streak and status."""

    def __init__(self, thresholds: WordThresholds = DEFAULT_THRESHOLDS.word):
        self.thresholds = thresholds

    def classify(self, record: WordPerformanceRecord) -> WordAnalysis:
        """Classify a single word."""
        attempts = record.attempts
        total = len(attempts)
        correct = sum(1 for a in attempts if a.correct)

        accuracy = round_half_up(percentage(correct, total))
        recent_accuracy = self._recent_accuracy(attempts)
        streak = current_streak(attempts)
        hinted = sum(1 for a in attempts if a.hinted)
        hints_percentage = round_half_up(percentage(hinted, total))
        avg_time_ms = round_half_up(mean([a.time_spent_ms for a in attempts]))

        return WordAnalysis(
            word_id=record.word_id,
            english=record.english,
            italian=record.italian,
            chapter=record.chapter,
            learned=record.learned,
            difficult=record.difficult,
            total_attempts=total,
            correct_attempts=correct,
            incorrect_attempts=total - correct,
            accuracy=accuracy,
            recent_accuracy=recent_accuracy,
            hints_used=sum(a.hints_count for a in attempts),
            hints_percentage=hints_percentage,
            avg_time_ms=avg_time_ms,
            current_streak=streak,
            status=self.status(total, accuracy, streak),
            trend=self.trend(total, accuracy, recent_accuracy),
            difficulty=self.difficulty(accuracy),
            needs_work=total > 0 and accuracy < self.thresholds.needs_work_accuracy,
            mastered=(
                accuracy >= self.thresholds.mastered_accuracy
                and streak >= self.thresholds.mastered_streak
            ),
            last_attempt=attempts[-1] if attempts else None,
            recommendations=self.advice(total, accuracy, hints_percentage, streak, avg_time_ms),
        )

    def classify_all(self, records: Iterable[WordPerformanceRecord]) -> dict[str, WordAnalysis]:
        """Classify every word, keyed by word_id in input order.

        A duplicate word_id keeps the last record seen.
        """
        analyses: dict[str, WordAnalysis] = {}
        for record in records:
            if record.word_id in analyses:
                logger.warning("Duplicate word id %s; keeping the last record", record.word_id)
            analyses[record.word_id] = self.classify(record)
        return analyses

    def status(self, total_attempts: int, accuracy: int, streak: int) -> WordStatus:
        """Ordered state machine: the first matching rule wins."""
        t = self.thresholds
        if total_attempts == 0:
            return WordStatus.NEW
        if total_attempts < t.min_attempts:
            return WordStatus.PROMISING if streak > 0 else WordStatus.STRUGGLING
        if streak >= t.consolidated_streak:
            return WordStatus.CONSOLIDATED
        if accuracy <= t.critical_accuracy:
            return WordStatus.CRITICAL
        if accuracy >= t.improving_accuracy:
            return WordStatus.IMPROVING
        return WordStatus.INCONSISTENT

    def trend(self, total_attempts: int, accuracy: int, recent_accuracy: int) -> WordTrend:
        if total_attempts == 0:
            return WordTrend.STABLE
        delta = recent_accuracy - accuracy
        if delta > self.thresholds.trend_band:
            return WordTrend.IMPROVING
        if delta < -self.thresholds.trend_band:
            return WordTrend.DECLINING
        return WordTrend.STABLE

    def difficulty(self, accuracy: int) -> WordDifficulty:
        if accuracy >= self.thresholds.easy_accuracy:
            return WordDifficulty.EASY
        if accuracy >= self.thresholds.medium_accuracy:
            return WordDifficulty.MEDIUM
        if accuracy > 0:
            return WordDifficulty.HARD
        return WordDifficulty.UNKNOWN

    def advice(
        self,
        total_attempts: int,
        accuracy: int,
        hints_percentage: int,
        streak: int,
        avg_time_ms: int,
    ) -> list[str]:
        """Short study tips for one word."""
        t = self.thresholds
        if total_attempts == 0:
            return ["Start practising this word to see how it develops."]

        tips: list[str] = []
        if accuracy < t.review_accuracy:
            tips.append(f"Review this word more often: accuracy is below {t.review_accuracy}%.")
        if hints_percentage > t.excessive_hints_percentage:
            tips.append("Try answering without hints: hint usage is high.")
        if avg_time_ms > t.slow_answer_ms:
            tips.append("Practise recalling this word faster.")
        if streak >= t.impressive_streak:
            tips.append("Great streak, keep it going.")
        if accuracy >= t.well_consolidated_accuracy and streak >= t.consolidated_streak:
            tips.append("Well consolidated: spend your time on harder words.")
        if accuracy == 0:
            tips.append("A tough one: keep practising, it will stick.")
        return tips or ["Keep practising to get personalised suggestions."]

    def _recent_accuracy(self, attempts: list[Attempt]) -> int:
        recent = attempts[-self.thresholds.recent_window :]
        correct = sum(1 for a in recent if a.correct)
        return round_half_up(percentage(correct, len(recent)))


def summarize(analyses: Iterable[WordAnalysis]) -> WordSummary:
    """Aggregate counts for a set of analysed words."""
    items = list(analyses)
    tested = [a for a in items if a.has_performance]
    statuses = Counter(a.status.value for a in items)
    return WordSummary(
        total=len(items),
        learned=sum(1 for a in items if a.learned),
        not_learned=sum(1 for a in items if not a.learned),
        difficult=sum(1 for a in items if a.difficult),
        with_chapter=sum(1 for a in items if a.chapter),
        with_performance=len(tested),
        without_performance=len(items) - len(tested),
        avg_accuracy=round_half_up(mean([a.accuracy for a in tested])),
        status_counts={status.value: statuses.get(status.value, 0) for status in WordStatus},
    )


def filter_analyses(
    analyses: Iterable[WordAnalysis],
    search: str | None = None,
    chapter: str | None = None,
    learned: bool | None = None,
    difficult: bool | None = None,
    status: WordStatus | None = None,
) -> list[WordAnalysis]:
    """Filter analysed words. ``chapter="no-chapter"`` selects chapterless words."""
    results = []
    needle = search.lower() if search else None
    for analysis in analyses:
        texts = (analysis.english.lower(), analysis.italian.lower())
        if needle and not any(needle in text for text in texts):
            continue
        if chapter:
            if chapter == NO_CHAPTER:
                if analysis.chapter:
                    continue
            elif analysis.chapter != chapter:
                continue
        if learned is not None and analysis.learned != learned:
            continue
        if difficult is not None and analysis.difficult != difficult:
            continue
        if status is not None and analysis.status != status:
            continue
        results.append(analysis)
    return results
