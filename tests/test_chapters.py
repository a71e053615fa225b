"""Tests for chapter rollups."""

from datetime import UTC, datetime, timedelta

import pytest

from lexitrend.core.chapters import (
    ChapterAggregator,
    display_name,
    distribute_hints,
    natural_order,
    time_slot,
)
from lexitrend.core.classifier import WordPerformanceClassifier
from lexitrend.core.models import NO_CHAPTER, Attempt, TestSessionRecord, WordPerformanceRecord
from lexitrend.core.sessions import prepare_sessions
from lexitrend.core.thresholds import ChapterThresholds


START = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def word(word_id: str, chapter: str | None, pattern: str = "", learned=False, difficult=False):
    return WordPerformanceRecord(
        word_id=word_id,
        english=word_id,
        italian=word_id,
        chapter=chapter,
        learned=learned,
        difficult=difficult,
        attempts=[Attempt(correct=ch == "C") for ch in pattern],
    )


def make_session(day: int, breakdown: dict, hints: int = 0, **extra) -> TestSessionRecord:
    correct = sum(c.get("correct", 0) for c in breakdown.values())
    incorrect = sum(c.get("incorrect", 0) for c in breakdown.values())
    return TestSessionRecord.model_validate(
        {
            "id": f"s{day}",
            "timestamp": (START + timedelta(days=day)).isoformat(),
            "correctWords": correct,
            "incorrectWords": incorrect,
            "hintsUsed": hints,
            "perChapterBreakdown": breakdown,
            **extra,
        }
    )


def aggregate(words, sessions, thresholds=None):
    analyses = WordPerformanceClassifier().classify_all(words).values()
    aggregator = ChapterAggregator(thresholds or ChapterThresholds())
    return aggregator.aggregate(analyses, prepare_sessions(sessions))


class TestHelpers:
    def test_display_name(self):
        assert display_name("3") == "Chapter 3"
        assert display_name(NO_CHAPTER) == "No chapter"

    def test_natural_order(self):
        chapters = ["10", "b", "2", NO_CHAPTER, "A", "1.5"]
        assert sorted(chapters, key=natural_order) == ["1.5", "2", "10", "A", "b", NO_CHAPTER]

    def test_float_spellings_sort_as_text(self):
        chapters = ["2", "nan", "1", "10", "inf", "1e3"]
        expected = ["1", "2", "10", "1e3", "inf", "nan"]
        assert sorted(chapters, key=natural_order) == expected
        assert sorted(reversed(chapters), key=natural_order) == expected

    def test_time_slot(self):
        assert time_slot(8) == "morning"
        assert time_slot(9) == "midday"
        assert time_slot(14) == "afternoon"
        assert time_slot(23) == "evening"


class TestDistributeHints:
    def test_proportional_split(self):
        session = make_session(
            0,
            {"1": {"correct": 5, "incorrect": 2}, "2": {"correct": 2, "incorrect": 1}},
            hints=4,
        )
        shares = distribute_hints(session)
        assert shares["1"] == pytest.approx(2.8)
        assert shares["2"] == pytest.approx(1.2)

    def test_no_hints(self):
        session = make_session(0, {"1": {"correct": 3}})
        assert distribute_hints(session) == {"1": 0.0}

    def test_empty_breakdown(self):
        session = TestSessionRecord.model_validate(
            {"timestamp": "2024-01-01", "percentage": 50, "hintsUsed": 3}
        )
        assert distribute_hints(session) == {}


class TestAggregate:
    def test_estimated_hints_across_sessions(self):
        words = [word("a", "1", "CC"), word("b", "2", "CI")]
        sessions = [
            make_session(
                0,
                {"1": {"correct": 5, "incorrect": 2}, "2": {"correct": 2, "incorrect": 1}},
                hints=4,
            ),
            make_session(1, {"1": {"correct": 2}}),
        ]
        result = aggregate(words, sessions)
        by_chapter = {c.chapter: c for c in result.analysis.processed_data}
        assert by_chapter["1"].estimated_hints == pytest.approx(2.8)
        assert by_chapter["2"].estimated_hints == pytest.approx(1.2)
        assert by_chapter["1"].total_answers == 9
        # round(2.8 / 9 * 100)
        assert by_chapter["1"].hints_percentage == 31
        assert by_chapter["1"].tests_performed == 2

    def test_empty_history_overview(self):
        words = [
            word("a", "1", learned=True),
            word("b", "1"),
            word("c", "2", learned=True),
        ]
        result = aggregate(words, [])
        overview = result.overview_stats
        assert overview.total_chapters == 2
        assert overview.tested_chapters == 0
        assert overview.best_efficiency == 0
        # mean of 50% and 100%
        assert overview.average_completion == 75
        assert result.top_chapters == []
        assert result.struggling_chapters == []
        assert result.session_stats.total_sessions == 0
        assert result.session_stats.preferred_time_slot is None

    def test_unparsable_timestamp_counts_answers_only(self):
        """Undated sessions feed answer and hint totals but no dated history."""
        session = make_session(0, {"1": {"correct": 6, "incorrect": 4}}, hints=5, timestamp="garbage")
        result = aggregate([word("a", "1", "CI")], [session])
        chapter = result.analysis.processed_data[0]
        assert chapter.total_answers == 10
        assert chapter.estimated_hints == pytest.approx(5.0)
        assert chapter.hints_percentage == 50
        assert chapter.first_test_date is None
        assert chapter.history == []
        assert chapter.tests_performed == 0
        assert not chapter.has_tests
        assert result.data_quality.invalid_timestamps == 1

    def test_no_words(self):
        result = aggregate([], [make_session(0, {"1": {"correct": 3}})])
        assert result.analysis.processed_data == []
        assert result.overview_stats.total_chapters == 0

    def test_efficiency_invariant(self):
        words = [word("a", "1", "CCCC"), word("b", "2", "IIII"), word("c", None, "CI")]
        sessions = [
            make_session(0, {"1": {"correct": 1}, "2": {"incorrect": 3}}, hints=6),
            make_session(1, {"1": {"correct": 2}, "2": {"correct": 1, "incorrect": 1}}, hints=1),
        ]
        result = aggregate(words, sessions)
        for chapter in result.analysis.processed_data:
            assert chapter.efficiency == max(0, chapter.accuracy - chapter.hints_percentage)
        by_chapter = {c.chapter: c for c in result.analysis.processed_data}
        assert by_chapter["2"].efficiency == 0

    def test_tested_words_sum(self):
        words = [
            word("a", "1", "C"),
            word("b", "1"),
            word("c", "2", "CI"),
            word("d", None, "I"),
            word("e", None),
        ]
        result = aggregate(words, [])
        tested = sum(c.tested_words for c in result.analysis.processed_data)
        assert tested == 3
        for chapter in result.analysis.processed_data:
            assert chapter.tested_words + chapter.untested_words == chapter.total_words

    def test_ordering(self):
        words = [
            word("a", "10"),
            word("b", "2"),
            word("c", "3"),
            word("d", None),
            word("e", "1"),
        ]
        sessions = [
            make_session(1, {"3": {"correct": 1}}),
            make_session(0, {"10": {"correct": 1}}),
        ]
        result = aggregate(words, sessions)
        order = [c.chapter for c in result.analysis.processed_data]
        assert order == ["10", "3", "1", "2", NO_CHAPTER]

    def test_session_only_chapters_are_skipped(self):
        result = aggregate([word("a", "1")], [make_session(0, {"9": {"correct": 4}})])
        assert [c.chapter for c in result.analysis.processed_data] == ["1"]

    def test_history_truncated(self):
        sessions = [make_session(day, {"1": {"correct": 1}}) for day in range(20)]
        result = aggregate([word("a", "1", "C")], sessions, ChapterThresholds(history_length=15))
        chapter = result.analysis.processed_data[0]
        assert chapter.tests_performed == 20
        assert len(chapter.history) == 15
        assert chapter.history[-1].session_id == "s19"
        assert chapter.first_test_date == START

    def test_top_and_struggling(self):
        words = [word(f"a{i}", "1", "CCCC") for i in range(3)]
        words += [word(f"b{i}", "2", "IIII") for i in range(3)]
        words += [word("c", "3", "II")]
        sessions = [make_session(0, {"1": {"correct": 3}, "2": {"incorrect": 3}, "3": {"incorrect": 1}})]
        result = aggregate(words, sessions)
        assert [c.chapter for c in result.top_chapters] == ["1", "2", "3"]
        # chapter 3 has fewer than three tested words
        assert [c.chapter for c in result.struggling_chapters] == ["2", "1"]

    def test_session_stats(self):
        sessions = [
            make_session(0, {"1": {"correct": 20}}),
            make_session(1, {"1": {"correct": 10}}),
            make_session(2, {"1": {"correct": 2}}),
        ]
        result = aggregate([word("a", "1", "C")], sessions)
        stats = result.session_stats
        assert stats.total_sessions == 3
        assert stats.avg_words_per_session == 11
        assert stats.preferred_time_slot == "midday"
        assert stats.session_intensity.intensive == 1
        assert stats.session_intensity.medium == 1
        assert stats.session_intensity.light == 1
