"""Session usability filtering, chronological ordering and data-quality reporting."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from lexitrend.core.models import DataQualityReport, TestSessionRecord

logger = logging.getLogger(__name__)


def coerce_sessions(raw: Iterable[Any]) -> tuple[list[TestSessionRecord], int]:
    """Validate raw session dicts, returning (sessions, rejected_count).

    Records that fail validation are skipped rather than raised.
    """
    sessions: list[TestSessionRecord] = []
    rejected = 0
    for item in raw:
        if isinstance(item, TestSessionRecord):
            sessions.append(item)
            continue
        try:
            sessions.append(TestSessionRecord.model_validate(item))
        except ValidationError as exc:
            rejected += 1
            logger.warning("Skipping malformed test session: %s", exc.errors()[0]["msg"])
    return sessions, rejected


def is_usable(session: TestSessionRecord) -> bool:
    """A session needs a timestamp field and some way to compute its accuracy."""
    has_timestamp = session.timestamp is not None or session.timestamp_invalid
    return has_timestamp and session.score is not None


@dataclass
class SessionSet:
    """Sessions partitioned by what they can be used for.

    ``usable`` keeps input order and feeds count-based aggregates;
    ``timeline`` holds usable sessions with a valid timestamp, sorted
    ascending, and feeds every temporal or ordering computation.
    """

    usable: list[TestSessionRecord] = field(default_factory=list)
    timeline: list[TestSessionRecord] = field(default_factory=list)
    quality: DataQualityReport = field(default_factory=DataQualityReport)

    @property
    def scores(self) -> list[float]:
        return [s.score for s in self.timeline]


def prepare_sessions(sessions: Iterable[TestSessionRecord], rejected: int = 0) -> SessionSet:
    """Filter, order and audit a session history."""
    all_sessions = list(sessions)
    quality = DataQualityReport(total_sessions=len(all_sessions) + rejected)
    quality.excluded_sessions = rejected
    usable: list[TestSessionRecord] = []

    for session in all_sessions:
        if session.timestamp_invalid:
            quality.invalid_timestamps += 1
        if session.breakdown_dropped:
            quality.malformed_breakdowns += 1
        if not is_usable(session):
            quality.excluded_sessions += 1
            continue
        if session.has_counts and session.total_words != session.answered:
            quality.inconsistent_totals += 1
        breakdown_answered = sum(c.answered for c in session.per_chapter_breakdown.values())
        if session.has_counts and breakdown_answered > session.answered:
            quality.breakdown_overflows += 1
        usable.append(session)

    # sorted() is stable, so equal timestamps keep input order
    timeline = sorted((s for s in usable if s.is_dated), key=lambda s: s.timestamp)

    quality.usable_sessions = len(usable)
    quality.timed_sessions = len(timeline)
    if quality.excluded_sessions:
        quality.flags.append(
            f"{quality.excluded_sessions} session(s) excluded: missing timestamp or results"
        )
    if quality.invalid_timestamps:
        quality.flags.append(
            f"{quality.invalid_timestamps} session(s) with unparsable timestamps "
            "left out of temporal analysis"
        )
    if quality.inconsistent_totals:
        quality.flags.append(
            f"{quality.inconsistent_totals} session(s) where correct + incorrect != total"
        )
    if quality.breakdown_overflows:
        quality.flags.append(
            f"{quality.breakdown_overflows} session(s) whose chapter breakdown exceeds totals"
        )
    if quality.malformed_breakdowns:
        quality.flags.append(
            f"{quality.malformed_breakdowns} session(s) with malformed chapter breakdown "
            "entries left out"
        )

    if quality.flags:
        logger.debug("Session data quality: %s", "; ".join(quality.flags))

    return SessionSet(usable=usable, timeline=timeline, quality=quality)


def mean_gap_days(timeline: list[TestSessionRecord]) -> float | None:
    """Mean number of days between consecutive dated sessions."""
    if len(timeline) < 2:
        return None
    span = timeline[-1].timestamp - timeline[0].timestamp
    return span.total_seconds() / 86400 / (len(timeline) - 1)


def words_per_minute(session: TestSessionRecord) -> float:
    if session.total_time_ms <= 0 or session.answered <= 0:
        return 0.0
    return session.answered / (session.total_time_ms / 60000)


def hint_rate(session: TestSessionRecord) -> float:
    """Hints per answered word, as a percentage."""
    answered = session.answered or session.total_words
    if answered <= 0:
        return 0.0
    return session.hints_used / answered * 100
