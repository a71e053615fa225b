"""Learning velocity, acceleration and stability over test-session windows."""

import logging
from collections.abc import Sequence

from lexitrend.core.models import TestSessionRecord, TrendDirection, TrendSnapshot, VelocityByMetric
from lexitrend.core.sessions import hint_rate, words_per_minute
from lexitrend.core.stats import clamp, mean, pstdev
from lexitrend.core.thresholds import DEFAULT_THRESHOLDS, VelocityThresholds

logger = logging.getLogger(__name__)


class TrendVelocityAnalyzer:
    """Computes a TrendSnapshot from chronologically sorted sessions.

    Windows over a series of n values, with window size w (5 by default):

    - early: the first w values
    - recent: the last w values
    - previous: the up-to-w values preceding recent; when n <= w there is
      nothing before recent, so previous is every value but the last
      (the two windows overlap)
    """

    def __init__(self, thresholds: VelocityThresholds = DEFAULT_THRESHOLDS.velocity):
        self.thresholds = thresholds

    def windows(self, values: Sequence[float]) -> tuple[list[float], list[float], list[float]]:
        """Return (early, previous, recent) windows."""
        w = self.thresholds.window
        n = len(values)
        early = list(values[:w])
        recent = list(values[-w:]) if n else []
        if n > w:
            previous = list(values[max(0, n - 2 * w) : n - w])
        else:
            previous = list(values[: n - 1]) if n > 1 else []
        return early, previous, recent

    def velocity(self, values: Sequence[float]) -> float | None:
        """mean(recent) - mean(previous), or None with fewer than two values."""
        if len(values) < 2:
            return None
        _, previous, recent = self.windows(values)
        return mean(recent) - mean(previous)

    def acceleration(self, values: Sequence[float]) -> float:
        """Change in velocity versus the series one window earlier."""
        current = self.velocity(values)
        if current is None:
            return 0.0
        w = self.thresholds.window
        earlier = values[: len(values) - w]
        if len(earlier) < 2:
            earlier = values[:-1]
        prior = self.velocity(earlier)
        return current - (prior if prior is not None else 0.0)

    def stability(self, recent: Sequence[float]) -> float:
        normalized = clamp(pstdev(recent) / self.thresholds.stability_scale, 0.0, 1.0)
        return max(0.0, 1.0 - normalized)

    def confidence(self, session_count: int, stability: float) -> float:
        t = self.thresholds
        if session_count < 2:
            return 0.0
        sessions = min(session_count, t.confidence_session_cap)
        return min(100.0, t.base_confidence + t.confidence_per_session * sessions * stability)

    def analyze(self, timeline: Sequence[TestSessionRecord]) -> TrendSnapshot:
        """Analyze dated, usable sessions sorted ascending by timestamp."""
        scores = [s.score for s in timeline]
        n = len(scores)
        if n < 2:
            logger.debug("Velocity undefined with %d session(s)", n)
            return TrendSnapshot(session_count=n)

        early, _, recent = self.windows(scores)
        current = self.velocity(scores)
        acceleration = self.acceleration(scores)
        stability = self.stability(recent)

        band = self.thresholds.direction_band
        if acceleration > band:
            direction = TrendDirection.ACCELERATING
        elif acceleration < -band:
            direction = TrendDirection.DECELERATING
        else:
            direction = TrendDirection.STEADY

        efficiency = [max(0.0, s.score - hint_rate(s)) for s in timeline]
        speed = [words_per_minute(s) for s in timeline]

        return TrendSnapshot(
            current_velocity=round(current, 2),
            acceleration=round(acceleration, 2),
            direction=direction,
            confidence=round(self.confidence(n, stability), 2),
            stability_factor=round(stability, 4),
            overall_improvement=round(mean(recent) - mean(early), 2),
            velocity_by_metric=VelocityByMetric(
                accuracy=round(current, 2),
                efficiency=round(self.velocity(efficiency) or 0.0, 2),
                speed=round(self.velocity(speed) or 0.0, 2),
            ),
            session_count=n,
        )
