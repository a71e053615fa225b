"""Multi-horizon accuracy projections and milestone estimates."""

import logging
import math
from collections.abc import Sequence
from datetime import datetime, timedelta

from lexitrend.core.models import (
    Milestone,
    ProjectedMetrics,
    Projection,
    ProjectionFactor,
    ProjectionTimeframe,
    TrendSnapshot,
)
from lexitrend.core.stats import clamp, pstdev
from lexitrend.core.thresholds import DEFAULT_THRESHOLDS, ProjectionThresholds

logger = logging.getLogger(__name__)

ALL_HORIZONS: tuple[ProjectionTimeframe, ...] = tuple(ProjectionTimeframe)


def parse_horizons(values: Sequence[int | str | ProjectionTimeframe]) -> list[ProjectionTimeframe]:
    """Accept 7, "7", "7_days" or a ProjectionTimeframe; raise ValueError otherwise."""
    horizons = []
    for value in values:
        if isinstance(value, ProjectionTimeframe):
            horizons.append(value)
            continue
        text = str(value).strip()
        if not text.endswith("_days"):
            text = f"{text}_days"
        horizons.append(ProjectionTimeframe(text))
    # Preserve canonical order, drop duplicates
    return [h for h in ALL_HORIZONS if h in horizons]


class ProjectionEngine:
    """Extrapolates the current velocity over fixed horizons.

    Velocity is measured per session, so a horizon of ``days`` covers
    ``days / cadence`` sessions where cadence is the mean gap in days
    between dated sessions.
    """

    def __init__(self, thresholds: ProjectionThresholds = DEFAULT_THRESHOLDS.projection):
        self.thresholds = thresholds

    def confidence_at(self, base: float, days: float) -> float:
        """Confidence decays with every doubling of the horizon past one week.

        Shorter horizons keep the base confidence.
        """
        t = self.thresholds
        days = max(days, t.reference_horizon_days)
        decayed = base * (1 - t.confidence_decay * math.log2(days / t.reference_horizon_days))
        return clamp(decayed, t.confidence_floor, 100.0)

    def spread(self, confidence: float, stability: float) -> float:
        return (100 - confidence) * self.thresholds.bound_scale * (2 - stability)

    def project(
        self,
        snapshot: TrendSnapshot,
        current: float,
        cadence: float | None = None,
        reference: datetime | None = None,
        horizons: Sequence[ProjectionTimeframe] = ALL_HORIZONS,
        efficiency: float = 0.0,
        recent_scores: Sequence[float] = (),
    ) -> list[Projection]:
        """Project accuracy and efficiency for every requested horizon.

        ``reference`` anchors milestone dates; it should be the latest
        session timestamp so results don't depend on when they're computed.
        """
        cadence = cadence if cadence and cadence > 0 else self.thresholds.default_cadence_days
        factors = self.factors(recent_scores, cadence)
        projections = []
        for timeframe in horizons:
            days = timeframe.days
            sessions = days / cadence
            confidence = self.confidence_at(snapshot.confidence, days)
            spread = self.spread(confidence, snapshot.stability_factor)

            accuracy = clamp(current + snapshot.current_velocity * sessions, 0.0, 100.0)
            projected_efficiency = clamp(
                efficiency + snapshot.velocity_by_metric.efficiency * sessions, 0.0, 100.0
            )
            tests = round(sessions)

            projections.append(
                Projection(
                    timeframe=timeframe,
                    days=days,
                    expected_metrics=ProjectedMetrics(
                        accuracy=round(accuracy, 2),
                        efficiency=round(projected_efficiency, 2),
                        tests_completed=tests,
                    ),
                    optimistic_metrics=ProjectedMetrics(
                        accuracy=round(clamp(accuracy + spread, 0.0, 100.0), 2),
                        efficiency=round(clamp(projected_efficiency + spread, 0.0, 100.0), 2),
                        tests_completed=tests,
                    ),
                    pessimistic_metrics=ProjectedMetrics(
                        accuracy=round(clamp(accuracy - spread, 0.0, 100.0), 2),
                        efficiency=round(clamp(projected_efficiency - spread, 0.0, 100.0), 2),
                        tests_completed=tests,
                    ),
                    confidence=round(confidence, 2),
                    uncertainty=round(spread, 2),
                    milestones=self.milestones(snapshot, current, cadence, reference, days),
                    factors=factors,
                )
            )
        logger.debug("Projected %d horizon(s) at cadence %.2f days", len(projections), cadence)
        return projections

    def milestones(
        self,
        snapshot: TrendSnapshot,
        current: float,
        cadence: float,
        reference: datetime | None,
        horizon_days: int,
    ) -> list[Milestone]:
        milestones = []
        velocity = snapshot.current_velocity
        for name, target in self.thresholds.milestone_targets:
            if target <= current:
                continue
            if velocity <= 0:
                milestones.append(Milestone(name=name, target_accuracy=target, reachable=False))
                continue
            tests = (target - current) / velocity
            days = tests * cadence
            milestones.append(
                Milestone(
                    name=name,
                    target_accuracy=target,
                    reachable=True,
                    tests_needed=round(tests, 2),
                    days_needed=round(days, 2),
                    estimated_date=reference + timedelta(days=days) if reference else None,
                    probability=round(self.confidence_at(snapshot.confidence, days), 2),
                    within_horizon=days <= horizon_days,
                )
            )
        return milestones

    def factors(self, recent_scores: Sequence[float], cadence: float) -> list[ProjectionFactor]:
        """Consistency and study-frequency factors behind every projection."""
        deviation = pstdev(list(recent_scores)[-10:])
        if deviation < 15:
            consistency_trend = "positive"
            consistency_impact = "Very consistent results, projections are reliable"
        elif deviation > 30:
            consistency_trend = "negative"
            consistency_impact = "Variable results widen the projection range"
        else:
            consistency_trend = "neutral"
            consistency_impact = "Moderately consistent results"

        per_week = 7 / cadence
        if per_week >= 3:
            frequency_trend = "positive"
        elif per_week < 1:
            frequency_trend = "negative"
        else:
            frequency_trend = "neutral"

        return [
            ProjectionFactor(
                name="Performance consistency",
                weight=round(clamp((100 - deviation * 2) / 100, 0.0, 1.0), 4),
                trend=consistency_trend,
                impact=consistency_impact,
            ),
            ProjectionFactor(
                name="Study frequency",
                weight=round(min(1.0, per_week / 5), 4),
                trend=frequency_trend,
                impact=f"{per_week:.1f} sessions per week on average",
            ),
        ]
