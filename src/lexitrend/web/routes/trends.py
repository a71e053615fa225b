"""Trend analysis and recommendation routes."""

from fastapi import APIRouter, Depends, HTTPException, Query

from lexitrend.config import Settings
from lexitrend.core.engine import AnalyticsEngine
from lexitrend.core.models import Goal, ProjectionTimeframe, TrendsAnalysisResult
from lexitrend.core.projections import parse_horizons
from lexitrend.core.store import HistoryStore
from lexitrend.web.dependencies import get_app_settings, get_engine, get_store

router = APIRouter()


def _analyze(
    store: HistoryStore,
    engine: AnalyticsEngine,
    settings: Settings,
    horizon: list[str] | None,
    goal: list[float] | None,
) -> TrendsAnalysisResult:
    try:
        horizons: list[ProjectionTimeframe] = (
            parse_horizons(horizon) if horizon else settings.analysis.timeframes()
        )
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid horizon: {', '.join(horizon)}")

    if goal:
        if any(not 0 < g <= 100 for g in goal):
            raise HTTPException(status_code=422, detail="Goals must be between 0 and 100")
        goals = [Goal(name=f"{g:g}% accuracy", target_accuracy=g) for g in goal]
    else:
        goals = settings.analysis.goal_models()

    words, sessions = store.load()
    return engine.analyze_trends(words, sessions, goals=goals, horizons=horizons)


@router.get("")
async def trend_analysis(
    horizon: list[str] | None = Query(None),
    goal: list[float] | None = Query(None),
    store: HistoryStore = Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
    settings: Settings = Depends(get_app_settings),
):
    """Velocity, projections, patterns, recommendations and metadata."""
    return _analyze(store, engine, settings, horizon, goal).model_dump(mode="json")


@router.get("/recommendations")
async def recommendations(
    goal: list[float] | None = Query(None),
    store: HistoryStore = Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
    settings: Settings = Depends(get_app_settings),
):
    """Only the recommendation system of the trend analysis."""
    result = _analyze(store, engine, settings, None, goal)
    return result.recommendation_system.model_dump(mode="json")
