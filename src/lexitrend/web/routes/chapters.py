"""Chapter rollup route."""

from fastapi import APIRouter, Depends

from lexitrend.core.engine import AnalyticsEngine
from lexitrend.core.store import HistoryStore
from lexitrend.web.dependencies import get_engine, get_store

router = APIRouter()


@router.get("")
async def chapter_analysis(
    store: HistoryStore = Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    """Per-chapter metrics, overview, top and struggling chapters."""
    words, sessions = store.load()
    return engine.analyze_chapters(words, sessions).model_dump(mode="json")
