"""Word performance routes."""

from fastapi import APIRouter, Depends, HTTPException

from lexitrend.core.classifier import filter_analyses, summarize
from lexitrend.core.engine import AnalyticsEngine
from lexitrend.core.models import WordStatus
from lexitrend.core.store import HistoryStore
from lexitrend.web.dependencies import get_engine, get_store

router = APIRouter()


@router.get("")
async def list_words(
    search: str | None = None,
    chapter: str | None = None,
    learned: bool | None = None,
    difficult: bool | None = None,
    status: WordStatus | None = None,
    store: HistoryStore = Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    """Classified words with optional filters, plus a summary of the whole catalogue."""
    analyses = list(engine.analyze_words(store.load_words()).values())
    matches = filter_analyses(
        analyses,
        search=search,
        chapter=chapter,
        learned=learned,
        difficult=difficult,
        status=status,
    )
    return {
        "summary": summarize(analyses).model_dump(mode="json"),
        "words": [a.model_dump(mode="json") for a in matches],
    }


@router.get("/{word_id}")
async def get_word(
    word_id: str,
    store: HistoryStore = Depends(get_store),
    engine: AnalyticsEngine = Depends(get_engine),
):
    """Performance analysis of a single word."""
    analysis = engine.analyze_word(store.load_words(), word_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail=f"Word not found: {word_id}")
    return analysis.model_dump(mode="json")
