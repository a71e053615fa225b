"""JSON routes for Lexitrend."""

from lexitrend.web.routes.chapters import router as chapters_router
from lexitrend.web.routes.trends import router as trends_router
from lexitrend.web.routes.words import router as words_router

__all__ = ["chapters_router", "trends_router", "words_router"]
