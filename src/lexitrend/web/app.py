"""FastAPI application exposing the analytics as JSON."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lexitrend import __version__
from lexitrend.core.store import StoreError
from lexitrend.web.routes import chapters_router, trends_router, words_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Lexitrend",
        description="Learning analytics for vocabulary practice",
        version=__version__,
    )

    # Routes
    app.include_router(words_router, prefix="/words", tags=["words"])
    app.include_router(chapters_router, prefix="/chapters", tags=["chapters"])
    app.include_router(trends_router, prefix="/trends", tags=["trends"])

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("Failed to load input data: %s", exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


# Create the app instance for uvicorn
app = create_app()
