"""Dependency injection for FastAPI routes."""

from functools import lru_cache

from lexitrend.config import Settings, get_settings
from lexitrend.core.engine import AnalyticsEngine
from lexitrend.core.store import HistoryStore


@lru_cache
def get_app_settings() -> Settings:
    """Get the validated settings (singleton)."""
    return get_settings()


@lru_cache
def get_store() -> HistoryStore:
    """Get the input store instance (singleton)."""
    settings = get_app_settings()
    return HistoryStore(
        settings.paths.data_dir,
        settings.paths.words_file,
        settings.paths.history_file,
    )


@lru_cache
def get_engine() -> AnalyticsEngine:
    """Get the analytics engine with fingerprint caching (singleton)."""
    return AnalyticsEngine(cached=True)
