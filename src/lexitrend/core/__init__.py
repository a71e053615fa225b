"""Core analytics library for Lexitrend."""

from lexitrend.core.cache import AnalysisCache, fingerprint
from lexitrend.core.chapters import ChapterAggregator
from lexitrend.core.classifier import WordPerformanceClassifier, filter_analyses, summarize
from lexitrend.core.engine import AnalyticsEngine
from lexitrend.core.models import (
    Attempt,
    ChapterAnalysisResult,
    Goal,
    ProjectionTimeframe,
    TestSessionRecord,
    TrendsAnalysisResult,
    WordAnalysis,
    WordPerformanceRecord,
    WordStatus,
)
from lexitrend.core.patterns import PatternDetector
from lexitrend.core.projections import ProjectionEngine
from lexitrend.core.recommendations import RecommendationGenerator
from lexitrend.core.store import HistoryStore, StoreError
from lexitrend.core.thresholds import DEFAULT_THRESHOLDS, Thresholds
from lexitrend.core.velocity import TrendVelocityAnalyzer

__all__ = [
    # Models
    "Attempt",
    "ChapterAnalysisResult",
    "Goal",
    "ProjectionTimeframe",
    "TestSessionRecord",
    "TrendsAnalysisResult",
    "WordAnalysis",
    "WordPerformanceRecord",
    "WordStatus",
    # Analysis
    "AnalyticsEngine",
    "ChapterAggregator",
    "PatternDetector",
    "ProjectionEngine",
    "RecommendationGenerator",
    "TrendVelocityAnalyzer",
    "WordPerformanceClassifier",
    "filter_analyses",
    "summarize",
    # Thresholds
    "DEFAULT_THRESHOLDS",
    "Thresholds",
    # Input and caching
    "AnalysisCache",
    "HistoryStore",
    "StoreError",
    "fingerprint",
]
