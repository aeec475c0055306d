"""Deterministic analyzers for the competitive intelligence chat core."""

from src.analyzers.base import AnalyzerContext, AnalyzerOutput
from src.analyzers.category_data import (
    NormalizedCategoryData,
    TrendContext,
    normalize_category_data,
    trend_context,
)
from src.analyzers.clarifications import Clarification, get_clarification
from src.analyzers.competitor_engine import (
    WEIGHTS,
    CompetitorCandidate,
    CompetitorResult,
    find_closest_competitors,
)
from src.analyzers.metrics_engine import ANALYZERS, analyze, run_analyzer
from src.analyzers.proactive import SynthesisSummary, build_signals, build_snapshot_suggestions

__all__ = [
    # Engine
    "AnalyzerContext",
    "AnalyzerOutput",
    "ANALYZERS",
    "analyze",
    "run_analyzer",
    # Category data
    "NormalizedCategoryData",
    "TrendContext",
    "normalize_category_data",
    "trend_context",
    # Competitors
    "WEIGHTS",
    "CompetitorCandidate",
    "CompetitorResult",
    "find_closest_competitors",
    # Signals
    "SynthesisSummary",
    "build_signals",
    "build_snapshot_suggestions",
    # Clarifications
    "Clarification",
    "get_clarification",
]
