"""Data models module for the competitive intelligence chat core."""

from src.models.schemas import (
    # Base Models
    BaseModel,

    # Enums
    ChatIntent,
    AnalyzerId,
    ScopeMode,
    RankingMetric,
    RankingTarget,
    HistoricalWindow,
    GrowthWindow,
    TargetLevel,
    ProductTypeScope,
    Severity,
    EntitySourceKind,
    SalesArchetype,
    TraceStatus,

    # Request Models
    ChatRequest,

    # Query Understanding Models
    IntentDetection,
    QueryPlan,
    ResolvedScope,
    EntitySourceHit,
    ResolvedEntities,

    # Answer Models
    EvidenceItem,
    CitationItem,
    AnalysisTraceStep,
    TopContributor,
    ProactiveSuggestion,
    ChatResponse,

    # Interpreter Models
    SqlResult,
)

__all__ = [
    "BaseModel",
    "ChatIntent",
    "AnalyzerId",
    "ScopeMode",
    "RankingMetric",
    "RankingTarget",
    "HistoricalWindow",
    "GrowthWindow",
    "TargetLevel",
    "ProductTypeScope",
    "Severity",
    "EntitySourceKind",
    "SalesArchetype",
    "TraceStatus",
    "ChatRequest",
    "IntentDetection",
    "QueryPlan",
    "ResolvedScope",
    "EntitySourceHit",
    "ResolvedEntities",
    "EvidenceItem",
    "CitationItem",
    "AnalysisTraceStep",
    "TopContributor",
    "ProactiveSuggestion",
    "ChatResponse",
    "SqlResult",
]
