"""
Pydantic models and schemas for the competitive intelligence chat core.

This module defines the data structures that flow between the parser,
resolver, router, analyzers and the chat orchestrator, ensuring type safety,
validation, and serialization consistency.

Models:
    - ChatRequest: Inbound question with category/snapshot context
    - QueryPlan: Structured interpretation of a question (immutable)
    - ResolvedScope / ResolvedEntities: Entity resolution output
    - ProactiveSuggestion / EvidenceItem / CitationItem: Answer building blocks
    - ChatResponse: Complete answer returned to callers
    - SqlResult: Result envelope of the restricted query interpreter
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Self

from pydantic import (
    BaseModel as PydanticBaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# Base Configuration
# =============================================================================

class BaseModel(PydanticBaseModel):
    """Base model with common configuration for all schemas."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=False,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    def to_json(self, **kwargs) -> str:
        """Serialize model to JSON string."""
        return self.model_dump_json(indent=2, **kwargs)

    def to_dict(self, **kwargs) -> dict[str, Any]:
        """Serialize model to dictionary."""
        return self.model_dump(**kwargs)

    @classmethod
    def from_json(cls, json_str: str) -> Self:
        """Deserialize model from JSON string."""
        return cls.model_validate_json(json_str)


# =============================================================================
# Enums
# =============================================================================

class ChatIntent(str, Enum):
    """Intent labels produced by the query parser."""
    FASTEST_MOVER = "fastest_mover"
    ASIN_HISTORY = "asin_history"
    BRAND_ARCHETYPE = "brand_archetype"
    PRICE_VS_VOLUME_EXPLAINER = "price_vs_volume_explainer"
    PRODUCT_COMPETITOR = "product_competitor"
    PRODUCT_TREND = "product_trend"
    BRAND_HEALTH = "brand_health"
    MARKET_SHIFT = "market_shift"
    RISK_SIGNAL = "risk_signal"
    OPPORTUNITY_SIGNAL = "opportunity_signal"
    MARKET_SIZE = "market_size"
    MARKET_LEADER = "market_leader"
    PRICE_RANGE = "price_range"
    TOP_PRODUCTS = "top_products"
    PRODUCT_TYPE_MIX = "product_type_mix"
    PRICE_VOLUME_TRADEOFF = "price_volume_tradeoff"
    BRAND_COMPARISON = "brand_comparison"
    FEATURE_ANALYSIS = "feature_analysis"
    COMPETITIVE_GAPS = "competitive_gaps"
    TRENDS_MOMENTUM = "trends_momentum"
    RATING_REVIEWS = "rating_reviews"
    MARKET_CONCENTRATION = "market_concentration"
    SELF_ASSESSMENT = "self_assessment"
    COMPETITIVE_BENCHMARKING = "competitive_benchmarking"
    RISK_THREAT = "risk_threat"
    GROWTH_OPPORTUNITY = "growth_opportunity"
    DATA_CLARIFICATION = "data_clarification"
    UNKNOWN = "unknown"


class AnalyzerId(str, Enum):
    """Deterministic analyzers selectable by the intent router."""
    FASTEST_GROWTH = "fastest_growth"
    FASTEST_RANK_MOVER = "fastest_rank_mover"
    TYPE_GROWTH = "type_growth"
    GROWTH_DRIVER = "growth_driver"
    FASTEST_MOVER = "fastest_mover"
    ASIN_HISTORY = "asin_history"
    BRAND_ARCHETYPE = "brand_archetype"
    PRICE_VS_VOLUME_EXPLAINER = "price_vs_volume_explainer"
    PRODUCT_COMPETITOR = "product_competitor"
    PRODUCT_TREND = "product_trend"
    BRAND_HEALTH = "brand_health"
    MARKET_SHIFT = "market_shift"
    RISK_SIGNAL = "risk_signal"
    OPPORTUNITY_SIGNAL = "opportunity_signal"
    TOP_PRODUCTS = "top_products"
    MARKET_SIZE = "market_size"
    MARKET_LEADER = "market_leader"
    PRICE_RANGE = "price_range"
    PRODUCT_TYPE_MIX = "product_type_mix"
    PRICE_VOLUME_TRADEOFF = "price_volume_tradeoff"
    BRAND_COMPARISON = "brand_comparison"
    FEATURE_ANALYSIS = "feature_analysis"
    COMPETITIVE_GAPS = "competitive_gaps"
    TRENDS_MOMENTUM = "trends_momentum"
    RATING_REVIEWS = "rating_reviews"
    MARKET_CONCENTRATION = "market_concentration"
    DATA_CLARIFICATION = "data_clarification"
    UNKNOWN = "unknown"


class ScopeMode(str, Enum):
    """Brand scope modes, highest priority first."""
    EXPLICIT_BRAND = "explicit_brand"
    TARGET_BRAND = "target_brand"
    OWN_BRANDS = "own_brands"
    ALL_BRANDS = "all_brands"


class RankingMetric(str, Enum):
    REVENUE = "revenue"
    UNITS = "units"


class RankingTarget(str, Enum):
    REVENUE_RANK = "revenue_rank"
    UNITS_RANK = "units_rank"
    OVERALL_RANK = "overall_rank"


class HistoricalWindow(str, Enum):
    ONE_MONTH = "1m"
    THREE_MONTHS = "3m"
    SIX_MONTHS = "6m"
    TWELVE_MONTHS = "12m"
    ALL = "all"


class GrowthWindow(str, Enum):
    MOM = "mom"
    YOY = "yoy"
    BOTH = "both"


class TargetLevel(str, Enum):
    BRAND = "brand"
    TYPE = "type"
    ASIN = "asin"
    MARKET = "market"


class ProductTypeScope(str, Enum):
    TABLET = "tablet"
    DONGLE = "dongle"
    HANDHELD = "handheld"
    OTHER_TOOLS = "other_tools"


class Severity(str, Enum):
    """Severity of a proactive suggestion."""
    INFO = "info"
    WATCH = "watch"
    RISK = "risk"


class EntitySourceKind(str, Enum):
    """How an entity reference was discovered in the question."""
    EXACT_TOKEN = "exact_token"
    ALIAS = "alias"
    INFERRED_TITLE = "inferred_title"
    ASIN_MATCH = "asin_match"
    QUICK_ACTION_TARGET = "quick_action_target"


class SalesArchetype(str, Enum):
    PRICE_LED = "price_led"
    VOLUME_LED = "volume_led"
    BALANCED = "balanced"


class TraceStatus(str, Enum):
    OK = "ok"
    PARTIAL = "partial"
    MISSING = "missing"


# =============================================================================
# Request Models
# =============================================================================

class ChatRequest(BaseModel):
    """
    Inbound chat question.

    The message length limit is enforced by ValidationService so that the
    configured limit can change without touching the schema.
    """

    message: str = Field(
        ...,
        description="Free-text analytics question",
        examples=["How did we do this month?"],
    )
    category_id: str = Field(
        ...,
        alias="categoryId",
        description="Dashboard category identifier",
        examples=["code_reader_scanner"],
    )
    snapshot_date: str = Field(
        ...,
        alias="snapshotDate",
        description="Snapshot month in YYYY-MM-DD form",
        examples=["2025-06-01"],
    )
    pathname: Optional[str] = Field(
        default=None,
        description="Page the question was asked from",
    )
    target_brand: Optional[str] = Field(
        default=None,
        alias="targetBrand",
        description="Quick-action brand context",
    )

    @field_validator("target_brand", mode="before")
    @classmethod
    def blank_brand_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =============================================================================
# Query Understanding Models
# =============================================================================

class IntentDetection(BaseModel):
    """Keyword-scored intent with relative confidence."""

    intent: ChatIntent = ChatIntent.UNKNOWN
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class QueryPlan(BaseModel):
    """
    Structured, immutable interpretation of one question.

    Every optional hint has a concrete default so downstream analyzers never
    see an unset ranking metric or window.
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    normalized: str
    intent: ChatIntent = ChatIntent.UNKNOWN
    confidence: float = 0.0
    scope_mode: Optional[ScopeMode] = None
    scope_brands: tuple[str, ...] = ()
    include_own_brands: bool = False
    mentions_all_brands: bool = False
    ranking_metric: RankingMetric = RankingMetric.REVENUE
    ranking_target: RankingTarget = RankingTarget.REVENUE_RANK
    historical_window: HistoricalWindow = HistoricalWindow.TWELVE_MONTHS
    growth_window: GrowthWindow = GrowthWindow.MOM
    target_level: TargetLevel = TargetLevel.BRAND
    type_scope: Optional[ProductTypeScope] = None
    compare_to_last_month: bool = False
    compare_to_market: bool = False
    requires_type_scope: bool = False
    requires_price_scope: bool = False


class ResolvedScope(BaseModel):
    """Brand scope chosen for a request with its justification."""

    mode: ScopeMode
    brands: list[str] = Field(default_factory=list)
    source: str = ""


class EntitySourceHit(BaseModel):
    entity: str
    value: str
    source: EntitySourceKind


class ResolvedEntities(BaseModel):
    brands: list[str] = Field(default_factory=list)
    asins: list[str] = Field(default_factory=list)
    products: list[str] = Field(default_factory=list)
    entity_sources: list[EntitySourceHit] = Field(default_factory=list)


# =============================================================================
# Answer Models
# =============================================================================

class EvidenceItem(BaseModel):
    label: str
    value: str


class CitationItem(BaseModel):
    metric: str
    source: str
    snapshot: str


class AnalysisTraceStep(BaseModel):
    step: str
    status: TraceStatus = TraceStatus.OK


class TopContributor(BaseModel):
    asin: str
    title: str
    revenue: float
    units: float
    trend: str


class ProactiveSuggestion(BaseModel):
    """A proactive card surfaced next to an answer."""

    id: str
    title: str
    summary: str
    severity: Severity = Severity.INFO
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class ChatResponse(BaseModel):
    """
    Complete answer returned by the chat orchestrator.

    Required fields are always populated; the optional analysis fields are
    filled by deterministic analyzers and omitted by fallback paths.
    """

    intent: str = ChatIntent.UNKNOWN.value
    answer: str
    bullets: list[str] = Field(default_factory=list)
    evidence: list[EvidenceItem] = Field(default_factory=list)
    proactive: list[ProactiveSuggestion] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list, alias="suggestedQuestions")
    warnings: list[str] = Field(default_factory=list)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    assumptions: list[str] = Field(default_factory=list)
    citations: list[CitationItem] = Field(default_factory=list)
    analysis_trace: list[AnalysisTraceStep] = Field(default_factory=list, alias="analysisTrace")
    entities: Optional[ResolvedEntities] = None
    historical_window: Optional[HistoricalWindow] = Field(default=None, alias="historicalWindow")
    sales_archetype: Optional[SalesArchetype] = Field(default=None, alias="salesArchetype")
    top_contributors: list[TopContributor] = Field(default_factory=list, alias="topContributors")
    sources_used: list[str] = Field(default_factory=list, alias="sourcesUsed")
    window_used: Optional[str] = Field(default=None, alias="windowUsed")

    @model_validator(mode="after")
    def dedupe_warnings(self) -> Self:
        """Keep warnings unique while preserving their order."""
        seen: list[str] = []
        for warning in self.warnings:
            if warning and warning not in seen:
                seen.append(warning)
        self.warnings = seen
        return self


# =============================================================================
# Query Interpreter Models
# =============================================================================

class SqlResult(BaseModel):
    """Well-formed result of a restricted SELECT, successful or not."""

    ok: bool
    rows: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = Field(default=0, alias="rowCount")
    error: Optional[str] = None

    def to_tool_payload(self) -> dict[str, Any]:
        """Shape consumed by the model tool loop."""
        if not self.ok:
            return {"ok": False, "error": self.error, "rows": []}
        return {"ok": True, "rows": self.rows, "rowCount": self.row_count}


# =============================================================================
# Module Exports
# =============================================================================

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
