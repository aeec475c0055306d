"""
Deterministic analyzer dispatch and response assembly.

The engine maps a routed analyzer id to its analyzer function, records an
analysis trace for every stage of the deterministic pipeline and assembles
the final ChatResponse, including proactive cards and data-quality warnings.
"""

from typing import Callable

from src.analyzers import brand_analyzers, category_analyzers
from src.analyzers.base import AnalyzerContext, AnalyzerOutput, base_evidence, citation, unknown_output
from src.analyzers.category_data import trend_context
from src.analyzers.proactive import build_signals
from src.models.schemas import (
    AnalysisTraceStep,
    AnalyzerId,
    ChatIntent,
    ChatResponse,
    ProactiveSuggestion,
    ScopeMode,
    TraceStatus,
)
from src.routing.intent_router import RouteDecision
from src.utils.logger import get_logger

logger = get_logger(__name__)

MAX_WARNINGS = 6

UNKNOWN_ANSWER = (
    "I can analyze product competitors, product trends, market shifts, risks, and opportunities. "
    "Tell me a product ASIN or brand to go deeper."
)

CLARIFICATION_QUESTIONS = [
    "Which ASIN should we analyze?",
    "Compare Innova 5610 against closest competitors.",
    "Show product trend for Innova 5610.",
]

Analyzer = Callable[[AnalyzerContext], AnalyzerOutput]


def _archetype_explainer(ctx: AnalyzerContext) -> AnalyzerOutput:
    return brand_analyzers.analyze_brand_archetype(ctx, AnalyzerId.PRICE_VS_VOLUME_EXPLAINER)


ANALYZERS: dict[str, Analyzer] = {
    AnalyzerId.FASTEST_GROWTH.value: brand_analyzers.analyze_fastest_growth,
    AnalyzerId.FASTEST_MOVER.value: brand_analyzers.analyze_fastest_growth,
    AnalyzerId.FASTEST_RANK_MOVER.value: brand_analyzers.analyze_fastest_rank_mover,
    AnalyzerId.TYPE_GROWTH.value: brand_analyzers.analyze_type_growth,
    AnalyzerId.GROWTH_DRIVER.value: brand_analyzers.analyze_growth_driver,
    AnalyzerId.ASIN_HISTORY.value: brand_analyzers.analyze_asin_history,
    AnalyzerId.BRAND_ARCHETYPE.value: brand_analyzers.analyze_brand_archetype,
    AnalyzerId.PRICE_VS_VOLUME_EXPLAINER.value: _archetype_explainer,
    AnalyzerId.PRODUCT_COMPETITOR.value: brand_analyzers.analyze_product_competitor,
    AnalyzerId.PRODUCT_TREND.value: brand_analyzers.analyze_product_trend,
    AnalyzerId.BRAND_HEALTH.value: brand_analyzers.analyze_brand_health,
    AnalyzerId.MARKET_SHIFT.value: brand_analyzers.analyze_market_shift,
    AnalyzerId.COMPETITIVE_GAPS.value: brand_analyzers.analyze_market_shift,
    AnalyzerId.BRAND_COMPARISON.value: brand_analyzers.analyze_market_shift,
    AnalyzerId.RISK_SIGNAL.value: brand_analyzers.analyze_risk_signal,
    AnalyzerId.MARKET_CONCENTRATION.value: brand_analyzers.analyze_risk_signal,
    AnalyzerId.OPPORTUNITY_SIGNAL.value: brand_analyzers.analyze_opportunity_signal,
    AnalyzerId.PRODUCT_TYPE_MIX.value: brand_analyzers.analyze_opportunity_signal,
    AnalyzerId.PRICE_VOLUME_TRADEOFF.value: brand_analyzers.analyze_opportunity_signal,
    AnalyzerId.TOP_PRODUCTS.value: brand_analyzers.analyze_top_products,
    AnalyzerId.MARKET_LEADER.value: brand_analyzers.analyze_top_products,
    AnalyzerId.MARKET_SIZE.value: brand_analyzers.analyze_top_products,
    AnalyzerId.PRICE_RANGE.value: category_analyzers.analyze_price_range,
    AnalyzerId.TRENDS_MOMENTUM.value: category_analyzers.analyze_trends_momentum,
    AnalyzerId.RATING_REVIEWS.value: category_analyzers.analyze_rating_reviews,
    AnalyzerId.FEATURE_ANALYSIS.value: category_analyzers.analyze_feature_analysis,
    AnalyzerId.DATA_CLARIFICATION.value: category_analyzers.analyze_data_clarification,
}


def run_analyzer(analyzer_id: str, ctx: AnalyzerContext) -> AnalyzerOutput:
    """Run one analyzer; unknown ids fall back to the capability overview."""
    analyzer = ANALYZERS.get(str(getattr(analyzer_id, "value", analyzer_id)))
    if analyzer is None:
        return unknown_output(ctx, UNKNOWN_ANSWER)
    return analyzer(ctx)


# =============================================================================
# Trace
# =============================================================================

def _step(step: str, ok: bool = True) -> AnalysisTraceStep:
    return AnalysisTraceStep(step=step, status=TraceStatus.OK if ok else TraceStatus.PARTIAL)


def build_trace(ctx: AnalyzerContext, decision: RouteDecision) -> list[AnalysisTraceStep]:
    """Trace of the index, parse, resolve and route stages."""
    entities = ctx.entities
    return [
        _step("Build product index"),
        _step(f"Parse query intent ({ctx.plan.intent})", ctx.plan.confidence > 0),
        _step("Resolve entities (brand/ASIN/product)", bool(entities.asins or entities.brands)),
        _step(f"Resolve scope ({ctx.scope.mode})", ctx.scope.mode != ScopeMode.ALL_BRANDS),
        _step(f"Route analyzer ({decision.analyzer.value})"),
    ]


def default_proactive(ctx: AnalyzerContext) -> list[ProactiveSuggestion]:
    return build_signals(ctx.category_data, trend_context(ctx.index))


def _unique_warnings(*groups: list[str]) -> list[str]:
    seen: list[str] = []
    for group in groups:
        for warning in group:
            if warning and warning not in seen:
                seen.append(warning)
    return seen[:MAX_WARNINGS]


# =============================================================================
# Responses
# =============================================================================

def clarification_response(
    ctx: AnalyzerContext,
    question: str,
    trace: list[AnalysisTraceStep],
) -> ChatResponse:
    """Fail-closed answer asking which product the question meant."""
    return ChatResponse(
        intent=ChatIntent.UNKNOWN.value,
        answer=question,
        bullets=["I need one more detail to run a precise product-level analysis."],
        evidence=base_evidence(ctx.snapshot),
        proactive=default_proactive(ctx),
        suggested_questions=list(CLARIFICATION_QUESTIONS),
        warnings=_unique_warnings(ctx.category_data.warnings),
        confidence=0.42,
        assumptions=["Question referenced product-level analysis without a unique product match."],
        citations=[citation("Entity resolver", "code_reader_snapshot", ctx.snapshot.date)],
        analysis_trace=trace,
        entities=ctx.entities,
        sources_used=list(ctx.snapshot.source_files),
    )


def assemble_response(
    ctx: AnalyzerContext,
    analyzer_id: str,
    output: AnalyzerOutput,
    trace: list[AnalysisTraceStep],
) -> ChatResponse:
    proactive = output.proactive if output.proactive is not None else default_proactive(ctx)
    trace.append(_step("Build proactive synthesis", bool(proactive)))
    return ChatResponse(
        intent=str(getattr(analyzer_id, "value", analyzer_id)),
        answer=output.answer,
        bullets=output.bullets,
        evidence=output.evidence,
        proactive=proactive,
        suggested_questions=output.suggested_questions,
        warnings=_unique_warnings(output.warnings, ctx.category_data.warnings),
        confidence=round(max(0.0, min(1.0, output.confidence)), 2),
        assumptions=output.assumptions,
        citations=output.citations,
        analysis_trace=trace,
        entities=ctx.entities,
        historical_window=output.historical_window,
        sales_archetype=output.sales_archetype,
        top_contributors=output.top_contributors,
        sources_used=list(ctx.snapshot.source_files),
        window_used=output.window_used,
    )


def analyze(ctx: AnalyzerContext, decision: RouteDecision) -> ChatResponse:
    """
    Produce the deterministic answer for a routed question.

    Args:
        ctx: Index, plan, resolution and tuning for this request.
        decision: Router output; a clarification question short-circuits
            analysis.

    Returns:
        Fully assembled ChatResponse with its analysis trace.
    """
    trace = build_trace(ctx, decision)
    if decision.needs_clarification:
        logger.info("Requesting clarification", rule=decision.rule)
        return clarification_response(ctx, decision.clarification_question or "", trace)

    output = run_analyzer(decision.analyzer, ctx)
    trace.append(_step("Execute deterministic analyzer"))
    response = assemble_response(ctx, decision.analyzer, output, trace)
    logger.info(
        "Analyzer completed",
        analyzer=response.intent,
        confidence=response.confidence,
        bullets=len(response.bullets),
    )
    return response


__all__ = [
    "ANALYZERS",
    "run_analyzer",
    "build_trace",
    "default_proactive",
    "clarification_response",
    "assemble_response",
    "analyze",
]
