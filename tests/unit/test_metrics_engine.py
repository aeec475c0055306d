"""Tests for analyzer dispatch and response assembly."""

from src.analyzers.metrics_engine import ANALYZERS, UNKNOWN_ANSWER, analyze, run_analyzer
from src.models.schemas import AnalyzerId, TraceStatus
from src.routing.intent_router import RouteDecision, route_intent


def _route(ctx):
    return route_intent(ctx.plan, ctx.resolution)


def test_every_analyzer_id_except_unknown_is_registered():
    missing = {item.value for item in AnalyzerId} - set(ANALYZERS) - {AnalyzerId.UNKNOWN.value}

    assert missing == set()


def test_analyze_builds_full_trace(make_context):
    ctx = make_context("How did Innova perform last month?")

    response = analyze(ctx, _route(ctx))

    assert response.intent == "brand_health"
    assert response.answer.startswith("INNOVA delivered $500K monthly revenue")
    steps = [step.step for step in response.analysis_trace]
    assert steps == [
        "Build product index",
        "Parse query intent (brand_health)",
        "Resolve entities (brand/ASIN/product)",
        "Resolve scope (explicit_brand)",
        "Route analyzer (brand_health)",
        "Execute deterministic analyzer",
        "Build proactive synthesis",
    ]
    assert all(step.status == TraceStatus.OK for step in response.analysis_trace)
    assert response.sources_used == ["code_reader_2025_06.xlsx"]
    assert response.evidence[0].label == "Snapshot"
    assert response.evidence[0].value == "2025-06-01"


def test_market_scope_marks_trace_partial(make_context):
    ctx = make_context("What is the price range?")

    response = analyze(ctx, _route(ctx))

    statuses = {step.step: step.status for step in response.analysis_trace}
    assert statuses["Resolve scope (all_brands)"] == TraceStatus.PARTIAL
    # category analyzers fall back to the ranked category signals
    assert [card.id for card in response.proactive] == [
        "price_quality_misalignment",
        "leader_vulnerability",
        "price_volume_arbitrage",
    ]


def test_clarification_short_circuits(make_context):
    ctx = make_context("Show the trend for the code reader")

    response = analyze(ctx, _route(ctx))

    assert response.intent == "unknown"
    assert response.answer.startswith("I found multiple products. Did you mean ")
    assert response.confidence == 0.42
    assert len(response.analysis_trace) == 5
    assert response.suggested_questions[0] == "Which ASIN should we analyze?"


def test_unknown_analyzer_falls_back(make_context):
    ctx = make_context("Hello there")

    output = run_analyzer("not_an_analyzer", ctx)

    assert output.answer == UNKNOWN_ANSWER
    assert output.confidence == 0.5
    assert output.bullets[0].startswith("Try: ")


def test_confidence_is_rounded(make_context):
    ctx = make_context("Who is the closest competitor to B08INN3160?")

    response = analyze(ctx, RouteDecision(AnalyzerId.PRODUCT_COMPETITOR, rule="test"))

    assert response.intent == "product_competitor"
    assert response.confidence == 0.75
    assert response.historical_window == "12m"
