import json

import pytest
from pydantic import ValidationError

from src.models.schemas import (
    ChatIntent,
    ChatRequest,
    ChatResponse,
    HistoricalWindow,
    ProactiveSuggestion,
    QueryPlan,
    Severity,
    SqlResult,
)


def test_chat_request_aliases_and_blank_brand():
    request = ChatRequest(
        message="  How did we do?  ",
        categoryId="code_reader_scanner",
        snapshotDate="2025-06-01",
        targetBrand="   ",
    )

    assert request.message == "How did we do?"
    assert request.category_id == "code_reader_scanner"
    assert request.target_brand is None


def test_query_plan_defaults_and_frozen():
    plan = QueryPlan(raw="x", normalized="x")

    assert plan.intent == ChatIntent.UNKNOWN.value
    assert plan.ranking_metric == "revenue"
    assert plan.ranking_target == "revenue_rank"
    assert plan.historical_window == HistoricalWindow.TWELVE_MONTHS.value
    assert plan.growth_window == "mom"
    assert plan.target_level == "brand"

    with pytest.raises(ValidationError):
        plan.intent = ChatIntent.RISK_SIGNAL


def test_chat_response_dedupes_warnings():
    response = ChatResponse(answer="ok", warnings=["a", "b", "a", ""])

    assert response.warnings == ["a", "b"]


def test_chat_response_confidence_bounds():
    with pytest.raises(ValidationError):
        ChatResponse(answer="ok", confidence=1.5)


def test_chat_response_serializes_camel_case():
    response = ChatResponse(answer="ok", suggested_questions=["next?"], window_used="MoM")

    payload = json.loads(response.to_json(by_alias=True))

    assert payload["suggestedQuestions"] == ["next?"]
    assert payload["windowUsed"] == "MoM"
    assert payload["intent"] == "unknown"


def test_proactive_suggestion_validation():
    card = ProactiveSuggestion(id="x", title="t", summary="s", severity=Severity.RISK, confidence=0.9)
    assert card.severity == "risk"

    with pytest.raises(ValidationError):
        ProactiveSuggestion(id="x", title="t", summary="s", confidence=2)


def test_sql_result_tool_payload():
    ok = SqlResult(ok=True, rows=[{"a": 1}], rowCount=4)
    failed = SqlResult(ok=False, error="Unknown table: x")

    assert ok.to_tool_payload() == {"ok": True, "rows": [{"a": 1}], "rowCount": 4}
    assert failed.to_tool_payload() == {"ok": False, "error": "Unknown table: x", "rows": []}
