"""Tests for decoding model answers."""

import pytest

from src.models.schemas import Severity
from src.services.response_shape import (
    FALLBACK_ANSWER,
    LLM_INTENT,
    NOT_JSON_WARNING,
    coerce_payload,
    decode_model_answer,
    safe_parse_json,
)


@pytest.mark.parametrize("text", [
    '{"answer": "Revenue grew."}',
    'Here you go:\n```json\n{"answer": "Revenue grew."}\n```',
    'Sure. {"answer": "Revenue grew."} Anything else?',
])
def test_safe_parse_json_finds_the_object(text):
    assert safe_parse_json(text) == {"answer": "Revenue grew."}


@pytest.mark.parametrize("text", [None, "", "no json here", "[1, 2, 3]", "{broken"])
def test_safe_parse_json_rejects_non_objects(text):
    assert safe_parse_json(text) is None


def test_decode_plain_text():
    response = decode_model_answer("Revenue grew a lot.", ["What changed?"])

    assert response.intent == LLM_INTENT
    assert response.answer == FALLBACK_ANSWER
    assert response.warnings == [NOT_JSON_WARNING]
    assert response.suggested_questions == ["What changed?"]


def test_decode_valid_payload():
    text = """{
        "answer": " Innova leads the category. ",
        "bullets": ["a", "b", "c", "d", "e", "f", "g"],
        "evidence": [{"label": "Revenue", "value": "$500K"}, {"label": "Units", "value": ""}],
        "proactive": [{"id": "p1", "title": "Watch", "summary": "Autel is rising.", "severity": "watch"}],
        "suggestedQuestions": ["Who is next?"],
        "warnings": [],
        "sourcesUsed": ["brands_monthly"],
        "windowUsed": "MoM"
    }"""

    response = decode_model_answer(text, ["unused"])

    assert response.answer == "Innova leads the category."
    assert response.bullets == ["a", "b", "c", "d", "e"]
    assert [(item.label, item.value) for item in response.evidence] == [("Revenue", "$500K")]
    assert response.proactive[0].severity == Severity.WATCH
    assert response.suggested_questions == ["Who is next?"]
    assert response.sources_used == ["brands_monthly"]
    assert response.window_used == "MoM"
    assert response.warnings == []


def test_invalid_fields_are_coerced_individually():
    payload = {
        "answer": "Answer kept.",
        "bullets": ["one", 3, "  ", "two"],
        "proactive": [
            {"title": "Spike", "summary": "Units jumped.", "severity": "critical"},
            {"title": "", "summary": "dropped"},
            "not a card",
        ],
    }

    response = coerce_payload(payload, ["Fallback?"])

    assert response.answer == "Answer kept."
    assert response.bullets == ["one", "two"]
    assert len(response.proactive) == 1
    assert response.proactive[0].id == "llm-suggestion-1"
    assert response.proactive[0].severity == Severity.INFO
    assert response.suggested_questions == ["Fallback?"]


def test_missing_answer_and_merged_warnings():
    response = coerce_payload({"answer": 42, "warnings": ["w1", "w2"]}, [], ["w2", "w3"])

    assert response.answer == FALLBACK_ANSWER
    assert response.warnings == ["w1", "w2", "w3"]
    assert response.window_used is None
