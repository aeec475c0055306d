"""Tests for the rephrase guardrail."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models.schemas import ChatResponse
from src.services.rephrase import contains_all_brands, extract_explicit_brands, rephrase_response
from src.utils.retry import LLMServiceError


@pytest.fixture
def deterministic():
    return ChatResponse(
        intent="brand_health",
        answer="INNOVA delivered $500K monthly revenue.",
        bullets=["Innova rank is #2 by revenue."],
        suggested_questions=["What changed?"],
        confidence=0.4,
    )


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.complete_text = AsyncMock()
    return client


@pytest.mark.parametrize("question,expected", [
    ("How did Innova do?", ["innova"]),
    ("Compare INNOVA with Blck Tek", ["innova", "blcktec"]),
    ("Is BlackTec growing?", ["blcktec"]),
    ("How did we do?", []),
])
def test_extract_explicit_brands(question, expected):
    assert extract_explicit_brands(question) == expected


def test_contains_all_brands():
    assert contains_all_brands("Innova and BLCKTEC both grew", ["innova", "blcktec"])
    assert not contains_all_brands("Innova grew", ["innova", "blcktec"])


@pytest.mark.asyncio
async def test_rewrite_keeps_deterministic_fields(mock_client, deterministic):
    mock_client.complete_text.return_value = (
        '{"answer": "Innova delivered $500K in monthly revenue.", "bullets": ["Ranked #2 by revenue."]}'
    )

    result = await rephrase_response(mock_client, "How did Innova do?", deterministic)

    assert result.answer == "Innova delivered $500K in monthly revenue."
    assert result.bullets == ["Ranked #2 by revenue."]
    assert result.suggested_questions == ["What changed?"]
    assert result.intent == "brand_health"
    assert result.confidence == 0.4
    call = mock_client.complete_text.call_args
    assert "INNOVA delivered $500K monthly revenue." in call.args[0]
    assert "Keep every brand name" in call.kwargs["system"]


@pytest.mark.asyncio
async def test_rewrite_dropping_a_brand_is_rejected(mock_client, deterministic):
    mock_client.complete_text.return_value = '{"answer": "Innova delivered $500K."}'

    assert await rephrase_response(mock_client, "Compare Innova and blck tek", deterministic) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["Sure, here it is.", '{"answer": "   "}', '{"bullets": ["x"]}'])
async def test_unusable_rewrite_is_rejected(mock_client, deterministic, reply):
    mock_client.complete_text.return_value = reply

    assert await rephrase_response(mock_client, "How did we do?", deterministic) is None


@pytest.mark.asyncio
async def test_failed_request_is_rejected(mock_client, deterministic):
    mock_client.complete_text.side_effect = LLMServiceError("Authentication failed")

    assert await rephrase_response(mock_client, "How did we do?", deterministic) is None
