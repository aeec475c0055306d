"""Tests for the Claude client wrapper."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from src.services.llm_service import LLMClient, TokenUsage, parse_response
from src.utils.retry import LLMServiceError, MaxRetriesExceededError


def _response(*blocks, input_tokens=1000, output_tokens=1000, stop_reason="end_turn"):
    return SimpleNamespace(
        content=list(blocks),
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
        stop_reason=stop_reason,
    )


def _text(text):
    return SimpleNamespace(type="text", text=text)


def _tool_use(id_, name, arguments):
    return SimpleNamespace(type="tool_use", id=id_, name=name, input=arguments)


@pytest.fixture
def fake_anthropic():
    return SimpleNamespace(messages=SimpleNamespace(create=AsyncMock()), close=AsyncMock())


@pytest.fixture
def client(settings, fake_anthropic):
    return LLMClient(settings=settings, client=fake_anthropic, min_wait=0, max_wait=0)


# =============================================================================
# Response Parsing
# =============================================================================

def test_parse_text_and_tool_calls():
    response = _response(
        _text("Checking tables. "),
        _tool_use("toolu_1", "run_sql", {"query": "SELECT * FROM brands_monthly"}),
        stop_reason="tool_use",
    )

    completion = parse_response(response, "claude-sonnet-4-20250514")

    assert completion.content == "Checking tables."
    assert completion.tool_calls[0].name == "run_sql"
    assert completion.tool_calls[0].arguments == {"query": "SELECT * FROM brands_monthly"}
    assert completion.stop_reason == "tool_use"
    assert completion.usage.estimated_cost == pytest.approx(0.018)
    assert completion.assistant_message()["content"][1] == {
        "type": "tool_use",
        "id": "toolu_1",
        "name": "run_sql",
        "input": {"query": "SELECT * FROM brands_monthly"},
    }


def test_parse_dict_blocks_without_text():
    response = {
        "content": [{"type": "tool_use", "id": "t", "name": "list_tables", "input": "bad"}],
        "usage": None,
    }

    completion = parse_response(response, "unknown-model")

    assert completion.content is None
    assert completion.tool_calls[0].arguments == {}
    assert completion.usage.total_tokens == 0


def test_unknown_model_has_no_cost():
    usage = TokenUsage(input_tokens=500, output_tokens=500, model="some-other-model")

    assert usage.calculate_cost() == 0.0


# =============================================================================
# Client
# =============================================================================

def test_client_requires_api_key(settings):
    with pytest.raises(LLMServiceError, match="ANTHROPIC_API_KEY"):
        LLMClient(settings=settings)


def test_client_builds_anthropic_client(llm_settings):
    with patch("src.services.llm_service.anthropic.AsyncAnthropic") as mock_anthropic:
        LLMClient(settings=llm_settings)

    mock_anthropic.assert_called_once_with(api_key="sk-ant-test-key")


@pytest.mark.asyncio
async def test_complete_sends_request(client, fake_anthropic, settings):
    fake_anthropic.messages.create.return_value = _response(_text('{"answer": "ok"}'))

    completion = await client.complete(
        [{"role": "user", "content": "Hi"}],
        tools=[{"name": "list_tables"}],
        system="be brief",
    )

    assert completion.content == '{"answer": "ok"}'
    kwargs = fake_anthropic.messages.create.call_args.kwargs
    assert kwargs["model"] == settings.claude_model
    assert kwargs["system"] == "be brief"
    assert kwargs["tools"] == [{"name": "list_tables"}]
    assert kwargs["max_tokens"] == settings.claude_max_tokens
    assert client.get_usage_stats()["total_requests"] == 1


@pytest.mark.asyncio
async def test_complete_omits_empty_system_and_tools(client, fake_anthropic):
    fake_anthropic.messages.create.return_value = _response(_text("hello"))

    text = await client.complete_text("Hi")

    assert text == "hello"
    kwargs = fake_anthropic.messages.create.call_args.kwargs
    assert "system" not in kwargs
    assert "tools" not in kwargs


@pytest.mark.asyncio
async def test_timeout_is_retried(client, fake_anthropic):
    fake_anthropic.messages.create.side_effect = [asyncio.TimeoutError(), _response(_text("done"))]

    completion = await client.complete([{"role": "user", "content": "Hi"}])

    assert completion.content == "done"
    assert fake_anthropic.messages.create.call_count == 2


@pytest.mark.asyncio
async def test_retries_are_bounded(client, fake_anthropic, settings):
    fake_anthropic.messages.create.side_effect = asyncio.TimeoutError()

    with pytest.raises(MaxRetriesExceededError):
        await client.complete([{"role": "user", "content": "Hi"}])

    assert fake_anthropic.messages.create.call_count == settings.max_retries


@pytest.mark.asyncio
async def test_context_manager_closes_client(settings, fake_anthropic):
    async with LLMClient(settings=settings, client=fake_anthropic):
        pass

    fake_anthropic.close.assert_awaited_once()
