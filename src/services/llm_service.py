"""
Claude Messages API client for the chat core's model-backed paths.

The client is deliberately small: one ``complete`` call that sends a
conversation (optionally with tool definitions) and returns the assistant's
text and tool calls. Transport failures are retried with tenacity and every
request is bounded by a timeout.

Key Features:
    - Async/await support for non-blocking operations
    - Exponential backoff retries for rate limits, 5xx and connection errors
    - Per-request timeout via ``asyncio.wait_for``
    - Token usage tracking and cost estimation
    - Typed failures (``LLMServiceError`` family) for the tool loop

Example:
    >>> async with LLMClient() as client:
    ...     completion = await client.complete(messages, tools=TOOL_DEFINITIONS, system=prompt)
    ...     print(completion.content, completion.tool_calls)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import anthropic
from anthropic import APIConnectionError, APIError, APIStatusError, RateLimitError

from src.config.settings import Settings, get_settings
from src.utils.logger import get_logger
from src.utils.retry import (
    LLMServiceError,
    MaxRetriesExceededError,
    RetryableLLMError,
    model_call_retrying,
)

logger = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Token costs per model (per 1K tokens)
TOKEN_COSTS = {
    "claude-sonnet-4-20250514": {"input": 0.003, "output": 0.015},
    "claude-3-5-sonnet-20241022": {"input": 0.003, "output": 0.015},
    "claude-3-5-haiku-20241022": {"input": 0.0008, "output": 0.004},
}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class TokenUsage:
    """Token usage tracking for a single request."""
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    estimated_cost: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def calculate_cost(self) -> float:
        """Calculate estimated cost based on token usage."""
        costs = TOKEN_COSTS.get(self.model)
        if costs:
            self.estimated_cost = (
                (self.input_tokens / 1000) * costs["input"]
                + (self.output_tokens / 1000) * costs["output"]
            )
        return self.estimated_cost


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class Completion:
    """
    One assistant turn.

    Attributes:
        content: Concatenated text blocks, or None when the turn had no text.
        tool_calls: Tool invocations in the order the model issued them.
        blocks: The assistant content blocks, replayable as conversation history.
        stop_reason: Stop reason reported by the API.
        usage: Token usage of the request.
    """
    content: Optional[str] = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    blocks: list[dict[str, Any]] = field(default_factory=list)
    stop_reason: Optional[str] = None
    usage: TokenUsage = field(default_factory=TokenUsage)

    def assistant_message(self) -> dict[str, Any]:
        return {"role": "assistant", "content": list(self.blocks)}


def _block_value(block: Any, name: str, default: Any = None) -> Any:
    if isinstance(block, dict):
        return block.get(name, default)
    return getattr(block, name, default)


def parse_response(response: Any, model: str) -> Completion:
    """Convert a Messages API response into a Completion."""
    texts: list[str] = []
    tool_calls: list[ToolCall] = []
    blocks: list[dict[str, Any]] = []

    for block in _block_value(response, "content", None) or []:
        kind = _block_value(block, "type")
        if kind == "text":
            text = _block_value(block, "text", "") or ""
            texts.append(text)
            blocks.append({"type": "text", "text": text})
        elif kind == "tool_use":
            arguments = _block_value(block, "input", {})
            call = ToolCall(
                id=str(_block_value(block, "id", "")),
                name=str(_block_value(block, "name", "")),
                arguments=arguments if isinstance(arguments, dict) else {},
            )
            tool_calls.append(call)
            blocks.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments})

    raw_usage = _block_value(response, "usage", None)
    usage = TokenUsage(
        input_tokens=int(_block_value(raw_usage, "input_tokens", 0) or 0) if raw_usage is not None else 0,
        output_tokens=int(_block_value(raw_usage, "output_tokens", 0) or 0) if raw_usage is not None else 0,
        model=model,
    )
    usage.calculate_cost()

    content = "".join(texts).strip()
    return Completion(
        content=content or None,
        tool_calls=tool_calls,
        blocks=blocks,
        stop_reason=_block_value(response, "stop_reason", None),
        usage=usage,
    )


# =============================================================================
# Client
# =============================================================================

class LLMClient:
    """
    Async Claude client with retries, timeout and usage tracking.

    Example:
        >>> client = LLMClient()
        >>> async with client:
        ...     completion = await client.complete([{"role": "user", "content": "Hi"}])

    Attributes:
        settings: Application settings
        client: Anthropic API client
        usage_history: Token usage records of completed requests
        total_cost: Running total of estimated API costs
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
        min_wait: float = 1.0,
        max_wait: float = 10.0,
    ):
        """
        Initialize the client.

        Args:
            settings: Application settings instance
            api_key: Override API key (uses settings if not provided)
            client: Pre-built Anthropic client, mainly for tests
            min_wait: Minimum backoff between retries in seconds
            max_wait: Maximum backoff between retries in seconds

        Raises:
            LLMServiceError: If no API key is configured and no client is given.
        """
        self.settings = settings or get_settings()
        self.min_wait = min_wait
        self.max_wait = max_wait

        if client is None:
            secret = self.settings.anthropic_api_key
            key = api_key or (secret.get_secret_value() if secret is not None else "")
            if not key:
                raise LLMServiceError("ANTHROPIC_API_KEY is not configured.")
            client = anthropic.AsyncAnthropic(api_key=key)
        self.client = client

        self.usage_history: list[TokenUsage] = []
        self.total_cost: float = 0.0

        logger.debug(
            "LLMClient initialized",
            model=self.settings.claude_model,
            max_retries=self.settings.max_retries,
            timeout_seconds=self.settings.request_timeout_seconds,
        )

    async def __aenter__(self) -> "LLMClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the client connection."""
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
        logger.debug(
            "LLMClient closed",
            total_requests=len(self.usage_history),
            total_cost=f"${self.total_cost:.4f}",
        )

    # =========================================================================
    # Core API Methods
    # =========================================================================

    async def _create(self, request: dict[str, Any]) -> Any:
        """Single request; transport failures are mapped onto the LLM error family."""
        try:
            return await asyncio.wait_for(
                self.client.messages.create(**request),
                timeout=self.settings.request_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise RetryableLLMError(
                "Model request timed out.",
                {"timeout_seconds": self.settings.request_timeout_seconds},
            ) from e
        except RateLimitError as e:
            raise RetryableLLMError(f"Rate limited: {e}", {"status_code": 429}) from e
        except APIStatusError as e:
            if e.status_code >= 500:
                raise RetryableLLMError(f"Server error: {e}", {"status_code": e.status_code}) from e
            if e.status_code == 401:
                logger.error("Authentication failed", error=str(e))
                raise LLMServiceError(f"Authentication failed: {e}", {"status_code": 401}) from e
            logger.error("API error", status_code=e.status_code, error=str(e))
            raise LLMServiceError(f"API error: {e}", {"status_code": e.status_code}) from e
        except APIConnectionError as e:
            raise RetryableLLMError(f"Connection error: {e}") from e
        except APIError as e:
            raise LLMServiceError(f"API error: {e}") from e

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: Optional[list[dict[str, Any]]] = None,
        system: str = "",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Completion:
        """
        Send a conversation and return the assistant's next turn.

        Args:
            messages: Conversation in Messages API format
            tools: Tool definitions (name, description, input_schema)
            system: System prompt
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature

        Returns:
            Completion with text, tool calls and usage

        Raises:
            MaxRetriesExceededError: When retryable failures outlast the retry budget
            LLMServiceError: On non-retryable API errors
        """
        request: dict[str, Any] = {
            "model": self.settings.claude_model,
            "max_tokens": max_tokens or self.settings.claude_max_tokens,
            "temperature": self.settings.llm_temperature if temperature is None else temperature,
            "messages": messages,
        }
        if system:
            request["system"] = system
        if tools:
            request["tools"] = tools

        start_time = time.monotonic()
        try:
            async for attempt in model_call_retrying(
                max_attempts=self.settings.max_retries,
                min_wait=self.min_wait,
                max_wait=self.max_wait,
            ):
                with attempt:
                    response = await self._create(request)
        except RetryableLLMError as e:
            logger.error("Max retries exceeded", max_retries=self.settings.max_retries, error=e.message)
            raise MaxRetriesExceededError(
                f"Model request failed after {self.settings.max_retries} attempts: {e.message}",
                e.details,
            ) from e

        completion = parse_response(response, self.settings.claude_model)
        self.usage_history.append(completion.usage)
        self.total_cost += completion.usage.estimated_cost

        logger.info(
            "API call successful",
            elapsed_seconds=f"{time.monotonic() - start_time:.2f}",
            input_tokens=completion.usage.input_tokens,
            output_tokens=completion.usage.output_tokens,
            tool_calls=len(completion.tool_calls),
            stop_reason=completion.stop_reason,
        )
        return completion

    async def complete_text(self, prompt: str, system: str = "", max_tokens: Optional[int] = None) -> str:
        """Single-turn text completion without tools."""
        completion = await self.complete(
            [{"role": "user", "content": prompt}],
            system=system,
            max_tokens=max_tokens,
        )
        return completion.content or ""

    def get_usage_stats(self) -> dict[str, Any]:
        """Get usage statistics for the client."""
        total_tokens = sum(usage.total_tokens for usage in self.usage_history)
        return {
            "total_requests": len(self.usage_history),
            "total_tokens": total_tokens,
            "total_cost": self.total_cost,
        }


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "TOKEN_COSTS",
    "TokenUsage",
    "ToolCall",
    "Completion",
    "parse_response",
    "LLMClient",
]
