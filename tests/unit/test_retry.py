import asyncio

import pytest
from unittest.mock import AsyncMock

from src.utils.retry import (
    AppError,
    ChatValidationError,
    DataUnavailableError,
    ErrorHandler,
    LLMServiceError,
    MaxRetriesExceededError,
    QueryRejectedError,
    RetryableLLMError,
    model_call_retrying,
)


async def _call_with_policy(func, **kwargs):
    async for attempt in model_call_retrying(min_wait=0, max_wait=0, before_sleep=None, **kwargs):
        with attempt:
            return await func()


@pytest.mark.asyncio
async def test_retry_success_first_attempt():
    mock_func = AsyncMock(return_value="success")

    assert await _call_with_policy(mock_func) == "success"
    assert mock_func.call_count == 1


@pytest.mark.asyncio
async def test_retry_fail_then_success():
    mock_func = AsyncMock(side_effect=[RetryableLLMError("Fail"), "success"])

    assert await _call_with_policy(mock_func) == "success"
    assert mock_func.call_count == 2


@pytest.mark.asyncio
async def test_retry_exhausted_reraises_last_error():
    mock_func = AsyncMock(side_effect=RetryableLLMError("Permanent Fail"))

    with pytest.raises(RetryableLLMError, match="Permanent Fail"):
        await _call_with_policy(mock_func, max_attempts=2)

    assert mock_func.call_count == 2


@pytest.mark.asyncio
async def test_non_retryable_error_is_not_retried():
    mock_func = AsyncMock(side_effect=LLMServiceError("Authentication failed"))

    with pytest.raises(LLMServiceError):
        await _call_with_policy(mock_func)

    assert mock_func.call_count == 1


def test_app_error_details_default():
    error = AppError("broken")

    assert error.message == "broken"
    assert error.details == {}
    assert str(error) == "broken"


@pytest.mark.parametrize(
    "error,category",
    [
        (ChatValidationError("bad"), "VALIDATION_ERROR"),
        (DataUnavailableError("gone"), "DATA_UNAVAILABLE"),
        (QueryRejectedError("no"), "QUERY_REJECTED"),
        (MaxRetriesExceededError("tired"), "MODEL_RETRIES_EXHAUSTED"),
        (asyncio.TimeoutError(), "TIMEOUT_ERROR"),
        (LLMServiceError("model"), "MODEL_ERROR"),
        (ConnectionError("refused"), "NETWORK_ERROR"),
        (ValueError("parse"), "PARSING_ERROR"),
        (RuntimeError("rate limit hit"), "RATE_LIMIT_ERROR"),
        (RuntimeError("upstream timeout"), "TIMEOUT_ERROR"),
        (RuntimeError("connection reset"), "NETWORK_ERROR"),
        (RuntimeError("boom"), "UNKNOWN_ERROR"),
    ],
)
def test_categorize_error(error, category):
    assert ErrorHandler.categorize_error(error) == category
