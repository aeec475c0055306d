"""
Error taxonomy and retry utilities.

Every failure in the chat core belongs to one of a handful of categories;
only the external model call is retried. Nothing here is fatal to the
process: the orchestrator converts these errors into response warnings.
"""

import asyncio
from typing import Callable, Optional, Type

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.utils.logger import get_logger

logger = get_logger(__name__)

# =============================================================================
# Custom Exceptions
# =============================================================================

class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ChatValidationError(AppError):
    """Malformed request rejected before the core runs."""
    pass


class DataUnavailableError(AppError):
    """Requested category or snapshot is not in the loaded tables."""
    pass


class QueryRejectedError(AppError):
    """Restricted SQL rejected by the allow-list, registry or grammar."""
    pass


class LLMServiceError(AppError):
    """External model call failed."""
    pass


class RetryableLLMError(LLMServiceError):
    """Transient model failure (rate limit, 5xx, network, timeout)."""
    pass


class MaxRetriesExceededError(LLMServiceError):
    """Raised when retries of a transient model failure are exhausted."""
    pass


# =============================================================================
# Retry Policy
# =============================================================================

def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying model call",
        attempt=retry_state.attempt_number,
        error=str(error),
    )


def model_call_retrying(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    exceptions: tuple[Type[Exception], ...] = (RetryableLLMError,),
    before_sleep: Optional[Callable[[RetryCallState], None]] = _log_retry,
) -> AsyncRetrying:
    """
    Build the tenacity policy used for external model calls.

    Example:
        >>> async for attempt in model_call_retrying(max_attempts=3):
        ...     with attempt:
        ...         response = await client.messages.create(...)
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep,
        reraise=True,
    )


# =============================================================================
# Error Handler
# =============================================================================

class ErrorHandler:
    """Centralized error categorization."""

    @staticmethod
    def categorize_error(error: Exception) -> str:
        """Categorize errors for warnings and logs."""
        if isinstance(error, ChatValidationError):
            return "VALIDATION_ERROR"
        if isinstance(error, DataUnavailableError):
            return "DATA_UNAVAILABLE"
        if isinstance(error, QueryRejectedError):
            return "QUERY_REJECTED"
        if isinstance(error, MaxRetriesExceededError):
            return "MODEL_RETRIES_EXHAUSTED"
        if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
            return "TIMEOUT_ERROR"
        if isinstance(error, LLMServiceError):
            return "MODEL_ERROR"
        if isinstance(error, (ConnectionError, OSError)):
            return "NETWORK_ERROR"
        if isinstance(error, (ValueError, TypeError, KeyError)):
            return "PARSING_ERROR"

        err_str = str(error).lower()
        if "rate limit" in err_str:
            return "RATE_LIMIT_ERROR"
        if "timeout" in err_str:
            return "TIMEOUT_ERROR"
        if "connection" in err_str:
            return "NETWORK_ERROR"

        return "UNKNOWN_ERROR"
