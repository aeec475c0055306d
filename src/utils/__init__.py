"""Utils module for the competitive intelligence chat core."""

from src.utils.logger import LogContext, get_logger, setup_logging
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

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
    "model_call_retrying",
    "ErrorHandler",
    "AppError",
    "ChatValidationError",
    "DataUnavailableError",
    "QueryRejectedError",
    "LLMServiceError",
    "RetryableLLMError",
    "MaxRetriesExceededError",
]
