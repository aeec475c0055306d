"""Pipeline module for the competitive intelligence chat core."""

from src.pipeline.orchestrator import (
    UNEXPECTED_ANSWER,
    UNEXPECTED_WARNING,
    ChatOrchestrator,
    ChatStateDict,
    answer,
    error_response,
    known_category,
)

__all__ = [
    "ChatOrchestrator",
    "ChatStateDict",
    "answer",
    "error_response",
    "known_category",
    "UNEXPECTED_ANSWER",
    "UNEXPECTED_WARNING",
]
