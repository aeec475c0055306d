"""Question parsing: keyword intent classifier and forced-intent query parser."""

from src.parsing.intents import (
    DEFAULT_QUESTIONS,
    SUGGESTED_QUESTIONS,
    detect_intent,
    suggested_questions_for_intent,
)
from src.parsing.query_parser import FORCED_INTENT_RULES, IntentRule, parse_query

__all__ = [
    "detect_intent",
    "suggested_questions_for_intent",
    "parse_query",
    "IntentRule",
    "FORCED_INTENT_RULES",
    "SUGGESTED_QUESTIONS",
    "DEFAULT_QUESTIONS",
]
