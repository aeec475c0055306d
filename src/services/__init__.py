"""
Services package for the competitive intelligence chat core.

Services:
    - LLMClient: Anthropic Claude Messages API client with retries
    - run_tool_loop: Bounded model tool loop over the restricted query layer
    - rephrase_response: Guarded model rewrite of deterministic answers
    - ValidationService: Chat request validation

Support:
    - question_bank: Category starter and suggested questions
    - prompts: System and user prompt builders
    - response_shape: Lenient JSON decoding and field coercion
    - doc_tool: Source file excerpts (CSV, XLSX, text)
"""

from src.services.doc_tool import get_source_excerpt, source_files_from_tables
from src.services.llm_service import Completion, LLMClient, TokenUsage, ToolCall
from src.services.question_bank import (
    DEFAULT_QUESTIONS,
    category_suggested_questions,
    starter_questions,
)
from src.services.rephrase import extract_explicit_brands, rephrase_response
from src.services.response_shape import coerce_payload, decode_model_answer, safe_parse_json
from src.services.tool_loop import (
    TOOL_DEFINITIONS,
    ToolContext,
    execute_tool,
    missing_key_response,
    run_tool_loop,
)
from src.services.validation_service import ValidationService

__all__ = [
    # Model client
    "LLMClient",
    "Completion",
    "ToolCall",
    "TokenUsage",
    # Tool loop
    "TOOL_DEFINITIONS",
    "ToolContext",
    "execute_tool",
    "missing_key_response",
    "run_tool_loop",
    # Rephrase
    "extract_explicit_brands",
    "rephrase_response",
    # Decoding
    "coerce_payload",
    "decode_model_answer",
    "safe_parse_json",
    # Grounding
    "get_source_excerpt",
    "source_files_from_tables",
    # Questions
    "DEFAULT_QUESTIONS",
    "category_suggested_questions",
    "starter_questions",
    # Validation
    "ValidationService",
]
