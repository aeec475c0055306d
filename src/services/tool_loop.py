"""
Bounded model tool loop.

The model answers a question by calling read-only tools over the loaded
tables (list, describe, restricted SQL, source excerpts, starter questions)
until it produces a final JSON answer or the round budget runs out. Every
exit path returns a ChatResponse; model failures become warnings.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

from src.config.settings import get_settings
from src.models.schemas import ChatIntent, ChatResponse
from src.query.catalog import Tables
from src.query.sql_interpreter import describe_table, list_tables, run_sql
from src.services.doc_tool import get_source_excerpt
from src.services.llm_service import Completion, LLMClient, ToolCall
from src.services.prompts import QUICK_ACTIONS, build_system_prompt, build_user_prompt
from src.services.question_bank import DEFAULT_CATEGORY, starter_questions
from src.services.response_shape import decode_model_answer
from src.utils.formatters import normalize_key
from src.utils.logger import get_logger
from src.utils.retry import ErrorHandler, LLMServiceError

logger = get_logger(__name__)

DEFAULT_MAX_ROUNDS = 8
FALLBACK_QUESTION_COUNT = 4

REQUEST_FAILED_ANSWER = "I could not complete the model request."
EMPTY_RESPONSE_ANSWER = "I did not receive a usable model response."
EMPTY_RESPONSE_WARNING = "Model response was empty."
LOOP_LIMIT_ANSWER = "I reached the tool-call limit before finishing this answer."
LOOP_LIMIT_WARNING = "Tool loop limit reached."


# =============================================================================
# Tool Definitions
# =============================================================================

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "list_tables",
        "description": "List all available analytical tables and row counts.",
        "input_schema": {"type": "object", "properties": {}, "additionalProperties": False},
    },
    {
        "name": "describe_table",
        "description": "Describe a table schema.",
        "input_schema": {
            "type": "object",
            "properties": {"table": {"type": "string"}},
            "required": ["table"],
            "additionalProperties": False,
        },
    },
    {
        "name": "run_sql",
        "description": (
            "Run a read-only SQL query on the data store. "
            "SELECT-only with optional WHERE/ORDER BY/LIMIT."
        ),
        "input_schema": {
            "type": "object",
            "properties": {"query": {"type": "string"}, "limit": {"type": "number"}},
            "required": ["query"],
            "additionalProperties": False,
        },
    },
    {
        "name": "get_source_excerpt",
        "description": "Get a short excerpt from a source CSV/XLSX/text file for grounding.",
        "input_schema": {
            "type": "object",
            "properties": {"source_file": {"type": "string"}, "section": {"type": "string"}},
            "required": ["source_file"],
            "additionalProperties": False,
        },
    },
    {
        "name": "get_starter_questions",
        "description": "Get starter questions for a category from the category question bank.",
        "input_schema": {
            "type": "object",
            "properties": {"category": {"type": "string"}},
            "required": ["category"],
            "additionalProperties": False,
        },
    },
]


@dataclass
class ToolContext:
    """Data the tools read from during one loop."""
    tables: Tables
    source_files: list[str] = field(default_factory=list)
    source_root: Optional[Path] = None


# =============================================================================
# Tool Execution
# =============================================================================

def _string_arg(arguments: dict[str, Any], name: str) -> str:
    value = arguments.get(name)
    return value if isinstance(value, str) else ""


def _limit_arg(arguments: dict[str, Any]) -> Optional[int]:
    value = arguments.get("limit")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def execute_tool(ctx: ToolContext, call: ToolCall) -> dict[str, Any]:
    """Run one tool call; failures are returned as ``{"ok": False, "error"}``."""
    args = call.arguments if isinstance(call.arguments, dict) else {}

    if call.name == "list_tables":
        return {"ok": True, "rows": list_tables(ctx.tables)}
    if call.name == "describe_table":
        return describe_table(_string_arg(args, "table"))
    if call.name == "run_sql":
        return run_sql(ctx.tables, _string_arg(args, "query"), _limit_arg(args)).to_tool_payload()
    if call.name == "get_source_excerpt":
        return get_source_excerpt(
            ctx.source_files,
            _string_arg(args, "source_file"),
            _string_arg(args, "section") or None,
            ctx.source_root,
        )
    if call.name == "get_starter_questions":
        category = _string_arg(args, "category") or DEFAULT_CATEGORY
        return {"ok": True, "questions": starter_questions(category)}

    return {"ok": False, "error": f"Unknown tool: {call.name}"}


def tool_result_message(results: Sequence[tuple[ToolCall, dict[str, Any]]]) -> dict[str, Any]:
    """All tool results of one round as a single user turn."""
    return {
        "role": "user",
        "content": [
            {
                "type": "tool_result",
                "tool_use_id": call.id,
                "content": json.dumps(result, default=str),
            }
            for call, result in results
        ],
    }


# =============================================================================
# Responses
# =============================================================================

def _failure(answer: str, warnings: list[str], questions: Sequence[str]) -> ChatResponse:
    return ChatResponse(
        intent=ChatIntent.UNKNOWN.value,
        answer=answer,
        suggested_questions=list(questions)[:FALLBACK_QUESTION_COUNT],
        warnings=warnings,
    )


def missing_key_response() -> ChatResponse:
    """Answer for LLM-only mode when no API key is configured."""
    return ChatResponse(
        intent=ChatIntent.UNKNOWN.value,
        answer="Chatbot is configured for LLM-only mode, but ANTHROPIC_API_KEY is missing.",
        bullets=["Set ANTHROPIC_API_KEY and retry."],
        suggested_questions=QUICK_ACTIONS[:3],
        warnings=["LLM runtime unavailable because ANTHROPIC_API_KEY is not set."],
    )


# =============================================================================
# Loop
# =============================================================================

def configured_own_brand_names(tables: Tables) -> list[str]:
    """OWN_BRANDS keys mapped to the brand spelling used in brands_monthly."""
    display = {normalize_key(row.get("brand")): row.get("brand") for row in tables.get("brands_monthly", [])}
    return [display.get(key) or key for key in get_settings().own_brand_keys()]


async def run_tool_loop(
    client: LLMClient,
    ctx: ToolContext,
    message: str,
    category_id: str,
    snapshot_date: str,
    target_brand: Optional[str] = None,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
    pathname: str = "/",
    own_brand_names: Optional[Sequence[str]] = None,
) -> ChatResponse:
    """
    Answer a question with the model, letting it call tools for evidence.

    Args:
        client: Model client.
        ctx: Tables and source files the tools read.
        message: User question.
        category_id: Selected category.
        snapshot_date: Selected snapshot month.
        target_brand: Optional quick-action brand context.
        max_rounds: Maximum model requests before giving up.
        pathname: Page the question was asked from.
        own_brand_names: Display names of the own brands; defaults to the
            configured OWN_BRANDS spelled as they appear in the tables.

    Returns:
        The decoded model answer, or a degraded answer with warnings.
    """
    if own_brand_names is None:
        own_brand_names = configured_own_brand_names(ctx.tables)
    starters = starter_questions(category_id)
    system = build_system_prompt(
        category_id=category_id,
        snapshot_date=snapshot_date,
        starter_questions=starters,
        target_brand=target_brand,
        pathname=pathname,
        own_brands=own_brand_names,
    )
    messages: list[dict[str, Any]] = [
        {"role": "user", "content": build_user_prompt(message, category_id, snapshot_date, target_brand)},
    ]

    for round_number in range(1, max_rounds + 1):
        try:
            completion: Completion = await client.complete(messages, tools=TOOL_DEFINITIONS, system=system)
        except LLMServiceError as e:
            logger.warning(
                "Model request failed",
                round=round_number,
                category=ErrorHandler.categorize_error(e),
                error=e.message,
            )
            return _failure(REQUEST_FAILED_ANSWER, [e.message], starters)

        if completion.content is None and not completion.tool_calls:
            return _failure(EMPTY_RESPONSE_ANSWER, [EMPTY_RESPONSE_WARNING], starters)

        if not completion.tool_calls:
            logger.info("Model answered", rounds=round_number)
            return decode_model_answer(completion.content, starters[:FALLBACK_QUESTION_COUNT])

        messages.append(completion.assistant_message())
        results = []
        for call in completion.tool_calls:
            result = execute_tool(ctx, call)
            logger.debug("Tool executed", tool=call.name, ok=result.get("ok"), round=round_number)
            results.append((call, result))
        messages.append(tool_result_message(results))

    logger.warning("Tool loop limit reached", max_rounds=max_rounds)
    return _failure(LOOP_LIMIT_ANSWER, [LOOP_LIMIT_WARNING], starters)


__all__ = [
    "TOOL_DEFINITIONS",
    "ToolContext",
    "execute_tool",
    "tool_result_message",
    "missing_key_response",
    "configured_own_brand_names",
    "run_tool_loop",
    "REQUEST_FAILED_ANSWER",
    "EMPTY_RESPONSE_ANSWER",
    "EMPTY_RESPONSE_WARNING",
    "LOOP_LIMIT_ANSWER",
    "LOOP_LIMIT_WARNING",
]
