"""Model rewrite of deterministic answers with a brand fidelity guardrail."""

import re
from typing import Optional

from src.models.schemas import ChatResponse
from src.services.llm_service import LLMClient
from src.services.prompts import format_rephrase_prompt
from src.services.response_shape import as_string_list, safe_parse_json
from src.utils.logger import get_logger
from src.utils.retry import LLMServiceError

logger = get_logger(__name__)

MAX_BULLETS = 5
MAX_QUESTIONS = 4

# Brand key -> pattern matched against the lowercased question
EXPLICIT_BRAND_PATTERNS: dict[str, re.Pattern[str]] = {
    "innova": re.compile(r"\binnova\b"),
    "blcktec": re.compile(r"\bblcktec\b|\bblck\s*tek\b|\bblacktec\b"),
}


def extract_explicit_brands(question: str) -> list[str]:
    normalized = question.lower()
    return [brand for brand, pattern in EXPLICIT_BRAND_PATTERNS.items() if pattern.search(normalized)]


def contains_all_brands(text: str, brands: list[str]) -> bool:
    normalized = text.lower()
    return all(brand in normalized for brand in brands)


async def rephrase_response(
    client: LLMClient,
    question: str,
    deterministic: ChatResponse,
) -> Optional[ChatResponse]:
    """
    Ask the model for a stakeholder-friendly rewrite.

    Returns None whenever the rewrite cannot be trusted: the request failed,
    the reply was not a JSON object, the answer was empty, or a brand the
    question named explicitly is missing from the rewritten answer.
    """
    system, prompt = format_rephrase_prompt(
        question,
        deterministic.answer,
        deterministic.bullets,
        deterministic.suggested_questions,
    )
    try:
        content = await client.complete_text(prompt, system=system)
    except LLMServiceError as e:
        logger.warning("Rephrase request failed", error=e.message)
        return None

    parsed = safe_parse_json(content)
    if parsed is None:
        return None
    answer = parsed.get("answer")
    answer = answer.strip() if isinstance(answer, str) else ""
    if not answer:
        return None

    brands = extract_explicit_brands(question)
    if brands and not contains_all_brands(answer, brands):
        logger.info("Rephrase dropped an explicit brand", brands=brands)
        return None

    bullets = as_string_list(parsed.get("bullets"), MAX_BULLETS) if isinstance(parsed.get("bullets"), list) else None
    questions = (
        as_string_list(parsed.get("suggestedQuestions"), MAX_QUESTIONS)
        if isinstance(parsed.get("suggestedQuestions"), list)
        else None
    )
    return deterministic.model_copy(update={
        "answer": answer,
        "bullets": bullets if bullets is not None else deterministic.bullets,
        "suggested_questions": questions if questions is not None else deterministic.suggested_questions,
    })


__all__ = [
    "EXPLICIT_BRAND_PATTERNS",
    "extract_explicit_brands",
    "contains_all_brands",
    "rephrase_response",
]
