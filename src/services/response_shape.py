"""
Decoding of model answers into ChatResponse.

The model is asked for strict JSON. Replies are parsed leniently (direct
JSON, a fenced ``json`` block, or the outermost braces), validated with
pydantic, and coerced field by field when validation fails so that one bad
field never discards the rest of the answer.
"""

import json
import re
from typing import Any, Optional, Sequence

from pydantic import Field, ValidationError

from src.models.schemas import BaseModel, ChatResponse, EvidenceItem, ProactiveSuggestion, Severity
from src.utils.logger import get_logger

logger = get_logger(__name__)

LLM_INTENT = "llm_only"
FALLBACK_ANSWER = "I could not produce a grounded answer for that question."
NOT_JSON_WARNING = "Model did not return strict JSON; applied safe fallback."

MAX_BULLETS = 5
MAX_EVIDENCE = 8
MAX_PROACTIVE = 3
MAX_QUESTIONS = 6
MAX_WARNINGS = 8
MAX_SOURCES = 12

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


class LLMPayload(BaseModel):
    """Strict shape of a model answer."""

    answer: str
    bullets: list[str] = Field(default_factory=list)
    evidence: list[EvidenceItem] = Field(default_factory=list)
    proactive: list[ProactiveSuggestion] = Field(default_factory=list)
    suggested_questions: list[str] = Field(default_factory=list, alias="suggestedQuestions")
    warnings: list[str] = Field(default_factory=list)
    sources_used: list[str] = Field(default_factory=list, alias="sourcesUsed")
    window_used: Optional[str] = Field(default=None, alias="windowUsed")


# =============================================================================
# Parsing
# =============================================================================

def _try_object(text: str) -> Optional[dict[str, Any]]:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def safe_parse_json(text: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Extract a JSON object from a model reply.

    Tries the raw text, then the first fenced block, then the span from the
    first ``{`` to the last ``}``. Only objects count; arrays and scalars
    return None.
    """
    if not text:
        return None
    direct = _try_object(text)
    if direct is not None:
        return direct

    fenced = _FENCE_PATTERN.search(text)
    if fenced and fenced.group(1):
        parsed = _try_object(fenced.group(1))
        if parsed is not None:
            return parsed

    start, end = text.find("{"), text.rfind("}")
    if start >= 0 and end > start:
        return _try_object(text[start:end + 1])
    return None


# =============================================================================
# Field Coercion
# =============================================================================

def _clean_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def as_string_list(value: Any, limit: int) -> list[str]:
    if not isinstance(value, list):
        return []
    cleaned = [_clean_text(item) for item in value if isinstance(item, str)]
    return [item for item in cleaned if item][:limit]


def as_evidence(value: Any, limit: int = MAX_EVIDENCE) -> list[EvidenceItem]:
    if not isinstance(value, list):
        return []
    items: list[EvidenceItem] = []
    for row in value:
        if not isinstance(row, dict):
            continue
        label, text = _clean_text(row.get("label")), _clean_text(row.get("value"))
        if not label or not text:
            continue
        items.append(EvidenceItem(label=label, value=text))
        if len(items) >= limit:
            break
    return items


def as_proactive(value: Any, limit: int = MAX_PROACTIVE) -> list[ProactiveSuggestion]:
    if not isinstance(value, list):
        return []
    cards: list[ProactiveSuggestion] = []
    for row in value:
        if not isinstance(row, dict):
            continue
        title, summary = _clean_text(row.get("title")), _clean_text(row.get("summary"))
        if not title or not summary:
            continue
        severity = _clean_text(row.get("severity")).lower()
        if severity not in (Severity.RISK.value, Severity.WATCH.value):
            severity = Severity.INFO.value
        cards.append(ProactiveSuggestion(
            id=_clean_text(row.get("id")) or f"llm-suggestion-{len(cards) + 1}",
            title=title,
            summary=summary,
            severity=severity,
        ))
        if len(cards) >= limit:
            break
    return cards


def _unique(values: Sequence[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _payload_dict(payload: dict[str, Any]) -> dict[str, Any]:
    """Validated payload as plain data, or the raw payload when validation fails."""
    try:
        validated = LLMPayload.model_validate(payload)
    except ValidationError as e:
        logger.debug("Model payload failed strict validation", errors=e.error_count())
        return payload
    return validated.model_dump(by_alias=True)


def coerce_payload(
    payload: Optional[dict[str, Any]],
    fallback_questions: Sequence[str],
    fallback_warnings: Sequence[str] = (),
) -> ChatResponse:
    """
    Turn a decoded model payload into a ChatResponse.

    Args:
        payload: Parsed JSON object, or None when parsing failed.
        fallback_questions: Used when the payload carries no questions.
        fallback_warnings: Appended after the payload's own warnings.

    Returns:
        ChatResponse with intent ``llm_only`` and every list capped.
    """
    data = _payload_dict(payload or {})
    questions = as_string_list(data.get("suggestedQuestions"), MAX_QUESTIONS)
    window = _clean_text(data.get("windowUsed"))
    return ChatResponse(
        intent=LLM_INTENT,
        answer=_clean_text(data.get("answer")) or FALLBACK_ANSWER,
        bullets=as_string_list(data.get("bullets"), MAX_BULLETS),
        evidence=as_evidence(data.get("evidence")),
        proactive=as_proactive(data.get("proactive")),
        suggested_questions=questions or list(fallback_questions),
        warnings=_unique([
            *as_string_list(data.get("warnings"), MAX_WARNINGS),
            *fallback_warnings,
        ])[:MAX_WARNINGS],
        sources_used=as_string_list(data.get("sourcesUsed"), MAX_SOURCES),
        window_used=window or None,
    )


def decode_model_answer(text: Optional[str], fallback_questions: Sequence[str]) -> ChatResponse:
    """Parse and coerce a final model reply; unparsable replies get a warning."""
    payload = safe_parse_json(text)
    warnings = [] if payload is not None else [NOT_JSON_WARNING]
    return coerce_payload(payload, fallback_questions, warnings)


__all__ = [
    "LLM_INTENT",
    "FALLBACK_ANSWER",
    "NOT_JSON_WARNING",
    "LLMPayload",
    "safe_parse_json",
    "as_string_list",
    "as_evidence",
    "as_proactive",
    "coerce_payload",
    "decode_model_answer",
]
