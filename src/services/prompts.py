"""
Prompts for the model-backed paths of the chat core.

Two prompt families live here:
    1. Tool loop: a system prompt that pins the model to tool-grounded
       numbers and a strict JSON answer shape, plus the user prompt carrying
       the request context.
    2. Rephrase: a short rewrite of a low-confidence deterministic answer
       that must keep every number and brand name intact.
"""

from typing import Optional, Sequence

# =============================================================================
# Configuration
# =============================================================================

QUICK_ACTIONS: list[str] = [
    "How did we do this month?",
    "What are competitors doing?",
    "What should I be worried about?",
    "Ask your own question",
]

OWN_BRAND_PRODUCT_ALIASES: dict[str, str] = {
    "Innova 5610": "B07Z481NJM",
}


# =============================================================================
# Tool Loop Prompts
# =============================================================================

TOOL_LOOP_SYSTEM = """You are Stakeholder Copilot for a product analytics dashboard.

<runtime_policy>
- Reason over tool results only.
- Never invent numbers.
- Always ground all key metrics in tool outputs.
- Read from all available dashboard, normalized and raw tables as needed.
- If the user asks for a brand, keep scope strict to that brand.
- If the user asks about "our" performance, scope to {own_brands} unless the user overrides.
{product_aliases}
- Do not expose internal chain-of-thought.
</runtime_policy>

<request_context>
- categoryId: {category_id}
- snapshotDate: {snapshot_date}
- pathname: {pathname}
- {target_brand_line}
</request_context>

<quick_actions>
{quick_actions}
</quick_actions>

<starter_questions>
{starter_questions}
</starter_questions>

<required_response_behavior>
1) First sentence: direct conclusion.
2) Then 3-5 short support bullets.
3) Add evidence cards with concrete numbers.
4) Always include the snapshot month used.
5) If a comparison is requested, include the comparison window.
6) For performance questions, include:
   - monthly revenue
   - monthly units
   - rank
   - ASP orientation (price-led / volume-led / balanced)
   - whether movement is price-driven or units-driven.
</required_response_behavior>
"""

RESPONSE_SHAPE = """Return strict JSON with keys:
{
  "answer": string,
  "bullets": string[],
  "evidence": [{"label": string, "value": string}],
  "proactive": [{"id": string, "title": string, "summary": string, "severity": "info"|"watch"|"risk"}],
  "suggestedQuestions": string[],
  "warnings": string[],
  "sourcesUsed": string[],
  "windowUsed": string
}"""

TOOL_LOOP_USER_CLOSING = "Use tools to gather evidence before finalizing the answer."


# =============================================================================
# Rephrase Prompts
# =============================================================================

REPHRASE_SYSTEM = """You rewrite analytics answers for business stakeholders.

<rules>
- Keep every number, percentage, rank, ASIN and date exactly as written.
- Keep every brand name that appears in the draft.
- Do not add facts that are not in the draft.
- Concise and stakeholder-friendly; at most 5 bullets.
</rules>

Return strict JSON with keys answer, bullets, suggestedQuestions."""

REPHRASE_USER = """<question>
{message}
</question>

<draft_answer>
{answer}
</draft_answer>

<supporting_points>
{bullets}
</supporting_points>

<suggested_questions>
{questions}
</suggested_questions>

Rewrite the draft. Do not invent metrics."""


# =============================================================================
# Formatter Functions
# =============================================================================

def format_bullet_list(items: Sequence[str]) -> str:
    if not items:
        return "- none"
    return "\n".join(f"- {item}" for item in items)


def _own_brands_label(own_brands: Sequence[str]) -> str:
    names = [brand for brand in own_brands if brand]
    if not names:
        return "the configured own brands"
    return " + ".join(names)


def build_system_prompt(
    category_id: str,
    snapshot_date: str,
    starter_questions: Sequence[str],
    target_brand: Optional[str] = None,
    pathname: str = "/",
    own_brands: Sequence[str] = ("Innova", "BLCKTEC"),
) -> str:
    """
    Build the tool-loop system prompt for one request.

    Returns:
        The system prompt followed by the strict JSON answer shape.
    """
    aliases = "\n".join(
        f"- If the user mentions {name}, map it to ASIN {asin}."
        for name, asin in OWN_BRAND_PRODUCT_ALIASES.items()
    )
    body = TOOL_LOOP_SYSTEM.format(
        own_brands=_own_brands_label(own_brands),
        product_aliases=aliases,
        category_id=category_id,
        snapshot_date=snapshot_date,
        pathname=pathname or "/",
        target_brand_line=(
            f"Target brand context: {target_brand}" if target_brand else "Target brand context: none"
        ),
        quick_actions=format_bullet_list(QUICK_ACTIONS),
        starter_questions=format_bullet_list(starter_questions),
    )
    return f"{body}\n{RESPONSE_SHAPE}"


def build_user_prompt(
    message: str,
    category_id: str,
    snapshot_date: str,
    target_brand: Optional[str] = None,
) -> str:
    lines = [
        f"User question: {message}",
        f"Current category: {category_id}",
        f"Current snapshot: {snapshot_date}",
    ]
    if target_brand:
        lines.append(f"Requested brand context: {target_brand}")
    lines.append(TOOL_LOOP_USER_CLOSING)
    return "\n".join(lines)


def format_rephrase_prompt(
    message: str,
    answer: str,
    bullets: Sequence[str],
    questions: Sequence[str] = (),
) -> tuple[str, str]:
    """
    Format the rephrase prompt.

    Returns:
        Tuple of (system_prompt, user_prompt)
    """
    user_prompt = REPHRASE_USER.format(
        message=message,
        answer=answer,
        bullets=format_bullet_list(list(bullets)[:5]),
        questions=format_bullet_list(list(questions)[:4]),
    )
    return REPHRASE_SYSTEM, user_prompt


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    # Configuration
    "QUICK_ACTIONS",
    "OWN_BRAND_PRODUCT_ALIASES",
    # Templates
    "TOOL_LOOP_SYSTEM",
    "RESPONSE_SHAPE",
    "REPHRASE_SYSTEM",
    "REPHRASE_USER",
    # Formatters
    "format_bullet_list",
    "build_system_prompt",
    "build_user_prompt",
    "format_rephrase_prompt",
]
