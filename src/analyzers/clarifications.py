"""Canned answers to data-definition questions."""

import re
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Clarification:
    answer: str
    bullets: tuple[str, ...]


CLARIFICATIONS: tuple[tuple[re.Pattern, Clarification], ...] = (
    (
        re.compile(r"(how.*revenue.*estimate|actual.*estimate|helium\s*10)", re.IGNORECASE),
        Clarification(
            answer=(
                "Revenue in this dashboard is estimate-driven for market coverage, with Innova/BLCKTEC "
                "adjustments applied where those adjusted report snapshots are available."
            ),
            bullets=(
                "Market-wide values are estimated from monthly competitor report workbooks.",
                "Innova/BLCKTEC figures can differ between standard and adjusted workbooks when actual inputs are applied.",
                "Always compare metrics within the same report mode for consistency.",
            ),
        ),
    ),
    (
        re.compile(r"(why.*(jump|drop|higher|lower)|why.*share)", re.IGNORECASE),
        Clarification(
            answer=(
                "Large share moves can happen even when brand revenue is stable, because share is "
                "relative to the total market in that month."
            ),
            bullets=(
                "If market size contracts faster than your brand, your share can rise without revenue growth.",
                "If market expands and your brand grows slower, share can decline despite absolute growth.",
                "Seasonality (for example, post-holiday normalization) can amplify this effect.",
            ),
        ),
    ),
    (
        re.compile(r"(what.*included.*other|other brand|other tools)", re.IGNORECASE),
        Clarification(
            answer=(
                "The 'Other' grouping captures brands or tool types outside the primary named segments "
                "and brand-focused breakouts."
            ),
            bullets=(
                "For brand views, it includes long-tail competitors not surfaced as top brand callouts.",
                "For type views, it includes non-tablet/non-handheld/non-dongle groupings.",
                "Use the scope filters to inspect segment-specific contributions.",
            ),
        ),
    ),
    (
        re.compile(r"(difference.*adjusted|adjusted.*standard|innova adjusted)", re.IGNORECASE),
        Clarification(
            answer=(
                "Adjusted reports incorporate manual/actual corrections for key brands, while standard "
                "competitor analysis is purely pipeline-derived."
            ),
            bullets=(
                "Adjusted mode is typically preferred for stakeholder decisions on Innova/BLCKTEC performance.",
                "Standard mode is useful for broad market comparability when adjustments are unavailable.",
                "Mixing adjusted and standard snapshots can create apparent discontinuities.",
            ),
        ),
    ),
    (
        re.compile(r"(difference.*1p.*3p|what.*1p|what.*3p)", re.IGNORECASE),
        Clarification(
            answer="1P and 3P represent first-party vs third-party fulfillment/seller channels for Amazon listings.",
            bullets=(
                "1P: Amazon-retail style relationship and fulfillment pipeline.",
                "3P: Marketplace sellers operating on Amazon.",
                "If channel fields are absent in a snapshot, the split is reported as unavailable instead of inferred.",
            ),
        ),
    ),
)


def get_clarification(message: str) -> Optional[Clarification]:
    """First canned clarification whose pattern matches the question."""
    for pattern, clarification in CLARIFICATIONS:
        if pattern.search(message):
            return clarification
    return None


__all__ = ["Clarification", "CLARIFICATIONS", "get_clarification"]
