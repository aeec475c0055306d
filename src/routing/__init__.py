"""Analyzer routing."""

from src.routing.intent_router import (
    FORCED_ANALYZER_LADDER,
    PRODUCT_CLARIFICATION,
    ROUTE_RULES,
    RouteDecision,
    force_analyzer,
    map_intent_to_analyzer,
    route_intent,
)

__all__ = [
    "RouteDecision",
    "ROUTE_RULES",
    "FORCED_ANALYZER_LADDER",
    "PRODUCT_CLARIFICATION",
    "route_intent",
    "force_analyzer",
    "map_intent_to_analyzer",
]
