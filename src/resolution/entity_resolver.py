"""
Entity resolution against the product index.

Finds ASINs, product aliases, brands and title matches referenced by a
question, decides the brand scope, and flags single-product questions that
matched more than one product so the router can ask for clarification.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from src.models.schemas import (
    EntitySourceHit,
    EntitySourceKind,
    QueryPlan,
    ResolvedEntities,
    ResolvedScope,
    ScopeMode,
)
from src.resolution.product_index import IndexedProduct, ProductIndex
from src.utils.formatters import normalize_key
from src.utils.logger import get_logger

logger = get_logger(__name__)

MAX_MATCHED_PRODUCTS = 8
MAX_CLARIFICATION_CANDIDATES = 3
MAX_TITLE_QUERY_TOKENS = 24

# Free-text spellings of brand keys, matched as substrings of the question
BRAND_SPELLINGS: dict[str, tuple[str, ...]] = {
    "innova": ("innova",),
    "blcktec": ("blcktec", "blck tek", "blacktec"),
}

ASIN_TOKEN = re.compile(r"\b[A-Za-z0-9]{8,10}\b")
WORD_SPLIT = re.compile(r"[^a-z0-9]+")
OWN_BRAND_LANGUAGE = re.compile(r"\b(our|ours|we|us)\b")
SPECIFIC_PRODUCT_QUESTION = re.compile(r"\b(product|asin|scanner|model|competitor|trend)\b")
BROAD_RANKING_QUESTION = re.compile(
    r"\b(top\s*(1|one)?\s*(sku|product|asin|scanner)|fastest mover|competitors doing|worried about|market leader)\b"
)


@dataclass
class EntityResolution:
    """Resolver output consumed by the router and the analyzers."""
    entities: ResolvedEntities
    scope: ResolvedScope
    matched_products: list[IndexedProduct] = field(default_factory=list)
    ambiguous: bool = False
    clarification_question: Optional[str] = None


def _hit(entity: str, value: str, source: EntitySourceKind) -> EntitySourceHit:
    return EntitySourceHit(entity=entity, value=value, source=source)


def dedupe_entity_sources(sources: Sequence[EntitySourceHit]) -> list[EntitySourceHit]:
    seen: dict[tuple[str, str, str], EntitySourceHit] = {}
    for source in sources:
        key = (source.entity, normalize_key(source.value), str(source.source))
        seen.setdefault(key, source)
    return list(seen.values())


# =============================================================================
# Matchers (ASIN -> product alias -> brand -> title)
# =============================================================================

def extract_asin_tokens(message: str) -> list[str]:
    return list(dict.fromkeys(token.upper() for token in ASIN_TOKEN.findall(message)))


def match_asins(message: str, index: ProductIndex) -> tuple[list[IndexedProduct], list[EntitySourceHit]]:
    products, sources = [], []
    for token in extract_asin_tokens(message):
        product = index.product(token)
        if product is not None:
            products.append(product)
            sources.append(_hit("asin", product.asin, EntitySourceKind.ASIN_MATCH))
    return products, sources


def match_product_aliases(
    compact: str,
    tokens: set[str],
    index: ProductIndex,
) -> tuple[list[IndexedProduct], list[EntitySourceHit]]:
    """Alias hits by whole token, or by substring for long aliases containing a digit."""
    matched: dict[str, IndexedProduct] = {}
    sources = []
    for alias, asins in index.product_alias_to_asins.items():
        hit = alias in tokens or (
            len(alias) >= 7 and any(char.isdigit() for char in alias) and alias in compact
        )
        if not hit:
            continue
        for asin in asins:
            product = index.product(asin)
            if product is not None:
                matched[product.key] = product
                sources.append(_hit("asin", product.asin, EntitySourceKind.ALIAS))
    return list(matched.values()), sources


def match_brands(
    normalized: str,
    tokens: set[str],
    index: ProductIndex,
) -> tuple[list[str], list[EntitySourceHit]]:
    hits: dict[str, None] = {}
    sources = []
    for alias, canonical in index.brand_lookup.items():
        if alias in tokens or (" " in alias and alias in normalized):
            hits[canonical] = None
            kind = EntitySourceKind.EXACT_TOKEN if alias == canonical else EntitySourceKind.ALIAS
            sources.append(_hit("brand", canonical, kind))

    for canonical, spellings in BRAND_SPELLINGS.items():
        for spelling in spellings:
            if spelling in tokens or spelling in normalized:
                hits[canonical] = None
                kind = EntitySourceKind.EXACT_TOKEN if spelling == canonical else EntitySourceKind.ALIAS
                sources.append(_hit("brand", canonical, kind))
    return list(hits), sources


def match_titles(normalized: str, index: ProductIndex) -> list[IndexedProduct]:
    """
    Fuzzy token overlap between the question and ``brand asin title``.

    Query tokens of 3+ characters score 2 when 5+ characters long, else 1;
    products need a score of at least 2. Ties go to higher revenue.
    """
    query_tokens = [token for token in WORD_SPLIT.split(normalized) if len(token) >= 3][:MAX_TITLE_QUERY_TOKENS]
    if not query_tokens:
        return []

    scored = []
    for product in index.products:
        title_tokens = {
            token
            for token in WORD_SPLIT.split(f"{product.brand} {product.asin} {product.title}".lower())
            if len(token) >= 2
        }
        score = sum(2 if len(token) >= 5 else 1 for token in query_tokens if token in title_tokens)
        if score >= 2:
            scored.append((score, product))

    scored.sort(key=lambda item: (-item[0], -item[1].revenue))
    return [product for _, product in scored[:MAX_MATCHED_PRODUCTS]]


# =============================================================================
# Scope
# =============================================================================

def resolve_scope(
    normalized: str,
    matched_brands: Sequence[str],
    own_brands: Sequence[str],
    target_brand: Optional[str] = None,
    plan: Optional[QueryPlan] = None,
) -> ResolvedScope:
    """Pick exactly one scope: explicit brand > target brand > own brands > all brands."""
    # A parsed plan is authoritative; index matches only apply without one
    explicit = list(plan.scope_brands) if plan is not None else list(matched_brands)
    explicit = list(dict.fromkeys(brand for brand in explicit if brand))
    if explicit:
        return ResolvedScope(
            mode=ScopeMode.EXPLICIT_BRAND,
            brands=explicit,
            source="Question contains explicit brand reference.",
        )

    target = normalize_key(target_brand)
    if target:
        return ResolvedScope(
            mode=ScopeMode.TARGET_BRAND,
            brands=[target],
            source="Quick-action target brand context.",
        )

    if (plan is not None and plan.include_own_brands) or OWN_BRAND_LANGUAGE.search(normalized):
        return ResolvedScope(
            mode=ScopeMode.OWN_BRANDS,
            brands=list(own_brands),
            source="Own-brand language in question.",
        )

    return ResolvedScope(
        mode=ScopeMode.ALL_BRANDS,
        brands=[],
        source="No brand scope specified; using market-wide scope.",
    )


def is_specific_product_question(normalized: str) -> bool:
    return SPECIFIC_PRODUCT_QUESTION.search(normalized) is not None


def is_broad_ranking_question(normalized: str) -> bool:
    return BROAD_RANKING_QUESTION.search(normalized) is not None


# =============================================================================
# Resolver
# =============================================================================

def resolve_entities(
    message: str,
    index: ProductIndex,
    target_brand: Optional[str] = None,
    plan: Optional[QueryPlan] = None,
) -> EntityResolution:
    """
    Resolve products, brands and scope referenced by a question.

    Args:
        message: Raw question text.
        index: Product index of the selected snapshot.
        target_brand: Optional quick-action brand context.
        plan: Parsed plan supplying explicit brands and own-brand language.

    Returns:
        EntityResolution; ``ambiguous`` is set only for single-product
        phrasing that matched several products and is not a broad ranking.
    """
    normalized = message.lower()
    compact = normalize_key(message)
    tokens = {token for token in WORD_SPLIT.split(normalized) if token}

    by_asin, asin_sources = match_asins(message, index)
    by_alias, alias_sources = match_product_aliases(compact, tokens, index)
    brands, brand_sources = match_brands(normalized, tokens, index)
    by_title = match_titles(normalized, index)
    title_sources = [_hit("product", f"{product.brand} {product.asin}", EntitySourceKind.INFERRED_TITLE) for product in by_title]

    merged: dict[str, IndexedProduct] = {}
    for product in [*by_asin, *by_alias, *by_title]:
        merged.setdefault(product.key, product)
    matched = list(merged.values())[:MAX_MATCHED_PRODUCTS]

    sources = [*asin_sources, *alias_sources, *brand_sources, *title_sources]
    scope = resolve_scope(normalized, brands, index.own_brands, target_brand, plan)
    if scope.mode == ScopeMode.TARGET_BRAND and scope.brands:
        sources.append(_hit("brand", scope.brands[0], EntitySourceKind.QUICK_ACTION_TARGET))

    entities = ResolvedEntities(
        brands=brands,
        asins=[product.asin for product in matched],
        products=[product.title for product in matched],
        entity_sources=dedupe_entity_sources(sources),
    )

    ambiguous = (
        len(matched) > 1
        and is_specific_product_question(normalized)
        and not is_broad_ranking_question(normalized)
    )
    clarification = None
    if ambiguous:
        labels = ", ".join(f"{product.brand} {product.asin}" for product in matched[:MAX_CLARIFICATION_CANDIDATES])
        clarification = f"I found multiple products. Did you mean {labels}?"

    logger.debug(
        "Resolved entities",
        products=len(matched),
        brands=brands,
        scope=scope.mode,
        ambiguous=ambiguous,
    )
    return EntityResolution(
        entities=entities,
        scope=scope,
        matched_products=matched,
        ambiguous=ambiguous,
        clarification_question=clarification,
    )


__all__ = [
    "EntityResolution",
    "resolve_entities",
    "resolve_scope",
    "match_asins",
    "match_product_aliases",
    "match_brands",
    "match_titles",
    "extract_asin_tokens",
    "dedupe_entity_sources",
    "is_specific_product_question",
    "is_broad_ranking_question",
]
