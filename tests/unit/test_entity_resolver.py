from src.models.schemas import EntitySourceKind, QueryPlan, ScopeMode
from src.resolution.entity_resolver import (
    extract_asin_tokens,
    match_titles,
    resolve_entities,
)


def test_asin_match(index):
    result = resolve_entities("Show trend for b09blk4300", index)

    assert [product.asin for product in result.matched_products] == ["B09BLK4300"]
    assert result.entities.asins == ["B09BLK4300"]
    assert any(hit.source == EntitySourceKind.ASIN_MATCH for hit in result.entities.entity_sources)
    assert result.ambiguous is False


def test_product_alias_match(index):
    result = resolve_entities("How is the Innova 5610 doing?", index)

    assert result.matched_products[0].asin == "B07Z481NJM"
    assert result.entities.brands == ["innova"]
    assert result.scope.mode == ScopeMode.EXPLICIT_BRAND
    assert result.ambiguous is False


def test_brand_spelling_variant(index):
    result = resolve_entities("How is blck tek doing?", index)

    assert result.entities.brands == ["blcktec"]
    assert result.scope.brands == ["blcktec"]


def test_target_brand_scope(index):
    result = resolve_entities("How are sales?", index, target_brand="Topdon")

    assert result.scope.mode == ScopeMode.TARGET_BRAND
    assert result.scope.brands == ["topdon"]
    assert any(hit.source == EntitySourceKind.QUICK_ACTION_TARGET for hit in result.entities.entity_sources)


def test_own_brand_language_scope(index):
    result = resolve_entities("How did we do this month?", index)

    assert result.scope.mode == ScopeMode.OWN_BRANDS
    assert result.scope.brands == ["innova", "blcktec"]


def test_market_wide_scope(index):
    result = resolve_entities("What is the market size?", index)

    assert result.scope.mode == ScopeMode.ALL_BRANDS
    assert result.scope.brands == []
    assert result.matched_products == []


def test_plan_brands_take_precedence(index):
    plan = QueryPlan(raw="x", normalized="x", scope_brands=("autel",))

    result = resolve_entities("Compare Innova please", index, target_brand="Topdon", plan=plan)

    assert result.scope.mode == ScopeMode.EXPLICIT_BRAND
    assert result.scope.brands == ["autel"]


def test_empty_plan_brands_do_not_fall_back_to_index_matches(index):
    plan = QueryPlan(raw="x", normalized="x", scope_brands=())

    result = resolve_entities("Compare Innova please", index, plan=plan)

    assert result.entities.brands == ["innova"]
    assert result.scope.mode == ScopeMode.ALL_BRANDS
    assert result.scope.brands == []


def test_ambiguous_product_question(index):
    result = resolve_entities("Show the trend for the code reader", index)

    assert result.ambiguous is True
    assert {product.asin for product in result.matched_products} == {"B08INN3160", "B0AUTAL319"}
    assert result.clarification_question.startswith("I found multiple products. Did you mean ")
    assert "Innova B08INN3160" in result.clarification_question
    assert "Autel B0AUTAL319" in result.clarification_question


def test_broad_ranking_is_not_ambiguous(index):
    result = resolve_entities("Who is the top product among code reader tools?", index)

    assert len(result.matched_products) == 2
    assert result.ambiguous is False
    assert result.clarification_question is None


def test_title_match_needs_two_points(index):
    assert match_titles("code", index) == []
    assert [product.asin for product in match_titles("artidiag tablet", index)][0] == "B0TOPDONA1"


def test_extract_asin_tokens_dedupes():
    assert extract_asin_tokens("b07z481njm vs B07Z481NJM and B0AUTEL808") == ["B07Z481NJM", "B0AUTEL808"]
