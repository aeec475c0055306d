"""
Brand and product analyzers.

Growth, rank movement, drivers, history, archetypes, competitors, brand
health, market shift, risk, opportunity and top products. Every function
takes an AnalyzerContext and returns an AnalyzerOutput built from the
selected snapshot and its history only.
"""

import re
from typing import Optional

from src.analyzers.base import (
    AnalyzerContext,
    AnalyzerOutput,
    base_evidence,
    brand_scope_set,
    brand_top_contributors,
    brands_with_archetype,
    citation,
    compute_brand_archetypes,
    contributor_line,
    default_target_product,
    describe_trend,
    driver_breakdown,
    evidence,
    find_brand_total,
    growth_for_window,
    history_point,
    matches_type_scope,
    archetype_label,
    ratio,
    scope_label,
    scoped_products,
    summarize_brand,
    type_scope_label,
    unknown_output,
    window_label,
)
from src.analyzers.competitor_engine import find_closest_competitors
from src.analyzers.proactive import build_snapshot_suggestions
from src.models.schemas import (
    AnalyzerId,
    HistoricalWindow,
    RankingTarget,
    SalesArchetype,
    ScopeMode,
    TargetLevel,
)
from src.resolution.product_index import TypeMetric
from src.utils.formatters import (
    format_currency,
    format_number,
    format_percent,
    format_rank,
    normalize_key,
    signed_points,
    signed_rank_delta,
)

FALLBACK_BRAND = re.compile(r"\botofix\b", re.IGNORECASE)
CANONICAL_TYPE_KEYS = ("totaltablet", "totalhandheld", "totaldongle", "totalothertools")

CONCENTRATION_RISK_SHARE = 0.55
QUALITY_RISK_MIN_REVENUE = 100_000
OPPORTUNITY_MIN_MARKET_SHARE = 0.2
OPPORTUNITY_MAX_OWN_SHARE = 0.06
TOP_N = 5


def _requested_brand(ctx: AnalyzerContext, allow_product: bool = False) -> Optional[str]:
    if ctx.entities.brands:
        return ctx.entities.brands[0]
    if FALLBACK_BRAND.search(ctx.message):
        return "otofix"
    if allow_product and ctx.matched_products:
        return ctx.matched_products[0].brand_key
    return None


def _rank_metric(target: str) -> str:
    return "units" if target == RankingTarget.UNITS_RANK else "revenue"


# =============================================================================
# Growth
# =============================================================================

def analyze_fastest_growth(ctx: AnalyzerContext) -> AnalyzerOutput:
    plan = ctx.plan
    if plan.target_level == TargetLevel.TYPE or plan.type_scope is not None:
        return analyze_type_growth(ctx)

    metric = plan.ranking_metric
    window = plan.growth_window
    label = window_label(window)
    units = ctx.units_metric
    yoy_date = ctx.index.yoy.date if ctx.index.yoy else None

    if plan.target_level == TargetLevel.ASIN:
        rows = []
        for product in ctx.index.products:
            yoy_point = history_point(product.history, yoy_date)
            if units:
                mom = product.units_mom or 0.0
                yoy = ratio(product.units, yoy_point.units if yoy_point else 0.0)
            else:
                mom = product.revenue_mom or 0.0
                yoy = ratio(product.revenue, yoy_point.revenue if yoy_point else 0.0)
            growth = growth_for_window(window, mom, yoy)
            if growth is not None:
                rows.append((product, growth))
        rows.sort(key=lambda row: row[1], reverse=True)
        ranked = rows[:TOP_N]
        if not ranked:
            return unknown_output(ctx, "I couldn't find ASIN growth results for the requested scope.")

        top = ranked[0][0]
        return AnalyzerOutput(
            answer=f"Fastest {metric} growth ASIN ({label}): {top.brand} {top.asin}.",
            bullets=[
                f"#{position} {product.brand} {product.asin}: {format_percent(growth)} ({label}), "
                f"{format_currency(product.revenue)} revenue, {format_number(product.units)} units."
                for position, (product, growth) in enumerate(ranked, start=1)
            ],
            evidence=[
                *base_evidence(ctx.snapshot),
                evidence("Target Level", "ASIN"),
                evidence("Window", label),
                evidence("Metric", metric.upper()),
            ],
            confidence=0.86,
            assumptions=["ASIN growth compares current month against previous month and prior-year month when available."],
            citations=[citation("ASIN growth", "products + history windows", ctx.snapshot.date)],
            suggested_questions=[
                f"Who is the biggest competitor to {top.asin}?",
                f"Is {top.brand} growth driven by price or units?",
                "Which brands grew fastest in handheld tools?",
            ],
            historical_window=HistoricalWindow.TWELVE_MONTHS,
            window_used=label,
        )

    if ctx.scope.mode == ScopeMode.ALL_BRANDS:
        scoped_rows = list(ctx.snapshot.brand_totals)
    else:
        allowed = {normalize_key(brand) for brand in ctx.scope.brands}
        scoped_rows = [row for row in ctx.snapshot.brand_totals if row.key in allowed]

    rows = []
    for row in scoped_rows:
        previous = find_brand_total(ctx.index.previous, row.brand)
        last_year = find_brand_total(ctx.index.yoy, row.brand)
        if units:
            mom = ratio(row.units, previous.units if previous else 0.0)
            yoy = ratio(row.units, last_year.units if last_year else 0.0)
        else:
            mom = ratio(row.revenue, previous.revenue if previous else 0.0)
            yoy = ratio(row.revenue, last_year.revenue if last_year else 0.0)
        growth = growth_for_window(window, mom, yoy)
        if growth is not None:
            rows.append((row, growth))
    rows.sort(key=lambda item: item[1], reverse=True)
    ranked = rows[:TOP_N]
    if not ranked:
        return unknown_output(ctx, "I couldn't find brand growth results for the requested scope.")

    top = ranked[0][0]
    contributors = brand_top_contributors(ctx.index, top.brand)
    archetype = compute_brand_archetypes(ctx.snapshot).get(top.key, SalesArchetype.BALANCED)
    return AnalyzerOutput(
        answer=f"Fastest {metric} growth brand ({label}): {top.brand}.",
        bullets=[
            *(
                f"#{position} {row.brand}: {format_percent(growth)} ({label}), "
                f"{format_currency(row.revenue)} revenue, {format_number(row.units)} units."
                for position, (row, growth) in enumerate(ranked, start=1)
            ),
            f"Current growth profile for {top.brand}: {archetype_label(archetype)}.",
            *(contributor_line(item) for item in contributors),
        ],
        evidence=[
            *base_evidence(ctx.snapshot),
            evidence("Target Level", "Brand"),
            evidence("Window", label),
            evidence("Metric", metric.upper()),
            evidence("Top Growth", top.brand),
        ],
        confidence=0.88,
        assumptions=["Brand growth compares current month versus previous month and prior-year month when available."],
        citations=[citation("Brand growth", "snapshot.brandTotals + historical snapshots", ctx.snapshot.date)],
        suggested_questions=[
            f"Show top ASIN contributors for {top.brand}.",
            f"Is {top.brand} growth driven more by units or ASP?",
            "Who is the fastest rank mover by units this month?",
        ],
        historical_window=HistoricalWindow.TWELVE_MONTHS,
        sales_archetype=archetype,
        top_contributors=contributors,
        window_used=label,
    )


def analyze_fastest_rank_mover(ctx: AnalyzerContext) -> AnalyzerOutput:
    rank_target = ctx.plan.ranking_target
    metric = _rank_metric(rank_target)
    previous_label = ctx.index.previous.label if ctx.index.previous else "previous snapshot"

    if ctx.plan.target_level == TargetLevel.ASIN:
        rows = []
        for product in ctx.index.products:
            previous = product.previous_point()
            current_rank = product.rank_units if metric == "units" else product.rank_revenue
            previous_rank = None
            if previous is not None:
                previous_rank = previous.rank_units if metric == "units" else previous.rank_revenue
            if previous_rank is not None and current_rank > 0:
                rows.append((product, previous_rank, current_rank, previous_rank - current_rank))
        rows.sort(key=lambda row: row[3], reverse=True)
        ranked = rows[:TOP_N]
        if not ranked:
            return unknown_output(ctx, "I couldn't compute ASIN rank movement from available snapshots.")

        top, _, _, top_delta = ranked[0]
        return AnalyzerOutput(
            answer=(
                f"Fastest ASIN rank mover ({metric} rank): {top.brand} {top.asin} "
                f"({signed_rank_delta(top_delta)})."
            ),
            bullets=[
                f"#{position} {product.brand} {product.asin}: {format_rank(previous_rank)} -> "
                f"{format_rank(current_rank)} ({signed_rank_delta(delta)})."
                for position, (product, previous_rank, current_rank, delta) in enumerate(ranked, start=1)
            ],
            evidence=[
                *base_evidence(ctx.snapshot),
                evidence("Target Level", "ASIN"),
                evidence("Rank Target", rank_target),
                evidence("Baseline", previous_label),
            ],
            confidence=0.84,
            assumptions=["Rank mover compares current rank versus immediately previous snapshot rank."],
            citations=[citation("ASIN rank movement", "product history ranks", ctx.snapshot.date)],
            suggested_questions=[
                f"How did {top.asin} perform by revenue and units?",
                f"Who competes closest with {top.asin}?",
                "Which brand gained rank fastest this month?",
            ],
        )

    rows = []
    for row in ctx.snapshot.brand_totals:
        current_rank = ctx.snapshot.brand_rank(row.brand, metric)
        previous_rank = ctx.index.previous.brand_rank(row.brand, metric) if ctx.index.previous else None
        if previous_rank is not None and current_rank is not None:
            rows.append((row, previous_rank, current_rank, previous_rank - current_rank))
    rows.sort(key=lambda item: item[3], reverse=True)
    ranked = rows[:TOP_N]
    if not ranked:
        return unknown_output(ctx, "I couldn't compute brand rank movement from available snapshots.")

    top, _, _, top_delta = ranked[0]
    return AnalyzerOutput(
        answer=(
            f"Fastest brand rank mover ({metric} rank): {top.brand} "
            f"({signed_rank_delta(top_delta)} vs {previous_label})."
        ),
        bullets=[
            f"#{position} {row.brand}: {format_rank(previous_rank)} -> {format_rank(current_rank)} "
            f"({signed_rank_delta(delta)}), {format_currency(row.revenue)} revenue, {format_number(row.units)} units."
            for position, (row, previous_rank, current_rank, delta) in enumerate(ranked, start=1)
        ],
        evidence=[
            *base_evidence(ctx.snapshot),
            evidence("Target Level", "Brand"),
            evidence("Rank Target", rank_target),
            evidence("Baseline", previous_label),
        ],
        confidence=0.87,
        assumptions=["Rank mover compares current rank versus immediately previous snapshot rank."],
        citations=[citation("Brand rank movement", "snapshot.brandTotals rankings", ctx.snapshot.date)],
        suggested_questions=[
            f"Show top ASIN contributors for {top.brand}.",
            f"Is {top.brand} growth driven by units or ASP?",
            "Which type segment has the fastest rank shifts?",
        ],
    )


def _type_brand_growth(ctx: AnalyzerContext, type_scope: str) -> list[dict]:
    """Per-brand current, previous and prior-year totals within one type scope."""
    yoy_date = ctx.index.yoy.date if ctx.index.yoy else None
    buckets: dict[str, dict] = {}
    for product in ctx.index.products:
        if not matches_type_scope(product.type, type_scope):
            continue
        bucket = buckets.setdefault(product.brand_key, {
            "brand": product.brand,
            "revenue": 0.0,
            "units": 0.0,
            "prev_revenue": 0.0,
            "prev_units": 0.0,
            "yoy_revenue": 0.0,
            "yoy_units": 0.0,
        })
        previous = product.previous_point()
        last_year = history_point(product.history, yoy_date)
        bucket["revenue"] += product.revenue
        bucket["units"] += product.units
        bucket["prev_revenue"] += previous.revenue if previous else 0.0
        bucket["prev_units"] += previous.units if previous else 0.0
        bucket["yoy_revenue"] += last_year.revenue if last_year else 0.0
        bucket["yoy_units"] += last_year.units if last_year else 0.0
    return list(buckets.values())


def _canonical_type_rows(ctx: AnalyzerContext) -> list[TypeMetric]:
    rows = [
        row for row in ctx.snapshot.type_metrics
        if any(key in normalize_key(row.scope_key) for key in CANONICAL_TYPE_KEYS)
    ]
    return rows or ctx.index.price_scope_metrics


def analyze_type_growth(ctx: AnalyzerContext) -> AnalyzerOutput:
    metric = ctx.plan.ranking_metric
    window = ctx.plan.growth_window
    label = window_label(window)
    units = ctx.units_metric
    type_scope = ctx.plan.type_scope

    if type_scope is not None:
        type_label = type_scope_label(type_scope)
        rows = []
        for row in _type_brand_growth(ctx, type_scope):
            if units:
                mom = ratio(row["units"], row["prev_units"])
                yoy = ratio(row["units"], row["yoy_units"])
            else:
                mom = ratio(row["revenue"], row["prev_revenue"])
                yoy = ratio(row["revenue"], row["yoy_revenue"])
            growth = growth_for_window(window, mom, yoy)
            if growth is not None:
                rows.append((row, growth))
        rows.sort(key=lambda item: item[1], reverse=True)
        ranked = rows[:TOP_N]
        if not ranked:
            return unknown_output(ctx, f"I couldn't find {type_label} growth results from the current snapshot.")

        top = ranked[0][0]
        return AnalyzerOutput(
            answer=f"Fastest {type_label} growth brand ({label}, {metric}): {top['brand']}.",
            bullets=[
                f"#{position} {row['brand']}: {format_percent(growth)} ({label}), "
                f"{format_currency(row['revenue'])} revenue, {format_number(row['units'])} units."
                for position, (row, growth) in enumerate(ranked, start=1)
            ],
            evidence=[
                *base_evidence(ctx.snapshot),
                evidence("Target Level", "Type > Brand"),
                evidence("Type Scope", type_label),
                evidence("Window", label),
            ],
            confidence=0.84,
            assumptions=["Type growth is aggregated from ASIN-level monthly metrics within the selected type scope."],
            citations=[citation("Type scoped growth", "product history grouped by type and brand", ctx.snapshot.date)],
            suggested_questions=[
                f"Is {top['brand']} in {type_label} growth driven by units or ASP?",
                f"Who is the fastest rank mover within {type_label}?",
                f"Show {top['brand']} top {type_label} ASINs.",
            ],
            window_used=label,
        )

    rows = []
    for row in _canonical_type_rows(ctx):
        mom = row.units_mom if units else row.revenue_mom
        yoy = row.units_yoy if units else row.revenue_yoy
        growth = growth_for_window(window, mom, yoy)
        if growth is not None:
            rows.append((row, growth))
    rows.sort(key=lambda item: item[1], reverse=True)
    ranked = rows[:TOP_N]
    if not ranked:
        return unknown_output(ctx, "I couldn't find type-level growth metrics for this snapshot.")

    top = ranked[0][0]
    return AnalyzerOutput(
        answer=f"Fastest growth product type ({label}, {metric}): {top.label}.",
        bullets=[
            f"#{position} {row.label}: {format_percent(growth)} ({label}), "
            f"{format_currency(row.revenue)} revenue, {format_number(row.units)} units."
            for position, (row, growth) in enumerate(ranked, start=1)
        ],
        evidence=[
            *base_evidence(ctx.snapshot),
            evidence("Target Level", "Type"),
            evidence("Window", label),
            evidence("Metric", metric.upper()),
        ],
        confidence=0.82,
        assumptions=["Type-level growth uses parsed Summary/Analysis type scopes when available."],
        citations=[citation("Type growth", "snapshot.typeBreakdowns.allAsins", ctx.snapshot.date)],
        suggested_questions=[
            "Which brands grew fastest inside this type?",
            "Is growth in this type driven by units or ASP?",
            "Who is the fastest rank mover by units this month?",
        ],
        window_used=label,
    )


def analyze_growth_driver(ctx: AnalyzerContext) -> AnalyzerOutput:
    type_scope = ctx.plan.type_scope
    explicit_brand = ctx.scope.brands[0] if ctx.scope.mode != ScopeMode.ALL_BRANDS and ctx.scope.brands else None

    if type_scope is not None:
        type_label = type_scope_label(type_scope)
        products = [product for product in ctx.index.products if matches_type_scope(product.type, type_scope)]
        previous_points = [point for point in (product.previous_point() for product in products) if point]
        revenue = sum(product.revenue for product in products)
        units = sum(product.units for product in products)
        previous_revenue = sum(point.revenue for point in previous_points)
        previous_units = sum(point.units for point in previous_points)
        driver = driver_breakdown(revenue, units, previous_revenue, previous_units)
        return AnalyzerOutput(
            answer=(
                f"{type_label} growth is primarily {driver.primary_driver}-driven "
                f"({window_label(ctx.plan.growth_window)} context)."
            ),
            bullets=[
                f"{type_label} monthly revenue {format_currency(revenue)} ({format_percent(ratio(revenue, previous_revenue))} MoM).",
                f"{type_label} monthly units {format_number(units)} ({format_percent(ratio(units, previous_units))} MoM).",
                f"Driver split: unit effect {format_currency(driver.unit_effect)}, price effect {format_currency(driver.price_effect)}.",
            ],
            evidence=[
                *base_evidence(ctx.snapshot),
                evidence("Scope", type_label),
                evidence("Primary Driver", driver.primary_driver.upper()),
            ],
            confidence=0.83,
            assumptions=["Growth driver decomposition uses ASP bridge between current and previous month."],
            citations=[citation("Type growth driver", "type-scoped product aggregation", ctx.snapshot.date)],
            suggested_questions=[
                f"Which brands are driving {type_label} growth?",
                f"Who is the fastest rank mover in {type_label}?",
                "Show top ASIN contributors in this type.",
            ],
        )

    if explicit_brand:
        stats = summarize_brand(ctx.snapshot, explicit_brand)
        if stats is None:
            return unknown_output(ctx, f"I couldn't find growth-driver details for {explicit_brand.upper()}.")
        previous = find_brand_total(ctx.index.previous, stats.brand)
        driver = driver_breakdown(
            stats.revenue,
            stats.units,
            previous.revenue if previous else 0.0,
            previous.units if previous else 0.0,
        )
        revenue_rank = ctx.snapshot.brand_rank(stats.brand, "revenue")
        units_rank = ctx.snapshot.brand_rank(stats.brand, "units")
        archetype = compute_brand_archetypes(ctx.snapshot).get(normalize_key(stats.brand), SalesArchetype.BALANCED)
        return AnalyzerOutput(
            answer=f"{stats.brand} performance is mainly {driver.primary_driver}-driven this month.",
            bullets=[
                f"{stats.brand} monthly revenue {format_currency(stats.revenue)}, monthly units {format_number(stats.units)}.",
                f"{stats.brand} rank: #{revenue_rank or 'n/a'} by revenue, #{units_rank or 'n/a'} by units.",
                f"ASP {format_currency(stats.asp)} and profile is {archetype_label(archetype)}.",
                f"Driver split: unit effect {format_currency(driver.unit_effect)}, price effect {format_currency(driver.price_effect)}.",
            ],
            evidence=[
                *base_evidence(ctx.snapshot),
                evidence("Scope", stats.brand),
                evidence("Primary Driver", driver.primary_driver.upper()),
                evidence("Revenue Rank", format_rank(revenue_rank)),
                evidence("Units Rank", format_rank(units_rank)),
            ],
            confidence=0.9,
            assumptions=["Brand driver decomposition uses monthly revenue/units and ASP bridge vs prior month."],
            citations=[citation("Brand growth driver", "snapshot.brandTotals + prior snapshot", ctx.snapshot.date)],
            suggested_questions=[
                f"Show top ASIN contributors for {stats.brand}.",
                f"How did {stats.brand} rank move vs last month?",
                f"Which {stats.brand} products are growing fastest?",
            ],
            sales_archetype=archetype,
            top_contributors=brand_top_contributors(ctx.index, stats.brand),
        )

    snapshot = ctx.snapshot
    previous_revenue = ctx.index.previous.market_revenue if ctx.index.previous else 0.0
    previous_units = ctx.index.previous.market_units if ctx.index.previous else 0.0
    driver = driver_breakdown(snapshot.market_revenue, snapshot.market_units, previous_revenue, previous_units)
    return AnalyzerOutput(
        answer=f"Market growth is currently {driver.primary_driver}-driven.",
        bullets=[
            f"Market monthly revenue {format_currency(snapshot.market_revenue)} "
            f"({format_percent(ratio(snapshot.market_revenue, previous_revenue))} MoM).",
            f"Market monthly units {format_number(snapshot.market_units)} "
            f"({format_percent(ratio(snapshot.market_units, previous_units))} MoM).",
            f"Driver split: unit effect {format_currency(driver.unit_effect)}, price effect {format_currency(driver.price_effect)}.",
        ],
        evidence=[
            *base_evidence(snapshot),
            evidence("Scope", "MARKET"),
            evidence("Primary Driver", driver.primary_driver.upper()),
        ],
        confidence=0.8,
        assumptions=["Market driver decomposition uses total monthly revenue/units and ASP bridge vs prior month."],
        citations=[citation("Market growth driver", "snapshot totals vs prior month", snapshot.date)],
        suggested_questions=[
            "Which brands are driving most of this growth?",
            "Who is the fastest growth brand by units?",
            "Who is the fastest rank mover this month?",
        ],
    )


# =============================================================================
# History and Archetypes
# =============================================================================

def analyze_asin_history(ctx: AnalyzerContext) -> AnalyzerOutput:
    if ctx.matched_products:
        target = ctx.matched_products[0]
        history = ctx.index.asin_history.get(target.key)
        window3 = history.windows.get("3m") if history else None
        window12 = None
        if history:
            twelve = history.windows.get("12m")
            window12 = twelve if twelve and twelve.months else history.windows.get("all")
        return AnalyzerOutput(
            answer=f"ASIN History: {target.brand} {target.asin} is {window3.trend if window3 else 'flat'} over the recent period.",
            bullets=[
                f"Latest month: {format_currency(target.revenue)} revenue, {format_number(target.units)} units, "
                f"ASP {format_currency(target.price)}.",
                (
                    f"3M: {format_currency(window3.revenue)} revenue, {format_number(window3.units)} units, "
                    f"growth {format_percent(window3.revenue_growth_window)}."
                    if window3 else "3-month history is unavailable."
                ),
                (
                    f"12M/all: {format_currency(window12.revenue)} revenue, {format_number(window12.units)} units, "
                    f"growth {format_percent(window12.revenue_growth_window)}."
                    if window12 else "Longer-window history is unavailable."
                ),
            ],
            evidence=[
                *base_evidence(ctx.snapshot),
                evidence("ASIN", target.asin),
                evidence("3M Trend", window3.trend if window3 else "n/a"),
                evidence("Revenue Rank", f"#{target.rank_revenue}"),
            ],
            confidence=0.86 if history else 0.68,
            assumptions=["History is computed from available dashboard snapshots up to current selected month."],
            citations=[citation("ASIN history windows", "asinHistoryByAsin", ctx.snapshot.date)],
            suggested_questions=[
                f"Who is the biggest competitor to {target.asin}?",
                f"Show {target.brand} top ASIN contributors.",
                "Which brands are fastest movers this month?",
            ],
            historical_window=HistoricalWindow.TWELVE_MONTHS,
        )

    brand = _requested_brand(ctx)
    if not brand:
        return unknown_output(
            ctx,
            "Tell me which brand or ASIN you want history for, for example: "
            "'Show OTOFIX top ASINs and past performance.'",
        )
    label = brand.upper()
    contributors = brand_top_contributors(ctx.index, brand)
    if not contributors:
        return unknown_output(ctx, f"I couldn't find top ASIN history for {label}.")

    return AnalyzerOutput(
        answer=f"{label} top ASINs are {', '.join(item.asin for item in contributors)} with historical trend support.",
        bullets=[contributor_line(item) for item in contributors],
        evidence=[
            *base_evidence(ctx.snapshot),
            evidence("Brand", label),
            evidence("Top ASIN", contributors[0].asin),
        ],
        confidence=0.83,
        assumptions=["Top ASIN history uses rolling monthly brand contributor snapshots."],
        citations=[citation("Brand top ASIN history", "brandTopAsinsByMonth", ctx.snapshot.date)],
        suggested_questions=[
            f"Why is {label} performing well?",
            f"Is {label} price-led or volume-led?",
            "Who are the fastest movers this month?",
        ],
        historical_window=HistoricalWindow.TWELVE_MONTHS,
        top_contributors=contributors,
    )


def analyze_brand_archetype(ctx: AnalyzerContext, analyzer: str = AnalyzerId.BRAND_ARCHETYPE) -> AnalyzerOutput:
    archetypes = compute_brand_archetypes(ctx.snapshot)
    requested = _requested_brand(ctx, allow_product=True)

    if requested and analyzer == AnalyzerId.BRAND_ARCHETYPE:
        archetype = archetypes.get(normalize_key(requested))
        stats = summarize_brand(ctx.snapshot, requested)
        if stats is None or archetype is None:
            return unknown_output(ctx, f"I couldn't classify {requested.upper()} from current data coverage.")
        contributors = brand_top_contributors(ctx.index, requested)
        return AnalyzerOutput(
            answer=f"{stats.brand} is {archetype_label(archetype)} this month.",
            bullets=[
                f"{stats.brand} revenue {format_currency(stats.revenue)} with {format_number(stats.units)} units "
                f"(ASP {format_currency(stats.asp)}).",
                f"Revenue share {format_percent(stats.revenue_share)} vs unit share {format_percent(stats.unit_share)}.",
                *(contributor_line(item) for item in contributors),
            ],
            evidence=[
                *base_evidence(ctx.snapshot),
                evidence("Brand", stats.brand),
                evidence("Archetype", archetype_label(archetype)),
                evidence("ASP", format_currency(stats.asp)),
            ],
            confidence=0.84,
            assumptions=["Archetype classification uses deterministic percentile thresholds on ASP and unit/revenue mix."],
            citations=[citation("Brand archetype scoring", "current snapshot brand metrics", ctx.snapshot.date)],
            suggested_questions=[
                f"Show {stats.brand} top ASIN history.",
                f"Who is {stats.brand}'s fastest-moving ASIN?",
                "Which brands are volume-led this month?",
            ],
            historical_window=HistoricalWindow.TWELVE_MONTHS,
            sales_archetype=archetype,
            top_contributors=contributors,
        )

    price_led = brands_with_archetype(archetypes, SalesArchetype.PRICE_LED)[:3]
    volume_led = brands_with_archetype(archetypes, SalesArchetype.VOLUME_LED)[:3]
    balanced = brands_with_archetype(archetypes, SalesArchetype.BALANCED)[:4]
    return AnalyzerOutput(
        answer=(
            f"Price-led winners: {', '.join(price_led) or 'none'} | "
            f"Volume-led winners: {', '.join(volume_led) or 'none'}."
        ),
        bullets=[
            "Price-led = higher ASP with lower relative unit mix but strong revenue output.",
            "Volume-led = lower ASP with higher unit throughput and strong revenue conversion.",
            f"Balanced brands: {', '.join(balanced) or 'none'}.",
        ],
        evidence=base_evidence(ctx.snapshot),
        confidence=0.82,
        assumptions=["Classification uses top/bottom 30% ASP percentiles with unit-share and revenue-share constraints."],
        citations=[citation("Price-vs-volume classifier", "brand archetype engine", ctx.snapshot.date)],
        suggested_questions=[
            "Why is OTOFIX performing well?",
            "Show fastest movers this month.",
            "Show top ASIN history for OTOFIX.",
        ],
        historical_window=HistoricalWindow.TWELVE_MONTHS,
    )


# =============================================================================
# Product Analyzers
# =============================================================================

def analyze_product_competitor(ctx: AnalyzerContext) -> AnalyzerOutput:
    target = default_target_product(ctx)
    if target is None:
        return unknown_output(ctx, "I couldn't identify a target product for competitor analysis.")

    result = find_closest_competitors(
        ctx.index,
        target,
        price_window_pct=ctx.price_window_pct,
        price_window_abs=ctx.price_window_abs,
        min_revenue=ctx.competitor_min_revenue,
    )
    if not result.candidates:
        return unknown_output(
            ctx,
            f"I couldn't find comparable competitors for {target.brand} {target.asin} in the current snapshot.",
        )

    top = result.candidates[0]
    return AnalyzerOutput(
        answer=f"Closest Competitor: {top.product.brand} {top.product.asin}",
        bullets=[
            f"Target {target.brand} {target.asin}: {format_currency(target.revenue)} revenue, "
            f"{format_number(target.units)} units, ASP {format_currency(target.price)}.",
            *top.evidence[:4],
            *(
                f"Alternative #{position}: {item.product.brand} {item.product.asin} ({item.score:.1f}/100)."
                for position, item in enumerate(result.candidates[1:], start=2)
            ),
        ],
        evidence=[
            *base_evidence(ctx.snapshot),
            evidence("Target Product", f"{target.brand} {target.asin}"),
            evidence("Closest Competitor", f"{top.product.brand} {top.product.asin}"),
        ],
        confidence=result.confidence,
        assumptions=list(result.assumptions),
        citations=[
            citation("Product matching", "brandSheetListings/topProducts", ctx.snapshot.date),
            citation("Competitor scoring model", "deterministic competitor-engine", ctx.snapshot.date),
        ],
        suggested_questions=[
            f"What trend does {top.product.asin} show vs {target.asin}?",
            f"Are there faster-growing alternatives in {target.type}?",
            "Show competitor movement this month.",
        ],
        historical_window=HistoricalWindow.TWELVE_MONTHS,
    )


def analyze_product_trend(ctx: AnalyzerContext) -> AnalyzerOutput:
    target = default_target_product(ctx)
    if target is None:
        return unknown_output(ctx, "I couldn't identify which product trend to analyze.")

    last = target.history[-1] if target.history else None
    previous = target.previous_point()
    revenue_mom = target.revenue_mom
    units_mom = target.units_mom
    return AnalyzerOutput(
        answer=(
            f"{target.brand} {target.asin} is {describe_trend(revenue_mom)} in revenue ({format_percent(revenue_mom)}) "
            f"and {describe_trend(units_mom)} in units ({format_percent(units_mom)}) vs last month."
        ),
        bullets=[
            f"Current monthly revenue: {format_currency(target.revenue)} | units: {format_number(target.units)}.",
            f"Current rank: #{target.rank_revenue} by revenue, #{target.rank_units} by units.",
            (
                f"Previous snapshot ({previous.date}) revenue: {format_currency(previous.revenue)}, "
                f"units: {format_number(previous.units)}."
                if previous else "No previous snapshot record available for this ASIN."
            ),
            (
                f"Latest tracked revenue rank history point: #{last.rank_revenue}."
                if last and last.rank_revenue is not None else "Rank history is partial."
            ),
        ],
        evidence=[
            *base_evidence(ctx.snapshot),
            evidence("Product", f"{target.brand} {target.asin}"),
            evidence("Revenue MoM", format_percent(revenue_mom)),
            evidence("Units MoM", format_percent(units_mom)),
        ],
        confidence=0.86 if len(target.history) >= 2 else 0.7,
        assumptions=["Trend is based on dashboard snapshot history for available months."],
        citations=[
            citation("Product history series", "code_reader_index", ctx.snapshot.date),
            citation("Monthly performance deltas", "topProducts/brandSheetListings", ctx.snapshot.date),
        ],
        suggested_questions=[
            f"Who is the biggest competitor to {target.asin}?",
            f"Is {target.asin} losing share in its price band?",
            "Show market shift for top competitors.",
        ],
    )


# =============================================================================
# Brand and Market Analyzers
# =============================================================================

STRATEGY_LABELS = {
    SalesArchetype.PRICE_LED.value: "high average price strategy",
    SalesArchetype.VOLUME_LED.value: "high unit volume strategy",
}


def analyze_brand_health(ctx: AnalyzerContext) -> AnalyzerOutput:
    brand_keys = brand_scope_set(ctx)
    snapshot = ctx.snapshot
    current_rows = [row for row in snapshot.brand_totals if row.key in brand_keys]
    previous_rows = [row for row in (ctx.index.previous.brand_totals if ctx.index.previous else []) if row.key in brand_keys]

    revenue = sum(row.revenue for row in current_rows)
    units = sum(row.units for row in current_rows)
    share = revenue / snapshot.market_revenue if snapshot.market_revenue > 0 else 0.0
    previous_revenue = sum(row.revenue for row in previous_rows)
    previous_units = sum(row.units for row in previous_rows)
    asp = revenue / units if units > 0 else 0.0
    previous_asp = previous_revenue / previous_units if previous_units > 0 else 0.0
    driver = driver_breakdown(revenue, units, previous_revenue, previous_units)

    single = current_rows[0] if len(current_rows) == 1 else None
    archetype = compute_brand_archetypes(snapshot).get(single.key) if single else None
    strategy = STRATEGY_LABELS.get(archetype.value if archetype else "", "balanced price and volume strategy")
    label = scope_label(ctx.scope)

    if single:
        revenue_rank = snapshot.brand_rank(single.brand, "revenue")
        units_rank = snapshot.brand_rank(single.brand, "units")
        lead = f"{single.brand} rank is #{revenue_rank or 'n/a'} by revenue and #{units_rank or 'n/a'} by units."
    else:
        lead = f"Current scope includes {len(current_rows)} brands in this snapshot."

    return AnalyzerOutput(
        answer=(
            f"{label} delivered {format_currency(revenue)} monthly revenue and {format_number(units)} units "
            f"({format_percent(ratio(revenue, previous_revenue))} revenue MoM)."
        ),
        bullets=[
            lead,
            f"Average price is {format_currency(asp)} ({format_percent(ratio(asp, previous_asp))} MoM). "
            f"This scope is currently {strategy}.",
            f"Revenue movement is mainly driven by {driver.primary_driver}: units effect "
            f"{format_currency(driver.unit_effect)}, price effect {format_currency(driver.price_effect)}.",
            *(
                f"{row.brand}: {format_currency(row.revenue)} revenue, {format_number(row.units)} units, "
                f"{format_percent(row.share)} share."
                for row in current_rows[:2]
            ),
            f"Market total: {format_currency(snapshot.market_revenue)} revenue, {format_number(snapshot.market_units)} units.",
        ],
        evidence=[
            *base_evidence(snapshot),
            evidence("Scope", label),
            evidence("Revenue", format_currency(revenue)),
            evidence("Units", format_number(units)),
            evidence("Avg Price", format_currency(asp)),
            evidence("Share", format_percent(share)),
        ],
        confidence=0.88 if current_rows else 0.62,
        assumptions=["Brand-health scope follows explicit brand > quick-action brand > own brands > market."],
        citations=[citation("Brand totals", "snapshot.brandTotals", snapshot.date)],
        suggested_questions=[
            "What are competitors doing this month?",
            "What is our biggest risk right now?",
            "Which own product has the strongest momentum?",
        ],
        sales_archetype=archetype,
        proactive=build_snapshot_suggestions(ctx.index).proactive,
    )


def analyze_market_shift(ctx: AnalyzerContext) -> AnalyzerOutput:
    deltas = []
    for row in ctx.snapshot.brand_totals:
        previous = find_brand_total(ctx.index.previous, row.brand)
        share_delta = row.share - (previous.share if previous else 0.0)
        revenue_delta = ratio(row.revenue, previous.revenue if previous else 0.0)
        deltas.append((row, share_delta, revenue_delta))
    deltas.sort(key=lambda item: abs(item[1]), reverse=True)

    if deltas:
        top, top_delta, _ = deltas[0]
        answer = f"{top.brand} shows the largest share movement this month ({signed_points(top_delta)})."
    else:
        answer = "Market shift signal is unavailable for this snapshot."
    return AnalyzerOutput(
        answer=answer,
        bullets=[
            f"{row.brand}: share {format_percent(row.share)} ({signed_points(share_delta)}), "
            f"revenue {format_percent(revenue_delta)} MoM."
            for row, share_delta, revenue_delta in deltas[:4]
        ],
        evidence=base_evidence(ctx.snapshot),
        confidence=0.84 if ctx.index.previous else 0.65,
        assumptions=["Comparisons use the immediately previous available snapshot."],
        citations=[citation("Brand movement", "snapshot.brandTotals + previous snapshot", ctx.snapshot.date)],
        suggested_questions=[
            "Which competitor is closest to Innova 5610?",
            "Where is the largest growth opportunity by type?",
            "Which products are rising stars this month?",
        ],
    )


def analyze_risk_signal(ctx: AnalyzerContext) -> AnalyzerOutput:
    brand_keys = brand_scope_set(ctx)
    own = [product for product in ctx.index.products if product.brand_key in brand_keys]
    own_revenue = sum(product.revenue for product in own)
    top_one_share = own[0].revenue / own_revenue if own and own_revenue > 0 else 0.0
    heavy = [product for product in own if product.revenue > QUALITY_RISK_MIN_REVENUE]
    weakest = min(heavy, key=lambda product: product.rating) if heavy else None

    if top_one_share >= CONCENTRATION_RISK_SHARE:
        answer = (
            f"Concentration risk: top SKU contributes {format_percent(top_one_share)} of "
            f"{scope_label(ctx.scope).lower()} revenue."
        )
    elif weakest is not None:
        answer = (
            f"Quality risk: {weakest.asin} has high revenue ({format_currency(weakest.revenue)}) "
            f"but lower rating ({weakest.rating:.1f})."
        )
    else:
        answer = "No severe risk crossed configured thresholds."

    synthesis = build_snapshot_suggestions(ctx.index)
    return AnalyzerOutput(
        answer=answer,
        bullets=[
            f"Own revenue concentration (Top 1): {format_percent(top_one_share)}.",
            (
                f"Rating pressure candidate: {weakest.brand} {weakest.asin} ({weakest.rating:.1f}★)."
                if weakest else "No high-revenue low-rating SKU found."
            ),
            *synthesis.watchlist[:2],
        ],
        evidence=base_evidence(ctx.snapshot),
        confidence=0.8,
        assumptions=["Risk thresholds use deterministic heuristic cutoffs (concentration and rating)."],
        citations=[citation("Risk scoring", "deterministic risk_signal analyzer", ctx.snapshot.date)],
        suggested_questions=[
            "Which competitor is threatening our top SKU?",
            "Show competitor movements with largest share change.",
            "Where can we grow with lower competitive density?",
        ],
        proactive=synthesis.proactive,
    )


def _type_rows(ctx: AnalyzerContext) -> list[tuple[str, str, float, float]]:
    """``(label, scope_key, revenue, revenue_share)`` market-weight rows."""
    if ctx.snapshot.type_metrics:
        return [
            (row.label, row.scope_key, row.revenue, row.revenue_share)
            for row in ctx.snapshot.type_metrics
        ]
    return [(row.label, row.label, row.revenue, row.revenue_share) for row in ctx.category_data.type_mix]


def _matches_type_row(type_name: str, label: str, scope_key: str) -> bool:
    product_type = normalize_key(type_name)
    return bool(product_type) and (product_type in normalize_key(scope_key) or product_type in normalize_key(label))


def analyze_opportunity_signal(ctx: AnalyzerContext) -> AnalyzerOutput:
    rows = sorted(
        (row for row in _type_rows(ctx) if row[2] > 0),
        key=lambda row: row[3],
        reverse=True,
    )
    brand_keys = brand_scope_set(ctx)

    candidate = None
    for label, scope_key, revenue, revenue_share in rows:
        own_revenue = sum(
            product.revenue for product in ctx.index.products
            if product.brand_key in brand_keys and _matches_type_row(product.type, label, scope_key)
        )
        own_share = own_revenue / revenue if revenue > 0 else 0.0
        if revenue_share >= OPPORTUNITY_MIN_MARKET_SHARE and own_share < OPPORTUNITY_MAX_OWN_SHARE:
            candidate = (label, revenue_share, own_share)
            break

    if candidate:
        answer = (
            f"Best opportunity: {candidate[0]} has {format_percent(candidate[1])} market revenue share "
            f"while own share is {format_percent(candidate[2])}."
        )
    else:
        answer = "No clear high-weight low-share opportunity exceeded threshold this month."
    return AnalyzerOutput(
        answer=answer,
        bullets=[
            f"{label}: {format_currency(revenue)} revenue, {format_percent(revenue_share)} share."
            for label, _, revenue, revenue_share in rows[:4]
        ],
        evidence=base_evidence(ctx.snapshot),
        confidence=0.82 if rows else 0.6,
        assumptions=["Opportunity signal prioritizes large market-weight segments with low own participation."],
        citations=[citation("Type breakdowns", "snapshot.typeBreakdowns", ctx.snapshot.date)],
        suggested_questions=[
            "Which product should we prioritize in this segment?",
            "Who are the strongest competitors in this segment?",
            "What price tier is growing fastest?",
        ],
    )


def analyze_top_products(ctx: AnalyzerContext) -> AnalyzerOutput:
    units = ctx.units_metric
    ranked = sorted(
        scoped_products(ctx),
        key=lambda product: product.units if units else product.revenue,
        reverse=True,
    )[:TOP_N]
    ranking_label = "units" if units else "revenue"
    label = scope_label(ctx.scope)
    if ctx.scope.mode in (ScopeMode.EXPLICIT_BRAND, ScopeMode.TARGET_BRAND) and not ranked:
        return unknown_output(ctx, f"I couldn't find products for {label}.")

    if ranked:
        top = ranked[0]
        headline = f"{format_number(top.units)} units" if units else f"{format_currency(top.revenue)} revenue"
        answer = f"Top {label} SKU: {top.brand} {top.asin} ({headline})."
    else:
        answer = "No top-product data is available for this snapshot."
    return AnalyzerOutput(
        answer=answer,
        bullets=[
            f"#{position} {product.brand} {product.asin}: {format_currency(product.revenue)} / "
            f"{format_number(product.units)} units."
            for position, product in enumerate(ranked, start=1)
        ],
        evidence=[
            *base_evidence(ctx.snapshot),
            evidence("Scope", label),
            evidence("Ranked By", ranking_label),
        ],
        confidence=0.9 if ranked else 0.55,
        assumptions=["Top-product ranking uses deterministic scope resolution and current snapshot monthly metrics."],
        citations=[citation("Top products", "snapshot.topProducts + brandSheetListings", ctx.snapshot.date)],
        suggested_questions=[
            "Who is the biggest competitor to the top product?",
            "How has the top product trended vs last month?",
            "Which products are rising fastest now?",
        ],
    )


__all__ = [
    "analyze_fastest_growth",
    "analyze_fastest_rank_mover",
    "analyze_type_growth",
    "analyze_growth_driver",
    "analyze_asin_history",
    "analyze_brand_archetype",
    "analyze_product_competitor",
    "analyze_product_trend",
    "analyze_brand_health",
    "analyze_market_shift",
    "analyze_risk_signal",
    "analyze_opportunity_signal",
    "analyze_top_products",
]
