#!/usr/bin/env python3
"""
Core Pricing Engine

Turns a market snapshot into a suggested resale price plus quick-sale and premium alternatives:
base = 70% avg sold + 30% avg active, adjusted for the sold/active competition ratio,
then rounded to sensible price points.
"""

import logging
from typing import Optional

from resale_pricing import (
    BOTTOM_TIER_SOURCES,
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    TOP_TIER_SOURCES,
    MarketSnapshot,
    PriceBreakdown,
    PriceRecommendation,
)
from resale_pricing.price_stats import round_cents, round_to_nearest_sensible
from config import PRICING_CONFIG

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA = "Insufficient data for price calculation"


def _count(value: Optional[int]) -> int:
    """Unavailable counts behave like zero"""
    return value or 0


def calculate_suggested_price(snapshot: MarketSnapshot) -> PriceRecommendation:
    """
    Calculate price recommendations from market data.

    Args:
        snapshot: MarketSnapshot from a market data provider

    Returns:
        PriceRecommendation; all prices are None when neither average is available
    """
    config = PRICING_CONFIG
    sold_weight = config['sold_weight']
    active_weight = config['active_weight']

    avg_sold = snapshot.avg_sold_price or 0.0
    avg_active = snapshot.avg_active_price or 0.0
    sold_count = _count(snapshot.sold_count)
    active_count = _count(snapshot.active_count)

    methodology = []

    # Step 1: Base price, sold prices weighted more heavily than asking prices
    if avg_sold > 0 and avg_active > 0:
        base_price = avg_sold * sold_weight + avg_active * active_weight
        methodology.append(
            f"Weighted average: {sold_weight:.0%} sold listings, {active_weight:.0%} active listings"
        )
    elif avg_sold > 0:
        base_price = avg_sold
        methodology.append("Based on sold listings only")
    elif avg_active > 0:
        discount = 1 - config['active_only_multiplier']
        base_price = avg_active * config['active_only_multiplier']
        methodology.append(f"Based on active listings (discounted {discount:.0%})")
    else:
        logger.warning(f"No price data in snapshot (source: {snapshot.data_source})")
        return PriceRecommendation(
            confidence=CONFIDENCE_LOW,
            methodology=[INSUFFICIENT_DATA],
            outlier_count=0
        )

    # Step 2: Market adjustment from the sold/active ratio
    competition_ratio = sold_count / active_count if active_count > 0 else 1
    market_adjustment = 1.0

    if competition_ratio < config['high_competition_ratio']:
        # Many listings, few sales
        market_adjustment = config['high_competition_adjustment']
        methodology.append(f"Adjusted down {1 - market_adjustment:.0%} due to high competition")
    elif competition_ratio > config['strong_demand_ratio']:
        # Items selling faster than they are listed
        market_adjustment = config['strong_demand_adjustment']
        methodology.append(f"Adjusted up {market_adjustment - 1:.0%} due to strong demand")

    adjusted_price = base_price * market_adjustment

    logger.debug(f"Pricing calculation: base ${base_price:.2f} * {market_adjustment} = ${adjusted_price:.2f} "
                 f"(ratio {competition_ratio:.2f})")

    # Step 3: Price points
    suggested_price = round_to_nearest_sensible(adjusted_price)
    quick_sale_price = round_to_nearest_sensible(adjusted_price * config['quick_sale_multiplier'])
    premium_price = round_to_nearest_sensible(adjusted_price * config['premium_multiplier'])

    confidence = grade_confidence(snapshot)

    logger.info(f"Suggested ${suggested_price:.2f} (quick ${quick_sale_price:.2f}, "
                f"premium ${premium_price:.2f}, confidence: {confidence})")

    return PriceRecommendation(
        suggested_price=suggested_price,
        quick_sale_price=quick_sale_price,
        premium_price=premium_price,
        confidence=confidence,
        methodology=methodology,
        outlier_count=0,  # Outlier removal needs individual prices, which snapshots do not carry
        price_breakdown=PriceBreakdown(
            avg_sold_contribution=round_cents(avg_sold * sold_weight),
            avg_active_contribution=round_cents(avg_active * active_weight),
            market_adjustment=market_adjustment,
            competition_ratio=round_cents(competition_ratio)
        )
    )


def grade_confidence(snapshot: MarketSnapshot) -> str:
    """High needs plenty of exact-match sales; thin or category-level data is low."""
    sold_count = _count(snapshot.sold_count)

    if (sold_count >= PRICING_CONFIG['high_confidence_min_sold']
            and snapshot.data_source in TOP_TIER_SOURCES):
        return CONFIDENCE_HIGH

    if (sold_count < PRICING_CONFIG['low_confidence_min_sold']
            or snapshot.data_source in BOTTOM_TIER_SOURCES):
        return CONFIDENCE_LOW

    return CONFIDENCE_MEDIUM


def _format_price(price: Optional[float]) -> str:
    return f"${price:.2f}" if price is not None else "N/A"


def get_pricing_summary(pricing: PriceRecommendation,
                        snapshot: Optional[MarketSnapshot] = None) -> str:
    """
    Generate a human-readable pricing summary.

    Args:
        pricing: PriceRecommendation object
        snapshot: MarketSnapshot the recommendation was built from (optional)

    Returns:
        Formatted summary string
    """
    methodology = "\n".join(f"- {step}" for step in pricing.methodology) or "- none"

    summary = f"""
Pricing Summary
===============
Suggested:      {_format_price(pricing.suggested_price)}
Quick Sale:     {_format_price(pricing.quick_sale_price)}
Premium:        {_format_price(pricing.premium_price)}

Confidence:     {pricing.confidence}
Methodology:
{methodology}
"""

    if pricing.price_breakdown is not None:
        breakdown = pricing.price_breakdown
        summary += f"""
Breakdown:
- Sold contribution:   ${breakdown.avg_sold_contribution:.2f}
- Active contribution: ${breakdown.avg_active_contribution:.2f}
- Market adjustment:   x{breakdown.market_adjustment:.2f}
- Competition ratio:   {breakdown.competition_ratio:.2f}
"""

    if snapshot is not None:
        sold = snapshot.sold_count if snapshot.sold_count is not None else 'N/A'
        active = snapshot.active_count if snapshot.active_count is not None else 'N/A'
        summary += f"""
Market Data:
- Sold listings:   {sold}
- Active listings: {active}
- Avg sold price:  ${snapshot.avg_sold_price:.2f}
- Avg ask price:   ${snapshot.avg_active_price:.2f}
- Data source:     {snapshot.data_source}
"""
        if snapshot.source_note:
            summary += f"- Note:            {snapshot.source_note}\n"

    return summary.strip()
