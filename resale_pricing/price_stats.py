#!/usr/bin/env python3
"""
Price Statistics Utilities

Sensible price rounding, IQR outlier filtering and price distribution analysis.
All functions are pure and safe to call concurrently.
"""

import logging
import math
import statistics
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from config import PRICING_CONFIG

logger = logging.getLogger(__name__)

# (upper bound, rounding step) pairs, checked in order
ROUNDING_BANDS = (
    (10, 0.5),
    (50, 1),
    (100, 5),
    (500, 10),
)
TOP_BAND_STEP = 25


@dataclass
class OutlierResult:
    filtered: List[float] = field(default_factory=list)
    outlier_count: int = 0

    def to_dict(self) -> Dict:
        return {'filtered': list(self.filtered), 'outlierCount': self.outlier_count}


@dataclass
class PriceDistribution:
    median: float = 0.0
    mode: float = 0
    std_dev: float = 0.0
    mean: float = 0.0

    def to_dict(self) -> Dict:
        return {
            'median': self.median,
            'mode': self.mode,
            'stdDev': self.std_dev,
            'mean': self.mean
        }


def _round_half_up(value: float) -> float:
    """Round to the nearest integer, halves away from zero"""
    return math.copysign(math.floor(abs(value) + 0.5), value)


def round_cents(value: float) -> float:
    return _round_half_up(value * 100) / 100


def round_to_nearest_sensible(price: float) -> float:
    """
    Round a raw price to a natural-looking price point.

    Under $10 rounds to the nearest 50 cents, under $50 to the dollar,
    under $100 to $5, under $500 to $10 and anything above to $25.

    Args:
        price: Raw price

    Returns:
        Rounded price
    """
    step = TOP_BAND_STEP
    for upper, band_step in ROUNDING_BANDS:
        if price < upper:
            step = band_step
            break

    return _round_half_up(price / step) * step


def remove_outliers(prices: Sequence[float]) -> OutlierResult:
    """
    Remove statistical outliers using the IQR method.

    Quartiles are positional (no interpolation). Values within
    [q1 - 1.5*iqr, q3 + 1.5*iqr] are kept in their original order.

    Args:
        prices: List of prices

    Returns:
        OutlierResult with the kept prices and how many were dropped
    """
    prices = list(prices)

    # Not enough data for quartiles
    if len(prices) < 4:
        return OutlierResult(filtered=prices, outlier_count=0)

    multiplier = PRICING_CONFIG['outlier_iqr_multiplier']
    ordered = sorted(prices)
    q1 = ordered[math.floor(len(ordered) * 0.25)]
    q3 = ordered[math.floor(len(ordered) * 0.75)]
    iqr = q3 - q1

    lower_bound = q1 - iqr * multiplier
    upper_bound = q3 + iqr * multiplier

    filtered = [price for price in prices if lower_bound <= price <= upper_bound]
    outlier_count = len(prices) - len(filtered)

    if outlier_count > 0:
        logger.info(f"Removed {outlier_count} price outliers outside ${lower_bound:.2f}-${upper_bound:.2f}")

    return OutlierResult(filtered=filtered, outlier_count=outlier_count)


def analyze_price_distribution(prices: Sequence[float]) -> PriceDistribution:
    """
    Summarize a list of prices.

    The mode is taken over prices rounded to whole dollars; on a tie the
    value seen first wins. Standard deviation is the population figure.

    Args:
        prices: List of sold prices

    Returns:
        PriceDistribution with median, mode, std_dev and mean
    """
    prices = list(prices)
    if not prices:
        return PriceDistribution()

    median = statistics.median(prices)
    mean = statistics.fmean(prices)
    std_dev = statistics.pstdev(prices, mu=mean)

    # dicts keep first-seen order and max() keeps the first maximal key
    frequency = {}
    for price in prices:
        rounded = int(_round_half_up(price))
        frequency[rounded] = frequency.get(rounded, 0) + 1
    mode = max(frequency, key=frequency.get)

    return PriceDistribution(
        median=round_cents(median),
        mode=mode,
        std_dev=round_cents(std_dev),
        mean=round_cents(mean)
    )
