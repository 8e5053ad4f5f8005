#!/usr/bin/env python3
"""
Resale Pricing Module - Data Models

Defines core data structures for item identification, market snapshots and pricing recommendations.
Field names are snake_case in Python; to_dict() emits the camelCase names used in JSON responses.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# Data source tags, from closest to loosest match
DATA_SOURCE_LIVE = 'live'
DATA_SOURCE_EXACT = 'exact-match'
DATA_SOURCE_LIMITED = 'limited'
DATA_SOURCE_SIMILAR = 'similar-items'
DATA_SOURCE_CATEGORY = 'category-estimate'
DATA_SOURCE_ESTIMATED = 'estimated'
DATA_SOURCE_NO_RESULTS = 'no-results'
DATA_SOURCE_ERROR = 'error'
DATA_SOURCE_UNAVAILABLE = 'unavailable'

DATA_SOURCES = (
    DATA_SOURCE_LIVE,
    DATA_SOURCE_EXACT,
    DATA_SOURCE_LIMITED,
    DATA_SOURCE_SIMILAR,
    DATA_SOURCE_CATEGORY,
    DATA_SOURCE_ESTIMATED,
    DATA_SOURCE_NO_RESULTS,
    DATA_SOURCE_ERROR,
    DATA_SOURCE_UNAVAILABLE
)

TOP_TIER_SOURCES = frozenset({DATA_SOURCE_EXACT, DATA_SOURCE_LIVE})
BOTTOM_TIER_SOURCES = frozenset({DATA_SOURCE_CATEGORY, DATA_SOURCE_ESTIMATED})

# Sources priced from items other than the one identified
APPROXIMATE_SOURCES = frozenset({DATA_SOURCE_SIMILAR, DATA_SOURCE_CATEGORY, DATA_SOURCE_ESTIMATED})

CONFIDENCE_LOW = 'low'
CONFIDENCE_MEDIUM = 'medium'
CONFIDENCE_HIGH = 'high'


def _string_list(value: Any) -> List[str]:
    """Model-reported list field as a list of non-empty strings"""
    if not isinstance(value, (list, tuple)):
        return []
    return [str(entry) for entry in value if entry not in (None, '')]


@dataclass
class ItemIdentification:
    """Structured identification of the photographed item"""
    item_name: str
    brand: str
    category: str
    model: Optional[str] = None
    subcategory: Optional[str] = None
    confidence: float = 0.5  # 0.0-1.0
    attributes: Dict[str, Any] = field(default_factory=dict)
    special_attributes: List[str] = field(default_factory=list)

    # Extra details reported by the vision model
    search_terms: List[str] = field(default_factory=list)
    discontinued: Optional[Any] = None
    year: Optional[Any] = None
    visible_text: List[str] = field(default_factory=list)
    reasoning: str = ""

    def __post_init__(self):
        self.confidence = min(1.0, max(0.0, float(self.confidence)))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ItemIdentification':
        """Build from raw vision model JSON, applying defaults for missing fields"""
        item_name = data.get('itemName') or 'Unknown Item'
        confidence = data.get('confidence') or 0.5

        try:
            confidence = float(confidence)
        except (TypeError, ValueError):
            confidence = 0.5

        attributes = data.get('attributes')
        if not isinstance(attributes, dict):
            attributes = {}

        return cls(
            item_name=item_name,
            brand=data.get('brand') or 'Unknown',
            model=data.get('model') or None,
            category=data.get('category') or 'General',
            subcategory=data.get('subcategory') or None,
            confidence=confidence,
            attributes={str(key): str(value) for key, value in attributes.items() if value is not None},
            special_attributes=_string_list(data.get('specialAttributes')),
            search_terms=_string_list(data.get('searchTerms')) or [item_name],
            discontinued=data.get('discontinued'),
            year=data.get('year'),
            visible_text=_string_list(data.get('visibleText')),
            reasoning=data.get('identificationReasoning') or ''
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'itemName': self.item_name,
            'brand': self.brand,
            'model': self.model,
            'category': self.category,
            'subcategory': self.subcategory,
            'confidence': self.confidence,
            'attributes': dict(self.attributes),
            'specialAttributes': list(self.special_attributes),
            'searchTerms': list(self.search_terms),
            'discontinued': self.discontinued,
            'year': self.year,
            'visibleText': list(self.visible_text),
            'reasoning': self.reasoning
        }

    def __repr__(self):
        return f"ItemIdentification({self.brand} {self.model or self.item_name}, confidence={self.confidence:.2f})"


@dataclass(frozen=True)
class PriceRange:
    low: float = 0.0
    high: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {'low': self.low, 'high': self.high}


@dataclass(frozen=True)
class MarketSnapshot:
    """Aggregated marketplace data for one analysis request"""
    sold_count: Optional[int] = 0      # None when the count is unavailable
    active_count: Optional[int] = 0    # None when the count is unavailable
    avg_sold_price: float = 0.0        # 0 means no data
    avg_active_price: float = 0.0      # 0 means no data
    price_range: PriceRange = field(default_factory=PriceRange)
    data_source: str = DATA_SOURCE_NO_RESULTS
    source_note: Optional[str] = None

    # Provenance
    search_query: str = ""
    original_query: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'soldCount': self.sold_count if self.sold_count is not None else 'N/A',
            'activeCount': self.active_count if self.active_count is not None else 'N/A',
            'avgSoldPrice': self.avg_sold_price,
            'avgActivePrice': self.avg_active_price,
            'priceRange': self.price_range.to_dict(),
            'dataSource': self.data_source,
            'sourceNote': self.source_note,
            'searchQuery': self.search_query,
            'originalQuery': self.original_query,
            'error': self.error
        }

    def __repr__(self):
        return (f"MarketSnapshot(sold={self.sold_count}, active={self.active_count}, "
                f"avg_sold=${self.avg_sold_price:.2f}, avg_active=${self.avg_active_price:.2f}, "
                f"source={self.data_source})")


@dataclass(frozen=True)
class PriceBreakdown:
    """Intermediate values of the price calculation, for transparency"""
    avg_sold_contribution: float
    avg_active_contribution: float
    market_adjustment: float
    competition_ratio: float

    def to_dict(self) -> Dict[str, float]:
        return {
            'avgSoldContribution': self.avg_sold_contribution,
            'avgActiveContribution': self.avg_active_contribution,
            'marketAdjustment': self.market_adjustment,
            'competitionRatio': self.competition_ratio
        }


@dataclass
class PriceRecommendation:
    """Final pricing recommendation with all price points"""
    suggested_price: Optional[float] = None
    quick_sale_price: Optional[float] = None
    premium_price: Optional[float] = None

    confidence: str = CONFIDENCE_LOW  # low, medium or high
    methodology: List[str] = field(default_factory=list)
    outlier_count: int = 0
    price_breakdown: Optional[PriceBreakdown] = None

    @property
    def has_price(self) -> bool:
        return self.suggested_price is not None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'suggestedPrice': self.suggested_price,
            'quickSalePrice': self.quick_sale_price,
            'premiumPrice': self.premium_price,
            'confidence': self.confidence,
            'methodology': list(self.methodology),
            'outlierCount': self.outlier_count
        }
        if self.price_breakdown is not None:
            result['priceBreakdown'] = self.price_breakdown.to_dict()
        return result

    def __repr__(self):
        if not self.has_price:
            return "PriceRecommendation(no price, confidence=low)"
        return (f"PriceRecommendation(suggested=${self.suggested_price:.2f}, "
                f"quick=${self.quick_sale_price:.2f}, premium=${self.premium_price:.2f}, "
                f"confidence={self.confidence})")


__all__ = [
    'ItemIdentification',
    'PriceRange',
    'MarketSnapshot',
    'PriceBreakdown',
    'PriceRecommendation',
    'DATA_SOURCES',
    'TOP_TIER_SOURCES',
    'BOTTOM_TIER_SOURCES',
    'APPROXIMATE_SOURCES'
]
