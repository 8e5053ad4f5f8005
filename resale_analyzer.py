#!/usr/bin/env python3
"""
Resale analysis workflow.

Orchestrates the complete process for one request:
1. Identify the item from photos
2. Fetch eBay market data for the item and condition
3. Calculate suggested, quick-sale and premium prices
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from resale_pricing import APPROXIMATE_SOURCES, ItemIdentification, MarketSnapshot, PriceRecommendation
from resale_pricing.image_analyzer import ImageAnalyzer
from resale_pricing.market_research import MarketSnapshotProvider, get_snapshot_provider
from resale_pricing.pricing_engine import calculate_suggested_price
from config import Config

logger = logging.getLogger(__name__)


def get_confidence_level(confidence: float) -> str:
    """Bucket the vision model's match confidence"""
    if confidence >= 0.85:
        return 'exact'
    if confidence >= 0.65:
        return 'similar'
    return 'category'


def generate_data_quality_notes(snapshot: MarketSnapshot, pricing: PriceRecommendation) -> List[str]:
    """Warnings shown next to the price so the seller knows how far to trust it"""
    notes = []
    sold_count = snapshot.sold_count
    active_count = snapshot.active_count

    if sold_count is not None and sold_count < 5:
        notes.append("Low sales volume - price estimate may be less reliable")

    if sold_count is not None and active_count is not None and active_count > sold_count * 3:
        notes.append("High competition - many active listings compared to sales")

    if snapshot.data_source in APPROXIMATE_SOURCES:
        notes.append(f"Data based on {snapshot.data_source} items - exact match not found")

    if pricing.outlier_count > 0:
        notes.append(f"{pricing.outlier_count} outlier(s) excluded from price calculation")

    return notes


class ResaleAnalyzer:
    """
    Complete photo-to-price workflow.
    """

    def __init__(self, config: Config = None, image_analyzer: ImageAnalyzer = None,
                 provider: MarketSnapshotProvider = None):
        """
        Initialize the analyzer.

        Args:
            config: Config (loaded from environment if omitted)
            image_analyzer: Vision collaborator (built from config if omitted)
            provider: Market data provider (selected by MARKET_PROVIDER if omitted)
        """
        self.config = config or Config()
        self.image_analyzer = image_analyzer or ImageAnalyzer(self.config)
        self.provider = provider or get_snapshot_provider(self.config)

        logger.info(f"Resale analyzer initialized (market provider: {self.provider.name})")

    def price_item(self, item: ItemIdentification, condition: str = 'good'):
        """Fetch market data for an identified item and price it"""
        snapshot = self.provider.fetch_market_snapshot(item, condition)
        pricing = calculate_suggested_price(snapshot)
        return snapshot, pricing

    def analyze(self, image_paths: List[str], condition: Optional[str] = 'good') -> Dict:
        """
        Identify, research and price the item in the given photos.

        Args:
            image_paths: Uploaded image files
            condition: Seller-reported condition

        Returns:
            JSON-serializable result dictionary
        """
        condition = condition or 'good'
        logger.info(f"Analyzing {len(image_paths)} image(s) with condition: {condition}")

        item = self.image_analyzer.analyze_images(image_paths)
        snapshot, pricing = self.price_item(item, condition)

        return build_result(item, snapshot, pricing)


def build_result(item: ItemIdentification, snapshot: MarketSnapshot, pricing: PriceRecommendation) -> Dict:
    """Compile the response returned to the caller"""
    sales = snapshot.to_dict()

    return {
        'identification': {
            'item': item.item_name,
            'brand': item.brand,
            'model': item.model,
            'category': item.category,
            'matchConfidence': item.confidence,
            'confidenceLevel': get_confidence_level(item.confidence),
            'attributes': dict(item.attributes)
        },
        'salesData': {
            'soldLast90Days': sales['soldCount'],
            'activeListings': sales['activeCount'],
            'dataSource': snapshot.data_source,
            'sourceNote': snapshot.source_note,
            'avgSoldPrice': snapshot.avg_sold_price,
            'avgActivePrice': snapshot.avg_active_price,
            'priceRange': snapshot.price_range.to_dict()
        },
        'pricing': {
            'suggestedPrice': pricing.suggested_price,
            'quickSalePrice': pricing.quick_sale_price,
            'premiumPrice': pricing.premium_price,
            'priceConfidence': pricing.confidence,
            'methodology': list(pricing.methodology),
            'priceBreakdown': pricing.price_breakdown.to_dict() if pricing.price_breakdown else None
        },
        'extras': {
            'discontinued': item.discontinued,
            'manufacturingYear': item.year,
            'specialAttributes': list(item.special_attributes),
            'dataQualityNotes': generate_data_quality_notes(snapshot, pricing)
        },
        'searchTerms': list(item.search_terms),
        'timestamp': datetime.now(timezone.utc).isoformat()
    }
