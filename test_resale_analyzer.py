"""Tests for the photo-to-price workflow."""

import json
from unittest.mock import MagicMock

import pytest

from resale_pricing import MarketSnapshot, PriceRecommendation
from resale_pricing.market_research import StaticEstimateProvider
from resale_analyzer import ResaleAnalyzer, generate_data_quality_notes, get_confidence_level


@pytest.fixture
def image_analyzer(sample_item):
    analyzer = MagicMock()
    analyzer.analyze_images.return_value = sample_item
    return analyzer


@pytest.fixture
def provider():
    provider = MagicMock()
    provider.name = 'fake'
    provider.fetch_market_snapshot.return_value = MarketSnapshot(
        sold_count=10, active_count=40, avg_sold_price=100, avg_active_price=80,
        data_source='exact-match', source_note='Based on exact item matches',
    )
    return provider


class TestResaleAnalyzer:

    def test_analyze_compiles_result(self, config, image_analyzer, provider, sample_item):
        analyzer = ResaleAnalyzer(config, image_analyzer=image_analyzer, provider=provider)

        result = analyzer.analyze(['shoe.jpg'], 'excellent')

        image_analyzer.analyze_images.assert_called_once_with(['shoe.jpg'])
        provider.fetch_market_snapshot.assert_called_once_with(sample_item, 'excellent')

        assert result['identification']['brand'] == 'Merrell'
        assert result['identification']['confidenceLevel'] == 'exact'
        assert result['salesData']['soldLast90Days'] == 10
        assert result['salesData']['dataSource'] == 'exact-match'
        assert result['pricing']['suggestedPrice'] == 85
        assert result['pricing']['quickSalePrice'] == 75
        assert result['pricing']['premiumPrice'] == 100
        assert result['pricing']['priceConfidence'] == 'medium'
        assert result['pricing']['priceBreakdown']['competitionRatio'] == 0.25
        assert result['extras']['specialAttributes'] == ['Waterproof']
        assert 'High competition - many active listings compared to sales' in result['extras']['dataQualityNotes']

        # Result must be JSON-serializable
        json.dumps(result)

    def test_missing_condition_defaults_to_good(self, config, image_analyzer, provider, sample_item):
        ResaleAnalyzer(config, image_analyzer=image_analyzer, provider=provider).analyze(['a.png'], None)
        provider.fetch_market_snapshot.assert_called_once_with(sample_item, 'good')

    def test_no_price_when_market_is_empty(self, config, image_analyzer, provider):
        provider.fetch_market_snapshot.return_value = MarketSnapshot(
            sold_count=None, active_count=None, data_source='unavailable',
        )
        result = ResaleAnalyzer(config, image_analyzer=image_analyzer, provider=provider).analyze(['a.png'])

        assert result['pricing']['suggestedPrice'] is None
        assert result['pricing']['priceConfidence'] == 'low'
        assert result['pricing']['priceBreakdown'] is None
        assert result['salesData']['soldLast90Days'] == 'N/A'

    def test_provider_selected_from_config(self, config, image_analyzer):
        config.market_provider = 'static-estimate'
        analyzer = ResaleAnalyzer(config, image_analyzer=image_analyzer)

        assert isinstance(analyzer.provider, StaticEstimateProvider)
        result = analyzer.analyze(['a.png'], 'good')
        assert result['salesData']['dataSource'] == 'estimated'
        assert result['pricing']['suggestedPrice'] == 65


class TestHelpers:

    @pytest.mark.parametrize("confidence, expected", [
        (0.95, 'exact'), (0.85, 'exact'), (0.7, 'similar'), (0.65, 'similar'), (0.3, 'category'),
    ])
    def test_confidence_level(self, confidence, expected):
        assert get_confidence_level(confidence) == expected

    def test_quality_notes_for_thin_similar_data(self):
        snapshot = MarketSnapshot(sold_count=2, active_count=3, data_source='similar-items')
        notes = generate_data_quality_notes(snapshot, PriceRecommendation(outlier_count=2))

        assert notes == [
            'Low sales volume - price estimate may be less reliable',
            'Data based on similar-items items - exact match not found',
            '2 outlier(s) excluded from price calculation',
        ]

    def test_quality_notes_clean_for_strong_exact_data(self):
        snapshot = MarketSnapshot(sold_count=30, active_count=20, data_source='live')
        assert generate_data_quality_notes(snapshot, PriceRecommendation()) == []

    @pytest.mark.parametrize("sold_count, active_count, data_source, expected", [
        (3, 2, 'limited', ['Low sales volume - price estimate may be less reliable']),
        (0, 0, 'no-results', ['Low sales volume - price estimate may be less reliable']),
        (None, None, 'error', []),
        (None, None, 'unavailable', []),
        (8, 4, 'category-estimate', ['Data based on category-estimate items - exact match not found']),
    ])
    def test_match_note_only_for_approximate_sources(self, sold_count, active_count, data_source, expected):
        snapshot = MarketSnapshot(sold_count=sold_count, active_count=active_count, data_source=data_source)
        assert generate_data_quality_notes(snapshot, PriceRecommendation()) == expected

    def test_quality_notes_skip_unavailable_counts(self):
        snapshot = MarketSnapshot(sold_count=None, active_count=None, data_source='estimated')
        assert generate_data_quality_notes(snapshot, PriceRecommendation()) == [
            'Data based on estimated items - exact match not found',
        ]
