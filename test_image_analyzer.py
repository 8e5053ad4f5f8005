"""Tests for vision-based item identification."""

import base64
import json
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from config import Config
from resale_pricing import ItemIdentification
from resale_pricing.exceptions import (
    ConfigurationError,
    EmptyResponseError,
    InvalidImageError,
    ParseError,
    RateLimitError,
    UpstreamError,
)
from resale_pricing.image_analyzer import ImageAnalyzer
from resale_pricing.market_research import build_search_query

VISION_RESPONSE = {
    'itemName': 'Merrell Men Moab 3 Mid Wide Width Hiking Shoes Earth Brown',
    'brand': 'Merrell',
    'model': 'Moab 3 Mid',
    'category': 'Shoes',
    'subcategory': 'Hiking Boots',
    'confidence': 0.92,
    'searchTerms': ['merrell moab 3 mid wide'],
    'attributes': {'gender': 'Men', 'width': 'Wide'},
    'specialAttributes': ['Waterproof'],
    'discontinued': False,
    'year': 2022,
    'visibleText': ['MERRELL', 'MOAB 3'],
    'identificationReasoning': 'Logo and tongue label',
}

REQUEST = httpx.Request('POST', 'https://api.openai.com/v1/chat/completions')


@pytest.fixture
def photo(tmp_path):
    path = tmp_path / 'shoe.jpg'
    path.write_bytes(b'\xff\xd8\xff fake jpeg')
    return str(path)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def analyzer(config, client):
    return ImageAnalyzer(config, client=client)


class TestAnalyzeImages:

    def test_parses_identification(self, analyzer, client, photo, completion):
        client.chat.completions.create.return_value = completion(json.dumps(VISION_RESPONSE))

        item = analyzer.analyze_images([photo])

        assert item.brand == 'Merrell'
        assert item.model == 'Moab 3 Mid'
        assert item.confidence == 0.92
        assert item.special_attributes == ['Waterproof']
        assert item.reasoning == 'Logo and tongue label'

    def test_sends_images_as_data_urls(self, analyzer, client, photo, completion):
        client.chat.completions.create.return_value = completion(json.dumps(VISION_RESPONSE))

        analyzer.analyze_images([photo])

        content = client.chat.completions.create.call_args.kwargs['messages'][0]['content']
        assert content[0]['type'] == 'text'
        image_url = content[1]['image_url']['url']
        assert image_url.startswith('data:image/jpeg;base64,')
        assert base64.b64decode(image_url.split(',', 1)[1]) == b'\xff\xd8\xff fake jpeg'

    def test_strips_code_fences(self, analyzer, client, photo, completion):
        client.chat.completions.create.return_value = completion(
            '```json\n' + json.dumps(VISION_RESPONSE) + '\n```'
        )
        assert analyzer.analyze_images([photo]).brand == 'Merrell'

    def test_applies_defaults(self, analyzer, client, photo, completion):
        client.chat.completions.create.return_value = completion('{"confidence": 7}')

        item = analyzer.analyze_images([photo])

        assert item.item_name == 'Unknown Item'
        assert item.brand == 'Unknown'
        assert item.category == 'General'
        assert item.model is None
        assert item.confidence == 1.0
        assert item.search_terms == ['Unknown Item']

    def test_malformed_fields_are_coerced(self, analyzer, client, photo, completion):
        client.chat.completions.create.return_value = completion(json.dumps({
            'itemName': 'Nike Air Max 90 Infrared',
            'brand': 'Nike',
            'attributes': ['Men', 'size 10'],
            'specialAttributes': 'OG',
            'searchTerms': None,
            'visibleText': [None, 'NIKE', 90],
        }))

        item = analyzer.analyze_images([photo])

        assert item.attributes == {}
        assert item.special_attributes == []
        assert item.search_terms == ['Nike Air Max 90 Infrared']
        assert item.visible_text == ['NIKE', '90']
        assert build_search_query(item) == 'Nike Air Max 90 Infrared'

    def test_empty_response(self, analyzer, client, photo, completion):
        client.chat.completions.create.return_value = completion('   ')
        with pytest.raises(EmptyResponseError):
            analyzer.analyze_images([photo])

    def test_invalid_json(self, analyzer, client, photo, completion):
        client.chat.completions.create.return_value = completion('This looks like a shoe.')
        with pytest.raises(ParseError):
            analyzer.analyze_images([photo])

    def test_rate_limit(self, analyzer, client, photo):
        client.chat.completions.create.side_effect = openai.RateLimitError(
            'Too many requests', response=httpx.Response(429, request=REQUEST), body=None
        )
        with pytest.raises(RateLimitError):
            analyzer.analyze_images([photo])

    def test_connection_failure(self, analyzer, client, photo):
        client.chat.completions.create.side_effect = openai.APIConnectionError(request=REQUEST)
        with pytest.raises(UpstreamError):
            analyzer.analyze_images([photo])

    def test_missing_credentials(self, clean_env, photo):
        with pytest.raises(ConfigurationError):
            ImageAnalyzer(Config()).analyze_images([photo])


class TestValidateImages:

    def test_no_images(self, analyzer):
        with pytest.raises(InvalidImageError, match='No images'):
            analyzer.validate_images([])

    def test_wrong_extension(self, analyzer, tmp_path):
        path = tmp_path / 'notes.txt'
        path.write_text('hello')
        with pytest.raises(InvalidImageError, match='Only image files'):
            analyzer.validate_images([str(path)])

    def test_missing_file(self, analyzer, tmp_path):
        with pytest.raises(InvalidImageError, match='not found'):
            analyzer.validate_images([str(tmp_path / 'gone.png')])

    def test_too_many(self, analyzer, photo):
        with pytest.raises(InvalidImageError, match='Too many'):
            analyzer.validate_images([photo] * 6)

    def test_too_large(self, analyzer, photo):
        analyzer.config.max_image_size_mb = 0.000001
        with pytest.raises(InvalidImageError, match='too large'):
            analyzer.validate_images([photo])


class TestItemIdentification:

    def test_confidence_clamped(self):
        assert ItemIdentification(item_name='x', brand='y', category='z', confidence=-2).confidence == 0.0

    def test_round_trip_field_names(self):
        item = ItemIdentification.from_dict(VISION_RESPONSE)
        data = item.to_dict()
        assert data['itemName'] == VISION_RESPONSE['itemName']
        assert data['specialAttributes'] == ['Waterproof']
        assert data['subcategory'] == 'Hiking Boots'
