"""Shared test fixtures for Resale Analyzer."""

from types import SimpleNamespace

import pytest

from config import Config
from resale_pricing import ItemIdentification

CONFIG_ENV_VARS = (
    'OPENAI_API_KEY', 'TAVILY_API_KEY', 'VISION_API_KEY', 'VISION_BASE_URL', 'VISION_MODEL',
    'SEARCH_MODEL', 'MARKET_PROVIDER', 'MIN_SOLD_SAMPLES', 'MAX_SEARCH_RESULTS',
    'MAX_IMAGES', 'MAX_IMAGE_SIZE_MB', 'LOG_LEVEL', 'LOG_FILE',
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove configuration from the environment so tests start from defaults."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('LOG_FILE', str(tmp_path / 'test.log'))
    return monkeypatch


@pytest.fixture
def config(clean_env) -> Config:
    """Config with fake credentials for every collaborator."""
    clean_env.setenv('OPENAI_API_KEY', 'sk-test')
    clean_env.setenv('TAVILY_API_KEY', 'tvly-test')
    return Config()


@pytest.fixture
def sample_item() -> ItemIdentification:
    return ItemIdentification(
        item_name='Merrell Men Moab 3 Mid Wide Width Hiking Shoes Earth Brown',
        brand='Merrell',
        model='Moab 3 Mid',
        category='Shoes',
        subcategory='Hiking Boots',
        confidence=0.9,
        attributes={'gender': 'Men', 'width': 'Wide', 'color': 'Earth'},
        special_attributes=['Waterproof'],
    )


def make_completion(content):
    """Minimal stand-in for an OpenAI chat completion response."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def completion():
    return make_completion
