#!/usr/bin/env python3
"""
Configuration management for Resale Analyzer
"""

import os
from dotenv import load_dotenv
from typing import Dict
import json

# Load environment variables from .env file
load_dotenv()

PLACEHOLDER_KEYS = ('', 'your_openai_api_key_here', 'your_tavily_api_key_here',
                    'your_vision_api_key_here')


class Config:
    """Configuration manager for Resale Analyzer"""

    def __init__(self):
        # API credentials
        self.openai_api_key = os.getenv('OPENAI_API_KEY', '')
        self.tavily_api_key = os.getenv('TAVILY_API_KEY', '')

        # Vision model (any OpenAI-compatible endpoint, e.g. Groq)
        self.vision_api_key = os.getenv('VISION_API_KEY', '') or self.openai_api_key
        self.vision_base_url = os.getenv('VISION_BASE_URL', '') or None
        self.vision_model = os.getenv('VISION_MODEL', 'gpt-4o')

        # Market search
        self.search_model = os.getenv('SEARCH_MODEL', 'gpt-4o-mini')
        self.market_provider = os.getenv('MARKET_PROVIDER', 'live-search').lower()
        self.min_sold_samples = int(os.getenv('MIN_SOLD_SAMPLES', '3'))
        self.max_search_results = int(os.getenv('MAX_SEARCH_RESULTS', '10'))

        # Upload limits
        self.max_images = int(os.getenv('MAX_IMAGES', '5'))
        self.max_image_size_mb = float(os.getenv('MAX_IMAGE_SIZE_MB', '10.0'))

        # Logging Configuration
        self.log_level = os.getenv('LOG_LEVEL', 'INFO')
        self.log_file = os.getenv('LOG_FILE', 'resale_analyzer.log')

    @property
    def has_live_search(self) -> bool:
        """True when both web search and LLM extraction credentials are set"""
        return (self.tavily_api_key not in PLACEHOLDER_KEYS
                and self.openai_api_key not in PLACEHOLDER_KEYS)

    @property
    def has_vision(self) -> bool:
        return self.vision_api_key not in PLACEHOLDER_KEYS

    def validate(self) -> bool:
        """Validate that required configuration is present"""
        missing_fields = []

        if not self.has_vision:
            missing_fields.append('vision_api_key')

        if self.market_provider == 'live-search' and not self.has_live_search:
            missing_fields.extend(
                name for name in ('openai_api_key', 'tavily_api_key')
                if getattr(self, name) in PLACEHOLDER_KEYS
            )

        if self.market_provider not in MARKET_PROVIDERS:
            missing_fields.append('market_provider')

        if missing_fields:
            print(f"Missing or invalid configuration: {', '.join(missing_fields)}")
            return False

        return True

    def to_dict(self) -> Dict:
        """Convert configuration to dictionary (excluding secrets)"""
        return {
            'vision_model': self.vision_model,
            'vision_base_url': self.vision_base_url,
            'search_model': self.search_model,
            'market_provider': self.market_provider,
            'min_sold_samples': self.min_sold_samples,
            'max_search_results': self.max_search_results,
            'max_images': self.max_images,
            'max_image_size_mb': self.max_image_size_mb,
            'log_level': self.log_level,
            'log_file': self.log_file,
            'live_search_available': self.has_live_search,
            'vision_available': self.has_vision
        }


MARKET_PROVIDERS = ('live-search', 'static-estimate')

# Search terms appended to the marketplace query for each condition
CONDITION_TERMS = {
    'new': 'new',
    'open-box': 'open box',
    'like-new': 'like new',
    'used': 'used pre-owned',
    'good': 'good condition',
    'for-parts': 'for parts not working'
}

# Free-text condition inputs and their canonical CONDITION_TERMS key
CONDITION_ALIASES = {
    'brand new': 'new',
    'sealed': 'new',
    'unopened': 'new',

    'open box': 'open-box',
    'openbox': 'open-box',
    'new other': 'open-box',

    'like new': 'like-new',
    'likenew': 'like-new',
    'mint': 'like-new',
    'near mint': 'like-new',
    'excellent': 'like-new',

    'very good': 'good',
    'good condition': 'good',

    'pre-owned': 'used',
    'pre owned': 'used',
    'fair': 'used',
    'acceptable': 'used',
    'heavy wear': 'used',

    'poor': 'for-parts',
    'for parts': 'for-parts',
    'parts': 'for-parts',
    'broken': 'for-parts',
    'not working': 'for-parts',
    'salvage': 'for-parts'
}

# Pricing Configuration
PRICING_CONFIG = {
    'sold_weight': 0.7,                   # Share of avg sold price in blended base
    'active_weight': 0.3,                 # Share of avg active price in blended base
    'active_only_multiplier': 0.90,       # Asking prices discounted 10% when no sales
    'high_competition_ratio': 0.3,        # sold/active below this = oversupply
    'high_competition_adjustment': 0.92,  # -8%
    'strong_demand_ratio': 2.0,           # sold/active above this = undersupply
    'strong_demand_adjustment': 1.05,     # +5%
    'quick_sale_multiplier': 0.85,
    'premium_multiplier': 1.15,
    'high_confidence_min_sold': 20,
    'low_confidence_min_sold': 5,
    'outlier_iqr_multiplier': 1.5
}

# Market search Configuration
SEARCH_CONFIG = {
    'min_active_samples': 5,   # One sale plus this many active listings is enough data
    'search_depth': 'advanced',
    'include_domains': ['ebay.com'],
    'min_query_length': 10,
    'min_broad_query_length': 5,
    'max_item_name_query_length': 80,
    'item_name_query_threshold': 25,
    'max_special_attributes': 2
}

# Static estimates are quoted for good used items; scale by condition
STATIC_CONDITION_MULTIPLIERS = {
    'new': 1.40,
    'open-box': 1.25,
    'like-new': 1.15,
    'good': 1.00,
    'used': 0.90,
    'for-parts': 0.40
}

# Typical resale prices per category, used by the static-estimate provider
CATEGORY_PRICE_ESTIMATES = {
    'electronics': {'low': 40.0, 'high': 400.0, 'avg': 150.0},
    'cell phones': {'low': 60.0, 'high': 600.0, 'avg': 220.0},
    'computers': {'low': 100.0, 'high': 900.0, 'avg': 350.0},
    'video games': {'low': 5.0, 'high': 80.0, 'avg': 25.0},
    'shoes': {'low': 20.0, 'high': 200.0, 'avg': 65.0},
    'clothing': {'low': 8.0, 'high': 120.0, 'avg': 30.0},
    'handbags': {'low': 25.0, 'high': 600.0, 'avg': 120.0},
    'jewelry': {'low': 15.0, 'high': 500.0, 'avg': 80.0},
    'watches': {'low': 25.0, 'high': 1000.0, 'avg': 150.0},
    'collectibles': {'low': 5.0, 'high': 300.0, 'avg': 40.0},
    'toys': {'low': 5.0, 'high': 150.0, 'avg': 30.0},
    'books': {'low': 3.0, 'high': 40.0, 'avg': 10.0},
    'sporting goods': {'low': 15.0, 'high': 300.0, 'avg': 70.0},
    'tools': {'low': 15.0, 'high': 300.0, 'avg': 60.0},
    'home & garden': {'low': 10.0, 'high': 250.0, 'avg': 45.0},
    'general': {'low': 5.0, 'high': 100.0, 'avg': 25.0}
}


def create_sample_env(path: str = '.env') -> bool:
    """Create a sample .env file with required variables"""
    env_content = """# OpenAI (search extraction, default vision model)
OPENAI_API_KEY=your_openai_api_key_here

# Tavily web search
TAVILY_API_KEY=your_tavily_api_key_here

# Vision model - leave blank to reuse OPENAI_API_KEY
# For Groq: VISION_BASE_URL=https://api.groq.com/openai/v1
VISION_API_KEY=
VISION_BASE_URL=
VISION_MODEL=gpt-4o

# Market data: live-search or static-estimate
MARKET_PROVIDER=live-search
SEARCH_MODEL=gpt-4o-mini
MIN_SOLD_SAMPLES=3
MAX_SEARCH_RESULTS=10

# Upload limits
MAX_IMAGES=5
MAX_IMAGE_SIZE_MB=10.0

# Logging
LOG_LEVEL=INFO
LOG_FILE=resale_analyzer.log
"""

    if os.path.exists(path):
        print(f"{path} file already exists.")
        return False

    with open(path, 'w') as f:
        f.write(env_content)
    print(f"Sample {path} file created. Please update with your actual credentials.")
    return True


if __name__ == "__main__":
    # Create sample .env file
    create_sample_env()

    # Test configuration
    config = Config()
    print("Configuration loaded:")
    print(json.dumps(config.to_dict(), indent=2))

    if config.validate():
        print("✅ Configuration is valid")
    else:
        print("❌ Configuration validation failed")
