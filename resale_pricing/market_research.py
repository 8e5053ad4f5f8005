#!/usr/bin/env python3
"""
AI-Powered Market Research

Produces a MarketSnapshot for an identified item. Two providers share one interface:

- LiveSearchProvider: Tavily web search of eBay, summarised by OpenAI into sold/active stats.
  Retries with broader queries (brand + model, then brand + category) when data is thin.
- StaticEstimateProvider: typical category resale prices, no network access.
"""

import json
import logging
import math
import re
from typing import Any, Dict, Optional

import openai
from openai import OpenAI
from tavily import TavilyClient

from resale_pricing import (
    DATA_SOURCE_CATEGORY,
    DATA_SOURCE_ERROR,
    DATA_SOURCE_ESTIMATED,
    DATA_SOURCE_EXACT,
    DATA_SOURCE_LIMITED,
    DATA_SOURCE_LIVE,
    DATA_SOURCE_NO_RESULTS,
    DATA_SOURCE_SIMILAR,
    DATA_SOURCE_UNAVAILABLE,
    ItemIdentification,
    MarketSnapshot,
    PriceRange,
)
from resale_pricing.exceptions import ConfigurationError, RateLimitError, UpstreamError
from config import (
    CATEGORY_PRICE_ESTIMATES,
    CONDITION_ALIASES,
    CONDITION_TERMS,
    SEARCH_CONFIG,
    STATIC_CONDITION_MULTIPLIERS,
    Config,
)

logger = logging.getLogger(__name__)

# Data source tag for each broadening level
BROADENING_LEVELS = (
    (1, DATA_SOURCE_SIMILAR),
    (2, DATA_SOURCE_CATEGORY),
)


def normalize_condition(condition: Optional[str]) -> Optional[str]:
    """Map free-text condition to a CONDITION_TERMS key, None if unrecognised"""
    if not condition:
        return None

    key = ' '.join(condition.lower().replace('_', ' ').split())
    if key.replace(' ', '-') in CONDITION_TERMS:
        return key.replace(' ', '-')

    return CONDITION_ALIASES.get(key)


def _clean_number(value: Any) -> float:
    """Parse a model-reported number; anything unusable, NaN or infinite counts as 0"""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace("$", "").replace(",", "")
        if not text:
            return 0.0
        try:
            number = float(text.split()[0])
        except ValueError:
            return 0.0
    return number if math.isfinite(number) else 0.0


def _section(result: Optional[Dict], key: str) -> Dict:
    """The 'sold' or 'active' block of a search result, empty unless it is a dict"""
    if not isinstance(result, dict):
        return {}
    section = result.get(key)
    return section if isinstance(section, dict) else {}


def _sold_count(result: Optional[Dict]) -> int:
    return max(0, int(_clean_number(_section(result, 'sold').get('count'))))


def _active_count(result: Optional[Dict]) -> int:
    return max(0, int(_clean_number(_section(result, 'active').get('count'))))


def has_enough_data(result: Optional[Dict], min_sold: int = 3) -> bool:
    """Enough sold listings, or at least one sale backed by several active listings"""
    if not result:
        return False

    sold_count = _sold_count(result)
    active_count = _active_count(result)
    return sold_count >= min_sold or (sold_count >= 1 and active_count >= SEARCH_CONFIG['min_active_samples'])


def extract_json(text: Optional[str]) -> Optional[Dict]:
    """Parse JSON from model output, tolerating code fences and surrounding prose"""
    if not text:
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    cleaned = re.sub(r'```json\s*', '', text, flags=re.IGNORECASE).replace('```', '')
    match = re.search(r'\{.*\}', cleaned, re.DOTALL)
    if not match:
        return None

    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        return None


def build_search_query(item: ItemIdentification) -> str:
    """
    Build the most specific marketplace query for an item.

    Args:
        item: ItemIdentification from the vision model

    Returns:
        Search query string
    """
    attrs = item.attributes or {}
    item_name = item.item_name or ''

    # A long item name that already includes the brand is usually a good listing title
    if (len(item_name) > SEARCH_CONFIG['item_name_query_threshold'] and item.brand
            and item.brand.lower() in item_name.lower()):
        clean_name = ' '.join(item_name.split())
        if len(clean_name) < SEARCH_CONFIG['max_item_name_query_length']:
            logger.debug(f"Using item name for search: {clean_name}")
            return clean_name

    parts = []

    if item.brand and item.brand != 'Unknown':
        parts.append(item.brand)

    gender = attrs.get('gender')
    if gender and gender != 'Unknown':
        parts.append(gender)

    if item.model:
        parts.append(item.model)

    width = attrs.get('width')
    if width and str(width).lower() != 'regular':
        parts.append(str(width))

    for attr in (item.special_attributes or [])[:SEARCH_CONFIG['max_special_attributes']]:
        if attr.lower() not in ' '.join(parts).lower():
            parts.append(attr)

    query = ' '.join(parts).strip()

    if len(query) < SEARCH_CONFIG['min_query_length'] and item_name:
        return item_name[:SEARCH_CONFIG['max_item_name_query_length']]

    logger.debug(f"Built search query: {query}")
    return query or item.category or 'item'


def build_broad_search_query(item: ItemIdentification, level: int = 1) -> Optional[str]:
    """
    Build a broader query by dropping specifics.

    Level 1 is brand + model, level 2 brand + category, level 3 category + gender.
    Returns None when the query would be too short to be useful.
    """
    attrs = item.attributes or {}
    parts = []
    has_brand = item.brand and item.brand != 'Unknown'

    if level == 1:
        if has_brand:
            parts.append(item.brand)
        if item.model:
            parts.append(item.model)
    elif level == 2:
        if has_brand:
            parts.append(item.brand)
        if item.category:
            parts.append(item.category)
    else:
        if item.category:
            parts.append(item.category)
        gender = attrs.get('gender')
        if gender and gender != 'Unknown':
            parts.append(gender)

    query = ' '.join(parts).strip()
    return query if len(query) >= SEARCH_CONFIG['min_broad_query_length'] else None


def get_source_note(data_source: str, used_query: str) -> Optional[str]:
    """Human-readable explanation of where the numbers came from"""
    if data_source in (DATA_SOURCE_LIVE, DATA_SOURCE_EXACT):
        return "Based on exact item matches"
    if data_source == DATA_SOURCE_LIMITED:
        return "Limited listings found - price may vary"
    if data_source == DATA_SOURCE_SIMILAR:
        return f'Based on similar items: "{used_query}"'
    if data_source == DATA_SOURCE_CATEGORY:
        return f'Estimated from category: "{used_query}"'
    return None


class MarketSnapshotProvider:
    """Interface for market data sources"""

    name = 'base'

    @property
    def available(self) -> bool:
        raise NotImplementedError

    def fetch_market_snapshot(self, item: ItemIdentification, condition: str = 'good') -> MarketSnapshot:
        raise NotImplementedError


class LiveSearchProvider(MarketSnapshotProvider):
    """Live eBay comps via Tavily web search + OpenAI extraction"""

    name = 'live-search'

    def __init__(self, config: Config, tavily_client: TavilyClient = None, openai_client: OpenAI = None):
        self.config = config
        self.min_sold = config.min_sold_samples
        self.tavily = tavily_client
        self.openai = openai_client

        if config.has_live_search:
            if self.tavily is None:
                self.tavily = TavilyClient(api_key=config.tavily_api_key)
            if self.openai is None:
                self.openai = OpenAI(api_key=config.openai_api_key)
            logger.info("Live market search configured")
        else:
            logger.warning("TAVILY_API_KEY/OPENAI_API_KEY not set - live market search unavailable")

    @property
    def available(self) -> bool:
        return self.tavily is not None and self.openai is not None

    def search_marketplace(self, search_query: str) -> Optional[Dict]:
        """
        Search eBay listings and summarise them into sold/active stats.

        Args:
            search_query: Marketplace query

        Returns:
            Dict shaped {"sold": {...}, "active": {...}} or None if nothing usable was found

        Raises:
            RateLimitError, UpstreamError
        """
        logger.info(f"Searching web for eBay comps: {search_query}")

        try:
            search_results = self.tavily.search(
                query=f"{search_query} ebay sold listings price",
                search_depth=SEARCH_CONFIG['search_depth'],
                max_results=self.config.max_search_results,
                include_domains=SEARCH_CONFIG['include_domains'],
            )
        except Exception as exc:
            raise UpstreamError(f"Web search failed: {exc}") from exc

        results = search_results.get('results', []) if search_results else []
        logger.info(f"Tavily found {len(results)} search results")

        if not results:
            return None

        return self._summarize_results(search_query, results)

    def _summarize_results(self, search_query: str, results: list) -> Optional[Dict]:
        """Use OpenAI to turn raw search results into sold/active statistics"""
        context = "eBay Search Results:\n\n"
        for idx, result in enumerate(results[:self.config.max_search_results], 1):
            context += f"{idx}. {result.get('title', 'No title')}\n"
            context += f"   URL: {result.get('url', 'No URL')}\n"
            context += f"   Content: {(result.get('content') or 'No content')[:400]}...\n\n"

        prompt = f"""
Analyze these eBay search results for "{search_query}".

{context}

Find:
1. SOLD listings - what prices did this item actually sell for?
2. ACTIVE listings - what are current asking prices?

Return ONLY valid JSON in this exact format:
{{"sold":{{"count":NUMBER,"low":PRICE,"high":PRICE,"avg":PRICE}},"active":{{"count":NUMBER,"low":PRICE,"high":PRICE,"avg":PRICE}}}}

RULES:
- Use REAL numbers from the search results
- Prices in USD without $ symbol
- If you find 0 sold listings, set sold count to 0
- DO NOT use placeholder or example numbers
"""

        try:
            response = self.openai.chat.completions.create(
                model=self.config.search_model,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except openai.RateLimitError as exc:
            raise RateLimitError(f"Market search rate limited: {exc}") from exc
        except openai.APIError as exc:
            raise UpstreamError(f"Market search extraction failed: {exc}") from exc

        text = response.choices[0].message.content if response.choices else None
        data = extract_json(text)

        if not isinstance(data, dict):
            logger.warning(f"No JSON data extracted from response: {(text or '')[:200]}")
            return None

        malformed = [key for key in ('sold', 'active')
                     if data.get(key) is not None and not isinstance(data[key], dict)]
        if malformed:
            logger.warning(f"Ignoring market search result with malformed {', '.join(malformed)}: {data}")
            return None

        logger.debug(f"Market search result: {data}")
        return data

    def fetch_market_snapshot(self, item: ItemIdentification, condition: str = 'good') -> MarketSnapshot:
        """
        Fetch eBay data, falling back from specific to broader queries.

        Args:
            item: ItemIdentification from the vision model
            condition: Item condition (free text)

        Returns:
            MarketSnapshot; failures are reported through data_source rather than raised
        """
        search_query = build_search_query(item)

        condition_key = normalize_condition(condition)
        condition_term = CONDITION_TERMS.get(condition_key, '') if condition_key else ''
        if condition_term:
            search_query = f"{search_query} {condition_term}"

        if not self.available:
            return MarketSnapshot(
                sold_count=None,
                active_count=None,
                data_source=DATA_SOURCE_UNAVAILABLE,
                search_query=search_query,
                error="TAVILY_API_KEY and OPENAI_API_KEY required for real-time eBay data"
            )

        try:
            return self._search_with_fallback(item, search_query)
        except UpstreamError as exc:
            logger.error(f"eBay search failed: {exc}")
            return MarketSnapshot(
                sold_count=None,
                active_count=None,
                data_source=DATA_SOURCE_ERROR,
                search_query=search_query,
                error=str(exc)
            )

    def _search_with_fallback(self, item: ItemIdentification, search_query: str) -> MarketSnapshot:
        logger.info(f"Step 1: Specific search with condition: {search_query}")
        result = self.search_marketplace(search_query)
        data_source = DATA_SOURCE_EXACT
        used_query = search_query

        for level, level_source in BROADENING_LEVELS:
            if has_enough_data(result, self.min_sold):
                break

            broad_query = build_broad_search_query(item, level)
            if not broad_query or broad_query == used_query:
                continue

            logger.info(f"Step {level + 1}: Broader search ({level_source}): {broad_query}")
            broad_result = self.search_marketplace(broad_query)

            # Take the broader result if it is sufficient or has more sales
            if has_enough_data(broad_result, self.min_sold) or (
                    broad_result and (not result or _sold_count(broad_result) > _sold_count(result))):
                result = broad_result
                data_source = level_source
                used_query = broad_query

        if not (_section(result, 'sold') or _section(result, 'active')):
            logger.warning(f"No eBay listings found for {search_query}")
            return MarketSnapshot(
                sold_count=0,
                active_count=0,
                data_source=DATA_SOURCE_NO_RESULTS,
                source_note="No eBay listings found for this item",
                search_query=search_query
            )

        return self._build_snapshot(result, data_source, used_query, search_query)

    def _build_snapshot(self, result: Dict, data_source: str, used_query: str, search_query: str) -> MarketSnapshot:
        sold = _section(result, 'sold')
        active = _section(result, 'active')

        sold_count = _sold_count(result)
        active_count = _active_count(result)
        avg_sold = _clean_number(sold.get('avg'))
        avg_active = _clean_number(active.get('avg'))

        if data_source == DATA_SOURCE_EXACT and sold_count >= 5:
            data_source = DATA_SOURCE_LIVE
        elif data_source == DATA_SOURCE_EXACT and sold_count > 0:
            data_source = DATA_SOURCE_LIMITED

        lows = [low for low in (_clean_number(sold.get('low')), _clean_number(active.get('low'))) if low > 0]
        high = max(_clean_number(sold.get('high')), _clean_number(active.get('high')))

        snapshot = MarketSnapshot(
            sold_count=sold_count,
            active_count=active_count,
            # Either average stands in for the other when one side is missing
            avg_sold_price=avg_sold or avg_active,
            avg_active_price=avg_active or avg_sold,
            price_range=PriceRange(low=min(lows) if lows else 0.0, high=high),
            data_source=data_source,
            source_note=get_source_note(data_source, used_query),
            search_query=used_query,
            original_query=search_query if search_query != used_query else None
        )

        logger.info(f"Market snapshot: {snapshot!r}")
        return snapshot


class StaticEstimateProvider(MarketSnapshotProvider):
    """Typical resale prices by category, used when live search is not wanted"""

    name = 'static-estimate'

    def __init__(self, config: Config = None, estimates: Dict[str, Dict[str, float]] = None):
        self.config = config
        self.estimates = estimates if estimates is not None else CATEGORY_PRICE_ESTIMATES

    @property
    def available(self) -> bool:
        return True

    def _lookup(self, item: ItemIdentification) -> str:
        candidates = [value.lower().strip() for value in (item.subcategory, item.category) if value]

        for candidate in candidates:
            if candidate in self.estimates:
                return candidate

        # Partial match, e.g. "Men's Shoes" -> "shoes"
        for candidate in candidates:
            for key in self.estimates:
                if key != 'general' and key in candidate:
                    return key

        return 'general'

    def fetch_market_snapshot(self, item: ItemIdentification, condition: str = 'good') -> MarketSnapshot:
        key = self._lookup(item)
        estimate = self.estimates.get(key) or {'low': 0.0, 'high': 0.0, 'avg': 0.0}
        multiplier = STATIC_CONDITION_MULTIPLIERS.get(normalize_condition(condition) or 'good', 1.0)

        logger.info(f"Static estimate for {item.category!r}: table '{key}' x{multiplier}")

        return MarketSnapshot(
            sold_count=None,
            active_count=None,
            avg_sold_price=round(estimate['avg'] * multiplier, 2),
            avg_active_price=0.0,
            price_range=PriceRange(
                low=round(estimate['low'] * multiplier, 2),
                high=round(estimate['high'] * multiplier, 2)
            ),
            data_source=DATA_SOURCE_ESTIMATED,
            source_note=f'Estimated from typical "{key}" resale prices',
            search_query=key
        )


def get_snapshot_provider(config: Config) -> MarketSnapshotProvider:
    """Create the market data provider selected by MARKET_PROVIDER"""
    if config.market_provider == LiveSearchProvider.name:
        return LiveSearchProvider(config)
    if config.market_provider == StaticEstimateProvider.name:
        return StaticEstimateProvider(config)
    raise ConfigurationError(f"Unknown market provider: {config.market_provider}")
