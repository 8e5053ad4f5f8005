#!/usr/bin/env python3
"""
Item Identification from Photos

Sends uploaded images to an OpenAI-compatible vision model and parses the structured identification.
"""

import base64
import json
import logging
import os
import re
from typing import List, Sequence

import openai
from openai import OpenAI

from resale_pricing import ItemIdentification
from resale_pricing.exceptions import (
    ConfigurationError,
    EmptyResponseError,
    InvalidImageError,
    ParseError,
    RateLimitError,
    UpstreamError,
)
from config import Config

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'jpeg', 'jpg', 'png', 'webp', 'gif'}

IDENTIFICATION_PROMPT = """You are an expert product identifier for eBay resale. Analyze the image(s) and identify the EXACT product with maximum specificity.

CRITICAL: Look for ALL identifying details:
- Brand logos/text on the product
- Model names/numbers (often on tags, labels, soles, or the item itself)
- Size, width (e.g., "Wide", "2E"), and fit specifications
- Color names (official color, not just "blue")
- Gender designation (Men's, Women's, Unisex)
- Version/generation (e.g., "Moab 3", "Air Max 90")
- SKU numbers, style codes, or product IDs

READ ALL VISIBLE TEXT in the image - tags, labels, boxes, receipts, size labels, insoles, etc.

Respond in JSON format only (no markdown, no code blocks):
{
    "itemName": "EXACT eBay listing title - Brand + Gender + Model + Version + Width + Color",
    "brand": "Brand name",
    "model": "Full model name with version",
    "category": "Product category",
    "subcategory": "Specific subcategory",
    "confidence": 0.85,
    "searchTerms": ["optimized", "ebay", "search", "terms"],
    "attributes": {
        "color": "Official color name",
        "size": "Size if visible",
        "width": "Width designation (Regular, Wide, Narrow, 2E, 4E, etc.)",
        "gender": "Men, Women, Unisex, Kids",
        "condition_notes": "Visible condition observations",
        "material": "Material if identifiable",
        "era": "vintage, modern, etc.",
        "sku": "SKU or style code if visible",
        "upc": "UPC if visible"
    },
    "specialAttributes": ["Limited Edition", "Collaboration Name", "Waterproof"],
    "discontinued": null,
    "year": null,
    "visibleText": ["All", "text", "you", "can", "read"],
    "identificationReasoning": "What text/logos/features you used to identify this"
}

Confidence scoring:
- 0.90-1.00: Exact item with model number/SKU visible
- 0.70-0.89: Brand and model clear, minor details uncertain
- 0.50-0.69: Brand known, model estimated
- Below 0.50: Category guess only"""


def _mime_type(extension: str) -> str:
    return 'image/jpeg' if extension == 'jpg' else f'image/{extension}'


class ImageAnalyzer:
    """Identifies items from photos with a vision model"""

    def __init__(self, config: Config, client: OpenAI = None):
        self.config = config
        self.client = client

    def _get_client(self) -> OpenAI:
        if self.client is None:
            if not self.config.has_vision:
                raise ConfigurationError(
                    "Vision API key not configured. Set VISION_API_KEY or OPENAI_API_KEY in .env"
                )
            self.client = OpenAI(api_key=self.config.vision_api_key, base_url=self.config.vision_base_url)
        return self.client

    def validate_images(self, image_paths: Sequence[str]) -> None:
        """Reject missing, oversized or non-image uploads"""
        if not image_paths:
            raise InvalidImageError("No images uploaded")

        if len(image_paths) > self.config.max_images:
            raise InvalidImageError(f"Too many images: {len(image_paths)} (maximum {self.config.max_images})")

        max_bytes = self.config.max_image_size_mb * 1024 * 1024

        for image_path in image_paths:
            extension = os.path.splitext(image_path)[1].lower().lstrip('.')
            if extension not in ALLOWED_EXTENSIONS:
                raise InvalidImageError(f"Only image files are allowed: {image_path}")

            if not os.path.isfile(image_path):
                raise InvalidImageError(f"Image not found: {image_path}")

            if os.path.getsize(image_path) > max_bytes:
                raise InvalidImageError(
                    f"File too large: {image_path}. Maximum size is {self.config.max_image_size_mb:g}MB."
                )

    def _encode_image(self, image_path: str) -> dict:
        extension = os.path.splitext(image_path)[1].lower().lstrip('.')
        with open(image_path, 'rb') as f:
            encoded = base64.b64encode(f.read()).decode()

        return {
            'type': 'image_url',
            'image_url': {'url': f"data:{_mime_type(extension)};base64,{encoded}"}
        }

    def analyze_images(self, image_paths: List[str]) -> ItemIdentification:
        """
        Identify the item shown in one or more photos.

        Args:
            image_paths: Paths to uploaded image files

        Returns:
            ItemIdentification

        Raises:
            ConfigurationError, InvalidImageError, EmptyResponseError, ParseError,
            RateLimitError, UpstreamError
        """
        self.validate_images(image_paths)
        client = self._get_client()

        logger.info(f"Analyzing {len(image_paths)} image(s) with {self.config.vision_model}")

        image_contents = [self._encode_image(path) for path in image_paths]

        try:
            response = client.chat.completions.create(
                model=self.config.vision_model,
                messages=[{
                    'role': 'user',
                    'content': [{'type': 'text', 'text': IDENTIFICATION_PROMPT}, *image_contents]
                }],
                max_tokens=1500,
                temperature=0.3
            )
        except openai.AuthenticationError as exc:
            raise ConfigurationError(f"Invalid vision API key: {exc}") from exc
        except openai.RateLimitError as exc:
            raise RateLimitError("Rate limit reached for image analysis. Please wait a moment.") from exc
        except openai.APIError as exc:
            raise UpstreamError(f"Image analysis failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        content = (content or '').strip()

        if not content:
            raise EmptyResponseError("Empty response from vision model")

        # Remove any markdown code fences
        clean_content = re.sub(r'```(?:json)?\n?', '', content).strip()

        try:
            parsed = json.loads(clean_content)
        except json.JSONDecodeError as exc:
            logger.error(f"Failed to parse vision response: {content[:500]}")
            raise ParseError("Failed to parse item identification response") from exc

        if not isinstance(parsed, dict):
            raise ParseError("Item identification response is not a JSON object")

        item = ItemIdentification.from_dict(parsed)
        logger.info(f"Item identified: {item!r}")
        return item
