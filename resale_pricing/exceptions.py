#!/usr/bin/env python3
"""
Exceptions raised by the item identification and market search collaborators.

The pricing engine itself never raises for well-formed input.
"""


class ResaleAnalyzerError(Exception):
    """Base class for all resale analyzer errors."""


class ConfigurationError(ResaleAnalyzerError):
    """Raised when a required credential or setting is missing."""


class InvalidImageError(ResaleAnalyzerError):
    """Raised when an uploaded image is missing, too large or not an image."""


class EmptyResponseError(ResaleAnalyzerError):
    """Raised when a model returns no content."""


class ParseError(ResaleAnalyzerError):
    """Raised when model output is not valid structured data."""


class UpstreamError(ResaleAnalyzerError):
    """Raised when a third-party API call fails."""


class RateLimitError(UpstreamError):
    """Raised when a third-party API rejects the request for rate limiting."""
