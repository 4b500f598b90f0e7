"""Source platform API clients."""

from .base import BaseExtractor, RateLimitError, SourceAPIError, SourcePage
from .etsy_extractor import EtsyExtractor
from .shopify_extractor import ShopifyExtractor

__all__ = [
    "BaseExtractor",
    "RateLimitError",
    "SourceAPIError",
    "SourcePage",
    "EtsyExtractor",
    "ShopifyExtractor",
]
