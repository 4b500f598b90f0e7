"""Per-platform, per-entity transformers from source payloads to migration records.

All functions are pure. Product, customer and coupon transformers return None
for records that should be skipped; callers drop them.
"""

from . import etsy, shopify, shopify_customers, shopify_discounts, shopify_orders

__all__ = ["etsy", "shopify", "shopify_customers", "shopify_discounts", "shopify_orders"]
