"""
Store Migration Engine

Imports an existing Shopify or Etsy shop into the store builder's own catalog.

Supports:
- Shopify (Admin GraphQL API, HMAC-validated OAuth or direct admin token)
- Etsy (Open API v3, OAuth with PKCE and refresh tokens)
- Products, variants and images, collections, customers, coupons and orders
- Resumable runs under a wall-clock budget, with rate-limit backoff
- Cooperative cancellation and per-record error tracking
"""

__version__ = "1.0.0"
