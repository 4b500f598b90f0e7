"""Shopify Admin GraphQL API client."""

import logging
from typing import Any, Dict, Optional

import requests

from .base import BaseExtractor, SourceAPIError, SourcePage
from . import shopify_queries as queries
from ..config import PRODUCTS_PER_PAGE, SHOPIFY_API_VERSION

logger = logging.getLogger(__name__)

DISCOUNT_ID_PAGE_SIZE = 250


class ShopifyExtractor(BaseExtractor):
    """
    Client for the Shopify Admin GraphQL API.

    Every list resource is paged by GraphQL cursor: pass the previous page's
    ``end_cursor`` to get the next one.
    """

    platform = "shopify"

    def __init__(
        self,
        shop: str,
        access_token: str,
        session: Optional[requests.Session] = None,
        page_size: int = PRODUCTS_PER_PAGE
    ):
        """
        Initialize the client.

        Args:
            shop: Shop domain, e.g. "example.myshopify.com"
            access_token: Offline Admin API access token
            session: Custom requests session
            page_size: Records requested per page
        """
        super().__init__(access_token, session)
        self.shop = shop
        self.page_size = page_size

    @property
    def endpoint(self) -> str:
        return f"https://{self.shop}/admin/api/{SHOPIFY_API_VERSION}/graphql.json"

    def _graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a GraphQL query and return its ``data`` object."""
        response = self._session.post(
            self.endpoint,
            json={"query": query, "variables": variables or {}},
            headers={
                "Content-Type": "application/json",
                "X-Shopify-Access-Token": self.access_token,
            },
        )
        result = self._check_response(response)

        errors = result.get("errors")
        if errors:
            messages = ", ".join(e.get("message", str(e)) for e in errors)
            raise SourceAPIError(
                self.platform,
                response.status_code,
                body=str(errors),
                message=f"Shopify GraphQL errors: {messages}",
            )

        return result.get("data") or {}

    def _count(self, query: str, root: str) -> int:
        data = self._graphql(query)
        return int((data.get(root) or {}).get("count") or 0)

    def _fetch_connection(
        self,
        query: str,
        root: str,
        cursor: Optional[str],
        first: Optional[int] = None
    ) -> SourcePage:
        data = self._graphql(query, {"first": first or self.page_size, "after": cursor or None})
        connection = data.get(root) or {}
        page_info = connection.get("pageInfo") or {}
        return SourcePage(
            items=[edge["node"] for edge in connection.get("edges", [])],
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    # Products

    def count_products(self) -> int:
        return self._count(queries.PRODUCT_COUNT_QUERY, "productsCount")

    def fetch_products(self, cursor: Optional[str] = None) -> SourcePage:
        page = self._fetch_connection(queries.PRODUCTS_QUERY, "products", cursor)
        logger.debug(f"Fetched {len(page.items)} Shopify products from {self.shop}")
        return page

    # Collections

    def count_collections(self) -> int:
        return self._count(queries.COLLECTION_COUNT_QUERY, "collectionsCount")

    def fetch_collections(self, cursor: Optional[str] = None) -> SourcePage:
        return self._fetch_connection(queries.COLLECTIONS_QUERY, "collections", cursor)

    # Customers

    def count_customers(self) -> int:
        return self._count(queries.CUSTOMER_COUNT_QUERY, "customersCount")

    def fetch_customers(self, cursor: Optional[str] = None) -> SourcePage:
        return self._fetch_connection(queries.CUSTOMERS_QUERY, "customers", cursor)

    # Orders

    def count_orders(self) -> int:
        return self._count(queries.ORDER_COUNT_QUERY, "ordersCount")

    def fetch_orders(self, cursor: Optional[str] = None) -> SourcePage:
        return self._fetch_connection(queries.ORDERS_QUERY, "orders", cursor)

    # Discounts

    def fetch_discounts(self, cursor: Optional[str] = None) -> SourcePage:
        """
        Fetch one page of discounts.

        Each item is the node's ``discount`` object with the node ``id`` merged
        in. Nodes with a null discount are dropped.
        """
        page = self._fetch_connection(queries.DISCOUNTS_QUERY, "discountNodes", cursor)
        discounts = []
        for node in page.items:
            discount = node.get("discount")
            if not discount or not discount.get("__typename"):
                continue
            discounts.append({**discount, "id": node["id"]})
        page.items = discounts
        return page

    def count_discounts(self) -> int:
        """Count all discount nodes by walking their IDs."""
        total = 0
        cursor = None
        while True:
            page = self._fetch_connection(
                queries.DISCOUNT_IDS_QUERY,
                "discountNodes",
                cursor,
                first=DISCOUNT_ID_PAGE_SIZE,
            )
            total += len(page.items)
            if not page.has_next_page or not page.end_cursor:
                return total
            cursor = page.end_cursor
