"""Etsy Open API v3 REST client."""

import logging
from typing import Any, Dict, List, Optional

import requests

from .base import BaseExtractor, SourcePage
from ..config import (
    ETSY_API_BASE,
    ETSY_SECTION_LISTINGS_LIMIT,
    PRODUCTS_PER_PAGE,
    get_etsy_client_id,
)

logger = logging.getLogger(__name__)


class EtsyExtractor(BaseExtractor):
    """
    Client for the Etsy Open API v3.

    Listings are paged by numeric offset. The cursor handed back in
    ``SourcePage.end_cursor`` is the next offset serialized as a string.
    Every request carries the app's client ID as ``x-api-key``.
    """

    platform = "etsy"

    def __init__(
        self,
        shop_id: str,
        access_token: str,
        client_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
        page_size: int = PRODUCTS_PER_PAGE
    ):
        super().__init__(access_token, session)
        self.shop_id = shop_id
        self.client_id = client_id or get_etsy_client_id()
        self.page_size = page_size

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self._session.get(
            f"{ETSY_API_BASE}/application{path}",
            params=params,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "x-api-key": self.client_id,
            },
        )
        return self._check_response(response)

    def count_products(self) -> int:
        data = self._get(f"/shops/{self.shop_id}/listings/active", {"limit": 1})
        return int(data.get("count") or 0)

    def fetch_products(self, cursor: Optional[str] = None) -> SourcePage:
        offset = int(cursor) if cursor else 0
        data = self._get(
            f"/shops/{self.shop_id}/listings/active",
            {"limit": self.page_size, "offset": offset, "includes": "images"},
        )
        results = data.get("results") or []
        count = int(data.get("count") or 0)
        next_offset = offset + len(results)
        logger.debug(f"Fetched {len(results)} Etsy listings at offset {offset} of {count}")
        return SourcePage(
            items=results,
            has_next_page=next_offset < count,
            end_cursor=str(next_offset),
            total_count=count,
        )

    def fetch_sections(self) -> List[Dict[str, Any]]:
        """All shop sections, Etsy's equivalent of collections."""
        data = self._get(f"/shops/{self.shop_id}/sections")
        return data.get("results") or []

    def fetch_section_listing_ids(self, section_id: Any) -> List[str]:
        """IDs of the listings in one section."""
        data = self._get(
            f"/shops/{self.shop_id}/sections/{section_id}/listings",
            {"limit": ETSY_SECTION_LISTINGS_LIMIT},
        )
        return [str(item["listing_id"]) for item in data.get("results") or []]

    def fetch_listing_images(self, listing_id: Any) -> List[Dict[str, Any]]:
        data = self._get(f"/listings/{listing_id}/images")
        return data.get("results") or []
