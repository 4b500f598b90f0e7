"""REST loader that creates migrated entities through the store platform API."""

import time
import logging
from typing import Any, Dict, List, Optional

import requests

from .base import BaseLoader, LoaderError

logger = logging.getLogger(__name__)


class APILoader(BaseLoader):
    """
    Loader backed by the store platform's internal REST API.

    Every create call POSTs JSON and expects ``{"id": ...}`` back.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        rate_limit: float = 10.0,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the API loader.

        Args:
            base_url: Base URL for the store API
            api_key: Bearer key for the store API
            rate_limit: Max requests per second, 0 to disable
            timeout: Per-request timeout in seconds
            session: Custom requests session
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.rate_limit = rate_limit
        self.timeout = timeout
        self._last_request_time = 0.0
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication."""
        session = requests.Session()
        if self.api_key:
            session.headers["Authorization"] = f"Bearer {self.api_key}"
        session.headers["Content-Type"] = "application/json"
        return session

    def _rate_limit_wait(self):
        """Wait to respect rate limits."""
        if self.rate_limit > 0:
            elapsed = time.time() - self._last_request_time
            wait_time = (1.0 / self.rate_limit) - elapsed
            if wait_time > 0:
                time.sleep(wait_time)
        self._last_request_time = time.time()

    def _request(self, method: str, path: str, entity: str, **kwargs) -> Any:
        self._rate_limit_wait()
        response = self._session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)

        if not response.ok:
            message = response.text
            try:
                body = response.json()
                message = body.get("message") or body.get("error") or str(body)
            except ValueError:
                pass
            raise LoaderError(entity, f"{response.status_code} {message}", response.status_code)

        return response.json() if response.text else {}

    def _create(self, path: str, entity: str, data: Any) -> str:
        body = self._request("POST", path, entity, json=data)
        created_id = body.get("id") or (body.get("data") or {}).get("id")
        if not created_id:
            raise LoaderError(entity, "response did not include an id")
        return str(created_id)

    def create_product(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._create(f"/stores/{store_id}/products", "product", data)

    def create_variant(self, product_id: str, data: Dict[str, Any]) -> str:
        return self._create(f"/products/{product_id}/variants", "variant", data)

    def upload_image_from_url(self, store_id: str, product_id: str, source_url: str, position: int) -> None:
        self._request(
            "POST",
            f"/stores/{store_id}/products/{product_id}/images/from-url",
            "image",
            json={"source_url": source_url, "position": position},
        )

    def create_collection(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._create(f"/stores/{store_id}/collections", "collection", data)

    def link_collection_products(self, collection_id: str, product_ids: List[str]) -> None:
        self._request(
            "POST",
            f"/collections/{collection_id}/products",
            "collection products",
            json={"product_ids": product_ids},
        )

    def create_customer(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._create(f"/stores/{store_id}/customers", "customer", data)

    def create_customer_addresses(self, customer_id: str, addresses: List[Dict[str, Any]]) -> None:
        self._request("POST", f"/customers/{customer_id}/addresses", "customer addresses", json={"addresses": addresses})

    def create_coupon(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._create(f"/stores/{store_id}/coupons", "coupon", data)

    def create_order(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._create(f"/stores/{store_id}/orders", "order", data)

    def create_order_items(self, order_id: str, items: List[Dict[str, Any]]) -> None:
        self._request("POST", f"/orders/{order_id}/items", "order items", json={"items": items})

    def delete_demo_products(self, store_id: str) -> int:
        body = self._request("DELETE", f"/stores/{store_id}/products/demo", "demo products")
        deleted = int(body.get("deleted") or 0)
        if deleted:
            logger.info(f"Removed {deleted} demo products from store {store_id}")
        return deleted

    def find_customer_ids_by_email(self, store_id: str) -> Dict[str, str]:
        body = self._request("GET", f"/stores/{store_id}/customers", "customer lookup", params={"fields": "id,email"})
        customers = body.get("data", []) if isinstance(body, dict) else body
        return {c["email"].lower(): str(c["id"]) for c in customers if c.get("email")}
