"""In-process loader used for dry runs and tests."""

import logging
import threading
import uuid
from typing import Any, Dict, List, Optional, Set

from .base import BaseLoader

logger = logging.getLogger(__name__)


class InMemoryLoader(BaseLoader):
    """
    Keeps created entities in dictionaries keyed by generated IDs.

    ``demo_products`` seeds products flagged as demo for a store so demo
    removal can be observed. ``fail_on`` makes create calls for listed
    entity kinds raise, ``fail_image_urls`` does the same for single images.
    """

    def __init__(
        self,
        demo_products: Optional[Dict[str, List[str]]] = None,
        fail_on: Optional[Set[str]] = None,
        fail_image_urls: Optional[Set[str]] = None
    ):
        self._lock = threading.Lock()
        self.products: Dict[str, Dict[str, Any]] = {}
        self.variants: Dict[str, Dict[str, Any]] = {}
        self.images: List[Dict[str, Any]] = []
        self.collections: Dict[str, Dict[str, Any]] = {}
        self.collection_products: Dict[str, List[str]] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.customer_addresses: Dict[str, List[Dict[str, Any]]] = {}
        self.coupons: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.order_items: Dict[str, List[Dict[str, Any]]] = {}
        self.demo_deletions = 0
        self.fail_on = set(fail_on or ())
        self.fail_image_urls = set(fail_image_urls or ())

        for store_id, titles in (demo_products or {}).items():
            for title in titles:
                product_id = self._new_id()
                self.products[product_id] = {"store_id": store_id, "title": title, "is_demo": True}

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    def _insert(self, entity: str, table: Dict[str, Dict[str, Any]], row: Dict[str, Any]) -> str:
        if entity in self.fail_on:
            raise RuntimeError(f"Failed to create {entity}")
        new_id = self._new_id()
        with self._lock:
            table[new_id] = dict(row)
        return new_id

    def store_products(self, store_id: str, include_demo: bool = False) -> List[Dict[str, Any]]:
        return [
            p for p in self.products.values()
            if p["store_id"] == store_id and (include_demo or not p.get("is_demo"))
        ]

    def create_product(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._insert("product", self.products, {**data, "store_id": store_id, "is_demo": False})

    def create_variant(self, product_id: str, data: Dict[str, Any]) -> str:
        return self._insert("variant", self.variants, data)

    def upload_image_from_url(self, store_id: str, product_id: str, source_url: str, position: int) -> None:
        if source_url in self.fail_image_urls:
            raise RuntimeError(f"Failed to fetch image: {source_url}")
        with self._lock:
            self.images.append({
                "store_id": store_id,
                "product_id": product_id,
                "source_url": source_url,
                "position": position,
            })

    def create_collection(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._insert("collection", self.collections, {**data, "store_id": store_id})

    def link_collection_products(self, collection_id: str, product_ids: List[str]) -> None:
        self.collection_products.setdefault(collection_id, []).extend(product_ids)

    def create_customer(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._insert("customer", self.customers, {**data, "store_id": store_id})

    def create_customer_addresses(self, customer_id: str, addresses: List[Dict[str, Any]]) -> None:
        self.customer_addresses.setdefault(customer_id, []).extend(addresses)

    def create_coupon(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._insert("coupon", self.coupons, {**data, "store_id": store_id})

    def create_order(self, store_id: str, data: Dict[str, Any]) -> str:
        return self._insert("order", self.orders, {**data, "store_id": store_id})

    def create_order_items(self, order_id: str, items: List[Dict[str, Any]]) -> None:
        self.order_items.setdefault(order_id, []).extend(items)

    def delete_demo_products(self, store_id: str) -> int:
        demo_ids = [
            product_id for product_id, p in self.products.items()
            if p["store_id"] == store_id and p.get("is_demo")
        ]
        with self._lock:
            self.images = [i for i in self.images if i["product_id"] not in demo_ids]
            for product_id in demo_ids:
                del self.products[product_id]
            self.demo_deletions += 1
        if demo_ids:
            logger.info(f"Removed {len(demo_ids)} demo products from store {store_id}")
        return len(demo_ids)

    def find_customer_ids_by_email(self, store_id: str) -> Dict[str, str]:
        return {
            c["email"].lower(): customer_id
            for customer_id, c in self.customers.items()
            if c["store_id"] == store_id and c.get("email")
        }
