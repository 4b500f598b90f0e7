"""Base loader interface for creating migrated entities in the target store."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging
import re

from ..models.record import (
    MigrationCollection,
    MigrationCoupon,
    MigrationCustomer,
    MigrationOrder,
    MigrationProduct,
    MigrationVariant,
)

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER_EMAIL = "unknown@import.storeforge"


class LoaderError(Exception):
    """The target store rejected a create/delete/lookup call."""

    def __init__(self, entity: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"Failed to create {entity}: {message}")
        self.entity = entity
        self.status_code = status_code


def slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")


class BaseLoader(ABC):
    """
    Base class for target store loaders.

    Subclasses implement the storage primitives (one row or row set per call).
    The ``load_*`` methods compose them into the per-entity creation used by
    the orchestrator and return the new internal ID.
    """

    # Primitives

    @abstractmethod
    def create_product(self, store_id: str, data: Dict[str, Any]) -> str:
        """Create a product row and return its ID."""
        pass

    @abstractmethod
    def create_variant(self, product_id: str, data: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def upload_image_from_url(self, store_id: str, product_id: str, source_url: str, position: int) -> None:
        """
        Fetch an external image, process it and attach it to a product.

        Raises on any failure.
        """
        pass

    @abstractmethod
    def create_collection(self, store_id: str, data: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def link_collection_products(self, collection_id: str, product_ids: List[str]) -> None:
        pass

    @abstractmethod
    def create_customer(self, store_id: str, data: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def create_customer_addresses(self, customer_id: str, addresses: List[Dict[str, Any]]) -> None:
        pass

    @abstractmethod
    def create_coupon(self, store_id: str, data: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def create_order(self, store_id: str, data: Dict[str, Any]) -> str:
        pass

    @abstractmethod
    def create_order_items(self, order_id: str, items: List[Dict[str, Any]]) -> None:
        pass

    @abstractmethod
    def delete_demo_products(self, store_id: str) -> int:
        """Delete the store's seeded demo products (images first). Returns how many."""
        pass

    @abstractmethod
    def find_customer_ids_by_email(self, store_id: str) -> Dict[str, str]:
        """Existing store customers as email -> customer ID."""
        pass

    # Composite loads

    def load_product(self, store_id: str, product: MigrationProduct, status: str) -> str:
        """Create the product row. Variants and images are created separately."""
        return self.create_product(store_id, {
            "title": product.title,
            "description": product.description,
            "price": product.price,
            "compare_at_price": product.compare_at_price,
            "sku": product.sku,
            "quantity": product.quantity,
            "track_quantity": product.track_quantity,
            "weight": product.weight,
            "requires_shipping": True,
            "categories": list(product.categories),
            "tags": list(product.tags),
            "status": status,
            "featured": False,
        })

    def load_variant(self, product_id: str, variant: MigrationVariant) -> str:
        return self.create_variant(product_id, {
            "product_id": product_id,
            "title": variant.title,
            "sku": variant.sku or None,
            "price": variant.price,
            "compare_at_price": variant.compare_at_price or None,
            "quantity": variant.quantity,
            "options": dict(variant.options),
            "weight": variant.weight or None,
        })

    def load_collection(
        self,
        store_id: str,
        collection: MigrationCollection,
        product_id_map: Dict[str, str]
    ) -> str:
        """Create a collection and link the member products that were migrated."""
        collection_id = self.create_collection(store_id, {
            "title": collection.title,
            "slug": slugify(collection.title),
            "description": collection.description or None,
        })

        product_ids = [
            product_id_map[source_id]
            for source_id in collection.product_source_ids
            if source_id in product_id_map
        ]
        if product_ids:
            self.link_collection_products(collection_id, product_ids)

        return collection_id

    def load_customer(self, store_id: str, customer: MigrationCustomer) -> str:
        customer_id = self.create_customer(store_id, {
            "email": customer.email,
            "full_name": customer.full_name,
            "phone": customer.phone or None,
            "total_orders": customer.total_orders,
            "total_spent": customer.total_spent,
        })

        if customer.addresses:
            self.create_customer_addresses(customer_id, [
                {
                    "customer_id": customer_id,
                    "full_name": address.full_name,
                    "phone": address.phone or "",
                    "address_line1": address.address_line1,
                    "address_line2": address.address_line2 or None,
                    "city": address.city,
                    "state": address.state,
                    "pincode": address.pincode,
                    "country": address.country,
                    "is_default": address.is_default,
                }
                for address in customer.addresses
            ])

        return customer_id

    def load_coupon(self, store_id: str, coupon: MigrationCoupon) -> str:
        # The coupons table requires a positive value; free shipping stores 1
        value = 1 if coupon.discount_type == "free_shipping" else coupon.discount_value
        return self.create_coupon(store_id, {
            "code": coupon.code,
            "description": coupon.description or None,
            "discount_type": coupon.discount_type,
            "discount_value": value,
            "minimum_order_value": coupon.minimum_order_value or None,
            "usage_limit": coupon.usage_limit or None,
            "usage_count": coupon.usage_count,
            "starts_at": coupon.starts_at or None,
            "expires_at": coupon.expires_at or None,
            "active": coupon.active,
        })

    def load_order(
        self,
        store_id: str,
        order: MigrationOrder,
        customer_ids_by_email: Dict[str, str],
        product_id_map: Dict[str, str]
    ) -> str:
        """Create an order linked to known customers and migrated products."""
        email = order.customer_email.lower()
        data = {
            "order_number": order.order_number,
            "customer_name": order.customer_name,
            "customer_email": order.customer_email or UNKNOWN_CUSTOMER_EMAIL,
            "customer_phone": order.customer_phone or None,
            "shipping_address": order.shipping_address.to_dict(),
            "subtotal": order.subtotal,
            "shipping_cost": order.shipping_cost,
            "tax_amount": order.tax_amount,
            "discount_amount": order.discount_amount,
            "total_amount": order.total_amount,
            "payment_method": order.payment_method,
            "payment_status": order.payment_status,
            "order_status": order.order_status,
            "coupon_code": order.coupon_code or None,
            "customer_id": customer_ids_by_email.get(email) if email else None,
            "created_at": order.created_at,
        }
        if order.payment_status == "paid":
            data["paid_at"] = order.created_at

        order_id = self.create_order(store_id, data)

        if order.line_items:
            self.create_order_items(order_id, [
                {
                    "order_id": order_id,
                    "product_id": product_id_map.get(item.source_product_id) if item.source_product_id else None,
                    "product_title": item.title,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "total_price": item.total_price,
                }
                for item in order.line_items
            ])

        return order_id
