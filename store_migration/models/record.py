"""Normalized, platform-independent records produced by transformers.

These are transient: each one is consumed by a loader call right after it is
produced and is never persisted as-is. ``source_id`` is the platform-native
identifier and the idempotency key against the matching ID map.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class MigrationImage:
    """An externally hosted product image."""
    source_url: str
    position: int
    alt_text: Optional[str] = None


@dataclass
class MigrationVariant:
    """A purchasable option combination of a product."""
    source_id: str
    title: str
    price: float
    quantity: int
    options: Dict[str, str] = field(default_factory=dict)  # e.g. {"size": "L", "color": "Red"}
    sku: Optional[str] = None
    compare_at_price: Optional[float] = None
    weight: Optional[float] = None  # grams


@dataclass
class MigrationProduct:
    """A product with its variants and images."""
    source_id: str
    title: str
    description: str
    price: float
    quantity: int
    status: str  # "active" | "draft"
    track_quantity: bool = True
    compare_at_price: Optional[float] = None
    sku: Optional[str] = None
    weight: Optional[float] = None  # grams
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    images: List[MigrationImage] = field(default_factory=list)
    variants: List[MigrationVariant] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MigrationCollection:
    """A collection and the source IDs of its member products."""
    source_id: str
    title: str
    product_source_ids: List[str] = field(default_factory=list)
    description: Optional[str] = None


@dataclass
class MigrationShippingAddress:
    name: str
    phone: str
    address_line1: str
    city: str
    state: str
    pincode: str
    country: str
    address_line2: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["address_line2"] is None:
            del data["address_line2"]
        return data


@dataclass
class MigrationOrderItem:
    source_product_id: str  # empty when the source product was deleted
    title: str
    quantity: int
    unit_price: float
    total_price: float


@dataclass
class MigrationOrder:
    """An imported historical order."""
    source_id: str
    order_number: str
    customer_email: str
    customer_name: str
    shipping_address: MigrationShippingAddress
    subtotal: float
    shipping_cost: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    payment_method: str  # "razorpay" | "cod"
    payment_status: str  # "pending" | "paid" | "failed" | "refunded"
    order_status: str
    created_at: str
    line_items: List[MigrationOrderItem] = field(default_factory=list)
    customer_phone: Optional[str] = None
    customer_source_id: Optional[str] = None
    coupon_code: Optional[str] = None


@dataclass
class MigrationCustomerAddress:
    full_name: str
    phone: str
    address_line1: str
    city: str
    state: str
    pincode: str
    country: str
    address_line2: Optional[str] = None
    is_default: bool = False


@dataclass
class MigrationCustomer:
    """A customer account. Always has an email."""
    source_id: str
    email: str
    full_name: str
    total_orders: int = 0
    total_spent: float = 0.0
    phone: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    addresses: List[MigrationCustomerAddress] = field(default_factory=list)


@dataclass
class MigrationCoupon:
    """A code-based discount."""
    source_id: str
    code: str
    discount_type: str  # "percentage" | "fixed_amount" | "free_shipping"
    discount_value: float
    usage_count: int = 0
    active: bool = True
    description: Optional[str] = None
    minimum_order_value: Optional[float] = None
    usage_limit: Optional[int] = None
    starts_at: Optional[str] = None
    expires_at: Optional[str] = None
