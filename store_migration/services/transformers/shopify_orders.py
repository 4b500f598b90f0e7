"""Shopify order transformer."""

from typing import Any, Dict, Optional

from .common import edge_nodes, extract_gid, money
from ...models.record import MigrationOrder, MigrationOrderItem, MigrationShippingAddress

IMPORTED_ORDER_PREFIX = "IMP-"
DEFAULT_COUNTRY = "India"

PAYMENT_STATUS_MAP = {
    "PAID": "paid",
    "PARTIALLY_PAID": "paid",
    "REFUNDED": "refunded",
    "PARTIALLY_REFUNDED": "refunded",
    "VOIDED": "failed",
}

FULFILLMENT_STATUS_MAP = {
    "FULFILLED": "delivered",
    "PARTIALLY_FULFILLED": "shipped",
    "IN_PROGRESS": "shipped",
    "PENDING_FULFILLMENT": "processing",
    "OPEN": "processing",
    "RESTOCKED": "cancelled",
}


def map_payment_status(financial: Optional[str]) -> str:
    return PAYMENT_STATUS_MAP.get(financial, "pending")


def map_order_status(fulfillment: Optional[str], financial: Optional[str]) -> str:
    """Reduce Shopify's financial/fulfillment pair to one order status.

    A refunded or voided financial status wins over any fulfillment status.
    """
    if financial == "REFUNDED":
        return "refunded"
    if financial == "VOIDED":
        return "cancelled"
    if fulfillment in FULFILLMENT_STATUS_MAP:
        return FULFILLMENT_STATUS_MAP[fulfillment]
    return "confirmed" if financial == "PAID" else "pending"


def map_payment_method(gateway_names) -> str:
    gateway = (gateway_names[0] if gateway_names else "").lower()
    return "razorpay" if "razorpay" in gateway else "cod"


def _shipping_address(order: Dict[str, Any], customer: Dict[str, Any]) -> MigrationShippingAddress:
    address = order.get("shippingAddress")
    if not address:
        return MigrationShippingAddress(
            name=customer.get("firstName") or "Unknown",
            phone=customer.get("phone") or "",
            address_line1="N/A",
            city="N/A",
            state="N/A",
            pincode="000000",
            country=DEFAULT_COUNTRY,
        )
    return MigrationShippingAddress(
        name=address.get("name") or customer.get("firstName") or "Unknown",
        phone=address.get("phone") or customer.get("phone") or "",
        address_line1=address.get("address1") or "",
        address_line2=address.get("address2") or None,
        city=address.get("city") or "",
        state=address.get("province") or "",
        pincode=address.get("zip") or "",
        country=address.get("country") or DEFAULT_COUNTRY,
    )


def _line_item(item: Dict[str, Any]) -> MigrationOrderItem:
    quantity = int(item.get("quantity") or 0)
    unit_price = money(item.get("discountedUnitPriceSet"))
    product = item.get("product")
    return MigrationOrderItem(
        source_product_id=extract_gid(product["id"]) if product else "",
        title=item.get("title") or "",
        quantity=quantity,
        unit_price=unit_price,
        total_price=unit_price * quantity,
    )


def transform_order(order: Dict[str, Any]) -> MigrationOrder:
    customer = order.get("customer") or {}
    shipping_address = _shipping_address(order, customer)

    if customer:
        name_parts = [customer.get("firstName"), customer.get("lastName")]
        customer_name = " ".join(p for p in name_parts if p) or "Unknown"
    else:
        customer_name = shipping_address.name or "Unknown"

    discount_codes = order.get("discountCodes") or []
    financial = order.get("displayFinancialStatus")

    return MigrationOrder(
        source_id=extract_gid(order["id"]),
        order_number=f"{IMPORTED_ORDER_PREFIX}{(order.get('name') or '').lstrip('#')}",
        customer_email=customer.get("email") or "",
        customer_name=customer_name,
        customer_phone=customer.get("phone") or shipping_address.phone or None,
        customer_source_id=extract_gid(customer["id"]) if customer.get("id") else None,
        shipping_address=shipping_address,
        subtotal=money(order.get("currentSubtotalPriceSet")),
        shipping_cost=money(order.get("totalShippingPriceSet")),
        tax_amount=money(order.get("currentTotalTaxSet")),
        discount_amount=money(order.get("currentTotalDiscountsSet")),
        total_amount=money(order.get("currentTotalPriceSet")),
        payment_method=map_payment_method(order.get("paymentGatewayNames")),
        payment_status=map_payment_status(financial),
        order_status=map_order_status(order.get("displayFulfillmentStatus"), financial),
        line_items=[_line_item(item) for item in edge_nodes(order.get("lineItems"))],
        created_at=order.get("createdAt") or "",
        coupon_code=discount_codes[0] if discount_codes else None,
    )
