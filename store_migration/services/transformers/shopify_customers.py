"""Shopify customer transformer."""

from typing import Any, Dict, Optional

from .common import edge_nodes, extract_gid, to_float
from ...models.record import MigrationCustomer, MigrationCustomerAddress


def display_name(first: Optional[str], last: Optional[str], email: str) -> str:
    """First/last name, or the email local part when both are empty."""
    name = " ".join(part for part in (first, last) if part).strip()
    return name or email.split("@", 1)[0]


def _address(address: Dict[str, Any], fallback_name: str, fallback_phone: str, is_default: bool) -> MigrationCustomerAddress:
    return MigrationCustomerAddress(
        full_name=address.get("name") or fallback_name,
        phone=address.get("phone") or fallback_phone,
        address_line1=address.get("address1") or "",
        address_line2=address.get("address2") or None,
        city=address.get("city") or "",
        state=address.get("province") or "",
        pincode=address.get("zip") or "",
        country=address.get("country") or "India",
        is_default=is_default,
    )


def transform_customer(customer: Dict[str, Any]) -> Optional[MigrationCustomer]:
    """Map a Shopify customer node. Customers without an email return None."""
    email = (customer.get("email") or "").strip()
    if not email:
        return None

    full_name = display_name(customer.get("firstName"), customer.get("lastName"), email)
    phone = customer.get("phone") or ""

    return MigrationCustomer(
        source_id=extract_gid(customer["id"]),
        email=email.lower(),
        full_name=full_name,
        phone=phone or None,
        total_orders=int(customer.get("numberOfOrders") or 0),
        total_spent=to_float((customer.get("amountSpent") or {}).get("amount")),
        tags=list(customer.get("tags") or []),
        addresses=[
            _address(address, full_name, phone, index == 0)
            for index, address in enumerate(edge_nodes(customer.get("addressesV2")))
        ],
    )
