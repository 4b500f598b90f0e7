"""Shopify discount -> coupon transformer."""

from typing import Any, Dict, Optional, Union

from .common import extract_gid
from ...models.record import MigrationCoupon
from ...models.shopify import (
    AmountValue,
    DiscountCodeBasic,
    DiscountCodeFreeShipping,
    DiscountCommon,
    PercentageValue,
    ShopifyDiscount,
    UnsupportedDiscount,
    parse_discount,
)


def _coupon(common: DiscountCommon, discount_type: str, discount_value: float) -> MigrationCoupon:
    return MigrationCoupon(
        source_id=extract_gid(common.id),
        code=common.code.upper(),
        description=common.title or None,
        discount_type=discount_type,
        discount_value=discount_value,
        minimum_order_value=common.minimum_subtotal,
        usage_limit=common.usage_limit or None,
        usage_count=common.usage_count,
        starts_at=common.starts_at or None,
        expires_at=common.ends_at or None,
        active=common.status == "ACTIVE",
    )


def transform_discount(discount: Union[ShopifyDiscount, Dict[str, Any]]) -> Optional[MigrationCoupon]:
    """
    Map a Shopify discount to a coupon.

    Only code discounts are imported; automatic and other discount kinds,
    code discounts without a code, and values of an unknown kind return None.
    Raw payloads are parsed first.
    """
    if isinstance(discount, dict):
        discount = parse_discount(discount)

    if isinstance(discount, UnsupportedDiscount):
        return None

    if not discount.common.code:
        return None

    if isinstance(discount, DiscountCodeFreeShipping):
        return _coupon(discount.common, "free_shipping", 0)

    if isinstance(discount, DiscountCodeBasic):
        value = discount.value
        if isinstance(value, PercentageValue):
            # Shopify percentages are fractions, 0.10 == 10%
            return _coupon(discount.common, "percentage", round(value.percentage * 100, 4))
        if isinstance(value, AmountValue):
            return _coupon(discount.common, "fixed_amount", value.amount)
        return None

    raise TypeError(f"Unhandled discount variant: {type(discount).__name__}")
