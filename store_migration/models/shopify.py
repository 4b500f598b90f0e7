"""Typed views of Shopify discount payloads.

Shopify returns discounts as a GraphQL union discriminated by ``__typename``.
The payload is parsed once into one of the dataclasses below so the rest of
the code matches on types instead of comparing typename strings.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class PercentageValue:
    percentage: float  # decimal fraction, 0.10 == 10%


@dataclass(frozen=True)
class AmountValue:
    amount: float


@dataclass(frozen=True)
class UnknownValue:
    typename: Optional[str] = None


DiscountValue = Union[PercentageValue, AmountValue, UnknownValue]


@dataclass(frozen=True)
class DiscountCommon:
    id: str
    title: Optional[str]
    status: Optional[str]
    starts_at: Optional[str]
    ends_at: Optional[str]
    usage_limit: Optional[int]
    usage_count: int
    code: Optional[str]
    minimum_subtotal: Optional[float]


@dataclass(frozen=True)
class DiscountCodeBasic:
    common: DiscountCommon
    value: DiscountValue


@dataclass(frozen=True)
class DiscountCodeFreeShipping:
    common: DiscountCommon


@dataclass(frozen=True)
class UnsupportedDiscount:
    """Automatic, bulk or otherwise non-code discount."""
    id: str
    typename: Optional[str]


ShopifyDiscount = Union[DiscountCodeBasic, DiscountCodeFreeShipping, UnsupportedDiscount]


def _parse_value(raw: Optional[Dict[str, Any]]) -> DiscountValue:
    if not raw:
        return UnknownValue()
    typename = raw.get("__typename")
    if typename == "DiscountPercentage" and raw.get("percentage") is not None:
        return PercentageValue(percentage=float(raw["percentage"]))
    if typename == "DiscountAmount":
        amount = (raw.get("amount") or {}).get("amount")
        if amount:
            return AmountValue(amount=float(amount))
    return UnknownValue(typename=typename)


def _parse_common(raw: Dict[str, Any]) -> DiscountCommon:
    edges = (raw.get("codes") or {}).get("edges") or []
    code = edges[0].get("node", {}).get("code") if edges else None

    minimum = None
    requirement = raw.get("minimumRequirement") or {}
    if requirement.get("__typename") == "DiscountMinimumSubtotal":
        amount = (requirement.get("greaterThanOrEqualToSubtotal") or {}).get("amount")
        if amount:
            minimum = float(amount)

    return DiscountCommon(
        id=raw.get("id", ""),
        title=raw.get("title"),
        status=raw.get("status"),
        starts_at=raw.get("startsAt"),
        ends_at=raw.get("endsAt"),
        usage_limit=raw.get("usageLimit"),
        usage_count=int(raw.get("asyncUsageCount") or 0),
        code=code,
        minimum_subtotal=minimum,
    )


def parse_discount(raw: Dict[str, Any]) -> ShopifyDiscount:
    """Parse a discount node payload (``discount`` fields plus node ``id``)."""
    typename = raw.get("__typename")
    if typename == "DiscountCodeBasic":
        value = _parse_value((raw.get("customerGets") or {}).get("value"))
        return DiscountCodeBasic(common=_parse_common(raw), value=value)
    if typename == "DiscountCodeFreeShipping":
        return DiscountCodeFreeShipping(common=_parse_common(raw))
    return UnsupportedDiscount(id=raw.get("id", ""), typename=typename)
