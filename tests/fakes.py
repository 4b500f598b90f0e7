"""Scripted source clients and raw payload builders shared by the tests."""

from typing import Any, Dict, List, Optional

from store_migration.extractors.base import RateLimitError, SourcePage


class SleepRecorder:
    """Stands in for time.sleep and records every requested delay."""

    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _PagedSource:
    """
    Serves lists of raw records one page at a time.

    The cursor is the next offset as a string. ``rate_limits[resource]`` is
    the number of 429s to raise before serving that resource, -1 for forever.
    ``on_fetch`` runs before every page fetch with (resource, cursor).
    """

    platform = ""

    def __init__(self, data: Dict[str, List[Dict[str, Any]]], page_size: int = 2):
        self.data = data
        self.page_size = page_size
        self.rate_limits: Dict[str, int] = {}
        self.calls: List[tuple] = []
        self.on_fetch = None

    def _page(self, resource: str, cursor: Optional[str]) -> SourcePage:
        self.calls.append((resource, cursor))
        if self.on_fetch:
            self.on_fetch(resource, cursor)

        remaining = self.rate_limits.get(resource, 0)
        if remaining:
            if remaining > 0:
                self.rate_limits[resource] = remaining - 1
            raise RateLimitError(self.platform, 2.0)

        items = self.data.get(resource, [])
        start = int(cursor) if cursor else 0
        chunk = items[start:start + self.page_size]
        next_offset = start + len(chunk)
        has_next = next_offset < len(items)
        return SourcePage(
            items=chunk,
            has_next_page=has_next,
            end_cursor=str(next_offset) if has_next else None,
            total_count=len(items),
        )

    def fetched_cursors(self, resource: str) -> List[Optional[str]]:
        return [cursor for name, cursor in self.calls if name == resource]


class FakeShopifyClient(_PagedSource):
    platform = "shopify"

    def __init__(self, products=(), collections=(), customers=(), discounts=(), orders=(), page_size=2):
        super().__init__({
            "products": list(products),
            "collections": list(collections),
            "customers": list(customers),
            "discounts": list(discounts),
            "orders": list(orders),
        }, page_size)

    def count_products(self) -> int:
        return len(self.data["products"])

    def fetch_products(self, cursor=None) -> SourcePage:
        return self._page("products", cursor)

    def count_collections(self) -> int:
        return len(self.data["collections"])

    def fetch_collections(self, cursor=None) -> SourcePage:
        return self._page("collections", cursor)

    def count_customers(self) -> int:
        return len(self.data["customers"])

    def fetch_customers(self, cursor=None) -> SourcePage:
        return self._page("customers", cursor)

    def count_discounts(self) -> int:
        return len(self.data["discounts"])

    def fetch_discounts(self, cursor=None) -> SourcePage:
        return self._page("discounts", cursor)

    def count_orders(self) -> int:
        return len(self.data["orders"])

    def fetch_orders(self, cursor=None) -> SourcePage:
        return self._page("orders", cursor)


class FakeEtsyClient(_PagedSource):
    platform = "etsy"

    def __init__(self, listings=(), sections=(), section_listings=None, page_size=2):
        super().__init__({"products": list(listings)}, page_size)
        self.sections = list(sections)
        self.section_listings = dict(section_listings or {})

    def count_products(self) -> int:
        return len(self.data["products"])

    def fetch_products(self, cursor=None) -> SourcePage:
        return self._page("products", cursor)

    def fetch_sections(self) -> List[Dict[str, Any]]:
        self.calls.append(("sections", None))
        return list(self.sections)

    def fetch_section_listing_ids(self, section_id) -> List[str]:
        self.calls.append(("section_listings", section_id))
        return [str(i) for i in self.section_listings.get(section_id, [])]


# Raw payload builders

def shopify_variant(product_n: int, index: int = 0, price: str = "10.00", quantity: int = 5,
                    weight=None, weight_unit: str = "GRAMS", size: str = "M") -> Dict[str, Any]:
    measurement = {"weight": {"unit": weight_unit, "value": weight}} if weight is not None else {"weight": None}
    return {
        "id": f"gid://shopify/ProductVariant/{product_n}{index:02d}",
        "title": size,
        "sku": f"SKU-{product_n}-{index}",
        "price": price,
        "compareAtPrice": None,
        "inventoryQuantity": quantity,
        "inventoryItem": {"measurement": measurement},
        "selectedOptions": [{"name": "Size", "value": size}],
    }


def shopify_product(n: int, status: str = "ACTIVE", images=(), variants=None, weight=None,
                    weight_unit: str = "GRAMS") -> Dict[str, Any]:
    if variants is None:
        variants = [shopify_variant(n, weight=weight, weight_unit=weight_unit)]
    return {
        "id": f"gid://shopify/Product/{n}",
        "title": f"Product {n}",
        "descriptionHtml": "<p>Soft &amp; warm</p>",
        "productType": "Shirts",
        "tags": ["cotton"],
        "status": status,
        "variants": {"edges": [{"node": v} for v in variants]},
        "images": {"edges": [{"node": {"url": url, "altText": None}} for url in images]},
    }


def shopify_collection(n: int, product_ns=()) -> Dict[str, Any]:
    return {
        "id": f"gid://shopify/Collection/{n}",
        "title": f"Collection {n}",
        "descriptionHtml": "",
        "products": {"edges": [{"node": {"id": f"gid://shopify/Product/{p}"}} for p in product_ns]},
    }


def shopify_customer(n: int, email: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": f"gid://shopify/Customer/{n}",
        "email": email if email is not None else f"Customer{n}@Example.com",
        "firstName": "Asha",
        "lastName": f"K{n}",
        "phone": "+919800000000",
        "numberOfOrders": "3",
        "amountSpent": {"amount": "150.50", "currencyCode": "INR"},
        "tags": [],
        "addressesV2": {"edges": [{"node": {
            "name": "Asha K", "address1": "1 MG Road", "address2": None, "city": "Pune",
            "province": "MH", "zip": "411001", "country": "India", "phone": None,
        }}]},
    }


def _money(amount: str) -> Dict[str, Any]:
    return {"shopMoney": {"amount": amount, "currencyCode": "INR"}}


def shopify_order(n: int, financial: str = "PAID", fulfillment: str = "UNFULFILLED",
                  customer: Optional[Dict[str, Any]] = None, product_n: Optional[int] = None,
                  shipping_address: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    product = {"id": f"gid://shopify/Product/{product_n}"} if product_n is not None else None
    return {
        "id": f"gid://shopify/Order/{n}",
        "name": f"#{1000 + n}",
        "createdAt": "2024-05-01T10:00:00Z",
        "displayFinancialStatus": financial,
        "displayFulfillmentStatus": fulfillment,
        "paymentGatewayNames": ["Razorpay Secure"],
        "discountCodes": [],
        "customer": customer,
        "shippingAddress": shipping_address,
        "currentSubtotalPriceSet": _money("200.00"),
        "totalShippingPriceSet": _money("50.00"),
        "currentTotalTaxSet": _money("36.00"),
        "currentTotalDiscountsSet": _money("0.00"),
        "currentTotalPriceSet": _money("286.00"),
        "lineItems": {"edges": [{"node": {
            "title": "Line",
            "quantity": 2,
            "discountedUnitPriceSet": _money("100.00"),
            "product": product,
        }}]},
    }


def _discount_common(n: int, code: Optional[str]) -> Dict[str, Any]:
    return {
        "id": f"gid://shopify/DiscountCodeNode/{n}",
        "title": f"Discount {n}",
        "status": "ACTIVE",
        "startsAt": "2024-01-01T00:00:00Z",
        "endsAt": None,
        "usageLimit": None,
        "asyncUsageCount": 4,
        "codes": {"edges": [{"node": {"code": code}}]} if code else {"edges": []},
        "minimumRequirement": None,
    }


def percentage_discount(n: int, code: str = "SAVE10", percentage: float = 0.1) -> Dict[str, Any]:
    return {
        "__typename": "DiscountCodeBasic",
        **_discount_common(n, code),
        "customerGets": {"value": {"__typename": "DiscountPercentage", "percentage": percentage}},
    }


def amount_discount(n: int, code: str = "FLAT50", amount: str = "50.0") -> Dict[str, Any]:
    return {
        "__typename": "DiscountCodeBasic",
        **_discount_common(n, code),
        "customerGets": {"value": {"__typename": "DiscountAmount", "amount": {"amount": amount}}},
    }


def free_shipping_discount(n: int, code: str = "SHIP") -> Dict[str, Any]:
    return {"__typename": "DiscountCodeFreeShipping", **_discount_common(n, code)}


def automatic_discount(n: int) -> Dict[str, Any]:
    return {"__typename": "DiscountAutomaticBasic", "id": f"gid://shopify/DiscountAutomaticNode/{n}", "title": "Auto"}


def etsy_listing(listing_id: int, state: str = "active", images=(), quantity: int = 4,
                 property_values=None) -> Dict[str, Any]:
    return {
        "listing_id": listing_id,
        "title": f"Listing {listing_id}",
        "description": "Handmade",
        "state": state,
        "quantity": quantity,
        "price": {"amount": 2500, "divisor": 100, "currency_code": "USD"},
        "tags": ["handmade"],
        "images": [
            {"url_fullxfull": url, "rank": rank, "alt_text": None}
            for rank, url in enumerate(images, 1)
        ],
        "property_values": property_values or [],
    }
