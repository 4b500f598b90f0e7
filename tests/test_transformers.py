"""Tests for the product, collection, customer and Etsy transformers."""

import pytest

from store_migration.services.transformers import etsy, shopify, shopify_customers
from store_migration.services.transformers.common import extract_gid, normalize_weight, strip_html
from tests.fakes import (
    etsy_listing,
    shopify_collection,
    shopify_customer,
    shopify_product,
    shopify_variant,
)


# ---------------------------------------------------------------------------
# common helpers
# ---------------------------------------------------------------------------

def test_extract_gid():
    assert extract_gid("gid://shopify/Product/123") == "123"


def test_strip_html_decodes_entities_and_collapses_whitespace():
    html = "<p>Tea &amp; <b>biscuits</b></p>\n\n<p>&quot;fresh&quot;&nbsp;&#039;daily&#039; &lt;3</p>"
    assert strip_html(html) == "Tea & biscuits \"fresh\" 'daily' <3"


def test_strip_html_empty():
    assert strip_html(None) == ""
    assert strip_html("") == ""


@pytest.mark.parametrize("weight,unit,expected", [
    (2, "KILOGRAMS", 2000),
    (500, "GRAMS", 500),
    (1, "POUNDS", 453.592),
    (2, "OUNCES", 56.699),
    (7, "STONES", 7),
])
def test_normalize_weight_converts_to_grams(weight, unit, expected):
    assert normalize_weight(weight, unit) == pytest.approx(expected)


@pytest.mark.parametrize("unit", ["GRAMS", "KILOGRAMS", "POUNDS", None])
def test_normalize_weight_zero_is_absent(unit):
    assert normalize_weight(0, unit) is None


def test_normalize_weight_missing_is_absent():
    assert normalize_weight(None, "KILOGRAMS") is None


# ---------------------------------------------------------------------------
# Shopify products
# ---------------------------------------------------------------------------

def test_transform_product_single_variant():
    raw = shopify_product(1, images=["https://cdn/a.jpg", "https://cdn/b.jpg"], weight=2, weight_unit="KILOGRAMS")
    product = shopify.transform_product(raw)

    assert product.source_id == "1"
    assert product.title == "Product 1"
    assert product.description == "Soft & warm"
    assert product.status == "active"
    assert product.price == 10.0
    assert product.sku == "SKU-1-0"
    assert product.quantity == 5
    assert product.weight == 2000
    assert product.categories == ["Shirts"]
    assert product.tags == ["cotton"]
    assert product.variants == []
    assert [(i.source_url, i.position) for i in product.images] == [
        ("https://cdn/a.jpg", 0),
        ("https://cdn/b.jpg", 1),
    ]


def test_transform_product_zero_weight_is_absent():
    product = shopify.transform_product(shopify_product(1, weight=0, weight_unit="KILOGRAMS"))
    assert product.weight is None


def test_transform_product_legacy_variant_weight_fields():
    variant = shopify_variant(1)
    del variant["inventoryItem"]
    variant["weight"] = 1.5
    variant["weightUnit"] = "KILOGRAMS"
    product = shopify.transform_product(shopify_product(1, variants=[variant]))
    assert product.weight == 1500


def test_transform_product_draft():
    assert shopify.transform_product(shopify_product(1, status="DRAFT")).status == "draft"


def test_transform_product_archived_is_skipped():
    assert shopify.transform_product(shopify_product(1, status="ARCHIVED")) is None


def test_transform_product_multiple_variants():
    variants = [
        shopify_variant(1, 0, price="10.00", quantity=3, size="S"),
        shopify_variant(1, 1, price="12.00", quantity=-2, size="L", weight=8, weight_unit="OUNCES"),
    ]
    product = shopify.transform_product(shopify_product(1, variants=variants))

    assert len(product.variants) == 2
    assert product.price == 10.0
    small, large = product.variants
    assert small.options == {"size": "S"}
    assert large.price == 12.0
    assert large.quantity == 0
    assert large.weight == pytest.approx(226.796)


def test_transform_product_without_variants():
    raw = shopify_product(1, variants=[])
    product = shopify.transform_product(raw)
    assert product.price == 0.0
    assert product.quantity == 0
    assert product.weight is None


def test_transform_collection():
    raw = shopify_collection(9, product_ns=[1, 2])
    raw["descriptionHtml"] = "<p>Summer picks</p>"
    collection = shopify.transform_collection(raw)

    assert collection.source_id == "9"
    assert collection.description == "Summer picks"
    assert collection.product_source_ids == ["1", "2"]


def test_transform_collection_empty_description_is_none():
    assert shopify.transform_collection(shopify_collection(9)).description is None


# ---------------------------------------------------------------------------
# Shopify customers
# ---------------------------------------------------------------------------

def test_transform_customer():
    customer = shopify_customers.transform_customer(shopify_customer(5))

    assert customer.source_id == "5"
    assert customer.email == "customer5@example.com"
    assert customer.full_name == "Asha K5"
    assert customer.total_orders == 3
    assert customer.total_spent == 150.5
    assert len(customer.addresses) == 1
    assert customer.addresses[0].is_default is True
    assert customer.addresses[0].pincode == "411001"


def test_transform_customer_without_email_is_skipped():
    assert shopify_customers.transform_customer(shopify_customer(5, email="")) is None


def test_display_name_falls_back_to_email_local_part():
    assert shopify_customers.display_name(None, "", "priya@example.com") == "priya"


# ---------------------------------------------------------------------------
# Etsy
# ---------------------------------------------------------------------------

def test_transform_listing():
    product = etsy.transform_listing(etsy_listing(77, images=["https://etsy/1.jpg", "https://etsy/2.jpg"]))

    assert product.source_id == "77"
    assert product.price == 25.0
    assert product.status == "active"
    assert product.variants == []
    assert [i.position for i in product.images] == [1, 2]


def test_transform_listing_draft_is_importable():
    assert etsy.transform_listing(etsy_listing(77, state="draft")).status == "draft"


@pytest.mark.parametrize("state", ["inactive", "sold_out", "expired", "removed"])
def test_transform_listing_other_states_are_skipped(state):
    assert etsy.transform_listing(etsy_listing(77, state=state)) is None


def test_transform_listing_single_property_variants():
    listing = etsy_listing(77, quantity=7, property_values=[
        {"property_name": "Size", "values": ["S", "M"]},
    ])
    variants = etsy.transform_listing(listing).variants

    assert [v.title for v in variants] == ["S", "M"]
    assert [v.quantity for v in variants] == [3, 3]
    assert variants[0].options == {"size": "S"}
    assert variants[0].source_id == "77_Size_S"


def test_transform_listing_two_property_variants():
    listing = etsy_listing(77, quantity=10, property_values=[
        {"property_name": "Size", "values": ["S", "M"]},
        {"property_name": "Color", "values": ["Red", "Blue"]},
        {"property_name": "Material", "values": ["Wool"]},
    ])
    variants = etsy.transform_listing(listing).variants

    assert [v.title for v in variants] == ["S / Red", "S / Blue", "M / Red", "M / Blue"]
    assert all(v.quantity == 2 for v in variants)
    assert variants[1].options == {"size": "S", "color": "Blue"}


def test_transform_section():
    collection = etsy.transform_section({"shop_section_id": 31, "title": "Mugs"}, [101, "102"])
    assert collection.source_id == "31"
    assert collection.title == "Mugs"
    assert collection.product_source_ids == ["101", "102"]
