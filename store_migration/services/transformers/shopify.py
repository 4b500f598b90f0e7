"""Shopify product and collection transformers."""

from typing import Any, Dict, Optional, Tuple

from .common import edge_nodes, extract_gid, normalize_weight, strip_html, to_float
from ...models.record import (
    MigrationCollection,
    MigrationImage,
    MigrationProduct,
    MigrationVariant,
)

PRODUCT_STATUS_MAP = {
    "ACTIVE": "active",
    "DRAFT": "draft",
}


def _variant_weight(variant: Dict[str, Any]) -> Tuple[Any, Optional[str]]:
    # Older API versions expose weight on the variant itself
    if "weight" in variant:
        return variant.get("weight"), variant.get("weightUnit")
    measurement = ((variant.get("inventoryItem") or {}).get("measurement") or {})
    weight = measurement.get("weight") or {}
    return weight.get("value"), weight.get("unit")


def _quantity(variant: Dict[str, Any]) -> int:
    return max(0, int(variant.get("inventoryQuantity") or 0))


def _optional_price(value: Any) -> Optional[float]:
    return float(value) if value else None


def transform_variant(variant: Dict[str, Any]) -> MigrationVariant:
    options = {
        option["name"].lower(): option["value"]
        for option in variant.get("selectedOptions") or []
    }
    return MigrationVariant(
        source_id=extract_gid(variant["id"]),
        title=variant.get("title") or "",
        sku=variant.get("sku") or None,
        price=to_float(variant.get("price")),
        compare_at_price=_optional_price(variant.get("compareAtPrice")),
        quantity=_quantity(variant),
        options=options,
        weight=normalize_weight(*_variant_weight(variant)),
    )


def transform_product(product: Dict[str, Any]) -> Optional[MigrationProduct]:
    """
    Map a Shopify product node to a MigrationProduct.

    Archived products (and any status other than ACTIVE/DRAFT) return None.
    Product-level price, SKU, stock and weight come from the first variant;
    variants are only emitted when the product has more than one.
    """
    status = PRODUCT_STATUS_MAP.get(product.get("status"))
    if status is None:
        return None

    variants = edge_nodes(product.get("variants"))
    first = variants[0] if variants else None

    images = [
        MigrationImage(
            source_url=image["url"],
            alt_text=image.get("altText") or None,
            position=index,
        )
        for index, image in enumerate(edge_nodes(product.get("images")))
    ]

    return MigrationProduct(
        source_id=extract_gid(product["id"]),
        title=product.get("title") or "",
        description=strip_html(product.get("descriptionHtml")),
        price=to_float(first.get("price")) if first else 0.0,
        compare_at_price=_optional_price(first.get("compareAtPrice")) if first else None,
        sku=(first.get("sku") or None) if first else None,
        quantity=_quantity(first) if first else 0,
        track_quantity=True,
        weight=normalize_weight(*_variant_weight(first)) if first else None,
        categories=[product["productType"]] if product.get("productType") else [],
        tags=list(product.get("tags") or []),
        images=images,
        variants=[transform_variant(v) for v in variants] if len(variants) > 1 else [],
        status=status,
    )


def transform_collection(collection: Dict[str, Any]) -> MigrationCollection:
    return MigrationCollection(
        source_id=extract_gid(collection["id"]),
        title=collection.get("title") or "",
        description=strip_html(collection.get("descriptionHtml")) or None,
        product_source_ids=[extract_gid(p["id"]) for p in edge_nodes(collection.get("products"))],
    )
