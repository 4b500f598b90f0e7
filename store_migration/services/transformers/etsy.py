"""Etsy listing and section transformers."""

from typing import Any, Dict, Iterable, List, Optional

from ...models.record import (
    MigrationCollection,
    MigrationImage,
    MigrationProduct,
    MigrationVariant,
)

IMPORTABLE_STATES = ("active", "draft")


def listing_price(price: Dict[str, Any]) -> float:
    """Etsy money is an integer amount over a divisor."""
    divisor = price.get("divisor") or 1
    return price.get("amount", 0) / divisor


def _images(listing: Dict[str, Any]) -> List[MigrationImage]:
    return [
        MigrationImage(
            source_url=image["url_fullxfull"],
            alt_text=image.get("alt_text") or None,
            position=image.get("rank") or index,
        )
        for index, image in enumerate(listing.get("images") or [])
    ]


def _variants(listing: Dict[str, Any], price: float) -> List[MigrationVariant]:
    """
    Synthesize variants from property values.

    One variant per value for a single property, one per combination of the
    first two properties otherwise. Stock is split evenly with floor division.
    """
    properties = [p for p in listing.get("property_values") or [] if p.get("values")]
    listing_id = listing["listing_id"]
    quantity = listing.get("quantity") or 0
    variants = []

    if len(properties) == 1:
        prop = properties[0]
        name = prop["property_name"]
        share = max(0, quantity // len(prop["values"]))
        for value in prop["values"]:
            variants.append(MigrationVariant(
                source_id=f"{listing_id}_{name}_{value}",
                title=value,
                price=price,
                quantity=share,
                options={name.lower(): value},
            ))
    elif len(properties) >= 2:
        first, second = properties[0], properties[1]
        share = max(0, quantity // (len(first["values"]) * len(second["values"])))
        for v1 in first["values"]:
            for v2 in second["values"]:
                variants.append(MigrationVariant(
                    source_id=f"{listing_id}_{v1}_{v2}",
                    title=f"{v1} / {v2}",
                    price=price,
                    quantity=share,
                    options={
                        first["property_name"].lower(): v1,
                        second["property_name"].lower(): v2,
                    },
                ))

    return variants


def transform_listing(listing: Dict[str, Any]) -> Optional[MigrationProduct]:
    """Map an Etsy listing. Listings that are not active or draft return None."""
    state = listing.get("state")
    if state not in IMPORTABLE_STATES:
        return None

    price = listing_price(listing.get("price") or {})
    return MigrationProduct(
        source_id=str(listing["listing_id"]),
        title=listing.get("title") or "",
        description=listing.get("description") or "",
        price=price,
        quantity=max(0, listing.get("quantity") or 0),
        track_quantity=True,
        categories=[],
        tags=list(listing.get("tags") or []),
        images=_images(listing),
        variants=_variants(listing, price),
        status=state,
    )


def transform_section(section: Dict[str, Any], listing_ids: Iterable[Any]) -> MigrationCollection:
    return MigrationCollection(
        source_id=str(section["shop_section_id"]),
        title=section.get("title") or "",
        product_source_ids=[str(listing_id) for listing_id in listing_ids],
    )
