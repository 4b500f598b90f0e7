"""Helpers shared by the platform transformers."""

import re
from typing import Any, Dict, Optional

# Multipliers to grams
WEIGHT_UNITS = {
    "GRAMS": 1,
    "KILOGRAMS": 1000,
    "POUNDS": 453.592,
    "OUNCES": 28.3495,
}

_TAG_RE = re.compile(r"<[^>]*>")
_SPACE_RE = re.compile(r"\s+")
_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#039;": "'",
    "&nbsp;": " ",
}


def extract_gid(gid: str) -> str:
    """Numeric part of a Shopify global ID ("gid://shopify/Product/123" -> "123")."""
    return str(gid).rsplit("/", 1)[-1]


def strip_html(value: Optional[str]) -> str:
    """Drop tags, decode common entities and collapse whitespace."""
    if not value:
        return ""
    text = _TAG_RE.sub("", value)
    for entity, char in _ENTITIES.items():
        text = text.replace(entity, char)
    return _SPACE_RE.sub(" ", text).strip()


def normalize_weight(weight: Any, unit: Optional[str]) -> Optional[float]:
    """
    Convert a weight to grams.

    Returns None for a missing or zero weight. Unknown units pass through.
    """
    if weight is None:
        return None
    value = float(weight)
    if value == 0:
        return None
    return value * WEIGHT_UNITS.get((unit or "").upper(), 1)


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    return float(value)


def money(price_set: Optional[Dict[str, Any]]) -> float:
    """Amount of a Shopify ``MoneyBag`` (``{"shopMoney": {"amount": "1.00"}}``)."""
    return to_float(((price_set or {}).get("shopMoney") or {}).get("amount"))


def edge_nodes(connection: Optional[Dict[str, Any]]) -> list:
    """Nodes of a GraphQL connection."""
    return [edge["node"] for edge in (connection or {}).get("edges") or []]
