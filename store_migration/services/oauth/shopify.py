"""Shopify OAuth: authorization URL, callback HMAC validation, code exchange."""

import hashlib
import hmac
import logging
import re
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import requests

from .errors import OAuthError
from ...config import (
    SHOPIFY_API_VERSION,
    SHOPIFY_CALLBACK_PATH,
    SHOPIFY_SCOPES,
    get_app_url,
    get_shopify_client_id,
    get_shopify_client_secret,
)

logger = logging.getLogger(__name__)

_SHOP_NAME = r"[a-z0-9][a-z0-9-]*[a-z0-9]?"
_FULL_DOMAIN_RE = re.compile(rf"^{_SHOP_NAME}\.myshopify\.com$")
_NAME_RE = re.compile(rf"^{_SHOP_NAME}$")


def validate_shop_domain(shop: str) -> Optional[str]:
    """
    Normalize a shop identifier to its ``*.myshopify.com`` domain.

    Accepts ``myshop``, ``myshop.myshopify.com`` and either form with a
    scheme or trailing slash. Returns None when the value is not a valid shop.
    """
    cleaned = re.sub(r"^https?://", "", (shop or "").strip().lower()).rstrip("/")

    if ".myshopify.com" in cleaned:
        return cleaned if _FULL_DOMAIN_RE.match(cleaned) else None

    return f"{cleaned}.myshopify.com" if _NAME_RE.match(cleaned) else None


def build_auth_url(shop: str, state: str) -> str:
    """Build the authorization URL requesting an offline access token."""
    params = {
        "client_id": get_shopify_client_id(),
        "scope": SHOPIFY_SCOPES,
        "redirect_uri": f"{get_app_url()}{SHOPIFY_CALLBACK_PATH}",
        "state": state,
        "grant_options[]": "offline",
    }
    return f"https://{shop}/admin/oauth/authorize?{urlencode(params)}"


def compute_hmac(params: Mapping[str, str], secret: str) -> str:
    """Hex HMAC-SHA256 over the sorted ``key=value`` pairs, ``hmac`` excluded."""
    message = "&".join(
        f"{key}={value}"
        for key, value in sorted(params.items())
        if key != "hmac"
    )
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def validate_hmac(params: Mapping[str, str]) -> bool:
    """Check the ``hmac`` signature Shopify attaches to the callback query."""
    received = params.get("hmac")
    if not received:
        return False
    computed = compute_hmac(params, get_shopify_client_secret())
    return hmac.compare_digest(received.encode(), computed.encode())


def exchange_code(shop: str, code: str) -> Dict[str, Any]:
    """
    Exchange an authorization code for a permanent offline token.

    Returns:
        Token payload with ``access_token`` and ``scope``
    """
    response = requests.post(
        f"https://{shop}/admin/oauth/access_token",
        json={
            "client_id": get_shopify_client_id(),
            "client_secret": get_shopify_client_secret(),
            "code": code,
        },
    )
    if not response.ok:
        raise OAuthError(
            f"Shopify token exchange failed: {response.status_code} {response.text}",
            response.status_code,
        )
    logger.info(f"Exchanged Shopify authorization code for {shop}")
    return response.json()


def fetch_shop_info(shop: str, access_token: str) -> Dict[str, Any]:
    """
    Look up the connected shop.

    Returns:
        Dict with ``id`` and ``name``
    """
    response = requests.get(
        f"https://{shop}/admin/api/{SHOPIFY_API_VERSION}/shop.json",
        headers={"X-Shopify-Access-Token": access_token},
    )
    if not response.ok:
        raise OAuthError(f"Failed to fetch Shopify shop info: {response.status_code}", response.status_code)

    data = response.json()["shop"]
    return {"id": str(data["id"]), "name": data["name"]}
