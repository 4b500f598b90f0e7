"""Etsy OAuth 2.0 with PKCE: authorization URL, code exchange, token refresh."""

import base64
import hashlib
import logging
import secrets
from typing import Any, Dict, Tuple
from urllib.parse import urlencode

import requests

from .errors import OAuthError
from ...config import (
    ETSY_API_BASE,
    ETSY_AUTH_URL,
    ETSY_CALLBACK_PATH,
    ETSY_SCOPES,
    ETSY_TOKEN_URL,
    get_app_url,
    get_etsy_client_id,
)

logger = logging.getLogger(__name__)


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def code_challenge(verifier: str) -> str:
    """S256 challenge for a PKCE verifier."""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_pkce_pair() -> Tuple[str, str]:
    """
    Generate a PKCE verifier and its S256 challenge.

    Returns:
        Tuple of (verifier, challenge)
    """
    verifier = _b64url(secrets.token_bytes(32))
    return verifier, code_challenge(verifier)


def _redirect_uri() -> str:
    return f"{get_app_url()}{ETSY_CALLBACK_PATH}"


def build_auth_url(state: str, challenge: str) -> str:
    params = {
        "response_type": "code",
        "client_id": get_etsy_client_id(),
        "redirect_uri": _redirect_uri(),
        "scope": ETSY_SCOPES,
        "state": state,
        "code_challenge": challenge,
        "code_challenge_method": "S256",
    }
    return f"{ETSY_AUTH_URL}?{urlencode(params)}"


def _token_request(form: Dict[str, str], action: str) -> Dict[str, Any]:
    response = requests.post(ETSY_TOKEN_URL, data=form)
    if not response.ok:
        raise OAuthError(
            f"Etsy token {action} failed: {response.status_code} {response.text}",
            response.status_code,
        )
    return response.json()


def exchange_code(code: str, verifier: str) -> Dict[str, Any]:
    """
    Exchange an authorization code and its PKCE verifier for tokens.

    Returns:
        Token payload with ``access_token``, ``refresh_token`` and ``expires_in``
    """
    tokens = _token_request(
        {
            "grant_type": "authorization_code",
            "client_id": get_etsy_client_id(),
            "redirect_uri": _redirect_uri(),
            "code": code,
            "code_verifier": verifier,
        },
        "exchange",
    )
    logger.info("Exchanged Etsy authorization code")
    return tokens


def refresh_token(token: str) -> Dict[str, Any]:
    """Trade a refresh token for a new access/refresh token pair."""
    tokens = _token_request(
        {
            "grant_type": "refresh_token",
            "client_id": get_etsy_client_id(),
            "refresh_token": token,
        },
        "refresh",
    )
    logger.info("Refreshed Etsy access token")
    return tokens


def fetch_shop_info(access_token: str) -> Dict[str, Any]:
    """
    Look up the shop owned by the authenticated Etsy user.

    Returns:
        Dict with ``shop_id`` and ``shop_name``
    """
    headers = {
        "Authorization": f"Bearer {access_token}",
        "x-api-key": get_etsy_client_id(),
    }

    me = requests.get(f"{ETSY_API_BASE}/application/users/me", headers=headers)
    if not me.ok:
        raise OAuthError(f"Failed to fetch Etsy user info: {me.status_code}", me.status_code)
    user_id = me.json()["user_id"]

    shops = requests.get(f"{ETSY_API_BASE}/application/users/{user_id}/shops", headers=headers)
    if not shops.ok:
        raise OAuthError(f"Failed to fetch Etsy shop info: {shops.status_code}", shops.status_code)

    # The endpoint returns either a single shop or a result list
    data = shops.json()
    results = data.get("results") if "results" in data else ([data] if data.get("shop_id") else [])
    if not results:
        raise OAuthError("No Etsy shop found for this account")

    shop = results[0]
    return {"shop_id": str(shop["shop_id"]), "shop_name": shop["shop_name"]}
