"""Shopify connection endpoints: OAuth install flow and direct token entry."""

import logging
import secrets

import requests
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse

from ..dependencies import get_cipher, get_progress_store
from ..models import ConnectResponse, ShopifyConnectRequest
from ..oauth_flow import (
    dashboard_redirect,
    error_redirect,
    read_state_cookie,
    set_state_cookie,
)
from ...config import SHOPIFY_STATE_COOKIE
from ...models.migration import MigrationPlatform
from ...services.oauth import shopify as shopify_oauth
from ...services.oauth.errors import OAuthError
from ...services.oauth.tokens import TokenCipher
from ...services.progress import ProgressStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/auth")
def shopify_auth(store_id: str, shop: str):
    """Start the Shopify OAuth flow for a store."""
    domain = shopify_oauth.validate_shop_domain(shop)
    if not domain:
        raise HTTPException(status_code=400, detail="Invalid Shopify store URL. Use format: myshop.myshopify.com")

    state = secrets.token_urlsafe(32)
    response = RedirectResponse(shopify_oauth.build_auth_url(domain, state), status_code=302)
    set_state_cookie(response, SHOPIFY_STATE_COOKIE, {"state": state, "store_id": store_id, "shop": domain})
    return response


@router.get("/callback")
def shopify_callback(
    request: Request,
    progress: ProgressStore = Depends(get_progress_store),
    cipher: TokenCipher = Depends(get_cipher)
):
    """Finish the Shopify OAuth flow and record the connection."""
    params = dict(request.query_params)
    code, state, shop = params.get("code"), params.get("state"), params.get("shop")
    if not (code and state and shop):
        return error_redirect("missing_params", SHOPIFY_STATE_COOKIE)

    raw_cookie = request.cookies.get(SHOPIFY_STATE_COOKIE)
    if not raw_cookie:
        return error_redirect("expired_session")
    cookie = read_state_cookie(raw_cookie)
    if not cookie or not cookie.get("state") or not cookie.get("store_id"):
        return error_redirect("invalid_session", SHOPIFY_STATE_COOKIE)

    if not secrets.compare_digest(str(cookie["state"]), state):
        return error_redirect("invalid_state", SHOPIFY_STATE_COOKIE)

    domain = shopify_oauth.validate_shop_domain(shop)
    if not domain or domain != cookie.get("shop"):
        return error_redirect("invalid_shop", SHOPIFY_STATE_COOKIE)

    if not shopify_oauth.validate_hmac(params):
        return error_redirect("invalid_hmac", SHOPIFY_STATE_COOKIE)

    try:
        tokens = shopify_oauth.exchange_code(domain, code)
        shop_info = shopify_oauth.fetch_shop_info(domain, tokens["access_token"])
    except (OAuthError, requests.RequestException, KeyError) as e:
        logger.error(f"Shopify callback failed for {domain}: {e}")
        return error_redirect("callback_failed", SHOPIFY_STATE_COOKIE)

    migration = progress.connect(
        store_id=cookie["store_id"],
        platform=MigrationPlatform.SHOPIFY,
        source_shop_id=domain,
        source_shop_name=shop_info["name"],
        token_fields=cipher.token_fields(tokens["access_token"]),
    )
    logger.info(f"Connected Shopify shop {domain} to migration {migration.id}")

    response = dashboard_redirect(connected="shopify")
    response.delete_cookie(SHOPIFY_STATE_COOKIE)
    return response


@router.post("/connect", response_model=ConnectResponse)
def shopify_connect(
    request: ShopifyConnectRequest,
    progress: ProgressStore = Depends(get_progress_store),
    cipher: TokenCipher = Depends(get_cipher)
):
    """Connect with an Admin API token pasted by the merchant (custom apps)."""
    domain = shopify_oauth.validate_shop_domain(request.shop_url)
    if not domain:
        raise HTTPException(status_code=400, detail="Invalid Shopify store URL. Use format: myshop.myshopify.com")

    try:
        shop_info = shopify_oauth.fetch_shop_info(domain, request.access_token)
    except (OAuthError, requests.RequestException) as e:
        logger.warning(f"Direct Shopify connect failed for {domain}: {e}")
        raise HTTPException(
            status_code=400,
            detail=(
                "Invalid access token. Could not connect to your Shopify store. Check that the token has "
                "read_products, read_orders, read_customers and read_discounts scopes."
            ),
        )

    migration = progress.connect(
        store_id=request.store_id,
        platform=MigrationPlatform.SHOPIFY,
        source_shop_id=domain,
        source_shop_name=shop_info["name"],
        token_fields=cipher.token_fields(request.access_token),
    )

    return ConnectResponse(
        migration_id=migration.id,
        platform=migration.platform.value,
        shop_name=migration.source_shop_name,
        status=migration.status.value,
    )
