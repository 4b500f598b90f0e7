"""Etsy OAuth (PKCE) connection endpoints."""

import logging
import secrets

import requests
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from ..dependencies import get_cipher, get_progress_store
from ..oauth_flow import (
    dashboard_redirect,
    error_redirect,
    read_state_cookie,
    set_state_cookie,
)
from ...config import ETSY_STATE_COOKIE
from ...models.migration import MigrationPlatform
from ...services.oauth import etsy as etsy_oauth
from ...services.oauth.errors import OAuthError
from ...services.oauth.tokens import TokenCipher
from ...services.progress import ProgressStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/auth")
def etsy_auth(store_id: str):
    """Start the Etsy OAuth flow. The PKCE verifier travels in the state cookie."""
    verifier, challenge = etsy_oauth.generate_pkce_pair()
    state = secrets.token_urlsafe(32)

    response = RedirectResponse(etsy_oauth.build_auth_url(state, challenge), status_code=302)
    set_state_cookie(response, ETSY_STATE_COOKIE, {"state": state, "verifier": verifier, "store_id": store_id})
    return response


@router.get("/callback")
def etsy_callback(
    request: Request,
    progress: ProgressStore = Depends(get_progress_store),
    cipher: TokenCipher = Depends(get_cipher)
):
    params = request.query_params
    if params.get("error"):
        logger.error(f"Etsy OAuth error: {params.get('error')}")
        return error_redirect("etsy_denied", ETSY_STATE_COOKIE)

    code, state = params.get("code"), params.get("state")
    if not (code and state):
        return error_redirect("missing_params", ETSY_STATE_COOKIE)

    raw_cookie = request.cookies.get(ETSY_STATE_COOKIE)
    if not raw_cookie:
        return error_redirect("expired_session")
    cookie = read_state_cookie(raw_cookie)
    if not cookie or not cookie.get("verifier") or not cookie.get("store_id"):
        return error_redirect("invalid_session", ETSY_STATE_COOKIE)

    if not secrets.compare_digest(str(cookie.get("state", "")), state):
        return error_redirect("invalid_state", ETSY_STATE_COOKIE)

    try:
        tokens = etsy_oauth.exchange_code(code, cookie["verifier"])
        shop_info = etsy_oauth.fetch_shop_info(tokens["access_token"])
    except (OAuthError, requests.RequestException, KeyError) as e:
        logger.error(f"Etsy callback failed for store {cookie['store_id']}: {e}")
        return error_redirect("callback_failed", ETSY_STATE_COOKIE)

    migration = progress.connect(
        store_id=cookie["store_id"],
        platform=MigrationPlatform.ETSY,
        source_shop_id=shop_info["shop_id"],
        source_shop_name=shop_info["shop_name"],
        token_fields=cipher.token_fields(
            tokens["access_token"],
            tokens.get("refresh_token"),
            tokens.get("expires_in"),
        ),
    )
    logger.info(f"Connected Etsy shop {shop_info['shop_id']} to migration {migration.id}")

    response = dashboard_redirect(connected="etsy")
    response.delete_cookie(ETSY_STATE_COOKIE)
    return response
