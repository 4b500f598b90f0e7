"""Helpers shared by the OAuth start and callback routes."""

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi.responses import RedirectResponse

from ..config import STATE_COOKIE_MAX_AGE, get_app_url

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/dashboard/migrate"


def dashboard_redirect(**params: str) -> RedirectResponse:
    """Redirect back to the migration dashboard with a status query."""
    return RedirectResponse(f"{get_app_url()}{DASHBOARD_PATH}?{urlencode(params)}", status_code=302)


def error_redirect(reason: str, cookie_name: Optional[str] = None) -> RedirectResponse:
    logger.warning(f"OAuth callback rejected: {reason}")
    response = dashboard_redirect(error=reason)
    if cookie_name:
        response.delete_cookie(cookie_name)
    return response


def set_state_cookie(response: RedirectResponse, name: str, data: Dict[str, Any]) -> None:
    response.set_cookie(
        key=name,
        value=json.dumps(data),
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
    )


def read_state_cookie(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode a state cookie, None when it is malformed."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
