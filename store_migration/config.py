"""Environment configuration and fixed migration constants."""

import logging
import os
from typing import Optional

# Source platform API settings
SHOPIFY_API_VERSION = "2024-10"
SHOPIFY_SCOPES = "read_products,read_orders,read_customers,read_discounts"
ETSY_SCOPES = "listings_r shops_r"
ETSY_API_BASE = "https://openapi.etsy.com/v3"
ETSY_AUTH_URL = "https://www.etsy.com/oauth/connect"
ETSY_TOKEN_URL = "https://api.etsy.com/v3/public/oauth/token"

# Pagination and batching
PRODUCTS_PER_PAGE = 50
ETSY_SECTION_LISTINGS_LIMIT = 100
IMAGE_BATCH_SIZE = 3

# Host execution ceiling is 300s; stop with a 30s margin
MAX_MIGRATION_DURATION_SECONDS = 270

# Rate limit backoff
RATE_LIMIT_BACKOFF_BASE_MS = 1000
RATE_LIMIT_BACKOFF_MAX_MS = 30000
MAX_RATE_LIMIT_ATTEMPTS = 10
DEFAULT_RETRY_AFTER_SECONDS = 2.0

# Progress record
MAX_STORED_ERRORS = 100
LEASE_TTL_SECONDS = 330

# OAuth state cookies
SHOPIFY_STATE_COOKIE = "sf_shopify_state"
ETSY_STATE_COOKIE = "sf_etsy_state"
STATE_COOKIE_MAX_AGE = 600

SHOPIFY_CALLBACK_PATH = "/api/migration/shopify/callback"
ETSY_CALLBACK_PATH = "/api/migration/etsy/callback"

DEFAULT_DATA_DIR = "./data/migrations"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConfigurationError(RuntimeError):
    """A required environment variable is missing."""


def _require(name: str, purpose: str) -> str:
    value = os.environ.get(name, "").strip()
    if not value:
        raise ConfigurationError(f"{name} is not set; it is required for {purpose}")
    return value


def get_shopify_client_id() -> str:
    return _require("SHOPIFY_CLIENT_ID", "the Shopify OAuth flow")


def get_shopify_client_secret() -> str:
    return _require("SHOPIFY_CLIENT_SECRET", "the Shopify OAuth flow")


def get_etsy_client_id() -> str:
    return _require("ETSY_CLIENT_ID", "the Etsy OAuth flow and Etsy API calls")


def get_app_url() -> str:
    """Public base URL of the app, used to build OAuth redirect URIs."""
    return _require("NEXT_PUBLIC_APP_URL", "building OAuth redirect URLs").rstrip("/")


def get_encryption_key() -> str:
    return _require("MIGRATION_ENCRYPTION_KEY", "encrypting stored OAuth credentials")


def get_store_api_url() -> str:
    return _require("STORE_API_URL", "creating migrated entities in the store").rstrip("/")


def get_store_api_key() -> Optional[str]:
    return os.environ.get("STORE_API_KEY") or None


def get_data_dir() -> str:
    return os.environ.get("MIGRATION_DATA_DIR", DEFAULT_DATA_DIR)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for entry points."""
    level_name = (level or os.environ.get("MIGRATION_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
