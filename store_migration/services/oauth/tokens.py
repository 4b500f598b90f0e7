"""Encrypted credential storage and access-token retrieval."""

import logging
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from . import etsy
from .errors import OAuthError
from ...config import get_encryption_key
from ...models.migration import MigrationPlatform, StoreMigration, utcnow

logger = logging.getLogger(__name__)


class TokenCipher:
    """Symmetric encryption for OAuth tokens at rest."""

    def __init__(self, key: Optional[str] = None):
        """
        Initialize the cipher.

        Args:
            key: URL-safe base64 Fernet key, defaults to MIGRATION_ENCRYPTION_KEY
        """
        self._fernet = Fernet((key or get_encryption_key()).encode())

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def encrypt(self, value: str) -> str:
        return self._fernet.encrypt(value.encode()).decode()

    def decrypt(self, value: str) -> str:
        try:
            return self._fernet.decrypt(value.encode()).decode()
        except InvalidToken as e:
            raise OAuthError("Stored credential could not be decrypted") from e

    def token_fields(
        self,
        access_token: str,
        refresh_token: Optional[str] = None,
        expires_in: Optional[int] = None
    ) -> Dict[str, Any]:
        """Migration field changes storing a freshly issued token set."""
        return {
            "access_token_encrypted": self.encrypt(access_token),
            "refresh_token_encrypted": self.encrypt(refresh_token) if refresh_token else None,
            "token_expires_at": utcnow() + timedelta(seconds=int(expires_in)) if expires_in else None,
        }


class CredentialManager:
    """
    Hands out a usable access token for a migration.

    Shopify offline tokens never expire. Etsy tokens are short-lived: once
    ``token_expires_at`` has passed the refresh token is exchanged and the new
    pair is persisted before the access token is returned.
    """

    def __init__(
        self,
        progress,
        cipher: TokenCipher,
        refresh: Callable[[str], Dict[str, Any]] = etsy.refresh_token
    ):
        self.progress = progress
        self.cipher = cipher
        self._refresh = refresh

    def get_access_token(self, migration: StoreMigration) -> str:
        if not migration.access_token_encrypted:
            raise OAuthError(f"Migration {migration.id} has no stored access token")

        if migration.platform == MigrationPlatform.ETSY and migration.token_expired:
            return self._refresh_etsy(migration)

        return self.cipher.decrypt(migration.access_token_encrypted)

    def _refresh_etsy(self, migration: StoreMigration) -> str:
        if not migration.refresh_token_encrypted:
            raise OAuthError(f"Etsy token for migration {migration.id} expired and no refresh token is stored")

        logger.info(f"Etsy token for migration {migration.id} expired, refreshing")
        tokens = self._refresh(self.cipher.decrypt(migration.refresh_token_encrypted))
        access_token = tokens.get("access_token") if isinstance(tokens, dict) else None
        if not access_token:
            raise OAuthError(f"Etsy token refresh for migration {migration.id} returned no access token")
        fields = self.cipher.token_fields(
            access_token,
            tokens.get("refresh_token"),
            tokens.get("expires_in"),
        )
        if fields["refresh_token_encrypted"] is None:
            fields["refresh_token_encrypted"] = migration.refresh_token_encrypted

        self.progress.save_tokens(
            migration.id,
            fields["access_token_encrypted"],
            fields["refresh_token_encrypted"],
            fields["token_expires_at"],
        )
        return access_token
