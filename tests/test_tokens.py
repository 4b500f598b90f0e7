"""Tests for credential encryption and access-token retrieval."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from store_migration.config import ConfigurationError
from store_migration.models.migration import MigrationPlatform, utcnow
from store_migration.services.oauth.errors import OAuthError
from store_migration.services.oauth.tokens import CredentialManager, TokenCipher


def test_cipher_round_trip(cipher):
    encrypted = cipher.encrypt("shpat_secret")
    assert encrypted != "shpat_secret"
    assert cipher.decrypt(encrypted) == "shpat_secret"


def test_cipher_wrong_key_raises_oauth_error(cipher):
    other = TokenCipher(TokenCipher.generate_key())
    with pytest.raises(OAuthError):
        other.decrypt(cipher.encrypt("shpat_secret"))


def test_cipher_uses_environment_key(cipher):
    assert TokenCipher().decrypt(cipher.encrypt("x")) == "x"


def test_cipher_requires_key(monkeypatch):
    monkeypatch.delenv("MIGRATION_ENCRYPTION_KEY")
    with pytest.raises(ConfigurationError, match="MIGRATION_ENCRYPTION_KEY"):
        TokenCipher()


def test_token_fields(cipher):
    fields = cipher.token_fields("access", "refresh", 3600)

    assert cipher.decrypt(fields["access_token_encrypted"]) == "access"
    assert cipher.decrypt(fields["refresh_token_encrypted"]) == "refresh"
    remaining = fields["token_expires_at"] - utcnow()
    assert timedelta(minutes=59) < remaining <= timedelta(hours=1)


def test_token_fields_without_refresh(cipher):
    fields = cipher.token_fields("access")
    assert fields["refresh_token_encrypted"] is None
    assert fields["token_expires_at"] is None


# ---------------------------------------------------------------------------
# CredentialManager
# ---------------------------------------------------------------------------

def test_shopify_token_is_decrypted(progress, cipher, make_migration):
    migration = make_migration()
    refresh = MagicMock()

    token = CredentialManager(progress, cipher, refresh=refresh).get_access_token(migration)

    assert token == "source-token"
    refresh.assert_not_called()


def test_missing_token_raises(progress, cipher, make_migration):
    migration = make_migration(access_token_encrypted=None)
    with pytest.raises(OAuthError):
        CredentialManager(progress, cipher).get_access_token(migration)


def test_fresh_etsy_token_is_not_refreshed(progress, cipher, make_migration):
    migration = make_migration(
        platform=MigrationPlatform.ETSY,
        refresh_token_encrypted=cipher.encrypt("refresh-1"),
        token_expires_at=utcnow() + timedelta(minutes=30),
    )
    refresh = MagicMock()

    assert CredentialManager(progress, cipher, refresh=refresh).get_access_token(migration) == "source-token"
    refresh.assert_not_called()


def test_expired_etsy_token_is_refreshed_and_persisted(progress, cipher, make_migration):
    migration = make_migration(
        platform=MigrationPlatform.ETSY,
        refresh_token_encrypted=cipher.encrypt("refresh-1"),
        token_expires_at=utcnow() - timedelta(minutes=1),
    )
    refresh = MagicMock(return_value={"access_token": "new-access", "refresh_token": "refresh-2", "expires_in": 3600})

    token = CredentialManager(progress, cipher, refresh=refresh).get_access_token(migration)

    assert token == "new-access"
    refresh.assert_called_once_with("refresh-1")
    stored = progress.get(migration.id)
    assert cipher.decrypt(stored.access_token_encrypted) == "new-access"
    assert cipher.decrypt(stored.refresh_token_encrypted) == "refresh-2"
    assert stored.token_expires_at > utcnow()


def test_refresh_keeps_old_refresh_token_when_none_returned(progress, cipher, make_migration):
    migration = make_migration(
        platform=MigrationPlatform.ETSY,
        refresh_token_encrypted=cipher.encrypt("refresh-1"),
        token_expires_at=utcnow() - timedelta(minutes=1),
    )
    refresh = MagicMock(return_value={"access_token": "new-access", "expires_in": 3600})

    CredentialManager(progress, cipher, refresh=refresh).get_access_token(migration)

    assert cipher.decrypt(progress.get(migration.id).refresh_token_encrypted) == "refresh-1"


def test_expired_etsy_token_without_refresh_token(progress, cipher, make_migration):
    migration = make_migration(
        platform=MigrationPlatform.ETSY,
        token_expires_at=utcnow() - timedelta(minutes=1),
    )
    with pytest.raises(OAuthError, match="no refresh token"):
        CredentialManager(progress, cipher).get_access_token(migration)


def test_refresh_without_access_token_raises(progress, cipher, make_migration):
    migration = make_migration(
        platform=MigrationPlatform.ETSY,
        refresh_token_encrypted=cipher.encrypt("refresh-1"),
        token_expires_at=utcnow() - timedelta(minutes=1),
    )
    refresh = MagicMock(return_value={"error": "invalid_grant"})

    with pytest.raises(OAuthError, match="no access token"):
        CredentialManager(progress, cipher, refresh=refresh).get_access_token(migration)
    assert progress.get(migration.id).access_token_encrypted == migration.access_token_encrypted
