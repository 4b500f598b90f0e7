"""
Shared pytest fixtures for the store migration tests.

Provides an in-memory progress store, an in-memory loader, a token cipher
with a throwaway key, and factories for migrations and orchestrators wired
to scripted source clients, a recording sleep and a manual clock.
"""

from cryptography.fernet import Fernet
import pytest

from store_migration.loaders.memory_loader import InMemoryLoader
from store_migration.models.migration import MigrationPlatform, StoreMigration
from store_migration.orchestrator import MigrationOrchestrator
from store_migration.services.oauth.tokens import CredentialManager, TokenCipher
from store_migration.services.progress import ProgressStore
from store_migration.storage import InMemoryMigrationStorage
from tests.fakes import FakeClock, SleepRecorder

TEST_KEY = Fernet.generate_key().decode()


@pytest.fixture(autouse=True)
def migration_env(monkeypatch):
    monkeypatch.setenv("SHOPIFY_CLIENT_ID", "shopify-client")
    monkeypatch.setenv("SHOPIFY_CLIENT_SECRET", "shopify-secret")
    monkeypatch.setenv("ETSY_CLIENT_ID", "etsy-client")
    monkeypatch.setenv("NEXT_PUBLIC_APP_URL", "https://app.example.com/")
    monkeypatch.setenv("MIGRATION_ENCRYPTION_KEY", TEST_KEY)
    monkeypatch.setenv("STORE_API_URL", "https://store-api.example.com")


@pytest.fixture
def storage():
    return InMemoryMigrationStorage()


@pytest.fixture
def progress(storage):
    return ProgressStore(storage)


@pytest.fixture
def loader():
    return InMemoryLoader()


@pytest.fixture
def cipher():
    return TokenCipher(TEST_KEY)


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_migration(progress, cipher):
    """Factory creating a connected migration with an encrypted token."""
    def _make(platform=MigrationPlatform.SHOPIFY, store_id="store-1", **fields):
        migration = StoreMigration(
            store_id=store_id,
            platform=platform,
            source_shop_id="demo.myshopify.com" if platform == MigrationPlatform.SHOPIFY else "4242",
            source_shop_name="Demo Shop",
            access_token_encrypted=cipher.encrypt("source-token"),
        )
        for name, value in fields.items():
            setattr(migration, name, value)
        return progress.create(migration)
    return _make


@pytest.fixture
def make_orchestrator(progress, loader, cipher, sleep, clock):
    """Factory for an orchestrator whose source client is ``client``."""
    def _make(client, refresh=None, max_duration=270, loader_override=None):
        credentials = CredentialManager(progress, cipher, refresh=refresh) if refresh else CredentialManager(progress, cipher)
        factory = lambda migration, token: client
        return MigrationOrchestrator(
            progress=progress,
            loader=loader_override or loader,
            credentials=credentials,
            shopify_client_factory=factory,
            etsy_client_factory=factory,
            sleep=sleep,
            clock=clock,
            max_duration=max_duration,
            worker_id="test-worker",
        )
    return _make
