"""Tests for the command line entry point."""

import json
from unittest.mock import patch

import pytest

from store_migration.cli import build_parser, main
from store_migration.models.migration import MigrationPlatform, MigrationStatus, StoreMigration
from store_migration.services.progress import ProgressStore
from store_migration.storage import JsonFileMigrationStorage
from tests.fakes import FakeShopifyClient, shopify_product


@pytest.fixture
def file_progress(tmp_path):
    return ProgressStore(JsonFileMigrationStorage(str(tmp_path)))


@pytest.fixture
def stored(file_progress):
    return file_progress.create(StoreMigration(
        store_id="store-1",
        platform=MigrationPlatform.SHOPIFY,
        source_shop_id="demo.myshopify.com",
        source_shop_name="Demo Shop",
        total_products=3,
        migrated_products=1,
    ))


def test_run_defaults():
    args = build_parser().parse_args(["run", "m-1"])
    assert args.products is True
    assert args.collections is True
    assert args.customers is False
    assert args.product_status == "draft"


def test_status_prints_progress(tmp_path, stored, capsys):
    assert main(["--data-dir", str(tmp_path), "status", stored.id]) == 0

    body = json.loads(capsys.readouterr().out)["migration"]
    assert body["id"] == stored.id
    assert body["migrated_products"] == 1
    assert body["status"] == "connected"


def test_status_unknown(tmp_path, capsys):
    assert main(["--data-dir", str(tmp_path), "status", "missing"]) == 1
    assert json.loads(capsys.readouterr().out) == {"migration": None}


def test_cancel(tmp_path, stored, file_progress):
    assert main(["--data-dir", str(tmp_path), "cancel", stored.id]) == 0
    assert file_progress.get(stored.id).status == MigrationStatus.CANCELLED

    assert main(["--data-dir", str(tmp_path), "cancel", stored.id]) == 1


def test_run_passes_options_to_orchestrator(tmp_path, stored, capsys):
    stored.status = MigrationStatus.COMPLETED
    stored.migrated_products = 3

    with patch("store_migration.cli.MigrationOrchestrator") as orchestrator_cls:
        orchestrator_cls.return_value.run.return_value = stored
        code = main([
            "--data-dir", str(tmp_path), "run", stored.id,
            "--no-collections", "--orders", "--product-status", "active", "--dry-run",
        ])

    assert code == 0
    config = orchestrator_cls.return_value.run.call_args.args[0]
    assert config.migration_id == stored.id
    assert config.import_collections is False
    assert config.import_orders is True
    assert config.product_status == "active"

    out = capsys.readouterr().out
    assert "MIGRATION COMPLETED" in out
    assert "Products: 3 migrated, 0 failed, 3 total" in out


def test_run_failed_exit_code(tmp_path, stored):
    stored.status = MigrationStatus.FAILED

    with patch("store_migration.cli.MigrationOrchestrator") as orchestrator_cls:
        orchestrator_cls.return_value.run.return_value = stored
        assert main(["--data-dir", str(tmp_path), "run", stored.id, "--dry-run"]) == 2


def test_run_unknown_migration(tmp_path):
    assert main(["--data-dir", str(tmp_path), "run", "missing"]) == 1


def test_dry_run_leaves_stored_record_untouched(tmp_path, file_progress, cipher, capsys):
    migration = file_progress.create(StoreMigration(
        store_id="store-1",
        platform=MigrationPlatform.SHOPIFY,
        source_shop_id="demo.myshopify.com",
        access_token_encrypted=cipher.encrypt("source-token"),
    ))
    client = FakeShopifyClient(products=[shopify_product(1), shopify_product(2)])

    with patch("store_migration.orchestrator.ShopifyExtractor", return_value=client):
        code = main(["--data-dir", str(tmp_path), "run", migration.id, "--no-collections", "--dry-run"])

    assert code == 0
    out = capsys.readouterr().out
    assert "MIGRATION COMPLETED" in out
    assert "Dry run: 2 products created in memory" in out

    stored = file_progress.get(migration.id)
    assert stored.status == MigrationStatus.CONNECTED
    assert stored.product_id_map == {}
    assert stored.migrated_products == 0
    assert stored.version == migration.version
