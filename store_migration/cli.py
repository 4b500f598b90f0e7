"""Command line entry point for running and inspecting store migrations."""

import argparse
import copy
import json
import logging
import sys

from .config import configure_logging, get_data_dir, get_store_api_key, get_store_api_url
from .loaders.api_loader import APILoader
from .loaders.memory_loader import InMemoryLoader
from .models.migration import MigrationConfig, MigrationProgress, MigrationStatus
from .orchestrator import MigrationOrchestrator
from .services.oauth.tokens import CredentialManager, TokenCipher
from .services.progress import ProgressStore
from .storage import InMemoryMigrationStorage, JsonFileMigrationStorage

logger = logging.getLogger(__name__)


def _progress_store(args) -> ProgressStore:
    return ProgressStore(JsonFileMigrationStorage(args.data_dir or get_data_dir()))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Store Migration Tool - Import Shopify and Etsy stores"
    )
    parser.add_argument("--data-dir", help="Directory holding migration records")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    run_parser = subparsers.add_parser("run", help="Run or resume a migration")
    run_parser.add_argument("migration_id", help="Migration to run")
    run_parser.add_argument("--products", action=argparse.BooleanOptionalAction, default=True,
                            help="Import products")
    run_parser.add_argument("--collections", action=argparse.BooleanOptionalAction, default=True,
                            help="Import collections (Etsy: shop sections)")
    run_parser.add_argument("--customers", action=argparse.BooleanOptionalAction, default=False,
                            help="Import customers (Shopify only)")
    run_parser.add_argument("--coupons", action=argparse.BooleanOptionalAction, default=False,
                            help="Import discount codes (Shopify only)")
    run_parser.add_argument("--orders", action=argparse.BooleanOptionalAction, default=False,
                            help="Import order history (Shopify only)")
    run_parser.add_argument("--product-status", choices=["draft", "active"], default="draft",
                            help="Status given to created products")
    run_parser.add_argument("--dry-run", action="store_true",
                            help="Create entities in memory instead of the store API")

    # Status
    status_parser = subparsers.add_parser("status", help="Show migration progress")
    status_parser.add_argument("migration_id", help="Migration to show")

    # Cancel
    cancel_parser = subparsers.add_parser("cancel", help="Cancel a migration")
    cancel_parser.add_argument("migration_id", help="Migration to cancel")

    return parser


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else None)

    if args.command == "run":
        return run_migration(args)
    elif args.command == "status":
        return show_status(args)
    elif args.command == "cancel":
        return cancel_migration(args)

    parser.print_help()
    return 1


def run_migration(args) -> int:
    """Run a migration until it completes, pauses or fails."""
    progress = _progress_store(args)
    migration = progress.get(args.migration_id)
    if migration is None:
        print(f"Migration not found: {args.migration_id}", file=sys.stderr)
        return 1

    if args.dry_run:
        # Work on a throwaway copy so the stored record is untouched
        progress = ProgressStore(InMemoryMigrationStorage())
        progress.create(copy.deepcopy(migration))
        loader = InMemoryLoader()
    else:
        loader = APILoader(get_store_api_url(), get_store_api_key())

    config = MigrationConfig(
        migration_id=args.migration_id,
        import_products=args.products,
        import_collections=args.collections,
        import_customers=args.customers,
        import_coupons=args.coupons,
        import_orders=args.orders,
        product_status=args.product_status,
    )

    orchestrator = MigrationOrchestrator(
        progress=progress,
        loader=loader,
        credentials=CredentialManager(progress, TokenCipher()),
    )
    result = orchestrator.run(config)

    print("\n" + "=" * 60)
    print(f"MIGRATION {result.status.value.upper()}")
    print("=" * 60)
    print(f"Platform: {result.platform.value} ({result.source_shop_name or result.source_shop_id})")
    for entity in ("products", "collections", "images", "customers", "coupons", "orders"):
        total = getattr(result, f"total_{entity}")
        migrated = getattr(result, f"migrated_{entity}")
        failed = getattr(result, f"failed_{entity}")
        if total or migrated or failed:
            print(f"{entity.capitalize()}: {migrated} migrated, {failed} failed, {total} total")
    if result.errors:
        print(f"Last error: [{result.errors[-1].type.value}] {result.errors[-1].message}")
    if args.dry_run:
        print(f"Dry run: {len(loader.store_products(result.store_id))} products created in memory")

    return 0 if result.status in (MigrationStatus.COMPLETED, MigrationStatus.PAUSED) else 2


def show_status(args) -> int:
    migration = _progress_store(args).get(args.migration_id)
    if migration is None:
        print(json.dumps({"migration": None}))
        return 1

    print(json.dumps({"migration": MigrationProgress.from_migration(migration).to_dict()}, indent=2))
    return 0


def cancel_migration(args) -> int:
    progress = _progress_store(args)
    migration = progress.get(args.migration_id)
    if migration is None:
        print(f"Migration not found: {args.migration_id}", file=sys.stderr)
        return 1
    if migration.status in (MigrationStatus.COMPLETED, MigrationStatus.CANCELLED):
        print(f"Cannot cancel migration in status: {migration.status.value}", file=sys.stderr)
        return 1

    progress.set_status(migration.id, MigrationStatus.CANCELLED)
    print(f"Migration {migration.id} cancelled")
    return 0


if __name__ == "__main__":
    sys.exit(main())
