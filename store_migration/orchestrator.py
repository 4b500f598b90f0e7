"""Migration orchestrator - drives a store migration through its phases."""

import logging
import time
import uuid
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import requests

from .config import (
    MAX_MIGRATION_DURATION_SECONDS,
    MAX_RATE_LIMIT_ATTEMPTS,
    RATE_LIMIT_BACKOFF_BASE_MS,
    RATE_LIMIT_BACKOFF_MAX_MS,
    ConfigurationError,
)
from .extractors.base import RateLimitError, SourcePage
from .extractors.etsy_extractor import EtsyExtractor
from .extractors.shopify_extractor import ShopifyExtractor
from .loaders.base import BaseLoader
from .models.migration import (
    ErrorType,
    MigrationConfig,
    MigrationError,
    MigrationPhase,
    MigrationPlatform,
    MigrationStatus,
    StoreMigration,
)
from .models.record import MigrationProduct
from .services.image_downloader import ImageDownloader
from .services.oauth.errors import OAuthError
from .services.oauth.tokens import CredentialManager
from .services.progress import ProgressStore, RunAccumulator
from .services.transformers import (
    etsy as etsy_transformer,
    shopify as shopify_transformer,
    shopify_customers,
    shopify_discounts,
    shopify_orders,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[StoreMigration, str], Any]

_PHASE_ORDER = list(MigrationPhase)


class MigrationStateError(ValueError):
    """The migration is in a state that cannot be run."""


class PhaseResult(str, Enum):
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class _RateLimitExhausted(Exception):
    """Raised when a source call is still rate limited after the last retry."""


def backoff_delay(attempt: int) -> float:
    """Seconds to wait before retry ``attempt`` (1-based)."""
    return min(RATE_LIMIT_BACKOFF_BASE_MS * (2 ** attempt), RATE_LIMIT_BACKOFF_MAX_MS) / 1000.0


def default_shopify_client(migration: StoreMigration, access_token: str) -> ShopifyExtractor:
    return ShopifyExtractor(migration.source_shop_id, access_token)


def default_etsy_client(migration: StoreMigration, access_token: str) -> EtsyExtractor:
    return EtsyExtractor(migration.source_shop_id, access_token)


class MigrationOrchestrator:
    """
    Runs one invocation of a store migration.

    Phases run in order: products, collections, customers, coupons, orders.
    The last three exist for Shopify only. Before every page the orchestrator
    checks the wall-clock budget (pausing when it is spent) and whether the
    migration was cancelled. Progress is flushed after every record and the
    cursor after every page, so a paused or crashed run resumes exactly.

    Handles:
    - Rate limits: exponential backoff on the same call, pause after the last retry
    - Per-record failures: logged to the migration, counted, skipped
    - Anything else: recorded as a pipeline error, migration marked failed
    """

    def __init__(
        self,
        progress: ProgressStore,
        loader: BaseLoader,
        credentials: CredentialManager,
        shopify_client_factory: ClientFactory = default_shopify_client,
        etsy_client_factory: ClientFactory = default_etsy_client,
        image_downloader: Optional[ImageDownloader] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        max_duration: float = MAX_MIGRATION_DURATION_SECONDS,
        worker_id: Optional[str] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            progress: Progress store for migration records
            loader: Creates entities in the target store
            credentials: Decrypts and refreshes source access tokens
            shopify_client_factory: Builds a Shopify client from (migration, token)
            etsy_client_factory: Builds an Etsy client from (migration, token)
            image_downloader: Image uploader, defaults to one over ``loader``
            sleep: Used for rate limit backoff
            clock: Monotonic seconds, used for the duration budget
            max_duration: Seconds a single run may spend before pausing
            worker_id: Lease owner name for this orchestrator
        """
        self.progress = progress
        self.loader = loader
        self.credentials = credentials
        self.client_factories = {
            MigrationPlatform.SHOPIFY: shopify_client_factory,
            MigrationPlatform.ETSY: etsy_client_factory,
        }
        self.images = image_downloader or ImageDownloader(loader)
        self.sleep = sleep
        self.clock = clock
        self.max_duration = max_duration
        self.worker_id = worker_id or f"worker-{uuid.uuid4().hex[:12]}"

        self._started = 0.0
        self._demo_products_removed = False

    def run(self, config: MigrationConfig) -> StoreMigration:
        """
        Run (or resume) a migration until it completes, pauses, fails or is cancelled.

        Args:
            config: Options for this run

        Returns:
            The migration record as stored when the run returned

        Raises:
            MigrationNotFoundError: no such migration
            MigrationLockedError: another worker is running it
            MigrationStateError: the migration already completed
        """
        migration = self.progress.require(config.migration_id)
        if migration.status == MigrationStatus.COMPLETED:
            raise MigrationStateError(f"Migration {migration.id} is already completed")

        self.progress.acquire_lease(migration.id, self.worker_id)
        self._started = self.clock()
        self._demo_products_removed = False
        try:
            self._run(config)
        finally:
            self.progress.release_lease(migration.id, self.worker_id)

        return self.progress.require(migration.id)

    def _run(self, config: MigrationConfig) -> None:
        migration_id = config.migration_id
        migration = self.progress.set_status(migration_id, MigrationStatus.RUNNING)
        logger.info(f"Starting {migration.platform.value} migration {migration_id} for store {migration.store_id}")

        try:
            try:
                access_token = self.credentials.get_access_token(migration)
            except (OAuthError, ConfigurationError, requests.RequestException) as e:
                logger.error(f"Could not obtain access token for migration {migration_id}: {e}")
                self.progress.add_error(migration_id, MigrationError(ErrorType.AUTH, str(e)))
                self.progress.finish_run(migration_id, MigrationStatus.FAILED)
                return

            client = self.client_factories[migration.platform](migration, access_token)

            for phase, runner in self._phases(migration, config):
                result = self._run_phase(migration_id, phase, runner, client, config)
                if result != PhaseResult.COMPLETED:
                    logger.info(f"Migration {migration_id} stopped in {phase.value} phase: {result.value}")
                    return

            self.progress.set_cursor(migration_id, None, MigrationPhase.DONE)
            if self.progress.finish_run(migration_id, MigrationStatus.COMPLETED).status == MigrationStatus.COMPLETED:
                logger.info(f"Migration {migration_id} completed")

        except Exception as e:
            logger.exception(f"Migration {migration_id} failed")
            self.progress.add_error(
                migration_id,
                MigrationError(ErrorType.PIPELINE, str(e) or type(e).__name__),
            )
            self.progress.finish_run(migration_id, MigrationStatus.FAILED)

    def _phases(self, migration: StoreMigration, config: MigrationConfig):
        """Enabled phases still to run, in order."""
        phases = [
            (MigrationPhase.PRODUCTS, config.import_products, self._migrate_products),
            (MigrationPhase.COLLECTIONS, config.import_collections, self._migrate_collections),
        ]
        shopify_only = [
            (MigrationPhase.CUSTOMERS, config.import_customers, self._migrate_customers),
            (MigrationPhase.COUPONS, config.import_coupons, self._migrate_coupons),
            (MigrationPhase.ORDERS, config.import_orders, self._migrate_orders),
        ]
        if migration.platform == MigrationPlatform.SHOPIFY:
            phases.extend(shopify_only)
        else:
            skipped = [phase.value for phase, enabled, _ in shopify_only if enabled]
            if skipped:
                logger.info(f"Ignoring {', '.join(skipped)} for {migration.platform.value}: Shopify only")

        # Phases before current_phase finished in an earlier invocation
        resume_index = _PHASE_ORDER.index(migration.current_phase) if migration.current_phase else 0

        selected = []
        for phase, enabled, runner in phases:
            if not enabled:
                continue
            if _PHASE_ORDER.index(phase) < resume_index:
                logger.info(f"Skipping {phase.value} for migration {migration.id}: finished by an earlier run")
                continue
            selected.append((phase, runner))
        return selected

    def _run_phase(self, migration_id: str, phase: MigrationPhase, runner, client, config) -> PhaseResult:
        migration = self.progress.require(migration_id)

        # The stored cursor belongs to the phase it was saved in
        if migration.current_phase == phase:
            start_cursor = migration.last_cursor
        else:
            start_cursor = None
            migration = self.progress.set_cursor(migration_id, None, phase)

        logger.info(f"=== {phase.value.upper()} (migration {migration_id}, cursor {start_cursor}) ===")
        try:
            return runner(migration, client, config, start_cursor)
        except _RateLimitExhausted as e:
            logger.warning(f"Pausing migration {migration_id}: {e}")
            self.progress.add_error(migration_id, MigrationError(
                ErrorType.RATE_LIMIT,
                f"Too many rate limit retries during {phase.value} import, pausing migration",
            ))
            self.progress.finish_run(migration_id, MigrationStatus.PAUSED)
            return PhaseResult.PAUSED

    # Run control

    def elapsed(self) -> float:
        return self.clock() - self._started

    def _checkpoint(self, migration_id: str) -> Optional[PhaseResult]:
        """Stop reason before the next source request, or None to continue."""
        if self.progress.require(migration_id).status == MigrationStatus.CANCELLED:
            logger.info(f"Migration {migration_id} was cancelled")
            return PhaseResult.CANCELLED

        if self.elapsed() > self.max_duration:
            logger.warning(f"Migration {migration_id} reached its {self.max_duration}s budget, pausing")
            migration = self.progress.finish_run(migration_id, MigrationStatus.PAUSED)
            if migration.status == MigrationStatus.CANCELLED:
                return PhaseResult.CANCELLED
            return PhaseResult.PAUSED

        return None

    def _call(self, fn: Callable, *args):
        """Call a source client, backing off and retrying while it is rate limited."""
        attempt = 0
        while True:
            try:
                return fn(*args)
            except RateLimitError as e:
                attempt += 1
                if attempt > MAX_RATE_LIMIT_ATTEMPTS:
                    raise _RateLimitExhausted(f"{e} after {MAX_RATE_LIMIT_ATTEMPTS} retries") from e
                delay = backoff_delay(attempt)
                logger.warning(
                    f"{e.platform} rate limited (retry-after {e.retry_after}s), "
                    f"backing off {delay:.0f}s, attempt {attempt}"
                )
                self.sleep(delay)

    def _paginate(
        self,
        migration_id: str,
        phase: MigrationPhase,
        entity: str,
        fetch: Callable[[Optional[str]], SourcePage],
        transform: Callable[[Dict[str, Any]], Any],
        handle: Callable[[Any], None],
        cursor: Optional[str]
    ) -> PhaseResult:
        """
        Page through a source resource from ``cursor``.

        Records within a page are handled in source order. The cursor of the
        next page is persisted once the current page is done.
        """
        while True:
            stop = self._checkpoint(migration_id)
            if stop:
                return stop

            page = self._call(fetch, cursor)
            records = self._transform_page(migration_id, entity, page.items, transform)
            logger.info(f"{phase.value}: page of {len(page.items)} ({len(records)} importable)")

            for record in records:
                handle(record)

            if not page.has_next_page or not page.end_cursor:
                return PhaseResult.COMPLETED

            cursor = page.end_cursor
            self.progress.set_cursor(migration_id, cursor, phase)

    def _transform_page(
        self,
        migration_id: str,
        entity: str,
        items: List[Dict[str, Any]],
        transform: Callable[[Dict[str, Any]], Any]
    ) -> List[Any]:
        """Transform raw items, dropping skipped ones and recording malformed ones."""
        records = []
        for item in items:
            try:
                record = transform(item)
            except (KeyError, TypeError, ValueError) as e:
                source_id = str(item.get("id") or item.get("listing_id") or "")
                logger.error(f"Could not transform {entity} {source_id}: {e!r}")
                acc = RunAccumulator(migration_id)
                acc.add_error(MigrationError(
                    ErrorType(entity),
                    f"Invalid source record: {e!r}",
                    source_id=source_id or None,
                    source_title=item.get("title"),
                ))
                acc.increment(f"failed_{entity}s")
                self.progress.flush(acc)
                continue
            if record is not None:
                records.append(record)
        return records

    def _ensure_total(self, migration: StoreMigration, counter: str, count: Callable[[], int]) -> None:
        if getattr(migration, counter) == 0:
            total = self._call(count)
            self.progress.set_counts(migration.id, {counter: total})

    def _load_one(
        self,
        migration_id: str,
        entity: str,
        source_id: str,
        title: Optional[str],
        id_map: Dict[str, str],
        create: Callable[[RunAccumulator], str]
    ) -> None:
        """
        Create one record unless it was already migrated, then flush its progress.

        Failures are recorded against the record and counted, never raised.
        """
        if source_id in id_map:
            return

        acc = RunAccumulator(migration_id)
        try:
            internal_id = create(acc)
            acc.map_id(entity, source_id, internal_id)
            acc.increment(f"migrated_{entity}s")
            id_map[source_id] = internal_id
        except Exception as e:
            logger.error(f"Failed to migrate {entity} {source_id}: {e}")
            # A row created before the failure stays mapped so a rerun does not duplicate it
            created = acc.id_maps.get(entity, {}).get(source_id)
            acc.clear()
            if created:
                acc.map_id(entity, source_id, created)
                id_map[source_id] = created
            acc.add_error(MigrationError(
                ErrorType(entity),
                str(e) or type(e).__name__,
                source_id=source_id,
                source_title=title,
            ))
            acc.increment(f"failed_{entity}s")

        self.progress.flush(acc)

    # Phases

    def _migrate_products(self, migration, client, config, cursor) -> PhaseResult:
        if migration.platform == MigrationPlatform.SHOPIFY:
            transform = shopify_transformer.transform_product
        else:
            transform = etsy_transformer.transform_listing

        self._ensure_total(migration, "total_products", client.count_products)
        product_ids = dict(migration.product_id_map)

        def create(product: MigrationProduct, acc: RunAccumulator) -> str:
            if not product_ids and not self._demo_products_removed:
                self.loader.delete_demo_products(migration.store_id)
                self._demo_products_removed = True

            product_id = self.loader.load_product(migration.store_id, product, config.product_status)
            acc.map_id("product", product.source_id, product_id)
            for variant in product.variants:
                self.loader.load_variant(product_id, variant)
            if product.images:
                self._upload_images(migration.store_id, product_id, product, acc)
            return product_id

        def handle(product: MigrationProduct) -> None:
            self._load_one(
                migration.id, "product", product.source_id, product.title, product_ids,
                lambda acc: create(product, acc),
            )

        return self._paginate(migration.id, MigrationPhase.PRODUCTS, "product", client.fetch_products, transform, handle, cursor)

    def _upload_images(self, store_id: str, product_id: str, product: MigrationProduct, acc: RunAccumulator) -> None:
        results = self.images.download_and_upload(store_id, product_id, product.images)
        acc.increment("total_images", len(results))
        for result in results:
            if result.success:
                acc.increment("migrated_images")
            else:
                acc.increment("failed_images")
                acc.add_error(MigrationError(
                    ErrorType.IMAGE,
                    f"Image {result.position}: {result.error}",
                    source_id=product.source_id,
                    source_title=product.title,
                ))

    def _migrate_collections(self, migration, client, config, cursor) -> PhaseResult:
        # Products may have been migrated by an earlier invocation
        product_ids = self.progress.require(migration.id).product_id_map
        collection_ids = dict(migration.collection_id_map)

        def handle(collection) -> None:
            self._load_one(
                migration.id, "collection", collection.source_id, collection.title, collection_ids,
                lambda acc: self.loader.load_collection(migration.store_id, collection, product_ids),
            )

        if migration.platform == MigrationPlatform.SHOPIFY:
            self._ensure_total(migration, "total_collections", client.count_collections)
            return self._paginate(
                migration.id, MigrationPhase.COLLECTIONS, "collection",
                client.fetch_collections, shopify_transformer.transform_collection, handle, cursor,
            )

        return self._migrate_etsy_sections(migration, client, collection_ids, handle)

    def _migrate_etsy_sections(self, migration, client, collection_ids, handle) -> PhaseResult:
        stop = self._checkpoint(migration.id)
        if stop:
            return stop

        sections = self._call(client.fetch_sections)
        if migration.total_collections == 0:
            self.progress.set_counts(migration.id, {"total_collections": len(sections)})

        for section in sections:
            if str(section["shop_section_id"]) in collection_ids:
                continue
            stop = self._checkpoint(migration.id)
            if stop:
                return stop
            listing_ids = self._call(client.fetch_section_listing_ids, section["shop_section_id"])
            handle(etsy_transformer.transform_section(section, listing_ids))

        return PhaseResult.COMPLETED

    def _migrate_customers(self, migration, client, config, cursor) -> PhaseResult:
        self._ensure_total(migration, "total_customers", client.count_customers)
        customer_ids = dict(migration.customer_id_map)

        def handle(customer) -> None:
            self._load_one(
                migration.id, "customer", customer.source_id, customer.email, customer_ids,
                lambda acc: self.loader.load_customer(migration.store_id, customer),
            )

        return self._paginate(
            migration.id, MigrationPhase.CUSTOMERS, "customer",
            client.fetch_customers, shopify_customers.transform_customer, handle, cursor,
        )

    def _migrate_coupons(self, migration, client, config, cursor) -> PhaseResult:
        self._ensure_total(migration, "total_coupons", client.count_discounts)
        coupon_ids = dict(migration.coupon_id_map)

        def handle(coupon) -> None:
            self._load_one(
                migration.id, "coupon", coupon.source_id, coupon.code, coupon_ids,
                lambda acc: self.loader.load_coupon(migration.store_id, coupon),
            )

        return self._paginate(
            migration.id, MigrationPhase.COUPONS, "coupon",
            client.fetch_discounts, shopify_discounts.transform_discount, handle, cursor,
        )

    def _migrate_orders(self, migration, client, config, cursor) -> PhaseResult:
        self._ensure_total(migration, "total_orders", client.count_orders)

        refreshed = self.progress.require(migration.id)
        product_ids = refreshed.product_id_map
        order_ids = dict(refreshed.order_id_map)
        customers_by_email = self.loader.find_customer_ids_by_email(migration.store_id)

        def create(order) -> str:
            email = order.customer_email.lower()
            linked = refreshed.customer_id_map.get(order.customer_source_id or "")
            if email and linked:
                customers_by_email.setdefault(email, linked)
            return self.loader.load_order(migration.store_id, order, customers_by_email, product_ids)

        def handle(order) -> None:
            self._load_one(
                migration.id, "order", order.source_id, order.order_number, order_ids,
                lambda acc: create(order),
            )

        return self._paginate(
            migration.id, MigrationPhase.ORDERS, "order",
            client.fetch_orders, shopify_orders.transform_order, handle, cursor,
        )
