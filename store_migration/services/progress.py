"""Progress tracking for store migrations.

Every write goes through ``MigrationStorage.update``. Read-modify-write
operations (counter increments, error appends, ID map merges) are applied as
conditional updates against the version that was read and retried when
another writer got there first, so concurrent writers cannot lose updates.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from ..config import LEASE_TTL_SECONDS, MAX_STORED_ERRORS
from ..models.migration import (
    COUNTER_FIELDS,
    ID_MAP_FIELDS,
    MigrationError,
    MigrationPhase,
    MigrationPlatform,
    MigrationStatus,
    StoreMigration,
    utcnow,
)
from ..storage import MigrationNotFoundError, MigrationStorage, VersionConflictError

logger = logging.getLogger(__name__)

DEFAULT_CONFLICT_RETRIES = 5


class MigrationLockedError(RuntimeError):
    """Another worker holds the run lease for this migration."""

    def __init__(self, migration_id: str, owner: Optional[str], expires_at: Optional[datetime]):
        super().__init__(f"Migration {migration_id} is already being run by {owner} until {expires_at}")
        self.migration_id = migration_id
        self.owner = owner
        self.expires_at = expires_at


def _check_counter(name: str) -> None:
    if name not in COUNTER_FIELDS:
        raise ValueError(f"Unknown counter: {name}")


def _status_changes(status: MigrationStatus, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    changes: Dict[str, Any] = {"status": status}
    if status == MigrationStatus.RUNNING:
        changes["started_at"] = utcnow()
        changes["completed_at"] = None
    elif status.is_terminal:
        changes["completed_at"] = utcnow()
    if extra:
        changes.update(extra)
    return changes


class RunAccumulator:
    """
    Collects the progress of one unit of work for a single flush.

    Holds counter deltas, new ID map entries and errors. ``apply`` turns them
    into field changes against the latest stored record, so the whole unit
    lands in one versioned write.
    """

    def __init__(self, migration_id: str):
        self.migration_id = migration_id
        self.counters: Dict[str, int] = {}
        self.id_maps: Dict[str, Dict[str, str]] = {}
        self.errors: List[MigrationError] = []

    def increment(self, field: str, amount: int = 1) -> None:
        _check_counter(field)
        self.counters[field] = self.counters.get(field, 0) + amount

    def map_id(self, entity: str, source_id: str, internal_id: str) -> None:
        if entity not in ID_MAP_FIELDS:
            raise ValueError(f"Unknown ID map entity: {entity}")
        self.id_maps.setdefault(entity, {})[source_id] = internal_id

    def add_error(self, error: MigrationError) -> None:
        self.errors.append(error)

    @property
    def is_empty(self) -> bool:
        return not (self.counters or self.id_maps or self.errors)

    def apply(self, migration: StoreMigration) -> Dict[str, Any]:
        """Field changes that add this accumulator's contents to ``migration``."""
        changes: Dict[str, Any] = {}
        for name, delta in self.counters.items():
            changes[name] = getattr(migration, name) + delta
        for entity, entries in self.id_maps.items():
            merged = dict(migration.id_map(entity))
            merged.update(entries)
            changes[ID_MAP_FIELDS[entity]] = merged
        if self.errors:
            changes["errors"] = (migration.errors + self.errors)[-MAX_STORED_ERRORS:]
        return changes

    def clear(self) -> None:
        self.counters = {}
        self.id_maps = {}
        self.errors = []


class ProgressStore:
    """Read and update operations over migration records."""

    def __init__(self, storage: MigrationStorage, conflict_retries: int = DEFAULT_CONFLICT_RETRIES):
        self.storage = storage
        self.conflict_retries = conflict_retries

    def get(self, migration_id: str) -> Optional[StoreMigration]:
        return self.storage.get(migration_id)

    def require(self, migration_id: str) -> StoreMigration:
        migration = self.storage.get(migration_id)
        if migration is None:
            raise MigrationNotFoundError(migration_id)
        return migration

    def get_latest_for_store(self, store_id: str) -> Optional[StoreMigration]:
        return self.storage.get_latest_for_store(store_id)

    def find(self, store_id: str, platform: MigrationPlatform) -> Optional[StoreMigration]:
        return self.storage.find(store_id, platform)

    def create(self, migration: StoreMigration) -> StoreMigration:
        return self.storage.create(migration)

    def connect(
        self,
        store_id: str,
        platform: MigrationPlatform,
        source_shop_id: str,
        source_shop_name: Optional[str],
        token_fields: Dict[str, Any]
    ) -> StoreMigration:
        """
        Record a completed source connection.

        Reuses the store's latest migration from the same platform unless it
        already completed, in which case a fresh record supersedes it.

        Args:
            store_id: Target store
            platform: Source platform
            source_shop_id: Shop domain (Shopify) or numeric shop ID (Etsy)
            source_shop_name: Display name of the source shop
            token_fields: Encrypted credential fields from ``TokenCipher.token_fields``

        Returns:
            The connected migration
        """
        changes: Dict[str, Any] = {
            "source_shop_id": source_shop_id,
            "source_shop_name": source_shop_name,
            "status": MigrationStatus.CONNECTED,
        }
        changes.update(token_fields)

        existing = self.find(store_id, platform)
        if existing is not None and existing.status == MigrationStatus.RUNNING:
            # Keep the run going; only refresh credentials
            return self.storage.update(existing.id, dict(token_fields))
        if existing is not None and existing.status != MigrationStatus.COMPLETED:
            logger.info(f"Reconnecting {platform.value} migration {existing.id} for store {store_id}")
            return self.storage.update(existing.id, changes)

        migration = StoreMigration(store_id=store_id, platform=platform)
        for name, value in changes.items():
            setattr(migration, name, value)
        return self.create(migration)

    def _modify(
        self,
        migration_id: str,
        mutate: Callable[[StoreMigration], Dict[str, Any]]
    ) -> StoreMigration:
        """
        Apply a read-modify-write as a conditional update.

        ``mutate`` receives the latest record and returns field changes. It is
        re-run against a fresh read after each version conflict.
        """
        attempt = 0
        while True:
            current = self.require(migration_id)
            changes = mutate(current)
            if not changes:
                return current
            try:
                return self.storage.update(migration_id, changes, expected_version=current.version)
            except VersionConflictError:
                attempt += 1
                if attempt > self.conflict_retries:
                    raise
                logger.debug(f"Version conflict on migration {migration_id}, retrying ({attempt})")

    def update(self, migration_id: str, changes: Dict[str, Any]) -> StoreMigration:
        """Unconditional field write."""
        return self.storage.update(migration_id, changes)

    def set_status(
        self,
        migration_id: str,
        status: MigrationStatus,
        extra: Optional[Dict[str, Any]] = None
    ) -> StoreMigration:
        """Set status, stamping ``started_at`` on running and ``completed_at`` on terminal states."""
        changes = _status_changes(status, extra)
        logger.info(f"Migration {migration_id} -> {status.value}")
        return self.storage.update(migration_id, changes)

    def finish_run(self, migration_id: str, status: MigrationStatus) -> StoreMigration:
        """
        Move a running migration to ``status``.

        A migration that left ``running`` meanwhile (cancelled by an admin) keeps
        its status.
        """
        def mutate(current: StoreMigration) -> Dict[str, Any]:
            if current.status != MigrationStatus.RUNNING:
                logger.info(
                    f"Migration {migration_id} is {current.status.value}, not marking it {status.value}"
                )
                return {}
            return _status_changes(status)

        migration = self._modify(migration_id, mutate)
        if migration.status == status:
            logger.info(f"Migration {migration_id} -> {status.value}")
        return migration

    def set_counts(self, migration_id: str, counts: Dict[str, int]) -> StoreMigration:
        for name in counts:
            _check_counter(name)
        return self.storage.update(migration_id, dict(counts))

    def increment(self, migration_id: str, field: str, amount: int = 1) -> StoreMigration:
        _check_counter(field)
        return self._modify(migration_id, lambda m: {field: getattr(m, field) + amount})

    def add_error(self, migration_id: str, error: MigrationError) -> StoreMigration:
        """Append to the error log, keeping only the newest entries."""
        return self._modify(
            migration_id,
            lambda m: {"errors": (m.errors + [error])[-MAX_STORED_ERRORS:]},
        )

    def merge_id_map(
        self,
        migration_id: str,
        entity: str,
        source_id: str,
        internal_id: str
    ) -> StoreMigration:
        field = ID_MAP_FIELDS[entity]

        def mutate(migration: StoreMigration) -> Dict[str, Any]:
            merged = dict(getattr(migration, field))
            merged[source_id] = internal_id
            return {field: merged}

        return self._modify(migration_id, mutate)

    def set_cursor(
        self,
        migration_id: str,
        cursor: Optional[str],
        phase: Optional[MigrationPhase] = None
    ) -> StoreMigration:
        changes: Dict[str, Any] = {"last_cursor": cursor}
        if phase is not None:
            changes["current_phase"] = phase
        return self.storage.update(migration_id, changes)

    def save_tokens(
        self,
        migration_id: str,
        access_token_encrypted: str,
        refresh_token_encrypted: Optional[str],
        token_expires_at: Optional[datetime]
    ) -> StoreMigration:
        return self.storage.update(migration_id, {
            "access_token_encrypted": access_token_encrypted,
            "refresh_token_encrypted": refresh_token_encrypted,
            "token_expires_at": token_expires_at,
        })

    def flush(self, accumulator: RunAccumulator) -> Optional[StoreMigration]:
        """Write an accumulator's contents in one update and reset it."""
        if accumulator.is_empty:
            return None
        updated = self._modify(accumulator.migration_id, accumulator.apply)
        accumulator.clear()
        return updated

    def acquire_lease(
        self,
        migration_id: str,
        owner: str,
        ttl_seconds: int = LEASE_TTL_SECONDS
    ) -> StoreMigration:
        """
        Claim the exclusive right to run a migration.

        Raises:
            MigrationLockedError: another owner holds an unexpired lease
        """
        def mutate(migration: StoreMigration) -> Dict[str, Any]:
            now = utcnow()
            held = (
                migration.claimed_by is not None
                and migration.claimed_by != owner
                and migration.lease_expires_at is not None
                and migration.lease_expires_at > now
            )
            if held:
                raise MigrationLockedError(migration_id, migration.claimed_by, migration.lease_expires_at)
            return {
                "claimed_by": owner,
                "lease_expires_at": now + timedelta(seconds=ttl_seconds),
            }

        return self._modify(migration_id, mutate)

    def release_lease(self, migration_id: str, owner: str) -> StoreMigration:
        """Drop the lease if ``owner`` still holds it."""
        def mutate(migration: StoreMigration) -> Dict[str, Any]:
            if migration.claimed_by != owner:
                return {}
            return {"claimed_by": None, "lease_expires_at": None}

        return self._modify(migration_id, mutate)
