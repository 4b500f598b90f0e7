"""Durable storage for store migration records."""

import copy
import json
import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models.migration import MigrationPlatform, StoreMigration, utcnow

logger = logging.getLogger(__name__)

_FIELD_NAMES = {f.name for f in fields(StoreMigration)}
_READ_ONLY_FIELDS = {"id", "version", "created_at"}

# Record IDs double as file names
_SAFE_ID = re.compile(r"[A-Za-z0-9_-]+")


class MigrationNotFoundError(LookupError):
    """No migration record with the given ID."""

    def __init__(self, migration_id: str):
        super().__init__(f"Migration not found: {migration_id}")
        self.migration_id = migration_id


class VersionConflictError(RuntimeError):
    """The record changed since it was read."""

    def __init__(self, migration_id: str, expected: int, actual: int):
        super().__init__(
            f"Migration {migration_id} is at version {actual}, expected {expected}"
        )
        self.migration_id = migration_id
        self.expected = expected
        self.actual = actual


class MigrationStorage(ABC):
    """
    Base class for migration record stores.

    ``update`` is the single write primitive. Each successful update bumps the
    record's ``version`` and stamps ``updated_at``; passing ``expected_version``
    makes it a conditional write that fails with ``VersionConflictError`` if
    another writer got there first.
    """

    def __init__(self):
        self._mutex = threading.Lock()

    def _lock(self) -> threading.Lock:
        return self._mutex

    @abstractmethod
    def create(self, migration: StoreMigration) -> StoreMigration:
        pass

    @abstractmethod
    def get(self, migration_id: str) -> Optional[StoreMigration]:
        pass

    @abstractmethod
    def list_all(self) -> List[StoreMigration]:
        pass

    @abstractmethod
    def _write(self, migration: StoreMigration) -> None:
        pass

    def get_latest_for_store(self, store_id: str) -> Optional[StoreMigration]:
        """Most recently created migration for a store."""
        candidates = [m for m in self.list_all() if m.store_id == store_id]
        if not candidates:
            return None
        return max(candidates, key=lambda m: m.created_at)

    def find(self, store_id: str, platform: MigrationPlatform) -> Optional[StoreMigration]:
        """Most recent migration for a store from a given platform."""
        candidates = [
            m for m in self.list_all()
            if m.store_id == store_id and m.platform == platform
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda m: m.created_at)

    def update(
        self,
        migration_id: str,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> StoreMigration:
        """
        Apply field changes to a migration.

        Args:
            migration_id: Migration to update
            changes: Field name -> new value
            expected_version: If given, only write when the stored version matches

        Returns:
            The updated migration
        """
        unknown = set(changes) - _FIELD_NAMES
        if unknown:
            raise ValueError(f"Unknown migration fields: {', '.join(sorted(unknown))}")
        protected = set(changes) & _READ_ONLY_FIELDS
        if protected:
            raise ValueError(f"Read-only migration fields: {', '.join(sorted(protected))}")

        with self._lock():
            current = self.get(migration_id)
            if current is None:
                raise MigrationNotFoundError(migration_id)
            if expected_version is not None and current.version != expected_version:
                raise VersionConflictError(migration_id, expected_version, current.version)

            for name, value in changes.items():
                setattr(current, name, copy.deepcopy(value))
            current.version += 1
            current.updated_at = utcnow()
            self._write(current)
            return copy.deepcopy(current)


class InMemoryMigrationStorage(MigrationStorage):
    """Process-local store. Reads and writes are isolated by deep copies."""

    def __init__(self):
        super().__init__()
        self._records: Dict[str, StoreMigration] = {}

    def create(self, migration: StoreMigration) -> StoreMigration:
        with self._lock():
            if migration.id in self._records:
                raise ValueError(f"Migration already exists: {migration.id}")
            self._records[migration.id] = copy.deepcopy(migration)
        logger.info(f"Created {migration.platform.value} migration {migration.id} for store {migration.store_id}")
        return copy.deepcopy(migration)

    def get(self, migration_id: str) -> Optional[StoreMigration]:
        record = self._records.get(migration_id)
        return copy.deepcopy(record) if record else None

    def list_all(self) -> List[StoreMigration]:
        return [copy.deepcopy(r) for r in list(self._records.values())]

    def _write(self, migration: StoreMigration) -> None:
        self._records[migration.id] = copy.deepcopy(migration)


class JsonFileMigrationStorage(MigrationStorage):
    """Stores each migration as ``<data_dir>/<id>.json``."""

    def __init__(self, data_dir: str):
        super().__init__()
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, migration_id: str) -> Path:
        if not _SAFE_ID.fullmatch(migration_id or ""):
            raise ValueError(f"Invalid migration ID: {migration_id!r}")
        return self.data_dir / f"{migration_id}.json"

    def create(self, migration: StoreMigration) -> StoreMigration:
        with self._lock():
            if self._path(migration.id).exists():
                raise ValueError(f"Migration already exists: {migration.id}")
            self._write(migration)
        logger.info(f"Created {migration.platform.value} migration {migration.id} for store {migration.store_id}")
        return copy.deepcopy(migration)

    def get(self, migration_id: str) -> Optional[StoreMigration]:
        if not _SAFE_ID.fullmatch(migration_id or ""):
            logger.warning(f"Rejected malformed migration ID {migration_id!r}")
            return None
        filepath = self._path(migration_id)
        if not filepath.exists():
            return None
        with open(filepath) as f:
            return StoreMigration.from_dict(json.load(f))

    def list_all(self) -> List[StoreMigration]:
        migrations = []
        for filepath in sorted(self.data_dir.glob("*.json")):
            with open(filepath) as f:
                migrations.append(StoreMigration.from_dict(json.load(f)))
        return migrations

    def _write(self, migration: StoreMigration) -> None:
        filepath = self._path(migration.id)
        tmp_path = filepath.with_suffix(".json.tmp")
        with open(tmp_path, "w") as f:
            json.dump(migration.to_dict(), f, indent=2, default=str)
        tmp_path.replace(filepath)
