"""Migration record and run configuration models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from dateutil import parser as date_parser


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp (or pass through a datetime), always timezone-aware."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = date_parser.isoparse(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class MigrationPlatform(str, Enum):
    """Source commerce platform."""
    SHOPIFY = "shopify"
    ETSY = "etsy"


class MigrationStatus(str, Enum):
    """Status of a store migration."""
    CONNECTED = "connected"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (MigrationStatus.COMPLETED, MigrationStatus.FAILED, MigrationStatus.CANCELLED)


# States a run may be started (or resumed) from
STARTABLE_STATUSES = (
    MigrationStatus.CONNECTED,
    MigrationStatus.PAUSED,
    MigrationStatus.FAILED,
    MigrationStatus.CANCELLED,
)


class MigrationPhase(str, Enum):
    """Entity phase of a migration, in execution order."""
    PRODUCTS = "products"
    COLLECTIONS = "collections"
    CUSTOMERS = "customers"
    COUPONS = "coupons"
    ORDERS = "orders"
    DONE = "done"


class ErrorType(str, Enum):
    """Category of an entry in the migration error log."""
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    PRODUCT = "product"
    COLLECTION = "collection"
    ORDER = "order"
    CUSTOMER = "customer"
    COUPON = "coupon"
    IMAGE = "image"
    PIPELINE = "pipeline"


COUNTED_ENTITIES = ("products", "collections", "images", "orders", "customers", "coupons")

COUNTER_FIELDS = tuple(
    f"{prefix}_{entity}"
    for entity in COUNTED_ENTITIES
    for prefix in ("total", "migrated", "failed")
)

# entity -> ID map field
ID_MAP_FIELDS = {
    "product": "product_id_map",
    "collection": "collection_id_map",
    "customer": "customer_id_map",
    "order": "order_id_map",
    "coupon": "coupon_id_map",
}


@dataclass
class MigrationError:
    """One entry of the bounded migration error log."""
    type: ErrorType
    message: str
    timestamp: datetime = field(default_factory=utcnow)
    source_id: Optional[str] = None
    source_title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = {
            "type": self.type.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.source_id is not None:
            data["source_id"] = self.source_id
        if self.source_title is not None:
            data["source_title"] = self.source_title
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationError":
        """Create from dictionary representation."""
        return cls(
            type=ErrorType(data.get("type", ErrorType.PIPELINE.value)),
            message=data.get("message", ""),
            timestamp=parse_datetime(data.get("timestamp")) or utcnow(),
            source_id=data.get("source_id"),
            source_title=data.get("source_title"),
        )


@dataclass
class StoreMigration:
    """
    One store-to-platform migration attempt.

    Mutated only by the orchestrator through the progress store. Never
    deleted; a newer record for the same store supersedes it.
    """
    store_id: str
    platform: MigrationPlatform
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    source_shop_id: Optional[str] = None
    source_shop_name: Optional[str] = None

    # Encrypted credentials
    access_token_encrypted: Optional[str] = None
    refresh_token_encrypted: Optional[str] = None
    token_expires_at: Optional[datetime] = None

    status: MigrationStatus = MigrationStatus.CONNECTED

    # Counters
    total_products: int = 0
    migrated_products: int = 0
    failed_products: int = 0
    total_collections: int = 0
    migrated_collections: int = 0
    failed_collections: int = 0
    total_images: int = 0
    migrated_images: int = 0
    failed_images: int = 0
    total_orders: int = 0
    migrated_orders: int = 0
    failed_orders: int = 0
    total_customers: int = 0
    migrated_customers: int = 0
    failed_customers: int = 0
    total_coupons: int = 0
    migrated_coupons: int = 0
    failed_coupons: int = 0

    errors: List[MigrationError] = field(default_factory=list)

    # Source ID -> internal ID
    product_id_map: Dict[str, str] = field(default_factory=dict)
    collection_id_map: Dict[str, str] = field(default_factory=dict)
    customer_id_map: Dict[str, str] = field(default_factory=dict)
    order_id_map: Dict[str, str] = field(default_factory=dict)
    coupon_id_map: Dict[str, str] = field(default_factory=dict)

    # Resume position: opaque cursor valid for current_phase only
    last_cursor: Optional[str] = None
    current_phase: Optional[MigrationPhase] = None

    # Run lease
    claimed_by: Optional[str] = None
    lease_expires_at: Optional[datetime] = None

    version: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data: Dict[str, Any] = {
            "id": self.id,
            "store_id": self.store_id,
            "platform": self.platform.value,
            "source_shop_id": self.source_shop_id,
            "source_shop_name": self.source_shop_name,
            "access_token_encrypted": self.access_token_encrypted,
            "refresh_token_encrypted": self.refresh_token_encrypted,
            "token_expires_at": _iso(self.token_expires_at),
            "status": self.status.value,
        }
        for name in COUNTER_FIELDS:
            data[name] = getattr(self, name)
        data.update({
            "errors": [e.to_dict() for e in self.errors],
            "product_id_map": dict(self.product_id_map),
            "collection_id_map": dict(self.collection_id_map),
            "customer_id_map": dict(self.customer_id_map),
            "order_id_map": dict(self.order_id_map),
            "coupon_id_map": dict(self.coupon_id_map),
            "last_cursor": self.last_cursor,
            "current_phase": self.current_phase.value if self.current_phase else None,
            "claimed_by": self.claimed_by,
            "lease_expires_at": _iso(self.lease_expires_at),
            "version": self.version,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreMigration":
        """Create from dictionary representation."""
        phase = data.get("current_phase")
        migration = cls(
            id=data["id"],
            store_id=data["store_id"],
            platform=MigrationPlatform(data["platform"]),
            source_shop_id=data.get("source_shop_id"),
            source_shop_name=data.get("source_shop_name"),
            access_token_encrypted=data.get("access_token_encrypted"),
            refresh_token_encrypted=data.get("refresh_token_encrypted"),
            token_expires_at=parse_datetime(data.get("token_expires_at")),
            status=MigrationStatus(data.get("status", MigrationStatus.CONNECTED.value)),
            errors=[MigrationError.from_dict(e) for e in data.get("errors", [])],
            product_id_map=dict(data.get("product_id_map") or {}),
            collection_id_map=dict(data.get("collection_id_map") or {}),
            customer_id_map=dict(data.get("customer_id_map") or {}),
            order_id_map=dict(data.get("order_id_map") or {}),
            coupon_id_map=dict(data.get("coupon_id_map") or {}),
            last_cursor=data.get("last_cursor"),
            current_phase=MigrationPhase(phase) if phase else None,
            claimed_by=data.get("claimed_by"),
            lease_expires_at=parse_datetime(data.get("lease_expires_at")),
            version=data.get("version", 0),
            started_at=parse_datetime(data.get("started_at")),
            completed_at=parse_datetime(data.get("completed_at")),
            created_at=parse_datetime(data.get("created_at")) or utcnow(),
            updated_at=parse_datetime(data.get("updated_at")) or utcnow(),
        )
        for name in COUNTER_FIELDS:
            setattr(migration, name, int(data.get(name) or 0))
        return migration

    def id_map(self, entity: str) -> Dict[str, str]:
        """Get the source -> internal ID map for an entity ("product", "order", ...)."""
        return getattr(self, ID_MAP_FIELDS[entity])

    @property
    def token_expired(self) -> bool:
        return self.token_expires_at is not None and self.token_expires_at < utcnow()


@dataclass
class MigrationConfig:
    """User-selected options for a run. Immutable for the duration of the run."""
    migration_id: str
    import_products: bool = True
    import_collections: bool = True
    import_customers: bool = False
    import_coupons: bool = False
    import_orders: bool = False
    product_status: str = "draft"  # status assigned to created products

    def __post_init__(self):
        if self.product_status not in ("draft", "active"):
            self.product_status = "draft"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "migration_id": self.migration_id,
            "import_products": self.import_products,
            "import_collections": self.import_collections,
            "import_customers": self.import_customers,
            "import_coupons": self.import_coupons,
            "import_orders": self.import_orders,
            "product_status": self.product_status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationConfig":
        """Create from dictionary representation."""
        return cls(
            migration_id=data["migration_id"],
            import_products=data.get("import_products", True),
            import_collections=data.get("import_collections", True),
            import_customers=data.get("import_customers", False),
            import_coupons=data.get("import_coupons", False),
            import_orders=data.get("import_orders", False),
            product_status=data.get("product_status", "draft"),
        )


@dataclass
class MigrationProgress:
    """Status view of a migration as polled by the dashboard."""
    id: str
    platform: MigrationPlatform
    status: MigrationStatus
    source_shop_name: Optional[str]
    counters: Dict[str, int]
    errors: List[MigrationError]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    current_phase: MigrationPhase

    @classmethod
    def from_migration(cls, migration: StoreMigration) -> "MigrationProgress":
        if migration.status == MigrationStatus.COMPLETED:
            phase = MigrationPhase.DONE
        else:
            phase = migration.current_phase or MigrationPhase.PRODUCTS
        return cls(
            id=migration.id,
            platform=migration.platform,
            status=migration.status,
            source_shop_name=migration.source_shop_name,
            counters={name: getattr(migration, name) for name in COUNTER_FIELDS},
            errors=list(migration.errors),
            started_at=migration.started_at,
            completed_at=migration.completed_at,
            current_phase=phase,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data: Dict[str, Any] = {
            "id": self.id,
            "platform": self.platform.value,
            "status": self.status.value,
            "source_shop_name": self.source_shop_name,
        }
        data.update(self.counters)
        data.update({
            "errors": [e.to_dict() for e in self.errors],
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "current_phase": self.current_phase.value,
        })
        return data
