"""Data models for the store migration engine."""

from .migration import (
    ErrorType,
    MigrationConfig,
    MigrationError,
    MigrationPhase,
    MigrationPlatform,
    MigrationProgress,
    MigrationStatus,
    StoreMigration,
)
from .record import (
    MigrationCollection,
    MigrationCoupon,
    MigrationCustomer,
    MigrationCustomerAddress,
    MigrationImage,
    MigrationOrder,
    MigrationOrderItem,
    MigrationProduct,
    MigrationShippingAddress,
    MigrationVariant,
)

__all__ = [
    "ErrorType",
    "MigrationConfig",
    "MigrationError",
    "MigrationPhase",
    "MigrationPlatform",
    "MigrationProgress",
    "MigrationStatus",
    "StoreMigration",
    "MigrationCollection",
    "MigrationCoupon",
    "MigrationCustomer",
    "MigrationCustomerAddress",
    "MigrationImage",
    "MigrationOrder",
    "MigrationOrderItem",
    "MigrationProduct",
    "MigrationShippingAddress",
    "MigrationVariant",
]
