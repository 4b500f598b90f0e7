"""Pydantic models for API requests and responses."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.migration import MigrationConfig, MigrationProgress


# Request Models
class MigrationStartRequest(BaseModel):
    migration_id: str
    import_products: bool = True
    import_collections: bool = True
    import_customers: bool = False
    import_coupons: bool = False
    import_orders: bool = False
    product_status: Literal["draft", "active"] = "draft"

    def to_config(self) -> MigrationConfig:
        return MigrationConfig(
            migration_id=self.migration_id,
            import_products=self.import_products,
            import_collections=self.import_collections,
            import_customers=self.import_customers,
            import_coupons=self.import_coupons,
            import_orders=self.import_orders,
            product_status=self.product_status,
        )


class MigrationCancelRequest(BaseModel):
    migration_id: str


class ShopifyConnectRequest(BaseModel):
    store_id: str
    shop_url: str
    access_token: str = Field(min_length=1)


# Response Models
class MigrationErrorResponse(BaseModel):
    type: str
    message: str
    timestamp: datetime
    source_id: Optional[str] = None
    source_title: Optional[str] = None


class MigrationProgressResponse(BaseModel):
    id: str
    platform: str
    status: str
    source_shop_name: Optional[str] = None
    current_phase: str

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

    errors: List[MigrationErrorResponse] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_progress(cls, progress: MigrationProgress) -> "MigrationProgressResponse":
        return cls(**progress.to_dict())


class MigrationStatusResponse(BaseModel):
    migration: Optional[MigrationProgressResponse] = None


class ConnectResponse(BaseModel):
    migration_id: str
    platform: str
    shop_name: Optional[str] = None
    status: str


class CancelResponse(BaseModel):
    migration_id: str
    status: str
