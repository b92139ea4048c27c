"""Entity aggregate: economic operators (manufacturers, importers, RPs)."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from gpsr_registry.models.common import (
    MarketContext,
    RegistryBase,
    RoleType,
    UTCTimestamp,
)
from gpsr_registry.models.versioning import VersionFields


class EntityInput(RegistryBase):
    """Raw entity data as submitted; normalized before storage."""

    name: str = Field(..., min_length=1, max_length=500)
    country: str = Field(..., min_length=2, max_length=2)
    address: str | None = None
    city: str | None = None
    vat_id: str | None = None
    phone: str | None = None
    website: str | None = None
    role: RoleType | None = None
    market_context: MarketContext = MarketContext.GLOBAL


class EntityPatch(RegistryBase):
    """Partial update. ``None`` leaves a field unchanged; ``""`` clears it."""

    name: str | None = None
    country: str | None = None
    address: str | None = None
    city: str | None = None
    vat_id: str | None = None
    phone: str | None = None
    website: str | None = None
    is_active: bool | None = None
    change_note: str | None = None


class Entity(RegistryBase):
    entity_id: UUID
    normalized_name: str
    normalized_address: str | None = None
    normalized_city: str | None = None
    normalized_country: str
    normalized_vat_id: str | None = None
    normalized_phone: str | None = None
    normalized_website: str | None = None
    current_version_id: UUID | None = None
    is_active: bool = True
    created_at: UTCTimestamp
    updated_at: UTCTimestamp


class EntityVersion(VersionFields, frozen=True):
    entity_id: UUID


class EntityRoleInput(RegistryBase):
    role_type: RoleType
    market_context: MarketContext = MarketContext.GLOBAL
    product_scope: str | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None


class EntityRole(RegistryBase):
    role_id: UUID
    entity_id: UUID
    role_type: RoleType
    market_context: MarketContext
    product_scope: str | None = None
    valid_from: UTCTimestamp
    valid_to: UTCTimestamp | None = None
    is_active: bool = True
    created_at: UTCTimestamp
