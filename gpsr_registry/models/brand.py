"""Brand aggregate: trade names, trademarks and the entities behind them."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from gpsr_registry.models.common import BrandLinkType, MarketContext, RegistryBase, UTCTimestamp
from gpsr_registry.models.contact import ElectronicContact
from gpsr_registry.models.entity import Entity
from gpsr_registry.models.versioning import VersionFields


class BrandInput(RegistryBase):
    trade_name: str = Field(..., min_length=1, max_length=255)
    trade_mark_number: str | None = None
    trade_mark_office: str | None = None
    logo_url: str | None = None
    description: str | None = None


class BrandPatch(RegistryBase):
    trade_name: str | None = None
    trade_mark_number: str | None = None
    trade_mark_office: str | None = None
    logo_url: str | None = None
    description: str | None = None
    is_verified: bool | None = None
    is_active: bool | None = None
    change_note: str | None = None


class Brand(RegistryBase):
    brand_id: UUID
    trade_name: str
    trade_mark_number: str | None = None
    trade_mark_office: str | None = None
    logo_url: str | None = None
    description: str | None = None
    is_verified: bool = False
    current_version_id: UUID | None = None
    is_active: bool = True
    created_at: UTCTimestamp
    updated_at: UTCTimestamp


class BrandVersion(VersionFields, frozen=True):
    brand_id: UUID


class BrandLinkInput(RegistryBase):
    entity_id: UUID
    link_type: BrandLinkType
    market_context: MarketContext = MarketContext.GLOBAL
    product_scope: str | None = Field(None, max_length=500)
    valid_from: datetime | None = None
    valid_to: datetime | None = None

    @model_validator(mode="after")
    def _window_ordered(self) -> "BrandLinkInput":
        if self.valid_from and self.valid_to and self.valid_to <= self.valid_from:
            msg = "valid_to must be after valid_from"
            raise ValueError(msg)
        return self


class BrandLink(RegistryBase):
    link_id: UUID
    brand_id: UUID
    entity_id: UUID
    link_type: BrandLinkType
    market_context: MarketContext
    product_scope: str | None = None
    valid_from: UTCTimestamp
    valid_to: UTCTimestamp | None = None
    is_active: bool = True
    created_at: UTCTimestamp


class LinkedEntity(RegistryBase):
    """A brand link with the linked entity and its public contact points."""

    link: BrandLink
    entity: Entity
    contacts: list[ElectronicContact] = Field(default_factory=list)
