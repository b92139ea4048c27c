"""Product responsibility: who answers for product X in country Y."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from gpsr_registry.models.common import (
    Confidence,
    RegistryBase,
    ResolutionMode,
    ResponsibilityStatus,
    RoleType,
    UTCTimestamp,
)


class ResponsibilityInput(RegistryBase):
    product_id: UUID
    country_code: str = Field(..., min_length=2, max_length=2)
    entity_id: UUID
    role: RoleType
    source_id: UUID
    confidence: Confidence | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None

    @model_validator(mode="after")
    def _window_ordered(self) -> "ResponsibilityInput":
        if self.valid_from and self.valid_to and self.valid_to <= self.valid_from:
            msg = "valid_to must be after valid_from"
            raise ValueError(msg)
        return self


class ProductResponsibility(RegistryBase):
    """One assignment; valid over the half-open window [valid_from, valid_to)."""

    responsibility_id: UUID
    product_id: UUID
    country_code: str
    entity_id: UUID
    role: RoleType
    source_id: UUID
    confidence: int
    status: ResponsibilityStatus
    valid_from: UTCTimestamp
    valid_to: UTCTimestamp | None = None
    created_at: UTCTimestamp
    updated_at: UTCTimestamp
    entity_name: str | None = None

    def is_valid_on(self, moment: datetime) -> bool:
        if self.valid_from > moment:
            return False
        return self.valid_to is None or self.valid_to > moment


class ResolvedResponsibility(RegistryBase):
    """The winning assignment for one role."""

    role: RoleType
    responsibility_id: UUID
    entity_id: UUID
    entity_name: str | None = None
    confidence: int
    source_id: UUID
    valid_from: UTCTimestamp
    data_freshness_days: int
    has_conflicts: bool
    candidate_count: int = Field(..., ge=1)


class ResolvedView(RegistryBase):
    """Best known truth for a product in one country."""

    product_id: UUID
    country_code: str
    resolution_mode: ResolutionMode
    resolved_at: UTCTimestamp
    target_date: UTCTimestamp
    responsibilities: dict[RoleType, ResolvedResponsibility] = Field(default_factory=dict)
    conflict_count: int = 0


class ResponsibilityDispute(RegistryBase):
    """Audit payload for a disputed assignment."""

    responsibility: ProductResponsibility
    reason: str | None = None
