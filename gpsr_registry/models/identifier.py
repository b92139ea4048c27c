"""Entity identifiers: the global deduplication index."""

from uuid import UUID

from pydantic import Field

from gpsr_registry.models.common import IdentifierType, RegistryBase, UTCTimestamp


class IdentifierInput(RegistryBase):
    type: IdentifierType
    value: str = Field(..., min_length=1, max_length=100)
    country_code: str | None = Field(default=None, min_length=2, max_length=2)
    source_id: UUID
    is_primary: bool | None = None


class EntityIdentifier(RegistryBase):
    identifier_id: UUID
    entity_id: UUID
    type: IdentifierType
    value: str
    country_code: str | None = None
    source_id: UUID
    is_primary: bool = False
    created_at: UTCTimestamp
    updated_at: UTCTimestamp


class DuplicateCandidate(RegistryBase):
    """Another entity sharing identifier suffixes with the one being checked."""

    entity_id: UUID
    entity_name: str
    country: str
    matched_identifiers: list[str] = Field(default_factory=list)
