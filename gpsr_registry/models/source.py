"""Provenance records: where a piece of registry data came from."""

from uuid import UUID

from pydantic import Field

from gpsr_registry.models.common import RegistryBase, SourceType, UTCTimestamp


class SourceInput(RegistryBase):
    """Caller-supplied provenance; deduplicated on (source_type, source_identifier)."""

    source_type: SourceType
    source_identifier: str | None = Field(default=None, max_length=500)
    source_name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    source_url: str | None = Field(default=None, max_length=2000)
    trust_note: str | None = None


class Source(RegistryBase):
    """Persisted provenance record. Immutable once created, never deleted."""

    source_id: UUID
    source_type: SourceType
    source_identifier: str | None = None
    source_name: str | None = None
    description: str | None = None
    source_url: str | None = None
    trust_note: str | None = None
    created_at: UTCTimestamp
