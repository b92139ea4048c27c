"""Generic shapes shared by every versioned aggregate."""

from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import Field

from gpsr_registry.models.common import RegistryBase, UTCTimestamp

A = TypeVar("A", bound=RegistryBase)
V = TypeVar("V", bound=RegistryBase)


class VersionFields(RegistryBase, frozen=True):
    """Immutable snapshot columns carried by every version row."""

    version_id: UUID
    source_id: UUID
    version_number: int = Field(..., ge=1)
    original_data: dict[str, Any] = Field(default_factory=dict)
    normalized_data: dict[str, Any] = Field(default_factory=dict)
    captured_at: UTCTimestamp
    change_note: str | None = None


class VersionHistory(RegistryBase, Generic[A, V]):
    """An aggregate together with its versions, newest first."""

    aggregate: A
    versions: list[V]

    @property
    def current(self) -> V | None:
        return self.versions[0] if self.versions else None
