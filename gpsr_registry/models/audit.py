"""Append-only audit log entries."""

from typing import Any
from uuid import UUID

from gpsr_registry.models.common import RegistryBase, UTCTimestamp


class AuditEntry(RegistryBase, frozen=True):
    audit_id: UUID
    action: str
    entity_type: str
    entity_id: UUID
    previous_data: dict[str, Any] | None = None
    new_data: dict[str, Any] | None = None
    performed_by: str | None = None
    created_at: UTCTimestamp
