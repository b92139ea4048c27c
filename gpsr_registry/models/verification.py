"""Verification records attached to entity snapshots.

Verification is informational: it tracks community and primary-source
confirmations for data quality and is not a certification of GPSR
compliance.
"""

from datetime import datetime
from uuid import UUID

from pydantic import AnyUrl, Field

from gpsr_registry.models.common import RegistryBase, UTCTimestamp, VerificationStatus


class VerificationInput(RegistryBase):
    status: VerificationStatus
    verified_by: str | None = Field(None, max_length=200)
    verification_method: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)
    evidence_url: AnyUrl | None = None
    expires_at: datetime | None = None


class VerificationRecord(RegistryBase):
    """One confirmation of an entity version.

    ``entity_id`` and ``version_number`` are filled in by queries that
    span several versions.
    """

    verification_id: UUID
    version_id: UUID
    status: VerificationStatus
    verified_by: str | None = None
    verification_method: str | None = None
    notes: str | None = None
    evidence_url: str | None = None
    verified_at: UTCTimestamp
    expires_at: UTCTimestamp | None = None
    entity_id: UUID | None = None
    version_number: int | None = None
