"""Claims and evidence: attribute-level, disputable assertions."""

from uuid import UUID

from pydantic import Field, model_validator

from gpsr_registry.models.common import (
    ClaimStatus,
    ClaimSubject,
    Confidence,
    EvidenceType,
    RegistryBase,
    UTCTimestamp,
)


class EvidenceInput(RegistryBase):
    type: EvidenceType
    url: str | None = Field(default=None, max_length=2000)
    content: str | None = None
    content_hash: str | None = Field(default=None, max_length=128)

    @model_validator(mode="after")
    def _has_payload(self) -> "EvidenceInput":
        if self.url is None and self.content is None and self.content_hash is None:
            msg = "Evidence needs a url, content or content_hash."
            raise ValueError(msg)
        return self


class Evidence(RegistryBase):
    evidence_id: UUID
    claim_id: UUID
    type: EvidenceType
    url: str | None = None
    content: str | None = None
    content_hash: str | None = None
    captured_at: UTCTimestamp


class ClaimInput(RegistryBase):
    """A new assertion about one attribute of one subject."""

    subject: ClaimSubject
    subject_id: UUID
    attribute: str = Field(..., min_length=1, max_length=100)
    value: str
    source_id: UUID
    confidence: Confidence | None = None
    evidence: list[EvidenceInput] = Field(default_factory=list)


class Claim(RegistryBase):
    claim_id: UUID
    subject: ClaimSubject
    subject_id: UUID
    attribute: str
    value: str
    source_id: UUID
    confidence: int
    status: ClaimStatus
    superseded_by_id: UUID | None = None
    reviewed_by: str | None = None
    reviewed_at: UTCTimestamp | None = None
    review_notes: str | None = None
    created_at: UTCTimestamp
    updated_at: UTCTimestamp
    evidence: list[Evidence] = Field(default_factory=list)
