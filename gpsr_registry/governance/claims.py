"""Claim/evidence ledger.

Claims are attribute-level assertions about any registry record. A new
claim supersedes every live (PROPOSED or DISPUTED) claim on the same
``(subject, subject_id, attribute)`` in the same transaction. The
``uq_claim_live`` partial index keeps at most one live claim per attribute,
so a writer that lost the race gets ``ConflictError``.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import (
    AddressRow,
    BrandRow,
    ClaimRow,
    ElectronicContactRow,
    EntityRow,
    ProductResponsibilityRow,
    ProductRow,
    SourceRow,
)
from gpsr_registry.errors import NotFoundError
from gpsr_registry.governance.claim_state import check_transition
from gpsr_registry.models.claim import Claim, ClaimInput, Evidence, EvidenceInput
from gpsr_registry.models.common import AuditAction, ClaimStatus, ClaimSubject, utc_now
from gpsr_registry.repositories.claims import ClaimRepository, EvidenceRepository
from gpsr_registry.versioning.retry import raise_integrity_error

logger = logging.getLogger(__name__)

SUBJECT_TABLES: dict[ClaimSubject, tuple[type, str]] = {
    ClaimSubject.ENTITY: (EntityRow, "Entity"),
    ClaimSubject.BRAND: (BrandRow, "Brand"),
    ClaimSubject.PRODUCT: (ProductRow, "Product"),
    ClaimSubject.RESPONSIBILITY: (ProductResponsibilityRow, "Responsibility"),
    ClaimSubject.CONTACT: (ElectronicContactRow, "Electronic contact"),
    ClaimSubject.ADDRESS: (AddressRow, "Address"),
}

_REVIEW_ACTIONS = {
    ClaimStatus.ACCEPTED: AuditAction.CLAIM_ACCEPTED,
    ClaimStatus.REJECTED: AuditAction.CLAIM_REJECTED,
    ClaimStatus.DISPUTED: AuditAction.CLAIM_DISPUTED,
}


async def _require_subject(session: AsyncSession, subject: ClaimSubject,
                           subject_id: UUID) -> None:
    row_cls, label = SUBJECT_TABLES[subject]
    if await session.get(row_cls, subject_id) is None:
        raise NotFoundError(label, subject_id)


def _to_claim(row: ClaimRow, evidence: list | None = None) -> Claim:
    claim = Claim.model_validate(row)
    if evidence:
        claim.evidence = [Evidence.model_validate(e) for e in evidence]
    return claim


class ClaimLedger:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    async def submit(self, claim_input: ClaimInput, *,
                     performed_by: str | None = None) -> Claim:
        """Record a new PROPOSED claim with its evidence.

        Raises:
            NotFoundError: The source or the subject does not exist.
        """
        try:
            async with self._session_factory() as session, session.begin():
                if await session.get(SourceRow, claim_input.source_id) is None:
                    raise NotFoundError("Source", claim_input.source_id)
                await _require_subject(session, claim_input.subject, claim_input.subject_id)
                claim = await self._insert(
                    session, subject=claim_input.subject, subject_id=claim_input.subject_id,
                    attribute=claim_input.attribute, value=claim_input.value,
                    source_id=claim_input.source_id, confidence=claim_input.confidence,
                    evidence=claim_input.evidence, performed_by=performed_by,
                )
        except IntegrityError as exc:
            raise_integrity_error(
                exc, resource="Source",
                conflict_message=(
                    f"A live claim on {claim_input.attribute} was submitted concurrently"
                ),
            )
        return claim

    async def supersede(self, old_claim_id: UUID, value: str, source_id: UUID,
                        confidence: int | None = None, *,
                        performed_by: str | None = None) -> Claim:
        """Replace a live claim with a new value on the same attribute.

        Raises:
            NotFoundError: The old claim or the source does not exist.
            ValidationError: The old claim is already in a terminal state.
        """
        try:
            async with self._session_factory() as session, session.begin():
                old = await ClaimRepository(session).get(old_claim_id)
                if old is None:
                    raise NotFoundError("Claim", old_claim_id)
                check_transition(ClaimStatus(old.status), ClaimStatus.SUPERSEDED)
                if await session.get(SourceRow, source_id) is None:
                    raise NotFoundError("Source", source_id)
                claim = await self._insert(
                    session, subject=ClaimSubject(old.subject), subject_id=old.subject_id,
                    attribute=old.attribute, value=value, source_id=source_id,
                    confidence=confidence, evidence=[], performed_by=performed_by,
                )
        except IntegrityError as exc:
            raise_integrity_error(
                exc, resource="Source",
                conflict_message=f"Claim {old_claim_id} was superseded concurrently",
            )
        return claim

    async def accept(self, claim_id: UUID, reviewed_by: str,
                     notes: str | None = None) -> Claim:
        return await self._review(claim_id, ClaimStatus.ACCEPTED, reviewed_by, notes)

    async def reject(self, claim_id: UUID, reviewed_by: str, notes: str) -> Claim:
        return await self._review(claim_id, ClaimStatus.REJECTED, reviewed_by, notes)

    async def dispute(self, claim_id: UUID, disputed_by: str, reason: str) -> Claim:
        return await self._review(claim_id, ClaimStatus.DISPUTED, disputed_by, reason)

    async def get(self, claim_id: UUID) -> Claim:
        async with self._session_factory() as session:
            row = await ClaimRepository(session).get(claim_id)
            if row is None:
                raise NotFoundError("Claim", claim_id)
            evidence = await EvidenceRepository(session).get_for_claims([claim_id])
        return _to_claim(row, evidence[claim_id])

    async def get_for_subject(self, subject: ClaimSubject, subject_id: UUID,
                              status: ClaimStatus | None = None) -> list[Claim]:
        """All claims on a subject, newest first."""
        async with self._session_factory() as session:
            rows = await ClaimRepository(session).get_for_subject(subject, subject_id, status)
            evidence = await EvidenceRepository(session).get_for_claims(
                [r.claim_id for r in rows],
            )
        return [_to_claim(r, evidence[r.claim_id]) for r in rows]

    async def get_pending(self, limit: int | None = None) -> list[Claim]:
        """PROPOSED claims, most confident first, oldest first within a tie."""
        async with self._session_factory() as session:
            rows = await ClaimRepository(session).get_pending(self._settings.clamp_limit(limit))
            evidence = await EvidenceRepository(session).get_for_claims(
                [r.claim_id for r in rows],
            )
        return [_to_claim(r, evidence[r.claim_id]) for r in rows]

    async def add_evidence(self, claim_id: UUID, evidence_input: EvidenceInput, *,
                           performed_by: str | None = None) -> Evidence:
        async with self._session_factory() as session, session.begin():
            if await ClaimRepository(session).get(claim_id) is None:
                raise NotFoundError("Claim", claim_id)
            row = await EvidenceRepository(session).create(
                claim_id=claim_id, **evidence_input.model_dump(),
            )
            evidence = Evidence.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.EVIDENCE_ADDED, entity_type="Evidence",
                entity_id=evidence.evidence_id, new=evidence, performed_by=performed_by,
            )
        return evidence

    async def best_known_value(self, subject: ClaimSubject, subject_id: UUID,
                               attribute: str) -> Claim | None:
        """Highest-confidence ACCEPTED claim, newest on a tie; ``None`` if none."""
        async with self._session_factory() as session:
            row = await ClaimRepository(session).get_best_accepted(
                subject, subject_id, attribute,
            )
            if row is None:
                return None
            evidence = await EvidenceRepository(session).get_for_claims([row.claim_id])
        return _to_claim(row, evidence[row.claim_id])

    async def _insert(self, session: AsyncSession, *, subject: ClaimSubject,
                      subject_id: UUID, attribute: str, value: str, source_id: UUID,
                      confidence: int | None, evidence: list[EvidenceInput],
                      performed_by: str | None) -> Claim:
        claims = ClaimRepository(session)
        live = await claims.get_live(subject, subject_id, attribute)
        if confidence is None:
            confidence = self._settings.DEFAULT_CLAIM_CONFIDENCE

        now = utc_now()
        demoted = []
        for old in live:
            check_transition(ClaimStatus(old.status), ClaimStatus.SUPERSEDED)
            demoted.append((old, Claim.model_validate(old)))
            old.status = ClaimStatus.SUPERSEDED
            old.updated_at = now
        # live claims leave uq_claim_live before the new one enters it
        await session.flush()

        row = await claims.create(
            subject=subject, subject_id=subject_id, attribute=attribute,
            value=value, source_id=source_id, confidence=confidence,
        )
        evidence_repo = EvidenceRepository(session)
        evidence_rows = [
            await evidence_repo.create(claim_id=row.claim_id, **e.model_dump())
            for e in evidence
        ]
        claim = _to_claim(row, evidence_rows)
        await AuditLog.append(
            session, action=AuditAction.CLAIM_SUBMITTED, entity_type="Claim",
            entity_id=claim.claim_id, new=claim, performed_by=performed_by,
        )

        for old, before in demoted:
            old.superseded_by_id = row.claim_id
            await session.flush()
            await AuditLog.append(
                session, action=AuditAction.CLAIM_SUPERSEDED, entity_type="Claim",
                entity_id=old.claim_id, previous=before,
                new=Claim.model_validate(old), performed_by=performed_by,
            )
        if live:
            logger.info(
                "Claim %s superseded %d live claim(s) on %s %s.%s",
                row.claim_id, len(live), subject, subject_id, attribute,
            )
        return claim

    async def _review(self, claim_id: UUID, target: ClaimStatus, reviewer: str,
                      notes: str | None) -> Claim:
        async with self._session_factory() as session, session.begin():
            row = await ClaimRepository(session).get(claim_id)
            if row is None:
                raise NotFoundError("Claim", claim_id)
            check_transition(ClaimStatus(row.status), target)
            before = Claim.model_validate(row)
            now = utc_now()
            row.status = target
            row.reviewed_by = reviewer
            row.reviewed_at = now
            row.review_notes = notes
            row.updated_at = now
            await session.flush()
            evidence = await EvidenceRepository(session).get_for_claims([claim_id])
            claim = _to_claim(row, evidence[claim_id])
            await AuditLog.append(
                session, action=_REVIEW_ACTIONS[target], entity_type="Claim",
                entity_id=claim_id, previous=before, new=claim, performed_by=reviewer,
            )
        return claim
