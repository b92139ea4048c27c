"""Claim and evidence repositories."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import ClaimRow, EvidenceRow
from gpsr_registry.models.common import ClaimStatus, new_uuid7, utc_now

LIVE_STATUSES = (ClaimStatus.PROPOSED, ClaimStatus.DISPUTED)


class ClaimRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, subject: str, subject_id: UUID, attribute: str,
                     value: str, source_id: UUID, confidence: int,
                     status: str = ClaimStatus.PROPOSED) -> ClaimRow:
        now = utc_now()
        row = ClaimRow(
            claim_id=new_uuid7(), subject=subject, subject_id=subject_id,
            attribute=attribute, value=value, source_id=source_id,
            confidence=confidence, status=status,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, claim_id: UUID) -> ClaimRow | None:
        return await self._session.get(ClaimRow, claim_id)

    async def get_live(self, subject: str, subject_id: UUID,
                       attribute: str) -> list[ClaimRow]:
        """PROPOSED or DISPUTED claims that a newer claim would supersede."""
        result = await self._session.execute(
            select(ClaimRow).where(
                ClaimRow.subject == subject,
                ClaimRow.subject_id == subject_id,
                ClaimRow.attribute == attribute,
                ClaimRow.status.in_(LIVE_STATUSES),
            )
        )
        return list(result.scalars().all())

    async def get_for_subject(self, subject: str, subject_id: UUID,
                              status: str | None = None) -> list[ClaimRow]:
        stmt = select(ClaimRow).where(
            ClaimRow.subject == subject, ClaimRow.subject_id == subject_id,
        )
        if status is not None:
            stmt = stmt.where(ClaimRow.status == status)
        result = await self._session.execute(
            stmt.order_by(ClaimRow.created_at.desc(), ClaimRow.claim_id.desc())
        )
        return list(result.scalars().all())

    async def get_pending(self, limit: int) -> list[ClaimRow]:
        result = await self._session.execute(
            select(ClaimRow)
            .where(ClaimRow.status == ClaimStatus.PROPOSED)
            .order_by(ClaimRow.confidence.desc(), ClaimRow.created_at.asc(),
                      ClaimRow.claim_id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_best_accepted(self, subject: str, subject_id: UUID,
                                attribute: str) -> ClaimRow | None:
        result = await self._session.execute(
            select(ClaimRow)
            .where(
                ClaimRow.subject == subject,
                ClaimRow.subject_id == subject_id,
                ClaimRow.attribute == attribute,
                ClaimRow.status == ClaimStatus.ACCEPTED,
            )
            .order_by(ClaimRow.confidence.desc(), ClaimRow.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


class EvidenceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, claim_id: UUID, type: str, url: str | None = None,
                     content: str | None = None,
                     content_hash: str | None = None) -> EvidenceRow:
        row = EvidenceRow(
            evidence_id=new_uuid7(), claim_id=claim_id, type=type, url=url,
            content=content, content_hash=content_hash, captured_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_for_claims(self, claim_ids: list[UUID]) -> dict[UUID, list[EvidenceRow]]:
        grouped: dict[UUID, list[EvidenceRow]] = {cid: [] for cid in claim_ids}
        if not claim_ids:
            return grouped
        result = await self._session.execute(
            select(EvidenceRow)
            .where(EvidenceRow.claim_id.in_(claim_ids))
            .order_by(EvidenceRow.captured_at.asc())
        )
        for row in result.scalars().all():
            grouped[row.claim_id].append(row)
        return grouped
