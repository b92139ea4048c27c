"""Verification record repository: insert and read only."""

from collections.abc import Collection
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import EntityVersionRow, VerificationRecordRow
from gpsr_registry.models.common import new_uuid7, utc_now
from gpsr_registry.repositories.base import fetch_page


class VerificationRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, version_id: UUID, status: str,
                     verified_by: str | None = None,
                     verification_method: str | None = None,
                     notes: str | None = None, evidence_url: str | None = None,
                     expires_at: datetime | None = None) -> VerificationRecordRow:
        row = VerificationRecordRow(
            verification_id=new_uuid7(), version_id=version_id, status=status,
            verified_by=verified_by, verification_method=verification_method,
            notes=notes, evidence_url=evidence_url, verified_at=utc_now(),
            expires_at=expires_at,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_for_entity(
        self, entity_id: UUID,
    ) -> list[tuple[VerificationRecordRow, EntityVersionRow]]:
        """Records across every version of an entity, newest first."""
        result = await self._session.execute(
            select(VerificationRecordRow, EntityVersionRow)
            .join(EntityVersionRow,
                  EntityVersionRow.version_id == VerificationRecordRow.version_id)
            .where(EntityVersionRow.entity_id == entity_id)
            .order_by(VerificationRecordRow.verified_at.desc(),
                      VerificationRecordRow.verification_id.desc())
        )
        return [(record, version) for record, version in result.all()]

    async def latest_for_version(self, version_id: UUID) -> VerificationRecordRow | None:
        result = await self._session.execute(
            select(VerificationRecordRow)
            .where(VerificationRecordRow.version_id == version_id)
            .order_by(VerificationRecordRow.verified_at.desc(),
                      VerificationRecordRow.verification_id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_by_status(self, status: str, *, limit: int,
                             offset: int = 0) -> tuple[list[VerificationRecordRow], int]:
        stmt = (
            select(VerificationRecordRow)
            .where(VerificationRecordRow.status == status)
            .order_by(VerificationRecordRow.verified_at.desc(),
                      VerificationRecordRow.verification_id.desc())
        )
        return await fetch_page(self._session, stmt, limit=limit, offset=offset)

    async def get_versions(self, version_ids: Collection[UUID]) -> dict[UUID, EntityVersionRow]:
        if not version_ids:
            return {}
        result = await self._session.execute(
            select(EntityVersionRow).where(EntityVersionRow.version_id.in_(list(version_ids)))
        )
        return {v.version_id: v for v in result.scalars().all()}
