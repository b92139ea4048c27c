"""Verification records on entity versions.

Records are attached to an immutable EntityVersion snapshot, never to the
entity itself, so a later version starts out unverified. Several records
may exist per version; the newest one is the version's status.
"""

import logging
from datetime import timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import EntityRow, EntityVersionRow, VerificationRecordRow
from gpsr_registry.errors import NotFoundError, ValidationError
from gpsr_registry.models.common import AuditAction, VerificationStatus, utc_now
from gpsr_registry.models.verification import VerificationInput, VerificationRecord
from gpsr_registry.repositories.verifications import VerificationRepository

logger = logging.getLogger(__name__)


def _with_version(row: VerificationRecordRow,
                  version: EntityVersionRow | None) -> VerificationRecord:
    record = VerificationRecord.model_validate(row)
    if version is not None:
        record.entity_id = version.entity_id
        record.version_number = version.version_number
    return record


class VerificationService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    async def add_verification(self, version_id: UUID, verification_input: VerificationInput,
                               *, performed_by: str | None = None) -> VerificationRecord:
        """Record a confirmation of one entity version.

        Raises:
            NotFoundError: The entity version does not exist.
            ValidationError: ``expires_at`` is not in the future.
        """
        expires_at = verification_input.expires_at
        if expires_at is not None:
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= utc_now():
                raise ValidationError(
                    "Verification would already be expired",
                    errors={"expires_at": ["must be in the future"]},
                )
        async with self._session_factory() as session, session.begin():
            version = await session.get(EntityVersionRow, version_id)
            if version is None:
                raise NotFoundError("Entity version", version_id)
            evidence_url = verification_input.evidence_url
            row = await VerificationRepository(session).create(
                version_id=version_id, status=verification_input.status,
                verified_by=verification_input.verified_by,
                verification_method=verification_input.verification_method,
                notes=verification_input.notes,
                evidence_url=str(evidence_url) if evidence_url is not None else None,
                expires_at=expires_at,
            )
            record = _with_version(row, version)
            await AuditLog.append(
                session, action=AuditAction.VERIFICATION_ADDED,
                entity_type="VerificationRecord", entity_id=record.verification_id,
                new=record, performed_by=performed_by or verification_input.verified_by,
            )
        logger.info("Entity %s version %d marked %s",
                    record.entity_id, record.version_number, record.status)
        return record

    async def get_entity_verification_history(self, entity_id: UUID) -> list[VerificationRecord]:
        """Records across all versions of an entity, newest first."""
        async with self._session_factory() as session:
            pairs = await VerificationRepository(session).list_for_entity(entity_id)
        return [_with_version(record, version) for record, version in pairs]

    async def get_latest_verification_status(self, entity_id: UUID) -> VerificationRecord | None:
        """Newest record on the entity's current version, or ``None``."""
        async with self._session_factory() as session:
            entity = await session.get(EntityRow, entity_id)
            if entity is None or entity.current_version_id is None:
                return None
            repo = VerificationRepository(session)
            row = await repo.latest_for_version(entity.current_version_id)
            if row is None:
                return None
            version = await session.get(EntityVersionRow, row.version_id)
        return _with_version(row, version)

    async def get_by_status(self, status: VerificationStatus, *, limit: int | None = None,
                            offset: int = 0) -> tuple[list[VerificationRecord], int]:
        async with self._session_factory() as session:
            repo = VerificationRepository(session)
            rows, total = await repo.list_by_status(
                status, limit=self._settings.clamp_limit(limit), offset=max(offset, 0),
            )
            versions = await repo.get_versions({r.version_id for r in rows})
        return [_with_version(r, versions.get(r.version_id)) for r in rows], total
