"""Identifier dedup index: VAT, EORI, LEI and other registry numbers.

``(type, value)`` is globally unique: an identifier belongs to at most one
entity, so looking one up is the primary deduplication check when new
entity data arrives.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import EntityRow, SourceRow
from gpsr_registry.errors import NotFoundError, ValidationError
from gpsr_registry.models.common import AuditAction, IdentifierType, utc_now
from gpsr_registry.models.entity import Entity
from gpsr_registry.models.identifier import DuplicateCandidate, EntityIdentifier, IdentifierInput
from gpsr_registry.normalization import normalize_country, normalize_identifier_value
from gpsr_registry.repositories.identifiers import IdentifierRepository
from gpsr_registry.versioning.retry import raise_integrity_error

logger = logging.getLogger(__name__)


class IdentifierService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    async def add_identifier(self, entity_id: UUID, identifier_input: IdentifierInput, *,
                             performed_by: str | None = None) -> EntityIdentifier:
        """Attach an identifier, or refresh it when the entity already holds it.

        Raises:
            NotFoundError: The entity or the source does not exist.
            ValidationError: Another entity already holds this identifier.
        """
        value = normalize_identifier_value(identifier_input.value)
        country = (normalize_country(identifier_input.country_code)
                   if identifier_input.country_code else None)
        try:
            async with self._session_factory() as session, session.begin():
                if await session.get(EntityRow, entity_id) is None:
                    raise NotFoundError("Entity", entity_id)
                if await session.get(SourceRow, identifier_input.source_id) is None:
                    raise NotFoundError("Source", identifier_input.source_id)
                repo = IdentifierRepository(session)
                existing = await repo.find(identifier_input.type, value)

                if existing is not None and existing.entity_id != entity_id:
                    owner = await session.get(EntityRow, existing.entity_id)
                    owner_name = owner.normalized_name if owner is not None else "?"
                    msg = (f"Identifier {identifier_input.type}:{value} already assigned to "
                           f'entity "{owner_name}" ({existing.entity_id})')
                    raise ValidationError(
                        msg, errors={"value": [f"held by entity {existing.entity_id}"]},
                    )

                if identifier_input.is_primary:
                    await repo.clear_primary(entity_id, identifier_input.type)

                if existing is not None:
                    before = EntityIdentifier.model_validate(existing)
                    existing.country_code = country
                    existing.source_id = identifier_input.source_id
                    if identifier_input.is_primary is not None:
                        existing.is_primary = identifier_input.is_primary
                    existing.updated_at = utc_now()
                    await session.flush()
                    identifier = EntityIdentifier.model_validate(existing)
                    await AuditLog.append(
                        session, action=AuditAction.IDENTIFIER_UPDATED,
                        entity_type="EntityIdentifier", entity_id=identifier.identifier_id,
                        previous=before, new=identifier, performed_by=performed_by,
                    )
                    return identifier

                row = await repo.create(
                    entity_id=entity_id, type=identifier_input.type, value=value,
                    country_code=country, source_id=identifier_input.source_id,
                    is_primary=bool(identifier_input.is_primary),
                )
                identifier = EntityIdentifier.model_validate(row)
                await AuditLog.append(
                    session, action=AuditAction.IDENTIFIER_ADDED,
                    entity_type="EntityIdentifier", entity_id=identifier.identifier_id,
                    new=identifier, performed_by=performed_by,
                )
        except IntegrityError as exc:
            raise_integrity_error(
                exc, resource="Entity",
                conflict_message=(
                    f"Identifier {identifier_input.type}:{value} was assigned concurrently"
                ),
            )
        return identifier

    async def find_by_identifier(self, type: IdentifierType, value: str) -> Entity | None:
        """Entity holding ``type:value``, or ``None``."""
        async with self._session_factory() as session:
            row = await IdentifierRepository(session).find(type, normalize_identifier_value(value))
            if row is None:
                return None
            entity = await session.get(EntityRow, row.entity_id)
        return Entity.model_validate(entity) if entity is not None else None

    async def get_for_entity(self, entity_id: UUID) -> list[EntityIdentifier]:
        """Primary identifiers first, then by type."""
        async with self._session_factory() as session:
            rows = await IdentifierRepository(session).get_for_entity(entity_id)
        return [EntityIdentifier.model_validate(r) for r in rows]

    async def search(self, pattern: str, type: IdentifierType | None = None, *,
                     limit: int | None = None) -> list[EntityIdentifier]:
        async with self._session_factory() as session:
            rows = await IdentifierRepository(session).search(
                normalize_identifier_value(pattern), type=type,
                limit=self._settings.clamp_limit(limit),
            )
        return [EntityIdentifier.model_validate(r) for r in rows]

    async def remove_identifier(self, identifier_id: UUID, *,
                                performed_by: str | None = None) -> EntityIdentifier:
        """Physically delete; the removed row is kept in the audit log."""
        async with self._session_factory() as session, session.begin():
            repo = IdentifierRepository(session)
            row = await repo.get(identifier_id)
            if row is None:
                raise NotFoundError("Identifier", identifier_id)
            removed = EntityIdentifier.model_validate(row)
            await repo.delete(row)
            await AuditLog.append(
                session, action=AuditAction.IDENTIFIER_REMOVED,
                entity_type="EntityIdentifier", entity_id=identifier_id,
                previous=removed, performed_by=performed_by,
            )
        return removed

    async def find_duplicate_candidates(self, entity_id: UUID) -> list[DuplicateCandidate]:
        """Other entities whose identifiers of the same type share our suffix.

        Compares the last ``DUPLICATE_SUFFIX_LENGTH`` characters, which
        catches the same number written with and without a country prefix.
        """
        suffix_length = self._settings.DUPLICATE_SUFFIX_LENGTH
        candidates: dict[UUID, DuplicateCandidate] = {}
        async with self._session_factory() as session:
            if await session.get(EntityRow, entity_id) is None:
                raise NotFoundError("Entity", entity_id)
            repo = IdentifierRepository(session)
            for identifier in await repo.get_for_entity(entity_id):
                matches = await repo.find_suffix_matches(
                    type=identifier.type, suffix=identifier.value[-suffix_length:],
                    exclude_entity_id=entity_id,
                )
                for match, entity in matches:
                    candidate = candidates.setdefault(entity.entity_id, DuplicateCandidate(
                        entity_id=entity.entity_id, entity_name=entity.normalized_name,
                        country=entity.normalized_country,
                    ))
                    label = f"{match.type}:{match.value}"
                    if label not in candidate.matched_identifiers:
                        candidate.matched_identifiers.append(label)
        if candidates:
            logger.info("Entity %s has %d duplicate candidate(s)", entity_id, len(candidates))
        return list(candidates.values())
