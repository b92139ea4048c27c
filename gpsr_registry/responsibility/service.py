"""Product responsibility: who answers for product X in country Y.

At most one ACTIVE assignment exists per (product, country, role), backed
by a partial unique index. Reassignment demotes the previous holder to
HISTORICAL and inserts the new one in a single transaction.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import EntityRow, ProductRow
from gpsr_registry.errors import NotFoundError
from gpsr_registry.models.common import (
    AuditAction,
    ResolutionMode,
    ResponsibilityStatus,
    RoleType,
    utc_now,
)
from gpsr_registry.models.responsibility import (
    ProductResponsibility,
    ResolvedView,
    ResponsibilityDispute,
    ResponsibilityInput,
)
from gpsr_registry.normalization import normalize_country
from gpsr_registry.repositories.responsibilities import ResponsibilityRepository
from gpsr_registry.responsibility.resolver import resolve_responsibilities
from gpsr_registry.versioning.retry import raise_integrity_error

logger = logging.getLogger(__name__)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _with_name(row, entity_name: str | None) -> ProductResponsibility:
    responsibility = ProductResponsibility.model_validate(row)
    responsibility.entity_name = entity_name
    return responsibility


class ResponsibilityService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    async def assign(self, responsibility_input: ResponsibilityInput, *,
                     performed_by: str | None = None) -> ProductResponsibility:
        """Make ``entity_id`` the ACTIVE holder of a role for a product and country.

        Raises:
            NotFoundError: Product, entity or source does not exist.
            ConflictError: A concurrent assignment for the same key won.
        """
        country = normalize_country(responsibility_input.country_code)
        confidence = responsibility_input.confidence
        if confidence is None:
            confidence = self._settings.DEFAULT_CLAIM_CONFIDENCE
        try:
            async with self._session_factory() as session, session.begin():
                if await session.get(ProductRow, responsibility_input.product_id) is None:
                    raise NotFoundError("Product", responsibility_input.product_id)
                entity = await session.get(EntityRow, responsibility_input.entity_id)
                if entity is None:
                    raise NotFoundError("Entity", responsibility_input.entity_id)

                repo = ResponsibilityRepository(session)
                existing = await repo.get_active(
                    responsibility_input.product_id, country, responsibility_input.role,
                )
                if existing is not None:
                    before = ProductResponsibility.model_validate(existing)
                    now = utc_now()
                    existing.status = ResponsibilityStatus.HISTORICAL
                    existing.valid_to = max(now, existing.valid_from)
                    existing.updated_at = now
                    # the partial unique index must see the demotion before the insert
                    await session.flush()
                    await AuditLog.append(
                        session, action=AuditAction.RESPONSIBILITY_DEMOTED,
                        entity_type="ProductResponsibility",
                        entity_id=existing.responsibility_id, previous=before,
                        new=ProductResponsibility.model_validate(existing),
                        performed_by=performed_by,
                    )

                row = await repo.create(
                    product_id=responsibility_input.product_id, country_code=country,
                    entity_id=responsibility_input.entity_id,
                    role=responsibility_input.role,
                    source_id=responsibility_input.source_id, confidence=confidence,
                    valid_from=responsibility_input.valid_from,
                    valid_to=responsibility_input.valid_to,
                )
                responsibility = _with_name(row, entity.normalized_name)
                await AuditLog.append(
                    session, action=AuditAction.RESPONSIBILITY_ASSIGNED,
                    entity_type="ProductResponsibility",
                    entity_id=responsibility.responsibility_id, new=responsibility,
                    performed_by=performed_by,
                )
        except IntegrityError as exc:
            raise_integrity_error(
                exc, resource="Source",
                conflict_message=(
                    f"{responsibility_input.role} for product "
                    f"{responsibility_input.product_id} in {country} was assigned concurrently"
                ),
            )
        if existing is not None:
            logger.info(
                "Reassigned %s for product %s in %s: %s -> %s",
                responsibility.role, responsibility.product_id, country,
                before.entity_id, responsibility.entity_id,
            )
        return responsibility

    async def get_resolved(self, product_id: UUID, country_code: str,
                           valid_on_date: datetime | None = None) -> ResolvedView:
        """Best known responsible entity per role.

        Without ``valid_on_date`` this resolves the ACTIVE assignments now;
        with it, every assignment whose validity window contains that date.
        """
        resolved_at = utc_now()
        if valid_on_date is None:
            mode, target, status = ResolutionMode.CURRENT, resolved_at, ResponsibilityStatus.ACTIVE
        else:
            mode, target, status = ResolutionMode.HISTORICAL, _as_utc(valid_on_date), None
        country = normalize_country(country_code)
        candidates = await self.get_for_product(product_id, country, status=status)
        return resolve_responsibilities(
            candidates, product_id=product_id, country_code=country,
            mode=mode, target=target, resolved_at=resolved_at,
        )

    async def get_for_product(self, product_id: UUID, country_code: str | None = None,
                              role: RoleType | None = None,
                              status: ResponsibilityStatus | None = ResponsibilityStatus.ACTIVE,
                              ) -> list[ProductResponsibility]:
        """Assignments for a product; pass ``status=None`` for every status."""
        async with self._session_factory() as session:
            pairs = await ResponsibilityRepository(session).find_with_entity_names(
                product_id=product_id,
                country_code=normalize_country(country_code) if country_code else None,
                role=role, status=status,
            )
        return [_with_name(row, name) for row, name in pairs]

    async def get_for_entity(self, entity_id: UUID) -> list[ProductResponsibility]:
        """ACTIVE assignments held by an entity."""
        async with self._session_factory() as session:
            pairs = await ResponsibilityRepository(session).find_with_entity_names(
                entity_id=entity_id, status=ResponsibilityStatus.ACTIVE,
            )
        return [_with_name(row, name) for row, name in pairs]

    async def get_history(self, product_id: UUID,
                          country_code: str | None = None) -> list[ProductResponsibility]:
        """Every assignment for a product, by country and role, newest first."""
        rows = await self.get_for_product(product_id, country_code, status=None)
        rows.sort(key=lambda r: r.valid_from, reverse=True)
        rows.sort(key=lambda r: (r.country_code, r.role))
        return rows

    async def dispute(self, responsibility_id: UUID, reason: str | None = None, *,
                      performed_by: str | None = None) -> ProductResponsibility:
        async with self._session_factory() as session, session.begin():
            row = await ResponsibilityRepository(session).get(responsibility_id)
            if row is None:
                raise NotFoundError("Responsibility", responsibility_id)
            before = ProductResponsibility.model_validate(row)
            row.status = ResponsibilityStatus.DISPUTED
            row.updated_at = utc_now()
            await session.flush()
            after = ProductResponsibility.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.RESPONSIBILITY_DISPUTED,
                entity_type="ProductResponsibility", entity_id=responsibility_id,
                previous=before,
                new=ResponsibilityDispute(responsibility=after, reason=reason),
                performed_by=performed_by,
            )
        return after
