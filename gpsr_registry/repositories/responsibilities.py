"""Product responsibility repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import EntityRow, ProductResponsibilityRow
from gpsr_registry.models.common import ResponsibilityStatus, new_uuid7, utc_now


class ResponsibilityRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, product_id: UUID, country_code: str, entity_id: UUID,
                     role: str, source_id: UUID, confidence: int,
                     valid_from: datetime | None = None,
                     valid_to: datetime | None = None,
                     status: str = ResponsibilityStatus.ACTIVE) -> ProductResponsibilityRow:
        now = utc_now()
        row = ProductResponsibilityRow(
            responsibility_id=new_uuid7(), product_id=product_id,
            country_code=country_code, entity_id=entity_id, role=role,
            source_id=source_id, confidence=confidence, status=status,
            valid_from=valid_from or now, valid_to=valid_to,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, responsibility_id: UUID) -> ProductResponsibilityRow | None:
        return await self._session.get(ProductResponsibilityRow, responsibility_id)

    async def get_active(self, product_id: UUID, country_code: str,
                         role: str) -> ProductResponsibilityRow | None:
        result = await self._session.execute(
            select(ProductResponsibilityRow).where(
                ProductResponsibilityRow.product_id == product_id,
                ProductResponsibilityRow.country_code == country_code,
                ProductResponsibilityRow.role == role,
                ProductResponsibilityRow.status == ResponsibilityStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def find_with_entity_names(
        self, *, product_id: UUID | None = None, entity_id: UUID | None = None,
        country_code: str | None = None, role: str | None = None,
        status: str | None = None,
    ) -> list[tuple[ProductResponsibilityRow, str]]:
        """Rows joined with the responsible entity's normalized name."""
        stmt = select(ProductResponsibilityRow, EntityRow.normalized_name).join(
            EntityRow, EntityRow.entity_id == ProductResponsibilityRow.entity_id
        )
        if product_id is not None:
            stmt = stmt.where(ProductResponsibilityRow.product_id == product_id)
        if entity_id is not None:
            stmt = stmt.where(ProductResponsibilityRow.entity_id == entity_id)
        if country_code is not None:
            stmt = stmt.where(ProductResponsibilityRow.country_code == country_code)
        if role is not None:
            stmt = stmt.where(ProductResponsibilityRow.role == role)
        if status is not None:
            stmt = stmt.where(ProductResponsibilityRow.status == status)
        stmt = stmt.order_by(
            ProductResponsibilityRow.valid_from.desc(),
            ProductResponsibilityRow.created_at.desc(),
        )
        result = await self._session.execute(stmt)
        return [(row, name) for row, name in result.all()]
