"""Brand link repository."""

from collections.abc import Collection
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import BrandLinkRow, EntityRow
from gpsr_registry.models.common import new_uuid7, utc_now


class BrandLinkRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, brand_id: UUID, entity_id: UUID, link_type: str,
                     market_context: str, product_scope: str | None = None,
                     valid_from: datetime | None = None,
                     valid_to: datetime | None = None) -> BrandLinkRow:
        now = utc_now()
        row = BrandLinkRow(
            link_id=new_uuid7(), brand_id=brand_id, entity_id=entity_id,
            link_type=link_type, market_context=market_context,
            product_scope=product_scope, valid_from=valid_from or now,
            valid_to=valid_to, is_active=True, created_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_linked(self, brand_id: UUID, *,
                         link_types: Collection[str] | None = None,
                         market_context: str | None = None,
                         ) -> list[tuple[BrandLinkRow, EntityRow]]:
        """Active links of a brand joined with the linked entity, oldest first."""
        stmt = (
            select(BrandLinkRow, EntityRow)
            .join(EntityRow, EntityRow.entity_id == BrandLinkRow.entity_id)
            .where(BrandLinkRow.brand_id == brand_id, BrandLinkRow.is_active.is_(True))
        )
        if link_types is not None:
            stmt = stmt.where(BrandLinkRow.link_type.in_(list(link_types)))
        if market_context is not None:
            stmt = stmt.where(BrandLinkRow.market_context == market_context)
        result = await self._session.execute(
            stmt.order_by(BrandLinkRow.created_at.asc(), BrandLinkRow.link_id.asc())
        )
        return [(link, entity) for link, entity in result.all()]
