"""Product and safety-information repositories."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import ProductRow, SafetyInfoRow
from gpsr_registry.models.common import new_uuid7, utc_now
from gpsr_registry.repositories.base import fetch_page


class ProductRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, brand_id: UUID, product_name: str,
                     ean: str | None = None, gtin: str | None = None,
                     mpn: str | None = None, model_number: str | None = None,
                     sku: str | None = None, product_category: str | None = None,
                     image_url: str | None = None,
                     product_url: str | None = None) -> ProductRow:
        now = utc_now()
        row = ProductRow(
            product_id=new_uuid7(), brand_id=brand_id, product_name=product_name,
            ean=ean, gtin=gtin, mpn=mpn, model_number=model_number, sku=sku,
            product_category=product_category, image_url=image_url,
            product_url=product_url, is_active=True,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, product_id: UUID) -> ProductRow | None:
        return await self._session.get(ProductRow, product_id)

    async def find_by_code(self, code: str) -> ProductRow | None:
        """First active product whose EAN, GTIN or MPN equals ``code``."""
        result = await self._session.execute(
            select(ProductRow)
            .where(
                or_(ProductRow.ean == code, ProductRow.gtin == code, ProductRow.mpn == code),
                ProductRow.is_active.is_(True),
            )
            .order_by(ProductRow.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_brand(self, brand_id: UUID) -> list[ProductRow]:
        result = await self._session.execute(
            select(ProductRow)
            .where(ProductRow.brand_id == brand_id, ProductRow.is_active.is_(True))
            .order_by(ProductRow.product_name.asc())
        )
        return list(result.scalars().all())

    async def list_page(self, *, brand_id: UUID | None = None, search: str | None = None,
                        ean: str | None = None, gtin: str | None = None,
                        limit: int, offset: int = 0) -> tuple[list[ProductRow], int]:
        stmt = select(ProductRow).where(ProductRow.is_active.is_(True))
        if brand_id is not None:
            stmt = stmt.where(ProductRow.brand_id == brand_id)
        if search:
            stmt = stmt.where(
                func.lower(ProductRow.product_name).contains(
                    search.strip().lower(), autoescape=True,
                )
            )
        if ean is not None:
            stmt = stmt.where(ProductRow.ean == ean)
        if gtin is not None:
            stmt = stmt.where(ProductRow.gtin == gtin)
        stmt = stmt.order_by(ProductRow.product_name.asc(), ProductRow.product_id.asc())
        return await fetch_page(self._session, stmt, limit=limit, offset=offset)


class SafetyInfoRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, product_id: UUID, country_code: str, language_code: str,
                     version_number: int, warning_text: str | None = None,
                     safety_instructions: str | None = None,
                     age_restriction: str | None = None,
                     hazard_symbols: list | None = None,
                     document_url: str | None = None,
                     document_type: str | None = None,
                     source_id: UUID | None = None,
                     valid_from: datetime | None = None) -> SafetyInfoRow:
        now = utc_now()
        row = SafetyInfoRow(
            safety_info_id=new_uuid7(), product_id=product_id,
            country_code=country_code, language_code=language_code,
            version_number=version_number, is_current=True, superseded_by=None,
            warning_text=warning_text, safety_instructions=safety_instructions,
            age_restriction=age_restriction, hazard_symbols=hazard_symbols or [],
            document_url=document_url, document_type=document_type,
            source_id=source_id, valid_from=valid_from or now, valid_to=None,
            is_active=True, created_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, safety_info_id: UUID) -> SafetyInfoRow | None:
        return await self._session.get(SafetyInfoRow, safety_info_id)

    async def get_current(self, product_id: UUID, country_code: str,
                          language_code: str) -> SafetyInfoRow | None:
        result = await self._session.execute(
            select(SafetyInfoRow).where(
                SafetyInfoRow.product_id == product_id,
                SafetyInfoRow.country_code == country_code,
                SafetyInfoRow.language_code == language_code,
                SafetyInfoRow.is_current.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def max_version_number(self, product_id: UUID, country_code: str,
                                 language_code: str) -> int:
        result = await self._session.execute(
            select(func.max(SafetyInfoRow.version_number)).where(
                SafetyInfoRow.product_id == product_id,
                SafetyInfoRow.country_code == country_code,
                SafetyInfoRow.language_code == language_code,
            )
        )
        return result.scalar_one_or_none() or 0

    async def list_current(self, product_id: UUID,
                           country_code: str | None = None) -> list[SafetyInfoRow]:
        stmt = select(SafetyInfoRow).where(
            SafetyInfoRow.product_id == product_id,
            SafetyInfoRow.is_current.is_(True),
            SafetyInfoRow.is_active.is_(True),
        )
        if country_code is not None:
            stmt = stmt.where(SafetyInfoRow.country_code == country_code)
        result = await self._session.execute(
            stmt.order_by(SafetyInfoRow.country_code, SafetyInfoRow.language_code)
        )
        return list(result.scalars().all())

    async def list_versions(self, product_id: UUID, country_code: str,
                            language_code: str) -> list[SafetyInfoRow]:
        """All versions for one triple, newest first."""
        result = await self._session.execute(
            select(SafetyInfoRow)
            .where(
                SafetyInfoRow.product_id == product_id,
                SafetyInfoRow.country_code == country_code,
                SafetyInfoRow.language_code == language_code,
            )
            .order_by(SafetyInfoRow.version_number.desc())
        )
        return list(result.scalars().all())
