"""Product references and their per-market safety information.

Safety information is versioned with an ``is_current`` flag instead of a
pointer: each (product, country, language) triple has a chain of rows
linked old -> new through ``superseded_by``, and a partial unique index
allows at most one current row per triple.
"""

import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import BrandRow, SafetyInfoRow
from gpsr_registry.errors import NotFoundError
from gpsr_registry.models.common import AuditAction, utc_now
from gpsr_registry.models.product import (
    Product,
    ProductInput,
    ProductPatch,
    SafetyInfo,
    SafetyInfoInput,
    SafetyInfoPatch,
)
from gpsr_registry.models.source import SourceInput
from gpsr_registry.normalization import normalize_country
from gpsr_registry.provenance.source_registry import SourceRegistry
from gpsr_registry.repositories.products import ProductRepository, SafetyInfoRepository
from gpsr_registry.versioning.retry import raise_integrity_error, retry_on_unique_violation

logger = logging.getLogger(__name__)

_PRODUCT_FIELDS = (
    "product_name", "ean", "gtin", "mpn", "model_number", "sku",
    "product_category", "image_url", "product_url",
)
_SAFETY_CONTENT_FIELDS = (
    "warning_text", "safety_instructions", "age_restriction",
    "hazard_symbols", "document_url", "document_type",
)


def _language(code: str) -> str:
    return code.strip().lower()


class ProductService:
    """Product references plus the flag-versioned SafetyInfo store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 sources: SourceRegistry, settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._sources = sources
        self._settings = settings or get_settings()

    # --- products ---

    async def create(self, product_input: ProductInput, *,
                     performed_by: str | None = None) -> Product:
        try:
            async with self._session_factory() as session, session.begin():
                if await session.get(BrandRow, product_input.brand_id) is None:
                    raise NotFoundError("Brand", product_input.brand_id)
                row = await ProductRepository(session).create(**product_input.model_dump())
                product = Product.model_validate(row)
                await AuditLog.append(
                    session, action=AuditAction.CREATE, entity_type="ProductReference",
                    entity_id=product.product_id, new=product, performed_by=performed_by,
                )
        except IntegrityError as exc:
            raise_integrity_error(exc, resource="Brand")
        return product

    async def get(self, product_id: UUID) -> Product:
        async with self._session_factory() as session:
            row = await ProductRepository(session).get(product_id)
        if row is None:
            raise NotFoundError("Product", product_id)
        return Product.model_validate(row)

    async def find_by_identifier(self, code: str) -> Product | None:
        """Look a product up by EAN, GTIN or MPN."""
        async with self._session_factory() as session:
            row = await ProductRepository(session).find_by_code(code.strip())
        return Product.model_validate(row) if row is not None else None

    async def list_for_brand(self, brand_id: UUID) -> list[Product]:
        async with self._session_factory() as session:
            rows = await ProductRepository(session).list_for_brand(brand_id)
        return [Product.model_validate(r) for r in rows]

    async def update(self, product_id: UUID, patch: ProductPatch, *,
                     performed_by: str | None = None) -> Product:
        """Edit in place (products are audited, not versioned)."""
        async with self._session_factory() as session, session.begin():
            row = await ProductRepository(session).get(product_id)
            if row is None:
                raise NotFoundError("Product", product_id)
            before = Product.model_validate(row)
            for name in _PRODUCT_FIELDS:
                value = getattr(patch, name)
                if value is None:
                    continue
                if name == "product_name":
                    if value.strip():
                        row.product_name = value.strip()
                    continue
                setattr(row, name, value or None)
            if patch.is_active is not None:
                row.is_active = patch.is_active
            row.updated_at = utc_now()
            await session.flush()
            after = Product.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.UPDATE, entity_type="ProductReference",
                entity_id=product_id, previous=before, new=after,
                performed_by=performed_by,
            )
        return after

    # --- safety information ---

    async def add_safety_info(self, info_input: SafetyInfoInput, *,
                              performed_by: str | None = None) -> SafetyInfo:
        """Append a new current version for the (product, country, language) triple."""
        source_id = await self._resolve_source(info_input.source)
        content = {name: getattr(info_input, name) for name in _SAFETY_CONTENT_FIELDS}
        return await self._add_version(
            product_id=info_input.product_id,
            country_code=normalize_country(info_input.country_code),
            language_code=_language(info_input.language_code),
            build=lambda current: (content, source_id),
            performed_by=performed_by,
        )

    async def update_safety_info(self, safety_info_id: UUID, patch: SafetyInfoPatch, *,
                                 performed_by: str | None = None) -> SafetyInfo:
        """Version the current row; historical rows are corrected in place.

        The patch is merged onto whichever row is current when the new
        version is written, so a version added concurrently is carried
        forward rather than overwritten with stale content.
        """
        async with self._session_factory() as session:
            existing = await SafetyInfoRepository(session).get(safety_info_id)
            if existing is None:
                raise NotFoundError("Safety info", safety_info_id)
            target = SafetyInfo.model_validate(existing)

        if target.is_current:
            patch_source_id = await self._resolve_source(patch.source)

            def build(current: SafetyInfoRow | None) -> tuple[dict[str, Any], UUID | None]:
                base = current if current is not None else target
                content = {
                    name: getattr(patch, name) if getattr(patch, name) is not None
                    else getattr(base, name)
                    for name in _SAFETY_CONTENT_FIELDS
                }
                return content, patch_source_id or base.source_id

            return await self._add_version(
                product_id=target.product_id, country_code=target.country_code,
                language_code=target.language_code, build=build,
                performed_by=performed_by,
            )

        async with self._session_factory() as session, session.begin():
            row = await SafetyInfoRepository(session).get(safety_info_id)
            if row is None:
                raise NotFoundError("Safety info", safety_info_id)
            before = SafetyInfo.model_validate(row)
            for name in _SAFETY_CONTENT_FIELDS:
                value = getattr(patch, name)
                if value is not None:
                    setattr(row, name, value)
            if patch.is_active is not None:
                row.is_active = patch.is_active
            await session.flush()
            after = SafetyInfo.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.UPDATE, entity_type="SafetyInfo",
                entity_id=safety_info_id, previous=before, new=after,
                performed_by=performed_by,
            )
        return after

    async def get_safety_info(self, product_id: UUID, country_code: str,
                              language_code: str | None = None) -> SafetyInfo | None:
        """Current, active safety info for a market (any language when omitted)."""
        async with self._session_factory() as session:
            rows = await SafetyInfoRepository(session).list_current(
                product_id, normalize_country(country_code),
            )
        if language_code is not None:
            rows = [r for r in rows if r.language_code == _language(language_code)]
        return SafetyInfo.model_validate(rows[0]) if rows else None

    async def get_all_safety_info(self, product_id: UUID) -> list[SafetyInfo]:
        async with self._session_factory() as session:
            rows = await SafetyInfoRepository(session).list_current(product_id)
        return [SafetyInfo.model_validate(r) for r in rows]

    async def get_safety_info_history(self, product_id: UUID, country_code: str,
                                      language_code: str) -> list[SafetyInfo]:
        """Every version for the triple, newest first."""
        async with self._session_factory() as session:
            rows = await SafetyInfoRepository(session).list_versions(
                product_id, normalize_country(country_code), _language(language_code),
            )
        return [SafetyInfo.model_validate(r) for r in rows]

    async def _resolve_source(self, source: SourceInput | None) -> UUID | None:
        if source is None:
            return None
        return (await self._sources.find_or_create(source)).source_id

    async def _add_version(self, *, product_id: UUID, country_code: str, language_code: str,
                           build: Callable[[SafetyInfoRow | None],
                                           tuple[dict[str, Any], UUID | None]],
                           performed_by: str | None) -> SafetyInfo:
        async def attempt() -> SafetyInfo:
            async with self._session_factory() as session, session.begin():
                if await ProductRepository(session).get(product_id) is None:
                    raise NotFoundError("Product", product_id)
                repo = SafetyInfoRepository(session)
                current = await repo.get_current(product_id, country_code, language_code)
                content, source_id = build(current)
                next_number = await repo.max_version_number(
                    product_id, country_code, language_code,
                ) + 1
                now = utc_now()
                if current is not None:
                    current.is_current = False
                    current.valid_to = now
                    # flag must be cleared before the new current row is inserted
                    await session.flush()
                row = await repo.create(
                    product_id=product_id, country_code=country_code,
                    language_code=language_code, version_number=next_number,
                    source_id=source_id, valid_from=now, **content,
                )
                if current is not None:
                    current.superseded_by = row.safety_info_id
                    await session.flush()
                info = SafetyInfo.model_validate(row)
                await AuditLog.append(
                    session, action=AuditAction.CREATE, entity_type="SafetyInfo",
                    entity_id=info.safety_info_id, new=info, performed_by=performed_by,
                )
                logger.info("Safety info %s/%s/%s now at version %d",
                            product_id, country_code, language_code, next_number)
                return info

        return await retry_on_unique_violation(
            attempt,
            max_attempts=self._settings.VERSION_RETRY_MAX_ATTEMPTS,
            base_delay=self._settings.retry_base_delay_seconds,
            description=f"SafetyInfo {product_id}/{country_code}/{language_code} version",
        )

    async def list(self, *, brand_id: UUID | None = None, search: str | None = None,
                   ean: str | None = None, gtin: str | None = None,
                   limit: int | None = None, offset: int = 0) -> tuple[list[Product], int]:
        """Active products by name, with the unpaged total."""
        async with self._session_factory() as session:
            rows, total = await ProductRepository(session).list_page(
                brand_id=brand_id, search=search,
                ean=ean.strip() if ean else None, gtin=gtin.strip() if gtin else None,
                limit=self._settings.clamp_limit(limit), offset=max(offset, 0),
            )
        return [Product.model_validate(r) for r in rows], total
