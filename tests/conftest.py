"""Shared pytest fixtures for the GPSR registry test suite.

Provides:
- db_engine: in-memory SQLite async engine with all tables (FKs enforced)
- session_factory: one session per unit of work, like production
- settings: Settings with retry backoff disabled
- registry: every service wired on top of the session factory
- source_input / entity / brand / product: commonly needed parent rows
"""

import pytest
from sqlalchemy.pool import StaticPool

from gpsr_registry.app import Registry
from gpsr_registry.config.settings import Settings
from gpsr_registry.db.session import Base, build_engine, build_session_factory
import gpsr_registry.db.tables  # noqa: F401  (registers ORM tables on Base.metadata)
from gpsr_registry.models.brand import BrandInput
from gpsr_registry.models.common import RoleType, SourceType
from gpsr_registry.models.entity import EntityInput
from gpsr_registry.models.product import ProductInput
from gpsr_registry.models.source import SourceInput


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        VERSION_RETRY_BASE_DELAY_MS=0,
    )


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with all tables."""
    eng = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def registry(session_factory, settings) -> Registry:
    return Registry.build(session_factory, settings)


@pytest.fixture
def source_input() -> SourceInput:
    return SourceInput(
        source_type=SourceType.OFFICIAL_REGISTRY,
        source_identifier="KRS-0000123456",
        source_name="KRS extract",
    )


@pytest.fixture
async def source(registry, source_input):
    return await registry.sources.find_or_create(source_input)


@pytest.fixture
async def entity(registry, source_input):
    return await registry.entities.create(
        EntityInput(name="Acme Sp. z o.o.", country="pl", city="Warszawa",
                    role=RoleType.MANUFACTURER),
        source_input,
    )


@pytest.fixture
async def brand(registry, source_input):
    return await registry.brands.create(BrandInput(trade_name="Acme Tools"), source_input)


@pytest.fixture
async def product(registry, brand):
    return await registry.products.create(
        ProductInput(brand_id=brand.brand_id, product_name="Cordless Drill",
                     ean="5901234123457", mpn="CD-18V"),
    )
