"""Wiring for the registry services.

``Registry.from_settings()`` builds the engine, the session factory and
every service on top of them, sharing one ``SourceRegistry`` so all
aggregates resolve provenance the same way.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.logging import configure_logging
from gpsr_registry.config.settings import Environment, Settings, get_settings
from gpsr_registry.db.session import build_engine, build_session_factory
from gpsr_registry.governance.claims import ClaimLedger
from gpsr_registry.provenance.source_registry import SourceRegistry
from gpsr_registry.provenance.verification import VerificationService
from gpsr_registry.registry.addresses import AddressService
from gpsr_registry.registry.brands import BrandService
from gpsr_registry.registry.contacts import ContactService
from gpsr_registry.registry.entities import EntityService
from gpsr_registry.registry.identifiers import IdentifierService
from gpsr_registry.registry.products import ProductService
from gpsr_registry.registry.relationships import RelationshipService
from gpsr_registry.responsibility.service import ResponsibilityService


@dataclass
class Registry:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    sources: SourceRegistry
    entities: EntityService
    brands: BrandService
    products: ProductService
    identifiers: IdentifierService
    contacts: ContactService
    addresses: AddressService
    relationships: RelationshipService
    verifications: VerificationService
    claims: ClaimLedger
    responsibilities: ResponsibilityService
    audit: AuditLog
    engine: AsyncEngine | None = None

    @classmethod
    def build(cls, session_factory: async_sessionmaker[AsyncSession],
              settings: Settings | None = None) -> "Registry":
        settings = settings or get_settings()
        sources = SourceRegistry(session_factory, settings)
        return cls(
            settings=settings,
            session_factory=session_factory,
            sources=sources,
            entities=EntityService(session_factory, sources, settings),
            brands=BrandService(session_factory, sources, settings),
            products=ProductService(session_factory, sources, settings),
            identifiers=IdentifierService(session_factory, settings),
            contacts=ContactService(session_factory),
            addresses=AddressService(session_factory, settings),
            relationships=RelationshipService(session_factory, settings),
            verifications=VerificationService(session_factory, settings),
            claims=ClaimLedger(session_factory, settings),
            responsibilities=ResponsibilityService(session_factory, settings),
            audit=AuditLog(session_factory, settings),
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Registry":
        """Configure logging and connect to ``DATABASE_URL``."""
        settings = settings or get_settings()
        configure_logging(settings)
        engine = build_engine(
            settings.DATABASE_URL,
            echo=(settings.ENVIRONMENT == Environment.DEV),
            pool_pre_ping=True,
        )
        registry = cls.build(build_session_factory(engine), settings)
        registry.engine = engine
        return registry

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
