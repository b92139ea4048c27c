"""Source registry: deduplicated provenance records.

A Source with an identifier is unique on ``(source_type, source_identifier)``
and is looked up before being created; a Source without one is always new.
Sources are never updated or deleted.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.db.tables import SourceRow
from gpsr_registry.errors import ConflictError, NotFoundError
from gpsr_registry.models.common import SourceType
from gpsr_registry.models.source import Source, SourceInput
from gpsr_registry.repositories.sources import SourceRepository
from gpsr_registry.versioning.retry import is_unique_violation, retry_on_unique_violation

logger = logging.getLogger(__name__)


class SourceRegistry:
    """Creates, deduplicates and reads provenance records."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    async def create(self, source_input: SourceInput) -> Source:
        """Insert unconditionally. A duplicate identifier raises ``ConflictError``."""
        try:
            async with self._session_factory() as session, session.begin():
                row = await SourceRepository(session).create(**source_input.model_dump())
        except IntegrityError as exc:
            if is_unique_violation(exc):
                msg = (f"Source {source_input.source_type}:"
                       f"{source_input.source_identifier} already exists")
                raise ConflictError(msg) from exc
            raise
        return Source.model_validate(row)

    async def find_or_create(self, source_input: SourceInput) -> Source:
        """Return the existing Source for the identifier or create it.

        Each attempt re-queries before inserting, so a concurrent creator
        that wins the race is found on the retry.
        """
        async def attempt() -> SourceRow:
            async with self._session_factory() as session, session.begin():
                return await self._lookup_or_insert(SourceRepository(session), source_input)

        row = await retry_on_unique_violation(
            attempt,
            max_attempts=self._settings.VERSION_RETRY_MAX_ATTEMPTS,
            base_delay=self._settings.retry_base_delay_seconds,
            description="source find_or_create",
        )
        return Source.model_validate(row)

    async def find_or_create_in(self, session: AsyncSession,
                                source_input: SourceInput) -> SourceRow:
        """Find-or-create inside the caller's open transaction.

        The insert runs in a SAVEPOINT; losing the race rolls back only the
        savepoint and the winner's row is returned instead.
        """
        repo = SourceRepository(session)
        if source_input.source_identifier is None:
            return await repo.create(**source_input.model_dump())
        existing = await repo.find_by_identifier(
            source_input.source_type, source_input.source_identifier,
        )
        if existing is not None:
            return existing
        try:
            async with session.begin_nested():
                return await repo.create(**source_input.model_dump())
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            logger.info(
                "Source %s:%s created concurrently, reusing it",
                source_input.source_type, source_input.source_identifier,
            )
            existing = await repo.find_by_identifier(
                source_input.source_type, source_input.source_identifier,
            )
            if existing is None:
                raise ConflictError("Source could not be created or found") from exc
            return existing

    async def get(self, source_id: UUID) -> Source:
        async with self._session_factory() as session:
            row = await SourceRepository(session).get(source_id)
        if row is None:
            raise NotFoundError("Source", source_id)
        return Source.model_validate(row)

    async def list(self, source_type: SourceType | None = None, *,
                   limit: int | None = None, offset: int = 0) -> tuple[list[Source], int]:
        async with self._session_factory() as session:
            rows, total = await SourceRepository(session).list_page(
                source_type=source_type,
                limit=self._settings.clamp_limit(limit),
                offset=max(offset, 0),
            )
        return [Source.model_validate(r) for r in rows], total

    @staticmethod
    async def _lookup_or_insert(repo: SourceRepository,
                                source_input: SourceInput) -> SourceRow:
        if source_input.source_identifier is not None:
            existing = await repo.find_by_identifier(
                source_input.source_type, source_input.source_identifier,
            )
            if existing is not None:
                return existing
        return await repo.create(**source_input.model_dump())
