"""Version store for pointer-style aggregates (Entity, Brand).

Every mutation appends an immutable version row and repoints the
aggregate's ``current_version_id`` in the same transaction. Version numbers
are per aggregate, start at 1 and increase by exactly one; the next number
is read inside the writing transaction and a lost race on
``(parent_id, version_number)`` retries the whole unit of work.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.audit.log import AuditLog
from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.errors import NotFoundError
from gpsr_registry.models.common import AuditAction, RegistryBase, utc_now
from gpsr_registry.models.source import SourceInput
from gpsr_registry.models.versioning import VersionHistory
from gpsr_registry.provenance.source_registry import SourceRegistry
from gpsr_registry.repositories.versions import AggregateRepository, VersionRepository
from gpsr_registry.versioning.retry import retry_on_unique_violation

logger = logging.getLogger(__name__)

A = TypeVar("A", bound=RegistryBase)
V = TypeVar("V", bound=RegistryBase)

_json = TypeAdapter(dict[str, Any])

AfterCreate = Callable[[AsyncSession, Any], Awaitable[None]]


@dataclass(frozen=True)
class AggregateMapping(Generic[A, V]):
    """How one aggregate kind maps onto its head and version tables."""

    name: str
    row_cls: type
    version_cls: type
    id_column: str
    model: type[A]
    version_model: type[V]
    # Head columns captured in each version's normalized_data.
    versioned_columns: tuple[str, ...]
    search_column: str
    filter_columns: Mapping[str, str] = field(default_factory=dict)


class VersionedAggregateStore(Generic[A, V]):
    """Create, update and read one aggregate kind with full history."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 mapping: AggregateMapping[A, V], sources: SourceRegistry,
                 settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._mapping = mapping
        self._sources = sources
        self._settings = settings or get_settings()

    def _aggregates(self, session: AsyncSession) -> AggregateRepository:
        return AggregateRepository(session, self._mapping.row_cls, self._mapping.id_column)

    def _versions(self, session: AsyncSession) -> VersionRepository:
        return VersionRepository(session, self._mapping.version_cls, self._mapping.id_column)

    def _normalized(self, values: Mapping[str, Any]) -> dict[str, Any]:
        return _json.dump_python(
            {col: values.get(col) for col in self._mapping.versioned_columns}, mode="json",
        )

    async def _require(self, session: AsyncSession, aggregate_id: UUID) -> Any:
        row = await self._aggregates(session).get(aggregate_id)
        if row is None:
            raise NotFoundError(self._mapping.name, aggregate_id)
        return row

    # --- writes ---

    async def create_with_version(self, *, fields: dict[str, Any], original_data: dict[str, Any],
                                  source: SourceInput, change_note: str | None = None,
                                  performed_by: str | None = None,
                                  after_create: AfterCreate | None = None) -> A:
        """Create the aggregate with version 1 in a single transaction.

        ``after_create`` runs in the same transaction once the head row
        exists (e.g. to attach an initial role).
        """
        async with self._session_factory() as session, session.begin():
            source_row = await self._sources.find_or_create_in(session, source)
            row = await self._aggregates(session).create(fields=fields)
            aggregate_id = getattr(row, self._mapping.id_column)
            version = await self._versions(session).create(
                parent_id=aggregate_id, source_id=source_row.source_id,
                version_number=1, original_data=_json.dump_python(original_data, mode="json"),
                normalized_data=self._normalized(fields), change_note=change_note,
            )
            row.current_version_id = version.version_id
            await session.flush()
            if after_create is not None:
                await after_create(session, row)
            created = self._mapping.model.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.CREATE, entity_type=self._mapping.name,
                entity_id=aggregate_id, new=created, performed_by=performed_by,
            )
        logger.info("Created %s %s (version 1)", self._mapping.name, aggregate_id)
        return created

    async def update_with_new_version(
        self, aggregate_id: UUID, *,
        changes: Callable[[Any], dict[str, Any]],
        original_data: dict[str, Any],
        source: SourceInput,
        change_note: str | None = None,
        performed_by: str | None = None,
    ) -> A:
        """Append version ``max + 1`` and apply ``changes(row)`` to the head row.

        ``changes`` receives the freshly loaded head row and returns the
        column values to set; it is re-evaluated on every retry.

        Raises:
            NotFoundError: The aggregate does not exist.
            ConflictError: The version-number race was lost on every attempt.
        """
        async with self._session_factory() as session:
            await self._require(session, aggregate_id)
        source_model = await self._sources.find_or_create(source)
        original = _json.dump_python(original_data, mode="json")

        async def attempt() -> A:
            async with self._session_factory() as session, session.begin():
                row = await self._require(session, aggregate_id)
                before = self._mapping.model.model_validate(row)
                updates = changes(row)
                versions = self._versions(session)
                next_number = await versions.max_version_number(aggregate_id) + 1
                current_values = {col: getattr(row, col) for col in self._mapping.versioned_columns}
                version = await versions.create(
                    parent_id=aggregate_id, source_id=source_model.source_id,
                    version_number=next_number, original_data=original,
                    normalized_data=self._normalized({**current_values, **updates}),
                    change_note=change_note,
                )
                for column, value in updates.items():
                    setattr(row, column, value)
                row.current_version_id = version.version_id
                row.updated_at = utc_now()
                await session.flush()
                after = self._mapping.model.model_validate(row)
                await AuditLog.append(
                    session, action=AuditAction.UPDATE, entity_type=self._mapping.name,
                    entity_id=aggregate_id, previous=before, new=after,
                    performed_by=performed_by,
                )
                logger.info("Updated %s %s to version %d",
                            self._mapping.name, aggregate_id, next_number)
                return after

        return await retry_on_unique_violation(
            attempt,
            max_attempts=self._settings.VERSION_RETRY_MAX_ATTEMPTS,
            base_delay=self._settings.retry_base_delay_seconds,
            description=f"{self._mapping.name} {aggregate_id} version",
        )

    async def deactivate(self, aggregate_id: UUID, *, performed_by: str | None = None) -> A:
        """Soft delete: ``is_active := false``. History is kept."""
        async with self._session_factory() as session, session.begin():
            row = await self._require(session, aggregate_id)
            before = self._mapping.model.model_validate(row)
            row.is_active = False
            row.updated_at = utc_now()
            await session.flush()
            after = self._mapping.model.model_validate(row)
            await AuditLog.append(
                session, action=AuditAction.DEACTIVATE, entity_type=self._mapping.name,
                entity_id=aggregate_id, previous=before, new=after,
                performed_by=performed_by,
            )
        return after

    # --- reads ---

    async def get(self, aggregate_id: UUID) -> A:
        async with self._session_factory() as session:
            row = await self._require(session, aggregate_id)
            return self._mapping.model.model_validate(row)

    async def get_with_history(self, aggregate_id: UUID) -> VersionHistory[A, V]:
        async with self._session_factory() as session:
            row = await self._require(session, aggregate_id)
            versions = await self._versions(session).list_for_parent(aggregate_id)
            return VersionHistory[self._mapping.model, self._mapping.version_model](
                aggregate=self._mapping.model.model_validate(row),
                versions=[self._mapping.version_model.model_validate(v) for v in versions],
            )

    async def get_version(self, version_id: UUID) -> V:
        async with self._session_factory() as session:
            row = await self._versions(session).get(version_id)
        if row is None:
            raise NotFoundError(f"{self._mapping.name} version", version_id)
        return self._mapping.version_model.model_validate(row)

    async def list(self, *, search: str | None = None, is_active: bool | None = True,
                   limit: int | None = None, offset: int = 0,
                   conditions: Sequence[Any] = (),
                   **filters: Any) -> tuple[list[A], int]:
        """Page of aggregates ordered by the search column.

        Keyword filters use the names in ``mapping.filter_columns``;
        ``None`` values are ignored. ``conditions`` are extra SQL criteria.
        """
        unknown = set(filters) - set(self._mapping.filter_columns)
        if unknown:
            msg = f"Unknown {self._mapping.name} filter(s): {sorted(unknown)}"
            raise ValueError(msg)
        column_filters = {self._mapping.filter_columns[k]: v for k, v in filters.items()}
        column_filters["is_active"] = is_active
        async with self._session_factory() as session:
            rows, total = await self._aggregates(session).list_page(
                search_column=self._mapping.search_column, search=search,
                filters=column_filters, conditions=conditions,
                limit=self._settings.clamp_limit(limit), offset=max(offset, 0),
            )
        return [self._mapping.model.model_validate(r) for r in rows], total
