"""Append-only audit log.

Writes always happen inside the caller's transaction so an audit entry
exists if and only if the change it describes was committed.
"""

from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gpsr_registry.config.settings import Settings, get_settings
from gpsr_registry.models.audit import AuditEntry
from gpsr_registry.models.common import AuditAction
from gpsr_registry.repositories.audit import AuditRepository


def snapshot(model: BaseModel | None) -> dict[str, Any] | None:
    """JSON-safe dump of a domain model for ``previous_data``/``new_data``."""
    if model is None:
        return None
    return model.model_dump(mode="json")


class AuditLog:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession],
                 settings: Settings | None = None) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    @staticmethod
    async def append(session: AsyncSession, *, action: AuditAction, entity_type: str,
                     entity_id: UUID, previous: BaseModel | None = None,
                     new: BaseModel | None = None,
                     performed_by: str | None = None) -> AuditEntry:
        row = await AuditRepository(session).create(
            action=action, entity_type=entity_type, entity_id=entity_id,
            previous_data=snapshot(previous), new_data=snapshot(new),
            performed_by=performed_by,
        )
        return AuditEntry.model_validate(row)

    async def get_for_entity(self, entity_type: str, entity_id: UUID, *,
                             limit: int | None = None,
                             offset: int = 0) -> tuple[list[AuditEntry], int]:
        """Entries for one record, newest first, with the unpaged total."""
        async with self._session_factory() as session:
            rows, total = await AuditRepository(session).list_for_entity(
                entity_type, entity_id,
                limit=self._settings.clamp_limit(limit), offset=max(offset, 0),
            )
        return [AuditEntry.model_validate(r) for r in rows], total

    async def get_recent(self, *, limit: int | None = None,
                         action: AuditAction | None = None,
                         entity_type: str | None = None) -> list[AuditEntry]:
        async with self._session_factory() as session:
            rows = await AuditRepository(session).list_recent(
                limit=self._settings.clamp_limit(limit),
                action=action, entity_type=entity_type,
            )
        return [AuditEntry.model_validate(r) for r in rows]
