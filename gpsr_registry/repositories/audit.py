"""Audit log repository: append-only (no update, no delete)."""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gpsr_registry.db.tables import AuditLogRow
from gpsr_registry.models.common import new_uuid7, utc_now
from gpsr_registry.repositories.base import fetch_page


class AuditRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, action: str, entity_type: str, entity_id: UUID,
                     previous_data: dict[str, Any] | None = None,
                     new_data: dict[str, Any] | None = None,
                     performed_by: str | None = None) -> AuditLogRow:
        row = AuditLogRow(
            audit_id=new_uuid7(), action=action, entity_type=entity_type,
            entity_id=entity_id, previous_data=previous_data,
            new_data=new_data, performed_by=performed_by,
            created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_for_entity(self, entity_type: str, entity_id: UUID, *,
                              limit: int, offset: int = 0) -> tuple[list[AuditLogRow], int]:
        stmt = (
            select(AuditLogRow)
            .where(AuditLogRow.entity_type == entity_type,
                   AuditLogRow.entity_id == entity_id)
            .order_by(AuditLogRow.created_at.desc(), AuditLogRow.audit_id.desc())
        )
        return await fetch_page(self._session, stmt, limit=limit, offset=offset)

    async def list_recent(self, *, limit: int, action: str | None = None,
                          entity_type: str | None = None) -> list[AuditLogRow]:
        stmt = select(AuditLogRow)
        if action is not None:
            stmt = stmt.where(AuditLogRow.action == action)
        if entity_type is not None:
            stmt = stmt.where(AuditLogRow.entity_type == entity_type)
        result = await self._session.execute(
            stmt.order_by(AuditLogRow.created_at.desc(), AuditLogRow.audit_id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
