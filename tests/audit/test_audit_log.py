"""Tests for the append-only audit log queries."""

import pytest
from uuid_extensions import uuid7

from gpsr_registry.audit.log import AuditLog, snapshot
from gpsr_registry.models.brand import BrandPatch
from gpsr_registry.models.common import AuditAction, SourceType
from gpsr_registry.models.entity import EntityPatch
from gpsr_registry.models.source import SourceInput

DESK = SourceInput(source_type=SourceType.MANUAL_ENTRY, source_identifier="desk-1")


class TestSnapshot:
    def test_none(self) -> None:
        assert snapshot(None) is None

    def test_json_safe(self) -> None:
        data = snapshot(EntityPatch(name="Acme", change_note="x"))
        assert data["name"] == "Acme"
        assert data["city"] is None


class TestAppend:
    @pytest.mark.anyio
    async def test_append_inside_callers_transaction(self, session_factory, registry) -> None:
        subject = uuid7()
        async with session_factory() as session, session.begin():
            entry = await AuditLog.append(
                session, action=AuditAction.UPDATE, entity_type="Brand", entity_id=subject,
                new=BrandPatch(trade_name="Zeta"), performed_by="anna",
            )
        assert entry.new_data["trade_name"] == "Zeta"
        entries, total = await registry.audit.get_for_entity("Brand", subject)
        assert total == 1
        assert entries[0].audit_id == entry.audit_id

    @pytest.mark.anyio
    async def test_rolled_back_change_leaves_no_entry(self, session_factory, registry) -> None:
        subject = uuid7()
        with pytest.raises(RuntimeError):
            async with session_factory() as session, session.begin():
                await AuditLog.append(session, action=AuditAction.UPDATE,
                                      entity_type="Brand", entity_id=subject)
                raise RuntimeError("boom")
        _, total = await registry.audit.get_for_entity("Brand", subject)
        assert total == 0


class TestQueries:
    @pytest.mark.anyio
    async def test_get_for_entity_pages_newest_first(self, registry, entity) -> None:
        for city in ("Kraków", "Gdańsk"):
            await registry.entities.update(entity.entity_id, EntityPatch(city=city),
                                           DESK)
        entries, total = await registry.audit.get_for_entity("Entity", entity.entity_id,
                                                             limit=2)
        assert total == 3
        assert [e.new_data["normalized_city"] for e in entries] == ["Gdańsk", "Kraków"]

        tail, _ = await registry.audit.get_for_entity("Entity", entity.entity_id,
                                                      limit=2, offset=2)
        assert [e.action for e in tail] == [AuditAction.CREATE]

    @pytest.mark.anyio
    async def test_get_recent_filters(self, registry, entity, brand) -> None:
        await registry.brands.deactivate(brand.brand_id)

        recent = await registry.audit.get_recent()
        assert recent[0].action == AuditAction.DEACTIVATE
        assert {e.entity_type for e in recent} >= {"Entity", "Brand"}

        creates = await registry.audit.get_recent(action=AuditAction.CREATE)
        assert {e.entity_type for e in creates} == {"Entity", "Brand"}

        brands = await registry.audit.get_recent(entity_type="Brand")
        assert [e.action for e in brands] == [AuditAction.DEACTIVATE, AuditAction.CREATE]

        assert len(await registry.audit.get_recent(limit=1)) == 1
