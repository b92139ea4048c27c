"""Tests for SourceRegistry: dedup on (type, identifier), listing, lookups."""

import pytest
from uuid_extensions import uuid7

from gpsr_registry.errors import ConflictError, NotFoundError
from gpsr_registry.models.common import SourceType
from gpsr_registry.models.source import SourceInput
from gpsr_registry.repositories.sources import SourceRepository


def _label(identifier: str | None = None,
           source_type: SourceType = SourceType.PRODUCT_LABEL) -> SourceInput:
    return SourceInput(source_type=source_type, source_identifier=identifier,
                       source_name="Label photo")


class TestFindOrCreate:
    @pytest.mark.anyio
    async def test_same_identifier_returns_same_source(self, registry) -> None:
        first = await registry.sources.find_or_create(_label("IMG-001"))
        second = await registry.sources.find_or_create(_label("IMG-001"))
        assert first.source_id == second.source_id
        _, total = await registry.sources.list()
        assert total == 1

    @pytest.mark.anyio
    async def test_identifier_is_scoped_by_type(self, registry) -> None:
        label = await registry.sources.find_or_create(_label("X-1"))
        website = await registry.sources.find_or_create(_label("X-1", SourceType.WEBSITE))
        assert label.source_id != website.source_id

    @pytest.mark.anyio
    async def test_without_identifier_always_inserts(self, registry) -> None:
        first = await registry.sources.find_or_create(_label())
        second = await registry.sources.find_or_create(_label())
        assert first.source_id != second.source_id

    @pytest.mark.anyio
    async def test_lost_race_is_retried_and_finds_winner(self, registry, monkeypatch) -> None:
        winner = await registry.sources.create(_label("IMG-RACE"))
        real = SourceRepository.find_by_identifier
        calls = []

        async def miss_once(self, source_type, identifier):
            calls.append(identifier)
            if len(calls) == 1:
                # the concurrent insert is not yet visible
                return None
            return await real(self, source_type, identifier)

        monkeypatch.setattr(SourceRepository, "find_by_identifier", miss_once)
        found = await registry.sources.find_or_create(_label("IMG-RACE"))
        assert found.source_id == winner.source_id
        assert len(calls) == 2

    @pytest.mark.anyio
    async def test_in_session_savepoint_recovers(self, registry, session_factory,
                                                 monkeypatch) -> None:
        winner = await registry.sources.create(_label("IMG-SP"))
        real = SourceRepository.find_by_identifier
        calls = []

        async def miss_once(self, source_type, identifier):
            calls.append(identifier)
            if len(calls) == 1:
                return None
            return await real(self, source_type, identifier)

        monkeypatch.setattr(SourceRepository, "find_by_identifier", miss_once)
        async with session_factory() as session, session.begin():
            row = await registry.sources.find_or_create_in(session, _label("IMG-SP"))
            assert row.source_id == winner.source_id


class TestCreateGetList:
    @pytest.mark.anyio
    async def test_create_duplicate_conflicts(self, registry) -> None:
        await registry.sources.create(_label("DUP"))
        with pytest.raises(ConflictError):
            await registry.sources.create(_label("DUP"))

    @pytest.mark.anyio
    async def test_get(self, registry) -> None:
        created = await registry.sources.create(_label("GET"))
        fetched = await registry.sources.get(created.source_id)
        assert fetched.source_id == created.source_id
        assert fetched.source_identifier == "GET"
        assert fetched.source_type == SourceType.PRODUCT_LABEL

    @pytest.mark.anyio
    async def test_get_missing(self, registry) -> None:
        with pytest.raises(NotFoundError):
            await registry.sources.get(uuid7())

    @pytest.mark.anyio
    async def test_list_filters_by_type(self, registry) -> None:
        await registry.sources.create(_label("A"))
        await registry.sources.create(_label("B", SourceType.WEBSITE))
        await registry.sources.create(_label("C", SourceType.WEBSITE))
        websites, total = await registry.sources.list(SourceType.WEBSITE)
        assert total == 2
        assert {s.source_identifier for s in websites} == {"B", "C"}

        page, total = await registry.sources.list(limit=1)
        assert total == 3
        assert len(page) == 1
