"""Tests for the pure responsibility resolver (no database)."""

from datetime import datetime, timedelta, timezone

import pytest
from uuid_extensions import uuid7

from gpsr_registry.models.common import ResolutionMode, ResponsibilityStatus, RoleType
from gpsr_registry.models.responsibility import ProductResponsibility
from gpsr_registry.responsibility.resolver import (
    freshness_days,
    group_by_role,
    rank_key,
    resolve_responsibilities,
)

PRODUCT_ID = uuid7()
JAN = datetime(2025, 1, 1, tzinfo=timezone.utc)
JUN = datetime(2025, 6, 1, tzinfo=timezone.utc)
NOW = datetime(2025, 12, 1, tzinfo=timezone.utc)


def _assignment(role: RoleType = RoleType.RESPONSIBLE_PERSON, *, confidence: int = 50,
                valid_from: datetime = JAN, valid_to: datetime | None = None,
                created_at: datetime = JAN, name: str = "Acme",
                status: ResponsibilityStatus = ResponsibilityStatus.ACTIVE,
                ) -> ProductResponsibility:
    return ProductResponsibility(
        responsibility_id=uuid7(), product_id=PRODUCT_ID, country_code="PL",
        entity_id=uuid7(), role=role, source_id=uuid7(), confidence=confidence,
        status=status, valid_from=valid_from, valid_to=valid_to,
        created_at=created_at, updated_at=created_at, entity_name=name,
    )


def _resolve(candidates, mode=ResolutionMode.CURRENT, target=NOW):
    return resolve_responsibilities(
        candidates, product_id=PRODUCT_ID, country_code="PL", mode=mode,
        target=target, resolved_at=NOW,
    )


class TestRanking:
    def test_confidence_first(self) -> None:
        weak = _assignment(confidence=40, valid_from=JUN)
        strong = _assignment(confidence=90, valid_from=JAN)
        assert max([weak, strong], key=rank_key) is strong

    def test_newer_valid_from_breaks_confidence_tie(self) -> None:
        older = _assignment(valid_from=JAN, created_at=JUN)
        newer = _assignment(valid_from=JUN, created_at=JAN)
        assert max([older, newer], key=rank_key) is newer

    def test_created_at_breaks_remaining_tie(self) -> None:
        first = _assignment(created_at=JAN)
        second = _assignment(created_at=JUN)
        assert max([second, first], key=rank_key) is second

    @pytest.mark.parametrize(("target", "expected"), [
        (JAN, 0),
        (JAN + timedelta(hours=23), 0),
        (JAN + timedelta(days=1), 1),
        (JUN, 151),
    ])
    def test_freshness_is_whole_days(self, target: datetime, expected: int) -> None:
        assert freshness_days(JAN, target) == expected

    def test_group_by_role(self) -> None:
        grouped = group_by_role([
            _assignment(RoleType.IMPORTER), _assignment(), _assignment(RoleType.IMPORTER),
        ])
        assert {role: len(items) for role, items in grouped.items()} == {
            RoleType.IMPORTER: 2, RoleType.RESPONSIBLE_PERSON: 1,
        }


class TestCurrentMode:
    def test_single_candidate_per_role(self) -> None:
        rp = _assignment(name="Acme")
        importer = _assignment(RoleType.IMPORTER, name="Globex", confidence=70)
        view = _resolve([rp, importer])

        assert view.resolution_mode == ResolutionMode.CURRENT
        assert view.conflict_count == 0
        resolved = view.responsibilities[RoleType.IMPORTER]
        assert resolved.entity_id == importer.entity_id
        assert resolved.entity_name == "Globex"
        assert resolved.confidence == 70
        assert resolved.has_conflicts is False
        assert resolved.candidate_count == 1
        assert resolved.data_freshness_days == (NOW - JAN).days

    def test_conflicting_candidates_flagged(self) -> None:
        winner = _assignment(confidence=80)
        view = _resolve([_assignment(confidence=60), winner, _assignment(RoleType.IMPORTER)])
        resolved = view.responsibilities[RoleType.RESPONSIBLE_PERSON]
        assert resolved.responsibility_id == winner.responsibility_id
        assert resolved.has_conflicts is True
        assert resolved.candidate_count == 2
        assert view.conflict_count == 1
        assert view.responsibilities[RoleType.IMPORTER].has_conflicts is False

    def test_current_mode_does_not_filter_by_window(self) -> None:
        future = _assignment(valid_from=NOW + timedelta(days=10))
        view = _resolve([future])
        assert view.responsibilities[RoleType.RESPONSIBLE_PERSON].data_freshness_days == -10

    def test_no_candidates(self) -> None:
        view = _resolve([])
        assert view.responsibilities == {}
        assert view.conflict_count == 0


class TestHistoricalMode:
    def test_window_is_half_open(self) -> None:
        old = _assignment(name="Old", valid_from=JAN, valid_to=JUN,
                          status=ResponsibilityStatus.HISTORICAL)
        new = _assignment(name="New", valid_from=JUN)

        before = _resolve([old, new], ResolutionMode.HISTORICAL, JUN - timedelta(seconds=1))
        at_switch = _resolve([old, new], ResolutionMode.HISTORICAL, JUN)

        assert before.responsibilities[RoleType.RESPONSIBLE_PERSON].entity_name == "Old"
        assert at_switch.responsibilities[RoleType.RESPONSIBLE_PERSON].entity_name == "New"
        assert at_switch.conflict_count == 0

    def test_target_before_any_assignment(self) -> None:
        view = _resolve([_assignment(valid_from=JUN)], ResolutionMode.HISTORICAL, JAN)
        assert view.responsibilities == {}
        assert view.target_date == JAN

    def test_freshness_measured_to_target(self) -> None:
        view = _resolve([_assignment(valid_from=JAN)], ResolutionMode.HISTORICAL,
                        JAN + timedelta(days=10))
        assert view.responsibilities[RoleType.RESPONSIBLE_PERSON].data_freshness_days == 10
