"""Best-known-truth resolution of product responsibilities.

Pure functions over already-loaded assignments, so resolution can be
tested without a database.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta
from uuid import UUID

from gpsr_registry.models.common import ResolutionMode, RoleType
from gpsr_registry.models.responsibility import (
    ProductResponsibility,
    ResolvedResponsibility,
    ResolvedView,
)

_ONE_DAY = timedelta(days=1)


def rank_key(candidate: ProductResponsibility) -> tuple[int, datetime, datetime]:
    """Sort key; the largest key wins."""
    return (candidate.confidence, candidate.valid_from, candidate.created_at)


def freshness_days(valid_from: datetime, target: datetime) -> int:
    """Whole days elapsed between ``valid_from`` and ``target``."""
    return (target - valid_from) // _ONE_DAY


def group_by_role(
    candidates: Iterable[ProductResponsibility],
) -> dict[RoleType, list[ProductResponsibility]]:
    grouped: dict[RoleType, list[ProductResponsibility]] = {}
    for candidate in candidates:
        grouped.setdefault(RoleType(candidate.role), []).append(candidate)
    return grouped


def resolve_responsibilities(
    candidates: Iterable[ProductResponsibility],
    *,
    product_id: UUID,
    country_code: str,
    mode: ResolutionMode,
    target: datetime,
    resolved_at: datetime,
) -> ResolvedView:
    """Pick one winner per role.

    In HISTORICAL mode only assignments whose ``[valid_from, valid_to)``
    window contains ``target`` are considered; in CURRENT mode the caller
    passes the ACTIVE rows as-is. The winner is the highest confidence,
    then the newest ``valid_from``, then the newest ``created_at``.
    """
    pool = list(candidates)
    if mode == ResolutionMode.HISTORICAL:
        pool = [c for c in pool if c.is_valid_on(target)]

    resolved: dict[RoleType, ResolvedResponsibility] = {}
    conflicts = 0
    for role, items in group_by_role(pool).items():
        best = max(items, key=rank_key)
        has_conflicts = len(items) > 1
        if has_conflicts:
            conflicts += 1
        resolved[role] = ResolvedResponsibility(
            role=role,
            responsibility_id=best.responsibility_id,
            entity_id=best.entity_id,
            entity_name=best.entity_name,
            confidence=best.confidence,
            source_id=best.source_id,
            valid_from=best.valid_from,
            data_freshness_days=freshness_days(best.valid_from, target),
            has_conflicts=has_conflicts,
            candidate_count=len(items),
        )

    return ResolvedView(
        product_id=product_id,
        country_code=country_code,
        resolution_mode=mode,
        resolved_at=resolved_at,
        target_date=target,
        responsibilities=resolved,
        conflict_count=conflicts,
    )
