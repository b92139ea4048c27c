"""Claim status state machine.

PROPOSED -> ACCEPTED | REJECTED | DISPUTED | SUPERSEDED
DISPUTED -> ACCEPTED | REJECTED | SUPERSEDED
ACCEPTED, REJECTED and SUPERSEDED are terminal.
"""

from gpsr_registry.errors import ValidationError
from gpsr_registry.models.common import ClaimStatus

VALID_CLAIM_TRANSITIONS: dict[ClaimStatus, frozenset[ClaimStatus]] = {
    ClaimStatus.PROPOSED: frozenset({
        ClaimStatus.ACCEPTED,
        ClaimStatus.REJECTED,
        ClaimStatus.DISPUTED,
        ClaimStatus.SUPERSEDED,
    }),
    ClaimStatus.DISPUTED: frozenset({
        ClaimStatus.ACCEPTED,
        ClaimStatus.REJECTED,
        ClaimStatus.SUPERSEDED,
    }),
    ClaimStatus.ACCEPTED: frozenset(),
    ClaimStatus.REJECTED: frozenset(),
    ClaimStatus.SUPERSEDED: frozenset(),
}


def is_terminal(status: ClaimStatus) -> bool:
    return not VALID_CLAIM_TRANSITIONS.get(status)


def check_transition(current: ClaimStatus, target: ClaimStatus) -> None:
    """Raise ``ValidationError`` unless ``current -> target`` is allowed."""
    allowed = VALID_CLAIM_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        msg = (
            f"Cannot transition claim from {current} to {target}. "
            f"Allowed: {sorted(s.value for s in allowed)}."
        )
        raise ValidationError(msg, errors={"status": [f"{current} -> {target} not allowed"]})
