"""Tests for the claim status state machine."""

import pytest

from gpsr_registry.errors import ValidationError
from gpsr_registry.governance.claim_state import (
    VALID_CLAIM_TRANSITIONS,
    check_transition,
    is_terminal,
)
from gpsr_registry.models.common import ClaimStatus


class TestClaimTransitions:
    def test_every_status_has_an_entry(self) -> None:
        assert set(VALID_CLAIM_TRANSITIONS) == set(ClaimStatus)

    @pytest.mark.parametrize("target", [
        ClaimStatus.ACCEPTED, ClaimStatus.REJECTED,
        ClaimStatus.DISPUTED, ClaimStatus.SUPERSEDED,
    ])
    def test_proposed_can_move(self, target: ClaimStatus) -> None:
        check_transition(ClaimStatus.PROPOSED, target)

    def test_disputed_cannot_be_disputed_again(self) -> None:
        with pytest.raises(ValidationError, match="Cannot transition"):
            check_transition(ClaimStatus.DISPUTED, ClaimStatus.DISPUTED)

    @pytest.mark.parametrize("status", [
        ClaimStatus.ACCEPTED, ClaimStatus.REJECTED, ClaimStatus.SUPERSEDED,
    ])
    def test_terminal_states(self, status: ClaimStatus) -> None:
        assert is_terminal(status)
        with pytest.raises(ValidationError, match=r"Allowed: \[\]"):
            check_transition(status, ClaimStatus.PROPOSED)

    def test_live_states_are_not_terminal(self) -> None:
        assert not is_terminal(ClaimStatus.PROPOSED)
        assert not is_terminal(ClaimStatus.DISPUTED)
