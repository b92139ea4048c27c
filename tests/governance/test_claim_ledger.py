"""Tests for the claim/evidence ledger."""

import pytest
from uuid_extensions import uuid7

from gpsr_registry.errors import ConflictError, NotFoundError, ValidationError
from gpsr_registry.models.claim import ClaimInput, EvidenceInput
from gpsr_registry.models.common import AuditAction, ClaimStatus, ClaimSubject, EvidenceType
from gpsr_registry.repositories.claims import ClaimRepository


def _claim(entity, source, attribute: str = "vat_id", value: str = "PL1234567890",
           **overrides) -> ClaimInput:
    return ClaimInput(subject=ClaimSubject.ENTITY, subject_id=entity.entity_id,
                      attribute=attribute, value=value, source_id=source.source_id,
                      **overrides)


class TestSubmit:
    @pytest.mark.anyio
    async def test_submit_is_proposed_with_evidence(self, registry, entity, source) -> None:
        claim = await registry.claims.submit(_claim(
            entity, source,
            evidence=[EvidenceInput(type=EvidenceType.URL, url="https://ec.europa.eu/vies")],
        ))
        assert claim.status == ClaimStatus.PROPOSED
        assert claim.confidence == 50
        assert [e.url for e in claim.evidence] == ["https://ec.europa.eu/vies"]

        fetched = await registry.claims.get(claim.claim_id)
        assert fetched.evidence[0].type == EvidenceType.URL

        entries, _ = await registry.audit.get_for_entity("Claim", claim.claim_id)
        assert entries[0].action == AuditAction.CLAIM_SUBMITTED

    @pytest.mark.anyio
    async def test_missing_source(self, registry, entity, source) -> None:
        claim_input = _claim(entity, source).model_copy(update={"source_id": uuid7()})
        with pytest.raises(NotFoundError, match="Source"):
            await registry.claims.submit(claim_input)

    @pytest.mark.anyio
    async def test_missing_subject(self, registry, source) -> None:
        with pytest.raises(NotFoundError, match="Product"):
            await registry.claims.submit(ClaimInput(
                subject=ClaimSubject.PRODUCT, subject_id=uuid7(), attribute="ean",
                value="5901234123457", source_id=source.source_id,
            ))

    @pytest.mark.anyio
    async def test_second_claim_supersedes_live_one(self, registry, entity, source) -> None:
        first = await registry.claims.submit(_claim(entity, source, value="PL111"))
        second = await registry.claims.submit(_claim(entity, source, value="PL222",
                                                     confidence=80))

        old = await registry.claims.get(first.claim_id)
        assert old.status == ClaimStatus.SUPERSEDED
        assert old.superseded_by_id == second.claim_id

        live = await registry.claims.get_for_subject(ClaimSubject.ENTITY, entity.entity_id,
                                                     ClaimStatus.PROPOSED)
        assert [c.claim_id for c in live] == [second.claim_id]

        entries, _ = await registry.audit.get_for_entity("Claim", first.claim_id)
        assert entries[0].action == AuditAction.CLAIM_SUPERSEDED
        assert entries[0].previous_data["status"] == "PROPOSED"
        assert entries[0].new_data["status"] == "SUPERSEDED"

    @pytest.mark.anyio
    async def test_other_attribute_untouched(self, registry, entity, source) -> None:
        vat = await registry.claims.submit(_claim(entity, source))
        await registry.claims.submit(_claim(entity, source, attribute="city", value="Kraków"))
        assert (await registry.claims.get(vat.claim_id)).status == ClaimStatus.PROPOSED

    @pytest.mark.anyio
    async def test_accepted_claim_is_not_superseded(self, registry, entity, source) -> None:
        first = await registry.claims.submit(_claim(entity, source, value="PL111"))
        await registry.claims.accept(first.claim_id, "reviewer@acme.pl")
        await registry.claims.submit(_claim(entity, source, value="PL222"))
        assert (await registry.claims.get(first.claim_id)).status == ClaimStatus.ACCEPTED

    @pytest.mark.anyio
    async def test_concurrent_live_claim_is_a_conflict(self, registry, entity, source,
                                                       monkeypatch) -> None:
        first = await registry.claims.submit(_claim(entity, source, value="PL111"))

        async def stale_read(self, subject, subject_id, attribute):
            return []

        # a writer that read before ``first`` committed sees no live claims
        monkeypatch.setattr(ClaimRepository, "get_live", stale_read)
        with pytest.raises(ConflictError, match="vat_id"):
            await registry.claims.submit(_claim(entity, source, value="PL222"))

        claims = await registry.claims.get_for_subject(ClaimSubject.ENTITY, entity.entity_id)
        assert [(c.claim_id, c.status) for c in claims] == [
            (first.claim_id, ClaimStatus.PROPOSED),
        ]


class TestSupersede:
    @pytest.mark.anyio
    async def test_supersede_copies_subject(self, registry, entity, source) -> None:
        first = await registry.claims.submit(_claim(entity, source, value="PL111"))
        replacement = await registry.claims.supersede(first.claim_id, "PL999",
                                                      source.source_id, 70)
        assert replacement.attribute == "vat_id"
        assert replacement.subject_id == entity.entity_id
        assert replacement.confidence == 70
        old = await registry.claims.get(first.claim_id)
        assert old.superseded_by_id == replacement.claim_id

    @pytest.mark.anyio
    async def test_supersede_terminal_claim_rejected(self, registry, entity, source) -> None:
        first = await registry.claims.submit(_claim(entity, source))
        await registry.claims.reject(first.claim_id, "reviewer", "wrong company")
        with pytest.raises(ValidationError, match="Cannot transition"):
            await registry.claims.supersede(first.claim_id, "PL999", source.source_id)

    @pytest.mark.anyio
    async def test_supersede_missing(self, registry, source) -> None:
        with pytest.raises(NotFoundError, match="Claim"):
            await registry.claims.supersede(uuid7(), "x", source.source_id)


class TestReview:
    @pytest.mark.anyio
    async def test_accept_records_reviewer(self, registry, entity, source) -> None:
        claim = await registry.claims.submit(_claim(entity, source))
        accepted = await registry.claims.accept(claim.claim_id, "anna", "checked in VIES")
        assert accepted.status == ClaimStatus.ACCEPTED
        assert accepted.reviewed_by == "anna"
        assert accepted.reviewed_at is not None
        assert accepted.review_notes == "checked in VIES"

        entries, _ = await registry.audit.get_for_entity("Claim", claim.claim_id)
        assert entries[0].action == AuditAction.CLAIM_ACCEPTED
        assert entries[0].performed_by == "anna"

    @pytest.mark.anyio
    async def test_dispute_then_accept(self, registry, entity, source) -> None:
        claim = await registry.claims.submit(_claim(entity, source))
        disputed = await registry.claims.dispute(claim.claim_id, "piotr", "mismatch on label")
        assert disputed.status == ClaimStatus.DISPUTED
        assert disputed.review_notes == "mismatch on label"
        accepted = await registry.claims.accept(claim.claim_id, "anna")
        assert accepted.status == ClaimStatus.ACCEPTED

    @pytest.mark.anyio
    async def test_terminal_claims_cannot_move(self, registry, entity, source) -> None:
        claim = await registry.claims.submit(_claim(entity, source))
        await registry.claims.reject(claim.claim_id, "anna", "stale")
        with pytest.raises(ValidationError) as exc_info:
            await registry.claims.accept(claim.claim_id, "anna")
        assert "status" in exc_info.value.errors
        assert (await registry.claims.get(claim.claim_id)).status == ClaimStatus.REJECTED

    @pytest.mark.anyio
    async def test_review_missing(self, registry) -> None:
        with pytest.raises(NotFoundError):
            await registry.claims.accept(uuid7(), "anna")


class TestQueries:
    @pytest.mark.anyio
    async def test_pending_order(self, registry, entity, source) -> None:
        low_old = await registry.claims.submit(_claim(entity, source, "a", "1", confidence=40))
        high = await registry.claims.submit(_claim(entity, source, "b", "2", confidence=90))
        low_new = await registry.claims.submit(_claim(entity, source, "c", "3", confidence=40))
        accepted = await registry.claims.submit(_claim(entity, source, "d", "4", confidence=99))
        await registry.claims.accept(accepted.claim_id, "anna")

        pending = await registry.claims.get_pending()
        assert [c.claim_id for c in pending] == [
            high.claim_id, low_old.claim_id, low_new.claim_id,
        ]
        assert len(await registry.claims.get_pending(limit=1)) == 1

    @pytest.mark.anyio
    async def test_best_known_value(self, registry, entity, source) -> None:
        assert await registry.claims.best_known_value(ClaimSubject.ENTITY, entity.entity_id,
                                                      "vat_id") is None
        weak = await registry.claims.submit(_claim(entity, source, value="PL1", confidence=30))
        await registry.claims.accept(weak.claim_id, "anna")
        strong = await registry.claims.submit(_claim(entity, source, value="PL2",
                                                     confidence=95))
        # proposed claims never count
        best = await registry.claims.best_known_value(ClaimSubject.ENTITY, entity.entity_id,
                                                      "vat_id")
        assert best.value == "PL1"

        await registry.claims.accept(strong.claim_id, "anna")
        best = await registry.claims.best_known_value(ClaimSubject.ENTITY, entity.entity_id,
                                                      "vat_id")
        assert best.claim_id == strong.claim_id

    @pytest.mark.anyio
    async def test_add_evidence(self, registry, entity, source) -> None:
        claim = await registry.claims.submit(_claim(entity, source))
        evidence = await registry.claims.add_evidence(
            claim.claim_id,
            EvidenceInput(type=EvidenceType.LABEL_PHOTO, content_hash="sha256:abc"),
        )
        assert evidence.claim_id == claim.claim_id
        fetched = await registry.claims.get(claim.claim_id)
        assert [e.evidence_id for e in fetched.evidence] == [evidence.evidence_id]

        with pytest.raises(NotFoundError):
            await registry.claims.add_evidence(
                uuid7(), EvidenceInput(type=EvidenceType.URL, url="https://x.pl"),
            )

    def test_evidence_needs_payload(self) -> None:
        with pytest.raises(ValueError, match="needs a url"):
            EvidenceInput(type=EvidenceType.URL)
