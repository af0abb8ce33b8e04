"""Tests for the claim lifecycle."""

from datetime import timedelta

import pytest

from claim_checker.domain.models.claim import (
    ClaimStatus,
    ClaimType,
    InvalidTransitionError,
    ResolutionType,
    ReviewState,
)
from claim_checker.domain.models.resolution import ResolutionOutcome
from claim_checker.domain.models.verdict import Verdict, VerdictLabel
from claim_checker.domain.services.credibility_scorer import CredibilityScorer
from claim_checker.domain.services.resolution_engine import ResolutionEngine


def _verdict(claim_id: str, label: VerdictLabel = VerdictLabel.SPECULATIVE, strength: float = 0.3) -> Verdict:
    return Verdict(
        claim_id=claim_id,
        label=label,
        probability_true=0.9 if label == VerdictLabel.VERIFIED else 0.3,
        evidence_strength=strength,
        reasoning_summary="r",
        invalidation_triggers=["t"],
        prompt_version="v",
    )


@pytest.fixture
def engine(storage) -> ResolutionEngine:
    return ResolutionEngine(storage, CredibilityScorer())


@pytest.mark.asyncio
async def test_conclusive_evidence_resolves_immediate_claim(engine, storage, make_claim, make_evidence, now):
    claim = await make_claim()
    evidence = await storage.add_evidence(make_evidence(claim.id, [("A", "supports"), ("B", "supports")]))
    verdict = await storage.append_verdict(_verdict(claim.id, VerdictLabel.VERIFIED, 0.8))

    updated, resolution = await engine.on_verdict(claim.id, verdict, evidence, now)

    assert updated.status == ClaimStatus.RESOLVED
    assert resolution.outcome == ResolutionOutcome.TRUE
    assert resolution.resolved_by == "auto"
    assert resolution.evidence_url == evidence[0].url
    signals = await storage.list_credibility_signals(claim.source_id)
    assert len(signals) == 1 and signals[0].verdict_agreement is True
    assert await storage.get_claim_score(claim.id) is not None
    assert await storage.get_recheck(claim.id) is None


@pytest.mark.asyncio
async def test_high_strength_misleading_verdict_resolves_false(engine, storage, make_claim, now):
    claim = await make_claim()
    verdict = _verdict(claim.id, VerdictLabel.MISLEADING, 0.9)

    _, resolution = await engine.on_verdict(claim.id, verdict, [], now)

    assert resolution.outcome == ResolutionOutcome.FALSE


@pytest.mark.asyncio
async def test_inconclusive_claim_waits_for_recheck(engine, storage, make_claim, now):
    claim = await make_claim()

    updated, resolution = await engine.on_verdict(claim.id, _verdict(claim.id), [], now)

    assert resolution is None
    assert updated.status == ClaimStatus.REVIEWED
    assert updated.review_state == ReviewState.PENDING_RECHECK
    schedule = await storage.get_recheck(claim.id)
    assert schedule.next_run_at == now + timedelta(hours=6)
    assert schedule.attempts == 0


@pytest.mark.asyncio
async def test_resolved_claim_is_terminal(engine, storage, make_claim, make_evidence, now):
    claim = await make_claim()
    evidence = make_evidence(claim.id, [("A", "contradicts"), ("A", "contradicts")])
    await engine.on_verdict(claim.id, _verdict(claim.id), evidence, now)

    later, resolution = await engine.on_verdict(
        claim.id, _verdict(claim.id, VerdictLabel.VERIFIED, 0.95), [], now + timedelta(days=1)
    )

    assert resolution is None
    assert later.status == ClaimStatus.RESOLVED
    assert (await storage.get_resolution(claim.id)).outcome == ResolutionOutcome.FALSE
    assert len(await storage.list_credibility_signals()) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "falsifiability,expected",
    [(0.8, ResolutionOutcome.FALSE), (0.5, ResolutionOutcome.UNRESOLVED)],
)
async def test_expired_scheduled_claim(engine, make_claim, now, falsifiability, expected):
    claim = await make_claim(
        claim_text="Mainnet launches by March 1",
        claim_type=ClaimType.MAINNET_LAUNCH,
        resolution_type=ResolutionType.SCHEDULED,
        resolve_by=now - timedelta(hours=25),
        falsifiability_score=falsifiability,
    )

    _, resolution = await engine.on_verdict(claim.id, _verdict(claim.id), [], now)

    assert resolution.outcome == expected


@pytest.mark.asyncio
async def test_scheduled_recheck_never_passes_deadline(engine, make_claim, now):
    claim = await make_claim(resolution_type=ResolutionType.SCHEDULED, resolve_by=now + timedelta(hours=2))

    assert engine.next_recheck_at(claim, 1, now) == now + timedelta(hours=24)
    assert engine.next_recheck_at(claim, 2, now) == now + timedelta(hours=26)


@pytest.mark.asyncio
async def test_indefinite_claim_is_settled_without_rechecks(engine, storage, make_claim, now):
    claim = await make_claim(claim_type=ClaimType.RUMOR, resolution_type=ResolutionType.INDEFINITE)

    updated, resolution = await engine.on_verdict(claim.id, _verdict(claim.id, VerdictLabel.VERIFIED, 0.95), [], now)

    assert resolution is None
    assert updated.review_state == ReviewState.SETTLED_INDEFINITE
    assert await storage.get_recheck(claim.id) is None


@pytest.mark.asyncio
async def test_recheck_limit_resolves_unresolved(engine, make_claim, now):
    claim = await make_claim()

    decision = engine.evaluate(claim, _verdict(claim.id), [], attempts=10, now=now)

    assert decision.outcome == ResolutionOutcome.UNRESOLVED


@pytest.mark.asyncio
async def test_manual_resolution_requires_review(engine, storage, make_claim, now):
    claim = await make_claim(resolution_type=ResolutionType.INDEFINITE)
    with pytest.raises(InvalidTransitionError):
        await engine.record_resolution(claim.id, ResolutionOutcome.TRUE)

    await engine.on_verdict(claim.id, _verdict(claim.id), [], now)
    resolution = await engine.record_resolution(claim.id, ResolutionOutcome.PARTIALLY_TRUE, notes="Partly delivered")

    assert resolution.resolved_by == "manual"
    assert (await storage.get_claim(claim.id)).status == ClaimStatus.RESOLVED
    assert (await storage.list_credibility_signals())[0].accuracy == 0.5
    with pytest.raises(InvalidTransitionError):
        await engine.record_resolution(claim.id, ResolutionOutcome.FALSE)


@pytest.mark.asyncio
async def test_high_risk_claims_are_flagged(engine, make_claim, now):
    claim = await make_claim(claim_text="Bridge drained of 50M", claim_type=ClaimType.EXPLOIT_OR_HACK)

    assert engine.requires_human_review(claim)
    updated, _ = await engine.on_verdict(claim.id, _verdict(claim.id), [], now)
    assert updated.metadata["needs_human_review"] is True


@pytest.mark.asyncio
async def test_correction_creates_new_claim(engine, storage, make_claim, make_evidence, now):
    claim = await make_claim()
    with pytest.raises(InvalidTransitionError):
        await engine.create_correction(claim.id, "wrong exchange")

    evidence = make_evidence(claim.id, [("A", "supports"), ("A", "supports")])
    await engine.on_verdict(claim.id, _verdict(claim.id), evidence, now)
    correction = await engine.create_correction(claim.id, "wrong exchange", claim_text="Exchange Z lists token Y")

    assert correction.corrects_claim_id == claim.id
    assert correction.status == ClaimStatus.UNREVIEWED
    assert correction.metadata["correction_reason"] == "wrong exchange"
    original = await storage.get_claim(claim.id)
    assert original.status == ClaimStatus.RESOLVED
    assert original.claim_text == "Exchange X lists token Y"


@pytest.mark.asyncio
async def test_due_rechecks_count_attempts(engine, storage, make_claim, now):
    claim = await make_claim()
    await engine.on_verdict(claim.id, _verdict(claim.id), [], now)

    assert await engine.due_rechecks(now) == []
    due = await engine.due_rechecks(now + timedelta(hours=7))
    assert [c.id for c in due] == [claim.id]

    assert await engine.record_recheck_attempt(claim.id, now + timedelta(hours=7)) == 1
    await engine.on_verdict(claim.id, _verdict(claim.id), [], now + timedelta(hours=7))
    schedule = await storage.get_recheck(claim.id)
    assert schedule.attempts == 1
    assert schedule.next_run_at == now + timedelta(hours=7 + 24)
