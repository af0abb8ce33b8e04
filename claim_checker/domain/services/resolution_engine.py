"""Claim lifecycle: review, re-check scheduling and ground-truth resolution."""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel

from ..models.claim import (
    Claim,
    ClaimStatus,
    ClaimType,
    InvalidTransitionError,
    ResolutionType,
    ReviewState,
    claim_fingerprint,
)
from ..models.common import utc_now
from ..models.evidence import EvidenceItem, EvidenceStance
from ..models.policy import ResolutionPolicy
from ..models.resolution import RecheckSchedule, Resolution, ResolutionOutcome
from ..models.verdict import Verdict, VerdictLabel
from ..ports.storage_provider import EntityNotFoundError, StorageProvider
from .credibility_scorer import CredibilityScorer

logger = logging.getLogger(__name__)


class ResolutionDecision(BaseModel):
    """What the engine decided for a reviewed claim."""

    outcome: Optional[ResolutionOutcome] = None
    reason: str
    evidence_url: Optional[str] = None
    review_state: ReviewState = ReviewState.PENDING_RECHECK
    next_recheck_at: Optional[datetime] = None


def latest_round(evidence: Sequence[EvidenceItem]) -> List[EvidenceItem]:
    """Evidence of the most recent verification round."""
    if not evidence:
        return []
    last = max(e.verification_round for e in evidence)
    return [e for e in evidence if e.verification_round == last]


class ResolutionEngine:
    """Moves claims through unreviewed -> reviewed -> resolved.

    Resolution is the only place credibility history grows: each resolved
    claim appends exactly one signal and one claim score.
    """

    def __init__(
        self,
        storage: StorageProvider,
        scorer: CredibilityScorer,
        policy: Optional[ResolutionPolicy] = None,
    ):
        self._storage = storage
        self._scorer = scorer
        self._policy = policy or ResolutionPolicy()

    def requires_human_review(self, claim: Claim) -> bool:
        """High-risk claim types are flagged for a human."""
        return claim.claim_type in self._policy.human_review_types

    def conclusive_outcome(
        self,
        verdict: Optional[Verdict],
        evidence: Sequence[EvidenceItem],
    ) -> Optional[Tuple[ResolutionOutcome, str, Optional[str]]]:
        """Outcome settled by evidence alone, if any."""
        policy = self._policy
        strong_contra = [e for e in evidence if e.grade.is_strong and e.stance == EvidenceStance.CONTRADICTS]
        strong_support = [e for e in evidence if e.grade.is_strong and e.stance == EvidenceStance.SUPPORTS]

        if len(evidence) >= policy.conclusive_evidence_count:
            if len(strong_contra) >= policy.conclusive_evidence_count:
                return ResolutionOutcome.FALSE, f"{len(strong_contra)} A/B-grade sources contradict the claim", strong_contra[0].url
            if len(strong_support) >= policy.conclusive_evidence_count:
                return ResolutionOutcome.TRUE, f"{len(strong_support)} A/B-grade sources confirm the claim", strong_support[0].url

        if verdict is not None and verdict.evidence_strength >= policy.auto_resolve_strength:
            url = verdict.key_evidence_urls[0] if verdict.key_evidence_urls else None
            if verdict.label == VerdictLabel.VERIFIED:
                return ResolutionOutcome.TRUE, "High-confidence verified verdict", url
            if verdict.label == VerdictLabel.MISLEADING:
                return ResolutionOutcome.FALSE, "High-confidence misleading verdict", url
        return None

    def next_recheck_at(self, claim: Claim, attempts: int, now: datetime) -> datetime:
        """Next re-check time, never past a scheduled claim's deadline."""
        intervals = self._policy.recheck_intervals_hours
        hours = intervals[min(attempts, len(intervals) - 1)]
        candidate = now + timedelta(hours=hours)
        if claim.resolution_type == ResolutionType.SCHEDULED and claim.resolve_by:
            deadline = claim.resolve_by + timedelta(hours=self._policy.grace_period_hours)
            if now < deadline:
                candidate = min(candidate, deadline)
        return candidate

    def evaluate(
        self,
        claim: Claim,
        verdict: Optional[Verdict],
        evidence: Sequence[EvidenceItem],
        attempts: int = 0,
        now: Optional[datetime] = None,
    ) -> ResolutionDecision:
        """Decide whether a reviewed claim resolves or waits for a re-check."""
        now = now or utc_now()
        policy = self._policy

        if claim.resolution_type == ResolutionType.INDEFINITE:
            return ResolutionDecision(
                reason="Indefinite claims resolve only through explicit ground truth",
                review_state=ReviewState.SETTLED_INDEFINITE,
            )

        conclusive = self.conclusive_outcome(verdict, evidence)
        if conclusive:
            outcome, reason, url = conclusive
            return ResolutionDecision(outcome=outcome, reason=reason, evidence_url=url)

        if claim.resolution_type == ResolutionType.SCHEDULED and claim.resolve_by:
            deadline = claim.resolve_by + timedelta(hours=policy.grace_period_hours)
            if now >= deadline:
                if claim.falsifiability_score > policy.false_on_expiry_falsifiability:
                    return ResolutionDecision(
                        outcome=ResolutionOutcome.FALSE,
                        reason="Deadline passed without confirmation of a specific, falsifiable claim",
                    )
                return ResolutionDecision(
                    outcome=ResolutionOutcome.UNRESOLVED,
                    reason="Deadline passed without conclusive evidence",
                )

        if attempts >= policy.max_recheck_attempts:
            return ResolutionDecision(
                outcome=ResolutionOutcome.UNRESOLVED,
                reason=f"No conclusive evidence after {attempts} re-checks",
            )

        return ResolutionDecision(
            reason="Awaiting conclusive evidence",
            next_recheck_at=self.next_recheck_at(claim, attempts, now),
        )

    async def on_verdict(
        self,
        claim_id: str,
        verdict: Verdict,
        evidence: Sequence[EvidenceItem],
        now: Optional[datetime] = None,
    ) -> Tuple[Claim, Optional[Resolution]]:
        """Apply the lifecycle after a verdict was appended.

        A resolved claim is returned unchanged.
        """
        now = now or utc_now()
        claim = await self._storage.get_claim(claim_id)
        if claim.status == ClaimStatus.RESOLVED:
            logger.info(f"🔒 claim={claim.id} is resolved, verdict does not change its status")
            return claim, None

        schedule = await self._storage.get_recheck(claim.id)
        attempts = schedule.attempts if schedule else 0
        decision = self.evaluate(claim, verdict, evidence, attempts, now)

        claim = claim.advance_to(ClaimStatus.REVIEWED, decision.review_state)
        if self.requires_human_review(claim) and not claim.metadata.get("needs_human_review"):
            claim = claim.with_metadata(needs_human_review=True)
        claim = await self._storage.update_claim(claim)

        if decision.outcome is not None:
            return await self._resolve(
                claim,
                Resolution(
                    claim_id=claim.id,
                    outcome=decision.outcome,
                    resolved_at=now,
                    evidence_url=decision.evidence_url,
                    notes=decision.reason,
                    resolved_by="auto",
                ),
                verdict,
                evidence,
            )

        if decision.next_recheck_at is not None:
            await self._storage.save_recheck(
                RecheckSchedule(
                    claim_id=claim.id,
                    next_run_at=decision.next_recheck_at,
                    attempts=attempts,
                    last_run_at=schedule.last_run_at if schedule else None,
                )
            )
            logger.info(f"⏰ claim={claim.id} re-check at {decision.next_recheck_at.isoformat()}")
        else:
            await self._storage.delete_recheck(claim.id)
        return claim, None

    async def record_resolution(
        self,
        claim_id: str,
        outcome: ResolutionOutcome,
        evidence_url: Optional[str] = None,
        notes: str = "",
        now: Optional[datetime] = None,
    ) -> Resolution:
        """Record explicit ground truth for a reviewed claim of any resolution type.

        Raises:
            EntityNotFoundError: If the claim does not exist
            InvalidTransitionError: If the claim is not reviewed
        """
        claim = await self._storage.get_claim(claim_id)
        if claim.status != ClaimStatus.REVIEWED:
            raise InvalidTransitionError(
                f"Claim {claim.id} is {claim.status.value}; only reviewed claims can be resolved"
            )
        verdict = await self._storage.get_current_verdict(claim.id)
        evidence = latest_round(await self._storage.list_evidence(claim.id))
        _, resolution = await self._resolve(
            claim,
            Resolution(
                claim_id=claim.id,
                outcome=outcome,
                resolved_at=now or utc_now(),
                evidence_url=evidence_url,
                notes=notes,
                resolved_by="manual",
            ),
            verdict,
            evidence,
        )
        return resolution

    async def _resolve(
        self,
        claim: Claim,
        resolution: Resolution,
        verdict: Optional[Verdict],
        evidence: Sequence[EvidenceItem],
    ) -> Tuple[Claim, Resolution]:
        resolution = await self._storage.create_resolution(resolution)
        claim = await self._storage.update_claim(claim.advance_to(ClaimStatus.RESOLVED))
        await self._storage.delete_recheck(claim.id)

        await self._storage.append_credibility_signal(
            self._scorer.build_signal(claim, resolution, verdict, evidence)
        )
        await self._storage.save_claim_score(
            self._scorer.score_claim(claim, resolution, verdict, evidence)
        )
        logger.info(
            f"🏁 claim={claim.id} resolved {resolution.outcome.value} ({resolution.resolved_by}): {resolution.notes}"
        )
        return claim, resolution

    async def record_recheck_attempt(self, claim_id: str, now: Optional[datetime] = None) -> int:
        """Count a re-check run and return the new attempt total."""
        now = now or utc_now()
        schedule = await self._storage.get_recheck(claim_id)
        attempts = (schedule.attempts if schedule else 0) + 1
        await self._storage.save_recheck(
            RecheckSchedule(
                claim_id=claim_id,
                next_run_at=schedule.next_run_at if schedule else now,
                attempts=attempts,
                last_run_at=now,
            )
        )
        return attempts

    async def due_rechecks(self, now: Optional[datetime] = None) -> List[Claim]:
        """Reviewed claims whose re-check time has come, earliest first."""
        now = now or utc_now()
        due = []
        for schedule in await self._storage.list_due_rechecks(now):
            try:
                claim = await self._storage.get_claim(schedule.claim_id)
            except EntityNotFoundError:
                await self._storage.delete_recheck(schedule.claim_id)
                continue
            if claim.status != ClaimStatus.REVIEWED:
                await self._storage.delete_recheck(claim.id)
                continue
            due.append(claim)
        return due

    async def create_correction(
        self,
        claim_id: str,
        reason: str,
        claim_text: Optional[str] = None,
        claim_type: Optional[ClaimType] = None,
        resolution_type: Optional[ResolutionType] = None,
        resolve_by: Optional[datetime] = None,
    ) -> Claim:
        """Create a new claim record that corrects a resolved one.

        The resolved claim and its resolution are left untouched.

        Raises:
            InvalidTransitionError: If the claim is not resolved
        """
        original = await self._storage.get_claim(claim_id)
        if original.status != ClaimStatus.RESOLVED:
            raise InvalidTransitionError(f"Claim {original.id} is not resolved; re-verify it instead")

        text = claim_text or original.claim_text
        correction = Claim(
            source_id=original.source_id,
            item_id=original.item_id,
            claim_text=text,
            claim_type=claim_type or original.claim_type,
            asset_symbols=list(original.asset_symbols),
            asserted_at=original.asserted_at,
            resolution_type=resolution_type or original.resolution_type,
            resolve_by=resolve_by if resolve_by is not None else original.resolve_by,
            falsifiability_score=original.falsifiability_score,
            llm_confidence=original.llm_confidence,
            corrects_claim_id=original.id,
            fingerprint=claim_fingerprint(f"{text}\ncorrects:{original.id}"),
            metadata={"correction_reason": reason},
        )
        correction = await self._storage.create_claim(correction)
        logger.info(f"✏️ claim={correction.id} corrects resolved claim={original.id}: {reason}")
        return correction
