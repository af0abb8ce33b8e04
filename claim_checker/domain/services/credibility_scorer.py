"""Deterministic credibility scoring for claims and sources.

No model calls. Source track records are Beta-binomial posterior means:
with prior mean m and prior strength k (virtual claims), a source with n
determinate outcomes and raw accuracy r scores (n*r + k*m) / (n + k).
"""

import logging
import math
from datetime import datetime
from typing import Optional, Sequence

from ..models.claim import Claim
from ..models.common import utc_now
from ..models.evidence import EvidenceGrade, EvidenceItem
from ..models.policy import ScoringPolicy
from ..models.resolution import Resolution, ResolutionOutcome
from ..models.score import ClaimScore, ConfidenceInterval, CredibilitySignal, SourceScore
from ..models.verdict import Verdict, VerdictLabel

logger = logging.getLogger(__name__)

_OUTCOME_ACCURACY = {
    ResolutionOutcome.TRUE: 1.0,
    ResolutionOutcome.PARTIALLY_TRUE: 0.5,
    ResolutionOutcome.FALSE: 0.0,
}

_DISCIPLINE_GRADE_WEIGHTS = {
    EvidenceGrade.A: 1.0,
    EvidenceGrade.B: 0.75,
    EvidenceGrade.C: 0.5,
    EvidenceGrade.D: 0.25,
}


def _sigmoid(x: float) -> float:
    return 1.0 / (1.0 + math.exp(-x))


def _mean(values: Sequence[float], default: float) -> float:
    return sum(values) / len(values) if values else default


def verdict_agrees(verdict: Optional[Verdict], outcome: ResolutionOutcome) -> Optional[bool]:
    """Whether a verdict's direction matched the outcome, None when undecidable."""
    if verdict is None or outcome not in (ResolutionOutcome.TRUE, ResolutionOutcome.FALSE):
        return None
    if verdict.label in (VerdictLabel.VERIFIED, VerdictLabel.PLAUSIBLE_UNVERIFIED):
        return outcome == ResolutionOutcome.TRUE
    if verdict.label == VerdictLabel.MISLEADING:
        return outcome == ResolutionOutcome.FALSE
    return None


def primary_share(evidence: Sequence[EvidenceItem]) -> float:
    """Share of A/B-grade items in an evidence set."""
    if not evidence:
        return 0.0
    return sum(1 for e in evidence if e.grade.is_strong) / len(evidence)


class CredibilityScorer:
    """Scores resolved claims and aggregates them per source."""

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self._policy = policy or ScoringPolicy()

    @property
    def policy(self) -> ScoringPolicy:
        return self._policy

    def build_signal(
        self,
        claim: Claim,
        resolution: Resolution,
        verdict: Optional[Verdict],
        evidence: Sequence[EvidenceItem],
    ) -> CredibilitySignal:
        """Turn a resolution into the source's history entry."""
        return CredibilitySignal(
            claim_id=claim.id,
            source_id=claim.source_id,
            outcome=resolution.outcome,
            accuracy=_OUTCOME_ACCURACY.get(resolution.outcome),
            verdict_agreement=verdict_agrees(verdict, resolution.outcome),
            evidence_strength=verdict.evidence_strength if verdict else 0.0,
            primary_share=primary_share(evidence),
            recorded_at=resolution.resolved_at,
        )

    def score_claim(
        self,
        claim: Claim,
        resolution: Resolution,
        verdict: Optional[Verdict],
        evidence: Sequence[EvidenceItem],
    ) -> ClaimScore:
        """Score a resolved claim on accuracy, timeliness and evidence discipline.

        Accuracy is one minus the Brier score of the verdict probability (or
        the extraction confidence) against the outcome, weighted by
        falsifiability so vague claims earn less.
        """
        policy = self._policy
        outcome = resolution.outcome.numeric
        probability = verdict.probability_true if verdict else claim.llm_confidence
        raw_accuracy = 1.0 - (probability - outcome) ** 2
        falsifiability = max(claim.falsifiability_score, policy.min_falsifiability)
        accuracy = raw_accuracy * falsifiability

        timeliness = 0.0
        if raw_accuracy > 0.5:
            lead_hours = (resolution.resolved_at - claim.asserted_at).total_seconds() / 3600
            timeliness = accuracy * _sigmoid(lead_hours / policy.timeliness_half_life_hours - 1)

        if verdict is not None:
            discipline = verdict.evidence_strength
        else:
            discipline = _mean([_DISCIPLINE_GRADE_WEIGHTS[e.grade] for e in evidence], 0.5)

        final = (
            policy.accuracy_weight * accuracy
            + policy.timeliness_weight * timeliness
            + policy.evidence_discipline_weight * discipline
        )
        return ClaimScore(
            claim_id=claim.id,
            accuracy_score=accuracy,
            timeliness_score=timeliness,
            evidence_discipline_score=discipline,
            final_score=max(0.0, min(1.0, final)),
            score_version=policy.score_version,
        )

    def prior_mean(self, signals: Sequence[CredibilitySignal]) -> float:
        """Population mean accuracy, or the configured prior when there is no history."""
        accuracies = [s.accuracy for s in signals if s.accuracy is not None]
        return _mean(accuracies, self._policy.prior_mean)

    def score(
        self,
        source_id: str,
        history: Sequence[CredibilitySignal],
        prior_mean: Optional[float] = None,
        computed_at: Optional[datetime] = None,
    ) -> SourceScore:
        """Compute a new score snapshot for a source from its full history.

        Args:
            source_id: Source being scored
            history: Every recorded signal of the source
            prior_mean: Population mean to shrink toward; defaults to the policy's
            computed_at: Snapshot time

        Returns:
            A fresh snapshot; the same history always yields the same numbers
        """
        policy = self._policy
        prior = policy.prior_mean if prior_mean is None else prior_mean
        k = policy.prior_strength

        accuracies = [s.accuracy for s in history if s.accuracy is not None]
        n = len(accuracies)
        correct = sum(accuracies)

        alpha = k * prior + correct
        beta = k * (1 - prior) + n - correct
        posterior_mean = alpha / (alpha + beta)

        if n == 0:
            interval = ConfidenceInterval(lower=0.0, upper=100.0)
        else:
            variance = alpha * beta / ((alpha + beta) ** 2 * (alpha + beta + 1))
            margin = policy.z_value * math.sqrt(variance)
            interval = ConfidenceInterval(
                lower=round(max(0.0, posterior_mean - margin) * 100, 2),
                upper=round(min(1.0, posterior_mean + margin) * 100, 2),
            )

        strength = _mean([s.evidence_strength for s in history], prior)
        share = _mean([s.primary_share for s in history], prior)
        method_discipline = policy.evidence_strength_weight * strength + policy.primary_share_weight * share

        agreements = [s.verdict_agreement for s in history if s.verdict_agreement is not None]
        return SourceScore(
            source_id=source_id,
            track_record=round(posterior_mean * 100, 2),
            method_discipline=round(max(0.0, min(1.0, method_discipline)) * 100, 2),
            sample_size=n,
            confidence_interval=interval,
            score_version=policy.score_version,
            computed_at=computed_at or utc_now(),
            metadata={
                "raw_accuracy": round(correct / n, 4) if n else None,
                "prior_mean": round(prior, 4),
                "prior_strength": k,
                "resolved_claims": len(history),
                "unresolved_claims": len(history) - n,
                "verdict_agreement_rate": round(sum(agreements) / len(agreements), 4) if agreements else None,
            },
        )

    def explain(self, score: SourceScore) -> str:
        """Short human-readable explanation of a source score."""
        raw = score.metadata.get("raw_accuracy")
        prior = score.metadata.get("prior_mean", self._policy.prior_mean)
        if score.sample_size == 0:
            history = "No resolved claims yet, so the track record equals the population prior"
        else:
            history = (
                f"Track record {score.track_record:.0f}/100 from {score.sample_size} resolved claims "
                f"(raw accuracy {raw * 100:.0f}%, shrunk toward the {prior * 100:.0f}% prior)"
            )
        if score.sample_size < self._policy.prior_strength:
            history += "; limited history keeps it close to the prior"
        return (
            f"{history}. Method discipline {score.method_discipline:.0f}/100 reflects evidence strength "
            f"and the share of primary-grade evidence. Confidence interval "
            f"{score.confidence_interval.lower:.0f}-{score.confidence_interval.upper:.0f}."
        )
