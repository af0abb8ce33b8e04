"""Service for synthesizing verdicts from graded evidence.

The label, probability and strength come from a deterministic policy over
grade-weighted quality and stance ratios. A completion provider only writes
the narrative; without one (or when it fails) the narrative is built from
the grade and stance counts.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from ..models.claim import Claim
from ..models.evidence import EvidenceCandidate, EvidenceGrade, EvidenceItem, EvidenceStance
from ..models.policy import RetryPolicy, VerdictPolicy
from ..models.verdict import Verdict, VerdictLabel, VerdictNarrative
from ..ports.completion_provider import CompletionProvider
from .prompts import VERDICT_SYSTEM_PROMPT, build_verdict_prompt
from .response_parser import parse_verdict_narrative
from .retry import RetryExhaustedError, call_with_retry

logger = logging.getLogger(__name__)

RULE_BASED_MODEL = "rule-based"

INVALIDATION_TRIGGERS: Dict[VerdictLabel, List[str]] = {
    VerdictLabel.VERIFIED: [
        "An A-grade source retracts or contradicts the supporting evidence",
        "On-chain or official records show the event did not happen as described",
    ],
    VerdictLabel.MISLEADING: [
        "The contradicting source issues a correction or retraction",
        "New primary evidence independently confirms the claim",
    ],
    VerdictLabel.PLAUSIBLE_UNVERIFIED: [
        "A primary source officially confirms or denies the claim",
        "A/B-grade reporting emerges that contradicts the claim",
    ],
    VerdictLabel.SPECULATIVE: [
        "Any A/B-grade source confirms or refutes the claim",
        "Official channels or on-chain data address the claim directly",
    ],
}

LABEL_SENTENCES: Dict[VerdictLabel, str] = {
    VerdictLabel.VERIFIED: "Strong sources support the claim and outweigh other material.",
    VerdictLabel.MISLEADING: "At least one strong source contradicts the claim.",
    VerdictLabel.PLAUSIBLE_UNVERIFIED: "Strong sources touch on the claim but do not confirm it outright.",
    VerdictLabel.SPECULATIVE: "No strong source takes a position on the claim.",
}


class EvidenceAssessment(BaseModel):
    """Deterministic summary of an evidence set."""

    total: int = 0
    supports: int = 0
    contradicts: int = 0
    mentions: int = 0
    strong_supports: int = Field(0, description="A/B-grade items that support")
    strong_contradicts: int = Field(0, description="A/B-grade items that contradict")
    strong_total: int = Field(0, description="A/B-grade items of any stance")
    quality: float = Field(0.0, ge=0.0, le=1.0, description="Grade-weighted quality, A=4..D=1 over 4")
    grade_counts: Dict[str, int] = Field(default_factory=dict)

    @property
    def support_ratio(self) -> float:
        return self.supports / self.total if self.total else 0.0

    @property
    def contradiction_ratio(self) -> float:
        return self.contradicts / self.total if self.total else 0.0


class VerdictDecision(BaseModel):
    """Label and scores chosen by the policy."""

    label: VerdictLabel
    probability_true: float = Field(..., ge=0.0, le=1.0)
    evidence_strength: float = Field(..., ge=0.0, le=1.0)


def assess_evidence(evidence: Sequence[EvidenceCandidate]) -> EvidenceAssessment:
    """Count stances and grades of an evidence set."""
    counts = {grade.value: 0 for grade in EvidenceGrade}
    assessment = EvidenceAssessment(total=len(evidence))
    weight = 0
    for e in evidence:
        counts[e.grade.value] += 1
        weight += e.grade.weight
        if e.stance == EvidenceStance.SUPPORTS:
            assessment.supports += 1
            assessment.strong_supports += int(e.grade.is_strong)
        elif e.stance == EvidenceStance.CONTRADICTS:
            assessment.contradicts += 1
            assessment.strong_contradicts += int(e.grade.is_strong)
        else:
            assessment.mentions += 1
        assessment.strong_total += int(e.grade.is_strong)
    assessment.grade_counts = counts
    assessment.quality = weight / (4 * len(evidence)) if evidence else 0.0
    return assessment


def _blend(coefficients: List[float], x: float) -> float:
    base, slope = coefficients
    return max(0.0, min(1.0, base + slope * x))


def decide_verdict(assessment: EvidenceAssessment, policy: Optional[VerdictPolicy] = None) -> VerdictDecision:
    """Apply the decision policy; the first matching rule wins."""
    policy = policy or VerdictPolicy()
    support = assessment.support_ratio
    quality = assessment.quality

    if assessment.strong_contradicts and assessment.contradiction_ratio > policy.misleading_contradiction_ratio:
        return VerdictDecision(
            label=VerdictLabel.MISLEADING,
            probability_true=_blend(policy.misleading_probability, support),
            evidence_strength=_blend(policy.misleading_strength, quality),
        )
    if assessment.strong_supports and support > policy.verified_support_ratio:
        return VerdictDecision(
            label=VerdictLabel.VERIFIED,
            probability_true=_blend(policy.verified_probability, quality),
            evidence_strength=_blend(policy.verified_strength, quality),
        )
    if assessment.strong_total and support > policy.plausible_support_ratio:
        return VerdictDecision(
            label=VerdictLabel.PLAUSIBLE_UNVERIFIED,
            probability_true=_blend(policy.plausible_probability, support),
            evidence_strength=_blend(policy.plausible_strength, quality),
        )
    return VerdictDecision(
        label=VerdictLabel.SPECULATIVE,
        probability_true=_blend(policy.speculative_probability, support),
        evidence_strength=_blend(policy.speculative_strength, quality),
    )


def rule_based_narrative(assessment: EvidenceAssessment, label: VerdictLabel) -> VerdictNarrative:
    """Narrative built purely from grade and stance counts."""
    if assessment.total:
        grades = ", ".join(f"{grade}:{count}" for grade, count in assessment.grade_counts.items() if count)
        reasoning = (
            f"{assessment.total} evidence items ({grades}); {assessment.supports} support, "
            f"{assessment.contradicts} contradict, {assessment.mentions} mention the claim. "
            f"{LABEL_SENTENCES[label]}"
        )
    else:
        reasoning = f"No evidence was found for this claim. {LABEL_SENTENCES[label]}"
    return VerdictNarrative(
        verdict_label=label,
        reasoning_summary=reasoning,
        invalidation_triggers=list(INVALIDATION_TRIGGERS[label]),
    )


def select_key_evidence(evidence: Sequence[EvidenceCandidate], limit: int = 5) -> List[EvidenceCandidate]:
    """Strongest evidence that takes a position, primary citation first."""
    positioned = [e for e in evidence if e.stance != EvidenceStance.MENTIONS]
    ranked = sorted(positioned, key=lambda e: (not e.primary_flag, -e.grade.weight))
    return ranked[:limit]


class VerdictSynthesizer:
    """Combines a claim with its graded evidence into a verdict."""

    def __init__(
        self,
        provider: Optional[CompletionProvider] = None,
        policy: Optional[VerdictPolicy] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """Initialize the synthesizer.

        Args:
            provider: Writes the narrative; None uses the rule-based narrative
            policy: Decision thresholds and coefficients
            retry_policy: Retry/backoff for provider calls
        """
        self._provider = provider
        self._policy = policy or VerdictPolicy()
        self._retry_policy = retry_policy or RetryPolicy()

    @property
    def policy(self) -> VerdictPolicy:
        return self._policy

    async def synthesize(self, claim: Claim, evidence: Sequence[EvidenceItem]) -> Verdict:
        """Synthesize a verdict. Always returns a structurally valid verdict."""
        assessment = assess_evidence(evidence)
        decision = decide_verdict(assessment, self._policy)
        narrative, model = await self._narrate(claim, evidence, assessment, decision)

        by_url = {e.url: e for e in evidence}
        key_evidence = [by_url[url] for url in narrative.key_evidence_urls if url in by_url]
        if not key_evidence:
            key_evidence = select_key_evidence(evidence, self._policy.max_key_evidence)
        key_evidence = key_evidence[: self._policy.max_key_evidence]

        metadata = {
            "grade_counts": assessment.grade_counts,
            "support_ratio": round(assessment.support_ratio, 4),
            "contradiction_ratio": round(assessment.contradiction_ratio, 4),
            "quality": round(assessment.quality, 4),
        }
        if narrative.verdict_label and narrative.verdict_label != decision.label:
            logger.info(
                f"⚖️ Model label {narrative.verdict_label.value} differs from policy label "
                f"{decision.label.value} for claim={claim.id}"
            )
            metadata["model_label"] = narrative.verdict_label.value

        verdict = Verdict(
            claim_id=claim.id,
            label=decision.label,
            probability_true=decision.probability_true,
            evidence_strength=decision.evidence_strength,
            key_evidence_ids=[e.id for e in key_evidence],
            key_evidence_urls=[e.url for e in key_evidence],
            reasoning_summary=narrative.reasoning_summary,
            invalidation_triggers=narrative.invalidation_triggers,
            model=model,
            prompt_version=self._policy.prompt_version,
            metadata=metadata,
        )
        logger.info(
            f"⚖️ Verdict for claim={claim.id}: {verdict.label.value} "
            f"(p={verdict.probability_true:.2f}, strength={verdict.evidence_strength:.2f})"
        )
        return verdict

    async def _narrate(
        self,
        claim: Claim,
        evidence: Sequence[EvidenceItem],
        assessment: EvidenceAssessment,
        decision: VerdictDecision,
    ) -> Tuple[VerdictNarrative, str]:
        if self._provider is None:
            return rule_based_narrative(assessment, decision.label), RULE_BASED_MODEL

        user_prompt = build_verdict_prompt(claim, list(evidence), decision.model_dump(mode="json"))
        try:
            response = await call_with_retry(
                f"verdict synthesis claim={claim.id}",
                lambda: self._provider.complete(VERDICT_SYSTEM_PROMPT, user_prompt),
                self._retry_policy,
            )
        except RetryExhaustedError as e:
            logger.warning(f"⚠️ {e}; using rule-based narrative")
            return rule_based_narrative(assessment, decision.label), RULE_BASED_MODEL
        except Exception as e:
            logger.error(f"❌ {self._provider.provider_name} failed for claim={claim.id}: {e}; using rule-based narrative")
            return rule_based_narrative(assessment, decision.label), RULE_BASED_MODEL

        narrative = parse_verdict_narrative(response)
        if narrative is None:
            logger.warning(f"⚠️ Malformed verdict output for claim={claim.id}; using rule-based narrative")
            return rule_based_narrative(assessment, decision.label), RULE_BASED_MODEL
        return narrative, self._provider.model_name
