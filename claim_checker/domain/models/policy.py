"""Tunable policy parameters.

Coefficients here are configuration pending calibration against real
outcome data; services take them as constructor arguments.
"""

from typing import List, Set

from pydantic import BaseModel, Field

from .claim import ClaimType


class RetryPolicy(BaseModel):
    """Bounded retry for calls to external collaborators."""

    max_attempts: int = Field(default=3, ge=1, description="Total attempts including the first")
    base_delay: float = Field(default=0.5, ge=0.0, description="Backoff before the second attempt, in seconds")
    max_delay: float = Field(default=8.0, ge=0.0, description="Upper bound on a single backoff")
    timeout: float = Field(default=30.0, gt=0.0, description="Timeout of a single attempt, in seconds")


class VerdictPolicy(BaseModel):
    """Decision thresholds and blending coefficients for verdicts."""

    prompt_version: str = Field(default="verdict-v1.1")
    misleading_contradiction_ratio: float = Field(default=0.3, description="Contradiction share above which strong contradiction is misleading")
    verified_support_ratio: float = Field(default=0.5, description="Support share above which strong support is verified")
    plausible_support_ratio: float = Field(default=0.3, description="Support share above which strong evidence is plausible")

    misleading_probability: List[float] = Field(default=[0.05, 0.2], description="[base, support slope]")
    misleading_strength: List[float] = Field(default=[0.7, 0.2], description="[base, quality slope]")
    verified_probability: List[float] = Field(default=[0.8, 0.15], description="[base, quality slope]")
    verified_strength: List[float] = Field(default=[0.8, 0.15], description="[base, quality slope]")
    plausible_probability: List[float] = Field(default=[0.5, 0.25], description="[base, support slope]")
    plausible_strength: List[float] = Field(default=[0.5, 0.3], description="[base, quality slope]")
    speculative_probability: List[float] = Field(default=[0.3, 0.2], description="[base, support slope]")
    speculative_strength: List[float] = Field(default=[0.2, 0.3], description="[base, quality slope]")

    max_key_evidence: int = Field(default=5, ge=1)


class ScoringPolicy(BaseModel):
    """Parameters of claim and source scoring."""

    score_version: str = Field(default="v1.0.0")
    prior_strength: float = Field(default=20.0, gt=0.0, description="Virtual claims backing the prior")
    prior_mean: float = Field(default=0.5, ge=0.0, le=1.0, description="Population mean accuracy used when history is empty")
    z_value: float = Field(default=1.96, gt=0.0, description="Width multiplier of the confidence interval")

    accuracy_weight: float = Field(default=0.6)
    timeliness_weight: float = Field(default=0.2)
    evidence_discipline_weight: float = Field(default=0.2)
    timeliness_half_life_hours: float = Field(default=48.0, gt=0.0)
    min_falsifiability: float = Field(default=0.2, ge=0.0, le=1.0)

    evidence_strength_weight: float = Field(default=0.6, description="Method discipline weight of verdict strength")
    primary_share_weight: float = Field(default=0.4, description="Method discipline weight of A/B share")


class ResolutionPolicy(BaseModel):
    """Lifecycle parameters of the resolution engine."""

    recheck_intervals_hours: List[float] = Field(default=[6, 24, 48, 72, 168])
    grace_period_hours: float = Field(default=24.0, ge=0.0)
    max_recheck_attempts: int = Field(default=10, ge=1)
    auto_resolve_strength: float = Field(default=0.85, description="Verdict strength that settles a claim")
    conclusive_evidence_count: int = Field(default=2, ge=1, description="A/B items on one side that settle a claim")
    false_on_expiry_falsifiability: float = Field(default=0.7, description="Expired claims above this falsifiability resolve false")
    human_review_types: Set[ClaimType] = Field(
        default={ClaimType.EXPLOIT_OR_HACK, ClaimType.REGULATORY_ACTION, ClaimType.WALLET_ATTRIBUTION}
    )


class GradingRules(BaseModel):
    """Domain lists behind the evidence ladder."""

    grade_a_domains: List[str] = Field(default=[
        "sec.gov", "cftc.gov", "treasury.gov", "federalreserve.gov", "bis.org", "fca.org.uk",
        "etherscan.io", "blockchain.com", "solscan.io", "bscscan.com", "arbiscan.io",
        "ethereum.org", "bitcoin.org", "solana.com",
        "binance.com/en/support", "coinbase.com/blog", "kraken.com", "exchange.gemini.com",
    ])
    grade_b_domains: List[str] = Field(default=[
        "bloomberg.com", "reuters.com", "wsj.com", "ft.com", "theblock.co", "coindesk.com",
    ])
    grade_c_domains: List[str] = Field(default=[
        "cointelegraph.com", "decrypt.co", "cryptoslate.com", "newsbtc.com", "beincrypto.com",
        "bitcoinmagazine.com",
    ])
    grade_d_domains: List[str] = Field(default=[
        "twitter.com", "x.com", "t.me", "telegram", "discord", "reddit.com", "4chan",
    ])
    official_accounts: List[str] = Field(
        default_factory=list,
        description="Account prefixes (e.g. 'x.com/ethereum') treated as primary despite a social domain",
    )


class PipelinePolicy(BaseModel):
    """Batch execution limits."""

    max_concurrency: int = Field(default=4, ge=1, description="Units of work processed in parallel")
    unit_timeout: float = Field(default=180.0, gt=0.0, description="Seconds before a unit is marked failed")
