"""Service for retrieving and grading evidence for a claim."""

import logging
from typing import Dict, List, Optional

from ..models.claim import Claim, ClaimType
from ..models.evidence import EvidenceCandidate
from ..models.policy import GradingRules, RetryPolicy
from ..ports.search_provider import SearchHit, SearchProvider
from .evidence_grader import classify_stance, flag_primary, grade_evidence, rank_evidence
from .retry import call_with_retry

logger = logging.getLogger(__name__)

MAX_RESULTS = 15
MAX_QUERIES = 3

TYPE_QUERY_TERMS: Dict[ClaimType, str] = {
    ClaimType.FILING_SUBMITTED: "SEC filing",
    ClaimType.FILING_APPROVED_OR_DENIED: "SEC decision approval",
    ClaimType.REGULATORY_ACTION: "regulator official statement",
    ClaimType.LISTING_ANNOUNCED: "exchange listing announcement",
    ClaimType.LISTING_LIVE: "exchange listing trading live",
    ClaimType.DELISTING_ANNOUNCED: "exchange delisting notice",
    ClaimType.TRADING_HALT: "trading halted exchange notice",
    ClaimType.MAINNET_LAUNCH: "mainnet launch announcement",
    ClaimType.TESTNET_LAUNCH: "testnet launch announcement",
    ClaimType.UPGRADE_RELEASED: "upgrade release notes",
    ClaimType.EXPLOIT_OR_HACK: "exploit hack post-mortem",
    ClaimType.AUDIT_RESULT: "security audit report",
    ClaimType.PARTNERSHIP_ANNOUNCED: "partnership official announcement",
    ClaimType.INVESTMENT_OR_ACQUISITION: "funding round acquisition",
    ClaimType.LARGE_TRANSFER_OR_WHALE: "on-chain transfer whale",
    ClaimType.MINT_OR_BURN: "token mint burn transaction",
    ClaimType.WALLET_ATTRIBUTION: "wallet address attribution",
}


def build_search_queries(claim: Claim) -> List[str]:
    """Up to three distinct queries: the claim, its assets, and its type."""
    queries = [claim.claim_text]
    assets = " ".join(claim.asset_symbols)
    if assets:
        queries.append(f"{assets} {claim.claim_text[:100]}")
    type_terms = TYPE_QUERY_TERMS.get(claim.claim_type)
    if type_terms:
        subject = assets or " ".join(claim.claim_text.split()[:6])
        queries.append(f"{subject} {type_terms}")

    unique = []
    for query in queries:
        if query not in unique:
            unique.append(query)
    return unique[:MAX_QUERIES]


class EvidenceRetriever:
    """Finds material for a claim and grades it on the evidence ladder."""

    def __init__(
        self,
        search_provider: SearchProvider,
        grading_rules: Optional[GradingRules] = None,
        retry_policy: Optional[RetryPolicy] = None,
        max_results: int = MAX_RESULTS,
    ):
        self._search = search_provider
        self._rules = grading_rules or GradingRules()
        self._retry_policy = retry_policy or RetryPolicy()
        self._max_results = max_results

    async def retrieve(self, claim: Claim) -> List[EvidenceCandidate]:
        """Retrieve graded evidence for a claim.

        Returns an empty list when the search backend is unavailable.
        """
        logger.info(f"📚 Retrieving evidence for claim={claim.id}")
        hits = await self._search_all(claim)

        evidence: Dict[str, EvidenceCandidate] = {}
        for hit in hits:
            key = hit.url.strip().rstrip("/").lower()
            if key in evidence:
                continue
            candidate = self._grade(claim, hit)
            if candidate is not None:
                evidence[key] = candidate

        ranked = rank_evidence(list(evidence.values()))[: self._max_results]
        ranked = flag_primary(ranked)
        logger.info(f"✅ {len(ranked)} evidence items for claim={claim.id} from {len(hits)} hits")
        return ranked

    async def _search_all(self, claim: Claim) -> List[SearchHit]:
        hits: List[SearchHit] = []
        for query in build_search_queries(claim):
            try:
                hits.extend(
                    await call_with_retry(
                        f"evidence search claim={claim.id}",
                        lambda q=query: self._search.search(q, list(claim.asset_symbols)),
                        self._retry_policy,
                    )
                )
            except Exception as e:
                logger.warning(f"⚠️ Search failed for claim={claim.id} stage=retrieval query={query[:60]!r}: {e}")
        return hits

    def _grade(self, claim: Claim, hit: SearchHit) -> Optional[EvidenceCandidate]:
        stance = classify_stance(hit.excerpt, claim.claim_text, hit.title)
        if stance is None:
            return None
        grade = grade_evidence(hit.url, hit.publisher, self._rules)
        host = hit.url.split("://")[-1].split("/")[0]
        return EvidenceCandidate(
            url=hit.url,
            publisher=hit.publisher or (host[4:] if host.startswith("www.") else host),
            excerpt=hit.excerpt[:500],
            stance=stance,
            grade=grade,
            published_at=hit.published_at,
        )
