"""Grading and stance rules for the evidence ladder."""

import re
from datetime import datetime
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from ..models.evidence import EvidenceCandidate, EvidenceGrade, EvidenceStance
from ..models.policy import GradingRules

CONTRADICT_KEYWORDS = [
    "denied", "denies", "refuted", "false", "incorrect", "misleading", "not true",
    "debunked", "no evidence", "unconfirmed", "contrary to", "disputes", "rejects",
    "disproves", "fake",
]

SUPPORT_KEYWORDS = [
    "confirmed", "confirms", "verified", "announced", "official", "according to",
    "states that", "proves", "validates", "evidence shows", "data confirms", "reported",
    "transaction shows", "on-chain data",
]

MIN_OVERLAP_WORDS = 2


def _location(url: str, publisher: Optional[str]) -> tuple:
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.netloc or publisher or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host, f"{host}{parsed.path.lower()}"


def _matches(domain: str, host: str, location: str) -> bool:
    domain = domain.lower()
    if "/" in domain:
        return location.startswith(domain)
    if "." not in domain:
        return domain in host
    return host == domain or host.endswith("." + domain)


def grade_evidence(url: str, publisher: Optional[str] = None, rules: Optional[GradingRules] = None) -> EvidenceGrade:
    """Place a piece of evidence on the A-D ladder by where it was published."""
    rules = rules or GradingRules()
    host, location = _location(url, publisher)

    for account in rules.official_accounts:
        if location.startswith(account.lower().rstrip("/")):
            return EvidenceGrade.A

    ladder = [
        (EvidenceGrade.A, rules.grade_a_domains),
        (EvidenceGrade.B, rules.grade_b_domains),
        (EvidenceGrade.D, rules.grade_d_domains),
        (EvidenceGrade.C, rules.grade_c_domains),
    ]
    for grade, domains in ladder:
        if any(_matches(domain, host, location) for domain in domains):
            return grade
    return EvidenceGrade.C


def _contains(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def _significant_words(text: str) -> set:
    return {word for word in re.findall(r"[a-z0-9$]+", text.lower()) if len(word) > 4}


def classify_stance(excerpt: str, claim_text: str, title: Optional[str] = None) -> Optional[EvidenceStance]:
    """Classify a result's position on a claim.

    Returns:
        The stance, or None when the result is unrelated to the claim
    """
    text = f"{title or ''} {excerpt}".lower()
    if any(_contains(text, keyword) for keyword in CONTRADICT_KEYWORDS):
        return EvidenceStance.CONTRADICTS
    if any(_contains(text, keyword) for keyword in SUPPORT_KEYWORDS):
        return EvidenceStance.SUPPORTS
    if len(_significant_words(text) & _significant_words(claim_text)) >= MIN_OVERLAP_WORDS:
        return EvidenceStance.MENTIONS
    return None


def _recency(candidate: EvidenceCandidate) -> float:
    moment: datetime = candidate.published_at or candidate.retrieved_at
    return moment.timestamp()


def rank_evidence(evidence: Sequence[EvidenceCandidate]) -> List[EvidenceCandidate]:
    """Sort by grade (A first), then most recent first."""
    return sorted(evidence, key=lambda e: (-e.grade.weight, -_recency(e)))


def flag_primary(evidence: Sequence[EvidenceCandidate]) -> List[EvidenceCandidate]:
    """Mark the single strongest piece of evidence as the canonical citation."""
    if not evidence:
        return []
    best = max(
        range(len(evidence)),
        key=lambda i: (
            evidence[i].grade.weight,
            evidence[i].stance != EvidenceStance.MENTIONS,
            _recency(evidence[i]),
        ),
    )
    return [e.model_copy(update={"primary_flag": i == best}) for i, e in enumerate(evidence)]
